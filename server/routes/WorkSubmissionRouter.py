from typing import List, Optional

from fastapi import APIRouter, Request, HTTPException, Depends, Query
from pydantic import BaseModel, Field, model_validator

from helpers.Responses import success_response
from models.models import ReviewDecision, SubmissionStatus, WorkType
from services.errors import DomainError
from .dependencies import client_ip, get_reviewer, require_admin, require_admin_or_volunteer, require_volunteer

router = APIRouter()


# Pydantic models
class WorkSubmissionCreate(BaseModel):
    eventId: str
    workTitle: str = Field(min_length=1)
    workDescription: str = Field(min_length=1)
    workType: WorkType = WorkType.TASK_COMPLETION
    attachments: List[str] = Field(default_factory=list)


class WorkSubmissionReview(BaseModel):
    status: ReviewDecision
    pointsAwarded: Optional[int] = Field(default=None, ge=0)
    reviewNotes: Optional[str] = None
    rejectionReason: Optional[str] = None

    @model_validator(mode="after")
    def points_required_for_approval(self):
        if self.status == ReviewDecision.APPROVED and self.pointsAwarded is None:
            raise ValueError("pointsAwarded is required when approving")
        return self


@router.post('')
async def submit_work(payload: WorkSubmissionCreate, request: Request, volunteer: dict = Depends(require_volunteer), reviewer=Depends(get_reviewer)):
    """Submit work done for an event (Volunteer only)"""
    try:
        submission = await reviewer.submit(
            volunteer["id"],
            payload.eventId,
            payload.workTitle,
            payload.workDescription,
            work_type=payload.workType,
            attachments=payload.attachments,
            ip_address=client_ip(request),
        )
        return success_response(submission, "Work submitted successfully", status_code=201)

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error submitting work: {str(e)}")


@router.get('')
async def list_submissions(
    page: int = Query(1),
    limit: int = Query(10),
    eventId: Optional[str] = Query(None),
    status: Optional[SubmissionStatus] = Query(None),
    workType: Optional[WorkType] = Query(None),
    user: dict = Depends(require_admin_or_volunteer),
    reviewer=Depends(get_reviewer),
):
    """All submissions for admins, own submissions for volunteers"""
    volunteer_id = user["id"] if user["role"] == "volunteer" else None
    try:
        return success_response(await reviewer.list(page, limit, volunteer_id, eventId, status, workType))

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching work submissions: {str(e)}")


@router.get('/{submission_id}')
async def get_submission(submission_id: str, user: dict = Depends(require_admin_or_volunteer), reviewer=Depends(get_reviewer)):
    volunteer_id = user["id"] if user["role"] == "volunteer" else None
    try:
        return success_response(await reviewer.get(submission_id, volunteer_id))

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching work submission: {str(e)}")


@router.put('/{submission_id}/under-review')
async def mark_under_review(submission_id: str, admin_user: dict = Depends(require_admin), reviewer=Depends(get_reviewer)):
    try:
        submission = await reviewer.mark_under_review(submission_id, actor_id=admin_user["id"])
        return success_response(submission, "Work submission is under review")

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating work submission: {str(e)}")


@router.put('/{submission_id}/review')
async def review_submission(submission_id: str, payload: WorkSubmissionReview, request: Request, admin_user: dict = Depends(require_admin), reviewer=Depends(get_reviewer)):
    """Approve (crediting points) or reject a work submission (Admin only)"""
    try:
        submission = await reviewer.review(
            submission_id,
            payload.status,
            points_awarded=payload.pointsAwarded,
            review_notes=payload.reviewNotes,
            rejection_reason=payload.rejectionReason,
            actor_id=admin_user["id"],
            ip_address=client_ip(request),
        )
        return success_response(submission, f"Work submission {payload.status.value} successfully")

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error reviewing work submission: {str(e)}")
