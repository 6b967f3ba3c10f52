import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Request, HTTPException, Depends, Query
from pydantic import BaseModel, Field

from config.config import DEFAULT_POINTS_PRESENT, DEFAULT_POINTS_ABSENT, DEFAULT_POINTS_PENDING
from helpers.Responses import success_response
from models.models import CompletionPolicy, EventStatus, PointsOverride
from services.errors import DomainError
from .dependencies import client_ip, get_coordinator, get_events, require_admin

logger = logging.getLogger(__name__)

router = APIRouter()


# Pydantic models
class EventCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    location: Optional[str] = None
    startDate: datetime
    endDate: datetime
    status: Optional[EventStatus] = None


class EventUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    status: Optional[EventStatus] = None


class VolunteerPoints(BaseModel):
    volunteerId: str
    points: int = Field(ge=0)
    notes: Optional[str] = None


class EventComplete(BaseModel):
    defaultPointsForPresent: int = Field(default=DEFAULT_POINTS_PRESENT, ge=0)
    defaultPointsForAbsent: int = Field(default=DEFAULT_POINTS_ABSENT, ge=0)
    defaultPointsForPending: int = Field(default=DEFAULT_POINTS_PENDING, ge=0)
    volunteerPoints: List[VolunteerPoints] = Field(default_factory=list)

    def to_policy(self) -> CompletionPolicy:
        return CompletionPolicy(
            defaultPointsForPresent=self.defaultPointsForPresent,
            defaultPointsForAbsent=self.defaultPointsForAbsent,
            defaultPointsForPending=self.defaultPointsForPending,
            overrides={
                vp.volunteerId: PointsOverride(points=vp.points, notes=vp.notes or None)
                for vp in self.volunteerPoints
            },
        )


@router.post('')
async def create_event(event_data: EventCreate, request: Request, admin_user: dict = Depends(require_admin), events=Depends(get_events)):
    """Create a new event (Admin only)"""
    try:
        event = await events.create(event_data.model_dump(), actor_id=admin_user["id"], ip_address=client_ip(request))
        return success_response(event, "Event created successfully", status_code=201)

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating event: {str(e)}")


@router.get('')
async def get_events_list(
    page: int = Query(1),
    limit: int = Query(10),
    status: Optional[EventStatus] = Query(None),
    admin_user: dict = Depends(require_admin),
    events=Depends(get_events),
):
    """List events, newest first (Admin only)"""
    try:
        return success_response(await events.list(page, limit, status))

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching events: {str(e)}")


@router.get('/{event_id}')
async def get_event(event_id: str, admin_user: dict = Depends(require_admin), events=Depends(get_events)):
    try:
        return success_response(await events.get(event_id))

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching event: {str(e)}")


@router.put('/{event_id}')
async def update_event(event_id: str, event_data: EventUpdate, request: Request, admin_user: dict = Depends(require_admin), events=Depends(get_events)):
    """Update an existing event (Admin only)"""
    update_data = event_data.model_dump(exclude_none=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    try:
        event = await events.update(event_id, update_data, actor_id=admin_user["id"], ip_address=client_ip(request))
        return success_response(event, "Event updated successfully")

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating event: {str(e)}")


@router.delete('/{event_id}')
async def delete_event(event_id: str, request: Request, admin_user: dict = Depends(require_admin), events=Depends(get_events)):
    """Soft-delete an event (Admin only)"""
    try:
        await events.delete(event_id, actor_id=admin_user["id"], ip_address=client_ip(request))
        return success_response(None, "Event deleted successfully")

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting event: {str(e)}")


@router.put('/{event_id}/complete')
async def complete_event(event_id: str, payload: EventComplete, request: Request, admin_user: dict = Depends(require_admin), coordinator=Depends(get_coordinator)):
    """Mark an event completed and credit points to its volunteers (Admin only)"""
    try:
        result = await coordinator.complete_event(
            event_id,
            payload.to_policy(),
            actor_id=admin_user["id"],
            ip_address=client_ip(request),
        )
        message = f"Event completed successfully. Points assigned to {len(result['pointsAssigned'])} volunteers."
        if result["failed"]:
            message += f" {len(result['failed'])} credits failed and can be retried."
        return success_response(result, message)

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        logger.exception("Error completing event %s", event_id)
        raise HTTPException(status_code=500, detail=f"Error completing event: {str(e)}")


@router.post('/{event_id}/complete/retry')
async def retry_event_completion(event_id: str, request: Request, admin_user: dict = Depends(require_admin), coordinator=Depends(get_coordinator)):
    """Finish the credits of a partially completed event (Admin only)"""
    try:
        result = await coordinator.retry_completion(event_id, actor_id=admin_user["id"], ip_address=client_ip(request))
        return success_response(result, f"Completion retried. {len(result['failed'])} credits still failing.")

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error retrying completion: {str(e)}")


@router.get('/{event_id}/completion-summary')
async def completion_summary(event_id: str, admin_user: dict = Depends(require_admin), coordinator=Depends(get_coordinator)):
    """Attendance and current balances of an event's volunteers (Admin only)"""
    try:
        return success_response(await coordinator.completion_summary(event_id))

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching completion summary: {str(e)}")
