from typing import Optional

from fastapi import APIRouter, Request, HTTPException, Depends, Query
from pydantic import BaseModel

from helpers.Responses import success_response
from models.models import Attendance
from services.errors import DomainError
from .dependencies import client_ip, get_registry, require_admin, require_volunteer

router = APIRouter()


# Pydantic models
class AssignmentCreate(BaseModel):
    volunteerId: str
    eventId: str
    role: Optional[str] = "volunteer"
    remarks: Optional[str] = None


class AttendanceUpdate(BaseModel):
    attendance: Attendance
    remarks: Optional[str] = None


@router.post('/assign')
async def assign_volunteer(payload: AssignmentCreate, request: Request, admin_user: dict = Depends(require_admin), registry=Depends(get_registry)):
    """Assign a volunteer to an event (Admin only)"""
    try:
        assignment = await registry.assign(
            payload.volunteerId,
            payload.eventId,
            role=payload.role,
            remarks=payload.remarks,
            actor_id=admin_user["id"],
            ip_address=client_ip(request),
        )
        return success_response(assignment, "Volunteer assigned successfully", status_code=201)

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error assigning volunteer: {str(e)}")


@router.get('/assignments')
async def list_assignments(
    page: int = Query(1),
    limit: int = Query(10),
    eventId: Optional[str] = Query(None),
    volunteerId: Optional[str] = Query(None),
    attendance: Optional[Attendance] = Query(None),
    admin_user: dict = Depends(require_admin),
    registry=Depends(get_registry),
):
    try:
        return success_response(await registry.list(page, limit, eventId, volunteerId, attendance))

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching assignments: {str(e)}")


@router.get('/event/{event_id}')
async def list_event_assignments(event_id: str, admin_user: dict = Depends(require_admin), registry=Depends(get_registry)):
    """All volunteers assigned to one event"""
    try:
        return success_response(await registry.list_by_event(event_id))

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching event volunteers: {str(e)}")


@router.get('/volunteer/{volunteer_id}')
async def list_volunteer_assignments(volunteer_id: str, admin_user: dict = Depends(require_admin), registry=Depends(get_registry)):
    """All events one volunteer is assigned to"""
    try:
        return success_response(await registry.list_by_volunteer(volunteer_id))

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching volunteer assignments: {str(e)}")


@router.put('/assignments/{assignment_id}/attendance')
async def update_attendance(assignment_id: str, payload: AttendanceUpdate, request: Request, admin_user: dict = Depends(require_admin), registry=Depends(get_registry)):
    """Mark a volunteer present/absent/pending for an event (Admin only)"""
    try:
        assignment = await registry.update_attendance(
            assignment_id,
            payload.attendance,
            remarks=payload.remarks,
            actor_id=admin_user["id"],
            ip_address=client_ip(request),
        )
        return success_response(assignment, "Attendance updated successfully")

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error updating attendance: {str(e)}")


@router.delete('/assignments/{assignment_id}')
async def remove_assignment(assignment_id: str, request: Request, admin_user: dict = Depends(require_admin), registry=Depends(get_registry)):
    """Remove a volunteer from an event (Admin only)"""
    try:
        await registry.remove(assignment_id, actor_id=admin_user["id"], ip_address=client_ip(request))
        return success_response(None, "Volunteer removed from event successfully")

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error removing assignment: {str(e)}")


@router.get('/activities')
async def my_activities(
    page: int = Query(1),
    limit: int = Query(10),
    attendance: Optional[Attendance] = Query(None),
    eventId: Optional[str] = Query(None),
    volunteer: dict = Depends(require_volunteer),
    registry=Depends(get_registry),
):
    """Events the signed-in volunteer is assigned to, with their work for each"""
    try:
        return success_response(await registry.list_activities(volunteer["id"], page, limit, attendance, eventId))

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching activities: {str(e)}")


@router.get('/activities/summary')
async def my_activity_summary(volunteer: dict = Depends(require_volunteer), registry=Depends(get_registry)):
    try:
        return success_response(await registry.activity_summary(volunteer["id"]))

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching activity summary: {str(e)}")
