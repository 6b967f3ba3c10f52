from datetime import datetime, timezone
from typing import Optional
import uuid

from fastapi import APIRouter, Request, HTTPException, Depends, Query
from pydantic import BaseModel, Field
from pymongo.errors import DuplicateKeyError

from database.DB import get_db
from helpers.Pagination import get_pagination, create_pagination_response
from helpers.Responses import success_response
from models.models import ApprovalStatus, VolunteerStatus
from services.errors import DomainError
from .dependencies import client_ip, get_audit, get_ledger, require_admin, require_admin_or_volunteer

router = APIRouter()


# Pydantic models
class VolunteerCreate(BaseModel):
    registrationId: str = Field(min_length=1)
    name: str = Field(min_length=1)
    email: str
    status: VolunteerStatus = VolunteerStatus.ACTIVE
    approvalStatus: ApprovalStatus = ApprovalStatus.APPROVED


class VerifyPoints(BaseModel):
    volunteerId: str = Field(min_length=1)
    pointsToVerify: int = Field(gt=0)


@router.post('')
async def add_volunteer(volunteer_data: VolunteerCreate, request: Request, admin_user: dict = Depends(require_admin), db=Depends(get_db), audit=Depends(get_audit)):
    """Add a new volunteer (Admin only)"""
    try:
        existing_volunteer = await db.find_one("volunteers", {"registrationId": volunteer_data.registrationId})
        if existing_volunteer:
            raise HTTPException(status_code=409, detail="Volunteer with this registration ID already exists")

        now = datetime.now(timezone.utc)
        volunteer = volunteer_data.model_dump(mode="json")
        volunteer.update({
            "_id": str(uuid.uuid4()),
            "email": volunteer_data.email.lower(),
            "softDelete": False,
            "createdAt": now,
            "updatedAt": now,
        })

        try:
            volunteer = await db.add("volunteers", volunteer)
        except DuplicateKeyError:
            raise HTTPException(status_code=409, detail="Volunteer with this registration ID already exists")
        await audit.record(admin_user["id"], "CREATE", "VOLUNTEER", new_data=volunteer, ip_address=client_ip(request))
        return success_response(volunteer, "Volunteer added successfully", status_code=201)

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error adding volunteer: {str(e)}")


@router.get('')
async def get_volunteers(page: int = Query(1), limit: int = Query(10), admin_user: dict = Depends(require_admin), db=Depends(get_db)):
    """List volunteers (Admin only)"""
    try:
        page, limit, skip = get_pagination(page, limit)
        query = {"softDelete": {"$ne": True}}
        volunteers = await db.find_many("volunteers", query, sort=[("name", 1)], skip=skip, limit=limit)
        total = await db.count("volunteers", query)
        return success_response(create_pagination_response(volunteers, total, page, limit))

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching volunteers: {str(e)}")


@router.put('/verify-points')
async def verify_points(payload: VerifyPoints, request: Request, admin_user: dict = Depends(require_admin), ledger=Depends(get_ledger), audit=Depends(get_audit)):
    """Move pending points to verified (Admin only)"""
    try:
        before = await ledger.get(payload.volunteerId)
        snapshot = await ledger.verify(payload.volunteerId, payload.pointsToVerify, verified_by=admin_user["id"])
        await audit.record(
            admin_user["id"],
            "VERIFY",
            "VOLUNTEER_POINTS",
            old_data=before.model_dump(mode="json"),
            new_data=snapshot.model_dump(mode="json"),
            ip_address=client_ip(request),
            notes=f"Verified {payload.pointsToVerify} points for volunteer",
        )
        return success_response(snapshot.model_dump(mode="json"), "Points verified successfully")

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error verifying points: {str(e)}")


@router.get('/leaderboard')
async def leaderboard(
    page: int = Query(1),
    limit: int = Query(10),
    sortBy: str = Query("points", pattern="^(points|verified)$"),
    sortOrder: str = Query("desc", pattern="^(asc|desc)$"),
    user: dict = Depends(require_admin_or_volunteer),
    ledger=Depends(get_ledger),
):
    """Volunteers ranked by total or verified points"""
    try:
        return success_response(await ledger.leaderboard(page, limit, sortBy, sortOrder))

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching leaderboard: {str(e)}")


@router.get('/{volunteer_id}/points')
async def volunteer_points(volunteer_id: str, user: dict = Depends(require_admin_or_volunteer), ledger=Depends(get_ledger)):
    """Rank and balance of one volunteer; volunteers may only read their own"""
    if user["role"] == "volunteer" and user["id"] != volunteer_id:
        raise HTTPException(status_code=403, detail="Volunteers can only view their own points")
    try:
        return success_response(await ledger.volunteer_stats(volunteer_id))

    except (HTTPException, DomainError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching volunteer points: {str(e)}")


@router.get('/{volunteer_id}')
async def get_volunteer(volunteer_id: str, admin_user: dict = Depends(require_admin), db=Depends(get_db)):
    """Get a specific volunteer (Admin only)"""
    try:
        volunteer = await db.find_one("volunteers", {"_id": volunteer_id, "softDelete": {"$ne": True}})
        if not volunteer:
            raise HTTPException(status_code=404, detail="Volunteer not found")

        return success_response(volunteer)

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching volunteer: {str(e)}")
