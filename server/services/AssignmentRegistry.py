import logging
import uuid
from datetime import datetime, timezone

from pymongo.errors import DuplicateKeyError

from helpers.Pagination import get_pagination, create_pagination_response
from models.models import Attendance, SubmissionStatus
from .AuditCollaborator import AuditCollaborator
from .errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class AssignmentRegistry:
    """Owns the volunteer <-> event relation and its attendance state."""
    COLLECTION = "volunteer_assignments"

    def __init__(self, db, audit: AuditCollaborator = None):
        self.db = db
        self.audit = audit or AuditCollaborator(db)

    async def _with_volunteers(self, assignments):
        ids = {a["volunteerId"] for a in assignments}
        volunteers = await self.db.find_many(
            "volunteers",
            {"_id": {"$in": list(ids)}},
            {"name": 1, "registrationId": 1},
        )
        by_id = {v["_id"]: v for v in volunteers}
        for assignment in assignments:
            assignment["volunteer"] = by_id.get(assignment["volunteerId"])
        return assignments

    async def assign(self, volunteer_id: str, event_id: str, role: str = "volunteer", remarks: str = None, actor_id=None, ip_address=None):
        existing = await self.db.find_one(self.COLLECTION, {"volunteerId": volunteer_id, "eventId": event_id})
        if existing:
            raise ConflictError("Volunteer is already assigned to this event")

        volunteer = await self.db.find_one("volunteers", {"_id": volunteer_id, "softDelete": {"$ne": True}})
        if not volunteer:
            raise NotFoundError("Volunteer not found")

        event = await self.db.find_one("events", {"_id": event_id, "softDelete": {"$ne": True}})
        if not event:
            raise NotFoundError("Event not found")

        now = datetime.now(timezone.utc)
        assignment = {
            "_id": str(uuid.uuid4()),
            "volunteerId": volunteer_id,
            "eventId": event_id,
            "role": role or "volunteer",
            "attendance": Attendance.PENDING.value,
            "remarks": remarks,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            assignment = await self.db.add(self.COLLECTION, assignment)
        except DuplicateKeyError:
            raise ConflictError("Volunteer is already assigned to this event")

        logger.info("Assigned volunteer %s to event %s as %s", volunteer_id, event_id, assignment["role"])
        await self.audit.record(actor_id, "CREATE", "VOLUNTEER", new_data=assignment, ip_address=ip_address)
        return assignment

    async def get(self, assignment_id: str):
        assignment = await self.db.find_one(self.COLLECTION, {"_id": assignment_id})
        if not assignment:
            raise NotFoundError("Assignment not found")
        return assignment

    async def update_attendance(self, assignment_id: str, attendance: Attendance, remarks: str = None, actor_id=None, ip_address=None):
        old = await self.get(assignment_id)

        changes = {"attendance": Attendance(attendance).value, "updatedAt": datetime.now(timezone.utc)}
        if remarks:
            changes["remarks"] = remarks

        updated = await self.db.find_one_and_update(self.COLLECTION, {"_id": assignment_id}, {"$set": changes})
        if updated is None:
            raise NotFoundError("Assignment not found")

        logger.info("Attendance for assignment %s set to %s", assignment_id, changes["attendance"])
        await self.audit.record(actor_id, "UPDATE", "VOLUNTEER", old_data=old, new_data=updated, ip_address=ip_address)
        return updated

    async def remove(self, assignment_id: str, actor_id=None, ip_address=None):
        old = await self.get(assignment_id)
        deleted = await self.db.delete(self.COLLECTION, {"_id": assignment_id})
        if not deleted:
            raise NotFoundError("Assignment not found")

        logger.info("Removed assignment %s", assignment_id)
        await self.audit.record(actor_id, "DELETE", "VOLUNTEER", old_data=old, ip_address=ip_address)

    async def list_by_event(self, event_id: str):
        assignments = await self.db.find_many(self.COLLECTION, {"eventId": event_id}, sort=[("createdAt", 1)])
        return await self._with_volunteers(assignments)

    async def list_by_volunteer(self, volunteer_id: str):
        return await self.db.find_many(self.COLLECTION, {"volunteerId": volunteer_id}, sort=[("createdAt", -1)])

    async def list(self, page=1, limit=10, event_id=None, volunteer_id=None, attendance=None):
        page, limit, skip = get_pagination(page, limit)
        query = {}
        if event_id:
            query["eventId"] = event_id
        if volunteer_id:
            query["volunteerId"] = volunteer_id
        if attendance:
            query["attendance"] = Attendance(attendance).value

        assignments = await self.db.find_many(self.COLLECTION, query, sort=[("createdAt", -1)], skip=skip, limit=limit)
        total = await self.db.count(self.COLLECTION, query)
        return create_pagination_response(await self._with_volunteers(assignments), total, page, limit)

    async def list_activities(self, volunteer_id: str, page=1, limit=10, attendance=None, event_id=None):
        """A volunteer's own assignments, each joined with its event and their work for it."""
        page, limit, skip = get_pagination(page, limit)
        query = {"volunteerId": volunteer_id}
        if attendance:
            query["attendance"] = Attendance(attendance).value
        if event_id:
            query["eventId"] = event_id

        assignments = await self.db.find_many(self.COLLECTION, query, sort=[("createdAt", -1)], skip=skip, limit=limit)
        total = await self.db.count(self.COLLECTION, query)

        event_ids = [a["eventId"] for a in assignments]
        events = await self.db.find_many(
            "events",
            {"_id": {"$in": event_ids}},
            {"name": 1, "description": 1, "location": 1, "startDate": 1, "endDate": 1, "status": 1},
        )
        events_by_id = {e["_id"]: e for e in events}

        submissions = await self.db.find_many(
            "work_submissions",
            {"volunteerId": volunteer_id, "eventId": {"$in": event_ids}},
            {"eventId": 1, "workTitle": 1, "pointsAwarded": 1, "status": 1, "createdAt": 1},
            sort=[("createdAt", 1)],
        )
        work_by_event = {}
        for submission in submissions:
            work_by_event.setdefault(submission["eventId"], []).append({
                "_id": submission["_id"],
                "workTitle": submission["workTitle"],
                "pointsAwarded": submission.get("pointsAwarded", 0),
                "status": submission["status"],
                "submittedAt": submission.get("createdAt"),
            })

        activities = []
        for assignment in assignments:
            activities.append({
                "assignment": {
                    "_id": assignment["_id"],
                    "role": assignment.get("role"),
                    "attendance": assignment["attendance"],
                    "remarks": assignment.get("remarks"),
                    "assignedAt": assignment.get("createdAt"),
                },
                "event": events_by_id.get(assignment["eventId"]),
                "workSubmissions": work_by_event.get(assignment["eventId"], []),
            })

        return create_pagination_response(activities, total, page, limit)

    async def activity_summary(self, volunteer_id: str):
        total_events = await self.db.count(self.COLLECTION, {"volunteerId": volunteer_id})
        present = await self.db.count(self.COLLECTION, {"volunteerId": volunteer_id, "attendance": Attendance.PRESENT.value})
        pending = await self.db.count(self.COLLECTION, {"volunteerId": volunteer_id, "attendance": Attendance.PENDING.value})

        work_submissions = await self.db.count("work_submissions", {"volunteerId": volunteer_id})
        approved = await self.db.find_many(
            "work_submissions",
            {"volunteerId": volunteer_id, "status": SubmissionStatus.APPROVED.value},
            {"pointsAwarded": 1},
        )

        return {
            "totalEvents": total_events,
            "presentEvents": present,
            "pendingEvents": pending,
            "absentEvents": total_events - present - pending,
            "workSubmissions": work_submissions,
            "approvedWork": len(approved),
            "totalPointsEarned": sum(s.get("pointsAwarded", 0) for s in approved),
        }
