"""
Bulk event completion.

Completing an event marks it ``completed`` once and credits every assignee
through the points ledger. The event document carries a completion job (the
resolved per-volunteer lines plus the outcome) so that a run interrupted part
way through can be retried: every credit is keyed on (event, volunteer) and is
applied at most once.
"""
import logging
from datetime import datetime, timezone

from helpers.CreditKeyGenerator import generate_event_credit_key
from models.models import Attendance, CompletionJobStatus, CompletionPolicy, EventStatus
from .AssignmentRegistry import AssignmentRegistry
from .AuditCollaborator import AuditCollaborator
from .PointsLedger import PointsLedger
from .errors import ConflictError, InvalidStateError, NotFoundError

logger = logging.getLogger(__name__)

RESUMABLE_JOB_STATUSES = (CompletionJobStatus.IN_PROGRESS.value, CompletionJobStatus.PARTIAL.value)


class EventCompletionCoordinator:
    EVENTS = "events"

    def __init__(self, db, ledger: PointsLedger = None, registry: AssignmentRegistry = None, audit: AuditCollaborator = None):
        self.db = db
        self.audit = audit or AuditCollaborator(db)
        self.ledger = ledger or PointsLedger(db)
        self.registry = registry or AssignmentRegistry(db, self.audit)

    async def _get_event(self, event_id: str):
        event = await self.db.find_one(self.EVENTS, {"_id": event_id, "softDelete": {"$ne": True}})
        if not event:
            raise NotFoundError("Event not found")
        return event

    def _plan(self, assignments, policy: CompletionPolicy):
        """Resolve the award for every assignee; zero awards produce no line."""
        lines = []
        for assignment in assignments:
            volunteer_id = assignment["volunteerId"]
            attendance = Attendance(assignment.get("attendance") or Attendance.PENDING)
            points, notes = policy.resolve(volunteer_id, attendance)
            if points <= 0:
                continue
            volunteer = assignment.get("volunteer") or {}
            lines.append({
                "volunteerId": volunteer_id,
                "volunteerName": volunteer.get("name") or "Unknown",
                "attendance": attendance.value,
                "points": points,
                "notes": notes,
            })
        return lines

    async def _apply(self, event, lines):
        """Credit every line, collecting failures instead of stopping at the first one."""
        credited, failed = [], []
        for line in lines:
            note = f"Event: {event['name']} - {line['notes']}" if line.get("notes") else None
            try:
                await self.ledger.credit(
                    line["volunteerId"],
                    line["points"],
                    note=note,
                    idempotency_key=generate_event_credit_key(event["_id"], line["volunteerId"]),
                )
            except Exception as e:
                logger.exception("Failed to credit volunteer %s for event %s", line["volunteerId"], event["_id"])
                failed.append({"volunteerId": line["volunteerId"], "points": line["points"], "error": str(e)})
                continue
            credited.append({
                "volunteerId": line["volunteerId"],
                "volunteerName": line["volunteerName"],
                "pointsAwarded": line["points"],
                "attendance": line["attendance"],
            })
        return credited, failed

    async def _finish_job(self, event_id, failed):
        job_status = CompletionJobStatus.PARTIAL if failed else CompletionJobStatus.COMPLETED
        return await self.db.find_one_and_update(
            self.EVENTS,
            {"_id": event_id},
            {"$set": {
                "completion.status": job_status.value,
                "completion.failed": failed,
                "completion.finishedAt": datetime.now(timezone.utc),
            }},
        )

    def _result(self, event, credited, failed, total_volunteers):
        return {
            "event": event,
            "pointsAssigned": credited,
            "failed": failed,
            "totalVolunteers": total_volunteers,
            "totalPointsAwarded": sum(p["pointsAwarded"] for p in credited),
        }

    async def complete_event(self, event_id: str, policy: CompletionPolicy = None, actor_id=None, ip_address=None):
        policy = policy or CompletionPolicy()

        event = await self._get_event(event_id)
        if event["status"] == EventStatus.COMPLETED.value:
            raise ConflictError("Event is already completed")

        assignments = await self.registry.list_by_event(event_id)
        if not assignments:
            raise InvalidStateError("No volunteers assigned to this event")

        lines = self._plan(assignments, policy)
        now = datetime.now(timezone.utc)

        completed = await self.db.find_one_and_update(
            self.EVENTS,
            {"_id": event_id, "softDelete": {"$ne": True}, "status": {"$ne": EventStatus.COMPLETED.value}},
            {"$set": {
                "status": EventStatus.COMPLETED.value,
                "updatedAt": now,
                "completion": {
                    "status": CompletionJobStatus.IN_PROGRESS.value,
                    "completedBy": actor_id,
                    "startedAt": now,
                    "policy": policy.model_dump(),
                    "lines": lines,
                    "failed": [],
                },
            }},
        )
        if completed is None:
            # lost the race against a concurrent completion
            raise ConflictError("Event is already completed")

        logger.info("Completing event %s with %d assignees, %d to credit", event_id, len(assignments), len(lines))
        credited, failed = await self._apply(completed, lines)
        completed = await self._finish_job(event_id, failed)

        if failed:
            logger.warning("Event %s completed partially: %d of %d credits failed", event_id, len(failed), len(lines))

        result = self._result(completed, credited, failed, len(assignments))
        await self.audit.record(
            actor_id,
            "COMPLETE",
            "EVENT",
            old_data=event,
            new_data={
                "eventId": event_id,
                "name": event["name"],
                "volunteersCredited": len(credited),
                "totalPointsAwarded": result["totalPointsAwarded"],
            },
            ip_address=ip_address,
            notes=f"Event completed. Points assigned to {len(credited)} volunteers.",
        )
        return result

    async def retry_completion(self, event_id: str, actor_id=None, ip_address=None):
        """Re-drive the stored completion lines; credits already applied are skipped by the ledger."""
        event = await self._get_event(event_id)
        job = event.get("completion")
        if event["status"] != EventStatus.COMPLETED.value or not job:
            raise InvalidStateError("Event has not been completed")
        if job.get("status") not in RESUMABLE_JOB_STATUSES:
            raise InvalidStateError("Event completion has nothing left to retry")

        logger.info("Retrying completion of event %s (%s)", event_id, job.get("status"))
        lines = job.get("lines", [])
        credited, failed = await self._apply(event, lines)
        completed = await self._finish_job(event_id, failed)

        total_volunteers = await self.db.count("volunteer_assignments", {"eventId": event_id})
        result = self._result(completed, credited, failed, total_volunteers)
        await self.audit.record(
            actor_id,
            "UPDATE",
            "EVENT",
            new_data={"eventId": event_id, "retriedLines": len(lines), "failed": len(failed)},
            ip_address=ip_address,
            notes="Event completion retried.",
        )
        return result

    async def completion_summary(self, event_id: str):
        event = await self._get_event(event_id)
        assignments = await self.registry.list_by_event(event_id)
        balances = await self.ledger.snapshots(a["volunteerId"] for a in assignments)

        volunteers = []
        for assignment in assignments:
            volunteer = assignment.get("volunteer") or {}
            balance = balances.get(assignment["volunteerId"])
            volunteers.append({
                "_id": assignment["volunteerId"],
                "name": volunteer.get("name"),
                "registrationId": volunteer.get("registrationId"),
                "attendance": assignment["attendance"],
                "role": assignment.get("role"),
                "currentPoints": balance.points if balance else 0,
                "verifiedPoints": balance.verifiedPoints if balance else 0,
                "pendingPoints": balance.pendingPoints if balance else 0,
            })

        def count(attendance):
            return sum(1 for v in volunteers if v["attendance"] == attendance.value)

        return {
            "event": {
                "_id": event["_id"],
                "name": event["name"],
                "startDate": event.get("startDate"),
                "endDate": event.get("endDate"),
                "status": event["status"],
            },
            "volunteers": volunteers,
            "summary": {
                "totalVolunteers": len(volunteers),
                "present": count(Attendance.PRESENT),
                "absent": count(Attendance.ABSENT),
                "pending": count(Attendance.PENDING),
            },
        }
