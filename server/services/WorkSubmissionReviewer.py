"""
Lifecycle of a volunteer's self-reported work.

    submitted -> under_review -> approved | rejected

The ``under_review`` hop is advisory. A decision is taken exactly once: the
transition is a conditional update on the current status, and an approval
credits the ledger under a per-submission idempotency key.
"""
import logging
import uuid
from datetime import datetime, timezone

from helpers.CreditKeyGenerator import generate_submission_credit_key
from helpers.Pagination import get_pagination, create_pagination_response
from models.models import REVIEWABLE_STATUSES, ReviewDecision, SubmissionStatus, WorkType
from .AuditCollaborator import AuditCollaborator
from .PointsLedger import PointsLedger, require_positive_points
from .errors import ConflictError, InvalidStateError, NotFoundError

logger = logging.getLogger(__name__)


class WorkSubmissionReviewer:
    COLLECTION = "work_submissions"

    def __init__(self, db, ledger: PointsLedger = None, audit: AuditCollaborator = None):
        self.db = db
        self.ledger = ledger or PointsLedger(db)
        self.audit = audit or AuditCollaborator(db)

    async def submit(self, volunteer_id: str, event_id: str, work_title: str, work_description: str,
                     work_type: WorkType = WorkType.TASK_COMPLETION, attachments=None, ip_address=None):
        volunteer = await self.db.find_one("volunteers", {"_id": volunteer_id, "softDelete": {"$ne": True}})
        if not volunteer:
            raise NotFoundError("Volunteer not found")

        event = await self.db.find_one("events", {"_id": event_id, "softDelete": {"$ne": True}})
        if not event:
            raise NotFoundError("Event not found")

        now = datetime.now(timezone.utc)
        submission = await self.db.add(self.COLLECTION, {
            "_id": str(uuid.uuid4()),
            "volunteerId": volunteer_id,
            "eventId": event_id,
            "workTitle": work_title,
            "workDescription": work_description,
            "workType": WorkType(work_type).value,
            "attachments": list(attachments or []),
            "status": SubmissionStatus.SUBMITTED.value,
            "pointsAwarded": 0,
            "reviewedBy": None,
            "reviewedAt": None,
            "reviewNotes": None,
            "rejectionReason": None,
            "createdAt": now,
            "updatedAt": now,
        })

        logger.info("Work '%s' submitted by volunteer %s for event %s", work_title, volunteer_id, event_id)
        await self.audit.record(
            None, "CREATE", "VOLUNTEER_WORK", new_data=submission, ip_address=ip_address,
            notes=f"Work submitted by volunteer {volunteer.get('registrationId') or volunteer_id}",
        )
        return submission

    async def get(self, submission_id: str, volunteer_id: str = None):
        query = {"_id": submission_id}
        if volunteer_id:
            query["volunteerId"] = volunteer_id
        submission = await self.db.find_one(self.COLLECTION, query)
        if not submission:
            raise NotFoundError("Work submission not found")
        return submission

    async def list(self, page=1, limit=10, volunteer_id=None, event_id=None, status=None, work_type=None):
        page, limit, skip = get_pagination(page, limit)
        query = {}
        if volunteer_id:
            query["volunteerId"] = volunteer_id
        if event_id:
            query["eventId"] = event_id
        if status:
            query["status"] = SubmissionStatus(status).value
        if work_type:
            query["workType"] = WorkType(work_type).value

        submissions = await self.db.find_many(self.COLLECTION, query, sort=[("createdAt", -1)], skip=skip, limit=limit)
        total = await self.db.count(self.COLLECTION, query)
        return create_pagination_response(submissions, total, page, limit)

    async def mark_under_review(self, submission_id: str, actor_id=None):
        updated = await self.db.find_one_and_update(
            self.COLLECTION,
            {"_id": submission_id, "status": SubmissionStatus.SUBMITTED.value},
            {"$set": {"status": SubmissionStatus.UNDER_REVIEW.value, "updatedAt": datetime.now(timezone.utc)}},
        )
        if updated is None:
            current = await self.get(submission_id)
            raise InvalidStateError(f"Work submission is {current['status']}, not submitted")

        logger.info("Work submission %s taken under review by %s", submission_id, actor_id)
        return updated

    async def _credit(self, submission):
        await self.ledger.credit(
            submission["volunteerId"],
            submission["pointsAwarded"],
            note=f"Work: {submission['workTitle']}",
            idempotency_key=generate_submission_credit_key(submission["_id"]),
        )

    async def review(self, submission_id: str, decision: ReviewDecision, points_awarded: int = None,
                     review_notes: str = None, rejection_reason: str = None, actor_id=None, ip_address=None):
        decision = ReviewDecision(decision)
        old = await self.get(submission_id)

        if decision == ReviewDecision.APPROVED:
            require_positive_points(points_awarded, "Points awarded")
        elif not rejection_reason:
            logger.warning("Work submission %s rejected without a reason", submission_id)

        changes = {
            "status": decision.value,
            "reviewedBy": actor_id,
            "reviewedAt": datetime.now(timezone.utc),
            "reviewNotes": review_notes or None,
            "rejectionReason": rejection_reason or None,
            "updatedAt": datetime.now(timezone.utc),
        }
        if decision == ReviewDecision.APPROVED:
            changes["pointsAwarded"] = points_awarded

        updated = await self.db.find_one_and_update(
            self.COLLECTION,
            {"_id": submission_id, "status": {"$in": [s.value for s in REVIEWABLE_STATUSES]}},
            {"$set": changes},
        )

        if updated is None:
            current = await self.get(submission_id)
            if current["status"] != decision.value:
                raise ConflictError("Work submission has already been reviewed")
            logger.warning("Work submission %s already %s, not reviewing again", submission_id, decision.value)
            if decision == ReviewDecision.APPROVED:
                # completes a credit interrupted after the transition; no-op otherwise
                await self._credit(current)
            return current

        if decision == ReviewDecision.APPROVED:
            await self._credit(updated)

        logger.info("Work submission %s %s by %s", submission_id, decision.value, actor_id)
        await self.audit.record(
            actor_id,
            "APPROVE" if decision == ReviewDecision.APPROVED else "REJECT",
            "VOLUNTEER_WORK",
            old_data=old,
            new_data=updated,
            ip_address=ip_address,
        )
        return updated
