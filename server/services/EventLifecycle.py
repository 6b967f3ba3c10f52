"""
Event records and their status transitions.

    draft -> planned -> ongoing
      |        |          |
      +--------+----------+--> cancelled -> planned

``completed`` is terminal and only reachable through event completion.
"""
import logging
import uuid
from datetime import datetime, timezone

from helpers.Pagination import get_pagination, create_pagination_response
from models.models import EventStatus
from .AuditCollaborator import AuditCollaborator
from .errors import InvalidStateError, NotFoundError

logger = logging.getLogger(__name__)


VALID_TRANSITIONS = {
    EventStatus.DRAFT: [EventStatus.PLANNED, EventStatus.CANCELLED],
    EventStatus.PLANNED: [EventStatus.ONGOING, EventStatus.CANCELLED, EventStatus.DRAFT],
    EventStatus.ONGOING: [EventStatus.CANCELLED],
    EventStatus.COMPLETED: [],
    EventStatus.CANCELLED: [EventStatus.PLANNED],
}

EDITABLE_FIELDS = ("name", "description", "location", "startDate", "endDate")


def can_transition(current, new_status):
    """Return (allowed, reason) for a generic status change."""
    current, new_status = EventStatus(current), EventStatus(new_status)
    if new_status == current:
        return True, "Same status"
    if new_status == EventStatus.COMPLETED:
        return False, "Use event completion to mark an event completed"
    if new_status not in VALID_TRANSITIONS[current]:
        return False, f"Cannot transition from '{current.value}' to '{new_status.value}'"
    return True, ""


def _as_datetime(value):
    # stored dates come back from the database as ISO strings
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value is not None and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def check_dates(start_date, end_date):
    start, end = _as_datetime(start_date), _as_datetime(end_date)
    if start is not None and end is not None and end < start:
        raise InvalidStateError("End date must be after start date")


class EventLifecycle:
    COLLECTION = "events"

    def __init__(self, db, audit: AuditCollaborator = None):
        self.db = db
        self.audit = audit or AuditCollaborator(db)

    async def create(self, data: dict, actor_id=None, ip_address=None):
        status = EventStatus(data.get("status") or EventStatus.PLANNED)
        check_dates(data.get("startDate"), data.get("endDate"))
        if status == EventStatus.COMPLETED:
            raise InvalidStateError("Use event completion to mark an event completed")

        now = datetime.now(timezone.utc)
        event = {field: data.get(field) for field in EDITABLE_FIELDS}
        event.update({
            "_id": str(uuid.uuid4()),
            "status": status.value,
            "softDelete": False,
            "createdBy": actor_id,
            "createdAt": now,
            "updatedAt": now,
        })
        event = await self.db.add(self.COLLECTION, event)

        logger.info("Event %s '%s' created", event["_id"], event["name"])
        await self.audit.record(actor_id, "CREATE", "EVENT", new_data=event, ip_address=ip_address)
        return event

    async def get(self, event_id: str):
        event = await self.db.find_one(self.COLLECTION, {"_id": event_id, "softDelete": {"$ne": True}})
        if not event:
            raise NotFoundError("Event not found")
        return event

    async def list(self, page=1, limit=10, status=None):
        page, limit, skip = get_pagination(page, limit)
        query = {"softDelete": {"$ne": True}}
        if status:
            query["status"] = EventStatus(status).value

        events = await self.db.find_many(self.COLLECTION, query, sort=[("startDate", -1)], skip=skip, limit=limit)
        total = await self.db.count(self.COLLECTION, query)
        return create_pagination_response(events, total, page, limit)

    async def update(self, event_id: str, data: dict, actor_id=None, ip_address=None):
        old = await self.get(event_id)
        if old["status"] == EventStatus.COMPLETED.value:
            raise InvalidStateError("Completed events cannot be modified")

        changes = {field: data[field] for field in EDITABLE_FIELDS if data.get(field) is not None}
        if "startDate" in changes or "endDate" in changes:
            check_dates(changes.get("startDate", old.get("startDate")), changes.get("endDate", old.get("endDate")))
        if data.get("status") is not None:
            allowed, reason = can_transition(old["status"], data["status"])
            if not allowed:
                logger.warning("Invalid event transition for %s: %s", event_id, reason)
                raise InvalidStateError(reason)
            changes["status"] = EventStatus(data["status"]).value

        changes["updatedAt"] = datetime.now(timezone.utc)
        # the status guard keeps a concurrent completion from being overwritten
        updated = await self.db.find_one_and_update(
            self.COLLECTION,
            {"_id": event_id, "status": old["status"], "softDelete": {"$ne": True}},
            {"$set": changes},
        )
        if updated is None:
            raise InvalidStateError("Event changed while updating, please retry")

        await self.audit.record(actor_id, "UPDATE", "EVENT", old_data=old, new_data=updated, ip_address=ip_address)
        return updated

    async def delete(self, event_id: str, actor_id=None, ip_address=None):
        old = await self.get(event_id)
        await self.db.update(
            self.COLLECTION,
            {"_id": event_id},
            {"$set": {"softDelete": True, "updatedAt": datetime.now(timezone.utc)}},
        )
        logger.info("Event %s soft-deleted", event_id)
        await self.audit.record(actor_id, "DELETE", "EVENT", old_data=old, ip_address=ip_address)
