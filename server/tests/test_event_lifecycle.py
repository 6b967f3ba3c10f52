from datetime import datetime, timezone

import pytest

from models.models import EventStatus
from services.EventLifecycle import can_transition
from services.errors import InvalidStateError, NotFoundError


@pytest.mark.parametrize("current,new,allowed", [
    (EventStatus.DRAFT, EventStatus.PLANNED, True),
    (EventStatus.PLANNED, EventStatus.ONGOING, True),
    (EventStatus.ONGOING, EventStatus.CANCELLED, True),
    (EventStatus.CANCELLED, EventStatus.PLANNED, True),
    (EventStatus.PLANNED, EventStatus.PLANNED, True),
    (EventStatus.ONGOING, EventStatus.DRAFT, False),
    (EventStatus.PLANNED, EventStatus.COMPLETED, False),
    (EventStatus.COMPLETED, EventStatus.PLANNED, False),
])
def test_can_transition(current, new, allowed):
    assert can_transition(current, new)[0] is allowed


async def test_create_defaults_to_planned(make_event):
    event = await make_event()

    assert event["status"] == "planned"
    assert event["softDelete"] is False


async def test_create_completed_is_refused(events):
    with pytest.raises(InvalidStateError):
        await events.create({"name": "Gala", "status": "completed"})


async def test_update_fields_and_status(events, make_event):
    event = await make_event()

    updated = await events.update(event["_id"], {"location": "Ghat 4", "status": "ongoing"})

    assert updated["location"] == "Ghat 4"
    assert updated["status"] == "ongoing"


async def test_update_cannot_complete(events, make_event):
    event = await make_event()

    with pytest.raises(InvalidStateError):
        await events.update(event["_id"], {"status": "completed"})


async def test_completed_event_is_read_only(events, coordinator, staffed_event):
    event, _ = await staffed_event()
    await coordinator.complete_event(event["_id"])

    with pytest.raises(InvalidStateError):
        await events.update(event["_id"], {"name": "Renamed"})


async def test_delete_is_soft(events, db, make_event):
    event = await make_event()

    await events.delete(event["_id"])

    with pytest.raises(NotFoundError):
        await events.get(event["_id"])
    assert (await db.find_one("events", {"_id": event["_id"]}))["softDelete"] is True


async def test_list_excludes_deleted(events, make_event):
    kept = await make_event("Food Drive")
    gone = await make_event("Blood Camp")
    await events.delete(gone["_id"])

    listing = await events.list()

    assert [e["_id"] for e in listing["data"]] == [kept["_id"]]
    assert listing["pagination"]["totalItems"] == 1


async def test_create_with_end_before_start_is_refused(events):
    with pytest.raises(InvalidStateError):
        await events.create({
            "name": "Gala",
            "startDate": datetime(2026, 3, 2, tzinfo=timezone.utc),
            "endDate": datetime(2026, 3, 1, tzinfo=timezone.utc),
        })


async def test_update_cannot_invert_dates(events, make_event):
    event = await make_event()

    with pytest.raises(InvalidStateError):
        await events.update(event["_id"], {"endDate": datetime(2026, 2, 28, tzinfo=timezone.utc)})
    with pytest.raises(InvalidStateError):
        await events.update(event["_id"], {"startDate": datetime(2026, 3, 5, tzinfo=timezone.utc)})

    moved = await events.update(event["_id"], {
        "startDate": datetime(2026, 3, 5, 9, 0, tzinfo=timezone.utc),
        "endDate": datetime(2026, 3, 5, 17, 0, tzinfo=timezone.utc),
    })
    assert moved["startDate"].startswith("2026-03-05")
