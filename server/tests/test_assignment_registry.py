import pytest

from models.models import Attendance
from services.errors import ConflictError, NotFoundError


async def test_assign_defaults(registry, make_event, make_volunteer):
    event = await make_event()
    volunteer = await make_volunteer()

    assignment = await registry.assign(volunteer["_id"], event["_id"], actor_id="admin-1")

    assert assignment["role"] == "volunteer"
    assert assignment["attendance"] == "pending"
    assert assignment["volunteerId"] == volunteer["_id"]
    assert assignment["eventId"] == event["_id"]


async def test_assign_same_pair_twice_conflicts(registry, make_event, make_volunteer, db):
    event = await make_event()
    volunteer = await make_volunteer()
    await registry.assign(volunteer["_id"], event["_id"], role="team lead")

    with pytest.raises(ConflictError):
        await registry.assign(volunteer["_id"], event["_id"])

    assert await db.count("volunteer_assignments", {"eventId": event["_id"]}) == 1


async def test_assign_unknown_volunteer(registry, make_event):
    event = await make_event()

    with pytest.raises(NotFoundError):
        await registry.assign("ghost", event["_id"])


async def test_assign_unknown_event(registry, make_volunteer):
    volunteer = await make_volunteer()

    with pytest.raises(NotFoundError):
        await registry.assign(volunteer["_id"], "ghost")


async def test_assign_soft_deleted_volunteer(registry, make_event, make_volunteer):
    event = await make_event()
    volunteer = await make_volunteer(softDelete=True)

    with pytest.raises(NotFoundError):
        await registry.assign(volunteer["_id"], event["_id"])


async def test_update_attendance_keeps_remarks_when_omitted(registry, make_event, make_volunteer):
    event = await make_event()
    volunteer = await make_volunteer()
    assignment = await registry.assign(volunteer["_id"], event["_id"], remarks="brings first-aid kit")

    updated = await registry.update_attendance(assignment["_id"], Attendance.PRESENT)

    assert updated["attendance"] == "present"
    assert updated["remarks"] == "brings first-aid kit"


async def test_update_attendance_does_not_credit_points(registry, make_event, make_volunteer, db):
    event = await make_event()
    volunteer = await make_volunteer()
    assignment = await registry.assign(volunteer["_id"], event["_id"])

    await registry.update_attendance(assignment["_id"], "present", remarks="on time")

    assert await db.find_one("volunteer_points", {"volunteerId": volunteer["_id"]}) is None


async def test_update_attendance_unknown_assignment(registry):
    with pytest.raises(NotFoundError):
        await registry.update_attendance("ghost", Attendance.ABSENT)


async def test_remove(registry, make_event, make_volunteer):
    event = await make_event()
    volunteer = await make_volunteer()
    assignment = await registry.assign(volunteer["_id"], event["_id"])

    await registry.remove(assignment["_id"])

    assert await registry.list_by_event(event["_id"]) == []
    with pytest.raises(NotFoundError):
        await registry.remove(assignment["_id"])


async def test_list_by_event_includes_volunteer_names(registry, make_event, make_volunteer):
    event = await make_event()
    other = await make_event("Tree Planting")
    asha = await make_volunteer("Asha Rao")
    bilal = await make_volunteer("Bilal Khan")
    await registry.assign(asha["_id"], event["_id"])
    await registry.assign(bilal["_id"], event["_id"])
    await registry.assign(asha["_id"], other["_id"])

    assignments = await registry.list_by_event(event["_id"])

    assert {a["volunteer"]["name"] for a in assignments} == {"Asha Rao", "Bilal Khan"}
    assert len(await registry.list_by_volunteer(asha["_id"])) == 2


async def test_list_filters_and_paginates(registry, staffed_event):
    event, _ = await staffed_event()

    page = await registry.list(page=1, limit=2, event_id=event["_id"])
    present = await registry.list(event_id=event["_id"], attendance="present")

    assert len(page["data"]) == 2
    assert page["pagination"]["totalItems"] == 3
    assert page["pagination"]["hasNextPage"] is True
    assert [a["volunteer"]["name"] for a in present["data"]] == ["Asha Rao"]


async def test_mutations_are_audited(registry, make_event, make_volunteer, db):
    event = await make_event()
    volunteer = await make_volunteer()
    assignment = await registry.assign(volunteer["_id"], event["_id"], actor_id="admin-1")
    await registry.update_attendance(assignment["_id"], Attendance.PRESENT, actor_id="admin-1")
    await registry.remove(assignment["_id"], actor_id="admin-1")

    entries = await db.find_many("audit_logs", {"module": "VOLUNTEER"})
    assert [e["action"] for e in entries] == ["CREATE", "UPDATE", "DELETE"]


async def test_activities_join_event_and_own_work(registry, reviewer, make_event, make_volunteer):
    clean_up = await make_event("River Clean-up")
    planting = await make_event("Tree Planting")
    asha = await make_volunteer("Asha Rao")
    bilal = await make_volunteer("Bilal Khan")
    await registry.assign(asha["_id"], clean_up["_id"], remarks="brings gloves")
    await registry.assign(asha["_id"], planting["_id"])
    await registry.assign(bilal["_id"], clean_up["_id"])
    await reviewer.submit(asha["_id"], clean_up["_id"], "Sorted waste", "Sorted the plastic")
    await reviewer.submit(bilal["_id"], clean_up["_id"], "Carried bags", "Carried bags to the truck")

    activities = await registry.list_activities(asha["_id"])

    assert activities["pagination"]["totalItems"] == 2
    by_event = {a["event"]["name"]: a for a in activities["data"]}
    assert by_event["River Clean-up"]["assignment"]["remarks"] == "brings gloves"
    assert [w["workTitle"] for w in by_event["River Clean-up"]["workSubmissions"]] == ["Sorted waste"]
    assert by_event["Tree Planting"]["workSubmissions"] == []


async def test_activities_filters(registry, staffed_event, make_event):
    event, volunteers = await staffed_event()
    asha_id = volunteers[Attendance.PRESENT]["_id"]
    other = await make_event("Tree Planting")
    await registry.assign(asha_id, other["_id"])

    present = await registry.list_activities(asha_id, attendance="present")
    one_event = await registry.list_activities(asha_id, event_id=other["_id"])

    assert [a["event"]["_id"] for a in present["data"]] == [event["_id"]]
    assert [a["assignment"]["attendance"] for a in one_event["data"]] == ["pending"]


async def test_activity_summary(registry, reviewer, staffed_event, make_event):
    event, volunteers = await staffed_event()
    asha_id = volunteers[Attendance.PRESENT]["_id"]
    other = await make_event("Tree Planting")
    assignment = await registry.assign(asha_id, other["_id"])
    await registry.update_attendance(assignment["_id"], Attendance.ABSENT)
    approved = await reviewer.submit(asha_id, event["_id"], "Sorted waste", "Sorted the plastic")
    await reviewer.submit(asha_id, event["_id"], "Took photos", "Photographed the clean-up")
    await reviewer.review(approved["_id"], "approved", points_awarded=12)

    summary = await registry.activity_summary(asha_id)

    assert summary == {
        "totalEvents": 2,
        "presentEvents": 1,
        "pendingEvents": 0,
        "absentEvents": 1,
        "workSubmissions": 2,
        "approvedWork": 1,
        "totalPointsEarned": 12,
    }


async def test_activity_summary_for_new_volunteer(registry, make_volunteer):
    volunteer = await make_volunteer()

    summary = await registry.activity_summary(volunteer["_id"])

    assert summary["totalEvents"] == 0
    assert summary["totalPointsEarned"] == 0
