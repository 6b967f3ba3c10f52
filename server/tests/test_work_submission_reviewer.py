import pytest

from services.errors import ConflictError, InvalidAmountError, InvalidStateError, NotFoundError


@pytest.fixture
def submitted(reviewer, make_event, make_volunteer):
    async def _make(title="Poster design"):
        event = await make_event()
        volunteer = await make_volunteer()
        submission = await reviewer.submit(
            volunteer["_id"], event["_id"], title, "Designed the event poster",
        )
        return submission, volunteer
    return _make


async def test_submit(submitted):
    submission, volunteer = await submitted()

    assert submission["status"] == "submitted"
    assert submission["pointsAwarded"] == 0
    assert submission["workType"] == "task_completion"
    assert submission["volunteerId"] == volunteer["_id"]


async def test_submit_unknown_event(reviewer, make_volunteer):
    volunteer = await make_volunteer()

    with pytest.raises(NotFoundError):
        await reviewer.submit(volunteer["_id"], "ghost", "Title", "Description")


async def test_submit_unknown_volunteer(reviewer, make_event):
    event = await make_event()

    with pytest.raises(NotFoundError):
        await reviewer.submit("ghost", event["_id"], "Title", "Description")


async def test_approve_credits_pending_points(reviewer, ledger, submitted):
    submission, volunteer = await submitted()
    await ledger.credit(volunteer["_id"], 5)

    reviewed = await reviewer.review(submission["_id"], "approved", points_awarded=20, actor_id="admin-1")

    assert reviewed["status"] == "approved"
    assert reviewed["pointsAwarded"] == 20
    assert reviewed["reviewedBy"] == "admin-1"
    snapshot = await ledger.get(volunteer["_id"])
    assert snapshot.pendingPoints == 25
    assert snapshot.points == 25
    assert snapshot.notes[-1] == "Work: Poster design"


async def test_reject_never_touches_ledger(reviewer, db, submitted):
    submission, volunteer = await submitted()

    reviewed = await reviewer.review(submission["_id"], "rejected", rejection_reason="Duplicate of another entry")

    assert reviewed["status"] == "rejected"
    assert reviewed["pointsAwarded"] == 0
    assert reviewed["rejectionReason"] == "Duplicate of another entry"
    assert await db.find_one("volunteer_points", {"volunteerId": volunteer["_id"]}) is None


async def test_reject_without_reason_is_allowed(reviewer, submitted):
    submission, _ = await submitted()

    reviewed = await reviewer.review(submission["_id"], "rejected")

    assert reviewed["status"] == "rejected"
    assert reviewed["rejectionReason"] is None


@pytest.mark.parametrize("points", [0, -10, None])
async def test_approve_requires_positive_points(reviewer, submitted, points):
    submission, _ = await submitted()

    with pytest.raises(InvalidAmountError):
        await reviewer.review(submission["_id"], "approved", points_awarded=points)

    assert (await reviewer.get(submission["_id"]))["status"] == "submitted"


async def test_repeated_approval_credits_once(reviewer, ledger, submitted):
    submission, volunteer = await submitted()

    await reviewer.review(submission["_id"], "approved", points_awarded=20)
    again = await reviewer.review(submission["_id"], "approved", points_awarded=40)

    assert again["pointsAwarded"] == 20
    snapshot = await ledger.get(volunteer["_id"])
    assert snapshot.points == 20


async def test_approval_after_interrupted_credit_completes_it(reviewer, ledger, db, submitted):
    submission, volunteer = await submitted()
    # status flipped but the credit never ran
    await db.update("work_submissions", {"_id": submission["_id"]}, {"$set": {"status": "approved", "pointsAwarded": 15}})

    await reviewer.review(submission["_id"], "approved", points_awarded=15)
    await reviewer.review(submission["_id"], "approved", points_awarded=15)

    assert (await ledger.get(volunteer["_id"])).points == 15


async def test_changing_a_decision_conflicts(reviewer, ledger, submitted):
    submission, volunteer = await submitted()
    await reviewer.review(submission["_id"], "rejected", rejection_reason="Not enough detail")

    with pytest.raises(ConflictError):
        await reviewer.review(submission["_id"], "approved", points_awarded=10)

    with pytest.raises(NotFoundError):
        await ledger.get(volunteer["_id"])


async def test_under_review_hop(reviewer, ledger, submitted):
    submission, volunteer = await submitted()

    taken = await reviewer.mark_under_review(submission["_id"], actor_id="admin-1")
    reviewed = await reviewer.review(submission["_id"], "approved", points_awarded=8)

    assert taken["status"] == "under_review"
    assert reviewed["status"] == "approved"
    assert (await ledger.get(volunteer["_id"])).pendingPoints == 8


async def test_under_review_only_from_submitted(reviewer, submitted):
    submission, _ = await submitted()
    await reviewer.review(submission["_id"], "rejected")

    with pytest.raises(InvalidStateError):
        await reviewer.mark_under_review(submission["_id"])


async def test_review_unknown_submission(reviewer):
    with pytest.raises(NotFoundError):
        await reviewer.review("ghost", "rejected")


async def test_get_scoped_to_volunteer(reviewer, submitted):
    submission, volunteer = await submitted()

    assert (await reviewer.get(submission["_id"], volunteer["_id"]))["_id"] == submission["_id"]
    with pytest.raises(NotFoundError):
        await reviewer.get(submission["_id"], "someone-else")


async def test_list_filters(reviewer, submitted):
    first, volunteer = await submitted("Poster design")
    await submitted("Stall setup")
    await reviewer.review(first["_id"], "approved", points_awarded=5)

    mine = await reviewer.list(volunteer_id=volunteer["_id"])
    approved = await reviewer.list(status="approved")

    assert [s["workTitle"] for s in mine["data"]] == ["Poster design"]
    assert approved["pagination"]["totalItems"] == 1


async def test_review_is_audited(reviewer, db, submitted):
    submission, _ = await submitted()

    await reviewer.review(submission["_id"], "approved", points_awarded=10, actor_id="admin-1")

    entries = await db.find_many("audit_logs", {"module": "VOLUNTEER_WORK"})
    assert [e["action"] for e in entries] == ["CREATE", "APPROVE"]


async def test_review_unknown_submission_with_bad_points(reviewer):
    with pytest.raises(NotFoundError):
        await reviewer.review("ghost", "approved", points_awarded=0)
