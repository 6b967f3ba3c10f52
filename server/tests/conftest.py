"""
Shared pytest fixtures: an in-memory Mongo per test, service factories and bearer tokens.
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from mongomock_motor import AsyncMongoMockClient

from config.config import SECRET_KEY, JWT_ALGORITHM
from database.DB import Database
from main import app
from models.models import Attendance
from services.AssignmentRegistry import AssignmentRegistry
from services.AuditCollaborator import AuditCollaborator
from services.EventCompletionCoordinator import EventCompletionCoordinator
from services.EventLifecycle import EventLifecycle
from services.PointsLedger import PointsLedger
from services.WorkSubmissionReviewer import WorkSubmissionReviewer


def make_database():
    database = Database(client=AsyncMongoMockClient(), database_name="test_volunteer_ledger")
    database.connect()
    return database


def make_token(sub, role, name=None):
    payload = {
        "sub": sub,
        "role": role,
        "name": name or sub,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=30),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=JWT_ALGORITHM)


@pytest.fixture
async def db():
    database = make_database()
    await database.ensure_indexes()
    return database


@pytest.fixture
def ledger(db):
    return PointsLedger(db)


@pytest.fixture
def audit(db):
    return AuditCollaborator(db)


@pytest.fixture
def registry(db, audit):
    return AssignmentRegistry(db, audit)


@pytest.fixture
def reviewer(db, ledger, audit):
    return WorkSubmissionReviewer(db, ledger, audit)


@pytest.fixture
def coordinator(db, ledger, registry, audit):
    return EventCompletionCoordinator(db, ledger, registry, audit)


@pytest.fixture
def events(db, audit):
    return EventLifecycle(db, audit)


@pytest.fixture
def make_volunteer(db):
    async def _make(name="Asha Rao", **extra):
        volunteer = {
            "_id": str(uuid.uuid4()),
            "name": name,
            "email": f"{name.split()[0].lower()}@example.org",
            "registrationId": f"VOL-{uuid.uuid4().hex[:8].upper()}",
            "status": "active",
            "approvalStatus": "approved",
            "softDelete": False,
        }
        volunteer.update(extra)
        return await db.add("volunteers", volunteer)
    return _make


@pytest.fixture
def make_event(events):
    async def _make(name="River Clean-up", **extra):
        data = {
            "name": name,
            "startDate": datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc),
            "endDate": datetime(2026, 3, 1, 17, 0, tzinfo=timezone.utc),
        }
        data.update(extra)
        return await events.create(data, actor_id="admin-1")
    return _make


@pytest.fixture
def staffed_event(make_event, make_volunteer, registry):
    """An event with one volunteer per attendance value: present, absent, pending."""
    async def _make(name="River Clean-up"):
        event = await make_event(name)
        volunteers = {}
        for attendance, person in [
            (Attendance.PRESENT, "Asha Rao"),
            (Attendance.ABSENT, "Bilal Khan"),
            (Attendance.PENDING, "Chitra Sen"),
        ]:
            volunteer = await make_volunteer(person)
            assignment = await registry.assign(volunteer["_id"], event["_id"], actor_id="admin-1")
            if attendance != Attendance.PENDING:
                await registry.update_attendance(assignment["_id"], attendance, actor_id="admin-1")
            volunteers[attendance] = volunteer
        return event, volunteers
    return _make


@pytest.fixture
def client():
    """Create a test client backed by a fresh in-memory database"""
    app.state.db = make_database()
    with TestClient(app) as test_client:
        yield test_client
    app.state.db = None


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token('admin-1', 'admin', 'Admin')}"}


@pytest.fixture
def volunteer_headers():
    def _headers(volunteer_id):
        return {"Authorization": f"Bearer {make_token(volunteer_id, 'volunteer')}"}
    return _headers
