from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

from config.config import DEFAULT_POINTS_PRESENT, DEFAULT_POINTS_ABSENT, DEFAULT_POINTS_PENDING


class EventStatus(str, Enum):
    DRAFT = "draft"
    PLANNED = "planned"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Attendance(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    PENDING = "pending"


class SubmissionStatus(str, Enum):
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


# Statuses from which a review decision may still be taken
REVIEWABLE_STATUSES = (SubmissionStatus.SUBMITTED, SubmissionStatus.UNDER_REVIEW)


class ReviewDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class WorkType(str, Enum):
    ATTENDANCE = "attendance"
    TASK_COMPLETION = "task_completion"
    EVENT_ORGANIZATION = "event_organization"
    OTHER = "other"


class VolunteerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CompletionJobStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PARTIAL = "partial"


class LedgerSnapshot(BaseModel):
    """Read-only view of a volunteer's points row."""
    volunteerId: str
    points: int = 0
    verifiedPoints: int = 0
    pendingPoints: int = 0
    notes: List[str] = Field(default_factory=list)
    lastVerifiedAt: Optional[datetime] = None
    lastVerifiedBy: Optional[str] = None
    updatedAt: Optional[datetime] = None


class PointsOverride(BaseModel):
    points: int = Field(ge=0)
    notes: Optional[str] = None


class CompletionPolicy(BaseModel):
    defaultPointsForPresent: int = Field(default=DEFAULT_POINTS_PRESENT, ge=0)
    defaultPointsForAbsent: int = Field(default=DEFAULT_POINTS_ABSENT, ge=0)
    defaultPointsForPending: int = Field(default=DEFAULT_POINTS_PENDING, ge=0)
    overrides: Dict[str, PointsOverride] = Field(default_factory=dict)

    def default_for(self, attendance: Attendance) -> int:
        return {
            Attendance.PRESENT: self.defaultPointsForPresent,
            Attendance.ABSENT: self.defaultPointsForAbsent,
            Attendance.PENDING: self.defaultPointsForPending,
        }[attendance]

    def resolve(self, volunteer_id: str, attendance: Attendance):
        """Return (points, notes) for one assignee; an override always wins over the attendance default."""
        override = self.overrides.get(volunteer_id)
        if override is not None:
            return override.points, override.notes
        return self.default_for(attendance), None
