"""
Application Models

The join between one candidate (by user id) and one job, carrying the
canonical lifecycle status. The transition table below is the single source
of truth for which status changes are legal.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    ForeignKey,
    BigInteger,
    DateTime,
    Text,
    Enum as SQLEnum,
    Index,
    text,
)
from database.engine import Base, BigIntegerPK, enum_values
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum


# ==================== Application Status ===================== #
class ApplicationStatus(str, PyEnum):
    APPLIED = "applied"
    SCREENING = "screening"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEWED = "interviewed"
    SELECTED = "selected"
    REJECTED = "rejected"


APPLICATION_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.APPLIED: frozenset(
        {
            ApplicationStatus.SCREENING,
            ApplicationStatus.INTERVIEW_SCHEDULED,
            ApplicationStatus.REJECTED,
        }
    ),
    ApplicationStatus.SCREENING: frozenset(
        {ApplicationStatus.INTERVIEW_SCHEDULED, ApplicationStatus.REJECTED}
    ),
    # Re-scheduling keeps the application where it is
    ApplicationStatus.INTERVIEW_SCHEDULED: frozenset(
        {
            ApplicationStatus.INTERVIEW_SCHEDULED,
            ApplicationStatus.INTERVIEWED,
            ApplicationStatus.REJECTED,
        }
    ),
    ApplicationStatus.INTERVIEWED: frozenset(
        {
            ApplicationStatus.INTERVIEW_SCHEDULED,
            ApplicationStatus.SELECTED,
            ApplicationStatus.REJECTED,
        }
    ),
    ApplicationStatus.SELECTED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in APPLICATION_TRANSITIONS.items() if not targets
)

# Position along the happy path, used to avoid moving an application backwards
STATUS_RANK: dict[ApplicationStatus, int] = {
    ApplicationStatus.APPLIED: 0,
    ApplicationStatus.SCREENING: 1,
    ApplicationStatus.INTERVIEW_SCHEDULED: 2,
    ApplicationStatus.INTERVIEWED: 3,
    ApplicationStatus.SELECTED: 4,
    ApplicationStatus.REJECTED: 4,
}


def can_transition(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    return target in APPLICATION_TRANSITIONS[current]


# ==================== Application Model ===================== #
class Application(Base):
    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    candidate_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    job_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("jobs.id"), nullable=False
    )

    status: Mapped[ApplicationStatus] = mapped_column(
        SQLEnum(
            ApplicationStatus,
            native_enum=False,
            length=50,
            values_callable=enum_values,
        ),
        nullable=False,
        default=ApplicationStatus.APPLIED,
    )
    cover_letter: Mapped[str | None] = mapped_column(Text)

    applied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )

    __table_args__ = (
        Index("idx_application_candidate_job", "candidate_id", "job_id"),
        Index("idx_application_job", "job_id"),
        # At most one open application per (candidate, job)
        Index(
            "uq_application_open",
            "candidate_id",
            "job_id",
            unique=True,
            sqlite_where=text("status NOT IN ('selected', 'rejected')"),
            postgresql_where=text("status NOT IN ('selected', 'rejected')"),
        ),
    )
