"""
Interview and Feedback Models

An Interview belongs to exactly one Application. While an interview is
``scheduled`` its application sits in ``interview_scheduled``; services
write both rows in the same transaction.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    ForeignKey,
    BigInteger,
    Integer,
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


# ==================== Interview Enums ===================== #
class InterviewStatus(str, PyEnum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"  # superseded by a newer interview


class Recommendation(str, PyEnum):
    HIRE = "hire"
    NO_HIRE = "no-hire"
    MAYBE = "maybe"


FEEDBACK_RATING_FIELDS = (
    "overall_rating",
    "technical_skills",
    "communication_skills",
    "problem_solving",
    "cultural_fit",
)
MIN_RATING = 1
MAX_RATING = 5


# ==================== Interview Model ===================== #
class Interview(Base):
    __tablename__ = "interviews"

    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    application_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("applications.id"), nullable=False, index=True
    )

    scheduled_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    interviewer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    interviewer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    meeting_link: Mapped[str | None] = mapped_column(String(1000))
    # Free text; carries the human-readable time and HR confirmation notes
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    status: Mapped[InterviewStatus] = mapped_column(
        SQLEnum(
            InterviewStatus, native_enum=False, length=50, values_callable=enum_values
        ),
        nullable=False,
        default=InterviewStatus.SCHEDULED,
    )

    scheduled_by_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )

    __table_args__ = (
        Index("idx_interview_status", "status"),
        # At most one scheduled interview per application
        Index(
            "uq_interview_scheduled",
            "application_id",
            unique=True,
            sqlite_where=text("status = 'scheduled'"),
            postgresql_where=text("status = 'scheduled'"),
        ),
    )


# ==================== Feedback Model ===================== #
class Feedback(Base):
    """Interviewer feedback, at most one per interview."""

    __tablename__ = "feedback"

    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    interview_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("interviews.id"), unique=True, nullable=False
    )
    candidate_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False, index=True
    )
    job_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("jobs.id"), nullable=False, index=True
    )
    interviewer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    interviewer_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Ratings, each 1-5
    overall_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    technical_skills: Mapped[int] = mapped_column(Integer, nullable=False)
    communication_skills: Mapped[int] = mapped_column(Integer, nullable=False)
    problem_solving: Mapped[int] = mapped_column(Integer, nullable=False)
    cultural_fit: Mapped[int] = mapped_column(Integer, nullable=False)

    strengths: Mapped[str] = mapped_column(Text, nullable=False, default="")
    weaknesses: Mapped[str] = mapped_column(Text, nullable=False, default="")
    recommendation: Mapped[Recommendation] = mapped_column(
        SQLEnum(
            Recommendation, native_enum=False, length=50, values_callable=enum_values
        ),
        nullable=False,
    )
    additional_comments: Mapped[str | None] = mapped_column(Text)

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
