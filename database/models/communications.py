"""
Communication Models

In-app notifications and the query (support ticket) threads exchanged
between users.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    BigInteger,
    DateTime,
    Text,
    Enum as SQLEnum,
    Index,
)
from database.engine import Base, BigIntegerPK, enum_values
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum


# ==================== Notification Enums ===================== #
class NotificationType(str, PyEnum):
    JOB_POSTED = "job_posted"
    RESUME_UPLOADED = "resume_uploaded"
    CANDIDATE_SHORTLISTED = "candidate_shortlisted"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEW_CONFIRMED = "interview_confirmed"
    INTERVIEW_COMPLETED = "interview_completed"
    INTERVIEW_CANCELLED = "interview_cancelled"
    FEEDBACK_SUBMITTED = "feedback_submitted"
    APPLICATION_STATUS_CHANGED = "application_status_changed"
    QUERY_RECEIVED = "query_received"
    QUERY_RESPONDED = "query_responded"


class RelatedEntity(str, PyEnum):
    """Kind of row a notification's ``related_id`` points at."""

    JOB = "job"
    RESUME_UPLOAD = "resume_upload"
    INTERVIEW = "interview"
    APPLICATION = "application"
    FEEDBACK = "feedback"
    QUERY = "query"


# Each notification type refers to exactly one kind of entity
NOTIFICATION_TARGETS: dict[NotificationType, RelatedEntity] = {
    NotificationType.JOB_POSTED: RelatedEntity.JOB,
    NotificationType.RESUME_UPLOADED: RelatedEntity.RESUME_UPLOAD,
    NotificationType.CANDIDATE_SHORTLISTED: RelatedEntity.RESUME_UPLOAD,
    NotificationType.INTERVIEW_SCHEDULED: RelatedEntity.INTERVIEW,
    NotificationType.INTERVIEW_CONFIRMED: RelatedEntity.INTERVIEW,
    NotificationType.INTERVIEW_COMPLETED: RelatedEntity.INTERVIEW,
    NotificationType.INTERVIEW_CANCELLED: RelatedEntity.INTERVIEW,
    NotificationType.FEEDBACK_SUBMITTED: RelatedEntity.FEEDBACK,
    NotificationType.APPLICATION_STATUS_CHANGED: RelatedEntity.APPLICATION,
    NotificationType.QUERY_RECEIVED: RelatedEntity.QUERY,
    NotificationType.QUERY_RESPONDED: RelatedEntity.QUERY,
}


class QueryStatus(str, PyEnum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class QueryPriority(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class QueryCategory(str, PyEnum):
    CANDIDATE_SELECTION = "candidate_selection"
    INTERVIEW_SCHEDULING = "interview_scheduling"
    FEEDBACK_CLARIFICATION = "feedback_clarification"
    GENERAL = "general"


# ==================== Notification Model ===================== #
class Notification(Base):
    """Append-only; only ``is_read`` ever changes after insert."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        SQLEnum(
            NotificationType, native_enum=False, length=50, values_callable=enum_values
        ),
        nullable=False,
    )
    related_type: Mapped[RelatedEntity | None] = mapped_column(
        SQLEnum(
            RelatedEntity, native_enum=False, length=50, values_callable=enum_values
        )
    )
    related_id: Mapped[int | None] = mapped_column(BigInteger)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )


# ==================== Query Models ===================== #
class Query(Base):
    __tablename__ = "queries"

    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    from_user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False, index=True
    )
    to_user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False, index=True
    )

    # Optional context
    job_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("jobs.id"))
    candidate_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id")
    )
    interview_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("interviews.id")
    )

    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[QueryPriority] = mapped_column(
        SQLEnum(
            QueryPriority, native_enum=False, length=50, values_callable=enum_values
        ),
        nullable=False,
        default=QueryPriority.MEDIUM,
    )
    category: Mapped[QueryCategory] = mapped_column(
        SQLEnum(
            QueryCategory, native_enum=False, length=50, values_callable=enum_values
        ),
        nullable=False,
        default=QueryCategory.GENERAL,
    )
    status: Mapped[QueryStatus] = mapped_column(
        SQLEnum(QueryStatus, native_enum=False, length=50, values_callable=enum_values),
        nullable=False,
        default=QueryStatus.OPEN,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )


class QueryResponse(Base):
    __tablename__ = "query_responses"

    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    query_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("queries.id"), nullable=False, index=True
    )
    responder_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
