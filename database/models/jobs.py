from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    ForeignKey,
    BigInteger,
    Integer,
    DateTime,
    Text,
    JSON,
    Enum as SQLEnum,
    Index,
)
from database.engine import Base, BigIntegerPK, enum_values
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum


# ==================== Job Status ===================== #
class JobStatus(str, PyEnum):
    ACTIVE = "active"
    CLOSED = "closed"


# ==================== Job Model ===================== #
class Job(Base):
    """
    Open position. Jobs are closed, never deleted.
    """

    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[str | None] = mapped_column(String(255))
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Order is irrelevant for matching
    required_skills: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    experience_required: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    salary_min: Mapped[int | None] = mapped_column(Integer)
    salary_max: Mapped[int | None] = mapped_column(Integer)

    status: Mapped[JobStatus] = mapped_column(
        SQLEnum(JobStatus, native_enum=False, length=50, values_callable=enum_values),
        nullable=False,
        default=JobStatus.ACTIVE,
    )

    posted_by: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )

    __table_args__ = (Index("idx_job_status", "status"),)
