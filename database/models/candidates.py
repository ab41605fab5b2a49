"""
Candidate Models

Candidate profiles, their project and achievement child records, and raw
resume upload events. Profiles hold derived counters (``projects_count``,
``achievements_count``) that services keep in step with the child rows.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    Boolean,
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


# ==================== Candidate Enums ===================== #
class WorkPreference(str, PyEnum):
    REMOTE = "remote"
    ONSITE = "onsite"
    HYBRID = "hybrid"


class Availability(str, PyEnum):
    IMMEDIATE = "immediate"
    TWO_WEEKS = "2weeks"
    ONE_MONTH = "1month"
    TWO_MONTHS = "2months"
    NEGOTIABLE = "negotiable"


class ResumeUploadStatus(str, PyEnum):
    UPLOADED = "uploaded"
    REVIEWED = "reviewed"
    SHORTLISTED = "shortlisted"
    REJECTED = "rejected"


# ==================== Candidate Profile ===================== #
class CandidateProfile(Base):
    """One-to-one extension of a candidate User."""

    __tablename__ = "candidate_profiles"

    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), unique=True, nullable=False, index=True
    )

    # Professional info
    skills: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    education: Mapped[str] = mapped_column(Text, nullable=False, default="")
    location: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    current_job_title: Mapped[str] = mapped_column(
        String(255), nullable=False, default=""
    )
    current_company: Mapped[str] = mapped_column(
        String(255), nullable=False, default=""
    )

    # Social links
    linkedin_url: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    github_url: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    portfolio_url: Mapped[str] = mapped_column(
        String(500), nullable=False, default=""
    )

    # Preferences
    expected_salary: Mapped[int | None] = mapped_column(Integer)
    notice_period: Mapped[int | None] = mapped_column(Integer)  # days
    availability: Mapped[Availability] = mapped_column(
        SQLEnum(
            Availability, native_enum=False, length=50, values_callable=enum_values
        ),
        nullable=False,
        default=Availability.NEGOTIABLE,
    )
    work_preference: Mapped[WorkPreference] = mapped_column(
        SQLEnum(
            WorkPreference, native_enum=False, length=50, values_callable=enum_values
        ),
        nullable=False,
        default=WorkPreference.HYBRID,
    )
    is_actively_looking: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    preferred_locations: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    certifications: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    languages: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    preferred_salary_min: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    preferred_salary_max: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    # Latest resume reference (opaque to the core)
    resume_id: Mapped[str | None] = mapped_column(String(255))

    # Derived
    is_profile_complete: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    profile_completion_percentage: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    projects_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    achievements_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )


# ==================== Candidate Project ===================== #
class CandidateProject(Base):
    __tablename__ = "candidate_projects"

    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    candidate_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False, index=True
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    technologies: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    project_url: Mapped[str | None] = mapped_column(String(500))
    github_url: Mapped[str | None] = mapped_column(String(500))
    start_date: Mapped[str | None] = mapped_column(String(50))
    end_date: Mapped[str | None] = mapped_column(String(50))
    is_ongoing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    team_size: Mapped[int | None] = mapped_column(Integer)
    role: Mapped[str | None] = mapped_column(String(255))
    achievements: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )


# ==================== Candidate Achievement ===================== #
class CandidateAchievement(Base):
    __tablename__ = "candidate_achievements"

    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    candidate_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False, index=True
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    achievement_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="other"
    )  # certification, award, publication, ...
    issued_by: Mapped[str | None] = mapped_column(String(255))
    issued_date: Mapped[str | None] = mapped_column(String(50))
    credential_id: Mapped[str | None] = mapped_column(String(255))
    credential_url: Mapped[str | None] = mapped_column(String(500))
    expiry_date: Mapped[str | None] = mapped_column(String(50))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )


# ==================== Resume Upload ===================== #
class ResumeUpload(Base):
    """
    Raw intake record for a submitted resume.

    Upstream of Application: the upload's own status tracks intake review
    only and is never the source of truth for the candidate's stage.
    """

    __tablename__ = "resume_uploads"

    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    candidate_profile_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("candidate_profiles.id"), nullable=False, index=True
    )
    uploaded_by_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    job_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("jobs.id"))

    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text)

    status: Mapped[ResumeUploadStatus] = mapped_column(
        SQLEnum(
            ResumeUploadStatus,
            native_enum=False,
            length=50,
            values_callable=enum_values,
        ),
        nullable=False,
        default=ResumeUploadStatus.UPLOADED,
    )

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reviewed_by_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id")
    )
    review_notes: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (Index("idx_resume_upload_status", "status"),)
