from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    DateTime,
    Index,
    text,
    Enum as SQLEnum,
)
from database.engine import Base, BigIntegerPK, enum_values
from core.utils.datetime import now
from datetime import datetime
from enum import Enum as PyEnum


# ==================== User Role ===================== #
class UserRole(str, PyEnum):
    ADMIN = "admin"  # posts jobs, shortlists and schedules
    HR = "hr"  # uploads candidates, confirms interviews
    CANDIDATE = "candidate"  # job applicant


class User(Base):
    """
    Identity with a role tag. The role is fixed at signup; users are never
    deleted.
    """

    __tablename__ = "users"
    __table_args__ = (
        # At most one admin system-wide
        Index(
            "uq_users_single_admin",
            "role",
            unique=True,
            sqlite_where=text("role = 'admin'"),
            postgresql_where=text("role = 'admin'"),
        ),
    )

    id: Mapped[int] = mapped_column(
        BigIntegerPK, primary_key=True, nullable=False, autoincrement=True
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30))

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, native_enum=False, length=50, values_callable=enum_values),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
