"""
User service functions: signup, login and the role directory.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.unit_of_work import unit_of_work
from core.audit import AuditAction, ResourceType, log_audit_event
from core.exceptions import (
    AdminAlreadyExists,
    DuplicateEmail,
    InvalidCredentials,
    RecruitmentError,
)
from core.middleware.authorization import Identity, Permission, require_permission
from core.security import hash_password, verify_password
from core.utils.datetime import ensure_utc
from core.utils.formatting import normalize_email
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)


def _signup_conflict(error: IntegrityError) -> RecruitmentError:
    # Lost a race against a concurrent signup
    detail = str(error.orig).lower()
    if "single_admin" in detail or "users.role" in detail:
        return AdminAlreadyExists()
    return DuplicateEmail()


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "role": user.role.value,
        "created_at": ensure_utc(user.created_at).isoformat(),
    }


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(
        select(User).where(User.email == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def signup(
    session: AsyncSession,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: UserRole,
    phone: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Register a new user.

    Args:
        session: Database session
        email: Login email, unique across all users
        password: Plaintext password; only its bcrypt hash is stored
        first_name: First name
        last_name: Last name
        role: Role tag, fixed for the lifetime of the account
        phone: Optional phone number

    Returns:
        Dictionary with ``user_id`` and ``role``

    Raises:
        DuplicateEmail: Email already registered
        AdminAlreadyExists: Role is admin and an admin already exists
    """
    email = normalize_email(email)

    async with unit_of_work(session, on_conflict=_signup_conflict):
        if await get_user_by_email(session, email) is not None:
            raise DuplicateEmail(email=email)

        if role == UserRole.ADMIN:
            result = await session.execute(
                select(User.id).where(User.role == UserRole.ADMIN).limit(1)
            )
            if result.scalar_one_or_none() is not None:
                raise AdminAlreadyExists()

        user = User(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=role,
        )
        session.add(user)

    logger.info(f"Registered user {user.id} with role {role.value}")
    log_audit_event(
        AuditAction.SIGNUP,
        ResourceType.USER,
        resource_id=user.id,
        user_id=user.id,
        details={"email": email, "role": role.value},
    )
    return {"user_id": user.id, "role": user.role.value}


async def login(session: AsyncSession, email: str, password: str) -> Dict[str, Any]:
    """
    Verify credentials and return the identity snapshot.

    Raises:
        InvalidCredentials: Unknown email or wrong password (indistinguishable)
    """
    user = await get_user_by_email(session, email)
    if user is None or not verify_password(password, user.password_hash):
        log_audit_event(
            AuditAction.LOGIN_FAILED,
            ResourceType.USER,
            details={"email": normalize_email(email)},
        )
        raise InvalidCredentials()

    log_audit_event(AuditAction.LOGIN, ResourceType.USER, user.id, user.id)
    return {
        "user_id": user.id,
        "role": user.role.value,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
    }


async def get_current_user(
    session: AsyncSession, user_id: int
) -> Optional[Dict[str, Any]]:
    """Return the user snapshot, or None when the id does not resolve."""
    user = await session.get(User, user_id)
    if user is None:
        return None
    return serialize_user(user)


async def get_users_by_role(
    session: AsyncSession,
    actor: Identity,
    role: UserRole,
) -> List[Dict[str, Any]]:
    """List users of one role, e.g. to pick a query recipient."""
    require_permission(actor, Permission.USER_LIST)

    result = await session.execute(
        select(User).where(User.role == role).order_by(User.id)
    )
    return [serialize_user(user) for user in result.scalars().all()]
