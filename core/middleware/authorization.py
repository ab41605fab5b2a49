"""
Authorization for the recruitment workflow.

Role checks live in the core rather than in the presentation layer: every
service operation receives the acting user's identity explicitly and checks
it against the role → permission table below before touching the store.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Set

from core.exceptions import Forbidden
from database.models.users import UserRole

logger = logging.getLogger(__name__)


class Permission(str, Enum):
    """System-wide permissions."""

    # Users
    USER_LIST = "user:list"

    # Candidate records
    CANDIDATE_READ = "candidate:read"
    CANDIDATE_MANAGE = "candidate:manage"  # create/update on someone's behalf
    CANDIDATE_MATCH = "candidate:match"

    # Jobs
    JOB_CREATE = "job:create"
    JOB_READ = "job:read"
    JOB_CLOSE = "job:close"

    # Resume intake
    RESUME_UPLOAD = "resume:upload"
    RESUME_READ = "resume:read"
    RESUME_REVIEW = "resume:review"
    RESUME_SHORTLIST = "resume:shortlist"

    # Applications / interviews
    APPLICATION_READ = "application:read"
    APPLICATION_DECIDE = "application:decide"
    INTERVIEW_SCHEDULE = "interview:schedule"
    INTERVIEW_CONFIRM = "interview:confirm"
    INTERVIEW_CONDUCT = "interview:conduct"
    INTERVIEW_READ = "interview:read"
    INTERVIEW_FEEDBACK = "interview:feedback"
    FEEDBACK_READ = "feedback:read"

    # Messaging
    QUERY_CREATE = "query:create"


# Role to permission mapping
ROLE_PERMISSIONS: dict[UserRole, Set[Permission]] = {
    UserRole.ADMIN: {
        Permission.USER_LIST,
        Permission.CANDIDATE_READ, Permission.CANDIDATE_MANAGE,
        Permission.CANDIDATE_MATCH,
        Permission.JOB_CREATE, Permission.JOB_READ, Permission.JOB_CLOSE,
        Permission.RESUME_UPLOAD, Permission.RESUME_READ,
        Permission.RESUME_REVIEW, Permission.RESUME_SHORTLIST,
        Permission.APPLICATION_READ, Permission.APPLICATION_DECIDE,
        Permission.INTERVIEW_SCHEDULE, Permission.INTERVIEW_CONFIRM,
        Permission.INTERVIEW_CONDUCT, Permission.INTERVIEW_READ,
        Permission.INTERVIEW_FEEDBACK, Permission.FEEDBACK_READ,
        Permission.QUERY_CREATE,
    },
    UserRole.HR: {
        Permission.USER_LIST,
        Permission.CANDIDATE_READ, Permission.CANDIDATE_MANAGE,
        Permission.CANDIDATE_MATCH,
        Permission.JOB_READ,
        Permission.RESUME_UPLOAD, Permission.RESUME_READ,
        Permission.APPLICATION_READ, Permission.APPLICATION_DECIDE,
        Permission.INTERVIEW_CONFIRM, Permission.INTERVIEW_CONDUCT,
        Permission.INTERVIEW_READ, Permission.INTERVIEW_FEEDBACK,
        Permission.FEEDBACK_READ,
        Permission.QUERY_CREATE,
    },
    UserRole.CANDIDATE: {
        Permission.JOB_READ,
        Permission.QUERY_CREATE,
    },
}


@dataclass(frozen=True)
class Identity:
    """The acting user, passed explicitly into every service call."""
    user_id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def has_permission(identity: Identity, permission: Permission) -> bool:
    """Check whether the identity's role grants a permission."""
    return permission in ROLE_PERMISSIONS.get(identity.role, set())


def require_permission(identity: Identity, permission: Permission) -> None:
    """
    Require a permission for the acting user.

    Raises:
        Forbidden: If the role does not grant the permission
    """
    if has_permission(identity, permission):
        return

    logger.warning(
        f"User {identity.user_id} with role {identity.role.value} lacks "
        f"permission {permission.value}"
    )
    raise Forbidden(
        f"Role '{identity.role.value}' does not have permission: {permission.value}",
        permission=permission.value,
    )


def require_self_or_permission(
    identity: Identity,
    owner_user_id: int,
    permission: Permission,
) -> None:
    """
    Allow the owner of a record, or anyone holding ``permission``.

    Raises:
        Forbidden: If neither applies
    """
    if identity.user_id == owner_user_id:
        return
    require_permission(identity, permission)


def require_participant(identity: Identity, *participant_ids: int) -> None:
    """
    Require the acting user to be one of the given participants.

    Raises:
        Forbidden: If the user is not a participant
    """
    if identity.user_id in participant_ids:
        return

    logger.warning(
        f"User {identity.user_id} is not a participant of this thread"
    )
    raise Forbidden("Only the sender or recipient may act on this query")
