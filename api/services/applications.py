"""
Application service functions for API endpoints.

Applications carry the canonical candidate stage. Every status change goes
through ``transition_application`` which checks the transition table, so
the scheduling, shortlisting, feedback and manual decision paths all share
one vocabulary.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.notifications import notify
from api.services.unit_of_work import unit_of_work
from core.audit import AuditAction, ResourceType, log_audit_event
from core.exceptions import (
    ApplicationConflict,
    ApplicationNotFound,
    InvalidTransition,
    OperationFailed,
    RecruitmentError,
)
from core.middleware.authorization import (
    Identity,
    Permission,
    require_permission,
    require_self_or_permission,
)
from core.utils.datetime import ensure_utc
from core.utils.formatting import display_name
from database.models.applications import (
    Application,
    ApplicationStatus,
    STATUS_RANK,
    TERMINAL_STATUSES,
    can_transition,
)
from database.models.communications import NotificationType
from database.models.interviews import Interview, InterviewStatus
from database.models.jobs import Job
from database.models.users import User

logger = logging.getLogger(__name__)

# Statuses a reviewer may set directly; the others follow from interviews
MANUAL_TARGETS = frozenset(
    {
        ApplicationStatus.SCREENING,
        ApplicationStatus.SELECTED,
        ApplicationStatus.REJECTED,
    }
)


def serialize_application(
    application: Application,
    candidate: Optional[User] = None,
    job: Optional[Job] = None,
) -> Dict[str, Any]:
    return {
        "id": application.id,
        "candidate_id": application.candidate_id,
        "job_id": application.job_id,
        "status": application.status.value,
        "cover_letter": application.cover_letter,
        "applied_at": ensure_utc(application.applied_at).isoformat(),
        "updated_at": ensure_utc(application.updated_at).isoformat(),
        "candidate_name": display_name(candidate, fallback=""),
        "candidate_email": candidate.email if candidate else "",
        "job_title": job.title if job else "",
    }


async def find_open_application(
    session: AsyncSession, candidate_id: int, job_id: int
) -> Optional[Application]:
    """
    The single non-terminal application for a (candidate, job) pair.

    The row is locked for the rest of the transaction; the partial unique
    index ``uq_application_open`` covers the case where none exists yet.
    """
    result = await session.execute(
        select(Application)
        .where(
            Application.candidate_id == candidate_id,
            Application.job_id == job_id,
            Application.status.not_in(list(TERMINAL_STATUSES)),
        )
        .order_by(Application.id.desc())
        .limit(1)
        .with_for_update()
    )
    return result.scalar_one_or_none()


def open_application_conflict(error: IntegrityError) -> RecruitmentError:
    """Map a lost race on the open-application or scheduled-interview index."""
    if "unique" in str(error.orig).lower():
        logger.warning(f"Concurrent application write rejected: {error.orig}")
        return ApplicationConflict()
    return OperationFailed()


def transition_application(
    application: Application, target: ApplicationStatus
) -> None:
    """
    Move an application to ``target``.

    Raises:
        InvalidTransition: The transition table does not allow it
    """
    if not can_transition(application.status, target):
        raise InvalidTransition(
            f"Cannot move application from {application.status.value} "
            f"to {target.value}",
            application_id=application.id,
        )
    application.status = target


def advance_application(
    application: Application, target: ApplicationStatus
) -> bool:
    """
    Move forward to ``target`` unless the application is already there or
    further along. Returns True when the status changed.
    """
    if STATUS_RANK[application.status] >= STATUS_RANK[target]:
        return False
    transition_application(application, target)
    return True


async def get_application(
    session: AsyncSession, actor: Identity, application_id: int
) -> Optional[Dict[str, Any]]:
    """Return the application with candidate and job names, or None."""
    application = await session.get(Application, application_id)
    if application is None:
        return None
    require_self_or_permission(
        actor, application.candidate_id, Permission.APPLICATION_READ
    )

    candidate = await session.get(User, application.candidate_id)
    job = await session.get(Job, application.job_id)
    return serialize_application(application, candidate, job)


async def list_applications(
    session: AsyncSession,
    actor: Identity,
    candidate_id: Optional[int] = None,
    job_id: Optional[int] = None,
    status: Optional[ApplicationStatus] = None,
) -> List[Dict[str, Any]]:
    """
    List applications, most recently updated first.

    Candidates may only list their own applications.
    """
    if candidate_id is not None:
        require_self_or_permission(actor, candidate_id, Permission.APPLICATION_READ)
    else:
        require_permission(actor, Permission.APPLICATION_READ)

    query = (
        select(Application, User, Job)
        .outerjoin(User, User.id == Application.candidate_id)
        .outerjoin(Job, Job.id == Application.job_id)
    )
    if candidate_id is not None:
        query = query.where(Application.candidate_id == candidate_id)
    if job_id is not None:
        query = query.where(Application.job_id == job_id)
    if status is not None:
        query = query.where(Application.status == status)
    query = query.order_by(Application.updated_at.desc(), Application.id.desc())

    result = await session.execute(query)
    return [serialize_application(a, u, j) for a, u, j in result.all()]


async def update_application_status(
    session: AsyncSession,
    actor: Identity,
    application_id: int,
    status: ApplicationStatus,
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Record a reviewer decision on an application.

    Only screening, selected and rejected can be set directly; interview
    stages follow from scheduling and completing interviews. A final
    decision cancels any interview still scheduled for the application.

    Raises:
        ApplicationNotFound: Unknown id
        InvalidTransition: Target not reachable from the current status
    """
    require_permission(actor, Permission.APPLICATION_DECIDE)
    status = ApplicationStatus(status)

    async with unit_of_work(session):
        application = await session.get(Application, application_id)
        if application is None:
            raise ApplicationNotFound(application_id=application_id)
        if status not in MANUAL_TARGETS:
            raise InvalidTransition(
                f"Status {status.value} is set by the interview workflow",
                application_id=application_id,
            )

        previous = application.status
        transition_application(application, status)

        if status in TERMINAL_STATUSES:
            result = await session.execute(
                select(Interview).where(
                    Interview.application_id == application.id,
                    Interview.status == InterviewStatus.SCHEDULED,
                )
            )
            for interview in result.scalars().all():
                interview.status = InterviewStatus.CANCELLED

        job = await session.get(Job, application.job_id)
        job_title = job.title if job else "the position"
        message = f"Your application for {job_title} is now {status.value.replace('_', ' ')}."
        if reason:
            message = f"{message} {reason}"
        notify(
            session,
            application.candidate_id,
            NotificationType.APPLICATION_STATUS_CHANGED,
            title="Application Update",
            message=message,
            related_id=application.id,
        )
        candidate = await session.get(User, application.candidate_id)

    log_audit_event(
        AuditAction.STATUS_CHANGE,
        ResourceType.APPLICATION,
        application.id,
        actor.user_id,
        details={"from": previous.value, "to": status.value, "reason": reason},
    )
    return serialize_application(application, candidate, job)
