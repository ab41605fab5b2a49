"""
Interview service functions for API endpoints.

Implements the interview half of the candidate lifecycle: scheduling
(which upserts the application), HR confirmation, completion and
cancellation. An application with a ``scheduled`` interview is always in
``interview_scheduled``, and it has at most one ``scheduled`` interview:
scheduling again supersedes the earlier one as ``rescheduled``.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.applications import (
    advance_application,
    find_open_application,
    open_application_conflict,
    transition_application,
)
from api.services.notifications import notify
from api.services.unit_of_work import unit_of_work
from core.audit import AuditAction, ResourceType, log_audit_event
from core.config import settings
from core.exceptions import (
    CandidateNotFound,
    Forbidden,
    InterviewNotFound,
    InvalidTransition,
    JobNotFound,
)
from core.middleware.authorization import (
    Identity,
    Permission,
    has_permission,
    require_permission,
    require_self_or_permission,
)
from core.utils.datetime import ensure_utc, format_display_date, format_time_of_day
from core.utils.formatting import display_name
from database.models.applications import Application, ApplicationStatus
from database.models.communications import NotificationType
from database.models.interviews import Interview, InterviewStatus
from database.models.jobs import Job
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)

CONFIRMATION_PREFIX = "HR Confirmation: "


def serialize_interview(
    interview: Interview,
    application: Optional[Application] = None,
    candidate: Optional[User] = None,
    job: Optional[Job] = None,
) -> Dict[str, Any]:
    """Denormalised interview view with the display-timezone clock time."""
    scheduled_date = ensure_utc(interview.scheduled_date)
    return {
        "id": interview.id,
        "application_id": interview.application_id,
        "candidate_id": application.candidate_id if application else None,
        "job_id": application.job_id if application else None,
        "scheduled_date": scheduled_date.isoformat(),
        "scheduled_time": format_time_of_day(
            scheduled_date, settings.display_timezone
        ),
        "interviewer_name": interview.interviewer_name,
        "interviewer_email": interview.interviewer_email,
        "meeting_link": interview.meeting_link,
        "notes": interview.notes,
        "status": interview.status.value,
        "scheduled_by_id": interview.scheduled_by_id,
        "created_at": ensure_utc(interview.created_at).isoformat(),
        "candidate_name": display_name(candidate, fallback=""),
        "candidate_email": candidate.email if candidate else "",
        "job_title": job.title if job else "",
        "job_department": (job.department or "") if job else "",
    }


async def _load_context(
    session: AsyncSession, interview: Interview
) -> Tuple[Optional[Application], Optional[User], Optional[Job]]:
    application = await session.get(Application, interview.application_id)
    if application is None:
        return None, None, None
    candidate = await session.get(User, application.candidate_id)
    job = await session.get(Job, application.job_id)
    return application, candidate, job


async def _require_interview(session: AsyncSession, interview_id: int) -> Interview:
    interview = await session.get(Interview, interview_id)
    if interview is None:
        raise InterviewNotFound(interview_id=interview_id)
    return interview


def _require_scheduled(interview: Interview, action: str) -> None:
    if interview.status != InterviewStatus.SCHEDULED:
        raise InvalidTransition(
            f"Cannot {action} an interview that is {interview.status.value}",
            interview_id=interview.id,
        )


async def complete_scheduled_interview(
    session: AsyncSession, interview: Interview
) -> Optional[Application]:
    """
    Stage ``scheduled -> completed`` and move the application to
    ``interviewed``. Runs inside the caller's unit of work.
    """
    _require_scheduled(interview, "complete")
    interview.status = InterviewStatus.COMPLETED

    application = await session.get(Application, interview.application_id)
    if application is not None:
        advance_application(application, ApplicationStatus.INTERVIEWED)
    return application


# ==================== Scheduling ==================== #
async def schedule_interview_for_candidate(
    session: AsyncSession,
    actor: Identity,
    candidate_id: int,
    job_id: int,
    scheduled_date: datetime,
    scheduled_time: str,
    interviewer_name: str,
    interviewer_email: str,
    meeting_link: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Schedule an interview, creating or advancing the application.

    The open application for (candidate, job) is reused when present,
    otherwise one is created directly in ``interview_scheduled``. Any
    interview still ``scheduled`` for it becomes ``rescheduled`` before the
    new one is inserted. The scheduler and the candidate are notified.

    Args:
        session: Database session
        actor: The admin scheduling the interview
        candidate_id: Candidate user id
        job_id: Job id
        scheduled_date: Interview start
        scheduled_time: Human-readable time, kept in the notes
        interviewer_name: Interviewer display name
        interviewer_email: Interviewer email
        meeting_link: Optional video-call link
        notes: Optional free-text notes

    Returns:
        The new interview

    Raises:
        JobNotFound: Unknown job id
        CandidateNotFound: Unknown candidate id, or the user is not a candidate
        ApplicationConflict: A concurrent call opened the application or
            scheduled an interview for it first
    """
    require_permission(actor, Permission.INTERVIEW_SCHEDULE)

    async with unit_of_work(session, on_conflict=open_application_conflict):
        job = await session.get(Job, job_id)
        if job is None:
            raise JobNotFound(job_id=job_id)
        candidate = await session.get(User, candidate_id)
        if candidate is None or candidate.role != UserRole.CANDIDATE:
            raise CandidateNotFound(candidate_id=candidate_id)

        application = await find_open_application(session, candidate_id, job_id)
        if application is None:
            application = Application(
                candidate_id=candidate_id,
                job_id=job_id,
                status=ApplicationStatus.INTERVIEW_SCHEDULED,
                cover_letter="Shortlisted by admin for interview",
            )
            session.add(application)
            await session.flush()
        else:
            transition_application(application, ApplicationStatus.INTERVIEW_SCHEDULED)

        result = await session.execute(
            select(Interview).where(
                Interview.application_id == application.id,
                Interview.status == InterviewStatus.SCHEDULED,
            )
        )
        superseded = result.scalars().all()
        for previous in superseded:
            previous.status = InterviewStatus.RESCHEDULED
        if superseded:
            await session.flush()

        interview = Interview(
            application_id=application.id,
            scheduled_date=scheduled_date,
            interviewer_name=interviewer_name,
            interviewer_email=interviewer_email,
            meeting_link=meeting_link,
            notes=f"{notes or ''}\nScheduled Time: {scheduled_time}",
            status=InterviewStatus.SCHEDULED,
            scheduled_by_id=actor.user_id,
        )
        session.add(interview)
        await session.flush()

        when = (
            f"{format_display_date(scheduled_date, settings.display_timezone)} "
            f"at {scheduled_time}"
        )
        notify(
            session,
            actor.user_id,
            NotificationType.INTERVIEW_SCHEDULED,
            title="Interview Scheduled",
            message=f"Interview scheduled for candidate on {when}",
            related_id=interview.id,
        )
        notify(
            session,
            candidate_id,
            NotificationType.INTERVIEW_SCHEDULED,
            title="Interview Scheduled",
            message=f"Your interview has been scheduled for {when}",
            related_id=interview.id,
        )

    logger.info(
        f"Interview {interview.id} scheduled for application {application.id}"
        + (f", superseding {len(superseded)}" if superseded else "")
    )
    log_audit_event(
        AuditAction.SCHEDULE,
        ResourceType.INTERVIEW,
        interview.id,
        actor.user_id,
        details={
            "application_id": application.id,
            "interviewer_email": interviewer_email,
            "superseded": [i.id for i in superseded],
        },
    )
    return serialize_interview(interview, application, candidate, job)


async def confirm_interview_by_hr(
    session: AsyncSession,
    actor: Identity,
    interview_id: int,
    meeting_link: Optional[str] = None,
    additional_notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Confirm a scheduled interview.

    The meeting link is replaced only when one is supplied and the
    confirmation is appended to the notes; the status stays ``scheduled``.
    The candidate and the admin who scheduled the interview are notified.

    Raises:
        InterviewNotFound: Unknown interview id
        InvalidTransition: The interview is no longer scheduled
    """
    require_permission(actor, Permission.INTERVIEW_CONFIRM)

    async with unit_of_work(session):
        interview = await _require_interview(session, interview_id)
        _require_scheduled(interview, "confirm")

        if meeting_link:
            interview.meeting_link = meeting_link
        interview.notes = (
            f"{interview.notes or ''}\n\n"
            f"{CONFIRMATION_PREFIX}{additional_notes or 'Confirmed'}"
        )

        application, candidate, job = await _load_context(session, interview)
        if application is not None:
            link_text = f"Meeting link: {meeting_link}" if meeting_link else ""
            notify(
                session,
                application.candidate_id,
                NotificationType.INTERVIEW_CONFIRMED,
                title="Interview Confirmed",
                message=f"Your interview has been confirmed by HR. {link_text}".strip(),
                related_id=interview.id,
            )
            notify(
                session,
                interview.scheduled_by_id,
                NotificationType.INTERVIEW_CONFIRMED,
                title="Interview Confirmed",
                message="Interview has been confirmed and candidate notified.",
                related_id=interview.id,
            )

    log_audit_event(
        AuditAction.CONFIRM, ResourceType.INTERVIEW, interview.id, actor.user_id
    )
    return serialize_interview(interview, application, candidate, job)


async def complete_interview(
    session: AsyncSession, actor: Identity, interview_id: int
) -> Dict[str, Any]:
    """
    Mark a scheduled interview completed; the application becomes
    ``interviewed``.
    """
    require_permission(actor, Permission.INTERVIEW_CONDUCT)

    async with unit_of_work(session):
        interview = await _require_interview(session, interview_id)
        await complete_scheduled_interview(session, interview)
        application, candidate, job = await _load_context(session, interview)
        notify(
            session,
            interview.scheduled_by_id,
            NotificationType.INTERVIEW_COMPLETED,
            title="Interview Completed",
            message=f"Interview with {display_name(candidate)} has been completed.",
            related_id=interview.id,
        )

    log_audit_event(
        AuditAction.COMPLETE, ResourceType.INTERVIEW, interview.id, actor.user_id
    )
    return serialize_interview(interview, application, candidate, job)


async def cancel_interview(
    session: AsyncSession,
    actor: Identity,
    interview_id: int,
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Cancel a scheduled interview and tell the candidate.

    Raises:
        InterviewNotFound: Unknown interview id
        InvalidTransition: The interview is no longer scheduled
    """
    require_permission(actor, Permission.INTERVIEW_CONDUCT)

    async with unit_of_work(session):
        interview = await _require_interview(session, interview_id)
        _require_scheduled(interview, "cancel")

        interview.status = InterviewStatus.CANCELLED
        if reason:
            interview.notes = f"{interview.notes or ''}\n\nCancelled: {reason}"

        application, candidate, job = await _load_context(session, interview)
        if application is not None:
            notify(
                session,
                application.candidate_id,
                NotificationType.INTERVIEW_CANCELLED,
                title="Interview Cancelled",
                message="Your interview has been cancelled."
                + (f" Reason: {reason}" if reason else ""),
                related_id=interview.id,
            )

    log_audit_event(
        AuditAction.CANCEL,
        ResourceType.INTERVIEW,
        interview.id,
        actor.user_id,
        details={"reason": reason},
    )
    return serialize_interview(interview, application, candidate, job)


# ==================== Reads ==================== #
async def get_interview_by_id(
    session: AsyncSession, actor: Identity, interview_id: int
) -> Optional[Dict[str, Any]]:
    """
    Return the denormalised interview, or None when the interview or its
    application is missing.
    """
    interview = await session.get(Interview, interview_id)
    if interview is None:
        return None
    application, candidate, job = await _load_context(session, interview)
    if application is None:
        return None

    if not has_permission(actor, Permission.INTERVIEW_READ):
        if actor.user_id != application.candidate_id:
            raise Forbidden("Only participants may view this interview")
    return serialize_interview(interview, application, candidate, job)


async def get_pending_interviews_for_hr(
    session: AsyncSession, actor: Identity
) -> List[Dict[str, Any]]:
    """Every ``scheduled`` interview with candidate and job, soonest first."""
    require_permission(actor, Permission.INTERVIEW_READ)

    # Inner join drops interviews whose application no longer resolves
    result = await session.execute(
        select(Interview, Application, User, Job)
        .join(Application, Application.id == Interview.application_id)
        .outerjoin(User, User.id == Application.candidate_id)
        .outerjoin(Job, Job.id == Application.job_id)
        .where(Interview.status == InterviewStatus.SCHEDULED)
        .order_by(Interview.scheduled_date, Interview.id)
    )
    return [serialize_interview(*row) for row in result.all()]


async def get_interviews_for_candidate(
    session: AsyncSession, actor: Identity, candidate_id: int
) -> List[Dict[str, Any]]:
    """All interviews across a candidate's applications, newest first."""
    require_self_or_permission(actor, candidate_id, Permission.INTERVIEW_READ)

    result = await session.execute(
        select(Interview, Application, User, Job)
        .join(Application, Application.id == Interview.application_id)
        .outerjoin(User, User.id == Application.candidate_id)
        .outerjoin(Job, Job.id == Application.job_id)
        .where(Application.candidate_id == candidate_id)
        .order_by(Interview.created_at.desc(), Interview.id.desc())
    )
    return [serialize_interview(*row) for row in result.all()]
