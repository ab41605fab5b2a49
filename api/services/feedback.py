"""
Interview feedback service functions.

Feedback is the closing step of an interview: submitting it for a
``scheduled`` interview completes the interview and moves the application
to ``interviewed``. Ratings must be 1-5 and the recommendation must be one
of hire / no-hire / maybe.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.interviews import complete_scheduled_interview
from api.services.notifications import notify_role
from api.services.unit_of_work import unit_of_work
from core.audit import AuditAction, ResourceType, log_audit_event
from core.exceptions import (
    ApplicationNotFound,
    FeedbackAlreadyExists,
    FeedbackNotFound,
    InterviewNotFound,
    InvalidFeedback,
    InvalidField,
    InvalidTransition,
    RecruitmentError,
)
from core.middleware.authorization import Identity, Permission, require_permission
from core.utils.datetime import ensure_utc, now
from core.utils.formatting import display_name
from database.models.applications import Application
from database.models.communications import NotificationType
from database.models.interviews import (
    FEEDBACK_RATING_FIELDS,
    MAX_RATING,
    MIN_RATING,
    Feedback,
    Interview,
    InterviewStatus,
    Recommendation,
)
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("strengths", "weaknesses", "additional_comments")


def _feedback_conflict(error: IntegrityError) -> RecruitmentError:
    return FeedbackAlreadyExists()


def validate_ratings(ratings: Dict[str, Any]) -> None:
    """
    Raises:
        InvalidFeedback: A rating is not an integer or is out of range
    """
    for field, value in ratings.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidFeedback(f"{field} must be an integer", field=field)
        if not MIN_RATING <= value <= MAX_RATING:
            raise InvalidFeedback(
                f"{field} must be between {MIN_RATING} and {MAX_RATING}",
                field=field,
            )


def parse_recommendation(value: Any) -> Recommendation:
    """
    Raises:
        InvalidFeedback: Not one of hire / no-hire / maybe
    """
    try:
        return Recommendation(value)
    except ValueError:
        allowed = ", ".join(r.value for r in Recommendation)
        raise InvalidFeedback(
            f"Recommendation must be one of: {allowed}", field="recommendation"
        ) from None


def serialize_feedback(
    feedback: Feedback, candidate: Optional[User] = None
) -> Dict[str, Any]:
    data = {
        "id": feedback.id,
        "interview_id": feedback.interview_id,
        "candidate_id": feedback.candidate_id,
        "job_id": feedback.job_id,
        "interviewer_id": feedback.interviewer_id,
        "interviewer_name": feedback.interviewer_name,
        "strengths": feedback.strengths,
        "weaknesses": feedback.weaknesses,
        "recommendation": feedback.recommendation.value,
        "additional_comments": feedback.additional_comments,
        "submitted_at": ensure_utc(feedback.submitted_at).isoformat(),
        "updated_at": (
            ensure_utc(feedback.updated_at).isoformat() if feedback.updated_at else None
        ),
        "candidate_name": display_name(candidate, fallback=""),
    }
    for field in FEEDBACK_RATING_FIELDS:
        data[field] = getattr(feedback, field)
    return data


async def submit_feedback(
    session: AsyncSession,
    actor: Identity,
    interview_id: int,
    overall_rating: int,
    technical_skills: int,
    communication_skills: int,
    problem_solving: int,
    cultural_fit: int,
    recommendation: str,
    strengths: str = "",
    weaknesses: str = "",
    additional_comments: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Submit feedback for an interview and notify every admin.

    Returns:
        The stored feedback

    Raises:
        InvalidFeedback: Rating out of 1-5 or unknown recommendation
        InterviewNotFound: Unknown interview id
        InvalidTransition: The interview was cancelled or superseded
        FeedbackAlreadyExists: The interview already has feedback
    """
    require_permission(actor, Permission.INTERVIEW_FEEDBACK)

    ratings = {
        "overall_rating": overall_rating,
        "technical_skills": technical_skills,
        "communication_skills": communication_skills,
        "problem_solving": problem_solving,
        "cultural_fit": cultural_fit,
    }
    validate_ratings(ratings)
    verdict = parse_recommendation(recommendation)

    async with unit_of_work(session, on_conflict=_feedback_conflict):
        interview = await session.get(Interview, interview_id)
        if interview is None:
            raise InterviewNotFound(interview_id=interview_id)
        if interview.status in (InterviewStatus.CANCELLED, InterviewStatus.RESCHEDULED):
            raise InvalidTransition(
                f"Cannot record feedback for a {interview.status.value} interview",
                interview_id=interview_id,
            )

        existing = await session.execute(
            select(Feedback.id).where(Feedback.interview_id == interview_id)
        )
        if existing.scalar_one_or_none() is not None:
            raise FeedbackAlreadyExists(interview_id=interview_id)

        if interview.status == InterviewStatus.SCHEDULED:
            application = await complete_scheduled_interview(session, interview)
        else:
            application = await session.get(Application, interview.application_id)
        if application is None:
            raise ApplicationNotFound(application_id=interview.application_id)

        interviewer = await session.get(User, actor.user_id)
        feedback = Feedback(
            interview_id=interview.id,
            candidate_id=application.candidate_id,
            job_id=application.job_id,
            interviewer_id=actor.user_id,
            interviewer_name=display_name(interviewer),
            strengths=strengths,
            weaknesses=weaknesses,
            recommendation=verdict,
            additional_comments=additional_comments,
            **ratings,
        )
        session.add(feedback)
        await session.flush()

        candidate = await session.get(User, application.candidate_id)
        await notify_role(
            session,
            UserRole.ADMIN,
            NotificationType.FEEDBACK_SUBMITTED,
            title="Interview Feedback Submitted",
            message=(
                f"Feedback for {display_name(candidate)}: "
                f"{verdict.value} ({overall_rating}/{MAX_RATING})"
            ),
            related_id=feedback.id,
        )

    log_audit_event(
        AuditAction.CREATE,
        ResourceType.FEEDBACK,
        feedback.id,
        actor.user_id,
        details={"interview_id": interview_id, "recommendation": verdict.value},
    )
    return serialize_feedback(feedback, candidate)


async def _list(session: AsyncSession, *conditions) -> List[Dict[str, Any]]:
    result = await session.execute(
        select(Feedback, User)
        .outerjoin(User, User.id == Feedback.candidate_id)
        .where(*conditions)
        .order_by(Feedback.submitted_at.desc(), Feedback.id.desc())
    )
    return [serialize_feedback(f, u) for f, u in result.all()]


async def get_feedback_by_id(
    session: AsyncSession, actor: Identity, feedback_id: int
) -> Optional[Dict[str, Any]]:
    require_permission(actor, Permission.FEEDBACK_READ)
    rows = await _list(session, Feedback.id == feedback_id)
    return rows[0] if rows else None


async def get_feedback_by_interview(
    session: AsyncSession, actor: Identity, interview_id: int
) -> Optional[Dict[str, Any]]:
    require_permission(actor, Permission.FEEDBACK_READ)
    rows = await _list(session, Feedback.interview_id == interview_id)
    return rows[0] if rows else None


async def get_feedback_by_candidate(
    session: AsyncSession, actor: Identity, candidate_id: int
) -> List[Dict[str, Any]]:
    require_permission(actor, Permission.FEEDBACK_READ)
    return await _list(session, Feedback.candidate_id == candidate_id)


async def get_feedback_by_job(
    session: AsyncSession, actor: Identity, job_id: int
) -> List[Dict[str, Any]]:
    require_permission(actor, Permission.FEEDBACK_READ)
    return await _list(session, Feedback.job_id == job_id)


async def get_all_feedback(
    session: AsyncSession, actor: Identity
) -> List[Dict[str, Any]]:
    require_permission(actor, Permission.FEEDBACK_READ)
    return await _list(session)


async def update_feedback(
    session: AsyncSession,
    actor: Identity,
    feedback_id: int,
    **updates: Any,
) -> Dict[str, Any]:
    """
    Partially update feedback with the same validation as submission.

    A null clears the free-text fields; ratings and the recommendation
    cannot be null.

    Raises:
        FeedbackNotFound: Unknown id
        InvalidFeedback: Rating out of range or unknown recommendation
        InvalidField: Unknown field
    """
    require_permission(actor, Permission.INTERVIEW_FEEDBACK)

    unknown = set(updates) - set(FEEDBACK_RATING_FIELDS) - set(TEXT_FIELDS) - {
        "recommendation"
    }
    if unknown:
        raise InvalidField(
            f"Unknown feedback fields: {sorted(unknown)}", fields=sorted(unknown)
        )
    ratings = {k: v for k, v in updates.items() if k in FEEDBACK_RATING_FIELDS}
    validate_ratings(ratings)
    for field in ("strengths", "weaknesses"):
        if field in updates and updates[field] is None:
            updates[field] = ""
    if "recommendation" in updates:
        updates["recommendation"] = parse_recommendation(updates["recommendation"])

    async with unit_of_work(session):
        feedback = await session.get(Feedback, feedback_id)
        if feedback is None:
            raise FeedbackNotFound(feedback_id=feedback_id)
        for key, value in updates.items():
            setattr(feedback, key, value)
        feedback.updated_at = now()
        candidate = await session.get(User, feedback.candidate_id)

    log_audit_event(
        AuditAction.UPDATE,
        ResourceType.FEEDBACK,
        feedback.id,
        actor.user_id,
        details={"fields": sorted(updates)},
    )
    return serialize_feedback(feedback, candidate)


async def delete_feedback(
    session: AsyncSession, actor: Identity, feedback_id: int
) -> int:
    """Delete feedback. The interview keeps its completed status."""
    require_permission(actor, Permission.INTERVIEW_FEEDBACK)

    async with unit_of_work(session):
        feedback = await session.get(Feedback, feedback_id)
        if feedback is None:
            raise FeedbackNotFound(feedback_id=feedback_id)
        await session.delete(feedback)

    log_audit_event(AuditAction.DELETE, ResourceType.FEEDBACK, feedback_id, actor.user_id)
    return feedback_id
