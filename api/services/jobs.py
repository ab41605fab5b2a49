"""
Job service functions for API endpoints.

Admins post and close jobs; every HR user is told about a new posting in
the same transaction that creates it.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.notifications import notify_role
from api.services.unit_of_work import unit_of_work
from core.audit import AuditAction, ResourceType, log_audit_event
from core.exceptions import JobNotFound
from core.middleware.authorization import Identity, Permission, require_permission
from core.utils.datetime import ensure_utc
from core.utils.formatting import display_name
from database.models.communications import NotificationType
from database.models.jobs import Job, JobStatus
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)


def serialize_job(job: Job, poster: Optional[User] = None) -> Dict[str, Any]:
    return {
        "id": job.id,
        "title": job.title,
        "role": job.role,
        "department": job.department,
        "location": job.location,
        "description": job.description,
        "required_skills": list(job.required_skills or []),
        "experience_required": job.experience_required,
        "salary_min": job.salary_min,
        "salary_max": job.salary_max,
        "status": job.status.value,
        "posted_by": job.posted_by,
        "poster_name": display_name(poster),
        "created_at": ensure_utc(job.created_at).isoformat(),
    }


async def create_job(
    session: AsyncSession,
    actor: Identity,
    title: str,
    role: str,
    location: str,
    description: str,
    required_skills: Optional[List[str]] = None,
    experience_required: int = 0,
    department: Optional[str] = None,
    salary_min: Optional[int] = None,
    salary_max: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Post a new job and notify every HR user.

    Args:
        session: Database session
        actor: Must be the admin
        title: Job title
        role: Role name
        location: Work location
        description: Free-text description
        required_skills: Skills used by matching
        experience_required: Years of experience required
        department: Optional department
        salary_min: Optional lower salary bound
        salary_max: Optional upper salary bound

    Returns:
        The created job
    """
    require_permission(actor, Permission.JOB_CREATE)

    async with unit_of_work(session):
        job = Job(
            title=title,
            role=role,
            location=location,
            description=description,
            required_skills=list(required_skills or []),
            experience_required=experience_required,
            department=department,
            salary_min=salary_min,
            salary_max=salary_max,
            status=JobStatus.ACTIVE,
            posted_by=actor.user_id,
        )
        session.add(job)
        await session.flush()

        notifications = await notify_role(
            session,
            UserRole.HR,
            NotificationType.JOB_POSTED,
            title="New Job Posted",
            message=f"A new {title} position has been posted.",
            related_id=job.id,
        )
        poster = await session.get(User, actor.user_id)

    logger.info(f"Job {job.id} posted; notified {len(notifications)} HR users")
    log_audit_event(
        AuditAction.CREATE,
        ResourceType.JOB,
        job.id,
        actor.user_id,
        details={"title": title},
    )
    return serialize_job(job, poster)


async def get_job_by_id(
    session: AsyncSession, job_id: int
) -> Optional[Dict[str, Any]]:
    """Return the job with its poster's name, or None when missing."""
    result = await session.execute(
        select(Job, User)
        .outerjoin(User, User.id == Job.posted_by)
        .where(Job.id == job_id)
    )
    row = result.first()
    if row is None:
        return None
    job, poster = row
    return serialize_job(job, poster)


async def get_all_jobs(
    session: AsyncSession, status: Optional[JobStatus] = None
) -> List[Dict[str, Any]]:
    """List jobs, newest first, optionally filtered by status."""
    query = select(Job, User).outerjoin(User, User.id == Job.posted_by)
    if status is not None:
        query = query.where(Job.status == status)
    query = query.order_by(Job.created_at.desc(), Job.id.desc())

    result = await session.execute(query)
    return [serialize_job(job, poster) for job, poster in result.all()]


async def close_job(
    session: AsyncSession, actor: Identity, job_id: int
) -> Dict[str, Any]:
    """
    Close a job. Jobs are never deleted.

    Raises:
        JobNotFound: Unknown job id
    """
    require_permission(actor, Permission.JOB_CLOSE)

    async with unit_of_work(session):
        job = await session.get(Job, job_id)
        if job is None:
            raise JobNotFound(job_id=job_id)
        job.status = JobStatus.CLOSED
        poster = await session.get(User, job.posted_by)

    log_audit_event(AuditAction.CLOSE, ResourceType.JOB, job.id, actor.user_id)
    return serialize_job(job, poster)
