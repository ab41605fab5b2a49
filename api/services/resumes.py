"""
Resume intake service functions.

A ResumeUpload is an upstream intake record. Its own status only tracks
intake review; the candidate's stage for a job lives on the Application,
which shortlisting creates or advances to ``screening``.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.orm import aliased
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.applications import (
    advance_application,
    find_open_application,
    open_application_conflict,
)
from api.services.notifications import notify_role
from api.services.unit_of_work import unit_of_work
from core.audit import AuditAction, ResourceType, log_audit_event
from core.exceptions import (
    CandidateNotFound,
    DuplicateEmail,
    InvalidTransition,
    JobNotFound,
    UploadNotFound,
)
from core.middleware.authorization import Identity, Permission, require_permission
from core.security import generate_unusable_password, hash_password
from core.utils.datetime import ensure_utc, now
from core.utils.formatting import display_name, normalize_email
from database.models.applications import Application, ApplicationStatus
from database.models.candidates import (
    CandidateProfile,
    ResumeUpload,
    ResumeUploadStatus,
)
from database.models.communications import NotificationType
from database.models.jobs import Job
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)

GENERAL_APPLICATION = "General Application"
REVIEW_OUTCOMES = frozenset({ResumeUploadStatus.REVIEWED, ResumeUploadStatus.REJECTED})


def serialize_upload(
    upload: ResumeUpload,
    candidate: Optional[User] = None,
    uploader: Optional[User] = None,
    job: Optional[Job] = None,
    reviewer: Optional[User] = None,
) -> Dict[str, Any]:
    return {
        "id": upload.id,
        "candidate_profile_id": upload.candidate_profile_id,
        "candidate_id": candidate.id if candidate else None,
        "file_name": upload.file_name,
        "file_url": upload.file_url,
        "file_size": upload.file_size,
        "job_id": upload.job_id,
        "notes": upload.notes,
        "status": upload.status.value,
        "uploaded_by_id": upload.uploaded_by_id,
        "uploaded_at": ensure_utc(upload.uploaded_at).isoformat(),
        "reviewed_at": (
            ensure_utc(upload.reviewed_at).isoformat() if upload.reviewed_at else None
        ),
        "reviewed_by_id": upload.reviewed_by_id,
        "review_notes": upload.review_notes,
        "candidate_name": display_name(candidate),
        "candidate_email": candidate.email if candidate else "",
        "uploader_name": display_name(uploader),
        "job_title": job.title if job else GENERAL_APPLICATION,
        "reviewer_name": display_name(reviewer) if reviewer else None,
    }


async def _record_upload(
    session: AsyncSession,
    actor: Identity,
    profile: CandidateProfile,
    file_name: str,
    file_url: str,
    file_size: int,
    job: Optional[Job],
    notes: Optional[str],
) -> ResumeUpload:
    """Stage the upload, point the profile at it and notify every admin."""
    upload = ResumeUpload(
        candidate_profile_id=profile.id,
        file_name=file_name,
        file_url=file_url,
        file_size=file_size,
        uploaded_by_id=actor.user_id,
        job_id=job.id if job else None,
        notes=notes,
        status=ResumeUploadStatus.UPLOADED,
    )
    session.add(upload)
    await session.flush()

    profile.resume_id = str(upload.id)

    candidate = await session.get(User, profile.user_id)
    job_title = job.title if job else GENERAL_APPLICATION
    await notify_role(
        session,
        UserRole.ADMIN,
        NotificationType.RESUME_UPLOADED,
        title="New Resume Uploaded",
        message=f"{display_name(candidate)} resume uploaded for {job_title}",
        related_id=upload.id,
    )
    return upload


async def _optional_job(session: AsyncSession, job_id: Optional[int]) -> Optional[Job]:
    if job_id is None:
        return None
    job = await session.get(Job, job_id)
    if job is None:
        raise JobNotFound(job_id=job_id)
    return job


async def upload_candidate_resume(
    session: AsyncSession,
    actor: Identity,
    candidate_profile_id: int,
    file_name: str,
    file_url: str,
    file_size: int,
    job_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Record a resume for an existing candidate profile.

    Raises:
        CandidateNotFound: Unknown profile id
        JobNotFound: A job id was given but does not resolve
    """
    require_permission(actor, Permission.RESUME_UPLOAD)

    async with unit_of_work(session):
        profile = await session.get(CandidateProfile, candidate_profile_id)
        if profile is None:
            raise CandidateNotFound(candidate_profile_id=candidate_profile_id)
        job = await _optional_job(session, job_id)

        upload = await _record_upload(
            session, actor, profile, file_name, file_url, file_size, job, notes
        )
        candidate = await session.get(User, profile.user_id)
        uploader = await session.get(User, actor.user_id)

    log_audit_event(
        AuditAction.UPLOAD,
        ResourceType.RESUME_UPLOAD,
        upload.id,
        actor.user_id,
        details={"file_name": file_name, "job_id": job_id},
    )
    return serialize_upload(upload, candidate, uploader, job)


async def intake_candidate(
    session: AsyncSession,
    actor: Identity,
    email: str,
    first_name: str,
    last_name: str,
    file_url: str,
    file_name: str,
    file_size: int,
    experience: int = 0,
    job_id: Optional[int] = None,
    skills: Optional[List[str]] = None,
    phone: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    HR upload flow for a candidate who may not have an account yet.

    Finds the candidate by email or creates the account with an unusable
    random password, creates a stub profile when missing, then records the
    upload, all in one transaction.

    Raises:
        DuplicateEmail: The email belongs to a non-candidate account
        JobNotFound: A job id was given but does not resolve
    """
    require_permission(actor, Permission.RESUME_UPLOAD)
    email = normalize_email(email)

    async with unit_of_work(session):
        job = await _optional_job(session, job_id)

        result = await session.execute(select(User).where(User.email == email))
        candidate = result.scalar_one_or_none()
        if candidate is None:
            candidate = User(
                email=email,
                password_hash=hash_password(generate_unusable_password()),
                first_name=first_name,
                last_name=last_name,
                phone=phone,
                role=UserRole.CANDIDATE,
            )
            session.add(candidate)
            await session.flush()
            logger.info(f"Created candidate account {candidate.id} during intake")
        elif candidate.role != UserRole.CANDIDATE:
            raise DuplicateEmail("Email belongs to a non-candidate account")

        result = await session.execute(
            select(CandidateProfile).where(CandidateProfile.user_id == candidate.id)
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            profile = CandidateProfile(
                user_id=candidate.id,
                skills=list(skills or []),
                experience=experience,
            )
            session.add(profile)
            await session.flush()

        upload = await _record_upload(
            session, actor, profile, file_name, file_url, file_size, job, notes
        )
        uploader = await session.get(User, actor.user_id)

    log_audit_event(
        AuditAction.UPLOAD,
        ResourceType.RESUME_UPLOAD,
        upload.id,
        actor.user_id,
        details={"candidate_email": email, "job_id": job_id},
    )
    return serialize_upload(upload, candidate, uploader, job)


async def get_all_resume_uploads(
    session: AsyncSession,
    actor: Identity,
    status: Optional[ResumeUploadStatus] = None,
) -> List[Dict[str, Any]]:
    """List uploads newest first with candidate, uploader, job and reviewer."""
    require_permission(actor, Permission.RESUME_READ)

    candidate = aliased(User)
    uploader = aliased(User)
    reviewer = aliased(User)
    query = (
        select(ResumeUpload, candidate, uploader, Job, reviewer)
        .outerjoin(
            CandidateProfile,
            CandidateProfile.id == ResumeUpload.candidate_profile_id,
        )
        .outerjoin(candidate, candidate.id == CandidateProfile.user_id)
        .outerjoin(uploader, uploader.id == ResumeUpload.uploaded_by_id)
        .outerjoin(Job, Job.id == ResumeUpload.job_id)
        .outerjoin(reviewer, reviewer.id == ResumeUpload.reviewed_by_id)
    )
    if status is not None:
        query = query.where(ResumeUpload.status == status)
    query = query.order_by(ResumeUpload.uploaded_at.desc(), ResumeUpload.id.desc())

    result = await session.execute(query)
    return [serialize_upload(*row) for row in result.all()]


async def shortlist_candidate_for_interview(
    session: AsyncSession,
    actor: Identity,
    upload_id: int,
    review_notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Shortlist an uploaded candidate.

    Marks the upload ``shortlisted`` and, when the upload names a job,
    creates the application in ``screening`` or advances the open one to
    ``screening`` (an application further along is left alone). Every HR
    user is notified.

    Raises:
        UploadNotFound: Unknown upload id
        CandidateNotFound: The upload's profile does not resolve
        ApplicationConflict: A concurrent call opened the application first
    """
    require_permission(actor, Permission.RESUME_SHORTLIST)

    async with unit_of_work(session, on_conflict=open_application_conflict):
        upload = await session.get(ResumeUpload, upload_id)
        if upload is None:
            raise UploadNotFound(upload_id=upload_id)
        profile = await session.get(CandidateProfile, upload.candidate_profile_id)
        if profile is None:
            raise CandidateNotFound(candidate_profile_id=upload.candidate_profile_id)

        upload.status = ResumeUploadStatus.SHORTLISTED
        upload.reviewed_at = now()
        upload.reviewed_by_id = actor.user_id
        upload.review_notes = review_notes

        application = None
        if upload.job_id is not None:
            application = await find_open_application(
                session, profile.user_id, upload.job_id
            )
            if application is None:
                application = Application(
                    candidate_id=profile.user_id,
                    job_id=upload.job_id,
                    status=ApplicationStatus.SCREENING,
                )
                session.add(application)
                await session.flush()
            else:
                advance_application(application, ApplicationStatus.SCREENING)

        await notify_role(
            session,
            UserRole.HR,
            NotificationType.CANDIDATE_SHORTLISTED,
            title="Candidate Shortlisted",
            message=(
                "Candidate has been shortlisted for interview. "
                "Please proceed with interview scheduling."
            ),
            related_id=upload.id,
        )

        candidate = await session.get(User, profile.user_id)
        uploader = await session.get(User, upload.uploaded_by_id)
        job = await session.get(Job, upload.job_id) if upload.job_id else None
        reviewer = await session.get(User, actor.user_id)

    log_audit_event(
        AuditAction.SHORTLIST,
        ResourceType.RESUME_UPLOAD,
        upload.id,
        actor.user_id,
        details={"application_id": application.id if application else None},
    )
    data = serialize_upload(upload, candidate, uploader, job, reviewer)
    data["application_id"] = application.id if application else None
    data["application_status"] = application.status.value if application else None
    return data


async def review_resume_upload(
    session: AsyncSession,
    actor: Identity,
    upload_id: int,
    status: ResumeUploadStatus,
    review_notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Record an intake review outcome (``reviewed`` or ``rejected``).

    Never touches the candidate's applications.
    """
    require_permission(actor, Permission.RESUME_REVIEW)
    status = ResumeUploadStatus(status)
    if status not in REVIEW_OUTCOMES:
        raise InvalidTransition(
            f"Review outcome must be one of: "
            f"{', '.join(sorted(s.value for s in REVIEW_OUTCOMES))}"
        )

    async with unit_of_work(session):
        upload = await session.get(ResumeUpload, upload_id)
        if upload is None:
            raise UploadNotFound(upload_id=upload_id)

        upload.status = status
        upload.reviewed_at = now()
        upload.reviewed_by_id = actor.user_id
        upload.review_notes = review_notes

        profile = await session.get(CandidateProfile, upload.candidate_profile_id)
        candidate = await session.get(User, profile.user_id) if profile else None
        uploader = await session.get(User, upload.uploaded_by_id)
        job = await session.get(Job, upload.job_id) if upload.job_id else None
        reviewer = await session.get(User, actor.user_id)

    log_audit_event(
        AuditAction.REVIEW,
        ResourceType.RESUME_UPLOAD,
        upload.id,
        actor.user_id,
        details={"status": status.value},
    )
    return serialize_upload(upload, candidate, uploader, job, reviewer)
