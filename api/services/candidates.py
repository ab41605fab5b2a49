"""
Candidate service functions for API endpoints.

Profiles, their project and achievement child records, completion scoring
and filtered search. Counter fields on the profile are updated in SQL, in
the same transaction as the child row they count, so concurrent writers
never lose an update.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.unit_of_work import unit_of_work
from core.audit import AuditAction, ResourceType, log_audit_event
from core.exceptions import (
    AchievementNotFound,
    CandidateNotFound,
    DuplicateEmail,
    ProfileAlreadyExists,
    ProfileNotFound,
    ProjectNotFound,
    InvalidField,
    RecruitmentError,
    UserNotFound,
)
from core.middleware.authorization import (
    Identity,
    Permission,
    require_permission,
    require_self_or_permission,
)
from core.utils.datetime import ensure_utc
from core.utils.formatting import normalize_email
from database.models.candidates import (
    Availability,
    CandidateAchievement,
    CandidateProfile,
    CandidateProject,
    WorkPreference,
)
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)

# Weighted fields for the completion score; weights sum to 100
COMPLETION_WEIGHTS: Dict[str, int] = {
    "skills": 15,
    "experience": 10,
    "education": 10,
    "location": 10,
    "summary": 15,
    "linkedin_url": 5,
    "github_url": 5,
    "portfolio_url": 5,
    "current_job_title": 5,
    "resume_id": 20,
}
COMPLETE_THRESHOLD = 90

PROFILE_FIELDS = (
    "skills",
    "experience",
    "education",
    "location",
    "summary",
    "linkedin_url",
    "github_url",
    "portfolio_url",
    "current_job_title",
    "current_company",
    "expected_salary",
    "notice_period",
    "availability",
    "work_preference",
    "is_actively_looking",
    "preferred_locations",
    "certifications",
    "languages",
    "preferred_salary_min",
    "preferred_salary_max",
)

PROJECT_FIELDS = (
    "title",
    "description",
    "technologies",
    "project_url",
    "github_url",
    "start_date",
    "end_date",
    "is_ongoing",
    "team_size",
    "role",
    "achievements",
)


# Non-nullable columns that a null in an update resets to their empty value
PROFILE_CLEARABLE = {
    "skills": list,
    "education": str,
    "location": str,
    "summary": str,
    "linkedin_url": str,
    "github_url": str,
    "portfolio_url": str,
    "current_job_title": str,
    "current_company": str,
    "preferred_locations": list,
    "certifications": list,
    "languages": list,
}
PROFILE_NULLABLE = ("expected_salary", "notice_period")

PROJECT_CLEARABLE = {"description": str, "technologies": list, "achievements": list}
PROJECT_NULLABLE = (
    "project_url",
    "github_url",
    "start_date",
    "end_date",
    "team_size",
    "role",
)


def _resolve_nulls(
    updates: Dict[str, Any], clearable: Dict[str, Any], nullable: tuple
) -> Dict[str, Any]:
    """
    Turn explicit nulls in a partial update into column values.

    Raises:
        InvalidField: A null for a column that has no empty value
    """
    for key, value in updates.items():
        if value is not None or key in nullable:
            continue
        if key not in clearable:
            raise InvalidField(f"{key} cannot be null", field=key)
        updates[key] = clearable[key]()
    return updates


def _coerce_profile_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - set(PROFILE_FIELDS)
    if unknown:
        raise InvalidField(
            f"Unknown profile fields: {sorted(unknown)}", fields=sorted(unknown)
        )
    if fields.get("availability") is not None:
        fields["availability"] = Availability(fields["availability"])
    if fields.get("work_preference") is not None:
        fields["work_preference"] = WorkPreference(fields["work_preference"])
    return fields


def _profile_conflict(error: IntegrityError) -> RecruitmentError:
    if "email" in str(error.orig).lower():
        return DuplicateEmail()
    return ProfileAlreadyExists()


def serialize_profile(
    profile: CandidateProfile, user: Optional[User] = None
) -> Dict[str, Any]:
    """Flatten a profile and, when given, the owning user's contact fields."""
    data = {
        "id": profile.id,
        "user_id": profile.user_id,
        "skills": list(profile.skills or []),
        "experience": profile.experience,
        "education": profile.education,
        "location": profile.location,
        "summary": profile.summary,
        "linkedin_url": profile.linkedin_url,
        "github_url": profile.github_url,
        "portfolio_url": profile.portfolio_url,
        "current_job_title": profile.current_job_title,
        "current_company": profile.current_company,
        "expected_salary": profile.expected_salary,
        "notice_period": profile.notice_period,
        "availability": profile.availability.value,
        "work_preference": profile.work_preference.value,
        "is_actively_looking": profile.is_actively_looking,
        "preferred_locations": list(profile.preferred_locations or []),
        "certifications": list(profile.certifications or []),
        "languages": list(profile.languages or []),
        "preferred_salary_min": profile.preferred_salary_min,
        "preferred_salary_max": profile.preferred_salary_max,
        "resume_id": profile.resume_id,
        "is_profile_complete": profile.is_profile_complete,
        "profile_completion_percentage": profile.profile_completion_percentage,
        "projects_count": profile.projects_count,
        "achievements_count": profile.achievements_count,
        "last_updated": ensure_utc(profile.last_updated).isoformat(),
    }
    data.update(
        {
            "first_name": user.first_name if user else "",
            "last_name": user.last_name if user else "",
            "email": user.email if user else "",
            "phone": (user.phone or "") if user else "",
        }
    )
    return data


def _serialize_project(project: CandidateProject) -> Dict[str, Any]:
    data = {field: getattr(project, field) for field in PROJECT_FIELDS}
    data.update(
        {
            "id": project.id,
            "candidate_id": project.candidate_id,
            "created_at": ensure_utc(project.created_at).isoformat(),
        }
    )
    return data


def _serialize_achievement(achievement: CandidateAchievement) -> Dict[str, Any]:
    return {
        "id": achievement.id,
        "candidate_id": achievement.candidate_id,
        "title": achievement.title,
        "description": achievement.description,
        "achievement_type": achievement.achievement_type,
        "issued_by": achievement.issued_by,
        "issued_date": achievement.issued_date,
        "credential_id": achievement.credential_id,
        "credential_url": achievement.credential_url,
        "expiry_date": achievement.expiry_date,
        "created_at": ensure_utc(achievement.created_at).isoformat(),
    }


async def get_profile_row(
    session: AsyncSession, user_id: int
) -> Optional[CandidateProfile]:
    result = await session.execute(
        select(CandidateProfile).where(CandidateProfile.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def _require_profile(session: AsyncSession, user_id: int) -> CandidateProfile:
    profile = await get_profile_row(session, user_id)
    if profile is None:
        raise ProfileNotFound(user_id=user_id)
    return profile


async def _write_counter(
    session: AsyncSession, user_id: int, counter: Any, value: Any
) -> None:
    """Set a profile counter from a SQL expression and reload the profile."""
    await session.execute(
        update(CandidateProfile)
        .where(CandidateProfile.user_id == user_id)
        .values({counter: value})
        .execution_options(synchronize_session=False)
    )
    await session.execute(
        select(CandidateProfile)
        .where(CandidateProfile.user_id == user_id)
        .execution_options(populate_existing=True)
    )


async def _increment_counter(
    session: AsyncSession, user_id: int, counter: Any
) -> None:
    await _write_counter(session, user_id, counter, counter + 1)


async def _decrement_counter(
    session: AsyncSession, user_id: int, counter: Any
) -> None:
    """Decrement in place, flooring at zero."""
    await _write_counter(
        session, user_id, counter, case((counter > 0, counter - 1), else_=0)
    )


# ==================== Profiles ==================== #
async def get_candidate_profile(
    session: AsyncSession,
    actor: Identity,
    user_id: int,
) -> Optional[Dict[str, Any]]:
    """
    Get a candidate's profile joined with their contact details.

    Returns:
        Profile dictionary, or None when the candidate has no profile yet
    """
    require_self_or_permission(actor, user_id, Permission.CANDIDATE_READ)

    profile = await get_profile_row(session, user_id)
    if profile is None:
        return None
    user = await session.get(User, user_id)
    return serialize_profile(profile, user)


async def get_all_candidates(
    session: AsyncSession, actor: Identity
) -> List[Dict[str, Any]]:
    """List every candidate profile in creation order."""
    require_permission(actor, Permission.CANDIDATE_READ)

    result = await session.execute(
        select(CandidateProfile, User)
        .outerjoin(User, User.id == CandidateProfile.user_id)
        .order_by(CandidateProfile.id)
    )
    return [serialize_profile(profile, user) for profile, user in result.all()]


async def create_candidate_profile(
    session: AsyncSession,
    actor: Identity,
    user_id: int,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    **fields: Any,
) -> Dict[str, Any]:
    """
    Create the profile for a candidate user.

    Omitted fields take their defaults (hybrid, negotiable, zero counters).
    Name, email and phone, when supplied, are patched onto the User row in
    the same transaction.

    Args:
        session: Database session
        actor: The candidate themself, or hr/admin acting on their behalf
        user_id: Owning candidate user
        first_name: Optional identity patch
        last_name: Optional identity patch
        email: Optional identity patch
        phone: Optional identity patch
        **fields: Any of the profile fields

    Returns:
        The created profile

    Raises:
        UserNotFound: Unknown user id
        CandidateNotFound: The user is not a candidate
        ProfileAlreadyExists: A profile already exists for the user
    """
    require_self_or_permission(actor, user_id, Permission.CANDIDATE_MANAGE)
    fields = _coerce_profile_fields(fields)

    async with unit_of_work(session, on_conflict=_profile_conflict):
        user = await session.get(User, user_id)
        if user is None:
            raise UserNotFound(user_id=user_id)
        if user.role != UserRole.CANDIDATE:
            raise CandidateNotFound("User is not a candidate", user_id=user_id)

        if await get_profile_row(session, user_id) is not None:
            raise ProfileAlreadyExists(user_id=user_id)

        if first_name:
            user.first_name = first_name
        if last_name:
            user.last_name = last_name
        if email:
            user.email = normalize_email(email)
        if phone:
            user.phone = phone

        profile = CandidateProfile(
            user_id=user_id,
            **{key: value for key, value in fields.items() if value is not None},
        )
        session.add(profile)

    log_audit_event(
        AuditAction.CREATE, ResourceType.CANDIDATE, profile.id, actor.user_id
    )
    return serialize_profile(profile, user)


async def update_candidate_profile(
    session: AsyncSession,
    actor: Identity,
    user_id: int,
    **updates: Any,
) -> Dict[str, Any]:
    """
    Apply a partial update; only supplied fields change.

    A null clears the field: optional columns become null and text or list
    columns become empty.

    Raises:
        ProfileNotFound: The user has no profile
        InvalidField: Unknown field, or a null for a required column
    """
    require_self_or_permission(actor, user_id, Permission.CANDIDATE_MANAGE)
    updates = _resolve_nulls(
        _coerce_profile_fields(updates), PROFILE_CLEARABLE, PROFILE_NULLABLE
    )

    async with unit_of_work(session):
        profile = await _require_profile(session, user_id)
        for key, value in updates.items():
            setattr(profile, key, value)

    log_audit_event(
        AuditAction.UPDATE,
        ResourceType.CANDIDATE,
        profile.id,
        actor.user_id,
        details={"fields": sorted(updates)},
    )
    user = await session.get(User, user_id)
    return serialize_profile(profile, user)


def completion_score(profile: CandidateProfile) -> int:
    """Weighted sum over the filled-in profile fields."""
    filled = {
        "skills": bool(profile.skills),
        "experience": (profile.experience or 0) > 0,
        "education": bool(profile.education),
        "location": bool(profile.location),
        "summary": bool(profile.summary),
        "linkedin_url": bool(profile.linkedin_url),
        "github_url": bool(profile.github_url),
        "portfolio_url": bool(profile.portfolio_url),
        "current_job_title": bool(profile.current_job_title),
        "resume_id": bool(profile.resume_id),
    }
    return sum(
        weight for field, weight in COMPLETION_WEIGHTS.items() if filled[field]
    )


async def calculate_profile_completion(session: AsyncSession, user_id: int) -> int:
    """
    Recompute and persist the profile completion score.

    Returns:
        Score from 0 to 100; 0 when the user has no profile
    """
    async with unit_of_work(session):
        profile = await get_profile_row(session, user_id)
        if profile is None:
            return 0

        score = completion_score(profile)
        profile.profile_completion_percentage = score
        profile.is_profile_complete = score >= COMPLETE_THRESHOLD

    return score


# ==================== Projects ==================== #
async def add_candidate_project(
    session: AsyncSession,
    actor: Identity,
    candidate_id: int,
    title: str,
    description: str = "",
    **fields: Any,
) -> Dict[str, Any]:
    """Add a project and bump the profile's project counter."""
    require_self_or_permission(actor, candidate_id, Permission.CANDIDATE_MANAGE)

    async with unit_of_work(session):
        await _require_profile(session, candidate_id)
        project = CandidateProject(
            candidate_id=candidate_id,
            title=title,
            description=description,
            **{key: value for key, value in fields.items() if value is not None},
        )
        session.add(project)
        await _increment_counter(
            session, candidate_id, CandidateProfile.projects_count
        )

    log_audit_event(AuditAction.CREATE, ResourceType.PROJECT, project.id, actor.user_id)
    return _serialize_project(project)


async def get_candidate_projects(
    session: AsyncSession, candidate_id: int
) -> List[Dict[str, Any]]:
    result = await session.execute(
        select(CandidateProject)
        .where(CandidateProject.candidate_id == candidate_id)
        .order_by(CandidateProject.id)
    )
    return [_serialize_project(p) for p in result.scalars().all()]


async def update_candidate_project(
    session: AsyncSession,
    actor: Identity,
    project_id: int,
    **updates: Any,
) -> Dict[str, Any]:
    """
    Partially update a project. Counters are unaffected.

    Raises:
        ProjectNotFound: Unknown project id
        InvalidField: Unknown field, or a null for a required column
    """
    unknown = set(updates) - set(PROJECT_FIELDS)
    if unknown:
        raise InvalidField(
            f"Unknown project fields: {sorted(unknown)}", fields=sorted(unknown)
        )
    updates = _resolve_nulls(updates, PROJECT_CLEARABLE, PROJECT_NULLABLE)

    async with unit_of_work(session):
        project = await session.get(CandidateProject, project_id)
        if project is None:
            raise ProjectNotFound(project_id=project_id)
        require_self_or_permission(
            actor, project.candidate_id, Permission.CANDIDATE_MANAGE
        )
        for key, value in updates.items():
            setattr(project, key, value)

    return _serialize_project(project)


async def delete_candidate_project(
    session: AsyncSession, actor: Identity, project_id: int
) -> int:
    """
    Delete a project and decrement the counter, never below zero.

    Raises:
        ProjectNotFound: Unknown project id
    """
    async with unit_of_work(session):
        project = await session.get(CandidateProject, project_id)
        if project is None:
            raise ProjectNotFound(project_id=project_id)
        require_self_or_permission(
            actor, project.candidate_id, Permission.CANDIDATE_MANAGE
        )

        await session.delete(project)
        await _decrement_counter(
            session, project.candidate_id, CandidateProfile.projects_count
        )

    log_audit_event(AuditAction.DELETE, ResourceType.PROJECT, project_id, actor.user_id)
    return project_id


# ==================== Achievements ==================== #
async def add_candidate_achievement(
    session: AsyncSession,
    actor: Identity,
    candidate_id: int,
    title: str,
    description: str = "",
    achievement_type: str = "other",
    **fields: Any,
) -> Dict[str, Any]:
    """Add an achievement and bump the profile's achievement counter."""
    require_self_or_permission(actor, candidate_id, Permission.CANDIDATE_MANAGE)

    async with unit_of_work(session):
        await _require_profile(session, candidate_id)
        achievement = CandidateAchievement(
            candidate_id=candidate_id,
            title=title,
            description=description,
            achievement_type=achievement_type,
            **{key: value for key, value in fields.items() if value is not None},
        )
        session.add(achievement)
        await _increment_counter(
            session, candidate_id, CandidateProfile.achievements_count
        )

    log_audit_event(
        AuditAction.CREATE, ResourceType.ACHIEVEMENT, achievement.id, actor.user_id
    )
    return _serialize_achievement(achievement)


async def get_candidate_achievements(
    session: AsyncSession, candidate_id: int
) -> List[Dict[str, Any]]:
    result = await session.execute(
        select(CandidateAchievement)
        .where(CandidateAchievement.candidate_id == candidate_id)
        .order_by(CandidateAchievement.id)
    )
    return [_serialize_achievement(a) for a in result.scalars().all()]


async def delete_candidate_achievement(
    session: AsyncSession, actor: Identity, achievement_id: int
) -> int:
    """Delete an achievement; the counter floors at zero like projects."""
    async with unit_of_work(session):
        achievement = await session.get(CandidateAchievement, achievement_id)
        if achievement is None:
            raise AchievementNotFound(achievement_id=achievement_id)
        require_self_or_permission(
            actor, achievement.candidate_id, Permission.CANDIDATE_MANAGE
        )

        await session.delete(achievement)
        await _decrement_counter(
            session, achievement.candidate_id, CandidateProfile.achievements_count
        )

    log_audit_event(
        AuditAction.DELETE, ResourceType.ACHIEVEMENT, achievement_id, actor.user_id
    )
    return achievement_id


# ==================== Search ==================== #
def skills_overlap(candidate_skill: str, search_skill: str) -> bool:
    """Case-insensitive substring match in either direction."""
    a, b = candidate_skill.lower(), search_skill.lower()
    return a in b or b in a


async def search_candidates(
    session: AsyncSession,
    actor: Identity,
    skills: Optional[List[str]] = None,
    location: Optional[str] = None,
    min_experience: Optional[int] = None,
    max_experience: Optional[int] = None,
    work_preference: Optional[str] = None,
    is_actively_looking: Optional[bool] = None,
) -> List[Dict[str, Any]]:
    """
    Filter candidate profiles. Every supplied filter must hold.

    Args:
        session: Database session
        actor: hr/admin
        skills: At least one candidate skill must overlap one search term
        location: Case-insensitive substring of the profile location
        min_experience: Inclusive lower bound in years
        max_experience: Inclusive upper bound in years
        work_preference: Exact work preference
        is_actively_looking: Exact flag

    Returns:
        Matching profiles joined with contact details
    """
    require_permission(actor, Permission.CANDIDATE_READ)

    query = select(CandidateProfile, User).outerjoin(
        User, User.id == CandidateProfile.user_id
    )
    if min_experience is not None:
        query = query.where(CandidateProfile.experience >= min_experience)
    if max_experience is not None:
        query = query.where(CandidateProfile.experience <= max_experience)
    if work_preference:
        query = query.where(CandidateProfile.work_preference == work_preference)
    if is_actively_looking is not None:
        query = query.where(
            CandidateProfile.is_actively_looking.is_(is_actively_looking)
        )
    result = await session.execute(query.order_by(CandidateProfile.id))

    # JSON skill lists and substring rules are filtered in Python
    search_skills = [s for s in (skills or []) if s.strip()]
    matches = []
    for profile, user in result.all():
        if search_skills and not any(
            skills_overlap(skill, term)
            for skill in (profile.skills or [])
            for term in search_skills
        ):
            continue
        if location and location.lower() not in (profile.location or "").lower():
            continue
        matches.append(serialize_profile(profile, user))
    return matches
