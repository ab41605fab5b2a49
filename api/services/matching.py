"""
Candidate/job matching.

Scores every candidate profile against a job's required skills and
experience: 70% skill overlap, 30% experience, rounded half-up. Only
candidates scoring above ``settings.match_min_score`` are returned, best
first, capped at ``settings.match_limit``.
"""

from typing import Any, Dict, List
import logging
import math

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.candidates import serialize_profile, skills_overlap
from core.config import settings
from core.middleware.authorization import Identity, Permission, require_permission
from database.models.candidates import CandidateProfile
from database.models.jobs import Job
from database.models.users import User

logger = logging.getLogger(__name__)

SKILL_WEIGHT = 0.7
EXPERIENCE_WEIGHT = 0.3


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_candidate(
    candidate_skills: List[str],
    candidate_experience: int,
    required_skills: List[str],
    experience_required: int,
) -> Dict[str, Any]:
    """
    Score one candidate against a job's requirements.

    Returns:
        Dictionary with ``skill_match`` and ``experience_match`` percentages,
        the rounded ``match_percentage`` and the candidate skills that matched
    """
    job_skills = [skill.lower() for skill in required_skills]
    own_skills = [skill.lower() for skill in candidate_skills]

    matching_skills = [
        skill
        for skill in own_skills
        if any(skills_overlap(skill, job_skill) for job_skill in job_skills)
    ]
    if job_skills:
        skill_match = min(100.0, len(matching_skills) / len(job_skills) * 100)
    else:
        skill_match = 0.0

    experience = candidate_experience or 0
    if experience >= experience_required:
        experience_match = 100.0
    else:
        experience_match = experience / experience_required * 100

    overall = round_half_up(
        skill_match * SKILL_WEIGHT + experience_match * EXPERIENCE_WEIGHT
    )
    return {
        "skill_match": round(skill_match, 2),
        "experience_match": round(experience_match, 2),
        "match_percentage": overall,
        "matching_skills": matching_skills,
    }


async def match_candidates_for_job(
    session: AsyncSession,
    actor: Identity,
    job_id: int,
) -> List[Dict[str, Any]]:
    """
    Rank candidates for a job.

    Args:
        session: Database session
        actor: hr/admin
        job_id: Job to match against

    Returns:
        Up to ``match_limit`` profiles with their scores, best first; an
        empty list when the job does not exist
    """
    require_permission(actor, Permission.CANDIDATE_MATCH)

    job = await session.get(Job, job_id)
    if job is None:
        return []

    result = await session.execute(
        select(CandidateProfile, User)
        .outerjoin(User, User.id == CandidateProfile.user_id)
        .order_by(CandidateProfile.id)
    )

    scored = []
    for profile, user in result.all():
        score = score_candidate(
            profile.skills or [],
            profile.experience,
            job.required_skills or [],
            job.experience_required,
        )
        if score["match_percentage"] > settings.match_min_score:
            scored.append({**serialize_profile(profile, user), **score})

    # Stable: ties keep profile creation order
    scored.sort(key=lambda c: c["match_percentage"], reverse=True)
    logger.debug(f"Job {job_id}: {len(scored)} candidates above threshold")
    return scored[: settings.match_limit]
