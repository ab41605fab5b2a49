"""
Candidate profile endpoints.

Provides REST API for profiles, profile completion, search, and the
project and achievement records attached to a candidate.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_identity
from api.services import candidates as candidate_service
from core.middleware.authorization import (
    Identity,
    Permission,
    require_self_or_permission,
)
from database.engine import get_db
from database.models.candidates import Availability, WorkPreference

router = APIRouter(prefix="/candidates", tags=["candidates"])


# ==================== Request/Response Models ==================== #

class ProfileFields(BaseModel):
    """Editable profile fields; every one is optional."""
    skills: Optional[List[str]] = None
    experience: Optional[int] = Field(None, ge=0)
    education: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    summary: Optional[str] = None
    linkedin_url: Optional[str] = Field(None, max_length=500)
    github_url: Optional[str] = Field(None, max_length=500)
    portfolio_url: Optional[str] = Field(None, max_length=500)
    current_job_title: Optional[str] = Field(None, max_length=255)
    current_company: Optional[str] = Field(None, max_length=255)
    expected_salary: Optional[int] = Field(None, ge=0)
    notice_period: Optional[int] = Field(None, ge=0, description="Notice period in days")
    availability: Optional[Availability] = None
    work_preference: Optional[WorkPreference] = None
    is_actively_looking: Optional[bool] = None
    preferred_locations: Optional[List[str]] = None
    certifications: Optional[List[str]] = None
    languages: Optional[List[str]] = None
    preferred_salary_min: Optional[int] = Field(None, ge=0)
    preferred_salary_max: Optional[int] = Field(None, ge=0)


class ProfileCreate(ProfileFields):
    """Profile creation, optionally patching the owner's contact details."""
    user_id: int
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)


class ProjectCreate(BaseModel):
    """Candidate project."""
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    technologies: Optional[List[str]] = None
    project_url: Optional[str] = Field(None, max_length=500)
    github_url: Optional[str] = Field(None, max_length=500)
    start_date: Optional[str] = Field(None, max_length=50)
    end_date: Optional[str] = Field(None, max_length=50)
    is_ongoing: Optional[bool] = None
    team_size: Optional[int] = Field(None, ge=1)
    role: Optional[str] = Field(None, max_length=255)
    achievements: Optional[List[str]] = None


class ProjectUpdate(BaseModel):
    """Partial project update."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    technologies: Optional[List[str]] = None
    project_url: Optional[str] = Field(None, max_length=500)
    github_url: Optional[str] = Field(None, max_length=500)
    start_date: Optional[str] = Field(None, max_length=50)
    end_date: Optional[str] = Field(None, max_length=50)
    is_ongoing: Optional[bool] = None
    team_size: Optional[int] = Field(None, ge=1)
    role: Optional[str] = Field(None, max_length=255)
    achievements: Optional[List[str]] = None


class AchievementCreate(BaseModel):
    """Candidate achievement or certification."""
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    achievement_type: str = Field("other", max_length=50)
    issued_by: Optional[str] = Field(None, max_length=255)
    issued_date: Optional[str] = Field(None, max_length=50)
    credential_id: Optional[str] = Field(None, max_length=255)
    credential_url: Optional[str] = Field(None, max_length=500)
    expiry_date: Optional[str] = Field(None, max_length=50)


# ==================== Profiles ==================== #

@router.post("/profile", status_code=status.HTTP_201_CREATED)
async def create_profile(
    request: ProfileCreate,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Create a candidate profile."""
    return await candidate_service.create_candidate_profile(
        db, identity, **request.model_dump(exclude_none=True)
    )


@router.get("/profile/{user_id}")
async def get_profile(
    user_id: int = Path(..., description="Candidate user ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Get a candidate profile."""
    profile = await candidate_service.get_candidate_profile(db, identity, user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.patch("/profile/{user_id}")
async def update_profile(
    request: ProfileFields,
    user_id: int = Path(..., description="Candidate user ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Partially update a candidate profile."""
    return await candidate_service.update_candidate_profile(
        db, identity, user_id, **request.model_dump(exclude_unset=True)
    )


@router.post("/profile/{user_id}/completion")
async def recalculate_completion(
    user_id: int = Path(..., description="Candidate user ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Recompute the profile completion percentage."""
    require_self_or_permission(identity, user_id, Permission.CANDIDATE_READ)
    score = await candidate_service.calculate_profile_completion(db, user_id)
    return {"user_id": user_id, "profile_completion_percentage": score}


@router.get(
    "/search",
    summary="Search Candidates",
    description="Filter candidate profiles. Requires candidate:read permission.",
)
async def search_candidates(
    skills: Optional[List[str]] = Query(None, description="Any overlapping skill"),
    location: Optional[str] = Query(None),
    min_experience: Optional[int] = Query(None, ge=0),
    max_experience: Optional[int] = Query(None, ge=0),
    work_preference: Optional[WorkPreference] = Query(None),
    is_actively_looking: Optional[bool] = Query(None),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Search candidates by skills, location and experience."""
    return await candidate_service.search_candidates(
        db,
        identity,
        skills=skills,
        location=location,
        min_experience=min_experience,
        max_experience=max_experience,
        work_preference=work_preference,
        is_actively_looking=is_actively_looking,
    )


@router.get("")
async def list_candidates(
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """List every candidate profile."""
    return await candidate_service.get_all_candidates(db, identity)


# ==================== Projects ==================== #

@router.post("/{user_id}/projects", status_code=status.HTTP_201_CREATED)
async def add_project(
    request: ProjectCreate,
    user_id: int = Path(..., description="Candidate user ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Add a project to a candidate's profile."""
    return await candidate_service.add_candidate_project(
        db, identity, user_id, **request.model_dump(exclude_none=True)
    )


@router.get("/{user_id}/projects")
async def list_projects(
    user_id: int = Path(..., description="Candidate user ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """List a candidate's projects, newest first."""
    return await candidate_service.get_candidate_projects(db, user_id)


@router.patch("/projects/{project_id}")
async def update_project(
    request: ProjectUpdate,
    project_id: int = Path(..., description="Project ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Partially update a project."""
    return await candidate_service.update_candidate_project(
        db, identity, project_id, **request.model_dump(exclude_unset=True)
    )


@router.delete("/projects/{project_id}")
async def delete_project(
    project_id: int = Path(..., description="Project ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Delete a project."""
    deleted = await candidate_service.delete_candidate_project(db, identity, project_id)
    return {"deleted": deleted}


# ==================== Achievements ==================== #

@router.post("/{user_id}/achievements", status_code=status.HTTP_201_CREATED)
async def add_achievement(
    request: AchievementCreate,
    user_id: int = Path(..., description="Candidate user ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Add an achievement to a candidate's profile."""
    return await candidate_service.add_candidate_achievement(
        db, identity, user_id, **request.model_dump(exclude_none=True)
    )


@router.get("/{user_id}/achievements")
async def list_achievements(
    user_id: int = Path(..., description="Candidate user ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """List a candidate's achievements."""
    return await candidate_service.get_candidate_achievements(db, user_id)


@router.delete("/achievements/{achievement_id}")
async def delete_achievement(
    achievement_id: int = Path(..., description="Achievement ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Delete an achievement."""
    deleted = await candidate_service.delete_candidate_achievement(
        db, identity, achievement_id
    )
    return {"deleted": deleted}
