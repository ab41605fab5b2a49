"""
Job posting management endpoints.

Provides REST API for posting, listing and closing jobs, and for ranking
candidates against a job's requirements.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Path, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_identity
from api.services import jobs as job_service
from api.services import matching as matching_service
from core.middleware.authorization import Identity
from database.engine import get_db
from database.models.jobs import JobStatus

router = APIRouter(prefix="/jobs", tags=["jobs"])


# ==================== Request/Response Models ==================== #

class JobCreate(BaseModel):
    """Job posting request."""
    title: str = Field(..., min_length=1, max_length=255)
    role: str = Field(..., min_length=1, max_length=255)
    location: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    required_skills: List[str] = Field(default_factory=list)
    experience_required: int = Field(0, ge=0)
    department: Optional[str] = Field(None, max_length=255)
    salary_min: Optional[int] = Field(None, ge=0)
    salary_max: Optional[int] = Field(None, ge=0)


# ==================== Endpoints ==================== #

@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Post Job",
    description="Post a new job and notify every HR user. Requires job:create permission.",
)
async def create_job(
    request: JobCreate,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Create a job posting."""
    return await job_service.create_job(db, identity, **request.model_dump())


@router.get(
    "",
    summary="List Jobs",
    description="List job postings, newest first.",
)
async def list_jobs(
    status: Optional[JobStatus] = Query(None, description="Filter by status (active, closed)"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Retrieve job postings."""
    return await job_service.get_all_jobs(db, status=status)


@router.get(
    "/{job_id}",
    summary="Get Job Details",
)
async def get_job(
    job_id: int = Path(..., description="Job ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Retrieve a job posting with its poster's name."""
    result = await job_service.get_job_by_id(db, job_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return result


@router.post(
    "/{job_id}/close",
    summary="Close Job",
    description="Close a job posting. Requires job:close permission.",
)
async def close_job(
    job_id: int = Path(..., description="Job ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Close a job posting."""
    return await job_service.close_job(db, identity, job_id)


@router.get(
    "/{job_id}/matches",
    summary="Match Candidates",
    description="Rank candidates against the job's skills and experience. Requires candidate:match permission.",
)
async def match_candidates(
    job_id: int = Path(..., description="Job ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Return the best-scoring candidates for a job."""
    return await matching_service.match_candidates_for_job(db, identity, job_id)
