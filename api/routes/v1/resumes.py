"""
Resume intake endpoints.

Admins upload resumes for existing candidates or bring new candidates in
from a resume, then shortlist or review the uploads.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_identity
from api.services import resumes as resume_service
from core.middleware.authorization import Identity
from database.engine import get_db
from database.models.candidates import ResumeUploadStatus

router = APIRouter(prefix="/resumes", tags=["resumes"])


# ==================== Request/Response Models ==================== #

class ResumeUploadRequest(BaseModel):
    """Resume upload for an existing candidate profile."""
    candidate_profile_id: int
    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1, max_length=1000)
    file_size: int = Field(..., ge=0)
    job_id: Optional[int] = None
    notes: Optional[str] = None


class IntakeRequest(BaseModel):
    """Resume intake that creates the candidate when needed."""
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    file_url: str = Field(..., min_length=1, max_length=1000)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_size: int = Field(..., ge=0)
    experience: int = Field(0, ge=0)
    job_id: Optional[int] = None
    skills: Optional[List[str]] = None
    phone: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class ShortlistRequest(BaseModel):
    """Shortlist an upload for interview."""
    review_notes: Optional[str] = None


class ReviewRequest(BaseModel):
    """Record a review outcome."""
    status: ResumeUploadStatus
    review_notes: Optional[str] = None


# ==================== Endpoints ==================== #

@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Upload Resume",
    description="Attach a resume to an existing candidate profile. Requires resume:upload permission.",
)
async def upload_resume(
    request: ResumeUploadRequest,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Record a resume upload."""
    return await resume_service.upload_candidate_resume(
        db, identity, **request.model_dump()
    )


@router.post(
    "/intake",
    status_code=status.HTTP_201_CREATED,
    summary="Intake Candidate",
    description="Create or reuse a candidate account and profile from a resume.",
)
async def intake_candidate(
    request: IntakeRequest,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Bring a candidate in from a resume."""
    return await resume_service.intake_candidate(db, identity, **request.model_dump())


@router.get("")
async def list_uploads(
    status: Optional[ResumeUploadStatus] = Query(None, description="Filter by status"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """List resume uploads, newest first."""
    return await resume_service.get_all_resume_uploads(db, identity, status=status)


@router.post("/{upload_id}/shortlist")
async def shortlist_upload(
    request: ShortlistRequest,
    upload_id: int = Path(..., description="Upload ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Shortlist an upload, opening or advancing the application for its job."""
    return await resume_service.shortlist_candidate_for_interview(
        db, identity, upload_id, review_notes=request.review_notes
    )


@router.post("/{upload_id}/review")
async def review_upload(
    request: ReviewRequest,
    upload_id: int = Path(..., description="Upload ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Mark an upload reviewed or rejected."""
    return await resume_service.review_resume_upload(
        db, identity, upload_id, request.status, review_notes=request.review_notes
    )
