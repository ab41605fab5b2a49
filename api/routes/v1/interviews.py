"""
Interview scheduling endpoints.

Provides REST API for scheduling, confirming, completing and cancelling
interviews. Scheduling drives the application into ``interview_scheduled``.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_identity
from api.services import interviews as interview_service
from core.middleware.authorization import Identity
from database.engine import get_db

router = APIRouter(prefix="/interviews", tags=["interviews"])


# ==================== Request/Response Models ==================== #

class ScheduleInterviewRequest(BaseModel):
    """Interview scheduling request."""
    candidate_id: int
    job_id: int
    scheduled_date: datetime
    scheduled_time: str = Field(..., min_length=1, max_length=50)
    interviewer_name: str = Field(..., min_length=1, max_length=255)
    interviewer_email: EmailStr
    meeting_link: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = None


class ConfirmInterviewRequest(BaseModel):
    """HR confirmation of a scheduled interview."""
    meeting_link: Optional[str] = Field(None, max_length=1000)
    additional_notes: Optional[str] = None


class CancelInterviewRequest(BaseModel):
    """Interview cancellation."""
    reason: Optional[str] = None


# ==================== Endpoints ==================== #

@router.post(
    "/schedule",
    status_code=status.HTTP_201_CREATED,
    summary="Schedule Interview",
    description="Schedule an interview for a candidate and job. Requires interview:schedule permission.",
)
async def schedule_interview(
    request: ScheduleInterviewRequest,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Schedule an interview, superseding any still-scheduled one."""
    return await interview_service.schedule_interview_for_candidate(
        db, identity, **request.model_dump()
    )


@router.get(
    "/pending",
    summary="Pending Interviews",
    description="Interviews awaiting HR confirmation. Requires interview:confirm permission.",
)
async def pending_interviews(
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """List scheduled interviews, soonest first."""
    return await interview_service.get_pending_interviews_for_hr(db, identity)


@router.get("/candidate/{candidate_id}")
async def candidate_interviews(
    candidate_id: int = Path(..., description="Candidate user ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """List every interview for a candidate."""
    return await interview_service.get_interviews_for_candidate(
        db, identity, candidate_id
    )


@router.get("/{interview_id}")
async def get_interview(
    interview_id: int = Path(..., description="Interview ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Get an interview with candidate and job details."""
    result = await interview_service.get_interview_by_id(db, identity, interview_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Interview not found")
    return result


@router.post("/{interview_id}/confirm")
async def confirm_interview(
    request: ConfirmInterviewRequest,
    interview_id: int = Path(..., description="Interview ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Confirm a scheduled interview and notify the participants."""
    return await interview_service.confirm_interview_by_hr(
        db, identity, interview_id, **request.model_dump()
    )


@router.post("/{interview_id}/complete")
async def complete_interview(
    interview_id: int = Path(..., description="Interview ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Mark a scheduled interview as completed."""
    return await interview_service.complete_interview(db, identity, interview_id)


@router.post("/{interview_id}/cancel")
async def cancel_interview(
    request: CancelInterviewRequest,
    interview_id: int = Path(..., description="Interview ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a scheduled interview."""
    return await interview_service.cancel_interview(
        db, identity, interview_id, reason=request.reason
    )
