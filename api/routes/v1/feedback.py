"""
Interview feedback endpoints.

Ratings and the recommendation are checked by the service so that a bad
value surfaces as ``INVALID_FEEDBACK`` rather than a generic validation error.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_identity
from api.services import feedback as feedback_service
from core.middleware.authorization import Identity
from database.engine import get_db

router = APIRouter(prefix="/feedback", tags=["feedback"])


# ==================== Request/Response Models ==================== #

class FeedbackCreate(BaseModel):
    """Interviewer feedback submission."""
    interview_id: int
    overall_rating: int
    technical_skills: int
    communication_skills: int
    problem_solving: int
    cultural_fit: int
    recommendation: str
    strengths: str = ""
    weaknesses: str = ""
    additional_comments: Optional[str] = None


class FeedbackUpdate(BaseModel):
    """Partial feedback update."""
    overall_rating: Optional[int] = None
    technical_skills: Optional[int] = None
    communication_skills: Optional[int] = None
    problem_solving: Optional[int] = None
    cultural_fit: Optional[int] = None
    recommendation: Optional[str] = None
    strengths: Optional[str] = None
    weaknesses: Optional[str] = None
    additional_comments: Optional[str] = None


# ==================== Endpoints ==================== #

@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Submit Feedback",
    description="Submit feedback for an interview, completing it. Requires interview:feedback permission.",
)
async def submit_feedback(
    request: FeedbackCreate,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Record interviewer feedback."""
    return await feedback_service.submit_feedback(db, identity, **request.model_dump())


@router.get(
    "",
    summary="List Feedback",
    description="List feedback, optionally for one candidate, job or interview. Requires feedback:read permission.",
)
async def list_feedback(
    candidate_id: Optional[int] = Query(None),
    job_id: Optional[int] = Query(None),
    interview_id: Optional[int] = Query(None),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Retrieve feedback, newest first."""
    if interview_id is not None:
        result = await feedback_service.get_feedback_by_interview(
            db, identity, interview_id
        )
        return [result] if result else []
    if candidate_id is not None:
        return await feedback_service.get_feedback_by_candidate(db, identity, candidate_id)
    if job_id is not None:
        return await feedback_service.get_feedback_by_job(db, identity, job_id)
    return await feedback_service.get_all_feedback(db, identity)


@router.get("/{feedback_id}")
async def get_feedback(
    feedback_id: int = Path(..., description="Feedback ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Get a single feedback record."""
    result = await feedback_service.get_feedback_by_id(db, identity, feedback_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Feedback not found")
    return result


@router.patch("/{feedback_id}")
async def update_feedback(
    request: FeedbackUpdate,
    feedback_id: int = Path(..., description="Feedback ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Partially update feedback."""
    return await feedback_service.update_feedback(
        db, identity, feedback_id, **request.model_dump(exclude_unset=True)
    )


@router.delete("/{feedback_id}")
async def delete_feedback(
    feedback_id: int = Path(..., description="Feedback ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Delete feedback."""
    deleted = await feedback_service.delete_feedback(db, identity, feedback_id)
    return {"deleted": deleted}
