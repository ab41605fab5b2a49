"""
Application workflow endpoints.

Provides REST API for viewing applications and recording manual decisions.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_identity
from api.services import applications as application_service
from core.middleware.authorization import Identity
from database.engine import get_db
from database.models.applications import ApplicationStatus

router = APIRouter(prefix="/applications", tags=["applications"])


class StatusUpdateRequest(BaseModel):
    """Manual application decision."""
    status: ApplicationStatus
    reason: Optional[str] = None


@router.get(
    "",
    summary="List Applications",
    description="List applications with optional filters. Candidates only see their own.",
)
async def list_applications(
    candidate_id: Optional[int] = Query(None, description="Filter by candidate"),
    job_id: Optional[int] = Query(None, description="Filter by job"),
    status: Optional[ApplicationStatus] = Query(None, description="Filter by status"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Retrieve applications, newest first."""
    return await application_service.list_applications(
        db, identity, candidate_id=candidate_id, job_id=job_id, status=status
    )


@router.get(
    "/{application_id}",
    summary="Get Application Details",
)
async def get_application(
    application_id: int = Path(..., description="Application ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Retrieve an application with candidate and job names."""
    result = await application_service.get_application(db, identity, application_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Application not found")
    return result


@router.patch(
    "/{application_id}/status",
    summary="Update Application Status",
    description="Move an application to screening, selected or rejected. Requires application:decide permission.",
)
async def update_application_status(
    request: StatusUpdateRequest,
    application_id: int = Path(..., description="Application ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Record a manual status change."""
    return await application_service.update_application_status(
        db, identity, application_id, request.status, reason=request.reason
    )
