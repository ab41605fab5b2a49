"""
Query messaging endpoints.

Threaded questions between users, optionally about a job, candidate or
interview.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_identity
from api.services import queries as query_service
from core.middleware.authorization import Identity
from database.engine import get_db
from database.models.communications import QueryCategory, QueryPriority, QueryStatus

router = APIRouter(prefix="/queries", tags=["queries"])


# ==================== Request/Response Models ==================== #

class QueryCreate(BaseModel):
    """New query thread."""
    to_user_id: int
    subject: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    priority: QueryPriority = QueryPriority.MEDIUM
    category: QueryCategory = QueryCategory.GENERAL
    job_id: Optional[int] = None
    candidate_id: Optional[int] = None
    interview_id: Optional[int] = None


class ResponseCreate(BaseModel):
    """Reply on a query thread."""
    message: str = Field(..., min_length=1)


class StatusUpdate(BaseModel):
    """Query status change."""
    status: QueryStatus


# ==================== Endpoints ==================== #

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_query(
    request: QueryCreate,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Open a query addressed to another user."""
    return await query_service.create_query(db, identity, **request.model_dump())


@router.get("")
async def list_queries(
    user_id: Optional[int] = Query(None, description="Defaults to the caller"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Queries sent or received by the user, with their responses."""
    return await query_service.get_queries_for_user(
        db, identity, user_id if user_id is not None else identity.user_id
    )


@router.post("/responses/{response_id}/read")
async def mark_response_read(
    response_id: int = Path(..., description="Response ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Mark a response as read."""
    return await query_service.mark_response_as_read(db, identity, response_id)


@router.post("/{query_id}/responses", status_code=status.HTTP_201_CREATED)
async def respond(
    request: ResponseCreate,
    query_id: int = Path(..., description="Query ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Reply on a query thread."""
    return await query_service.respond_to_query(db, identity, query_id, request.message)


@router.patch("/{query_id}/status")
async def update_status(
    request: StatusUpdate,
    query_id: int = Path(..., description="Query ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Change a query's status."""
    return await query_service.update_query_status(
        db, identity, query_id, request.status
    )
