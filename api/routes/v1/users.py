"""
User directory endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_identity
from api.services import users as user_service
from core.middleware.authorization import Identity
from database.engine import get_db
from database.models.users import UserRole

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "",
    summary="List Users By Role",
    description="List accounts holding a role. Requires user:list permission.",
)
async def list_users(
    role: UserRole = Query(..., description="Role to list"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Retrieve users with the given role."""
    return await user_service.get_users_by_role(db, identity, role)
