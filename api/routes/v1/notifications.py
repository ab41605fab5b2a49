"""
Notification inbox endpoints.
"""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_identity
from api.services import notifications as notification_service
from core.middleware.authorization import Identity
from database.engine import get_db

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    unread_only: bool = Query(False, description="Only unread notifications"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """The caller's notifications, newest first, with the unread count."""
    notifications = await notification_service.get_notifications_for_user(
        db, identity.user_id, unread_only=unread_only
    )
    unread = await notification_service.get_unread_count(db, identity.user_id)
    return {"notifications": notifications, "unread_count": unread}


@router.post("/read-all")
async def mark_all_read(
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Mark every unread notification of the caller as read."""
    updated = await notification_service.mark_all_notifications_read(db, identity)
    return {"updated": updated}


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: int = Path(..., description="Notification ID"),
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_db),
):
    """Mark one notification as read."""
    return await notification_service.mark_notification_read(
        db, identity, notification_id
    )
