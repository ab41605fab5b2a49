"""
Notification service functions.

Producers call ``notify`` / ``notify_role`` inside their own unit of work, so
a notification is written together with the state change it announces or
not at all. Read-side helpers back the notification inbox endpoints.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.unit_of_work import unit_of_work
from core.exceptions import NotificationNotFound, Forbidden
from core.middleware.authorization import Identity
from core.utils.datetime import ensure_utc
from database.models.communications import (
    Notification,
    NotificationType,
    NOTIFICATION_TARGETS,
)
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)


def notify(
    session: AsyncSession,
    user_id: int,
    type: NotificationType,
    title: str,
    message: str,
    related_id: Optional[int] = None,
) -> Notification:
    """
    Stage one notification row in the caller's transaction.

    The related entity kind is fixed by the notification type.
    """
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        related_type=NOTIFICATION_TARGETS[type] if related_id is not None else None,
        related_id=related_id,
        is_read=False,
    )
    session.add(notification)
    return notification


async def notify_role(
    session: AsyncSession,
    role: UserRole,
    type: NotificationType,
    title: str,
    message: str,
    related_id: Optional[int] = None,
) -> List[Notification]:
    """Stage one notification for every user holding ``role``."""
    result = await session.execute(
        select(User.id).where(User.role == role).order_by(User.id)
    )
    recipients = result.scalars().all()
    logger.debug(f"Fanning out {type.value} to {len(recipients)} {role.value} users")
    return [
        notify(session, user_id, type, title, message, related_id)
        for user_id in recipients
    ]


def _serialize(notification: Notification) -> Dict[str, Any]:
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.type.value,
        "related": (
            {
                "type": notification.related_type.value,
                "id": notification.related_id,
            }
            if notification.related_type is not None
            else None
        ),
        "is_read": notification.is_read,
        "created_at": ensure_utc(notification.created_at).isoformat(),
    }


async def get_notifications_for_user(
    session: AsyncSession,
    user_id: int,
    unread_only: bool = False,
) -> List[Dict[str, Any]]:
    """
    List a user's notifications, newest first.

    Args:
        session: Database session
        user_id: Recipient
        unread_only: Only return unread rows

    Returns:
        List of notification dictionaries
    """
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.is_read.is_(False))
    query = query.order_by(Notification.created_at.desc(), Notification.id.desc())

    result = await session.execute(query)
    return [_serialize(n) for n in result.scalars().all()]


async def get_unread_count(session: AsyncSession, user_id: int) -> int:
    result = await session.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
    )
    return result.scalar_one()


async def mark_notification_read(
    session: AsyncSession,
    actor: Identity,
    notification_id: int,
) -> Dict[str, Any]:
    """
    Mark one notification as read. Only the recipient may do this.

    Raises:
        NotificationNotFound: Unknown id
        Forbidden: The actor is not the recipient
    """
    async with unit_of_work(session):
        notification = await session.get(Notification, notification_id)
        if notification is None:
            raise NotificationNotFound(notification_id=notification_id)
        if notification.user_id != actor.user_id:
            raise Forbidden("Notifications can only be read by their recipient")
        notification.is_read = True

    return _serialize(notification)


async def mark_all_notifications_read(session: AsyncSession, actor: Identity) -> int:
    """Mark every unread notification of the actor as read; returns the count."""
    async with unit_of_work(session):
        result = await session.execute(
            update(Notification)
            .where(
                Notification.user_id == actor.user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True)
        )
    return result.rowcount
