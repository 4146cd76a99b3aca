"""Notification inbox operations."""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crashdispatch.clock import Clock, utcnow
from crashdispatch.exceptions import NotFoundError
from crashdispatch.models import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, db: AsyncSession, now: Clock = utcnow):
        self.db = db
        self.now = now

    async def list_for_user(
        self, user_id: str, unread_only: bool = False, limit: int = 100
    ) -> list[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        result = await self.db.execute(
            query.order_by(Notification.created_at.desc()).limit(limit)
        )
        return list(result.scalars())

    async def get(self, notification_id: str) -> Notification:
        notification = await self.db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError(f"Notification with ID {notification_id} not found")
        return notification

    async def unread_count(self, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count(Notification.id))
            .where(Notification.user_id == user_id)
            .where(Notification.is_read.is_(False))
        )
        return result.scalar() or 0

    async def mark_read(self, notification_id: str) -> Notification:
        notification = await self.get(notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = self.now()
            await self.db.flush()
        return notification

    async def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification for a user as read; returns how many changed."""
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id)
            .where(Notification.is_read.is_(False))
            .values(is_read=True, read_at=self.now())
            .execution_options(synchronize_session="fetch")
        )
        logger.info(f"Marked {result.rowcount} notifications read for user {user_id}")
        return result.rowcount

    async def delete(self, notification_id: str) -> None:
        notification = await self.get(notification_id)
        await self.db.delete(notification)
        await self.db.flush()
