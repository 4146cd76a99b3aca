"""Pydantic schemas for notifications."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from crashdispatch.models.enums import NotificationPriority, NotificationType


class NotificationOut(BaseModel):
    """Notification response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority
    accident_id: str | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


class UnreadCount(BaseModel):
    user_id: str
    unread: int


class MarkAllReadResult(BaseModel):
    user_id: str
    updated: int
