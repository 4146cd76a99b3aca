"""Notification model for dispatch alerts sent to users."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from crashdispatch.clock import utcnow
from crashdispatch.database import Base
from crashdispatch.models.enums import NotificationPriority


class Notification(Base):
    """User-facing notification. Only the read flag changes after creation."""

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(
        String(10), nullable=False, default=NotificationPriority.MEDIUM.value
    )

    accident_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("accidents.id", ondelete="CASCADE"), index=True
    )

    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Notification {self.type} -> {self.user_id}: {self.title}>"
