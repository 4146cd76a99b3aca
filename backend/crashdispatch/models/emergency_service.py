"""EmergencyService model, one dispatch record per service sent to an accident."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from crashdispatch.clock import utcnow
from crashdispatch.database import Base
from crashdispatch.models.enums import ServiceStatus


class EmergencyService(Base):
    """
    Dispatch record for a single emergency service.

    ``sequence`` is the dispatch priority index (police, ambulance,
    fire department) so listings never depend on insertion order.
    Lifecycle timestamps are written at most once.
    """

    __tablename__ = "emergency_services"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    accident_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("accidents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ServiceStatus.REQUESTED.value, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    service_provider: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_number: Mapped[str] = mapped_column(String(50), nullable=False)

    # Lifecycle timestamps
    dispatched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    arrived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    responder_id: Mapped[str | None] = mapped_column(String(64), index=True)
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_emergency_services_accident_seq", "accident_id", "sequence"),
        Index("ix_emergency_services_dispatched_at", "dispatched_at"),
    )

    def __repr__(self) -> str:
        return f"<EmergencyService {self.type} for {self.accident_id}: {self.status}>"
