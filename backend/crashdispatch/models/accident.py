"""Accident model, the aggregate root for a reported incident."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from crashdispatch.clock import utcnow
from crashdispatch.database import Base
from crashdispatch.models.enums import AccidentStatus


def _new_id() -> str:
    return str(uuid.uuid4())


class Accident(Base):
    """
    A reported road accident.

    Severity and status hold enum values as strings. The report number is
    assigned once at creation and never changes. ``version`` backs
    optimistic concurrency for status and assignment updates.
    """

    __tablename__ = "accidents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    report_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=AccidentStatus.REPORTED.value, index=True
    )

    # Location
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    location_address: Mapped[str] = mapped_column(String(255), nullable=False)

    # Conditions
    weather_conditions: Mapped[str | None] = mapped_column(String(100))
    road_conditions: Mapped[str | None] = mapped_column(String(100))

    # Counts
    number_of_vehicles: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    number_of_injuries: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    number_of_fatalities: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # People (opaque references owned by the user directory)
    reported_by_id: Mapped[str] = mapped_column(String(64), nullable=False)
    assigned_officer_id: Mapped[str | None] = mapped_column(String(64), index=True)

    # Timestamps
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_accidents_cursor", created_at.desc(), id.desc()),
        Index("idx_accidents_lat_lng", "latitude", "longitude"),
    )

    def __repr__(self) -> str:
        return f"<Accident {self.report_number}: {self.severity}/{self.status}>"
