"""Accident records: creation, lookup, lifecycle and reporting."""

import logging
import math
import secrets
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from crashdispatch.clock import Clock, utcnow
from crashdispatch.config import get_settings
from crashdispatch.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from crashdispatch.models import Accident, EmergencyService, Notification
from crashdispatch.models.enums import AccidentSeverity, AccidentStatus
from crashdispatch.schemas.accident import AccidentCreate, AccidentUpdate
from crashdispatch.services.severity_scorer import (
    StructuredFacts,
    compute_structured_score,
    map_to_accident_severity,
)

logger = logging.getLogger(__name__)
settings = get_settings()

EARTH_RADIUS_KM = 6371.0

ACCIDENT_TRANSITIONS: dict[AccidentStatus, frozenset[AccidentStatus]] = {
    AccidentStatus.REPORTED: frozenset({
        AccidentStatus.RESPONDERS_DISPATCHED,
        AccidentStatus.UNDER_INVESTIGATION,
        AccidentStatus.CANCELLED,
        AccidentStatus.CLOSED,
    }),
    AccidentStatus.RESPONDERS_DISPATCHED: frozenset({
        AccidentStatus.ON_SCENE,
        AccidentStatus.UNDER_INVESTIGATION,
        AccidentStatus.CANCELLED,
        AccidentStatus.CLOSED,
    }),
    AccidentStatus.UNDER_INVESTIGATION: frozenset({
        AccidentStatus.ON_SCENE,
        AccidentStatus.RESOLVED,
        AccidentStatus.CANCELLED,
        AccidentStatus.CLOSED,
    }),
    AccidentStatus.ON_SCENE: frozenset({
        AccidentStatus.RESOLVED,
        AccidentStatus.CANCELLED,
        AccidentStatus.CLOSED,
    }),
    AccidentStatus.RESOLVED: frozenset({AccidentStatus.CLOSED}),
    AccidentStatus.CLOSED: frozenset(),
    AccidentStatus.CANCELLED: frozenset(),
}

INACTIVE_ACCIDENT_STATUSES = (AccidentStatus.CLOSED.value, AccidentStatus.CANCELLED.value)


def generate_report_number(prefix: str, now: datetime) -> str:
    """``PREFIX-YEAR-NNNNNN`` with a random zero-padded six digit suffix."""
    return f"{prefix}-{now.year}-{secrets.randbelow(1_000_000):06d}"


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


class AccidentService:
    """CRUD and lifecycle operations on accidents."""

    def __init__(
        self,
        db: AsyncSession,
        now: Clock = utcnow,
        report_number_prefix: str = settings.report_number_prefix,
        max_attempts: int = settings.report_number_max_attempts,
    ):
        self.db = db
        self.now = now
        self.report_number_prefix = report_number_prefix
        self.max_attempts = max_attempts

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except StaleDataError as e:
            raise ConflictError(
                "Accident was modified concurrently; reload and retry"
            ) from e

    async def _report_number_taken(self, report_number: str) -> bool:
        result = await self.db.execute(
            select(Accident.id).where(Accident.report_number == report_number)
        )
        return result.first() is not None

    async def create(
        self,
        data: AccidentCreate,
        severity: AccidentSeverity | None = None,
        status: AccidentStatus = AccidentStatus.REPORTED,
        reported_by_id: str | None = None,
    ) -> Accident:
        """
        Persist a new accident under a freshly allocated report number.

        Without an explicit severity the submitted one is used, falling back
        to the rule-based score of the submitted facts.
        """
        if severity is None:
            severity = data.severity or map_to_accident_severity(
                compute_structured_score(StructuredFacts.from_record(data)),
                settings.structured_thresholds,
            )

        now = self.now()
        for attempt in range(1, self.max_attempts + 1):
            report_number = generate_report_number(self.report_number_prefix, now)
            if await self._report_number_taken(report_number):
                logger.warning(
                    f"Report number {report_number} already taken (attempt {attempt})"
                )
                continue

            accident = Accident(
                report_number=report_number,
                description=data.description,
                severity=AccidentSeverity(severity).value,
                status=AccidentStatus(status).value,
                latitude=data.latitude,
                longitude=data.longitude,
                location_address=data.location_address,
                occurred_at=data.occurred_at or now,
                weather_conditions=data.weather_conditions,
                road_conditions=data.road_conditions,
                number_of_vehicles=data.number_of_vehicles,
                number_of_injuries=data.number_of_injuries,
                number_of_fatalities=data.number_of_fatalities,
                reported_by_id=reported_by_id or data.reported_by_id or "system",
                created_at=now,
                updated_at=now,
            )
            try:
                async with self.db.begin_nested():
                    self.db.add(accident)
                    await self.db.flush()
            except IntegrityError:
                logger.warning(
                    f"Report number {report_number} collided on insert (attempt {attempt})"
                )
                continue

            logger.info(f"Created accident {report_number} ({accident.severity})")
            return accident

        raise ConflictError(
            f"Could not allocate a unique report number after {self.max_attempts} attempts"
        )

    async def get(self, accident_id: str) -> Accident:
        accident = await self.db.get(Accident, accident_id)
        if accident is None:
            raise NotFoundError(f"Accident with ID {accident_id} not found")
        return accident

    async def get_by_report_number(self, report_number: str) -> Accident:
        result = await self.db.execute(
            select(Accident).where(Accident.report_number == report_number)
        )
        accident = result.scalar_one_or_none()
        if accident is None:
            raise NotFoundError(f"Accident with report number {report_number} not found")
        return accident

    async def list_accidents(
        self,
        status: AccidentStatus | None = None,
        severity: AccidentSeverity | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Accident]:
        query = select(Accident).order_by(Accident.created_at.desc(), Accident.id.desc())
        if status is not None:
            query = query.where(Accident.status == AccidentStatus(status).value)
        if severity is not None:
            query = query.where(Accident.severity == AccidentSeverity(severity).value)
        result = await self.db.execute(query.limit(limit).offset(offset))
        return list(result.scalars())

    async def list_by_officer(self, officer_id: str) -> list[Accident]:
        result = await self.db.execute(
            select(Accident)
            .where(Accident.assigned_officer_id == officer_id)
            .order_by(Accident.created_at.desc())
        )
        return list(result.scalars())

    async def update(self, accident_id: str, data: AccidentUpdate) -> Accident:
        accident = await self.get(accident_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(accident, key, value)
        accident.updated_at = self.now()
        await self._flush()
        return accident

    async def assign_officer(self, accident_id: str, officer_id: str) -> Accident:
        accident = await self.get(accident_id)
        accident.assigned_officer_id = officer_id
        accident.updated_at = self.now()
        await self._flush()
        logger.info(f"Assigned officer {officer_id} to accident {accident.report_number}")
        return accident

    async def update_status(self, accident_id: str, status: AccidentStatus) -> Accident:
        """
        Move an accident along its lifecycle.

        Re-applying the current status is a no-op. ``resolved_at`` is set
        once, on the first entry into resolved or closed.
        """
        accident = await self.get(accident_id)
        current = AccidentStatus(accident.status)
        requested = AccidentStatus(status)
        if requested == current:
            return accident
        if requested not in ACCIDENT_TRANSITIONS[current]:
            raise InvalidTransitionError("accident", current.value, requested.value)

        now = self.now()
        accident.status = requested.value
        if (
            requested in (AccidentStatus.RESOLVED, AccidentStatus.CLOSED)
            and accident.resolved_at is None
        ):
            accident.resolved_at = now
        accident.updated_at = now
        await self._flush()
        logger.info(
            f"Accident {accident.report_number} status {current.value} -> {requested.value}"
        )
        return accident

    async def delete(self, accident_id: str) -> None:
        """Delete an accident and the dispatch records and notifications created from it."""
        accident = await self.get(accident_id)
        await self.db.execute(
            delete(Notification).where(Notification.accident_id == accident_id)
        )
        await self.db.execute(
            delete(EmergencyService).where(EmergencyService.accident_id == accident_id)
        )
        await self.db.delete(accident)
        await self._flush()
        logger.info(f"Deleted accident {accident.report_number}")

    async def statistics(self) -> dict:
        total = (await self.db.execute(select(func.count(Accident.id)))).scalar() or 0

        by_status = await self.db.execute(
            select(Accident.status, func.count(Accident.id))
            .group_by(Accident.status)
            .order_by(Accident.status)
        )
        by_severity = await self.db.execute(
            select(Accident.severity, func.count(Accident.id))
            .group_by(Accident.severity)
            .order_by(Accident.severity)
        )
        totals = (
            await self.db.execute(
                select(
                    func.coalesce(func.sum(Accident.number_of_vehicles), 0),
                    func.coalesce(func.sum(Accident.number_of_injuries), 0),
                    func.coalesce(func.sum(Accident.number_of_fatalities), 0),
                )
            )
        ).one()

        return {
            "total": total,
            "by_status": [{"value": v, "count": c} for v, c in by_status.all()],
            "by_severity": [{"value": v, "count": c} for v, c in by_severity.all()],
            "total_vehicles": int(totals[0]),
            "total_injuries": int(totals[1]),
            "total_fatalities": int(totals[2]),
        }

    async def summary(self, accident_id: str) -> dict:
        accident = await self.get(accident_id)
        weather = accident.weather_conditions or "not reported"
        road = accident.road_conditions or "not reported"

        summary = (
            f"Accident reported at {accident.location_address}. "
            f"Severity: {accident.severity}. "
            f"{accident.number_of_vehicles} vehicle(s) involved. "
            f"{accident.number_of_injuries} injury/injuries reported. "
            f"{accident.number_of_fatalities} fatality/fatalities reported. "
            f"Weather conditions: {weather}. "
            f"Road conditions: {road}."
        )
        key_points = [
            f"Location: {accident.location_address}",
            f"Severity: {accident.severity}",
            f"Vehicles: {accident.number_of_vehicles}",
            f"Injuries: {accident.number_of_injuries}",
        ]
        if accident.number_of_fatalities:
            key_points.append(f"Fatalities: {accident.number_of_fatalities}")

        return {
            "accident_id": accident.id,
            "report_number": accident.report_number,
            "summary": summary,
            "key_points": key_points,
        }

    async def nearby(
        self, latitude: float, longitude: float, radius_km: float = 5.0
    ) -> list[Accident]:
        """Open accidents within ``radius_km`` of a point, newest first."""
        lat_delta = math.degrees(radius_km / EARTH_RADIUS_KM)
        cos_lat = max(math.cos(math.radians(latitude)), 1e-6)
        lng_delta = min(180.0, lat_delta / cos_lat)

        # Bounding box in SQL, exact great-circle distance in Python
        result = await self.db.execute(
            select(Accident)
            .where(Accident.status.not_in(INACTIVE_ACCIDENT_STATUSES))
            .where(Accident.latitude.between(latitude - lat_delta, latitude + lat_delta))
            .where(Accident.longitude.between(longitude - lng_delta, longitude + lng_delta))
            .order_by(Accident.created_at.desc())
        )
        return [
            accident
            for accident in result.scalars()
            if haversine_km(latitude, longitude, accident.latitude, accident.longitude)
            <= radius_km
        ]
