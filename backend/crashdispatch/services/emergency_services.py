"""Dispatch record lifecycle: status progression, responders and reporting."""

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crashdispatch.clock import Clock, as_utc, utcnow
from crashdispatch.exceptions import InvalidTransitionError, NotFoundError
from crashdispatch.models import EmergencyService
from crashdispatch.models.enums import ServiceStatus
from crashdispatch.services.dispatch import ACTIVE_SERVICE_STATUSES

logger = logging.getLogger(__name__)

# Forward order of the service lifecycle; cancelled sits outside it
SERVICE_PROGRESSION = (
    ServiceStatus.REQUESTED,
    ServiceStatus.DISPATCHED,
    ServiceStatus.EN_ROUTE,
    ServiceStatus.ON_SCENE,
    ServiceStatus.COMPLETED,
)
TERMINAL_SERVICE_STATUSES = (ServiceStatus.COMPLETED, ServiceStatus.CANCELLED)


def can_transition(current: ServiceStatus, requested: ServiceStatus) -> bool:
    """Forward-only along the progression (skips allowed); cancel from any open state."""
    if current in TERMINAL_SERVICE_STATUSES:
        return False
    if requested == ServiceStatus.CANCELLED:
        return True
    return SERVICE_PROGRESSION.index(requested) > SERVICE_PROGRESSION.index(current)


def _not_before(value: datetime, floor: datetime | None) -> datetime:
    floor = as_utc(floor)
    if floor is not None and value < floor:
        return floor
    return value


class EmergencyServiceService:
    """Reads and lifecycle updates for emergency service dispatch records."""

    def __init__(self, db: AsyncSession, now: Clock = utcnow):
        self.db = db
        self.now = now

    async def get(self, service_id: str) -> EmergencyService:
        service = await self.db.get(EmergencyService, service_id)
        if service is None:
            raise NotFoundError(f"Emergency service with ID {service_id} not found")
        return service

    async def list_services(self, limit: int = 100, offset: int = 0) -> list[EmergencyService]:
        result = await self.db.execute(
            select(EmergencyService)
            .order_by(EmergencyService.created_at.desc(), EmergencyService.sequence)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars())

    async def by_accident(self, accident_id: str) -> list[EmergencyService]:
        """Records for one accident in dispatch priority order."""
        result = await self.db.execute(
            select(EmergencyService)
            .where(EmergencyService.accident_id == accident_id)
            .order_by(EmergencyService.sequence, EmergencyService.created_at)
        )
        return list(result.scalars())

    async def by_status(self, status: ServiceStatus) -> list[EmergencyService]:
        result = await self.db.execute(
            select(EmergencyService)
            .where(EmergencyService.status == ServiceStatus(status).value)
            .order_by(EmergencyService.created_at.desc())
        )
        return list(result.scalars())

    async def by_responder(self, responder_id: str) -> list[EmergencyService]:
        result = await self.db.execute(
            select(EmergencyService)
            .where(EmergencyService.responder_id == responder_id)
            .order_by(EmergencyService.created_at.desc())
        )
        return list(result.scalars())

    async def active(self, limit: int = 50) -> list[EmergencyService]:
        result = await self.db.execute(
            select(EmergencyService)
            .where(EmergencyService.status.in_(ACTIVE_SERVICE_STATUSES))
            .order_by(EmergencyService.dispatched_at.desc(), EmergencyService.sequence)
            .limit(limit)
        )
        return list(result.scalars())

    async def active_dispatches(self, limit: int = 50) -> list[EmergencyService]:
        """Records currently in the dispatched state, newest first."""
        result = await self.db.execute(
            select(EmergencyService)
            .where(EmergencyService.status == ServiceStatus.DISPATCHED.value)
            .order_by(EmergencyService.dispatched_at.desc(), EmergencyService.sequence)
            .limit(limit)
        )
        return list(result.scalars())

    async def pending_dispatches(self) -> list[EmergencyService]:
        """Dispatched or en route, not yet on scene."""
        result = await self.db.execute(
            select(EmergencyService)
            .where(
                EmergencyService.status.in_(
                    (ServiceStatus.DISPATCHED.value, ServiceStatus.EN_ROUTE.value)
                )
            )
            .order_by(EmergencyService.dispatched_at, EmergencyService.sequence)
        )
        return list(result.scalars())

    async def completed_dispatches(self, limit: int = 100) -> list[EmergencyService]:
        """Services that reached the scene, most recent arrivals first."""
        result = await self.db.execute(
            select(EmergencyService)
            .where(
                EmergencyService.status.in_(
                    (ServiceStatus.ON_SCENE.value, ServiceStatus.COMPLETED.value)
                )
            )
            .order_by(EmergencyService.arrived_at.desc(), EmergencyService.sequence)
            .limit(limit)
        )
        return list(result.scalars())

    async def update_status(self, service_id: str, status: ServiceStatus) -> EmergencyService:
        """
        Advance a dispatch record.

        Each lifecycle timestamp is written once, on the first entry into its
        status, and never earlier than the timestamp before it. Re-applying
        the current status changes nothing.
        """
        service = await self.get(service_id)
        current = ServiceStatus(service.status)
        requested = ServiceStatus(status)
        if requested == current:
            return service
        if not can_transition(current, requested):
            raise InvalidTransitionError("emergency service", current.value, requested.value)

        now = self.now()
        if requested == ServiceStatus.DISPATCHED and service.dispatched_at is None:
            service.dispatched_at = now
        if requested == ServiceStatus.ON_SCENE and service.arrived_at is None:
            service.arrived_at = _not_before(now, service.dispatched_at)
        if requested == ServiceStatus.COMPLETED and service.completed_at is None:
            service.completed_at = _not_before(
                now, service.arrived_at or service.dispatched_at
            )

        service.status = requested.value
        service.updated_at = now
        await self.db.flush()
        logger.info(
            f"Emergency service {service.type} for accident {service.accident_id}: "
            f"{current.value} -> {requested.value}"
        )
        return service

    async def assign_responder(self, service_id: str, responder_id: str) -> EmergencyService:
        service = await self.get(service_id)
        service.responder_id = responder_id
        service.updated_at = self.now()
        await self.db.flush()
        return service

    async def update_notes(self, service_id: str, notes: str) -> EmergencyService:
        service = await self.get(service_id)
        service.notes = notes
        service.updated_at = self.now()
        await self.db.flush()
        return service

    async def delete(self, service_id: str) -> None:
        service = await self.get(service_id)
        await self.db.delete(service)
        await self.db.flush()

    async def statistics(self) -> dict:
        """Counts plus mean dispatched-to-arrived time over records that arrived."""
        total = (await self.db.execute(select(func.count(EmergencyService.id)))).scalar() or 0
        active = (
            await self.db.execute(
                select(func.count(EmergencyService.id)).where(
                    EmergencyService.status.in_(ACTIVE_SERVICE_STATUSES)
                )
            )
        ).scalar() or 0
        completed = (
            await self.db.execute(
                select(func.count(EmergencyService.id)).where(
                    EmergencyService.status == ServiceStatus.COMPLETED.value
                )
            )
        ).scalar() or 0

        # Portable across backends: compute the durations in Python
        result = await self.db.execute(
            select(EmergencyService.dispatched_at, EmergencyService.arrived_at)
            .where(EmergencyService.dispatched_at.is_not(None))
            .where(EmergencyService.arrived_at.is_not(None))
        )
        durations = [
            (as_utc(arrived) - as_utc(dispatched)).total_seconds()
            for dispatched, arrived in result.all()
        ]

        return {
            "active": active,
            "completed": completed,
            "total": total,
            "avg_response_time_seconds": (
                sum(durations) / len(durations) if durations else None
            ),
        }
