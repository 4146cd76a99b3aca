"""Dispatch orchestration: emergency service records plus one notification."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crashdispatch.clock import Clock, utcnow
from crashdispatch.config import get_settings
from crashdispatch.models import EmergencyService, Notification
from crashdispatch.models.enums import NotificationType, ServiceStatus, ServiceType
from crashdispatch.schemas.dispatch import Coordinates
from crashdispatch.services.service_selector import (
    dispatch_sequence,
    notification_priority,
    select_services,
    service_provider_for,
)

logger = logging.getLogger(__name__)
settings = get_settings()

SYSTEM_REQUESTER = "system"

ACTIVE_SERVICE_STATUSES = (
    ServiceStatus.REQUESTED.value,
    ServiceStatus.DISPATCHED.value,
    ServiceStatus.EN_ROUTE.value,
    ServiceStatus.ON_SCENE.value,
)


@dataclass
class DispatchResult:
    """Records written by one dispatch call, all stamped with ``dispatch_time``."""

    services: list[EmergencyService]
    notification: Notification
    dispatch_time: datetime
    already_active: list[EmergencyService] = field(default_factory=list)


def format_score(score: float) -> str:
    return f"{score:g}/100"


def build_dispatch_message(
    dispatched: list[str], already_active: list[str], score: float
) -> str:
    if dispatched:
        message = (
            "Emergency services have been dispatched to your accident location. "
            f"Services: {', '.join(dispatched)}. Estimated arrival: 5-10 minutes."
        )
    elif already_active:
        message = (
            "Emergency services are already responding to your accident. "
            f"Services: {', '.join(already_active)}."
        )
    else:
        message = "No emergency services were automatically dispatched for this accident."
    return f"{message} Severity: {format_score(score)}"


class DispatchOrchestrator:
    """
    Turns a severity score into dispatch records and a notification.

    One call writes N service records (N from ``select_services``) and
    exactly one notification inside a single savepoint; a failed write
    rolls the whole batch back and propagates. A selected service type
    that already has an active record for the accident is reported in
    ``already_active`` instead of being dispatched twice.
    """

    def __init__(
        self,
        db: AsyncSession,
        now: Clock = utcnow,
        contact_number: str = settings.dispatch_contact_number,
    ):
        self.db = db
        self.now = now
        self.contact_number = contact_number

    async def _active_by_type(self, accident_id: str) -> dict[str, EmergencyService]:
        result = await self.db.execute(
            select(EmergencyService)
            .where(EmergencyService.accident_id == accident_id)
            .where(EmergencyService.status.in_(ACTIVE_SERVICE_STATUSES))
            .order_by(EmergencyService.sequence, EmergencyService.created_at)
        )
        active: dict[str, EmergencyService] = {}
        for service in result.scalars():
            active.setdefault(service.type, service)
        return active

    def _build_service(
        self,
        accident_id: str,
        service_type: ServiceType,
        score: float,
        location: Coordinates | None,
        dispatch_time: datetime,
    ) -> EmergencyService:
        return EmergencyService(
            accident_id=accident_id,
            type=service_type.value,
            status=ServiceStatus.DISPATCHED.value,
            sequence=dispatch_sequence(service_type),
            service_provider=service_provider_for(service_type, location),
            contact_number=self.contact_number,
            dispatched_at=dispatch_time,
            notes=f"Auto-dispatched based on severity analysis: {format_score(score)}",
            created_at=dispatch_time,
            updated_at=dispatch_time,
        )

    async def dispatch(
        self,
        accident_id: str,
        requester_id: str | None,
        severity: float,
        location: Coordinates | None = None,
    ) -> DispatchResult:
        dispatch_time = self.now()
        selected = select_services(severity)
        requester_id = requester_id or SYSTEM_REQUESTER

        logger.info(
            f"Dispatching for accident {accident_id} at severity {format_score(severity)}: "
            f"{[s.value for s in selected] or 'no services'}"
        )

        services: list[EmergencyService] = []
        already_active: list[EmergencyService] = []

        try:
            async with self.db.begin_nested():
                active = await self._active_by_type(accident_id) if selected else {}

                for service_type in selected:
                    existing = active.get(service_type.value)
                    if existing is not None:
                        already_active.append(existing)
                        continue

                    service = self._build_service(
                        accident_id, service_type, severity, location, dispatch_time
                    )
                    self.db.add(service)
                    await self.db.flush()
                    services.append(service)

                notification = Notification(
                    user_id=requester_id,
                    accident_id=accident_id,
                    type=NotificationType.EMERGENCY_ALERT.value,
                    title="Emergency Services Dispatched",
                    message=build_dispatch_message(
                        [s.type for s in services],
                        [s.type for s in already_active],
                        severity,
                    ),
                    priority=notification_priority(severity).value,
                    is_read=False,
                    created_at=dispatch_time,
                )
                self.db.add(notification)
                await self.db.flush()
        except Exception:
            logger.error(
                f"Dispatch failed for accident {accident_id}; batch rolled back",
                exc_info=True,
            )
            raise

        if already_active:
            logger.info(
                f"Accident {accident_id} already has active "
                f"{[s.type for s in already_active]}; not dispatched again"
            )

        return DispatchResult(
            services=services,
            notification=notification,
            dispatch_time=dispatch_time,
            already_active=already_active,
        )
