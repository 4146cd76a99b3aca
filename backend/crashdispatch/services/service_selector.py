"""Maps a severity score to the emergency services to dispatch."""

from crashdispatch.models.enums import NotificationPriority, ServiceType
from crashdispatch.schemas.dispatch import Coordinates

# Record-creation order when several services are selected.
DISPATCH_PRIORITY: tuple[ServiceType, ...] = (
    ServiceType.POLICE,
    ServiceType.AMBULANCE,
    ServiceType.FIRE_DEPARTMENT,
)

SERVICE_PROVIDERS: dict[ServiceType, str] = {
    ServiceType.POLICE: "Local Police Department",
    ServiceType.AMBULANCE: "Emergency Medical Services",
    ServiceType.FIRE_DEPARTMENT: "City Fire Department",
    ServiceType.TOW_TRUCK: "Roadside Assistance",
}
DEFAULT_PROVIDER = "Emergency Services"


def select_services(score: float) -> list[ServiceType]:
    """
    Services to auto-dispatch for a 0-100 severity score.

    Above 70 everything goes out, above 50 police and ambulance, above 30
    police only. At 30 or below nothing is dispatched automatically.
    """
    if score > 70:
        return list(DISPATCH_PRIORITY)
    if score > 50:
        return [ServiceType.POLICE, ServiceType.AMBULANCE]
    if score > 30:
        return [ServiceType.POLICE]
    return []


def dispatch_sequence(service_type: ServiceType) -> int:
    """Position of a service type in dispatch priority order."""
    try:
        return DISPATCH_PRIORITY.index(ServiceType(service_type))
    except ValueError:
        return len(DISPATCH_PRIORITY)


def service_provider_for(
    service_type: ServiceType, location: Coordinates | None = None
) -> str:
    """Provider name for a service type. Location is reserved for geo-routing."""
    return SERVICE_PROVIDERS.get(ServiceType(service_type), DEFAULT_PROVIDER)


def notification_priority(score: float) -> NotificationPriority:
    """Notification priority for the severity score used at dispatch time."""
    if score > 70:
        return NotificationPriority.URGENT
    if score > 50:
        return NotificationPriority.HIGH
    return NotificationPriority.MEDIUM
