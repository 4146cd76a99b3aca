"""Database models."""

from crashdispatch.models.accident import Accident
from crashdispatch.models.emergency_service import EmergencyService
from crashdispatch.models.enums import (
    AccidentSeverity,
    AccidentStatus,
    NotificationPriority,
    NotificationType,
    ServiceStatus,
    ServiceType,
    SeverityClassification,
)
from crashdispatch.models.notification import Notification

__all__ = [
    "Accident",
    "AccidentSeverity",
    "AccidentStatus",
    "EmergencyService",
    "Notification",
    "NotificationPriority",
    "NotificationType",
    "ServiceStatus",
    "ServiceType",
    "SeverityClassification",
]
