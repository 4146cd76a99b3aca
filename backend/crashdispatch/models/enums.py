"""Enumerations shared by models, schemas and services."""

from enum import Enum


class AccidentSeverity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"


class AccidentStatus(str, Enum):
    REPORTED = "reported"
    RESPONDERS_DISPATCHED = "responders_dispatched"
    UNDER_INVESTIGATION = "under_investigation"
    ON_SCENE = "on_scene"
    RESOLVED = "resolved"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class SeverityClassification(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class ServiceType(str, Enum):
    POLICE = "police"
    AMBULANCE = "ambulance"
    FIRE_DEPARTMENT = "fire_department"
    TOW_TRUCK = "tow_truck"
    OTHER = "other"


class ServiceStatus(str, Enum):
    REQUESTED = "requested"
    DISPATCHED = "dispatched"
    EN_ROUTE = "en_route"
    ON_SCENE = "on_scene"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class NotificationType(str, Enum):
    ACCIDENT_REPORTED = "accident_reported"
    ACCIDENT_ASSIGNED = "accident_assigned"
    STATUS_UPDATE = "status_update"
    EMERGENCY_ALERT = "emergency_alert"
    SYSTEM_NOTIFICATION = "system_notification"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"
