"""Pydantic schemas for API request/response validation."""

from crashdispatch.schemas.accident import (
    AccidentCreate,
    AccidentIntakeResponse,
    AccidentOut,
    AccidentStatistics,
    AccidentSummary,
    AccidentUpdate,
)
from crashdispatch.schemas.dispatch import (
    Coordinates,
    DispatchResultOut,
    DispatchStatistics,
    EmergencyServiceOut,
    ManualDispatchRequest,
)
from crashdispatch.schemas.notification import NotificationOut
from crashdispatch.schemas.severity import (
    ClassifySeverityRequest,
    ClassifySeverityResponse,
    SeverityAnalysisOut,
)

__all__ = [
    "AccidentCreate",
    "AccidentIntakeResponse",
    "AccidentOut",
    "AccidentStatistics",
    "AccidentSummary",
    "AccidentUpdate",
    "ClassifySeverityRequest",
    "ClassifySeverityResponse",
    "Coordinates",
    "DispatchResultOut",
    "DispatchStatistics",
    "EmergencyServiceOut",
    "ManualDispatchRequest",
    "NotificationOut",
    "SeverityAnalysisOut",
]
