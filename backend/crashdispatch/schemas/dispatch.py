"""Pydantic schemas for dispatch records and dispatch results."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from crashdispatch.models.enums import ServiceStatus, ServiceType
from crashdispatch.schemas.notification import NotificationOut


class Coordinates(BaseModel):
    """Geographic coordinates."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class EmergencyServiceOut(BaseModel):
    """Dispatch record response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    accident_id: str
    type: ServiceType
    status: ServiceStatus
    sequence: int
    service_provider: str
    contact_number: str

    dispatched_at: datetime | None = None
    arrived_at: datetime | None = None
    completed_at: datetime | None = None

    responder_id: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class DispatchResultOut(BaseModel):
    """Records written by one dispatch call."""

    model_config = ConfigDict(from_attributes=True)

    services: list[EmergencyServiceOut]
    already_active: list[EmergencyServiceOut] = []
    notification: NotificationOut
    dispatch_time: datetime


class ManualDispatchRequest(BaseModel):
    """Manual dispatch request from an officer or responder."""

    accident_id: str
    user_id: str
    severity: float = Field(..., ge=0, le=100)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class ServiceStatusUpdate(BaseModel):
    status: ServiceStatus


class ResponderAssignment(BaseModel):
    responder_id: str = Field(..., min_length=1)


class ServiceNotesUpdate(BaseModel):
    notes: str


class DispatchStatistics(BaseModel):
    """Aggregate dispatch counts and response time."""

    active: int
    completed: int
    total: int
    avg_response_time_seconds: float | None = None
