"""Pydantic schemas for accidents."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from crashdispatch.models.enums import AccidentSeverity, AccidentStatus
from crashdispatch.schemas.dispatch import DispatchResultOut
from crashdispatch.schemas.severity import SeverityAnalysisOut


class AccidentCreate(BaseModel):
    """Facts submitted when an accident is reported."""

    description: str = Field(..., min_length=1)
    severity: AccidentSeverity | None = None

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    location_address: str = Field(..., min_length=1, max_length=255)
    occurred_at: datetime | None = None

    weather_conditions: str | None = Field(None, max_length=100)
    road_conditions: str | None = Field(None, max_length=100)

    number_of_vehicles: int = Field(0, ge=0)
    number_of_injuries: int = Field(0, ge=0)
    number_of_fatalities: int = Field(0, ge=0)

    reported_by_id: str | None = None


class AccidentUpdate(BaseModel):
    """Editable accident facts. Report number, status and severity are not editable here."""

    description: str | None = Field(None, min_length=1)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    location_address: str | None = Field(None, min_length=1, max_length=255)
    occurred_at: datetime | None = None
    weather_conditions: str | None = Field(None, max_length=100)
    road_conditions: str | None = Field(None, max_length=100)
    number_of_vehicles: int | None = Field(None, ge=0)
    number_of_injuries: int | None = Field(None, ge=0)
    number_of_fatalities: int | None = Field(None, ge=0)

    @field_validator(
        "description",
        "latitude",
        "longitude",
        "location_address",
        "occurred_at",
        "number_of_vehicles",
        "number_of_injuries",
        "number_of_fatalities",
    )
    @classmethod
    def not_null(cls, value):
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError("may be omitted but not set to null")
        return value


class AccidentStatusUpdate(BaseModel):
    status: AccidentStatus


class OfficerAssignment(BaseModel):
    officer_id: str = Field(..., min_length=1)


class AccidentOut(BaseModel):
    """Accident response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    report_number: str
    description: str
    severity: AccidentSeverity
    status: AccidentStatus

    latitude: float
    longitude: float
    location_address: str

    weather_conditions: str | None = None
    road_conditions: str | None = None
    number_of_vehicles: int
    number_of_injuries: int
    number_of_fatalities: int

    reported_by_id: str
    assigned_officer_id: str | None = None

    occurred_at: datetime
    resolved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class UploadedEvidenceOut(BaseModel):
    """Stored evidence file metadata."""

    model_config = ConfigDict(from_attributes=True)

    file_url: str
    file_name: str
    file_size: int
    mime_type: str


class AccidentIntakeResponse(BaseModel):
    """Result of reporting an accident with severity analysis and dispatch."""

    model_config = ConfigDict(from_attributes=True)

    accident: AccidentOut
    analysis: SeverityAnalysisOut
    dispatch_result: DispatchResultOut
    uploaded_evidence: list[UploadedEvidenceOut]


class CountByValue(BaseModel):
    value: str
    count: int


class AccidentStatistics(BaseModel):
    """Aggregate accident counts."""

    total: int
    by_status: list[CountByValue]
    by_severity: list[CountByValue]
    total_vehicles: int
    total_injuries: int
    total_fatalities: int


class AccidentSummary(BaseModel):
    """Narrative accident summary."""

    accident_id: str
    report_number: str
    summary: str
    key_points: list[str]
