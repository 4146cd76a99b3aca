"""Pydantic schemas for severity classification and analysis."""

from pydantic import BaseModel, ConfigDict, Field

from crashdispatch.models.enums import SeverityClassification


class ClassifySeverityRequest(BaseModel):
    """Structured accident facts for rule-based classification."""

    description: str | None = None
    number_of_vehicles: int = Field(0, ge=0)
    number_of_injuries: int = Field(0, ge=0)
    number_of_fatalities: int = Field(0, ge=0)
    weather_conditions: str | None = None
    road_conditions: str | None = None


class ClassifySeverityResponse(BaseModel):
    """Rule-based severity classification."""

    model_config = ConfigDict(from_attributes=True)

    severity: float
    classification: SeverityClassification
    requires_emergency_services: bool
    recommended_services: list[str]


class AnalyzeEvidenceRequest(BaseModel):
    """Hosted evidence images to judge."""

    image_urls: list[str] = Field(..., min_length=1, max_length=10)
    accident_id: str | None = None


class SeverityAnalysisOut(BaseModel):
    """Severity analysis produced once per intake."""

    model_config = ConfigDict(from_attributes=True)

    severity: float
    analysis: str
    detected_injuries: list[str]
    vehicle_damage: str
    recommended_services: list[str]
    source: str
