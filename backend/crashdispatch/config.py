"""Application configuration using Pydantic settings."""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SeverityThresholds(BaseModel):
    """
    Cut lines that split a 0-100 severity score into four ordinal levels.

    Level 3 is the most severe. With ``inclusive`` a score equal to a cut
    line falls into the upper level, otherwise it must strictly exceed it.
    """

    critical: float
    high: float
    moderate: float
    inclusive: bool = False

    def _exceeds(self, score: float, cut: float) -> bool:
        return score >= cut if self.inclusive else score > cut

    def level(self, score: float) -> int:
        """Return the ordinal level (0-3) for a score."""
        if self._exceeds(score, self.critical):
            return 3
        if self._exceeds(score, self.high):
            return 2
        if self._exceeds(score, self.moderate):
            return 1
        return 0


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/crashdispatch"

    # Vision severity analysis (unconfigured when no key is set)
    openai_api_key: str | None = None
    vision_model: str = "gpt-4o-mini"
    vision_timeout_seconds: float = 20.0
    image_fetch_timeout_seconds: float = 5.0

    # Evidence storage
    evidence_storage_dir: str = "./evidence"
    evidence_public_base_url: str = "http://localhost:8000/evidence"
    evidence_max_bytes: int = 10 * 1024 * 1024
    evidence_allowed_types: list[str] = ["image/jpeg", "image/png"]
    evidence_max_files: int = 10

    # Severity threshold tables. Structured facts and evidence scores use
    # different cut lines; keep them separate.
    structured_thresholds: SeverityThresholds = Field(
        default_factory=lambda: SeverityThresholds(
            critical=70, high=50, moderate=30, inclusive=False
        )
    )
    evidence_thresholds: SeverityThresholds = Field(
        default_factory=lambda: SeverityThresholds(
            critical=80, high=60, moderate=30, inclusive=True
        )
    )

    # Accident report numbers
    report_number_prefix: str = "ACC"
    report_number_max_attempts: int = 5

    # Dispatch
    dispatch_contact_number: str = "911"

    # API settings
    api_v1_prefix: str = "/api/v1"
    cors_origins: list[str] = ["*"]  # Restrict in production
    rate_limit_per_minute: int = 30

    # Environment
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
