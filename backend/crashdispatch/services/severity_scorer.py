"""
Severity scoring for accident intake.

Both scorers honour one contract, ``await scorer.score(facts)`` returning a
``SeverityAnalysisResult`` with a 0-100 score:

- ``RuleBasedSeverityScorer`` scores structured facts (counts, weather,
  road conditions) with a fixed additive formula.
- ``EvidenceSeverityScorer`` asks a vision judge to score evidence images.
  It never raises: every failure becomes a ``JudgmentOutcome`` carrying the
  reason, and ``resolve_outcome`` substitutes the fixed fallback analysis.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from crashdispatch.config import SeverityThresholds, get_settings
from crashdispatch.models.enums import AccidentSeverity, SeverityClassification
from crashdispatch.services.service_selector import select_services
from crashdispatch.services.vision_client import ImageFetcher, OpenAIVisionJudge

logger = logging.getLogger(__name__)
settings = get_settings()

SOURCE_RULES = "rules"
SOURCE_VISION = "vision"
SOURCE_FALLBACK = "fallback"

_SEVERITY_LEVELS = (
    AccidentSeverity.MINOR,
    AccidentSeverity.MODERATE,
    AccidentSeverity.SEVERE,
    AccidentSeverity.CRITICAL,
)
_CLASSIFICATION_LEVELS = (
    SeverityClassification.LOW,
    SeverityClassification.MODERATE,
    SeverityClassification.HIGH,
    SeverityClassification.CRITICAL,
)


@dataclass(frozen=True)
class StructuredFacts:
    """Counts and conditions reported for an accident."""

    vehicles: int = 0
    injuries: int = 0
    fatalities: int = 0
    weather: str | None = None
    road_conditions: str | None = None

    @classmethod
    def from_record(cls, record: object) -> "StructuredFacts":
        """Read facts off anything with the accident count/condition attributes."""
        return cls(
            vehicles=getattr(record, "number_of_vehicles", 0) or 0,
            injuries=getattr(record, "number_of_injuries", 0) or 0,
            fatalities=getattr(record, "number_of_fatalities", 0) or 0,
            weather=getattr(record, "weather_conditions", None),
            road_conditions=getattr(record, "road_conditions", None),
        )


@dataclass(frozen=True)
class EvidenceFacts:
    """Evidence images as URLs or raw bytes."""

    image_refs: tuple[str | bytes, ...] = ()


@dataclass
class SeverityAnalysisResult:
    """Score and narrative produced once per intake."""

    severity: float
    analysis: str
    detected_injuries: list[str] = field(default_factory=list)
    vehicle_damage: str = "Unknown"
    recommended_services: list[str] = field(default_factory=list)
    source: str = SOURCE_RULES


@dataclass(frozen=True)
class SeverityClassificationResult:
    """Pure classification of structured facts."""

    severity: float
    classification: SeverityClassification
    requires_emergency_services: bool
    recommended_services: list[str]


@dataclass(frozen=True)
class JudgmentOutcome:
    """Either a parsed analysis or the reason the judge could not produce one."""

    analysis: SeverityAnalysisResult | None = None
    failure: str | None = None

    @classmethod
    def succeeded(cls, analysis: SeverityAnalysisResult) -> "JudgmentOutcome":
        return cls(analysis=analysis)

    @classmethod
    def failed(cls, reason: str) -> "JudgmentOutcome":
        return cls(failure=reason)

    @property
    def ok(self) -> bool:
        return self.analysis is not None


def fallback_analysis() -> SeverityAnalysisResult:
    """Fixed result used whenever the vision judge cannot score evidence."""
    return SeverityAnalysisResult(
        severity=65,
        analysis="Moderate collision detected with visible vehicle damage",
        detected_injuries=["possible minor injuries"],
        vehicle_damage="Front-end damage visible",
        recommended_services=["police", "ambulance"],
        source=SOURCE_FALLBACK,
    )


def resolve_outcome(outcome: JudgmentOutcome) -> SeverityAnalysisResult:
    """Fallback policy: use the judged analysis, otherwise the fixed fallback."""
    if outcome.analysis is not None:
        return outcome.analysis
    logger.warning(f"Severity analysis falling back to default result: {outcome.failure}")
    return fallback_analysis()


def clamp_score(score: float) -> float:
    return max(0, min(100, score))


def compute_structured_score(facts: StructuredFacts) -> int:
    """Additive rule-based score clamped to [0, 100]."""
    score = facts.vehicles * 10 + facts.injuries * 20 + facts.fatalities * 50

    weather = (facts.weather or "").lower()
    if "rain" in weather:
        score += 10
    if "snow" in weather:
        score += 15

    road = (facts.road_conditions or "").lower()
    if "wet" in road:
        score += 5
    if "icy" in road:
        score += 10

    return int(clamp_score(score))


def classify(
    score: float, thresholds: SeverityThresholds | None = None
) -> SeverityClassification:
    """Step function over the structured threshold table (strict > 70/50/30)."""
    thresholds = thresholds or settings.structured_thresholds
    return _CLASSIFICATION_LEVELS[thresholds.level(score)]


def map_to_accident_severity(
    score: float, thresholds: SeverityThresholds
) -> AccidentSeverity:
    """Map a 0-100 score onto the accident severity enum with the given table."""
    return _SEVERITY_LEVELS[thresholds.level(score)]


def requires_emergency_services(
    score: float, thresholds: SeverityThresholds | None = None
) -> bool:
    thresholds = thresholds or settings.structured_thresholds
    return thresholds.level(score) >= 2


def classify_severity(
    facts: StructuredFacts, thresholds: SeverityThresholds | None = None
) -> SeverityClassificationResult:
    """Score and classify structured facts. Pure; no side effects."""
    score = compute_structured_score(facts)
    return SeverityClassificationResult(
        severity=score,
        classification=classify(score, thresholds),
        requires_emergency_services=requires_emergency_services(score, thresholds),
        recommended_services=[s.value for s in select_services(score)],
    )


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


class RuleBasedSeverityScorer:
    """Scores structured facts with the additive formula."""

    def __init__(self, thresholds: SeverityThresholds | None = None):
        self.thresholds = thresholds or settings.structured_thresholds

    async def score(self, facts: StructuredFacts) -> SeverityAnalysisResult:
        score = compute_structured_score(facts)
        classification = classify(score, self.thresholds)

        conditions = ", ".join(
            c for c in (facts.weather, facts.road_conditions) if c
        ) or "not reported"
        analysis = (
            f"Rule-based assessment ({classification.value}): "
            f"{_plural(facts.vehicles, 'vehicle', 'vehicles')}, "
            f"{_plural(facts.injuries, 'injury', 'injuries')}, "
            f"{_plural(facts.fatalities, 'fatality', 'fatalities')}; "
            f"conditions: {conditions}"
        )

        detected_injuries = []
        if facts.injuries:
            detected_injuries.append(f"{_plural(facts.injuries, 'injury', 'injuries')} reported")
        if facts.fatalities:
            detected_injuries.append(
                f"{_plural(facts.fatalities, 'fatality', 'fatalities')} reported"
            )

        return SeverityAnalysisResult(
            severity=score,
            analysis=analysis,
            detected_injuries=detected_injuries,
            vehicle_damage=f"{_plural(facts.vehicles, 'vehicle', 'vehicles')} involved",
            recommended_services=[s.value for s in select_services(score)],
            source=SOURCE_RULES,
        )


def _as_text(value: object, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _as_text_list(value: object, default: list[str]) -> list[str]:
    if value is None:
        return list(default)
    if not isinstance(value, list):
        return list(default)
    return [str(item).strip() for item in value if str(item).strip()]


def coerce_analysis(payload: object) -> SeverityAnalysisResult:
    """
    Build an analysis from a parsed judge response.

    Missing fields take defaults (score 50, "Unable to analyze", no injuries,
    "Unknown" damage, police). A non-object payload or a non-numeric score
    raises ValueError.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")

    raw_score = payload.get("severity")
    if raw_score is None or raw_score == "":
        score = 50.0
    elif isinstance(raw_score, bool):
        raise ValueError("Severity must be numeric")
    else:
        score = float(raw_score)

    return SeverityAnalysisResult(
        severity=clamp_score(score),
        analysis=_as_text(payload.get("analysis"), "Unable to analyze"),
        detected_injuries=_as_text_list(payload.get("detectedInjuries"), []),
        vehicle_damage=_as_text(payload.get("vehicleDamage"), "Unknown"),
        recommended_services=_as_text_list(payload.get("recommendedServices"), ["police"]),
        source=SOURCE_VISION,
    )


class EvidenceSeverityScorer:
    """
    Scores evidence images through a vision judge.

    Images that cannot be fetched are skipped. The scorer only falls back
    when the judge is unconfigured, no image could be fetched, or the
    judgment call fails, times out or returns something unparseable.
    """

    def __init__(
        self,
        judge: OpenAIVisionJudge | None = None,
        fetcher: ImageFetcher | None = None,
        timeout: float = settings.vision_timeout_seconds,
    ):
        self.judge = judge or OpenAIVisionJudge()
        self.fetcher = fetcher or ImageFetcher()
        self.timeout = timeout

    async def judge_evidence(self, facts: EvidenceFacts) -> JudgmentOutcome:
        if not self.judge.available():
            return JudgmentOutcome.failed("vision capability not configured")

        images = await self.fetcher.fetch_all(list(facts.image_refs))
        if not images:
            return JudgmentOutcome.failed(
                f"none of {len(facts.image_refs)} evidence images could be fetched"
            )

        try:
            payload = await asyncio.wait_for(self.judge.judge(images), timeout=self.timeout)
            return JudgmentOutcome.succeeded(coerce_analysis(payload))
        except asyncio.TimeoutError:
            return JudgmentOutcome.failed(f"vision judgment timed out after {self.timeout}s")
        except Exception as e:
            return JudgmentOutcome.failed(f"{type(e).__name__}: {e}")

    async def score(self, facts: EvidenceFacts) -> SeverityAnalysisResult:
        logger.info(f"Analyzing {len(facts.image_refs)} evidence images for severity")
        return resolve_outcome(await self.judge_evidence(facts))
