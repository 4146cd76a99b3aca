"""Tests for severity scoring and classification."""

import pytest

from crashdispatch.config import SeverityThresholds, get_settings
from crashdispatch.models.enums import AccidentSeverity, SeverityClassification
from crashdispatch.services.severity_scorer import (
    SOURCE_FALLBACK,
    SOURCE_RULES,
    SOURCE_VISION,
    EvidenceFacts,
    EvidenceSeverityScorer,
    JudgmentOutcome,
    RuleBasedSeverityScorer,
    StructuredFacts,
    classify,
    classify_severity,
    coerce_analysis,
    compute_structured_score,
    fallback_analysis,
    map_to_accident_severity,
    resolve_outcome,
)

settings = get_settings()

JUDGE_PAYLOAD = {
    "severity": 82,
    "analysis": "Head-on collision with airbag deployment",
    "detectedInjuries": ["head trauma"],
    "vehicleDamage": "Both front ends crushed",
    "recommendedServices": ["police", "ambulance", "fire department"],
}


class TestStructuredScore:
    """Tests for the additive rule-based score."""

    def test_scenario_a_score(self):
        """Two vehicles, one injury, heavy rain, wet road scores 55."""
        facts = StructuredFacts(
            vehicles=2, injuries=1, fatalities=0, weather="heavy rain", road_conditions="wet"
        )
        assert compute_structured_score(facts) == 55

    def test_fatalities_clamped_to_100(self):
        """Two fatalities alone reach the 100 ceiling."""
        assert compute_structured_score(StructuredFacts(fatalities=2)) == 100
        assert compute_structured_score(StructuredFacts(fatalities=5, vehicles=9)) == 100

    def test_empty_facts_score_zero(self):
        assert compute_structured_score(StructuredFacts()) == 0

    def test_condition_keywords_case_insensitive(self):
        """Snow and icy add their weights regardless of case."""
        facts = StructuredFacts(weather="Heavy SNOW", road_conditions="Icy patches")
        assert compute_structured_score(facts) == 25

    def test_rain_and_snow_both_count(self):
        facts = StructuredFacts(weather="rain turning to snow")
        assert compute_structured_score(facts) == 25

    @pytest.mark.parametrize("field", ["vehicles", "injuries", "fatalities"])
    def test_monotonic_in_each_count(self, field):
        """Raising one count never lowers the score, and it stays within 0-100."""
        previous = -1
        for count in range(0, 8):
            facts = StructuredFacts(**{"vehicles": 1, "injuries": 1, field: count})
            score = compute_structured_score(facts)
            assert 0 <= score <= 100
            assert score >= previous
            previous = score


class TestClassification:
    """Tests for threshold tables and classification."""

    @pytest.mark.parametrize(
        "score,expected",
        [
            (71, SeverityClassification.CRITICAL),
            (70, SeverityClassification.HIGH),
            (51, SeverityClassification.HIGH),
            (50, SeverityClassification.MODERATE),
            (31, SeverityClassification.MODERATE),
            (30, SeverityClassification.LOW),
            (0, SeverityClassification.LOW),
        ],
    )
    def test_structured_cut_lines_are_strict(self, score, expected):
        assert classify(score) == expected

    @pytest.mark.parametrize(
        "score,expected",
        [
            (80, AccidentSeverity.CRITICAL),
            (79, AccidentSeverity.SEVERE),
            (65, AccidentSeverity.SEVERE),
            (60, AccidentSeverity.SEVERE),
            (59, AccidentSeverity.MODERATE),
            (30, AccidentSeverity.MODERATE),
            (29, AccidentSeverity.MINOR),
        ],
    )
    def test_evidence_cut_lines_are_inclusive(self, score, expected):
        assert map_to_accident_severity(score, settings.evidence_thresholds) == expected

    def test_tables_map_same_score_differently(self):
        """A score of 55 is severe under the structured table, moderate under evidence."""
        assert (
            map_to_accident_severity(55, settings.evidence_thresholds)
            == AccidentSeverity.MODERATE
        )
        assert (
            map_to_accident_severity(55, settings.structured_thresholds)
            == AccidentSeverity.SEVERE
        )

    def test_custom_thresholds(self):
        table = SeverityThresholds(critical=90, high=40, moderate=10)
        assert classify(45, table) == SeverityClassification.HIGH
        assert classify(90, table) == SeverityClassification.HIGH
        assert classify(91, table) == SeverityClassification.CRITICAL


class TestClassifySeverity:
    """Tests for the pure classify_severity operation."""

    def test_scenario_a(self):
        result = classify_severity(
            StructuredFacts(
                vehicles=2, injuries=1, weather="heavy rain", road_conditions="wet"
            )
        )
        assert result.severity == 55
        assert result.classification == SeverityClassification.HIGH
        assert result.requires_emergency_services is True
        assert result.recommended_services == ["police", "ambulance"]

    def test_scenario_b(self):
        result = classify_severity(StructuredFacts(fatalities=2))
        assert result.severity == 100
        assert result.classification == SeverityClassification.CRITICAL
        assert result.recommended_services == ["police", "ambulance", "fire_department"]

    def test_emergency_services_only_above_50(self):
        assert classify_severity(StructuredFacts(vehicles=5)).requires_emergency_services is False
        assert classify_severity(StructuredFacts(vehicles=6)).requires_emergency_services is True

    def test_idempotent(self):
        """Identical input always yields identical output."""
        facts = StructuredFacts(vehicles=3, injuries=2, weather="snow")
        assert classify_severity(facts) == classify_severity(facts)


class TestRuleBasedScorer:
    """Tests for RuleBasedSeverityScorer."""

    @pytest.mark.asyncio
    async def test_score_scenario_a(self):
        scorer = RuleBasedSeverityScorer()
        result = await scorer.score(
            StructuredFacts(
                vehicles=2, injuries=1, weather="heavy rain", road_conditions="wet"
            )
        )

        assert result.severity == 55
        assert result.source == SOURCE_RULES
        assert result.recommended_services == ["police", "ambulance"]
        assert result.detected_injuries == ["1 injury reported"]
        assert "heavy rain, wet" in result.analysis

    @pytest.mark.asyncio
    async def test_score_without_conditions(self):
        result = await RuleBasedSeverityScorer().score(StructuredFacts(vehicles=1))
        assert result.severity == 10
        assert result.recommended_services == []
        assert "conditions: not reported" in result.analysis


class TestCoerceAnalysis:
    """Tests for parsing judge responses."""

    def test_full_payload(self):
        result = coerce_analysis(JUDGE_PAYLOAD)
        assert result.severity == 82
        assert result.detected_injuries == ["head trauma"]
        assert result.vehicle_damage == "Both front ends crushed"
        assert result.source == SOURCE_VISION

    def test_missing_fields_default(self):
        """Every missing field takes its default."""
        result = coerce_analysis({})
        assert result.severity == 50
        assert result.analysis == "Unable to analyze"
        assert result.detected_injuries == []
        assert result.vehicle_damage == "Unknown"
        assert result.recommended_services == ["police"]

    def test_zero_score_is_kept(self):
        assert coerce_analysis({"severity": 0}).severity == 0

    def test_empty_service_list_is_kept(self):
        assert coerce_analysis({"recommendedServices": []}).recommended_services == []

    def test_numeric_string_score(self):
        assert coerce_analysis({"severity": "72.5"}).severity == 72.5

    def test_score_clamped(self):
        assert coerce_analysis({"severity": 140}).severity == 100
        assert coerce_analysis({"severity": -5}).severity == 0

    @pytest.mark.parametrize("payload", [["not", "an", "object"], "text", None])
    def test_non_object_rejected(self, payload):
        with pytest.raises(ValueError):
            coerce_analysis(payload)

    def test_non_numeric_score_rejected(self):
        with pytest.raises(ValueError):
            coerce_analysis({"severity": "very bad"})


class TestOutcomeResolution:
    """Tests for the single fallback policy."""

    def test_success_passes_through(self):
        analysis = coerce_analysis(JUDGE_PAYLOAD)
        assert resolve_outcome(JudgmentOutcome.succeeded(analysis)) is analysis

    def test_failure_uses_fallback(self):
        result = resolve_outcome(JudgmentOutcome.failed("boom"))
        assert result == fallback_analysis()
        assert result.severity == 65
        assert result.source == SOURCE_FALLBACK
        assert result.recommended_services == ["police", "ambulance"]


class TestEvidenceSeverityScorer:
    """Tests for EvidenceSeverityScorer fail-closed behavior."""

    @pytest.mark.asyncio
    async def test_judged_analysis(self, judge_factory, fetcher_factory, fetched_image):
        judge = judge_factory(payload=JUDGE_PAYLOAD)
        scorer = EvidenceSeverityScorer(
            judge=judge, fetcher=fetcher_factory([fetched_image, fetched_image]), timeout=1
        )

        result = await scorer.score(EvidenceFacts(image_refs=("http://a/1.png", "http://a/2.png")))

        assert result.severity == 82
        assert result.source == SOURCE_VISION
        assert len(judge.calls[0]) == 2

    @pytest.mark.asyncio
    async def test_unconfigured_falls_back_without_fetching(
        self, judge_factory, fetcher_factory, fetched_image
    ):
        judge = judge_factory(configured=False)
        fetcher = fetcher_factory([fetched_image])
        scorer = EvidenceSeverityScorer(judge=judge, fetcher=fetcher)

        outcome = await scorer.judge_evidence(EvidenceFacts(image_refs=("http://a/1.png",)))
        assert not outcome.ok
        assert "not configured" in outcome.failure

        result = await scorer.score(EvidenceFacts(image_refs=("http://a/1.png",)))
        assert result.severity == 65
        assert result.source == SOURCE_FALLBACK
        fetcher.fetch_all.assert_not_called()
        assert judge.calls == []

    @pytest.mark.asyncio
    async def test_all_fetches_fail_falls_back(self, judge_factory, fetcher_factory):
        judge = judge_factory(payload=JUDGE_PAYLOAD)
        scorer = EvidenceSeverityScorer(judge=judge, fetcher=fetcher_factory([]))

        result = await scorer.score(EvidenceFacts(image_refs=("http://a/1.png", "http://a/2.png")))

        assert result.severity == 65
        assert result.source == SOURCE_FALLBACK
        assert judge.calls == []

    @pytest.mark.asyncio
    async def test_partial_fetch_uses_remaining_images(
        self, judge_factory, fetcher_factory, fetched_image
    ):
        """Only the images that were fetched reach the judge."""
        judge = judge_factory(payload=JUDGE_PAYLOAD)
        scorer = EvidenceSeverityScorer(judge=judge, fetcher=fetcher_factory([fetched_image]))

        result = await scorer.score(
            EvidenceFacts(image_refs=("http://a/1.png", "http://a/gone.png", "http://a/3.png"))
        )

        assert result.source == SOURCE_VISION
        assert len(judge.calls[0]) == 1

    @pytest.mark.asyncio
    async def test_judge_error_falls_back(self, judge_factory, fetcher_factory, fetched_image):
        judge = judge_factory(error=RuntimeError("upstream 500"))
        scorer = EvidenceSeverityScorer(judge=judge, fetcher=fetcher_factory([fetched_image]))

        outcome = await scorer.judge_evidence(EvidenceFacts(image_refs=("http://a/1.png",)))
        assert outcome.failure == "RuntimeError: upstream 500"

        result = await scorer.score(EvidenceFacts(image_refs=("http://a/1.png",)))
        assert result.severity == 65

    @pytest.mark.asyncio
    async def test_malformed_response_falls_back(
        self, judge_factory, fetcher_factory, fetched_image
    ):
        judge = judge_factory(payload=["not", "an", "object"])
        scorer = EvidenceSeverityScorer(judge=judge, fetcher=fetcher_factory([fetched_image]))

        result = await scorer.score(EvidenceFacts(image_refs=("http://a/1.png",)))
        assert result.source == SOURCE_FALLBACK

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, judge_factory, fetcher_factory, fetched_image):
        judge = judge_factory(payload=JUDGE_PAYLOAD, delay=1)
        scorer = EvidenceSeverityScorer(
            judge=judge, fetcher=fetcher_factory([fetched_image]), timeout=0.01
        )

        outcome = await scorer.judge_evidence(EvidenceFacts(image_refs=("http://a/1.png",)))
        assert "timed out" in outcome.failure
