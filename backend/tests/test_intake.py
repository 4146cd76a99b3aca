"""Tests for the accident intake pipeline."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from crashdispatch.exceptions import ConflictError, InvalidInputError
from crashdispatch.models import Accident, EmergencyService
from crashdispatch.models.enums import AccidentSeverity, AccidentStatus, NotificationPriority
from crashdispatch.services.evidence_store import EvidenceFile
from crashdispatch.services.intake import IntakePipeline
from crashdispatch.services.severity_scorer import (
    SOURCE_FALLBACK,
    SOURCE_RULES,
    SOURCE_VISION,
    EvidenceSeverityScorer,
)


def _pipeline(db_session, evidence_store, judge, fetcher, clock) -> IntakePipeline:
    scorer = EvidenceSeverityScorer(judge=judge, fetcher=fetcher, timeout=1)
    return IntakePipeline(db_session, evidence_store, scorer, now=clock)


async def _accident_count(db_session) -> int:
    return (await db_session.execute(select(func.count(Accident.id)))).scalar()


class TestIntakeWithoutEvidence:
    """Submissions without evidence are scored from their structured facts."""

    @pytest.mark.asyncio
    async def test_scenario_a(
        self, db_session, evidence_store, judge_factory, fetcher_factory, clock, scenario_a_facts
    ):
        judge = judge_factory(configured=True, payload={"severity": 99})
        pipeline = _pipeline(db_session, evidence_store, judge, fetcher_factory(), clock)

        result = await pipeline.submit_with_analysis(scenario_a_facts, [], "user-1")

        assert result.analysis.severity == 55
        assert result.analysis.source == SOURCE_RULES
        assert result.accident.severity == AccidentSeverity.SEVERE.value
        assert result.accident.status == AccidentStatus.REPORTED.value
        assert result.accident.reported_by_id == "user-1"
        assert [s.type for s in result.dispatch_result.services] == ["police", "ambulance"]
        assert result.dispatch_result.notification.priority == NotificationPriority.HIGH.value
        assert result.uploaded_evidence == []
        assert judge.calls == []

    @pytest.mark.asyncio
    async def test_scenario_b(
        self, db_session, evidence_store, judge_factory, fetcher_factory, clock, scenario_b_facts
    ):
        pipeline = _pipeline(
            db_session, evidence_store, judge_factory(configured=False), fetcher_factory(), clock
        )

        result = await pipeline.submit_with_analysis(scenario_b_facts, [], None)

        assert result.analysis.severity == 100
        assert result.accident.severity == AccidentSeverity.CRITICAL.value
        assert [s.type for s in result.dispatch_result.services] == [
            "police",
            "ambulance",
            "fire_department",
        ]
        assert result.dispatch_result.notification.priority == NotificationPriority.URGENT.value
        assert result.dispatch_result.notification.user_id == "system"
        assert result.accident.reported_by_id == "system"


class TestIntakeWithEvidence:
    """Submissions with evidence are scored by the vision judge."""

    @pytest.mark.asyncio
    async def test_judged_score_drives_severity_and_dispatch(
        self,
        db_session,
        evidence_store,
        judge_factory,
        fetcher_factory,
        fetched_image,
        clock,
        scenario_a_facts,
        png_file,
    ):
        judge = judge_factory(payload={"severity": 85, "analysis": "Rollover"})
        fetcher = fetcher_factory([fetched_image])
        pipeline = _pipeline(db_session, evidence_store, judge, fetcher, clock)

        result = await pipeline.submit_with_analysis(scenario_a_facts, [png_file], "user-1")

        assert result.analysis.source == SOURCE_VISION
        assert result.accident.severity == AccidentSeverity.CRITICAL.value
        assert len(result.dispatch_result.services) == 3

        assert len(result.uploaded_evidence) == 1
        upload = result.uploaded_evidence[0]
        assert upload.file_url.startswith("http://test/evidence/accidents/")
        assert upload.mime_type == "image/png"

        # The judge is fed from the stored evidence locations
        fetched_refs = fetcher.fetch_all.call_args[0][0]
        assert fetched_refs == [upload.file_url]

    @pytest.mark.asyncio
    async def test_scenario_c_all_fetches_fail(
        self,
        db_session,
        evidence_store,
        judge_factory,
        fetcher_factory,
        clock,
        scenario_b_facts,
        png_file,
    ):
        """Fallback score 65 maps to severe and still dispatches police and ambulance."""
        judge = judge_factory(payload={"severity": 10})
        pipeline = _pipeline(db_session, evidence_store, judge, fetcher_factory([]), clock)

        result = await pipeline.submit_with_analysis(scenario_b_facts, [png_file, png_file], "u-9")

        assert result.analysis.source == SOURCE_FALLBACK
        assert result.analysis.severity == 65
        assert result.accident.severity == AccidentSeverity.SEVERE.value
        assert [s.type for s in result.dispatch_result.services] == ["police", "ambulance"]
        assert result.dispatch_result.notification.message.endswith("Severity: 65/100")
        assert judge.calls == []

    @pytest.mark.asyncio
    async def test_unconfigured_judge_uses_fallback(
        self,
        db_session,
        evidence_store,
        judge_factory,
        fetcher_factory,
        fetched_image,
        clock,
        scenario_a_facts,
        png_file,
    ):
        pipeline = _pipeline(
            db_session,
            evidence_store,
            judge_factory(configured=False),
            fetcher_factory([fetched_image]),
            clock,
        )

        result = await pipeline.submit_with_analysis(scenario_a_facts, [png_file], "user-1")

        assert result.analysis.source == SOURCE_FALLBACK
        assert result.accident.severity == AccidentSeverity.SEVERE.value


class TestIntakeValidation:
    """A rejected evidence file aborts the submission before anything is written."""

    @pytest.mark.asyncio
    async def test_bad_type_creates_nothing(
        self,
        db_session,
        evidence_store,
        judge_factory,
        fetcher_factory,
        clock,
        scenario_a_facts,
        png_file,
        tmp_path,
    ):
        bad = EvidenceFile(filename="clip.gif", content_type="image/gif", data=b"GIF89a")
        pipeline = _pipeline(
            db_session, evidence_store, judge_factory(), fetcher_factory(), clock
        )

        with pytest.raises(InvalidInputError, match="Invalid file type"):
            await pipeline.submit_with_analysis(scenario_a_facts, [png_file, bad], "user-1")

        assert await _accident_count(db_session) == 0
        assert (
            await db_session.execute(select(func.count(EmergencyService.id)))
        ).scalar() == 0
        assert list(tmp_path.rglob("*.png")) == []

    @pytest.mark.asyncio
    async def test_too_many_files(
        self,
        db_session,
        evidence_store,
        judge_factory,
        fetcher_factory,
        clock,
        scenario_a_facts,
        png_file,
    ):
        pipeline = _pipeline(
            db_session, evidence_store, judge_factory(), fetcher_factory(), clock
        )

        with pytest.raises(InvalidInputError, match="Too many evidence files"):
            await pipeline.submit_with_analysis(scenario_a_facts, [png_file] * 4, "user-1")

        assert await _accident_count(db_session) == 0


class TestIntakeFailure:
    """Stored evidence is removed when the accident cannot be saved or dispatched."""

    @pytest.mark.asyncio
    async def test_dispatch_failure_discards_evidence(
        self,
        db_session,
        evidence_store,
        judge_factory,
        fetcher_factory,
        clock,
        scenario_a_facts,
        png_file,
        tmp_path,
    ):
        pipeline = _pipeline(
            db_session, evidence_store, judge_factory(configured=False), fetcher_factory(), clock
        )
        pipeline.orchestrator.dispatch = AsyncMock(side_effect=RuntimeError("database unavailable"))

        with pytest.raises(RuntimeError, match="database unavailable"):
            await pipeline.submit_with_analysis(scenario_a_facts, [png_file, png_file], "user-1")

        assert pipeline.orchestrator.dispatch.await_count == 1
        assert list(tmp_path.rglob("*.png")) == []

    @pytest.mark.asyncio
    async def test_create_failure_discards_evidence(
        self,
        db_session,
        evidence_store,
        judge_factory,
        fetcher_factory,
        clock,
        scenario_a_facts,
        png_file,
        tmp_path,
    ):
        pipeline = _pipeline(
            db_session, evidence_store, judge_factory(configured=False), fetcher_factory(), clock
        )
        pipeline.accidents.create = AsyncMock(
            side_effect=ConflictError("Could not allocate a unique report number after 5 attempts")
        )

        with pytest.raises(ConflictError):
            await pipeline.submit_with_analysis(scenario_a_facts, [png_file], "user-1")

        assert list(tmp_path.rglob("*.png")) == []
