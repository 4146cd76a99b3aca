"""
Accident intake: evidence upload, severity scoring, persistence and dispatch.

Order matters:

1. Every evidence file is validated before anything is written; one bad
   file rejects the submission and no accident is created.
2. The accident is scored once. Evidence goes to the vision scorer,
   which never raises; a submission without evidence is scored from its
   structured facts.
3. The accident is persisted at the severity mapped from that score with
   the threshold table matching the scorer that produced it.
4. Dispatch runs with the raw score, not the mapped severity.
5. If persisting or dispatching fails, the stored evidence is removed
   before the error propagates.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from crashdispatch.clock import Clock, utcnow
from crashdispatch.config import SeverityThresholds, get_settings
from crashdispatch.models import Accident
from crashdispatch.models.enums import AccidentStatus
from crashdispatch.schemas.accident import AccidentCreate
from crashdispatch.schemas.dispatch import Coordinates
from crashdispatch.services.accidents import AccidentService
from crashdispatch.services.dispatch import (
    SYSTEM_REQUESTER,
    DispatchOrchestrator,
    DispatchResult,
)
from crashdispatch.services.evidence_store import (
    EvidenceFile,
    LocalEvidenceStore,
    UploadResult,
)
from crashdispatch.services.severity_scorer import (
    EvidenceFacts,
    EvidenceSeverityScorer,
    RuleBasedSeverityScorer,
    SeverityAnalysisResult,
    StructuredFacts,
    map_to_accident_severity,
)

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class IntakeResult:
    """Everything produced by one accident submission."""

    accident: Accident
    analysis: SeverityAnalysisResult
    dispatch_result: DispatchResult
    uploaded_evidence: list[UploadResult]


class IntakePipeline:
    def __init__(
        self,
        db: AsyncSession,
        evidence_store: LocalEvidenceStore,
        evidence_scorer: EvidenceSeverityScorer,
        rule_scorer: RuleBasedSeverityScorer | None = None,
        now: Clock = utcnow,
        evidence_thresholds: SeverityThresholds | None = None,
        structured_thresholds: SeverityThresholds | None = None,
    ):
        self.db = db
        self.evidence_store = evidence_store
        self.evidence_scorer = evidence_scorer
        self.rule_scorer = rule_scorer or RuleBasedSeverityScorer()
        self.evidence_thresholds = evidence_thresholds or settings.evidence_thresholds
        self.structured_thresholds = structured_thresholds or settings.structured_thresholds
        self.accidents = AccidentService(db, now=now)
        self.orchestrator = DispatchOrchestrator(db, now=now)

    async def _score(
        self, facts: AccidentCreate, uploads: list[UploadResult]
    ) -> tuple[SeverityAnalysisResult, SeverityThresholds]:
        if uploads:
            analysis = await self.evidence_scorer.score(
                EvidenceFacts(image_refs=tuple(u.file_url for u in uploads))
            )
            return analysis, self.evidence_thresholds

        analysis = await self.rule_scorer.score(StructuredFacts.from_record(facts))
        return analysis, self.structured_thresholds

    async def submit_with_analysis(
        self,
        facts: AccidentCreate,
        evidence_files: list[EvidenceFile],
        requester_id: str | None = None,
    ) -> IntakeResult:
        """Report an accident, score it, persist it and dispatch services."""
        uploads = await self.evidence_store.validate_and_upload_all(evidence_files)

        analysis, thresholds = await self._score(facts, uploads)
        severity = map_to_accident_severity(analysis.severity, thresholds)

        try:
            accident = await self.accidents.create(
                facts,
                severity=severity,
                status=AccidentStatus.REPORTED,
                reported_by_id=facts.reported_by_id or requester_id,
            )
            logger.info(
                f"Accident {accident.report_number} scored {analysis.severity:g} "
                f"({analysis.source}) -> {severity.value}"
            )

            dispatch_result = await self.orchestrator.dispatch(
                accident.id,
                requester_id or SYSTEM_REQUESTER,
                analysis.severity,
                Coordinates(latitude=accident.latitude, longitude=accident.longitude),
            )
        except Exception:
            # Evidence never outlives a failed submission
            await self.evidence_store.discard(uploads)
            raise

        return IntakeResult(
            accident=accident,
            analysis=analysis,
            dispatch_result=dispatch_result,
            uploaded_evidence=uploads,
        )
