"""API routes for severity classification and evidence analysis."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from crashdispatch.dependencies import get_evidence_scorer
from crashdispatch.schemas.severity import (
    AnalyzeEvidenceRequest,
    ClassifySeverityRequest,
    ClassifySeverityResponse,
    SeverityAnalysisOut,
)
from crashdispatch.services.severity_scorer import (
    EvidenceFacts,
    EvidenceSeverityScorer,
    StructuredFacts,
    classify_severity,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/severity", tags=["severity"])


@router.post("/classify", response_model=ClassifySeverityResponse)
async def classify(data: ClassifySeverityRequest) -> ClassifySeverityResponse:
    """Rule-based classification of reported counts and conditions. No side effects."""
    result = classify_severity(StructuredFacts.from_record(data))
    return ClassifySeverityResponse.model_validate(result)


@router.post("/analyze", response_model=SeverityAnalysisOut)
async def analyze_evidence(
    data: AnalyzeEvidenceRequest,
    scorer: Annotated[EvidenceSeverityScorer, Depends(get_evidence_scorer)],
) -> SeverityAnalysisOut:
    """
    Score already-hosted evidence images.

    Always answers: when the vision capability is unavailable or fails the
    fixed fallback analysis is returned with ``source`` set to ``fallback``.
    """
    analysis = await scorer.score(EvidenceFacts(image_refs=tuple(data.image_urls)))
    logger.info(
        f"Evidence analysis for accident {data.accident_id or '(unlinked)'}: "
        f"{len(data.image_urls)} image(s) scored {analysis.severity:g} ({analysis.source})"
    )
    return SeverityAnalysisOut.model_validate(analysis)
