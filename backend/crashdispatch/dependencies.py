"""FastAPI dependencies for the external collaborators of the intake flow."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crashdispatch.database import get_db
from crashdispatch.services.evidence_store import LocalEvidenceStore
from crashdispatch.services.intake import IntakePipeline
from crashdispatch.services.severity_scorer import EvidenceSeverityScorer
from crashdispatch.services.vision_client import ImageFetcher, OpenAIVisionJudge


@lru_cache
def get_vision_judge() -> OpenAIVisionJudge:
    """One judge (and one OpenAI client) per process."""
    return OpenAIVisionJudge()


@lru_cache
def get_evidence_store() -> LocalEvidenceStore:
    return LocalEvidenceStore()


def get_image_fetcher() -> ImageFetcher:
    return ImageFetcher()


def get_evidence_scorer(
    judge: Annotated[OpenAIVisionJudge, Depends(get_vision_judge)],
    fetcher: Annotated[ImageFetcher, Depends(get_image_fetcher)],
) -> EvidenceSeverityScorer:
    return EvidenceSeverityScorer(judge=judge, fetcher=fetcher)


def get_intake_pipeline(
    db: Annotated[AsyncSession, Depends(get_db)],
    evidence_store: Annotated[LocalEvidenceStore, Depends(get_evidence_store)],
    evidence_scorer: Annotated[EvidenceSeverityScorer, Depends(get_evidence_scorer)],
) -> IntakePipeline:
    return IntakePipeline(db, evidence_store, evidence_scorer)
