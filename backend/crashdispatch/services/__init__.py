"""Accident intake, severity scoring and dispatch services."""

from crashdispatch.services.accidents import AccidentService
from crashdispatch.services.dispatch import DispatchOrchestrator, DispatchResult
from crashdispatch.services.emergency_services import EmergencyServiceService
from crashdispatch.services.evidence_store import EvidenceFile, LocalEvidenceStore
from crashdispatch.services.intake import IntakePipeline, IntakeResult
from crashdispatch.services.notifications import NotificationService
from crashdispatch.services.severity_scorer import (
    EvidenceSeverityScorer,
    RuleBasedSeverityScorer,
    classify_severity,
)

__all__ = [
    "AccidentService",
    "DispatchOrchestrator",
    "DispatchResult",
    "EmergencyServiceService",
    "EvidenceFile",
    "EvidenceSeverityScorer",
    "IntakePipeline",
    "IntakeResult",
    "LocalEvidenceStore",
    "NotificationService",
    "RuleBasedSeverityScorer",
    "classify_severity",
]
