"""
Data Models
"""
from .schemas import (
    TargetMode,
    PersonMatch,
    VerdictLabel,
    AcquisitionOutcome,
    Query,
    SemanticTarget,
    QueryPlan,
    CandidateMetadata,
    VisionVerdict,
    TextScore,
    Candidate,
    AcquireResponse,
    AcquisitionAttempt,
    SkippedCandidate,
    AcquisitionResult,
    ProgressEvent,
)

__all__ = [
    "TargetMode",
    "PersonMatch",
    "VerdictLabel",
    "AcquisitionOutcome",
    "Query",
    "SemanticTarget",
    "QueryPlan",
    "CandidateMetadata",
    "VisionVerdict",
    "TextScore",
    "Candidate",
    "AcquireResponse",
    "AcquisitionAttempt",
    "SkippedCandidate",
    "AcquisitionResult",
    "ProgressEvent",
]
