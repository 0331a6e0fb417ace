"""
Codeground Data Schemas
========================

Pydantic v2 models for the verdicts returned by the four verifiers:

1. ConfidenceValue: tagged epistemic confidence (deterministic/derived/...)
2. ClaimVerificationResult: AST-anchored line/symbol reference check
3. GroundingResult: citation grounding verdict
4. CoVeResult: chain-of-verification run
5. ConsistencyReport: cross-paraphrase consistency check

All schemas support:
- Runtime validation with Pydantic (scores range-checked to [0, 1])
- Serialization with ``model_dump(mode="json")`` for audit trails
"""

from codeground.schemas.confidence import (
    AbsentConfidence,
    BoundedConfidence,
    ConfidenceInput,
    ConfidenceValue,
    DerivedConfidence,
    DeterministicConfidence,
    MeasuredConfidence,
)
from codeground.schemas.references import (
    ClaimVerificationResult,
    IssueType,
    LineReference,
    VerificationIssue,
    VerificationStats,
)
from codeground.schemas.citation import (
    Citation,
    GroundingResult,
    GroundingStats,
    SourceSpan,
    VerificationMethod,
)
from codeground.schemas.cove import (
    AnswerType,
    CoVeResult,
    ImprovementMetrics,
    Inconsistency,
    Resolution,
    VerificationAnswer,
    VerificationQuestion,
)
from codeground.schemas.consistency import (
    ConflictType,
    ConsistencyAnswer,
    ConsistencyReport,
    ConsistencyViolation,
    QuerySet,
    QueryVariant,
    Severity,
    ViolationSummary,
)

__all__ = [
    # Confidence
    "AbsentConfidence",
    "BoundedConfidence",
    "ConfidenceInput",
    "ConfidenceValue",
    "DerivedConfidence",
    "DeterministicConfidence",
    "MeasuredConfidence",
    # References
    "ClaimVerificationResult",
    "IssueType",
    "LineReference",
    "VerificationIssue",
    "VerificationStats",
    # Citation
    "Citation",
    "GroundingResult",
    "GroundingStats",
    "SourceSpan",
    "VerificationMethod",
    # CoVe
    "AnswerType",
    "CoVeResult",
    "ImprovementMetrics",
    "Inconsistency",
    "Resolution",
    "VerificationAnswer",
    "VerificationQuestion",
    # Consistency
    "ConflictType",
    "ConsistencyAnswer",
    "ConsistencyReport",
    "ConsistencyViolation",
    "QuerySet",
    "QueryVariant",
    "Severity",
    "ViolationSummary",
]
