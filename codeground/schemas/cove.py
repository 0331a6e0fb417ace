"""
Chain-of-Verification Schema
=============================

Data contracts for the four-stage self-check of a draft answer:

    1. Baseline: the draft under test
    2. Plan: VerificationQuestion per extracted claim
    3. Answer: VerificationAnswer per question, against context
    4. Synthesize: final response + Inconsistency bookkeeping

Data Flow:
    query + context (+ baseline) → ChainOfVerification → CoVeResult
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from codeground.schemas.confidence import ConfidenceValue


class AnswerType(str, Enum):
    """Expected shape of a verification answer."""
    FACTUAL = "factual"
    BOOLEAN = "boolean"
    NUMERIC = "numeric"


class Resolution(str, Enum):
    """How an inconsistency was handled in the final response."""
    REVISED = "revised"
    KEPT_ORIGINAL = "kept_original"
    REMOVED = "removed"


class VerificationQuestion(BaseModel):
    """A question generated from one claim in the baseline."""
    id: str
    question: str = Field(description="Natural-language verification question")
    target_claim: str = Field(description="Baseline substring the question targets")
    expected_answer_type: AnswerType


class VerificationAnswer(BaseModel):
    """An independent answer to a verification question."""
    question_id: str
    answer: str
    confidence: float = Field(ge=0.0, le=1.0)
    source_citation: Optional[str] = Field(
        default=None,
        description="First context line the answer was drawn from"
    )
    consistent_with_baseline: bool


class Inconsistency(BaseModel):
    """A baseline claim contradicted (or not supported) by verification."""
    question_id: str
    baseline_claim: str
    verified_claim: str
    resolution: Resolution


class ImprovementMetrics(BaseModel):
    """Summary of what verification changed."""
    claims_verified: int = Field(default=0, ge=0)
    claims_revised: int = Field(default=0, ge=0)
    confidence_improvement: float = Field(
        default=0.0, ge=-1.0, le=1.0,
        description="Mean answer confidence minus the unverified baseline prior (0.5)"
    )


class CoVeResult(BaseModel):
    """Complete output of one chain-of-verification run."""
    original_query: str
    baseline_response: str
    verification_questions: list[VerificationQuestion] = Field(default_factory=list)
    verification_answers: list[VerificationAnswer] = Field(default_factory=list)
    inconsistencies: list[Inconsistency] = Field(default_factory=list)
    final_response: str
    improvement_metrics: ImprovementMetrics = Field(default_factory=ImprovementMetrics)
    confidence: ConfidenceValue

    @property
    def was_revised(self) -> bool:
        """Whether the final response differs from the baseline."""
        return self.final_response != self.baseline_response
