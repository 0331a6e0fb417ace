"""
Consistency Check Schema
=========================

Data contracts for cross-paraphrase consistency checking: a question
is asked several equivalent ways, each answer is reduced to a list of
normalized facts, and conflicting fact sets become violations.

Data Flow:
    base query → QuerySet → answer provider → ConsistencyAnswer[]
        → ConsistencyChecker → ConsistencyViolation | None → ConsistencyReport
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ConflictType(str, Enum):
    """Kinds of disagreement between answers, in detection priority order."""
    DIRECT_CONTRADICTION = "direct_contradiction"
    PARTIAL_CONFLICT = "partial_conflict"
    MISSING_FACT = "missing_fact"
    EXTRA_FACT = "extra_fact"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class QueryVariant(BaseModel):
    """One phrasing of a question."""
    id: str
    query: str
    is_canonical: bool = False


class QuerySet(BaseModel):
    """A canonical question plus its paraphrases (canonical included)."""
    canonical_query: str
    variants: list[QueryVariant] = Field(default_factory=list)
    topic: str = Field(default="", description="Label used in reports")

    @property
    def paraphrases(self) -> list[QueryVariant]:
        """Variants other than the canonical one."""
        return [v for v in self.variants if not v.is_canonical]


class ConsistencyAnswer(BaseModel):
    """An answer to one variant, with its extracted facts."""
    query_id: str
    query: str
    answer: str
    extracted_facts: list[str] = Field(default_factory=list)


class ConsistencyViolation(BaseModel):
    """Two answers to equivalent questions that disagree."""
    query_set_topic: str = ""
    canonical_query: str = ""
    conflicting_answers: list[ConsistencyAnswer] = Field(min_length=2)
    conflict_type: ConflictType
    severity: Severity
    explanation: str


class ViolationSummary(BaseModel):
    """Per-type violation counts."""
    direct_contradictions: int = 0
    partial_conflicts: int = 0
    missing_facts: int = 0
    extra_facts: int = 0


class ConsistencyReport(BaseModel):
    """Result of checking a batch of query sets."""
    total_query_sets: int = Field(default=0, ge=0)
    consistent_sets: int = Field(default=0, ge=0)
    inconsistent_sets: int = Field(default=0, ge=0)
    consistency_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    violations: list[ConsistencyViolation] = Field(default_factory=list)
    summary: ViolationSummary = Field(default_factory=ViolationSummary)
