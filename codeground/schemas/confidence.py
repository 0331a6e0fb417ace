"""
Confidence Value Schema
========================

A confidence value is a tagged epistemic quantity, never a bare float.
Every value carries its provenance:

    - deterministic: logically certain (1.0 or 0.0), with a reason
    - derived:       computed from named inputs via a named formula
    - measured:      empirically measured against a labelled dataset
    - bounded:       a [low, high] range with an explicit basis
    - absent:        genuinely unknown, with a reason code

Absence of evidence must surface as an explicit `absent` value rather
than a default number, so callers can tell "0.0 confident" apart
from "no idea".

Data Flow:
    Verifier → ConfidenceValue → caller aggregation / display
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from codeground.utils import clamp_unit

AbsentReason = Literal["uncalibrated", "insufficient_data", "not_applicable"]
BoundedBasis = Literal["theoretical", "literature", "formal_analysis"]


class DeterministicConfidence(BaseModel):
    """Logically certain outcome: a parse succeeded, a string matched exactly."""
    type: Literal["deterministic"] = "deterministic"
    value: Literal[0.0, 1.0] = Field(description="1.0 for success, 0.0 for failure")
    reason: str = Field(description="Why the outcome is certain, e.g. 'exact_string_match'")


class ConfidenceInput(BaseModel):
    """A named input to a derived confidence value."""
    name: str = Field(description="Input name referenced by the formula")
    confidence: ConfidenceValue = Field(description="The input's own confidence value")


class DerivedConfidence(BaseModel):
    """Computed from other confidence values via an explicit formula."""
    type: Literal["derived"] = "derived"
    value: float = Field(ge=0.0, le=1.0, description="Formula result, clamped to [0, 1]")
    formula: str = Field(description="Human-readable formula, e.g. 'avg * 0.6 + rate * 0.4'")
    inputs: list[ConfidenceInput] = Field(
        default_factory=list,
        description="Named confidence inputs that produced the value"
    )


class MeasuredConfidence(BaseModel):
    """Empirically measured from historical outcomes."""
    type: Literal["measured"] = "measured"
    value: float = Field(ge=0.0, le=1.0)
    dataset_id: str = Field(description="Dataset the measurement was taken on")
    sample_size: int = Field(ge=0)
    accuracy: float = Field(ge=0.0, le=1.0)
    ci_low: float = Field(ge=0.0, le=1.0, description="95% CI lower bound")
    ci_high: float = Field(ge=0.0, le=1.0, description="95% CI upper bound")


class BoundedConfidence(BaseModel):
    """Range estimate with an explicit basis."""
    type: Literal["bounded"] = "bounded"
    low: float = Field(ge=0.0, le=1.0)
    high: float = Field(ge=0.0, le=1.0)
    basis: BoundedBasis
    citation: str = Field(description="Paper, proof, or explicit reasoning for the bounds")

    @model_validator(mode="after")
    def validate_range(self) -> "BoundedConfidence":
        """low must not exceed high."""
        if self.low > self.high:
            raise ValueError(f"Bounded confidence: low ({self.low}) must be <= high ({self.high})")
        return self


class AbsentConfidence(BaseModel):
    """Confidence is genuinely unknown."""
    type: Literal["absent"] = "absent"
    reason: AbsentReason = "uncalibrated"


ConfidenceValue = Annotated[
    Union[
        DeterministicConfidence,
        DerivedConfidence,
        MeasuredConfidence,
        BoundedConfidence,
        AbsentConfidence,
    ],
    Field(discriminator="type"),
]

ConfidenceInput.model_rebuild()
DerivedConfidence.model_rebuild()


# ── Constructors ───────────────────────────────────────────────────

def deterministic(success: bool, reason: str) -> DeterministicConfidence:
    """Create a deterministic confidence value."""
    return DeterministicConfidence(value=1.0 if success else 0.0, reason=reason)


def derived(
    value: float,
    formula: str,
    inputs: Optional[list[ConfidenceInput]] = None,
) -> DerivedConfidence:
    """Create a derived confidence value; the value is clamped to [0, 1]."""
    return DerivedConfidence(value=clamp_unit(value), formula=formula, inputs=inputs or [])


def bounded(low: float, high: float, basis: BoundedBasis, citation: str) -> BoundedConfidence:
    """Create a bounded confidence value (raises ValidationError on a bad range)."""
    return BoundedConfidence(low=low, high=high, basis=basis, citation=citation)


def absent(reason: AbsentReason = "uncalibrated") -> AbsentConfidence:
    """Create an absent confidence value."""
    return AbsentConfidence(reason=reason)


# ── Degradation Handlers ───────────────────────────────────────────

def numeric_value(conf: ConfidenceValue) -> Optional[float]:
    """Scalar view of a confidence value: bounded → midpoint, absent → None."""
    if isinstance(conf, AbsentConfidence):
        return None
    if isinstance(conf, BoundedConfidence):
        return (conf.low + conf.high) / 2
    return float(conf.value)


def effective_value(conf: ConfidenceValue) -> float:
    """Conservative scalar: bounded → lower bound, absent → 0.0."""
    if isinstance(conf, AbsentConfidence):
        return 0.0
    if isinstance(conf, BoundedConfidence):
        return conf.low
    return float(conf.value)
