"""
Citation Grounding Schema
==========================

Defines the input and output of the citation grounding pipeline:
an upstream answer generator attaches a Citation (claim + source
span) to its answer, and the pipeline decides whether the claim is
actually grounded in that span.

Design Decisions:
    - Spans are character offsets into the source document
    - Evidence strings are ordered and human-readable for auditing
    - The method that produced the verdict is always recorded

Data Flow:
    Citation + source document → CitationVerificationPipeline → GroundingResult
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class VerificationMethod(str, Enum):
    """Grounding methods, listed in fallback order."""
    EXACT_MATCH = "exact_match"
    ENTAILMENT = "entailment"
    SEMANTIC_SIMILARITY = "semantic_similarity"


class SourceSpan(BaseModel):
    """
    Character span into a source document.

    Not validated for ordering: invalid spans degrade to the whole
    document inside the pipeline instead of failing construction.
    """
    start: int
    end: int


class Citation(BaseModel):
    """
    A claim linked to a span of a source document.

    Created by the upstream answer generator; read-only here.

    Schema:
        {
          "id": "cit-1",
          "claim": "UserService extends BaseService",
          "source_document": "src/services/user.ts",
          "source_span": {"start": 120, "end": 212},
          "confidence": 0.8
        }
    """
    id: str = Field(description="Unique citation identifier")
    claim: str = Field(description="The claim being made")
    source_document: str = Field(description="Source document name or path")
    source_span: SourceSpan = Field(description="Character span in the source document")
    confidence: float = Field(
        default=1.0, ge=0.0, le=1.0,
        description="Generator's own confidence in the citation"
    )


class GroundingResult(BaseModel):
    """
    Grounding verdict for a single citation.

    Schema:
        {
          "citation": {...},
          "is_grounded": true,
          "grounding_score": 0.82,
          "evidence": ["Exact term match: \"UserService\"", ...],
          "method": "semantic_similarity"
        }
    """
    citation: Citation
    is_grounded: bool
    grounding_score: float = Field(ge=0.0, le=1.0)
    evidence: list[str] = Field(default_factory=list)
    method: VerificationMethod

    @model_validator(mode="after")
    def validate_grounded_score(self) -> "GroundingResult":
        """A grounded verdict must carry a non-zero score."""
        if self.is_grounded and self.grounding_score == 0.0:
            raise ValueError("is_grounded=True cannot co-occur with grounding_score=0")
        return self


class GroundingStats(BaseModel):
    """Running grounding counters of one pipeline instance."""
    total: int = Field(default=0, ge=0)
    grounded: int = Field(default=0, ge=0)
    accuracy: float = Field(default=0.0, ge=0.0, le=1.0)
