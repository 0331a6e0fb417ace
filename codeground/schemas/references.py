"""
Line Reference Schema
======================

Data contracts for AST-anchored reference verification: a claim cites
one or more file/line locations (optionally with the expected line
content), and the verifier reports how accurate those citations are.

Design Decisions:
    - Line numbers are 1-based, as shown in editors and stack traces
    - Issues are typed so callers can render or filter them mechanically
    - verified=True with accuracy 0 is rejected at construction time

Data Flow:
    Claim + LineReference[] → ASTClaimVerifier → ClaimVerificationResult
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class IssueType(str, Enum):
    """
    Failure modes for a cited reference.

    - LINE_MISMATCH:   line out of range, non-positive, or beyond tolerance
    - FILE_MISSING:    referenced path absent or unreadable
    - CONTENT_CHANGED: the cited line no longer carries the expected content
    """
    LINE_MISMATCH = "line_mismatch"
    FILE_MISSING = "file_missing"
    CONTENT_CHANGED = "content_changed"


class LineReference(BaseModel):
    """A reference to a specific (1-based) line in a file."""
    file_path: str = Field(description="Path of the referenced file")
    line_number: int = Field(description="1-based line number (validated by the verifier, not here)")
    content: Optional[str] = Field(
        default=None,
        description="Expected content at this line, if the claim quoted it"
    )


class VerificationIssue(BaseModel):
    """A typed problem found while checking a reference."""
    type: IssueType
    details: str = Field(description="Human-readable description of the issue")


class ClaimVerificationResult(BaseModel):
    """
    Outcome of verifying the references behind one claim.

    Schema:
        {
          "claim": "parse_config is defined at config.py:12",
          "references": [{"file_path": "config.py", "line_number": 12}],
          "verified": true,
          "accuracy": 1.0,
          "issues": []
        }
    """
    claim: str
    references: list[LineReference] = Field(default_factory=list)
    verified: bool = False
    accuracy: float = Field(default=0.0, ge=0.0, le=1.0)
    issues: list[VerificationIssue] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_verified_accuracy(self) -> "ClaimVerificationResult":
        """A verified claim must have non-zero accuracy."""
        if self.verified and self.accuracy == 0.0:
            raise ValueError("verified=True cannot co-occur with accuracy=0")
        return self

    def issues_of(self, issue_type: IssueType) -> list[VerificationIssue]:
        """Issues of one type, in the order they were found."""
        return [i for i in self.issues if i.type == issue_type]

    @property
    def has_missing_file(self) -> bool:
        """Whether any referenced file could not be read."""
        return any(i.type == IssueType.FILE_MISSING for i in self.issues)


class VerificationStats(BaseModel):
    """Running counters of one verifier instance."""
    total: int = Field(default=0, ge=0)
    verified: int = Field(default=0, ge=0)
    accuracy: float = Field(default=0.0, ge=0.0, le=1.0)
