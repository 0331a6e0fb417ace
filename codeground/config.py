"""
Codeground Configuration System
================================

Central configuration using Pydantic Settings. Supports:
- Environment variables (CODEGROUND_ prefix, ``__`` for nested fields)
- .env file loading
- YAML config file overrides

The config produces a deterministic hash so that verification runs
can be tied back to the exact thresholds that produced them.

Usage:
    from codeground.config import get_config
    cfg = get_config()                        # loads from env / .env
    cfg = get_config("configs/strict.yaml")   # loads with YAML overrides
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from codeground.schemas.citation import VerificationMethod
from codeground.utils import compute_hash


# ── Sub-configs ────────────────────────────────────────────────────
class ASTVerifierConfig(BaseModel):
    """Configuration for line / symbol reference verification."""
    line_tolerance: int = Field(
        default=3, ge=0,
        description="Lines either side of a cited line searched for the expected content"
    )
    enable_fuzzy_matching: bool = Field(
        default=True,
        description="Accept containment (either direction) as a content match"
    )
    verification_threshold: float = Field(
        default=0.5, ge=0.0, le=1.0,
        description="Reference accuracy needed for verified=True"
    )


class CitationConfig(BaseModel):
    """Configuration for the citation grounding pipeline."""
    grounding_threshold: float = Field(
        default=0.6, ge=0.0, le=1.0,
        description="Claim is grounded if grounding_score >= grounding_threshold"
    )
    preferred_method: VerificationMethod = Field(
        default=VerificationMethod.SEMANTIC_SIMILARITY,
        description="Method tried first"
    )
    enable_fallback: bool = Field(
        default=True,
        description="Retry with the other methods when the preferred one does not ground"
    )
    exact_match_weight: float = Field(
        default=0.7, ge=0.0, le=1.0,
        description="Weight of word-boundary term matches in semantic similarity"
    )


class CoVeConfig(BaseModel):
    """Configuration for the chain-of-verification engine."""
    max_verification_questions: int = Field(
        default=10, ge=1,
        description="Cap on planned verification questions"
    )
    min_confidence_threshold: float = Field(
        default=0.5, ge=0.0, le=1.0,
        description="Reserved; resolution bands are fixed at 0.7 (revise) and 0.4 (hedge)"
    )
    add_hedging_for_low_confidence: bool = Field(
        default=True,
        description="Hedge sentences whose correction has medium confidence"
    )
    hedging_threshold: float = Field(
        default=0.6, ge=0.0, le=1.0,
        description="Reserved; hedging applies to answers with confidence in [0.4, 0.7)"
    )
    parallel_answers: bool = Field(
        default=False,
        description="Answer verification questions on a thread pool"
    )


# ── Main Config ────────────────────────────────────────────────────
class CodegroundConfig(BaseSettings):
    """
    Root configuration for Codeground.

    Loads from environment variables (CODEGROUND_ prefix) and .env file.
    Can be extended with YAML overrides via `get_config(yaml_path)`.

    Example:
        export CODEGROUND_LOG_LEVEL=DEBUG
        export CODEGROUND_CITATION__GROUNDING_THRESHOLD=0.7
    """
    model_config = SettingsConfigDict(
        env_prefix="CODEGROUND_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="Log format: 'json' or 'text'")

    ast: ASTVerifierConfig = Field(default_factory=ASTVerifierConfig)
    citation: CitationConfig = Field(default_factory=CitationConfig)
    cove: CoVeConfig = Field(default_factory=CoVeConfig)

    def config_hash(self) -> str:
        """
        Produce a deterministic SHA-256 hash of the configuration.

        Two runs with the same hash applied the same thresholds.
        """
        return compute_hash(self.model_dump(mode="json"))


# ── Config Loading ─────────────────────────────────────────────────
def get_config(yaml_path: Optional[str] = None) -> CodegroundConfig:
    """
    Load Codeground configuration.

    Priority (highest to lowest):
        1. Values from the YAML file (if provided)
        2. Environment variables (CODEGROUND_ prefix)
        3. .env file
        4. Default values

    Args:
        yaml_path: Optional path to a YAML config file for overrides.

    Returns:
        Fully resolved CodegroundConfig instance.
    """
    if yaml_path:
        import yaml
        with open(yaml_path, encoding="utf-8") as f:
            overrides = yaml.safe_load(f) or {}
        return CodegroundConfig(**overrides)
    return CodegroundConfig()
