"""
Codeground Grounding Engine
============================

Wires the four verifiers from one configuration:

    answer draft ──► ChainOfVerification          (self-check + revision)
    citations    ──► CitationVerificationPipeline (claim ↔ source span)
    query        ──► ConsistencyChecker           (paraphrase agreement)
    file refs    ──► ASTClaimVerifier             (lines / symbols exist)

The engine performs no I/O of its own; each component is used directly
through its attribute. Callers aggregate the returned verdicts.

Usage:
    from codeground.engine import GroundingEngine

    engine = GroundingEngine.from_config()
    result = engine.citations.verify(citation, source_text)
    print(engine.stats_snapshot())
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from codeground.config import CodegroundConfig, get_config
from codeground.utils import setup_logging
from codeground.verify.ast_verifier import ASTClaimVerifier
from codeground.verify.citation import CitationVerificationPipeline
from codeground.verify.consistency import ConsistencyChecker
from codeground.verify.cove import ChainOfVerification
from codeground.verify.symbols import SymbolProvider

logger = logging.getLogger("codeground.engine")


class GroundingEngine:
    """
    Facade over the four grounding components.

    Attributes:
        references:   ASTClaimVerifier
        citations:    CitationVerificationPipeline
        cove:         ChainOfVerification
        consistency:  ConsistencyChecker
    """

    def __init__(
        self,
        config: Optional[CodegroundConfig] = None,
        symbol_provider: Optional[SymbolProvider] = None,
    ):
        self.config = config or CodegroundConfig()
        self.references = ASTClaimVerifier.from_config(self.config, symbol_provider=symbol_provider)
        self.citations = CitationVerificationPipeline.from_config(self.config)
        self.cove = ChainOfVerification.from_config(self.config)
        self.consistency = ConsistencyChecker()
        logger.info(f"Grounding engine ready (config {self.config.config_hash()})")

    @classmethod
    def from_config(
        cls,
        yaml_path: Optional[str] = None,
        symbol_provider: Optional[SymbolProvider] = None,
    ) -> "GroundingEngine":
        """Create an engine from a YAML file and/or the environment, applying its logging settings."""
        config = get_config(yaml_path)
        setup_logging(config.log_level, config.log_format)
        return cls(config, symbol_provider=symbol_provider)

    def stats_snapshot(self) -> dict[str, Any]:
        """Running statistics of all four components, JSON-serializable."""
        return {
            "config_hash": self.config.config_hash(),
            "references": self.references.get_verification_stats().model_dump(mode="json"),
            "citations": self.citations.get_grounding_stats().model_dump(mode="json"),
            "cove": self.cove.get_verification_stats().model_dump(mode="json"),
            "consistency": self.consistency.get_verification_stats().model_dump(mode="json"),
        }
