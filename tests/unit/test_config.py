"""
Configuration Tests
====================

Tests for defaults, environment and YAML overrides, validation and
the reproducibility hash.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from codeground.config import CitationConfig, CodegroundConfig, CoVeConfig, get_config
from codeground.schemas.citation import VerificationMethod
from codeground.verify.cove import ChainOfVerification


class TestDefaults:
    def test_defaults(self, config):
        assert config.ast.line_tolerance == 3
        assert config.ast.enable_fuzzy_matching is True
        assert config.citation.grounding_threshold == 0.6
        assert config.citation.preferred_method == VerificationMethod.SEMANTIC_SIMILARITY
        assert config.citation.enable_fallback is True
        assert config.cove.max_verification_questions == 10
        assert config.cove.parallel_answers is False
        assert config.log_level == "INFO"


class TestOverrides:
    def test_environment(self, monkeypatch):
        monkeypatch.setenv("CODEGROUND_CITATION__GROUNDING_THRESHOLD", "0.8")
        monkeypatch.setenv("CODEGROUND_CITATION__PREFERRED_METHOD", "exact_match")
        monkeypatch.setenv("CODEGROUND_LOG_LEVEL", "DEBUG")
        cfg = CodegroundConfig()
        assert cfg.citation.grounding_threshold == 0.8
        assert cfg.citation.preferred_method == VerificationMethod.EXACT_MATCH
        assert cfg.log_level == "DEBUG"

    def test_yaml(self, tmp_path):
        path = tmp_path / "strict.yaml"
        path.write_text(
            "citation:\n"
            "  grounding_threshold: 0.75\n"
            "  enable_fallback: false\n"
            "cove:\n"
            "  parallel_answers: true\n"
            "ast:\n"
            "  line_tolerance: 1\n",
            encoding="utf-8",
        )
        cfg = get_config(str(path))
        assert cfg.citation.grounding_threshold == 0.75
        assert cfg.citation.enable_fallback is False
        assert cfg.cove.parallel_answers is True
        assert cfg.ast.line_tolerance == 1
        # untouched sections keep their defaults
        assert cfg.cove.max_verification_questions == 10

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert get_config(str(path)) == CodegroundConfig()


class TestValidation:
    @pytest.mark.parametrize("kwargs", [
        {"grounding_threshold": 1.5},
        {"grounding_threshold": -0.1},
        {"preferred_method": "fuzzy"},
    ])
    def test_citation_config(self, kwargs):
        with pytest.raises(ValidationError):
            CitationConfig(**kwargs)

    def test_question_cap_must_be_positive(self):
        with pytest.raises(ValidationError):
            CoVeConfig(max_verification_questions=0)


class TestConfigHash:
    def test_stable(self):
        assert CodegroundConfig().config_hash() == CodegroundConfig().config_hash()
        assert len(CodegroundConfig().config_hash()) == 16

    def test_changes_with_thresholds(self):
        strict = CodegroundConfig(citation=CitationConfig(grounding_threshold=0.9))
        assert strict.config_hash() != CodegroundConfig().config_hash()


class TestReservedFields:
    def test_defaults_present(self, config):
        assert config.cove.min_confidence_threshold == 0.5
        assert config.cove.hedging_threshold == 0.6

    def test_hedging_threshold_does_not_change_synthesis(self):
        args = ("Does Parser extend BaseNode?", ["Implement hooks carefully."], "Parser extends BaseNode.")
        default = ChainOfVerification().verify(*args)
        tuned = ChainOfVerification(CoVeConfig(hedging_threshold=0.9, min_confidence_threshold=0.1)).verify(*args)
        assert tuned.final_response == default.final_response == "possibly parser extends BaseNode."
