"""
Grounding Engine Integration Tests
===================================

Drives all four components through one engine built from a YAML
config, the way a caller would after drafting an answer about a
codebase.
"""

from __future__ import annotations

import json
import logging

import pytest

from codeground.engine import GroundingEngine
from codeground.schemas.citation import VerificationMethod
from codeground.utils import compute_hash
from codeground.verify.symbols import StaticSymbolProvider, SymbolKind, SymbolLocation
from tests.conftest import TS_SOURCE, make_citation, make_reference


@pytest.fixture
def engine(tmp_path):
    path = tmp_path / "engine.yaml"
    path.write_text(
        "citation:\n"
        "  preferred_method: entailment\n"
        "cove:\n"
        "  max_verification_questions: 4\n",
        encoding="utf-8",
    )
    yield GroundingEngine.from_config(str(path))
    _reset_logging()


def _reset_logging() -> None:
    logger = logging.getLogger("codeground")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.mark.integration
class TestGroundingEngine:
    def test_config_reaches_components(self, engine):
        assert engine.citations.config.preferred_method == VerificationMethod.ENTAILMENT
        assert engine.cove.config.max_verification_questions == 4
        assert engine.references.config.line_tolerance == 3

    def test_answer_about_a_codebase(self, engine, ts_file):
        """One drafted answer, checked by every component."""
        draft = "UserService extends BaseService. findUser is async."

        refs = engine.references.verify_line_references(
            "UserService is declared at line 7",
            [make_reference(ts_file, 7, "export class UserService")],
        )
        assert refs.verified

        symbol = engine.references.verify_function_claim("findUser exists", "findUser", str(ts_file))
        assert symbol.verified

        grounding = engine.citations.verify(make_citation("UserService extends BaseService"), TS_SOURCE)
        assert grounding.is_grounded

        cove = engine.cove.verify("What does UserService extend?", TS_SOURCE.splitlines(), draft)
        assert len(cove.verification_questions) <= 4
        assert cove.final_response

        query_set = engine.consistency.generate_variants("What does findUser return?")
        report = engine.consistency.run_consistency_check_sync(
            [query_set], lambda query: "findUser returns a Promise<User>."
        )
        assert report.consistency_rate == 1.0

    def test_stats_snapshot(self, engine, ts_file):
        engine.references.verify_line_references("x", [make_reference(ts_file, 99999)])
        engine.citations.verify(make_citation("UserService extends BaseService"), TS_SOURCE)
        engine.cove.verify("q", ["load returns a dict of settings."], "load returns a dict.")

        snapshot = engine.stats_snapshot()
        assert snapshot["config_hash"] == engine.config.config_hash()
        assert snapshot["references"] == {"total": 1, "verified": 0, "accuracy": 0.0}
        assert snapshot["citations"] == {"total": 1, "grounded": 1, "accuracy": 1.0}
        assert snapshot["cove"]["total"] == 1
        assert snapshot["consistency"]["total"] == 0
        json.dumps(snapshot)

    def test_injected_symbol_provider(self, tmp_path):
        path = tmp_path / "main.go"
        path.write_text("package main\n\nfunc Serve() {}\n", encoding="utf-8")
        provider = StaticSymbolProvider({
            str(path): {"Serve": SymbolLocation(line=3, content="func Serve() {}", kind=SymbolKind.FUNCTION)},
        })
        engine = GroundingEngine(symbol_provider=provider)
        assert engine.references.verify_function_claim("Serve exists", "Serve", str(path)).verified

    def test_from_config_applies_logging_settings(self, tmp_path, capsys):
        path = tmp_path / "quiet.yaml"
        path.write_text("log_level: WARNING\nlog_format: json\n", encoding="utf-8")
        try:
            GroundingEngine.from_config(str(path))
            logger = logging.getLogger("codeground")
            assert logger.level == logging.WARNING
            assert len(logger.handlers) == 1

            logging.getLogger("codeground.engine").info("hidden")
            logging.getLogger("codeground.engine").warning("shown")
            lines = capsys.readouterr().out.strip().splitlines()
            assert [json.loads(line)["message"] for line in lines] == ["shown"]
        finally:
            _reset_logging()

    def test_config_hash_is_stamp_of_dumped_config(self):
        engine = GroundingEngine()
        assert engine.config.config_hash() == compute_hash(engine.config.model_dump(mode="json"))
