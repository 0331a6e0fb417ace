"""Tests for shared helpers and logging setup."""

from __future__ import annotations

import json
import logging

import pytest

from codeground.utils import (
    clamp_unit,
    compute_hash,
    normalize_whitespace,
    safe_mean,
    safe_ratio,
    setup_logging,
    split_sentences,
)


class TestNumeric:
    @pytest.mark.parametrize("value,expected", [
        (0.5, 0.5), (-1.0, 0.0), (3.0, 1.0), (float("nan"), 0.0),
    ])
    def test_clamp_unit(self, value, expected):
        assert clamp_unit(value) == expected

    def test_safe_mean(self):
        assert safe_mean([]) == 0.0
        assert safe_mean(x for x in [0.25, 0.75]) == pytest.approx(0.5)

    def test_safe_ratio(self):
        assert safe_ratio(1, 0) == 0.0
        assert safe_ratio(1, 4) == 0.25


class TestText:
    def test_normalize_whitespace(self):
        assert normalize_whitespace("  a \n\t b  ") == "a b"

    def test_split_sentences(self):
        assert split_sentences("One. Two!! Three?") == ["One", "Two", "Three"]

    def test_compute_hash(self):
        assert compute_hash({"b": 1, "a": 2}) == compute_hash({"a": 2, "b": 1})
        assert len(compute_hash("x", length=8)) == 8


class TestLogging:
    def test_json_format(self, capsys):
        logger = setup_logging("DEBUG", "json", run_id="run-1")
        try:
            logging.getLogger("codeground.verify.cove").info("planned 2 questions")
            line = capsys.readouterr().out.strip().splitlines()[-1]
            entry = json.loads(line)
            assert entry["message"] == "planned 2 questions"
            assert entry["logger"] == "codeground.verify.cove"
            assert entry["run_id"] == "run-1"
        finally:
            logger.handlers.clear()

    def test_text_format_level(self, capsys):
        logger = setup_logging("WARNING", "text")
        try:
            logging.getLogger("codeground.engine").info("hidden")
            logging.getLogger("codeground.engine").warning("shown")
            out = capsys.readouterr().out
            assert "shown" in out
            assert "hidden" not in out
        finally:
            logger.handlers.clear()
