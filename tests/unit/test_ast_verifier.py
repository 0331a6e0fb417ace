"""
AST Claim Verifier Tests
=========================

Tests for line-reference checking (tolerance, fuzzy content, range
errors) and symbol lookup through the Python and TS/JS providers.
"""

from __future__ import annotations

import os

import pytest

from codeground.config import ASTVerifierConfig
from codeground.schemas.references import IssueType
from codeground.verify.ast_verifier import ASTClaimVerifier
from codeground.verify.symbols import (
    DeclarationScanProvider,
    PythonSymbolProvider,
    StaticSymbolProvider,
    SymbolKind,
    SymbolLocation,
)
from tests.conftest import make_reference, write_source


@pytest.fixture
def verifier() -> ASTClaimVerifier:
    return ASTClaimVerifier()


class TestLineReferences:
    """verify_line_references scoring."""

    def test_exact_line_and_content(self, verifier, python_file):
        ref = make_reference(python_file, 6, "def load_config(path):")
        result = verifier.verify_line_references("load_config at line 6", [ref])
        assert result.verified
        assert result.accuracy >= 0.95
        assert result.issues == []

    def test_line_without_content(self, verifier, python_file):
        result = verifier.verify_line_references("x", [make_reference(python_file, 3)])
        assert result.verified
        assert result.accuracy == 1.0

    def test_fuzzy_containment(self, verifier, python_file):
        ref = make_reference(python_file, 6, "LOAD_CONFIG")
        assert verifier.verify_line_references("x", [ref]).accuracy == 1.0

    def test_fuzzy_disabled(self, python_file):
        strict = ASTClaimVerifier(ASTVerifierConfig(enable_fuzzy_matching=False))
        ref = make_reference(python_file, 6, "load_config")
        result = strict.verify_line_references("x", [ref])
        assert not result.verified
        assert result.issues_of(IssueType.CONTENT_CHANGED)

    def test_off_by_one_within_tolerance(self, verifier, python_file):
        """Content one line away earns 1 - 1/(3+1) = 0.75."""
        ref = make_reference(python_file, 7, "def load_config(path):")
        result = verifier.verify_line_references("x", [ref])
        assert result.verified
        assert result.accuracy == pytest.approx(0.75)
        assert [i.type for i in result.issues] == [IssueType.CONTENT_CHANGED]

    def test_beyond_tolerance(self, verifier, python_file):
        ref = make_reference(python_file, 17, "def load_config(path):")
        result = verifier.verify_line_references("x", [ref])
        assert not result.verified
        assert result.accuracy == 0.0
        assert result.issues_of(IssueType.LINE_MISMATCH)
        assert "beyond tolerance" in result.issues[-1].details

    def test_line_past_end_of_file(self, verifier, python_file):
        result = verifier.verify_line_references("x", [make_reference(python_file, 99999)])
        assert not result.verified
        assert result.issues[0].type == IssueType.LINE_MISMATCH
        assert "exceeds file length (21 lines)" in result.issues[0].details

    @pytest.mark.parametrize("line", [0, -4])
    def test_non_positive_line(self, verifier, python_file, line):
        result = verifier.verify_line_references("x", [make_reference(python_file, line)])
        assert not result.verified
        assert "Invalid line number" in result.issues[0].details

    def test_missing_file(self, verifier, tmp_path):
        ref = make_reference(tmp_path / "nope.py", 1)
        result = verifier.verify_line_references("x", [ref])
        assert not result.verified
        assert result.has_missing_file

    def test_missing_file_blocks_verification(self, verifier, python_file, tmp_path):
        """One good reference out of two clears 0.5, but a missing file still fails the claim."""
        refs = [make_reference(python_file, 6), make_reference(tmp_path / "gone.py", 1)]
        result = verifier.verify_line_references("x", refs)
        assert result.accuracy == pytest.approx(0.5)
        assert not result.verified

    def test_no_references(self, verifier):
        result = verifier.verify_line_references("x", [])
        assert not result.verified
        assert result.issues[0].details == "No references provided"

    def test_blank_line_does_not_fuzzy_match(self, verifier, python_file):
        ref = make_reference(python_file, 2, "import json")
        result = verifier.verify_line_references("x", [ref])
        # line 2 is blank; "import json" is found one line below
        assert result.accuracy == pytest.approx(0.75)


class TestSymbolClaims:
    """Function / class lookup."""

    def test_python_function(self, verifier, python_file):
        result = verifier.verify_function_claim("has load_config", "load_config", str(python_file))
        assert result.verified
        assert result.references[0].line_number == 6

    def test_edited_file_is_looked_up_again(self, verifier, python_file):
        verifier.verify_function_claim("x", "load_config", str(python_file))
        python_file.write_text("import os\n\ndef load_config():\n    return os.environ\n", encoding="utf-8")
        _touch_later(python_file)

        result = verifier.verify_function_claim("x", "load_config", str(python_file))
        assert result.verified
        assert result.references[0].line_number == 3
        assert not result.issues

    def test_python_method_and_async(self, verifier, python_file):
        assert verifier.verify_function_claim("x", "__init__", str(python_file)).references[0].line_number == 14
        assert verifier.verify_function_claim("x", "refresh", str(python_file)).references[0].line_number == 17

    def test_python_lambda_binding(self, verifier, python_file):
        result = verifier.verify_function_claim("x", "normalize", str(python_file))
        assert result.verified
        assert result.references[0].line_number == 21

    def test_python_class(self, verifier, python_file):
        result = verifier.verify_class_claim("x", "ConfigStore", str(python_file))
        assert result.verified
        assert result.references[0].line_number == 11

    def test_function_is_not_a_class(self, verifier, python_file):
        result = verifier.verify_class_claim("x", "load_config", str(python_file))
        assert not result.verified
        assert result.issues[0].type == IssueType.LINE_MISMATCH
        assert 'class "load_config" not found' in result.issues[0].details

    def test_ts_declarations(self, verifier, ts_file):
        path = str(ts_file)
        assert verifier.verify_function_claim("x", "parseQuery", path).references[0].line_number == 3
        assert verifier.verify_function_claim("x", "findUser", path).references[0].line_number == 12
        assert verifier.verify_function_claim("x", "formatName", path).references[0].line_number == 17
        assert verifier.verify_class_claim("x", "UserService", path).references[0].line_number == 7

    def test_ts_control_words_are_not_methods(self, verifier, ts_file):
        assert not verifier.verify_function_claim("x", "constructor", str(ts_file)).verified
        assert not verifier.verify_function_claim("x", "return", str(ts_file)).verified

    def test_empty_name(self, verifier, python_file):
        result = verifier.verify_function_claim("x", "  ", str(python_file))
        assert not result.verified
        assert result.issues[0].details == "Empty function name provided"

    def test_unsupported_extension(self, verifier, tmp_path):
        path = write_source(tmp_path, "notes.txt", "def load_config(): pass\n")
        result = verifier.verify_function_claim("x", "load_config", str(path))
        assert result.has_missing_file

    def test_unparseable_python(self, verifier, tmp_path):
        path = write_source(tmp_path, "broken.py", "def oops(:\n")
        result = verifier.verify_function_claim("x", "oops", str(path))
        assert not result.verified
        assert "Unable to parse file" in result.issues[0].details

    def test_static_provider(self, tmp_path):
        path = write_source(tmp_path, "lib.rs", "fn main() {}\n")
        provider = StaticSymbolProvider({
            str(path): {"main": SymbolLocation(line=1, content="fn main() {}", kind=SymbolKind.FUNCTION)},
        })
        verifier = ASTClaimVerifier(symbol_provider=provider)
        assert verifier.verify_function_claim("x", "main", str(path)).verified
        assert not verifier.verify_class_claim("x", "main", str(path)).verified


class TestProviders:
    def test_python_table_is_cached(self, python_file):
        provider = PythonSymbolProvider()
        first = provider.find(str(python_file), "load_config", SymbolKind.FUNCTION)
        assert provider.find(str(python_file), "load_config", SymbolKind.FUNCTION) is first

    def test_python_table_rebuilt_after_edit(self, python_file):
        provider = PythonSymbolProvider()
        assert provider.find(str(python_file), "load_config", SymbolKind.FUNCTION).line == 6

        python_file.write_text("\n\ndef load_config():\n    pass\n", encoding="utf-8")
        _touch_later(python_file)
        assert provider.find(str(python_file), "load_config", SymbolKind.FUNCTION).line == 3

    def test_declaration_scan_supports(self):
        provider = DeclarationScanProvider()
        assert provider.supports("a/b.tsx")
        assert not provider.supports("a/b.py")


class TestStats:
    """Running statistics."""

    def test_initial_stats(self, verifier):
        stats = verifier.get_verification_stats()
        assert (stats.total, stats.verified, stats.accuracy) == (0, 0, 0.0)

    def test_repeated_calls_are_idempotent(self, verifier, python_file):
        ref = make_reference(python_file, 6, "def load_config(path):")
        first = verifier.verify_line_references("x", [ref])
        second = verifier.verify_line_references("x", [ref])
        assert first == second
        assert verifier.get_verification_stats().total == 2

    def test_symbol_claim_counts_once(self, verifier, python_file):
        verifier.verify_function_claim("x", "load_config", str(python_file))
        verifier.verify_line_references("x", [make_reference(python_file, 99999)])
        stats = verifier.get_verification_stats()
        assert (stats.total, stats.verified) == (2, 1)
        assert stats.accuracy == pytest.approx(0.5)

    def test_reset(self, verifier, python_file):
        verifier.verify_line_references("x", [make_reference(python_file, 1)])
        verifier.reset_stats()
        assert verifier.get_verification_stats().total == 0


def _touch_later(path) -> None:
    """Move a file's modification time one second forward."""
    mtime = os.stat(path).st_mtime_ns
    os.utime(path, ns=(mtime, mtime + 10**9))
