"""
AST Claim Verifier
===================

Checks that the file/line locations a claim cites are real: the file
exists, the line is in range, and (when the claim quotes it) the line
still carries the quoted content. Function and class claims are
resolved to a declaration line through a SymbolProvider and then
checked the same way.

Scoring (per reference, averaged into accuracy):
    - line <= 0, line past EOF, file missing  → 0.0
    - no quoted content, line exists          → 1.0
    - quoted content on the cited line        → 1.0
    - quoted content d lines away (d <= tol)  → 1 - d / (tol + 1)
    - quoted content not within tolerance     → 0.0

A claim is verified when accuracy >= verification_threshold and no
referenced file is missing.

Data Flow:
    claim + LineReference[] → ASTClaimVerifier → ClaimVerificationResult
    claim + symbol name + path → SymbolProvider → LineReference → (as above)
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from codeground.config import ASTVerifierConfig, CodegroundConfig
from codeground.schemas.references import (
    ClaimVerificationResult,
    IssueType,
    LineReference,
    VerificationIssue,
    VerificationStats,
)
from codeground.utils import safe_mean
from codeground.verify.stats import StatsAccumulator
from codeground.verify.symbols import (
    DefaultSymbolProvider,
    SymbolKind,
    SymbolParseError,
    SymbolProvider,
)

logger = logging.getLogger("codeground.verify.ast_verifier")


class ASTClaimVerifier:
    """
    Verifies line, function and class references cited by claims.

    Never raises for bad input: missing files, out-of-range lines and
    unknown symbols come back as typed issues on the result.

    Usage:
        verifier = ASTClaimVerifier()
        result = verifier.verify_line_references(
            "load_config is defined at config.py:12",
            [LineReference(file_path="config.py", line_number=12, content="def load_config(")],
        )
        result = verifier.verify_function_claim("has load_config", "load_config", "config.py")

    Args:
        config: Tolerance / fuzzy-matching settings.
        symbol_provider: Source of declaration lines (default: Python ast
            for .py, declaration scan for TS/JS).
    """

    def __init__(
        self,
        config: Optional[ASTVerifierConfig] = None,
        symbol_provider: Optional[SymbolProvider] = None,
    ):
        self.config = config or ASTVerifierConfig()
        self.symbol_provider = symbol_provider or DefaultSymbolProvider()
        self._stats = StatsAccumulator()

    @classmethod
    def from_config(
        cls, config: CodegroundConfig, symbol_provider: Optional[SymbolProvider] = None
    ) -> "ASTClaimVerifier":
        return cls(config=config.ast, symbol_provider=symbol_provider)

    # ── Public API ─────────────────────────────────────────────────

    def verify_line_references(
        self, claim: str, references: list[LineReference]
    ) -> ClaimVerificationResult:
        """Verify every reference and average their credit into accuracy."""
        result = self._check_references(claim, references)
        self._stats.record(result.verified)
        return result

    def verify_function_claim(
        self, claim: str, function_name: str, file_path: str
    ) -> ClaimVerificationResult:
        """Verify that a function (or method) named `function_name` is declared in `file_path`."""
        result = self._verify_symbol(claim, function_name, file_path, SymbolKind.FUNCTION)
        self._stats.record(result.verified)
        return result

    def verify_class_claim(
        self, claim: str, class_name: str, file_path: str
    ) -> ClaimVerificationResult:
        """Verify that a class named `class_name` is declared in `file_path`."""
        result = self._verify_symbol(claim, class_name, file_path, SymbolKind.CLASS)
        self._stats.record(result.verified)
        return result

    def get_verification_stats(self) -> VerificationStats:
        total, verified, accuracy = self._stats.snapshot()
        return VerificationStats(total=total, verified=verified, accuracy=accuracy)

    def reset_stats(self) -> None:
        self._stats.reset()

    def content_matches(self, actual: str, expected: str) -> bool:
        """
        Trimmed, case-insensitive equality; with fuzzy matching enabled,
        containment in either direction also matches. Blank lines only
        match blank expectations.
        """
        a = actual.strip().lower()
        e = expected.strip().lower()
        if a == e:
            return True
        if not self.config.enable_fuzzy_matching or not a or not e:
            return False
        return e in a or a in e

    # ── Internals ──────────────────────────────────────────────────

    def _check_references(
        self, claim: str, references: list[LineReference]
    ) -> ClaimVerificationResult:
        if not references:
            return ClaimVerificationResult(
                claim=claim,
                references=[],
                verified=False,
                accuracy=0.0,
                issues=[VerificationIssue(type=IssueType.LINE_MISMATCH, details="No references provided")],
            )

        credits: list[float] = []
        issues: list[VerificationIssue] = []
        for ref in references:
            credit, ref_issues = self._check_reference(ref)
            credits.append(credit)
            issues.extend(ref_issues)

        accuracy = safe_mean(credits)
        missing = any(i.type == IssueType.FILE_MISSING for i in issues)
        verified = (
            accuracy >= self.config.verification_threshold
            and accuracy > 0.0
            and not missing
        )

        logger.debug(
            f"Checked {len(references)} reference(s): accuracy={accuracy:.3f}, "
            f"issues={len(issues)}, verified={verified}"
        )
        return ClaimVerificationResult(
            claim=claim,
            references=list(references),
            verified=verified,
            accuracy=accuracy,
            issues=issues,
        )

    def _check_reference(self, ref: LineReference) -> tuple[float, list[VerificationIssue]]:
        """Credit in [0, 1] for one reference, plus any issues found."""
        if ref.line_number <= 0:
            return 0.0, [VerificationIssue(
                type=IssueType.LINE_MISMATCH,
                details=f"Invalid line number: {ref.line_number}. Line numbers must be positive.",
            )]

        if not os.path.isfile(ref.file_path):
            return 0.0, [VerificationIssue(
                type=IssueType.FILE_MISSING, details=f"File not found: {ref.file_path}",
            )]

        try:
            with open(ref.file_path, encoding="utf-8") as f:
                lines = f.read().splitlines()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Unable to read {ref.file_path}: {e}")
            return 0.0, [VerificationIssue(
                type=IssueType.FILE_MISSING, details=f"Unable to read file: {ref.file_path}",
            )]

        if ref.line_number > len(lines):
            return 0.0, [VerificationIssue(
                type=IssueType.LINE_MISMATCH,
                details=f"Line {ref.line_number} exceeds file length ({len(lines)} lines)",
            )]

        if not ref.content:
            return 1.0, []

        if self.content_matches(lines[ref.line_number - 1], ref.content):
            return 1.0, []

        issues = [VerificationIssue(
            type=IssueType.CONTENT_CHANGED,
            details=f'Expected content "{ref.content}" not found at line {ref.line_number}',
        )]

        tolerance = self.config.line_tolerance
        distance = self._nearest_match(lines, ref.line_number, ref.content, tolerance)
        if distance is None:
            issues.append(VerificationIssue(
                type=IssueType.LINE_MISMATCH,
                details=(
                    f"Expected content not within {tolerance} line(s) of "
                    f"line {ref.line_number} (beyond tolerance)"
                ),
            ))
            return 0.0, issues

        return 1.0 - distance / (tolerance + 1), issues

    def _nearest_match(
        self, lines: list[str], line_number: int, content: str, tolerance: int
    ) -> Optional[int]:
        """Distance to the closest line within tolerance that matches, preferring earlier lines on ties."""
        for distance in range(1, tolerance + 1):
            for candidate in (line_number - distance, line_number + distance):
                if 1 <= candidate <= len(lines) and self.content_matches(lines[candidate - 1], content):
                    return distance
        return None

    def _verify_symbol(
        self, claim: str, name: str, file_path: str, kind: SymbolKind
    ) -> ClaimVerificationResult:
        def failed(issue_type: IssueType, details: str) -> ClaimVerificationResult:
            return ClaimVerificationResult(
                claim=claim,
                references=[],
                verified=False,
                accuracy=0.0,
                issues=[VerificationIssue(type=issue_type, details=details)],
            )

        if not name or not name.strip():
            return failed(IssueType.LINE_MISMATCH, f"Empty {kind.value} name provided")

        if not os.path.isfile(file_path):
            return failed(IssueType.FILE_MISSING, f"File not found: {file_path}")

        if not self.symbol_provider.supports(file_path):
            return failed(IssueType.FILE_MISSING, f"No symbol table available for file: {file_path}")

        try:
            location = self.symbol_provider.find(file_path, name.strip(), kind)
        except SymbolParseError as e:
            logger.debug(str(e))
            return failed(IssueType.FILE_MISSING, f"Unable to parse file: {file_path}")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Unable to read {file_path}: {e}")
            return failed(IssueType.FILE_MISSING, f"Unable to read file: {file_path}")

        if location is None:
            return failed(IssueType.LINE_MISMATCH, f'{kind.value} "{name}" not found in {file_path}')

        reference = LineReference(
            file_path=file_path,
            line_number=location.line,
            content=location.content or None,
        )
        return self._check_references(claim, [reference])
