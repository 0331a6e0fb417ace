"""
Consistency Checker Tests
==========================

Tests for paraphrase generation, fact normalization, conflict
detection priority, and the async driver over an answer provider.
"""

from __future__ import annotations

import asyncio

import pytest

from codeground.schemas.consistency import ConflictType, Severity
from codeground.verify.consistency import ConsistencyChecker, facts_match, normalize_fact
from tests.conftest import make_consistency_answer


@pytest.fixture
def checker() -> ConsistencyChecker:
    return ConsistencyChecker()


class TestVariants:
    def test_template_family(self, checker):
        query_set = checker.generate_variants("What does parse return?", topic="parser")
        assert query_set.variants[0].is_canonical
        assert query_set.variants[0].query == "What does parse return?"
        assert [v.query for v in query_set.paraphrases] == [
            "What is the return type of parse?",
            "What does parse give back?",
            "Describe what parse returns",
            "What type does parse return?",
        ]
        assert query_set.topic == "parser"
        assert [v.id for v in query_set.variants] == [f"variant-{i}" for i in range(1, 6)]

    def test_generic_paraphrases(self, checker):
        query_set = checker.generate_variants("How is caching done?")
        assert [v.query for v in query_set.variants] == [
            "How is caching done?",
            "In what way is caching done?",
            "Tell me about how is caching done",
        ]

    def test_statement_has_only_canonical(self, checker):
        assert len(checker.generate_variants("Caching layer").variants) == 1


class TestFacts:
    """Fact extraction and normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("takes two args", "accepts 2 parameter"),
        ("Returns a string", "returns string"),
        ("parameter a", "parameter a"),
        ("The method gives output", "function returns returns"),
    ])
    def test_normalize_fact(self, raw, expected):
        assert normalize_fact(raw) == expected

    def test_facts_match(self):
        assert facts_match("accepts 3 parameters", "takes three arguments")
        assert facts_match("defined in src/parser.ts", "defined in lib/parser.ts")
        assert not facts_match("lexer emits events", "parser caches tokens")

    def test_extract_parameter_count(self, checker):
        assert checker.extract_facts("The function accepts 3 parameters.") == ["accepts 3 parameter"]
        assert checker.extract_facts("It takes 4 parameters.") == ["accepts 4 parameter"]

    def test_inline_code_is_unwrapped(self, checker):
        assert checker.extract_facts("It returns `Dict<string>`.") == ["returns dict<string>"]

    def test_sentence_fallback(self, checker):
        facts = checker.extract_facts("Caching is handled by the store layer. It flushes hourly.")
        assert facts == ["caching is handled by store layer", "it flushes hourly"]

    def test_empty_answer(self, checker):
        assert checker.extract_facts("   ") == []


class TestCheckConsistency:
    """Conflict detection priority."""

    def _answers(self, checker, *texts):
        return [make_consistency_answer(checker.extract_facts(t), answer=t) for t in texts]

    def test_contradictory_counts(self, checker):
        violation = checker.check_consistency(
            self._answers(checker, "The function accepts 3 parameters.", "It takes 4 parameters.")
        )
        assert violation.conflict_type == ConflictType.DIRECT_CONTRADICTION
        assert violation.severity == Severity.HIGH
        assert violation.explanation == "Contradictory counts: 3 vs 4"

    def test_contradictory_return_types(self, checker):
        violation = checker.check_consistency(
            self._answers(checker, "parse returns a string.", "parse returns a number.")
        )
        assert violation.explanation == 'Contradictory return types: "string" vs "number"'

    def test_file_locations_compare_by_basename(self, checker):
        same = self._answers(checker, "Parser is defined in src/parser.ts.", "Parser is defined in lib/parser.ts.")
        assert checker.check_consistency(same) is None

        different = self._answers(checker, "Parser is defined in src/parser.ts.", "Parser is defined in src/lexer.ts.")
        violation = checker.check_consistency(different)
        assert violation.conflict_type == ConflictType.DIRECT_CONTRADICTION
        assert "Contradictory file locations" in violation.explanation

    def test_stated_count_vs_listed_parameters(self, checker):
        violation = checker.check_consistency([
            make_consistency_answer(["accepts 2 parameter"]),
            make_consistency_answer(["parameter: path, options, callback"]),
        ])
        assert violation.conflict_type == ConflictType.PARTIAL_CONFLICT
        assert violation.severity == Severity.MEDIUM
        assert violation.explanation == "Count mismatch: stated 2 but listed 3 items"

    def test_different_parameter_names(self, checker):
        violation = checker.check_consistency([
            make_consistency_answer(["parameter: path, options"]),
            make_consistency_answer(["parameter: source, flags"]),
        ])
        assert violation.conflict_type == ConflictType.PARTIAL_CONFLICT
        assert violation.explanation == "Different parameter names: [path, options] vs [source, flags]"

    def test_richer_first_answer(self, checker):
        richer = ["parser caches tokens", "lexer emits events", "runner logs errors"]
        violation = checker.check_consistency([
            make_consistency_answer(richer),
            make_consistency_answer(["parser caches tokens"]),
        ])
        assert violation.conflict_type == ConflictType.EXTRA_FACT
        assert violation.severity == Severity.LOW

        violation = checker.check_consistency([
            make_consistency_answer(["parser caches tokens"]),
            make_consistency_answer(richer),
        ])
        assert violation.conflict_type == ConflictType.MISSING_FACT

    def test_small_difference_is_consistent(self, checker):
        facts1 = [
            "parser caches tokens", "lexer emits events", "runner logs errors",
            "cache expires hourly", "config loads lazily",
        ]
        facts2 = ["parser caches tokens", "lexer emits events", "runner logs errors", "server binds socket"]
        answers = [make_consistency_answer(facts1), make_consistency_answer(facts2)]
        assert checker.check_consistency(answers) is None

    def test_fewer_than_two_answers(self, checker):
        assert checker.check_consistency([]) is None
        assert checker.check_consistency([make_consistency_answer(["returns string"])]) is None

    def test_no_facts(self, checker):
        answers = [make_consistency_answer([], answer="?"), make_consistency_answer([], answer="!")]
        assert checker.check_consistency(answers) is None


class TestRunConsistencyCheck:
    """Async driver over an answer provider."""

    def test_report(self, checker):
        consistent_set = checker.generate_variants("What parameters does parse accept?", topic="params")
        conflicting_set = checker.generate_variants("What does parse return?", topic="returns")
        failing_query = "What inputs does parse take?"

        async def provider(query: str) -> str:
            await asyncio.sleep(0)
            if query == failing_query:
                raise ValueError("backend unavailable")
            if query == conflicting_set.canonical_query:
                return "parse returns a string."
            if query in {v.query for v in conflicting_set.variants}:
                return "parse returns a number."
            return "parse takes 3 arguments."

        report = asyncio.run(checker.run_consistency_check([consistent_set, conflicting_set], provider))

        assert report.total_query_sets == 2
        assert report.consistent_sets == 1
        assert report.inconsistent_sets == 1
        assert report.consistency_rate == pytest.approx(0.5)
        violation = report.violations[0]
        assert violation.query_set_topic == "returns"
        assert violation.canonical_query == "What does parse return?"
        assert violation.conflict_type == ConflictType.DIRECT_CONTRADICTION
        assert report.summary.direct_contradictions == 1

        stats = checker.get_verification_stats()
        assert (stats.total, stats.verified) == (2, 1)

    def test_sync_provider_and_wrapper(self, checker):
        query_set = checker.generate_variants("Where is parse defined?")
        report = checker.run_consistency_check_sync(
            [query_set], lambda query: "parse is defined in src/parser.ts."
        )
        assert report.consistent_sets == 1
        assert report.violations == []

    def test_all_variants_failing_is_consistent(self, checker):
        def provider(query: str) -> str:
            raise RuntimeError("down")

        report = checker.run_consistency_check_sync([checker.generate_variants("What does parse do?")], provider)
        assert report.consistency_rate == 1.0

    def test_empty_batch(self, checker):
        report = checker.run_consistency_check_sync([], lambda q: "")
        assert report.total_query_sets == 0
        assert report.consistency_rate == 1.0
