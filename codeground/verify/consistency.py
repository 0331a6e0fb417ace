"""
Consistency Checker
====================

Asks one question several equivalent ways and checks that the answers
agree. Answers come from an external answer provider (sync or async
callable ``query -> answer``); each answer is reduced to a list of
normalized facts and the fact sets are compared pairwise.

Conflict priority (first hit wins):
    1. direct_contradiction (high): different return types, counts or
       file locations
    2. partial_conflict (medium): different parameter counts, a stated
       count vs an enumerated list, or mostly different parameter names
    3. missing_fact / extra_fact (low): one answer is markedly richer

Fewer than two answers, or no facts at all, is treated as consistent.

Data Flow:
    base query → generate_variants → QuerySet
    QuerySet + answer provider → answers → extract_facts → check_consistency
        → ConsistencyViolation | None → ConsistencyReport
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
import re
from typing import Awaitable, Callable, Optional, Union

from codeground.patterns.lexicon import NUMERIC_WORDS, canonicalize_synonyms
from codeground.patterns.queries import (
    COUNT_REGEX,
    FACT_RULES,
    FILE_LOCATION_REGEX,
    PARAMETER_COUNT_REGEX,
    RETURN_TYPE_REGEX,
    TEMPLATE_FAMILIES,
    generic_paraphrases,
)
from codeground.patterns.rules import first_match, iter_matches
from codeground.schemas.consistency import (
    ConflictType,
    ConsistencyAnswer,
    ConsistencyReport,
    ConsistencyViolation,
    QuerySet,
    QueryVariant,
    Severity,
    ViolationSummary,
)
from codeground.schemas.references import VerificationStats
from codeground.utils import normalize_whitespace
from codeground.verify.stats import StatsAccumulator

logger = logging.getLogger("codeground.verify.consistency")

AnswerProvider = Callable[[str], Union[str, Awaitable[str]]]

# Fact-difference thresholds
RICHNESS_RATIO = 1.5
MIN_UNIQUE_FACTS = 2
DIFF_SHARE = 0.6
MIN_DIFF_FACTS = 3
# Token overlap at which two facts count as the same fact
FACT_OVERLAP = 0.5
# Share of common parameter names below which lists conflict
PARAMETER_NAME_OVERLAP = 0.5

_CODE_BLOCK = re.compile(r"```[\s\S]*?```")
_INLINE_CODE = re.compile(r"`([^`]+)`")
_PUNCTUATION = re.compile(r"[^\w\s<>/.:-]")
_ARTICLE = re.compile(r"\b(?:a|an|the)\s+(?=\w)")
_NUMBER_WORD = re.compile(r"\b(" + "|".join(NUMERIC_WORDS) + r")\b")

_PARAMETER_LIST = re.compile(r"parameter.*?:\s*([^.]+)", re.IGNORECASE)
_TRAILING_PARAMETER = re.compile(r"parameter\s+(\w+)$", re.IGNORECASE)
_ACCEPTS_PARAMETER = re.compile(r"accepts\s+parameter\s+(\w+)", re.IGNORECASE)
_IS_PARAMETER = re.compile(r"(\w+)\s+is\s+(?:parameter|argument)", re.IGNORECASE)


def normalize_text(text: str) -> str:
    """Lowercase, drop fenced code, unwrap inline code, strip punctuation."""
    text = _CODE_BLOCK.sub("", text.lower())
    text = _INLINE_CODE.sub(lambda m: m.group(1), text)
    return normalize_whitespace(_PUNCTUATION.sub(" ", text))


def normalize_fact(fact: str) -> str:
    """
    Canonical form of a fact.

    Numbers become digits, articles are dropped only when a word follows
    ("a string" → "string", "parameter a" stays), and synonyms collapse
    to their canonical word ("takes 2 args" → "accepts 2 parameter").
    """
    text = normalize_whitespace(_PUNCTUATION.sub(" ", fact.lower()))
    text = _NUMBER_WORD.sub(lambda m: str(NUMERIC_WORDS[m.group(1)]), text)
    text = normalize_whitespace(_ARTICLE.sub("", text))
    return normalize_whitespace(canonicalize_synonyms(text))


def facts_match(fact: str, other: str) -> bool:
    """Equal, contained, or sharing >= 50% of longer-than-two-char words."""
    a, b = normalize_fact(fact), normalize_fact(other)
    if a == b or a in b or b in a:
        return True
    words_a = {w for w in a.split(" ") if len(w) > 2}
    words_b = {w for w in b.split(" ") if len(w) > 2}
    if not words_a or not words_b:
        return False
    return len(words_a & words_b) / min(len(words_a), len(words_b)) >= FACT_OVERLAP


class ConsistencyChecker:
    """
    Cross-paraphrase consistency checker.

    Usage:
        checker = ConsistencyChecker()
        query_set = checker.generate_variants("What does parse return?", topic="parser")
        report = checker.run_consistency_check_sync([query_set], answer_fn)
    """

    def __init__(self) -> None:
        self._variant_ids = itertools.count(1)
        self._stats = StatsAccumulator()

    def get_verification_stats(self) -> VerificationStats:
        """Query sets checked so far; consistent sets count as verified."""
        total, verified, accuracy = self._stats.snapshot()
        return VerificationStats(total=total, verified=verified, accuracy=accuracy)

    # ── Variants ───────────────────────────────────────────────────

    def generate_variants(self, base_query: str, topic: str = "") -> QuerySet:
        """Canonical query first, then paraphrases of the first matching family."""
        variants = [QueryVariant(id=self._next_variant_id(), query=base_query, is_canonical=True)]
        seen = {base_query.lower()}

        hit = first_match(TEMPLATE_FAMILIES, base_query)
        paraphrases = hit[0].expand(hit[1]) if hit else generic_paraphrases(base_query)
        for query in paraphrases:
            if query.lower() in seen:
                continue
            seen.add(query.lower())
            variants.append(QueryVariant(id=self._next_variant_id(), query=query))

        return QuerySet(canonical_query=base_query, variants=variants, topic=topic)

    def _next_variant_id(self) -> str:
        return f"variant-{next(self._variant_ids)}"

    # ── Facts ──────────────────────────────────────────────────────

    def extract_facts(self, answer: str) -> list[str]:
        """Normalized facts in rule order; first three sentences when no rule matches."""
        if not answer or not answer.strip():
            return []

        text = normalize_text(answer)
        facts: list[str] = []
        for _rule, match in iter_matches(FACT_RULES, text):
            fact = normalize_fact(match.group(0))
            if fact and fact not in facts:
                facts.append(fact)

        if not facts:
            sentences = [s for s in re.split(r"[.!?]+", text) if len(s.strip()) > 5]
            for sentence in sentences[:3]:
                fact = normalize_fact(sentence)
                if fact and fact not in facts:
                    facts.append(fact)
        return facts

    # ── Checking ───────────────────────────────────────────────────

    def check_consistency(self, answers: list[ConsistencyAnswer]) -> Optional[ConsistencyViolation]:
        """The highest-priority conflict among the answers, or None."""
        if len(answers) < 2:
            return None

        fact_sets = [_unique(normalize_fact(f) for f in a.extracted_facts) for a in answers]
        if all(not facts for facts in fact_sets):
            return None

        for i, j in itertools.combinations(range(len(answers)), 2):
            explanation = _direct_contradiction(fact_sets[i], fact_sets[j])
            if explanation:
                return _violation(answers[i], answers[j], ConflictType.DIRECT_CONTRADICTION,
                                  Severity.HIGH, explanation)

        for i, j in itertools.combinations(range(len(answers)), 2):
            explanation = _partial_conflict(fact_sets[i], fact_sets[j])
            if explanation:
                return _violation(answers[i], answers[j], ConflictType.PARTIAL_CONFLICT,
                                  Severity.MEDIUM, explanation)

        difference = _fact_difference(fact_sets[0], fact_sets[1])
        if difference:
            conflict_type, explanation = difference
            return _violation(answers[0], answers[1], conflict_type, Severity.LOW, explanation)

        return None

    # ── Driver ─────────────────────────────────────────────────────

    async def run_consistency_check(
        self, query_sets: list[QuerySet], answer_provider: AnswerProvider
    ) -> ConsistencyReport:
        """
        Answer every variant of every set and report violations.

        Variants of one set are answered concurrently. A provider failure
        skips that variant only; a set with fewer than two answers counts
        as consistent.
        """
        if not query_sets:
            return ConsistencyReport()

        violations: list[ConsistencyViolation] = []
        consistent = 0
        for query_set in query_sets:
            answers = await self._collect_answers(query_set, answer_provider)
            violation = self.check_consistency(answers)
            self._stats.record(violation is None)
            if violation is None:
                consistent += 1
                continue
            violation.query_set_topic = query_set.topic
            violation.canonical_query = query_set.canonical_query
            violations.append(violation)

        report = ConsistencyReport(
            total_query_sets=len(query_sets),
            consistent_sets=consistent,
            inconsistent_sets=len(query_sets) - consistent,
            consistency_rate=consistent / len(query_sets),
            violations=violations,
            summary=_summarize(violations),
        )
        logger.info(
            f"Consistency check: {report.consistent_sets}/{report.total_query_sets} sets consistent "
            f"(rate={report.consistency_rate:.2f})"
        )
        return report

    def run_consistency_check_sync(
        self, query_sets: list[QuerySet], answer_provider: AnswerProvider
    ) -> ConsistencyReport:
        """Blocking wrapper for callers without an event loop."""
        return asyncio.run(self.run_consistency_check(query_sets, answer_provider))

    async def _collect_answers(
        self, query_set: QuerySet, answer_provider: AnswerProvider
    ) -> list[ConsistencyAnswer]:
        outcomes = await asyncio.gather(
            *(_ask(answer_provider, v.query) for v in query_set.variants),
            return_exceptions=True,
        )
        answers = []
        for variant, outcome in zip(query_set.variants, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning(f"Answer provider failed for {variant.id} ({variant.query!r}): {outcome}")
                continue
            answers.append(ConsistencyAnswer(
                query_id=variant.id,
                query=variant.query,
                answer=outcome,
                extracted_facts=self.extract_facts(outcome),
            ))
        return answers


async def _ask(answer_provider: AnswerProvider, query: str) -> str:
    answer = answer_provider(query)
    if inspect.isawaitable(answer):
        answer = await answer
    return str(answer)


# ── Conflict Detection ─────────────────────────────────────────────

def _unique(items) -> list[str]:
    seen: list[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def _first_group(regex: re.Pattern[str], facts: list[str]) -> Optional[str]:
    for fact in facts:
        match = regex.search(fact)
        if match:
            return match.group(1).lower()
    return None


def _basename(path: str) -> str:
    return path.replace("\\", "/").rsplit("/", 1)[-1]


def _direct_contradiction(facts1: list[str], facts2: list[str]) -> Optional[str]:
    type1, type2 = _first_group(RETURN_TYPE_REGEX, facts1), _first_group(RETURN_TYPE_REGEX, facts2)
    if type1 and type2 and type1 != type2:
        return f'Contradictory return types: "{type1}" vs "{type2}"'

    count1, count2 = _first_group(COUNT_REGEX, facts1), _first_group(COUNT_REGEX, facts2)
    if count1 is not None and count2 is not None and int(count1) != int(count2):
        return f"Contradictory counts: {int(count1)} vs {int(count2)}"

    loc1, loc2 = _first_group(FILE_LOCATION_REGEX, facts1), _first_group(FILE_LOCATION_REGEX, facts2)
    if loc1 and loc2 and _basename(loc1) != _basename(loc2):
        return f'Contradictory file locations: "{loc1}" vs "{loc2}"'
    return None


def _parameters(facts: list[str]) -> list[str]:
    """Parameter names mentioned in (normalized) facts."""
    params: list[str] = []
    for fact in facts:
        listed = _PARAMETER_LIST.search(fact)
        if listed:
            params.extend(s for s in re.split(r"[,\s]+", listed.group(1)) if re.fullmatch(r"\w+", s))
        for regex in (_TRAILING_PARAMETER, _ACCEPTS_PARAMETER, _IS_PARAMETER):
            match = regex.search(fact)
            if match and match.group(1) not in params:
                params.append(match.group(1))
    return params


def _partial_conflict(facts1: list[str], facts2: list[str]) -> Optional[str]:
    count1 = _first_group(PARAMETER_COUNT_REGEX, facts1)
    count2 = _first_group(PARAMETER_COUNT_REGEX, facts2)
    count1 = int(count1) if count1 is not None else None
    count2 = int(count2) if count2 is not None else None
    if count1 is not None and count2 is not None and count1 != count2:
        return f"Different parameter/item counts: {count1} vs {count2}"

    params1, params2 = _parameters(facts1), _parameters(facts2)
    if count1 is not None and params2 and count1 != len(params2):
        return f"Count mismatch: stated {count1} but listed {len(params2)} items"
    if count2 is not None and params1 and count2 != len(params1):
        return f"Count mismatch: stated {count2} but listed {len(params1)} items"

    if params1 and params2:
        if len(params1) != len(params2):
            return f"Different parameter counts: {len(params1)} vs {len(params2)} parameters"
        others = {p.lower() for p in params2}
        common = [p for p in params1 if p.lower() in others]
        if len(common) < len(params1) * PARAMETER_NAME_OVERLAP:
            return (
                f"Different parameter names: [{', '.join(params1)}] "
                f"vs [{', '.join(params2)}]"
            )
    return None


def _fact_difference(
    facts1: list[str], facts2: list[str]
) -> Optional[tuple[ConflictType, str]]:
    if not facts1 or not facts2:
        return None

    only1 = [f for f in facts1 if not any(facts_match(f, g) for g in facts2)]
    only2 = [f for f in facts2 if not any(facts_match(f, g) for g in facts1)]

    if len(only1) >= MIN_UNIQUE_FACTS and len(facts1) > len(facts2) * RICHNESS_RATIO:
        return ConflictType.EXTRA_FACT, f"First answer has extra details: {', '.join(only1[:2])}"
    if len(only2) >= MIN_UNIQUE_FACTS and len(facts2) > len(facts1) * RICHNESS_RATIO:
        return ConflictType.MISSING_FACT, f"First answer missing details: {', '.join(only2[:2])}"

    diff = len(only1) + len(only2)
    if diff > max(len(facts1), len(facts2)) * DIFF_SHARE and diff >= MIN_DIFF_FACTS:
        if len(only1) > len(only2):
            return ConflictType.EXTRA_FACT, f"First answer has extra facts not in second: {', '.join(only1[:2])}"
        return ConflictType.MISSING_FACT, f"First answer missing facts from second: {', '.join(only2[:2])}"
    return None


def _violation(
    first: ConsistencyAnswer,
    second: ConsistencyAnswer,
    conflict_type: ConflictType,
    severity: Severity,
    explanation: str,
) -> ConsistencyViolation:
    return ConsistencyViolation(
        conflicting_answers=[first, second],
        conflict_type=conflict_type,
        severity=severity,
        explanation=explanation,
    )


def _summarize(violations: list[ConsistencyViolation]) -> ViolationSummary:
    def count(conflict_type: ConflictType) -> int:
        return sum(v.conflict_type == conflict_type for v in violations)

    return ViolationSummary(
        direct_contradictions=count(ConflictType.DIRECT_CONTRADICTION),
        partial_conflicts=count(ConflictType.PARTIAL_CONFLICT),
        missing_facts=count(ConflictType.MISSING_FACT),
        extra_facts=count(ConflictType.EXTRA_FACT),
    )
