"""
Chain-of-Verification Engine
=============================

Self-check of a draft answer in four strictly sequential stages:

    1. Baseline: caller's draft, or one synthesized from context lines
    2. Plan: claim rules turn claims in the draft into questions
    3. Answer: each question answered independently from context
    4. Synthesize: contradicted claims are revised, hedged, or left alone

Resolution by answer confidence (for answers inconsistent with the draft):
    >= 0.7         revise: replace the contradicted number, or append a
                   "[Verified: ...]" note
    [0.4, 0.7)     hedge the claim's sentence (when hedging is enabled)
    < 0.4          leave the draft unchanged (claim recorded as removed)

Overall confidence is a derived value:
    (0.6 * mean(answer confidence) + 0.4 * consistency rate) * min(1, |context| / 5)
and is ``absent`` when there is no context at all.

Data Flow:
    query + context (+ draft) → plan → answer → synthesize → CoVeResult
"""

from __future__ import annotations

import itertools
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from codeground.config import CodegroundConfig, CoVeConfig
from codeground.patterns.claims import CLAIM_RULES, question_unit
from codeground.patterns.lexicon import (
    NUMBER_ALTERNATION,
    extract_key_terms,
    extract_number,
    has_hedging,
    hedge_for_confidence,
    is_negative_result,
    number_to_word,
    word_to_number,
)
from codeground.patterns.rules import iter_matches
from codeground.schemas.confidence import (
    ConfidenceInput,
    ConfidenceValue,
    absent,
    derived,
)
from codeground.schemas.cove import (
    AnswerType,
    CoVeResult,
    ImprovementMetrics,
    Inconsistency,
    Resolution,
    VerificationAnswer,
    VerificationQuestion,
)
from codeground.schemas.references import VerificationStats
from codeground.utils import safe_mean, split_sentences
from codeground.verify.stats import StatsAccumulator

logger = logging.getLogger("codeground.verify.cove")

# Confidence bands for resolving an inconsistent answer
REVISE_THRESHOLD = 0.7
HEDGE_THRESHOLD = 0.4

# Unverified draft prior used by the improvement metric
BASELINE_PRIOR = 0.5

# Number of context items at which the context factor reaches 1
FULL_CONTEXT_ITEMS = 5

NO_CONTEXT_ANSWER = "Unable to verify - no context available"
NO_EVIDENCE_ANSWER = "No supporting evidence found in context"

_NUMBER_THEN_WORD = re.compile(rf"\b({NUMBER_ALTERNATION})\s+(\w+)", re.IGNORECASE)
_SENTENCE_SPLIT = re.compile(r"([.!?]+)")


class ChainOfVerification:
    """
    Chain-of-verification over a draft answer and its context.

    Usage:
        cove = ChainOfVerification()
        result = cove.verify(
            "What does load return?",
            context=["def load(path): returns three values"],
            baseline_response="load returns two values.",
        )
        print(result.final_response)   # "load returns 3 values."

    Args:
        config: Question cap, hedging and parallelism settings.
    """

    def __init__(self, config: Optional[CoVeConfig] = None):
        self.config = config or CoVeConfig()
        self._question_ids = itertools.count(1)
        self._stats = StatsAccumulator()

    @classmethod
    def from_config(cls, config: CodegroundConfig) -> "ChainOfVerification":
        return cls(config=config.cove)

    def verify(
        self,
        query: str,
        context: list[str],
        baseline_response: Optional[str] = None,
    ) -> CoVeResult:
        """Run all four stages and assemble the result."""
        baseline = baseline_response or self.generate_baseline(query, context)
        questions = self.plan_verification_questions(baseline)
        answers = self.answer_verification_questions(questions, context)
        inconsistencies = self.detect_inconsistencies(baseline, answers, questions)
        final = self.synthesize_final_response(baseline, answers, questions)

        metrics = self._improvement_metrics(answers, inconsistencies)
        confidence = self._overall_confidence(answers, len(context))

        self._stats.record(not inconsistencies)
        logger.info(
            f"CoVe: {len(questions)} question(s), {metrics.claims_verified} verified, "
            f"{metrics.claims_revised} revised"
        )
        return CoVeResult(
            original_query=query,
            baseline_response=baseline,
            verification_questions=questions,
            verification_answers=answers,
            inconsistencies=inconsistencies,
            final_response=final,
            improvement_metrics=metrics,
            confidence=confidence,
        )

    def get_verification_stats(self) -> VerificationStats:
        """Runs so far; a run counts as verified when no claim was contradicted."""
        total, verified, accuracy = self._stats.snapshot()
        return VerificationStats(total=total, verified=verified, accuracy=accuracy)

    # ── Stage 1: Baseline ──────────────────────────────────────────

    def generate_baseline(self, query: str, context: list[str]) -> str:
        """
        Draft answer from context: lines sharing a query word longer than
        three characters, else the first five lines.
        """
        if not query and not context:
            return ""
        if not context:
            return f'Based on the query "{query}", no specific information is available.'

        keywords = [w for w in query.lower().split() if len(w) > 3]
        relevant = [line for line in context if any(k in line.lower() for k in keywords)]
        if not relevant:
            relevant = context[:FULL_CONTEXT_ITEMS]
        return " ".join(relevant)

    # ── Stage 2: Plan ──────────────────────────────────────────────

    def plan_verification_questions(self, response: str) -> list[VerificationQuestion]:
        """One question per distinct claim, in rule order, capped by config."""
        questions: list[VerificationQuestion] = []
        seen: set[str] = set()

        for rule, match in iter_matches(CLAIM_RULES, response):
            claim = match.group(0)
            key = claim.lower().strip()
            if key in seen:
                continue
            seen.add(key)
            questions.append(VerificationQuestion(
                id=f"vq-{next(self._question_ids)}",
                question=rule.question_for(match),
                target_claim=claim,
                expected_answer_type=rule.answer_type,
            ))
            if len(questions) >= self.config.max_verification_questions:
                break

        logger.debug(f"Planned {len(questions)} verification question(s)")
        return questions

    # ── Stage 3: Answer ────────────────────────────────────────────

    def answer_verification_questions(
        self, questions: list[VerificationQuestion], context: list[str]
    ) -> list[VerificationAnswer]:
        """Answer each question independently; output follows question order."""
        if self.config.parallel_answers and len(questions) > 1:
            with ThreadPoolExecutor() as pool:
                return list(pool.map(lambda q: self.answer_question(q, context), questions))
        return [self.answer_question(q, context) for q in questions]

    def answer_question(self, question: VerificationQuestion, context: list[str]) -> VerificationAnswer:
        if not context:
            return VerificationAnswer(
                question_id=question.id,
                answer=NO_CONTEXT_ANSWER,
                confidence=0.1,
                consistent_with_baseline=False,
            )

        terms = extract_key_terms(f"{question.question} {question.target_claim}")
        relevant = [line for line in context if any(t in line.lower() for t in terms)]
        if not relevant:
            return VerificationAnswer(
                question_id=question.id,
                answer=NO_EVIDENCE_ANSWER,
                confidence=0.2,
                consistent_with_baseline=False,
            )

        combined = " ".join(relevant)
        if question.expected_answer_type == AnswerType.NUMERIC:
            answer, confidence = self._numeric_answer(combined, question)
        elif question.expected_answer_type == AnswerType.BOOLEAN:
            answer, confidence = self._boolean_answer(combined, question)
        else:
            answer, confidence = self._factual_answer(combined, question), 0.7

        return VerificationAnswer(
            question_id=question.id,
            answer=answer,
            confidence=confidence,
            source_citation=relevant[0],
            consistent_with_baseline=self.is_consistent(question.target_claim, answer),
        )

    def _numeric_answer(self, context: str, question: VerificationQuestion) -> tuple[str, float]:
        matches = list(_NUMBER_THEN_WORD.finditer(context))
        if not matches:
            return "Unable to determine count", 0.3

        unit = question_unit(question.question).rstrip("s")
        chosen = matches[0]
        if unit:
            for m in matches:
                if m.group(2).lower().startswith(unit):
                    chosen = m
                    break
        return str(word_to_number(chosen.group(1))), 0.8

    def _boolean_answer(self, context: str, question: VerificationQuestion) -> tuple[str, float]:
        terms = extract_key_terms(question.target_claim)
        context_lower = context.lower()
        ratio = sum(t in context_lower for t in terms) / len(terms) if terms else 0.0
        if ratio >= 0.5:
            return "Yes, confirmed by context", min(0.9, 0.5 + ratio * 0.4)
        return "Not confirmed by context", 0.4

    def _factual_answer(self, context: str, question: VerificationQuestion) -> str:
        sentences = [s for s in re.split(r"[.!?]+", context) if s.strip()]
        if not sentences:
            return "No factual information found"

        terms = extract_key_terms(question.question)
        best, best_score = sentences[0], 0
        for sentence in sentences:
            lowered = sentence.lower()
            score = sum(t in lowered for t in terms)
            if score > best_score:
                best, best_score = sentence, score
        return best.strip()

    def is_consistent(self, claim: str, answer: str) -> bool:
        """
        Whether an answer supports the claim it was asked about.

        Negative-result answers and differing numbers are inconsistent;
        otherwise the answer must share min(2, 30% of claim terms) terms.
        """
        if is_negative_result(answer):
            return False

        claim_number = extract_number(claim)
        answer_number = extract_number(answer)
        if claim_number is not None and answer_number is not None and claim_number != answer_number:
            return False

        claim_terms = extract_key_terms(claim)
        answer_terms = set(extract_key_terms(answer))
        overlap = sum(t in answer_terms for t in claim_terms)
        return overlap >= min(2, len(claim_terms) * 0.3)

    # ── Stage 4: Synthesize ────────────────────────────────────────

    def detect_inconsistencies(
        self,
        baseline: str,
        answers: list[VerificationAnswer],
        questions: Optional[list[VerificationQuestion]] = None,
    ) -> list[Inconsistency]:
        claims = _target_claims(questions)
        found = []
        for answer in answers:
            if answer.consistent_with_baseline:
                continue
            found.append(Inconsistency(
                question_id=answer.question_id,
                baseline_claim=self._claim_in_baseline(baseline, answer, claims.get(answer.question_id)),
                verified_claim=answer.answer,
                resolution=_resolution(answer.confidence),
            ))
        return found

    def synthesize_final_response(
        self,
        baseline: str,
        answers: list[VerificationAnswer],
        questions: Optional[list[VerificationQuestion]] = None,
    ) -> str:
        """Apply revisions and hedges for every answer inconsistent with the baseline."""
        claims = _target_claims(questions)
        response = baseline
        for answer in answers:
            if answer.consistent_with_baseline:
                continue
            target = claims.get(answer.question_id)
            if answer.confidence >= REVISE_THRESHOLD:
                response = self._revise(response, answer, target)
            elif answer.confidence >= HEDGE_THRESHOLD and self.config.add_hedging_for_low_confidence:
                response = self._hedge(response, answer, target)
        return response

    def _claim_in_baseline(
        self, baseline: str, answer: VerificationAnswer, target: Optional[str]
    ) -> str:
        sentences = split_sentences(baseline)
        if target:
            for sentence in sentences:
                if target.lower() in sentence.lower():
                    return sentence
        terms = extract_key_terms(answer.answer)
        for sentence in sentences:
            lowered = sentence.lower()
            if any(t in lowered for t in terms):
                return sentence
        return sentences[0] if sentences else baseline[:100]

    def _revise(self, response: str, answer: VerificationAnswer, target: Optional[str]) -> str:
        corrected = extract_number(answer.answer)
        if corrected is None:
            return f"{response} [Verified: {answer.answer[:100]}]"

        pieces = _SENTENCE_SPLIT.split(response)
        for i, piece in enumerate(pieces):
            if target and not _relates_to(piece, target):
                continue
            stated = extract_number(piece)
            if stated is None or stated == corrected:
                continue
            pattern = re.compile(rf"\b({stated}|{number_to_word(stated)})\b", re.IGNORECASE)
            pieces[i] = pattern.sub(str(corrected), piece)
        return "".join(pieces)

    def _hedge(self, response: str, answer: VerificationAnswer, target: Optional[str]) -> str:
        """Prefix the first related, un-hedged sentence with a hedge phrase."""
        hedge = hedge_for_confidence(answer.confidence)
        pieces = _SENTENCE_SPLIT.split(response)
        for i, piece in enumerate(pieces):
            trimmed = piece.strip()
            if not trimmed or has_hedging(trimmed):
                continue
            related = _relates_to(piece, target) if target else _shares_terms(piece, answer.answer)
            if related:
                lead = " " if i > 0 else ""
                pieces[i] = f"{lead}{hedge} {trimmed[0].lower()}{trimmed[1:]}"
                break
        return "".join(pieces).strip()

    # ── Metrics / Confidence ───────────────────────────────────────

    def _improvement_metrics(
        self, answers: list[VerificationAnswer], inconsistencies: list[Inconsistency]
    ) -> ImprovementMetrics:
        mean = safe_mean(a.confidence for a in answers) if answers else BASELINE_PRIOR
        return ImprovementMetrics(
            claims_verified=sum(a.consistent_with_baseline for a in answers),
            claims_revised=sum(i.resolution == Resolution.REVISED for i in inconsistencies),
            confidence_improvement=mean - BASELINE_PRIOR,
        )

    def _overall_confidence(self, answers: list[VerificationAnswer], context_size: int) -> ConfidenceValue:
        if context_size == 0:
            return absent("insufficient_data")
        if not answers:
            return derived(0.3, "no_verification_questions")

        mean = safe_mean(a.confidence for a in answers)
        rate = sum(a.consistent_with_baseline for a in answers) / len(answers)
        context_factor = min(1.0, context_size / FULL_CONTEXT_ITEMS)
        inputs = [
            ConfidenceInput(
                name=f"answer_{i}_confidence",
                confidence=derived(a.confidence, "context_match_score"),
            )
            for i, a in enumerate(answers)
        ]
        return derived(
            (mean * 0.6 + rate * 0.4) * context_factor,
            "(avg_confidence * 0.6 + consistency_rate * 0.4) * context_factor",
            inputs,
        )


def _resolution(confidence: float) -> Resolution:
    if confidence >= REVISE_THRESHOLD:
        return Resolution.REVISED
    if confidence >= HEDGE_THRESHOLD:
        return Resolution.KEPT_ORIGINAL
    return Resolution.REMOVED


def _target_claims(questions: Optional[list[VerificationQuestion]]) -> dict[str, str]:
    return {q.id: q.target_claim for q in questions or []}


def _relates_to(sentence: str, claim: str) -> bool:
    """A sentence relates to a claim if it contains it or shares a non-numeric key term with it."""
    lowered = sentence.lower()
    if claim.lower() in lowered:
        return True
    terms = [t for t in extract_key_terms(claim) if word_to_number(t) is None]
    return any(t in lowered for t in terms)


def _shares_terms(sentence: str, text: str) -> bool:
    lowered = sentence.lower()
    return any(t in lowered for t in extract_key_terms(text))
