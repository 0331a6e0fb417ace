"""
Citation Verification Pipeline
===============================

Decides whether a citation's claim is grounded in the source span it
points at. Three interchangeable scoring methods:

    exact_match: full-claim substring, else significant-word overlap
    entailment: identifiers present + the *same* structural
        relationship present (extends/implements/...)
    semantic_similarity: weighted term overlap + relationship keyword bonuses

All three share one relationship check, so a claim like "ClassX extends
Base" against "class ClassX extends Other" is scored as a contradiction
(<= 0.3) whichever method runs. Exact match caps only on contradictions
that name a different object, and never on a verbatim hit.

The preferred method runs first. If it does not ground the claim and
fallback is enabled, the remaining methods run in the fixed order
exact_match → entailment → semantic_similarity; the best score is kept
and the search stops as soon as a method grounds the claim.

Data Flow:
    Citation + source document → span extraction → method(s) → GroundingResult
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from codeground.config import CitationConfig, CodegroundConfig
from codeground.patterns.relationships import (
    KEYWORD_BONUS,
    RELATIONSHIP_KEYWORDS,
    Relationship,
    RelationshipCheck,
    RelationshipKind,
    check_relationship,
    extract_identifiers,
    extract_relationships,
    extract_significant_words,
    extract_terms,
)
from codeground.schemas.citation import (
    Citation,
    GroundingResult,
    GroundingStats,
    SourceSpan,
    VerificationMethod,
)
from codeground.utils import clamp_unit, safe_ratio
from codeground.verify.stats import StatsAccumulator

logger = logging.getLogger("codeground.verify.citation")

# Fallback order when a method is not the preferred one
FALLBACK_ORDER = (
    VerificationMethod.EXACT_MATCH,
    VerificationMethod.ENTAILMENT,
    VerificationMethod.SEMANTIC_SIMILARITY,
)

# Score ceilings applied when a stated relationship is contradicted
EXACT_MATCH_CONTRADICTION_CAP = 0.2
ENTAILMENT_CONTRADICTION_CAP = 0.3
SEMANTIC_CONTRADICTION_SCORE = 0.2

# Exact match only caps on contradictions that name a different object
NAMED_OBJECT_KINDS = (RelationshipKind.EXTENDS, RelationshipKind.IMPLEMENTS)


def extract_span(document: str, span: SourceSpan) -> str:
    """
    The cited slice of a document.

    Negative or inverted spans, and spans starting past the end, degrade
    to the whole document; the end is clamped to the document length.
    """
    if span.start < 0 or span.end < 0 or span.start > span.end:
        return document
    if span.start >= len(document):
        return document
    return document[span.start:min(span.end, len(document))]


class CitationVerificationPipeline:
    """
    Scores citation grounding with method fallback.

    Usage:
        pipeline = CitationVerificationPipeline()
        result = pipeline.verify(citation, source_text)
        if not result.is_grounded:
            ...

    Args:
        config: Threshold, preferred method, fallback and weighting settings.
    """

    def __init__(self, config: Optional[CitationConfig] = None):
        self.config = config or CitationConfig()
        self._stats = StatsAccumulator()
        self._methods: dict[VerificationMethod, Callable[[Citation, str, str], GroundingResult]] = {
            VerificationMethod.EXACT_MATCH: self._verify_exact_match,
            VerificationMethod.ENTAILMENT: self._verify_entailment,
            VerificationMethod.SEMANTIC_SIMILARITY: self._verify_semantic_similarity,
        }

    @classmethod
    def from_config(cls, config: CodegroundConfig) -> "CitationVerificationPipeline":
        return cls(config=config.citation)

    # ── Public API ─────────────────────────────────────────────────

    def verify(self, citation: Citation, source_document: str) -> GroundingResult:
        """Grounding verdict for one citation against its source document."""
        if not source_document.strip() or not citation.claim.strip():
            result = self._result(citation, 0.0, [], self.config.preferred_method)
            self._stats.record(False)
            return result

        relevant = extract_span(source_document, citation.source_span)
        preferred = self.config.preferred_method
        result = self._methods[preferred](citation, relevant, source_document)

        if self.config.enable_fallback and not result.is_grounded:
            for method in FALLBACK_ORDER:
                if method == preferred:
                    continue
                candidate = self._methods[method](citation, relevant, source_document)
                if candidate.grounding_score > result.grounding_score:
                    result = candidate
                if result.is_grounded:
                    break

        logger.debug(
            f"Citation {citation.id}: score={result.grounding_score:.3f} "
            f"method={result.method.value} grounded={result.is_grounded}"
        )
        self._stats.record(result.is_grounded)
        return result

    def verify_batch(self, citations: list[Citation], source_document: str) -> list[GroundingResult]:
        """Verify citations in order against one document."""
        results = [self.verify(c, source_document) for c in citations]
        grounded = sum(r.is_grounded for r in results)
        logger.info(f"Verified {len(results)} citation(s): {grounded} grounded")
        return results

    def get_grounding_stats(self) -> GroundingStats:
        total, grounded, accuracy = self._stats.snapshot()
        return GroundingStats(total=total, grounded=grounded, accuracy=accuracy)

    def reset_stats(self) -> None:
        self._stats.reset()

    # ── Methods ────────────────────────────────────────────────────

    def _verify_exact_match(self, citation: Citation, relevant: str, document: str) -> GroundingResult:
        claim = citation.claim.lower().strip()
        doc_lower = document.lower()
        relevant_lower = relevant.lower()
        evidence: list[str] = []

        if claim in doc_lower:
            score = 1.0
            evidence.append(f'Exact match found: "{claim[:100]}"')
        else:
            words = extract_significant_words(claim)
            matched = [w for w in words if w in doc_lower or w in relevant_lower]
            evidence.extend(f'Word match: "{w}"' for w in matched)
            score = safe_ratio(len(matched), len(words))

        for rel, check in self._contradictions(citation.claim, doc_lower, relevant_lower):
            evidence.append(_contradiction_evidence(rel, check))
            if claim not in doc_lower and rel.kind in NAMED_OBJECT_KINDS:
                score = min(score, EXACT_MATCH_CONTRADICTION_CAP)

        return self._result(citation, score, evidence, VerificationMethod.EXACT_MATCH)

    def _verify_entailment(self, citation: Citation, relevant: str, document: str) -> GroundingResult:
        doc_lower = document.lower()
        relevant_lower = relevant.lower()
        evidence: list[str] = []

        identifiers = extract_identifiers(citation.claim)
        found = [i for i in identifiers if i.lower() in doc_lower]
        evidence.extend(f'Found identifier: "{i}"' for i in found)
        identifier_score = safe_ratio(len(found), len(identifiers))

        relationship_score = 0.0
        contradicted = False
        for rel in extract_relationships(citation.claim):
            check = self._check(rel, doc_lower, relevant_lower)
            if check.matches:
                relationship_score += KEYWORD_BONUS[rel.kind.value]
                evidence.append(f"Relationship found: {rel.describe()}")
            elif check.contradicts:
                contradicted = True
                evidence.append(_contradiction_evidence(rel, check))

        if contradicted:
            score = min(ENTAILMENT_CONTRADICTION_CAP, identifier_score * 0.3)
        else:
            score = min(1.0, identifier_score * 0.6 + relationship_score + 0.2)
            if identifier_score > 0.5 and relationship_score > 0.1:
                score = min(1.0, score + 0.15)

        return self._result(citation, score, evidence, VerificationMethod.ENTAILMENT)

    def _verify_semantic_similarity(self, citation: Citation, relevant: str, document: str) -> GroundingResult:
        claim_lower = citation.claim.lower()
        doc_lower = document.lower()
        relevant_lower = relevant.lower()
        evidence: list[str] = []

        terms = extract_terms(citation.claim)
        if not terms:
            return self._result(citation, 0.0, evidence, VerificationMethod.SEMANTIC_SIMILARITY)

        contradicted = False
        for rel in extract_relationships(claim_lower):
            check = self._check(rel, doc_lower, relevant_lower)
            if check.contradicts:
                contradicted = True
                evidence.append(_contradiction_evidence(rel, check))
            elif check.matches:
                evidence.append(f"Relationship verified: {rel.describe()}")
        if contradicted:
            return self._result(
                citation, SEMANTIC_CONTRADICTION_SCORE, evidence, VerificationMethod.SEMANTIC_SIMILARITY
            )

        combined = f"{doc_lower} {relevant_lower}"
        matched = exact = 0
        for term in terms:
            term_lower = term.lower()
            if term_lower not in combined:
                continue
            matched += 1
            if re.search(rf"\b{re.escape(term_lower)}\b", combined):
                exact += 1
                evidence.append(f'Exact term match: "{term}"')
            else:
                evidence.append(f'Partial term match: "{term}"')

        w = self.config.exact_match_weight
        overlap = matched / len(terms)
        exact_ratio = exact / len(terms)
        score = overlap * (1 - w) + exact_ratio * w + overlap * w * 0.3

        bonus = sum(
            k.bonus for k in RELATIONSHIP_KEYWORDS
            if k.found_in(claim_lower) and k.found_in(combined)
        )
        score = min(1.0, score + bonus)
        if overlap > 0.6 and bonus > 0.1:
            score = min(1.0, score + 0.1)

        return self._result(citation, score, evidence, VerificationMethod.SEMANTIC_SIMILARITY)

    # ── Helpers ────────────────────────────────────────────────────

    @staticmethod
    def _check(rel: Relationship, doc_lower: str, relevant_lower: str) -> RelationshipCheck:
        return check_relationship(rel, f"{doc_lower} {relevant_lower}")

    def _contradictions(
        self, claim: str, doc_lower: str, relevant_lower: str
    ) -> list[tuple[Relationship, RelationshipCheck]]:
        found = []
        for rel in extract_relationships(claim):
            check = self._check(rel, doc_lower, relevant_lower)
            if check.contradicts:
                found.append((rel, check))
        return found

    def _result(
        self,
        citation: Citation,
        score: float,
        evidence: list[str],
        method: VerificationMethod,
    ) -> GroundingResult:
        score = clamp_unit(score)
        return GroundingResult(
            citation=citation,
            is_grounded=score > 0.0 and score >= self.config.grounding_threshold,
            grounding_score=score,
            evidence=evidence,
            method=method,
        )


def _contradiction_evidence(rel: Relationship, check: RelationshipCheck) -> str:
    return f"Contradiction: {rel.describe(check.actual_object)} (not {rel.object})"
