"""
Relationship Rules
===================

Structural relationships stated in a claim ("UserService extends
BaseService", "load has method parse") and the lexical evidence used to
confirm or contradict them in source text.

A relationship is a tagged value ``Relationship(kind, subject, object)``
produced by one named extraction rule per kind. Checking a relationship
against text yields a three-way verdict: match, contradiction, or
neutral (no evidence either way).

Also home to the identifier / term extractors used by citation
grounding, since both read the same claim text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from codeground.patterns.lexicon import COMMON_WORDS


class RelationshipKind(str, Enum):
    EXTENDS = "extends"
    IMPLEMENTS = "implements"
    RETURNS = "returns"
    HAS_METHOD = "hasMethod"
    PARAMETER = "parameter"
    ASYNC = "async"


@dataclass(frozen=True)
class Relationship:
    kind: RelationshipKind
    subject: str
    object: str

    def describe(self, obj: Optional[str] = None) -> str:
        return f"{self.subject} {self.kind.value} {obj if obj is not None else self.object}"


@dataclass(frozen=True)
class RelationshipCheck:
    """Verdict of checking one relationship against text."""
    matches: bool = False
    contradicts: bool = False
    actual_object: Optional[str] = None


NEUTRAL = RelationshipCheck()
MATCH = RelationshipCheck(matches=True)


# ── Extraction Rules ───────────────────────────────────────────────

@dataclass(frozen=True)
class RelationshipRule:
    """
    Extracts one relationship kind. The subject is group 1; the object is
    group 2 unless ``fixed_object`` is set.
    """
    kind: RelationshipKind
    pattern: re.Pattern[str]
    fixed_object: Optional[str] = None

    def extract(self, claim: str) -> Optional[Relationship]:
        match = self.pattern.search(claim.lower())
        if not match:
            return None
        obj = self.fixed_object if self.fixed_object is not None else match.group(2)
        return Relationship(self.kind, match.group(1), obj)


RELATIONSHIP_RULES: tuple[RelationshipRule, ...] = (
    RelationshipRule(RelationshipKind.EXTENDS,
                     re.compile(r"(\w+)\s+(?:extends|inherits\s+from)\s+(\w+)")),
    RelationshipRule(RelationshipKind.IMPLEMENTS,
                     re.compile(r"(\w+)\s+implements\s+(\w+)")),
    RelationshipRule(RelationshipKind.RETURNS,
                     re.compile(r"(\w+)\s+(?:returns|return\s+type)\s+([^\s,]+)")),
    RelationshipRule(RelationshipKind.HAS_METHOD,
                     re.compile(r"(\w+)\s+has\s+(?:a\s+)?method\s+(\w+)")),
    RelationshipRule(RelationshipKind.PARAMETER,
                     re.compile(r"(\w+)\s+(?:takes|has|accepts)\s+(?:a\s+)?(\w+)\s+parameter")),
    RelationshipRule(RelationshipKind.ASYNC,
                     re.compile(r"(\w+)\s+is\s+async"), fixed_object="async"),
)


def extract_relationships(claim: str) -> list[Relationship]:
    """At most one relationship per kind, in rule order."""
    found = []
    for rule in RELATIONSHIP_RULES:
        rel = rule.extract(claim)
        if rel is not None:
            found.append(rel)
    return found


# ── Keyword Bonus Table ────────────────────────────────────────────

@dataclass(frozen=True)
class RelationshipKeywords:
    name: str
    keywords: tuple[str, ...]
    bonus: float

    def found_in(self, text: str) -> bool:
        return any(kw in text for kw in self.keywords)


RELATIONSHIP_KEYWORDS: tuple[RelationshipKeywords, ...] = (
    RelationshipKeywords("extends", ("extends", "inherits from", "subclass of"), 0.15),
    RelationshipKeywords("implements", ("implements",), 0.15),
    RelationshipKeywords("returns", ("returns", "return type"), 0.12),
    RelationshipKeywords("hasMethod", ("has method", "has a method", "method"), 0.10),
    RelationshipKeywords("parameter", ("takes parameter", "has parameter", "parameter", "takes", "accepts"), 0.10),
    RelationshipKeywords("async", ("is async", "async"), 0.10),
    RelationshipKeywords("import", ("imported from", "import", "from"), 0.10),
    RelationshipKeywords("type", ("is an interface", "interface", "is a type", "type alias"), 0.08),
    RelationshipKeywords("class", ("is a class", "class"), 0.08),
    RelationshipKeywords("function", ("is a function", "function"), 0.08),
)

KEYWORD_BONUS: dict[str, float] = {k.name: k.bonus for k in RELATIONSHIP_KEYWORDS}


# ── Relationship Checks ────────────────────────────────────────────

def check_relationship(rel: Relationship, text: str) -> RelationshipCheck:
    """
    Check a relationship against (lower-cased) source text.

    - Subject absent                          → neutral
    - ``class S extends P``, P == object      → match; other P → contradiction
    - ``class S ... implements A, B``         → match if object listed, else contradiction
    - hasMethod: ``object(`` defined anywhere → match; else contradiction
    - anything else: object present           → match, else neutral
    """
    text = text.lower()
    subject = rel.subject.lower()
    obj = rel.object.lower()

    if subject not in text:
        return NEUTRAL

    if rel.kind is RelationshipKind.EXTENDS:
        match = re.search(rf"class\s+{re.escape(subject)}\s+extends\s+(\w+)", text)
        if match:
            if match.group(1) == obj:
                return MATCH
            return RelationshipCheck(contradicts=True, actual_object=match.group(1))

    if rel.kind is RelationshipKind.IMPLEMENTS:
        match = re.search(rf"class\s+{re.escape(subject)}[^{{]*implements\s+([\w,\s]+)", text)
        if match:
            interfaces = [i.strip() for i in re.split(r"\s*,\s*", match.group(1))]
            if obj in interfaces:
                return MATCH
            return RelationshipCheck(contradicts=True, actual_object=match.group(1).strip())

    if rel.kind is RelationshipKind.HAS_METHOD:
        if re.search(rf"(?:async\s+)?{re.escape(obj)}\s*\(", text):
            return MATCH
        return RelationshipCheck(contradicts=True, actual_object="method not found")

    if obj in text:
        return MATCH
    return NEUTRAL


# ── Identifier / Term Extraction ───────────────────────────────────

_QUOTED_IDENTIFIER = re.compile(r"[`'](\w+)[`']")
_QUOTED_TERM = re.compile(r"[`']([^`']+)[`']")
_CAMEL_CASE = re.compile(r"\b([A-Z][a-zA-Z0-9]*)\b")
_CAMEL_CASE_TERM = re.compile(r"\b([A-Z][a-zA-Z0-9]*(?:[A-Z][a-z0-9]+)*)\b")
_LOWER_CAMEL = re.compile(r"\b([a-z]+[A-Z][a-zA-Z0-9]*)\b")
_LOWER_CAMEL_TERM = re.compile(r"\b([a-z][a-zA-Z0-9]*[A-Z][a-zA-Z0-9]*)\b")
_SNAKE_CASE = re.compile(r"\b([a-z][a-z0-9]*(?:_[a-z0-9]+)+)\b")
_WORD = re.compile(r"\b([a-zA-Z][a-zA-Z0-9]{3,})\b")
_SIGNIFICANT_WORD = re.compile(r"\b[a-z]{4,}\b")


class _OrderedTerms:
    """Case-insensitively de-duplicated, insertion-ordered term list."""

    def __init__(self) -> None:
        self.items: list[str] = []
        self._seen: set[str] = set()

    def add(self, term: str, min_length: int = 1) -> None:
        term = term.strip()
        key = term.lower()
        if len(term) >= min_length and key not in self._seen:
            self._seen.add(key)
            self.items.append(term)


def extract_identifiers(text: str) -> list[str]:
    """Quoted, CamelCase, lowerCamelCase and snake_case identifiers, in that order."""
    terms = _OrderedTerms()
    for regex in (_QUOTED_IDENTIFIER, _CAMEL_CASE, _LOWER_CAMEL, _SNAKE_CASE):
        for match in regex.finditer(text):
            terms.add(match.group(1))
    return terms.items


def extract_terms(text: str) -> list[str]:
    """Identifiers (quoted, camel, snake) followed by significant plain words."""
    terms = _OrderedTerms()
    for match in _QUOTED_TERM.finditer(text):
        terms.add(match.group(1))
    for regex in (_CAMEL_CASE_TERM, _LOWER_CAMEL_TERM):
        for match in regex.finditer(text):
            terms.add(match.group(1), min_length=3)
    for match in _SNAKE_CASE.finditer(text):
        terms.add(match.group(1))
    for match in _WORD.finditer(text):
        if match.group(1).lower() not in COMMON_WORDS:
            terms.add(match.group(1))
    return terms.items


def extract_significant_words(text: str) -> list[str]:
    """Lower-case words of four or more letters that are not common words."""
    words = []
    for word in _SIGNIFICANT_WORD.findall(text.lower()):
        if word not in COMMON_WORDS and word not in words:
            words.append(word)
    return words
