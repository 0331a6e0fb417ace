"""
Lexicon
========

Static word tables shared by the verifiers: numeric words, stop words,
synonym groups, hedge phrases and negative-result phrases, plus the
small pure helpers that read them.

All tables are immutable module constants; nothing here holds state.
"""

from __future__ import annotations

import re
from typing import Optional


# ── Numeric Words ──────────────────────────────────────────────────

# Bidirectional 0–10 lookup. Order matters: extract_number() scans in
# this order when looking for a spelled-out number.
NUMERIC_WORDS: dict[str, int] = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}
NUMBER_WORDS: dict[int, str] = {v: k for k, v in NUMERIC_WORDS.items()}

# Regex alternation for "a number or a number word" (used in rule tables)
NUMBER_ALTERNATION = r"\d+|" + "|".join(NUMERIC_WORDS)

_NUMBER_WORD_REGEXES = [
    (re.compile(rf"\b{word}\b"), value) for word, value in NUMERIC_WORDS.items()
]
_DIGITS_REGEX = re.compile(r"\b(\d+)\b")


def word_to_number(token: str) -> Optional[int]:
    """'three' → 3, '12' → 12, anything else → None."""
    token = token.strip().lower()
    if token in NUMERIC_WORDS:
        return NUMERIC_WORDS[token]
    if token.isdigit():
        return int(token)
    return None


def number_to_word(value: int) -> str:
    """3 → 'three'; values outside 0–10 stay as digits."""
    return NUMBER_WORDS.get(value, str(value))


def extract_number(text: str) -> Optional[int]:
    """
    First number mentioned in text.

    Spelled-out numbers are checked first (in table order, whole words
    only), then digit runs.
    """
    lowered = text.lower()
    for regex, value in _NUMBER_WORD_REGEXES:
        if regex.search(lowered):
            return value
    match = _DIGITS_REGEX.search(lowered)
    if match:
        return int(match.group(1))
    return None


# ── Stop Words / Key Terms ─────────────────────────────────────────

STOP_WORDS = frozenset({
    "the", "a", "an", "is", "are", "was", "were", "has", "have", "had",
    "does", "do", "did", "what", "how", "many", "which", "that", "this", "it",
})

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def extract_key_terms(text: str) -> list[str]:
    """
    Lower-cased content words longer than two characters.

    Punctuation becomes whitespace, so "parse()" yields "parse".
    Order and duplicates are preserved.
    """
    cleaned = _NON_ALNUM.sub(" ", text.lower())
    return [w for w in cleaned.split() if len(w) > 2 and w not in STOP_WORDS]


# Words too generic to count as evidence in citation grounding
COMMON_WORDS = frozenset({
    "the", "that", "this", "with", "from", "have", "has", "had",
    "will", "would", "could", "should", "been", "being", "were",
    "which", "their", "about", "into", "does", "function", "class",
    "method", "parameter", "returns", "takes", "type", "interface",
    "and", "for", "are", "but", "not", "you", "all", "can", "her",
    "was", "one", "our", "out", "day", "get", "him", "his", "how",
    "its", "may", "new", "now", "old", "see", "way", "who", "any",
})


# ── Synonym Groups ─────────────────────────────────────────────────

# Canonical form first. Facts are rewritten to the canonical form so
# "takes two args" and "accepts 2 parameters" compare equal.
SYNONYM_GROUPS: tuple[tuple[str, ...], ...] = (
    ("parameter", "parameters", "argument", "arguments", "arg", "args",
     "param", "params", "input", "inputs"),
    ("accepts", "accept", "takes", "take", "receives", "receive", "has"),
    ("returns", "return", "gives", "give", "outputs", "output", "produces", "produce"),
    ("defined", "located", "found", "implemented", "declared"),
    ("function", "method", "func"),
    ("class", "type", "interface"),
)

SYNONYM_MAP: dict[str, str] = {
    variant: group[0] for group in SYNONYM_GROUPS for variant in group[1:]
}

_SYNONYM_REGEX = re.compile(
    r"\b(" + "|".join(sorted(SYNONYM_MAP, key=len, reverse=True)) + r")\b"
)


def canonicalize_synonyms(text: str) -> str:
    """Replace every synonym variant with its group's canonical word."""
    return _SYNONYM_REGEX.sub(lambda m: SYNONYM_MAP[m.group(1)], text)


# ── Hedging / Negative Results ─────────────────────────────────────

# Indexed by confidence bucket: HEDGE_PHRASES[floor(conf * 6)]
HEDGE_PHRASES: tuple[str, ...] = (
    "may", "might", "possibly", "appears to", "seems to", "likely",
)

# Phrases marking an answer that failed to confirm anything
NEGATIVE_RESULT_PHRASES: tuple[str, ...] = (
    "not confirmed", "unable to", "no supporting", "not found", "no information",
)


def hedge_for_confidence(confidence: float) -> str:
    """Hedge phrase for a confidence in [0, 1]."""
    index = int(confidence * len(HEDGE_PHRASES))
    return HEDGE_PHRASES[min(max(index, 0), len(HEDGE_PHRASES) - 1)]


def has_hedging(text: str) -> bool:
    lowered = text.lower()
    return any(phrase in lowered for phrase in HEDGE_PHRASES)


def is_negative_result(text: str) -> bool:
    lowered = text.lower()
    return any(phrase in lowered for phrase in NEGATIVE_RESULT_PHRASES)
