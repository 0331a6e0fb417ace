"""
Rule Dispatch
==============

Generic evaluation of ordered rule tables. A rule is any object with a
compiled ``pattern`` attribute; tables are plain tuples so precedence is
simply list order.

Two dispatch modes:
    first_match: the first rule whose pattern matches wins
    iter_matches: every match of every rule, in table order
"""

from __future__ import annotations

import re
from typing import Iterable, Iterator, Optional, Protocol, TypeVar


class Rule(Protocol):
    pattern: re.Pattern[str]


R = TypeVar("R", bound=Rule)


def first_match(rules: Iterable[R], text: str) -> Optional[tuple[R, re.Match[str]]]:
    """Return (rule, match) for the first rule that matches, else None."""
    for rule in rules:
        match = rule.pattern.search(text)
        if match:
            return rule, match
    return None


def iter_matches(rules: Iterable[R], text: str) -> Iterator[tuple[R, re.Match[str]]]:
    """Yield (rule, match) for every non-overlapping match, rule by rule."""
    for rule in rules:
        for match in rule.pattern.finditer(text):
            yield rule, match
