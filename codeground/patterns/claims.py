"""
Claim Rules
============

Rule table used by the chain-of-verification planner. Each rule turns
a claim found in a draft answer into a verification question with an
expected answer shape.

Table order is significant: rules are scanned top to bottom and the
planner keeps the first occurrence of each claim text, so an earlier
rule owns any claim text it matches.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from codeground.patterns.lexicon import NUMBER_ALTERNATION
from codeground.schemas.cove import AnswerType


@dataclass(frozen=True)
class ClaimRule:
    """
    A claim pattern and its question template.

    The template is a str.format string; ``{0}`` is the whole match and
    ``{1}``, ``{2}``... are the capture groups.
    """
    name: str
    pattern: re.Pattern[str]
    answer_type: AnswerType
    template: str

    def question_for(self, match: re.Match[str]) -> str:
        groups = [g or "" for g in match.groups()]
        return self.template.format(match.group(0), *groups)


def _rule(name: str, regex: str, answer_type: AnswerType, template: str) -> ClaimRule:
    return ClaimRule(name, re.compile(regex, re.IGNORECASE), answer_type, template)


CLAIM_RULES: tuple[ClaimRule, ...] = (
    # "Parser has three methods"
    _rule("count", rf"(\w+)\s+has\s+({NUMBER_ALTERNATION})\s+(\w+)",
          AnswerType.NUMERIC, "How many {3} does {1} have?"),
    # "parse returns Promise<Node>"
    _rule("returns", r"(\w+)\s+returns?\s+([A-Z][a-zA-Z<>\[\]]+|\w+)",
          AnswerType.FACTUAL, "What does {1} return?"),
    # "Parser is a class"
    _rule("is_a", r"(\w+)\s+is\s+(a|an)\s+(\w+)",
          AnswerType.BOOLEAN, "Is {1} {2} {3}?"),
    # "has a method called tokenize"
    _rule("has_method", r"(?:has|have)\s+(?:a\s+)?method\s+(?:called\s+)?(\w+)",
          AnswerType.BOOLEAN, "Does it have a method called {1}?"),
    # "defined in src/parser.py"
    _rule("location", r"(?:defined|located)\s+in\s+([^\s.]+)",
          AnswerType.FACTUAL, "Where is it defined?"),
    # "accepts a path parameter"
    _rule("parameter", r"(?:accepts?|takes?)\s+(?:a\s+)?(\w+)\s+(?:parameter|argument)",
          AnswerType.FACTUAL, "What parameter does it accept?"),
    # "Parser extends BaseParser"
    _rule("inheritance", r"(\w+)\s+(?:extends?|implements?)\s+(\w+)",
          AnswerType.BOOLEAN, "Does {1} extend/implement {2}?"),
    # "has a property called name"
    _rule("property", r"has\s+(?:a\s+)?(?:property|attribute)\s+(?:called\s+)?(\w+)",
          AnswerType.BOOLEAN, "Does it have a property called {1}?"),
)

_UNIT_REGEX = re.compile(r"how\s+many\s+(\w+)", re.IGNORECASE)


def question_unit(question: str) -> str:
    """Unit noun of a count question ('How many methods ...' → 'methods'), or ''."""
    match = _UNIT_REGEX.search(question)
    return match.group(1).lower() if match else ""
