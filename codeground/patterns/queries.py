"""
Query Rules
============

Paraphrase templates and fact-extraction patterns for the consistency
checker.

Template families are tried in table order and only the first matching
family contributes paraphrases. Fact patterns are all applied, in table
order, over normalized answer text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Source-file extensions recognised in location facts
SOURCE_EXTENSION = r"\.(?:tsx?|jsx?|mjs|cjs|pyi?|go|rs|java|kt|rb|cs|cpp|hpp|c|h)\b"


# ── Paraphrase Templates ───────────────────────────────────────────

@dataclass(frozen=True)
class TemplateFamily:
    """A question shape and its fixed paraphrases; ``{0}`` is the identifier."""
    name: str
    pattern: re.Pattern[str]
    paraphrases: tuple[str, ...]

    def expand(self, match: re.Match[str]) -> list[str]:
        return [p.format(match.group(1)) for p in self.paraphrases]


def _family(name: str, regex: str, *paraphrases: str) -> TemplateFamily:
    return TemplateFamily(name, re.compile(regex, re.IGNORECASE), paraphrases)


TEMPLATE_FAMILIES: tuple[TemplateFamily, ...] = (
    _family(
        "parameters",
        r"what\s+(?:parameters?|arguments?)\s+does\s+(?:function\s+)?(\w+)\s+(?:accept|take)",
        "What are the arguments to function {0}?",
        "What inputs does {0} take?",
        "Describe the parameters of {0}",
        "List function {0}'s parameters",
        "What does {0} accept as parameters?",
    ),
    _family(
        "return_type",
        r"what\s+does\s+(?:function\s+)?(\w+)\s+return",
        "What is the return type of {0}?",
        "What does {0} give back?",
        "Describe what {0} returns",
        "What type does {0} return?",
    ),
    _family(
        "definition",
        r"where\s+is\s+(?:function\s+)?(\w+)\s+defined",
        "In which file is {0} located?",
        "Where can I find the definition of {0}?",
        "What file contains {0}?",
        "Where is {0} implemented?",
    ),
    _family(
        "purpose",
        r"what\s+does\s+(?:the\s+)?(\w+)\s+(?:class\s+)?do",
        "What is the purpose of {0}?",
        "Describe what {0} does",
        "Explain the functionality of {0}",
        "What is {0} responsible for?",
    ),
    _family(
        "methods",
        r"what\s+methods?\s+does\s+(?:the\s+)?(\w+)\s+(?:class\s+)?have",
        "List the methods of {0}",
        "What functions does {0} provide?",
        "Describe the methods in {0}",
        "What can you call on {0}?",
    ),
)

_LEADING_WHAT = re.compile(r"^what ", re.IGNORECASE)
_LEADING_HOW = re.compile(r"^how ", re.IGNORECASE)


def generic_paraphrases(query: str) -> list[str]:
    """Rephrasings for queries no template family matches."""
    variants = []
    lowered = query.lower()
    if lowered.startswith("what "):
        variants.append(_LEADING_WHAT.sub("Describe ", query))
        variants.append(_LEADING_WHAT.sub("Explain ", query))
    if lowered.startswith("how "):
        variants.append(_LEADING_HOW.sub("In what way ", query))
    if "?" in query:
        statement = query[:-1] if query.endswith("?") else query
        variants.append(f"Tell me about {statement.lower()}")
    return variants


# ── Fact Patterns ──────────────────────────────────────────────────

@dataclass(frozen=True)
class FactRule:
    name: str
    pattern: re.Pattern[str]


def _fact(name: str, regex: str) -> FactRule:
    return FactRule(name, re.compile(regex, re.IGNORECASE))


FACT_RULES: tuple[FactRule, ...] = (
    # parameters
    _fact("parameter_count",
          r"(?:accepts?|takes?|has)\s+(\d+|one|two|three|four|five)\s+(?:parameters?|arguments?)"),
    _fact("typed_parameter", r"parameter\s+(\w+)\s+(?:is\s+)?(?:of\s+)?type\s+(\w+)"),
    _fact("named_parameter", r"(\w+)\s+(?:is\s+)?(?:a\s+)?(\w+)\s+parameter"),
    # return values
    _fact("returns", r"returns?\s+(?:a\s+)?(?:the\s+)?(\w+(?:<[^>]+>)?)"),
    _fact("return_type", r"return\s+type\s+(?:is\s+)?(\w+(?:<[^>]+>)?)"),
    # locations
    _fact("defined_in", rf"(?:defined|located|found|implemented)\s+in\s+([^\s,]+{SOURCE_EXTENSION})"),
    _fact("file_line", rf"(?:in\s+)?([^\s]+{SOURCE_EXTENSION})\s+(?:at\s+)?line\s+(\d+)"),
    _fact("line", r"line\s+(\d+)"),
    # types
    _fact("type_declaration", r"(?:type|interface)\s+(\w+)"),
    _fact("of_type", r"(\w+)\s+(?:is\s+)?(?:of\s+)?type\s+(\w+)"),
    # explicit lists
    _fact("parameter_list", r"(?:parameters?|arguments?):\s*([^.]+)"),
    _fact("method_list", r"(?:methods?|functions?):\s*([^.]+)"),
)

# Used by the contradiction checks on normalized facts
FILE_LOCATION_REGEX = re.compile(rf"([^\s]+{SOURCE_EXTENSION})", re.IGNORECASE)
RETURN_TYPE_REGEX = re.compile(r"returns?\s+(\w+(?:<[^>]+>)?)", re.IGNORECASE)
COUNT_REGEX = re.compile(r"(\d+)\s+(?:parameters?|arguments?|methods?)", re.IGNORECASE)
PARAMETER_COUNT_REGEX = re.compile(r"(?:has\s+)?(\d+)\s+parameter", re.IGNORECASE)
