"""
Codeground Test Configuration
==============================

Shared fixtures, factories, and helpers for the entire test suite.
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path

import pytest

# ── Keep the environment from leaking into default configs ──────
for _key in [k for k in os.environ if k.startswith("CODEGROUND_")]:
    del os.environ[_key]

from codeground.config import CodegroundConfig, get_config
from codeground.schemas.citation import Citation, SourceSpan
from codeground.schemas.consistency import ConsistencyAnswer
from codeground.schemas.cove import VerificationAnswer
from codeground.schemas.references import LineReference


# ── Markers ─────────────────────────────────────────────────────

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: fast unit tests")
    config.addinivalue_line("markers", "integration: multi-component tests")


# ── Sample Sources ──────────────────────────────────────────────

PYTHON_SOURCE = '''\
"""Config loading."""

import json


def load_config(path):
    with open(path) as f:
        return json.load(f)


class ConfigStore:
    """Holds loaded configs."""

    def __init__(self):
        self.items = {}

    async def refresh(self, key):
        return self.items.get(key)


normalize = lambda text: text.strip()
'''

TS_SOURCE = """\
import { Base } from './base';

export function parseQuery(input: string): Query {
  return new Query(input);
}

export class UserService extends BaseService implements Disposable {
  constructor(private repo: Repo) {
    super();
  }

  async findUser(id: string): Promise<User> {
    return this.repo.get(id);
  }
}

export const formatName = (first: string, last: string) => `${first} ${last}`;
"""


# ── Fixtures ────────────────────────────────────────────────────

@pytest.fixture
def config() -> CodegroundConfig:
    """Default config."""
    return get_config()


@pytest.fixture
def python_file(tmp_path: Path) -> Path:
    """A small Python module on disk."""
    return write_source(tmp_path, "config_loader.py", PYTHON_SOURCE)


@pytest.fixture
def ts_file(tmp_path: Path) -> Path:
    """A small TypeScript module on disk."""
    return write_source(tmp_path, "user_service.ts", TS_SOURCE)


# ── Factories ───────────────────────────────────────────────────

def write_source(directory: Path, name: str, text: str) -> Path:
    """Write a source file and return its path."""
    path = directory / name
    path.write_text(text, encoding="utf-8")
    return path


def make_citation(
    claim: str = "Default claim.",
    start: int = 0,
    end: int = 10_000,
    citation_id: str | None = None,
) -> Citation:
    """Factory for creating test citations."""
    if citation_id is None:
        citation_id = f"cit_{uuid.uuid4().hex[:8]}"
    return Citation(
        id=citation_id,
        claim=claim,
        source_document="src/example.ts",
        source_span=SourceSpan(start=start, end=end),
        confidence=0.8,
    )


def make_reference(path: Path | str, line: int, content: str | None = None) -> LineReference:
    """Factory for line references."""
    return LineReference(file_path=str(path), line_number=line, content=content)


def make_answer(
    question_id: str = "vq-1",
    answer: str = "Yes, confirmed by context",
    confidence: float = 0.8,
    consistent: bool = True,
) -> VerificationAnswer:
    """Factory for CoVe verification answers."""
    return VerificationAnswer(
        question_id=question_id,
        answer=answer,
        confidence=confidence,
        consistent_with_baseline=consistent,
    )


def make_consistency_answer(
    facts: list[str],
    answer: str = "",
    query_id: str | None = None,
) -> ConsistencyAnswer:
    """Factory for consistency answers with pre-extracted facts."""
    if query_id is None:
        query_id = f"variant-{uuid.uuid4().hex[:6]}"
    return ConsistencyAnswer(
        query_id=query_id,
        query="What does parse return?",
        answer=answer or ". ".join(facts),
        extracted_facts=facts,
    )
