"""
Codeground Utilities
=====================

Shared helper functions for logging, hashing, numeric clamping
and text processing used across all modules.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import sys
from typing import Iterable

import numpy as np


# ── Hashing ────────────────────────────────────────────────────────

def compute_hash(data: str | bytes | dict, length: int = 16) -> str:
    """
    Compute a truncated SHA-256 hash.

    Used for config hashing (reproducibility stamps).

    Args:
        data: String, bytes, or dict to hash.
        length: Number of hex characters to return (max 64).

    Returns:
        Hex digest string of specified length.
    """
    if isinstance(data, dict):
        data = json.dumps(data, sort_keys=True, default=str)
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()[:length]


# ── Logging ────────────────────────────────────────────────────────

def setup_logging(
    level: str = "INFO",
    format_style: str = "text",
    run_id: str | None = None
) -> logging.Logger:
    """
    Configure structured logging for Codeground.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format_style: "json" for structured logs, "text" for human-readable.
        run_id: Optional run ID to include in all log entries.

    Returns:
        Configured Logger instance.
    """
    logger = logging.getLogger("codeground")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)

    if format_style == "json":
        class JsonFormatter(logging.Formatter):
            def format(self, record):
                log_entry = {
                    "timestamp": self.formatTime(record),
                    "level": record.levelname,
                    "logger": record.name,
                    "message": record.getMessage(),
                }
                if run_id:
                    log_entry["run_id"] = run_id
                if record.exc_info:
                    log_entry["exception"] = self.formatException(record.exc_info)
                return json.dumps(log_entry)

        handler.setFormatter(JsonFormatter())
    else:
        fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        if run_id:
            fmt = f"%(asctime)s | %(levelname)-8s | {run_id} | %(name)s | %(message)s"
        handler.setFormatter(logging.Formatter(fmt, datefmt="%H:%M:%S"))

    logger.addHandler(handler)
    return logger


# ── Numeric Helpers ────────────────────────────────────────────────

def clamp_unit(value: float) -> float:
    """Clamp a score to [0, 1], mapping NaN to 0."""
    if value != value:  # NaN
        return 0.0
    return float(np.clip(value, 0.0, 1.0))


def safe_mean(values: Iterable[float]) -> float:
    """Arithmetic mean that returns 0.0 for an empty input instead of NaN."""
    arr = np.fromiter(values, dtype=float)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def safe_ratio(numerator: int | float, denominator: int | float) -> float:
    """numerator / denominator, or 0.0 when the denominator is zero."""
    return float(numerator) / float(denominator) if denominator else 0.0


# ── Text Processing Helpers ────────────────────────────────────────

def normalize_whitespace(text: str) -> str:
    """Collapse multiple whitespace characters into single spaces and strip."""
    return " ".join(text.split())


def split_sentences(text: str) -> list[str]:
    """Split on runs of sentence punctuation, dropping empty pieces."""
    return [s.strip() for s in re.split(r"[.!?]+", text) if s.strip()]
