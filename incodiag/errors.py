# incodiag/errors.py
"""
Error types and failure taxonomy for incodiag.

Reconciliation never fails as a whole: every problem met while mapping a
compiler diagnostic back onto the original tree degrades locally.  The
exception classes below are therefore only raised at the edges (explicit,
invalid configuration; strict overlay loading for tooling), while the
reconciler itself works with :class:`FailureKind` and :class:`ReadResult`
values and decides the fallback in one place.

Hierarchy
─────────
    IncodiagError
    ├── OverlayError   - overlay.json missing / unreadable / malformed
    └── ConfigError    - invalid explicit configuration
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from pathlib import Path
from typing import Optional, Union


class IncodiagError(Exception):
    """Base class for all incodiag errors."""


class OverlayError(IncodiagError):
    """The substitution artifact could not be loaded."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class ConfigError(IncodiagError):
    """An explicitly supplied configuration value is unusable."""


# ═══════════════════════════════════════════════════════════════════════════════
# FAILURE TAXONOMY
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class FailureKind(Enum):
    """
    Local failure classes met during a reconciliation batch.

    None of them is fatal; they only decide which fallback applies.
    """

    # overlay.json absent, module directory not found
    ADVISORY_MISSING = "advisory-missing"

    # unparseable JSON, unexpected artifact shape
    MALFORMED_INPUT = "malformed-input"

    # marker or anchor lookup failed for one diagnostic; raw line kept
    PARTIAL_RESOLUTION = "partial-resolution"

    # the diagnostic maps to no original file at all; dropped
    UNATTRIBUTED = "unattributed"


# ═══════════════════════════════════════════════════════════════════════════════
# FILE READS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ReadResult:
    """Outcome of reading a text file: either ``text`` or ``error`` is set."""

    path: str
    text: Optional[str] = None
    error: Optional[OSError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None


def read_text(path: Union[str, Path]) -> ReadResult:
    """Read *path* as UTF-8 (undecodable bytes replaced).

    The error is returned, not swallowed; callers pick the fallback.
    """
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            return ReadResult(str(path), text=fh.read())
    except OSError as exc:
        return ReadResult(str(path), error=exc)
