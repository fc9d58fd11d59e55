# incodiag/compiler_output.py
"""
Parsing of raw compiler output into :class:`RawDiagnostic` records.

The Go toolchain reports errors as ``path:line[:col]: message`` on combined
stdout/stderr, interleaved with package headers (``# example.com/pkg``) and
summary lines.  Only the record type is seen by the reconciler, so the
matching strategy can change without touching it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Sequence

from incodiag.config import DEFAULT_NOISE_PATTERNS

logger = logging.getLogger(__name__)

DIAGNOSTIC_RE: Pattern[str] = re.compile(
    r"^(?P<path>(?:[A-Za-z]:)?[^:\n]+?)"
    r":(?P<line>\d+)"
    r"(?::(?P<col>\d+))?"
    r":[ \t]+(?P<message>\S[^\n]*?)[ \t\r]*$",
    re.MULTILINE,
)


@dataclass(frozen=True)
class RawDiagnostic:
    """One diagnostic as emitted by the compiler (path possibly relative)."""

    path: str
    line: int                      # 1-based
    column: Optional[int] = None   # 1-based
    message: str = ""

    def __str__(self) -> str:
        col = f":{self.column}" if self.column is not None else ""
        return f"{self.path}:{self.line}{col}: {self.message}"


def compile_noise(patterns: Iterable[str] = DEFAULT_NOISE_PATTERNS) -> List[Pattern[str]]:
    return [re.compile(p) for p in patterns]


def is_noise(line: str, noise: Sequence[Pattern[str]]) -> bool:
    return any(p.search(line) for p in noise)


def parse_compiler_output(
    text: str,
    noise_patterns: Iterable[str] = DEFAULT_NOISE_PATTERNS,
) -> List[RawDiagnostic]:
    """Extract every ``path:line[:col]: message`` record from *text*.

    Order and repetitions are preserved; de-duplication is the
    reconciler's business.
    """
    noise = compile_noise(noise_patterns)
    records: List[RawDiagnostic] = []
    for m in DIAGNOSTIC_RE.finditer(text):
        whole = m.group(0)
        path = m.group("path").strip()
        if not path or is_noise(whole, noise):
            logger.debug("Skipping compiler noise: %s", whole)
            continue
        col = m.group("col")
        records.append(RawDiagnostic(
            path=path,
            line=int(m.group("line")),
            column=int(col) if col else None,
            message=m.group("message"),
        ))
    return records
