# incodiag/markers.py
"""
Positional markers embedded in generated (shadow) files.

A marker line declares that the *next* physical line is line ``N`` of some
original file; the lines after it count up from there until the next
marker.  ``inco gen`` uses Go's own line directive for this::

    //line /abs/src/foo.go:42
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Pattern, Sequence

from incodiag.config import DEFAULT_MARKER_TOKEN


@dataclass(frozen=True)
class PositionalMarker:
    """A marker found at physical line ``line_index`` (0-based)."""

    line_index: int
    path: str
    line: int  # 1-based, as written


@lru_cache(maxsize=8)
def _marker_re(token: str) -> Pattern[str]:
    # optional trailing :col, as Go's //line directive allows
    return re.compile(
        r"^" + re.escape(token) + r"\s+(?P<path>\S(?:.*?\S)?):(?P<line>\d+)(?::\d+)?\s*$"
    )


def find_markers(text: str, token: str = DEFAULT_MARKER_TOKEN) -> List[PositionalMarker]:
    """Scan *text* top to bottom and return its markers in order."""
    pattern = _marker_re(token)
    markers: List[PositionalMarker] = []
    for index, raw in enumerate(text.splitlines()):
        m = pattern.match(raw.lstrip())
        if m is None:
            continue
        markers.append(PositionalMarker(index, m.group("path"), int(m.group("line"))))
    return markers


def resolve_line(markers: Sequence[PositionalMarker], physical_index: int) -> Optional[int]:
    """Map a 0-based physical line of the generated file to a 0-based
    original line, or ``None`` when no marker precedes it.

    Walks the markers backwards; marker counts per file are small, so the
    linear scan is fine.
    """
    for marker in reversed(markers):
        if marker.line_index <= physical_index:
            offset = physical_index - marker.line_index - 1
            # a hit on the marker line itself has offset -1
            return max(0, (marker.line - 1) + offset)
    return None


def marker_for(markers: Sequence[PositionalMarker], physical_index: int) -> Optional[PositionalMarker]:
    """The marker governing *physical_index*, if any."""
    for marker in reversed(markers):
        if marker.line_index <= physical_index:
            return marker
    return None
