# incodiag/directives.py
"""
Contract directives in original sources and the anchor index built on them.

Directive grammar (lexical, not a Go parse)::

    // @inco: <expr>[, -panic|-return|-continue|-break|-log[(<args>)]]
    // @if:   <cond>[, -log[(<args>)]]

Either form may trail code on the same line (an *inline* directive).  A
``//`` inside a string literal is a false positive we accept.

The :class:`AnchorIndex` of a file is the sorted list of lines carrying a
directive.  The compiler's error recovery tends to report a position a few
lines past the contract it actually concerns, so reported lines are
*snapped* back onto the nearest preceding directive, within a bounded
distance.
"""

from __future__ import annotations

import bisect
import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional, Pattern, Sequence, Tuple

from incodiag.config import DEFAULT_DIRECTIVE_TOKENS, DEFAULT_MAX_SNAP_DISTANCE
from incodiag.errors import ReadResult, read_text

logger = logging.getLogger(__name__)

INCO_ACTIONS: Tuple[str, ...] = ("panic", "return", "continue", "break", "log")
IF_ACTIONS: Tuple[str, ...] = ("log",)

_INCO_RE = re.compile(
    r"//\s*@inco:\s+(?P<expr>.+?)"
    r"(?:,\s*-(?P<action>" + "|".join(INCO_ACTIONS) + r")(?:\((?P<args>.+)\))?)?\s*$"
)
_IF_RE = re.compile(
    r"//\s*@if:\s+(?P<expr>.+?)"
    r"(?:,\s*-(?P<action>" + "|".join(IF_ACTIONS) + r")(?:\((?P<args>.+)\))?)?\s*$"
)


# ═══════════════════════════════════════════════════════════════════════════════
# DIRECTIVES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Directive:
    """One parsed ``@inco:`` / ``@if:`` comment."""

    kind: str                  # "inco" or "if"
    expression: str
    action: Optional[str]      # @inco: defaults to "panic"; @if: has none
    action_args: str = ""
    inline: bool = False

    def __str__(self) -> str:
        text = f"@{self.kind}: {self.expression}"
        if self.action and (self.kind != "inco" or self.action != "panic" or self.action_args):
            text += f", -{self.action}"
            if self.action_args:
                text += f"({self.action_args})"
        return text


def parse_directive(line: str) -> Optional[Directive]:
    """Parse the directive on *line*, or return ``None``."""
    for kind, pattern, default in (("inco", _INCO_RE, "panic"), ("if", _IF_RE, None)):
        m = pattern.search(line)
        if m is None:
            continue
        return Directive(
            kind=kind,
            expression=m.group("expr").strip(),
            action=m.group("action") or default,
            action_args=m.group("args") or "",
            inline=not line.lstrip().startswith("//"),
        )
    return None


def scan_directives(text: str) -> Iterator[Tuple[int, Directive]]:
    """Yield ``(line_index, directive)`` for every parseable directive."""
    for index, line in enumerate(text.splitlines()):
        directive = parse_directive(line)
        if directive is not None:
            yield index, directive


# ═══════════════════════════════════════════════════════════════════════════════
# ANCHOR INDEX
# ═══════════════════════════════════════════════════════════════════════════════

def directive_line_re(tokens: Sequence[str] = DEFAULT_DIRECTIVE_TOKENS) -> Pattern[str]:
    """Pattern that finds a directive comment anywhere in a line."""
    alternatives = "|".join(re.escape(tok) for tok in tokens)
    return re.compile(r"//\s*(?:" + alternatives + r")")


@dataclass(frozen=True)
class AnchorIndex:
    """Strictly increasing 0-based line numbers of directive lines."""

    lines: Tuple[int, ...] = ()

    def __len__(self) -> int:
        return len(self.lines)

    def __contains__(self, line: object) -> bool:
        if not isinstance(line, int):
            return False
        pos = bisect.bisect_left(self.lines, line)
        return pos < len(self.lines) and self.lines[pos] == line

    def nearest_preceding(self, line: int) -> Optional[int]:
        """Largest directive line ``<= line``."""
        pos = bisect.bisect_right(self.lines, line)
        return self.lines[pos - 1] if pos else None

    def snap(self, raw_line: int, max_distance: int = DEFAULT_MAX_SNAP_DISTANCE) -> Optional[int]:
        """Snap a 0-based reported line onto the directive it belongs to.

        Never snaps forward.  Returns ``None`` when no directive precedes
        *raw_line* within *max_distance* lines; the caller keeps the raw
        line then.
        """
        if raw_line in self:
            return raw_line
        anchor = self.nearest_preceding(raw_line)
        if anchor is None or raw_line - anchor > max_distance:
            return None
        return anchor


def build_anchor_index(text: str, tokens: Sequence[str] = DEFAULT_DIRECTIVE_TOKENS) -> AnchorIndex:
    pattern = directive_line_re(tokens)
    return AnchorIndex(tuple(
        index for index, line in enumerate(text.splitlines()) if pattern.search(line)
    ))


class AnchorCache:
    """
    Anchor indices keyed by absolute file path.

    Owned by a :class:`~incodiag.reconciler.Reconciler` (or injected into
    one) and cleared at the start of every batch, so edits made between
    runs are picked up.  Read failures are not cached; the failing
    :class:`ReadResult` is kept in :attr:`failures` for the batch.
    """

    def __init__(
        self,
        tokens: Sequence[str] = DEFAULT_DIRECTIVE_TOKENS,
        reader: Callable[[str], ReadResult] = read_text,
    ) -> None:
        self._tokens = tuple(tokens)
        self._reader = reader
        self._cache: Dict[str, AnchorIndex] = {}
        self.failures: Dict[str, ReadResult] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, path: object) -> bool:
        return path in self._cache

    def get(self, path: str) -> Optional[AnchorIndex]:
        if path not in self._cache:
            result = self._reader(path)
            if not result.ok:
                self.failures[path] = result
                return None
            self._cache[path] = build_anchor_index(result.text or "", self._tokens)
            logger.debug("Indexed %d directive line(s) in %s", len(self._cache[path]), path)
        return self._cache[path]

    def invalidate(self, path: Optional[str] = None) -> None:
        if path is None:
            self.invalidate_all()
        else:
            self._cache.pop(path, None)
            self.failures.pop(path, None)

    def invalidate_all(self) -> None:
        self._cache.clear()
        self.failures.clear()
