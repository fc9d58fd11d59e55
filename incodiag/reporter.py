"""
incodiag/reporter.py
════════════════════

Renderers for reconciled diagnostics.

Output formats
──────────────
  • plain    : ``file:line: severity: message [source]`` (1-based line)
  • terminal : colourful rendering with the offending source line
  • json     : one object per line, editor coordinates (0-based line)
  • sarif    : a SARIF 2.1.0 document

Usage
─────
    grouped = Reconciler().reconcile(output, root)
    stats = render(grouped, "terminal", sys.stdout)
    print(stats.summary_line())
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, TextIO

from termcolor import colored

from incodiag.diagnostic import ResolvedDiagnostic, Severity
from incodiag.errors import read_text

FORMATS = ("plain", "terminal", "json", "sarif")


# ═════════════════════════════════════════════════════════════════════════
#  STATS
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class ReporterStats:
    """Aggregate counts per severity."""
    error: int = 0
    warning: int = 0
    information: int = 0
    hint: int = 0

    def record(self, severity: Severity) -> None:
        """Increment the counter that corresponds to *severity*."""
        attr = severity.label
        setattr(self, attr, getattr(self, attr) + 1)

    @property
    def total(self) -> int:
        return self.error + self.warning + self.information + self.hint

    def summary_line(self) -> str:
        parts: List[str] = []
        if self.error:
            parts.append(f"{self.error} error{'s' if self.error != 1 else ''}")
        if self.warning:
            parts.append(f"{self.warning} warning{'s' if self.warning != 1 else ''}")
        if self.information:
            parts.append(f"{self.information} info")
        if self.hint:
            parts.append(f"{self.hint} hint{'s' if self.hint != 1 else ''}")
        if not parts:
            return "no diagnostics"
        return "; ".join(parts) + f" ({self.total} total)"


def iter_diagnostics(grouped: Mapping[str, Sequence[ResolvedDiagnostic]]) -> Iterable[ResolvedDiagnostic]:
    for diags in grouped.values():
        yield from diags


# ═════════════════════════════════════════════════════════════════════════
#  TEXT RENDERERS
# ═════════════════════════════════════════════════════════════════════════

def plain_line(diag: ResolvedDiagnostic) -> str:
    col = f":{diag.column + 1}" if diag.column is not None else ""
    code = f"/{diag.code}" if diag.code else ""
    return (f"{diag.file}:{diag.line + 1}{col}: {diag.severity.label}: "
            f"{diag.message} [{diag.source}{code}]")


class _PlainRenderer:
    """Non-coloured renderer — one line per diagnostic."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, diag: ResolvedDiagnostic) -> None:
        self._stream.write(plain_line(diag) + "\n")


class _TerminalRenderer:
    """Render diagnostics with colours and the source line they point at."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._sources: Dict[str, List[str]] = {}

    def render(self, diag: ResolvedDiagnostic) -> None:
        lines: List[str] = []

        sev_str = colored(diag.severity.label, diag.severity.color, attrs=["bold"])
        lines.append(f"{sev_str}: {colored(diag.message, attrs=['bold'])}")

        arrow = colored("-->", "blue", attrs=["bold"])
        lines.append(f"  {arrow} {diag.file}:{diag.line + 1}")

        text = self._source_line(diag.file, diag.line)
        if text is not None:
            gutter = str(diag.line + 1)
            pipe = colored("|", "blue", attrs=["bold"])
            lines.append(f" {colored(gutter, 'blue', attrs=['bold'])} {pipe} {text}")

        lines.append("")
        self._stream.write("\n".join(lines) + "\n")

    def _source_line(self, path: str, line: int) -> Optional[str]:
        if path not in self._sources:
            result = read_text(path)
            self._sources[path] = result.text.splitlines() if result.ok and result.text else []
        source = self._sources[path]
        return source[line].rstrip() if 0 <= line < len(source) else None


# ═════════════════════════════════════════════════════════════════════════
#  SARIF 2.1.0 BUILDER
# ═════════════════════════════════════════════════════════════════════════

class _SarifBuilder:
    """Accumulates diagnostics and produces a SARIF 2.1.0 document."""

    SARIF_VERSION = "2.1.0"
    SARIF_SCHEMA = (
        "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/"
        "Schemata/sarif-schema-2.1.0.json"
    )

    def __init__(self) -> None:
        self._results: List[Dict[str, Any]] = []

    def add(self, diag: ResolvedDiagnostic) -> None:
        region: Dict[str, Any] = {"startLine": diag.line + 1}
        if diag.column is not None:
            region["startColumn"] = diag.column + 1
        result: Dict[str, Any] = {
            "ruleId": diag.code or diag.source,
            "level": diag.severity.sarif_level,
            "message": {"text": diag.message},
            "locations": [{
                "physicalLocation": {
                    "artifactLocation": {"uri": diag.file},
                    "region": region,
                }
            }],
        }
        self._results.append(result)

    def to_dict(self, tool_name: str, version: str) -> Dict[str, Any]:
        return {
            "$schema": self.SARIF_SCHEMA,
            "version": self.SARIF_VERSION,
            "runs": [{
                "tool": {"driver": {"name": tool_name, "version": version}},
                "results": self._results,
            }],
        }


# ═════════════════════════════════════════════════════════════════════════
#  ENTRY POINT
# ═════════════════════════════════════════════════════════════════════════

def render(
    grouped: Mapping[str, Sequence[ResolvedDiagnostic]],
    fmt: str = "plain",
    stream: TextIO = sys.stdout,
    tool_name: str = "incodiag",
    tool_version: str = "0.0.0",
) -> ReporterStats:
    """Write *grouped* to *stream* in format *fmt*; return the counts."""
    if fmt not in FORMATS:
        raise ValueError(f"Unknown format: {fmt!r}")

    stats = ReporterStats()
    diags = list(iter_diagnostics(grouped))
    for diag in diags:
        stats.record(diag.severity)

    if fmt == "json":
        for diag in diags:
            stream.write(json.dumps(diag.to_dict()) + "\n")
    elif fmt == "sarif":
        sarif = _SarifBuilder()
        for diag in diags:
            sarif.add(diag)
        stream.write(json.dumps(sarif.to_dict(tool_name, tool_version), indent=2) + "\n")
    else:
        renderer = _TerminalRenderer(stream) if fmt == "terminal" else _PlainRenderer(stream)
        for diag in diags:
            renderer.render(diag)
    stream.flush()
    return stats
