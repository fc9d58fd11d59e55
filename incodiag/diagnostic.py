# incodiag/diagnostic.py
"""
Diagnostics anchored in the original source tree.

Coordinates are editor-style: 0-based line, optional 0-based column.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class Severity(enum.Enum):
    """
    Diagnostic severity levels.

    Each carries:
      • label       — the lowercase name used in text output
      • lsp_code    — LSP ``DiagnosticSeverity`` number (1..4)
      • color       — termcolor colour name
      • sarif_level — SARIF 2.1.0 ``level`` string
    """

    ERROR = ("error", 1, "red", "error")
    WARNING = ("warning", 2, "yellow", "warning")
    INFORMATION = ("information", 3, "cyan", "note")
    HINT = ("hint", 4, "white", "note")

    def __init__(self, label: str, lsp_code: int, color: str, sarif_level: str) -> None:
        self.label = label
        self.lsp_code = lsp_code
        self.color = color
        self.sarif_level = sarif_level

    @classmethod
    def from_lsp(cls, code: Any) -> Severity:
        """Map an LSP severity number; anything unknown is INFORMATION."""
        for member in cls:
            if member.lsp_code == code:
                return member
        return cls.INFORMATION


@dataclass(frozen=True)
class ResolvedDiagnostic:
    """A diagnostic reconciled onto an original file."""

    file: str
    line: int
    message: str
    severity: Severity = Severity.ERROR
    source: str = "inco"
    column: Optional[int] = None
    code: Optional[str] = None

    @property
    def key(self) -> Tuple[str, int, str]:
        """Identity used for de-duplication within a batch."""
        return (self.file, self.line, self.message)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "file": self.file,
            "line": self.line,
            "severity": self.severity.label,
            "source": self.source,
            "message": self.message,
        }
        if self.column is not None:
            data["column"] = self.column
        if self.code:
            data["code"] = self.code
        return data

    def __str__(self) -> str:
        return f"{self.file}:{self.line + 1}: {self.severity.label}: {self.message}"


# ═════════════════════════════════════════════════════════════════════════
#  `inco diagnose` OUTPUT
# ═════════════════════════════════════════════════════════════════════════

def parse_diagnose_output(output: str, path: str) -> List[ResolvedDiagnostic]:
    """Convert the JSON array printed by ``inco diagnose <file>``.

    Each element is LSP-shaped::

        {"range": {"start": {"line": 3, "character": 4}, ...},
         "severity": 1, "source": "inco", "message": "...", "code": "spacing"}

    Output that is not a JSON array (tool missing, empty output) yields no
    diagnostics; malformed elements are skipped.
    """
    try:
        items = json.loads(output)
    except (json.JSONDecodeError, TypeError):
        logger.debug("inco diagnose output for %s is not JSON", path)
        return []
    if not isinstance(items, list):
        return []

    diags: List[ResolvedDiagnostic] = []
    for item in items:
        try:
            start = item["range"]["start"]
            diags.append(ResolvedDiagnostic(
                file=path,
                line=int(start["line"]),
                column=int(start.get("character", 0)),
                message=str(item["message"]),
                severity=Severity.from_lsp(item.get("severity")),
                source=item.get("source") or "inco",
                code=item.get("code"),
            ))
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.debug("Skipping malformed diagnose entry %r: %s", item, exc)
    return diags
