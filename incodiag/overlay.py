# incodiag/overlay.py
"""
Substitution table produced by ``inco gen``.

The generator writes ``.inco_cache/overlay.json`` next to ``go.mod``::

    {"Replace": {"/abs/src/foo.go": "/abs/src/.inco_cache/foo_1a2b.go", ...}}

which is exactly the ``-overlay`` file format accepted by ``go build``.
The table is advisory: a missing or corrupt artifact means "nothing can be
reconciled through the shadow tree", never an error for the caller.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional, Tuple, Union

from incodiag.config import ReconcileConfig
from incodiag.errors import FailureKind, OverlayError, read_text

logger = logging.getLogger(__name__)

REPLACE_FIELD = "Replace"

PathLike = Union[str, Path]


def normalize_path(path: PathLike) -> str:
    """Absolute, normalised form used for every table key and lookup."""
    return os.path.normpath(os.path.abspath(os.fspath(path)))


def find_module_dir(root: PathLike, marker: str = "go.mod") -> Optional[Path]:
    """Locate the directory holding *marker*: *root* itself or one of its
    immediate sub-directories (first in sorted order).
    """
    root_path = Path(root)
    if (root_path / marker).is_file():
        return root_path
    try:
        children = sorted(p for p in root_path.iterdir() if p.is_dir())
    except OSError as exc:
        logger.debug("Cannot list %s: %s", root_path, exc)
        return None
    for child in children:
        if (child / marker).is_file():
            return child
    return None


class SubstitutionTable:
    """Immutable mapping of original path → generated (shadow) path."""

    __slots__ = ("_forward", "_reverse")

    def __init__(self, replace: Mapping[str, str]) -> None:
        self._forward: Dict[str, str] = {
            normalize_path(src): normalize_path(dst) for src, dst in replace.items()
        }
        self._reverse: Optional[Dict[str, str]] = None

    def __len__(self) -> int:
        return len(self._forward)

    def __contains__(self, original: object) -> bool:
        return isinstance(original, (str, Path)) and normalize_path(original) in self._forward

    def __iter__(self) -> Iterator[str]:
        return iter(self._forward)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self._forward.items())

    def __repr__(self) -> str:
        return f"SubstitutionTable({len(self._forward)} entries)"

    def shadow_for(self, original: PathLike) -> Optional[str]:
        """Forward lookup: the shadow file generated for *original*."""
        return self._forward.get(normalize_path(original))

    def reverse(self) -> Dict[str, str]:
        """Generated path → original path; the first original listed wins."""
        if self._reverse is None:
            reverse: Dict[str, str] = {}
            for src, dst in self._forward.items():
                if dst in reverse:
                    logger.warning(
                        "overlay maps %s from both %s and %s; keeping the first",
                        dst, reverse[dst], src,
                    )
                    continue
                reverse[dst] = src
            self._reverse = reverse
        return dict(self._reverse)

    @classmethod
    def from_json(cls, text: str, source: PathLike = "<overlay>") -> "SubstitutionTable":
        """Parse the overlay document.

        Raises
        ------
        OverlayError
            If *text* is not JSON or has no ``Replace`` object of strings.
        """
        try:
            doc = json.loads(text)
        except json.JSONDecodeError as exc:
            raise OverlayError(source, f"invalid JSON: {exc}") from exc
        if not isinstance(doc, dict) or not isinstance(doc.get(REPLACE_FIELD), dict):
            raise OverlayError(source, f"missing {REPLACE_FIELD!r} object")
        replace = doc[REPLACE_FIELD]
        if not all(isinstance(k, str) and isinstance(v, str) for k, v in replace.items()):
            raise OverlayError(source, f"{REPLACE_FIELD!r} must map strings to strings")
        return cls(replace)


def overlay_path(root: PathLike, config: Optional[ReconcileConfig] = None) -> Path:
    """Where the overlay for the module under *root* is expected."""
    cfg = config or ReconcileConfig()
    module_dir = find_module_dir(root, cfg.module_marker) or Path(root)
    return module_dir / cfg.cache_dir / cfg.overlay_file


def load_overlay_strict(
    root: PathLike,
    config: Optional[ReconcileConfig] = None,
) -> SubstitutionTable:
    """Like :func:`load_overlay` but raises :class:`OverlayError`."""
    path = overlay_path(root, config)
    result = read_text(path)
    if not result.ok:
        raise OverlayError(path, f"cannot read: {result.error}")
    return SubstitutionTable.from_json(result.text or "", path)


def load_overlay(
    root: PathLike,
    config: Optional[ReconcileConfig] = None,
) -> Optional[SubstitutionTable]:
    """Load the substitution table, or ``None`` when there is none to use."""
    path = overlay_path(root, config)
    if not path.is_file():
        logger.debug("[%s] no overlay at %s (generator has not run?)",
                     FailureKind.ADVISORY_MISSING.value, path)
        return None
    try:
        table = load_overlay_strict(root, config)
    except OverlayError as exc:
        logger.warning("[%s] ignoring overlay: %s", FailureKind.MALFORMED_INPUT.value, exc)
        return None
    logger.debug("Loaded overlay %s with %d entries", path, len(table))
    return table
