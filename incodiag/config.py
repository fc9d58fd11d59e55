# incodiag/config.py
"""
Tuning knobs for diagnostic reconciliation.

Defaults follow the layout written by ``inco gen``: shadow files and
``overlay.json`` live in ``.inco_cache/`` next to ``go.mod``, shadow files
carry Go ``//line`` directives, and contracts are written as
``// @inco:`` / ``// @if:`` comments.

Three environment variables override the defaults (the CLI flags in turn
override the environment):

    INCODIAG_MAX_SNAP_DISTANCE   maximum snap distance in lines
    INCODIAG_MARKER_TOKEN        positional-marker token in shadow files
    INCODIAG_CACHE_DIR           name of the generator's cache directory
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import List, Mapping, Optional, Tuple

from incodiag.errors import ConfigError

# Largest injected guard block observed is well below this; ordinary compile
# errors further away from any directive keep their raw line.
DEFAULT_MAX_SNAP_DISTANCE: int = 30

DEFAULT_MARKER_TOKEN: str = "//line"
DEFAULT_DIRECTIVE_TOKENS: Tuple[str, ...] = ("@inco:", "@if:")
DEFAULT_SOURCE_SUFFIXES: Tuple[str, ...] = (".go", ".inco")
DEFAULT_CACHE_DIR: str = ".inco_cache"
DEFAULT_OVERLAY_FILE: str = "overlay.json"
DEFAULT_MODULE_MARKER: str = "go.mod"

# Regular expressions matched against a whole output line; hits are compiler
# chatter rather than per-file errors.
DEFAULT_NOISE_PATTERNS: Tuple[str, ...] = (
    r"^#\s",                 # go build package header: "# example.com/pkg"
    r"too many errors\s*$",  # gc summary after the tenth error
)

ENV_MAX_SNAP_DISTANCE = "INCODIAG_MAX_SNAP_DISTANCE"
ENV_MARKER_TOKEN = "INCODIAG_MARKER_TOKEN"
ENV_CACHE_DIR = "INCODIAG_CACHE_DIR"


@dataclass(frozen=True)
class ReconcileConfig:
    """Settings shared by the overlay loader, scanners and reconciler."""

    marker_token: str = DEFAULT_MARKER_TOKEN
    directive_tokens: Tuple[str, ...] = DEFAULT_DIRECTIVE_TOKENS
    source_suffixes: Tuple[str, ...] = DEFAULT_SOURCE_SUFFIXES
    cache_dir: str = DEFAULT_CACHE_DIR
    overlay_file: str = DEFAULT_OVERLAY_FILE
    module_marker: str = DEFAULT_MODULE_MARKER
    max_snap_distance: int = DEFAULT_MAX_SNAP_DISTANCE
    noise_patterns: Tuple[str, ...] = field(default=DEFAULT_NOISE_PATTERNS)
    source_tag: str = "inco"

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if self.max_snap_distance < 0:
            warnings.append("max_snap_distance must be non-negative")
        if not self.marker_token.strip():
            warnings.append("marker_token must not be blank")
        if not self.directive_tokens:
            warnings.append("directive_tokens is empty; nothing will be snapped")
        if not self.source_suffixes:
            warnings.append("source_suffixes is empty; original-tree paths "
                            "will not be recognised")
        return warnings

    def with_overrides(self, **changes: object) -> "ReconcileConfig":
        """Copy with every non-``None`` keyword applied."""
        applied = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **applied) if applied else self

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ReconcileConfig":
        """Build a config from ``INCODIAG_*`` environment variables.

        Raises
        ------
        ConfigError
            If ``INCODIAG_MAX_SNAP_DISTANCE`` is not an integer.
        """
        env = os.environ if environ is None else environ
        distance: Optional[int] = None
        raw = env.get(ENV_MAX_SNAP_DISTANCE, "").strip()
        if raw:
            try:
                distance = int(raw)
            except ValueError as exc:
                raise ConfigError(
                    f"{ENV_MAX_SNAP_DISTANCE}={raw!r} is not an integer"
                ) from exc
        return cls().with_overrides(
            max_snap_distance=distance,
            marker_token=env.get(ENV_MARKER_TOKEN) or None,
            cache_dir=env.get(ENV_CACHE_DIR) or None,
        )
