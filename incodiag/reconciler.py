# incodiag/reconciler.py
"""
Reconcile compiler diagnostics from the shadow tree onto the original tree.

Workflow per batch (one compiler invocation):

    1. Clear the anchor cache so edits since the last batch are seen.
    2. Parse the raw output into :class:`RawDiagnostic` records.
    3. Resolve each record's path against the directory the compiler ran in.
    4. Attribute it:
         A. original-tree file  → snap the reported line onto a directive;
         B. shadow file         → recover (file, line) from positional
                                  markers via the reversed overlay, then snap;
         C. anything else       → drop (not ours to report).
    5. Drop results outside the workspace, de-duplicate, group by file.

Every failure is local to one diagnostic: an unreadable file or a missing
marker falls back to the raw line; a batch never fails as a whole.  The
reconciler is not re-entrant: callers serialise batches per workspace.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Tuple, Union

from incodiag.compiler_output import RawDiagnostic, parse_compiler_output
from incodiag.config import ReconcileConfig
from incodiag.diagnostic import ResolvedDiagnostic, Severity
from incodiag.directives import AnchorCache
from incodiag.errors import FailureKind, ReadResult, read_text
from incodiag.markers import PositionalMarker, find_markers, marker_for, resolve_line
from incodiag.overlay import (
    SubstitutionTable,
    find_module_dir,
    load_overlay,
    normalize_path,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
Grouped = Dict[str, List[ResolvedDiagnostic]]

# Sentinel: "load the overlay yourself" (None means "there is no overlay").
_LOAD = object()


@dataclass
class ReconcileStats:
    """Counters for the last batch."""

    parsed: int = 0
    resolved: int = 0
    snapped: int = 0
    fallbacks: int = 0
    duplicates: int = 0
    dropped_unattributed: int = 0
    dropped_outside: int = 0

    def summary_line(self) -> str:
        return ", ".join(f"{f.name}={getattr(self, f.name)}" for f in fields(self))


class Reconciler:
    """
    Maps raw compiler output onto the original source tree.

    Parameters
    ----------
    config:
        Tokens, suffixes and limits; defaults to :class:`ReconcileConfig`.
    anchor_cache:
        Directive-anchor cache to use; a fresh one is created when omitted.
        It is invalidated at the start of every :meth:`reconcile` call.
    reader:
        File reader returning :class:`ReadResult`; injectable for tests.
    """

    def __init__(
        self,
        config: Optional[ReconcileConfig] = None,
        anchor_cache: Optional[AnchorCache] = None,
        reader: Callable[[str], ReadResult] = read_text,
    ) -> None:
        self.config = config or ReconcileConfig()
        for w in self.config.validate():
            logger.warning("ReconcileConfig: %s", w)
        self._reader = reader
        self.anchor_cache = (
            anchor_cache if anchor_cache is not None
            else AnchorCache(self.config.directive_tokens, reader)
        )
        self.stats = ReconcileStats()

    # ── public API ───────────────────────────────────────────────────

    def reconcile(
        self,
        raw_output: str,
        workspace_root: PathLike,
        compile_root: Optional[PathLike] = None,
        table: object = _LOAD,
    ) -> Grouped:
        """Reconcile one batch of compiler output.

        Parameters
        ----------
        raw_output:
            Combined stdout+stderr of the compiler run.
        workspace_root:
            Only diagnostics inside this directory are returned.
        compile_root:
            Directory the compiler was invoked from; relative paths in
            *raw_output* are resolved against it.  Defaults to the module
            directory found under *workspace_root* (or the root itself).
        table:
            Substitution table to use; by default it is loaded from
            *compile_root*.  Pass ``None`` to reconcile without one.

        Returns
        -------
        dict
            ``{original file: [ResolvedDiagnostic, ...]}`` in first-seen
            order, without duplicates.
        """
        self.anchor_cache.invalidate_all()
        self.stats = ReconcileStats()

        workspace = normalize_path(workspace_root)
        if compile_root is None:
            module_dir = find_module_dir(workspace, self.config.module_marker)
            compile_root = module_dir if module_dir is not None else workspace
        base = normalize_path(compile_root)

        if table is _LOAD:
            table = load_overlay(base, self.config)
        reverse = table.reverse() if isinstance(table, SubstitutionTable) else {}
        if not reverse:
            logger.debug("No substitution table; shadow-tree diagnostics will be dropped")

        raws = parse_compiler_output(raw_output, self.config.noise_patterns)
        self.stats.parsed = len(raws)

        grouped: Grouped = {}
        seen: Set[Tuple[str, int, str]] = set()
        markers_by_shadow: Dict[str, Optional[List[PositionalMarker]]] = {}

        for raw in raws:
            diag = self._resolve(raw, base, reverse, markers_by_shadow)
            if diag is None:
                self.stats.dropped_unattributed += 1
                continue
            if not _is_within(diag.file, workspace):
                logger.debug("Dropping %s: outside workspace %s", diag.file, workspace)
                self.stats.dropped_outside += 1
                continue
            if diag.key in seen:
                self.stats.duplicates += 1
                continue
            seen.add(diag.key)
            grouped.setdefault(diag.file, []).append(diag)
            self.stats.resolved += 1

        logger.info("Reconciled %d diagnostic(s) in %d file(s) [%s]",
                    self.stats.resolved, len(grouped), self.stats.summary_line())
        return grouped

    # ── per-diagnostic resolution ────────────────────────────────────

    def is_original_path(self, path: str) -> bool:
        """Original-tree files are recognised by suffix, outside the cache dir."""
        if not path.endswith(tuple(self.config.source_suffixes)):
            return False
        return self.config.cache_dir not in Path(path).parts

    def _resolve(
        self,
        raw: RawDiagnostic,
        base: str,
        reverse: Dict[str, str],
        markers_by_shadow: Dict[str, Optional[List[PositionalMarker]]],
    ) -> Optional[ResolvedDiagnostic]:
        path = normalize_path(os.path.join(base, raw.path))
        raw_line = max(raw.line - 1, 0)

        if path not in reverse and self.is_original_path(path):
            return self._make(raw, path, self._snap(path, raw_line))

        original = reverse.get(path)
        if original is None:
            logger.debug("[%s] %s: not an original or shadow file",
                         FailureKind.UNATTRIBUTED.value, path)
            return None

        if path not in markers_by_shadow:
            # markers are never cached across batches; shadows change every run
            result = self._reader(path)
            if result.ok:
                markers_by_shadow[path] = find_markers(result.text or "", self.config.marker_token)
            else:
                logger.warning("[%s] cannot read shadow %s: %s",
                               FailureKind.PARTIAL_RESOLUTION.value, path, result.error)
                markers_by_shadow[path] = None

        markers = markers_by_shadow[path]
        line = resolve_line(markers, raw_line) if markers else None
        if line is None:
            self.stats.fallbacks += 1
            logger.debug("[%s] no marker before %s:%d; keeping raw line",
                         FailureKind.PARTIAL_RESOLUTION.value, path, raw.line)
            return self._make(raw, original, raw_line)

        marker = marker_for(markers, raw_line)
        if marker is not None and os.path.basename(marker.path) != os.path.basename(original):
            logger.debug("Marker in %s names %s, overlay says %s", path, marker.path, original)
        return self._make(raw, original, self._snap(original, line))

    def _snap(self, path: str, line: int) -> int:
        index = self.anchor_cache.get(path)
        if index is None:
            self.stats.fallbacks += 1
            failure = self.anchor_cache.failures.get(path)
            logger.warning("[%s] cannot index %s: %s",
                           FailureKind.PARTIAL_RESOLUTION.value, path,
                           failure.error if failure else "unknown error")
            return line
        snapped = index.snap(line, self.config.max_snap_distance)
        if snapped is None:
            return line
        if snapped != line:
            self.stats.snapped += 1
        return snapped

    def _make(self, raw: RawDiagnostic, file: str, line: int) -> ResolvedDiagnostic:
        return ResolvedDiagnostic(
            file=file,
            line=line,
            message=raw.message,
            severity=Severity.ERROR,
            source=self.config.source_tag,
        )


def _is_within(path: str, root: str) -> bool:
    try:
        return os.path.commonpath([path, root]) == root
    except ValueError:
        # different drives on Windows
        return False


def reconcile(
    raw_output: str,
    workspace_root: PathLike,
    compile_root: Optional[PathLike] = None,
    config: Optional[ReconcileConfig] = None,
) -> Grouped:
    """One-shot convenience wrapper around :class:`Reconciler`."""
    return Reconciler(config).reconcile(raw_output, workspace_root, compile_root)
