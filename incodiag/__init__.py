"""incodiag — map compiler diagnostics from inco shadow files back to source.

``inco gen`` rewrites Go sources carrying ``// @inco:`` contracts into
guarded shadow copies under ``.inco_cache/`` and records the substitution
in ``overlay.json``.  The compiler then reports errors against the shadow
tree; this package moves them back onto the lines the user wrote.

Submodules
----------
overlay
    ``SubstitutionTable`` and ``load_overlay`` for ``overlay.json``.
markers
    ``//line`` positional markers in shadow files.
directives
    Directive parsing, ``AnchorIndex`` snapping and ``AnchorCache``.
compiler_output
    ``RawDiagnostic`` records parsed from compiler text.
reconciler
    ``Reconciler`` driving a reconciliation batch.
reporter
    Plain, terminal, JSON and SARIF output.
main
    CLI entry-point: ``reconcile``, ``directives``, ``shadow``, ``diagnose``.

Usage
-----
Command-line::

    go build -overlay .inco_cache/overlay.json ./... 2>&1 | incodiag reconcile --root .

Programmatic::

    from incodiag import Reconciler

    grouped = Reconciler().reconcile(build_output, "/path/to/workspace")
    for path, diags in grouped.items():
        ...
"""

from __future__ import annotations

__version__: str = "0.1.0"

from incodiag.compiler_output import RawDiagnostic, parse_compiler_output
from incodiag.config import DEFAULT_MAX_SNAP_DISTANCE, ReconcileConfig
from incodiag.diagnostic import ResolvedDiagnostic, Severity, parse_diagnose_output
from incodiag.directives import AnchorCache, AnchorIndex, Directive, build_anchor_index, parse_directive
from incodiag.markers import PositionalMarker, find_markers, resolve_line
from incodiag.overlay import SubstitutionTable, find_module_dir, load_overlay
from incodiag.reconciler import Reconciler, reconcile

__all__: list[str] = [
    "__version__",
    "AnchorCache",
    "AnchorIndex",
    "DEFAULT_MAX_SNAP_DISTANCE",
    "Directive",
    "PositionalMarker",
    "RawDiagnostic",
    "ReconcileConfig",
    "Reconciler",
    "ResolvedDiagnostic",
    "Severity",
    "SubstitutionTable",
    "build_anchor_index",
    "find_markers",
    "find_module_dir",
    "load_overlay",
    "parse_compiler_output",
    "parse_diagnose_output",
    "parse_directive",
    "reconcile",
    "resolve_line",
]
