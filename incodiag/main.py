#!/usr/bin/env python3
"""incodiag/main.py — CLI entry-point for incodiag.

Usage examples
--------------
    # Map `go build -overlay` errors back onto the original sources
    go build -overlay .inco_cache/overlay.json ./... 2>&1 \\
        | python -m incodiag reconcile --root .

    # Same, from a saved log, as JSON for an editor
    python -m incodiag reconcile build.log --root . --format json

    # List the contracts written in a file
    python -m incodiag directives pkg/foo.go

    # Show the shadow file generated for a source
    python -m incodiag shadow pkg/foo.go --root .

    # Render the JSON printed by `inco diagnose pkg/foo.go`
    python -m incodiag diagnose diag.json --file pkg/foo.go

Exit codes
----------
    0   Success, no diagnostics.
    1   One or more diagnostics were reported.
    2   Infrastructure failure (bad file, bad configuration, etc.).

The module doubles as ``python -m incodiag`` via ``incodiag/__main__.py``.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

from incodiag import __version__
from incodiag.config import ReconcileConfig
from incodiag.diagnostic import parse_diagnose_output
from incodiag.directives import scan_directives
from incodiag.errors import ConfigError, read_text
from incodiag.overlay import load_overlay, normalize_path
from incodiag.reconciler import Reconciler
from incodiag.reporter import FORMATS, render

_log = logging.getLogger("incodiag")

EXIT_OK: int = 0
EXIT_DIAGNOSTICS: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``incodiag`` logger: 0 → WARNING, 1 → INFO, 2+ → DEBUG."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("incodiag")
    root.setLevel(level)
    for old in [h for h in root.handlers if getattr(h, "_incodiag_cli", False)]:
        root.removeHandler(old)
    handler._incodiag_cli = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def _read_input(source: Optional[str], label: str) -> str:
    """Read *source* (``None`` or ``"-"`` → stdin), exiting on failure."""
    if source is None or source == "-":
        return sys.stdin.read()
    result = read_text(Path(source).expanduser())
    if not result.ok:
        _log.error("%s not readable: %s", label, result.error)
        raise SystemExit(EXIT_INFRA)
    return result.text or ""


def _open_output(dest: Optional[str]) -> TextIO:
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _emit(grouped, args: argparse.Namespace) -> int:
    stream = _open_output(args.output)
    try:
        stats = render(grouped, args.format, stream, tool_version=__version__)
    finally:
        if stream is not sys.stdout:
            stream.close()
    if args.format in ("plain", "terminal"):
        print(f"--- {stats.summary_line()} ---", file=sys.stderr)
    return EXIT_DIAGNOSTICS if stats.total else EXIT_OK


# ===========================================================================
# Sub-command implementations
# ===========================================================================

def cmd_reconcile(args: argparse.Namespace) -> int:
    """Reconcile raw compiler output onto the original tree."""
    config = ReconcileConfig.from_env().with_overrides(
        max_snap_distance=args.max_snap_distance,
        marker_token=args.marker_token,
    )
    if config.max_snap_distance < 0:
        raise ConfigError("--max-snap-distance must be non-negative")

    raw_output = _read_input(args.input, "compiler output")
    reconciler = Reconciler(config)
    grouped = reconciler.reconcile(raw_output, args.root, compile_root=args.compile_root)
    _log.info("Batch: %s", reconciler.stats.summary_line())
    return _emit(grouped, args)


def cmd_directives(args: argparse.Namespace) -> int:
    """List the directives found in each file."""
    stream = _open_output(args.output)
    try:
        for path in args.files:
            text = _read_input(path, "source file")
            count = 0
            for index, directive in scan_directives(text):
                where = "inline" if directive.inline else "standalone"
                stream.write(f"{path}:{index + 1}: {directive} ({where})\n")
                count += 1
            noun = "contract" if count == 1 else "contracts"
            print(f"{path}: {count} inco {noun}", file=sys.stderr)
    finally:
        if stream is not sys.stdout:
            stream.close()
    return EXIT_OK


def cmd_shadow(args: argparse.Namespace) -> int:
    """Print the shadow file generated for a source file."""
    table = load_overlay(args.root, ReconcileConfig.from_env())
    if table is None:
        _log.error("No overlay under %s; run `inco gen` first", args.root)
        return EXIT_INFRA
    shadow = table.shadow_for(normalize_path(args.file))
    if shadow is None:
        _log.error("No shadow file for %s (does it contain @inco: directives?)", args.file)
        return EXIT_INFRA
    print(shadow)
    return EXIT_OK


def cmd_diagnose(args: argparse.Namespace) -> int:
    """Render the JSON printed by ``inco diagnose <file>``."""
    output = _read_input(args.input, "diagnose output")
    path = normalize_path(args.file)
    diags = parse_diagnose_output(output, path)
    return _emit({path: diags} if diags else {}, args)


# ===========================================================================
# Argument parser
# ===========================================================================

def _add_output_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "-f", "--format",
        choices=FORMATS,
        default="plain",
        help="Output format (default: plain).",
    )
    p.add_argument(
        "-o", "--output",
        default=None,
        metavar="FILE",
        help='Output file ("-" or omit for stdout).',
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="incodiag",
        description="Map compiler diagnostics from inco shadow files back "
                    "onto the original Go sources.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug).",
    )
    subparsers = parser.add_subparsers(title="commands")

    # --- reconcile ---------------------------------------------------------
    p_rec = subparsers.add_parser(
        "reconcile",
        help="Reconcile compiler output onto original sources.",
    )
    p_rec.add_argument(
        "input",
        nargs="?",
        default=None,
        metavar="OUTPUT",
        help='Saved compiler output ("-" or omit for stdin).',
    )
    p_rec.add_argument("--root", default=".", help="Workspace root (default: .).")
    p_rec.add_argument(
        "--compile-root",
        default=None,
        help="Directory the compiler ran in (default: the go.mod directory).",
    )
    p_rec.add_argument(
        "--max-snap-distance",
        type=int,
        default=None,
        metavar="N",
        help="Snap reported lines onto a directive at most N lines above.",
    )
    p_rec.add_argument(
        "--marker-token",
        default=None,
        help="Positional-marker token in shadow files (default: //line).",
    )
    _add_output_args(p_rec)
    p_rec.set_defaults(func=cmd_reconcile)

    # --- directives --------------------------------------------------------
    p_dir = subparsers.add_parser("directives", help="List @inco:/@if: directives.")
    p_dir.add_argument("files", nargs="+", metavar="FILE")
    p_dir.add_argument("-o", "--output", default=None, metavar="FILE")
    p_dir.set_defaults(func=cmd_directives)

    # --- shadow ------------------------------------------------------------
    p_sh = subparsers.add_parser("shadow", help="Show the shadow file for a source.")
    p_sh.add_argument("file", metavar="FILE")
    p_sh.add_argument("--root", default=".", help="Workspace root (default: .).")
    p_sh.set_defaults(func=cmd_shadow)

    # --- diagnose ----------------------------------------------------------
    p_dg = subparsers.add_parser("diagnose", help="Render `inco diagnose` JSON output.")
    p_dg.add_argument("input", nargs="?", default=None, metavar="JSON")
    p_dg.add_argument("--file", required=True, help="Source file the output is for.")
    _add_output_args(p_dg)
    p_dg.set_defaults(func=cmd_diagnose)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the incodiag CLI and return its exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except ConfigError as exc:
        _log.error("Configuration error: %s", exc)
        return EXIT_INFRA
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
