#!/usr/bin/env python3
"""andersen/cli.py — command-line driver for the points-to solver.

Usage examples
--------------
    # Solve a hand-written constraint graph
    andersen examples/swap.cg

    # Solve the constraints of a Cppcheck dump, JSON output
    andersen project.c.dump --format json -o pts.json

    # Also write the final graph (with materialized copy edges)
    andersen project.c.dump --dump-graph final.cg

Input kind is chosen by extension: ``.dump`` files are read with
``cppcheckdata`` (shipped with Cppcheck); anything else is parsed as
``.cg`` constraint-graph text.

Exit codes
----------
    0   Success.
    1   Analysis error (malformed graph, iteration bound exceeded).
    2   Infrastructure failure (missing file, missing dependency).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

from . import __version__
from .errors import AndersenError, IterationLimitExceeded
from .graph import DEFAULT_FIELD_LIMIT, ConstraintGraph
from .graph_text import dump_graph, load_graph_file
from .report import dump_result
from .solver import Andersen, SolverConfig

_log = logging.getLogger("andersen")

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """0 → WARNING, 1 → INFO, 2+ → DEBUG on the ``andersen`` logger."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    root = logging.getLogger("andersen")
    root.setLevel(level)
    if all(isinstance(h, logging.NullHandler) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
                datefmt="%H:%M:%S",
            )
        )
        root.addHandler(handler)


def _resolve_path(raw: str, label: str = "file") -> Path:
    p = Path(raw).expanduser().resolve()
    if not p.exists():
        _log.error("%s not found: %s", label, p)
        raise SystemExit(EXIT_INFRA)
    return p


def _open_output(dest: Optional[str]) -> TextIO:
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _import_cppcheckdata():
    """Import ``cppcheckdata`` with a friendly error on failure."""
    try:
        import cppcheckdata  # type: ignore[import-untyped]
        return cppcheckdata
    except ImportError:
        _log.error(
            "cppcheckdata is not installed.  "
            "Install cppcheck or add its Python path."
        )
        raise SystemExit(EXIT_INFRA)


def load_input(path: Path, configuration: int = 0,
               field_limit: int = DEFAULT_FIELD_LIMIT) -> ConstraintGraph:
    """Read a ``.cg`` file or build the graph of a Cppcheck ``.dump``."""
    graph = ConstraintGraph(field_limit=field_limit)
    if path.suffix != ".dump":
        return load_graph_file(path, graph)

    from .frontend import build_constraint_graph

    cppcheckdata = _import_cppcheckdata()
    data = cppcheckdata.parsedump(str(path))
    configs = list(data.configurations)
    if not configs:
        _log.error("%s contains no configurations", path)
        raise SystemExit(EXIT_INFRA)
    if not 0 <= configuration < len(configs):
        _log.error("configuration %d out of range (0..%d)",
                   configuration, len(configs) - 1)
        raise SystemExit(EXIT_INFRA)
    return build_constraint_graph(configs[configuration], graph)


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="andersen",
        description="Whole-program inclusion-based points-to analysis.",
    )
    parser.add_argument("input", help="constraint graph (.cg) or Cppcheck dump (.dump)")
    parser.add_argument(
        "-f", "--format",
        choices=["text", "json"],
        default="text",
        help="result format (default: text).",
    )
    parser.add_argument(
        "-o", "--output",
        default=None,
        metavar="FILE",
        help='result file ("-" or omit for stdout).',
    )
    parser.add_argument(
        "--dump-graph",
        default=None,
        metavar="FILE",
        help="write the solved constraint graph as .cg text.",
    )
    parser.add_argument(
        "--show-empty",
        action="store_true",
        help="also list nodes whose points-to set is empty.",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="disable coloured text output.",
    )
    parser.add_argument(
        "--max-pops",
        type=int,
        default=None,
        metavar="N",
        help="abort after N worklist pops (result is partial).",
    )
    parser.add_argument(
        "--field-limit",
        type=int,
        default=DEFAULT_FIELD_LIMIT,
        metavar="N",
        help="field offsets kept apart on objects of unknown size "
             f"(default: {DEFAULT_FIELD_LIMIT}).",
    )
    parser.add_argument(
        "-c", "--configuration",
        type=int,
        default=0,
        metavar="N",
        help="Cppcheck dump configuration index (default: 0).",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="increase log verbosity (-v info, -vv debug).",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def run(args: argparse.Namespace) -> int:
    path = _resolve_path(args.input, "input")
    graph = load_input(path, args.configuration, args.field_limit)

    andersen = Andersen(graph, SolverConfig(max_pops=args.max_pops))
    try:
        pts = andersen.run_pointer_analysis()
    except IterationLimitExceeded as exc:
        _log.error("%s", exc)
        return EXIT_ERROR

    if args.dump_graph:
        stream = _open_output(args.dump_graph)
        try:
            stream.write(dump_graph(graph))
        finally:
            if stream is not sys.stdout:
                stream.close()

    stream = _open_output(args.output)
    try:
        dump_result(
            graph, pts, stream,
            fmt=args.format,
            show_empty=args.show_empty,
            color=False if args.no_color else None,
            stats=andersen.stats,
        )
    finally:
        if stream is not sys.stdout:
            stream.close()
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI.  ``argv`` defaults to ``sys.argv[1:]``."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        return run(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except AndersenError as exc:
        _log.error("%s", exc)
        return EXIT_ERROR
    except OSError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
