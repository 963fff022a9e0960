#!/usr/bin/env python3
"""
andersen/report.py
══════════════════

Rendering of a solved points-to store.

Output formats
──────────────
  • text : one line per node, ``name (id) -> { obj (id), ... }``,
           coloured with termcolor when writing to a terminal
  • json : ``{"nodes": {name: [object names...]}, "stats": {...}}``

Nodes are listed in id order and objects sorted by id, so output is
stable across runs.  Nodes with an empty set are omitted unless
``show_empty`` is set.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional, TextIO

from termcolor import colored

from .graph import ConstraintGraph
from .points_to import PointsToStore
from .solver import SolverStats


def _paint(text: str, color: Optional[str], enabled: bool,
           attrs: Optional[List[str]] = None) -> str:
    if not enabled:
        return text
    return colored(text, color, attrs=attrs, force_color=True)


def color_enabled(stream: TextIO, requested: Optional[bool] = None) -> bool:
    """Colour if asked to, else only for a TTY and when NO_COLOR is unset."""
    if requested is not None:
        return requested
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def format_text(
    graph: ConstraintGraph,
    pts: PointsToStore,
    show_empty: bool = False,
    color: bool = False,
    stats: Optional[SolverStats] = None,
) -> str:
    lines: List[str] = []
    for nid, node in graph:
        objects = sorted(pts.points_to(nid))
        if not objects and not show_empty:
            continue
        head = _paint(f"{node.name} ({nid})", "cyan", color, ["bold"])
        body = ", ".join(
            _paint(f"{graph.name_of(o)} ({o})", "green", color) for o in objects
        )
        lines.append(f"{head} -> {{ {body} }}" if body else f"{head} -> {{ }}")

    summary = f"# {len(pts)} node(s) with points-to facts, {pts.total_size()} fact(s)"
    if stats is not None:
        summary += (f"; {stats.pops} pops, {stats.materialized_copies} copy edges "
                    f"materialized, {stats.field_objects} field objects")
    lines.append(_paint(summary, "yellow", color))
    return "\n".join(lines) + "\n"


def to_json_dict(
    graph: ConstraintGraph,
    pts: PointsToStore,
    show_empty: bool = False,
    stats: Optional[SolverStats] = None,
) -> Dict[str, Any]:
    nodes: Dict[str, List[str]] = {}
    for nid, node in graph:
        objects = sorted(pts.points_to(nid))
        if not objects and not show_empty:
            continue
        nodes[node.name] = [graph.name_of(o) for o in objects]
    result: Dict[str, Any] = {"nodes": nodes}
    if stats is not None:
        result["stats"] = stats.as_dict()
    return result


def dump_result(
    graph: ConstraintGraph,
    pts: PointsToStore,
    stream: TextIO,
    fmt: str = "text",
    show_empty: bool = False,
    color: Optional[bool] = None,
    stats: Optional[SolverStats] = None,
) -> None:
    """Write the points-to sets of *graph* to *stream*."""
    if fmt == "json":
        json.dump(to_json_dict(graph, pts, show_empty, stats), stream, indent=2)
        stream.write("\n")
    elif fmt == "text":
        stream.write(format_text(graph, pts, show_empty,
                                 color_enabled(stream, color), stats))
    else:
        raise ValueError(f"unknown report format {fmt!r}")
