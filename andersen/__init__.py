"""
andersen — Inclusion-Based Points-to Analysis
=============================================

Andersen-style, flow- and context-insensitive points-to analysis over a
constraint graph of address-of, copy, load, store and field-offset edges.

Core modules
------------
nodes
    Node kinds, the tagged edge variants and the graph node record.
graph
    The constraint graph: dense node ids, per-kind adjacency, copy-edge
    de-duplication, field-object synthesis.
points_to
    Monotone node → object-set store.
worklist
    FIFO worklist of dirty nodes.
field_objects
    Memoized (object, offset) → field-variant resolver.
materializer
    Checked-before-insert copy edge synthesis for loads and stores.
solver
    The worklist fixpoint (``Andersen``).

Collaborators
-------------
graph_text
    ``.cg`` constraint-graph text format (Parsimonious grammar) and dumps.
frontend
    Constraint extraction from Cppcheck dump configurations.
report
    Text / JSON rendering of solved points-to sets.
cli
    The ``andersen`` command.

Quick start
-----------
>>> from andersen import ConstraintGraph, Andersen
>>> g = ConstraintGraph()
>>> x, p, q = g.add_object_node("x"), g.add_value_node("p"), g.add_value_node("q")
>>> _ = g.add_addr_edge(x, p)
>>> _ = g.add_copy_edge(p, q)
>>> sorted(Andersen(g).run_pointer_analysis().points_to(q)) == [x]
True
"""

from __future__ import annotations

import logging
from typing import List

__version__ = "0.1.0"
__license__ = "MIT"

_log = logging.getLogger(__name__)
_log.addHandler(logging.NullHandler())

from .errors import (  # noqa: E402
    AndersenError,
    ErrorCode,
    GraphError,
    GraphSyntaxError,
    IterationLimitExceeded,
)
from .nodes import (  # noqa: E402
    AddrEdge,
    ConstraintEdge,
    ConstraintNode,
    CopyEdge,
    EdgeKind,
    GepEdge,
    LoadEdge,
    NodeKind,
    StoreEdge,
)
from .graph import DEFAULT_FIELD_LIMIT, ConstraintGraph  # noqa: E402
from .field_objects import FieldObjectResolver  # noqa: E402
from .points_to import PointsToStore  # noqa: E402
from .worklist import WorkList  # noqa: E402
from .materializer import EdgeMaterializer  # noqa: E402
from .solver import Andersen, SolverConfig, SolverStats, solve  # noqa: E402
from .graph_text import dump_graph, load_graph, load_graph_file  # noqa: E402

__all__: List[str] = [
    "DEFAULT_FIELD_LIMIT",
    "AddrEdge",
    "Andersen",
    "AndersenError",
    "ConstraintEdge",
    "ConstraintGraph",
    "ConstraintNode",
    "CopyEdge",
    "EdgeKind",
    "EdgeMaterializer",
    "ErrorCode",
    "FieldObjectResolver",
    "GepEdge",
    "GraphError",
    "GraphSyntaxError",
    "IterationLimitExceeded",
    "LoadEdge",
    "NodeKind",
    "PointsToStore",
    "SolverConfig",
    "SolverStats",
    "StoreEdge",
    "WorkList",
    "dump_graph",
    "load_graph",
    "load_graph_file",
    "solve",
]
