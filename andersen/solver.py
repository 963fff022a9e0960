"""
solver.py — Andersen Constraint Solver
======================================

Inclusion-based, flow- and context-insensitive points-to analysis over a
:class:`~andersen.graph.ConstraintGraph`.

The run has two phases:

  Initialize   every ``AddrEdge(o → p)`` puts *o* into pts(p); nodes whose
               set grew are queued.
  Fixpoint     pop a node *n*, take the snapshot S = pts(n) and
                 1. for each o ∈ S, resolve stores into *n* and loads from
                    *n* by materializing copy edges (val → o) / (o → val);
                 2. propagate S along outgoing copy edges;
                 3. propagate field variants of S along outgoing GEP edges;
               queueing every node whose set grew or that gained an edge.

The loop ends when the worklist empties.  It always does on a finite
graph: points-to sets only grow and are drawn from a finite object
universe (field variants are memoized per (object, offset) and bounded by
the unknown-field fallback), and the set of copy edges is likewise finite
and only ever grows.

Usage
-----
    from andersen import Andersen, ConstraintGraph

    graph = ConstraintGraph()
    ...
    andersen = Andersen(graph)
    pts = andersen.run_pointer_analysis()
    pts.points_to(graph.node_id("p"))
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, FrozenSet, Optional

from .errors import IterationLimitExceeded
from .graph import ConstraintGraph
from .materializer import EdgeMaterializer
from .nodes import ConstraintEdge, ConstraintNode, EdgeKind
from .points_to import PointsToStore
from .worklist import WorkList

_log = logging.getLogger(__name__)


@dataclass
class SolverConfig:
    """
    Solver knobs.

    max_pops
        Abort with :class:`IterationLimitExceeded` after this many worklist
        pops.  ``None`` runs to the fixpoint.
    """
    max_pops: Optional[int] = None


@dataclass
class SolverStats:
    """Counters collected over one run."""
    pops: int = 0
    pushes: int = 0
    materialized_copies: int = 0
    field_objects: int = 0
    skipped_edges: int = 0
    elapsed: float = 0.0

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Andersen:
    """Worklist solver over Addr, Copy, Load, Store and Gep constraints."""

    def __init__(self, graph: ConstraintGraph,
                 config: Optional[SolverConfig] = None) -> None:
        self.graph = graph
        self.config = config or SolverConfig()
        self.pts = PointsToStore()
        self.stats = SolverStats()
        self._worklist = WorkList()
        self._materializer = EdgeMaterializer(graph)

    # -- Public API ----------------------------------------------------------

    def run_pointer_analysis(self) -> PointsToStore:
        """Solve the graph and return the completed points-to store."""
        self.pts = PointsToStore()
        self.stats = SolverStats()
        self._worklist = WorkList()
        self._materializer = EdgeMaterializer(self.graph)
        fields_before = self.graph.field_objects.created

        start = time.perf_counter()
        _log.info("solving %r", self.graph)
        self._initialize()
        try:
            self._solve()
        finally:
            self.stats.materialized_copies = self._materializer.materialized
            self.stats.field_objects = self.graph.field_objects.created - fields_before
            self.stats.elapsed = time.perf_counter() - start

        _log.info(
            "fixpoint after %d pops: %d copy edges materialized, "
            "%d field objects, %d points-to facts (%.3fs)",
            self.stats.pops, self.stats.materialized_copies,
            self.stats.field_objects, self.pts.total_size(), self.stats.elapsed,
        )
        return self.pts

    def points_to(self, node: int) -> FrozenSet[int]:
        return self.pts.points_to(node)

    # -- Phases --------------------------------------------------------------

    def _push(self, node: int) -> None:
        if self._worklist.push(node):
            self.stats.pushes += 1

    def _initialize(self) -> None:
        for node_id, node in self.graph:
            for edge in node.addr_in_edges:
                if not self._check_kind(edge, EdgeKind.ADDR):
                    continue
                if self.pts.add(edge.dst, edge.src):
                    self._push(edge.dst)
        _log.debug("initialized: %d nodes queued", len(self._worklist))

    def _solve(self) -> None:
        limit = self.config.max_pops
        while not self._worklist.empty():
            if limit is not None and self.stats.pops >= limit:
                _log.warning("stopping after %d pops; result is partial", limit)
                raise IterationLimitExceeded(limit, self.pts)

            current = self._worklist.pop()
            self.stats.pops += 1
            node = self.graph.get_node(current)
            objects = self.pts.points_to(current)

            self._resolve_loads_and_stores(node, objects)
            self._propagate_copies(node, objects)
            self._propagate_fields(node, objects)

    # -- Per-node steps ------------------------------------------------------

    def _resolve_loads_and_stores(self, node: ConstraintNode,
                                  objects: FrozenSet[int]) -> None:
        for obj in objects:
            # *node = val   ==>   val --copy--> obj
            for edge in list(node.store_in_edges):
                if not self._check_kind(edge, EdgeKind.STORE):
                    continue
                if self._materializer.try_add_copy(edge.src, obj):
                    self._push(edge.src)

            # val = *node   ==>   obj --copy--> val
            for edge in list(node.load_out_edges):
                if not self._check_kind(edge, EdgeKind.LOAD):
                    continue
                if self._materializer.try_add_copy(obj, edge.dst):
                    self._push(obj)

    def _propagate_copies(self, node: ConstraintNode,
                          objects: FrozenSet[int]) -> None:
        if not objects:
            return
        for edge in list(node.copy_out_edges):
            if not self._check_kind(edge, EdgeKind.COPY):
                continue
            if self.pts.union_into(edge.dst, objects):
                self._push(edge.dst)

    def _propagate_fields(self, node: ConstraintNode,
                          objects: FrozenSet[int]) -> None:
        for edge in list(node.gep_out_edges):
            if not self._check_kind(edge, EdgeKind.GEP):
                continue
            grew = False
            for obj in objects:
                field_obj = self.graph.resolve_field_object(obj, edge)
                if self.pts.add(edge.dst, field_obj):
                    grew = True
            if grew:
                self._push(edge.dst)

    def _check_kind(self, edge: ConstraintEdge, expected: EdgeKind) -> bool:
        if getattr(edge, "kind", None) is expected:
            return True
        self.stats.skipped_edges += 1
        _log.debug("skipping %r found among %s edges", edge, expected.value)
        return False


def solve(graph: ConstraintGraph,
          config: Optional[SolverConfig] = None) -> PointsToStore:
    """Convenience wrapper: run :class:`Andersen` on *graph*."""
    return Andersen(graph, config).run_pointer_analysis()
