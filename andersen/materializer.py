"""
materializer.py — copy edges synthesized by load/store resolution.
"""

from __future__ import annotations

import logging

from .graph import ConstraintGraph

_log = logging.getLogger(__name__)


class EdgeMaterializer:
    """
    Adds ``CopyEdge(src → dst)`` to the graph unless it is already there.

    The existence check looks only at *src*'s outgoing copy edges, and it
    always reads the live graph, so an edge inserted on an earlier pop is
    seen on every later one.
    """

    def __init__(self, graph: ConstraintGraph) -> None:
        self._graph = graph
        self.materialized = 0

    def try_add_copy(self, src: int, dst: int) -> bool:
        """True iff a new copy edge was inserted."""
        if self._graph.get_node(src).has_copy_edge_to(dst):
            return False
        self._graph.add_copy_edge(src, dst)
        self.materialized += 1
        _log.debug("materialized copy %d -> %d", src, dst)
        return True
