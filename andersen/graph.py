"""
graph.py — Constraint Graph
===========================

Container for the nodes and constraint edges the solver works on.

Node ids are dense integers assigned in creation order, so iterating the
graph visits nodes in id order.  Names are kept for reporting and for the
text format; they must be unique.

Only copy edges may be added once solving has started; the solver does so
through :class:`~andersen.materializer.EdgeMaterializer`.  Field-variant
objects are synthesized through :meth:`ConstraintGraph.resolve_field_object`.

Usage
-----
    from andersen.graph import ConstraintGraph

    g = ConstraintGraph()
    x = g.add_object_node("x")
    p = g.add_value_node("p")
    q = g.add_value_node("q")
    g.add_addr_edge(x, p)          # p = &x
    g.add_copy_edge(p, q)          # q = p
"""

from __future__ import annotations

import itertools
import logging
from collections import Counter
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import ErrorCode, GraphError
from .field_objects import FieldObjectResolver
from .nodes import (
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

_log = logging.getLogger(__name__)

# Field offsets allowed on objects without a declared field count.
DEFAULT_FIELD_LIMIT = 512


class ConstraintGraph:
    """Nodes plus per-kind constraint edges."""

    def __init__(self, field_limit: int = DEFAULT_FIELD_LIMIT) -> None:
        """
        *field_limit* bounds the field offsets of objects created without
        ``max_fields``; larger offsets resolve to the unknown field.
        """
        if field_limit < 0:
            raise GraphError(f"field_limit must be >= 0, got {field_limit}",
                             ErrorCode.BAD_MAX_FIELDS)
        self._nodes: Dict[int, ConstraintNode] = {}
        self._by_name: Dict[str, int] = {}
        self._ids = itertools.count(0)
        self._edge_set: set = set()
        self._edge_counts: Counter = Counter()
        self._field_resolver = FieldObjectResolver(self, field_limit)

    # -- Nodes ---------------------------------------------------------------

    def _new_node(
        self,
        name: Optional[str],
        kind: NodeKind,
        max_fields: Optional[int] = None,
        base: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> ConstraintNode:
        if name is not None and name in self._by_name:
            raise GraphError(f"duplicate node name {name!r}", ErrorCode.DUPLICATE_NAME)
        nid = next(self._ids)
        if name is None:
            name = f"n{nid}"
            while name in self._by_name:
                name = "_" + name
        node = ConstraintNode(nid, name, kind, max_fields=max_fields,
                              base=base, offset=offset)
        self._nodes[nid] = node
        self._by_name[name] = nid
        return node

    def add_value_node(self, name: Optional[str] = None) -> int:
        """Create a pointer-valued node and return its id."""
        return self._new_node(name, NodeKind.VALUE).id

    def add_object_node(self, name: Optional[str] = None,
                        max_fields: Optional[int] = None) -> int:
        """Create a memory object node and return its id."""
        if max_fields is not None and max_fields < 0:
            raise GraphError(f"max_fields must be >= 0, got {max_fields}",
                             ErrorCode.BAD_MAX_FIELDS)
        return self._new_node(name, NodeKind.OBJECT, max_fields=max_fields).id

    def add_field_node(self, root: int, offset: Optional[int] = None) -> int:
        """
        Create the field variant of *root* at *offset*, or its unknown-field
        object when *offset* is None.  Named ``root.offset`` / ``root.*``.
        Memoization is the resolver's job; use :meth:`resolve_field_object`.
        """
        root_node = self.get_node(root)
        if offset is None:
            node = self._new_node(f"{root_node.name}.*", NodeKind.UNKNOWN_FIELD,
                                  base=root)
        else:
            node = self._new_node(f"{root_node.name}.{offset}", NodeKind.FIELD_OBJECT,
                                  base=root, offset=offset)
        return node.id

    def get_node(self, nid: int) -> ConstraintNode:
        try:
            return self._nodes[nid]
        except KeyError:
            raise GraphError(f"unknown node id {nid}", ErrorCode.UNKNOWN_NODE) from None

    def find(self, name: str) -> Optional[int]:
        """Id of the node called *name*, or None."""
        return self._by_name.get(name)

    def node_id(self, name: str) -> int:
        nid = self._by_name.get(name)
        if nid is None:
            raise GraphError(f"unknown node {name!r}", ErrorCode.UNKNOWN_NODE)
        return nid

    def name_of(self, nid: int) -> str:
        return self.get_node(nid).name

    def __contains__(self, nid: object) -> bool:
        return nid in self._nodes

    def __iter__(self) -> Iterator[Tuple[int, ConstraintNode]]:
        """Yield ``(id, node)`` pairs in id order."""
        # Snapshot: field objects may be created while callers iterate.
        return iter(list(self._nodes.items()))

    def __len__(self) -> int:
        return len(self._nodes)

    def nodes(self) -> List[ConstraintNode]:
        return list(self._nodes.values())

    def objects(self) -> List[ConstraintNode]:
        return [n for n in self._nodes.values() if n.is_object]

    # -- Edges ---------------------------------------------------------------

    def _add_edge(self, edge: ConstraintEdge) -> Optional[ConstraintEdge]:
        src = self.get_node(edge.src)
        dst = self.get_node(edge.dst)
        if edge in self._edge_set:
            return None
        self._edge_set.add(edge)
        self._edge_counts[edge.kind] += 1
        src._attach_out(edge)
        dst._attach_in(edge)
        return edge

    def add_addr_edge(self, obj: int, ptr: int) -> Optional[AddrEdge]:
        """``ptr = &obj``.  *obj* must be an object node."""
        if not self.get_node(obj).is_object:
            raise GraphError(
                f"address-of source {self.get_node(obj)!r} is not an object",
                ErrorCode.NOT_AN_OBJECT,
            )
        return self._add_edge(AddrEdge(obj, ptr))

    def add_copy_edge(self, src: int, dst: int) -> Optional[CopyEdge]:
        """``dst = src``.  Returns None if the edge already exists."""
        return self._add_edge(CopyEdge(src, dst))

    def add_load_edge(self, ptr: int, val: int) -> Optional[LoadEdge]:
        """``val = *ptr``."""
        return self._add_edge(LoadEdge(ptr, val))

    def add_store_edge(self, val: int, ptr: int) -> Optional[StoreEdge]:
        """``*ptr = val``."""
        return self._add_edge(StoreEdge(val, ptr))

    def add_gep_edge(self, base: int, dst: int,
                     offset: Optional[int] = None) -> Optional[GepEdge]:
        """``dst = &base->offset``; ``offset=None`` for a variant GEP."""
        return self._add_edge(GepEdge(base, dst, offset))

    def has_copy_edge(self, src: int, dst: int) -> bool:
        return self.get_node(src).has_copy_edge_to(dst)

    def edges(self, kind: Optional[EdgeKind] = None) -> Iterator[ConstraintEdge]:
        """All edges (optionally of one kind), grouped by source id."""
        for node in list(self._nodes.values()):
            if kind is None:
                yield from node.all_out_edges()
            else:
                yield from node.out_edges(kind)

    def num_edges(self, kind: Optional[EdgeKind] = None) -> int:
        if kind is None:
            return sum(self._edge_counts.values())
        return self._edge_counts[kind]

    # -- Field objects -------------------------------------------------------

    @property
    def field_objects(self) -> FieldObjectResolver:
        return self._field_resolver

    def resolve_field_object(self, obj: int, edge: GepEdge) -> int:
        """Field variant of *obj* for *edge* (see :class:`FieldObjectResolver`)."""
        return self._field_resolver.resolve(obj, edge)

    def __repr__(self) -> str:
        return f"ConstraintGraph(nodes={len(self)}, edges={self.num_edges()})"
