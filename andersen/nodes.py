"""
nodes.py — Constraint Graph Nodes and Edges
===========================================

The vocabulary of the constraint graph:

  NodeKind       — value (pointer) node, memory object, field variant, unknown field
  EdgeKind       — the closed set of constraint kinds
  ConstraintEdge — tagged edge variants (AddrEdge, CopyEdge, LoadEdge,
                   StoreEdge, GepEdge)
  ConstraintNode — a node with per-kind incoming/outgoing edge lists

Edge semantics
--------------
  AddrEdge(o → p)        p = &o           pts(p) ⊇ {o}
  CopyEdge(a → b)        b = a            pts(b) ⊇ pts(a)
  LoadEdge(p → v)        v = *p           ∀o ∈ pts(p): pts(v) ⊇ pts(o)
  StoreEdge(v → p)       *p = v           ∀o ∈ pts(p): pts(o) ⊇ pts(v)
  GepEdge(b → d, k)      d = &b->k        pts(d) ⊇ {field(o, k) | o ∈ pts(b)}
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import ClassVar, Dict, Iterator, List, Optional


class NodeKind(enum.Enum):
    """Classification of constraint graph nodes."""
    VALUE         = "value"          # Pointer-valued variable / temporary
    OBJECT        = "object"         # Allocation site or addressable storage
    FIELD_OBJECT  = "field"          # Synthesized (object, offset) variant
    UNKNOWN_FIELD = "unknown_field"  # "Some field of" an object (collapsed)

    @property
    def is_object(self) -> bool:
        return self is not NodeKind.VALUE


class EdgeKind(enum.Enum):
    """Constraint kinds.  The value doubles as the short tag used in dumps."""
    ADDR  = "addr"
    COPY  = "copy"
    LOAD  = "load"
    STORE = "store"
    GEP   = "gep"


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConstraintEdge:
    """A directed constraint between two node ids."""
    src: int
    dst: int

    kind: ClassVar[EdgeKind]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.src} -> {self.dst})"


@dataclass(frozen=True, repr=False)
class AddrEdge(ConstraintEdge):
    kind: ClassVar[EdgeKind] = EdgeKind.ADDR


@dataclass(frozen=True, repr=False)
class CopyEdge(ConstraintEdge):
    kind: ClassVar[EdgeKind] = EdgeKind.COPY


@dataclass(frozen=True, repr=False)
class LoadEdge(ConstraintEdge):
    kind: ClassVar[EdgeKind] = EdgeKind.LOAD


@dataclass(frozen=True, repr=False)
class StoreEdge(ConstraintEdge):
    kind: ClassVar[EdgeKind] = EdgeKind.STORE


@dataclass(frozen=True, repr=False)
class GepEdge(ConstraintEdge):
    """
    Field-offset edge.  ``offset`` is the constant field index; ``None``
    marks a variant GEP whose index is not statically known.
    """
    offset: Optional[int] = None

    kind: ClassVar[EdgeKind] = EdgeKind.GEP

    @property
    def is_variant(self) -> bool:
        return self.offset is None

    def __repr__(self) -> str:
        off = "?" if self.offset is None else self.offset
        return f"GepEdge({self.src} -> {self.dst}, +{off})"


EDGE_TYPES: Dict[EdgeKind, type] = {
    EdgeKind.ADDR: AddrEdge,
    EdgeKind.COPY: CopyEdge,
    EdgeKind.LOAD: LoadEdge,
    EdgeKind.STORE: StoreEdge,
    EdgeKind.GEP: GepEdge,
}


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ConstraintNode:
    """
    A node of the constraint graph.

    Edges are stored twice, once on each endpoint, in per-kind lists.
    Outgoing copy edges are additionally indexed by destination so that
    duplicate checks stay local to the source node.
    """
    id: int
    name: str
    kind: NodeKind = NodeKind.VALUE

    # Object metadata
    max_fields: Optional[int] = None     # OBJECT only; None = unbounded
    base: Optional[int] = None           # FIELD_OBJECT / UNKNOWN_FIELD: root object
    offset: Optional[int] = None         # FIELD_OBJECT: flattened offset from root

    _in: Dict[EdgeKind, List[ConstraintEdge]] = field(
        default_factory=lambda: {k: [] for k in EdgeKind}, init=False, repr=False)
    _out: Dict[EdgeKind, List[ConstraintEdge]] = field(
        default_factory=lambda: {k: [] for k in EdgeKind}, init=False, repr=False)
    _copy_dsts: Dict[int, CopyEdge] = field(default_factory=dict, init=False, repr=False)

    @property
    def is_object(self) -> bool:
        return self.kind.is_object

    @property
    def is_synthesized(self) -> bool:
        return self.kind in (NodeKind.FIELD_OBJECT, NodeKind.UNKNOWN_FIELD)

    # -- Edge registration (graph-internal) ----------------------------------

    def _attach_out(self, edge: ConstraintEdge) -> None:
        self._out[edge.kind].append(edge)
        if edge.kind is EdgeKind.COPY:
            self._copy_dsts[edge.dst] = edge

    def _attach_in(self, edge: ConstraintEdge) -> None:
        self._in[edge.kind].append(edge)

    # -- Accessors -----------------------------------------------------------

    def in_edges(self, kind: EdgeKind) -> List[ConstraintEdge]:
        return self._in[kind]

    def out_edges(self, kind: EdgeKind) -> List[ConstraintEdge]:
        return self._out[kind]

    @property
    def addr_in_edges(self) -> List[ConstraintEdge]:
        return self._in[EdgeKind.ADDR]

    @property
    def addr_out_edges(self) -> List[ConstraintEdge]:
        return self._out[EdgeKind.ADDR]

    @property
    def copy_in_edges(self) -> List[ConstraintEdge]:
        return self._in[EdgeKind.COPY]

    @property
    def copy_out_edges(self) -> List[ConstraintEdge]:
        return self._out[EdgeKind.COPY]

    @property
    def load_out_edges(self) -> List[ConstraintEdge]:
        return self._out[EdgeKind.LOAD]

    @property
    def store_in_edges(self) -> List[ConstraintEdge]:
        return self._in[EdgeKind.STORE]

    @property
    def gep_out_edges(self) -> List[ConstraintEdge]:
        return self._out[EdgeKind.GEP]

    def has_copy_edge_to(self, dst: int) -> bool:
        """True if a ``CopyEdge(self → dst)`` already exists."""
        return dst in self._copy_dsts

    def all_out_edges(self) -> Iterator[ConstraintEdge]:
        for kind in EdgeKind:
            yield from self._out[kind]

    def __repr__(self) -> str:
        return f"ConstraintNode({self.id}, {self.name!r}, {self.kind.value})"
