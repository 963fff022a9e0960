"""
field_objects.py — Field Object Resolver
========================================

Field-sensitivity on demand: the first time an object is reached through a
GEP edge with offset *k*, a FIELD_OBJECT node standing for "object at
offset *k*" is synthesized; every later request for the same pair gets the
same node id.  Without this memoization the solver would mint a fresh
object on each pop and never converge.

Offsets are flattened onto the root object, so a GEP applied to a field
variant composes:  field(field(s, 4), 2) == field(s, 6).

Every root has a finite offset range: its declared ``max_fields``, or the
graph-wide field limit when it declares none.  This keeps offset cycles
such as ``p = &p->1`` from minting new objects forever.

When a precise field cannot be named (variant GEP, offset outside the
root's range, base that is not an object at all) the resolver answers
with the root's UNKNOWN_FIELD object instead.  That object is itself
stable and absorbs any further GEP.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Optional, Tuple

from .nodes import GepEdge, NodeKind

if TYPE_CHECKING:
    from .graph import ConstraintGraph

_log = logging.getLogger(__name__)


class FieldObjectResolver:
    """Memoized (object, offset) → field-variant node id."""

    def __init__(self, graph: "ConstraintGraph", field_limit: int) -> None:
        self._graph = graph
        self.field_limit = field_limit
        self._fields: Dict[Tuple[int, int], int] = {}
        self._unknown: Dict[int, int] = {}
        self.created = 0

    def resolve(self, obj: int, edge: GepEdge) -> int:
        """Return the object denoting *obj* shifted by *edge*'s offset."""
        node = self._graph.get_node(obj)

        if not node.is_object:
            _log.debug("GEP base %r is not an object; using unknown field", node)
            return self.unknown_field(node.id)

        if node.kind is NodeKind.UNKNOWN_FIELD:
            return node.id

        if node.kind is NodeKind.FIELD_OBJECT:
            root, base_offset = node.base, node.offset or 0
        else:
            root, base_offset = node.id, 0

        if edge.offset is None:
            return self.unknown_field(root)
        return self.field_at(root, base_offset + edge.offset)

    def limit_of(self, root: int) -> int:
        """Number of addressable offsets of *root*."""
        max_fields = self._graph.get_node(root).max_fields
        return self.field_limit if max_fields is None else max_fields

    def field_at(self, root: int, offset: int) -> int:
        """
        Field variant of *root* at *offset*, created on first request.
        Offsets outside ``[0, limit_of(root))`` map to the unknown field.
        """
        key = (root, offset)
        cached = self._fields.get(key)
        if cached is not None:
            return cached

        limit = self.limit_of(root)
        if offset < 0 or offset >= limit:
            _log.debug("offset %d out of range for node %d (limit %d)",
                       offset, root, limit)
            return self.unknown_field(root)

        field_id = self._graph.add_field_node(root, offset)
        self._fields[key] = field_id
        self.created += 1
        return field_id

    def unknown_field(self, root: int) -> int:
        """The collapsed "some field of *root*" object."""
        cached = self._unknown.get(root)
        if cached is not None:
            return cached
        field_id = self._graph.add_field_node(root)
        self._unknown[root] = field_id
        self.created += 1
        return field_id

    def lookup(self, root: int, offset: Optional[int]) -> Optional[int]:
        """Existing variant for (*root*, *offset*) without creating one."""
        if offset is None:
            return self._unknown.get(root)
        return self._fields.get((root, offset))

    def __len__(self) -> int:
        return len(self._fields) + len(self._unknown)
