"""
points_to.py — Points-to Store
==============================

Mapping from node id to the set of object ids the node may point to.
Sets start empty and only ever grow; every mutator reports whether the
target set grew, which is what drives the solver's worklist.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, FrozenSet, Iterable, Iterator, Set


class PointsToStore:
    """Monotone node → object-set map."""

    def __init__(self) -> None:
        self._pts: Dict[int, Set[int]] = defaultdict(set)

    # -- Mutation ------------------------------------------------------------

    def add(self, node: int, obj: int) -> bool:
        """Insert *obj* into pts(*node*).  Returns True if the set grew."""
        targets = self._pts[node]
        if obj in targets:
            return False
        targets.add(obj)
        return True

    def union_into(self, dst: int, objs: Iterable[int]) -> bool:
        """pts(*dst*) ∪= *objs*.  Returns True if the set grew."""
        targets = self._pts[dst]
        before = len(targets)
        targets.update(objs)
        return len(targets) > before

    # -- Query ---------------------------------------------------------------

    def points_to(self, node: int) -> FrozenSet[int]:
        """Return a snapshot of pts(*node*); empty if nothing recorded."""
        targets = self._pts.get(node)
        return frozenset(targets) if targets else frozenset()

    def __contains__(self, node: int) -> bool:
        return bool(self._pts.get(node))

    def __iter__(self) -> Iterator[int]:
        """Iterate over node ids with a non-empty set, in id order."""
        return iter(sorted(n for n, t in self._pts.items() if t))

    def __len__(self) -> int:
        return sum(1 for t in self._pts.values() if t)

    def total_size(self) -> int:
        """Sum of all set sizes."""
        return sum(len(t) for t in self._pts.values())

    def as_dict(self) -> Dict[int, FrozenSet[int]]:
        return {n: frozenset(self._pts[n]) for n in self}

    def __repr__(self) -> str:
        return f"PointsToStore(nodes={len(self)}, facts={self.total_size()})"
