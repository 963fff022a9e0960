"""
worklist.py — FIFO worklist of dirty node ids.

A node that is already waiting is not queued a second time; once popped
it may be pushed again.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, Set


class WorkList:
    """First-in first-out queue with pending-entry de-duplication."""

    def __init__(self, items: Iterable[int] = ()) -> None:
        self._queue: Deque[int] = deque()
        self._pending: Set[int] = set()
        for item in items:
            self.push(item)

    def push(self, node: int) -> bool:
        """Queue *node*.  Returns False if it was already pending."""
        if node in self._pending:
            return False
        self._pending.add(node)
        self._queue.append(node)
        return True

    def pop(self) -> int:
        """Remove and return the oldest pending node.  IndexError if empty."""
        node = self._queue.popleft()
        self._pending.discard(node)
        return node

    def empty(self) -> bool:
        return not self._queue

    def __len__(self) -> int:
        return len(self._queue)

    def __contains__(self, node: int) -> bool:
        return node in self._pending

    def __repr__(self) -> str:
        return f"WorkList({list(self._queue)!r})"
