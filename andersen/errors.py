# andersen/errors.py
"""
Error types for the points-to analysis package.

Hierarchy
─────────
    AndersenError (base)
    ├── GraphError              - malformed constraint graph input
    │   └── GraphSyntaxError    - unparsable .cg text
    └── IterationLimitExceeded  - optional solver bound exceeded

The fixpoint itself never raises on well-formed input: edge/kind
mismatches are skipped and unresolvable field accesses fall back to the
unknown-field object.  Everything here is raised by the collaborators
around it (graph construction, parsing, the optional pop bound).

Error codes follow the pattern ``PTA-XXXX``:
  - 1000-1999: graph construction
  - 2000-2999: graph text syntax
  - 3000-3999: solver
"""

from __future__ import annotations

from enum import Enum, unique
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .points_to import PointsToStore


@unique
class ErrorCode(Enum):
    GRAPH = 1000
    UNKNOWN_NODE = 1001
    NOT_AN_OBJECT = 1002
    KIND_CONFLICT = 1003
    DUPLICATE_NAME = 1004
    BAD_MAX_FIELDS = 1005

    SYNTAX = 2001
    BAD_FIELD_NAME = 2002
    UNKNOWN_STATEMENT = 2003

    ITERATION_LIMIT = 3001

    @property
    def tag(self) -> str:
        return f"PTA-{self.value:04d}"


class AndersenError(Exception):
    """Base class for all errors raised by this package."""

    code: ErrorCode

    def __init__(self, message: str, code: Optional[ErrorCode] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        code = getattr(self, "code", None)
        if code is None:
            return self.message
        return f"[{code.tag}] {self.message}"


class GraphError(AndersenError):
    """Precondition violation while building or querying a constraint graph."""

    code = ErrorCode.GRAPH


class GraphSyntaxError(GraphError):
    """A ``.cg`` constraint file could not be parsed."""

    code = ErrorCode.SYNTAX

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        source: Optional[str] = None,
        code: Optional[ErrorCode] = None,
    ) -> None:
        self.line = line
        self.column = column
        self.source = source
        where = ""
        if line is not None:
            where = f"{source or '<string>'}:{line}:{column or 0}: "
        super().__init__(where + message, code)


class IterationLimitExceeded(AndersenError):
    """
    The solver exceeded its configured pop bound.

    ``store`` holds the partial points-to sets at the point of abort.
    They under-approximate the fixpoint and must not be treated as sound.
    """

    code = ErrorCode.ITERATION_LIMIT

    def __init__(self, limit: int, store: "PointsToStore") -> None:
        super().__init__(f"fixpoint not reached within {limit} worklist pops")
        self.limit = limit
        self.store = store
