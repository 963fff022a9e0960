"""
graph_text.py — Textual Constraint Graphs
=========================================

A line-oriented format for writing constraint graphs by hand and for
dumping the graph the solver ended up with (including the copy edges it
materialized).

Syntax
------
    # comment                   everything after '#' is ignored
    object x                    declare a memory object
    object s[4]                 ... with 4 addressable fields
    value p                     declare a pointer-valued node

    p = &x                      AddrEdge(x -> p)
    q = p                       CopyEdge(p -> q)
    v = *q                      LoadEdge(q -> v)
    *q = p                      StoreEdge(p -> q)
    f = &p->4                   GepEdge(p -> f, offset 4)
    g = &p->?                   GepEdge(p -> g), variant offset

Names need not be declared.  A name that appears under ``&`` anywhere in
the file becomes an object, any other name a value node.  ``s.4`` names
the field variant of object ``s`` at offset 4 and ``s.*`` its unknown-field
object; both are created through the graph's field resolver.

The grammar is a Parsimonious PEG applied to one line at a time so that
errors carry line numbers.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Set, TextIO, Tuple, Union

from parsimonious.exceptions import ParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import NodeVisitor

from .errors import ErrorCode, GraphSyntaxError
from .graph import ConstraintGraph
from .nodes import ConstraintEdge, EdgeKind, GepEdge, NodeKind

_log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  GRAMMAR
# ═══════════════════════════════════════════════════════════════════

GRAPH_GRAMMAR = Grammar(r'''
    line        = _ statement _
    statement   = decl / gep / addr / store / load / copy

    decl        = decl_kind __ name fields?
    decl_kind   = "object" / "value"
    fields      = _ "[" _ number _ "]"

    gep         = name _ "=" _ "&" _ name _ "->" _ offset
    addr        = name _ "=" _ "&" _ name
    store       = "*" _ name _ "=" _ name
    load        = name _ "=" _ "*" _ name
    copy        = name _ "=" _ name

    offset      = number / "?"
    name        = ~r"[A-Za-z_$][A-Za-z0-9_$]*(\.(\d+|\*))*"
    number      = ~r"\d+"

    _           = ~r"[ \t]*"
    __          = ~r"[ \t]+"
''')


@dataclass(frozen=True)
class Statement:
    """One parsed line: ``op`` plus its operands, ``lineno`` for errors."""
    op: str                       # decl / addr / copy / load / store / gep
    args: Tuple
    lineno: int


class _StatementVisitor(NodeVisitor):
    """Parse tree of one line → (op, args)."""

    def generic_visit(self, node, visited_children):
        return visited_children or node

    def visit_line(self, node, visited_children):
        return visited_children[1]

    def visit_statement(self, node, visited_children):
        return visited_children[0]

    def visit_decl(self, node, visited_children):
        kind, _, name, fields = visited_children
        max_fields = fields[0] if isinstance(fields, list) and fields else None
        return ("decl", (kind, name, max_fields))

    def visit_decl_kind(self, node, visited_children):
        return node.text

    def visit_fields(self, node, visited_children):
        return visited_children[3]

    def visit_gep(self, node, visited_children):
        dst, base, offset = visited_children[0], visited_children[6], visited_children[10]
        return ("gep", (base, dst, offset))

    def visit_addr(self, node, visited_children):
        dst, src = visited_children[0], visited_children[6]
        return ("addr", (src, dst))

    def visit_store(self, node, visited_children):
        ptr, val = visited_children[2], visited_children[6]
        return ("store", (val, ptr))

    def visit_load(self, node, visited_children):
        dst, ptr = visited_children[0], visited_children[6]
        return ("load", (ptr, dst))

    def visit_copy(self, node, visited_children):
        dst, src = visited_children[0], visited_children[4]
        return ("copy", (src, dst))

    def visit_offset(self, node, visited_children):
        return None if node.text == "?" else int(node.text)

    def visit_name(self, node, visited_children):
        return node.text

    def visit_number(self, node, visited_children):
        return int(node.text)


_VISITOR = _StatementVisitor()


def parse_statements(text: str, source: Optional[str] = None) -> List[Statement]:
    """Parse *text* into statements, raising :class:`GraphSyntaxError`."""
    statements: List[Statement] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0]
        if not line.strip():
            continue
        try:
            tree = GRAPH_GRAMMAR.parse(line)
        except ParseError as exc:
            raise GraphSyntaxError(
                f"cannot parse {line.strip()!r}",
                line=lineno, column=exc.pos + 1, source=source,
            ) from None
        op, args = _VISITOR.visit(tree)
        statements.append(Statement(op, args, lineno))
    return statements


# ═══════════════════════════════════════════════════════════════════
#  LOADING
# ═══════════════════════════════════════════════════════════════════

_FIELD_SUFFIX = re.compile(r"\.(\d+|\*)")


class GraphTextLoader:
    """Applies parsed statements to a :class:`ConstraintGraph`."""

    def __init__(self, graph: Optional[ConstraintGraph] = None,
                 source: Optional[str] = None) -> None:
        self.graph = graph if graph is not None else ConstraintGraph()
        self.source = source
        self._addressed: Set[str] = set()

    def load(self, statements: Iterable[Statement]) -> ConstraintGraph:
        statements = list(statements)
        self._addressed = {s.args[0] for s in statements if s.op == "addr"}

        for stmt in statements:
            if stmt.op == "decl":
                self._declare(stmt)

        for stmt in statements:
            if stmt.op == "decl":
                continue
            self._apply(stmt)

        _log.debug("loaded %r from %s", self.graph, self.source or "<string>")
        return self.graph

    def _error(self, stmt: Statement, message: str, code: ErrorCode) -> GraphSyntaxError:
        return GraphSyntaxError(message, line=stmt.lineno, source=self.source, code=code)

    def _declare(self, stmt: Statement) -> None:
        kind, name, max_fields = stmt.args
        if "." in name:
            raise self._error(stmt, f"cannot declare field name {name!r}",
                              ErrorCode.BAD_FIELD_NAME)
        existing = self.graph.find(name)
        if existing is not None:
            node = self.graph.get_node(existing)
            if node.kind.value != kind or node.max_fields != max_fields:
                raise self._error(stmt, f"conflicting declaration of {name!r}",
                                  ErrorCode.KIND_CONFLICT)
            return
        if kind == "object":
            self.graph.add_object_node(name, max_fields=max_fields)
        else:
            if max_fields is not None:
                raise self._error(stmt, f"value {name!r} cannot have fields",
                                  ErrorCode.KIND_CONFLICT)
            self.graph.add_value_node(name)

    def _ref(self, stmt: Statement, name: str) -> int:
        base, _, rest = name.partition(".")
        nid = self.graph.find(base)
        if nid is None:
            if base in self._addressed or rest:
                nid = self.graph.add_object_node(base)
            else:
                nid = self.graph.add_value_node(base)
        if not rest:
            return nid

        for part in _FIELD_SUFFIX.findall("." + rest):
            node = self.graph.get_node(nid)
            if part != "*" and not node.is_object:
                raise self._error(stmt, f"{node.name!r} is not an object in {name!r}",
                                  ErrorCode.BAD_FIELD_NAME)
            offset = None if part == "*" else int(part)
            nid = self.graph.resolve_field_object(nid, GepEdge(nid, nid, offset))
        return nid

    def _apply(self, stmt: Statement) -> None:
        if stmt.op == "gep":
            base, dst, offset = stmt.args
            self.graph.add_gep_edge(self._ref(stmt, base), self._ref(stmt, dst), offset)
            return

        src, dst = (self._ref(stmt, n) for n in stmt.args)
        if stmt.op == "addr":
            if not self.graph.get_node(src).is_object:
                raise self._error(stmt, f"{stmt.args[0]!r} is declared as a value "
                                  f"but its address is taken", ErrorCode.KIND_CONFLICT)
            self.graph.add_addr_edge(src, dst)
        elif stmt.op == "copy":
            self.graph.add_copy_edge(src, dst)
        elif stmt.op == "load":
            self.graph.add_load_edge(src, dst)
        elif stmt.op == "store":
            self.graph.add_store_edge(src, dst)
        else:
            raise self._error(stmt, f"unknown statement {stmt.op!r}",
                              ErrorCode.UNKNOWN_STATEMENT)


def load_graph(text: str, graph: Optional[ConstraintGraph] = None,
               source: Optional[str] = None) -> ConstraintGraph:
    """Build (or extend) a constraint graph from ``.cg`` text."""
    return GraphTextLoader(graph, source).load(parse_statements(text, source))


def load_graph_file(path: Union[str, Path],
                    graph: Optional[ConstraintGraph] = None) -> ConstraintGraph:
    p = Path(path)
    return load_graph(p.read_text(encoding="utf-8"), graph, source=str(p))


# ═══════════════════════════════════════════════════════════════════
#  DUMPING
# ═══════════════════════════════════════════════════════════════════

def format_edge(graph: ConstraintGraph, edge: ConstraintEdge) -> str:
    """Render one edge as a ``.cg`` statement."""
    src, dst = graph.name_of(edge.src), graph.name_of(edge.dst)
    if edge.kind is EdgeKind.ADDR:
        return f"{dst} = &{src}"
    if edge.kind is EdgeKind.COPY:
        return f"{dst} = {src}"
    if edge.kind is EdgeKind.LOAD:
        return f"{dst} = *{src}"
    if edge.kind is EdgeKind.STORE:
        return f"*{dst} = {src}"
    offset = "?" if edge.offset is None else edge.offset  # type: ignore[attr-defined]
    return f"{dst} = &{src}->{offset}"


def dump_graph(graph: ConstraintGraph) -> str:
    """
    Render *graph* as ``.cg`` text: declarations of the non-synthesized
    nodes in id order, then every edge.  Reloading the dump gives a graph
    with the same nodes and edges by name; ids may be renumbered, since
    field objects are recreated on demand.
    """
    lines = [f"# constraint graph: {len(graph)} nodes, {graph.num_edges()} edges"]
    for _, node in graph:
        if node.is_synthesized:
            continue
        if node.kind is NodeKind.OBJECT:
            suffix = f"[{node.max_fields}]" if node.max_fields is not None else ""
            lines.append(f"object {node.name}{suffix}")
        else:
            lines.append(f"value {node.name}")
    for edge in graph.edges():
        lines.append(format_edge(graph, edge))
    return "\n".join(lines) + "\n"


def write_graph(graph: ConstraintGraph, stream: TextIO) -> None:
    stream.write(dump_graph(graph))
