# tests/conftest.py
"""
Shared fixtures and mock objects.

The Mock* classes mimic the parts of ``cppcheckdata`` the frontend reads
(tokens with AST links, variables, scopes, functions), so the frontend
can be tested without Cppcheck installed.  ``build_graph`` turns a compact
edge list into a ConstraintGraph for solver tests.
"""

import itertools
from typing import Dict, Iterable, List, Optional, Tuple

import pytest

from andersen import ConstraintGraph


# ── Mock cppcheckdata model ─────────────────────────────────────────

_ids = itertools.count(1)


def _next_id() -> str:
    return f"0x{next(_ids):04x}"


class MockScope:
    def __init__(self, type="Global", varlist=None, function=None, nestedIn=None,
                 className=""):
        self.Id = _next_id()
        self.type = type
        self.varlist = list(varlist or [])
        self.function = function
        self.nestedIn = nestedIn
        self.className = className


class MockFunction:
    def __init__(self, name, argument=None):
        self.Id = _next_id()
        self.name = name
        self.argument = dict(argument or {})


class MockVariable:
    def __init__(self, name, isPointer=False, isArray=False, scope=None,
                 typeScope=None):
        self.Id = _next_id()
        self.nameToken = MockToken(name)
        self.isPointer = isPointer
        self.isArray = isArray
        self.isGlobal = False
        self.isArgument = False
        self.scope = scope
        self.typeScope = typeScope


class MockToken:
    def __init__(self, str, variable=None, astOperand1=None, astOperand2=None,
                 isCast=False, function=None, scope=None, originalName="",
                 linenr=1, file="test.c"):
        self.Id = _next_id()
        self.str = str
        self.variable = variable
        self.astOperand1 = astOperand1
        self.astOperand2 = astOperand2
        self.astParent = None
        self.isCast = isCast
        self.function = function
        self.scope = scope
        self.originalName = originalName
        self.linenr = linenr
        self.file = file
        self.isAssignmentOp = str in ("=", "+=", "-=", "*=", "/=")
        self.isName = bool(str) and (str[0].isalpha() or str[0] == "_")
        for child in (astOperand1, astOperand2):
            if child is not None:
                child.astParent = self

    def __repr__(self):
        return f"MockToken({self.str!r})"


class MockConfiguration:
    def __init__(self, tokenlist, variables=(), scopes=(), functions=()):
        self.tokenlist = list(tokenlist)
        self.variables = list(variables)
        self.scopes = list(scopes)
        self.functions = list(functions)


# ── AST construction helpers ────────────────────────────────────────

def var(variable: MockVariable) -> MockToken:
    """Name token referring to *variable*."""
    return MockToken(variable.nameToken.str, variable=variable)


def unop(op: str, operand: MockToken) -> MockToken:
    return MockToken(op, astOperand1=operand)


def binop(op: str, lhs: MockToken, rhs: MockToken) -> MockToken:
    return MockToken(op, astOperand1=lhs, astOperand2=rhs)


def assign(lhs: MockToken, rhs: MockToken) -> MockToken:
    return binop("=", lhs, rhs)


def member(base: MockToken, field: MockVariable, arrow: bool = False) -> MockToken:
    """``base.field`` or, with *arrow*, ``base->field``."""
    tok = binop(".", base, var(field))
    tok.originalName = "->" if arrow else ""
    return tok


def call(name: str, *args: MockToken, function: Optional[MockFunction] = None) -> MockToken:
    arg_tree = None
    for arg in args:
        arg_tree = arg if arg_tree is None else binop(",", arg_tree, arg)
    callee = MockToken(name, function=function)
    return MockToken("(", astOperand1=callee, astOperand2=arg_tree)


def _flatten(root: MockToken) -> List[MockToken]:
    out: List[MockToken] = []
    if root is None:
        return out
    out.extend(_flatten(root.astOperand1))
    out.append(root)
    out.extend(_flatten(root.astOperand2))
    return out


def make_cfg(roots: Iterable[MockToken], variables=()) -> MockConfiguration:
    """Configuration whose tokenlist holds every token of *roots* in order."""
    tokens: List[MockToken] = []
    for root in roots:
        tokens.extend(_flatten(root))
    return MockConfiguration(tokens, variables=variables)


# ── Constraint graph helpers ────────────────────────────────────────

def build_graph(objects: Iterable[str], edges: Iterable[Tuple],
                field_limit: Optional[int] = None) -> Tuple[ConstraintGraph, Dict[str, int]]:
    """
    Build a graph from names and ``(kind, src, dst[, offset])`` tuples,
    where kind is one of addr/copy/load/store/gep.  Names not listed in
    *objects* become value nodes.  Returns the graph and a name → id map.
    """
    g = ConstraintGraph() if field_limit is None else ConstraintGraph(field_limit=field_limit)
    ids: Dict[str, int] = {}
    for name in objects:
        ids[name] = g.add_object_node(name)

    def node(name: str) -> int:
        if name not in ids:
            ids[name] = g.add_value_node(name)
        return ids[name]

    for entry in edges:
        kind, src, dst = entry[0], node(entry[1]), node(entry[2])
        if kind == "addr":
            g.add_addr_edge(src, dst)
        elif kind == "copy":
            g.add_copy_edge(src, dst)
        elif kind == "load":
            g.add_load_edge(src, dst)
        elif kind == "store":
            g.add_store_edge(src, dst)
        elif kind == "gep":
            g.add_gep_edge(src, dst, entry[3] if len(entry) > 3 else None)
        else:
            raise ValueError(kind)
    return g, ids


def names(graph: ConstraintGraph, ids: Iterable[int]) -> set:
    return {graph.name_of(i) for i in ids}


@pytest.fixture
def graph():
    return ConstraintGraph()
