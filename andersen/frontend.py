"""
frontend.py — Constraint Graphs from Cppcheck Dumps
===================================================

Builds a :class:`~andersen.graph.ConstraintGraph` from a Cppcheck
``Configuration`` (``cppcheckdata.parsedump(path).configurations[i]``).

Every ``Variable`` becomes an object node that also stands for the value
the variable holds, so ``p = &x`` puts ``x`` in pts(p) and ``*p`` reaches
whatever ``x`` holds.  Sub-expressions that need their own node get a
temporary value node, memoized per AST token.

Constraints collected (walking each AST root bottom-up):

    p = &x          AddrEdge(x → p)
    p = q           CopyEdge(q → p)
    p = *q          LoadEdge(q → p)
    *p = q          StoreEdge(q → p)
    p = &s.f        AddrEdge(s → t), GepEdge(t → p, idx(f))
    p = &q->f       GepEdge(q → p, idx(f))
    p = q->f        GepEdge(q → t), LoadEdge(t → p)
    q->f = p        GepEdge(q → t), StoreEdge(p → t)
    p = malloc(n)   AddrEdge(heap@site → p)
    p = c ? a : b   CopyEdge(a → t), CopyEdge(b → t), CopyEdge(t → p)
    f(a, b)         CopyEdge(a → param1), CopyEdge(b → param2)
    return e        CopyEdge(e → ret(f))
    p = f(...)      CopyEdge(ret(f) → p)

``t`` is a temporary.  Where the right-hand side needs a temporary, the
assignment itself adds one more ``CopyEdge(t → p)``.

Field offsets are member indices within the struct scope's ``varlist``;
members that cannot be located give a variant GEP.  Array elements are
not distinguished from the array object.

Usage
-----
    import cppcheckdata
    from andersen.frontend import build_constraint_graph

    data = cppcheckdata.parsedump("example.c.dump")
    graph = build_constraint_graph(data.configurations[0])
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterator, List, Optional

from .graph import ConstraintGraph

_log = logging.getLogger(__name__)

_ALLOCATORS = frozenset({
    "malloc", "calloc", "realloc", "strdup", "strndup",
    "aligned_alloc", "alloca", "new",
})

_NAME_CHARS = re.compile(r"[^A-Za-z0-9_$]")


class ConstraintGraphBuilder:
    """Collects constraints from one Cppcheck configuration."""

    def __init__(self, cfg_data: Any,
                 graph: Optional[ConstraintGraph] = None) -> None:
        self._cfg = cfg_data
        self.graph = graph if graph is not None else ConstraintGraph()
        self._var_nodes: Dict[str, int] = {}       # Variable.Id → node
        self._addr_nodes: Dict[int, int] = {}      # object node → &object temp
        self._heap_nodes: Dict[str, int] = {}      # Token.Id → heap object
        self._ret_nodes: Dict[str, int] = {}       # Function.Id → return value
        self._value_memo: Dict[str, Optional[int]] = {}
        self._address_memo: Dict[str, Optional[int]] = {}
        self._tmp_count = 0

    # -- Entry point ---------------------------------------------------------

    def build(self) -> ConstraintGraph:
        for variable in getattr(self._cfg, "variables", None) or []:
            self._var_node(variable)
        for token in self._cfg.tokenlist:
            if token.astParent is not None:
                continue
            self._collect_from_ast(token)
            self._collect_return(token)
        _log.info("built %r from %d variables",
                  self.graph, len(self._var_nodes))
        return self.graph

    # -- Node factories ------------------------------------------------------

    def _unique(self, name: str) -> str:
        name = _NAME_CHARS.sub("_", name) or "anon"
        if not (name[0].isalpha() or name[0] in "_$"):
            name = "_" + name
        candidate, k = name, 1
        while self.graph.find(candidate) is not None:
            candidate = f"{name}_{k}"
            k += 1
        return candidate

    def _var_node(self, variable) -> int:
        vid = str(variable.Id)
        nid = self._var_nodes.get(vid)
        if nid is not None:
            return nid
        name_tok = getattr(variable, "nameToken", None)
        name = name_tok.str if name_tok is not None else f"var_{vid}"
        type_scope = getattr(variable, "typeScope", None)
        max_fields = None
        if type_scope is not None and getattr(type_scope, "varlist", None):
            max_fields = len(type_scope.varlist)
        nid = self.graph.add_object_node(self._unique(name), max_fields=max_fields)
        self._var_nodes[vid] = nid
        return nid

    def _temp(self) -> int:
        self._tmp_count += 1
        return self.graph.add_value_node(self._unique(f"tmp{self._tmp_count}"))

    def _address_temp(self, obj: int) -> int:
        """A value node holding exactly ``&obj``."""
        nid = self._addr_nodes.get(obj)
        if nid is None:
            nid = self.graph.add_value_node(
                self._unique(f"addr_{self.graph.name_of(obj)}"))
            self.graph.add_addr_edge(obj, nid)
            self._addr_nodes[obj] = nid
        return nid

    def _heap_node(self, call_token) -> int:
        tid = str(call_token.Id)
        nid = self._heap_nodes.get(tid)
        if nid is None:
            func = call_token.astOperand1.str
            line = getattr(call_token, "linenr", None) or tid
            nid = self.graph.add_object_node(self._unique(f"{func}_{line}"))
            self._heap_nodes[tid] = nid
        return nid

    def _ret_node(self, function) -> int:
        fid = str(function.Id)
        nid = self._ret_nodes.get(fid)
        if nid is None:
            nid = self.graph.add_value_node(
                self._unique(f"ret_{function.name or fid}"))
            self._ret_nodes[fid] = nid
        return nid

    # -- AST walk ------------------------------------------------------------

    def _collect_from_ast(self, token) -> None:
        if token is None:
            return
        self._collect_from_ast(token.astOperand1)
        self._collect_from_ast(token.astOperand2)

        if getattr(token, "isAssignmentOp", False) and token.str == "=":
            lhs, rhs = token.astOperand1, token.astOperand2
            if lhs is not None and rhs is not None:
                value = self._value_of(rhs)
                if value is not None:
                    self._assign(lhs, value)
        elif _is_call(token):
            self._bind_arguments(token)

    def _collect_return(self, token) -> None:
        if token.str != "return" or token.astOperand1 is None:
            return
        function = _enclosing_function(getattr(token, "scope", None))
        if function is None:
            return
        value = self._value_of(token.astOperand1)
        if value is not None:
            self.graph.add_copy_edge(value, self._ret_node(function))

    def _bind_arguments(self, call_token) -> None:
        function = getattr(call_token.astOperand1, "function", None)
        if function is None:
            return
        params = getattr(function, "argument", None) or {}
        for index, arg in enumerate(_flatten_commas(call_token.astOperand2), start=1):
            param = params.get(index)
            if param is None:
                continue
            value = self._value_of(arg)
            if value is not None:
                self.graph.add_copy_edge(value, self._var_node(param))

    def _assign(self, lhs, value: int) -> None:
        """Record ``lhs = <value>``."""
        if lhs.variable is not None and lhs.str not in (".", "["):
            self.graph.add_copy_edge(value, self._var_node(lhs.variable))
            return
        if lhs.str == "*" and lhs.astOperand2 is None:
            ptr = self._value_of(lhs.astOperand1)
            if ptr is not None:
                self.graph.add_store_edge(value, ptr)
            return
        if lhs.str in (".", "["):
            addr = self._address_of(lhs)
            if addr is not None:
                self.graph.add_store_edge(value, addr)

    # -- Expressions ---------------------------------------------------------

    def _value_of(self, token) -> Optional[int]:
        """Node whose points-to set is the value of expression *token*."""
        if token is None:
            return None
        key = str(token.Id)
        if key in self._value_memo:
            return self._value_memo[key]
        result = self._compute_value(token)
        self._value_memo[key] = result
        return result

    def _compute_value(self, token) -> Optional[int]:
        s = token.str
        op1, op2 = token.astOperand1, token.astOperand2

        if s == "=":
            return self._value_of(op1)
        if s == "&" and op2 is None:
            return self._address_of(op1)
        if s == "*" and op2 is None:
            ptr = self._value_of(op1)
            if ptr is None:
                return None
            tmp = self._temp()
            self.graph.add_load_edge(ptr, tmp)
            return tmp
        if s in (".", "["):
            addr = self._address_of(token)
            if addr is None:
                return None
            tmp = self._temp()
            self.graph.add_load_edge(addr, tmp)
            return tmp
        if s == "?" and op2 is not None and op2.str == ":":
            tmp = self._temp()
            for branch in (op2.astOperand1, op2.astOperand2):
                value = self._value_of(branch)
                if value is not None:
                    self.graph.add_copy_edge(value, tmp)
            return tmp
        if s == "(":
            if getattr(token, "isCast", False):
                return self._value_of(op1)
            if _is_call(token):
                if op1.str in _ALLOCATORS:
                    return self._address_temp(self._heap_node(token))
                function = getattr(op1, "function", None)
                if function is not None:
                    return self._ret_node(function)
            return None
        if s in ("+", "-") and op2 is not None:
            value = self._value_of(op1)
            return value if value is not None else self._value_of(op2)
        if token.variable is not None:
            var_node = self._var_node(token.variable)
            if getattr(token.variable, "isArray", False):
                return self._address_temp(var_node)
            return var_node
        return None

    def _address_of(self, token) -> Optional[int]:
        """Node whose points-to set is the address of lvalue *token*."""
        if token is None:
            return None
        key = str(token.Id)
        if key in self._address_memo:
            return self._address_memo[key]
        result = self._compute_address(token)
        self._address_memo[key] = result
        return result

    def _compute_address(self, token) -> Optional[int]:
        s = token.str
        if s == "*" and token.astOperand2 is None:
            return self._value_of(token.astOperand1)
        if s == ".":
            base = token.astOperand1
            if getattr(token, "originalName", "") == "->":
                base_addr = self._value_of(base)
            else:
                base_addr = self._address_of(base)
            if base_addr is None:
                return None
            tmp = self._temp()
            self.graph.add_gep_edge(base_addr, tmp, _member_index(token.astOperand2))
            return tmp
        if s == "[":
            base = token.astOperand1
            if base is not None and base.variable is not None \
                    and getattr(base.variable, "isArray", False):
                return self._address_of(base)
            return self._value_of(base)
        if token.variable is not None:
            return self._address_temp(self._var_node(token.variable))
        return None


# ---------------------------------------------------------------------------
# Cppcheck AST helpers
# ---------------------------------------------------------------------------

def _is_call(token) -> bool:
    return (token.str == "(" and token.astOperand1 is not None
            and getattr(token.astOperand1, "isName", False)
            and not getattr(token, "isCast", False))


def _flatten_commas(token) -> Iterator[Any]:
    if token is None:
        return
    if token.str == ",":
        yield from _flatten_commas(token.astOperand1)
        yield from _flatten_commas(token.astOperand2)
    else:
        yield token


def _member_index(member_token) -> Optional[int]:
    """Position of the member in its struct's varlist, or None if unknown."""
    variable = getattr(member_token, "variable", None) if member_token else None
    if variable is None:
        return None
    scope = getattr(variable, "scope", None)
    varlist: List[Any] = list(getattr(scope, "varlist", None) or [])
    for index, member in enumerate(varlist):
        if member is variable or str(member.Id) == str(variable.Id):
            return index
    return None


def _enclosing_function(scope):
    while scope is not None:
        if getattr(scope, "type", None) == "Function":
            return getattr(scope, "function", None)
        scope = getattr(scope, "nestedIn", None)
    return None


def build_constraint_graph(cfg_data: Any,
                           graph: Optional[ConstraintGraph] = None) -> ConstraintGraph:
    """Build the constraint graph of *cfg_data*, into *graph* if given."""
    return ConstraintGraphBuilder(cfg_data, graph).build()
