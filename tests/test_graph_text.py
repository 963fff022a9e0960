# tests/test_graph_text.py
"""
Tests for the ``.cg`` text format: grammar, loading and dumping.
"""

from pathlib import Path

import pytest
from parsimonious.exceptions import ParseError

from andersen import (
    ConstraintGraph,
    EdgeKind,
    ErrorCode,
    GraphSyntaxError,
    NodeKind,
    dump_graph,
    load_graph,
    load_graph_file,
    solve,
)
from andersen.graph_text import GRAPH_GRAMMAR, GraphTextLoader, Statement, parse_statements

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def _edges_by_name(graph):
    return {
        (e.kind, graph.name_of(e.src), graph.name_of(e.dst), getattr(e, "offset", None))
        for e in graph.edges()
    }


class TestGrammar:

    @pytest.mark.parametrize("line", [
        "object x",
        "object s[4]",
        "value p",
        "p = &x",
        "q = p",
        "*q = p",
        "v = *q",
        "f = &p->4",
        "g = &p->?",
        "  spaced   =   &  x  ",
        "r = s.4",
        "r = s.*",
        "object = value",
    ])
    def test_accepts(self, line):
        assert GRAPH_GRAMMAR.parse(line) is not None

    @pytest.mark.parametrize("line", [
        "p = &",
        "p == q",
        "object",
        "**p = q",
        "p = &q->x",
        "1p = q",
        "p = q r",
    ])
    def test_rejects(self, line):
        with pytest.raises(ParseError):
            GRAPH_GRAMMAR.parse(line)


class TestParseStatements:

    def test_statement_shapes(self):
        stmts = parse_statements(
            "object s[2]\n"
            "p = &x\n"
            "q = p\n"
            "v = *q\n"
            "*q = v\n"
            "f = &p->1\n"
            "g = &p->?\n"
        )
        assert [(s.op, s.args) for s in stmts] == [
            ("decl", ("object", "s", 2)),
            ("addr", ("x", "p")),
            ("copy", ("p", "q")),
            ("load", ("q", "v")),
            ("store", ("v", "q")),
            ("gep", ("p", "f", 1)),
            ("gep", ("p", "g", None)),
        ]

    def test_comments_and_blank_lines(self):
        stmts = parse_statements("# header\n\n  p = &x   # trailing\n")
        assert len(stmts) == 1
        assert stmts[0].lineno == 3

    def test_syntax_error_location(self):
        with pytest.raises(GraphSyntaxError) as info:
            parse_statements("p = &x\nq = = p\n", source="bad.cg")
        err = info.value
        assert err.line == 2
        assert err.column is not None
        assert err.code is ErrorCode.SYNTAX
        assert "bad.cg:2:" in str(err)


class TestLoad:

    def test_implicit_kinds(self):
        g = load_graph("p = &x\nq = p\n")
        assert g.get_node(g.node_id("x")).kind is NodeKind.OBJECT
        assert g.get_node(g.node_id("p")).kind is NodeKind.VALUE
        assert g.get_node(g.node_id("q")).kind is NodeKind.VALUE

    def test_address_taken_later_in_file(self):
        g = load_graph("q = x\np = &x\n")
        assert g.get_node(g.node_id("x")).is_object

    def test_declarations_first(self):
        g = load_graph("p = &x\nobject s[3]\n")
        s = g.get_node(g.node_id("s"))
        assert s.id == 0
        assert s.max_fields == 3

    def test_address_of_declared_value_is_error(self):
        with pytest.raises(GraphSyntaxError) as info:
            load_graph("value x\np = &x\n")
        assert info.value.code is ErrorCode.KIND_CONFLICT
        assert info.value.line == 2

    def test_conflicting_declarations(self):
        with pytest.raises(GraphSyntaxError):
            load_graph("object x\nvalue x\n")

    def test_repeated_identical_declaration(self):
        g = load_graph("object x\nobject x\n")
        assert len(g) == 1

    def test_value_with_fields_is_error(self):
        with pytest.raises(GraphSyntaxError):
            load_graph("value p[2]\n")

    def test_field_names_resolve_through_resolver(self):
        g = load_graph("object s\nr = s.4\nu = s.*\n")
        s = g.node_id("s")
        f4 = g.node_id("s.4")
        assert g.get_node(f4).kind is NodeKind.FIELD_OBJECT
        assert g.field_objects.lookup(s, 4) == f4
        assert g.get_node(g.node_id("s.*")).kind is NodeKind.UNKNOWN_FIELD

    def test_cannot_declare_field_name(self):
        with pytest.raises(GraphSyntaxError) as info:
            load_graph("object s.1\n")
        assert info.value.code is ErrorCode.BAD_FIELD_NAME

    def test_field_of_value_is_error(self):
        with pytest.raises(GraphSyntaxError):
            load_graph("value p\nr = p.1\n")

    def test_extends_existing_graph(self):
        g = load_graph("p = &x\n")
        load_graph("q = p\n", graph=g)
        assert g.num_edges() == 2

    def test_unknown_statement(self):
        loader = GraphTextLoader(source="hand.cg")
        with pytest.raises(GraphSyntaxError) as info:
            loader.load([Statement("bogus", ("a", "b"), 3)])
        assert info.value.code is ErrorCode.UNKNOWN_STATEMENT
        assert info.value.line == 3
        assert "PTA-2003" in str(info.value)
        assert "hand.cg:3:" in str(info.value)

    def test_field_names_respect_graph_limit(self):
        g = load_graph("object s\nr = s.7\n", graph=ConstraintGraph(field_limit=4))
        assert g.find("s.7") is None
        (edge,) = g.edges(EdgeKind.COPY)
        assert g.name_of(edge.src) == "s.*"

    def test_file_into_existing_graph(self, tmp_path):
        path = tmp_path / "g.cg"
        path.write_text("p = &s\nf = &p->9\n", encoding="utf-8")
        g = load_graph_file(path, ConstraintGraph(field_limit=2))
        solve(g)
        assert g.find("s.9") is None
        assert g.find("s.*") is not None


class TestDump:

    def test_roundtrip_preserves_structure(self):
        text = (
            "object s[2]\n"
            "p = &s\n"
            "q = p\n"
            "v = *q\n"
            "*q = v\n"
            "f = &p->1\n"
            "g = &p->?\n"
        )
        g = load_graph(text)
        again = load_graph(dump_graph(g))
        assert len(again) == len(g)
        for kind in EdgeKind:
            assert again.num_edges(kind) == g.num_edges(kind)
        assert dump_graph(again) == dump_graph(g)

    def test_dump_includes_materialized_edges(self):
        g = load_graph("p = &x\nq = &y\n*q = p\n")
        solve(g)
        dumped = dump_graph(g)
        assert "y = p" in dumped
        reloaded = load_graph(dumped)
        assert reloaded.has_copy_edge(reloaded.node_id("p"), reloaded.node_id("y"))

    def test_dump_with_field_objects(self):
        g = load_graph("object s[4]\np = &s\nf = &p->2\nv = *f\n")
        solve(g)
        dumped = dump_graph(g)
        assert "v = s.2" in dumped
        assert "object s.2" not in dumped
        reloaded = load_graph(dumped)
        assert reloaded.get_node(reloaded.node_id("s.2")).kind is NodeKind.FIELD_OBJECT

    def test_reload_matches_by_name_when_ids_shift(self):
        g = load_graph("object s\nw = s.1\nv = w\n")
        again = load_graph(dump_graph(g))
        assert g.node_id("s.1") < g.node_id("w")
        assert again.node_id("s.1") > again.node_id("w")
        assert _edges_by_name(again) == _edges_by_name(g)
        assert {n.name for n in again.nodes()} == {n.name for n in g.nodes()}

    def test_header(self):
        g = load_graph("p = &x\n")
        assert dump_graph(g).startswith("# constraint graph: 2 nodes, 1 edges\n")


class TestExampleFiles:

    def test_swap_example(self):
        g = load_graph_file(EXAMPLES / "swap.cg")
        pts = solve(g)
        both = {g.node_id("x"), g.node_id("y")}
        assert pts.points_to(g.node_id("px")) == both
        assert pts.points_to(g.node_id("py")) == both

    def test_fields_example(self):
        g = load_graph_file(EXAMPLES / "fields.cg")
        pts = solve(g)
        assert pts.points_to(g.node_id("p")) == {g.node_id("n2")}
        assert pts.points_to(g.node_id("q")) == {g.node_id("w")}
        assert pts.points_to(g.node_id("n1.1")) == {g.node_id("v")}
        (anything,) = pts.points_to(g.node_id("any"))
        assert g.get_node(anything).kind is NodeKind.UNKNOWN_FIELD
