# tests/test_report.py
"""
Tests for andersen.report: text and JSON rendering of points-to sets.
"""

import io
import json

import pytest

from andersen import Andersen, load_graph
from andersen.report import color_enabled, dump_result, format_text, to_json_dict


@pytest.fixture
def solved():
    graph = load_graph("p = &x\nq = p\nr = &y\n")
    andersen = Andersen(graph)
    pts = andersen.run_pointer_analysis()
    return graph, pts, andersen.stats


class _TTY(io.StringIO):
    def isatty(self):
        return True


class TestTextReport:

    def test_lines_in_id_order(self, solved):
        graph, pts, _ = solved
        assert format_text(graph, pts) == (
            "p (1) -> { x (0) }\n"
            "q (2) -> { x (0) }\n"
            "r (4) -> { y (3) }\n"
            "# 3 node(s) with points-to facts, 3 fact(s)\n"
        )

    def test_show_empty(self, solved):
        graph, pts, _ = solved
        text = format_text(graph, pts, show_empty=True)
        assert text.splitlines()[0] == "x (0) -> { }"
        assert "y (3) -> { }" in text

    def test_stats_in_summary(self, solved):
        graph, pts, stats = solved
        summary = format_text(graph, pts, stats=stats).splitlines()[-1]
        assert summary.startswith("# 3 node(s)")
        assert f"{stats.pops} pops" in summary
        assert "0 copy edges materialized" in summary

    def test_color_escapes(self, solved):
        graph, pts, _ = solved
        assert "\x1b[" in format_text(graph, pts, color=True)
        assert "\x1b[" not in format_text(graph, pts, color=False)

    def test_plain_stream_gets_no_color(self, solved):
        graph, pts, _ = solved
        out = io.StringIO()
        dump_result(graph, pts, out)
        assert "\x1b[" not in out.getvalue()


class TestColorDecision:

    def test_explicit_request_wins(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        assert color_enabled(io.StringIO(), True) is True
        assert color_enabled(_TTY(), False) is False

    def test_tty(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        assert color_enabled(_TTY()) is True
        assert color_enabled(io.StringIO()) is False

    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        assert color_enabled(_TTY()) is False


class TestJsonReport:

    def test_structure(self, solved):
        graph, pts, stats = solved
        out = io.StringIO()
        dump_result(graph, pts, out, fmt="json", stats=stats)
        data = json.loads(out.getvalue())
        assert data["nodes"] == {"p": ["x"], "q": ["x"], "r": ["y"]}
        assert data["stats"]["pops"] == stats.pops

    def test_show_empty_and_no_stats(self, solved):
        graph, pts, _ = solved
        data = to_json_dict(graph, pts, show_empty=True)
        assert data["nodes"]["x"] == []
        assert "stats" not in data

    def test_unknown_format(self, solved):
        graph, pts, _ = solved
        with pytest.raises(ValueError):
            dump_result(graph, pts, io.StringIO(), fmt="xml")
