# tests/test_reporter.py
"""
Tests for the diagnostic renderers.
"""

import io
import json

import pytest

from incodiag.diagnostic import ResolvedDiagnostic, Severity
from incodiag.reporter import ReporterStats, plain_line, render


@pytest.fixture
def grouped(tmp_path):
    src = tmp_path / "foo.go"
    src.write_text("package pkg\n\t// @inco: b != 0\n\treturn a / b\n", encoding="utf-8")
    path = str(src)
    return {
        path: [
            ResolvedDiagnostic(path, 1, "undefined: b2"),
            ResolvedDiagnostic(path, 2, "unused", severity=Severity.WARNING, column=1, code="vet"),
        ]
    }


class TestPlain:

    def test_plain_line(self):
        d = ResolvedDiagnostic("/a.go", 4, "boom")
        assert plain_line(d) == "/a.go:5: error: boom [inco]"
        d = ResolvedDiagnostic("/a.go", 4, "boom", column=0, code="x", severity=Severity.HINT)
        assert plain_line(d) == "/a.go:5:1: hint: boom [inco/x]"

    def test_render(self, grouped):
        out = io.StringIO()
        stats = render(grouped, "plain", out)
        lines = out.getvalue().splitlines()
        assert len(lines) == 2
        assert lines[0].endswith("foo.go:2: error: undefined: b2 [inco]")
        assert (stats.error, stats.warning, stats.total) == (1, 1, 2)


class TestTerminal:

    def test_includes_source_line(self, grouped):
        out = io.StringIO()
        render(grouped, "terminal", out)
        text = out.getvalue()
        assert "undefined: b2" in text
        assert "// @inco: b != 0" in text
        assert "return a / b" in text

    def test_missing_source_file(self):
        out = io.StringIO()
        render({"/no/such.go": [ResolvedDiagnostic("/no/such.go", 0, "m")]}, "terminal", out)
        assert "/no/such.go:1" in out.getvalue()


class TestStructured:

    def test_json_lines(self, grouped):
        out = io.StringIO()
        render(grouped, "json", out)
        records = [json.loads(line) for line in out.getvalue().splitlines()]
        assert [r["line"] for r in records] == [1, 2]
        assert records[1]["severity"] == "warning"
        assert records[1]["code"] == "vet"

    def test_sarif(self, grouped):
        out = io.StringIO()
        render(grouped, "sarif", out, tool_version="1.2.3")
        doc = json.loads(out.getvalue())
        assert doc["version"] == "2.1.0"
        run = doc["runs"][0]
        assert run["tool"]["driver"] == {"name": "incodiag", "version": "1.2.3"}
        first, second = run["results"]
        assert first["level"] == "error"
        assert first["ruleId"] == "inco"
        assert first["locations"][0]["physicalLocation"]["region"] == {"startLine": 2}
        assert second["ruleId"] == "vet"
        assert second["locations"][0]["physicalLocation"]["region"] == {
            "startLine": 3, "startColumn": 2}

    def test_unknown_format(self, grouped):
        with pytest.raises(ValueError, match="Unknown format"):
            render(grouped, "html", io.StringIO())


class TestReporterStats:

    def test_summary(self):
        stats = ReporterStats()
        assert stats.summary_line() == "no diagnostics"
        for sev in (Severity.ERROR, Severity.ERROR, Severity.WARNING, Severity.INFORMATION):
            stats.record(sev)
        assert stats.summary_line() == "2 errors; 1 warning; 1 info (4 total)"
