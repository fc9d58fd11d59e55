# tests/test_directives.py
"""
Tests for directive parsing, anchor indices and the anchor cache.
"""

import pytest

from incodiag.directives import (
    AnchorCache,
    AnchorIndex,
    Directive,
    build_anchor_index,
    parse_directive,
    scan_directives,
)
from incodiag.errors import ReadResult


class TestParseDirective:

    def test_inco_defaults_to_panic(self):
        d = parse_directive("\t// @inco: x > 0")
        assert d == Directive("inco", "x > 0", "panic", "", inline=False)

    def test_inco_return_with_args(self):
        d = parse_directive("// @inco: err == nil, -return(0, err)")
        assert d.action == "return"
        assert d.action_args == "0, err"
        assert d.expression == "err == nil"

    def test_inline(self):
        d = parse_directive('v := f() // @inco: v != nil, -panic("nil v")')
        assert d.inline
        assert d.action == "panic"
        assert d.action_args == '"nil v"'

    def test_bare_action(self):
        assert parse_directive("// @inco: ok, -continue").action == "continue"

    def test_if_directive(self):
        d = parse_directive('// @if: debug, -log("tracing")')
        assert d.kind == "if"
        assert d.action == "log"
        assert d.action_args == '"tracing"'
        assert parse_directive("// @if: ready").action is None

    def test_not_a_directive(self):
        assert parse_directive("x := 1 // plain comment") is None
        assert parse_directive("@inco: x > 0") is None

    def test_str(self):
        assert str(parse_directive("// @inco: x > 0")) == "@inco: x > 0"
        assert str(parse_directive("// @inco: e == nil, -return(e)")) == "@inco: e == nil, -return(e)"

    def test_scan(self):
        text = "package p\n// @inco: a\nx := 1\ny := g() // @if: y, -log\n"
        found = list(scan_directives(text))
        assert [i for i, _ in found] == [1, 3]
        assert found[1][1].inline


class TestAnchorIndex:

    def test_snap_back_to_directive(self, make_source):
        index = build_anchor_index(make_source(60, directives={30}))
        assert index.snap(31) == 30

    def test_beyond_distance_keeps_none(self, make_source):
        index = build_anchor_index(make_source(120, directives={50}))
        assert index.snap(100) is None

    def test_exact_hit(self):
        assert AnchorIndex((3, 9)).snap(9) == 9

    def test_never_snaps_forward(self):
        assert AnchorIndex((10,)).snap(5) is None

    def test_distance_is_inclusive(self):
        index = AnchorIndex((0,))
        assert index.snap(30) == 0
        assert index.snap(31) is None
        assert index.snap(31, max_distance=31) == 0

    def test_zero_distance(self):
        index = AnchorIndex((4,))
        assert index.snap(5, max_distance=0) is None
        assert index.snap(4, max_distance=0) == 4

    def test_nearest_of_several(self):
        index = AnchorIndex((2, 8, 20))
        assert index.snap(10) == 8
        assert index.nearest_preceding(1) is None

    def test_build_counts_inline_and_tight_forms(self):
        text = "\n".join([
            "package p",
            "x := f() // @inco: x > 0",
            "//@if:ready",
            "@inco: not a comment",
            "s := \"// @inco: inside a string\"",
        ])
        index = build_anchor_index(text)
        # string-literal false positive is accepted
        assert index.lines == (1, 2, 4)
        assert 2 in index
        assert 3 not in index

    def test_custom_tokens(self):
        text = "// @req: a\n// @inco: b\n"
        assert build_anchor_index(text, tokens=("@req:",)).lines == (0,)


class TestAnchorCache:

    def _counting_reader(self, files):
        calls = []

        def reader(path):
            calls.append(path)
            if path in files:
                return ReadResult(path, text=files[path])
            return ReadResult(path, error=FileNotFoundError(path))

        return reader, calls

    def test_reads_once(self):
        reader, calls = self._counting_reader({"/a.go": "// @inco: x\n"})
        cache = AnchorCache(reader=reader)
        assert cache.get("/a.go").lines == (0,)
        cache.get("/a.go")
        assert calls == ["/a.go"]
        assert "/a.go" in cache

    def test_invalidate_all_rereads(self):
        files = {"/a.go": "// @inco: x\n"}
        reader, calls = self._counting_reader(files)
        cache = AnchorCache(reader=reader)
        cache.get("/a.go")
        files["/a.go"] = "x\n// @inco: x\n"
        cache.invalidate_all()
        assert len(cache) == 0
        assert cache.get("/a.go").lines == (1,)
        assert len(calls) == 2

    def test_invalidate_single_path(self):
        reader, calls = self._counting_reader({"/a.go": "", "/b.go": ""})
        cache = AnchorCache(reader=reader)
        cache.get("/a.go")
        cache.get("/b.go")
        cache.invalidate("/a.go")
        assert "/a.go" not in cache
        assert "/b.go" in cache

    def test_failure_not_cached(self):
        reader, calls = self._counting_reader({})
        cache = AnchorCache(reader=reader)
        assert cache.get("/missing.go") is None
        assert cache.get("/missing.go") is None
        assert len(calls) == 2
        assert isinstance(cache.failures["/missing.go"].error, FileNotFoundError)

    def test_reads_real_files(self, tmp_path):
        src = tmp_path / "x.go"
        src.write_text("package x\n// @inco: ok\n", encoding="utf-8")
        assert AnchorCache().get(str(src)).lines == (1,)

    @pytest.mark.parametrize("path", ["", "/definitely/not/here.go"])
    def test_unreadable_paths(self, path):
        assert AnchorCache().get(path) is None
