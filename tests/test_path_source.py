import asyncio
import os

import pytest

from spotlight.config import SearchSettings
from spotlight.path_source import (
    FindPathSource,
    IterablePathSource,
    WalkPathSource,
    build_find_argv,
    build_path_source,
    find_available,
)


def _collect(source):
    async def run():
        return [p async for p in source]
    return asyncio.run(run())


@pytest.fixture
def tree(tmp_path):
    (tmp_path / "Documents" / "deep" / "deeper").mkdir(parents=True)
    (tmp_path / ".cache").mkdir()
    (tmp_path / "Documents" / "Report.pdf").write_text("x")
    (tmp_path / "Documents" / "notes.txt").write_text("x")
    (tmp_path / "Documents" / ".report-draft").write_text("x")
    (tmp_path / "Documents" / "deep" / "report-1.md").write_text("x")
    (tmp_path / "Documents" / "deep" / "deeper" / "report-2.md").write_text("x")
    (tmp_path / ".cache" / "report.log").write_text("x")
    (tmp_path / "reports").mkdir()
    return tmp_path


def test_build_find_argv_filters_hidden_and_escapes_query():
    argv = build_find_argv(["/home/u", "/home/u/Desktop"], 5, "a*b")
    assert argv[:3] == ["find", "/home/u", "/home/u/Desktop"]
    assert argv[argv.index("-maxdepth") + 1] == "5"
    assert argv[argv.index("-iname") + 1] == "*a\\*b*"
    assert "*/.*" in argv
    assert argv[-3:] == ["!", "-name", ".*"]


def test_walk_matches_case_insensitively_and_skips_hidden(tree):
    found = _collect(WalkPathSource([tree], 5, "report"))
    names = sorted(os.path.relpath(p, tree) for p in found)
    assert names == sorted([
        os.path.join("Documents", "Report.pdf"),
        os.path.join("Documents", "deep", "report-1.md"),
        os.path.join("Documents", "deep", "deeper", "report-2.md"),
        "reports",
    ])


def test_walk_respects_max_depth(tree):
    found = _collect(WalkPathSource([tree], 2, "report"))
    names = sorted(os.path.relpath(p, tree) for p in found)
    assert names == sorted([os.path.join("Documents", "Report.pdf"), "reports"])


def test_walk_stops_after_close(tree):
    source = WalkPathSource([tree], 5, "report")

    async def run():
        out = []
        async for p in source:
            out.append(p)
            source.close()
        return out

    assert len(asyncio.run(run())) == 1
    assert source.closed


@pytest.mark.skipif(not find_available(), reason="find(1) not available")
def test_find_source_agrees_with_walk(tree):
    via_find = set(_collect(FindPathSource([tree], 5, "report")))
    via_walk = set(_collect(WalkPathSource([tree], 5, "report")))
    assert via_find == via_walk


@pytest.mark.skipif(not find_available(), reason="find(1) not available")
def test_find_source_close_terminates_process(tree):
    source = FindPathSource([tree], 5, "report")

    async def run():
        async for _ in source:
            source.close()
        return source.closed

    assert asyncio.run(run())


def test_iterable_source_replays_until_closed():
    source = IterablePathSource(["/a", "/b", "/c"])
    assert _collect(source) == ["/a", "/b", "/c"]
    source.close()
    assert _collect(source) == []


def test_build_path_source_without_valid_roots(tmp_path):
    settings = SearchSettings(search_dirs=[tmp_path / "missing"])
    source = build_path_source("x", settings)
    assert isinstance(source, IterablePathSource)
    assert _collect(source) == []


def test_build_path_source_picks_available_producer(tmp_path):
    settings = SearchSettings(search_dirs=[tmp_path], max_depth=3)
    source = build_path_source("x", settings)
    expected = FindPathSource if find_available() else WalkPathSource
    assert isinstance(source, expected)


def test_walk_yields_in_preorder(tmp_path):
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "report-inner.txt").write_text("x")
    (tmp_path / "report-z.txt").write_text("x")
    found = _collect(WalkPathSource([tmp_path], 5, "report"))
    assert [os.path.relpath(p, tmp_path) for p in found] == [
        os.path.join("a", "report-inner.txt"),
        "report-z.txt",
    ]


def _make_non_utf8_file(directory):
    name = os.path.join(os.fsencode(directory), b"report-\xff.txt")
    try:
        with open(name, "wb") as fh:
            fh.write(b"x")
    except OSError:
        pytest.skip("filesystem rejects non-UTF-8 names")


@pytest.mark.skipif(os.name != "posix", reason="needs byte file names")
def test_walk_drops_non_utf8_names(tmp_path):
    _make_non_utf8_file(tmp_path)
    (tmp_path / "report.txt").write_text("x")
    found = _collect(WalkPathSource([tmp_path], 2, "report"))
    assert found == [str(tmp_path / "report.txt")]


@pytest.mark.skipif(not find_available(), reason="find(1) not available")
def test_find_drops_non_utf8_names(tmp_path):
    _make_non_utf8_file(tmp_path)
    (tmp_path / "report.txt").write_text("x")
    found = _collect(FindPathSource([tmp_path], 2, "report"))
    assert found == [str(tmp_path / "report.txt")]
