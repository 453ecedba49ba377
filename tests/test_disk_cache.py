"""Tests for the content-addressed disk cache."""

import os
from pathlib import Path

import pytest

from modgraph.disk_cache import DiskCache, default_cache_dir

KEY = "ab" + "0" * 62


def test_location_layout(tmp_path: Path) -> None:
    """Verify entries are sharded by the first two key characters."""
    cache = DiskCache(tmp_path)
    assert cache.location_for(KEY) == tmp_path.resolve() / "ab" / f"{KEY}.js"
    assert cache.url_for(KEY).startswith("file:///")
    assert cache.url_for(KEY).endswith(f"/ab/{KEY}.js")


def test_write_is_idempotent(tmp_path: Path) -> None:
    """Verify rewriting the same key leaves a single, complete entry."""
    cache = DiskCache(tmp_path)
    assert not cache.location_for(KEY).is_file()
    first = cache.write_sync(KEY, "export const a = 1;\n")
    second = cache.write_sync(KEY, "export const a = 1;\n")
    assert first == second
    assert cache.location_for(KEY).is_file()
    assert first.read_text(encoding="utf-8") == "export const a = 1;\n"
    assert os.listdir(first.parent) == [first.name]


@pytest.mark.asyncio
async def test_async_write(tmp_path: Path) -> None:
    """Verify the async write persists the entry."""
    cache = DiskCache(tmp_path, suffix=".mjs")
    target = await cache.write(KEY, "x")
    assert target.name.endswith(".mjs")
    assert target.read_text(encoding="utf-8") == "x"


def test_clear_only_removes_shards(tmp_path: Path) -> None:
    """Verify clear removes cache entries but leaves foreign files alone."""
    cache = DiskCache(tmp_path)
    cache.write_sync(KEY, "a")
    cache.write_sync("cd" + "1" * 62, "b")
    (tmp_path / "notes").mkdir()
    (tmp_path / "notes" / "keep.txt").write_text("keep", encoding="utf-8")

    assert cache.clear() == 2  # noqa: PLR2004
    assert not cache.location_for(KEY).is_file()
    assert (tmp_path / "notes" / "keep.txt").exists()
    assert DiskCache(tmp_path / "missing").clear() == 0


def test_default_cache_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Verify environment variables choose the default cache root."""
    monkeypatch.setenv("MODGRAPH_CACHE_DIR", str(tmp_path / "explicit"))
    assert default_cache_dir() == (tmp_path / "explicit").resolve()

    monkeypatch.delenv("MODGRAPH_CACHE_DIR")
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg"))
    assert default_cache_dir() == (tmp_path / "xdg" / "modgraph").resolve()
