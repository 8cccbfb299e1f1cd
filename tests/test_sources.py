from __future__ import annotations

import pytest

from rethink.sources import FileDocumentSource, MemoryDocumentSource


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_memory_source_tags_empty_text() -> None:
    source = MemoryDocumentSource()
    assert (await source.snapshot()).source == "none"
    source.text = "Some words."
    snap = await source.snapshot()
    assert (snap.text, snap.source) == ("Some words.", "memory")


@pytest.mark.asyncio
async def test_file_source_caches_within_ttl(tmp_path) -> None:
    doc = tmp_path / "essay.txt"
    doc.write_text("First draft.\n", encoding="utf-8")
    clock = FakeClock()
    source = FileDocumentSource(doc, ttl=5.0, clock=clock)

    first = await source.snapshot()
    assert (first.text, first.source) == ("First draft.\n", "file")

    doc.write_text("Second draft.", encoding="utf-8")
    clock.now = 2.0
    cached = await source.snapshot()
    assert (cached.text, cached.source) == ("First draft.\n", "cache")

    clock.now = 6.0
    assert (await source.snapshot()).text == "Second draft."


@pytest.mark.asyncio
async def test_file_source_serves_stale_text_on_read_failure(tmp_path) -> None:
    doc = tmp_path / "essay.txt"
    doc.write_text("Saved text.", encoding="utf-8")
    source = FileDocumentSource(doc, ttl=0)
    assert (await source.snapshot()).text == "Saved text."

    doc.unlink()
    snap = await source.snapshot()
    assert (snap.text, snap.source) == ("Saved text.", "cache")


@pytest.mark.asyncio
async def test_missing_file_yields_empty_snapshot(tmp_path) -> None:
    snap = await FileDocumentSource(tmp_path / "missing.txt").snapshot()
    assert (snap.text, snap.source) == ("", "none")


@pytest.mark.asyncio
async def test_file_source_keeps_the_final_newline(tmp_path) -> None:
    doc = tmp_path / "working.txt"
    doc.write_text("x = 5\n\ny = 6\n", encoding="utf-8")
    snap = await FileDocumentSource(doc).snapshot()
    assert snap.text.endswith("y = 6\n")
