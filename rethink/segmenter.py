"""Picks the single content unit (a sentence or line) to send for analysis."""

from __future__ import annotations

import re
from dataclasses import dataclass

_BOUNDARY = re.compile(r"(?<=[.?!\n])\s+")
_TERMINATORS = (".", "?", "!", "\n")

WINDOW_CHARS = 1200
MIN_CHUNK_CHARS = 5
TAIL_CHARS = 300


def _trim(text: str) -> str:
    # Keep a trailing newline: it completes the final line.
    return (text or "").lstrip().rstrip(" \t")


@dataclass(frozen=True)
class Chunk:
    text: str
    completed: bool


def split_chunks(text: str, *, min_chars: int = MIN_CHUNK_CHARS) -> list[Chunk]:
    """Split at `.?!` or newline followed by whitespace.

    A chunk is completed when its raw form (before stripping) ends in a
    terminator or a newline, so lines of working without punctuation still count.
    """
    chunks: list[Chunk] = []
    for raw in _BOUNDARY.split(text or ""):
        stripped = raw.strip()
        if len(stripped) < min_chars:
            continue
        completed = raw.rstrip(" \t").endswith(_TERMINATORS)
        chunks.append(Chunk(stripped, completed))
    return chunks


class Segmenter:
    def __init__(
        self,
        *,
        window_chars: int = WINDOW_CHARS,
        min_chunk_chars: int = MIN_CHUNK_CHARS,
        tail_chars: int = TAIL_CHARS,
    ) -> None:
        self.window_chars = window_chars
        self.min_chunk_chars = min_chunk_chars
        self.tail_chars = tail_chars

    def window(self, text: str) -> str:
        return _trim(text)[-self.window_chars :]

    def extract(self, text: str, previous: str | None = None) -> str:
        """Return the content unit for `text`; diffs against `previous` when given."""
        text = _trim(text)
        if not text.strip():
            return ""
        chunks = split_chunks(text, min_chars=self.min_chunk_chars)

        if previous:
            changed = self._newest_unseen(chunks, previous)
            if changed is not None:
                return changed

        return self._last_completed(chunks, text)

    def _newest_unseen(self, chunks: list[Chunk], previous: str) -> str | None:
        seen = {c.text for c in split_chunks(previous.strip(), min_chars=self.min_chunk_chars)}
        for chunk in reversed(chunks):
            if chunk.completed and chunk.text not in seen:
                return chunk.text
        return None

    def _last_completed(self, chunks: list[Chunk], text: str) -> str:
        for chunk in reversed(chunks):
            if chunk.completed:
                return chunk.text
        if chunks:
            return chunks[-1].text
        return text.rstrip()[-self.tail_chars :]


def extract_new_content(text: str, previous: str | None = None) -> str:
    return Segmenter().extract(text, previous)
