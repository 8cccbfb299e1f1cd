from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentSnapshot:
    text: str
    source: str


class DocumentSource(Protocol):
    async def snapshot(self) -> DocumentSnapshot: ...


class MemoryDocumentSource:
    def __init__(self, text: str = "") -> None:
        self.text = text

    async def snapshot(self) -> DocumentSnapshot:
        return DocumentSnapshot(self.text, "memory" if self.text else "none")


class FileDocumentSource:
    """Reads a document from disk, re-reading at most once per `ttl` seconds.

    On a read failure the last good text is returned, possibly stale.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        ttl: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.path = Path(path)
        self.ttl = ttl
        self._clock = clock
        self._cached = ""
        self._read_at: float | None = None

    def invalidate(self) -> None:
        self._read_at = None

    async def snapshot(self) -> DocumentSnapshot:
        now = self._clock()
        if self._read_at is not None and self._cached and now - self._read_at < self.ttl:
            return DocumentSnapshot(self._cached, "cache")
        try:
            raw = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        except OSError as e:
            LOGGER.info("Read of %s failed: %s", self.path, e)
            return DocumentSnapshot(self._cached, "cache" if self._cached else "none")
        self._cached = raw if raw.strip() else ""
        self._read_at = now
        LOGGER.debug("Read %s: %d chars", self.path, len(self._cached))
        return DocumentSnapshot(self._cached, "file" if self._cached else "none")
