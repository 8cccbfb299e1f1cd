"""Editor-side analysis loop: debounce, segment, gate, call /analyze, track the error gate."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import httpx

from rethink.client import RethinkClient
from rethink.config import ClientSettings
from rethink.errors import ApiError, SessionError
from rethink.guard import DispatchGuard, Verdict
from rethink.scheduler import TriggerScheduler
from rethink.schemas import DEFAULT_LOCATION, AnalyzeResponse, Subject
from rethink.segmenter import Segmenter
from rethink.sources import DocumentSource

LOGGER = logging.getLogger(__name__)

_MATH = re.compile(r"[=+\-*/^√∫Σπ]|(\d+\s*[+\-*/]\s*\d+)")
_WRITING = re.compile(r"[a-zA-Z]{4,}\s+[a-zA-Z]{4,}")


def detect_subject(text: str) -> Subject:
    if _MATH.search(text):
        return Subject.math
    if _WRITING.search(text):
        return Subject.writing
    return Subject.other


class StatusKind(str, Enum):
    keep_writing = "keep_writing"
    analyzing = "analyzing"
    issue = "issue"
    still_present = "still_present"
    clean = "clean"
    failed = "failed"


@dataclass(frozen=True)
class PipelineStatus:
    kind: StatusKind
    location: str | None = None
    message: str | None = None


class AnalysisPipeline:
    def __init__(
        self,
        source: DocumentSource,
        client: RethinkClient,
        *,
        settings: ClientSettings | None = None,
        subject: Subject | None = None,
        on_status: Callable[[PipelineStatus], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        settings = settings or ClientSettings()
        self.source = source
        self.client = client
        self.subject = subject
        self.on_status = on_status
        self.enabled = True
        self.segmenter = Segmenter(window_chars=settings.window_chars)
        self.guard = DispatchGuard(min_chars=settings.min_chars, cooldown=settings.cooldown_seconds, clock=clock)
        self.scheduler = TriggerScheduler(settings.pause_seconds, self._scheduled_analyze)

        self.session_id: str | None = None
        self.active_error: str | None = None  # mirrors the server gate
        self.last_window: str | None = None  # window of the last dispatched analysis
        self._dispatched = 0
        self._applied = 0

    def _emit(self, kind: StatusKind, *, location: str | None = None, message: str | None = None) -> None:
        status = PipelineStatus(kind, location=location, message=message)
        LOGGER.debug("status=%s location=%s", kind.value, location)
        if self.on_status is not None:
            self.on_status(status)

    def on_edit(self) -> None:
        if self.active_error:
            self._emit(StatusKind.still_present, location=self.active_error)
        self.scheduler.poke()

    async def _scheduled_analyze(self) -> None:
        await self.analyze_now()

    async def analyze_now(self) -> AnalyzeResponse | None:
        """One analysis attempt against the current state; returns the response if a call was made."""
        if not self.enabled:
            return None

        snap = await self.source.snapshot()
        trimmed = snap.text.strip()
        full_text = self.segmenter.window(snap.text)
        unit = self.segmenter.extract(full_text, self.last_window)
        verdict = self.guard.admit(trimmed, unit)
        LOGGER.info(
            "analyze | source=%s len=%d verdict=%s activeError=%s",
            snap.source,
            len(trimmed),
            verdict.value,
            self.active_error,
        )

        if verdict is Verdict.too_short:
            self._emit(StatusKind.keep_writing, message="Keep writing; checks start once there is more content.")
            return None
        if not verdict.accepted:
            # Rate limiting must never hide an existing error.
            if self.active_error:
                self._emit(StatusKind.issue, location=self.active_error)
            return None

        self.last_window = full_text
        self._dispatched += 1
        seq = self._dispatched
        subject = self.subject or detect_subject(unit)
        self._emit(StatusKind.analyzing)
        LOGGER.debug("-> /analyze #%d subject=%s unit=%r", seq, subject.value, unit)

        try:
            out = await self.client.analyze(
                session_id=self.session_id,
                subject=subject,
                full_text=full_text,
                new_content=unit,
            )
        except (ApiError, httpx.HTTPError) as e:
            # Let the next debounce cycle retry this unit once the cooldown passes.
            self.guard.last_sent_text = ""
            LOGGER.warning("/analyze #%d failed: %s", seq, e)
            self._emit(StatusKind.failed, message=str(e))
            return None

        self._apply(seq, out)
        return out

    def _apply(self, seq: int, out: AnalyzeResponse) -> None:
        # Responses apply in arrival order; a slow older reply can overwrite a newer one.
        if seq < self._applied:
            LOGGER.info("/analyze #%d arrived after #%d; applying anyway", seq, self._applied)
        self._applied = max(self._applied, seq)
        self.session_id = out.sessionId

        if out.hasActiveError:
            self.active_error = out.location or DEFAULT_LOCATION
            self._emit(StatusKind.issue, location=self.active_error)
        else:
            self.active_error = None
            self._emit(StatusKind.clean)

    async def ask(self, message: str) -> str:
        """Send one tutoring turn for the current error episode."""
        if not self.session_id:
            raise SessionError("No session yet; analyze some work first", code="INVALID_SESSION")
        try:
            out = await self.client.chat(session_id=self.session_id, message=message)
        except ApiError as e:
            if e.code == "INVALID_SESSION":
                self.session_id = None
                self.active_error = None
            elif e.code == "NO_ACTIVE_ERROR":
                self.active_error = None
            raise
        if not out.hasActiveError:
            self.active_error = None
        return out.reply

    def close(self) -> None:
        self.scheduler.cancel()
