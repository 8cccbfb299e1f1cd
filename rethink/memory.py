from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from cachetools import TTLCache

from rethink.errors import SessionError
from rethink.schemas import AnalysisResult, ChatTurn, Role, Subject

LOGGER = logging.getLogger(__name__)


class ErrorState(str, Enum):
    clean = "CLEAN"
    error_active = "ERROR_ACTIVE"


@dataclass
class SessionState:
    subject: Subject = Subject.other
    full_text: str = ""
    error_internal: str | None = None  # tutor-only; never returned to the client
    error_location: str | None = None
    has_active_error: bool = False
    chat_history: list[ChatTurn] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def state(self) -> ErrorState:
        return ErrorState.error_active if self.has_active_error else ErrorState.clean

    def apply_analysis(self, result: AnalysisResult) -> ErrorState:
        """Drive the error gate from an analysis outcome.

        Every detected error starts a new episode, even if the previous one was
        never resolved: the newest detection wins and the dialogue restarts.
        """
        if result.hasError:
            self.error_internal = result.internalError
            self.error_location = result.location
            self.has_active_error = True
            self.chat_history = []
        else:
            self.error_internal = None
            self.error_location = None
            self.has_active_error = False
            self.chat_history = []
        return self.state

    def require_active_error(self) -> None:
        if not self.has_active_error:
            raise SessionError(
                "No active error context for this session. Ask the student to continue writing.",
                code="NO_ACTIVE_ERROR",
            )

    def append_exchange(self, user_message: str, reply: str) -> None:
        self.require_active_error()
        self.chat_history.append(ChatTurn(role=Role.user, content=user_message))
        self.chat_history.append(ChatTurn(role=Role.assistant, content=reply))


class SessionStore:
    """Bounded session map; entries expire `ttl_seconds` after their last access."""

    def __init__(
        self,
        *,
        maxsize: int = 10_000,
        ttl_seconds: float = 60 * 60,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TTLCache[str, SessionState] = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=timer)

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._cache

    def resolve(self, session_id: str | None, subject: Subject) -> tuple[str, SessionState, bool]:
        """Look up `session_id`, or mint a fresh session without storing it.

        The flag is True for a minted session; the caller stores it with `add`.
        """
        state = self.get(session_id)
        if state is not None and session_id is not None:
            return session_id, state, False
        return str(uuid.uuid4()), SessionState(subject=subject), True

    def add(self, session_id: str, state: SessionState) -> None:
        self._cache[session_id] = state
        LOGGER.info("Created session %s (subject=%s)", session_id, state.subject.value)

    def resolve_or_create(self, session_id: str | None, subject: Subject) -> tuple[str, SessionState]:
        sid, state, created = self.resolve(session_id, subject)
        if created:
            self.add(sid, state)
        return sid, state

    def get(self, session_id: str | None) -> SessionState | None:
        if not session_id:
            return None
        state = self._cache.get(session_id)
        if state is not None:
            # Re-inserting restarts the TTL clock.
            self._cache[session_id] = state
        return state
