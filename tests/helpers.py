"""Test doubles shared across modules."""

from __future__ import annotations

import asyncio
from typing import Any


class StubProvider:
    """Completion provider double that replays scripted replies and records calls."""

    name = "stub"

    def __init__(self) -> None:
        self.json_replies: list[dict[str, Any] | Exception] = []
        self.text_replies: list[str | Exception] = []
        self.json_calls: list[dict[str, Any]] = []
        self.text_calls: list[dict[str, Any]] = []

    def _next(self, queue: list, default: Any) -> Any:
        item = queue.pop(0) if queue else default
        if isinstance(item, Exception):
            raise item
        return item

    async def complete_json(self, messages, *, temperature: float) -> dict[str, Any]:
        self.json_calls.append({"messages": list(messages), "temperature": temperature})
        return self._next(self.json_replies, {"hasError": False})

    async def complete(self, messages, *, temperature: float) -> str:
        self.text_calls.append({"messages": list(messages), "temperature": temperature})
        return self._next(self.text_replies, "What do you notice about that step?")


ERROR_REPLY = {
    "hasError": True,
    "internalError": "arithmetic mistake",
    "location": "On the most recent step.",
}


class SlowProvider(StubProvider):
    """Yields to the event loop mid-call and records how many calls overlap."""

    def __init__(self, delay: float = 0.02) -> None:
        super().__init__()
        self.delay = delay
        self.in_flight = 0
        self.peak = 0

    async def _overlap(self) -> None:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

    async def complete_json(self, messages, *, temperature: float) -> dict[str, Any]:
        await self._overlap()
        return await super().complete_json(messages, temperature=temperature)

    async def complete(self, messages, *, temperature: float) -> str:
        await self._overlap()
        return await super().complete(messages, temperature=temperature)
