from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Protocol, Sequence, TypeVar

from rethink.config import ServerSettings
from rethink.errors import MalformedResponse, ProviderError
from rethink.json_extract import extract_json, parse_strict

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# [{"role": "system" | "user" | "assistant", "content": "..."}]
ChatMessages = Sequence[dict[str, str]]


class CompletionProvider(Protocol):
    name: str

    async def complete(self, messages: ChatMessages, *, temperature: float) -> str: ...

    async def complete_json(self, messages: ChatMessages, *, temperature: float) -> dict[str, Any]: ...


async def call_with_timeout(name: str, call: Awaitable[T], timeout: float | None) -> T:
    """Await an SDK call, mapping timeouts and SDK failures onto ProviderError."""
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise ProviderError(f"{name} call timed out after {timeout}s") from e
    except ProviderError:
        raise
    except Exception as e:
        raise ProviderError(f"{name} call failed: {e}") from e


def decode_json_reply(text: str | None, *, json_mode: bool) -> dict[str, Any]:
    """Native JSON mode parses strictly; free-text replies go through the fallback chain."""
    text = text or ""
    if json_mode:
        value = parse_strict(text)
        if value is None:
            raise MalformedResponse("Model did not return a JSON object in JSON mode", raw=text[:500])
        return value
    parsed = extract_json(text)
    if parsed.strategy != "strict":
        LOGGER.debug("Recovered JSON from free text via %s parse", parsed.strategy)
    return parsed.value


def make_provider(settings: ServerSettings) -> CompletionProvider:
    # Lazy imports so only the selected SDK needs credentials at startup.
    if settings.provider == "openai":
        from rethink.openai_client import OpenAIProvider

        return OpenAIProvider.from_settings(settings)
    if settings.provider == "gemini":
        from rethink.gemini_client import GeminiProvider

        return GeminiProvider.from_settings(settings)
    raise RuntimeError(f"Unknown LLM_PROVIDER {settings.provider!r}; expected 'openai' or 'gemini'.")
