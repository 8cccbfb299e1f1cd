from __future__ import annotations

from typing import Any, cast

from openai import AsyncOpenAI

from rethink.config import ServerSettings
from rethink.errors import MalformedResponse
from rethink.providers import ChatMessages, call_with_timeout, decode_json_reply


class OpenAIProvider:
    """Chat completions against OpenAI or any OpenAI-compatible endpoint.

    JSON mode sends `response_format={"type": "json_object"}`; turn it off for
    compatible servers that only return free text.
    """

    name = "openai"

    def __init__(
        self,
        client: Any,
        *,
        model: str = "gpt-4o-mini",
        json_mode: bool = True,
        timeout: float | None = 30.0,
    ) -> None:
        self.client = client
        self.model = model
        self.json_mode = json_mode
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: ServerSettings) -> "OpenAIProvider":
        if not settings.openai_api_key:
            raise RuntimeError("Missing config: set OPENAI_API_KEY (or LLM_PROVIDER=gemini).")
        client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.llm_timeout_seconds,
        )
        return cls(
            client,
            model=settings.openai_model,
            json_mode=settings.openai_json_mode,
            timeout=settings.llm_timeout_seconds,
        )

    async def _create(self, messages: ChatMessages, temperature: float, **extra: Any) -> str:
        completion = await call_with_timeout(
            "OpenAI",
            self.client.chat.completions.create(
                model=self.model,
                messages=cast(Any, list(messages)),
                temperature=temperature,
                **extra,
            ),
            self.timeout,
        )
        try:
            content = completion.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise MalformedResponse("OpenAI completion had no message content") from e
        return content or ""

    async def complete(self, messages: ChatMessages, *, temperature: float) -> str:
        return await self._create(messages, temperature)

    async def complete_json(self, messages: ChatMessages, *, temperature: float) -> dict[str, Any]:
        extra: dict[str, Any] = {}
        if self.json_mode:
            extra["response_format"] = {"type": "json_object"}
        text = await self._create(messages, temperature, **extra)
        return decode_json_reply(text, json_mode=self.json_mode)
