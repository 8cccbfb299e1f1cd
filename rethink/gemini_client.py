from __future__ import annotations

import logging
from typing import Any

from google import genai
from google.genai import types

from rethink.config import ServerSettings
from rethink.errors import ProviderError
from rethink.providers import ChatMessages, call_with_timeout, decode_json_reply

LOGGER = logging.getLogger(__name__)

FALLBACK_MODELS = ["gemini-1.5-flash", "gemini-1.5-pro-002", "gemini-1.5-pro"]


def _is_model_not_found(err: BaseException) -> bool:
    msg = str(err)
    return (
        "NOT_FOUND" in msg
        and ("was not found" in msg or "not found" in msg or "is not found" in msg)
        and ("Publisher Model" in msg or "models/" in msg or "Call ListModels" in msg)
    )


def to_contents(messages: ChatMessages) -> tuple[str | None, list[types.Content]]:
    """Split chat turns into a system instruction and Gemini contents (assistant -> model)."""
    system_parts: list[str] = []
    contents: list[types.Content] = []
    for m in messages:
        role = m.get("role")
        text = m.get("content") or ""
        if role == "system":
            system_parts.append(text)
            continue
        contents.append(
            types.Content(role="model" if role == "assistant" else "user", parts=[types.Part(text=text)])
        )
    return ("\n\n".join(system_parts) or None), contents


class GeminiProvider:
    """
    Supports two modes:
    - Vertex AI mode (recommended on Cloud Run): GOOGLE_CLOUD_PROJECT + GOOGLE_CLOUD_LOCATION
    - API key mode (local/dev): GOOGLE_API_KEY
    """

    name = "gemini"

    def __init__(
        self,
        client: Any,
        *,
        model: str = "gemini-1.5-flash-002",
        json_mode: bool = True,
        timeout: float | None = 30.0,
    ) -> None:
        self.client = client
        self.model = model
        self.json_mode = json_mode
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: ServerSettings) -> "GeminiProvider":
        if settings.google_api_key:
            client = genai.Client(api_key=settings.google_api_key)
        elif settings.google_cloud_project:
            # Uses ADC (service account) on Cloud Run
            client = genai.Client(
                vertexai=True,
                project=settings.google_cloud_project,
                location=settings.google_cloud_location,
            )
        else:
            raise RuntimeError(
                "Missing config: set GOOGLE_API_KEY (local) or GOOGLE_CLOUD_PROJECT (+ optional GOOGLE_CLOUD_LOCATION) (Vertex/Cloud Run)."
            )
        return cls(
            client,
            model=settings.gemini_model,
            json_mode=settings.gemini_json_mode,
            timeout=settings.llm_timeout_seconds,
        )

    async def _generate(self, messages: ChatMessages, temperature: float, *, json_mode: bool) -> Any:
        system, contents = to_contents(messages)
        config = types.GenerateContentConfig(
            system_instruction=system,
            temperature=temperature,
            response_mime_type="application/json" if json_mode else None,
        )

        # Retry with fallback models if the configured model isn't available.
        candidates = [self.model] + [m for m in FALLBACK_MODELS if m != self.model]
        last_err: ProviderError | None = None
        for m in candidates:
            try:
                return await call_with_timeout(
                    "Gemini",
                    self.client.aio.models.generate_content(model=m, contents=contents, config=config),
                    self.timeout,
                )
            except ProviderError as e:
                if e.__cause__ is not None and _is_model_not_found(e.__cause__):
                    LOGGER.warning("Gemini model %s unavailable, trying next candidate", m)
                    last_err = e
                    continue
                raise
        raise ProviderError(f"All Gemini model candidates failed. Last error: {last_err}")

    async def complete(self, messages: ChatMessages, *, temperature: float) -> str:
        resp = await self._generate(messages, temperature, json_mode=False)
        return (resp.text or "").strip()

    async def complete_json(self, messages: ChatMessages, *, temperature: float) -> dict[str, Any]:
        resp = await self._generate(messages, temperature, json_mode=self.json_mode)
        parsed = getattr(resp, "parsed", None)
        if isinstance(parsed, dict):
            return parsed
        return decode_json_reply(resp.text, json_mode=self.json_mode)
