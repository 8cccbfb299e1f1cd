from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from rethink.errors import ApiError
from rethink.schemas import AnalyzeResponse, ChatResponse, HealthResponse, Subject

M = TypeVar("M", bound=BaseModel)


class RethinkClient:
    """Async HTTP client for the Rethink API."""

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "RethinkClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        r = await self._http.request(method, path, json=payload)
        if r.status_code >= 400:
            try:
                body = r.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            message = body.get("error") or f"API error {r.status_code}: {r.text[:200]}"
            raise ApiError(message, status_code=r.status_code, code=body.get("code"))
        try:
            return r.json()
        except ValueError as e:
            raise ApiError(
                f"Invalid JSON from {path}: {r.text[:200]}", status_code=r.status_code, code="BAD_RESPONSE"
            ) from e

    async def _call(self, model: type[M], method: str, path: str, payload: dict[str, Any] | None = None) -> M:
        data = await self._request(method, path, payload)
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ApiError(f"Unexpected response shape from {path}", status_code=200, code="BAD_RESPONSE") from e

    async def health(self) -> HealthResponse:
        return await self._call(HealthResponse, "GET", "/health")

    async def analyze(
        self,
        *,
        session_id: str | None,
        subject: Subject,
        full_text: str,
        new_content: str,
    ) -> AnalyzeResponse:
        payload = {
            "sessionId": session_id,
            "subject": subject.value,
            "fullText": full_text,
            "newContent": new_content,
        }
        return await self._call(AnalyzeResponse, "POST", "/analyze", payload)

    async def chat(self, *, session_id: str, message: str) -> ChatResponse:
        payload = {"sessionId": session_id, "message": message}
        return await self._call(ChatResponse, "POST", "/chat", payload)
