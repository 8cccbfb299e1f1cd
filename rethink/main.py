from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from rethink.config import ServerSettings
from rethink.errors import MalformedResponse, ProviderError, RethinkError, SessionError, ValidationError
from rethink.memory import SessionStore
from rethink.prompts import build_analyze_messages, build_chat_messages
from rethink.providers import CompletionProvider, make_provider
from rethink.schemas import (
    AnalysisResult,
    AnalyzeRequest,
    AnalyzeResponse,
    ChatRequest,
    ChatResponse,
    HealthResponse,
    Subject,
)

LOGGER = logging.getLogger(__name__)

ANALYZE_TEMPERATURE = 0.2
CHAT_TEMPERATURE = 0.7

# No Origin header, a browser extension, or the local machine.
ALLOWED_ORIGIN = re.compile(r"^(chrome-extension://[^/]+|https?://(localhost|127\.0\.0\.1|\[::1\])(:\d+)?)$")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def origin_allowed(origin: str | None) -> bool:
    return not origin or bool(ALLOWED_ORIGIN.match(origin))


def _require(value: str | None, name: str) -> str:
    if not value:
        raise ValidationError(f"Missing required field: {name}", code="MISSING_FIELD")
    return value


def _parse_subject(raw: str) -> Subject:
    try:
        return Subject(raw)
    except ValueError:
        valid = ", ".join(s.value for s in Subject)
        raise ValidationError(f"Invalid subject. Must be one of: {valid}", code="INVALID_SUBJECT") from None


def _to_result(data: dict) -> AnalysisResult:
    try:
        return AnalysisResult.model_validate(data)
    except PydanticValidationError as e:
        raise MalformedResponse(f"Analysis JSON did not match the contract: {e.error_count()} error(s)", raw=str(data)[:500]) from e


def _provider(app: FastAPI) -> CompletionProvider:
    provider = app.state.provider
    if provider is None:
        try:
            provider = make_provider(app.state.settings)
        except RuntimeError as e:
            raise ProviderError(str(e)) from e
        app.state.provider = provider
    return provider


def create_app(
    settings: ServerSettings | None = None,
    *,
    provider: CompletionProvider | None = None,
    store: SessionStore | None = None,
) -> FastAPI:
    if settings is None:
        settings = ServerSettings.from_env()

    app = FastAPI(title="Rethink API", version="0.3.0")
    app.state.settings = settings
    # Built lazily on first use so missing credentials don't break import.
    app.state.provider = provider
    if store is None:
        store = SessionStore(maxsize=settings.session_max, ttl_seconds=settings.session_ttl_seconds)
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=ALLOWED_ORIGIN.pattern,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.middleware("http")
    async def _origin_gate(request: Request, call_next):
        origin = request.headers.get("origin")
        if not origin_allowed(origin):
            LOGGER.warning("Rejected request from origin %s", origin)
            return JSONResponse(status_code=403, content={"error": "Not allowed by CORS", "code": "ORIGIN_NOT_ALLOWED"})
        return await call_next(request)

    @app.exception_handler(RethinkError)
    async def _rethink_error(request: Request, exc: RethinkError) -> JSONResponse:
        path = request.url.path
        if isinstance(exc, MalformedResponse):
            LOGGER.warning("Malformed LLM response on %s: %s | raw=%r", path, exc.message, exc.raw[:200])
        elif isinstance(exc, ProviderError):
            LOGGER.error("LLM error on %s: %s", path, exc.message)
        else:
            LOGGER.info("Rejected %s: %s (%s)", path, exc.message, exc.code)
        return JSONResponse(status_code=exc.status_code, content=exc.envelope())

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        missing = any(err.get("type") == "missing" for err in exc.errors())
        code = "MISSING_FIELD" if missing else "INVALID_FIELD"
        return JSONResponse(status_code=400, content={"error": "Invalid request body", "code": code})

    @app.get("/")
    def root() -> dict:
        return {
            "ok": True,
            "service": "rethink",
            "provider": settings.provider,
            "endpoints": ["/health", "/analyze", "/chat"],
            "docs": "/docs",
        }

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok", timestamp=_now_iso())

    @app.post("/analyze", response_model=AnalyzeResponse, response_model_exclude_none=True)
    async def analyze(req: AnalyzeRequest, request: Request) -> AnalyzeResponse:
        subject = _parse_subject(_require(req.subject, "subject"))
        full_text = _require(req.fullText, "fullText")
        new_content = _require(req.newContent, "newContent")

        store = request.app.state.store
        sid, state, created = store.resolve(req.sessionId, subject)
        async with state.lock:
            state.full_text = full_text
            provider = _provider(request.app)
            messages = build_analyze_messages(subject, full_text, new_content)
            data = await provider.complete_json(messages, temperature=ANALYZE_TEMPERATURE)
            result = _to_result(data)
            before = state.state
            after = state.apply_analysis(result)
        # A new session is only stored once its id can reach the caller.
        if created:
            store.add(sid, state)

        if before is not after:
            LOGGER.info("Session %s: %s -> %s", sid, before.value, after.value)
        return AnalyzeResponse(
            sessionId=sid,
            hasError=result.hasError,
            location=result.location if result.hasError else None,
            hasActiveError=state.has_active_error,
        )

    @app.post("/chat", response_model=ChatResponse)
    async def chat(req: ChatRequest, request: Request) -> ChatResponse:
        session_id = _require(req.sessionId, "sessionId")
        message = _require(req.message, "message")

        state = request.app.state.store.get(session_id)
        if state is None:
            raise SessionError("Session not found or expired", code="INVALID_SESSION")

        async with state.lock:
            messages = build_chat_messages(state, message)
            provider = _provider(request.app)
            reply = await provider.complete(messages, temperature=CHAT_TEMPERATURE)
            state.append_exchange(message, reply)

        return ChatResponse(reply=reply, hasActiveError=state.has_active_error)

    return app


app = create_app()
