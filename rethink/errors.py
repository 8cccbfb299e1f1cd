from __future__ import annotations


class RethinkError(Exception):
    """Base error carrying the code and HTTP status used in the `{error, code}` envelope."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def envelope(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code}


class ValidationError(RethinkError):
    code = "MISSING_FIELD"
    status_code = 400


class SessionError(RethinkError):
    code = "INVALID_SESSION"
    status_code = 400


class ProviderError(RethinkError):
    """Upstream completion failure: transport, auth, rate limit, timeout."""

    code = "LLM_ERROR"
    status_code = 500

    def envelope(self) -> dict[str, str]:
        # Never leak provider internals to the caller.
        return {"error": "LLM service unavailable", "code": self.code}


class MalformedResponse(ProviderError):
    def __init__(self, message: str, *, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class ApiError(RethinkError):
    """Non-2xx reply from the Rethink server, decoded on the client side."""

    def __init__(self, message: str, *, status_code: int, code: str | None = None) -> None:
        super().__init__(message, code=code or "HTTP_ERROR")
        self.status_code = status_code
