from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class Subject(str, Enum):
    writing = "writing"
    math = "math"
    science = "science"
    other = "other"


class Role(str, Enum):
    user = "user"
    assistant = "assistant"


class ChatTurn(BaseModel):
    role: Role
    content: str


# Request fields are optional at the model level so that missing or empty values
# surface as MISSING_FIELD rather than a generic validation failure.
class AnalyzeRequest(BaseModel):
    sessionId: str | None = None
    subject: str | None = None
    fullText: str | None = Field(None, description="Latest document window, used as context only")
    newContent: str | None = Field(None, description="The content unit to check for errors")


class AnalyzeResponse(BaseModel):
    sessionId: str
    hasError: bool
    location: str | None = None
    hasActiveError: bool = Field(False, description="Authoritative chat gate after this analysis")


class ChatRequest(BaseModel):
    sessionId: str | None = None
    message: str | None = None


class ChatResponse(BaseModel):
    reply: str
    hasActiveError: bool = True


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class ErrorResponse(BaseModel):
    error: str
    code: str


DEFAULT_LOCATION = "In your recent work."


class AnalysisResult(BaseModel):
    """The JSON object the error detector is asked to return."""

    hasError: bool
    internalError: str | None = None
    location: str | None = None

    @model_validator(mode="after")
    def _error_fields_together(self) -> "AnalysisResult":
        if not self.hasError:
            self.internalError = None
            self.location = None
            return self
        if not (self.internalError or "").strip():
            raise ValueError("internalError is required when hasError is true")
        if not (self.location or "").strip():
            self.location = DEFAULT_LOCATION
        return self
