"""Recovers a JSON object from free-form model text.

Strategies run in order: strict parse, first fenced code block, first
brace-delimited object. Each is pure and can be exercised on its own.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable

from rethink.errors import MalformedResponse

_FENCE = re.compile(r"```[ \t]*(?:json|JSON)?[ \t]*\n?(.*?)```", re.DOTALL)


@dataclass(frozen=True)
class ParsedJson:
    value: dict[str, Any]
    strategy: str


def _as_object(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text)
    except (TypeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def parse_strict(text: str) -> dict[str, Any] | None:
    return _as_object((text or "").strip())


def parse_fenced(text: str) -> dict[str, Any] | None:
    for match in _FENCE.finditer(text or ""):
        value = _as_object(match.group(1).strip())
        if value is not None:
            return value
    return None


def parse_braced(text: str) -> dict[str, Any] | None:
    """First balanced `{...}` span that parses, string-literal aware."""
    text = text or ""
    start = text.find("{")
    while start != -1:
        end = _matching_brace(text, start)
        if end is not None:
            value = _as_object(text[start : end + 1])
            if value is not None:
                return value
        start = text.find("{", start + 1)
    return None


def _matching_brace(text: str, start: int) -> int | None:
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


STRATEGIES: tuple[tuple[str, Callable[[str], dict[str, Any] | None]], ...] = (
    ("strict", parse_strict),
    ("fenced", parse_fenced),
    ("braced", parse_braced),
)


def extract_json(text: str) -> ParsedJson:
    for name, strategy in STRATEGIES:
        value = strategy(text)
        if value is not None:
            return ParsedJson(value=value, strategy=name)
    raise MalformedResponse("Model did not return a JSON object", raw=(text or "")[:500])
