from __future__ import annotations

import pytest

from rethink.errors import MalformedResponse, ProviderError
from rethink.json_extract import extract_json, parse_braced, parse_fenced, parse_strict


def test_strict_parse() -> None:
    assert parse_strict('  {"hasError": false}  ') == {"hasError": False}
    assert parse_strict("[1, 2]") is None
    assert parse_strict("Sure! {}") is None


def test_fenced_parse() -> None:
    text = 'Here you go:\n```json\n{"hasError": true, "internalError": "x", "location": "y"}\n```\nThanks'
    assert parse_fenced(text) == {"hasError": True, "internalError": "x", "location": "y"}
    assert parse_fenced("```\n{\"a\": 1}\n```") == {"a": 1}
    assert parse_fenced("no fences here") is None


def test_fenced_parse_skips_broken_blocks() -> None:
    text = "```\nnot json\n```\n```json\n{\"ok\": 1}\n```"
    assert parse_fenced(text) == {"ok": 1}


def test_braced_parse_with_prose() -> None:
    text = 'The result is {"hasError": false} as requested.'
    assert parse_braced(text) == {"hasError": False}


def test_braced_parse_handles_braces_inside_strings() -> None:
    text = 'Result: {"hasError": true, "internalError": "set {1, 2} is wrong", "location": "In your last line."} done'
    assert parse_braced(text)["internalError"] == "set {1, 2} is wrong"


def test_braced_parse_skips_unparseable_spans() -> None:
    assert parse_braced('{not json} then {"a": 2}') == {"a": 2}
    assert parse_braced("{ unterminated") is None


@pytest.mark.parametrize(
    "text, strategy",
    [
        ('{"hasError": false}', "strict"),
        ('```json\n{"hasError": false}\n```', "fenced"),
        ('Answer: {"hasError": false}', "braced"),
    ],
)
def test_extract_reports_the_strategy_used(text: str, strategy: str) -> None:
    parsed = extract_json(text)
    assert parsed.value == {"hasError": False}
    assert parsed.strategy == strategy


def test_extract_raises_malformed_response() -> None:
    with pytest.raises(MalformedResponse) as exc:
        extract_json("I could not find any errors.")
    assert isinstance(exc.value, ProviderError)
    assert exc.value.code == "LLM_ERROR"
    assert exc.value.raw == "I could not find any errors."
