from __future__ import annotations

import json

from altviews.json_recovery import (
    ParseOutcome,
    parse_bracketed,
    parse_strict,
    parse_stripped,
    recover_json,
)

_ARRAY = '[{"id":1,"title":"A","content":"B","imageGenerationPrompt":"C"}]'


def test_recover_json_accepts_plain_array_with_strict_strategy():
    outcome = recover_json(_ARRAY)

    assert outcome.ok
    assert outcome.strategy == "strict"
    assert outcome.value == json.loads(_ARRAY)


def test_recover_json_extracts_array_wrapped_in_prose():
    reply = f"Here is the result:\n{_ARRAY}\nThanks"

    outcome = recover_json(reply)

    assert outcome.ok
    assert outcome.strategy == "bracketed"
    assert outcome.value == json.loads(_ARRAY)


def test_recover_json_falls_back_to_sanitized_parse():
    reply = (
        "```json\n"
        '[\n  {"id": 1, "title": "A", "content": "line one\nline two",},\n]\n'
        "```\nLet me know if you need more."
    )

    outcome = recover_json(reply)

    assert outcome.ok
    assert outcome.strategy == "stripped"
    assert outcome.value == [{"id": 1, "title": "A", "content": "line one\nline two"}]


def test_recover_json_reports_failure_without_brackets():
    outcome = recover_json("I could not produce any interpretations for this article.")

    assert isinstance(outcome, ParseOutcome)
    assert not outcome.ok
    assert outcome.error == "No valid JSON found in response"
    assert [attempt["strategy"] for attempt in outcome.attempts] == ["strict", "bracketed", "stripped"]


def test_recover_json_reports_failure_for_unbalanced_array():
    outcome = recover_json('Sure: [{"id": 1, "title": "broken"')

    assert not outcome.ok


def test_recover_json_handles_empty_and_non_string_input():
    assert not recover_json("").ok
    assert not recover_json("   ").ok
    assert not recover_json(None).ok


def test_recover_json_survives_a_raising_strategy():
    def explode(text: str) -> ParseOutcome:
        raise RuntimeError("boom")

    outcome = recover_json(_ARRAY, strategies=(explode, parse_strict))

    assert outcome.ok
    assert outcome.strategy == "strict"


def test_strategies_are_independently_usable():
    assert parse_strict("[1, 2]").value == [1, 2]
    assert not parse_strict("x [1, 2] y").ok
    assert parse_bracketed("x [1, 2] y").value == [1, 2]
    assert not parse_bracketed("no array").ok
    assert parse_stripped("x [1, 2,] y").value == [1, 2]
    assert not parse_stripped("] backwards [").ok
