"""
Recovery of a JSON array from free-form LLM replies.

Models often wrap otherwise valid JSON in prose, markdown fences or trailing
commentary. Each strategy below is a pure ``str -> ParseOutcome`` function;
``recover_json`` tries them in order and returns the first success. This is a
pragmatic ladder, not a relaxed-JSON parser: brackets inside prose around the
array can still defeat the boundary heuristics.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

_BRACKETED_RE = re.compile(r"\[[\s\S]*\]")
_LEADING_FENCE_RE = re.compile(r"^```[\w-]*\s*", re.MULTILINE)
_TRAILING_FENCE_RE = re.compile(r"\s*```\s*$", re.MULTILINE)
_TRAILING_COMMA_RE = re.compile(r",(\s*[\]}])")

_NOT_FOUND = "no JSON array boundaries found"


@dataclass(frozen=True)
class ParseOutcome:
    ok: bool
    value: Any = None
    strategy: str | None = None
    error: str | None = None
    attempts: list[dict[str, str]] = field(default_factory=list)

    @classmethod
    def success(cls, value: Any, strategy: str) -> "ParseOutcome":
        return cls(ok=True, value=value, strategy=strategy)

    @classmethod
    def failure(cls, error: str, strategy: str | None = None) -> "ParseOutcome":
        return cls(ok=False, error=error, strategy=strategy)


def parse_strict(text: str) -> ParseOutcome:
    try:
        return ParseOutcome.success(json.loads(text), "strict")
    except (TypeError, ValueError) as exc:
        return ParseOutcome.failure(str(exc), "strict")


def parse_bracketed(text: str) -> ParseOutcome:
    match = _BRACKETED_RE.search(text or "")
    if not match:
        return ParseOutcome.failure(_NOT_FOUND, "bracketed")
    try:
        return ParseOutcome.success(json.loads(match.group(0)), "bracketed")
    except ValueError as exc:
        return ParseOutcome.failure(str(exc), "bracketed")


def parse_stripped(text: str) -> ParseOutcome:
    raw = text or ""
    start = raw.find("[")
    end = raw.rfind("]")
    if start == -1 or end <= start:
        return ParseOutcome.failure(_NOT_FOUND, "stripped")
    candidate = raw[start : end + 1]
    candidate = _LEADING_FENCE_RE.sub("", candidate)
    candidate = _TRAILING_FENCE_RE.sub("", candidate)
    candidate = _TRAILING_COMMA_RE.sub(r"\1", candidate).strip()
    try:
        # strict=False accepts raw newlines and tabs inside string values.
        return ParseOutcome.success(json.loads(candidate, strict=False), "stripped")
    except ValueError as exc:
        return ParseOutcome.failure(str(exc), "stripped")


Strategy = Callable[[str], ParseOutcome]

DEFAULT_STRATEGIES: tuple[Strategy, ...] = (parse_strict, parse_bracketed, parse_stripped)


def recover_json(text: str | None, strategies: Sequence[Strategy] = DEFAULT_STRATEGIES) -> ParseOutcome:
    """Run the strategies in order; never raises."""
    if not isinstance(text, str) or not text.strip():
        return ParseOutcome.failure("response text is empty")

    attempts: list[dict[str, str]] = []
    for strategy in strategies:
        try:
            outcome = strategy(text)
        except Exception as exc:  # noqa: BLE001
            outcome = ParseOutcome.failure(f"{type(exc).__name__}: {exc}", getattr(strategy, "__name__", "unknown"))
        if outcome.ok:
            return outcome
        attempts.append({"strategy": outcome.strategy or "unknown", "error": outcome.error or ""})

    return ParseOutcome(
        ok=False,
        error="No valid JSON found in response",
        attempts=attempts,
    )
