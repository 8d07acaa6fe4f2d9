from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from altviews.errors import ConfigurationError, InputError, UpstreamError
from altviews.llm import LLMGenerationParams, ViewPrompter, extract_response_text
from altviews.prompts import build_views_prompt


class FakeMessages:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


class FakeAnthropic:
    def __init__(self, messages: FakeMessages) -> None:
        self.messages = messages


def _text_block(text: str):
    return SimpleNamespace(type="text", text=text)


def _prompter(messages: FakeMessages, **kwargs) -> ViewPrompter:
    return ViewPrompter(
        params=LLMGenerationParams(model="claude-test", max_tokens=900, temperature=0.5, timeout_seconds=12),
        api_key="test",
        client=FakeAnthropic(messages),
        **kwargs,
    )


def test_generate_raw_sends_prompt_and_joins_text_blocks():
    messages = FakeMessages(response=SimpleNamespace(content=[_text_block("[{"), _text_block("}]")], stop_reason="end_turn"))

    raw = asyncio.run(_prompter(messages).generate_raw("Example article about renewable energy."))

    assert raw == "[{}]"
    call = messages.calls[0]
    assert call["model"] == "claude-test"
    assert call["max_tokens"] == 900
    assert call["temperature"] == 0.5
    assert call["timeout"] == 12
    prompt = call["messages"][0]["content"]
    assert call["messages"][0]["role"] == "user"
    assert prompt.endswith("Source Text: Example article about renewable energy.")
    assert "exactly 3 view objects" in prompt


def test_generate_raw_truncates_long_articles():
    messages = FakeMessages(response=SimpleNamespace(content=[_text_block("[]")]))

    asyncio.run(_prompter(messages, max_article_chars=10).generate_raw("0123456789abcdef"))

    assert messages.calls[0]["messages"][0]["content"].endswith("Source Text: 0123456789")


def test_extract_response_text_falls_back_to_block_dump():
    response = SimpleNamespace(content=[SimpleNamespace(type="tool_use")])

    assert json.loads(extract_response_text(response)) == [{"type": "tool_use"}]


def test_provider_status_error_becomes_upstream_error():
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(529, request=request, json={"type": "error", "error": {"type": "overloaded_error"}})
    error = anthropic.APIStatusError(
        "Overloaded",
        response=response,
        body={"type": "error", "error": {"type": "overloaded_error"}},
    )
    messages = FakeMessages(error=error)

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(_prompter(messages).generate_raw("article"))

    assert exc_info.value.upstream_status == 529
    assert exc_info.value.upstream_body == {"type": "error", "error": {"type": "overloaded_error"}}
    assert len(messages.calls) == 1


def test_connection_error_becomes_upstream_error():
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    messages = FakeMessages(error=anthropic.APIConnectionError(request=request))

    with pytest.raises(UpstreamError):
        asyncio.run(_prompter(messages).generate_raw("article"))


def test_missing_api_key_is_a_configuration_error():
    prompter = ViewPrompter(params=LLMGenerationParams(model="claude-test"), api_key=None)

    with pytest.raises(ConfigurationError) as exc_info:
        asyncio.run(prompter.generate_raw("article"))

    assert exc_info.value.missing_setting == "ANTHROPIC_API_KEY"
    assert str(exc_info.value) == "View generation service is not configured"


def test_blank_text_is_an_input_error():
    with pytest.raises(InputError):
        asyncio.run(_prompter(FakeMessages()).generate_raw("  "))


def test_build_views_prompt_uses_requested_count():
    prompt = build_views_prompt("Text", view_count=4)

    assert prompt.startswith("Generate four radically different")
    assert "exactly 4 view objects" in prompt


def test_upstream_error_message_does_not_repeat_provider_body():
    body = {"type": "error", "error": {"type": "permission_error", "message": "key sk-ant-123 revoked"}}
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    error = anthropic.PermissionDeniedError(
        f"Error code: 403 - {body}",
        response=httpx.Response(403, request=request, json=body),
        body=body,
    )

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(_prompter(FakeMessages(error=error)).generate_raw("article"))

    assert exc_info.value.message == "View generation failed (status=403)"
    assert exc_info.value.upstream_body == body
    assert exc_info.value.public_payload() == {"error": "View generation failed (status=403)"}
