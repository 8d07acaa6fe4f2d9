from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import anthropic
from anthropic import AsyncAnthropic

from altviews.errors import ConfigurationError, InputError, UpstreamError
from altviews.prompts import build_views_prompt

logger = logging.getLogger(__name__)


@dataclass
class LLMGenerationParams:
    model: str
    max_tokens: int = 1200
    temperature: float = 0.7
    timeout_seconds: float = 60.0


def _block_to_jsonable(block: Any) -> Any:
    dump = getattr(block, "model_dump", None)
    if callable(dump):
        return dump()
    if isinstance(block, dict):
        return block
    return {"type": getattr(block, "type", type(block).__name__)}


def extract_response_text(response: Any) -> str:
    """Concatenate text blocks of a Messages API response.

    Falls back to a JSON dump of the content blocks so the caller always has
    something to show when parsing fails.
    """
    content = getattr(response, "content", None) or []
    parts: list[str] = []
    for block in content:
        if getattr(block, "type", None) == "text":
            text = getattr(block, "text", None)
            if text:
                parts.append(text)
    if parts:
        return "".join(parts)
    return json.dumps([_block_to_jsonable(block) for block in content], default=str)


class ViewPrompter:
    """
    Sends the alternative-views prompt to Claude and returns the raw reply.

    No retry: provider failures surface immediately as
    ``UpstreamError`` with the provider status and body attached.
    """

    def __init__(
        self,
        *,
        params: LLMGenerationParams,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        view_count: int = 3,
        max_article_chars: Optional[int] = None,
        client: Optional[AsyncAnthropic] = None,
    ) -> None:
        self.params = params
        self.view_count = view_count
        self.max_article_chars = max_article_chars
        self._api_key = api_key
        self._base_url = base_url
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> AsyncAnthropic:
        if self._client is not None:
            return self._client
        if not self._api_key:
            raise ConfigurationError("View generation service", missing_setting="ANTHROPIC_API_KEY")
        self._client = AsyncAnthropic(
            api_key=self._api_key,
            base_url=self._base_url,
            timeout=self.params.timeout_seconds,
            max_retries=0,
        )
        return self._client

    async def generate_raw(self, text: str) -> str:
        if not isinstance(text, str) or not text.strip():
            raise InputError("Text is required")

        client = self._get_client()
        prompt = build_views_prompt(text, view_count=self.view_count, max_chars=self.max_article_chars)
        try:
            response = await client.messages.create(
                model=self.params.model,
                max_tokens=self.params.max_tokens,
                temperature=self.params.temperature,
                messages=[{"role": "user", "content": prompt}],
                timeout=self.params.timeout_seconds,
            )
        except anthropic.APIStatusError as exc:
            logger.error(
                "view_generation.upstream_status_error",
                extra={"model": self.params.model, "status": exc.status_code, "body": exc.body},
            )
            raise UpstreamError(
                f"View generation failed (status={exc.status_code})",
                provider="anthropic",
                upstream_status=exc.status_code,
                upstream_body=exc.body,
            ) from exc
        except anthropic.APIError as exc:
            logger.error(
                "view_generation.upstream_error",
                extra={"model": self.params.model, "error": str(exc)},
            )
            raise UpstreamError(
                "View generation failed",
                provider="anthropic",
            ) from exc

        raw = extract_response_text(response)
        logger.info(
            "view_generation.completed",
            extra={
                "model": self.params.model,
                "stop_reason": getattr(response, "stop_reason", None),
                "chars": len(raw),
            },
        )
        return raw

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.close()
