from __future__ import annotations

import html
import logging
import re
from urllib.parse import urlparse

import httpx

from altviews.errors import InputError, UpstreamError

logger = logging.getLogger(__name__)

_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_STRAY_ANGLE_RE = re.compile(r"[<>]")
_WHITESPACE_RE = re.compile(r"\s+")

_BODY_EXCERPT_CHARS = 500


def html_to_text(markup: str | None) -> str:
    """
    Best-effort lexical conversion of an HTML page to plain text.

    Drops script/style blocks and comments, strips every remaining tag, decodes
    entities and collapses whitespace. This is not an HTML parser: unclosed
    tags or CDATA sections can leak fragments into the output.
    """
    if not markup:
        return ""
    text = _SCRIPT_RE.sub(" ", markup)
    text = _STYLE_RE.sub(" ", text)
    text = _COMMENT_RE.sub(" ", text)
    text = _TAG_RE.sub(" ", text)
    text = html.unescape(text)
    # Leftovers from malformed markup, or decoded &lt; / &gt;.
    text = _STRAY_ANGLE_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def is_valid_url(url: str | None) -> bool:
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


class ArticleFetcher:
    """Downloads article pages and reduces them to plain text."""

    def __init__(
        self,
        *,
        timeout_seconds: float,
        user_agent: str,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True)
        self._timeout = timeout_seconds
        self._user_agent = user_agent

    async def fetch_html(self, url: str) -> str:
        if not is_valid_url(url):
            raise InputError("Please provide a valid http(s) URL")
        target = url.strip()
        headers = {
            "User-Agent": self._user_agent,
            "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
        }
        try:
            response = await self._client.get(
                target,
                headers=headers,
                timeout=self._timeout,
                follow_redirects=True,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            body = exc.response.text[:_BODY_EXCERPT_CHARS]
            logger.warning(
                "article_fetch.http_error",
                extra={"url": target, "status": status, "body": body},
            )
            raise UpstreamError(
                f"Failed to fetch URL (status={status})",
                provider="article",
                upstream_status=status,
                upstream_body=body,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("article_fetch.transport_error", extra={"url": target, "error": str(exc)})
            raise UpstreamError(
                f"Failed to fetch URL: {exc}",
                provider="article",
            ) from exc
        return response.text

    async def fetch_text(self, url: str) -> str:
        text = html_to_text(await self.fetch_html(url))
        if not text:
            raise InputError("The page at this URL has no readable text")
        logger.info("article_fetch.extracted", extra={"url": url, "chars": len(text)})
        return text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
