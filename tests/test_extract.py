from __future__ import annotations

import asyncio
import re

import httpx
import pytest

from altviews.errors import InputError, UpstreamError
from altviews.extract import ArticleFetcher, html_to_text, is_valid_url

_HTML_SAMPLES = [
    "",
    "plain text without markup",
    "<p>Hello   <b>world</b></p>\n\n<p>Again</p>",
    """
    <html><head>
      <SCRIPT type="text/javascript">var x = "<p>not text</p>"; if (a < b) {}</SCRIPT>
      <style media="screen">body > p { color: red; }</style>
    </head>
    <body>
      <!-- a <comment> -->
      <h1>Headline</h1>\t\t<p>Body &amp; more &lt;tags&gt;</p>
    </body></html>
    """,
    "<div>unclosed <span class='x'",
    "a > b and c < d",
    "<p>non&nbsp;&nbsp;breaking</p>",
]


@pytest.mark.parametrize("markup", _HTML_SAMPLES)
def test_html_to_text_output_has_no_angle_brackets_or_whitespace_runs(markup):
    text = html_to_text(markup)

    assert "<" not in text
    assert ">" not in text
    assert not re.search(r"\s{2,}", text)
    assert text == text.strip()


def test_html_to_text_drops_script_and_style_blocks():
    markup = """
    <html><head><script>alert('boom')</script><Style>.x{}</Style></head>
    <body><h1>Solar farms expand</h1><p>Output doubled this year.</p></body></html>
    """

    assert html_to_text(markup) == "Solar farms expand Output doubled this year."


def test_html_to_text_returns_empty_string_for_empty_input():
    assert html_to_text("") == ""
    assert html_to_text(None) == ""


def test_is_valid_url():
    assert is_valid_url("https://example.com/news/story")
    assert is_valid_url("http://example.com")
    assert not is_valid_url("example.com/news")
    assert not is_valid_url("ftp://example.com/file")
    assert not is_valid_url("")
    assert not is_valid_url(None)


def _fetcher(handler) -> ArticleFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ArticleFetcher(timeout_seconds=5, user_agent="test-agent", http_client=client)


def test_fetch_text_extracts_plain_text_from_page():
    seen_headers: list[httpx.Headers] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_headers.append(request.headers)
        return httpx.Response(200, text="<html><body><p>Wind power   grows</p></body></html>")

    text = asyncio.run(_fetcher(handler).fetch_text("https://example.com/story"))

    assert text == "Wind power grows"
    assert seen_headers[0]["user-agent"] == "test-agent"


def test_fetch_html_converts_error_status_to_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="not here")

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(_fetcher(handler).fetch_html("https://example.com/missing"))

    assert exc_info.value.upstream_status == 404
    assert exc_info.value.upstream_body == "not here"


def test_fetch_html_converts_transport_error_to_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError, match="Failed to fetch URL"):
        asyncio.run(_fetcher(handler).fetch_html("https://example.com/story"))


def test_fetch_html_rejects_invalid_url_without_request():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, text="")

    with pytest.raises(InputError):
        asyncio.run(_fetcher(handler).fetch_html("not a url"))
    assert calls == []


def test_fetch_text_rejects_page_without_text():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html><script>var a = 1;</script></html>")

    with pytest.raises(InputError, match="no readable text"):
        asyncio.run(_fetcher(handler).fetch_text("https://example.com/empty"))
