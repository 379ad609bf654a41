"""Tests for URL normalization and grounding redirect resolution."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from llm_visibility.gateway.normalizer import (
    dedupe_urls,
    extract_domain,
    extract_urls_from_text,
    finalize_urls,
)
from llm_visibility.gateway.redirect_resolver import RedirectResolver, needs_resolution, url_from_title

REDIRECT = "https://vertexaisearch.cloud.google.com/grounding-api-redirect/AbC123xyz"


def _head_response(final_url: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("HEAD", final_url))


def _mock_client(mock_client_cls, head_result=None, head_error=None):
    mock_client = AsyncMock()
    if head_error is not None:
        mock_client.head.side_effect = head_error
    else:
        mock_client.head.return_value = head_result
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=None)
    mock_client_cls.return_value = mock_client
    return mock_client


# ==========================================================================
# Test: Normalizer
# ==========================================================================


class TestNormalizer:
    def test_dedupe_keeps_first_seen_order(self):
        urls = ["https://b.com", "https://a.com", " https://b.com ", "", None, "https://c.com"]
        assert dedupe_urls(urls) == ["https://b.com", "https://a.com", "https://c.com"]

    def test_extract_urls_markdown_first(self):
        text = "See https://bare.com/page. Also [Acme](https://acme.com/about) and https://acme.com/about"
        assert extract_urls_from_text(text) == ["https://acme.com/about", "https://bare.com/page"]

    def test_extract_urls_strips_trailing_punctuation(self):
        assert extract_urls_from_text("Visit https://example.com/x, or https://example.org!") == [
            "https://example.com/x",
            "https://example.org",
        ]

    def test_extract_urls_empty(self):
        assert extract_urls_from_text("") == []
        assert extract_urls_from_text("no links here") == []

    def test_finalize_drops_redirect_links(self):
        assert finalize_urls([REDIRECT, "https://acme.com", "https://acme.com"]) == ["https://acme.com"]

    @pytest.mark.parametrize(
        "url,domain",
        [
            ("https://www.acme.com/path", "acme.com"),
            ("http://News.Example.org", "news.example.org"),
            ("not a url", ""),
        ],
    )
    def test_extract_domain(self, url, domain):
        assert extract_domain(url) == domain


# ==========================================================================
# Test: Redirect Resolver
# ==========================================================================


class TestUrlFromTitle:
    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Acme Corp (acme.com)", "https://acme.com"),
            ("acme.com", "https://acme.com"),
            ("www.globex.co.uk - Home", "https://globex.co.uk"),
            ("https://initech.io/blog", "https://initech.io"),
            ("Industry report 2025", ""),
            ("", ""),
            (None, ""),
        ],
    )
    def test_title_cases(self, title, expected):
        assert url_from_title(title) == expected


class TestRedirectResolver:
    def test_needs_resolution(self):
        assert needs_resolution(REDIRECT)
        assert not needs_resolution("https://acme.com")

    @pytest.mark.asyncio
    async def test_non_redirect_unchanged(self):
        resolver = RedirectResolver()
        with patch("llm_visibility.gateway.redirect_resolver.httpx.AsyncClient") as mock_client_cls:
            result = await resolver.resolve("https://acme.com/page", "Acme")

        assert result == "https://acme.com/page"
        mock_client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_redirect_followed(self):
        resolver = RedirectResolver(timeout=5.0, max_hops=5)
        with patch("llm_visibility.gateway.redirect_resolver.httpx.AsyncClient") as mock_client_cls:
            mock_client = _mock_client(mock_client_cls, head_result=_head_response("https://acme.com/pricing"))
            result = await resolver.resolve(REDIRECT, "Acme Corp (acme.com)")

        assert result == "https://acme.com/pricing"
        mock_client.head.assert_awaited_once_with(REDIRECT)
        _, kwargs = mock_client_cls.call_args
        assert kwargs["follow_redirects"] is True
        assert kwargs["max_redirects"] == 5
        assert kwargs["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_unreachable_falls_back_to_title(self):
        resolver = RedirectResolver()
        with patch("llm_visibility.gateway.redirect_resolver.httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, head_error=httpx.ConnectError("unreachable"))
            result = await resolver.resolve(REDIRECT, "Acme Corp (acme.com)")

        assert result == "https://acme.com"

    @pytest.mark.asyncio
    async def test_unreachable_without_title_drops(self):
        resolver = RedirectResolver()
        with patch("llm_visibility.gateway.redirect_resolver.httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, head_error=httpx.ConnectTimeout("timed out"))
            result = await resolver.resolve(REDIRECT)

        assert result == ""

    @pytest.mark.asyncio
    async def test_final_url_still_on_redirect_service(self):
        resolver = RedirectResolver()
        with patch("llm_visibility.gateway.redirect_resolver.httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, head_result=_head_response(REDIRECT))
            result = await resolver.resolve(REDIRECT, "globex.com")

        assert result == "https://globex.com"

    @pytest.mark.asyncio
    async def test_error_status_uses_title(self):
        resolver = RedirectResolver()
        with patch("llm_visibility.gateway.redirect_resolver.httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, head_result=_head_response("https://acme.com/gone", status_code=404))
            result = await resolver.resolve(REDIRECT, "Some headline without a domain")

        assert result == ""

    @pytest.mark.asyncio
    async def test_too_many_redirects(self):
        resolver = RedirectResolver(max_hops=1)
        with patch("llm_visibility.gateway.redirect_resolver.httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, head_error=httpx.TooManyRedirects("loop"))
            result = await resolver.resolve(REDIRECT, "initech.io")

        assert result == "https://initech.io"
