"""Redirect Resolver — turns search-grounding redirect links into real URLs.

Grounded answers cite sources through an indirection service
(vertexaisearch.cloud.google.com/grounding-api-redirect/...). Those links
must never reach the consulted-URL list: they are either resolved to the
destination page, rebuilt from the citation title, or dropped ("").
"""

from __future__ import annotations

import logging
import re

import httpx

from llm_visibility.core.metrics import REDIRECT_RESOLUTIONS
from llm_visibility.gateway.normalizer import REDIRECT_SERVICE_DOMAIN

logger = logging.getLogger(__name__)

REDIRECT_PATH_MARKER = f"{REDIRECT_SERVICE_DOMAIN}/grounding-api-redirect/"

DEFAULT_TIMEOUT = 5.0  # seconds
DEFAULT_MAX_HOPS = 5

# Hostname-shaped token inside a citation title, e.g. "Acme Corp (acme.com)"
_TITLE_DOMAIN_PATTERN = re.compile(
    r"(?:https?://)?(?:www\.)?((?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z]{2,})",
    re.IGNORECASE,
)


def needs_resolution(url: str) -> bool:
    return REDIRECT_PATH_MARKER in url


def url_from_title(title: str | None) -> str:
    """Build a destination URL from a citation title, or "" if it has no domain."""
    if not title:
        return ""
    title = title.strip()

    match = _TITLE_DOMAIN_PATTERN.search(title)
    if match:
        return f"https://{match.group(1)}"

    # Title itself looks like a bare domain
    if "." in title and " " not in title:
        return title if title.startswith("http") else f"https://{title}"

    return ""


class RedirectResolver:
    """Resolves grounding redirect URLs with a bounded HEAD request."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, max_hops: int = DEFAULT_MAX_HOPS):
        self.timeout = timeout
        self.max_hops = max_hops

    async def resolve(self, url: str, title: str | None = None) -> str:
        """Return the destination URL, a title-derived URL, or "" (drop the citation)."""
        if not needs_resolution(url):
            return url

        final_url = await self._follow(url)
        if final_url and final_url != url and REDIRECT_SERVICE_DOMAIN not in final_url:
            logger.debug("Resolved redirect URL: %s -> %s", url, final_url)
            REDIRECT_RESOLUTIONS.labels(outcome="resolved").inc()
            return final_url

        constructed = url_from_title(title)
        if constructed:
            logger.debug("Constructed URL from title: %s -> %s", title, constructed)
            REDIRECT_RESOLUTIONS.labels(outcome="title").inc()
            return constructed

        logger.debug("Could not resolve redirect URL and no valid domain in title: %s", url)
        REDIRECT_RESOLUTIONS.labels(outcome="dropped").inc()
        return ""

    async def _follow(self, url: str) -> str:
        """HEAD the redirect link and return the final URL, or "" on any failure."""
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                max_redirects=self.max_hops,
            ) as client:
                resp = await client.head(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("Failed to resolve redirect URL %s: %s", url, e)
            return ""

        if resp.status_code >= 400:
            logger.debug("Redirect URL %s answered %d", url, resp.status_code)
            return ""
        return str(resp.url)
