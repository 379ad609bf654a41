"""Response Normalizer — URL helpers shared by the provider adapters.

  - Deduplicates citation lists while keeping first-seen order
  - Recovers URLs from answer text (markdown link targets, bare URLs)
    for providers without native citations
  - Drops grounding redirect links that were never resolved
  - Extracts hostnames for web-search summaries
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

REDIRECT_SERVICE_DOMAIN = "vertexaisearch.cloud.google.com"

# Markdown-style links: [anchor text](url)
_MD_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\((https?://[^\s\)]+)\)")

# Bare URLs
_BARE_URL_PATTERN = re.compile(r"https?://[^\s\)\]\}\"'<>]+")


def dedupe_urls(urls: Iterable[str]) -> list[str]:
    """Clean and deduplicate a list of URLs, preserving first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for url in urls:
        if not isinstance(url, str):
            continue
        cleaned = url.strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


def extract_urls_from_text(text: str) -> list[str]:
    """Recover URLs from free text: markdown link targets first, then bare URLs."""
    if not text:
        return []

    found: list[str] = [match.group(2) for match in _MD_LINK_PATTERN.finditer(text)]
    for url in _BARE_URL_PATTERN.findall(text):
        found.append(url.rstrip(".,;:!?"))
    return dedupe_urls(found)


def is_redirect_url(url: str) -> bool:
    return REDIRECT_SERVICE_DOMAIN in url


def finalize_urls(urls: Iterable[str]) -> list[str]:
    """Final pass applied to every RawAnswer: dedupe and drop redirect-service links."""
    cleaned = dedupe_urls(urls)
    kept = [url for url in cleaned if not is_redirect_url(url)]
    if len(kept) != len(cleaned):
        logger.debug("Dropped %d unresolved redirect URLs", len(cleaned) - len(kept))
    return kept


def extract_domain(url: str) -> str:
    """Extract domain from URL, stripping www. prefix."""
    try:
        parsed = urlparse(url)
        domain = parsed.hostname or ""
        if domain.startswith("www."):
            domain = domain[4:]
        return domain.lower()
    except ValueError:
        return ""
