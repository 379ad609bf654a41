"""Stable identifiers for brand names."""

from __future__ import annotations

import re

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_DASHES = re.compile(r"-+")


def derive_identifier(name: str) -> str:
    """Lowercase slug used to match brand names across spellings.

    "Free Mobile" → "free-mobile", "Orange S.A." → "orange-sa".
    Idempotent: derive_identifier(derive_identifier(x)) == derive_identifier(x).
    """
    slug = _DISALLOWED.sub("", (name or "").lower().strip())
    slug = _WHITESPACE.sub("-", slug)
    slug = _DASHES.sub("-", slug)
    return slug.strip("-")


def brand_key(name: str) -> str:
    """Matching key for a brand or competitor name.

    The derived identifier, or the casefolded name when the slug is empty
    (names written entirely outside a-z/0-9, e.g. "Яндекс" → "яндекс").
    """
    name = (name or "").strip()
    return derive_identifier(name) or _WHITESPACE.sub("-", name.casefold())
