"""Competitor Discovery — fill an empty competitor list with a judge call.

Perplexity is preferred because its answers are grounded in a live web
search; OpenAI is the fallback. Both failing yields an empty list.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from llm_visibility.analysis.identifiers import brand_key
from llm_visibility.analysis.json_repair import parse_json_object
from llm_visibility.analysis.judge import OPENAI_CHAT_URL, PERPLEXITY_CHAT_URL, JudgeClient
from llm_visibility.core.exceptions import JudgeError

logger = logging.getLogger(__name__)

MAX_COMPETITORS = 5
DISCOVERY_TEMPERATURE = 0.3
DISCOVERY_MAX_TOKENS = 500

DISCOVERY_SYSTEM_PROMPT = """\
You are a competitive intelligence analyst specializing in identifying direct competitors of companies.
You have access to web search capability. Your task is to search the web for competitive information
and identify actual company names that are direct competitors to the target company."""

_DISCOVERY_USER_TEMPLATE = """\
## GOAL:
I need to identify the main competitors for "{brand}", a company in the {market} market (website: {website}).

IMPORTANT: You have the capability to search the web. First, search the web for up-to-date information \
about this company's competitors.
Look for industry reports, market analysis, business directories, and comparison sites.

## INSTRUCTIONS:
Based on your web search, please identify 3-5 direct competitors of {brand}.
Return the biggest competitors (per revenues and/or market share, traffic, etc.) in order of importance.
These should be actual company names that compete in the same market space, not generic categories.

## OUTPUT LANGUAGE:
**Output language MUST BE {language}**

## OUTPUT:
Return your analysis as a valid JSON object with the following structure:
{{
  "competitors": ["Competitor1", "Competitor2", "Competitor3", "Competitor4", "Competitor5"]
}}"""


def build_discovery_prompt(brand: str, website: str, market: str, language: str) -> tuple[str, str]:
    user_prompt = _DISCOVERY_USER_TEMPLATE.format(
        brand=brand,
        website=website or "unknown",
        market=market or "global",
        language=language or "English",
    )
    return DISCOVERY_SYSTEM_PROMPT, user_prompt


def clean_competitors(names: Sequence, brand: str = "") -> list[str]:
    """Drop blanks and the brand itself, merge by identifier, keep at most five."""
    brand_id = brand_key(brand)
    seen: set[str] = set()
    cleaned: list[str] = []
    for name in names:
        if not isinstance(name, str):
            continue
        name = name.strip()
        identifier = brand_key(name)
        if not identifier or identifier == brand_id or identifier in seen:
            continue
        seen.add(identifier)
        cleaned.append(name)
    return cleaned[:MAX_COMPETITORS]


def parse_discovery_output(raw: str) -> list[str]:
    data = parse_json_object(raw)
    competitors = data.get("competitors")
    if not isinstance(competitors, list):
        raise ValueError("judge output has no competitors list")
    return competitors


class CompetitorDiscovery:
    """Ordered list of discovery clients; first usable answer wins."""

    def __init__(self, clients: Sequence[JudgeClient]):
        self.clients = list(clients)

    @classmethod
    def from_api_keys(cls, openai_api_key: str = "", perplexity_api_key: str = "") -> CompetitorDiscovery:
        clients = []
        if perplexity_api_key:
            clients.append(
                JudgeClient(
                    api_key=perplexity_api_key,
                    model="sonar-pro",
                    temperature=DISCOVERY_TEMPERATURE,
                    max_tokens=DISCOVERY_MAX_TOKENS,
                    timeout=90,
                    api_url=PERPLEXITY_CHAT_URL,
                )
            )
        if openai_api_key:
            clients.append(
                JudgeClient(
                    api_key=openai_api_key,
                    model="gpt-4o",
                    temperature=DISCOVERY_TEMPERATURE,
                    max_tokens=DISCOVERY_MAX_TOKENS,
                    api_url=OPENAI_CHAT_URL,
                )
            )
        return cls(clients)

    async def discover(
        self,
        brand: str,
        website: str,
        market: str,
        language: str = "English",
    ) -> list[str]:
        """Never raises; returns [] when no client produces a usable list."""
        system_prompt, user_prompt = build_discovery_prompt(brand, website, market, language)

        for client in self.clients:
            logger.info("Discovering competitors for %s using %s", brand, client.model)
            try:
                raw = await client.complete(system_prompt, user_prompt, purpose="discovery")
                competitors = clean_competitors(parse_discovery_output(raw), brand)
            except (JudgeError, ValueError) as e:
                logger.warning("Competitor discovery with %s failed: %s", client.model, e)
                continue
            if competitors:
                logger.info("Discovered %d competitors for %s: %s", len(competitors), brand, ", ".join(competitors))
                return competitors
            logger.warning("Competitor discovery with %s returned no usable names", client.model)

        logger.error("Failed to discover competitors for %s", brand)
        return []
