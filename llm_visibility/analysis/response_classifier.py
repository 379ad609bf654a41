"""Response Classifier — brand mention extraction via the judge.

Asks the judge to list every company named in an answer and tag each one
as our brand, a known competitor (fuzzy/alias matching, e.g. "Free Mobile"
→ "Free"), or other. Judge output is parsed tolerantly and then
normalized against the canonical brand and competitor lists so that
identifiers always match the inputs exactly.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from llm_visibility.analysis.identifiers import brand_key
from llm_visibility.analysis.json_repair import extract_name_type_pairs, parse_json_object
from llm_visibility.analysis.judge import JudgeClient
from llm_visibility.analysis.types import BrandMention, MentionCategory
from llm_visibility.core.exceptions import JudgeError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Judge prompt templates
# ---------------------------------------------------------------------------

CLASSIFIER_SYSTEM_PROMPT = """\
You are a brand awareness analyst. Your task is to analyze responses to an open-ended question \
about companies or brands in a specific industry. You should determine if a specific brand \
was mentioned without prompting, and list all brands or companies that were mentioned."""

_CLASSIFIER_USER_TEMPLATE = """\
Analyze the following response to the question: "{prompt}"

Our brand: {brand}
Competitors: {competitors}

Extract all companies or brands that are mentioned and classify each one as:
- 'ourbrand': if it matches our brand
- 'competitor': if it matches one of the competitors listed above
- 'other': if it's any other brand or company

Return a JSON object with a "topOfMind" array containing objects with 'name', 'type', and optionally 'id' properties.

# CRITICAL RULES:
1. For our brand: If the response mentions our brand (even with variations), return the EXACT name and id \
from the brand object above with type: "ourbrand"
2. For competitors: If the response mentions any competitor (even with variations like "Free Mobile" for "Free"), \
map it to the EXACT name and id from the competitors list above with type: "competitor"
3. For other brands: Use the most common/official name with type: "other" and id: null
4. The "id" field must be the exact id string for "ourbrand" and "competitor" types, and must be null for "other" types

# MATCHING EXAMPLES:
- If competitors contains {{"name": "Free", "id": "free"}} and response mentions "Free Mobile" or "Iliad Free", \
return: {{"name": "Free", "id": "free", "type": "competitor"}}
- If our brand is {{"name": "Orange", "id": "orange"}} and response mentions "Orange S.A.", \
return: {{"name": "Orange", "id": "orange", "type": "ourbrand"}}
- If response mentions "Apple" (not in our lists), return: {{"name": "Apple", "type": "other", "id": null}}

Response: {answer}"""


@dataclass
class Classification:
    """Classifier outcome that never raises: mentions, or an error description."""

    mentions: list[BrandMention] = field(default_factory=list)
    error: str | None = None


def canonical_competitors(competitors: Sequence[str]) -> dict[str, str]:
    """Matching key → first spelling seen; blanks and near-duplicates merged."""
    canonical: dict[str, str] = {}
    for name in competitors:
        name = (name or "").strip()
        identifier = brand_key(name)
        if identifier and identifier not in canonical:
            canonical[identifier] = name
    return canonical


def build_classifier_prompt(
    answer: str,
    our_brand: str,
    competitors: Sequence[str],
    prompt: str,
) -> tuple[str, str]:
    """Build the system + user prompts for mention classification.

    Returns:
        (system_prompt, user_prompt) tuple.
    """
    brand = {"name": our_brand, "id": brand_key(our_brand)}
    competitor_objs = [{"name": name, "id": cid} for cid, name in canonical_competitors(competitors).items()]
    user_prompt = _CLASSIFIER_USER_TEMPLATE.format(
        prompt=prompt,
        brand=json.dumps(brand, ensure_ascii=False),
        competitors=json.dumps(competitor_objs, ensure_ascii=False),
        answer=answer,
    )
    return CLASSIFIER_SYSTEM_PROMPT, user_prompt


def parse_classifier_output(raw: str) -> list[dict]:
    """Judge output → list of {"name", "type", "id"} dicts.

    Tries the JSON repair pipeline first, then positional name/type
    recovery. Raises ValueError only when nothing at all can be recovered.
    """
    try:
        data = parse_json_object(raw)
        top_of_mind = data.get("topOfMind") or []
        if not isinstance(top_of_mind, list):
            raise ValueError(f"topOfMind is {type(top_of_mind).__name__}, expected a list")
        return [item for item in top_of_mind if isinstance(item, dict)]
    except ValueError as e:
        logger.warning("Classifier output is not valid JSON (%s), recovering name/type pairs", e)
        logger.debug("Raw classifier output: %.500s", raw)

    pairs = extract_name_type_pairs(raw)
    if not pairs:
        raise ValueError("no brand mentions recoverable from judge output")
    return [
        {
            "name": name,
            "type": mention_type,
            "id": None if mention_type == MentionCategory.OTHER.value else brand_key(name),
        }
        for name, mention_type in pairs
    ]


def normalize_mentions(
    items: Sequence[dict],
    our_brand: str,
    competitors: Sequence[str],
) -> list[BrandMention]:
    """Map judge items onto canonical names and identifiers.

    - ourbrand → the tracked brand's name and identifier
    - competitor → the canonical competitor matched by identifier (of the
      returned id, then of the returned name); unmatched ones become other
    - other → identifier None
    - unknown types and nameless items are dropped, duplicates merged
    """
    brand_id = brand_key(our_brand)
    known = canonical_competitors(competitors)

    mentions: list[BrandMention] = []
    seen: set[tuple[MentionCategory, str]] = set()

    for item in items:
        name = str(item.get("name") or "").strip()
        try:
            category = MentionCategory(str(item.get("type") or "").strip().lower())
        except ValueError:
            logger.debug("Dropping mention with unknown type: %r", item.get("type"))
            continue
        if not name:
            continue

        if category == MentionCategory.OUR_BRAND:
            mention = BrandMention.create(our_brand, category, brand_id)
        elif category == MentionCategory.COMPETITOR:
            mention = None
            for candidate in (item.get("id"), name):
                cid = brand_key(str(candidate or ""))
                if cid in known:
                    mention = BrandMention.create(known[cid], category, cid)
                    break
            if mention is None:
                logger.debug("Competitor %r is not in the competitor list, counting it as other", name)
                category = MentionCategory.OTHER
                mention = BrandMention.create(name, category)
        else:
            mention = BrandMention.create(name, category)

        key = (category, mention.identifier or brand_key(name))
        if key in seen:
            continue
        seen.add(key)
        mentions.append(mention)

    return mentions


class ResponseClassifier:
    """Classify the companies named in an answer using the judge."""

    def __init__(self, judge: JudgeClient):
        self.judge = judge

    async def classify(
        self,
        answer: str,
        our_brand: str,
        competitors: Sequence[str],
        prompt: str,
    ) -> list[BrandMention]:
        """Raises JudgeError when the judge fails or its output is unusable."""
        system_prompt, user_prompt = build_classifier_prompt(answer, our_brand, competitors, prompt)
        raw = await self.judge.complete(system_prompt, user_prompt, purpose="classify")
        try:
            items = parse_classifier_output(raw)
        except ValueError as e:
            raise JudgeError(f"unusable classifier output: {e}") from e
        return normalize_mentions(items, our_brand, competitors)

    async def classify_answer(
        self,
        answer: str,
        our_brand: str,
        competitors: Sequence[str],
        prompt: str,
    ) -> Classification:
        try:
            mentions = await self.classify(answer, our_brand, competitors, prompt)
        except JudgeError as e:
            logger.warning("Classification failed for %s: %s", our_brand, e)
            return Classification(error=str(e))
        return Classification(mentions=mentions)
