"""Sentiment Classifier — how an answer talks about the brand.

Same judge + JSON repair path as the response classifier. Failures never
propagate: an unusable verdict degrades to neutral with no keywords.
"""

from __future__ import annotations

import logging

from llm_visibility.analysis.json_repair import parse_json_object
from llm_visibility.analysis.judge import JudgeClient
from llm_visibility.analysis.types import MAX_KEYWORDS, SentimentJudgment, SentimentLabel
from llm_visibility.core.exceptions import JudgeError

logger = logging.getLogger(__name__)

SENTIMENT_SYSTEM_PROMPT = """\
You are a brand reputation analyst. Your task is to read an AI assistant's answer about a company \
and judge the overall sentiment it expresses towards that company, and extract the short keywords \
that carry the positive and negative opinions."""

_SENTIMENT_USER_TEMPLATE = """\
Analyze the following response to the question: "{prompt}"

Brand: {brand}

Determine the overall sentiment of the response towards the brand and extract the key opinions.

Return a JSON object with the following structure:
{{
  "sentiment": "positive" | "neutral" | "negative",
  "extractedPositiveKeywords": ["keyword1", "keyword2", "keyword3"],
  "extractedNegativeKeywords": ["keyword1", "keyword2", "keyword3"]
}}

# RULES:
1. "sentiment" must be exactly one of "positive", "neutral" or "negative"
2. Return at most 3 positive and at most 3 negative keywords, each one to three words long
3. Use an empty array when there is nothing to report
4. Keywords must be in the same language as the response

Response: {answer}"""


def build_sentiment_prompt(answer: str, brand: str, prompt: str) -> tuple[str, str]:
    user_prompt = _SENTIMENT_USER_TEMPLATE.format(prompt=prompt, brand=brand, answer=answer)
    return SENTIMENT_SYSTEM_PROMPT, user_prompt


def _keywords(value) -> list[str]:
    if not isinstance(value, list):
        return []
    keywords = [str(k).strip() for k in value if isinstance(k, (str, int, float)) and str(k).strip()]
    return keywords[:MAX_KEYWORDS]


def parse_sentiment_output(raw: str) -> SentimentJudgment:
    """Raises ValueError when no JSON object can be parsed."""
    data = parse_json_object(raw)

    label_str = str(data.get("sentiment") or "").strip().lower()
    try:
        label = SentimentLabel(label_str)
    except ValueError:
        logger.warning("Judge returned invalid sentiment: %r — using neutral", label_str)
        label = SentimentLabel.NEUTRAL

    return SentimentJudgment(
        sentiment=label,
        positive_keywords=_keywords(data.get("extractedPositiveKeywords", data.get("positive_keywords"))),
        negative_keywords=_keywords(data.get("extractedNegativeKeywords", data.get("negative_keywords"))),
    )


class SentimentClassifier:
    def __init__(self, judge: JudgeClient):
        self.judge = judge

    async def classify_sentiment(self, answer: str, brand: str, prompt: str) -> SentimentJudgment:
        system_prompt, user_prompt = build_sentiment_prompt(answer, brand, prompt)
        try:
            raw = await self.judge.complete(system_prompt, user_prompt, purpose="sentiment")
            return parse_sentiment_output(raw)
        except (JudgeError, ValueError) as e:
            logger.warning("Sentiment analysis failed for %s, defaulting to neutral: %s", brand, e)
            return SentimentJudgment()
