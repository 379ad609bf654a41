"""Aggregator — fold per-task result records into company-level summaries.

Errored records are excluded from every fold; they are still emitted as
rows so failures stay visible downstream.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Sequence

from llm_visibility.analysis.types import (
    MentionCategory,
    ModelSentiment,
    ModelVisibility,
    SentimentLabel,
    SentimentResult,
    SentimentStatus,
    SentimentSummary,
    VisibilityResult,
    VisibilitySummary,
    WebSearchSummary,
)
from llm_visibility.gateway.normalizer import extract_domain

GREEN_THRESHOLD = 0.3
RED_THRESHOLD = -0.3
TOP_DOMAINS = 10

_SENTIMENT_VALUE = {
    SentimentLabel.POSITIVE: 1,
    SentimentLabel.NEUTRAL: 0,
    SentimentLabel.NEGATIVE: -1,
}


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def summarize_sentiment(results: Sequence[SentimentResult]) -> SentimentSummary:
    """Overall label and net-positive percentage.

    The label is the one with more occurrences than each of the two
    others; any tie at the top gives neutral.
    """
    valid = [r for r in results if not r.failed]
    if not valid:
        return SentimentSummary()

    counts = Counter(r.sentiment for r in valid)
    positive = counts[SentimentLabel.POSITIVE]
    neutral = counts[SentimentLabel.NEUTRAL]
    negative = counts[SentimentLabel.NEGATIVE]

    if positive > neutral and positive > negative:
        label = SentimentLabel.POSITIVE
    elif negative > neutral and negative > positive:
        label = SentimentLabel.NEGATIVE
    else:
        label = SentimentLabel.NEUTRAL

    percentage = _round_half_up(100 * (positive - negative) / len(valid))
    return SentimentSummary(overall_sentiment=label, overall_sentiment_percentage=percentage)


def summarize_visibility(results: Sequence[VisibilityResult]) -> VisibilitySummary:
    """Mention rate over successful runs and per-name counts by category."""
    valid = [r for r in results if not r.failed]
    summary = VisibilitySummary(successful_runs=len(valid))
    if not valid:
        return summary

    summary.mention_rate = sum(1 for r in valid if r.mentioned) / len(valid)
    for result in valid:
        for mention in result.mentions:
            bucket = summary.brand_mention_counts[mention.category]
            bucket[mention.name] = bucket.get(mention.name, 0) + 1
    return summary


def visibility_by_model(results: Iterable[VisibilityResult]) -> list[ModelVisibility]:
    """Per-model mention rate, models in first-seen order."""
    by_model: dict[str, ModelVisibility] = {}
    for result in results:
        if result.failed:
            continue
        stats = by_model.setdefault(result.model.name, ModelVisibility(model_name=result.model.name))
        stats.total += 1
        if result.mentioned:
            stats.mentioned += 1
    return list(by_model.values())


def _status_for(score: float) -> SentimentStatus:
    if score > GREEN_THRESHOLD:
        return SentimentStatus.GREEN
    if score < RED_THRESHOLD:
        return SentimentStatus.RED
    return SentimentStatus.YELLOW


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(v for v in values if v))


def sentiment_by_model(results: Iterable[SentimentResult]) -> list[ModelSentiment]:
    """Per-model mean sentiment (+1 / 0 / -1) with a traffic-light status."""
    grouped: dict[str, list[SentimentResult]] = {}
    for result in results:
        if not result.failed:
            grouped.setdefault(result.model.name, []).append(result)

    summaries = []
    for model_name, model_results in grouped.items():
        score = sum(_SENTIMENT_VALUE[r.sentiment] for r in model_results) / len(model_results)
        summaries.append(
            ModelSentiment(
                model_name=model_name,
                score=round(score, 2),
                status=_status_for(score),
                positive_keywords=_unique(k for r in model_results for k in r.positive_keywords),
                negative_keywords=_unique(k for r in model_results for k in r.negative_keywords),
            )
        )
    return summaries


def summarize_web_search(results: Sequence[VisibilityResult | SentimentResult]) -> WebSearchSummary:
    """How often answers cite sources, and which domains they cite."""
    valid = [r for r in results if not r.failed]
    domain_counts: Counter[str] = Counter()
    with_citations = 0

    for result in valid:
        if result.consulted_urls:
            with_citations += 1
        for url in result.consulted_urls:
            domain = extract_domain(url)
            if domain:
                domain_counts[domain] += 1

    return WebSearchSummary(
        results_with_citations=with_citations,
        total_results=len(valid),
        consulted_domains=sorted(domain_counts),
        top_domains=domain_counts.most_common(TOP_DOMAINS),
    )


def mention_counts(result: VisibilityResult) -> dict[MentionCategory, int]:
    counts = Counter(m.category for m in result.mentions)
    return {category: counts[category] for category in MentionCategory}
