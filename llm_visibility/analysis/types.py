"""Core types and DTOs for answer analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from llm_visibility.analysis.identifiers import derive_identifier
from llm_visibility.gateway.types import ModelConfiguration

MAX_KEYWORDS = 3


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class MentionCategory(str, Enum):
    """Who a mentioned company is, relative to the tracked brand."""

    OUR_BRAND = "ourbrand"
    COMPETITOR = "competitor"
    OTHER = "other"


class SentimentLabel(str, Enum):
    """Coarse sentiment bucket."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class SentimentStatus(str, Enum):
    """Traffic-light status for a per-model sentiment score."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


# ---------------------------------------------------------------------------
# Classifier output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BrandMention:
    """A company named in an answer.

    identifier is set iff category is not OTHER; use create() to build one.
    """

    name: str
    category: MentionCategory
    identifier: str | None = None

    @classmethod
    def create(
        cls,
        name: str,
        category: MentionCategory,
        identifier: str | None = None,
    ) -> BrandMention:
        if category == MentionCategory.OTHER:
            return cls(name=name, category=category, identifier=None)
        return cls(name=name, category=category, identifier=identifier or derive_identifier(name))

    def label(self) -> str:
        return f"{self.name}({self.category.value})"


@dataclass
class SentimentJudgment:
    """Judge verdict on how an answer talks about the brand."""

    sentiment: SentimentLabel = SentimentLabel.NEUTRAL
    positive_keywords: list[str] = field(default_factory=list)
    negative_keywords: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Result records — one per dispatched task
# ---------------------------------------------------------------------------


@dataclass
class VisibilityResult:
    """Outcome of one visibility prompt sent to one model in one run."""

    model: ModelConfiguration
    prompt: str
    run_index: int = 0
    prompt_index: int = 0
    mentions: list[BrandMention] = field(default_factory=list)
    answer: str = ""
    consulted_urls: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def mentioned(self) -> bool:
        """True iff the answer names the tracked brand."""
        return any(m.category == MentionCategory.OUR_BRAND for m in self.mentions)

    @property
    def failed(self) -> bool:
        return self.error is not None

    def mentions_in(self, category: MentionCategory) -> list[BrandMention]:
        return [m for m in self.mentions if m.category == category]


@dataclass
class SentimentResult:
    """Outcome of one sentiment prompt sent to one model."""

    model: ModelConfiguration
    prompt: str
    prompt_index: int = 0
    sentiment: SentimentLabel = SentimentLabel.NEUTRAL
    positive_keywords: list[str] = field(default_factory=list)
    negative_keywords: list[str] = field(default_factory=list)
    answer: str = ""
    consulted_urls: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


@dataclass
class SentimentSummary:
    overall_sentiment: SentimentLabel = SentimentLabel.NEUTRAL
    overall_sentiment_percentage: int = 0  # round(100 * (pos - neg) / total)


@dataclass
class VisibilitySummary:
    successful_runs: int = 0
    mention_rate: float = 0.0  # mentioned / successful runs, 0.0–1.0
    brand_mention_counts: dict[MentionCategory, dict[str, int]] = field(
        default_factory=lambda: {category: {} for category in MentionCategory}
    )

    def to_dict(self) -> dict:
        return {
            "successful_runs": self.successful_runs,
            "mention_rate": self.mention_rate,
            "brand_mention_counts": {
                category.value: dict(counts) for category, counts in self.brand_mention_counts.items()
            },
        }


@dataclass
class ModelVisibility:
    model_name: str
    mentioned: int = 0
    total: int = 0

    @property
    def rate(self) -> float:
        return self.mentioned / self.total if self.total else 0.0


@dataclass
class ModelSentiment:
    model_name: str
    score: float = 0.0  # mean of +1 / 0 / -1 per answer
    status: SentimentStatus = SentimentStatus.YELLOW
    positive_keywords: list[str] = field(default_factory=list)
    negative_keywords: list[str] = field(default_factory=list)


@dataclass
class WebSearchSummary:
    results_with_citations: int = 0
    total_results: int = 0
    consulted_domains: list[str] = field(default_factory=list)
    top_domains: list[tuple[str, int]] = field(default_factory=list)
