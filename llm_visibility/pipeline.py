"""Visibility pipeline — per-company orchestration.

For each company:
  1. Competitor discovery (only when the profile has none)
  2. Visibility phase: runs × prompts × models answers, each classified
     into brand mentions by the judge
  3. Sentiment phase: prompts × models answers, each judged for sentiment
  4. Aggregation into a CompanyReport

Every dispatched task yields exactly one result record; provider and judge
failures are recorded on the record instead of aborting the company.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from llm_visibility.analysis.aggregator import (
    sentiment_by_model,
    summarize_sentiment,
    summarize_visibility,
    summarize_web_search,
    visibility_by_model,
)
from llm_visibility.analysis.competitor_discovery import CompetitorDiscovery
from llm_visibility.analysis.judge import JudgeClient
from llm_visibility.analysis.response_classifier import ResponseClassifier, canonical_competitors
from llm_visibility.analysis.sentiment_classifier import SentimentClassifier
from llm_visibility.analysis.types import (
    ModelSentiment,
    ModelVisibility,
    SentimentLabel,
    SentimentResult,
    SentimentSummary,
    VisibilityResult,
    VisibilitySummary,
    WebSearchSummary,
)
from llm_visibility.core.config import Settings
from llm_visibility.gateway.dispatcher import (
    Dispatcher,
    ProgressCallback,
    build_sentiment_tasks,
    build_visibility_tasks,
    log_progress,
)
from llm_visibility.gateway.types import PromptTask
from llm_visibility.gateway.vendor_adapters import AdapterRegistry
from llm_visibility.schemas.company import CompanyProfile

logger = logging.getLogger(__name__)


@dataclass
class CompanyReport:
    """Everything produced for one company."""

    profile: CompanyProfile
    competitors: list[str] = field(default_factory=list)
    visibility_results: list[VisibilityResult] = field(default_factory=list)
    sentiment_results: list[SentimentResult] = field(default_factory=list)
    visibility_summary: VisibilitySummary = field(default_factory=VisibilitySummary)
    sentiment_summary: SentimentSummary = field(default_factory=SentimentSummary)
    visibility_by_model: list[ModelVisibility] = field(default_factory=list)
    sentiment_by_model: list[ModelSentiment] = field(default_factory=list)
    web_search: WebSearchSummary = field(default_factory=WebSearchSummary)
    elapsed_seconds: float = 0.0


class VisibilityPipeline:
    """Runs the visibility and sentiment phases for company profiles.

    The adapter registry and judge are injected; nothing here reads the
    environment.
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        judge: JudgeClient,
        settings: Settings,
        discovery: CompetitorDiscovery | None = None,
    ):
        self.registry = registry
        self.settings = settings
        self.classifier = ResponseClassifier(judge)
        self.sentiment_classifier = SentimentClassifier(judge)
        self.discovery = discovery or CompetitorDiscovery.from_api_keys(
            openai_api_key=self.settings.openai_api_key,
            perplexity_api_key=self.settings.perplexity_api_key,
        )
        self.dispatcher = Dispatcher(limit=self.settings.parallel_limit)

    # ------------------------------------------------------------------
    # Phase 0: competitors
    # ------------------------------------------------------------------

    async def prepare_company(self, profile: CompanyProfile) -> CompanyProfile:
        """Return the profile with a deduplicated, non-empty competitor list where possible."""
        competitors = list(canonical_competitors(profile.competitors).values())
        if not competitors:
            competitors = await self.discovery.discover(
                profile.name, profile.website, profile.market, profile.language
            )
        return profile.model_copy(update={"competitors": competitors})

    # ------------------------------------------------------------------
    # Phase 1: visibility
    # ------------------------------------------------------------------

    async def run_visibility(
        self,
        profile: CompanyProfile,
        runs: int | None = None,
        on_progress: ProgressCallback | None = log_progress,
    ) -> list[VisibilityResult]:
        prompts = profile.rendered_visibility_prompts()
        if not prompts:
            logger.info("No visibility prompts for %s, skipping", profile.name, extra={"company": profile.name})
            return []

        runs = runs or self.settings.runs
        tasks = build_visibility_tasks(prompts, self.registry.models, runs)
        logger.info(
            "Visibility: %d runs × %d prompts × %d models = %d tasks",
            runs,
            len(prompts),
            len(self.registry.models),
            len(tasks),
            extra={"company": profile.name},
        )

        async def _worker(task: PromptTask) -> VisibilityResult:
            answer = await self.registry.invoke(task.model, task.prompt, self.settings.answer_temperature)
            classification = await self.classifier.classify_answer(
                answer.text, profile.name, profile.competitors, task.prompt
            )
            return VisibilityResult(
                model=task.model,
                prompt=task.prompt,
                run_index=task.run_index,
                prompt_index=task.prompt_index,
                mentions=classification.mentions,
                answer=answer.text,
                consulted_urls=answer.consulted_urls,
                error=classification.error,
            )

        def _error(task: PromptTask, exc: Exception) -> VisibilityResult:
            return VisibilityResult(
                model=task.model,
                prompt=task.prompt,
                run_index=task.run_index,
                prompt_index=task.prompt_index,
                error=str(exc),
            )

        return await self.dispatcher.run(tasks, _worker, _error, on_progress)

    # ------------------------------------------------------------------
    # Phase 2: sentiment
    # ------------------------------------------------------------------

    async def run_sentiment(
        self,
        profile: CompanyProfile,
        on_progress: ProgressCallback | None = log_progress,
    ) -> list[SentimentResult]:
        prompts = profile.rendered_sentiment_prompts()
        if not prompts:
            logger.debug("No sentiment prompts for %s", profile.name, extra={"company": profile.name})
            return []

        tasks = build_sentiment_tasks(prompts, self.registry.models)

        async def _worker(task: PromptTask) -> SentimentResult:
            answer = await self.registry.invoke(task.model, task.prompt, self.settings.answer_temperature)
            judgment = await self.sentiment_classifier.classify_sentiment(answer.text, profile.name, task.prompt)
            return SentimentResult(
                model=task.model,
                prompt=task.prompt,
                prompt_index=task.prompt_index,
                sentiment=judgment.sentiment,
                positive_keywords=judgment.positive_keywords,
                negative_keywords=judgment.negative_keywords,
                answer=answer.text,
                consulted_urls=answer.consulted_urls,
            )

        def _error(task: PromptTask, exc: Exception) -> SentimentResult:
            return SentimentResult(
                model=task.model,
                prompt=task.prompt,
                prompt_index=task.prompt_index,
                sentiment=SentimentLabel.NEUTRAL,
                error=str(exc),
            )

        return await self.dispatcher.run(tasks, _worker, _error, on_progress)

    # ------------------------------------------------------------------
    # Full company run
    # ------------------------------------------------------------------

    async def run_company(self, profile: CompanyProfile, runs: int | None = None) -> CompanyReport:
        start = time.monotonic()
        profile = await self.prepare_company(profile)

        visibility = await self.run_visibility(profile, runs)
        sentiment = await self.run_sentiment(profile)

        report = CompanyReport(
            profile=profile,
            competitors=list(profile.competitors),
            visibility_results=visibility,
            sentiment_results=sentiment,
            visibility_summary=summarize_visibility(visibility),
            sentiment_summary=summarize_sentiment(sentiment),
            visibility_by_model=visibility_by_model(visibility),
            sentiment_by_model=sentiment_by_model(sentiment),
            web_search=summarize_web_search([*visibility, *sentiment]),
            elapsed_seconds=round(time.monotonic() - start, 1),
        )

        logger.info(
            "Completed %s in %.1fs: mention rate %.1f%% over %d successful runs, sentiment %s (%+d%%)",
            profile.name,
            report.elapsed_seconds,
            report.visibility_summary.mention_rate * 100,
            report.visibility_summary.successful_runs,
            report.sentiment_summary.overall_sentiment.value,
            report.sentiment_summary.overall_sentiment_percentage,
            extra={"company": profile.name},
        )
        return report
