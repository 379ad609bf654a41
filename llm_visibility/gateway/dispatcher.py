"""Bounded Concurrency Dispatcher.

Runs an async worker over a batch of tasks with at most ``limit`` workers
in flight. Results come back in input order, one per task: a worker
exception is converted into an error-tagged record by ``error_factory``
instead of aborting the batch.

Usage:
    dispatcher = Dispatcher(limit=10)
    results = await dispatcher.run(tasks, worker, error_factory, on_progress=log_progress)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from llm_visibility.gateway.types import ModelConfiguration, PromptTask

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

PROGRESS_LOG_EVERY = 10


@dataclass(frozen=True)
class Progress(Generic[T]):
    """Snapshot emitted each time a task settles."""

    completed: int
    total: int
    task: T

    @property
    def percent(self) -> int:
        return round(100 * self.completed / self.total) if self.total else 100


ProgressCallback = Callable[[Progress], None]


class Dispatcher:
    """Semaphore-bounded fan-out over a task list."""

    def __init__(self, limit: int = 10):
        if limit < 1:
            raise ValueError(f"Concurrency limit must be at least 1, got {limit}")
        self.limit = limit

    async def run(
        self,
        tasks: Sequence[T],
        worker: Callable[[T], Awaitable[R]],
        error_factory: Callable[[T, Exception], R],
        on_progress: ProgressCallback | None = None,
    ) -> list[R]:
        if not tasks:
            return []

        semaphore = asyncio.Semaphore(self.limit)
        results: list[R | None] = [None] * len(tasks)
        total = len(tasks)
        completed = 0

        async def _execute_with_semaphore(index: int, task: T) -> None:
            nonlocal completed
            async with semaphore:
                try:
                    result = await worker(task)
                except Exception as e:
                    logger.warning("Task %d/%d failed: %s", index + 1, total, e)
                    result = error_factory(task, e)
            results[index] = result
            completed += 1
            if on_progress is not None:
                try:
                    on_progress(Progress(completed=completed, total=total, task=task))
                except Exception:
                    logger.exception("Progress callback failed")

        await asyncio.gather(*(_execute_with_semaphore(i, task) for i, task in enumerate(tasks)))
        return results  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Task builders
# ---------------------------------------------------------------------------


def build_visibility_tasks(
    prompts: Sequence[str],
    models: Sequence[ModelConfiguration],
    runs: int,
) -> list[PromptTask]:
    """runs × prompts × models tasks, ordered run → prompt → model."""
    return [
        PromptTask(prompt=prompt, run_index=run, prompt_index=prompt_index, model=model)
        for run in range(runs)
        for prompt_index, prompt in enumerate(prompts)
        for model in models
    ]


def build_sentiment_tasks(
    prompts: Sequence[str],
    models: Sequence[ModelConfiguration],
) -> list[PromptTask]:
    """Sentiment prompts are asked once per model."""
    return build_visibility_tasks(prompts, models, runs=1)


def log_progress(progress: Progress) -> None:
    """Default progress callback: one log line every few completions and at the end."""
    if progress.completed % PROGRESS_LOG_EVERY == 0 or progress.completed == progress.total:
        logger.info("Progress: %d/%d (%d%%)", progress.completed, progress.total, progress.percent)
