"""Batch runner: visibility + sentiment tests over a company file.

Usage:
    llm-visibility companies.csv --runs 5 --parallel 10 --output results.csv
    python -m llm_visibility.cli companies.json --format jsonl --max-companies 3
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from llm_visibility.analysis.judge import JudgeClient
from llm_visibility.core.config import Settings, settings, validate_settings
from llm_visibility.core.exceptions import ConfigurationError
from llm_visibility.core.logging import setup_logging
from llm_visibility.core.sentry import init_sentry
from llm_visibility.export import RowWriter, rows_from_report
from llm_visibility.gateway.redirect_resolver import RedirectResolver
from llm_visibility.gateway.vendor_adapters import build_adapter_registry
from llm_visibility.pipeline import VisibilityPipeline
from llm_visibility.schemas.company import CompanyProfile, load_companies

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Ask every configured LLM provider about each company and measure "
            "unprompted brand mentions and sentiment."
        )
    )
    parser.add_argument("input", help="Company file (.csv export or .json list of profiles).")
    parser.add_argument(
        "--output",
        default="",
        help="Output file. Defaults to visibility_results_<timestamp>.<format> in the current directory.",
    )
    parser.add_argument(
        "--format",
        choices=("csv", "jsonl"),
        default="csv",
        help="Output format (default: csv).",
    )
    parser.add_argument(
        "--runs",
        type=int,
        default=None,
        help=f"Repetitions of each visibility prompt per model (default: {settings.runs}).",
    )
    parser.add_argument(
        "--parallel",
        type=int,
        default=None,
        help=f"Max concurrent provider calls (default: {settings.parallel_limit}).",
    )
    parser.add_argument(
        "--max-companies",
        type=int,
        default=0,
        help="Only process the first N companies. 0 means all.",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL.")
    return parser.parse_args(argv)


def _effective_settings(args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.runs is not None:
        overrides["runs"] = args.runs
    if args.parallel is not None:
        overrides["parallel_limit"] = args.parallel
    return settings.model_copy(update=overrides)


def _default_output(fmt: str) -> Path:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return Path(f"visibility_results_{stamp}.{fmt}")


async def run_batch(
    companies: Sequence[CompanyProfile],
    pipeline: VisibilityPipeline,
    writer: RowWriter,
    runs: int,
) -> int:
    """Process companies sequentially, streaming rows as each one completes."""
    failed = 0
    for i, profile in enumerate(companies, start=1):
        logger.info("[%d/%d] Processing %s", i, len(companies), profile.name, extra={"company": profile.name})
        report = await pipeline.run_company(profile, runs)
        writer.write(rows_from_report(report))

        for model in report.visibility_by_model:
            logger.info(
                "  %s: %.1f%% (%d/%d)",
                model.model_name,
                model.rate * 100,
                model.mentioned,
                model.total,
                extra={"company": profile.name},
            )
        if report.visibility_results and not report.visibility_summary.successful_runs:
            failed += 1
    return failed


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(level_name=args.log_level)
    init_sentry()

    run_settings = _effective_settings(args)
    try:
        validate_settings(run_settings)
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1

    try:
        companies = load_companies(args.input)
    except (OSError, ValueError) as e:
        logger.error("Cannot load companies from %s: %s", args.input, e)
        return 1
    if args.max_companies > 0:
        companies = companies[: args.max_companies]

    registry = build_adapter_registry(
        run_settings.api_keys,
        resolver=RedirectResolver(
            timeout=run_settings.redirect_timeout_seconds,
            max_hops=run_settings.redirect_max_hops,
        ),
        max_tokens=run_settings.answer_max_tokens,
    )
    pipeline = VisibilityPipeline(registry, JudgeClient.from_settings(run_settings), run_settings)

    output = Path(args.output) if args.output else _default_output(args.format)
    logger.info(
        "Running %d companies × %d models, %d runs, %d parallel → %s",
        len(companies),
        len(registry.models),
        run_settings.runs,
        run_settings.parallel_limit,
        output,
    )

    with RowWriter(output, args.format) as writer:
        failed = asyncio.run(run_batch(companies, pipeline, writer, run_settings.runs))

    if failed:
        logger.warning("%d companies had no successful visibility runs", failed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
