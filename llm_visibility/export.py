"""Flat result rows for the reporting layer — CSV and JSON lines writers."""

from __future__ import annotations

import csv
import json
import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import TextIO

from llm_visibility.analysis.aggregator import mention_counts
from llm_visibility.analysis.types import MentionCategory, SentimentResult, VisibilityResult
from llm_visibility.pipeline import CompanyReport
from llm_visibility.schemas.company import CompanyProfile

logger = logging.getLogger(__name__)

LIST_SEPARATOR = "; "


@dataclass
class ResultRow:
    """One row per dispatched task."""

    company: str
    url: str
    market: str
    language: str
    competitors: str
    category: str  # visibility | sentiment
    run_number: int
    prompt_index: int
    prompt: str
    provider: str
    model_name: str
    model_id: str
    brand_mentioned: str = ""  # YES | NO | ERROR (visibility only)
    mentions: str = ""
    our_brand_count: int = 0
    competitor_count: int = 0
    other_count: int = 0
    sentiment: str = ""
    positive_keywords: str = ""
    negative_keywords: str = ""
    answer: str = ""
    consulted_urls: str = ""
    error: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


COLUMNS = [f.name for f in fields(ResultRow)]


def _company_columns(profile: CompanyProfile, competitors: list[str]) -> dict:
    return {
        "company": profile.name,
        "url": profile.website,
        "market": profile.market,
        "language": profile.language,
        "competitors": LIST_SEPARATOR.join(competitors),
    }


def _visibility_row(base: dict, result: VisibilityResult) -> ResultRow:
    counts = mention_counts(result)
    if result.failed:
        mentioned = "ERROR"
    else:
        mentioned = "YES" if result.mentioned else "NO"
    return ResultRow(
        **base,
        category="visibility",
        run_number=result.run_index + 1,
        prompt_index=result.prompt_index + 1,
        prompt=result.prompt,
        provider=result.model.provider.value,
        model_name=result.model.name,
        model_id=result.model.model,
        brand_mentioned=mentioned,
        mentions=LIST_SEPARATOR.join(m.label() for m in result.mentions),
        our_brand_count=counts[MentionCategory.OUR_BRAND],
        competitor_count=counts[MentionCategory.COMPETITOR],
        other_count=counts[MentionCategory.OTHER],
        answer=result.answer,
        consulted_urls=LIST_SEPARATOR.join(result.consulted_urls),
        error=result.error or "",
    )


def _sentiment_row(base: dict, result: SentimentResult) -> ResultRow:
    return ResultRow(
        **base,
        category="sentiment",
        run_number=1,
        prompt_index=result.prompt_index + 1,
        prompt=result.prompt,
        provider=result.model.provider.value,
        model_name=result.model.name,
        model_id=result.model.model,
        sentiment=result.sentiment.value,
        positive_keywords=LIST_SEPARATOR.join(result.positive_keywords),
        negative_keywords=LIST_SEPARATOR.join(result.negative_keywords),
        answer=result.answer,
        consulted_urls=LIST_SEPARATOR.join(result.consulted_urls),
        error=result.error or "",
    )


def rows_from_report(report: CompanyReport) -> list[ResultRow]:
    """Visibility rows first, then sentiment rows, each in dispatch order."""
    base = _company_columns(report.profile, report.competitors)
    rows = [_visibility_row(base, r) for r in report.visibility_results]
    rows.extend(_sentiment_row(base, r) for r in report.sentiment_results)
    return rows


class RowWriter:
    """Streams rows to a CSV or JSON lines file as each company completes."""

    def __init__(self, path: str | Path, fmt: str = "csv"):
        if fmt not in ("csv", "jsonl"):
            raise ValueError(f"Unsupported output format: {fmt}")
        self.path = Path(path)
        self.fmt = fmt
        self._file: TextIO | None = None
        self._csv: csv.DictWriter | None = None
        self.rows_written = 0

    def __enter__(self) -> RowWriter:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("w", encoding="utf-8", newline="")
        if self.fmt == "csv":
            self._csv = csv.DictWriter(self._file, fieldnames=COLUMNS, quoting=csv.QUOTE_ALL)
            self._csv.writeheader()
        return self

    def __exit__(self, *exc_info) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        logger.info("Wrote %d rows to %s", self.rows_written, self.path)

    def write(self, rows: Iterable[ResultRow]) -> None:
        if self._file is None:
            raise RuntimeError("RowWriter used outside of a with block")
        for row in rows:
            if self._csv is not None:
                self._csv.writerow(row.to_dict())
            else:
                self._file.write(json.dumps(row.to_dict(), ensure_ascii=False) + "\n")
            self.rows_written += 1
        self._file.flush()


def write_rows_csv(rows: Iterable[ResultRow], path: str | Path) -> int:
    with RowWriter(path, "csv") as writer:
        writer.write(rows)
    return writer.rows_written


def write_rows_jsonl(rows: Iterable[ResultRow], path: str | Path) -> int:
    with RowWriter(path, "jsonl") as writer:
        writer.write(rows)
    return writer.rows_written
