"""Company profile input schema and loaders."""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from llm_visibility.analysis.identifiers import derive_identifier

logger = logging.getLogger(__name__)

COMPANY_PLACEHOLDER = "{COMPANY}"
MAX_PROMPTS_PER_PURPOSE = 5


class CompanyProfile(BaseModel):
    """A tracked brand plus the prompts to ask about it."""

    name: str = Field(..., min_length=1)
    identifier: str = ""  # derived from name when empty
    website: str = ""
    market: str = ""
    language: str = "English"
    competitors: list[str] = Field(default_factory=list)
    visibility_prompts: list[str] = Field(default_factory=list)
    sentiment_prompts: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _fill_identifier(self) -> CompanyProfile:
        if not self.identifier:
            self.identifier = derive_identifier(self.name)
        return self

    def render(self, template: str) -> str:
        return template.replace(COMPANY_PLACEHOLDER, self.name)

    def rendered_visibility_prompts(self) -> list[str]:
        return [self.render(p) for p in self.visibility_prompts]

    def rendered_sentiment_prompts(self) -> list[str]:
        return [self.render(p) for p in self.sentiment_prompts]

    @classmethod
    def from_csv_row(cls, row: dict[str, str]) -> CompanyProfile:
        """Build a profile from a spreadsheet export row.

        Accepts the "Start-up" / "URL" / "Main Market (2025)" headers as
        well as plain name / website / market columns.
        """

        def cell(*keys: str) -> str:
            for key in keys:
                value = row.get(key)
                if value and value.strip():
                    return value.strip()
            return ""

        def numbered(prefix: str) -> list[str]:
            prompts = (cell(f"{prefix} #{i}") for i in range(1, MAX_PROMPTS_PER_PURPOSE + 1))
            return [p for p in prompts if p]

        language_code = cell("Language", "language").upper()
        competitors = cell("Competitors", "competitors")

        return cls(
            name=cell("Start-up", "name", "Company"),
            website=cell("URL", "website", "url"),
            market=cell("Main Market (2025)", "market", "Market"),
            language="French" if "FR" in language_code else "English",
            competitors=[c.strip() for c in competitors.split(";") if c.strip()],
            visibility_prompts=numbered("Prompt Visibility"),
            sentiment_prompts=numbered("Prompt Sentiment"),
        )


def load_companies(path: str | Path) -> list[CompanyProfile]:
    """Load company profiles from a .json (list of objects) or .csv file.

    Raises:
        ValueError: unsupported extension or malformed JSON structure.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"{path}: expected a JSON list of company objects")
        companies = [CompanyProfile.model_validate(item) for item in data]

    elif suffix == ".csv":
        companies = []
        with path.open(encoding="utf-8-sig", newline="") as f:
            for line_no, row in enumerate(csv.DictReader(f), start=2):
                if not (row.get("Start-up") or row.get("name") or row.get("Company") or "").strip():
                    logger.debug("Skipping row %d without a company name", line_no)
                    continue
                companies.append(CompanyProfile.from_csv_row(row))

    else:
        raise ValueError(f"Unsupported company file type: {path.suffix or '(none)'} (use .csv or .json)")

    logger.info("Loaded %d companies from %s", len(companies), path)
    return companies
