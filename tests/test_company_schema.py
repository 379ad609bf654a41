"""Tests for company profiles and company file loading."""

import json

import pytest
from pydantic import ValidationError

from llm_visibility.schemas.company import CompanyProfile, load_companies

CSV_HEADER = (
    "Start-up,URL,Main Market (2025),Language,Competitors,"
    "Prompt Visibility #1,Prompt Visibility #2,Prompt Sentiment #1\n"
)


class TestCompanyProfile:
    def test_identifier_derived(self):
        assert CompanyProfile(name="Café Ñoño S.A.").identifier == "caf-oo-sa"

    def test_explicit_identifier_kept(self):
        assert CompanyProfile(name="Acme", identifier="acme-corp").identifier == "acme-corp"

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            CompanyProfile(name="")

    def test_render(self):
        profile = CompanyProfile(name="Acme", sentiment_prompts=["Is {COMPANY} better than {COMPANY} 2?"])
        assert profile.rendered_sentiment_prompts() == ["Is Acme better than Acme 2?"]

    def test_csv_row(self):
        row = {
            "Start-up": " Acme ",
            "URL": "https://acme.fr",
            "Main Market (2025)": "France",
            "Language": "FR",
            "Competitors": "Globex; Initech;",
            "Prompt Visibility #1": "Meilleur CRM ?",
            "Prompt Visibility #2": "",
            "Prompt Visibility #3": "Alternatives à {COMPANY} ?",
            "Prompt Sentiment #1": "Que penses-tu de {COMPANY} ?",
        }
        profile = CompanyProfile.from_csv_row(row)

        assert profile.name == "Acme"
        assert profile.language == "French"
        assert profile.competitors == ["Globex", "Initech"]
        assert profile.visibility_prompts == ["Meilleur CRM ?", "Alternatives à {COMPANY} ?"]
        assert profile.rendered_sentiment_prompts() == ["Que penses-tu de Acme ?"]

    def test_csv_row_defaults_to_english(self):
        assert CompanyProfile.from_csv_row({"name": "Acme", "Language": "EN"}).language == "English"


class TestLoadCompanies:
    def test_csv(self, tmp_path):
        path = tmp_path / "companies.csv"
        path.write_text(
            CSV_HEADER
            + 'Acme,https://acme.com,US,EN,Globex,"Best CRM?",,"Is {COMPANY} good?"\n'
            + ",,,,,,,\n"
            + "Globex,https://globex.com,UK,FR,,Top ERP?,,\n",
            encoding="utf-8",
        )

        companies = load_companies(path)

        assert [c.name for c in companies] == ["Acme", "Globex"]
        assert companies[0].sentiment_prompts == ["Is {COMPANY} good?"]
        assert companies[1].competitors == []
        assert companies[1].language == "French"

    def test_json(self, tmp_path):
        path = tmp_path / "companies.json"
        path.write_text(
            json.dumps([{"name": "Acme", "competitors": ["Globex"], "visibility_prompts": ["Best CRM?"]}]),
            encoding="utf-8",
        )

        [acme] = load_companies(path)

        assert acme.identifier == "acme"
        assert acme.language == "English"
        assert acme.visibility_prompts == ["Best CRM?"]

    def test_json_must_be_list(self, tmp_path):
        path = tmp_path / "companies.json"
        path.write_text('{"name": "Acme"}', encoding="utf-8")
        with pytest.raises(ValueError, match="expected a JSON list"):
            load_companies(path)

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "companies.xlsx"
        path.write_bytes(b"")
        with pytest.raises(ValueError, match="Unsupported company file type"):
            load_companies(path)
