"""Tests for settings validation, JSON logging and the batch CLI."""

import csv
import json
import logging

import pytest

from fakes import FakeDiscovery, FakeJudge, FakeRegistry, topofmind
from llm_visibility import cli
from llm_visibility.core.config import Settings, validate_settings
from llm_visibility.core.exceptions import ConfigurationError
from llm_visibility.core.logging import JSONFormatter
from llm_visibility.export import RowWriter
from llm_visibility.gateway.types import Provider, RawAnswer
from llm_visibility.pipeline import VisibilityPipeline
from llm_visibility.schemas.company import CompanyProfile

KEY_VARS = [
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "GOOGLE_API_KEY",
    "MISTRAL_API_KEY",
    "PERPLEXITY_API_KEY",
    "XAI_API_KEY",
]


@pytest.fixture
def clean_env(monkeypatch):
    for var in KEY_VARS:
        monkeypatch.delenv(var, raising=False)


class TestSettings:
    def test_api_keys_only_configured(self, clean_env):
        s = Settings(_env_file=None, openai_api_key="o", xai_api_key="x")
        assert s.api_keys == {"openai": "o", "grok": "x"}

    def test_valid(self, clean_env):
        validate_settings(Settings(_env_file=None, openai_api_key="o"))

    def test_no_keys(self, clean_env):
        with pytest.raises(ConfigurationError, match="No LLM API keys found"):
            validate_settings(Settings(_env_file=None))

    def test_judge_key_required(self, clean_env):
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY is required"):
            validate_settings(Settings(_env_file=None, mistral_api_key="m"))

    def test_bounds(self, clean_env):
        with pytest.raises(ConfigurationError) as exc_info:
            validate_settings(Settings(_env_file=None, openai_api_key="o", runs=0, parallel_limit=0))
        assert "RUNS" in str(exc_info.value)
        assert "PARALLEL_LIMIT" in str(exc_info.value)


class TestJSONFormatter:
    def test_company_field(self):
        record = logging.LogRecord("llm_visibility.pipeline", logging.INFO, __file__, 1, "Completed %s", ("Acme",), None)
        record.company = "Acme"

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "Completed Acme"
        assert data["level"] == "INFO"
        assert data["company"] == "Acme"

    def test_without_company(self):
        record = logging.LogRecord("x", logging.WARNING, __file__, 1, "plain", (), None)
        assert "company" not in json.loads(JSONFormatter().format(record))


class TestParseArgs:
    def test_defaults(self):
        args = cli.parse_args(["companies.csv"])
        assert args.input == "companies.csv"
        assert args.format == "csv"
        assert args.runs is None and args.parallel is None
        assert args.max_companies == 0

    def test_overrides(self, clean_env, monkeypatch):
        monkeypatch.setattr(cli, "settings", Settings(_env_file=None, openai_api_key="o"))
        args = cli.parse_args(["c.json", "--runs", "2", "--parallel", "4", "--format", "jsonl"])

        effective = cli._effective_settings(args)

        assert (effective.runs, effective.parallel_limit) == (2, 4)
        assert cli.settings.runs == 5

    def test_invalid_format(self):
        with pytest.raises(SystemExit):
            cli.parse_args(["c.csv", "--format", "xlsx"])


class TestMain:
    def test_no_keys_exits_1(self, clean_env, monkeypatch, tmp_path):
        monkeypatch.setattr(cli, "settings", Settings(_env_file=None))
        assert cli.main([str(tmp_path / "companies.csv")]) == 1

    def test_missing_input_exits_1(self, clean_env, monkeypatch, tmp_path):
        monkeypatch.setattr(cli, "settings", Settings(_env_file=None, openai_api_key="o"))
        assert cli.main([str(tmp_path / "missing.csv")]) == 1

    def test_unsupported_input_exits_1(self, clean_env, monkeypatch, tmp_path):
        monkeypatch.setattr(cli, "settings", Settings(_env_file=None, openai_api_key="o"))
        path = tmp_path / "companies.txt"
        path.write_text("Acme", encoding="utf-8")
        assert cli.main([str(path)]) == 1


class TestRunBatch:
    @pytest.mark.asyncio
    async def test_rows_streamed_per_company(self, gpt_model, test_settings, tmp_path):
        registry = FakeRegistry([gpt_model], {Provider.OPENAI: RawAnswer(text="Acme is the leader.")})
        judge = FakeJudge(
            handler=lambda purpose, user: topofmind(("Acme", "ourbrand", "acme"))
            if purpose == "classify"
            else '{"sentiment": "neutral"}'
        )
        pipeline = VisibilityPipeline(registry, judge, test_settings, discovery=FakeDiscovery())
        companies = [
            CompanyProfile(name="Acme", competitors=["Globex"], visibility_prompts=["Best CRM?"]),
            CompanyProfile(name="Globex", competitors=["Acme"], sentiment_prompts=["Is {COMPANY} good?"]),
        ]
        path = tmp_path / "results.csv"

        with RowWriter(path) as writer:
            failed = await cli.run_batch(companies, pipeline, writer, runs=2)

        assert failed == 0
        with path.open(encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
        assert [(r["company"], r["category"]) for r in rows] == [
            ("Acme", "visibility"),
            ("Acme", "visibility"),
            ("Globex", "sentiment"),
        ]

    @pytest.mark.asyncio
    async def test_counts_companies_without_successful_runs(self, gpt_model, test_settings, tmp_path):
        registry = FakeRegistry([gpt_model], {Provider.OPENAI: RuntimeError("connection reset")})
        pipeline = VisibilityPipeline(registry, FakeJudge(), test_settings, discovery=FakeDiscovery())
        companies = [CompanyProfile(name="Acme", competitors=["Globex"], visibility_prompts=["Best CRM?"])]

        with RowWriter(tmp_path / "results.jsonl", "jsonl") as writer:
            failed = await cli.run_batch(companies, pipeline, writer, runs=1)

        assert failed == 1
        assert writer.rows_written == 1
