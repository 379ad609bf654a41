from pydantic_settings import BaseSettings, SettingsConfigDict

from llm_visibility.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Provider credentials: a provider is only registered when its key is set
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    google_api_key: str = ""
    mistral_api_key: str = ""
    perplexity_api_key: str = ""
    xai_api_key: str = ""

    # Batch execution
    runs: int = 5  # Repetitions of each visibility prompt per model
    parallel_limit: int = 10  # Max in-flight provider calls
    answer_temperature: float = 0.7
    answer_max_tokens: int = 1000

    # Judge (secondary analysis call, OpenAI chat completions)
    judge_model: str = "gpt-4o"
    judge_temperature: float = 0.2
    judge_max_tokens: int = 500
    judge_timeout_seconds: float = 60.0

    # Redirect resolution for grounding citations
    redirect_timeout_seconds: float = 5.0
    redirect_max_hops: int = 5

    # App
    app_env: str = "development"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # set True in production for structured JSON logs

    # Sentry
    sentry_dsn: str = ""  # leave empty to disable

    @property
    def api_keys(self) -> dict[str, str]:
        """Provider name → API key, only for configured providers."""
        keys = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "google": self.google_api_key,
            "mistral": self.mistral_api_key,
            "perplexity": self.perplexity_api_key,
            "grok": self.xai_api_key,
        }
        return {provider: key for provider, key in keys.items() if key}


settings = Settings()


def validate_settings(s: Settings | None = None) -> None:
    """Validate settings needed for a batch run. Called by the CLI before dispatch."""
    s = s or settings
    errors: list[str] = []

    if not s.api_keys:
        errors.append(
            "No LLM API keys found. Set at least one of OPENAI_API_KEY, ANTHROPIC_API_KEY, "
            "GOOGLE_API_KEY, MISTRAL_API_KEY, PERPLEXITY_API_KEY, XAI_API_KEY"
        )

    if not s.openai_api_key:
        errors.append("OPENAI_API_KEY is required: responses are analyzed with an OpenAI judge model")

    if s.runs < 1:
        errors.append("RUNS must be at least 1")

    if s.parallel_limit < 1:
        errors.append("PARALLEL_LIMIT must be at least 1")

    if errors:
        raise ConfigurationError("Configuration errors:\n  - " + "\n  - ".join(errors))
