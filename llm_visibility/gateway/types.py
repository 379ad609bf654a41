"""Core types and DTOs for the LLM provider gateway."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Provider(str, Enum):
    """Supported LLM providers."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    MISTRAL = "mistral"
    PERPLEXITY = "perplexity"
    GROK = "grok"


# ---------------------------------------------------------------------------
# Dispatch targets and units of work
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelConfiguration:
    """One dispatch target: a provider plus the model to call on it."""

    provider: Provider
    model: str  # e.g. "gpt-4o", "sonar-pro"
    name: str  # Display name, e.g. "GPT-4o"


@dataclass(frozen=True)
class PromptTask:
    """A single (run, prompt, model) unit of work.

    Carries its own indices so results can be reassembled by identity
    regardless of completion order.
    """

    prompt: str
    run_index: int
    prompt_index: int
    model: ModelConfiguration


# ---------------------------------------------------------------------------
# Normalized provider output
# ---------------------------------------------------------------------------


@dataclass
class RawAnswer:
    """Normalized answer from any provider — same shape regardless of vendor."""

    text: str = ""
    consulted_urls: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Provider config
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProviderConfig:
    """Connection configuration for a provider."""

    provider: Provider
    default_model: str
    display_name: str
    timeout_seconds: float = 60.0  # Total latency bound per call


DEFAULT_PROVIDER_CONFIGS: dict[Provider, ProviderConfig] = {
    Provider.OPENAI: ProviderConfig(
        provider=Provider.OPENAI,
        default_model="gpt-4o",
        display_name="GPT-4o",
        timeout_seconds=90,
    ),
    Provider.ANTHROPIC: ProviderConfig(
        provider=Provider.ANTHROPIC,
        default_model="claude-3-7-sonnet-20250219",
        display_name="Claude 3.7 Sonnet",
        timeout_seconds=120,  # Agentic tool loop: several searches per call
    ),
    Provider.GOOGLE: ProviderConfig(
        provider=Provider.GOOGLE,
        default_model="gemini-2.0-flash",
        display_name="Gemini 2.0 Flash",
        timeout_seconds=60,
    ),
    Provider.MISTRAL: ProviderConfig(
        provider=Provider.MISTRAL,
        default_model="mistral-medium-2505",
        display_name="Mistral Medium 2025",
        timeout_seconds=60,
    ),
    Provider.PERPLEXITY: ProviderConfig(
        provider=Provider.PERPLEXITY,
        default_model="sonar-pro",
        display_name="Perplexity Sonar Pro",
        timeout_seconds=90,
    ),
    Provider.GROK: ProviderConfig(
        provider=Provider.GROK,
        default_model="grok-3-latest",
        display_name="Grok 3 Latest",
        timeout_seconds=90,
    ),
}
