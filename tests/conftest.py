import pytest

from llm_visibility.core.config import Settings
from llm_visibility.gateway.types import ModelConfiguration, Provider, RawAnswer


@pytest.fixture
def gpt_model():
    return ModelConfiguration(provider=Provider.OPENAI, model="gpt-4o", name="GPT-4o")


@pytest.fixture
def mistral_model():
    return ModelConfiguration(provider=Provider.MISTRAL, model="mistral-medium-2505", name="Mistral Medium 2025")


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        openai_api_key="test-key",
        anthropic_api_key="",
        google_api_key="",
        mistral_api_key="",
        perplexity_api_key="",
        xai_api_key="",
        runs=3,
        parallel_limit=2,
    )


@pytest.fixture
def acme_answer():
    return RawAnswer(
        text="Top picks: Acme, Globex Corporation and Initech. See https://acme.com for details.",
        consulted_urls=["https://acme.com", "https://www.globex.com/about"],
    )
