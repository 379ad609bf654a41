"""Judge client: the secondary LLM call used for analysis.

Answers are never analyzed locally; classification, sentiment and
competitor discovery all go through a chat completions call to a judge
model (OpenAI by default, any OpenAI-compatible endpoint works).
"""

from __future__ import annotations

import logging

import httpx

from llm_visibility.core.config import Settings
from llm_visibility.core.exceptions import JudgeError
from llm_visibility.core.metrics import JUDGE_CALLS

logger = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
PERPLEXITY_CHAT_URL = "https://api.perplexity.ai/chat/completions"

JUDGE_MODEL = "gpt-4o"
JUDGE_TEMPERATURE = 0.2
JUDGE_MAX_TOKENS = 500
JUDGE_TIMEOUT = 60  # seconds


class JudgeClient:
    """Chat completions client for judge-style calls."""

    def __init__(
        self,
        api_key: str,
        model: str = JUDGE_MODEL,
        temperature: float = JUDGE_TEMPERATURE,
        max_tokens: int = JUDGE_MAX_TOKENS,
        timeout: float = JUDGE_TIMEOUT,
        api_url: str = OPENAI_CHAT_URL,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.api_url = api_url

    @classmethod
    def from_settings(cls, settings: Settings) -> JudgeClient:
        return cls(
            api_key=settings.openai_api_key,
            model=settings.judge_model,
            temperature=settings.judge_temperature,
            max_tokens=settings.judge_max_tokens,
            timeout=settings.judge_timeout_seconds,
        )

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        purpose: str = "classify",
        temperature: float | None = None,
    ) -> str:
        """Return the judge's raw text output.

        Raises:
            JudgeError: timeout, HTTP error, or an empty / malformed response.
        """
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": self.max_tokens,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    self.api_url,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                )
                resp.raise_for_status()
                data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except httpx.TimeoutException as e:
            JUDGE_CALLS.labels(purpose=purpose, status="timeout").inc()
            raise JudgeError(f"{purpose} judge call timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            JUDGE_CALLS.labels(purpose=purpose, status="error").inc()
            raise JudgeError(f"{purpose} judge call HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            JUDGE_CALLS.labels(purpose=purpose, status="error").inc()
            raise JudgeError(f"{purpose} judge call failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            JUDGE_CALLS.labels(purpose=purpose, status="error").inc()
            raise JudgeError(f"{purpose} judge returned a malformed response: {e!r}") from e

        if not content or not str(content).strip():
            JUDGE_CALLS.labels(purpose=purpose, status="empty").inc()
            raise JudgeError(f"{purpose} judge returned an empty response")

        JUDGE_CALLS.labels(purpose=purpose, status="success").inc()
        return str(content)
