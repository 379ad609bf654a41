"""Provider Adapters — protocol-level handling for each LLM provider.

Each adapter builds its provider's request, sends it, and normalizes the
provider-specific response into a RawAnswer (answer text + consulted URLs).
Provider response shapes never leave this module.

Provider-specific behaviors:
  - OpenAI: Responses API with hosted web_search_preview tool, url_citation
    annotations; falls back to plain chat completions (no citations)
  - Anthropic: Messages API agentic web_search tool loop; citations from text
    blocks and web_search_tool_result blocks, search queries echoed inline
  - Google: generateContent with google_search grounding; groundingChunks
    are redirect links that go through the RedirectResolver
  - Mistral: no citation tool; URLs scraped from the answer text
  - Perplexity: direct citations → legacy sources → text scrape
  - Grok: live search sources → text scrape
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import httpx

from llm_visibility.core.exceptions import ProviderAdapterError
from llm_visibility.core.metrics import PROVIDER_CALL_DURATION, PROVIDER_CALLS
from llm_visibility.gateway.normalizer import dedupe_urls, extract_urls_from_text, finalize_urls
from llm_visibility.gateway.redirect_resolver import RedirectResolver
from llm_visibility.gateway.types import (
    DEFAULT_PROVIDER_CONFIGS,
    ModelConfiguration,
    Provider,
    ProviderConfig,
    RawAnswer,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 1000
DEFAULT_TEMPERATURE = 0.7


def _message_text(content: Any) -> str:
    """Chat completion content is a string, or a list of typed chunks on some providers."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            chunk.get("text", "") for chunk in content if isinstance(chunk, dict) and chunk.get("type", "text") == "text"
        )
    return ""


def _chat_completion_text(data: dict) -> str:
    return _message_text(data["choices"][0]["message"].get("content"))


class BaseVendorAdapter(ABC):
    """Base class for all provider adapters."""

    provider: Provider

    def __init__(
        self,
        api_key: str,
        config: ProviderConfig | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        **kwargs,
    ):
        self.api_key = api_key
        self.config = config or DEFAULT_PROVIDER_CONFIGS[self.provider]
        self.max_tokens = max_tokens

    @property
    def default_model(self) -> str:
        return self.config.default_model

    async def invoke(
        self,
        model_id: str,
        prompt: str,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> RawAnswer:
        """Send the prompt and return the normalized answer.

        Raises:
            ProviderAdapterError: transport, auth or HTTP failure, malformed
                payload, or an empty answer.
        """
        model = model_id or self.default_model
        start = time.monotonic()
        status = "error"
        try:
            answer = await self._invoke(model, prompt, temperature)
            if not answer.text.strip():
                raise ProviderAdapterError(self.provider.value, f"empty answer from {model}")
            answer.consulted_urls = finalize_urls(answer.consulted_urls)
            status = "success"
            return answer
        except httpx.TimeoutException as e:
            status = "timeout"
            raise ProviderAdapterError(
                self.provider.value, f"timeout after {self.config.timeout_seconds}s"
            ) from e
        except httpx.HTTPStatusError as e:
            raise ProviderAdapterError(
                self.provider.value,
                f"HTTP {e.response.status_code} for model={model}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderAdapterError(self.provider.value, f"transport error: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderAdapterError(self.provider.value, f"malformed response: {e!r}") from e
        finally:
            PROVIDER_CALLS.labels(provider=self.provider.value, status=status).inc()
            PROVIDER_CALL_DURATION.labels(provider=self.provider.value).observe(time.monotonic() - start)

    @abstractmethod
    async def _invoke(self, model: str, prompt: str, temperature: float) -> RawAnswer:
        """Provider-specific request + normalization."""
        ...

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _post(
        self,
        url: str,
        payload: dict,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict:
        async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
            resp = await client.post(
                url,
                json=payload,
                headers=headers if headers is not None else self._headers(),
                params=params,
            )
            if resp.status_code >= 400:
                logger.error(
                    "%s API %d for model=%s: %s",
                    self.provider.value,
                    resp.status_code,
                    payload.get("model", ""),
                    resp.text[:500],
                )
            resp.raise_for_status()
            return resp.json()


# ---------------------------------------------------------------------------
# Provider A: OpenAI (hosted web search tool, chat completion fallback)
# ---------------------------------------------------------------------------

_WEB_SEARCH_MODEL_PREFIXES = ("gpt-4o", "gpt-4.1")


class OpenAIAdapter(BaseVendorAdapter):
    """OpenAI Responses API with web_search_preview, falling back to chat completions."""

    provider = Provider.OPENAI
    responses_url = "https://api.openai.com/v1/responses"
    chat_url = "https://api.openai.com/v1/chat/completions"

    async def _invoke(self, model: str, prompt: str, temperature: float) -> RawAnswer:
        if model.startswith(_WEB_SEARCH_MODEL_PREFIXES):
            try:
                answer = self.parse_responses_output(await self._web_search(model, prompt, temperature))
                if answer.text:
                    return answer
                logger.warning("Web search returned no text for %s, falling back to regular completion", model)
            except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
                logger.warning("Web search failed for %s, falling back to regular completion: %s", model, e)

        payload = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": self.max_tokens,
        }
        data = await self._post(self.chat_url, payload)
        return RawAnswer(text=_chat_completion_text(data) or "")

    async def _web_search(self, model: str, prompt: str, temperature: float) -> dict:
        payload = {
            "model": model,
            "input": prompt,
            "temperature": temperature,
            "max_output_tokens": self.max_tokens,
            "tools": [{"type": "web_search_preview"}],
        }
        return await self._post(self.responses_url, payload)

    @staticmethod
    def parse_responses_output(data: dict) -> RawAnswer:
        """Concatenate output_text segments; collect url_citation annotations."""
        text = ""
        urls: list[str] = []
        for item in data.get("output") or []:
            if item.get("type") != "message":
                continue
            for content in item.get("content") or []:
                if content.get("type") != "output_text":
                    continue
                text += content.get("text") or ""
                for annotation in content.get("annotations") or []:
                    if annotation.get("type") == "url_citation" and annotation.get("url"):
                        urls.append(annotation["url"])
        return RawAnswer(text=text or data.get("output_text") or "", consulted_urls=dedupe_urls(urls))


# ---------------------------------------------------------------------------
# Provider B: Anthropic (agentic web search tool loop)
# ---------------------------------------------------------------------------


class AnthropicAdapter(BaseVendorAdapter):
    """Anthropic Messages API with the server-side web_search tool."""

    provider = Provider.ANTHROPIC
    api_url = "https://api.anthropic.com/v1/messages"
    api_version = "2023-06-01"
    system_prompt = "To answer the user's question, search the web when you need current information."

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "Content-Type": "application/json",
        }

    async def _invoke(self, model: str, prompt: str, temperature: float) -> RawAnswer:
        payload = {
            "model": model,
            "max_tokens": self.max_tokens,
            "temperature": temperature,
            "system": self.system_prompt,
            "messages": [{"role": "user", "content": prompt}],
            "tools": [{"type": "web_search_20250305", "name": "web_search", "max_uses": 3}],
        }
        return self.parse_message(await self._post(self.api_url, payload))

    @staticmethod
    def parse_message(data: dict) -> RawAnswer:
        """Merge inline text citations with web_search_tool_result sources.

        Search queries are echoed into the text as "[Searching for: ...]"
        markers for traceability; they never contribute citations.
        """
        text = ""
        urls: list[str] = []
        searches = 0

        for block in data.get("content") or []:
            block_type = block.get("type")

            if block_type == "text":
                text += block.get("text") or ""
                for citation in block.get("citations") or []:
                    if citation.get("url"):
                        urls.append(citation["url"])

            elif block_type == "server_tool_use" and block.get("name") == "web_search":
                searches += 1
                block_input = block.get("input")
                query = block_input.get("query") if isinstance(block_input, dict) else None
                text += f"\n[Searching for: {query or 'information'}]\n"

            elif block_type == "web_search_tool_result":
                results = block.get("content")
                if isinstance(results, list):
                    for result in results:
                        if result.get("type") == "web_search_result" and result.get("url"):
                            urls.append(result["url"])

        if searches:
            logger.debug("Anthropic used web search %d times, %d sources", searches, len(urls))
        return RawAnswer(text=text, consulted_urls=dedupe_urls(urls))


# ---------------------------------------------------------------------------
# Provider C: Google Gemini (search grounding with redirect links)
# ---------------------------------------------------------------------------


class GoogleAdapter(BaseVendorAdapter):
    """Gemini generateContent with google_search grounding."""

    provider = Provider.GOOGLE
    api_url_template = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def __init__(self, api_key: str, resolver: RedirectResolver | None = None, **kwargs):
        super().__init__(api_key=api_key, **kwargs)
        self.resolver = resolver or RedirectResolver()

    async def _invoke(self, model: str, prompt: str, temperature: float) -> RawAnswer:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": self.max_tokens,
            },
            "tools": [{"google_search": {}}],
        }
        data = await self._post(
            self.api_url_template.format(model=model),
            payload,
            headers={"Content-Type": "application/json"},
            params={"key": self.api_key},
        )

        text, chunks = self.parse_candidate(data)

        # Redirect links resolve concurrently; order of chunks is kept
        resolved = await asyncio.gather(*(self.resolver.resolve(uri, title) for uri, title in chunks))
        urls = [url for url in resolved if url]
        if len(urls) != len(chunks):
            logger.debug("Dropped %d grounding citations that did not resolve", len(chunks) - len(urls))
        return RawAnswer(text=text, consulted_urls=dedupe_urls(urls))

    @staticmethod
    def parse_candidate(data: dict) -> tuple[str, list[tuple[str, str | None]]]:
        """Return (answer text, distinct grounding (uri, title) pairs)."""
        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason", "")
            raise ValueError(f"no candidates (blockReason={block_reason or 'none'})")

        candidate = candidates[0]
        if candidate.get("finishReason") == "SAFETY":
            raise ValueError("candidate blocked by safety filter")

        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if "text" in part)

        chunks: list[tuple[str, str | None]] = []
        seen: set[str] = set()
        metadata = candidate.get("groundingMetadata") or {}
        for chunk in metadata.get("groundingChunks") or []:
            web = chunk.get("web") or {}
            uri = web.get("uri")
            if uri and uri not in seen:
                seen.add(uri)
                chunks.append((uri, web.get("title")))
        return text, chunks


# ---------------------------------------------------------------------------
# Provider D: Mistral (no native citations)
# ---------------------------------------------------------------------------


class MistralAdapter(BaseVendorAdapter):
    """Mistral chat completions; citations recovered from the answer text."""

    provider = Provider.MISTRAL
    api_url = "https://api.mistral.ai/v1/chat/completions"
    system_prompt = (
        "You are a knowledgeable assistant. Use your most current training data and knowledge "
        "to provide accurate, up-to-date information."
    )

    async def _invoke(self, model: str, prompt: str, temperature: float) -> RawAnswer:
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
            "max_tokens": self.max_tokens,
        }
        text = _chat_completion_text(await self._post(self.api_url, payload))
        return RawAnswer(text=text, consulted_urls=extract_urls_from_text(text))


# ---------------------------------------------------------------------------
# Provider E: Perplexity (tiered citation sources)
# ---------------------------------------------------------------------------

_PERPLEXITY_LEGACY_SOURCE_KEYS = ("search_results", "web_search_results", "sources")


class PerplexityAdapter(BaseVendorAdapter):
    """Perplexity chat completions with native citations."""

    provider = Provider.PERPLEXITY
    api_url = "https://api.perplexity.ai/chat/completions"

    async def _invoke(self, model: str, prompt: str, temperature: float) -> RawAnswer:
        payload = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": self.max_tokens,
        }
        return self.parse_completion(await self._post(self.api_url, payload))

    @staticmethod
    def parse_completion(data: dict) -> RawAnswer:
        """Citations: direct list → legacy source objects → text scrape, first non-empty wins."""
        text = _chat_completion_text(data)

        urls = dedupe_urls(
            url for url in data.get("citations") or [] if isinstance(url, str) and url.startswith("http")
        )
        if urls:
            return RawAnswer(text=text, consulted_urls=urls)

        for key in _PERPLEXITY_LEGACY_SOURCE_KEYS:
            sources = data.get(key)
            if isinstance(sources, list):
                urls = dedupe_urls(s.get("url", "") for s in sources if isinstance(s, dict))
                if urls:
                    return RawAnswer(text=text, consulted_urls=urls)

        return RawAnswer(text=text, consulted_urls=extract_urls_from_text(text))


# ---------------------------------------------------------------------------
# Provider F: xAI Grok (live search sources)
# ---------------------------------------------------------------------------


class GrokAdapter(BaseVendorAdapter):
    """xAI chat completions with live search returning structured sources."""

    provider = Provider.GROK
    api_url = "https://api.x.ai/v1/chat/completions"
    system_prompt = (
        "You have access to real-time web search. Use it to provide current and accurate "
        "information when needed."
    )

    async def _invoke(self, model: str, prompt: str, temperature: float) -> RawAnswer:
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
            "max_tokens": self.max_tokens,
            "search_parameters": {"mode": "auto", "return_citations": True},
        }
        return self.parse_completion(await self._post(self.api_url, payload))

    @staticmethod
    def parse_completion(data: dict) -> RawAnswer:
        text = _chat_completion_text(data)
        sources = []
        for source in data.get("citations") or []:
            if isinstance(source, str):
                sources.append(source)
            elif isinstance(source, dict) and source.get("url"):
                sources.append(source["url"])
        urls = dedupe_urls(sources)
        return RawAnswer(text=text, consulted_urls=urls or extract_urls_from_text(text))


# ---------------------------------------------------------------------------
# Adapter registry
# ---------------------------------------------------------------------------

ADAPTER_CLASSES: dict[Provider, type[BaseVendorAdapter]] = {
    Provider.OPENAI: OpenAIAdapter,
    Provider.ANTHROPIC: AnthropicAdapter,
    Provider.GOOGLE: GoogleAdapter,
    Provider.MISTRAL: MistralAdapter,
    Provider.PERPLEXITY: PerplexityAdapter,
    Provider.GROK: GrokAdapter,
}


def get_adapter(provider: Provider, api_key: str, **kwargs) -> BaseVendorAdapter:
    """Factory: get the appropriate adapter for a provider."""
    cls = ADAPTER_CLASSES.get(provider)
    if cls is None:
        raise ValueError(f"No adapter registered for provider: {provider}")
    return cls(api_key=api_key, **kwargs)


@dataclass(frozen=True)
class AdapterRegistry:
    """Read-only set of enabled adapters plus the dispatch targets they expose.

    Built once at startup and passed to the pipeline; tests substitute
    their own adapters.
    """

    adapters: Mapping[Provider, BaseVendorAdapter]
    models: tuple[ModelConfiguration, ...]

    @classmethod
    def from_adapters(cls, adapters: Mapping[Provider, BaseVendorAdapter]) -> AdapterRegistry:
        models = tuple(
            ModelConfiguration(
                provider=provider,
                model=adapter.default_model,
                name=adapter.config.display_name,
            )
            for provider, adapter in adapters.items()
        )
        return cls(adapters=MappingProxyType(dict(adapters)), models=models)

    def __contains__(self, provider: object) -> bool:
        return provider in self.adapters

    def get(self, provider: Provider) -> BaseVendorAdapter | None:
        return self.adapters.get(provider)

    async def invoke(
        self,
        model: ModelConfiguration,
        prompt: str,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> RawAnswer:
        adapter = self.adapters.get(model.provider)
        if adapter is None:
            raise ProviderAdapterError(model.provider.value, "provider not configured")
        return await adapter.invoke(model.model, prompt, temperature)


def build_adapter_registry(
    api_keys: Mapping[str, str],
    resolver: RedirectResolver | None = None,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> AdapterRegistry:
    """Create one adapter per provider that has a credential; skip the rest."""
    adapters: dict[Provider, BaseVendorAdapter] = {}
    for provider in Provider:
        api_key = api_keys.get(provider.value, "")
        if not api_key:
            logger.debug("No API key for %s — provider not registered", provider.value)
            continue
        kwargs: dict[str, Any] = {"max_tokens": max_tokens}
        if provider == Provider.GOOGLE and resolver is not None:
            kwargs["resolver"] = resolver
        adapters[provider] = get_adapter(provider, api_key, **kwargs)

    registry = AdapterRegistry.from_adapters(adapters)
    logger.info(
        "Registered %d providers: %s",
        len(registry.models),
        ", ".join(f"{m.name} ({m.provider.value}/{m.model})" for m in registry.models) or "none",
    )
    return registry
