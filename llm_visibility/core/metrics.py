"""Prometheus metrics for provider, judge and redirect calls."""

from prometheus_client import Counter, Histogram, Info

APP_INFO = Info("llm_visibility", "LLM visibility pipeline info")
APP_INFO.info({"version": "1.0.0", "name": "llm_visibility"})

PROVIDER_CALLS = Counter(
    "llm_provider_calls_total",
    "Total LLM provider calls",
    ["provider", "status"],
)

PROVIDER_CALL_DURATION = Histogram(
    "llm_provider_call_duration_seconds",
    "LLM provider call duration in seconds",
    ["provider"],
    buckets=[0.5, 1, 2.5, 5, 10, 20, 30, 60, 120],
)

JUDGE_CALLS = Counter(
    "llm_judge_calls_total",
    "Total judge (analysis) calls",
    ["purpose", "status"],
)

REDIRECT_RESOLUTIONS = Counter(
    "llm_redirect_resolutions_total",
    "Grounding redirect URL resolutions by outcome",
    ["outcome"],
)
