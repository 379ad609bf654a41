"""Test doubles shared across test modules."""

import json

from llm_visibility.gateway.types import Provider


class FakeJudge:
    """Judge double: scripted outputs in call order, or a handler(purpose, user_prompt)."""

    def __init__(self, responses=None, handler=None, model="fake-judge"):
        self.responses = list(responses or [])
        self.handler = handler
        self.model = model
        self.calls: list[tuple[str, str, str]] = []

    async def complete(self, system_prompt, user_prompt, purpose="classify", temperature=None):
        self.calls.append((purpose, system_prompt, user_prompt))
        result = self.handler(purpose, user_prompt) if self.handler else self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeRegistry:
    """Adapter registry double keyed by provider: a RawAnswer, an exception, or a callable(prompt)."""

    def __init__(self, models, answers):
        self.models = tuple(models)
        self.answers = answers
        self.prompts: list[tuple[Provider, str]] = []

    async def invoke(self, model, prompt, temperature=0.7):
        self.prompts.append((model.provider, prompt))
        answer = self.answers[model.provider]
        if callable(answer):
            answer = answer(prompt)
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeDiscovery:
    def __init__(self, competitors=None):
        self.competitors = list(competitors or [])
        self.calls = []

    async def discover(self, brand, website, market, language="English"):
        self.calls.append((brand, website, market, language))
        return list(self.competitors)


def topofmind(*items) -> str:
    """Judge-style classifier output from (name, type, id) tuples."""
    return json.dumps({"topOfMind": [{"name": n, "type": t, "id": i} for n, t, i in items]})
