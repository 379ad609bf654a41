"""Tests for the judge client (mocked HTTP)."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from llm_visibility.analysis.judge import OPENAI_CHAT_URL, JudgeClient
from llm_visibility.core.exceptions import JudgeError


def _make_httpx_response(status_code: int, json_data: dict | None = None, text: str = "") -> httpx.Response:
    request = httpx.Request("POST", OPENAI_CHAT_URL)
    if json_data is not None:
        return httpx.Response(status_code, json=json_data, request=request)
    return httpx.Response(status_code, text=text, request=request)


def _install_client(mock_client_cls, response=None, error=None):
    mock_client = AsyncMock()
    if error is not None:
        mock_client.post.side_effect = error
    else:
        mock_client.post.return_value = response
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=None)
    mock_client_cls.return_value = mock_client
    return mock_client


class TestJudgeClient:
    @pytest.mark.asyncio
    async def test_success(self):
        judge = JudgeClient(api_key="test-key")

        with patch("llm_visibility.analysis.judge.httpx.AsyncClient") as mock_client_cls:
            mock_client = _install_client(
                mock_client_cls,
                _make_httpx_response(200, json_data={"choices": [{"message": {"content": '{"topOfMind": []}'}}]}),
            )
            raw = await judge.complete("system", "user")

        assert raw == '{"topOfMind": []}'
        payload = mock_client.post.call_args.kwargs["json"]
        assert payload["model"] == "gpt-4o"
        assert payload["temperature"] == 0.2
        assert payload["max_tokens"] == 500
        assert payload["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]
        assert mock_client.post.call_args.kwargs["headers"]["Authorization"] == "Bearer test-key"

    @pytest.mark.asyncio
    async def test_temperature_override(self):
        judge = JudgeClient(api_key="test-key")

        with patch("llm_visibility.analysis.judge.httpx.AsyncClient") as mock_client_cls:
            mock_client = _install_client(
                mock_client_cls,
                _make_httpx_response(200, json_data={"choices": [{"message": {"content": "ok"}}]}),
            )
            await judge.complete("s", "u", temperature=0.0)

        assert mock_client.post.call_args.kwargs["json"]["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_http_error(self):
        judge = JudgeClient(api_key="test-key")

        with patch("llm_visibility.analysis.judge.httpx.AsyncClient") as mock_client_cls:
            _install_client(mock_client_cls, _make_httpx_response(500, text="server error"))
            with pytest.raises(JudgeError, match="HTTP 500"):
                await judge.complete("s", "u", purpose="sentiment")

    @pytest.mark.asyncio
    async def test_timeout(self):
        judge = JudgeClient(api_key="test-key", timeout=5)

        with patch("llm_visibility.analysis.judge.httpx.AsyncClient") as mock_client_cls:
            _install_client(mock_client_cls, error=httpx.ReadTimeout("timeout"))
            with pytest.raises(JudgeError, match="timed out after 5s"):
                await judge.complete("s", "u")

    @pytest.mark.asyncio
    async def test_empty_content(self):
        judge = JudgeClient(api_key="test-key")

        with patch("llm_visibility.analysis.judge.httpx.AsyncClient") as mock_client_cls:
            _install_client(
                mock_client_cls,
                _make_httpx_response(200, json_data={"choices": [{"message": {"content": None}}]}),
            )
            with pytest.raises(JudgeError, match="empty"):
                await judge.complete("s", "u")

    @pytest.mark.asyncio
    async def test_malformed_payload(self):
        judge = JudgeClient(api_key="test-key")

        with patch("llm_visibility.analysis.judge.httpx.AsyncClient") as mock_client_cls:
            _install_client(mock_client_cls, _make_httpx_response(200, json_data={"error": "nope"}))
            with pytest.raises(JudgeError, match="malformed"):
                await judge.complete("s", "u")

    def test_from_settings(self, test_settings):
        judge = JudgeClient.from_settings(test_settings)
        assert judge.api_key == "test-key"
        assert judge.model == test_settings.judge_model
        assert judge.max_tokens == test_settings.judge_max_tokens
