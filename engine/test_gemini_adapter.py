"""
Tests for the Gemini REST adapter, using httpx.MockTransport.
"""
import json

import httpx
import pytest

from engine.adapter import GeminiAdapter
from errors import AIConfigurationError


def _ok(text):
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def _adapter(handler, api_key="secret"):
    return GeminiAdapter(
        api_key=api_key,
        api_url="https://gemini.test/v1beta/models/",
        model="gemini-test",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


class TestGenerate:

    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["body"] = json.loads(request.content)
            return _ok("hello")

        result = await _adapter(handler).generate("Say hi", temperature=0.1, max_tokens=64)

        assert result.success and result.content == "hello"
        assert seen["url"].path == "/v1beta/models/gemini-test:generateContent"
        assert seen["url"].params["key"] == "secret"
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "Say hi"
        assert seen["body"]["generationConfig"] == {"temperature": 0.1, "maxOutputTokens": 64, "topP": 0.8, "topK": 40}

    @pytest.mark.asyncio
    async def test_http_error_is_reported(self):
        def handler(request):
            return httpx.Response(403, json={"error": {"message": "API key invalid"}})

        result = await _adapter(handler).generate("x")
        assert not result.success
        assert result.error == "Gemini API error: 403 - API key invalid"

    @pytest.mark.asyncio
    async def test_no_candidates(self):
        result = await _adapter(lambda request: httpx.Response(200, json={"candidates": []})).generate("x")
        assert not result.success
        assert "No response" in result.error

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("boom", request=request)

        result = await _adapter(handler).generate("x")
        assert not result.success

    @pytest.mark.asyncio
    async def test_missing_key_raises(self):
        adapter = _adapter(lambda request: _ok("never"), api_key="")
        assert not adapter.configured
        with pytest.raises(AIConfigurationError):
            await adapter.generate("x")


class TestHelpers:

    @pytest.mark.asyncio
    async def test_connection(self):
        assert await _adapter(lambda request: _ok("OK")).test_connection()
        assert not await _adapter(lambda request: _ok("nope")).test_connection()
        assert not await _adapter(lambda request: _ok("OK"), api_key="").test_connection()

    @pytest.mark.asyncio
    async def test_quiz_prompt_mentions_count(self):
        prompts = []

        def handler(request):
            prompts.append(json.loads(request.content)["contents"][0]["parts"][0]["text"])
            return _ok("{}")

        await _adapter(handler).generate_quiz_questions("Some content", question_count=7, include_explanations=False)
        assert "EXACTLY 7" in prompts[0]
        assert "No explanations needed" in prompts[0]

    @pytest.mark.asyncio
    async def test_analysis_uses_small_budget(self):
        budgets = []

        def handler(request):
            budgets.append(json.loads(request.content)["generationConfig"]["maxOutputTokens"])
            return _ok("{}")

        await _adapter(handler).analyze_answers("A: correct")
        assert budgets == [500]

    @pytest.mark.asyncio
    async def test_chat_prompt_and_budget(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return _ok("Hello there")

        result = await _adapter(handler).chat("What is a balance sheet?")
        assert result.content == "Hello there"
        assert "What is a balance sheet?" in seen["body"]["contents"][0]["parts"][0]["text"]
        assert seen["body"]["generationConfig"]["maxOutputTokens"] == 1000
        assert seen["body"]["generationConfig"]["temperature"] == 0.7
