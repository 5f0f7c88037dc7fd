"""
Tests for the chat assistant.
"""
import json

import httpx
import pytest

from engine.adapter import GeminiAdapter
from errors import AIConfigurationError, QuizValidationError
from service.chat import ChatAttachment, ChatService, compose_message


def _gemini(handler, api_key="k") -> GeminiAdapter:
    return GeminiAdapter(api_key=api_key, api_url="https://gemini.test/models", model="m",
                         transport=httpx.MockTransport(handler))


def _reply(text):
    return lambda request: httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def test_compose_lists_attachments():
    assert compose_message("Hi", []) == "Hi"
    files = [ChatAttachment("notes.pdf", "application/pdf"), ChatAttachment("deck.pptx")]
    assert compose_message("Summarise", files) == "Summarise\n\nAttached files: notes.pdf (application/pdf), deck.pptx ()"


class TestReply:

    @pytest.mark.asyncio
    async def test_auto_uses_gemini(self):
        prompts = []

        def handler(request):
            prompts.append(json.loads(request.content)["contents"][0]["parts"][0]["text"])
            return _reply("A balance sheet lists assets.")(request)

        reply = await ChatService(_gemini(handler)).reply("What is a balance sheet?", files=[ChatAttachment("a.pdf", "application/pdf")])
        assert reply.model == "gemini"
        assert reply.success and reply.response == "A balance sheet lists assets."
        assert "Attached files: a.pdf (application/pdf)" in prompts[0]

    @pytest.mark.asyncio
    async def test_generation_failure_still_answers(self):
        service = ChatService(_gemini(lambda request: httpx.Response(500, json={"error": {"message": "overloaded"}})))
        reply = await service.reply("Hello", model="gemini")
        assert not reply.success
        assert reply.response.startswith("I apologize")
        assert "overloaded" in reply.response

    @pytest.mark.asyncio
    async def test_rejects_empty_and_unknown_model(self):
        service = ChatService(_gemini(_reply("x")))
        with pytest.raises(QuizValidationError, match="Message or files"):
            await service.reply("   ")
        with pytest.raises(QuizValidationError, match="Unsupported model"):
            await service.reply("Hello", model="huggingface")

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        service = ChatService(_gemini(_reply("x"), api_key=""))
        assert service.available_models == []
        with pytest.raises(AIConfigurationError):
            await service.reply("Hello")
