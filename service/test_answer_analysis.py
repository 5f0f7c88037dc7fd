"""
Tests for topic-level answer analysis.
"""
import json

import httpx
import pytest

from engine.adapter import GeminiAdapter
from service.answer_analysis import (
    FORMAT_HINT,
    AnswerAnalysisService,
    format_answers,
    local_analysis,
    tally,
    validate_answers,
)

ANSWERS = "Marketing: wrong, Finance: correct, Marketing: incorrect, Finance: wrong, HR: correct"


def _gemini(text: str) -> GeminiAdapter:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})

    return GeminiAdapter(api_key="k", api_url="https://gemini.test/models", model="m",
                         transport=httpx.MockTransport(handler))


class TestParsing:

    @pytest.mark.parametrize("value,expected", [
        (ANSWERS, True),
        ("Finance: CORRECT", True),
        ("hello", False),
        ("", False),
        (42, False),
    ])
    def test_validate(self, value, expected):
        assert validate_answers(value) is expected

    def test_format_collapses_whitespace(self):
        assert format_answers("  A: correct,\n   B: wrong ") == "A: correct, B: wrong"

    def test_tally(self):
        assert tally("Sales: wrong, Ops: Correct") == [("Sales", False), ("Ops", True)]


def test_local_analysis():
    analysis = local_analysis(ANSWERS)
    assert analysis.weak_topics == ["Marketing"]
    assert analysis.strong_topics == ["Finance", "HR"]
    assert analysis.score == 40
    assert analysis.recommendation.startswith("Focus on improving Marketing.")
    assert analysis.source == "local"


class TestAnswerAnalysisService:

    @pytest.mark.asyncio
    async def test_rejects_bad_format(self):
        with pytest.raises(ValueError) as exc:
            await AnswerAnalysisService(GeminiAdapter(api_key="")).analyze("nonsense")
        assert str(exc.value) == FORMAT_HINT

    @pytest.mark.asyncio
    async def test_local_without_key(self):
        analysis = await AnswerAnalysisService(GeminiAdapter(api_key="")).analyze(ANSWERS)
        assert analysis.source == "local"

    @pytest.mark.asyncio
    async def test_uses_ai_response(self):
        body = {"weak_topics": ["Marketing"], "strong_topics": ["HR"], "score": 55, "recommendation": "Review pricing."}
        analysis = await AnswerAnalysisService(_gemini(json.dumps(body))).analyze(ANSWERS)
        assert analysis.source == "ai"
        assert analysis.to_dict() == {**body, "source": "ai"}

    @pytest.mark.asyncio
    async def test_incomplete_ai_response_falls_back(self):
        body = {"weak_topics": "Marketing", "score": 55}
        analysis = await AnswerAnalysisService(_gemini(json.dumps(body))).analyze(ANSWERS)
        assert analysis.source == "local"
        assert analysis.score == 40
