"""
Adapter around the Gemini `generateContent` REST endpoint.

Callers get a GenerationResult back instead of an exception for HTTP and
response-shape failures, so they can fall back to local generation. Only a
missing API key raises.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from config import settings
from errors import AIConfigurationError

logger = logging.getLogger(__name__)

CONTENT_EXCERPT_CHARS = 4000


@dataclass
class GenerationResult:
    content: str
    success: bool
    error: Optional[str] = None


class GeminiAdapter:
    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = settings.gemini_api_key if api_key is None else api_key
        self._api_url = (api_url or settings.gemini_api_url).rstrip("/")
        self._model = model or settings.gemini_model
        self._timeout = timeout or settings.ai_timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _endpoint(self) -> str:
        return f"{self._api_url}/{self._model}:generateContent"

    async def generate(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        top_p: float = 0.8,
        top_k: int = 40,
    ) -> GenerationResult:
        if not self._api_key:
            raise AIConfigurationError("Gemini API key not configured")

        payload: Dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": settings.ai_temperature if temperature is None else temperature,
                "maxOutputTokens": max_tokens or settings.ai_max_tokens,
                "topP": top_p,
                "topK": top_k,
            },
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._endpoint(), params={"key": self._api_key}, json=payload)
            if response.status_code >= 400:
                raise RuntimeError(f"Gemini API error: {response.status_code} - {_error_message(response)}")
            data = response.json()
            candidates = data.get("candidates") or []
            if not candidates:
                raise RuntimeError("No response generated from Gemini")
            content = candidates[0]["content"]["parts"][0]["text"]
        except (httpx.HTTPError, RuntimeError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning("Gemini request failed: %s", e)
            return GenerationResult(content="", success=False, error=str(e))

        logger.info("Gemini response received (%d chars)", len(content))
        return GenerationResult(content=content, success=True)

    async def test_connection(self) -> bool:
        try:
            result = await self.generate('Hello! Please respond with "OK" if you can hear me.')
        except AIConfigurationError:
            return False
        return result.success and "ok" in result.content.lower()

    async def generate_quiz_questions(
        self, content: str, question_count: int = 10, include_explanations: bool = True
    ) -> GenerationResult:
        explanation_rule = "Include explanations for correct answers" if include_explanations else "No explanations needed"
        explanation_field = '\n      "explanation": "Why this answer is correct...",' if include_explanations else ""
        prompt = f"""Convert this educational content into a quiz format. Generate exactly {question_count} multiple-choice questions.

Content:
{content[:CONTENT_EXCERPT_CHARS]}...

Requirements:
1. Create EXACTLY {question_count} high-quality multiple-choice questions
2. Each question must have exactly 4 options (A, B, C, D)
3. Use correctAnswer as 0-based index (0, 1, 2, 3)
4. {explanation_rule}
5. Ensure questions cover different aspects of the content
6. Make questions challenging but fair

Return ONLY this JSON structure:
{{
  "title": "Quiz Title Based on Content",
  "description": "Brief description of what this quiz covers",
  "questions": [
    {{
      "question": "Question text here?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": 0,{explanation_field}
    }}
  ]
}}

JSON:"""
        return await self.generate(prompt, temperature=0.3)

    async def analyze_answers(self, answers: str) -> GenerationResult:
        prompt = f"""Analyze these quiz results and return ONLY a valid JSON object with no explanations:

Quiz Results: {answers}

Instructions:
1. Identify weak topics (where answers were wrong)
2. Identify strong topics (where answers were correct)
3. Calculate score as percentage (0-100)
4. Provide a personalized recommendation for improvement

Return ONLY a valid JSON object in this exact format:
{{
  "weak_topics": ["topic1", "topic2"],
  "strong_topics": ["topic3", "topic4"],
  "score": 75,
  "recommendation": "Focus on improving weak topics..."
}}

JSON:"""
        return await self.generate(prompt, temperature=0.3, max_tokens=500)

    async def chat(self, message: str) -> GenerationResult:
        prompt = f"""You are a helpful AI assistant. Please respond to the following message in a conversational and helpful manner:

{message}

Please provide a clear, informative, and engaging response."""
        return await self.generate(prompt, temperature=0.7, max_tokens=1000)


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("error", {}).get("message") or "Unknown error"
    except (ValueError, AttributeError):
        return "Unknown error"
