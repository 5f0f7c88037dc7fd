"""
Conversational assistant backed by the Gemini adapter.

"auto" resolves to Gemini, the only configured backend. A generation failure
still answers, with an apology that carries the error text.
"""
from __future__ import annotations
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from engine.adapter import GeminiAdapter
from errors import AIConfigurationError, QuizValidationError
from models.base import utcnow

logger = logging.getLogger(__name__)

AVAILABLE_MODELS = ("gemini",)

FALLBACK_REPLY = (
    "I apologize, but I'm currently experiencing technical difficulties. "
    "Please try again in a moment or switch to a different AI model. Error: {error}"
)


@dataclass
class ChatAttachment:
    name: str
    type: str = ""


@dataclass
class ChatReply:
    response: str
    model: str
    success: bool = True
    timestamp: str = field(default_factory=lambda: utcnow().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compose_message(message: str, files: List[ChatAttachment]) -> str:
    if not files:
        return message
    listing = ", ".join(f"{f.name} ({f.type})" for f in files)
    return f"{message}\n\nAttached files: {listing}"


class ChatService:
    def __init__(self, adapter: GeminiAdapter) -> None:
        self._adapter = adapter

    @property
    def available_models(self) -> List[str]:
        return list(AVAILABLE_MODELS) if self._adapter.configured else []

    async def reply(
        self, message: str, model: str = "auto", files: Optional[List[ChatAttachment]] = None
    ) -> ChatReply:
        files = files or []
        if not message.strip() and not files:
            raise QuizValidationError("Message or files are required")
        selected = "gemini" if model == "auto" else model
        if selected not in AVAILABLE_MODELS:
            raise QuizValidationError(f"Unsupported model {model!r}. Use one of: auto, {', '.join(AVAILABLE_MODELS)}")
        if not self._adapter.configured:
            raise AIConfigurationError("Gemini API key not configured")

        logger.info("Chat request: %d chars, %d file(s), model %s", len(message), len(files), selected)
        result = await self._adapter.chat(compose_message(message, files))
        if not result.success:
            logger.warning("Chat generation failed: %s", result.error)
            return ChatReply(response=FALLBACK_REPLY.format(error=result.error), model=selected, success=False)
        return ChatReply(response=result.content, model=selected)
