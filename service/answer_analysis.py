"""
Topic-level analysis of an answer summary such as "Marketing: wrong, Finance: correct".
"""
from __future__ import annotations
import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from engine.adapter import GeminiAdapter
from models.base import round_half_up
from service.pdf_quiz import AIResponseError, extract_json_object

logger = logging.getLogger(__name__)

FORMAT_HINT = 'Answers must be in format: "Topic: result, Topic: result" (e.g., "Marketing: wrong, Finance: correct")'

_ENTRY = re.compile(r"([^:,]+):\s*(correct|wrong|incorrect)", re.IGNORECASE)


@dataclass
class AnswerAnalysis:
    weak_topics: List[str] = field(default_factory=list)
    strong_topics: List[str] = field(default_factory=list)
    score: float = 0
    recommendation: str = ""
    source: str = "local"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def validate_answers(answers: Any) -> bool:
    return isinstance(answers, str) and bool(_ENTRY.search(answers))


def format_answers(answers: str) -> str:
    return re.sub(r"\s+", " ", answers).strip()


def tally(answers: str) -> List[Tuple[str, bool]]:
    return [(topic.strip(), verdict.lower() == "correct") for topic, verdict in _ENTRY.findall(answers)]


def local_analysis(answers: str) -> AnswerAnalysis:
    """Deterministic analysis from per-topic right/wrong counts."""
    counts: Dict[str, List[int]] = {}
    for topic, ok in tally(answers):
        right_wrong = counts.setdefault(topic, [0, 0])
        right_wrong[0 if ok else 1] += 1

    total = sum(r + w for r, w in counts.values())
    correct = sum(r for r, _ in counts.values())
    weak = [t for t, (r, w) in counts.items() if w > r]
    strong = [t for t, (r, w) in counts.items() if r >= w and r > 0]
    score = round_half_up(correct / total * 100) if total else 0

    if weak:
        recommendation = f"Focus on improving {', '.join(weak)}."
        if strong:
            recommendation += f" Keep building on your strength in {', '.join(strong)}."
    elif strong:
        recommendation = f"Great work across {', '.join(strong)}. Try harder material to keep improving."
    else:
        recommendation = "Not enough answers to analyze."
    return AnswerAnalysis(weak_topics=weak, strong_topics=strong, score=score, recommendation=recommendation)


def _parse_ai(raw: str) -> AnswerAnalysis:
    data = extract_json_object(raw)
    weak, strong = data.get("weak_topics"), data.get("strong_topics")
    score, recommendation = data.get("score"), data.get("recommendation")
    if not isinstance(weak, list) or not isinstance(strong, list):
        raise AIResponseError("Invalid response structure from AI model")
    if isinstance(score, bool) or not isinstance(score, (int, float)) or not recommendation:
        raise AIResponseError("Invalid response structure from AI model")
    return AnswerAnalysis(
        weak_topics=[str(t) for t in weak],
        strong_topics=[str(t) for t in strong],
        score=score,
        recommendation=str(recommendation),
        source="ai",
    )


class AnswerAnalysisService:
    def __init__(self, adapter: Optional[GeminiAdapter] = None) -> None:
        self._adapter = adapter or GeminiAdapter()

    async def analyze(self, answers: str) -> AnswerAnalysis:
        if not validate_answers(answers):
            raise ValueError(FORMAT_HINT)
        formatted = format_answers(answers)

        if self._adapter.configured:
            result = await self._adapter.analyze_answers(formatted)
            if result.success:
                try:
                    return _parse_ai(result.content)
                except AIResponseError as e:
                    logger.warning("Falling back to local answer analysis: %s", e)
            else:
                logger.warning("Falling back to local answer analysis: %s", result.error)
        return local_analysis(formatted)
