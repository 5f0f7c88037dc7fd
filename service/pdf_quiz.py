"""
Turn extracted document text into a quiz template.

With an AI key configured the text generator writes the questions; any AI
failure (or no key) falls back to a keyword/template generator that needs no
network access.
"""
from __future__ import annotations
import json
import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from engine.adapter import GeminiAdapter

logger = logging.getLogger(__name__)

MAX_TOPICS = 5
MAX_TEMPLATE_QUESTIONS = 5
MINUTES_PER_QUESTION = 2

TOPIC_KEYWORDS = (
    "leadership", "management", "finance", "marketing", "operations",
    "strategy", "innovation", "quality", "efficiency", "technology",
    "business", "economics", "accounting", "human resources", "hr",
    "sales", "customer", "product", "service", "development",
)

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


@dataclass
class TemplateQuestion:
    question: str
    options: List[str]
    correct_answer: str
    explanation: Optional[str] = None
    topic: Optional[str] = None


@dataclass
class TemplateMetadata:
    total_questions: int
    topics: List[str]
    difficulty: str
    estimated_time: int
    source: str = "template"


@dataclass
class QuizTemplate:
    title: str
    description: str
    questions: List[TemplateQuestion] = field(default_factory=list)
    metadata: Optional[TemplateMetadata] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AIResponseError(ValueError):
    """The generator answered, but not with a usable quiz."""


# --------------------------- Template generator --------------------------------

def extract_topics(text: str) -> List[str]:
    lowered = text.lower()
    topics: List[str] = []
    for keyword in TOPIC_KEYWORDS:
        if keyword in lowered:
            label = keyword[0].upper() + keyword[1:]
            if label not in topics:
                topics.append(label)
    return topics[:MAX_TOPICS] or ["General Knowledge"]


def template_questions(text: str, topics: List[str]) -> List[TemplateQuestion]:
    lowered = text.lower()
    main = topics[0] if topics else "Business Management"
    questions = [
        TemplateQuestion(
            question="What is the main topic discussed in this document?",
            options=[main, "Technology", "Healthcare", "Education"],
            correct_answer=main,
            explanation="Based on content analysis",
            topic=topics[0] if topics else "General",
        )
    ]
    if "leadership" in lowered:
        questions.append(TemplateQuestion(
            question="Which concept is most emphasized in the text?",
            options=["Leadership", "Innovation", "Efficiency", "Quality"],
            correct_answer="Leadership",
            explanation="Leadership concepts appear frequently in the text",
            topic="Leadership",
        ))
    questions.append(TemplateQuestion(
        question="What type of content is this document?",
        options=["Educational Material", "Technical Manual", "Business Report", "Research Paper"],
        correct_answer="Educational Material",
        explanation="Content appears to be educational in nature",
        topic="Document Analysis",
    ))
    if "management" in lowered or "strategy" in lowered:
        questions.append(TemplateQuestion(
            question="What is a key principle mentioned in the document?",
            options=["Strategic Planning", "Cost Reduction", "Market Expansion", "Product Development"],
            correct_answer="Strategic Planning",
            explanation="Strategic planning is a fundamental management principle",
            topic="Management",
        ))
    if "business" in lowered or "company" in lowered:
        questions.append(TemplateQuestion(
            question="What is essential for business success according to the text?",
            options=["Adaptation to Change", "Cost Cutting", "Market Dominance", "Product Innovation"],
            correct_answer="Adaptation to Change",
            explanation="Businesses must adapt to changing conditions",
            topic="Business Strategy",
        ))
    return questions[:MAX_TEMPLATE_QUESTIONS]


def template_quiz(text: str, title: str) -> QuizTemplate:
    topics = extract_topics(text)
    questions = template_questions(text, topics)
    return QuizTemplate(
        title=title,
        description=f"Quiz generated from PDF content. Topics covered: {', '.join(topics)}",
        questions=questions,
        metadata=TemplateMetadata(
            total_questions=len(questions),
            topics=topics,
            difficulty="Intermediate",
            estimated_time=len(questions) * MINUTES_PER_QUESTION,
        ),
    )


# --------------------------- AI response parsing -------------------------------

def extract_json_object(raw: str) -> Dict[str, Any]:
    """Strip code fences and parse the outermost {...} block."""
    text = _FENCE.sub("", raw.strip())
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        raise AIResponseError("No JSON object found in AI response")
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise AIResponseError(f"AI response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise AIResponseError("AI response is not a JSON object")
    return data


def _resolve_answer(options: List[str], answer: Any) -> Optional[str]:
    """A 0-based index (int or digit string) or the option text itself."""
    if isinstance(answer, bool):
        return None
    if isinstance(answer, int):
        return options[answer] if 0 <= answer < len(options) else None
    if isinstance(answer, str):
        value = answer.strip()
        if value in options:
            return value
        if value.isdigit() and int(value) < len(options):
            return options[int(value)]
    return None


def parse_ai_quiz(raw: str, title: str) -> QuizTemplate:
    data = extract_json_object(raw)
    questions: List[TemplateQuestion] = []
    for item in data.get("questions") or []:
        if not isinstance(item, dict):
            continue
        text = str(item.get("question") or item.get("text") or "").strip()
        options = [str(o).strip() for o in item.get("options") or [] if str(o).strip()]
        answer = _resolve_answer(options, item.get("correctAnswer", item.get("correct_answer")))
        if not text or len(options) < 2 or answer is None or options.count(answer) != 1:
            continue
        questions.append(TemplateQuestion(
            question=text,
            options=options,
            correct_answer=answer,
            explanation=item.get("explanation"),
            topic=item.get("topic"),
        ))
    if not questions:
        raise AIResponseError("AI response contained no usable questions")

    topics = [q.topic for q in questions if q.topic]
    return QuizTemplate(
        title=title or str(data.get("title") or "Generated Quiz"),
        description=str(data.get("description") or "Quiz generated from PDF content"),
        questions=questions,
        metadata=TemplateMetadata(
            total_questions=len(questions),
            topics=list(dict.fromkeys(topics))[:MAX_TOPICS],
            difficulty="Intermediate",
            estimated_time=len(questions) * MINUTES_PER_QUESTION,
            source="ai",
        ),
    )


# --------------------------- Service -------------------------------------------

class PdfQuizService:
    def __init__(self, adapter: Optional[GeminiAdapter] = None) -> None:
        self._adapter = adapter or GeminiAdapter()

    async def convert(self, pdf_text: str, title: str = "Generated Quiz", question_count: int = 10) -> QuizTemplate:
        if not pdf_text or not pdf_text.strip():
            raise ValueError("PDF text is required")

        if self._adapter.configured:
            result = await self._adapter.generate_quiz_questions(pdf_text, question_count)
            if result.success:
                try:
                    return parse_ai_quiz(result.content, title)
                except AIResponseError as e:
                    logger.warning("Falling back to template quiz: %s", e)
            else:
                logger.warning("Falling back to template quiz: %s", result.error)

        logger.info("Building template quiz from %d chars of text", len(pdf_text))
        return template_quiz(pdf_text, title)
