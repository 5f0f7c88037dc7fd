"""
Rule-based question quality analysis.

Each question gets three 0-100 sub-scores (readability, option balance,
clarity), a weighted overall score, a keyword-guessed difficulty and
category, and lists of issues / suggestions / strengths. A quiz analysis
rolls these up and adds findings about the quiz as a whole.
"""
from __future__ import annotations
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from models.base import round_half_up

DIFFICULTY_KEYWORDS: Dict[str, Sequence[str]] = {
    "easy": (
        "what", "when", "where", "who", "which", "name", "identify", "list",
        "basic", "simple", "common", "obvious", "well-known",
    ),
    "medium": (
        "explain", "describe", "compare", "contrast", "analyze", "discuss",
        "how", "why", "because", "reason", "cause", "effect",
    ),
    "hard": (
        "evaluate", "critique", "assess", "justify", "argue", "prove",
        "complex", "advanced", "sophisticated", "theoretical", "abstract",
    ),
}

QUESTION_CATEGORIES: Dict[str, Sequence[str]] = {
    "factual": ("what", "when", "where", "who", "which", "name"),
    "conceptual": ("explain", "describe", "define", "identify"),
    "analytical": ("analyze", "compare", "contrast", "examine"),
    "evaluative": ("evaluate", "assess", "critique", "judge"),
    "application": ("apply", "use", "demonstrate", "show"),
    "synthesis": ("create", "design", "develop", "construct"),
}

VAGUE_WORDS = ("thing", "stuff", "something", "anything", "everything", "nothing")
CONNECTIVES = ("because", "since", "although", "however", "therefore")


@dataclass
class QuestionInput:
    id: str
    text: str
    options: List[str] = field(default_factory=list)


@dataclass
class QuestionAnalysis:
    question_id: str
    score: int
    difficulty: str
    category: str
    suggestions: List[str]
    issues: List[str]
    strengths: List[str]
    readability_score: float
    option_balance_score: float
    clarity_score: float


@dataclass
class QuizAnalysis:
    total_questions: int
    average_score: int
    difficulty_distribution: Dict[str, int]
    category_distribution: Dict[str, int]
    overall_suggestions: List[str]
    quality_issues: List[str]
    strengths: List[str]
    questions: List[QuestionAnalysis] = field(default_factory=list)


# --------------------------- Scores -------------------------------------------

def count_syllables(text: str) -> int:
    """Vowel-group approximation: at least one syllable per word."""
    total = 0
    for word in text.lower().split():
        total += max(1, len(re.sub(r"[^aeiouy]", "", word)))
    return total


def readability_score(text: str) -> float:
    """Flesch reading ease, clamped to 0..100."""
    words = len(text.split()) or 1
    # trailing punctuation yields an empty last segment, matching a plain split count
    sentences = len(re.split(r"[.!?]+", text))
    syllables = count_syllables(text)
    flesch = 206.835 - 1.015 * (words / sentences) - 84.6 * (syllables / words)
    return max(0.0, min(100.0, flesch))


def option_balance_score(options: Sequence[str]) -> float:
    if len(options) < 2:
        return 0.0
    lengths = [len(o) for o in options]
    mean = sum(lengths) / len(lengths)
    stddev = math.sqrt(sum((n - mean) ** 2 for n in lengths) / len(lengths))
    balance = max(0.0, 100 - stddev * 2)
    bonus = 10 if len(options) == 4 else 0
    return min(100.0, balance + bonus)


def clarity_score(text: str) -> float:
    lowered = text.lower()
    score = 100
    score -= 10 * sum(1 for w in VAGUE_WORDS if w in lowered)
    if len(text) > 200:
        score -= 20
    if len(text) > 300:
        score -= 20
    if len(text) < 10:
        score -= 30
    score += 5 * sum(1 for t in CONNECTIVES if t in lowered)
    return float(max(0, min(100, score)))


def determine_difficulty(text: str) -> str:
    lowered = text.lower()
    counts = {level: sum(1 for k in words if k in lowered) for level, words in DIFFICULTY_KEYWORDS.items()}
    if counts["hard"] > counts["medium"] and counts["hard"] > counts["easy"]:
        return "hard"
    if counts["medium"] > counts["easy"]:
        return "medium"
    return "easy"


def determine_category(text: str) -> str:
    lowered = text.lower()
    best, best_score = "factual", 0
    for category, keywords in QUESTION_CATEGORIES.items():
        score = sum(1 for k in keywords if k in lowered)
        if score > best_score:
            best, best_score = category, score
    return best


# --------------------------- Analysis -----------------------------------------

def _band(score: float, low: str, fix: str, high: str, issues: List[str], suggestions: List[str], strengths: List[str]) -> None:
    if score < 60:
        issues.append(low)
        suggestions.append(fix)
    elif score > 80:
        strengths.append(high)


def _specific_issues(question: QuestionInput, issues: List[str], suggestions: List[str], strengths: List[str]) -> None:
    text = question.text.lower()
    options = [o.lower() for o in question.options]

    if any(w in o for o in options for w in ("none", "all", "both", "neither")):
        issues.append("Contains potentially obvious wrong answers")
        suggestions.append('Review options for "all of the above" or "none of the above" patterns')

    if "not" in text or "except" in text or "least" in text:
        issues.append("Negative question detected")
        suggestions.append("Consider rephrasing as a positive question for clarity")

    if any("all of the above" in o or "none of the above" in o for o in options):
        issues.append('Contains "all/none of the above" options')
        suggestions.append("These options can make questions easier to guess")

    if options:
        lengths = [len(o) for o in question.options]
        shortest = min(lengths)
        if shortest == 0 or max(lengths) / shortest > 3:
            issues.append("Significant option length imbalance")
            suggestions.append("Make options more similar in length")

    if "?" in text:
        strengths.append("Question ends with proper punctuation")
    else:
        issues.append("Question lacks proper punctuation")
        suggestions.append("End questions with a question mark")

    if 20 <= len(question.text) <= 100:
        strengths.append("Question length is appropriate")


def analyze_question(question: QuestionInput) -> QuestionAnalysis:
    readability = readability_score(question.text)
    balance = option_balance_score(question.options)
    clarity = clarity_score(question.text)
    score = round_half_up(readability * 0.3 + balance * 0.4 + clarity * 0.3)

    issues: List[str] = []
    suggestions: List[str] = []
    strengths: List[str] = []
    _band(readability, "Question text is difficult to read", "Use simpler language and shorter sentences",
          "Question is very readable", issues, suggestions, strengths)
    _band(balance, "Options are imbalanced", "Make options more similar in length and complexity",
          "Options are well-balanced", issues, suggestions, strengths)
    _band(clarity, "Question lacks clarity", "Make the question more specific and unambiguous",
          "Question is clear and specific", issues, suggestions, strengths)
    _specific_issues(question, issues, suggestions, strengths)

    return QuestionAnalysis(
        question_id=question.id,
        score=score,
        difficulty=determine_difficulty(question.text),
        category=determine_category(question.text),
        suggestions=suggestions,
        issues=issues,
        strengths=strengths,
        readability_score=readability,
        option_balance_score=balance,
        clarity_score=clarity,
    )


def analyze_quiz(questions: Sequence[QuestionInput]) -> QuizAnalysis:
    if not questions:
        raise ValueError("At least one question is required")
    analyses = [analyze_question(q) for q in questions]
    total = len(analyses)
    mean = sum(a.score for a in analyses) / total

    difficulty = {level: 0 for level in DIFFICULTY_KEYWORDS}
    categories: Dict[str, int] = {}
    for a in analyses:
        difficulty[a.difficulty] += 1
        categories[a.category] = categories.get(a.category, 0) + 1

    suggestions: List[str] = []
    issues: List[str] = []
    strengths: List[str] = []

    if difficulty["easy"] / total * 100 > 70:
        issues.append("Quiz is heavily weighted toward easy questions")
        suggestions.append("Consider adding more medium and hard questions for better assessment")
    if difficulty["hard"] / total * 100 > 50:
        issues.append("Quiz is heavily weighted toward hard questions")
        suggestions.append("Consider adding more easy and medium questions for accessibility")

    if mean < 60:
        issues.append("Overall question quality is low")
        suggestions.append("Review and improve questions based on individual analysis")
    elif mean > 80:
        strengths.append("Overall question quality is high")

    if len(categories) < 3:
        issues.append("Limited variety in question types")
        suggestions.append("Include more diverse question categories")
    else:
        strengths.append("Good variety in question types")

    issue_counts = Counter(issue for a in analyses for issue in a.issues)
    for issue, count in issue_counts.items():
        if count > total * 0.3:
            suggestions.append(f"Address common issue: {issue} (appears in {count} questions)")

    return QuizAnalysis(
        total_questions=total,
        average_score=round_half_up(mean),
        difficulty_distribution=difficulty,
        category_distribution=categories,
        overall_suggestions=suggestions,
        quality_issues=issues,
        strengths=strengths,
        questions=analyses,
    )


def generate_improvement_suggestions(question: QuestionInput) -> List[str]:
    suggestions = list(analyze_question(question).suggestions)
    if question.options:
        if len(question.options) < 4:
            suggestions.append("Consider adding more options for better assessment")
        if len(question.options) > 4:
            suggestions.append("Consider reducing to 4 options for optimal choice")
    if len(question.text) < 20:
        suggestions.append("Expand question to provide more context")
    if len(question.text) > 150:
        suggestions.append("Consider breaking long question into multiple parts")
    return suggestions
