"""
Tests for the domain records and pure live-quiz helpers.
"""
import pytest
from pydantic import ValidationError

from models.live_quiz import (
    LiveQuizParticipant,
    LiveQuizStatus,
    ParticipantAnswer,
    QuizJSONFormat,
    ScoringConfig,
    calculate_accuracy,
    calculate_average_time,
    calculate_rank,
    can_transition,
    generate_shareable_link,
)
from models.quiz import Question, Quiz
from models.result import Result
from models.base import round_half_up, utcnow


def _answer(correct: bool, seconds: float) -> ParticipantAnswer:
    return ParticipantAnswer(question_id="q", selected_answer="a", is_correct=correct, time_taken=seconds, points=1)


class TestRanking:

    def test_ties_share_rank(self):
        people = [
            LiveQuizParticipant(user_id="a", name="A", score=10),
            LiveQuizParticipant(user_id="b", name="B", score=7),
            LiveQuizParticipant(user_id="c", name="C", score=10),
            LiveQuizParticipant(user_id="d", name="D", score=3),
        ]
        assert calculate_rank(people, 10) == 1
        assert calculate_rank(people, 7) == 3
        assert calculate_rank(people, 3) == 4

    def test_unknown_score(self):
        assert calculate_rank([], 5) == 0


class TestAnswerStats:

    def test_accuracy_and_average(self):
        answers = [_answer(True, 4), _answer(False, 6), _answer(True, 2), _answer(True, 8)]
        assert calculate_accuracy(answers) == 75
        assert calculate_average_time(answers) == 5

    def test_empty(self):
        assert calculate_accuracy([]) == 0
        assert calculate_average_time([]) == 0


class TestScoringConfig:

    def test_camel_case_input(self):
        config = ScoringConfig.model_validate({"correctPoints": 3, "incorrectPoints": -1})
        assert config.correct_points == 3 and config.incorrect_points == -1

    @pytest.mark.parametrize("data", [{"correct_points": -1}, {"correct_points": 1, "incorrect_points": 2}])
    def test_rejects_invalid(self, data):
        with pytest.raises(ValidationError):
            ScoringConfig.model_validate(data)


class TestStatusTable:

    def test_allowed(self):
        assert can_transition(LiveQuizStatus.DRAFT, LiveQuizStatus.PUBLISHED)
        assert can_transition(LiveQuizStatus.PAUSED, LiveQuizStatus.LIVE)
        assert can_transition(LiveQuizStatus.PUBLISHED, LiveQuizStatus.COMPLETED)

    def test_forbidden(self):
        assert not can_transition(LiveQuizStatus.DRAFT, LiveQuizStatus.LIVE)
        assert not can_transition(LiveQuizStatus.COMPLETED, LiveQuizStatus.LIVE)
        assert not can_transition(LiveQuizStatus.LIVE, LiveQuizStatus.DRAFT)


def test_shareable_link():
    assert generate_shareable_link("https://locus.app/", "abc") == "https://locus.app/live-quiz/abc"


def test_quiz_json_format_accepts_camel_case():
    parsed = QuizJSONFormat.model_validate({
        "title": "T", "description": "", "category": "c",
        "questions": [{"id": "1", "text": "Q", "options": ["a", "b"], "correctAnswer": "b"}],
    })
    assert parsed.questions[0].correct_answer == "b"


class TestQuizRecord:

    def test_total_points_and_tags(self):
        quiz = Quiz(
            id="q", title="  T  ", description="d", subject="s", created_by="u",
            tags=[" Finance ", "", "BASICS"],
            questions=[
                Question(id="1", text="a", correct_answer="x", points=2),
                Question(id="2", text="b", correct_answer="y", points=3),
            ],
        )
        assert quiz.title == "T"
        assert quiz.total_points == 5
        assert quiz.tags == ["finance", "basics"]
        assert quiz.estimated_time == 4

    def test_requires_questions(self):
        with pytest.raises(ValidationError):
            Quiz(id="q", title="T", description="d", subject="s", created_by="u", questions=[])

    def test_time_limit_bounds(self):
        with pytest.raises(ValidationError):
            Quiz(id="q", title="T", description="d", subject="s", created_by="u", time_limit=481,
                 questions=[Question(id="1", text="a", correct_answer="x")])


def test_result_derived_fields():
    result = Result(
        id="r", quiz_id="q", user_id="u", score=70, total_questions=4, correct_answers=3,
        total_points=4, earned_points=3, time_taken=120, started_at=utcnow(),
    )
    assert result.is_passed is True
    assert result.average_time_per_question == 30


def test_round_half_up():
    assert round_half_up(62.5) == 63
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4) == 2
    assert round_half_up(0) == 0


def test_average_time_rounds_half_up():
    result = Result(
        id="r", quiz_id="q", user_id="u", score=50, total_questions=4, correct_answers=2,
        total_points=4, earned_points=2, time_taken=10, started_at=utcnow(),
    )
    assert result.average_time_per_question == 3
