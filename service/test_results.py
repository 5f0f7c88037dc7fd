"""
Tests for grading and result submission.
"""
import pytest

from conftest import quiz_payload
from errors import ForbiddenError, NotFoundError
from models.base import utcnow
from models.quiz import Question, QuestionType
from models.user import User
from service.quizzes import QuizService
from service.results import ResultService, SubmittedAnswer, is_answer_correct


class TestGrading:

    def test_short_answer_is_case_insensitive(self):
        q = Question(id="1", text="?", type=QuestionType.SHORT_ANSWER, correct_answer="Income Statement")
        assert is_answer_correct(q, "  income statement ")
        assert not is_answer_correct(q, "balance sheet")

    def test_multi_answer_compared_as_set(self):
        q = Question(id="1", text="?", options=["a", "b", "c"], correct_answer=["a", "c"])
        assert is_answer_correct(q, ["c", "a"])
        assert not is_answer_correct(q, ["a"])

    def test_repeated_choices_count_once(self):
        q = Question(id="1", text="?", options=["A", "B"], correct_answer=["A"])
        assert is_answer_correct(q, ["A", "A"])
        assert is_answer_correct(q, [" A", "A "])

    def test_multiple_choice_exact(self):
        q = Question(id="1", text="?", options=["Yes", "No"], correct_answer="Yes")
        assert is_answer_correct(q, "Yes")
        assert not is_answer_correct(q, "yes")


async def _published_quiz(repo, **overrides):
    return await QuizService(repo).create_quiz("author", quiz_payload(**overrides))


class TestSubmit:

    @pytest.mark.asyncio
    async def test_scores_and_updates_stats(self, repo):
        await repo.save_user(User(uid="u1", email="u1@example.com"))
        quiz = await _published_quiz(repo)
        answers = [
            SubmittedAnswer("q1", "Return on Investment", 10),
            SubmittedAnswer("q2", "False", 5),
            SubmittedAnswer("q3", "income statement", 20),
            SubmittedAnswer("ghost", "x", 1),
        ]
        result = await ResultService(repo).submit("u1", quiz.id, answers, time_taken=40, started_at=utcnow())

        assert result.earned_points == 3
        assert result.correct_answers == 2
        assert result.score == 75
        assert len(result.answers) == 3
        assert result.is_passed is True

        stored_quiz = await repo.get_quiz(quiz.id)
        assert stored_quiz.stats.total_attempts == 1
        assert stored_quiz.stats.average_score == 75
        user = await repo.get_user("u1")
        assert user.stats.total_results == 1
        assert user.stats.total_time_spent == 40

    @pytest.mark.asyncio
    async def test_half_percent_rounds_up(self, repo):
        questions = [
            {"id": f"q{i}", "text": f"Statement {i}", "type": "true-false",
             "options": ["True", "False"], "correct_answer": "True", "points": 1}
            for i in range(8)
        ]
        quiz = await _published_quiz(repo, questions=questions)
        answers = [SubmittedAnswer(f"q{i}", "True") for i in range(5)]
        result = await ResultService(repo).submit("u1", quiz.id, answers, time_taken=20, started_at=utcnow())
        assert result.earned_points == 5
        assert result.score == 63

    @pytest.mark.asyncio
    async def test_running_means(self, repo):
        quiz = await _published_quiz(repo)
        service = ResultService(repo)
        await service.submit("u1", quiz.id, [SubmittedAnswer("q1", "Return on Investment")], 10, utcnow())
        await service.submit("u2", quiz.id, [], 30, utcnow())
        stats = (await repo.get_quiz(quiz.id)).stats
        assert stats.total_attempts == 2
        assert stats.average_score == 25
        assert stats.average_time == 20

    @pytest.mark.asyncio
    async def test_missing_and_unpublished(self, repo):
        service = ResultService(repo)
        with pytest.raises(NotFoundError):
            await service.submit("u1", "nope", [], 1, utcnow())
        draft = await _published_quiz(repo, is_published=False)
        with pytest.raises(ForbiddenError):
            await service.submit("u1", draft.id, [], 1, utcnow())

    @pytest.mark.asyncio
    async def test_retakes_disabled(self, repo):
        quiz = await _published_quiz(repo, allow_retakes=False)
        service = ResultService(repo)
        await service.submit("u1", quiz.id, [], 1, utcnow())
        with pytest.raises(ForbiddenError, match="Retakes"):
            await service.submit("u1", quiz.id, [], 1, utcnow())
        await service.submit("u2", quiz.id, [], 1, utcnow())

    @pytest.mark.asyncio
    async def test_max_attempts(self, repo):
        quiz = await _published_quiz(repo, max_attempts=2)
        service = ResultService(repo)
        await service.submit("u1", quiz.id, [], 1, utcnow())
        await service.submit("u1", quiz.id, [], 1, utcnow())
        with pytest.raises(ForbiddenError, match="Maximum attempts"):
            await service.submit("u1", quiz.id, [], 1, utcnow())

    @pytest.mark.asyncio
    async def test_list_and_quiz_stats(self, repo):
        quiz = await _published_quiz(repo)
        service = ResultService(repo)
        await service.submit("u1", quiz.id, [SubmittedAnswer("q2", "True")], 10, utcnow())
        await service.submit("u1", quiz.id, [SubmittedAnswer("q1", "Return on Investment")], 30, utcnow())

        results, page = await service.list_results("u1", page=1, limit=1)
        assert len(results) == 1 and page.total == 2

        stats = await service.quiz_stats(quiz.id)
        assert stats.total_attempts == 2
        assert stats.best_score == 50
        assert stats.lowest_score == 25
        assert stats.average_time == 20

    @pytest.mark.asyncio
    async def test_stats_for_unattempted_quiz(self, repo):
        stats = await ResultService(repo).quiz_stats("nothing")
        assert stats.total_attempts == 0
