"""
Tests for question bank access and answer grading.
"""
import pytest

from portal.core.exceptions import InvalidInputError
from portal.core.scoring import (
    calculate_percentage,
    get_questions_by_category,
    list_categories,
    score_answers,
)


class TestQuestionBank:
    def test_only_active_questions_for_category(self, db_session, test_questions):
        questions = get_questions_by_category(db_session, "Frontend Developer")

        assert len(questions) == 3
        assert all(q.is_active for q in questions)
        assert [q.id for q in questions] == sorted(q.id for q in questions)

    def test_limit(self, db_session, test_questions):
        questions = get_questions_by_category(db_session, "Frontend Developer", limit=2)

        assert len(questions) == 2

    def test_unknown_category_is_empty(self, db_session, test_questions):
        assert get_questions_by_category(db_session, "Astronaut") == []

    def test_list_categories(self, db_session, test_questions):
        assert list_categories(db_session) == ["Frontend Developer", "Python Developer"]


class TestCalculatePercentage:
    @pytest.mark.parametrize(
        "correct,total,expected",
        [(0, 0, 0.0), (1, 3, 33.33), (2, 3, 66.67), (3, 3, 100.0)],
    )
    def test_rounding(self, correct, total, expected):
        assert calculate_percentage(correct, total) == expected


class TestScoreAnswers:
    def test_grades_against_correct_index(self, db_session, test_questions):
        q1, q2, q3 = test_questions[:3]
        answers = [
            {"question_id": q1.id, "selected_answer": 1},
            {"question_id": q2.id, "selected_answer": 3},
            {"question_id": q3.id, "selected_answer": None},
        ]

        result = score_answers(db_session, answers, passing_percentage=50.0)

        assert result["total_questions"] == 3
        assert result["correct_count"] == 1
        assert result["percentage"] == 33.33
        assert result["passed"] is False
        assert [d["isCorrect"] for d in result["details"]] == [True, False, False]
        assert result["details"][2]["selectedAnswer"] is None

    def test_threshold_is_inclusive(self, db_session, test_questions):
        q1, q2 = test_questions[:2]
        answers = [
            {"question_id": q1.id, "selected_answer": 1},
            {"question_id": q2.id, "selected_answer": 2},
        ]

        result = score_answers(db_session, answers, passing_percentage=50.0)

        assert result["percentage"] == 50.0
        assert result["passed"] is True

    def test_repeated_question_keeps_last_answer(self, db_session, test_questions):
        q1 = test_questions[0]
        answers = [
            {"question_id": q1.id, "selected_answer": 0},
            {"question_id": q1.id, "selected_answer": 1},
        ]

        result = score_answers(db_session, answers, passing_percentage=50.0)

        assert result["total_questions"] == 1
        assert result["correct_count"] == 1

    def test_empty_answers(self, db_session):
        result = score_answers(db_session, [], passing_percentage=50.0)

        assert result["total_questions"] == 0
        assert result["percentage"] == 0.0
        assert result["passed"] is False

    def test_unknown_question_rejected(self, db_session, test_questions):
        with pytest.raises(InvalidInputError) as exc_info:
            score_answers(
                db_session,
                [{"question_id": 9999, "selected_answer": 0}],
                passing_percentage=50.0,
            )

        assert "9999" in exc_info.value.message
