"""
Question bank access and assessment scoring.

The question bank is read-only here: questions are served by category
without their correct answer, and answers are graded against the stored
correct option index.
"""
import logging
from typing import Dict, List, Optional, Sequence, TypedDict

from sqlalchemy.orm import Session

from portal.core.exceptions import InvalidInputError
from portal.models.models import MCQQuestion

logger = logging.getLogger(__name__)


class AnswerInput(TypedDict):
    """One candidate answer: the question and the chosen option index."""

    question_id: int
    selected_answer: Optional[int]


class AnswerDetail(TypedDict):
    """Graded answer, in the shape stored on submissions."""

    questionId: int
    selectedAnswer: Optional[int]
    isCorrect: bool


class ScoringResult(TypedDict):
    """Aggregate grading outcome for a set of answers."""

    total_questions: int
    correct_count: int
    percentage: float
    passed: bool
    details: List[AnswerDetail]


def get_questions_by_category(
    db: Session, category: str, limit: Optional[int] = None
) -> List[MCQQuestion]:
    """
    Fetch active questions for a category in a stable order.

    Args:
        db: Database session
        category: Question category (e.g. "DevOps Engineer")
        limit: Maximum number of questions to return

    Returns:
        Active questions ordered by id
    """
    query = (
        db.query(MCQQuestion)
        .filter(MCQQuestion.category == category, MCQQuestion.is_active.is_(True))
        .order_by(MCQQuestion.id)
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def list_categories(db: Session) -> List[str]:
    """Return the distinct categories that have at least one active question."""
    rows = (
        db.query(MCQQuestion.category)
        .filter(MCQQuestion.is_active.is_(True))
        .distinct()
        .order_by(MCQQuestion.category)
        .all()
    )
    return [category for (category,) in rows]


def calculate_percentage(correct_count: int, total_questions: int) -> float:
    """Percentage of correct answers, rounded to two decimals; 0.0 when empty."""
    if total_questions <= 0:
        return 0.0
    return round(correct_count / total_questions * 100, 2)


def score_answers(
    db: Session,
    answers: Sequence[AnswerInput],
    passing_percentage: float,
) -> ScoringResult:
    """
    Grade a set of answers against the question bank.

    Unanswered questions (selected_answer None) count as incorrect. Answers
    for the same question more than once keep the last selection.

    Args:
        db: Database session
        answers: Candidate answers
        passing_percentage: Threshold used to fill in ``passed``

    Returns:
        ScoringResult with per-question details in submission order

    Raises:
        InvalidInputError: If any answer references an unknown question
    """
    selections: Dict[int, Optional[int]] = {}
    for answer in answers:
        selections[answer["question_id"]] = answer["selected_answer"]

    if not selections:
        return ScoringResult(
            total_questions=0,
            correct_count=0,
            percentage=0.0,
            passed=False,
            details=[],
        )

    questions = (
        db.query(MCQQuestion).filter(MCQQuestion.id.in_(list(selections))).all()
    )
    correct_by_id = {q.id: q.correct_answer for q in questions}

    unknown = set(selections) - set(correct_by_id)
    if unknown:
        ids_str = ", ".join(str(qid) for qid in sorted(unknown))
        raise InvalidInputError(f"Unknown question IDs: {ids_str}")

    details: List[AnswerDetail] = []
    for question_id, selected in selections.items():
        is_correct = selected is not None and selected == correct_by_id[question_id]
        details.append(
            AnswerDetail(
                questionId=question_id,
                selectedAnswer=selected,
                isCorrect=is_correct,
            )
        )

    correct_count = sum(1 for d in details if d["isCorrect"])
    percentage = calculate_percentage(correct_count, len(details))

    logger.debug(
        f"Scored {len(details)} answers: {correct_count} correct ({percentage}%)"
    )

    return ScoringResult(
        total_questions=len(details),
        correct_count=correct_count,
        percentage=percentage,
        passed=percentage >= passing_percentage,
        details=details,
    )
