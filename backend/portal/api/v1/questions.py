"""
Question bank endpoints: serve assessment questions and grade answers.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.error_responses import raise_invalid_input
from portal.core.exceptions import InvalidInputError
from portal.core.scoring import (
    AnswerInput,
    get_questions_by_category,
    list_categories,
    score_answers,
)
from portal.core.system_config import get_passing_percentage
from portal.models import get_db
from portal.schemas.questions import (
    CategoriesResponse,
    QuestionListResponse,
    QuestionResponse,
    ScoreRequest,
    ScoreResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=QuestionListResponse)
def get_questions(
    category: str = Query(..., min_length=1, description="Question category"),
    limit: Optional[int] = Query(
        default=None,
        ge=1,
        le=200,
        description="Maximum number of questions (defaults to QUESTIONS_PER_ASSESSMENT)",
    ),
    db: Session = Depends(get_db),
):
    """
    Get the active questions for a category.

    Correct answers are never included; grading happens server-side via
    ``POST /questions/score``.
    """
    questions = get_questions_by_category(
        db, category, limit=limit or settings.QUESTIONS_PER_ASSESSMENT
    )
    if not questions:
        logger.warning(f"No active questions for category {category!r}")

    return QuestionListResponse(
        questions=[QuestionResponse.model_validate(q) for q in questions],
        total=len(questions),
    )


@router.get("/categories", response_model=CategoriesResponse)
def get_categories(db: Session = Depends(get_db)):
    """List the categories that have active questions."""
    return CategoriesResponse(categories=list_categories(db))


@router.post("/score", response_model=ScoreResponse)
def score(body: ScoreRequest, db: Session = Depends(get_db)):
    """
    Grade answers against the question bank.

    ``passed`` is computed with the current passing threshold.

    Raises:
        HTTPException: INVALID_INPUT if an answer references an unknown question
    """
    passing_percentage = get_passing_percentage(db)
    answers = [
        AnswerInput(question_id=a.question_id, selected_answer=a.selected_answer)
        for a in body.answers
    ]
    try:
        result = score_answers(db, answers, passing_percentage)
    except InvalidInputError as e:
        raise_invalid_input(e.message)

    return ScoreResponse(
        total_questions=result["total_questions"],
        correct_count=result["correct_count"],
        percentage=result["percentage"],
        passed=result["passed"],
        passing_percentage=passing_percentage,
        details=result["details"],
    )
