"""
Pydantic schemas for question bank and scoring endpoints.
"""
from typing import List, Optional

from pydantic import Field

from portal.models.models import DifficultyLevel
from portal.schemas.common import CamelModel
from portal.schemas.sessions import McqAnswerDetail


class QuestionResponse(CamelModel):
    """Schema for a question as served to candidates (no correct answer)."""

    id: int = Field(..., description="Question ID")
    question: str = Field(..., description="Question text")
    options: List[str] = Field(..., description="Answer options, in display order")
    category: str = Field(..., description="Question category")
    difficulty: DifficultyLevel = Field(..., description="Difficulty level")
    points: int = Field(1, description="Points awarded for a correct answer")


class QuestionListResponse(CamelModel):
    questions: List[QuestionResponse]
    total: int


class CategoriesResponse(CamelModel):
    categories: List[str]


class AnswerSubmission(CamelModel):
    """Schema for one answer to be graded."""

    question_id: int = Field(..., description="Question ID")
    selected_answer: Optional[int] = Field(
        None, ge=0, description="Index of the chosen option (null if unanswered)"
    )


class ScoreRequest(CamelModel):
    answers: List[AnswerSubmission] = Field(..., description="Answers to grade")


class ScoreResponse(CamelModel):
    """Schema for a grading result."""

    total_questions: int
    correct_count: int
    percentage: float = Field(..., description="Rounded to two decimals")
    passed: bool
    passing_percentage: float = Field(..., description="Threshold applied")
    details: List[McqAnswerDetail]
