"""
Pydantic schemas for exam session endpoints.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, field_validator

from portal.core.datetime_utils import ensure_timezone_aware
from portal.models.models import SessionStatus
from portal.schemas.common import CamelModel


class McqScoreSchema(CamelModel):
    """Schema for an assessment score."""

    total_questions: int = Field(..., ge=0, description="Number of questions asked")
    correct_answers: int = Field(..., ge=0, description="Number answered correctly")
    percentage: float = Field(
        ..., ge=0.0, le=100.0, description="Score as a percentage (0-100)"
    )


class McqAnswerDetail(CamelModel):
    """Schema for one graded answer."""

    question_id: int = Field(..., description="Question ID")
    selected_answer: Optional[int] = Field(
        None, description="Index of the chosen option (null if unanswered)"
    )
    is_correct: bool = Field(..., description="Whether the chosen option is correct")


class ExamSessionResponse(CamelModel):
    """Schema for an exam session."""

    session_id: str = Field(..., description="Public session identifier (UUID)")
    email: str = Field(..., description="Normalized email")
    phone: str = Field(..., description="Normalized 10-digit phone")
    current_step: int = Field(..., description="Form step the candidate is on (1-4)")
    form_data: Dict[str, Any] = Field(
        default_factory=dict, description="Accumulated form data"
    )
    mcq_score: Optional[McqScoreSchema] = Field(
        None, description="Assessment score (set once the session is completed)"
    )
    status: SessionStatus = Field(..., description="in_progress, passed or failed")
    completed_at: Optional[datetime] = Field(
        None, description="Timestamp of the terminal transition"
    )
    submission_id: Optional[int] = Field(
        None, description="Submission created when the session passed"
    )
    created_at: datetime
    updated_at: datetime

    @field_validator("completed_at", "created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """SQLite drops tzinfo; stored timestamps are always UTC."""
        return ensure_timezone_aware(v)


class StartSessionRequest(CamelModel):
    """Schema for starting or resuming a session."""

    email: str = Field(..., min_length=1, max_length=255, description="Candidate email")
    phone: str = Field(..., min_length=1, max_length=32, description="Candidate phone")


class StartSessionResponse(CamelModel):
    """Schema for the start/resume result.

    ``session`` is omitted when the identity has already completed its attempt;
    ``message`` then explains why the candidate cannot continue.
    """

    session: Optional[ExamSessionResponse] = Field(
        None, description="The new or resumed session"
    )
    is_new: bool = Field(False, description="True if the session was just created")
    already_completed: bool = Field(
        False, description="True if this identity has already finished its attempt"
    )
    status: SessionStatus = Field(..., description="Current session status")
    message: Optional[str] = Field(None, description="Explanation for completed attempts")


class GetSessionResponse(CamelModel):
    session: ExamSessionResponse


class FormDataUpdate(CamelModel):
    """Partial form data for one or more steps of the portal form.

    Every field is optional; only the keys the client sent are merged.
    Known fields are type-checked and unknown keys are kept as sent.
    """

    model_config = ConfigDict(extra="allow")

    # Personal info
    full_name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=32)
    college_name: Optional[str] = Field(None, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    role: Optional[str] = Field(None, max_length=100)
    year: Optional[str] = Field(None, max_length=20)
    semester: Optional[str] = Field(None, max_length=20)
    # Project details
    project_title: Optional[str] = Field(None, max_length=255)
    project_description: Optional[str] = None
    website_url: Optional[str] = Field(None, max_length=2048)
    github_repo: Optional[str] = Field(None, max_length=2048)
    # Question id -> selected option
    mcq_answers: Optional[Dict[str, Any]] = None

    def to_update(self) -> Dict[str, Any]:
        """The keys the client sent, in their wire spelling."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class SaveProgressRequest(CamelModel):
    """Schema for saving partial form progress.

    ``formData`` is shallow-merged into the stored data: new keys are added,
    existing keys overwritten, everything else kept.
    """

    current_step: int = Field(..., description="Step to resume on (1-4)")
    form_data: FormDataUpdate = Field(
        default_factory=FormDataUpdate, description="Partial form data to merge"
    )


class SaveProgressResponse(CamelModel):
    session_id: str
    current_step: int
    status: SessionStatus


class SubmitExamRequest(CamelModel):
    """Schema for submitting the exam."""

    form_data: Optional[FormDataUpdate] = Field(
        None, description="Final form data to merge before submission"
    )
    mcq_answers: List[McqAnswerDetail] = Field(
        default_factory=list, description="Graded answers"
    )
    mcq_score: Optional[McqScoreSchema] = Field(
        None, description="Assessment score (required)"
    )


class SubmitExamResponse(CamelModel):
    """Schema for the submission outcome."""

    is_passing: bool = Field(..., description="Whether the score met the threshold")
    score: McqScoreSchema
    passing_percentage: float = Field(..., description="Threshold applied")
    status: SessionStatus
    submission_id: Optional[int] = Field(
        None, description="Created submission (passing sessions only)"
    )
    message: str


class FailAssessmentRequest(CamelModel):
    mcq_score: Optional[McqScoreSchema] = Field(
        None, description="Assessment score (required)"
    )


class FailAssessmentResponse(CamelModel):
    status: SessionStatus
    message: str
    already_completed: bool = False


class AttemptStatusResponse(CamelModel):
    """Schema for the attempt check.

    Only ``attempted`` is set when the identity has no session.
    """

    attempted: bool
    status: Optional[SessionStatus] = None
    session_id: Optional[str] = None
    current_step: Optional[int] = None
    can_resume: Optional[bool] = None
