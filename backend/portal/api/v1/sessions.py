"""
Exam session endpoints: start/resume, progress, submission and lock-out.

Every handler is a thin adapter over ExamSessionWorkflow; typed workflow
failures are translated into coded error responses by handle_session_errors.
"""
import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from portal.core.error_handling import handle_session_errors
from portal.core.error_responses import (
    ErrorMessages,
    raise_invalid_input,
    raise_not_found,
)
from portal.core.session_workflow import ExamSessionWorkflow
from portal.models import get_db
from portal.schemas.sessions import (
    AttemptStatusResponse,
    ExamSessionResponse,
    FailAssessmentRequest,
    FailAssessmentResponse,
    GetSessionResponse,
    SaveProgressRequest,
    SaveProgressResponse,
    StartSessionRequest,
    StartSessionResponse,
    SubmitExamRequest,
    SubmitExamResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/start",
    response_model=StartSessionResponse,
    status_code=status.HTTP_200_OK,
)
def start_session(
    body: StartSessionRequest,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Start a new exam session for an (email, phone) pair, or resume it.

    Returns 201 with ``isNew`` for a fresh session and 200 for a resume.
    An identity that already passed or failed gets 200 with
    ``alreadyCompleted`` and no session: there is one attempt per candidate.
    """
    workflow = ExamSessionWorkflow(db)
    with handle_session_errors(db, "start session"):
        result = workflow.start_session(body.email, body.phone)

        if result.already_completed:
            return StartSessionResponse(
                already_completed=True,
                status=result.status,
                message=result.message,
            )

        if result.is_new:
            response.status_code = status.HTTP_201_CREATED
        return StartSessionResponse(
            session=ExamSessionResponse.model_validate(result.session),
            is_new=result.is_new,
            status=result.status,
        )


@router.get(
    "/check",
    response_model=AttemptStatusResponse,
    response_model_exclude_none=True,
)
def check_attempt_status(
    email: str = Query(..., description="Candidate email"),
    phone: str = Query(..., description="Candidate phone"),
    db: Session = Depends(get_db),
):
    """
    Report whether an identity has already attempted the exam.

    Read-only; used before starting to decide between a fresh start,
    a resume and a lock-out screen.
    """
    if not email.strip() or not phone.strip():
        raise_invalid_input(ErrorMessages.EMAIL_AND_PHONE_REQUIRED)

    workflow = ExamSessionWorkflow(db)
    with handle_session_errors(db, "check attempt status"):
        attempt = workflow.check_attempt_status(email, phone)
        return AttemptStatusResponse(
            attempted=attempt.attempted,
            status=attempt.status,
            session_id=attempt.session_id,
            current_step=attempt.current_step,
            can_resume=attempt.can_resume,
        )


@router.get("/{session_id}", response_model=GetSessionResponse)
def get_session(session_id: str, db: Session = Depends(get_db)):
    """Fetch a session by its public id."""
    workflow = ExamSessionWorkflow(db)
    with handle_session_errors(db, "fetch session"):
        session = workflow.get_session_by_id(session_id)
        if session is None:
            raise_not_found(ErrorMessages.SESSION_NOT_FOUND)
        return GetSessionResponse(session=ExamSessionResponse.model_validate(session))


@router.put("/{session_id}/progress", response_model=SaveProgressResponse)
def save_progress(
    session_id: str,
    body: SaveProgressRequest,
    db: Session = Depends(get_db),
):
    """
    Merge partial form data into an in-progress session.

    Raises:
        HTTPException: NOT_FOUND for an unknown session, SESSION_COMPLETED
            once the session has passed or failed
    """
    workflow = ExamSessionWorkflow(db)
    with handle_session_errors(db, "save progress"):
        session = workflow.save_progress(
            session_id, body.current_step, body.form_data.to_update()
        )
        return SaveProgressResponse(
            session_id=session.session_id,
            current_step=session.current_step,
            status=session.status,
        )


@router.post("/{session_id}/submit", response_model=SubmitExamResponse)
def submit_exam(
    session_id: str,
    body: SubmitExamRequest,
    db: Session = Depends(get_db),
):
    """
    Submit the exam: score against the passing threshold and lock the session.

    A passing session also produces a submission record; a failing one
    does not. Either way the session can never be modified again.
    """
    if body.mcq_score is None:
        raise_invalid_input(ErrorMessages.MCQ_SCORE_REQUIRED)

    workflow = ExamSessionWorkflow(db)
    with handle_session_errors(db, "submit exam"):
        result = workflow.submit_exam(
            session_id,
            final_form_data=(
                body.form_data.to_update() if body.form_data is not None else None
            ),
            answer_detail=[a.model_dump(by_alias=True) for a in body.mcq_answers],
            mcq_score=body.mcq_score.model_dump(by_alias=True),
        )
        return SubmitExamResponse(
            is_passing=result.is_passing,
            score=body.mcq_score,
            passing_percentage=result.passing_percentage,
            status=result.session.status,
            submission_id=result.submission_id,
            message=result.message,
        )


@router.post("/{session_id}/fail-assessment", response_model=FailAssessmentResponse)
def fail_assessment(
    session_id: str,
    body: FailAssessmentRequest,
    db: Session = Depends(get_db),
):
    """
    Lock a session as failed the moment the assessment is failed.

    Idempotent: a session that is already completed is returned unchanged
    with ``alreadyCompleted``.
    """
    if body.mcq_score is None:
        raise_invalid_input(ErrorMessages.MCQ_SCORE_REQUIRED)

    workflow = ExamSessionWorkflow(db)
    with handle_session_errors(db, "mark assessment failed"):
        result = workflow.mark_assessment_failed(
            session_id, body.mcq_score.model_dump(by_alias=True)
        )
        return FailAssessmentResponse(
            status=result.session.status,
            message=result.message,
            already_completed=result.already_completed,
        )
