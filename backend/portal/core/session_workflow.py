"""
Exam-session workflow: the one-attempt state machine.

A candidate (normalized email + phone) gets exactly one ExamSession, ever.
The session accumulates form data while ``in_progress`` and moves once,
irreversibly, to ``passed`` or ``failed``. Only a passing session produces a
Submission, and the Submission and the session's terminal state are
committed in the same transaction.

Active Session Creation Strategy:
    ``start_session`` looks the identity up first and only inserts when
    nothing exists. Two concurrent starts for a brand-new identity can both
    miss the lookup; the UNIQUE(email, phone) constraint rejects the second
    insert, and the loser re-reads the winner's row and returns it as a
    resume. Only if that re-read also misses does the caller see DUPLICATE.

Every operation is a short read-compute-write against the request's own
database session; there is no in-process locking. ExamSession rows carry a
version counter, so a write computed from a stale read fails at commit and
is re-run from fresh state. A session another request already finalized
then surfaces as completed instead of being overwritten.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, TypedDict, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from portal.core.datetime_utils import utc_now
from portal.core.exceptions import (
    DuplicateSessionError,
    InvalidInputError,
    InvalidTransitionError,
    SessionCompletedError,
    SessionNotFoundError,
)
from portal.core.identity import Identity, normalize_identity
from portal.core.submission_store import SubmissionStore, build_submission_snapshot
from portal.core.system_config import get_passing_percentage
from portal.models.models import ExamSession, SessionStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_STEP = 1
MAX_STEP = 4
MAX_WRITE_ATTEMPTS = 3

ALREADY_PASSED_MESSAGE = "You have already passed and submitted the exam."
ALREADY_ATTEMPTED_MESSAGE = "You have already attempted this exam."
PASSED_MESSAGE = "Congratulations! You have passed the exam."
NOT_PASSED_MESSAGE = "Unfortunately, you did not pass the exam."
ASSESSMENT_FAILED_MESSAGE = "Assessment failed. You cannot retake the assessment."
ALREADY_COMPLETED_MESSAGE = "Session was already completed"


class McqScore(TypedDict):
    """Assessment score as stored on sessions and submissions."""

    totalQuestions: int
    correctAnswers: int
    percentage: float


@dataclass
class StartSessionResult:
    session: ExamSession
    is_new: bool
    already_completed: bool
    status: SessionStatus

    @property
    def message(self) -> Optional[str]:
        """Explanation shown when the candidate cannot continue."""
        if not self.already_completed:
            return None
        if self.status == SessionStatus.PASSED:
            return ALREADY_PASSED_MESSAGE
        return ALREADY_ATTEMPTED_MESSAGE


@dataclass
class SubmitExamResult:
    session: ExamSession
    is_passing: bool
    submission_id: Optional[int]
    score: McqScore
    passing_percentage: float

    @property
    def message(self) -> str:
        return PASSED_MESSAGE if self.is_passing else NOT_PASSED_MESSAGE


@dataclass
class FailAssessmentResult:
    session: ExamSession
    already_completed: bool

    @property
    def message(self) -> str:
        if self.already_completed:
            return ALREADY_COMPLETED_MESSAGE
        return ASSESSMENT_FAILED_MESSAGE


@dataclass
class AttemptStatus:
    attempted: bool
    status: Optional[SessionStatus] = None
    session_id: Optional[str] = None
    current_step: Optional[int] = None
    can_resume: Optional[bool] = None


def session_status(session: ExamSession) -> SessionStatus:
    """Coerce the stored status to the enum (raw strings come back from some drivers)."""
    return SessionStatus(session.status)


def transition_to(session: ExamSession, target: SessionStatus) -> None:
    """
    Move a session to a new status, enforcing the transition table.

    Terminal transitions stamp ``completed_at``; nothing ever clears it.

    Raises:
        InvalidTransitionError: If the move is not allowed from the current status
    """
    current = session_status(session)
    if not current.can_transition_to(target):
        raise InvalidTransitionError(current.value, target.value)
    session.status = target
    if target.is_terminal:
        session.completed_at = utc_now()


def merge_form_data(
    current: Optional[Mapping[str, Any]], updates: Optional[Mapping[str, Any]]
) -> Dict[str, Any]:
    """Shallow merge: new keys are added, existing keys overwritten, others kept."""
    merged = dict(current or {})
    merged.update(updates or {})
    return merged


class ExamSessionWorkflow:
    """
    Orchestrates the exam-session lifecycle against one database session.

    Args:
        db: Request-scoped database session
        submission_store: Write target for passing sessions
            (defaults to a SubmissionStore on ``db``)
        passing_percentage_provider: Returns the current threshold; must not
            raise (defaults to the SystemConfig lookup with fallback)
    """

    def __init__(
        self,
        db: Session,
        submission_store: Optional[SubmissionStore] = None,
        passing_percentage_provider: Optional[Callable[[Session], float]] = None,
    ):
        self.db = db
        self.submissions = submission_store or SubmissionStore(db)
        self.passing_percentage_provider = (
            passing_percentage_provider or get_passing_percentage
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _find_by_identity(self, identity: Identity) -> Optional[ExamSession]:
        return (
            self.db.query(ExamSession)
            .filter(
                ExamSession.email == identity.email,
                ExamSession.phone == identity.phone,
            )
            .first()
        )

    def get_session_by_id(self, session_id: str) -> Optional[ExamSession]:
        """Plain read by public session id; no side effects."""
        return (
            self.db.query(ExamSession)
            .filter(ExamSession.session_id == session_id)
            .first()
        )

    def _get_or_raise(self, session_id: str) -> ExamSession:
        session = self.get_session_by_id(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def _get_in_progress(self, session_id: str) -> ExamSession:
        session = self._get_or_raise(session_id)
        status = session_status(session)
        if status.is_terminal:
            raise SessionCompletedError(session_id, status.value)
        return session

    # ------------------------------------------------------------------
    # Entry
    # ------------------------------------------------------------------

    def _existing_session_result(self, session: ExamSession) -> StartSessionResult:
        status = session_status(session)
        return StartSessionResult(
            session=session,
            is_new=False,
            already_completed=status.is_terminal,
            status=status,
        )

    def start_session(self, email: str, phone: str) -> StartSessionResult:
        """
        Start a new session for an identity, or return the existing one.

        An existing in-progress session is returned as a resume and a terminal
        one with ``already_completed=True``; neither is modified.

        Raises:
            InvalidInputError: If the phone does not normalize to 10 digits
            DuplicateSessionError: If creation lost a race and the winning
                row cannot be read back
        """
        identity = normalize_identity(email, phone)

        existing = self._find_by_identity(identity)
        if existing is not None:
            return self._existing_session_result(existing)

        session = ExamSession(
            email=identity.email,
            phone=identity.phone,
            current_step=MIN_STEP,
            form_data={"email": identity.email, "phone": identity.phone},
            status=SessionStatus.IN_PROGRESS,
        )
        self.db.add(session)

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(
                "Concurrent start detected for an identity; resolving as resume"
            )
            existing = self._find_by_identity(identity)
            if existing is None:
                raise DuplicateSessionError()
            return self._existing_session_result(existing)

        self.db.refresh(session)
        logger.info(
            f"Exam session {session.session_id} created",
            extra={"session_id": session.session_id},
        )
        return StartSessionResult(
            session=session,
            is_new=True,
            already_completed=False,
            status=SessionStatus.IN_PROGRESS,
        )

    def check_attempt_status(self, email: str, phone: str) -> AttemptStatus:
        """
        Report whether an identity has a session and whether it can resume.

        Normalizes without the length check: a malformed phone simply
        matches no session.
        """
        identity = normalize_identity(email, phone, strict=False)
        session = self._find_by_identity(identity)
        if session is None:
            return AttemptStatus(attempted=False)

        status = session_status(session)
        return AttemptStatus(
            attempted=True,
            status=status,
            session_id=session.session_id,
            current_step=session.current_step,
            can_resume=status == SessionStatus.IN_PROGRESS,
        )

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def _retry_on_stale(self, session_id: str, write: Callable[[], T]) -> T:
        """
        Run a load-modify-commit step, re-running it from a fresh read when a
        concurrent request updated the session first.

        ExamSession rows are version-counted, so a commit built on a stale
        read matches no row and raises StaleDataError. The re-run sees the
        winner's state: a terminal session then surfaces as completed.
        """
        for attempt in range(1, MAX_WRITE_ATTEMPTS):
            try:
                return write()
            except StaleDataError:
                self.db.rollback()
                logger.warning(
                    f"Session {session_id} changed concurrently; retrying "
                    f"({attempt}/{MAX_WRITE_ATTEMPTS})",
                    extra={"session_id": session_id},
                )
        try:
            return write()
        except StaleDataError:
            self.db.rollback()
            raise

    def save_progress(
        self,
        session_id: str,
        current_step: int,
        form_data: Optional[Mapping[str, Any]],
    ) -> ExamSession:
        """
        Merge partial form data into an in-progress session and move its cursor.

        The step may go backwards; it is a cursor, not a high-water mark.

        Raises:
            InvalidInputError: If current_step is outside 1-4
            SessionNotFoundError: If no session has this id
            SessionCompletedError: If the session is already passed or failed
        """
        if not MIN_STEP <= current_step <= MAX_STEP:
            raise InvalidInputError(
                f"currentStep must be between {MIN_STEP} and {MAX_STEP}"
            )

        def write() -> ExamSession:
            session = self._get_in_progress(session_id)
            session.form_data = merge_form_data(session.form_data, form_data)
            session.current_step = current_step
            self.db.commit()
            return session

        session = self._retry_on_stale(session_id, write)
        self.db.refresh(session)
        logger.debug(
            f"Saved progress for session {session_id} at step {current_step}",
            extra={"session_id": session_id},
        )
        return session

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------

    def submit_exam(
        self,
        session_id: str,
        final_form_data: Optional[Mapping[str, Any]],
        answer_detail: Optional[List[Dict[str, Any]]],
        mcq_score: McqScore,
    ) -> SubmitExamResult:
        """
        Score the attempt, lock the session, and store a submission if it passed.

        Pass/fail is ``mcq_score["percentage"] >= threshold`` with the
        threshold read from settings (falling back to the default). A failed
        attempt never reaches the submission store.

        Raises:
            SessionNotFoundError: If no session has this id
            SessionCompletedError: If the session is already terminal,
                including when a concurrent request finalized it first
        """
        self._get_in_progress(session_id)

        passing_percentage = self.passing_percentage_provider(self.db)
        is_passing = mcq_score["percentage"] >= passing_percentage
        logger.info(
            f"Evaluating session {session_id}: {mcq_score['percentage']}% "
            f"against threshold {passing_percentage}% (passing={is_passing})",
            extra={"session_id": session_id},
        )

        def write() -> ExamSession:
            session = self._get_in_progress(session_id)
            session.form_data = merge_form_data(session.form_data, final_form_data)
            session.mcq_score = dict(mcq_score)
            transition_to(
                session, SessionStatus.PASSED if is_passing else SessionStatus.FAILED
            )
            try:
                if is_passing:
                    snapshot = build_submission_snapshot(
                        session.form_data, answer_detail or [], mcq_score
                    )
                    session.submission_id = self.submissions.create(
                        snapshot, exam_session_id=session.id
                    )
                self.db.commit()
            except IntegrityError:
                # The submission's unique session reference means another submit
                # already finalized this session
                self.db.rollback()
                logger.warning(
                    f"Concurrent submit detected for session {session_id}",
                    extra={"session_id": session_id},
                )
                raise SessionCompletedError(session_id)
            return session

        session = self._retry_on_stale(session_id, write)
        self.db.refresh(session)

        if is_passing:
            logger.info(
                f"Passing submission {session.submission_id} created for session {session_id}",
                extra={"session_id": session_id, "submission_id": session.submission_id},
            )
        else:
            logger.info(
                f"Session {session_id} failed; no submission stored",
                extra={"session_id": session_id},
            )

        return SubmitExamResult(
            session=session,
            is_passing=is_passing,
            submission_id=session.submission_id,
            score=mcq_score,
            passing_percentage=passing_percentage,
        )

    def mark_assessment_failed(
        self, session_id: str, mcq_score: McqScore
    ) -> FailAssessmentResult:
        """
        Lock a session as failed as soon as the assessment is failed.

        Idempotent: on a session that is already terminal, including one a
        concurrent request finalized first, this returns
        ``already_completed=True`` and changes nothing.

        Raises:
            SessionNotFoundError: If no session has this id
        """

        def write() -> FailAssessmentResult:
            session = self._get_or_raise(session_id)
            if session_status(session).is_terminal:
                return FailAssessmentResult(session=session, already_completed=True)
            session.mcq_score = dict(mcq_score)
            transition_to(session, SessionStatus.FAILED)
            self.db.commit()
            return FailAssessmentResult(session=session, already_completed=False)

        result = self._retry_on_stale(session_id, write)
        if result.already_completed:
            return result

        self.db.refresh(result.session)
        logger.info(
            f"Assessment failed for session {session_id} at {mcq_score['percentage']}%; "
            "session locked",
            extra={"session_id": session_id},
        )
        return result
