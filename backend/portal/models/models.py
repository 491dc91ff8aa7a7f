"""
Database models for the project submission portal.
"""
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from typing import FrozenSet, Mapping
import enum
import uuid

from portal.core.datetime_utils import utc_now

from .base import Base


def _new_session_id() -> str:
    return str(uuid.uuid4())


class SessionStatus(str, enum.Enum):
    """Exam session status enumeration.

    ``IN_PROGRESS`` is the only non-terminal state. Allowed moves are listed in
    ``SESSION_TRANSITIONS``; adding a state means adding an entry there.
    """

    IN_PROGRESS = "in_progress"
    PASSED = "passed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return not SESSION_TRANSITIONS[self]

    def can_transition_to(self, target: "SessionStatus") -> bool:
        return target in SESSION_TRANSITIONS[self]


SESSION_TRANSITIONS: Mapping[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.IN_PROGRESS: frozenset({SessionStatus.PASSED, SessionStatus.FAILED}),
    SessionStatus.PASSED: frozenset(),
    SessionStatus.FAILED: frozenset(),
}


class SubmissionStatus(str, enum.Enum):
    """Review status of a stored submission."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class DifficultyLevel(str, enum.Enum):
    """Difficulty level enumeration."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ExamSession(Base):
    """One candidate's single attempt, from start to terminal outcome.

    At most one row exists per normalized (email, phone) pair; the unique
    constraint is what serializes concurrent starts for a new identity.
    """

    __tablename__ = "exam_sessions"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(
        String(36), unique=True, nullable=False, index=True, default=_new_session_id
    )
    email = Column(String(255), nullable=False)
    phone = Column(String(10), nullable=False)
    current_step = Column(Integer, default=1, nullable=False)
    # Shallow-merged on every save; always reassign a new dict so the JSON
    # column is flagged dirty
    form_data = Column(JSON, default=dict, nullable=False)
    mcq_score = Column(JSON, nullable=True)  # Set only on the terminal transition
    status = Column(
        Enum(SessionStatus),
        default=SessionStatus.IN_PROGRESS,
        nullable=False,
        index=True,
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)
    # Id of the Submission created when the session passed
    submission_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )
    # Bumped on every UPDATE; writing from a stale read raises StaleDataError
    version_id = Column(Integer, nullable=False)

    submission = relationship("Submission", back_populates="exam_session", uselist=False)

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        UniqueConstraint("email", "phone", name="uq_exam_sessions_identity"),
        CheckConstraint(
            "current_step >= 1 AND current_step <= 4",
            name="ck_exam_sessions_current_step",
        ),
    )

    def __repr__(self) -> str:
        return f"<ExamSession {self.session_id} status={self.status}>"


class Submission(Base):
    """Finalized project submission, created only for passing sessions."""

    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)
    # Unique: a second submission for the same session fails at the database
    exam_session_id = Column(
        Integer,
        ForeignKey("exam_sessions.id"),
        unique=True,
        nullable=False,
    )
    personal_info = Column(JSON, nullable=False)
    project_details = Column(JSON, nullable=False)
    mcq_answers = Column(JSON, default=list, nullable=False)
    mcq_score = Column(JSON, nullable=False)
    status = Column(
        Enum(SubmissionStatus),
        default=SubmissionStatus.SUBMITTED,
        nullable=False,
        index=True,
    )
    submitted_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    exam_session = relationship("ExamSession", back_populates="submission", uselist=False)


class MCQQuestion(Base):
    """Multiple-choice question in the assessment bank."""

    __tablename__ = "mcq_questions"

    id = Column(Integer, primary_key=True, index=True)
    question = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)  # List of option strings
    correct_answer = Column(Integer, nullable=False)  # Index into options
    category = Column(String(100), nullable=False)
    difficulty = Column(
        Enum(DifficultyLevel), default=DifficultyLevel.MEDIUM, nullable=False
    )
    points = Column(Integer, default=1, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_mcq_questions_category_active", "category", "is_active"),
        CheckConstraint("correct_answer >= 0", name="ck_mcq_questions_correct_answer"),
    )


class SystemConfig(Base):
    """
    System-level key/value configuration.

    Values are stored as JSON. Known keys:
    - mcq_passing_percentage: number between 0 and 100
    """

    __tablename__ = "system_config"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
