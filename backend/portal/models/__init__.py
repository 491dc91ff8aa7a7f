"""
Models package for the portal backend.
"""
from .base import Base, engine, SessionLocal, get_db
from .models import (
    ExamSession,
    Submission,
    MCQQuestion,
    SystemConfig,
    SessionStatus,
    SubmissionStatus,
    DifficultyLevel,
    SESSION_TRANSITIONS,
)

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "ExamSession",
    "Submission",
    "MCQQuestion",
    "SystemConfig",
    "SessionStatus",
    "SubmissionStatus",
    "DifficultyLevel",
    "SESSION_TRANSITIONS",
]
