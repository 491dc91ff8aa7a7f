"""
Pytest configuration and shared fixtures for testing.
"""
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from portal.main import app
from portal.models import (
    Base,
    DifficultyLevel,
    ExamSession,
    MCQQuestion,
    SessionStatus,
    get_db,
)
from portal.core.system_config import PASSING_PERCENTAGE_KEY, set_config


@asynccontextmanager
async def _test_lifespan(app):
    """No-op lifespan for tests.

    Skips error tracking and table creation on the configured database;
    fixtures own the schema of the test database.
    """
    yield


app.router.lifespan_context = _test_lifespan


# Path is relative to this file so the .db lands inside tests/ regardless of
# the working directory.
_TEST_DB = Path(__file__).parent / "test.db"
SQLALCHEMY_DATABASE_URL = f"sqlite:///{_TEST_DB}"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database dependency override.

    Each request gets its own session on the test database, like production.
    """

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def candidate():
    """Raw identity as a candidate would type it."""
    return {"email": "  Asha.Rao@Example.COM ", "phone": "+91 98765-43210"}


@pytest.fixture
def in_progress_session(db_session):
    """An in-progress session at step 2 with some form data."""
    session = ExamSession(
        email="asha.rao@example.com",
        phone="9876543210",
        current_step=2,
        form_data={
            "email": "asha.rao@example.com",
            "phone": "9876543210",
            "fullName": "Asha Rao",
        },
        status=SessionStatus.IN_PROGRESS,
    )
    db_session.add(session)
    db_session.commit()
    db_session.refresh(session)
    return session


@pytest.fixture
def passing_score():
    return {"totalQuestions": 10, "correctAnswers": 7, "percentage": 70.0}


@pytest.fixture
def failing_score():
    return {"totalQuestions": 10, "correctAnswers": 3, "percentage": 30.0}


@pytest.fixture
def complete_form_data():
    """Form data covering every step of the portal form."""
    return {
        "fullName": "Asha Rao",
        "collegeName": "City Engineering College",
        "department": "Computer Science",
        "role": "frontend",
        "year": "3",
        "semester": "6",
        "projectTitle": "Campus Navigator",
        "projectDescription": "Indoor maps for the campus.",
        "websiteUrl": "https://navigator.example.com",
        "githubRepo": "github.com/asha/navigator",
    }


@pytest.fixture
def test_questions(db_session):
    """
    Create a small question bank across two categories.
    """
    questions = [
        MCQQuestion(
            question="Which HTML element links a stylesheet?",
            options=["<style>", "<link>", "<script>", "<meta>"],
            correct_answer=1,
            category="Frontend Developer",
            difficulty=DifficultyLevel.EASY,
        ),
        MCQQuestion(
            question="Which CSS property controls stacking order?",
            options=["z-index", "order", "position", "float"],
            correct_answer=0,
            category="Frontend Developer",
            difficulty=DifficultyLevel.MEDIUM,
        ),
        MCQQuestion(
            question="What does the virtual DOM reduce?",
            options=["Bundle size", "Direct DOM writes", "HTTP calls", "CSS rules"],
            correct_answer=1,
            category="Frontend Developer",
            difficulty=DifficultyLevel.HARD,
        ),
        MCQQuestion(
            question="Deprecated question",
            options=["a", "b"],
            correct_answer=0,
            category="Frontend Developer",
            is_active=False,
        ),
        MCQQuestion(
            question="Which keyword defines a function in Python?",
            options=["func", "def", "lambda", "fn"],
            correct_answer=1,
            category="Python Developer",
            difficulty=DifficultyLevel.EASY,
        ),
    ]
    db_session.add_all(questions)
    db_session.commit()
    for question in questions:
        db_session.refresh(question)
    return questions


@pytest.fixture
def passing_percentage_60(db_session):
    """Configure a 60% passing threshold."""
    return set_config(db_session, PASSING_PERCENTAGE_KEY, 60)


@pytest.fixture
def asgi_transport(db_session):
    """httpx transport that serves requests from the application in-process."""

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield httpx.ASGITransport(app=app)
    app.dependency_overrides.clear()


@pytest.fixture
def other_db_session(db_session):
    """A second, independent session on the test database, as a concurrent request has."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
