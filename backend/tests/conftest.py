"""
Pytest configuration and shared fixtures for testing.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from coursework.core.grading import reset_text_matcher
from coursework.main import app
from coursework.models import (
    AnswerOption,
    Base,
    Question,
    QuestionType,
    Test,
    TestType,
    get_db,
)
from coursework.models.base import enable_sqlite_foreign_keys
from coursework.services.scoring_orchestrator import ScoringOrchestrator


@asynccontextmanager
async def _test_lifespan(app):
    """No-op lifespan for tests.

    Skips Sentry initialization.
    """
    yield


# Neutralize the production lifespan on the singleton app.
app.router.lifespan_context = _test_lifespan


# Use SQLite for tests; path is relative to this file so the .db lands
# inside tests/ regardless of the working directory.
_TEST_DB = Path(__file__).parent / "test.db"
SQLALCHEMY_DATABASE_URL = f"sqlite:///{_TEST_DB}"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    # Create all tables
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database dependency override.

    Each request gets its own session on the test database, like
    production, so fixtures and requests do not share identity maps.
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


@pytest.fixture(autouse=True)
def default_text_matcher():
    """Undo any matcher swapped in by a test."""
    yield
    reset_text_matcher()


@pytest.fixture
def orchestrator(db_session):
    return ScoringOrchestrator(db_session)


def add_test(
    db,
    *,
    title: str = "Unit 1 quiz",
    test_type: TestType = TestType.MULTIPLE_CHOICE,
    requires_manual_check: bool = False,
    lesson_id: int = 1,
) -> Test:
    test = Test(
        lesson_id=lesson_id,
        title=title,
        test_type=test_type,
        requires_manual_check=requires_manual_check,
    )
    db.add(test)
    db.flush()
    return test


def add_question(
    db,
    test: Test,
    question_type: QuestionType,
    *,
    points: int = 1,
    position: int = 0,
    options: Iterable[Tuple[str, bool]] = (),
    canonical_answers: Optional[list] = None,
    text: Optional[str] = None,
) -> Question:
    """Insert a question and its options; returns the question."""
    question = Question(
        test_id=test.id,
        position=position,
        text=text or f"{question_type.value} question {position}",
        question_type=question_type,
        points=points,
        canonical_answers=canonical_answers,
    )
    db.add(question)
    db.flush()
    for option_text, is_correct in options:
        db.add(
            AnswerOption(question_id=question.id, text=option_text, is_correct=is_correct)
        )
    db.flush()
    return question


def option_id(db, question: Question, text: str) -> int:
    """Look up the id of a question's option by its text."""
    return (
        db.query(AnswerOption.id)
        .filter(AnswerOption.question_id == question.id, AnswerOption.text == text)
        .scalar()
    )


@pytest.fixture
def choice_and_essay_test(db_session) -> Dict[str, Any]:
    """
    A SINGLE_CHOICE question worth 2 points (option "A" correct) followed by
    an ESSAY question worth 3 points.
    """
    test = add_test(db_session, title="Choice and essay")
    single = add_question(
        db_session,
        test,
        QuestionType.SINGLE_CHOICE,
        points=2,
        position=1,
        options=[("A", True), ("B", False), ("C", False)],
    )
    essay = add_question(db_session, test, QuestionType.ESSAY, points=3, position=2)
    db_session.commit()
    return {
        "test_id": test.id,
        "single_id": single.id,
        "essay_id": essay.id,
        "option_a": option_id(db_session, single, "A"),
        "option_b": option_id(db_session, single, "B"),
    }


@pytest.fixture
def auto_graded_test(db_session) -> Dict[str, Any]:
    """
    Only automatically graded questions: single choice (1 pt), multiple
    choice (2 pts, "X" and "Z" correct) and text input (1 pt, "Paris").
    """
    test = add_test(db_session, title="Auto graded")
    single = add_question(
        db_session,
        test,
        QuestionType.SINGLE_CHOICE,
        points=1,
        position=1,
        options=[("yes", True), ("no", False)],
    )
    multiple = add_question(
        db_session,
        test,
        QuestionType.MULTIPLE_CHOICE,
        points=2,
        position=2,
        options=[("X", True), ("Y", False), ("Z", True)],
    )
    text_input = add_question(
        db_session,
        test,
        QuestionType.TEXT_INPUT,
        points=1,
        position=3,
        canonical_answers=["Paris"],
    )
    db_session.commit()
    return {
        "test_id": test.id,
        "single_id": single.id,
        "multiple_id": multiple.id,
        "text_id": text_input.id,
        "yes": option_id(db_session, single, "yes"),
        "no": option_id(db_session, single, "no"),
        "x": option_id(db_session, multiple, "X"),
        "y": option_id(db_session, multiple, "Y"),
        "z": option_id(db_session, multiple, "Z"),
        "max_points": 4,
    }


@pytest.fixture
def manual_check_test(db_session) -> Dict[str, Any]:
    """A test flagged for manual checking with one single-choice question (2 pts)."""
    test = add_test(db_session, title="Checked by hand", requires_manual_check=True)
    single = add_question(
        db_session,
        test,
        QuestionType.SINGLE_CHOICE,
        points=2,
        position=1,
        options=[("right", True), ("wrong", False)],
    )
    db_session.commit()
    return {
        "test_id": test.id,
        "single_id": single.id,
        "right": option_id(db_session, single, "right"),
        "wrong": option_id(db_session, single, "wrong"),
    }


@pytest.fixture
def open_ended_test(db_session) -> Dict[str, Any]:
    """
    Teacher-graded questions: text input without canonical answers (2 pts),
    essay (3 pts) and coding (5 pts).
    """
    test = add_test(db_session, title="Open ended", test_type=TestType.CODING)
    free_text = add_question(
        db_session, test, QuestionType.TEXT_INPUT, points=2, position=1
    )
    essay = add_question(db_session, test, QuestionType.ESSAY, points=3, position=2)
    coding = add_question(db_session, test, QuestionType.CODING, points=5, position=3)
    db_session.commit()
    return {
        "test_id": test.id,
        "free_text_id": free_text.id,
        "essay_id": essay.id,
        "coding_id": coding.id,
    }
