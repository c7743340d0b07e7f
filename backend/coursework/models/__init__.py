"""
Models package for the coursework assessment engine.
"""
from .base import Base, engine, SessionLocal, get_db
from .models import (
    Test,
    Question,
    AnswerOption,
    Submission,
    StudentAnswer,
    QuestionType,
    TestType,
    SubmissionStatus,
)

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "Test",
    "Question",
    "AnswerOption",
    "Submission",
    "StudentAnswer",
    "QuestionType",
    "TestType",
    "SubmissionStatus",
]
