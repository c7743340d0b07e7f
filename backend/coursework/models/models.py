"""
Database models for the assessment engine.

Rows reference each other by foreign key only. Relationships are declared
in the owning direction (test -> questions -> options, submission ->
answers) without back-pointers.
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
    text,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum
from typing import Optional

from coursework.core.datetime_utils import elapsed_seconds

from .base import Base


class QuestionType(str, enum.Enum):
    """Question type enumeration."""

    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    TEXT_INPUT = "text_input"
    ESSAY = "essay"
    CODING = "coding"


class TestType(str, enum.Enum):
    """Test type enumeration."""

    MULTIPLE_CHOICE = "multiple_choice"
    ESSAY = "essay"
    CODING = "coding"


class SubmissionStatus(str, enum.Enum):
    """Lifecycle stage of a submission, derived from its timestamps and flags."""

    IN_PROGRESS = "in_progress"
    FINALIZED = "finalized"
    REVIEWED = "reviewed"


class Test(Base):
    """A test inside a lesson. Read-only from the engine's perspective."""

    __tablename__ = "tests"
    __test__ = False  # keep pytest from collecting the model

    id = Column(Integer, primary_key=True, index=True)
    lesson_id = Column(Integer, nullable=False, index=True)  # owned by lesson CRUD
    title = Column(String(255), nullable=False)
    test_type = Column(Enum(TestType), nullable=False)
    requires_manual_check = Column(Boolean, default=False, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    questions = relationship(
        "Question",
        cascade="all, delete-orphan",
        order_by="[Question.position, Question.id]",
    )


class Question(Base):
    """Question model for test questions."""

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(
        Integer,
        ForeignKey("tests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, default=0, nullable=False)
    text = Column(Text, nullable=False)
    question_type = Column(Enum(QuestionType), nullable=False)
    points = Column(Integer, default=1, nullable=False)
    # Accepted answers for TEXT_INPUT questions; null means a teacher decides
    canonical_answers = Column(JSON, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    answer_options = relationship(
        "AnswerOption",
        cascade="all, delete-orphan",
        order_by="AnswerOption.id",
    )

    __table_args__ = (
        CheckConstraint("points > 0", name="ck_questions_points_positive"),
        Index("ix_questions_test_position", "test_id", "position"),
    )


class AnswerOption(Base):
    """A selectable option of a choice question."""

    __tablename__ = "answer_options"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text = Column(Text, nullable=False)
    is_correct = Column(Boolean, default=False, nullable=False)


class Submission(Base):
    """One student's attempt at one test."""

    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, nullable=False, index=True)  # external user id
    test_id = Column(
        Integer,
        ForeignKey("tests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_time = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    end_time = Column(DateTime(timezone=True), nullable=True, index=True)
    score = Column(Integer, nullable=True)
    reviewed = Column(Boolean, default=False, nullable=False)
    # Touched by every recorded answer so the write bumps version_id
    last_answered_at = Column(DateTime(timezone=True), nullable=True)

    # Optimistic concurrency counter. Every UPDATE of this row checks and
    # bumps it, so two writers racing on one submission cannot both win.
    version_id = Column(Integer, nullable=False)

    answers = relationship(
        "StudentAnswer",
        cascade="all, delete-orphan",
        order_by="StudentAnswer.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        # At most one open attempt per student per test. Catches the race
        # where two concurrent starts both pass the application-level check.
        Index(
            "ix_submissions_open_attempt",
            "student_id",
            "test_id",
            unique=True,
            postgresql_where=text("end_time IS NULL"),
            sqlite_where=text("end_time IS NULL"),
        ),
        Index("ix_submissions_student_test", "student_id", "test_id"),
        CheckConstraint(
            "score IS NULL OR score >= 0", name="ck_submissions_score_non_negative"
        ),
    )

    @property
    def status(self) -> SubmissionStatus:
        if self.end_time is None:
            return SubmissionStatus.IN_PROGRESS
        if self.reviewed:
            return SubmissionStatus.REVIEWED
        return SubmissionStatus.FINALIZED

    @property
    def is_finalized(self) -> bool:
        return self.end_time is not None

    @property
    def duration_seconds(self) -> Optional[int]:
        """Time between start and finalize; None while in progress."""
        return elapsed_seconds(self.start_time, self.end_time)


class StudentAnswer(Base):
    """A student's answer to one question within a submission."""

    __tablename__ = "student_answers"

    id = Column(Integer, primary_key=True, index=True)
    submission_id = Column(
        Integer,
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id = Column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Option id(s) as text for choice questions, free text otherwise.
    # NULL when the question was left unanswered at finalize time.
    answer_text = Column(Text, nullable=True)
    is_correct = Column(Boolean, nullable=True)  # NULL until graded
    score = Column(Integer, nullable=True)  # NULL until graded
    answered_at = Column(DateTime(timezone=True), nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "submission_id",
            "question_id",
            name="uq_student_answer_submission_question",
        ),
        CheckConstraint(
            "score IS NULL OR score >= 0",
            name="ck_student_answers_score_non_negative",
        ),
    )

    @property
    def is_pending(self) -> bool:
        """True when the answer still waits for a teacher's grade."""
        return self.score is None
