"""create assessment tables

Revision ID: 3c9e51a7d204
Revises:
Create Date: 2026-10-19 09:12:44.118402

Creates tests, questions, answer_options, submissions and student_answers.

Two constraints back the engine's consistency rules at the database level:

- uq_student_answer_submission_question: one answer per question per
  submission, so concurrent record calls cannot create duplicates.
- ix_submissions_open_attempt: partial unique index on
  (student_id, test_id) WHERE end_time IS NULL. Two concurrent starts that
  both pass the application-level check cannot both insert an open attempt.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c9e51a7d204"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


question_type = sa.Enum(
    "SINGLE_CHOICE",
    "MULTIPLE_CHOICE",
    "TEXT_INPUT",
    "ESSAY",
    "CODING",
    name="questiontype",
)
test_type = sa.Enum("MULTIPLE_CHOICE", "ESSAY", "CODING", name="testtype")


def upgrade() -> None:
    """Create the assessment tables, constraints and indexes."""
    op.create_table(
        "tests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("lesson_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("test_type", test_type, nullable=False),
        sa.Column("requires_manual_check", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tests_id", "tests", ["id"])
    op.create_index("ix_tests_lesson_id", "tests", ["lesson_id"])

    op.create_table(
        "questions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("test_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("question_type", question_type, nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("canonical_answers", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("points > 0", name="ck_questions_points_positive"),
        sa.ForeignKeyConstraint(["test_id"], ["tests.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_questions_id", "questions", ["id"])
    op.create_index("ix_questions_test_id", "questions", ["test_id"])
    op.create_index("ix_questions_test_position", "questions", ["test_id", "position"])

    op.create_table(
        "answer_options",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("question_id", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["question_id"], ["questions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_answer_options_id", "answer_options", ["id"])
    op.create_index("ix_answer_options_question_id", "answer_options", ["question_id"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.Column("test_id", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("reviewed", sa.Boolean(), nullable=False),
        sa.Column("last_answered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "score IS NULL OR score >= 0", name="ck_submissions_score_non_negative"
        ),
        sa.ForeignKeyConstraint(["test_id"], ["tests.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_submissions_id", "submissions", ["id"])
    op.create_index("ix_submissions_student_id", "submissions", ["student_id"])
    op.create_index("ix_submissions_test_id", "submissions", ["test_id"])
    op.create_index("ix_submissions_end_time", "submissions", ["end_time"])
    op.create_index(
        "ix_submissions_student_test", "submissions", ["student_id", "test_id"]
    )
    # Partial unique index: at most one open attempt per student per test
    op.create_index(
        "ix_submissions_open_attempt",
        "submissions",
        ["student_id", "test_id"],
        unique=True,
        postgresql_where=sa.text("end_time IS NULL"),
        sqlite_where=sa.text("end_time IS NULL"),
    )

    op.create_table(
        "student_answers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("submission_id", sa.Integer(), nullable=False),
        sa.Column("question_id", sa.Integer(), nullable=False),
        sa.Column("answer_text", sa.Text(), nullable=True),
        sa.Column("is_correct", sa.Boolean(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("answered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("graded_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "score IS NULL OR score >= 0",
            name="ck_student_answers_score_non_negative",
        ),
        sa.ForeignKeyConstraint(
            ["submission_id"], ["submissions.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["question_id"], ["questions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "submission_id",
            "question_id",
            name="uq_student_answer_submission_question",
        ),
    )
    op.create_index("ix_student_answers_id", "student_answers", ["id"])
    op.create_index(
        "ix_student_answers_submission_id", "student_answers", ["submission_id"]
    )
    op.create_index("ix_student_answers_question_id", "student_answers", ["question_id"])


def downgrade() -> None:
    """Drop the assessment tables and their enum types."""
    op.drop_table("student_answers")
    op.drop_index("ix_submissions_open_attempt", table_name="submissions")
    op.drop_table("submissions")
    op.drop_table("answer_options")
    op.drop_table("questions")
    op.drop_table("tests")
    question_type.drop(op.get_bind(), checkfirst=True)
    test_type.drop(op.get_bind(), checkfirst=True)
