"""
Read-only access to tests, questions and answer options.

The catalog turns ORM rows into frozen grading definitions so the grading
policy only ever sees authoritative question data.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from coursework.core.error_responses import ErrorMessages
from coursework.core.exceptions import NotFoundError
from coursework.core.grading import (
    Essay,
    MultipleChoice,
    OptionDefinition,
    QuestionDefinition,
    QuestionKind,
    SingleChoice,
    TestDefinition,
    TextInput,
)
from coursework.models import Question, QuestionType, Test

logger = logging.getLogger(__name__)


def _enum_value(value) -> str:
    return value.value if hasattr(value, "value") else str(value)


def _build_kind(question: Question) -> QuestionKind:
    question_type = QuestionType(question.question_type)

    if question_type in (QuestionType.SINGLE_CHOICE, QuestionType.MULTIPLE_CHOICE):
        options = tuple(
            OptionDefinition(id=option.id, text=option.text, is_correct=option.is_correct)
            for option in question.answer_options
        )
        if question_type == QuestionType.SINGLE_CHOICE:
            correct_count = sum(1 for option in options if option.is_correct)
            if correct_count != 1:
                logger.warning(
                    f"Single-choice question {question.id} has {correct_count} "
                    "correct options; expected exactly one",
                    extra={"question_id": question.id},
                )
            return SingleChoice(options=options)
        return MultipleChoice(options=options)

    if question_type == QuestionType.TEXT_INPUT:
        canonical = tuple(
            answer.strip()
            for answer in (question.canonical_answers or [])
            if isinstance(answer, str) and answer.strip()
        )
        return TextInput(canonical_answers=canonical)

    # ESSAY and CODING
    return Essay()


def to_question_definition(question: Question) -> QuestionDefinition:
    """Convert a Question row (with options loaded) into a definition."""
    return QuestionDefinition(
        id=question.id,
        test_id=question.test_id,
        text=question.text,
        question_type=_enum_value(question.question_type),
        points=question.points,
        kind=_build_kind(question),
    )


def to_test_definition(test: Test) -> TestDefinition:
    return TestDefinition(
        id=test.id,
        lesson_id=test.lesson_id,
        title=test.title,
        test_type=_enum_value(test.test_type),
        requires_manual_check=bool(test.requires_manual_check),
    )


class SqlQuestionCatalog:
    """Question catalog backed by the application database."""

    def __init__(self, db: Session):
        self.db = db

    def find_test(self, test_id: int) -> Optional[TestDefinition]:
        test = self.db.query(Test).filter(Test.id == test_id).first()
        return to_test_definition(test) if test else None

    def get_test(self, test_id: int) -> TestDefinition:
        """
        Fetch test metadata.

        Raises:
            NotFoundError: If the test does not exist
        """
        test = self.find_test(test_id)
        if test is None:
            raise NotFoundError(ErrorMessages.test_not_found(test_id))
        return test

    def get_questions_for_test(self, test_id: int) -> List[QuestionDefinition]:
        """
        Fetch every question of a test in display order.

        Raises:
            NotFoundError: If the test does not exist
        """
        self.get_test(test_id)
        questions = (
            self.db.query(Question)
            .options(selectinload(Question.answer_options))
            .filter(Question.test_id == test_id)
            .order_by(Question.position, Question.id)
            .all()
        )
        return [to_question_definition(question) for question in questions]

    def get_question(self, question_id: int) -> QuestionDefinition:
        """
        Fetch one question.

        Raises:
            NotFoundError: If the question does not exist
        """
        question = (
            self.db.query(Question)
            .options(selectinload(Question.answer_options))
            .filter(Question.id == question_id)
            .first()
        )
        if question is None:
            raise NotFoundError(ErrorMessages.question_not_found(question_id))
        return to_question_definition(question)
