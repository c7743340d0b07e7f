"""
Grading policy: decide correctness and points for one answer.

Everything here is pure. The functions take authoritative question
definitions (never student-supplied option data) and a raw answer string,
and return a ``GradeResult``. Student input that cannot be interpreted is a
defined incorrect outcome, not an error.

Rules by kind:
- SingleChoice: exactly one option id of this question, and it is correct
- MultipleChoice: the selected id set equals the correct id set (all or nothing)
- TextInput: delegated to the active ``TextAnswerMatcher``; unknown when the
  question has no canonical answers
- Essay: always unknown, a teacher grades it
- A missing answer is incorrect with zero points for every kind
"""

import re
from functools import singledispatch
from typing import FrozenSet, Iterable, Optional

from coursework.core.grading._types import (
    Essay,
    GradeResult,
    MultipleChoice,
    QuestionDefinition,
    SingleChoice,
    TextInput,
)
from coursework.core.grading.text_matching import get_text_matcher

_OPTION_ID = re.compile(r"^\d+$")

INCORRECT = GradeResult(is_correct=False, score=0)
PENDING = GradeResult(is_correct=None, score=None)


def parse_option_ids(raw_answer: str) -> Optional[FrozenSet[int]]:
    """
    Parse a comma-separated list of option ids.

    Returns None when any token is not a plain non-negative integer or the
    input holds no ids at all. Whitespace around tokens is ignored and
    repeated ids collapse.

    Examples:
        "3" -> {3}
        " 4, 7 " -> {4, 7}
        "4,,7" -> None
        "abc" -> None
    """
    tokens = [token.strip() for token in raw_answer.split(",")]
    if not tokens or any(not _OPTION_ID.match(token) for token in tokens):
        return None
    return frozenset(int(token) for token in tokens)


def _award(question: QuestionDefinition, correct: bool) -> GradeResult:
    if correct:
        return GradeResult(is_correct=True, score=question.points)
    return INCORRECT


@singledispatch
def _grade_kind(kind, question: QuestionDefinition, raw_answer: str) -> GradeResult:
    raise TypeError(f"No grading rule for question kind {type(kind).__name__}")


@_grade_kind.register
def _(kind: SingleChoice, question: QuestionDefinition, raw_answer: str) -> GradeResult:
    selected = parse_option_ids(raw_answer)
    if selected is None or len(selected) != 1:
        return INCORRECT
    (option_id,) = selected
    return _award(question, option_id in kind.correct_option_ids)


@_grade_kind.register
def _(kind: MultipleChoice, question: QuestionDefinition, raw_answer: str) -> GradeResult:
    selected = parse_option_ids(raw_answer)
    if selected is None:
        return INCORRECT
    # A question with no correct options can never be answered correctly
    correct_ids = kind.correct_option_ids
    return _award(question, bool(correct_ids) and selected == correct_ids)


@_grade_kind.register
def _(kind: TextInput, question: QuestionDefinition, raw_answer: str) -> GradeResult:
    if not kind.has_canonical_answer:
        return PENDING
    matched = get_text_matcher().matches(raw_answer, kind.canonical_answers)
    return _award(question, matched)


@_grade_kind.register
def _(kind: Essay, question: QuestionDefinition, raw_answer: str) -> GradeResult:
    return PENDING


def grade(question: QuestionDefinition, raw_answer: Optional[str]) -> GradeResult:
    """
    Grade one answer against its question definition.

    Args:
        question: Authoritative question definition from the catalog
        raw_answer: The recorded answer text, or None if the student never
            answered

    Returns:
        GradeResult with ``is_correct``/``score`` both None when a teacher
        has to decide
    """
    if raw_answer is None:
        return INCORRECT
    return _grade_kind(question.kind, question, raw_answer)


def max_points(questions: Iterable[QuestionDefinition]) -> int:
    """Total points available across the given questions."""
    return sum(question.points for question in questions)
