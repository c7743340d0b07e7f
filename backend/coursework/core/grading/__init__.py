"""
Grading policy for assessment answers.

Usage:
    from coursework.core.grading import grade

    result = grade(question_definition, "12")
    if result.is_pending:
        ...  # a teacher grades it later
"""

from coursework.core.grading._types import (
    Essay,
    GradeResult,
    MultipleChoice,
    OptionDefinition,
    QuestionDefinition,
    QuestionKind,
    SingleChoice,
    TestDefinition,
    TextInput,
)
from coursework.core.grading.policy import grade, max_points, parse_option_ids
from coursework.core.grading.text_matching import (
    NormalizedExactMatcher,
    TextAnswerMatcher,
    get_text_matcher,
    reset_text_matcher,
    set_text_matcher,
)

__all__ = [
    "Essay",
    "GradeResult",
    "MultipleChoice",
    "NormalizedExactMatcher",
    "OptionDefinition",
    "QuestionDefinition",
    "QuestionKind",
    "SingleChoice",
    "TestDefinition",
    "TextAnswerMatcher",
    "TextInput",
    "get_text_matcher",
    "grade",
    "max_points",
    "parse_option_ids",
    "reset_text_matcher",
    "set_text_matcher",
]
