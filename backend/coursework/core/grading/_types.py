"""
Immutable question definitions consumed by the grading policy.

A question's grading rules depend on its kind. Each definition carries a
``kind`` value whose class identifies the rule set and whose fields carry
the data that rule set needs:

- ``SingleChoice`` / ``MultipleChoice``: the option set with correctness flags
- ``TextInput``: the accepted canonical answers (possibly none)
- ``Essay``: nothing; always graded by a teacher

These are built by the question catalog from database rows and never
written back.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple, Union


@dataclass(frozen=True)
class OptionDefinition:
    """A selectable answer option."""

    id: int
    text: str
    is_correct: bool


@dataclass(frozen=True)
class SingleChoice:
    options: Tuple[OptionDefinition, ...]

    @property
    def option_ids(self) -> FrozenSet[int]:
        return frozenset(option.id for option in self.options)

    @property
    def correct_option_ids(self) -> FrozenSet[int]:
        return frozenset(option.id for option in self.options if option.is_correct)


@dataclass(frozen=True)
class MultipleChoice:
    options: Tuple[OptionDefinition, ...]

    @property
    def option_ids(self) -> FrozenSet[int]:
        return frozenset(option.id for option in self.options)

    @property
    def correct_option_ids(self) -> FrozenSet[int]:
        return frozenset(option.id for option in self.options if option.is_correct)


@dataclass(frozen=True)
class TextInput:
    canonical_answers: Tuple[str, ...] = ()

    @property
    def has_canonical_answer(self) -> bool:
        return bool(self.canonical_answers)


@dataclass(frozen=True)
class Essay:
    """Free-form answer (essays, code) graded by a teacher."""


QuestionKind = Union[SingleChoice, MultipleChoice, TextInput, Essay]


@dataclass(frozen=True)
class QuestionDefinition:
    """Authoritative view of one question, as the grading policy sees it."""

    id: int
    test_id: int
    text: str
    question_type: str
    points: int
    kind: QuestionKind = field(repr=False)

    @property
    def permits_manual_grading(self) -> bool:
        """Whether a teacher may grade this question on any test.

        Tests flagged for manual checking open up every question; that
        decision belongs to the orchestrator, which knows the test.
        """
        if isinstance(self.kind, Essay):
            return True
        if isinstance(self.kind, TextInput):
            return not self.kind.has_canonical_answer
        return False


@dataclass(frozen=True)
class TestDefinition:
    """Test metadata the engine needs."""

    __test__ = False  # keep pytest from collecting the dataclass

    id: int
    lesson_id: int
    title: str
    test_type: str
    requires_manual_check: bool


@dataclass(frozen=True)
class GradeResult:
    """Outcome of grading one answer.

    ``is_correct`` and ``score`` are both None when correctness is unknown
    and a teacher has to decide.
    """

    is_correct: Optional[bool]
    score: Optional[int]

    @property
    def is_pending(self) -> bool:
        return self.score is None
