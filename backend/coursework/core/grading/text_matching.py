"""
Matching strategies for TEXT_INPUT answers.

How a typed answer is compared against a question's canonical answers is a
policy decision, so it sits behind a small protocol. The default strategy
is an exact comparison after normalization (trim, optional case folding,
optional whitespace collapsing). Deployments that need fuzzy matching can
install another strategy with ``set_text_matcher`` without touching the
grading code.
"""

import re
from typing import Iterable, Protocol

from coursework.core.config import settings

_WHITESPACE_RUN = re.compile(r"\s+")


class TextAnswerMatcher(Protocol):
    """
    Protocol for TEXT_INPUT matching strategies.

    Any class implementing this protocol can be installed as the active
    matcher.
    """

    def matches(self, submitted: str, canonical_answers: Iterable[str]) -> bool:
        """
        Decide whether a submitted answer matches any canonical answer.

        Args:
            submitted: Raw text typed by the student
            canonical_answers: Accepted answers configured on the question

        Returns:
            True if the submission is accepted
        """
        ...


class NormalizedExactMatcher:
    """
    Exact match after normalization.

    With the defaults, "  Paris " and "paris" both match a canonical
    "Paris", while "Pariss" does not.
    """

    def __init__(self, case_sensitive: bool = False, collapse_whitespace: bool = True):
        self.case_sensitive = case_sensitive
        self.collapse_whitespace = collapse_whitespace

    def normalize(self, value: str) -> str:
        value = value.strip()
        if self.collapse_whitespace:
            value = _WHITESPACE_RUN.sub(" ", value)
        if not self.case_sensitive:
            value = value.casefold()
        return value

    def matches(self, submitted: str, canonical_answers: Iterable[str]) -> bool:
        normalized = self.normalize(submitted)
        if not normalized:
            return False
        return any(
            normalized == self.normalize(candidate) for candidate in canonical_answers
        )


def _matcher_from_settings() -> TextAnswerMatcher:
    return NormalizedExactMatcher(
        case_sensitive=settings.TEXT_MATCH_CASE_SENSITIVE,
        collapse_whitespace=settings.TEXT_MATCH_COLLAPSE_WHITESPACE,
    )


# Active matcher (can be swapped at runtime)
_active_matcher: TextAnswerMatcher = _matcher_from_settings()


def set_text_matcher(matcher: TextAnswerMatcher) -> None:
    """
    Set the global TEXT_INPUT matching strategy.

    Args:
        matcher: Strategy to use for subsequent grading calls
    """
    global _active_matcher
    _active_matcher = matcher


def reset_text_matcher() -> None:
    """Restore the matcher described by the current settings."""
    set_text_matcher(_matcher_from_settings())


def get_text_matcher() -> TextAnswerMatcher:
    return _active_matcher
