"""
Tests for TEXT_INPUT matching strategies.
"""
from coursework.core.grading import (
    NormalizedExactMatcher,
    QuestionDefinition,
    TextInput,
    get_text_matcher,
    grade,
    reset_text_matcher,
    set_text_matcher,
)


class TestNormalizedExactMatcher:
    """Tests for the default matcher."""

    def test_defaults_ignore_case_and_outer_whitespace(self):
        matcher = NormalizedExactMatcher()
        assert matcher.matches("  PARIS\n", ["Paris"])

    def test_defaults_collapse_inner_whitespace(self):
        matcher = NormalizedExactMatcher()
        assert matcher.matches("New   York", ["new york"])

    def test_case_sensitive_mode(self):
        matcher = NormalizedExactMatcher(case_sensitive=True)
        assert matcher.matches("Paris", ["Paris"])
        assert not matcher.matches("paris", ["Paris"])

    def test_whitespace_collapse_can_be_disabled(self):
        matcher = NormalizedExactMatcher(collapse_whitespace=False)
        assert not matcher.matches("New   York", ["New York"])

    def test_no_fuzzy_matching(self):
        assert not NormalizedExactMatcher().matches("Pariss", ["Paris"])

    def test_blank_submission_never_matches(self):
        assert not NormalizedExactMatcher().matches("", [""])

    def test_empty_canonical_list_never_matches(self):
        assert not NormalizedExactMatcher().matches("Paris", [])


class PrefixMatcher:
    """Accepts any answer starting with a canonical answer."""

    def matches(self, submitted, canonical_answers):
        return any(submitted.startswith(answer) for answer in canonical_answers)


class TestSetTextMatcher:
    """Tests for swapping the active matcher."""

    def test_custom_matcher_is_used_by_grading(self):
        question = QuestionDefinition(
            id=1,
            test_id=1,
            text="Name a prime",
            question_type="text_input",
            points=2,
            kind=TextInput(canonical_answers=("7",)),
        )
        assert grade(question, "7 (seven)").is_correct is False

        set_text_matcher(PrefixMatcher())
        assert grade(question, "7 (seven)").score == 2

    def test_reset_restores_settings_based_matcher(self):
        set_text_matcher(PrefixMatcher())
        reset_text_matcher()

        matcher = get_text_matcher()
        assert isinstance(matcher, NormalizedExactMatcher)
        assert matcher.case_sensitive is False
        assert matcher.collapse_whitespace is True
