"""
Input validation utilities for request schemas.
"""
import re


class StringSanitizer:
    """
    String sanitization utilities for raw student answers.

    Answers are graded and shown back to teachers verbatim, so sanitization
    is limited to characters that can never be meaningful answer content.
    HTML escaping happens at render time, not here.
    """

    # Control characters to strip (except newlines, tabs, carriage returns)
    CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

    @classmethod
    def strip_control_characters(cls, value: str) -> str:
        """
        Remove control characters while keeping whitespace layout.

        Code and essay answers rely on newlines and tabs, and choice answers
        are trimmed by the grader, so surrounding whitespace is left alone.

        Args:
            value: Raw answer text

        Returns:
            The answer without control characters
        """
        return cls.CONTROL_CHARS_PATTERN.sub("", value)


class TextValidator:
    """
    Validation utilities for schema field validation.
    """

    @staticmethod
    def validate_positive_id(value: int, field_name: str = "ID") -> int:
        """
        Validate that an ID is a positive integer.

        Args:
            value: ID to validate
            field_name: Name of the field for error messages

        Returns:
            The value if valid

        Raises:
            ValueError: If the ID is not positive
        """
        if value <= 0:
            raise ValueError(f"{field_name} must be a positive integer")
        return value
