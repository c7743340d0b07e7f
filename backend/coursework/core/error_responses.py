"""
Standardized error response messages and builders.

This module provides consistent error messages and HTTPException builders
for the entire API. Services raise domain exceptions (see
``coursework.core.exceptions``) carrying messages from ``ErrorMessages``;
endpoints convert them with ``raise_for_assessment_error``.

Error Message Format Guidelines:
- Use sentence case (capitalize first letter only)
- End with a period for complete sentences
- Include relevant IDs in parentheses when helpful for debugging: "(ID: 123)"

Usage:
    from coursework.core.error_responses import ErrorMessages, raise_not_found

    if not submission:
        raise NotFoundError(ErrorMessages.submission_not_found(submission_id))

    try:
        ...
    except AssessmentError as exc:
        raise_for_assessment_error(exc)
"""

from typing import NoReturn, Optional

from fastapi import HTTPException, status

from coursework.core.exceptions import (
    AssessmentError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


class ErrorMessages:
    """Centralized error message constants and templates.

    Naming Convention:
    - Constants: SCREAMING_SNAKE_CASE for static messages
    - Methods: snake_case for templates that accept parameters
    """

    # ==========================================================================
    # Conflict Errors (409)
    # ==========================================================================
    # Used when the open-attempt index rejects an insert. The id of the
    # competing submission is unknown because the transaction rolled back.
    ATTEMPT_ALREADY_IN_PROGRESS = (
        "An attempt at this test is already in progress. "
        "Please finalize the existing attempt before starting a new one."
    )
    CONCURRENT_MODIFICATION = (
        "The submission was modified by another request. Please try again."
    )

    # ==========================================================================
    # Invalid State Errors (409)
    # ==========================================================================
    ANSWERS_PENDING_REVIEW = (
        "Some answers are still waiting for a grade. "
        "Grade every pending answer before completing the review."
    )

    # ==========================================================================
    # Validation Errors (400)
    # ==========================================================================
    ANSWER_NOT_TEXT = "Answer must be a string."

    # ==========================================================================
    # Server Errors (500)
    # ==========================================================================
    INTERNAL_ERROR = "Internal server error"

    # ==========================================================================
    # Template Methods for Dynamic Messages
    # ==========================================================================
    @staticmethod
    def submission_not_found(submission_id: int) -> str:
        return f"Submission {submission_id} not found."

    @staticmethod
    def test_not_found(test_id: int) -> str:
        return f"Test {test_id} not found."

    @staticmethod
    def question_not_found(question_id: int) -> str:
        return f"Question {question_id} not found."

    @staticmethod
    def answer_not_found(submission_id: int, question_id: int) -> str:
        return (
            f"No answer to question {question_id} exists in submission "
            f"{submission_id}."
        )

    @staticmethod
    def no_attempt_found(student_id: int, test_id: int) -> str:
        return f"Student {student_id} has no attempts at test {test_id}."

    @staticmethod
    def submission_not_owned(submission_id: int, student_id: int) -> str:
        return f"Submission {submission_id} does not belong to student {student_id}."

    @staticmethod
    def active_attempt_exists(submission_id: int) -> str:
        """Message for when a student already has an open attempt at the test.

        Includes the submission id so clients can resume the open attempt.
        """
        return (
            f"Student already has an attempt in progress (ID: {submission_id}). "
            "Please finalize the existing attempt before starting a new one."
        )

    @staticmethod
    def attempt_closed(submission_id: int) -> str:
        return (
            f"Submission {submission_id} is already finalized. "
            "Answers can only be recorded while the attempt is in progress."
        )

    @staticmethod
    def attempt_already_finalized(submission_id: int) -> str:
        return f"Submission {submission_id} has already been finalized."

    @staticmethod
    def attempt_not_finalized(submission_id: int) -> str:
        return (
            f"Submission {submission_id} is still in progress. "
            "Finalize the attempt before reviewing it."
        )

    @staticmethod
    def question_not_in_test(question_id: int, test_id: int) -> str:
        return f"Question {question_id} does not belong to test {test_id}."

    @staticmethod
    def answer_too_long(max_length: int) -> str:
        return f"Answer must not exceed {max_length} characters."

    @staticmethod
    def manual_grade_not_permitted(question_id: int, question_type: str) -> str:
        return (
            f"Question {question_id} ({question_type}) is graded automatically "
            "and cannot be graded manually."
        )

    @staticmethod
    def score_out_of_range(score: int, max_points: int) -> str:
        return f"Score {score} is outside the allowed range 0-{max_points}."


# ==============================================================================
# HTTPException Builder Functions
# ==============================================================================


def raise_bad_request(detail: str) -> NoReturn:
    """Raise a 400 Bad Request exception.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 400 Bad Request
    """
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )


def raise_not_found(detail: str) -> NoReturn:
    """Raise a 404 Not Found exception.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 404 Not Found
    """
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    )


def raise_forbidden(detail: str) -> NoReturn:
    """Raise a 403 Forbidden exception.

    Use when a caller asks for a submission that belongs to another student.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 403 Forbidden
    """
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=detail,
    )


def raise_conflict(detail: str) -> NoReturn:
    """Raise a 409 Conflict exception.

    Use when the request conflicts with current state (duplicate attempt,
    wrong lifecycle stage, lost concurrent write).

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 409 Conflict
    """
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=detail,
    )


def raise_server_error(
    detail: str,
    error_id: Optional[str] = None,
) -> NoReturn:
    """Raise a 500 Internal Server Error exception.

    Args:
        detail: User-facing error message (should be generic and friendly)
        error_id: Optional error tracking ID to include in response

    Raises:
        HTTPException: 500 Internal Server Error
    """
    if error_id:
        detail = f"{detail} (Error ID: {error_id})"

    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    )


def raise_for_assessment_error(exc: AssessmentError) -> NoReturn:
    """Translate a domain exception into the matching HTTPException.

    Args:
        exc: Exception raised by an assessment service

    Raises:
        HTTPException: 404, 400 or 409 depending on the exception type
    """
    if isinstance(exc, NotFoundError):
        raise_not_found(exc.message)
    if isinstance(exc, ValidationError):
        raise_bad_request(exc.message)
    if isinstance(exc, (ConflictError, InvalidStateError)):
        raise_conflict(exc.message)
    raise_server_error(ErrorMessages.INTERNAL_ERROR)
