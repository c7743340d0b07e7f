"""
Domain exceptions raised by the assessment engine.

These are transport-agnostic: services raise them, and the HTTP layer
translates them into responses through ``error_responses``.

Taxonomy:
- NotFoundError: unknown submission, question or test id
- ValidationError: question not in test, malformed payload, score out of range
- ConflictError: duplicate in-progress attempt, concurrent write lost
- InvalidStateError: operation not allowed in the submission's lifecycle stage
"""

from typing import Optional


class AssessmentError(Exception):
    """Base class for all assessment engine errors.

    Attributes:
        message: User-facing description of the failure
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(AssessmentError):
    """A referenced entity does not exist."""


class ValidationError(AssessmentError):
    """The request is structurally invalid for the targeted entities."""


class ConflictError(AssessmentError):
    """The request conflicts with the current state of the store."""

    def __init__(self, message: str, existing_id: Optional[int] = None):
        self.existing_id = existing_id
        super().__init__(message)


class InvalidStateError(AssessmentError):
    """The submission is in the wrong lifecycle stage for the operation."""


class AttemptAlreadyFinalizedError(ConflictError, InvalidStateError):
    """A finalize call hit a submission that is already closed.

    Callers retrying a timed-out finalize can catch either parent class.
    """

    def __init__(self, message: str, submission_id: Optional[int] = None):
        super().__init__(message, existing_id=submission_id)
