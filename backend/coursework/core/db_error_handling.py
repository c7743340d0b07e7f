"""
Database error handling utilities.

This module centralizes the transaction boundary used by the assessment
services:
1. Run the wrapped unit of work
2. On any error, roll back the session so no partial writes survive
3. Log database failures with context and raise a typed exception

Usage:
    from coursework.core.db_error_handling import handle_db_error

    with handle_db_error(db, "finalize attempt"):
        ...  # mutate rows
        db.commit()

Domain errors (``AssessmentError``) raised inside the block are re-raised
unchanged after the rollback. Optimistic-lock failures become
``ConflictError`` so callers can retry.
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from coursework.core.error_responses import ErrorMessages
from coursework.core.exceptions import AssessmentError, ConflictError


logger = logging.getLogger(__name__)


class DatabaseOperationError(Exception):
    """Exception raised when a database operation fails.

    Wraps database errors with the name of the operation that failed.

    Attributes:
        operation_name: Human-readable name of the operation that failed
        original_error: The underlying exception that caused the failure
        message: The formatted error message
    """

    def __init__(
        self,
        operation_name: str,
        original_error: Exception,
        message: Optional[str] = None,
    ):
        self.operation_name = operation_name
        self.original_error = original_error
        self.message = message or f"Failed to {operation_name}: {str(original_error)}"
        super().__init__(self.message)


@contextmanager
def handle_db_error(
    db: Session,
    operation_name: str,
    *,
    log_level: int = logging.ERROR,
) -> Generator[None, None, None]:
    """Context manager that makes a block all-or-nothing.

    Args:
        db: The SQLAlchemy session to roll back on error.
        operation_name: Human-readable name of the operation for logging
            (e.g., "finalize attempt", "apply manual grade").
        log_level: Logging level for database failures. Defaults to ERROR.

    Yields:
        None - the context manager is used for its side effects only.

    Raises:
        AssessmentError: Re-raised unchanged after rollback.
        ConflictError: When an optimistic version check failed.
        DatabaseOperationError: For any other SQLAlchemy error.
    """
    try:
        yield
    except AssessmentError:
        db.rollback()
        raise
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Concurrent modification during {operation_name}: {e}")
        raise ConflictError(ErrorMessages.CONCURRENT_MODIFICATION) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.log(
            log_level,
            f"Database error during {operation_name}: {e}",
            exc_info=True,
        )
        raise DatabaseOperationError(operation_name, e) from e
    except Exception:
        db.rollback()
        raise
