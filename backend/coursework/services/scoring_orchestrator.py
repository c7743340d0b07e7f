"""
Scoring orchestrator: the attempt lifecycle.

State machine per submission::

    IN_PROGRESS --finalize--> FINALIZED --manual grades / review--> REVIEWED

Every mutating operation is a single transaction wrapped in
``handle_db_error``: it either commits completely or leaves no trace.
Operations on one submission serialize on that submission's row lock, and
the ``version_id`` counter on the row turns any write that slipped past the
lock into a ``ConflictError``.

Grading is deferred to finalize. Recording an answer only stores the raw
text, so a student can change their mind any number of times before
finalizing.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from coursework.core.config import settings
from coursework.core.datetime_utils import utc_now
from coursework.core.db_error_handling import handle_db_error
from coursework.core.error_responses import ErrorMessages
from coursework.core.exceptions import (
    AttemptAlreadyFinalizedError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from coursework.core.grading import QuestionDefinition, TestDefinition, grade, max_points
from coursework.models import StudentAnswer, Submission
from coursework.services.attempt_store import AttemptStore
from coursework.services.question_catalog import SqlQuestionCatalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinalizeResult:
    """Outcome of closing an attempt."""

    submission_id: int
    score: int
    max_points: int
    requires_manual_review: bool
    reviewed: bool


@dataclass(frozen=True)
class ManualGradeResult:
    """Submission totals after a teacher graded one answer."""

    submission_id: int
    score: int
    reviewed: bool


def _total_score(answers: List[StudentAnswer]) -> int:
    # Pending answers count as zero until a teacher grades them
    return sum(answer.score or 0 for answer in answers)


class ScoringOrchestrator:
    """
    Coordinates starting, answering, finalizing and reviewing attempts.

    Args:
        db: Request-scoped SQLAlchemy session. The orchestrator commits it.
        catalog: Question catalog, defaults to one backed by ``db``
        store: Attempt store, defaults to one backed by ``db``
    """

    def __init__(
        self,
        db: Session,
        catalog: Optional[SqlQuestionCatalog] = None,
        store: Optional[AttemptStore] = None,
    ):
        self.db = db
        self.catalog = catalog or SqlQuestionCatalog(db)
        self.store = store or AttemptStore(db)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_attempt(self, student_id: int, test_id: int) -> Submission:
        """
        Open a new attempt for a student.

        Two checks guard against duplicate open attempts. The lookup below
        reports the open submission's id so a client can resume it. The
        partial unique index ``ix_submissions_open_attempt`` catches two
        requests that pass the lookup at the same time.

        Raises:
            NotFoundError: Unknown test
            ConflictError: The student already has an open attempt at the test
        """
        with handle_db_error(self.db, "start attempt"):
            self.catalog.get_test(test_id)

            open_submission = self.store.find_open_submission(student_id, test_id)
            if open_submission is not None:
                logger.warning(
                    f"Student {student_id} tried to start test {test_id} with "
                    f"attempt {open_submission.id} still open",
                    extra={
                        "student_id": student_id,
                        "test_id": test_id,
                        "submission_id": open_submission.id,
                    },
                )
                raise ConflictError(
                    ErrorMessages.active_attempt_exists(open_submission.id),
                    existing_id=open_submission.id,
                )

            submission = self.store.create_submission(student_id, test_id)
            self.db.commit()

        self.db.refresh(submission)
        logger.info(
            f"Attempt {submission.id} started by student {student_id} on test {test_id}",
            extra={
                "submission_id": submission.id,
                "student_id": student_id,
                "test_id": test_id,
            },
        )
        return submission

    def record_answer(
        self, submission_id: int, question_id: int, raw_answer: object
    ) -> StudentAnswer:
        """
        Store (or overwrite) a student's answer to one question.

        The answer is not graded here.

        Raises:
            NotFoundError: Unknown submission or question
            InvalidStateError: The attempt is already finalized
            ValidationError: The question belongs to another test, or the
                payload is not a string within ``MAX_ANSWER_LENGTH``
        """
        with handle_db_error(self.db, "record answer"):
            submission = self.store.get_submission_for_update(submission_id)
            question = self.catalog.get_question(question_id)

            if submission.is_finalized:
                logger.warning(
                    f"Rejected answer to question {question_id} on finalized "
                    f"submission {submission_id}",
                    extra={"submission_id": submission_id, "question_id": question_id},
                )
                raise InvalidStateError(ErrorMessages.attempt_closed(submission_id))

            self._require_question_in_test(question, submission.test_id)
            self._validate_raw_answer(raw_answer)

            answer = self.store.upsert_answer(submission_id, question_id, raw_answer)
            # Updating the submission row makes a concurrent finalize that read
            # the old answers fail its version check
            submission.last_answered_at = answer.answered_at
            self.db.commit()

        self.db.refresh(answer)
        logger.info(
            f"Answer to question {question_id} recorded on submission {submission_id}",
            extra={"submission_id": submission_id, "question_id": question_id},
        )
        return answer

    def finalize_attempt(self, submission_id: int) -> FinalizeResult:
        """
        Close an attempt, grade every question and store the total.

        Unanswered questions get an answer row with no text, graded
        incorrect with zero points, so every question of the test has
        exactly one answer afterwards.

        Raises:
            NotFoundError: Unknown submission
            AttemptAlreadyFinalizedError: The attempt was finalized before
            ConflictError: A concurrent request modified the submission
        """
        with handle_db_error(self.db, "finalize attempt"):
            submission = self.store.get_submission_for_update(submission_id)
            if submission.is_finalized:
                logger.warning(
                    f"Duplicate finalize of submission {submission_id} rejected",
                    extra={"submission_id": submission_id},
                )
                raise AttemptAlreadyFinalizedError(
                    ErrorMessages.attempt_already_finalized(submission_id),
                    submission_id=submission_id,
                )

            test = self.catalog.get_test(submission.test_id)
            questions = self.catalog.get_questions_for_test(submission.test_id)
            answers_by_question = {
                answer.question_id: answer
                for answer in self.store.list_answers(submission_id)
            }

            now = utc_now()
            any_pending = False
            for question in questions:
                answer = answers_by_question.get(question.id)
                if answer is None:
                    answer = self.store.add_answer(
                        StudentAnswer(
                            submission_id=submission_id,
                            question_id=question.id,
                            answer_text=None,
                        )
                    )
                    answers_by_question[question.id] = answer

                result = grade(question, answer.answer_text)
                answer.is_correct = result.is_correct
                answer.score = result.score
                answer.graded_at = None if result.is_pending else now
                any_pending = any_pending or result.is_pending

            submission.score = _total_score(list(answers_by_question.values()))
            submission.end_time = now
            self.db.commit()

        requires_manual_review = test.requires_manual_check or any_pending
        result = FinalizeResult(
            submission_id=submission_id,
            score=submission.score,
            max_points=max_points(questions),
            requires_manual_review=requires_manual_review,
            reviewed=bool(submission.reviewed),
        )
        logger.info(
            f"Submission {submission_id} finalized with score "
            f"{result.score}/{result.max_points}"
            + (" (awaiting manual review)" if requires_manual_review else ""),
            extra={
                "submission_id": submission_id,
                "test_id": test.id,
                "score": result.score,
            },
        )
        return result

    def apply_manual_grade(
        self,
        submission_id: int,
        question_id: int,
        is_correct: bool,
        score: int,
    ) -> ManualGradeResult:
        """
        Record a teacher's grade for one answer and recompute the total.

        The submission becomes reviewed once no answer is pending. Grading
        an answer that already has a grade replaces it.

        Raises:
            NotFoundError: Unknown submission, question or answer
            InvalidStateError: The attempt is not finalized yet
            ValidationError: The question is not in the test, does not allow
                manual grading, or the score is outside 0..points
        """
        with handle_db_error(self.db, "apply manual grade"):
            submission = self.store.get_submission_for_update(submission_id)
            if not submission.is_finalized:
                logger.warning(
                    f"Manual grade on open submission {submission_id} rejected",
                    extra={"submission_id": submission_id, "question_id": question_id},
                )
                raise InvalidStateError(
                    ErrorMessages.attempt_not_finalized(submission_id)
                )

            test = self.catalog.get_test(submission.test_id)
            question = self.catalog.get_question(question_id)
            try:
                self._require_question_in_test(question, submission.test_id)
                self._require_manual_grading_allowed(question, test)
                self._validate_manual_score(score, question)
            except ValidationError as e:
                logger.warning(
                    f"Manual grade for question {question_id} of submission "
                    f"{submission_id} rejected: {e.message}",
                    extra={"submission_id": submission_id, "question_id": question_id},
                )
                raise

            answer = self.store.get_answer(submission_id, question_id)
            if answer is None:
                logger.warning(
                    f"Manual grade rejected: no answer to question {question_id} "
                    f"on submission {submission_id}",
                    extra={"submission_id": submission_id, "question_id": question_id},
                )
                raise NotFoundError(
                    ErrorMessages.answer_not_found(submission_id, question_id)
                )

            answer.is_correct = bool(is_correct)
            answer.score = score
            answer.graded_at = utc_now()

            answers = self.store.list_answers(submission_id)
            submission.score = _total_score(answers)
            if not any(item.is_pending for item in answers):
                submission.reviewed = True
            self.db.commit()

        logger.info(
            f"Manual grade {score}/{question.points} applied to question "
            f"{question_id} of submission {submission_id}; total {submission.score}",
            extra={
                "submission_id": submission_id,
                "question_id": question_id,
                "score": submission.score,
            },
        )
        return ManualGradeResult(
            submission_id=submission_id,
            score=submission.score,
            reviewed=bool(submission.reviewed),
        )

    def complete_review(self, submission_id: int) -> Submission:
        """
        Mark a finalized submission as reviewed without changing any grade.

        Lets a teacher sign off on a manually checked test whose answers were
        all graded automatically. Calling it again is a no-op.

        Raises:
            NotFoundError: Unknown submission
            InvalidStateError: Not finalized, or answers are still pending
        """
        with handle_db_error(self.db, "complete review"):
            submission = self.store.get_submission_for_update(submission_id)
            if not submission.is_finalized:
                logger.warning(
                    f"Review of open submission {submission_id} refused",
                    extra={"submission_id": submission_id},
                )
                raise InvalidStateError(
                    ErrorMessages.attempt_not_finalized(submission_id)
                )
            if submission.reviewed:
                return submission

            if any(answer.is_pending for answer in self.store.list_answers(submission_id)):
                logger.warning(
                    f"Review of submission {submission_id} refused: answers pending",
                    extra={"submission_id": submission_id},
                )
                raise InvalidStateError(ErrorMessages.ANSWERS_PENDING_REVIEW)

            submission.reviewed = True
            self.db.commit()

        self.db.refresh(submission)
        logger.info(
            f"Submission {submission_id} marked as reviewed",
            extra={"submission_id": submission_id},
        )
        return submission

    def delete_submission(self, submission_id: int) -> None:
        """
        Delete a submission and all of its answers.

        Raises:
            NotFoundError: Unknown submission
        """
        with handle_db_error(self.db, "delete submission"):
            submission = self.store.get_submission_for_update(submission_id)
            removed = self.store.delete_submission(submission)
            self.db.commit()

        logger.info(
            f"Submission {submission_id} deleted with {removed} answers",
            extra={"submission_id": submission_id},
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_submission(self, submission_id: int) -> Submission:
        return self.store.get_submission(submission_id)

    def list_answers(self, submission_id: int) -> List[StudentAnswer]:
        self.store.get_submission(submission_id)
        return self.store.list_answers(submission_id)

    def list_submissions(
        self,
        student_id: Optional[int] = None,
        test_id: Optional[int] = None,
    ) -> List[Submission]:
        return self.store.list_submissions(student_id=student_id, test_id=test_id)

    def latest_submission(self, student_id: int, test_id: int) -> Submission:
        """
        Most recently started attempt of a student at a test.

        Raises:
            NotFoundError: The student never started the test
        """
        submission = self.store.latest_submission(student_id, test_id)
        if submission is None:
            raise NotFoundError(ErrorMessages.no_attempt_found(student_id, test_id))
        return submission

    def list_pending_reviews(self, test_id: Optional[int] = None) -> List[Submission]:
        return self.store.list_pending_reviews(test_id=test_id)

    def is_owned_by(self, submission_id: int, student_id: int) -> bool:
        return self.store.get_submission(submission_id).student_id == student_id

    def count_correct_answers(self, submission_id: int) -> int:
        self.store.get_submission(submission_id)
        return self.store.count_correct_answers(submission_id)

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_question_in_test(question: QuestionDefinition, test_id: int) -> None:
        if question.test_id != test_id:
            raise ValidationError(
                ErrorMessages.question_not_in_test(question.id, test_id)
            )

    @staticmethod
    def _validate_raw_answer(raw_answer: object) -> None:
        if not isinstance(raw_answer, str):
            raise ValidationError(ErrorMessages.ANSWER_NOT_TEXT)
        if len(raw_answer) > settings.MAX_ANSWER_LENGTH:
            raise ValidationError(
                ErrorMessages.answer_too_long(settings.MAX_ANSWER_LENGTH)
            )

    @staticmethod
    def _require_manual_grading_allowed(
        question: QuestionDefinition, test: TestDefinition
    ) -> None:
        # Tests flagged for manual checking let a teacher override any answer
        if test.requires_manual_check or question.permits_manual_grading:
            return
        raise ValidationError(
            ErrorMessages.manual_grade_not_permitted(question.id, question.question_type)
        )

    @staticmethod
    def _validate_manual_score(score: int, question: QuestionDefinition) -> None:
        if isinstance(score, bool) or not isinstance(score, int):
            raise ValidationError(ErrorMessages.score_out_of_range(score, question.points))
        if score < 0 or score > question.points:
            raise ValidationError(ErrorMessages.score_out_of_range(score, question.points))
