"""
Persistence for submissions and the answers recorded within them.

The store never commits. The orchestrator owns the transaction boundary and
wraps every unit of work in ``handle_db_error``.
"""
import logging
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from coursework.core.datetime_utils import utc_now
from coursework.core.error_responses import ErrorMessages
from coursework.core.exceptions import ConflictError, NotFoundError
from coursework.models import StudentAnswer, Submission, Test

logger = logging.getLogger(__name__)


class AttemptStore:
    """SQLAlchemy-backed store for Submission and StudentAnswer rows."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    def find_submission(self, submission_id: int) -> Optional[Submission]:
        return self.db.query(Submission).filter(Submission.id == submission_id).first()

    def get_submission(self, submission_id: int) -> Submission:
        """
        Fetch a submission by id.

        Raises:
            NotFoundError: If the submission does not exist
        """
        submission = self.find_submission(submission_id)
        if submission is None:
            raise NotFoundError(ErrorMessages.submission_not_found(submission_id))
        return submission

    def get_submission_for_update(self, submission_id: int) -> Submission:
        """
        Fetch a submission and lock its row until the transaction ends.

        Operations on the same submission queue up behind the lock. Backends
        without row locks (SQLite) ignore FOR UPDATE; the version counter on
        the row still rejects the losing writer.

        Raises:
            NotFoundError: If the submission does not exist
        """
        submission = (
            self.db.query(Submission)
            .filter(Submission.id == submission_id)
            .populate_existing()
            .with_for_update()
            .first()
        )
        if submission is None:
            raise NotFoundError(ErrorMessages.submission_not_found(submission_id))
        return submission

    def find_open_submission(self, student_id: int, test_id: int) -> Optional[Submission]:
        return (
            self.db.query(Submission)
            .filter(
                Submission.student_id == student_id,
                Submission.test_id == test_id,
                Submission.end_time.is_(None),
            )
            .first()
        )

    def create_submission(self, student_id: int, test_id: int) -> Submission:
        """
        Insert a new open submission and flush it to obtain its id.

        Raises:
            ConflictError: If the open-attempt index rejects the row because
                another request opened an attempt concurrently
        """
        submission = Submission(
            student_id=student_id,
            test_id=test_id,
            start_time=utc_now(),
            reviewed=False,
        )
        self.db.add(submission)
        try:
            self.db.flush()
        except IntegrityError as e:
            # Lost the race against a concurrent start. The competing id is
            # not available after the rollback.
            self.db.rollback()
            logger.warning(
                f"Open-attempt index rejected a second attempt for student "
                f"{student_id} on test {test_id}",
                extra={"student_id": student_id, "test_id": test_id},
            )
            raise ConflictError(ErrorMessages.ATTEMPT_ALREADY_IN_PROGRESS) from e
        return submission

    def list_submissions(
        self,
        student_id: Optional[int] = None,
        test_id: Optional[int] = None,
    ) -> List[Submission]:
        query = self.db.query(Submission)
        if student_id is not None:
            query = query.filter(Submission.student_id == student_id)
        if test_id is not None:
            query = query.filter(Submission.test_id == test_id)
        return query.order_by(Submission.start_time.desc(), Submission.id.desc()).all()

    def latest_submission(self, student_id: int, test_id: int) -> Optional[Submission]:
        return (
            self.db.query(Submission)
            .filter(
                Submission.student_id == student_id,
                Submission.test_id == test_id,
            )
            .order_by(Submission.start_time.desc(), Submission.id.desc())
            .first()
        )

    def list_pending_reviews(self, test_id: Optional[int] = None) -> List[Submission]:
        """
        Finalized, unreviewed submissions that still need a teacher.

        A submission needs a teacher when its test is flagged for manual
        checking or when any of its answers is still ungraded. Oldest first.
        """
        has_pending_answer = (
            select(StudentAnswer.id)
            .where(
                StudentAnswer.submission_id == Submission.id,
                StudentAnswer.score.is_(None),
            )
            .exists()
        )
        query = (
            self.db.query(Submission)
            .join(Test, Test.id == Submission.test_id)
            .filter(
                Submission.end_time.isnot(None),
                Submission.reviewed.is_(False),
                or_(Test.requires_manual_check.is_(True), has_pending_answer),
            )
        )
        if test_id is not None:
            query = query.filter(Submission.test_id == test_id)
        return query.order_by(Submission.end_time.asc(), Submission.id.asc()).all()

    def delete_submission(self, submission: Submission) -> int:
        """
        Delete a submission together with its answers.

        Answers are flushed out first so no orphan survives if the
        submission delete fails. Returns the number of answers removed.
        """
        answers = self.list_answers(submission.id)
        for answer in answers:
            self.db.delete(answer)
        self.db.flush()
        self.db.expire(submission, ["answers"])
        self.db.delete(submission)
        self.db.flush()
        return len(answers)

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------

    def get_answer(self, submission_id: int, question_id: int) -> Optional[StudentAnswer]:
        return (
            self.db.query(StudentAnswer)
            .filter(
                StudentAnswer.submission_id == submission_id,
                StudentAnswer.question_id == question_id,
            )
            .first()
        )

    def list_answers(self, submission_id: int) -> List[StudentAnswer]:
        return (
            self.db.query(StudentAnswer)
            .filter(StudentAnswer.submission_id == submission_id)
            .order_by(StudentAnswer.id)
            .all()
        )

    def upsert_answer(
        self,
        submission_id: int,
        question_id: int,
        answer_text: Optional[str],
    ) -> StudentAnswer:
        """
        Create or overwrite the answer for (submission, question).

        Overwriting resets any grade; grading happens at finalize.
        """
        answer = self.get_answer(submission_id, question_id)
        if answer is None:
            answer = StudentAnswer(submission_id=submission_id, question_id=question_id)
            self.db.add(answer)
        answer.answer_text = answer_text
        answer.answered_at = utc_now()
        answer.is_correct = None
        answer.score = None
        answer.graded_at = None
        self.db.flush()
        return answer

    def add_answer(self, answer: StudentAnswer) -> StudentAnswer:
        self.db.add(answer)
        return answer

    def count_correct_answers(self, submission_id: int) -> int:
        return (
            self.db.query(StudentAnswer)
            .filter(
                StudentAnswer.submission_id == submission_id,
                StudentAnswer.is_correct.is_(True),
            )
            .count()
        )
