"""
Tests for the attempt store.
"""
from datetime import timedelta

import pytest

from coursework.core.datetime_utils import utc_now
from coursework.core.error_responses import ErrorMessages
from coursework.core.exceptions import ConflictError, NotFoundError
from coursework.models import StudentAnswer, Submission
from coursework.services.attempt_store import AttemptStore


def make_submission(db, test_id, student_id=7, *, finalized=False, start_offset=0):
    submission = Submission(
        student_id=student_id,
        test_id=test_id,
        start_time=utc_now() + timedelta(minutes=start_offset),
        end_time=utc_now() if finalized else None,
        score=0 if finalized else None,
        reviewed=False,
    )
    db.add(submission)
    db.commit()
    return submission


class TestSubmissions:
    """Tests for submission lookups and creation."""

    def test_create_submission_sets_defaults(self, db_session, choice_and_essay_test):
        store = AttemptStore(db_session)

        submission = store.create_submission(7, choice_and_essay_test["test_id"])
        db_session.commit()

        assert submission.id is not None
        assert submission.end_time is None
        assert submission.score is None
        assert submission.reviewed is False
        assert submission.version_id == 1

    def test_get_submission_raises_for_unknown_id(self, db_session):
        with pytest.raises(NotFoundError):
            AttemptStore(db_session).get_submission(99)

    def test_get_submission_for_update_raises_for_unknown_id(self, db_session):
        with pytest.raises(NotFoundError):
            AttemptStore(db_session).get_submission_for_update(99)

    def test_find_open_submission_ignores_finalized(
        self, db_session, choice_and_essay_test
    ):
        test_id = choice_and_essay_test["test_id"]
        make_submission(db_session, test_id, finalized=True)
        store = AttemptStore(db_session)

        assert store.find_open_submission(7, test_id) is None

        open_submission = make_submission(db_session, test_id)
        assert store.find_open_submission(7, test_id).id == open_submission.id

    def test_open_attempt_index_rejects_second_open_submission(
        self, db_session, choice_and_essay_test
    ):
        test_id = choice_and_essay_test["test_id"]
        make_submission(db_session, test_id)

        with pytest.raises(ConflictError) as exc_info:
            AttemptStore(db_session).create_submission(7, test_id)

        assert exc_info.value.message == ErrorMessages.ATTEMPT_ALREADY_IN_PROGRESS
        assert db_session.query(Submission).count() == 1

    def test_open_attempt_index_allows_other_students(
        self, db_session, choice_and_essay_test
    ):
        test_id = choice_and_essay_test["test_id"]
        make_submission(db_session, test_id, student_id=1)

        submission = AttemptStore(db_session).create_submission(2, test_id)
        db_session.commit()

        assert submission.id is not None

    def test_list_submissions_filters_and_orders_newest_first(
        self, db_session, choice_and_essay_test, auto_graded_test
    ):
        first = make_submission(
            db_session, choice_and_essay_test["test_id"], finalized=True, start_offset=-10
        )
        second = make_submission(db_session, choice_and_essay_test["test_id"])
        other_test = make_submission(db_session, auto_graded_test["test_id"])
        other_student = make_submission(
            db_session, choice_and_essay_test["test_id"], student_id=8
        )
        store = AttemptStore(db_session)

        by_student_and_test = store.list_submissions(
            student_id=7, test_id=choice_and_essay_test["test_id"]
        )
        assert [s.id for s in by_student_and_test] == [second.id, first.id]

        by_student = store.list_submissions(student_id=7)
        assert {s.id for s in by_student} == {first.id, second.id, other_test.id}

        assert len(store.list_submissions()) == 4
        assert other_student.id in {s.id for s in store.list_submissions(student_id=8)}

    def test_latest_submission(self, db_session, choice_and_essay_test):
        test_id = choice_and_essay_test["test_id"]
        make_submission(db_session, test_id, finalized=True, start_offset=-30)
        latest = make_submission(db_session, test_id)
        store = AttemptStore(db_session)

        assert store.latest_submission(7, test_id).id == latest.id
        assert store.latest_submission(8, test_id) is None


class TestAnswers:
    """Tests for answer persistence."""

    def test_upsert_creates_then_overwrites(self, db_session, choice_and_essay_test):
        submission = make_submission(db_session, choice_and_essay_test["test_id"])
        store = AttemptStore(db_session)
        question_id = choice_and_essay_test["single_id"]

        first = store.upsert_answer(submission.id, question_id, "1")
        db_session.commit()
        second = store.upsert_answer(submission.id, question_id, "2")
        db_session.commit()

        assert first.id == second.id
        answers = store.list_answers(submission.id)
        assert len(answers) == 1
        assert answers[0].answer_text == "2"
        assert answers[0].answered_at is not None

    def test_upsert_clears_previous_grade(self, db_session, choice_and_essay_test):
        submission = make_submission(db_session, choice_and_essay_test["test_id"])
        store = AttemptStore(db_session)
        answer = store.upsert_answer(submission.id, choice_and_essay_test["essay_id"], "a")
        answer.is_correct = True
        answer.score = 3
        db_session.commit()

        answer = store.upsert_answer(submission.id, choice_and_essay_test["essay_id"], "b")

        assert answer.is_correct is None
        assert answer.score is None
        assert answer.graded_at is None

    def test_count_correct_answers(self, db_session, choice_and_essay_test):
        submission = make_submission(
            db_session, choice_and_essay_test["test_id"], finalized=True
        )
        db_session.add_all(
            [
                StudentAnswer(
                    submission_id=submission.id,
                    question_id=choice_and_essay_test["single_id"],
                    answer_text="1",
                    is_correct=True,
                    score=2,
                ),
                StudentAnswer(
                    submission_id=submission.id,
                    question_id=choice_and_essay_test["essay_id"],
                    answer_text="essay",
                    is_correct=False,
                    score=0,
                ),
            ]
        )
        db_session.commit()

        assert AttemptStore(db_session).count_correct_answers(submission.id) == 1


class TestPendingReviews:
    """Tests for the teacher review queue."""

    def test_lists_finalized_submissions_with_pending_answers(
        self, db_session, choice_and_essay_test, auto_graded_test
    ):
        pending = make_submission(
            db_session, choice_and_essay_test["test_id"], finalized=True
        )
        db_session.add(
            StudentAnswer(
                submission_id=pending.id,
                question_id=choice_and_essay_test["essay_id"],
                answer_text="essay",
            )
        )
        graded = make_submission(db_session, auto_graded_test["test_id"], finalized=True)
        db_session.add(
            StudentAnswer(
                submission_id=graded.id,
                question_id=auto_graded_test["single_id"],
                answer_text="1",
                is_correct=False,
                score=0,
            )
        )
        make_submission(db_session, choice_and_essay_test["test_id"], student_id=9)
        db_session.commit()

        queue = AttemptStore(db_session).list_pending_reviews()

        assert [s.id for s in queue] == [pending.id]

    def test_includes_manual_check_tests_without_pending_answers(
        self, db_session, manual_check_test
    ):
        submission = make_submission(
            db_session, manual_check_test["test_id"], finalized=True
        )

        queue = AttemptStore(db_session).list_pending_reviews(
            test_id=manual_check_test["test_id"]
        )

        assert [s.id for s in queue] == [submission.id]

    def test_reviewed_submissions_leave_the_queue(self, db_session, manual_check_test):
        submission = make_submission(
            db_session, manual_check_test["test_id"], finalized=True
        )
        submission.reviewed = True
        db_session.commit()

        assert AttemptStore(db_session).list_pending_reviews() == []


class TestDeleteSubmission:
    """Tests for deleting a submission."""

    def test_deletes_answers_and_submission(self, db_session, choice_and_essay_test):
        submission = make_submission(db_session, choice_and_essay_test["test_id"])
        store = AttemptStore(db_session)
        store.upsert_answer(submission.id, choice_and_essay_test["single_id"], "1")
        store.upsert_answer(submission.id, choice_and_essay_test["essay_id"], "text")
        db_session.commit()
        submission_id = submission.id

        removed = store.delete_submission(submission)
        db_session.commit()

        assert removed == 2
        assert store.find_submission(submission_id) is None
        assert db_session.query(StudentAnswer).count() == 0
