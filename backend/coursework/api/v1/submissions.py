"""
Submission lifecycle endpoints.

Every route is a thin wrapper over ``ScoringOrchestrator``. Domain errors
raised by the orchestrator are translated to HTTP responses through
``raise_for_assessment_error``.
"""
import logging
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional

from coursework.core.error_responses import (
    ErrorMessages,
    raise_for_assessment_error,
    raise_forbidden,
)
from coursework.core.exceptions import AssessmentError
from coursework.models import Submission, get_db
from coursework.schemas.submissions import (
    FinalizeResponse,
    ManualGradeRequest,
    ManualGradeResponse,
    RecordAnswerRequest,
    StartAttemptRequest,
    StudentAnswerResponse,
    SubmissionDetailResponse,
    SubmissionResponse,
)
from coursework.services.scoring_orchestrator import ScoringOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


def get_orchestrator(db: Session = Depends(get_db)) -> ScoringOrchestrator:
    return ScoringOrchestrator(db)


def build_submission_detail(
    orchestrator: ScoringOrchestrator, submission: Submission
) -> SubmissionDetailResponse:
    """
    Assemble a submission with its answers and correct-answer count.

    Args:
        orchestrator: Orchestrator bound to the request's session
        submission: Submission to describe

    Returns:
        SubmissionDetailResponse
    """
    summary = SubmissionResponse.model_validate(submission)
    answers = orchestrator.list_answers(submission.id)
    return SubmissionDetailResponse(
        **summary.model_dump(),
        answers=[StudentAnswerResponse.model_validate(answer) for answer in answers],
        correct_answers=orchestrator.count_correct_answers(submission.id),
    )


@router.post(
    "",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
def start_attempt(
    request: StartAttemptRequest,
    orchestrator: ScoringOrchestrator = Depends(get_orchestrator),
):
    """
    Open a new attempt at a test.

    Returns:
        The created submission (status in_progress)

    Raises:
        HTTPException: 404 for an unknown test, 409 if the student already
            has an open attempt at the test
    """
    try:
        submission = orchestrator.start_attempt(request.student_id, request.test_id)
    except AssessmentError as exc:
        raise_for_assessment_error(exc)
    return SubmissionResponse.model_validate(submission)


@router.get("", response_model=List[SubmissionResponse])
def list_submissions(
    student_id: Optional[int] = Query(None, ge=1, description="Filter by student"),
    test_id: Optional[int] = Query(None, ge=1, description="Filter by test"),
    orchestrator: ScoringOrchestrator = Depends(get_orchestrator),
):
    """List submissions, newest first."""
    submissions = orchestrator.list_submissions(student_id=student_id, test_id=test_id)
    return [SubmissionResponse.model_validate(item) for item in submissions]


@router.get("/latest", response_model=SubmissionResponse)
def get_latest_submission(
    student_id: int = Query(..., ge=1, description="Student ID"),
    test_id: int = Query(..., ge=1, description="Test ID"),
    orchestrator: ScoringOrchestrator = Depends(get_orchestrator),
):
    """
    Get a student's most recent attempt at a test.

    Raises:
        HTTPException: 404 if the student never started the test
    """
    try:
        submission = orchestrator.latest_submission(student_id, test_id)
    except AssessmentError as exc:
        raise_for_assessment_error(exc)
    return SubmissionResponse.model_validate(submission)


@router.get("/pending-review", response_model=List[SubmissionResponse])
def list_pending_reviews(
    test_id: Optional[int] = Query(None, ge=1, description="Filter by test"),
    orchestrator: ScoringOrchestrator = Depends(get_orchestrator),
):
    """List finalized submissions still waiting for a teacher, oldest first."""
    submissions = orchestrator.list_pending_reviews(test_id=test_id)
    return [SubmissionResponse.model_validate(item) for item in submissions]


@router.get("/{submission_id}", response_model=SubmissionDetailResponse)
def get_submission(
    submission_id: int,
    student_id: Optional[int] = Query(
        None, ge=1, description="If given, the submission must belong to this student"
    ),
    orchestrator: ScoringOrchestrator = Depends(get_orchestrator),
):
    """
    Get a submission with its answers.

    Raises:
        HTTPException: 404 if not found, 403 if ``student_id`` is given and
            the submission belongs to someone else
    """
    try:
        submission = orchestrator.get_submission(submission_id)
        if student_id is not None and not orchestrator.is_owned_by(
            submission_id, student_id
        ):
            raise_forbidden(ErrorMessages.submission_not_owned(submission_id, student_id))
        return build_submission_detail(orchestrator, submission)
    except AssessmentError as exc:
        raise_for_assessment_error(exc)


@router.put(
    "/{submission_id}/answers/{question_id}",
    response_model=StudentAnswerResponse,
)
def record_answer(
    submission_id: int,
    question_id: int,
    request: RecordAnswerRequest,
    orchestrator: ScoringOrchestrator = Depends(get_orchestrator),
):
    """
    Record or overwrite the answer to one question of an open attempt.

    Raises:
        HTTPException: 404 for unknown ids, 400 if the question is not part
            of the test or the answer is too long, 409 if the attempt is
            already finalized
    """
    try:
        answer = orchestrator.record_answer(
            submission_id, question_id, request.answer_text
        )
    except AssessmentError as exc:
        raise_for_assessment_error(exc)
    return StudentAnswerResponse.model_validate(answer)


@router.post("/{submission_id}/finalize", response_model=FinalizeResponse)
def finalize_attempt(
    submission_id: int,
    orchestrator: ScoringOrchestrator = Depends(get_orchestrator),
):
    """
    Close an attempt and compute its score.

    Raises:
        HTTPException: 404 if not found, 409 if already finalized or
            modified concurrently
    """
    try:
        result = orchestrator.finalize_attempt(submission_id)
    except AssessmentError as exc:
        raise_for_assessment_error(exc)
    return FinalizeResponse.model_validate(result)


@router.post(
    "/{submission_id}/answers/{question_id}/grade",
    response_model=ManualGradeResponse,
)
def apply_manual_grade(
    submission_id: int,
    question_id: int,
    request: ManualGradeRequest,
    orchestrator: ScoringOrchestrator = Depends(get_orchestrator),
):
    """
    Grade one answer by hand and recompute the submission total.

    Raises:
        HTTPException: 404 for unknown ids, 400 if the question cannot be
            graded manually or the score is out of range, 409 if the attempt
            is not finalized
    """
    try:
        result = orchestrator.apply_manual_grade(
            submission_id, question_id, request.is_correct, request.score
        )
    except AssessmentError as exc:
        raise_for_assessment_error(exc)
    return ManualGradeResponse.model_validate(result)


@router.post("/{submission_id}/review", response_model=SubmissionResponse)
def complete_review(
    submission_id: int,
    orchestrator: ScoringOrchestrator = Depends(get_orchestrator),
):
    """
    Sign off on a finalized submission whose answers are all graded.

    Raises:
        HTTPException: 404 if not found, 409 if not finalized or answers
            are still pending
    """
    try:
        submission = orchestrator.complete_review(submission_id)
    except AssessmentError as exc:
        raise_for_assessment_error(exc)
    return SubmissionResponse.model_validate(submission)


@router.delete("/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_submission(
    submission_id: int,
    orchestrator: ScoringOrchestrator = Depends(get_orchestrator),
):
    """
    Delete a submission and its answers.

    Raises:
        HTTPException: 404 if not found
    """
    try:
        orchestrator.delete_submission(submission_id)
    except AssessmentError as exc:
        raise_for_assessment_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
