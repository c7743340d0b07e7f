"""
Pydantic schemas for submission endpoints.
"""
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from coursework.core.validators import StringSanitizer, TextValidator


class StartAttemptRequest(BaseModel):
    """Schema for opening a new attempt."""

    student_id: int = Field(..., description="Student (external user) ID")
    test_id: int = Field(..., description="Test to attempt")

    @field_validator("student_id")
    @classmethod
    def validate_student_id(cls, v: int) -> int:
        return TextValidator.validate_positive_id(v, "Student ID")

    @field_validator("test_id")
    @classmethod
    def validate_test_id(cls, v: int) -> int:
        return TextValidator.validate_positive_id(v, "Test ID")


class RecordAnswerRequest(BaseModel):
    """Schema for recording an answer to one question.

    Choice questions take the selected option id(s) as text, comma-separated
    for multiple choice. Other questions take free text. Length limits are
    enforced by the service.
    """

    answer_text: str = Field(
        ..., description="Raw answer: option id(s) such as '12' or '3,5', or free text"
    )

    @field_validator("answer_text")
    @classmethod
    def sanitize_answer(cls, v: str) -> str:
        return StringSanitizer.strip_control_characters(v)


class ManualGradeRequest(BaseModel):
    """Schema for a teacher's grade on one answer.

    The allowed score range depends on the question and is checked by the
    service.
    """

    is_correct: bool = Field(..., description="Whether the answer is correct")
    score: int = Field(..., description="Points awarded (0 to the question's points)")


class StudentAnswerResponse(BaseModel):
    """Schema for a recorded answer."""

    id: int = Field(..., description="Answer ID")
    submission_id: int = Field(..., description="Owning submission ID")
    question_id: int = Field(..., description="Answered question ID")
    answer_text: Optional[str] = Field(
        None, description="Raw answer text (null if the question was left unanswered)"
    )
    is_correct: Optional[bool] = Field(
        None, description="Correctness (null until graded)"
    )
    score: Optional[int] = Field(None, description="Points awarded (null until graded)")
    answered_at: Optional[datetime] = Field(
        None, description="When the answer was last recorded"
    )
    graded_at: Optional[datetime] = Field(None, description="When the answer was graded")

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class SubmissionResponse(BaseModel):
    """Schema for a submission without its answers."""

    id: int = Field(..., description="Submission ID")
    student_id: int = Field(..., description="Student ID")
    test_id: int = Field(..., description="Test ID")
    status: str = Field(
        ..., description="Lifecycle stage (in_progress, finalized, reviewed)"
    )
    start_time: datetime = Field(..., description="Attempt start timestamp")
    end_time: Optional[datetime] = Field(
        None, description="Finalization timestamp (null while in progress)"
    )
    duration_seconds: Optional[int] = Field(
        None, description="Seconds from start to finalize (null while in progress)"
    )
    last_answered_at: Optional[datetime] = Field(
        None, description="When the latest answer was recorded"
    )
    score: Optional[int] = Field(None, description="Total score (null until finalized)")
    reviewed: bool = Field(False, description="Whether a teacher completed the review")

    @field_validator("status", mode="before")
    @classmethod
    def status_value(cls, v) -> str:
        return v.value if hasattr(v, "value") else v

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class SubmissionDetailResponse(SubmissionResponse):
    """Schema for a submission together with its answers."""

    answers: List[StudentAnswerResponse] = Field(
        default_factory=list, description="Answers recorded in this submission"
    )
    correct_answers: int = Field(0, description="Number of answers graded correct")


class FinalizeResponse(BaseModel):
    """Schema for the result of finalizing an attempt."""

    submission_id: int = Field(..., description="Finalized submission ID")
    score: int = Field(..., description="Total score; pending answers count as 0")
    max_points: int = Field(..., description="Points available on the test")
    requires_manual_review: bool = Field(
        ..., description="Whether a teacher still has to review the submission"
    )
    reviewed: bool = Field(..., description="Whether the review is complete")

    class Config:
        """Pydantic configuration."""

        from_attributes = True


class ManualGradeResponse(BaseModel):
    """Schema for the submission totals after a manual grade."""

    submission_id: int = Field(..., description="Submission ID")
    score: int = Field(..., description="Recomputed total score")
    reviewed: bool = Field(
        ..., description="True once no answer in the submission is pending"
    )

    class Config:
        """Pydantic configuration."""

        from_attributes = True
