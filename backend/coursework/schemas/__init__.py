"""
Pydantic schemas for request/response validation.
"""
from .submissions import (
    StartAttemptRequest,
    RecordAnswerRequest,
    ManualGradeRequest,
    StudentAnswerResponse,
    SubmissionResponse,
    SubmissionDetailResponse,
    FinalizeResponse,
    ManualGradeResponse,
)

__all__ = [
    "StartAttemptRequest",
    "RecordAnswerRequest",
    "ManualGradeRequest",
    "StudentAnswerResponse",
    "SubmissionResponse",
    "SubmissionDetailResponse",
    "FinalizeResponse",
    "ManualGradeResponse",
]
