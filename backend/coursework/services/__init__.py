"""
Services package for business logic.
"""

from .attempt_store import AttemptStore
from .question_catalog import SqlQuestionCatalog
from .scoring_orchestrator import (
    FinalizeResult,
    ManualGradeResult,
    ScoringOrchestrator,
)

__all__ = [
    "AttemptStore",
    "SqlQuestionCatalog",
    "ScoringOrchestrator",
    "FinalizeResult",
    "ManualGradeResult",
]
