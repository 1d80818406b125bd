"""Remote execution and scoring of learner Java submissions."""
from .degraded import review_heuristically
from .errors import (
    ConfigurationError,
    ExecutionTimeout,
    ExecutionUnavailable,
    MalformedScaffold,
    RemoteServiceError,
    ScoringError,
    TransportError,
)
from .execution_client import ExecutionClient
from .extractor import extract_fragment
from .models import DegradedReview, ExecutionOutcome, ScoreReport, StatusClass, TestCase, TestResult
from .scaffold import ComposedProgram, Scaffold, compose, fill_todo_markers, wrap_in_class
from .service import AssessmentScorer
from .template_store import Question, QuestionBank, TemplateStore
from .validator import TestValidator, normalize_output, score_percentage

__all__ = [
    "AssessmentScorer",
    "ComposedProgram",
    "ConfigurationError",
    "DegradedReview",
    "ExecutionClient",
    "ExecutionOutcome",
    "ExecutionTimeout",
    "ExecutionUnavailable",
    "MalformedScaffold",
    "Question",
    "QuestionBank",
    "RemoteServiceError",
    "Scaffold",
    "ScoreReport",
    "ScoringError",
    "StatusClass",
    "TemplateStore",
    "TestCase",
    "TestResult",
    "TestValidator",
    "TransportError",
    "compose",
    "extract_fragment",
    "fill_todo_markers",
    "normalize_output",
    "review_heuristically",
    "score_percentage",
    "wrap_in_class",
]
