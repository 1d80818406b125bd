"""Value objects exchanged between the scoring components."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar, List, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class StatusClass(str, Enum):
    """Normalized outcome of a single remote run."""

    ACCEPTED = "accepted"
    WRONG_ANSWER = "wrong_answer"
    TIME_LIMIT = "time_limit"
    COMPILE_ERROR = "compile_error"
    RUNTIME_ERROR = "runtime_error"
    INTERNAL_ERROR = "internal_error"
    UNKNOWN = "unknown"


class TestCase(BaseModel):
    """One declared input/expected-output pair, identified by its position."""

    __test__: ClassVar[bool] = False

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    input: str = ""
    expected_output: str = Field(
        default="",
        validation_alias=AliasChoices("expected_output", "expectedOutput", "expected", "output"),
    )
    description: str = ""


class ExecutionOutcome(BaseModel):
    """Decoded result of one submission to the execution service."""

    model_config = ConfigDict(frozen=True)

    terminal: bool = True
    status_class: StatusClass
    status_id: int | None = None
    status_description: str = ""
    stdout: str = ""
    stderr: str = ""
    compile_output: str = ""
    time_ms: float | None = None
    memory_kb: int | None = None
    exit_code: int | None = None
    token: str | None = None

    @property
    def accepted(self) -> bool:
        return self.status_class is StatusClass.ACCEPTED

    @property
    def error_text(self) -> str:
        """Most useful diagnostic for the learner: compiler output first, then stderr."""
        if self.compile_output.strip():
            return self.compile_output.strip()
        if self.stderr.strip():
            return self.stderr.strip()
        if not self.accepted:
            return self.status_description
        return ""


class TestResult(BaseModel):
    """Outcome of running the composed program against one test case."""

    __test__: ClassVar[bool] = False

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0)
    test_case: TestCase
    actual_output: str = ""
    passed: bool = False
    outcome: ExecutionOutcome | None = None
    error: str | None = None


class ScoreReport(BaseModel):
    """Aggregated score for one learner action."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["score"] = "score"
    passed_count: int = Field(default=0, ge=0)
    total_count: int = Field(default=0, ge=0)
    percentage: int = Field(default=0, ge=0, le=100)
    per_test_results: List[TestResult] = Field(default_factory=list)
    feedback_text: str = ""
    outcome: ExecutionOutcome | None = None
    error: str | None = None

    max_score: ClassVar[int] = 100

    @property
    def succeeded(self) -> bool:
        return self.percentage == self.max_score


class DegradedReview(BaseModel):
    """Heuristic review issued when the execution service is unreachable."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["degraded"] = "degraded"
    heuristic_findings: List[str] = Field(default_factory=list)
    treated_as_success: bool = True
    reason: str | None = None


__all__ = [
    "DegradedReview",
    "ExecutionOutcome",
    "ScoreReport",
    "StatusClass",
    "TestCase",
    "TestResult",
]
