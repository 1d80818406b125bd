"""Run a composed program against its test cases and aggregate a score."""

from __future__ import annotations

import logging
import math
import re
from typing import Awaitable, Callable, ClassVar, List, Protocol, Sequence

import anyio

from . import feedback
from .errors import ExecutionUnavailable
from .models import ExecutionOutcome, ScoreReport, TestCase, TestResult
from .scaffold import ComposedProgram

LOGGER = logging.getLogger("jcas.scoring.validator")

DEFAULT_TEST_CASE_DELAY_MS = 500
_WHITESPACE_RUN_RE = re.compile(r"\s+")


class Executor(Protocol):
    async def execute(self, program: ComposedProgram | str, stdin: str = "") -> ExecutionOutcome:
        ...


def normalize_output(text: str | None) -> str:
    """Trim, unify line endings, then collapse every whitespace run to one space."""
    if not text:
        return ""
    unified = text.strip().replace("\r\n", "\n").replace("\r", "\n")
    return _WHITESPACE_RUN_RE.sub(" ", unified)


def outputs_match(actual: str | None, expected: str | None) -> bool:
    return normalize_output(actual) == normalize_output(expected)


def score_percentage(passed: int, total: int) -> int:
    """Half-up rounded percentage, so 1 of 8 scores 13."""
    if total <= 0:
        return 0
    return int(math.floor(100 * passed / total + 0.5))


class TestValidator:
    """Executes test cases one at a time, in declared order."""

    __test__: ClassVar[bool] = False

    def __init__(
        self,
        client: Executor,
        *,
        delay_ms: int | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.client = client
        self.delay_ms = DEFAULT_TEST_CASE_DELAY_MS if delay_ms is None else delay_ms
        self._sleep = sleep or anyio.sleep

    async def validate(
        self,
        program: ComposedProgram | str,
        test_cases: Sequence[TestCase],
        *,
        stdin: str = "",
    ) -> ScoreReport:
        if not test_cases:
            return await self._single_run(program, stdin)

        results: List[TestResult] = []
        for index, case in enumerate(test_cases):
            if index and self.delay_ms:
                await self._sleep(self.delay_ms / 1000)
            try:
                outcome = await self.client.execute(program, case.input)
            except ExecutionUnavailable:
                LOGGER.warning("Execution unavailable at test case %d; abandoning the batch", index + 1)
                raise
            except Exception as exc:
                LOGGER.warning("Test case %d failed to execute: %s", index + 1, exc)
                results.append(TestResult(index=index, test_case=case, passed=False, error=str(exc)))
                continue
            results.append(self._judge(index, case, outcome))

        passed = sum(1 for result in results if result.passed)
        errors = [result.error for result in results if result.error]
        LOGGER.info("Validated %d/%d test cases", passed, len(results))
        return ScoreReport(
            passed_count=passed,
            total_count=len(results),
            percentage=score_percentage(passed, len(results)),
            per_test_results=results,
            feedback_text=feedback.summarize_tests(results),
            error=errors[0] if errors else None,
        )

    @staticmethod
    def _judge(index: int, case: TestCase, outcome: ExecutionOutcome) -> TestResult:
        if not outcome.accepted:
            return TestResult(
                index=index,
                test_case=case,
                actual_output=outcome.stdout.strip() or outcome.error_text,
                passed=False,
                outcome=outcome,
            )
        return TestResult(
            index=index,
            test_case=case,
            actual_output=outcome.stdout.strip(),
            passed=outputs_match(outcome.stdout, case.expected_output),
            outcome=outcome,
        )

    async def _single_run(self, program: ComposedProgram | str, stdin: str) -> ScoreReport:
        outcome = await self.client.execute(program, stdin)
        LOGGER.info("Single run finished with %s", outcome.status_class.value)
        return ScoreReport(
            passed_count=0,
            total_count=0,
            percentage=ScoreReport.max_score if outcome.accepted else 0,
            feedback_text=feedback.single_run_feedback(outcome.accepted, outcome.error_text),
            outcome=outcome,
            error=None if outcome.accepted else outcome.error_text,
        )


__all__ = ["TestValidator", "normalize_output", "outputs_match", "score_percentage"]
