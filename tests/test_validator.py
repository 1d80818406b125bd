from __future__ import annotations

from typing import List, Sequence

import httpx
import pytest

from apps.scoring.errors import ConfigurationError, ExecutionTimeout, TransportError
from apps.scoring.models import ExecutionOutcome, StatusClass, TestCase
from apps.scoring.validator import TestValidator, normalize_output, outputs_match, score_percentage


def _outcome(status: StatusClass = StatusClass.ACCEPTED, stdout: str = "", **fields) -> ExecutionOutcome:
    return ExecutionOutcome(status_class=status, stdout=stdout, **fields)


class ScriptedExecutor:
    """Replays outcomes (or raises exceptions) in order."""

    def __init__(self, script: Sequence[object]) -> None:
        self.script = list(script)
        self.calls: List[str] = []

    async def execute(self, program, stdin: str = "") -> ExecutionOutcome:
        self.calls.append(stdin)
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        return step  # type: ignore[return-value]


@pytest.mark.parametrize(
    "raw",
    ["  hello  ", "a\r\nb\rc", "1   2\t\t3\n\n4", "", "\n\n", "x  \r\n  y"],
)
def test_normalize_output_is_idempotent(raw: str) -> None:
    once = normalize_output(raw)
    assert normalize_output(once) == once


def test_outputs_match_ignores_whitespace_layout() -> None:
    assert outputs_match("1 2\r\n3\n", "1 2\n3")
    assert outputs_match("a   b", "a b")
    assert not outputs_match("ab", "a b")


@pytest.mark.parametrize(
    "passed,total,expected",
    [(0, 3, 0), (1, 3, 33), (2, 3, 67), (1, 2, 50), (1, 8, 13), (3, 3, 100), (0, 0, 0)],
)
def test_score_percentage_rounds_half_up(passed: int, total: int, expected: int) -> None:
    assert score_percentage(passed, total) == expected


@pytest.mark.anyio
async def test_validate_scores_passing_cases(fake_sleep, sleeps) -> None:
    cases = [TestCase(input="1", expected_output="2"), TestCase(input="2", expected_output="4"), TestCase(input="3", expected_output="6")]
    executor = ScriptedExecutor(
        [
            _outcome(stdout="2\n"),
            _outcome(stdout="5\n"),
            _outcome(StatusClass.RUNTIME_ERROR, stdout="", stderr="java.lang.NullPointerException"),
        ]
    )
    report = await TestValidator(executor, delay_ms=500, sleep=fake_sleep).validate("program", cases)

    assert executor.calls == ["1", "2", "3"]
    assert sleeps == [0.5, 0.5]
    assert report.passed_count == 1
    assert report.total_count == 3
    assert report.percentage == 33
    assert [result.passed for result in report.per_test_results] == [True, False, False]
    assert report.per_test_results[2].actual_output == "java.lang.NullPointerException"
    assert report.feedback_text.startswith("Passed 1 out of 3 test cases.")
    assert "Test 2 FAIL" in report.feedback_text


@pytest.mark.anyio
async def test_compile_error_fails_every_case_regardless_of_stdout(fake_sleep) -> None:
    cases = [TestCase(input="a", expected_output="2"), TestCase(input="b", expected_output="2")]
    compile_error = _outcome(StatusClass.COMPILE_ERROR, stdout="2", compile_output="error: ';' expected")
    executor = ScriptedExecutor([compile_error, compile_error])

    report = await TestValidator(executor, sleep=fake_sleep).validate("program", cases)

    assert report.percentage == 0
    assert all(not result.passed for result in report.per_test_results)


@pytest.mark.anyio
async def test_zero_test_cases_run_once_with_question_stdin(fake_sleep) -> None:
    executor = ScriptedExecutor([_outcome(stdout="hi")])
    report = await TestValidator(executor, sleep=fake_sleep).validate("program", [], stdin="seed")

    assert executor.calls == ["seed"]
    assert report.percentage == 100
    assert report.total_count == 0
    assert report.outcome is not None and report.outcome.accepted

    failing = ScriptedExecutor([_outcome(StatusClass.COMPILE_ERROR, compile_output="Main.java:1: error: cannot find symbol")])
    report = await TestValidator(failing, sleep=fake_sleep).validate("program", [])

    assert report.percentage == 0
    assert "Hint: Variable or method not found" in report.feedback_text


@pytest.mark.anyio
async def test_one_failing_execution_does_not_abort_the_batch(fake_sleep) -> None:
    cases = [TestCase(input="1", expected_output="1"), TestCase(input="2", expected_output="2")]
    executor = ScriptedExecutor([ExecutionTimeout("tok-1", 10), _outcome(stdout="2")])

    report = await TestValidator(executor, sleep=fake_sleep).validate("program", cases)

    first, second = report.per_test_results
    assert not first.passed
    assert "timed out" in (first.error or "")
    assert second.passed
    assert report.percentage == 50
    assert "timed out" in report.feedback_text


@pytest.mark.anyio
async def test_unreachable_service_stops_the_batch_at_once(fake_sleep, sleeps) -> None:
    cases = [TestCase(input=str(n), expected_output=str(n)) for n in range(5)]
    executor = ScriptedExecutor([TransportError("down")] * 5)

    with pytest.raises(TransportError, match="down"):
        await TestValidator(executor, sleep=fake_sleep).validate("program", cases)

    assert executor.calls == ["0"]
    assert sleeps == []


@pytest.mark.anyio
async def test_outage_after_earlier_cases_still_surfaces(fake_sleep) -> None:
    cases = [TestCase(input="1", expected_output="1"), TestCase(input="2", expected_output="2")]
    executor = ScriptedExecutor([_outcome(stdout="1"), ConfigurationError("key revoked")])

    with pytest.raises(ConfigurationError):
        await TestValidator(executor, sleep=fake_sleep).validate("program", cases)

    assert executor.calls == ["1", "2"]


@pytest.mark.anyio
async def test_unexpected_client_exception_is_isolated_per_case(fake_sleep) -> None:
    cases = [TestCase(input="1", expected_output="1"), TestCase(input="2", expected_output="2")]
    executor = ScriptedExecutor([httpx.InvalidURL("bad url"), _outcome(stdout="2")])

    report = await TestValidator(executor, sleep=fake_sleep).validate("program", cases)

    first, second = report.per_test_results
    assert not first.passed
    assert first.error == "bad url"
    assert second.passed
    assert report.percentage == 50
