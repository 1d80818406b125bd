"""Learner-facing feedback text for score reports."""

from __future__ import annotations

import re
from typing import Sequence, Tuple

from .models import TestResult

EMPTY_SUBMISSION_MESSAGE = "Please write your code in the designated area."

_ERROR_HINTS: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (
        re.compile(r"cannot find symbol", re.IGNORECASE),
        "Variable or method not found. Check your variable names and method declarations.",
    ),
    (
        re.compile(r"';' expected", re.IGNORECASE),
        "Missing semicolon. Make sure each statement ends with a semicolon.",
    ),
    (
        re.compile(r"class.*public", re.IGNORECASE),
        "Class declaration issue. Make sure your class name matches the filename.",
    ),
    (
        re.compile(r"array.*out.*bounds", re.IGNORECASE),
        "Array index out of bounds. Check your array indices.",
    ),
    (
        re.compile(r"null.*pointer", re.IGNORECASE),
        "Null pointer exception. Make sure objects are initialized before use.",
    ),
)


def summarize_tests(results: Sequence[TestResult]) -> str:
    """Per-test PASS/FAIL listing followed by an overall verdict."""
    total = len(results)
    passed = sum(1 for result in results if result.passed)
    lines = [f"Passed {passed} out of {total} test cases.", ""]
    for result in results:
        verdict = "PASS" if result.passed else "FAIL"
        lines.append(f"Test {result.index + 1} {verdict}")
        lines.append(f"Input: {result.test_case.input}")
        lines.append(f"Expected: {result.test_case.expected_output}")
        lines.append(f"Got: {result.actual_output}")
        if result.error:
            lines.append(f"Error: {result.error}")
        lines.append("")

    if passed == total:
        lines.append("Excellent! All test cases passed.")
    elif passed > 0:
        lines.append("Good progress! Review the failed test cases and adjust your solution.")
    else:
        lines.append("No test cases passed. Review the requirements and try again.")
    return "\n".join(lines)


def error_hint(error: str | None) -> str | None:
    if not error:
        return None
    for pattern, message in _ERROR_HINTS:
        if pattern.search(error):
            return message
    return None


def error_feedback(error: str | None) -> str:
    """Compiler/runtime diagnostics with the first matching hint appended."""
    if not error:
        return "Unknown error occurred during execution."
    text = f"Compilation/Runtime Error:\n\n{error}"
    hint = error_hint(error)
    if hint:
        text += f"\n\nHint: {hint}"
    return text


def single_run_feedback(accepted: bool, error: str | None = None) -> str:
    if accepted:
        return "Code compiled and executed successfully!"
    return error_feedback(error)


def service_failure_feedback(error: Exception) -> str:
    return f"Code execution failed: {error}. Your answer was not scored; please try again later."


__all__ = [
    "EMPTY_SUBMISSION_MESSAGE",
    "error_feedback",
    "error_hint",
    "service_failure_feedback",
    "single_run_feedback",
    "summarize_tests",
]
