from __future__ import annotations

import pytest

from apps.scoring.feedback import error_feedback, error_hint, summarize_tests
from apps.scoring.models import TestCase, TestResult


def _result(index: int, passed: bool, actual: str = "") -> TestResult:
    return TestResult(
        index=index,
        test_case=TestCase(input=f"in-{index}", expected_output=f"out-{index}"),
        actual_output=actual,
        passed=passed,
    )


def test_summary_lists_every_case() -> None:
    text = summarize_tests([_result(0, True, "out-0"), _result(1, False, "oops")])

    assert text.splitlines()[0] == "Passed 1 out of 2 test cases."
    assert "Test 1 PASS\nInput: in-0\nExpected: out-0\nGot: out-0" in text
    assert "Test 2 FAIL\nInput: in-1\nExpected: out-1\nGot: oops" in text
    assert text.endswith("Good progress! Review the failed test cases and adjust your solution.")


def test_summary_closing_line_depends_on_pass_count() -> None:
    assert summarize_tests([_result(0, True)]).endswith("All test cases passed.")
    assert summarize_tests([_result(0, False)]).endswith("Review the requirements and try again.")


@pytest.mark.parametrize(
    "error,fragment",
    [
        ("Main.java:4: error: cannot find symbol", "Variable or method not found"),
        ("Main.java:4: error: ';' expected", "Missing semicolon"),
        ("class Foo is public, should be declared in a file named Foo.java", "Class declaration issue"),
        ("java.lang.ArrayIndexOutOfBoundsException: Index 3 out of bounds for length 3", "Array index out of bounds"),
        ("Exception in thread \"main\" java.lang.NullPointerException", "Null pointer exception"),
    ],
)
def test_error_hints(error: str, fragment: str) -> None:
    assert fragment in (error_hint(error) or "")
    assert error_feedback(error).startswith("Compilation/Runtime Error:\n\n" + error)


def test_error_feedback_without_hint() -> None:
    assert error_hint("Segmentation fault") is None
    assert error_feedback("Segmentation fault") == "Compilation/Runtime Error:\n\nSegmentation fault"
    assert error_feedback(None) == "Unknown error occurred during execution."
