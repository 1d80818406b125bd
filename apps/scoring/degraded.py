"""Heuristic review used when the execution service cannot be reached.

The checks are shallow text scans. They never fail the learner; every review
is queued for an instructor and treated as a success.
"""

from __future__ import annotations

import logging
import re
from typing import List

from .models import DegradedReview

LOGGER = logging.getLogger("jcas.scoring.degraded")

MIN_NON_WHITESPACE_CHARS = 20
REVIEW_NOTE = "Code execution is unavailable; your answer has been queued for instructor review."

_TRY_WITH_RESOURCES_RE = re.compile(r"\btry\s*\(([^)]*)\)", re.DOTALL)
_RESOURCE_TYPES = ("Reader", "Stream", "Scanner", "Writer")
_CASE_NORMALIZATION_RE = re.compile(r"\.(?:toLowerCase|toUpperCase|equalsIgnoreCase)\s*\(")
_RETURN_RE = re.compile(r"\breturn\b")


def _check_resources(fragment: str, expected_resource: str | None) -> str:
    declarations = _TRY_WITH_RESOURCES_RE.findall(fragment)
    if expected_resource:
        if any(expected_resource in declaration for declaration in declarations):
            return f"Uses try-with-resources with {expected_resource}."
        return f"Expected a try-with-resources block opening a {expected_resource}."
    if any(kind in declaration for declaration in declarations for kind in _RESOURCE_TYPES):
        return "Uses try-with-resources to close I/O resources."
    return "No try-with-resources block found; make sure readers and streams are closed."


def _check_case_normalization(fragment: str) -> str:
    if _CASE_NORMALIZATION_RE.search(fragment):
        return "Normalizes case before comparing text."
    return "No case normalization found; comparisons may be case-sensitive."


def _check_return(fragment: str) -> str:
    if _RETURN_RE.search(fragment):
        return "Contains a return statement."
    return "No return statement found."


def _check_braces(fragment: str) -> str:
    opened, closed = fragment.count("{"), fragment.count("}")
    if opened == closed:
        return "Braces are balanced."
    return f"Braces are unbalanced ({opened} opening, {closed} closing)."


def _check_length(fragment: str) -> str:
    size = len("".join(fragment.split()))
    if size >= MIN_NON_WHITESPACE_CHARS:
        return "Submission has a non-trivial implementation."
    return "Submission looks too short to be a complete implementation."


def review_heuristically(
    fragment: str,
    reason: str | None = None,
    *,
    expected_resource: str | None = None,
) -> DegradedReview:
    findings: List[str] = [
        _check_resources(fragment, expected_resource),
        _check_case_normalization(fragment),
        _check_return(fragment),
        _check_braces(fragment),
        _check_length(fragment),
        REVIEW_NOTE,
    ]
    LOGGER.warning("Execution unavailable (%s); issued heuristic review", reason or "unknown reason")
    return DegradedReview(heuristic_findings=findings, treated_as_success=True, reason=reason)


__all__ = ["MIN_NON_WHITESPACE_CHARS", "REVIEW_NOTE", "review_heuristically"]
