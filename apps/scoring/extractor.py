"""Recover the learner-authored fragment from a (possibly full-program) submission.

Extraction is best-effort and never raises. Signature rules are tried in the
declared order; the first rule that matches anywhere wins, and within a rule
the first occurrence in scan order wins. That ordering prefers the business
method over a ``main`` driver declared after it, but it can pick the driver
when the driver happens to match an earlier rule.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from jcas.core.config import DEFAULT_PLACEHOLDER

from .scaffold import Scaffold

LOGGER = logging.getLogger("jcas.scoring.extractor")

BODY_INDENT = " " * 8
WRITE_HERE_MARKER = "/* Write your code here */"

_STRUCTURE_RE = re.compile(
    r"^[ \t]*(?:public\s+)?(?:final\s+|abstract\s+)?(?:class|interface|enum)\s+\w+|^[ \t]*import\s+[\w.]",
    re.MULTILINE,
)
_WRITE_HERE_RE = re.compile(r"/\*\s*Write your code here\s*\*/")
_STARTER_COMMENT_RE = re.compile(r"^[ \t]*// Your implementation goes here[ \t]*$", re.MULTILINE)
_BLOCK_COMMENT_RE = re.compile(r"/\*[^*]*\*+(?:[^/*][^*]*\*+)*/")
_RETURN_RE = re.compile(r"\breturn\b[^;{}]*;")


@dataclass(frozen=True, slots=True)
class SignatureMatch:
    """Location of a matched method header inside a submission."""

    rule: str
    start: int
    body_start: int
    header: str
    method_name: str | None


@dataclass(frozen=True, slots=True)
class ThrowsClausePattern:
    """Matches ``) throws <Exception> {``, the declared business method of most scaffolds."""

    exception: str | None = None

    @property
    def name(self) -> str:
        return f"throws:{self.exception or '*'}"

    def match(self, source: str) -> Optional[SignatureMatch]:
        if self.exception:
            pattern = rf"\)\s*throws\s+{re.escape(self.exception)}\s*\{{"
        else:
            pattern = r"\)\s*throws\s+[^{\n]*?Exception\s*\{"
        found = re.search(pattern, source)
        if not found:
            return None
        return SignatureMatch(
            rule=self.name,
            start=found.start(),
            body_start=found.end(),
            header=found.group(0),
            method_name=_method_name_before(source, found.start()),
        )


@dataclass(frozen=True, slots=True)
class GenericMemberPattern:
    """A public, non-``main`` member returning one of the common types."""

    return_types: Tuple[str, ...] = ("int", "List<String>", "String", "void", "boolean", "double", "long")

    @property
    def name(self) -> str:
        return "member"

    def match(self, source: str) -> Optional[SignatureMatch]:
        types = "|".join(re.escape(item) for item in self.return_types)
        found = re.search(rf"public\s+(?:{types})\s+(?!main\b)(\w+)[^\n{{]*?\{{", source)
        if not found:
            return None
        return SignatureMatch(
            rule=self.name,
            start=found.start(),
            body_start=found.end(),
            header=found.group(0),
            method_name=found.group(1),
        )


SignatureRule = Union[ThrowsClausePattern, GenericMemberPattern]

DEFAULT_RULES: Tuple[SignatureRule, ...] = (
    ThrowsClausePattern("IOException"),
    ThrowsClausePattern(),
    GenericMemberPattern(),
)


def extract_fragment(
    raw_submission: str,
    scaffold: Scaffold | None = None,
    *,
    rules: Sequence[SignatureRule] = DEFAULT_RULES,
) -> str:
    """Return the learner's own code from ``raw_submission``."""
    placeholders = _placeholders_for(scaffold)
    if not _looks_structured(raw_submission, scaffold):
        LOGGER.debug("Submission is a bare fragment; returning as-is")
        return raw_submission

    match = _first_match(raw_submission, rules)
    if match is None:
        LOGGER.debug("No method signature found; trying comment markers")
        return _extract_by_marker(raw_submission, placeholders) or raw_submission

    end = _matching_brace(raw_submission, match.body_start)
    if end is None:
        LOGGER.debug("Unbalanced braces after %s; returning submission unchanged", match.rule)
        return raw_submission

    body = _strip_markers(raw_submission[match.body_start:end], placeholders)
    if _STRUCTURE_RE.search(body):
        LOGGER.debug("Method body holds a nested scaffold; extracting inner implementation")
        method_name = match.method_name or (scaffold.target_method_name if scaffold else None)
        nested = _extract_nested(body, method_name, placeholders)
        if nested is not None:
            return nested

    result = _dedent_body(body)
    LOGGER.debug("Extracted %d chars via %s", len(result), match.rule)
    return result


def _placeholders_for(scaffold: Scaffold | None) -> Tuple[str, ...]:
    if scaffold is None or scaffold.placeholder == DEFAULT_PLACEHOLDER:
        return (DEFAULT_PLACEHOLDER,)
    return (scaffold.placeholder, DEFAULT_PLACEHOLDER)


def _looks_structured(source: str, scaffold: Scaffold | None) -> bool:
    if _STRUCTURE_RE.search(source):
        return True
    signature = scaffold.enclosing_signature if scaffold else None
    if not signature:
        return False
    return _compact(signature) in _compact(source)


def _compact(text: str) -> str:
    return "".join(text.split())


def _first_match(source: str, rules: Sequence[SignatureRule]) -> Optional[SignatureMatch]:
    for rule in rules:
        match = rule.match(source)
        if match is not None:
            LOGGER.debug("Signature rule %s matched %r", match.rule, match.header)
            return match
    return None


def _matching_brace(source: str, start: int) -> int | None:
    depth = 0
    for index in range(start, len(source)):
        char = source[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == -1:
                return index
    return None


def _method_name_before(source: str, close_paren: int) -> str | None:
    depth = 0
    for index in range(close_paren, -1, -1):
        char = source[index]
        if char == ")":
            depth += 1
        elif char == "(":
            depth -= 1
            if depth == 0:
                found = re.search(r"(\w+)\s*$", source[:index])
                return found.group(1) if found else None
    return None


def _strip_markers(body: str, placeholders: Sequence[str]) -> str:
    cleaned = body.strip()
    cleaned = _WRITE_HERE_RE.sub("", cleaned, count=1).strip()
    for placeholder in placeholders:
        cleaned = cleaned.replace(placeholder, "", 1).strip()
    cleaned = _STARTER_COMMENT_RE.sub("", cleaned).strip()
    cleaned = _BLOCK_COMMENT_RE.sub("", cleaned, count=1).strip()
    return cleaned


def _dedent_body(body: str) -> str:
    lines = [line[len(BODY_INDENT):] if line.startswith(BODY_INDENT) else line for line in body.split("\n")]
    return "\n".join(lines).strip()


def _extract_nested(body: str, method_name: str | None, placeholders: Sequence[str]) -> str | None:
    if method_name:
        headers = list(re.finditer(rf"[\w>\]]\s+{re.escape(method_name)}\s*\([^)]*\)[^{{;]*\{{", body))
        if headers:
            innermost = headers[-1]
            end = _matching_brace(body, innermost.end())
            if end is not None:
                inner = _strip_markers(body[innermost.end():end], placeholders)
                if inner and not any(marker in inner for marker in placeholders):
                    return _dedent_body(inner)
    found = _RETURN_RE.search(body)
    if found:
        LOGGER.debug("Falling back to first return statement")
        return found.group(0).strip()
    return None


def _extract_by_marker(source: str, placeholders: Sequence[str]) -> str | None:
    markers = (WRITE_HERE_MARKER, *placeholders)
    position = next((source.find(marker) for marker in markers if marker in source), -1)
    if position == -1:
        return None
    brace = source.rfind("{", 0, position)
    if brace == -1:
        return None
    tail = source[brace + 1:]
    closing = tail.find("\n    }")
    if closing == -1:
        return None
    body = tail[:closing].strip()
    body = body.replace(WRITE_HERE_MARKER, "", 1).strip()
    for placeholder in placeholders:
        body = body.replace(placeholder, "", 1).strip()
    return body


__all__ = [
    "DEFAULT_RULES",
    "GenericMemberPattern",
    "SignatureMatch",
    "SignatureRule",
    "ThrowsClausePattern",
    "extract_fragment",
]
