"""Scaffolds and the composer that injects learner fragments into them."""

from __future__ import annotations

import re
from typing import Any, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from jcas.core.config import DEFAULT_PLACEHOLDER

from .errors import MalformedScaffold

DEFAULT_STARTER_BODY = "        // Your implementation goes here\n        "
_INSTRUCTION_RE = re.compile(r"//.*\b(Complete|Extract)")
_SIGNATURE_NAME_RE = re.compile(r"(\w+)\s*\(")
_TODO_MARKER_RE = re.compile(r"/\*\s*TODO.*?\*/|//\s*TODO.*", re.IGNORECASE)


class Scaffold(BaseModel):
    """Fixed program text around a single placeholder."""

    model_config = ConfigDict(frozen=True)

    lines: Tuple[str, ...]
    placeholder: str = Field(default=DEFAULT_PLACEHOLDER, min_length=1)

    @field_validator("lines", mode="before")
    @classmethod
    def split_source(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(value.split("\n"))
        return value

    @classmethod
    def from_source(cls, source: str | Sequence[str], *, placeholder: str = DEFAULT_PLACEHOLDER) -> "Scaffold":
        return cls(lines=source, placeholder=placeholder)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def placeholder_count(self) -> int:
        return self.text.count(self.placeholder)

    @property
    def enclosing_signature(self) -> str | None:
        """Header line of the method that encloses the placeholder, if any."""
        for index, line in enumerate(self.lines):
            if self.placeholder in line:
                for candidate in reversed(self.lines[:index]):
                    stripped = candidate.strip()
                    if "(" in stripped and stripped.endswith("{"):
                        return stripped
                return None
        return None

    @property
    def target_method_name(self) -> str | None:
        signature = self.enclosing_signature
        if not signature:
            return None
        match = _SIGNATURE_NAME_RE.search(signature)
        return match.group(1) if match else None

    def render_starter(self, saved_answer: str | None = None, *, code_completion: bool = False) -> str:
        """Text shown in the editor before the learner starts typing."""
        text = self.text
        if saved_answer:
            return text.replace(self.placeholder, saved_answer, 1)
        if code_completion:
            before = text.split(self.placeholder, 1)[0].split("\n")
            for line in before[-3:]:
                if _INSTRUCTION_RE.search(line):
                    return text.replace(self.placeholder, "", 1)
        return text.replace(self.placeholder, DEFAULT_STARTER_BODY, 1)


class ComposedProgram(BaseModel):
    """A complete program ready for execution."""

    model_config = ConfigDict(frozen=True)

    source: str
    fragment: str
    fragment_offset: int = Field(..., ge=0)
    scaffold: Scaffold | None = None

    def __str__(self) -> str:
        return self.source


def compose(scaffold: Scaffold, fragment: str) -> ComposedProgram:
    """Replace the scaffold's placeholder with ``fragment`` verbatim."""
    count = scaffold.placeholder_count
    if count != 1:
        raise MalformedScaffold(scaffold.placeholder, count)
    text = scaffold.text
    offset = text.index(scaffold.placeholder)
    source = text[:offset] + fragment + text[offset + len(scaffold.placeholder):]
    return ComposedProgram(source=source, fragment=fragment, fragment_offset=offset, scaffold=scaffold)


def fill_todo_markers(incomplete_code: str, fragment: str) -> ComposedProgram:
    """Replace every ``// TODO`` line comment and ``/* TODO */`` block in ``incomplete_code``."""
    first = _TODO_MARKER_RE.search(incomplete_code)
    if first is None:
        raise MalformedScaffold("TODO", 0)
    source = _TODO_MARKER_RE.sub(lambda _match: fragment, incomplete_code)
    return ComposedProgram(source=source, fragment=fragment, fragment_offset=first.start())


def wrap_in_class(fragment: str, class_name: str = "Solution") -> ComposedProgram:
    """Wrap a bare snippet in a runnable class for questions without a scaffold."""
    if "class " in fragment:
        return ComposedProgram(source=fragment, fragment=fragment, fragment_offset=0)
    prefix = f"public class {class_name} {{\n    public static void main(String[] args) {{\n        "
    source = f"{prefix}{fragment}\n    }}\n}}\n"
    return ComposedProgram(source=source, fragment=fragment, fragment_offset=len(prefix))


__all__ = ["ComposedProgram", "Scaffold", "compose", "fill_todo_markers", "wrap_in_class"]
