"""Question records and the YAML-backed question bank."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Protocol, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from jcas.core.config import DEFAULT_PLACEHOLDER

from .models import TestCase
from .scaffold import Scaffold

LOGGER = logging.getLogger("jcas.scoring.template_store")

CODING_CHALLENGE = "coding_challenge"
CODE_COMPLETION = "code_completion"


class TemplateStore(Protocol):
    """Read-only access to scaffolds and test cases by question id."""

    def get_question(self, question_id: str) -> "Question":
        ...

    def get_scaffold(self, question_id: str) -> Scaffold | None:
        ...

    def get_test_cases(self, question_id: str) -> List[TestCase]:
        ...


class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str = ""
    type: str = CODING_CHALLENGE
    scaffold: Scaffold | None = None
    incomplete_code: str | None = None
    test_cases: Tuple[TestCase, ...] = ()
    stdin: str = ""
    target_signature: str | None = None
    expected_resource: str | None = None

    @model_validator(mode="before")
    @classmethod
    def build_scaffold(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        payload = dict(data)
        placeholder = payload.pop("placeholder", None) or DEFAULT_PLACEHOLDER
        template = payload.pop("template", None)
        if template is not None and payload.get("scaffold") is None:
            payload["scaffold"] = Scaffold.from_source(template, placeholder=placeholder)
        if payload.get("test_cases") is None:
            payload["test_cases"] = ()
        if "id" in payload:
            payload["id"] = str(payload["id"])
        return payload


class QuestionBank:
    """In-memory question bank, typically loaded from ``data/question_bank.yaml``."""

    def __init__(self, questions: Iterable[Question]) -> None:
        self._questions: Dict[str, Question] = {}
        for question in questions:
            if question.id in self._questions:
                raise ValueError(f"Duplicate question id '{question.id}'")
            self._questions[question.id] = question

    @classmethod
    def from_yaml(cls, path: Path, *, placeholder: str | None = None) -> "QuestionBank":
        if not path.exists():
            raise FileNotFoundError(f"Question bank {path} is missing")
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid question bank {path}: {exc}") from exc

        entries = data.get("questions", []) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            raise ValueError(f"Question bank {path} must define a list of questions")

        questions: List[Question] = []
        for position, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise ValueError(f"Question #{position + 1} in {path} must be a mapping")
            if placeholder and "placeholder" not in entry:
                entry = {**entry, "placeholder": placeholder}
            try:
                questions.append(Question.model_validate(entry))
            except ValidationError as exc:
                raise ValueError(f"Invalid question #{position + 1} in {path}: {exc}") from exc
        LOGGER.debug("Loaded %d questions from %s", len(questions), path)
        return cls(questions)

    def __len__(self) -> int:
        return len(self._questions)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._questions

    def ids(self) -> List[str]:
        return list(self._questions)

    def get_question(self, question_id: str) -> Question:
        try:
            return self._questions[question_id]
        except KeyError:
            raise KeyError(f"Unknown question id '{question_id}'") from None

    def get_scaffold(self, question_id: str) -> Scaffold | None:
        return self.get_question(question_id).scaffold

    def get_test_cases(self, question_id: str) -> List[TestCase]:
        return list(self.get_question(question_id).test_cases)


__all__ = ["CODE_COMPLETION", "CODING_CHALLENGE", "Question", "QuestionBank", "TemplateStore"]
