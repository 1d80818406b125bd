"""Caller-facing facade: extract, compose, execute and score one learner action."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

from jcas.core.config import DEFAULT_PLACEHOLDER, ScoringConfig, load_scoring_config, settings_from_env
from jcas.core.history import ExecutionHistory, ExecutionRecord

from . import feedback
from .degraded import review_heuristically
from .errors import ExecutionTimeout, ExecutionUnavailable, RemoteServiceError
from .execution_client import ExecutionClient
from .extractor import extract_fragment
from .models import DegradedReview, ScoreReport
from .scaffold import ComposedProgram, compose, fill_todo_markers, wrap_in_class
from .template_store import CODE_COMPLETION, Question, QuestionBank, TemplateStore
from .validator import TestValidator

LOGGER = logging.getLogger("jcas.scoring.service")


class AssessmentScorer:
    """Scores learner submissions against questions from a template store."""

    def __init__(
        self,
        store: TemplateStore,
        client: ExecutionClient,
        *,
        validator: TestValidator | None = None,
        history: ExecutionHistory | None = None,
    ) -> None:
        self.store = store
        self.client = client
        self.validator = validator or TestValidator(client, delay_ms=client.settings.test_case_delay_ms)
        self.history = history

    @classmethod
    def from_config(
        cls,
        config: ScoringConfig | Path,
        *,
        env: Dict[str, str] | None = None,
        client: ExecutionClient | None = None,
    ) -> "AssessmentScorer":
        if isinstance(config, Path):
            config = load_scoring_config(config)
        if config.question_bank_path is None:
            raise ValueError("Scoring config does not define question_bank_path")
        store = QuestionBank.from_yaml(config.question_bank_path, placeholder=config.placeholder)
        if client is None:
            client = ExecutionClient(settings_from_env(config.execution, env=env))
        history = ExecutionHistory(config.history_path) if config.history_path else None
        return cls(store, client, history=history)

    def extract_fragment(self, question_id: str, raw_submission: str) -> str:
        return self._fragment_for(self.store.get_question(question_id), raw_submission)

    async def execute_and_score(self, question_id: str, learner_submission: str) -> ScoreReport | DegradedReview:
        question = self.store.get_question(question_id)
        fragment = self._fragment_for(question, learner_submission)

        if self._is_untouched(question, fragment):
            LOGGER.info("Empty submission for %s; not contacting the execution service", question_id)
            report = ScoreReport(feedback_text=feedback.EMPTY_SUBMISSION_MESSAGE)
            self._record(question_id, fragment, report)
            return report

        program = self._compose(question, fragment)
        try:
            self.client.ensure_ready()
            result: ScoreReport | DegradedReview = await self.validator.validate(
                program, list(question.test_cases), stdin=question.stdin
            )
        except ExecutionUnavailable as exc:
            result = review_heuristically(fragment, str(exc), expected_resource=question.expected_resource)
        except RemoteServiceError as exc:
            LOGGER.error("Execution service rejected %s: %s; body=%r", question_id, exc, exc.body)
            result = self._failed(exc)
        except ExecutionTimeout as exc:
            LOGGER.error("Execution for %s timed out: %s", question_id, exc)
            result = self._failed(exc)
        except Exception as exc:
            LOGGER.exception("Unexpected execution failure for %s", question_id)
            result = self._failed(exc)

        self._record(question_id, fragment, result)
        return result

    @staticmethod
    def _fragment_for(question: Question, raw_submission: str) -> str:
        # Without a scaffold the submission is taken as written.
        if question.scaffold is None:
            return raw_submission
        return extract_fragment(raw_submission, question.scaffold)

    def _compose(self, question: Question, fragment: str) -> ComposedProgram:
        if question.scaffold is not None:
            return compose(question.scaffold, fragment)
        if question.type == CODE_COMPLETION:
            if question.incomplete_code:
                return fill_todo_markers(question.incomplete_code, fragment)
            return ComposedProgram(source=fragment, fragment=fragment, fragment_offset=0)
        return wrap_in_class(fragment)

    @staticmethod
    def _is_untouched(question: Question, fragment: str) -> bool:
        if not fragment.strip():
            return True
        markers = {DEFAULT_PLACEHOLDER}
        if question.scaffold is not None:
            markers.add(question.scaffold.placeholder)
        return any(marker in fragment for marker in markers)

    @staticmethod
    def _failed(exc: Exception) -> ScoreReport:
        return ScoreReport(feedback_text=feedback.service_failure_feedback(exc), error=str(exc))

    def _record(self, question_id: str, fragment: str, result: ScoreReport | DegradedReview) -> None:
        if self.history is None:
            return
        if isinstance(result, DegradedReview):
            record = ExecutionRecord(
                question_id=question_id,
                fragment=fragment,
                mode="degraded",
                detail={"reason": result.reason, "findings": result.heuristic_findings},
            )
        else:
            detail = {"error": result.error} if result.error else {}
            record = ExecutionRecord(
                question_id=question_id,
                fragment=fragment,
                mode="scored",
                percentage=result.percentage,
                passed_count=result.passed_count,
                total_count=result.total_count,
                detail=detail,
            )
        self.history.log(record)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "AssessmentScorer":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = ["AssessmentScorer", "extract_fragment"]
