"""Execution history: one JSON line per scored or degraded learner attempt.

``AssessmentScorer`` writes here when a ``history_path`` is configured; the
file can be replayed with :meth:`ExecutionHistory.read`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List

from pydantic import BaseModel, Field


class ExecutionRecord(BaseModel):
    """Outcome of one submission, keyed by question id."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    question_id: str = Field(..., description="Question the submission answered.")
    fragment: str = Field(..., description="Learner code after extraction.")
    mode: str = Field(..., description="'scored' or 'degraded'.")
    percentage: int | None = None
    passed_count: int | None = None
    total_count: int | None = None
    detail: Dict[str, Any] = Field(default_factory=dict)


class ExecutionHistory:
    """Appends attempts to ``output_path`` so instructors can audit scores."""

    def __init__(self, output_path: Path):
        self.output_path = output_path
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, record: ExecutionRecord | Dict[str, Any]) -> ExecutionRecord:
        """Append ``record``; plain dicts are validated into an ``ExecutionRecord`` first."""
        if not isinstance(record, ExecutionRecord):
            record = ExecutionRecord(**record)
        line = record.model_dump_json()
        with self.output_path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
        return record

    def read(self) -> List[ExecutionRecord]:
        if not self.output_path.exists():
            return []
        records: List[ExecutionRecord] = []
        for line in self.output_path.read_text(encoding="utf-8").splitlines():
            if line.strip():
                records.append(ExecutionRecord.model_validate_json(line))
        return records

    def extend(self, records: Iterable[ExecutionRecord | Dict[str, Any]]) -> None:
        """Append each of ``records`` in order."""
        for record in records:
            self.log(record)


__all__ = ["ExecutionHistory", "ExecutionRecord"]
