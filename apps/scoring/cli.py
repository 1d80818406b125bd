"""Developer CLI for scoring submissions against a local question bank."""

from __future__ import annotations

import json
import os
from pathlib import Path

import anyio
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from jcas.core.config import ScoringConfig, load_scoring_config, settings_from_env
from jcas.core.history import ExecutionHistory

from .execution_client import ExecutionClient
from .extractor import extract_fragment
from .models import DegradedReview, ScoreReport
from .service import AssessmentScorer
from .template_store import CODE_COMPLETION, QuestionBank

ENV_CONFIG_PATH = "JCAS_SCORING_CONFIG"
DEFAULT_BANK_PATH = Path("data/question_bank.yaml")

app = typer.Typer(help="Extract, execute and score Java submissions.")
console = Console()


def _load_config(config_path: Path | None, bank: Path | None) -> ScoringConfig:
    config_path = config_path or (Path(os.environ[ENV_CONFIG_PATH]) if os.environ.get(ENV_CONFIG_PATH) else None)
    if config_path is not None:
        try:
            config = load_scoring_config(config_path)
        except FileNotFoundError:
            typer.echo(f"Config file not found: {config_path}", err=True)
            raise typer.Exit(code=2) from None
        except ValueError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(code=2) from exc
    else:
        config = ScoringConfig()
    if bank is not None:
        config = config.model_copy(update={"question_bank_path": bank.expanduser().resolve()})
    elif config.question_bank_path is None:
        config = config.model_copy(update={"question_bank_path": DEFAULT_BANK_PATH.resolve()})
    return config


def _load_bank(config: ScoringConfig) -> QuestionBank:
    path = config.question_bank_path
    try:
        return QuestionBank.from_yaml(path, placeholder=config.placeholder)
    except FileNotFoundError:
        typer.echo(f"Question bank not found: {path}", err=True)
        raise typer.Exit(code=2) from None
    except ValueError as exc:
        typer.echo(f"Invalid question bank {path}: {exc}", err=True)
        raise typer.Exit(code=2) from exc


def _read_submission(path: Path) -> str:
    if not path.exists():
        typer.echo(f"Submission file not found: {path}", err=True)
        raise typer.Exit(code=2)
    return path.read_text(encoding="utf-8")


def _render_report(report: ScoreReport) -> None:
    table = Table("Test", "Result", "Expected", "Got")
    for result in report.per_test_results:
        table.add_row(
            str(result.index + 1),
            "PASS" if result.passed else "FAIL",
            escape(result.test_case.expected_output),
            escape(result.error or result.actual_output),
        )
    if report.per_test_results:
        console.print(table)
    console.print(f"Score: {report.percentage}/{ScoreReport.max_score} ({report.passed_count}/{report.total_count} passed)")
    if report.feedback_text:
        console.print(report.feedback_text, markup=False)


def _render_review(review: DegradedReview) -> None:
    console.print(f"Execution unavailable: {review.reason or 'unknown reason'}", markup=False)
    for finding in review.heuristic_findings:
        console.print(f"- {finding}", markup=False)


@app.command()
def score(
    question_id: str = typer.Argument(..., help="Question id from the bank."),
    submission_file: Path = typer.Argument(..., help="File holding the learner's submission."),
    bank: Path | None = typer.Option(None, "--bank", help="Question bank YAML (defaults to data/question_bank.yaml)."),
    config_path: Path | None = typer.Option(None, "--config", help="Scoring config YAML."),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
) -> None:
    """Execute a submission remotely and print its score."""

    load_dotenv()
    config = _load_config(config_path, bank)
    store = _load_bank(config)
    submission = _read_submission(submission_file)
    if question_id not in store:
        typer.echo(f"Unknown question id '{question_id}'", err=True)
        raise typer.Exit(code=2)

    try:
        settings = settings_from_env(config.execution)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc

    history = ExecutionHistory(config.history_path) if config.history_path else None

    async def _run() -> ScoreReport | DegradedReview:
        async with ExecutionClient(settings) as client:
            scorer = AssessmentScorer(store, client, history=history)
            return await scorer.execute_and_score(question_id, submission)

    result = anyio.run(_run)
    if as_json:
        typer.echo(result.model_dump_json(indent=2))
    elif isinstance(result, DegradedReview):
        _render_review(result)
    else:
        _render_report(result)


@app.command()
def extract(
    question_id: str = typer.Argument(..., help="Question id from the bank."),
    submission_file: Path = typer.Argument(..., help="File holding the learner's submission."),
    bank: Path | None = typer.Option(None, "--bank", help="Question bank YAML."),
) -> None:
    """Print the fragment the scorer would compose for a submission."""

    config = _load_config(None, bank)
    store = _load_bank(config)
    submission = _read_submission(submission_file)
    try:
        scaffold = store.get_scaffold(question_id)
    except KeyError as exc:
        typer.echo(str(exc.args[0]), err=True)
        raise typer.Exit(code=2) from exc
    typer.echo(submission if scaffold is None else extract_fragment(submission, scaffold))


@app.command()
def starter(
    question_id: str = typer.Argument(..., help="Question id from the bank."),
    saved_file: Path | None = typer.Option(None, "--saved", help="Previously saved answer to restore."),
    bank: Path | None = typer.Option(None, "--bank", help="Question bank YAML."),
) -> None:
    """Print the text a learner's editor starts with."""

    config = _load_config(None, bank)
    store = _load_bank(config)
    try:
        question = store.get_question(question_id)
    except KeyError as exc:
        typer.echo(str(exc.args[0]), err=True)
        raise typer.Exit(code=2) from exc
    saved = _read_submission(saved_file) if saved_file is not None else None

    if question.scaffold is not None:
        typer.echo(question.scaffold.render_starter(saved, code_completion=question.type == CODE_COMPLETION))
    elif saved:
        typer.echo(saved)
    elif question.incomplete_code:
        typer.echo(question.incomplete_code)
    else:
        typer.echo(f"Question '{question_id}' has no starter code", err=True)
        raise typer.Exit(code=1)


@app.command()
def status(
    config_path: Path | None = typer.Option(None, "--config", help="Scoring config YAML."),
) -> None:
    """Show how the execution service would be reached."""

    load_dotenv()
    config = _load_config(config_path, None)
    try:
        settings = settings_from_env(config.execution)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc

    async def _status() -> dict:
        async with ExecutionClient(settings) as client:
            return client.status()

    typer.echo(json.dumps(anyio.run(_status), indent=2))


if __name__ == "__main__":
    app()
