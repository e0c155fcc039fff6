"""
CLI Interface
=============
Command-line interface for the quiz extraction engine.

Usage:
    python -m quiz_extractor parse <questions> [--answers <answers>] [options]
    python -m quiz_extractor answers <answers>
    python -m quiz_extractor validate <result.json>
"""

from __future__ import annotations

import json
import os
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import ExtractorConfig
from .engine import ExtractionEngine
from .text_source import extract_text

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="quiz-extractor")
def cli():
    """Quiz Extractor: multiple-choice question and answer-key parser."""
    pass


@cli.command()
@click.argument("questions_path", type=click.Path(exists=True))
@click.option(
    "--answers", "-a",
    "answers_path",
    default=None,
    type=click.Path(exists=True),
    help="Answer-key document (PDF or text)",
)
@click.option(
    "--source-id", "-s",
    default="",
    help="Source identifier (defaults to the question file name)",
)
@click.option(
    "--answer-precedence",
    default="answer_key",
    type=click.Choice(["answer_key", "inline"]),
    help="Which answer wins when inline and answer-key answers disagree",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only JSON result to stdout (for programmatic use)",
)
def parse(
    questions_path: str,
    answers_path: str,
    source_id: str,
    answer_precedence: str,
    log_level: str,
    log_file: str,
    json_output: bool,
):
    """Extract questions (and optionally answers) from a document."""

    if json_output:
        # Keep stdout clean for the JSON document
        log_level = "ERROR"

    config = ExtractorConfig(
        answer_precedence=answer_precedence,
        log_level=log_level,
        log_file=log_file,
    )

    if not json_output:
        console.print()
        console.print(
            Panel.fit(
                f"[bold cyan]Quiz Extractor v{__version__}[/]\n"
                f"[dim]Parsing: {os.path.basename(questions_path)}[/]",
                border_style="cyan",
            )
        )
        console.print()

    try:
        engine = ExtractionEngine(config)
        question_text = extract_text(questions_path)
        answer_text = extract_text(answers_path) if answers_path else None

        result = engine.process(
            question_text,
            answer_text,
            source_id=source_id or os.path.basename(questions_path),
        )

        if json_output:
            click.echo(json.dumps(
                result.model_dump(mode="json"),
                indent=2,
                ensure_ascii=False,
            ))
        else:
            _display_results(result)

    except (FileNotFoundError, ValueError, TypeError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except RuntimeError as e:
        console.print(f"[red]Error:[/] {e}")
        if log_level == "DEBUG":
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.argument("answers_path", type=click.Path(exists=True))
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
def answers(answers_path: str, log_level: str):
    """Show how an answer-key document is read."""

    try:
        engine = ExtractionEngine(ExtractorConfig(log_level=log_level))
        sheet = engine.read_answer_sheet(extract_text(answers_path))
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Answer Key[/]\n"
            f"[dim]File: {answers_path}[/]",
            border_style="cyan",
        )
    )

    scores = Table(title="Template Scores", border_style="cyan")
    scores.add_column("Template", style="bold")
    scores.add_column("Answers", justify="right")
    scores.add_column("Selected", justify="center")
    for name, score in sheet.template_scores.items():
        scores.add_row(
            name,
            str(score),
            "[green]✓[/]" if name == sheet.template else "",
        )
    console.print(scores)
    console.print()

    if not sheet.answers:
        console.print("[yellow]No answers recognized[/]")
        console.print()
        return

    table = Table(title=f"Answers ({sheet.total_answers})", border_style="green")
    table.add_column("Question", justify="right", style="bold")
    table.add_column("Answer", justify="center")
    for number, token in sheet.answers.items():
        table.add_row(str(number), token)
    console.print(table)
    console.print()


@cli.command()
@click.argument("json_path", type=click.Path(exists=True))
def validate(json_path: str):
    """Validate a previously generated extraction result JSON."""

    with open(json_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Validation Report[/]\n"
            f"[dim]File: {json_path}[/]",
            border_style="cyan",
        )
    )

    validation = data.get("validation", {})
    _display_validation_table(validation)


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _display_results(result):
    """Display extraction results in formatted tables."""
    question_set = result.question_set

    table = Table(title="Extraction Summary", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")
    table.add_row("Source", question_set.source_id or "(not set)")
    table.add_row("Strategy", question_set.strategy.value)
    table.add_row("Questions", str(question_set.total_questions))
    table.add_row("Answer Template", result.answer_sheet.template or "(none)")
    table.add_row("Answers In Key", str(result.answer_sheet.total_answers))
    console.print(table)
    console.print()

    if question_set.questions:
        questions = Table(title="Questions", border_style="blue")
        questions.add_column("#", justify="right", style="bold")
        questions.add_column("Question")
        questions.add_column("Choices", justify="right")
        questions.add_column("Answer", justify="center")
        questions.add_column("Category")
        questions.add_column("Difficulty", justify="center")
        for q in question_set.questions:
            questions.add_row(
                str(q.number),
                q.text if len(q.text) <= 60 else q.text[:57] + "...",
                str(len(q.choices)),
                q.correct_answer or "[yellow]?[/]",
                q.category or "",
                str(q.difficulty),
            )
        console.print(questions)
        console.print()

    if question_set.diagnostics is not None:
        _display_diagnostics(question_set.diagnostics)

    _display_validation_table(result.validation.model_dump())

    console.print(
        f"[dim]Extractor v{question_set.parser_version} | "
        f"Questions: {question_set.total_questions} | "
        f"Answered: {question_set.answered_count} | "
        f"Timestamp: {question_set.extracted_at}[/]"
    )
    console.print()


def _display_diagnostics(diagnostics):
    table = Table(title="Text Diagnostics", border_style="yellow")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    for name, value in diagnostics.model_dump(exclude={"sample"}).items():
        table.add_row(name.replace("_", " ").title(), str(value))
    console.print(table)
    console.print()


def _display_validation_table(validation: dict):
    """Display validation report as a rich table."""
    table = Table(title="Validation Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    total = validation.get("total_questions", 0)
    answered = validation.get("questions_with_answer", 0)
    rate = validation.get("answered_rate", 0)

    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[red]✗[/]"

    table.add_row(
        "Total Questions",
        str(total),
        "[green]✓[/]" if total > 0 else "[red]✗[/]",
    )
    table.add_row(
        "With Answer",
        f"{answered} ({rate}%)",
        "[green]✓[/]" if rate >= 90 else "[yellow]⚠[/]",
    )
    table.add_row(
        "Answers In Key",
        str(validation.get("total_answers", 0)),
        "",
    )
    table.add_row(
        "Applied Offset",
        f"{validation.get('applied_offset', 0):+d}",
        "",
    )

    missing = validation.get("missing_question_numbers", [])
    table.add_row(
        "Missing Question Numbers",
        str(len(missing)),
        status_icon(len(missing)),
    )

    dupes = validation.get("duplicate_question_numbers", [])
    table.add_row(
        "Duplicate Question Numbers",
        str(len(dupes)),
        status_icon(len(dupes)),
    )

    missing_ans = validation.get("questions_missing_answer", [])
    table.add_row(
        "Needs Manual Answer",
        str(len(missing_ans)),
        status_icon(len(missing_ans)),
    )

    console.print(table)
    console.print()

    breakdown = validation.get("anomaly_breakdown", {})
    if breakdown:
        anomaly_table = Table(
            title="Anomaly Breakdown",
            border_style="yellow",
        )
        anomaly_table.add_column("Type", style="bold")
        anomaly_table.add_column("Count", justify="right")

        for atype, count in sorted(breakdown.items()):
            anomaly_table.add_row(atype, str(count))

        console.print(anomaly_table)
        console.print()


# ─── Entry point (for python -m quiz_extractor.cli) ───────────────────────────


if __name__ == "__main__":
    cli()
