"""CLI entry point for submitting documents through the rate-limited client.

Usage::

    python scripts/submit_documents.py --document doc.json --signature SIG
    python scripts/submit_documents.py --document doc.json --signature SIG \\
        --count 10 --request-limit 3 --unit seconds
    python scripts/submit_documents.py --config client.yaml --document doc.json \\
        --signature SIG --count 10
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import httpx
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from crptclient.client import CrptApi
from crptclient.config.settings import ClientConfig
from crptclient.exceptions import ConfigError
from crptclient.logger import set_log_level
from crptclient.schemas.documents import Document
from crptclient.schemas.outcomes import SubmissionOutcome

app = typer.Typer(help="crptclient document submission CLI.")
console = Console()


def _load_document(document_path: Path) -> Document:
    """Load and validate a document from a JSON file.

    Args:
        document_path: Path to a JSON file using wire field names.

    Returns:
        Validated document.

    Raises:
        typer.BadParameter: If the file is not a valid document.
    """
    try:
        with open(document_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise typer.BadParameter(f"Failed to read document JSON: {exc}") from exc

    try:
        return Document.model_validate(data)
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid document: {exc}") from exc


async def _run_submissions(
    config: ClientConfig,
    document: Document,
    signature: str,
    count: int,
    http_client: httpx.AsyncClient | None = None,
) -> list[SubmissionOutcome]:
    """Submit the document ``count`` times and wait for every outcome.

    Args:
        config: Client configuration.
        document: Document to submit.
        signature: Signature header value.
        count: Number of submissions.
        http_client: Optional HTTP client (the client creates one otherwise).

    Returns:
        Outcomes ordered by task id.
    """
    outcomes: list[SubmissionOutcome] = []

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(f"Submitting {count} document(s)...", total=count)

        def on_complete(outcome: SubmissionOutcome) -> None:
            outcomes.append(outcome)
            progress.update(
                task,
                advance=1,
                description=f"Document {len(outcomes)}/{count} done ({outcome.status})",
            )

        async with CrptApi.from_config(config, http_client=http_client) as api:
            for _ in range(count):
                api.submit(document, signature, on_complete=on_complete)

    return sorted(outcomes, key=lambda o: o.task_id)


def _print_summary(outcomes: list[SubmissionOutcome]) -> None:
    """Print a rich summary table to the console.

    Args:
        outcomes: Outcomes of the run.
    """
    if not outcomes:
        console.print("[yellow]No results to display.[/yellow]")
        return

    table = Table(title="Submission Summary")
    table.add_column("task_id", justify="right")
    table.add_column("status")
    table.add_column("http_status", justify="right")
    table.add_column("elapsed_ms", justify="right")
    table.add_column("error")

    for outcome in outcomes:
        table.add_row(
            str(outcome.task_id),
            outcome.status,
            str(outcome.status_code) if outcome.status_code is not None else "-",
            f"{outcome.elapsed_ms:.1f}",
            escape(str(outcome.error)) if outcome.error is not None else "",
        )

    console.print(table)


@app.callback(invoke_without_command=True)
def run(
    document: Path = typer.Option(
        ..., "--document", exists=True, help="Document JSON file (wire field names)."
    ),
    signature: str = typer.Option(..., "--signature", help="Signature header value."),
    config: Path | None = typer.Option(
        None, "--config", exists=True, help="Optional client configuration YAML."
    ),
    count: int = typer.Option(
        1, "--count", min=1, help="Number of times to submit the document."
    ),
    request_limit: int = typer.Option(
        3, "--request-limit", help="Requests per window (ignored with --config)."
    ),
    unit: str = typer.Option(
        "seconds", "--unit", help="Window unit (ignored with --config)."
    ),
    log_level: str = typer.Option(
        "INFO", "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)."
    ),
) -> None:
    """Submit a document through the rate-limited client."""
    # ---- Logging ----
    level_name = log_level.upper()
    if not isinstance(logging.getLevelName(level_name), int):
        console.print(f"[red]Invalid log level: {escape(log_level)}[/red]")
        raise SystemExit(1)
    set_log_level(level_name)

    # ---- Configuration and document, validated before any request ----
    try:
        if config is not None:
            client_config = ClientConfig.from_yaml(config)
        else:
            client_config = ClientConfig.build(unit, request_limit)  # type: ignore[arg-type]
    except ConfigError as exc:
        console.print(f"[red]Invalid config: {escape(str(exc))}[/red]")
        raise SystemExit(1) from exc

    try:
        payload = _load_document(document)
    except typer.BadParameter as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise SystemExit(1) from exc

    # ---- Run submissions ----
    limit = client_config.rate_limit
    console.print(
        f"[bold]crptclient[/bold]: "
        f"{count} document(s), "
        f"limit {limit.request_limit} per {limit.window.magnitude} {limit.window.unit}"
    )

    outcomes = asyncio.run(_run_submissions(client_config, payload, signature, count))

    _print_summary(outcomes)

    failed = sum(1 for o in outcomes if not o.ok)
    if failed:
        console.print(f"[red]{failed} submission(s) failed.[/red]")
        raise SystemExit(2)
    console.print("\n[green]All documents submitted.[/green]")


if __name__ == "__main__":
    app()
