"""Contemplation Command Line Interface.

Runs the gap extraction engine over message files and manages an agent's
inquiry queue: ingesting exchanges, running due passes and persisting
insights.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from contemplation.core.config import get_settings, load_config
from contemplation.core.logging import configure_logging
from contemplation.extraction import ExtractionConfig, identify_gaps
from contemplation.inquiries import pass_label
from contemplation.orchestration import ContemplationService

app = typer.Typer(
    name="contemplation",
    help="Contemplation - turns conversational curiosity into multi-pass reflection",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only warnings and errors"),
):
    """Configure logging for every command."""
    configure_logging(level=logging.DEBUG if verbose else None, quiet=quiet)


def _get_service() -> ContemplationService:
    """Get a service configured from settings and the plugin config file."""
    settings = get_settings()
    return ContemplationService(load_config(config_file=settings.config_file), settings)


def _read_messages(file: str) -> list[Any]:
    """Read messages from a JSON file ("-" for stdin).

    Accepts a list of messages or an object with a "messages" list.
    """
    raw = sys.stdin.read() if file == "-" else Path(file).read_text(encoding="utf-8")
    data = json.loads(raw)
    if isinstance(data, dict):
        data = data.get("messages", [])
    if not isinstance(data, list):
        raise ValueError("Expected a list of messages or an object with a 'messages' list")
    return data


def _format_timestamp(ts: Optional[datetime]) -> str:
    """Format timestamp for display."""
    if not ts:
        return "-"
    return ts.strftime("%Y-%m-%d %H:%M")


@app.command()
def extract(
    file: str = typer.Argument(..., help="JSON message file, or - for stdin"),
    entropy: float = typer.Option(0.0, "--entropy", "-e", help="Entropy score of the exchange"),
    threshold: Optional[float] = typer.Option(
        None, "--threshold", "-t", help="Entropy threshold (default 0.5)"
    ),
    keyword: Optional[list[str]] = typer.Option(
        None, "--keyword", "-k", help="Keyword that opens the admission gate (repeatable)"
    ),
    max_gaps: Optional[int] = typer.Option(
        None, "--max-gaps", "-n", help="Maximum gaps to return (default 2)"
    ),
):
    """Extract knowledge gaps from a message window.

    Examples:
        contemplation extract chat.json -e 0.8
        cat chat.json | contemplation extract - -k why -n 3
    """
    try:
        messages = _read_messages(file)
        overrides: dict[str, Any] = {}
        if threshold is not None:
            overrides["entropy_threshold"] = threshold
        if keyword:
            overrides["keywords"] = keyword
        if max_gaps is not None:
            overrides["max_gaps_per_exchange"] = max_gaps

        gaps = identify_gaps(messages, entropy, ExtractionConfig(**overrides))
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not gaps:
        console.print("[dim]No gaps found.[/dim]")
        return

    for i, gap in enumerate(gaps, 1):
        console.print(f"[bold]{i}.[/bold] {gap}")


@app.command()
def ingest(
    file: str = typer.Argument(..., help="JSON message file, or - for stdin"),
    agent: str = typer.Option("main", "--agent", "-a", help="Agent ID"),
    entropy: float = typer.Option(0.0, "--entropy", "-e", help="Entropy score of the exchange"),
    workspace: Optional[str] = typer.Option(None, "--workspace", "-w", help="Agent workspace path"),
):
    """Queue the gaps of a finished exchange for contemplation.

    Examples:
        contemplation ingest chat.json -e 0.8
        contemplation ingest chat.json -a research -w ~/agents/research
    """
    try:
        messages = _read_messages(file)
        metadata = {"workspace": workspace} if workspace else {}
        queued = _get_service().handle_exchange(agent, messages, entropy, metadata)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not queued:
        console.print("[dim]No inquiries queued.[/dim]")
        return

    table = Table(show_header=True)
    table.add_column("Inquiry ID", style="cyan")
    table.add_column("Question")
    table.add_column("Tags", style="dim")
    for inquiry in queued:
        table.add_row(inquiry.id, inquiry.question, ", ".join(inquiry.tags))

    console.print(table)


@app.command()
def status(
    agent: str = typer.Option("main", "--agent", "-a", help="Agent ID"),
):
    """Show an agent's inquiries and pass progress.

    Examples:
        contemplation status
        contemplation status -a research
    """
    try:
        service = _get_service()
        state = service.get_state(agent)
        inquiries = service.agent_state(agent).store.list_inquiries()
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(
        Panel(
            f"Active: {state['active']}  Completed: {state['completed']}  Total: {state['total']}",
            title=f"Agent {agent}",
            border_style="blue",
        )
    )

    if not inquiries:
        console.print("[dim]No inquiries yet.[/dim]")
        return

    table = Table(show_header=True)
    table.add_column("Inquiry ID", style="cyan")
    table.add_column("Question")
    table.add_column("Progress")
    table.add_column("Next Pass", style="dim")
    table.add_column("Created", style="dim")

    for inquiry in inquiries:
        next_pass = inquiry.next_pass()
        if next_pass is None:
            progress = "[green]completed[/green]"
            due = "-"
        else:
            progress = f"{inquiry.completed_pass_count}/{len(inquiry.passes)} ({pass_label(next_pass.number)})"
            due = _format_timestamp(next_pass.scheduled)
        question = inquiry.question[:60] + "..." if len(inquiry.question) > 60 else inquiry.question
        table.add_row(inquiry.id, question, progress, due, _format_timestamp(inquiry.created))

    console.print(table)


@app.command("run-pass")
def run_pass(
    agent: str = typer.Option("main", "--agent", "-a", help="Agent ID"),
):
    """Run the next due contemplative pass for an agent."""
    try:
        ran = _get_service().run_one_due_pass(agent)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if ran:
        console.print("[green]Pass completed.[/green]")
    else:
        console.print("[dim]No pass ran.[/dim]")


@app.command()
def persist(
    agent: str = typer.Option("main", "--agent", "-a", help="Agent ID"),
    workspace: Optional[str] = typer.Option(None, "--workspace", "-w", help="Agent workspace path"),
):
    """Write completed inquiries to the agent workspace."""
    try:
        written = _get_service().persist_completed_insights(agent, workspace)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"Persisted {written} inquir{'y' if written == 1 else 'ies'}.")


@app.command()
def context(
    agent: str = typer.Option("main", "--agent", "-a", help="Agent ID"),
):
    """Print the context block injected into the agent's next prompt."""
    try:
        block = _get_service().build_context_injection(agent)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if block is None:
        console.print("[dim]Nothing to inject.[/dim]")
        return
    console.print(block, markup=False)


if __name__ == "__main__":
    app()
