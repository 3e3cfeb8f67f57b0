"""MAKER CLI — Typer + Rich terminal interface.

Commands: ask, config show, config path.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from maker import __version__
from maker.events import EventType, MakerEvent
from maker.orchestrator import Maker
from maker.providers.registry import load_maker_config
from maker.schemas.config import MakerConfig
from maker.schemas.results import MakerResult
from maker.schemas.voting import ConfidenceLevel

console = Console()

# ── App and sub-apps ─────────────────────────────────────────────

app = typer.Typer(
    name="maker",
    help="Reliable answers from unreliable models via decomposition and voting.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    name="config",
    help="Show MAKER configuration.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"maker {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """MAKER — first-to-ahead-by-K voting over LLM answers."""


# ── Helpers ──────────────────────────────────────────────────────


def _load_config(config_path: Path | None) -> MakerConfig:
    """Load the MAKER config, exit on error."""
    try:
        return load_maker_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None


def _confidence_style(confidence: ConfidenceLevel) -> str:
    return {
        ConfidenceLevel.HIGH: "green",
        ConfidenceLevel.MEDIUM: "yellow",
        ConfidenceLevel.LOW: "red",
    }[confidence]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _progress_listener(event: MakerEvent) -> None:
    """Print pipeline progress as it happens."""
    data = event.data
    if event.type == EventType.DECOMPOSED:
        count = len(data["sub_questions"])
        if count > 1:
            console.print(f"[cyan]▸[/cyan] Decomposed into {count} sub-questions")
    elif event.type == EventType.VOTING_START:
        console.print(
            f"[cyan]▸[/cyan] Voting on [bold]{escape(data['question'])}[/bold]"
        )
    elif event.type == EventType.VOTING_COMPLETE:
        if data["consensus_reached"]:
            console.print(f"  [green]✓[/green] {escape(data['answer'])}")
        else:
            console.print(f"  [yellow]⊘[/yellow] no consensus, best guess: {escape(data['answer'])}")
    elif event.type == EventType.SYNTHESIS_START:
        if len(data["sub_results"]) > 1:
            console.print("[cyan]▸[/cyan] Synthesizing final answer")


def _display_result(result: MakerResult) -> None:
    """Render the final answer panel and the voting summary."""
    style = _confidence_style(result.confidence)
    subtitle = (
        f"confidence [{style}]{result.confidence.value}[/{style}]"
        f" · consensus {'yes' if result.consensus_reached else 'no'}"
    )
    console.print()
    console.print(Panel(
        Text(result.answer),
        title="[bold]Answer[/bold]",
        subtitle=subtitle,
        border_style=style,
    ))

    if result.is_decomposed:
        table = Table(title="Sub-questions")
        table.add_column("#", justify="right")
        table.add_column("Question")
        table.add_column("Answer")
        table.add_column("Votes", justify="right")
        table.add_column("Consensus")
        for i, sr in enumerate(result.sub_questions, start=1):
            table.add_row(
                str(i),
                Text(sr.question),
                Text(sr.answer),
                f"{sr.voting_stats.winning_vote_count}/{sr.voting_stats.total_votes}",
                "[green]yes[/green]" if sr.consensus_reached else "[red]no[/red]",
            )
        console.print(table)

    stats = result.voting_stats
    summary = Table(title="Voting", show_header=False)
    summary.add_column("Metric", style="bold")
    summary.add_column("Value")
    summary.add_row("k", str(stats.k))
    summary.add_row("Total votes", str(stats.total_votes))
    summary.add_row("Valid votes", str(stats.valid_votes))
    summary.add_row("Red-flagged", str(stats.red_flagged_votes))
    summary.add_row("Margin", str(stats.margin))
    summary.add_row("Strategy", result.synthesis_strategy)
    summary.add_row("Tokens", f"{result.total_tokens:,}")
    summary.add_row("Time", f"{result.execution_time_ms / 1000:.1f}s")
    console.print(summary)


# ── maker ask ────────────────────────────────────────────────────


@app.command()
def ask(
    question: str = typer.Argument(..., help="The question to answer"),
    context: str = typer.Option(
        "", "--context", "-c", help="Background text for the question",
    ),
    context_file: Path | None = typer.Option(
        None, "--context-file", help="Read background text from a file",
        exists=True, dir_okay=False, readable=True,
    ),
    config_path: Path | None = typer.Option(
        None, "--config", help="Path to a MAKER TOML config file",
    ),
    provider: str = typer.Option(
        "", "--provider", "-p", help="Provider: openai, anthropic, azure, litellm",
    ),
    model: str = typer.Option("", "--model", "-m", help="Model identifier"),
    k: int | None = typer.Option(
        None, "--k", "-k", min=1, help="Required lead over the runner-up",
    ),
    max_votes: int | None = typer.Option(
        None, "--max-votes", min=1, help="Safety cutoff per sub-question",
    ),
    no_decompose: bool = typer.Option(
        False, "--no-decompose", help="Answer the question as a single unit",
    ),
    no_synthesis: bool = typer.Option(
        False, "--no-synthesis", help="Skip the synthesis step",
    ),
    language: str = typer.Option(
        "", "--language", "-l", help="Language of the final answer",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show pipeline logs",
    ),
) -> None:
    """Answer a question with decomposition, voting and synthesis."""
    _configure_logging(verbose)
    config = _load_config(config_path)

    updates: dict = {}
    if provider:
        updates["provider"] = provider
    if model:
        updates["model"] = model
    if k is not None or max_votes is not None:
        voting = {}
        if k is not None:
            voting["k"] = k
        if max_votes is not None:
            voting["max_votes"] = max_votes
        updates["voting"] = config.voting.model_copy(update=voting)
    if no_decompose:
        updates["decomposition"] = config.decomposition.model_copy(update={"enabled": False})
    if no_synthesis or language:
        synthesis = {}
        if no_synthesis:
            synthesis["enabled"] = False
        if language:
            synthesis["language"] = language
        updates["synthesis"] = config.synthesis.model_copy(update=synthesis)
    if updates:
        config = config.model_copy(update=updates)

    if context_file is not None:
        context = context_file.read_text(encoding="utf-8")

    try:
        maker = Maker(config)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    maker.emitter.add_listener(
        _progress_listener,
        EventType.DECOMPOSED,
        EventType.VOTING_START,
        EventType.VOTING_COMPLETE,
        EventType.SYNTHESIS_START,
    )

    result = asyncio.run(maker.ask(question, context=context or None))
    _display_result(result)


# ── maker config ─────────────────────────────────────────────────


@config_app.command("show")
def config_show(
    config_path: Path | None = typer.Option(
        None, "--config", help="Path to a MAKER TOML config file",
    ),
) -> None:
    """Show the effective MAKER configuration."""
    config = _load_config(config_path)

    table = Table(title="MAKER Configuration", show_header=False, show_lines=True)
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    table.add_row("Provider", str(config.provider))
    table.add_row("Model", config.model)
    table.add_row("Max Tokens", str(config.max_tokens))
    if config.base_url:
        table.add_row("Base URL", config.base_url)
    if config.azure is not None:
        table.add_row("Azure Endpoint", config.azure.endpoint)
        table.add_row("Azure API Version", config.azure.api_version)
    table.add_row("Decomposition", str(config.decomposition.enabled))
    table.add_row("Max Sub-questions", str(config.decomposition.max_sub_questions))
    table.add_row("Voting k", str(config.voting.k))
    table.add_row("Max Votes", str(config.voting.max_votes))
    table.add_row(
        "Voting Timeout",
        f"{config.voting.timeout}s" if config.voting.timeout is not None else "none",
    )
    table.add_row("Red-flag Max Tokens", str(config.red_flags.max_tokens))
    table.add_row("Red-flag Min Chars", str(config.red_flags.min_chars))
    table.add_row("Synthesis", str(config.synthesis.enabled))
    table.add_row("Language", config.synthesis.language)

    console.print(table)


@config_app.command("path")
def config_path_cmd() -> None:
    """Show the default configuration file location."""
    path = Path(__file__).parent / "config" / "defaults.toml"

    table = Table(title="Configuration Paths", show_header=False)
    table.add_column("Config", style="bold")
    table.add_column("Path")
    table.add_column("Status")

    status = "[green]found[/green]" if path.exists() else "[red]missing[/red]"
    table.add_row("Defaults", str(path), status)

    console.print(table)
