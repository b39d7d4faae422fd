"""Concord CLI — Typer + Rich terminal interface.

Commands: patterns, config, simulate.
The simulate command runs one decision through an in-process engine so
patterns, thresholds and strategies can be tried without writing code.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from concord import __version__
from concord.config_loader import load_engine_config, load_patterns
from concord.engine import DecisionEngine
from concord.errors import ConcordError
from concord.patterns import PatternRegistry
from concord.schemas.decision import AgentVote, Decision, DecisionRequest, VoteChoice
from concord.schemas.engine import DecisionMetrics, EngineConfig

console = Console()

app = typer.Typer(
    name="concord",
    help="Multi-agent decision arbitration with weighted consensus.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"concord {__version__}")
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
    """Concord — multi-agent decision arbitration."""


# ── Helpers ──────────────────────────────────────────────────────


def _load_config(path: Path | None) -> EngineConfig:
    """Load engine config, exit on error."""
    try:
        return load_engine_config(path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


def _load_registry(path: Path | None) -> PatternRegistry:
    """Load decision patterns, exit on error."""
    try:
        return PatternRegistry(load_patterns(path))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading patterns:[/red] {e}")
        raise typer.Exit(1) from None


def parse_vote(text: str) -> AgentVote:
    """Parse ``agent:choice[:confidence]`` into an AgentVote.

    Raises:
        typer.BadParameter: If the vote text is malformed.
    """
    parts = text.split(":")
    if len(parts) not in (2, 3):
        raise typer.BadParameter(f"Expected agent:choice[:confidence], got '{text}'")
    agent_id, choice = parts[0], parts[1]
    try:
        confidence = float(parts[2]) if len(parts) == 3 else 1.0
        return AgentVote(agent_id=agent_id, vote=VoteChoice(choice), confidence=confidence)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid vote '{text}': {e}") from None


def _outcome_style(outcome: str) -> str:
    """Return a Rich style string for an outcome value."""
    return {
        "approved": "bold green",
        "rejected": "bold red",
        "timeout": "bold yellow",
        "insufficient_votes": "yellow",
    }.get(outcome, "white")


def _display_decision(decision: Decision) -> None:
    style = _outcome_style(decision.outcome.value)
    console.print(Panel(
        f"[{style}]{decision.outcome.value.upper()}[/{style}]  "
        f"confidence {decision.confidence:.2f}  via {decision.strategy}\n\n"
        f"{decision.reasoning}",
        title=f"Decision {decision.context_id}",
        border_style=style.split()[-1],
    ))

    votes = Table(title="Votes")
    votes.add_column("Agent", style="bold cyan")
    votes.add_column("Vote")
    votes.add_column("Confidence", justify="right")
    for vote in decision.votes:
        votes.add_row(vote.agent_id, vote.vote.value, f"{vote.confidence:.2f}")
    console.print(votes)

    if decision.execution_plan:
        plan = Table(title="Execution Plan")
        plan.add_column("#", justify="right")
        plan.add_column("Action", style="bold")
        plan.add_column("Agent", style="cyan")
        plan.add_column("Data", style="dim")
        for step in decision.execution_plan:
            plan.add_row(str(step.step), step.action, step.agent, str(step.data))
        console.print(plan)

    if decision.final_data:
        console.print(f"[dim]Merged data:[/dim] {decision.final_data}")


def _display_metrics(metrics: DecisionMetrics) -> None:
    table = Table(title="Metrics", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Total", str(metrics.total))
    table.add_row("Approved", str(metrics.approved))
    table.add_row("Rejected", str(metrics.rejected))
    table.add_row("Timeouts", str(metrics.timeouts))
    table.add_row("Insufficient Votes", str(metrics.insufficient_votes))
    table.add_row("Average Latency", f"{metrics.average_latency_ms:.1f}ms")
    table.add_row("Consensus Rate", f"{metrics.consensus_rate:.0%}")
    console.print(table)


# ── concord patterns ─────────────────────────────────────────────


@app.command()
def patterns(
    patterns_file: Path = typer.Option(
        None, "--patterns", "-p", help="Path to a patterns.toml file",
    ),
) -> None:
    """Show registered decision patterns as a table."""
    registry = _load_registry(patterns_file)

    table = Table(title="Decision Patterns", show_lines=True)
    table.add_column("Type", style="bold cyan")
    table.add_column("Required")
    table.add_column("Optional", style="dim")
    table.add_column("Threshold", justify="right")
    table.add_column("Timeout", justify="right")
    table.add_column("Description", style="dim")

    for pattern in sorted(registry.all(), key=lambda p: p.type):
        table.add_row(
            pattern.type,
            ", ".join(pattern.required_agents),
            ", ".join(pattern.optional_agents) or "-",
            f"{pattern.threshold:.0%}",
            f"{pattern.timeout_ms:,}ms",
            pattern.description,
        )

    console.print(table)
    console.print(f"\n[dim]{len(registry)} patterns registered[/dim]")


# ── concord config ───────────────────────────────────────────────


@app.command("config")
def config_show(
    config_file: Path = typer.Option(
        None, "--config", "-c", help="Path to a defaults.toml file",
    ),
) -> None:
    """Show the effective engine configuration."""
    config = _load_config(config_file)
    rel = config.reliability

    table = Table(title="Engine Configuration", show_header=False, show_lines=True)
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    table.add_row("Default Wait Timeout", f"{config.default_wait_timeout_ms:,}ms")
    table.add_row(
        "History Cap",
        str(config.history_max_entries) if config.history_max_entries else "unbounded",
    )
    table.add_row("Default History Limit", str(config.default_history_limit))
    table.add_row("Reliability (unseen)", f"{rel.default_score:.2f}")
    table.add_row("Reliability (known)", f"{rel.initial_score:.2f}")
    table.add_row("Reliability Step", f"±{rel.step:.2f}")
    table.add_row("Reliability Bounds", f"{rel.min_score:.2f} to {rel.max_score:.2f}")
    table.add_row("Known Agents", ", ".join(rel.known_agents) or "none")

    console.print(table)


# ── concord simulate ─────────────────────────────────────────────


async def run_simulation(
    engine: DecisionEngine,
    request: DecisionRequest,
    votes: list[AgentVote],
    strategy: str | None = None,
) -> Decision:
    """Submit ``votes`` to a fresh decision and return its outcome.

    If the votes do not finalize the decision on their own, it is forced
    through ``strategy`` when given, otherwise through default consensus.
    """
    decision_id = await engine.request_decision(request)
    for vote in votes:
        if engine.get_decision(decision_id) is not None:
            break
        await engine.submit_vote(decision_id, vote)

    decision = engine.get_decision(decision_id)
    if decision is None:
        if strategy:
            decision = await engine.resolve_conflict(decision_id, strategy)
        else:
            decision = await engine.evaluate_now(decision_id)
    await engine.events.drain()
    return decision


@app.command()
def simulate(
    decision_type: str = typer.Argument(..., help="Decision type (pattern name or custom)"),
    vote: list[str] = typer.Option(
        None, "--vote", "-v", help="Vote as agent:approve|reject|abstain[:confidence]",
    ),
    strategy: str = typer.Option(
        None, "--strategy", "-s", help="Resolution strategy if votes don't finalize",
    ),
    required: list[str] = typer.Option(
        None, "--required", "-r", help="Required agent (needed when no pattern exists)",
    ),
    threshold: float = typer.Option(
        None, "--threshold", "-t", min=0.0, max=1.0, help="Override consensus threshold",
    ),
    config_file: Path = typer.Option(
        None, "--config", "-c", help="Path to a defaults.toml file",
    ),
    patterns_file: Path = typer.Option(
        None, "--patterns", "-p", help="Path to a patterns.toml file",
    ),
) -> None:
    """Run one decision through an in-process engine and show the result."""
    config = _load_config(config_file)
    registry = _load_registry(patterns_file)
    parsed_votes = [parse_vote(v) for v in vote or []]

    overrides: dict = {}
    if required:
        overrides["required_agents"] = required
    if threshold is not None:
        overrides["threshold"] = threshold

    if decision_type in registry:
        request = registry.build_request(decision_type, **overrides)
    elif required:
        request = DecisionRequest(
            type=decision_type,
            required_agents=required,
            threshold=threshold if threshold is not None else 0.7,
            timeout_ms=config.default_wait_timeout_ms,
        )
    else:
        console.print(
            f"[red]No pattern for '{decision_type}'.[/red] "
            "Pass --required to simulate a custom decision type."
        )
        raise typer.Exit(1) from None

    async def _run() -> tuple[Decision, DecisionMetrics]:
        engine = DecisionEngine(config=config, patterns=registry)
        try:
            decision = await run_simulation(engine, request, parsed_votes, strategy)
            return decision, engine.get_metrics()
        finally:
            engine.shutdown()

    try:
        decision, metrics = asyncio.run(_run())
    except ConcordError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    _display_decision(decision)
    console.print()
    _display_metrics(metrics)
