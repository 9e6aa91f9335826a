#!/usr/bin/env python3
"""Depth Grant Engine CLI"""

import json
import logging
import os
from decimal import Decimal
from typing import List

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .calculators import adaptive_quorum, bond_amount, funding_cap
from .config import GrantConfig
from .eligibility import evaluate
from .errors import GrantEngineError
from .lifecycle import GrantLifecycle
from .models import FounderProfile, GrantEvent, ProtocolState
from .tranches import MilestoneSchedule

app = typer.Typer(
    name="dge",
    help="Depth Grant Engine - reputation-gated milestone grants",
    add_completion=False,
)
console = Console()

# script step -> (lifecycle method, extra kwargs)
SCRIPT_STEPS = {
    "submit": ("submit", {}),
    "pass": ("resolve_initial_vote", {"passed": True}),
    "fail": ("resolve_initial_vote", {"passed": False}),
    "success": ("record_milestone_success", {}),
    "default": ("record_milestone_default", {}),
    "slash": ("resolve_slashing_vote", {"slash": True}),
    "forgive": ("resolve_slashing_vote", {"slash": False}),
    "discard": ("discard", {}),
}


def _setup_logging(verbose: bool) -> None:
    level = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "WARNING")
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load_config() -> GrantConfig:
    try:
        return GrantConfig.from_env()
    except GrantEngineError as e:
        console.print(f"[red]Configuration error:[/] {e.message}")
        raise typer.Exit(code=1)


def _fail(error: GrantEngineError) -> None:
    console.print(Panel(
        f"[bold]{error.error_code}[/]\n{error.message}",
        title="Rejected",
        border_style="red",
    ))
    raise typer.Exit(code=1)


def _format_params(event: GrantEvent) -> str:
    parts = []
    for key, value in event.parameters.items():
        if isinstance(value, Decimal):
            value = f"{value:.2%}" if key in ("required_quorum", "turnout") else f"{value:,.2f}"
        parts.append(f"{key}={value}")
    return ", ".join(parts)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Depth Grant Engine"""
    _setup_logging(verbose)


@app.command("quote")
def quote(
    reputation: int = typer.Option(..., "--reputation", "-r", help="Founder reputation score"),
    request: float = typer.Option(..., "--request", "-a", help="Requested amount (USD)"),
    price: float = typer.Option(0.5, "--price", "-p", help="Token price (USD)"),
    supply: float = typer.Option(10_000_000, "--supply", "-s", help="Circulating token supply"),
):
    """Funding cap, bond, quorum and eligibility for a request"""
    config = _load_config()
    try:
        cap = funding_cap(reputation, config)
        result = evaluate(reputation, request, cap, config)
        bond = bond_amount(price, config)
        quorum = adaptive_quorum(supply, config)
    except GrantEngineError as e:
        _fail(e)

    table = Table(title="Grant Quote")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Reputation", f"{reputation} / {config.SCALE_MAX}")
    table.add_row("Funding cap", f"${cap:,}")
    table.add_row("Requested", f"${result.requested_amount_usd:,.2f}")
    table.add_row("Builder bond", f"{bond:,} tokens")
    table.add_row("Adaptive quorum", f"{quorum:.2%}")
    console.print(table)

    if result.eligible:
        console.print("[green]✅ Eligible for submission[/]")
    else:
        reasons = ", ".join(sorted(r.value for r in result.reasons))
        console.print(f"[red]❌ Not eligible:[/] {reasons}")


@app.command("schedule")
def schedule():
    """Show the milestone schedule"""
    table = Table(title="Milestone Schedule")
    table.add_column("#", justify="right")
    table.add_column("Milestone")
    table.add_column("Tranche", justify="right")
    table.add_column("Cumulative", justify="right")

    milestones = MilestoneSchedule.default()
    for index, milestone in enumerate(milestones, start=1):
        table.add_row(
            str(index),
            milestone.name,
            f"{milestone.percent_of_total}%",
            f"{milestones.cumulative_percent(index)}%",
        )
    console.print(table)


@app.command("simulate")
def simulate(
    reputation: int = typer.Option(10, "--reputation", "-r", help="Founder reputation score"),
    request: float = typer.Option(1000, "--request", "-a", help="Requested amount (USD)"),
    price: float = typer.Option(0.5, "--price", "-p", help="Token price (USD)"),
    supply: float = typer.Option(10_000_000, "--supply", "-s", help="Circulating token supply"),
    turnout: float = typer.Option(0.2, "--turnout", "-t", help="Vote turnout fraction"),
    script: str = typer.Option(
        "submit,pass,success,success,success", "--script",
        help=f"Comma separated steps: {', '.join(SCRIPT_STEPS)}"
    ),
):
    """Drive one proposal through the lifecycle with scripted outcomes"""
    config = _load_config()
    lifecycle = GrantLifecycle(config)
    steps: List[str] = [s.strip().lower() for s in script.split(",") if s.strip()]
    unknown = [s for s in steps if s not in SCRIPT_STEPS]
    if unknown:
        console.print(f"[red]Unknown steps:[/] {', '.join(unknown)}")
        raise typer.Exit(code=1)

    table = Table(title="Lifecycle Events")
    table.add_column("Step", style="cyan")
    table.add_column("Event", style="magenta")
    table.add_column("Status")
    table.add_column("Details")

    try:
        founder = FounderProfile(founder_id="founder", reputation=reputation)
        protocol = ProtocolState(circulating_supply=supply, token_price_usd=price)
        transition = lifecycle.draft(founder, request)
    except GrantEngineError as e:
        _fail(e)

    proposal = transition.proposal
    for event in transition.events:
        table.add_row("draft", event.kind.value, proposal.status.value, _format_params(event))

    error = None
    for step in steps:
        method, kwargs = SCRIPT_STEPS[step]
        kwargs = dict(kwargs)
        if method in ("submit", "resolve_initial_vote", "record_milestone_success", "resolve_slashing_vote"):
            kwargs["founder"] = founder
        if method in ("submit", "resolve_initial_vote"):
            kwargs["protocol"] = protocol
        if method == "resolve_initial_vote":
            kwargs["turnout"] = turnout
        try:
            transition = getattr(lifecycle, method)(proposal, **kwargs)
        except GrantEngineError as e:
            error = e
            table.add_row(step, "[red]rejected[/]", proposal.status.value, e.message)
            break
        proposal = transition.proposal
        founder = transition.founder or founder
        for event in transition.events:
            table.add_row(step, event.kind.value, proposal.status.value, _format_params(event))

    console.print(table)

    ledger = lifecycle.ledger(proposal)
    console.print(Panel(
        f"Status: [bold]{proposal.status.value}[/]\n"
        f"Milestones: {ledger.completed_milestones}/{len(lifecycle.schedule)}\n"
        f"Released: ${ledger.released_amount:,.2f}  Remaining: ${ledger.remaining_amount:,.2f}\n"
        f"Founder reputation: {founder.reputation}",
        title="Final State",
        border_style="red" if error else "green",
    ))
    if error:
        raise typer.Exit(code=1)


@app.command("config")
def show_config():
    """Show the active configuration"""
    config = _load_config()
    console.print_json(json.dumps(config.to_dict()))


def main():
    app()


if __name__ == "__main__":
    main()
