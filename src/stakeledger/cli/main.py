#!/usr/bin/env python3
"""
Stake Ledger CLI

Commands:
- simulate: replay a YAML scenario against an in-process deployment
- preview: compute the reward, fee and net for a single position
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

import click
from rich import box
from rich.console import Console
from rich.table import Table

from ..core.config import Config
from ..core.logging_config import setup_logging
from ..staking.accrual import accrued_reward
from ..staking.fees import FeePolicy
from ..staking.positions import StakePosition
from .scenario import ScenarioError, load_scenario, run_scenario

logger = logging.getLogger(__name__)
console = Console()


def _handle_cli_error(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging/exit codes."""
    logger.error("CLI error: %s", exc, exc_info=True)
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


@click.group()
@click.option('--json-output', is_flag=True, help='Output raw JSON')
@click.option(
    '--log-level',
    default=Config.LOG_LEVEL,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
    show_default=True,
    help='Logging level for JSON logs on stderr',
)
@click.option('--log-file', default=Config.LOG_FILE or None, help='Optional JSON log file')
@click.pass_context
def cli(ctx: click.Context, json_output: bool, log_level: str, log_file: str | None):
    """
    Stake Ledger CLI - multi-position staking with time-weighted rewards.
    """
    ctx.ensure_object(dict)
    setup_logging(
        name="stakeledger",
        log_file=log_file,
        level=log_level,
        environment=Config.ENVIRONMENT,
    )
    ctx.obj['json_output'] = json_output


@cli.command("simulate")
@click.argument("scenario", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def simulate(ctx: click.Context, scenario: str):
    """
    Replay SCENARIO (YAML) and print the resulting ledger state.

    Example:
        stakeledger simulate scenarios/one_year_claim.yaml
    """
    try:
        data = load_scenario(scenario)
        deployment, results = run_scenario(data)
    except ScenarioError as exc:
        raise click.ClickException(str(exc)) from exc

    summary = deployment.summary()
    if ctx.obj.get('json_output'):
        click.echo(json.dumps(
            {"steps": [r.to_dict() for r in results], "summary": summary},
            indent=2,
        ))
        return

    steps_table = Table(title="Steps", box=box.SIMPLE)
    steps_table.add_column("#", justify="right")
    steps_table.add_column("Op", style="cyan")
    steps_table.add_column("Result")
    steps_table.add_column("Detail")
    for result in results:
        status = "[green]ok" if result.ok else f"[red]{result.error_kind}"
        steps_table.add_row(str(result.number), result.op, status, result.detail)
    console.print(steps_table)

    _print_summary(summary)


def _print_summary(summary: dict[str, Any]) -> None:
    table = Table(show_header=False, box=box.ROUNDED, title="Ledger")
    table.add_row("[bold cyan]Time", str(summary["time"]))
    table.add_row("[bold cyan]Rate", f"{summary['rate']}%/year")
    table.add_row("[bold green]Total Staked", str(summary["total_staked"]))
    table.add_row("[bold green]Ledger Custody", str(summary["ledger_custody"]))
    table.add_row("[bold green]Rewards Paid", str(summary["total_rewards_paid"]))
    table.add_row("[bold yellow]Vault Available", str(summary["vault_available"]))
    table.add_row("[bold magenta]Treasury Fees (STK)", str(summary["treasury_stake_fees"]))
    table.add_row("[bold magenta]Treasury Fees (RWD)", str(summary["treasury_reward_fees"]))
    table.add_row("[bold cyan]Participants", ", ".join(summary["participants"]) or "-")
    console.print(table)

    accounts = Table(title="Accounts", box=box.SIMPLE)
    for column in ("Account", "Positions", "Principal", "Debt", "Pending", "STK", "RWD"):
        accounts.add_column(column)
    for account, info in summary["accounts"].items():
        positions = "; ".join(
            f"[{i}] {p['principal']}@{p['rate_at_open']}%" for i, p in enumerate(info["positions"])
        )
        accounts.add_row(
            account,
            positions or "-",
            str(info["total_principal"]),
            str(info["reward_debt"]),
            str(info["pending_reward"]),
            str(info["stake_balance"]),
            str(info["reward_balance"]),
        )
    console.print(accounts)


@cli.command("preview")
@click.option("--principal", type=click.IntRange(min=1), required=True, help="Staked amount")
@click.option("--rate", type=click.IntRange(min=0), default=Config.DEFAULT_RATE, show_default=True,
              help="Rate in percent per year")
@click.option("--seconds", type=click.IntRange(min=0), default=Config.SECONDS_PER_YEAR,
              show_default=True, help="Seconds the position stays open")
@click.option("--fee-percent", type=click.IntRange(0, 100), default=Config.FEE_PERCENT,
              show_default=True, help="Fee charged on the claim")
@click.pass_context
def preview(ctx: click.Context, principal: int, rate: int, seconds: int, fee_percent: int):
    """Show the reward a single position earns and how a claim would split it."""
    opened_at = 1
    position = StakePosition(principal=principal, opened_at=opened_at, rate_at_open=rate)
    gross = accrued_reward(position, opened_at + seconds, Config.SECONDS_PER_YEAR)
    split = FeePolicy(fee_percent).split(gross)

    if ctx.obj.get('json_output'):
        click.echo(json.dumps(split.to_dict(), indent=2))
        return

    table = Table(show_header=False, box=box.ROUNDED, title="Reward Preview")
    table.add_row("[bold cyan]Gross", str(split.gross))
    table.add_row("[bold magenta]Fee", str(split.fee))
    table.add_row("[bold green]Net", str(split.net))
    console.print(table)


def main():
    """Main CLI entry point"""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/]")
        sys.exit(130)
    except (ValueError, KeyError, TypeError, OSError) as exc:
        _handle_cli_error(exc)


if __name__ == "__main__":
    sys.exit(main() or 0)
