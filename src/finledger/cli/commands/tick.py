"""Daily maintenance command."""

import click
from finledger.cli.date_filters import parse_date_or_exit
from finledger.domain.daily import run_daily_tasks


@click.command("tick")
@click.option("--date", "as_of", help="Run as if today were this date")
@click.pass_context
def tick(ctx, as_of: str | None):
    """Run the daily tasks.

    Posts due recurring transactions, auto-settles cards on their due day,
    backfills snapshots on first use and refreshes this month's snapshot.
    Safe to run several times a day.
    """
    results = run_daily_tasks(ctx.obj["db"], parse_date_or_exit(ctx, as_of))

    recurring = results["recurring"]
    settled = results["auto_settlement"]
    backfilled = results["snapshot_backfill"]
    snapshot = results["snapshot_current"]

    click.echo(f"Recurring: {'failed' if recurring is None else f'{len(recurring)} posted'}")
    click.echo(f"Auto-settlement: {'failed' if settled is None else f'{len(settled)} statement(s) paid'}")
    click.echo(f"Backfill: {'failed' if backfilled is None else f'{backfilled} snapshot(s)'}")
    if snapshot is None:
        click.echo("Snapshot: failed")
    else:
        click.echo(f"Snapshot: {snapshot.snapshot_date} net worth {snapshot.net_worth:,.2f}")
    if None in results.values():
        ctx.exit(1)


def register_commands(cli):
    """Register tick command with main CLI."""
    cli.add_command(tick)
