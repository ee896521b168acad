"""Net worth commands."""

import click
from finledger.domain.networth import DEFAULT_SNAPSHOT_LIMIT, NetWorthService


@click.group()
def networth_group():
    """Show net worth and manage month-end snapshots."""
    pass


@networth_group.command("show")
@click.pass_context
def show_net_worth(ctx):
    """Show current net worth and the change since last month-end."""
    summary = NetWorthService(ctx.obj["db"]).current_net_worth()
    click.echo(f"Assets:       {summary.total_assets:>14,.2f}")
    click.echo(f"Liabilities:  {summary.total_liabilities:>14,.2f}")
    click.echo(f"Net worth:    {summary.net_worth:>14,.2f}")
    if summary.change_amount is not None:
        line = f"Change:       {summary.change_amount:>14,.2f}"
        if summary.change_percentage is not None:
            line += f" ({summary.change_percentage}%)"
        click.echo(line)


@networth_group.command("snapshot")
@click.pass_context
def take_snapshot(ctx):
    """Store (or refresh) this month's snapshot."""
    snapshot = NetWorthService(ctx.obj["db"]).generate_for_current_month()
    click.echo(f"Snapshot for {snapshot.snapshot_date}: {snapshot.net_worth:,.2f}")


@networth_group.command("backfill")
@click.pass_context
def backfill(ctx):
    """Fill past month-end snapshots when none exist yet."""
    inserted = NetWorthService(ctx.obj["db"]).backfill()
    click.echo(f"Backfilled {inserted} snapshot(s)")


@networth_group.command("history")
@click.option("--limit", type=int, default=DEFAULT_SNAPSHOT_LIMIT, show_default=True)
@click.pass_context
def history(ctx, limit: int):
    """List month-end snapshots, oldest first."""
    snapshots = NetWorthService(ctx.obj["db"]).list_snapshots(limit)
    if not snapshots:
        click.echo("No snapshots found.")
        return
    for s in snapshots:
        click.echo(
            f"{s.snapshot_date} | assets {s.total_assets:>14,.2f} | "
            f"liabilities {s.total_liabilities:>14,.2f} | net {s.net_worth:>14,.2f}"
        )


def register_commands(cli):
    """Register net worth commands with main CLI."""
    cli.add_command(networth_group, name="networth")
