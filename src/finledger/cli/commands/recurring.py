"""Recurring transaction commands."""

import click
from finledger.cli.date_filters import parse_date_or_exit
from finledger.cli.error_handling import handle_domain_error
from finledger.cli.resolution import resolve_account_or_exit, resolve_category_or_exit
from finledger.domain.account import AccountService
from finledger.domain.category import CategoryService
from finledger.domain.entities import RecurringTransaction
from finledger.domain.recurring import RecurringService
from finledger.utils.amount_parser import parse_amount


@click.group()
def recurring_group():
    """Manage recurring transactions."""
    pass


def _print_recurring(r: RecurringTransaction) -> None:
    state = "active" if r.is_active else "paused"
    every = f"every {r.interval_days} days" if r.interval_days else r.frequency.value.lower()
    click.echo(
        f"ID: {r.id:3d} | {r.name:20s} | {r.kind.value:8s} {r.amount:>10,.2f} | {every:12s} | "
        f"next {r.next_execution_date} | {state} | runs {r.execution_count}"
    )


@recurring_group.command("create")
@click.argument("name")
@click.option(
    "--kind",
    type=click.Choice(["INCOME", "EXPENSE", "TRANSFER"], case_sensitive=False),
    required=True,
)
@click.option("--amount", required=True, help="Positive amount")
@click.option("--account", required=True, help="Account name or ID")
@click.option("--to-account", help="Destination account (transfers only)")
@click.option("--category", help="Category name or ID")
@click.option(
    "--frequency",
    type=click.Choice(["DAILY", "WEEKLY", "MONTHLY", "YEARLY", "CUSTOM"], case_sensitive=False),
    required=True,
)
@click.option("--interval-days", type=int, help="Days between runs for CUSTOM frequency")
@click.option("--start-date", required=True, help="First execution date")
@click.option("--end-date", help="Last possible execution date")
@click.option("--description", help="Description")
@click.pass_context
def create_recurring(
    ctx,
    name: str,
    kind: str,
    amount: str,
    account: str,
    to_account: str | None,
    category: str | None,
    frequency: str,
    interval_days: int | None,
    start_date: str,
    end_date: str | None,
    description: str | None,
):
    """Create a recurring transaction.

    Examples:
        finledger recurring create Rent --kind expense --amount 1200 --account Checking \\
            --category Housing --frequency monthly --start-date 2025-01-01
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, account_service, account)
    to_account_id = resolve_account_or_exit(ctx, account_service, to_account) if to_account else None
    category_id = resolve_category_or_exit(ctx, CategoryService(db), category) if category else None

    try:
        recurring_id = RecurringService(db).create_recurring(
            name=name,
            kind=kind,
            amount=parse_amount(amount),
            account_id=account_id,
            frequency=frequency,
            start_date=parse_date_or_exit(ctx, start_date, "start date"),
            end_date=parse_date_or_exit(ctx, end_date, "end date"),
            to_account_id=to_account_id,
            category_id=category_id,
            interval_days=interval_days,
            description=description,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created recurring transaction '{name}' (ID: {recurring_id})")


@recurring_group.command("list")
@click.option("--active", "active_only", is_flag=True, help="Only active schedules")
@click.pass_context
def list_recurring(ctx, active_only: bool):
    """List recurring transactions."""
    items = RecurringService(ctx.obj["db"]).list_recurring(active_only=active_only)
    if not items:
        click.echo("No recurring transactions found.")
        return
    for r in items:
        _print_recurring(r)


@recurring_group.command("upcoming")
@click.option("--days", type=int, default=30, show_default=True, help="Days ahead")
@click.pass_context
def upcoming(ctx, days: int):
    """List active schedules due within the next N days."""
    items = RecurringService(ctx.obj["db"]).upcoming(days_ahead=days)
    if not items:
        click.echo("Nothing due.")
        return
    for r in items:
        _print_recurring(r)


@recurring_group.command("skip")
@click.argument("recurring_id", type=int)
@click.pass_context
def skip(ctx, recurring_id: int):
    """Skip the next occurrence without posting it."""
    try:
        r = RecurringService(ctx.obj["db"]).skip_next_occurrence(recurring_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Next execution of '{r.name}' is now {r.next_execution_date}")


@recurring_group.command("pause")
@click.argument("recurring_id", type=int)
@click.pass_context
def pause(ctx, recurring_id: int):
    """Pause a recurring transaction."""
    try:
        RecurringService(ctx.obj["db"]).set_active(recurring_id, False)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Paused recurring transaction {recurring_id}")


@recurring_group.command("resume")
@click.argument("recurring_id", type=int)
@click.pass_context
def resume(ctx, recurring_id: int):
    """Resume a paused recurring transaction."""
    try:
        RecurringService(ctx.obj["db"]).set_active(recurring_id, True)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Resumed recurring transaction {recurring_id}")


@recurring_group.command("delete")
@click.argument("recurring_id", type=int)
@click.pass_context
def delete(ctx, recurring_id: int):
    """Delete a recurring transaction; posted transactions are kept."""
    try:
        RecurringService(ctx.obj["db"]).delete_recurring(recurring_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted recurring transaction {recurring_id}")


@recurring_group.command("run")
@click.pass_context
def run_due(ctx):
    """Post every occurrence that is due today or earlier."""
    created = RecurringService(ctx.obj["db"]).process_due()
    click.echo(f"Posted {len(created)} recurring transaction(s)")


def register_commands(cli):
    """Register recurring transaction commands with main CLI."""
    cli.add_command(recurring_group, name="recurring")
