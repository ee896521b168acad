"""Budget commands."""

import click
from finledger.cli.date_filters import parse_date_or_exit
from finledger.cli.error_handling import handle_domain_error
from finledger.cli.resolution import resolve_category_or_exit
from finledger.domain.budget import BudgetService
from finledger.domain.category import CategoryService
from finledger.domain.entities import BudgetPatch, BudgetStatus
from finledger.utils.amount_parser import parse_amount


@click.group()
def budget_group():
    """Manage budgets."""
    pass


def _parse_amount_or_exit(ctx, value: str):
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)


def _print_status(status: BudgetStatus) -> None:
    level = f" [{status.alert_level.value}]" if status.alert_level else ""
    click.echo(
        f"ID: {status.budget.id:3d} | {status.category_name:20s} | "
        f"{status.window_start} to {status.window_end} | "
        f"{status.spent:>10,.2f} / {status.budget.amount:>10,.2f} "
        f"({status.percentage_used}%){level}"
    )


@budget_group.command("create")
@click.option("--category", required=True, help="Category name or ID")
@click.option("--amount", required=True, help="Budget amount")
@click.option(
    "--period",
    type=click.Choice(["MONTHLY", "YEARLY"], case_sensitive=False),
    default="MONTHLY",
    show_default=True,
)
@click.option("--start-date", default="this month", help="Window anchor date (default: first of this month)")
@click.pass_context
def create_budget(ctx, category: str, amount: str, period: str, start_date: str):
    """Create a budget for a category.

    Examples:
        finledger budget create --category Food --amount 500
        finledger budget create --category Travel --amount 3000 --period yearly --start-date 2025-01-01
    """
    db = ctx.obj["db"]
    category_id = resolve_category_or_exit(ctx, CategoryService(db), category)
    try:
        budget_id = BudgetService(db).create_budget(
            category_id=category_id,
            amount=_parse_amount_or_exit(ctx, amount),
            period=period,
            start_date=parse_date_or_exit(ctx, start_date, "start date"),
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created budget {budget_id}")


@budget_group.command("list")
@click.pass_context
def list_budgets(ctx):
    """List budgets with spend in their current window."""
    statuses = BudgetService(ctx.obj["db"]).list_budget_statuses()
    if not statuses:
        click.echo("No budgets found.")
        return
    for status in statuses:
        _print_status(status)


@budget_group.command("status")
@click.argument("budget_id", type=int)
@click.pass_context
def budget_status(ctx, budget_id: int):
    """Show detailed status for one budget."""
    try:
        status = BudgetService(ctx.obj["db"]).budget_status(budget_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Budget {budget_id}: {status.category_name} ({status.budget.period.value})")
    click.echo(f"  Window:          {status.window_start} to {status.window_end}")
    click.echo(f"  Budget:          {status.budget.amount:,.2f}")
    click.echo(f"  Spent:           {status.spent:,.2f} ({status.percentage_used}%)")
    click.echo(f"  Remaining:       {status.remaining:,.2f}")
    click.echo(f"  Days elapsed:    {status.days_elapsed}")
    click.echo(f"  Days remaining:  {status.days_remaining}")
    click.echo(f"  Daily average:   {status.daily_average_spent:,.2f}")
    click.echo(f"  Daily allowance: {status.daily_budget_remaining:,.2f}")
    if status.alert_level:
        click.echo(f"  Alert:           {status.alert_level.value}")


@budget_group.command("alerts")
@click.pass_context
def budget_alerts(ctx):
    """List budgets at or above 80% of their amount, most severe first."""
    alerts = BudgetService(ctx.obj["db"]).budget_alerts()
    if not alerts:
        click.echo("No budget alerts.")
        return
    for status in alerts:
        _print_status(status)


@budget_group.command("update")
@click.argument("budget_id", type=int)
@click.option("--amount", help="New amount")
@click.option("--start-date", help="New window anchor date")
@click.pass_context
def update_budget(ctx, budget_id: int, amount: str | None, start_date: str | None):
    """Change a budget's amount or anchor date."""
    patch = BudgetPatch(
        amount=_parse_amount_or_exit(ctx, amount) if amount is not None else None,
        start_date=parse_date_or_exit(ctx, start_date, "start date"),
    )
    try:
        BudgetService(ctx.obj["db"]).update_budget(budget_id, patch)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated budget {budget_id}")


@budget_group.command("delete")
@click.argument("budget_id", type=int)
@click.pass_context
def delete_budget(ctx, budget_id: int):
    """Delete a budget."""
    try:
        BudgetService(ctx.obj["db"]).delete_budget(budget_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted budget {budget_id}")


def register_commands(cli):
    """Register budget commands with main CLI."""
    cli.add_command(budget_group, name="budget")
