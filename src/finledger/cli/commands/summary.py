"""Spending report commands."""

import click
from finledger.cli.date_filters import period_options, resolve_cli_date_range
from finledger.cli.error_handling import handle_domain_error
from finledger.cli.resolution import resolve_category_or_exit
from finledger.domain.category import CategoryService
from finledger.domain.entities import TransactionKind
from finledger.domain.summary import SummaryService
from finledger.utils.date_parser import get_date_range


@click.group()
def report_group():
    """Income, expense and spending reports."""
    pass


def _range(ctx, start_date, end_date, this_month, this_year, last_month, last_year):
    return resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags={
            "this-month": this_month,
            "this-year": this_year,
            "last-month": last_month,
            "last-year": last_year,
        },
        default_range=get_date_range("this-month"),
    )


@report_group.command("summary")
@period_options
@click.pass_context
def income_expense(ctx, start_date, end_date, this_month, this_year, last_month, last_year):
    """Total income and expense (defaults to this month).

    Examples:
        finledger report summary --last-month
        finledger report summary --start-date 2025-01-01 --end-date 2025-03-31
    """
    start, end = _range(ctx, start_date, end_date, this_month, this_year, last_month, last_year)
    summary = SummaryService(ctx.obj["db"]).income_expense_summary(start, end)
    click.echo(f"\nSummary {start or 'beginning'} to {end or 'today'}")
    click.echo("-" * 40)
    click.echo(f"Income:       {summary.total_income:>14,.2f}")
    click.echo(f"Expense:      {summary.total_expense:>14,.2f}")
    click.echo(f"Net:          {summary.net:>14,.2f}")
    click.echo(f"Transactions: {summary.transaction_count:>14d}")


@report_group.command("categories")
@period_options
@click.option("--income", is_flag=True, help="Report income instead of expense")
@click.pass_context
def categories(ctx, start_date, end_date, this_month, this_year, last_month, last_year, income: bool):
    """Amounts per root category, largest first (defaults to this month)."""
    start, end = _range(ctx, start_date, end_date, this_month, this_year, last_month, last_year)
    kind = TransactionKind.INCOME if income else TransactionKind.EXPENSE
    rows = SummaryService(ctx.obj["db"]).category_spending(start, end, kind)
    if not rows:
        click.echo("No transactions found.")
        return
    for row in rows:
        click.echo(
            f"{row.category_name:25s} | {row.amount:>12,.2f} | {row.percentage:>6}% | "
            f"{row.transaction_count} txn(s)"
        )


@report_group.command("trends")
@click.option("--months", type=int, default=6, show_default=True)
@click.pass_context
def trends(ctx, months: int):
    """Income and expense per month."""
    for row in SummaryService(ctx.obj["db"]).monthly_trends(months=months):
        click.echo(f"{row.month} | income {row.income:>12,.2f} | expense {row.expense:>12,.2f} | net {row.net:>12,.2f}")


@report_group.command("dashboard")
@click.pass_context
def dashboard(ctx):
    """Month-to-date overview."""
    d = SummaryService(ctx.obj["db"]).dashboard()
    click.echo(f"Net worth:          {d.net_worth:>14,.2f} ({d.net_worth_change:+,.2f} this month)")
    click.echo(f"Income this month:  {d.income_this_month:>14,.2f}")
    click.echo(f"Expense this month: {d.expense_this_month:>14,.2f}")
    click.echo(f"Savings rate:       {d.savings_rate:>13}%")
    click.echo(f"Daily average:      {d.daily_average_expense:>14,.2f} over {d.days_in_period} day(s)")
    if d.top_expense_category:
        click.echo(f"Top category:       {d.top_expense_category} ({d.top_expense_amount:,.2f})")


@report_group.command("breakdown")
@click.argument("category")
@period_options
@click.option("--income", is_flag=True, help="Report income instead of expense")
@click.pass_context
def breakdown(ctx, category, start_date, end_date, this_month, this_year, last_month, last_year, income: bool):
    """Split a category across its subcategories (defaults to this month)."""
    db = ctx.obj["db"]
    category_id = resolve_category_or_exit(ctx, CategoryService(db), category)
    start, end = _range(ctx, start_date, end_date, this_month, this_year, last_month, last_year)
    kind = TransactionKind.INCOME if income else TransactionKind.EXPENSE
    try:
        result = SummaryService(db).subcategory_breakdown(category_id, start, end, kind)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"{result.parent_category_name}: {result.total_amount:,.2f}")
    for row in result.subcategories:
        click.echo(
            f"  {row.category_name:23s} | {row.amount:>12,.2f} | {row.percentage:>6}% | "
            f"{row.transaction_count} txn(s)"
        )


@report_group.command("yoy")
@click.option("--year", type=int, help="Year to compare with the one before (default: this year)")
@click.pass_context
def year_over_year(ctx, year: int | None):
    """Monthly income and expense against the previous year."""
    for row in SummaryService(ctx.obj["db"]).year_over_year(year):
        click.echo(
            f"{row.month:9s} | income {row.current_year_income:>12,.2f} vs {row.previous_year_income:>12,.2f} "
            f"({row.income_change:+}%) | expense {row.current_year_expense:>12,.2f} vs "
            f"{row.previous_year_expense:>12,.2f} ({row.expense_change:+}%)"
        )


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")
