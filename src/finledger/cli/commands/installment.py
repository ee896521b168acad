"""Installment plan commands."""

import click
from finledger.cli.date_filters import parse_date_or_exit
from finledger.cli.error_handling import handle_domain_error
from finledger.cli.resolution import resolve_account_or_exit, resolve_category_or_exit
from finledger.domain.account import AccountService
from finledger.domain.category import CategoryService
from finledger.domain.entities import InstallmentPlan
from finledger.domain.installment import InstallmentService
from finledger.utils.amount_parser import parse_amount


@click.group()
def installment_group():
    """Manage installment plans."""
    pass


def _print_plan(p: InstallmentPlan) -> None:
    click.echo(
        f"ID: {p.id:3d} | {p.name:20s} | {p.installments_paid}/{p.num_installments} paid | "
        f"{p.total_paid:>10,.2f} of {p.total_amount:>10,.2f} | next {p.next_due_date} | "
        f"{p.status.value.lower()}"
    )


@installment_group.command("create")
@click.argument("name")
@click.option("--total", required=True, help="Total amount to pay")
@click.option("--count", "num_installments", type=int, required=True, help="Number of installments")
@click.option("--account", required=True, help="Account name or ID")
@click.option("--category", required=True, help="Category name or ID")
@click.option("--start-date", required=True, help="First due date")
@click.option(
    "--frequency",
    type=click.Choice(["DAILY", "WEEKLY", "MONTHLY"], case_sensitive=False),
    default="MONTHLY",
    show_default=True,
)
@click.option("--memo", help="Memo")
@click.pass_context
def create_plan(
    ctx,
    name: str,
    total: str,
    num_installments: int,
    account: str,
    category: str,
    start_date: str,
    frequency: str,
    memo: str | None,
):
    """Create an installment plan.

    Examples:
        finledger installment create Laptop --total 1200 --count 12 --account Visa \\
            --category Electronics --start-date 2025-01-15
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    category_id = resolve_category_or_exit(ctx, CategoryService(db), category)

    try:
        plan_id = InstallmentService(db).create_plan(
            name=name,
            total_amount=parse_amount(total),
            num_installments=num_installments,
            account_id=account_id,
            category_id=category_id,
            start_date=parse_date_or_exit(ctx, start_date, "start date"),
            frequency=frequency,
            memo=memo,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created installment plan '{name}' (ID: {plan_id})")


@installment_group.command("list")
@click.option(
    "--status",
    type=click.Choice(["ACTIVE", "COMPLETED", "CANCELLED"], case_sensitive=False),
    help="Only plans with this status",
)
@click.pass_context
def list_plans(ctx, status: str | None):
    """List installment plans."""
    plans = InstallmentService(ctx.obj["db"]).list_plans(status=status)
    if not plans:
        click.echo("No installment plans found.")
        return
    for p in plans:
        _print_plan(p)


@installment_group.command("show")
@click.argument("plan_id", type=int)
@click.pass_context
def show_plan(ctx, plan_id: int):
    """Show a plan and its payments."""
    try:
        details = InstallmentService(ctx.obj["db"]).get_plan_details(plan_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    _print_plan(details.plan)
    click.echo(f"Account: {details.account_name}  Category: {details.category_name}")
    if details.next_payment_amount:
        click.echo(f"Next payment: {details.next_payment_amount:,.2f} due {details.plan.next_due_date}")
    for payment in details.payments:
        click.echo(
            f"  #{payment.installment_number:<3d} {payment.amount:>10,.2f} | due {payment.due_date} | "
            f"paid {payment.paid_date} | transaction {payment.transaction_id}"
        )


@installment_group.command("pay")
@click.argument("plan_id", type=int)
@click.option("--date", "paid_on", help="Payment date (default: today)")
@click.pass_context
def pay(ctx, plan_id: int, paid_on: str | None):
    """Pay the next installment of a plan."""
    try:
        transaction_id = InstallmentService(ctx.obj["db"]).process_payment(
            plan_id, paid_on=parse_date_or_exit(ctx, paid_on, "payment date")
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Paid installment (transaction ID: {transaction_id})")


@installment_group.command("upcoming")
@click.option("--days", type=int, default=30, show_default=True, help="Days ahead")
@click.pass_context
def upcoming(ctx, days: int):
    """List active plans with a payment due within the next N days."""
    plans = InstallmentService(ctx.obj["db"]).upcoming(days_ahead=days)
    if not plans:
        click.echo("Nothing due.")
        return
    for p in plans:
        _print_plan(p)


@installment_group.command("cancel")
@click.argument("plan_id", type=int)
@click.pass_context
def cancel(ctx, plan_id: int):
    """Cancel an active plan; payments made are kept."""
    try:
        InstallmentService(ctx.obj["db"]).cancel_plan(plan_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Cancelled installment plan {plan_id}")


@installment_group.command("delete")
@click.argument("plan_id", type=int)
@click.pass_context
def delete(ctx, plan_id: int):
    """Delete a plan that has no payments."""
    try:
        InstallmentService(ctx.obj["db"]).delete_plan(plan_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted installment plan {plan_id}")


def register_commands(cli):
    """Register installment plan commands with main CLI."""
    cli.add_command(installment_group, name="installment")
