"""Credit card commands."""

import click
from finledger.cli.date_filters import parse_date_or_exit
from finledger.cli.error_handling import handle_domain_error
from finledger.cli.resolution import resolve_account_or_exit
from finledger.domain.account import AccountService
from finledger.domain.billing import DEFAULT_MINIMUM_PAYMENT_PERCENTAGE, CreditCardService
from finledger.domain.entities import CreditCardSettingsPatch
from finledger.utils.amount_parser import parse_amount


@click.group()
def card_group():
    """Manage credit cards, statements and payments."""
    pass


def _amount_or_exit(ctx, value: str | None):
    if value is None:
        return None
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)


@card_group.command("setup")
@click.argument("account", metavar="ACCOUNT")
@click.option("--limit", "credit_limit", default="0", help="Credit limit (0 = untracked)")
@click.option("--statement-day", type=int, required=True, help="Day of month the cycle closes (1-28)")
@click.option("--due-day", type=int, required=True, help="Day of month payment is due (1-28)")
@click.option(
    "--minimum-percentage",
    default=str(DEFAULT_MINIMUM_PAYMENT_PERCENTAGE),
    show_default=True,
    help="Minimum payment as a percentage of the closing balance",
)
@click.option("--auto-settle", is_flag=True, help="Pay statements automatically on the due day")
@click.option("--settlement-account", help="ASSET account used for automatic payments")
@click.pass_context
def setup_card(
    ctx,
    account: str,
    credit_limit: str,
    statement_day: int,
    due_day: int,
    minimum_percentage: str,
    auto_settle: bool,
    settlement_account: str | None,
):
    """Attach billing settings to a LIABILITY account.

    Examples:
        finledger card setup Visa --limit 5000 --statement-day 25 --due-day 15
        finledger card setup Visa --statement-day 25 --due-day 15 --auto-settle --settlement-account Checking
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, account_service, account)
    settlement_id = None
    if settlement_account:
        settlement_id = resolve_account_or_exit(ctx, account_service, settlement_account)

    try:
        settings_id = CreditCardService(db).create_card_settings(
            account_id=account_id,
            credit_limit=_amount_or_exit(ctx, credit_limit),
            statement_day=statement_day,
            payment_due_day=due_day,
            minimum_payment_percentage=_amount_or_exit(ctx, minimum_percentage),
            auto_settlement_enabled=auto_settle,
            settlement_account_id=settlement_id,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created credit card settings {settings_id}")


@card_group.command("update")
@click.argument("settings_id", type=int)
@click.option("--limit", "credit_limit", help="Credit limit")
@click.option("--statement-day", type=int, help="Statement day (1-28)")
@click.option("--due-day", type=int, help="Payment due day (1-28)")
@click.option("--minimum-percentage", help="Minimum payment percentage")
@click.option("--auto-settle/--no-auto-settle", default=None, help="Toggle automatic payments")
@click.option("--settlement-account", help="ASSET account for automatic payments, or empty to clear")
@click.pass_context
def update_card(
    ctx,
    settings_id: int,
    credit_limit: str | None,
    statement_day: int | None,
    due_day: int | None,
    minimum_percentage: str | None,
    auto_settle: bool | None,
    settlement_account: str | None,
):
    """Update credit card settings."""
    db = ctx.obj["db"]
    settlement_id = None
    if settlement_account:
        settlement_id = resolve_account_or_exit(ctx, AccountService(db), settlement_account)

    patch = CreditCardSettingsPatch(
        credit_limit=_amount_or_exit(ctx, credit_limit),
        statement_day=statement_day,
        payment_due_day=due_day,
        minimum_payment_percentage=_amount_or_exit(ctx, minimum_percentage),
        auto_settlement_enabled=auto_settle,
        settlement_account_id=settlement_id,
        clear_settlement_account=settlement_account == "",
    )
    try:
        CreditCardService(db).update_card_settings(settings_id, patch)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated credit card settings {settings_id}")


@card_group.command("list")
@click.pass_context
def list_cards(ctx):
    """List cards with balances for the current cycle."""
    cards = CreditCardService(ctx.obj["db"]).list_card_balances()
    if not cards:
        click.echo("No credit cards configured.")
        return

    for card in cards:
        click.echo(f"\n{card.account_name} (settings ID: {card.settings.id})")
        click.echo(f"  Cycle:             {card.cycle.start} to {card.cycle.end}")
        click.echo(f"  Total balance:     {card.total_balance:>12,.2f}")
        click.echo(f"  Cycle charges:     {card.current_cycle_charges:>12,.2f}")
        click.echo(f"  Cycle payments:    {card.current_cycle_payments:>12,.2f}")
        click.echo(f"  Outstanding:       {card.outstanding_balance:>12,.2f}")
        click.echo(f"  Available credit:  {card.available_credit:>12,.2f}")
        click.echo(f"  Utilization:       {card.utilization_percentage:>11}%")
        if card.next_due_date is not None:
            click.echo(f"  Next due:          {card.next_due_amount:>12,.2f} on {card.next_due_date}")


@card_group.command("statement")
@click.argument("settings_id", type=int)
@click.option("--date", "as_of", help="Reference date for the cycle (default: today)")
@click.pass_context
def generate_statement(ctx, settings_id: int, as_of: str | None):
    """Close the current billing cycle into a statement."""
    today = parse_date_or_exit(ctx, as_of)
    try:
        statement = CreditCardService(ctx.obj["db"]).generate_statement(settings_id, today)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Generated statement {statement.id} for {statement.cycle_start} to {statement.cycle_end}")
    click.echo(f"  Opening balance: {statement.opening_balance:>12,.2f}")
    click.echo(f"  Charges:         {statement.total_charges:>12,.2f}")
    click.echo(f"  Payments:        {statement.total_payments:>12,.2f}")
    click.echo(f"  Closing balance: {statement.closing_balance:>12,.2f}")
    click.echo(f"  Minimum payment: {statement.minimum_payment:>12,.2f}")
    click.echo(f"  Due date:        {statement.due_date}")


@card_group.command("statements")
@click.argument("settings_id", type=int)
@click.pass_context
def list_statements(ctx, settings_id: int):
    """List statements for a card, newest first."""
    try:
        statements = CreditCardService(ctx.obj["db"]).list_statements(settings_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    if not statements:
        click.echo("No statements found.")
        return

    for st in statements:
        click.echo(
            f"ID: {st.id:3d} | {st.cycle_start} to {st.cycle_end} | due {st.due_date} | "
            f"{st.closing_balance:>10,.2f} | paid {st.paid_amount:>10,.2f} | {st.status.value}"
        )


@card_group.command("pay")
@click.argument("settings_id", type=int)
@click.option("--from", "from_account", required=True, help="ASSET account name or ID")
@click.option("--amount", help="Amount (default: full card balance)")
@click.option("--date", "paid_on", help="Payment date (default: today)")
@click.option("--memo", help="Memo")
@click.pass_context
def pay_card(ctx, settings_id: int, from_account: str, amount: str | None, paid_on: str | None, memo: str | None):
    """Pay a card and apply the payment to unpaid statements.

    Examples:
        finledger card pay 1 --from Checking
        finledger card pay 1 --from Checking --amount 250
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), from_account)
    try:
        settlement = CreditCardService(db).settle(
            settings_id,
            account_id,
            amount=_amount_or_exit(ctx, amount),
            on_date=parse_date_or_exit(ctx, paid_on),
            memo=memo,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Paid {settlement.amount:,.2f} (transaction {settlement.transaction_id})")
    for allocation in settlement.allocations:
        click.echo(
            f"  Statement {allocation.statement_id}: {allocation.applied:,.2f} -> {allocation.status.value}"
        )


@card_group.command("delete")
@click.argument("settings_id", type=int)
@click.pass_context
def delete_card(ctx, settings_id: int):
    """Remove billing settings from a card that has no statements."""
    try:
        CreditCardService(ctx.obj["db"]).delete_card_settings(settings_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted credit card settings {settings_id}")


def register_commands(cli):
    """Register credit card commands with main CLI."""
    cli.add_command(card_group, name="card")
