"""Add transaction command."""

import click
from finledger.cli.date_filters import parse_date_or_exit
from finledger.cli.error_handling import handle_domain_error
from finledger.cli.resolution import resolve_account_or_exit, resolve_category_or_exit
from finledger.domain.account import AccountService
from finledger.domain.category import CategoryService
from finledger.domain.transaction import TransactionService
from finledger.utils.amount_parser import parse_amount


@click.command("add")
@click.argument("kind", type=click.Choice(["income", "expense", "transfer"], case_sensitive=False))
@click.option("--account", required=True, help="Account name or ID (source for transfers)")
@click.option("--to-account", help="Destination account name or ID (transfers only)")
@click.option("--amount", required=True, help="Positive amount (e.g., 123.45)")
@click.option(
    "--date",
    "txn_date",
    default="today",
    help="Transaction date (YYYY-MM-DD or relative like 'today', 'yesterday')",
)
@click.option("--category", help="Category name or ID")
@click.option("--memo", help="Memo")
@click.option("--photo", "photo_ref", help="Receipt photo reference")
@click.pass_context
def add_transaction(
    ctx,
    kind: str,
    account: str,
    to_account: str | None,
    amount: str,
    txn_date: str,
    category: str | None,
    memo: str | None,
    photo_ref: str | None,
):
    """Post a transaction with balanced journal entries.

    Examples:
        finledger add expense --account Checking --amount 42.50 --category Groceries
        finledger add income --account Checking --amount 3000 --date 2025-01-31
        finledger add transfer --account Checking --to-account Visa --amount 200
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)

    account_id = resolve_account_or_exit(ctx, account_service, account)
    to_account_id = resolve_account_or_exit(ctx, account_service, to_account) if to_account else None
    category_id = resolve_category_or_exit(ctx, CategoryService(db), category) if category else None
    parsed_date = parse_date_or_exit(ctx, txn_date)

    try:
        parsed_amount = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    try:
        transaction_id = TransactionService(db).create_transaction(
            date=parsed_date,
            kind=kind,
            amount=parsed_amount,
            account_id=account_id,
            to_account_id=to_account_id,
            category_id=category_id,
            memo=memo,
            photo_ref=photo_ref,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    account_obj = account_service.get_account(account_id)
    click.echo(f"Created transaction {transaction_id}")
    click.echo(f"  Type: {kind.upper()}")
    click.echo(f"  Account: {account_obj.name}")
    if to_account_id is not None:
        click.echo(f"  To account: {account_service.get_account(to_account_id).name}")
    click.echo(f"  Date: {parsed_date}")
    click.echo(f"  Amount: {parsed_amount:,.2f} {account_obj.currency}")
    if memo:
        click.echo(f"  Memo: {memo}")


def register_commands(cli):
    """Register add command with main CLI."""
    cli.add_command(add_transaction)
