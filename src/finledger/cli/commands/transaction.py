"""Transaction management commands."""

import click
from finledger.cli.date_filters import parse_date_or_exit, period_options, resolve_cli_date_range
from finledger.cli.error_handling import handle_domain_error
from finledger.cli.resolution import resolve_account_or_exit, resolve_category_or_exit
from finledger.domain.account import AccountService
from finledger.domain.category import CategoryService
from finledger.domain.entities import TransactionPatch
from finledger.domain.transaction import TransactionService


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


@transaction_group.command("list")
@period_options
@click.option("--account", help="Only transactions from this account")
@click.option("--category", help="Category name or ID")
@click.option(
    "--kind",
    type=click.Choice(["INCOME", "EXPENSE", "TRANSFER"], case_sensitive=False),
    help="Transaction type",
)
@click.option("--limit", type=int, default=50, show_default=True, help="Maximum rows")
@click.pass_context
def list_transactions(
    ctx,
    start_date: str | None,
    end_date: str | None,
    this_month: bool,
    this_year: bool,
    last_month: bool,
    last_year: bool,
    account: str | None,
    category: str | None,
    kind: str | None,
    limit: int,
):
    """List transactions, newest first."""
    db = ctx.obj["db"]
    account_service = AccountService(db)
    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags={
            "this-month": this_month,
            "this-year": this_year,
            "last-month": last_month,
            "last-year": last_year,
        },
    )
    account_id = resolve_account_or_exit(ctx, account_service, account) if account else None
    category_id = resolve_category_or_exit(ctx, CategoryService(db), category) if category else None

    try:
        transactions = TransactionService(db).list_transactions(
            start_date=start,
            end_date=end,
            account_id=account_id,
            category_id=category_id,
            kind=kind,
            limit=limit,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not transactions:
        click.echo("No transactions found.")
        return

    names = {acc.id: acc.name for acc in account_service.list_accounts()}
    for txn in transactions:
        target = names.get(txn.account_id, "?")
        if txn.to_account_id is not None:
            target = f"{target} -> {names.get(txn.to_account_id, '?')}"
        click.echo(
            f"ID: {txn.id:4d} | {txn.date} | {txn.kind.value:8s} | {txn.amount:>12,.2f} | "
            f"{target:30s} | {txn.memo or ''}"
        )


@transaction_group.command("show")
@click.argument("transaction_id", type=int)
@click.pass_context
def show_transaction(ctx, transaction_id: int):
    """Show a transaction with its journal entries."""
    db = ctx.obj["db"]
    service = TransactionService(db)
    try:
        txn = service.require_transaction(transaction_id)
        entries = service.get_journal_entries(transaction_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    names = {acc.id: acc.name for acc in AccountService(db).list_accounts()}
    click.echo(f"Transaction {txn.id}: {txn.kind.value} {txn.amount:,.2f} on {txn.date}")
    if txn.memo:
        click.echo(f"  Memo: {txn.memo}")
    if txn.photo_ref:
        click.echo(f"  Photo: {txn.photo_ref}")
    click.echo("  Journal entries:")
    for entry in entries:
        click.echo(
            f"    {names.get(entry.account_id, entry.account_id)!s:25s} "
            f"Dr {entry.debit:>12,.2f}  Cr {entry.credit:>12,.2f}"
        )


@transaction_group.command("update")
@click.argument("transaction_id", type=int)
@click.option("--date", "txn_date", help="New transaction date")
@click.option("--category", help="Category name or ID, or empty string to clear")
@click.option("--memo", help="New memo")
@click.option("--photo", "photo_ref", help="New receipt photo reference")
@click.pass_context
def update_transaction(
    ctx,
    transaction_id: int,
    txn_date: str | None,
    category: str | None,
    memo: str | None,
    photo_ref: str | None,
) -> None:
    """Update descriptive fields of a transaction.

    Amount, type and accounts cannot change; delete and re-add instead.

    Examples:
        finledger transaction update 12 --memo "Dinner"
        finledger transaction update 12 --category ""
    """
    db = ctx.obj["db"]
    category_id = None
    if category:
        category_id = resolve_category_or_exit(ctx, CategoryService(db), category)

    patch = TransactionPatch(
        date=parse_date_or_exit(ctx, txn_date),
        category_id=category_id,
        clear_category=category == "",
        memo=memo,
        photo_ref=photo_ref,
    )
    try:
        TransactionService(db).update_transaction(transaction_id, patch)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated transaction {transaction_id}")


@transaction_group.command("delete")
@click.argument("transaction_id", type=int)
@click.pass_context
def delete_transaction(ctx, transaction_id: int) -> None:
    """Delete a transaction and its journal entries."""
    try:
        TransactionService(ctx.obj["db"]).delete_transaction(transaction_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted transaction {transaction_id}")


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
