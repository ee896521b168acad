"""Account and account group commands."""

import click
from finledger.cli.date_filters import parse_date_or_exit
from finledger.cli.error_handling import handle_domain_error
from finledger.cli.resolution import resolve_account_or_exit
from finledger.domain.account import AccountService
from finledger.domain.balance import BalanceService
from finledger.utils.amount_parser import parse_amount


@click.group()
def account_group():
    """Manage accounts and account groups."""
    pass


@account_group.command("create-group")
@click.argument("name", metavar="GROUP_NAME")
@click.option(
    "--type",
    "group_type",
    type=click.Choice(["ASSET", "LIABILITY"], case_sensitive=False),
    required=True,
    help="Group type",
)
@click.pass_context
def create_group(ctx, name: str, group_type: str):
    """Create an account group.

    Examples:
        finledger account create-group "Bank" --type asset
        finledger account create-group "Credit Cards" --type liability
    """
    service = AccountService(ctx.obj["db"])
    try:
        group_id = service.create_group(name=name, type=group_type)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created {group_type.upper()} group '{name}' (ID: {group_id})")


@account_group.command("groups")
@click.pass_context
def list_groups(ctx):
    """List account groups."""
    groups = AccountService(ctx.obj["db"]).list_groups()
    if not groups:
        click.echo("No account groups found.")
        return

    click.echo("\nAccount groups:")
    click.echo("-" * 50)
    for group in groups:
        click.echo(f"ID: {group.id:3d} | {group.name:25s} | {group.type.value}")


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--group", "group_id", type=int, required=True, help="Account group ID")
@click.option("--initial-balance", default="0", help="Opening balance (default: 0)")
@click.option("--currency", help="Currency code (defaults to the primary currency)")
@click.pass_context
def create_account(ctx, name: str, group_id: int, initial_balance: str, currency: str | None):
    """Create a new account.

    Examples:
        finledger account create "Checking" --group 1 --initial-balance 1500
        finledger account create "Visa" --group 2 --currency USD
    """
    service = AccountService(ctx.obj["db"])
    try:
        balance = parse_amount(initial_balance)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    try:
        account_id = service.create_account(
            group_id=group_id, name=name, initial_balance=balance, currency=currency
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    account = service.get_account(account_id)
    click.echo(f"Created account '{name}' (ID: {account_id}, {account.currency})")


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List accounts with their current balances."""
    rows = AccountService(ctx.obj["db"]).list_accounts_with_balances()
    if not rows:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 72)
    for row in rows:
        acc = row.account
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | {acc.type.value:9s} | "
            f"{row.balance:>14,.2f} {acc.currency}"
        )


@account_group.command("balance")
@click.argument("account", metavar="ACCOUNT")
@click.option("--as-of", help="Balance at the end of this date (default: all postings)")
@click.pass_context
def show_balance(ctx, account: str, as_of: str | None):
    """Show an account balance.

    ACCOUNT can be an account name or ID.
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, account_service, account)
    as_of_date = parse_date_or_exit(ctx, as_of, "as-of date")

    balance = BalanceService(db).balance_as_of(account_id, as_of_date)
    acc = account_service.get_account(account_id)
    suffix = f" as of {as_of_date}" if as_of_date else ""
    click.echo(f"{acc.name}: {balance:,.2f} {acc.currency}{suffix}")


@account_group.command("performance")
@click.argument("account", metavar="ACCOUNT")
@click.option("--start-date", required=True, help="Start date")
@click.option("--end-date", required=True, help="End date")
@click.option("--history", is_flag=True, help="Show the sampled balance history")
@click.pass_context
def show_performance(ctx, account: str, start_date: str, end_date: str, history: bool):
    """Show balance statistics for an account over a date range.

    Examples:
        finledger account performance Checking --start-date 2025-01-01 --end-date 2025-03-31
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    start = parse_date_or_exit(ctx, start_date, "start date")
    end = parse_date_or_exit(ctx, end_date, "end date")

    try:
        perf = BalanceService(db).performance(account_id, start, end)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nPerformance {perf.start_date} to {perf.end_date}")
    click.echo("-" * 50)
    click.echo(f"Opening balance:  {perf.opening_balance:>14,.2f}")
    click.echo(f"Closing balance:  {perf.closing_balance:>14,.2f}")
    click.echo(f"Current balance:  {perf.current_balance:>14,.2f}")
    click.echo(f"Highest balance:  {perf.highest_balance:>14,.2f}")
    click.echo(f"Lowest balance:   {perf.lowest_balance:>14,.2f}")
    click.echo(f"Average balance:  {perf.average_balance:>14,.2f}")
    click.echo(f"Total inflow:     {perf.total_inflow:>14,.2f}")
    click.echo(f"Total outflow:    {perf.total_outflow:>14,.2f}")
    click.echo(f"Net change:       {perf.net_change:>14,.2f}")
    click.echo(f"Transactions:     {perf.transaction_count:>14d}")
    if history:
        click.echo("\nHistory:")
        for point in perf.history:
            click.echo(f"  {point.date}  {point.balance:>14,.2f}")


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def delete_account(ctx, account: str, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be an account name or ID. Accounts referenced by transactions,
    recurring transactions, installment plans or credit card settings cannot
    be deleted.
    """
    service = AccountService(ctx.obj["db"])
    account_id = resolve_account_or_exit(ctx, service, account)
    account_obj = service.get_account(account_id)

    if not yes and not click.confirm(
        f"Are you sure you want to delete account '{account_obj.name}' (ID: {account_id})?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(account_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted account '{account_obj.name}'")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
