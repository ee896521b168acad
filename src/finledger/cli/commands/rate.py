"""Currency and exchange rate commands."""

import click
from finledger.cli.date_filters import parse_date_or_exit
from finledger.cli.error_handling import handle_domain_error
from finledger.domain.currency import CurrencyService
from finledger.utils.amount_parser import parse_amount


@click.group()
def rate_group():
    """Manage exchange rates and convert amounts."""
    pass


@rate_group.command("currencies")
@click.pass_context
def list_currencies(ctx):
    """List supported currencies."""
    for currency in CurrencyService(ctx.obj["db"]).supported_currencies():
        click.echo(f"{currency.code} | {currency.symbol:4s} | {currency.name} ({currency.decimals} decimals)")


@rate_group.command("set")
@click.argument("from_currency")
@click.argument("to_currency")
@click.argument("rate")
@click.option("--date", "effective", default="today", help="Effective date (default: today)")
@click.pass_context
def set_rate(ctx, from_currency: str, to_currency: str, rate: str, effective: str):
    """Record an exchange rate effective from a date.

    Examples:
        finledger rate set USD LKR 300 --date 2025-01-01
    """
    effective_date = parse_date_or_exit(ctx, effective, "effective date")
    try:
        rate_id = CurrencyService(ctx.obj["db"]).set_exchange_rate(
            from_currency, to_currency, parse_amount(rate), effective_date
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Set {from_currency.upper()} -> {to_currency.upper()} = {rate} from {effective_date} (ID: {rate_id})")


@rate_group.command("get")
@click.argument("from_currency")
@click.argument("to_currency")
@click.option("--date", "on_date", help="Date to resolve the rate for (default: today)")
@click.pass_context
def get_rate(ctx, from_currency: str, to_currency: str, on_date: str | None):
    """Resolve the rate between two currencies, using the inverse if needed."""
    resolved_on = parse_date_or_exit(ctx, on_date)
    try:
        rate = CurrencyService(ctx.obj["db"]).get_exchange_rate(from_currency, to_currency, resolved_on)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"1 {from_currency.upper()} = {rate} {to_currency.upper()}")


@rate_group.command("convert")
@click.argument("amount")
@click.argument("from_currency")
@click.argument("to_currency")
@click.option("--date", "on_date", help="Conversion date (default: today)")
@click.pass_context
def convert_amount(ctx, amount: str, from_currency: str, to_currency: str, on_date: str | None):
    """Convert an amount between currencies.

    Examples:
        finledger rate convert 100 USD LKR
    """
    resolved_on = parse_date_or_exit(ctx, on_date)
    try:
        result = CurrencyService(ctx.obj["db"]).convert(
            parse_amount(amount), from_currency, to_currency, resolved_on
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"{result.amount} {result.from_currency} = {result.converted_amount} {result.to_currency} "
        f"(rate {result.rate} on {result.on_date})"
    )


@rate_group.command("list")
@click.option("--from", "from_currency", help="Filter by source currency")
@click.option("--to", "to_currency", help="Filter by target currency")
@click.option("--limit", type=int, default=100, show_default=True)
@click.pass_context
def list_rates(ctx, from_currency: str | None, to_currency: str | None, limit: int):
    """List stored rates, newest first."""
    rates = CurrencyService(ctx.obj["db"]).list_exchange_rates(from_currency, to_currency, limit)
    if not rates:
        click.echo("No exchange rates found.")
        return
    for row in rates:
        click.echo(
            f"ID: {row.id:3d} | {row.from_currency} -> {row.to_currency} | {row.rate:>16} | {row.effective_date}"
        )


@rate_group.command("summary")
@click.pass_context
def rate_summary(ctx):
    """Show the latest rate per currency pair."""
    summaries = CurrencyService(ctx.obj["db"]).rate_summaries()
    if not summaries:
        click.echo("No exchange rates found.")
        return
    for s in summaries:
        click.echo(
            f"{s.from_currency} -> {s.to_currency} | {s.latest_rate:>16} | since {s.effective_date} | "
            f"{s.history_count} rate(s)"
        )


@rate_group.command("delete")
@click.argument("rate_id", type=int)
@click.pass_context
def delete_rate(ctx, rate_id: int):
    """Delete a stored rate."""
    try:
        CurrencyService(ctx.obj["db"]).delete_exchange_rate(rate_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted exchange rate {rate_id}")


@rate_group.command("balances")
@click.pass_context
def converted_balances(ctx):
    """Show every account balance in the primary currency."""
    rows = CurrencyService(ctx.obj["db"]).convert_balances_to_primary()
    if not rows:
        click.echo("No accounts found.")
        return
    for row in rows:
        note = "" if row.rate else "  (no rate)"
        click.echo(
            f"{row.account_name:20s} | {row.balance:>14,.2f} {row.currency} | "
            f"{row.converted_balance:>14,.2f} {row.primary_currency}{note}"
        )


def register_commands(cli):
    """Register exchange rate commands with main CLI."""
    cli.add_command(rate_group, name="rate")
