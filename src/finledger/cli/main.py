"""Main CLI entry point."""

import logging

import click
from finledger.database.factories import create_sqlite_database

from finledger.cli.commands import (
    account,
    category,
    add,
    transaction,
    budget,
    card,
    rate,
    networth,
    recurring,
    installment,
    template,
    summary,
    settings,
    backup,
    tick,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides FINLEDGER_DB_PATH environment variable)",
    envvar="FINLEDGER_DB_PATH",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool):
    """Finledger - personal finance ledger.

    Double-entry accounts, budgets, credit card billing, exchange rates
    and month-end net worth snapshots.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Only open the database when a command runs, not for --help
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db


account.register_commands(cli)
category.register_commands(cli)
add.register_commands(cli)
transaction.register_commands(cli)
budget.register_commands(cli)
card.register_commands(cli)
rate.register_commands(cli)
networth.register_commands(cli)
recurring.register_commands(cli)
installment.register_commands(cli)
template.register_commands(cli)
summary.register_commands(cli)
settings.register_commands(cli)
backup.register_commands(cli)
tick.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
