"""Backup export and restore commands."""

import json

import click
from finledger.cli.error_handling import handle_domain_error
from finledger.domain.backup import BackupService, export_from_dict, export_to_dict


@click.group()
def backup_group():
    """Export and restore the ledger."""
    pass


@backup_group.command("export")
@click.argument("output", type=click.Path(dir_okay=False, writable=True))
@click.pass_context
def export_ledger(ctx, output: str):
    """Write groups, accounts, categories, transactions and budgets to JSON."""
    export = BackupService(ctx.obj["db"]).export_ledger()
    with open(output, "w", encoding="utf-8") as f:
        json.dump(export_to_dict(export), f, indent=2, ensure_ascii=False)
    click.echo(f"Exported {len(export.transactions)} transaction(s) to {output}")


@backup_group.command("restore")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def restore_ledger(ctx, source: str):
    """Replay a JSON export into an empty ledger."""
    try:
        with open(source, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        click.echo(f"Error: Invalid backup file: {e}", err=True)
        ctx.exit(1)

    try:
        counts = BackupService(ctx.obj["db"]).restore_ledger(export_from_dict(data))
    except ValueError as e:
        handle_domain_error(ctx, e)
    for name, count in counts.items():
        click.echo(f"{name}: {count}")


def register_commands(cli):
    """Register backup commands with main CLI."""
    cli.add_command(backup_group, name="backup")
