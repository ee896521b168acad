"""Application settings commands."""

import click
from finledger.cli.error_handling import handle_domain_error
from finledger.domain.settings import SettingsService


@click.group()
def settings_group():
    """Show or change application settings."""
    pass


@settings_group.command("show")
@click.pass_context
def show_settings(ctx):
    """Show the current configuration."""
    config = SettingsService(ctx.obj["db"]).get_config()
    click.echo(f"Primary currency: {config.primary_currency}")
    click.echo(f"Version: {config.version}")
    click.echo(f"Updated: {config.updated_at:%Y-%m-%d %H:%M:%S}")


@settings_group.command("currency")
@click.argument("code")
@click.pass_context
def set_currency(ctx, code: str):
    """Set the primary currency.

    Examples:
        finledger settings currency USD
    """
    try:
        config = SettingsService(ctx.obj["db"]).set_primary_currency(code)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Primary currency set to {config.primary_currency}")


def register_commands(cli):
    """Register settings commands with main CLI."""
    cli.add_command(settings_group, name="settings")
