"""Transaction template commands."""

import click
from finledger.cli.date_filters import parse_date_or_exit
from finledger.cli.error_handling import handle_domain_error
from finledger.cli.resolution import resolve_account_or_exit, resolve_category_or_exit
from finledger.domain.account import AccountService
from finledger.domain.category import CategoryService
from finledger.domain.entities import TemplatePatch
from finledger.domain.template import TemplateService
from finledger.utils.amount_parser import parse_amount


@click.group()
def template_group():
    """Manage transaction templates."""
    pass


@template_group.command("create")
@click.argument("name")
@click.option(
    "--kind",
    type=click.Choice(["INCOME", "EXPENSE", "TRANSFER"], case_sensitive=False),
    required=True,
)
@click.option("--amount", default="0", show_default=True, help="Amount (0 = ask on use)")
@click.option("--account", help="Account name or ID")
@click.option("--to-account", help="Destination account (transfers only)")
@click.option("--category", help="Category name or ID")
@click.option("--memo", help="Memo")
@click.pass_context
def create_template(
    ctx,
    name: str,
    kind: str,
    amount: str,
    account: str | None,
    to_account: str | None,
    category: str | None,
    memo: str | None,
):
    """Save a transaction template.

    Examples:
        finledger template create Coffee --kind expense --amount 4.50 --account Checking
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, account_service, account) if account else None
    to_account_id = resolve_account_or_exit(ctx, account_service, to_account) if to_account else None
    category_id = resolve_category_or_exit(ctx, CategoryService(db), category) if category else None

    try:
        template_id = TemplateService(db).create_template(
            name=name,
            kind=kind,
            amount=parse_amount(amount),
            account_id=account_id,
            to_account_id=to_account_id,
            category_id=category_id,
            memo=memo,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created template '{name}' (ID: {template_id})")


@template_group.command("list")
@click.pass_context
def list_templates(ctx):
    """List templates, most used first."""
    templates = TemplateService(ctx.obj["db"]).list_templates()
    if not templates:
        click.echo("No templates found.")
        return
    for t in templates:
        amount = f"{t.amount:>10,.2f}" if t.amount else f"{'(ask)':>10s}"
        click.echo(f"ID: {t.id:3d} | {t.name:20s} | {t.kind.value:8s} {amount} | used {t.use_count}")


@template_group.command("update")
@click.argument("template_id", type=int)
@click.option("--name", help="New name")
@click.option("--amount", help="New amount")
@click.option("--account", help="New account name or ID")
@click.option("--to-account", help="New destination account")
@click.option("--category", help="New category name or ID")
@click.option("--memo", help="New memo")
@click.pass_context
def update_template(
    ctx,
    template_id: int,
    name: str | None,
    amount: str | None,
    account: str | None,
    to_account: str | None,
    category: str | None,
    memo: str | None,
):
    """Update a template."""
    db = ctx.obj["db"]
    account_service = AccountService(db)
    try:
        patch = TemplatePatch(
            name=name,
            amount=parse_amount(amount) if amount is not None else None,
            account_id=resolve_account_or_exit(ctx, account_service, account) if account else None,
            to_account_id=resolve_account_or_exit(ctx, account_service, to_account) if to_account else None,
            category_id=resolve_category_or_exit(ctx, CategoryService(db), category) if category else None,
            memo=memo,
        )
        TemplateService(db).update_template(template_id, patch)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated template {template_id}")


@template_group.command("use")
@click.argument("template_id", type=int)
@click.option("--date", "on_date", help="Transaction date (default: today)")
@click.option("--amount", help="Amount for this posting")
@click.option("--account", help="Account for this posting")
@click.option("--memo", help="Memo for this posting")
@click.pass_context
def use_template(
    ctx,
    template_id: int,
    on_date: str | None,
    amount: str | None,
    account: str | None,
    memo: str | None,
):
    """Post a transaction from a template."""
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account) if account else None
    try:
        transaction_id = TemplateService(db).use_template(
            template_id,
            on_date=parse_date_or_exit(ctx, on_date, "date"),
            amount=parse_amount(amount) if amount is not None else None,
            account_id=account_id,
            memo=memo,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created transaction {transaction_id} from template {template_id}")


@template_group.command("delete")
@click.argument("template_id", type=int)
@click.pass_context
def delete(ctx, template_id: int):
    """Delete a template; transactions created from it are kept."""
    try:
        TemplateService(ctx.obj["db"]).delete_template(template_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted template {template_id}")


def register_commands(cli):
    """Register transaction template commands with main CLI."""
    cli.add_command(template_group, name="template")
