"""Category management commands."""

import click
from finledger.cli.error_handling import handle_domain_error
from finledger.cli.resolution import resolve_category_or_exit
from finledger.domain.category import CategoryService
from finledger.domain.entities import CategoryPatch


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("create")
@click.argument("name", metavar="CATEGORY_NAME")
@click.option(
    "--kind",
    type=click.Choice(["INCOME", "EXPENSE"], case_sensitive=False),
    required=True,
    help="Category kind",
)
@click.option("--parent", help="Parent category name or ID (must be a root category)")
@click.pass_context
def create_category(ctx, name: str, kind: str, parent: str | None):
    """Create a category.

    Examples:
        finledger category create "Food" --kind expense
        finledger category create "Groceries" --kind expense --parent "Food"
    """
    service = CategoryService(ctx.obj["db"])
    parent_id = resolve_category_or_exit(ctx, service, parent) if parent else None
    try:
        category_id = service.create_category(name=name, kind=kind, parent_id=parent_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created category '{name}' (ID: {category_id})")


@category_group.command("list")
@click.option(
    "--kind",
    type=click.Choice(["INCOME", "EXPENSE"], case_sensitive=False),
    help="Only show one kind",
)
@click.pass_context
def list_categories(ctx, kind: str | None):
    """List categories as a tree."""
    tree = CategoryService(ctx.obj["db"]).get_category_tree()
    if kind:
        tree = [node for node in tree if node["kind"] == kind.upper()]
    if not tree:
        click.echo("No categories found.")
        return

    for node in tree:
        click.echo(f"{node['name']} ({node['kind']}, ID: {node['id']})")
        for child in node["children"]:
            click.echo(f"    {child['name']} (ID: {child['id']})")


@category_group.command("update")
@click.argument("category", metavar="CATEGORY")
@click.option("--name", help="New name")
@click.option("--parent", help="New parent category name or ID")
@click.option("--root", "make_root", is_flag=True, help="Detach from its parent")
@click.pass_context
def update_category(ctx, category: str, name: str | None, parent: str | None, make_root: bool):
    """Rename a category or move it under another root.

    CATEGORY can be a category name or ID.
    """
    if parent and make_root:
        click.echo("Error: --parent and --root cannot be combined", err=True)
        ctx.exit(1)

    service = CategoryService(ctx.obj["db"])
    category_id = resolve_category_or_exit(ctx, service, category)
    parent_id = resolve_category_or_exit(ctx, service, parent) if parent else None

    try:
        service.update_category(
            category_id, CategoryPatch(name=name, parent_id=parent_id, clear_parent=make_root)
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated category {category_id}")


@category_group.command("delete")
@click.argument("category", metavar="CATEGORY")
@click.pass_context
def delete_category(ctx, category: str):
    """Delete a category with no transactions, subcategories or budgets."""
    service = CategoryService(ctx.obj["db"])
    category_id = resolve_category_or_exit(ctx, service, category)
    try:
        service.delete_category(category_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted category {category_id}")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
