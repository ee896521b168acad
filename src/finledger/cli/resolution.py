"""CLI helpers for resolving accounts and categories given by name or ID."""

from __future__ import annotations

import click
from finledger.domain.account import AccountService
from finledger.domain.category import CategoryService
from finledger.utils.account_resolver import resolve_account


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, account: str | int
) -> int:
    """Resolve account name or ID, or exit with a CLI error."""
    try:
        return resolve_account(account_service, account)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)


def resolve_category_or_exit(
    ctx: click.Context, category_service: CategoryService, category: str
) -> int:
    """Resolve category name or ID, or exit with a CLI error.

    Numeric values are tried as IDs before names.
    """
    if category.isdigit() and category_service.get_category(int(category)) is not None:
        return int(category)
    found = category_service.find_category_by_name(category)
    if found is None:
        click.echo(f"Error: Category '{category}' not found", err=True)
        ctx.exit(1)
    return found.id
