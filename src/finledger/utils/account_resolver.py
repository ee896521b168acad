"""Utility for resolving account names to IDs."""

from finledger.domain.account import AccountService
from finledger.domain.errors import AccountNotFound


def resolve_account(account_service: AccountService, account: str | int) -> int:
    """Resolve account name or ID to account ID.

    Numeric strings are treated as IDs first, then as names, so an account
    literally named "2024" is still reachable when no account has ID 2024.

    Args:
        account_service: AccountService instance
        account: Account name, or ID as int or numeric string

    Returns:
        Account ID

    Raises:
        AccountNotFound: If no account matches
    """
    if isinstance(account, int):
        if account_service.get_account(account) is None:
            raise AccountNotFound(f"Account ID {account} not found")
        return account

    try:
        account_id = int(account)
    except (ValueError, TypeError):
        account_id = None
    if account_id is not None and account_service.get_account(account_id) is not None:
        return account_id

    for acc in account_service.list_accounts():
        if acc.name == account:
            return acc.id

    raise AccountNotFound(f"Account '{account}' not found")
