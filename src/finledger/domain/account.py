"""Account domain service."""

from decimal import Decimal
from typing import Optional

from finledger.database.base import Database
from finledger.domain.balance import BalanceService
from finledger.domain.entities import (
    Account as AccountEntity,
    AccountBalance,
    AccountGroup,
    AccountType,
)
from finledger.domain.errors import (
    AccountNotFound,
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
    account_delete_blocked,
    account_not_found,
    group_not_found,
)
from finledger.domain.money import round_money, to_decimal


def normalize_currency_code(code: str) -> str:
    """Trim and uppercase a currency code and check it has three letters.

    Raises:
        ValidationError: If the code is not three letters
    """
    normalized = (code or "").strip().upper()
    if len(normalized) != 3 or not normalized.isalpha():
        raise ValidationError("Currency code must be 3 characters")
    return normalized


class AccountService:
    """Service for managing account groups and accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_group(self, name: str, type: str | AccountType) -> int:
        """Create an account group.

        Args:
            name: Group name
            type: ASSET or LIABILITY

        Returns:
            Group ID

        Raises:
            ValidationError: If the name is empty or the type is unknown
            ConflictError: If a group with the same name exists
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Group name cannot be empty")
        try:
            group_type = AccountType(type) if isinstance(type, AccountType) else AccountType(str(type).upper())
        except ValueError:
            raise ValidationError(f"Invalid account group type: {type}")
        if any(g.name == name for g in self.db.list_account_groups()):
            raise ConflictError(f"Account group '{name}' already exists")
        return self.db.create_account_group(name=name, type=group_type.value)

    def list_groups(self) -> list[AccountGroup]:
        """List all account groups."""
        return self.db.list_account_groups()

    def create_account(
        self,
        group_id: int,
        name: str,
        initial_balance=Decimal("0"),
        currency: Optional[str] = None,
    ) -> int:
        """Create a new account.

        Args:
            group_id: Owning group; determines ASSET or LIABILITY behaviour
            name: Unique account name
            initial_balance: Signed opening balance in account currency
            currency: ISO code; defaults to the configured primary currency

        Returns:
            Account ID

        Raises:
            NotFoundError: If the group does not exist
            ConflictError: If account name already exists
            ValidationError: If name or currency is invalid
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name cannot be empty")
        if self.db.get_account_group(group_id) is None:
            raise NotFoundError(group_not_found(group_id))
        for acc in self.db.list_accounts():
            if acc.name == name:
                raise ConflictError(f"Account with name '{name}' already exists")

        if currency is None:
            currency = self.db.get_app_config().primary_currency
        currency = normalize_currency_code(currency)

        return self.db.create_account(
            group_id=group_id,
            name=name,
            initial_balance=round_money(to_decimal(initial_balance)),
            currency=currency,
        )

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def require_account(self, account_id: int) -> AccountEntity:
        """Get account by ID or raise AccountNotFound."""
        account = self.db.get_account(account_id)
        if account is None:
            raise AccountNotFound(account_not_found(account_id))
        return account

    def list_accounts(self) -> list[AccountEntity]:
        """List all account entities ordered by name."""
        return self.db.list_accounts()

    def list_accounts_with_balances(self) -> list[AccountBalance]:
        """List accounts with their all-time derived balances."""
        balances = BalanceService(self.db)
        return [
            AccountBalance(account=acc, balance=balances.balance_as_of(acc.id))
            for acc in self.db.list_accounts()
        ]

    def delete_account(self, account_id: int) -> None:
        """Delete an account.

        Raises:
            AccountNotFound: If account doesn't exist
            DependencyError: If any transaction references the account as
                source or destination, recurring transactions or installment plans
                use it, or credit card settings use it
        """
        self.require_account(account_id)

        transaction_count = self.db.count_account_transactions(account_id)
        if transaction_count > 0:
            raise DependencyError(account_delete_blocked(account_id, transaction_count))

        if self.db.count_account_recurring(account_id) > 0:
            raise DependencyError("Cannot delete account with recurring transactions")
        if self.db.count_account_installment_plans(account_id) > 0:
            raise DependencyError("Cannot delete account with installment plans")

        if self.db.get_card_settings_by_account(account_id) is not None:
            raise DependencyError("Cannot delete account with credit card settings")
        for settings in self.db.list_card_settings():
            if settings.settlement_account_id == account_id:
                raise DependencyError("Cannot delete account used as a settlement account")

        self.db.delete_account(account_id)
