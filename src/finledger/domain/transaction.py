"""Transaction domain service: the only path that writes journal entries."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from finledger.database.base import Database
from finledger.domain.entities import (
    JournalEntry,
    Transaction,
    TransactionKind,
    TransactionPatch,
)
from finledger.domain.errors import (
    AccountNotFound,
    CategoryNotFound,
    InvalidKind,
    NonPositiveAmount,
    NotFoundError,
    SelfTransfer,
    ValidationError,
    transaction_not_found,
)
from finledger.domain.ledger import legs_for, post_journal
from finledger.domain.money import ZERO, round_money, to_decimal
from finledger.utils.periods import parse_iso_date

logger = logging.getLogger(__name__)


def coerce_kind(kind: str | TransactionKind) -> TransactionKind:
    """Normalise a transaction kind.

    Raises:
        InvalidKind: If the value is not INCOME, EXPENSE or TRANSFER
    """
    if isinstance(kind, TransactionKind):
        return kind
    try:
        return TransactionKind(str(kind).strip().upper())
    except ValueError:
        raise InvalidKind("Invalid transaction type")


def coerce_amount(amount) -> Decimal:
    """Normalise a positive money amount.

    Raises:
        NonPositiveAmount: If the amount rounds to zero or below
    """
    try:
        value = round_money(to_decimal(amount))
    except ArithmeticError:
        raise ValidationError(f"Invalid amount: {amount}")
    if value <= ZERO:
        raise NonPositiveAmount("Amount must be greater than zero")
    return value


class TransactionService:
    """Service for posting and maintaining transactions."""

    def __init__(self, db: Database):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db

    def validate(
        self,
        kind: str | TransactionKind,
        amount,
        account_id: int,
        to_account_id: Optional[int] = None,
        category_id: Optional[int] = None,
    ) -> tuple[TransactionKind, Decimal]:
        """Check a prospective transaction without writing anything.

        Checks run in a fixed order: kind, amount, source account, transfer
        rules, category.

        Returns:
            Normalised (kind, amount)

        Raises:
            InvalidKind: Unknown kind
            NonPositiveAmount: Amount is not greater than zero
            AccountNotFound: Source or destination account is missing
            ValidationError: TRANSFER without a destination
            SelfTransfer: TRANSFER to the source account
            CategoryNotFound: Category is missing
        """
        kind = coerce_kind(kind)
        amount = coerce_amount(amount)

        if self.db.get_account(account_id) is None:
            raise AccountNotFound("Account does not exist")

        if kind == TransactionKind.TRANSFER:
            if to_account_id is None:
                raise ValidationError("Transfer requires to_account_id")
            if to_account_id == account_id:
                raise SelfTransfer("Cannot transfer to the same account")
            if self.db.get_account(to_account_id) is None:
                raise AccountNotFound("Destination account does not exist")

        if category_id is not None and self.db.get_category(category_id) is None:
            raise CategoryNotFound("Category does not exist")

        return kind, amount

    def create_transaction(
        self,
        date: date | str,
        kind: str | TransactionKind,
        amount,
        account_id: int,
        to_account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        memo: Optional[str] = None,
        photo_ref: Optional[str] = None,
    ) -> int:
        """Post a transaction and its balancing journal entries atomically.

        Args:
            date: Transaction date (date or YYYY-MM-DD)
            kind: INCOME, EXPENSE or TRANSFER
            amount: Positive amount
            account_id: Source account
            to_account_id: Destination account, required for TRANSFER
            category_id: Optional category
            memo: Optional memo
            photo_ref: Optional opaque attachment reference

        Returns:
            Transaction ID

        Raises:
            ValidationError: If any input is invalid (see ``validate``)
        """
        txn_date = parse_iso_date(date)
        kind, amount = self.validate(kind, amount, account_id, to_account_id, category_id)
        if kind != TransactionKind.TRANSFER:
            to_account_id = None

        postings = post_journal(legs_for(kind, amount, account_id, to_account_id))
        transaction_id = self.db.insert_transaction(
            date=txn_date,
            kind=kind.value,
            amount=amount,
            account_id=account_id,
            to_account_id=to_account_id,
            category_id=category_id,
            memo=memo,
            photo_ref=photo_ref,
            postings=postings,
        )
        logger.debug(
            "Posted %s transaction %s of %s on account %s", kind.value, transaction_id, amount, account_id
        )
        return transaction_id

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(transaction_id)

    def require_transaction(self, transaction_id: int) -> Transaction:
        """Get transaction by ID or raise NotFoundError."""
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return transaction

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        kind: Optional[str | TransactionKind] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """List transactions with optional filters, newest first.

        Args:
            start_date: Inclusive lower date bound
            end_date: Inclusive upper date bound
            account_id: Only transactions whose source is this account
            category_id: Only transactions in this category
            kind: Only transactions of this kind
            limit: Maximum number of rows

        Returns:
            List of transactions
        """
        return self.db.list_transactions(
            start_date=start_date,
            end_date=end_date,
            account_id=account_id,
            category_ids=[category_id] if category_id is not None else None,
            kind=coerce_kind(kind).value if kind is not None else None,
            limit=limit,
        )

    def update_transaction(self, transaction_id: int, patch: TransactionPatch) -> None:
        """Update a transaction's date, category, memo or photo reference.

        Amounts, kinds and accounts cannot change; delete and recreate the
        transaction instead.

        Raises:
            ValidationError: If the patch is empty
            NotFoundError: If the transaction does not exist
            CategoryNotFound: If the new category does not exist
        """
        if patch.is_empty():
            raise ValidationError("No fields to update")
        self.require_transaction(transaction_id)
        if patch.category_id is not None and not patch.clear_category:
            if self.db.get_category(patch.category_id) is None:
                raise CategoryNotFound("Category does not exist")
        self.db.update_transaction(transaction_id, patch)

    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction; its journal entries go with it."""
        self.require_transaction(transaction_id)
        self.db.delete_transaction(transaction_id)
        logger.debug("Deleted transaction %s", transaction_id)

    def get_journal_entries(self, transaction_id: int) -> list[JournalEntry]:
        """Return the journal entries written for a transaction."""
        self.require_transaction(transaction_id)
        return self.db.get_journal_entries(transaction_id)
