"""Transaction template service."""

from datetime import date
from decimal import Decimal
from typing import Optional

from finledger.database.base import Database
from finledger.domain.entities import TemplatePatch, TransactionKind, TransactionTemplate
from finledger.domain.errors import (
    AccountNotFound,
    CategoryNotFound,
    NotFoundError,
    SelfTransfer,
    ValidationError,
    template_not_found,
)
from finledger.domain.money import ZERO, round_money, to_decimal
from finledger.domain.transaction import TransactionService, coerce_kind


def _template_amount(amount) -> Decimal:
    try:
        value = round_money(to_decimal(amount))
    except ArithmeticError:
        raise ValidationError(f"Invalid amount: {amount}")
    if value < ZERO:
        raise ValidationError("Amount cannot be negative")
    return value


class TemplateService:
    """Service for saved transaction templates."""

    def __init__(self, db: Database):
        """Initialize template service.

        Args:
            db: Database instance
        """
        self.db = db
        self.transactions = TransactionService(db)

    def _check_references(
        self,
        kind: TransactionKind,
        account_id: Optional[int],
        to_account_id: Optional[int],
        category_id: Optional[int],
    ) -> None:
        if kind == TransactionKind.TRANSFER:
            if account_id is None or to_account_id is None:
                raise ValidationError("Transfer templates require both accounts")
            if account_id == to_account_id:
                raise SelfTransfer("Cannot transfer to the same account")
        if account_id is not None and self.db.get_account(account_id) is None:
            raise AccountNotFound("Account does not exist")
        if to_account_id is not None and self.db.get_account(to_account_id) is None:
            raise AccountNotFound("Destination account does not exist")
        if category_id is not None and self.db.get_category(category_id) is None:
            raise CategoryNotFound("Category does not exist")

    def create_template(
        self,
        name: str,
        kind: str | TransactionKind,
        amount=0,
        account_id: Optional[int] = None,
        to_account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        memo: Optional[str] = None,
    ) -> int:
        """Save a transaction template.

        An amount of zero means the amount is given each time the template
        is used.

        Returns:
            Template ID

        Raises:
            ValidationError: If the name, amount or accounts are invalid
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Template name is required")
        kind = coerce_kind(kind)
        amount = _template_amount(amount)
        if kind != TransactionKind.TRANSFER:
            to_account_id = None
        self._check_references(kind, account_id, to_account_id, category_id)

        return self.db.create_template(
            name=name,
            kind=kind.value,
            amount=amount,
            account_id=account_id,
            to_account_id=to_account_id,
            category_id=category_id,
            memo=memo,
        )

    def get_template(self, template_id: int) -> Optional[TransactionTemplate]:
        """Get a template by ID, or None."""
        return self.db.get_template(template_id)

    def require_template(self, template_id: int) -> TransactionTemplate:
        """Get a template by ID or raise NotFoundError."""
        template = self.db.get_template(template_id)
        if template is None:
            raise NotFoundError(template_not_found(template_id))
        return template

    def list_templates(self) -> list[TransactionTemplate]:
        """List templates, most used first."""
        return self.db.list_templates()

    def update_template(self, template_id: int, patch: TemplatePatch) -> None:
        """Apply a patch to a template.

        Raises:
            ValidationError: If the patch is empty or leaves the template invalid
        """
        template = self.require_template(template_id)
        if patch.is_empty():
            raise ValidationError("No fields to update")
        if patch.name is not None and not patch.name.strip():
            raise ValidationError("Template name is required")
        if patch.amount is not None:
            patch = TemplatePatch(
                name=patch.name,
                amount=_template_amount(patch.amount),
                account_id=patch.account_id,
                to_account_id=patch.to_account_id,
                category_id=patch.category_id,
                memo=patch.memo,
            )
        self._check_references(
            template.kind,
            patch.account_id if patch.account_id is not None else template.account_id,
            patch.to_account_id if patch.to_account_id is not None else template.to_account_id,
            patch.category_id if patch.category_id is not None else template.category_id,
        )
        self.db.update_template(template_id, patch)

    def delete_template(self, template_id: int) -> None:
        """Delete a template; transactions created from it stay."""
        self.require_template(template_id)
        self.db.delete_template(template_id)

    def use_template(
        self,
        template_id: int,
        on_date: Optional[date | str] = None,
        amount=None,
        account_id: Optional[int] = None,
        memo: Optional[str] = None,
    ) -> int:
        """Post a transaction from a template.

        Overrides replace the template's amount, source account and memo for
        this posting only. The posting goes through the transaction service
        and the template's use count moves with it in one unit of work.

        Returns:
            ID of the transaction created

        Raises:
            ValidationError: If no source account is known, or the posting
                fails validation (for example a zero amount)
        """
        template = self.require_template(template_id)
        source = account_id if account_id is not None else template.account_id
        if source is None:
            raise ValidationError("Template has no account; supply one")

        with self.db.atomic():
            transaction_id = self.transactions.create_transaction(
                date=on_date if on_date is not None else date.today(),
                kind=template.kind,
                amount=amount if amount is not None else template.amount,
                account_id=source,
                to_account_id=template.to_account_id,
                category_id=template.category_id,
                memo=memo if memo is not None else template.memo,
            )
            self.db.record_template_use(template_id)
        return transaction_id
