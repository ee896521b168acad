"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for callers that only catch ValueError.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class ConsistencyError(DomainError):
    """Stored data violates a ledger invariant and cannot be used."""


class StoreError(DomainError):
    """The store failed mid-operation; the unit of work was rolled back."""


class InvalidKind(ValidationError):
    """Unknown transaction, category or period kind."""


class NonPositiveAmount(ValidationError):
    """Amount must be strictly positive."""


class SelfTransfer(ValidationError):
    """Transfer source and destination are the same account."""


class AccountNotFound(NotFoundError):
    """Referenced account does not exist."""


class CategoryNotFound(NotFoundError):
    """Referenced category does not exist."""


class NoRateFound(NotFoundError):
    """No exchange rate could be resolved for a currency pair and date."""


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def budget_not_found(budget_id: int) -> str:
    """Return message for missing budget."""
    return f"Budget {budget_id} not found"


def card_settings_not_found(settings_id: int) -> str:
    """Return message for missing credit card settings."""
    return f"Credit card settings {settings_id} not found"


def recurring_not_found(recurring_id: int) -> str:
    """Return message for missing recurring transaction."""
    return f"Recurring transaction {recurring_id} not found"


def installment_plan_not_found(plan_id: int) -> str:
    """Return message for missing installment plan."""
    return f"Installment plan {plan_id} not found"


def template_not_found(template_id: int) -> str:
    """Return message for missing transaction template."""
    return f"Transaction template {template_id} not found"


def group_not_found(group_id: int) -> str:
    """Return message for missing account group."""
    return f"Account group {group_id} not found"


def no_rate_found(from_currency: str, to_currency: str, on_date) -> str:
    """Return message when neither direct nor inverse rate exists."""
    return (
        f"No exchange rate found for {from_currency} → {to_currency} "
        f"on or before {on_date}"
    )


def account_delete_blocked(account_id: int, transaction_count: int) -> str:
    """Return message when account is still referenced by transactions."""
    return (
        f"Cannot delete account with existing transactions "
        f"(account {account_id} has {transaction_count} "
        f"transaction{'s' if transaction_count != 1 else ''})"
    )


def category_delete_blocked_by_transactions(transaction_count: int) -> str:
    """Return message when category still has transactions."""
    return (
        f"Cannot delete category with existing transactions "
        f"({transaction_count} transaction{'s' if transaction_count != 1 else ''})"
    )


def category_delete_blocked_by_children(child_count: int) -> str:
    """Return message when category still has subcategories."""
    return (
        f"Cannot delete category with subcategories "
        f"({child_count} subcategor{'ies' if child_count != 1 else 'y'})"
    )
