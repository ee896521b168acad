"""Category domain service."""

from typing import Optional

from finledger.database.base import Database
from finledger.domain.entities import Category, CategoryKind, CategoryPatch
from finledger.domain.errors import (
    CategoryNotFound,
    DependencyError,
    InvalidKind,
    ValidationError,
    category_delete_blocked_by_children,
    category_delete_blocked_by_transactions,
    category_not_found,
)


def coerce_category_kind(kind: str | CategoryKind) -> CategoryKind:
    """Normalise a category kind, raising InvalidKind for unknown values."""
    if isinstance(kind, CategoryKind):
        return kind
    try:
        return CategoryKind(str(kind).strip().upper())
    except ValueError:
        raise InvalidKind("Invalid category type")


class CategoryService:
    """Service for managing categories.

    Categories nest at most one level: a parent must itself be a root
    category of the same kind.
    """

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def _check_parent(self, parent_id: int, kind: CategoryKind) -> Category:
        parent = self.db.get_category(parent_id)
        if parent is None:
            raise CategoryNotFound("Parent category does not exist")
        if parent.parent_id is not None:
            raise ValidationError("Subcategories cannot have their own subcategories")
        if parent.kind != kind:
            raise ValidationError("Parent category must have the same type")
        return parent

    def create_category(
        self,
        name: str,
        kind: str | CategoryKind,
        parent_id: Optional[int] = None,
    ) -> int:
        """Create a category.

        Args:
            name: Category name
            kind: INCOME or EXPENSE
            parent_id: Optional root category to nest under

        Returns:
            Category ID

        Raises:
            ValidationError: If the name is empty or nesting rules are broken
            InvalidKind: If the kind is unknown
            CategoryNotFound: If the parent doesn't exist
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name cannot be empty")
        kind = coerce_category_kind(kind)
        if parent_id is not None:
            self._check_parent(parent_id, kind)
        return self.db.create_category(name=name, parent_id=parent_id, kind=kind.value)

    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID.

        Args:
            category_id: Category ID

        Returns:
            Category entity or None if not found
        """
        return self.db.get_category(category_id)

    def require_category(self, category_id: int) -> Category:
        """Get category by ID or raise CategoryNotFound."""
        category = self.db.get_category(category_id)
        if category is None:
            raise CategoryNotFound(category_not_found(category_id))
        return category

    def find_category_by_name(self, name: str) -> Optional[Category]:
        """Find a category by exact name, preferring root categories."""
        matches = [c for c in self.db.list_categories() if c.name == name]
        matches.sort(key=lambda c: c.parent_id is not None)
        return matches[0] if matches else None

    def list_categories(self, parent_id: Optional[int] = None) -> list[Category]:
        """List categories, optionally only the children of ``parent_id``."""
        return self.db.list_categories(parent_id=parent_id)

    def get_category_tree(self) -> list[dict]:
        """Get root categories with their children nested.

        Returns:
            List of dicts with id, name, kind and children
        """
        categories = self.db.list_categories()
        children: dict[int, list[dict]] = {}
        for cat in categories:
            if cat.parent_id is not None:
                children.setdefault(cat.parent_id, []).append(
                    {"id": cat.id, "name": cat.name, "kind": cat.kind.value, "children": []}
                )
        return [
            {
                "id": cat.id,
                "name": cat.name,
                "kind": cat.kind.value,
                "children": children.get(cat.id, []),
            }
            for cat in categories
            if cat.parent_id is None
        ]

    def family_ids(self, category_id: int) -> list[int]:
        """Return the category's ID followed by its direct children's IDs."""
        return [category_id] + [c.id for c in self.db.list_categories(parent_id=category_id)]

    def update_category(self, category_id: int, patch: CategoryPatch) -> None:
        """Rename a category or move it under another root.

        Raises:
            ValidationError: If the patch is empty, the category would be its
                own parent, or nesting rules are broken
            CategoryNotFound: If the category or new parent doesn't exist
        """
        if patch.is_empty():
            raise ValidationError("No fields to update")
        category = self.require_category(category_id)

        if patch.name is not None and not patch.name.strip():
            raise ValidationError("Category name cannot be empty")

        if patch.parent_id is not None and not patch.clear_parent:
            if patch.parent_id == category_id:
                raise ValidationError("Category cannot be its own parent")
            self._check_parent(patch.parent_id, category.kind)
            if self.db.list_categories(parent_id=category_id):
                raise ValidationError("A category with subcategories cannot become a subcategory")

        if patch.name is not None:
            patch = CategoryPatch(
                name=patch.name.strip(),
                parent_id=patch.parent_id,
                clear_parent=patch.clear_parent,
            )
        self.db.update_category(category_id, patch)

    def delete_category(self, category_id: int) -> None:
        """Delete a category.

        Raises:
            CategoryNotFound: If the category doesn't exist
            DependencyError: If transactions, subcategories, budgets,
                recurring transactions or installment plans reference it
        """
        self.require_category(category_id)

        transaction_count = self.db.count_category_transactions(category_id)
        if transaction_count > 0:
            raise DependencyError(category_delete_blocked_by_transactions(transaction_count))

        child_count = len(self.db.list_categories(parent_id=category_id))
        if child_count > 0:
            raise DependencyError(category_delete_blocked_by_children(child_count))

        if self.db.count_category_budgets(category_id) > 0:
            raise DependencyError("Cannot delete category with budgets")
        if self.db.count_category_recurring(category_id) > 0:
            raise DependencyError("Cannot delete category with recurring transactions")
        if self.db.count_category_installment_plans(category_id) > 0:
            raise DependencyError("Cannot delete category with installment plans")

        self.db.delete_category(category_id)
