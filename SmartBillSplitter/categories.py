"""
Categories Module

This module holds the bill category catalog.

Features:
    - Fixed catalog of bill categories (id, display name, tailwind color)
    - Lookup by id with a guaranteed "other" fallback
    - Popular category ranking by usage count
    - Tailwind color class to hex conversion for charts

Functions:
    get_tailwind_color: Convert a tailwind text color class to a hex code.
    get_category_by_id: Look up a category in the default catalog.
    get_popular_categories: Top categories by usage count.
"""

from typing import Optional

from config.settings import DEFAULT_CATEGORY, POPULAR_CATEGORY_LIMIT


TAILWIND_COLORS = {
    "orange-500": "#f97316",
    "amber-500": "#f59e0b",
    "amber-600": "#d97706",
    "pink-500": "#ec4899",
    "blue-500": "#3b82f6",
    "slate-600": "#475569",
    "zinc-700": "#3f3f46",
    "purple-600": "#9333ea",
    "green-600": "#16a34a",
    "red-500": "#ef4444",
    "emerald-600": "#059669",
    "rose-500": "#f43f5e",
    "indigo-500": "#6366f1",
    "yellow-500": "#eab308",
    "violet-500": "#8b5cf6",
    "cyan-600": "#0891b2",
    "gray-500": "#6b7280",
}

FALLBACK_COLOR = "#999999"


def get_tailwind_color(tailwind_color: str) -> str:
    """Convert 'text-orange-500' (or 'orange-500') to its hex value."""
    return TAILWIND_COLORS.get(tailwind_color.replace("text-", ""), FALLBACK_COLOR)


class Category:
    """
    A bill category.

    Attributes:
        id (str): Stable identifier stored on bills (categoryId).
        name (str): Display name.
        color (str): Tailwind text color class.
    """

    def __init__(self, id: str, name: str, color: str):
        self.id = id
        self.name = name
        self.color = color

    @property
    def hex_color(self) -> str:
        return get_tailwind_color(self.color)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "color": self.color}

    def __repr__(self) -> str:
        return f"Category(id='{self.id}', name='{self.name}')"


CATEGORIES = [
    Category("food", "Food", "text-orange-500"),
    Category("coffee", "Coffee & Drinks", "text-amber-600"),
    Category("shopping", "Shopping", "text-pink-500"),
    Category("transportation", "Transportation", "text-blue-500"),
    Category("home", "Housing & Utilities", "text-slate-600"),
    Category("work", "Work", "text-zinc-700"),
    Category("entertainment", "Entertainment", "text-purple-600"),
    Category("education", "Education", "text-green-600"),
    Category("gift", "Gifts & Souvenirs", "text-red-500"),
    Category("groceries", "Groceries", "text-emerald-600"),
    Category("health", "Health & Medical", "text-rose-500"),
    Category("personal", "Personal", "text-indigo-500"),
    Category("ticket", "Tickets & Bookings", "text-yellow-500"),
    Category("party", "Parties & Get-togethers", "text-amber-500"),
    Category("game", "Games", "text-violet-500"),
    Category("book", "Books & Learning", "text-cyan-600"),
    Category(DEFAULT_CATEGORY, "Other", "text-gray-500"),
]


class CategoryCatalog:
    """
    Lookup-by-id catalog of categories.

    ``lookup`` never fails: unknown ids resolve to the fallback category.
    """

    def __init__(self, categories: list[Category], fallback_id: str = DEFAULT_CATEGORY):
        self._by_id = {category.id: category for category in categories}
        if fallback_id not in self._by_id:
            raise ValueError(f"fallback category '{fallback_id}' is not in the catalog")
        self.fallback = self._by_id[fallback_id]

    def get(self, category_id: str) -> Optional[Category]:
        """Return the category for an id, or None if it is not in the catalog."""
        return self._by_id.get(category_id)

    def lookup(self, category_id: str) -> Category:
        """Return the category for an id, falling back to the default entry."""
        return self._by_id.get(category_id, self.fallback)

    def __contains__(self, category_id: str) -> bool:
        return category_id in self._by_id

    def __iter__(self):
        return iter(self._by_id.values())

    def popular(self, counts: dict[str, int], limit: int = POPULAR_CATEGORY_LIMIT) -> list[Category]:
        """
        Rank categories by usage count.

        Takes the top ``limit`` ids by count (ties keep their order in
        ``counts``) and drops ids the catalog does not know.

        Args:
            counts: category id -> number of bills.
            limit: How many ids to consider.

        Returns:
            list[Category]: Known categories, most used first.
        """
        ranked_ids = sorted(counts, key=counts.get, reverse=True)[:limit]
        return [self._by_id[cid] for cid in ranked_ids if cid in self._by_id]


default_catalog = CategoryCatalog(CATEGORIES)


def get_category_by_id(category_id: str) -> Optional[Category]:
    return default_catalog.get(category_id)


def get_popular_categories(counts: dict[str, int]) -> list[Category]:
    return default_catalog.popular(counts)
