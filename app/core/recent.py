"""Recently assigned categories, remembered per tenant."""

from app.config import settings


class RecentCategories:
    """Most recently assigned category ids per tenant, newest first."""

    def __init__(self, limit: int | None = None) -> None:
        self.limit = limit or settings.recent_categories_limit
        self._recent: dict[str, list[str]] = {}

    def record(self, tenant_id: str, category_id: str) -> list[str]:
        """Move `category_id` to the front, dropping the oldest past the limit."""
        current = self._recent.get(tenant_id, [])
        updated = [category_id, *(c for c in current if c != category_id)][: self.limit]
        self._recent[tenant_id] = updated
        return list(updated)

    def get(self, tenant_id: str) -> list[str]:
        return list(self._recent.get(tenant_id, []))

    def clear(self) -> None:
        self._recent.clear()


_recent_categories: RecentCategories | None = None


def get_recent_categories() -> RecentCategories:
    """Get the process-wide recent categories tracker."""
    global _recent_categories
    if _recent_categories is None:
        _recent_categories = RecentCategories()
    return _recent_categories
