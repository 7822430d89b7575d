"""Reconciliation of taxonomy nodes with already-loaded tenant categories."""

from collections.abc import Iterable

from app.schemas.taxonomy import TenantCategory


def resolve_existing_category(
    node_id: str,
    tenant_categories: Iterable[TenantCategory],
) -> TenantCategory | list[TenantCategory] | None:
    """Find tenant categories mapped to a taxonomy node.

    A synchronous scan of the tenant's cached list; tenants keep few
    categories and the list is already loaded for display.

    Args:
        node_id: TaxonomyNode id
        tenant_categories: The tenant's categories

    Returns:
        The single matching category, every match (in list order) when
        several categories map to the same node, or None
    """
    matches = [c for c in tenant_categories if c.google_category_id == node_id]
    if not matches:
        return None
    if len(matches) == 1:
        return matches[0]
    return matches


def filter_tenant_categories(
    tenant_categories: Iterable[TenantCategory],
    query: str = "",
    mapped_only: bool = False,
) -> list[TenantCategory]:
    """Filter categories by a name/slug fragment and optionally by mapping."""
    q = query.strip().lower()
    result = []
    for category in tenant_categories:
        if mapped_only and not category.is_mapped:
            continue
        if q and q not in category.name.lower() and q not in category.slug.lower():
            continue
        result.append(category)
    return result
