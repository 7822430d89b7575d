"""Catalog backend collaborators."""

from app.services.backend_client import BackendClient, get_backend_client
from app.services.taxonomy_client import TaxonomyBrowseClient, TaxonomySearchClient
from app.services.tenant_categories import (
    ItemCategoryAssigner,
    TenantCategoryRepository,
    slugify,
)

__all__ = [
    "BackendClient",
    "get_backend_client",
    "TaxonomyBrowseClient",
    "TaxonomySearchClient",
    "ItemCategoryAssigner",
    "TenantCategoryRepository",
    "slugify",
]
