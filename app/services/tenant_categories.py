"""Tenant category collaborators.

`TenantCategoryRepository` reads and writes tenant-owned categories and
`ItemCategoryAssigner` applies a category to a catalog item. Neither keeps
local state: every write is confirmed by the backend before callers see it.
"""

import re
import unicodedata

import httpx

from app.core.errors import AssignmentFailure, CreationConflict, LookupFailure
from app.infra.logging import get_logger
from app.schemas.taxonomy import TenantCategory
from app.services.backend_client import BackendClient, get_backend_client
from app.services.payloads import (
    error_message,
    parse_tenant_categories,
    parse_tenant_category,
    response_json,
)

logger = get_logger(__name__)

CATEGORIES_PATH = "/api/v1/tenants/{tenant_id}/categories"
ALIGN_PATH = "/api/v1/tenants/{tenant_id}/categories/{category_id}/align"
ITEM_CATEGORY_PATH = "/api/v1/tenants/{tenant_id}/items/{item_id}/category"

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Derive a URL-safe slug: 'Pet Food & Treats' -> 'pet-food-treats'.

    Accented letters keep their base letter ('Café' -> 'cafe').
    """
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    return _NON_SLUG.sub("-", ascii_name.lower()).strip("-")


class TenantCategoryRepository:
    """CRUD over tenant-defined categories."""

    def __init__(self, backend: BackendClient | None = None) -> None:
        self._backend = backend or get_backend_client()

    async def list_categories(self, tenant_id: str) -> list[TenantCategory]:
        """Load the full category list of a tenant.

        Raises:
            LookupFailure: If the list could not be fetched
        """
        client = await self._backend._get_client()

        try:
            response = await client.get(CATEGORIES_PATH.format(tenant_id=tenant_id))
        except httpx.HTTPError as e:
            raise LookupFailure(f"Failed to load categories: {e}") from e

        if response.status_code >= 400:
            raise LookupFailure(
                error_message(response, "Failed to load categories"),
                status_code=response.status_code,
            )

        categories = parse_tenant_categories(response_json(response))
        logger.debug("Tenant categories loaded", tenant_id=tenant_id, count=len(categories))
        return categories

    async def create_category(
        self,
        tenant_id: str,
        name: str,
        google_category_id: str | None = None,
        parent_id: str | None = None,
    ) -> TenantCategory:
        """Create a tenant category, optionally mapped to a taxonomy node.

        Raises:
            CreationConflict: If the backend rejected the category; the
                server's message is kept verbatim
        """
        client = await self._backend._get_client()

        payload: dict[str, str] = {"name": name, "slug": slugify(name)}
        if google_category_id:
            payload["googleCategoryId"] = google_category_id
        if parent_id:
            payload["parentId"] = parent_id

        try:
            response = await client.post(CATEGORIES_PATH.format(tenant_id=tenant_id), json=payload)
        except httpx.HTTPError as e:
            raise CreationConflict(f"Failed to create category: {e}") from e

        if response.status_code >= 400:
            message = error_message(response, "Failed to create category")
            logger.warning(
                "Category creation rejected",
                tenant_id=tenant_id,
                status_code=response.status_code,
                error=message,
            )
            raise CreationConflict(message, status_code=response.status_code)

        category = parse_tenant_category(
            response_json(response, CreationConflict), CreationConflict
        )
        logger.info(
            "Tenant category created",
            tenant_id=tenant_id,
            category_id=category.id,
            google_category_id=category.google_category_id,
        )
        return category

    async def align_category(
        self,
        tenant_id: str,
        category_id: str,
        google_category_id: str,
    ) -> TenantCategory:
        """Attach a taxonomy id to an existing tenant category.

        Raises:
            CreationConflict: If the backend refused the mapping
        """
        client = await self._backend._get_client()
        url = ALIGN_PATH.format(tenant_id=tenant_id, category_id=category_id)

        try:
            response = await client.post(url, json={"googleCategoryId": google_category_id})
        except httpx.HTTPError as e:
            raise CreationConflict(f"Failed to align category: {e}") from e

        if response.status_code >= 400:
            raise CreationConflict(
                error_message(response, "Failed to align category"),
                status_code=response.status_code,
            )

        category = parse_tenant_category(
            response_json(response, CreationConflict), CreationConflict
        )
        logger.info(
            "Tenant category aligned",
            tenant_id=tenant_id,
            category_id=category.id,
            google_category_id=google_category_id,
        )
        return category


class ItemCategoryAssigner:
    """Applies a resolved tenant category to a catalog item."""

    def __init__(self, backend: BackendClient | None = None) -> None:
        self._backend = backend or get_backend_client()

    async def assign(self, tenant_id: str, item_id: str, tenant_category_id: str) -> None:
        """PATCH the item's category.

        Raises:
            AssignmentFailure: If the backend did not accept the assignment
        """
        client = await self._backend._get_client()
        url = ITEM_CATEGORY_PATH.format(tenant_id=tenant_id, item_id=item_id)

        try:
            response = await client.patch(url, json={"tenantCategoryId": tenant_category_id})
        except httpx.HTTPError as e:
            raise AssignmentFailure(f"Failed to assign category: {e}") from e

        if response.status_code >= 400:
            message = error_message(response, "Failed to assign category")
            logger.warning(
                "Category assignment rejected",
                tenant_id=tenant_id,
                item_id=item_id,
                status_code=response.status_code,
                error=message,
            )
            raise AssignmentFailure(message, status_code=response.status_code)

        logger.info(
            "Category assigned to item",
            tenant_id=tenant_id,
            item_id=item_id,
            tenant_category_id=tenant_category_id,
        )
