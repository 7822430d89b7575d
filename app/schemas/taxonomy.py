"""Schemas for taxonomy nodes and tenant categories.

Both records are owned by the catalog backend and arrive as camelCase JSON.
Field aliases keep the wire names while the Python side uses snake_case.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

PATH_SEPARATOR = " > "


class TaxonomyNode(BaseModel):
    """One node of the external, read-only product taxonomy.

    Attributes:
        id: Stable opaque identifier
        name: Leaf display label
        path: Ancestor names from root to this node, inclusive
        has_children: Whether child nodes exist (browse results only)
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    name: str
    path: tuple[str, ...]
    has_children: bool | None = Field(default=None, alias="hasChildren")

    @model_validator(mode="before")
    @classmethod
    def fill_name_and_path(cls, data: Any) -> Any:
        """Derive a missing name from the path, or a missing path from the name.

        Branch-search results carry only `path`; some older responses carry
        only `name` for top-level nodes.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        path = data.get("path")
        if isinstance(path, str):
            path = [segment.strip() for segment in path.split(">") if segment.strip()]
            data["path"] = path
        if not data.get("name") and path:
            data["name"] = path[-1]
        if not path and data.get("name"):
            data["path"] = [data["name"]]
        return data

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Accept numeric ids from the backend."""
        if isinstance(v, int):
            return str(v)
        return v

    @property
    def full_path(self) -> str:
        """Human readable breadcrumb, e.g. 'Electronics > Audio'."""
        return PATH_SEPARATOR.join(self.path)

    @property
    def depth(self) -> int:
        return len(self.path)


class TenantCategory(BaseModel):
    """A tenant-owned classification record.

    Attributes:
        id: Tenant-scoped identifier
        name: Display name, editable by the tenant
        slug: URL-safe key derived from the name
        google_category_id: Optional reference to a TaxonomyNode id
        parent_id: Optional parent in the tenant's own hierarchy
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    name: str
    slug: str = ""
    google_category_id: str | None = Field(default=None, alias="googleCategoryId")
    parent_id: str | None = Field(default=None, alias="parentId")

    @field_validator("id", "google_category_id", "parent_id", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v

    @property
    def is_mapped(self) -> bool:
        """Whether this category references a taxonomy node."""
        return bool(self.google_category_id)
