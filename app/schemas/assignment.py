"""Request/response schemas for the assignment session endpoints."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from app.schemas.taxonomy import TaxonomyNode, TenantCategory


class OpenSessionRequest(BaseModel):
    """Open a category assignment for one item."""

    item_id: str = Field(min_length=1, max_length=100, description="Catalog item id")
    mode: Literal["search", "browse"] = Field(default="search", description="Initial lookup mode")

    model_config = {"extra": "forbid"}

    @field_validator("item_id")
    @classmethod
    def validate_item_id(cls, v: str) -> str:
        """Item ids end up in backend URL paths."""
        if ".." in v or "/" in v or "\\" in v:
            raise ValueError("Invalid item_id format")
        return v


class ModeRequest(BaseModel):
    mode: Literal["search", "browse"]

    model_config = {"extra": "forbid"}


class SearchRequest(BaseModel):
    query: str = Field(max_length=200, description="Free-text taxonomy query")

    model_config = {"extra": "forbid"}


class BrowseRequest(BaseModel):
    path: list[str] = Field(
        default_factory=list,
        description="Ancestor names from root; empty for the root level",
    )

    model_config = {"extra": "forbid"}


class SelectRequest(BaseModel):
    """Select a taxonomy node from the current results, or by taxonomy id."""

    node_id: str | None = Field(default=None, description="Id of a node in the current results")
    taxonomy_id: str | None = Field(default=None, description="Taxonomy id to look up")

    model_config = {"extra": "forbid"}

    @field_validator("taxonomy_id")
    @classmethod
    def validate_taxonomy_id(cls, v: str | None) -> str | None:
        """Taxonomy ids end up in backend URL paths."""
        if v is not None and (".." in v or "/" in v or "\\" in v):
            raise ValueError("Invalid taxonomy_id format")
        return v

    @model_validator(mode="after")
    def exactly_one(self) -> "SelectRequest":
        if bool(self.node_id) == bool(self.taxonomy_id):
            raise ValueError("Provide exactly one of node_id or taxonomy_id")
        return self


class ChooseRequest(BaseModel):
    category_id: str = Field(min_length=1)

    model_config = {"extra": "forbid"}


class CreateCategoryRequest(BaseModel):
    # Blank names are rejected by the workflow itself so the error lands in session state
    name: str = Field(max_length=100)

    model_config = {"extra": "forbid"}


class SessionState(BaseModel):
    """Snapshot of one assignment session."""

    session_id: str
    tenant_id: str
    item_id: str
    mode: Literal["search", "browse"]
    query: str
    browse_path: list[str]
    breadcrumb: list[str]
    search_results: list[TaxonomyNode]
    browse_results: list[TaxonomyNode]
    search_loading: bool
    browse_loading: bool
    selected_taxonomy_node: TaxonomyNode | None
    selected_tenant_category_id: str | None
    candidates: list[TenantCategory]
    create_suggestion: str | None
    tenant_categories: list[TenantCategory]
    recent_category_ids: list[str]
    assigned_category_id: str | None
    error: str | None
    error_kind: str | None
