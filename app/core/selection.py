"""In-progress category choice for one assignment session."""

from dataclasses import dataclass, field
from enum import Enum

from app.schemas.taxonomy import TaxonomyNode, TenantCategory

ROOT_LABEL = "Root"


class SelectionMode(str, Enum):
    """Taxonomy lookup strategy."""

    SEARCH = "search"
    BROWSE = "browse"


@dataclass
class CategorySelection:
    """Ephemeral selection state owned by CategoryAssignmentController.

    `selected_taxonomy_node` and `selected_tenant_category_id` are not
    always set together: a node with no mapped tenant category leaves the
    id empty until a category is created for it.
    """

    mode: SelectionMode = SelectionMode.SEARCH
    query: str = ""
    browse_path: tuple[str, ...] = ()
    selected_taxonomy_node: TaxonomyNode | None = None
    selected_tenant_category_id: str | None = None

    search_results: tuple[TaxonomyNode, ...] = ()
    browse_results: tuple[TaxonomyNode, ...] = ()
    search_loading: bool = False
    browse_loading: bool = False

    # Resolution outcome for the selected node
    candidates: tuple[TenantCategory, ...] = ()
    create_suggestion: str | None = None

    error: str | None = None
    error_kind: str | None = None

    @property
    def breadcrumb(self) -> list[str]:
        """Root label followed by the current browse path."""
        return [ROOT_LABEL, *self.browse_path]

    @property
    def needs_disambiguation(self) -> bool:
        return len(self.candidates) > 1

    def clear_error(self) -> None:
        self.error = None
        self.error_kind = None

    def clear_resolution(self) -> None:
        """Forget the selected node and everything derived from it."""
        self.selected_taxonomy_node = None
        self.selected_tenant_category_id = None
        self.candidates = ()
        self.create_suggestion = None


@dataclass(frozen=True)
class BrowseLevel:
    """Result of one browse navigation.

    `path` is always the path that was requested, so navigating to it again
    lands on the same level.
    """

    path: tuple[str, ...]
    nodes: tuple[TaxonomyNode, ...] = field(default_factory=tuple)
    error: str | None = None
