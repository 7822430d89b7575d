"""Category assignment controller.

Mediates between two taxonomy lookup strategies (search and browse) and the
tenant's own categories, producing exactly one tenant category id to apply
to a catalog item.

Flow:
    open() -> set_mode()/search()/navigate_browse() -> select_taxonomy_node()
    -> [choose_candidate() | align_category() | confirm_create_new_category()]
    -> assign()

Every collaborator failure is caught here and stored on the selection as an
error string. Nothing is retried automatically; `retry()` re-issues the last
failed lookup on explicit request.
"""

from collections.abc import Awaitable, Callable, Sequence

from app.config import settings
from app.core.debounce import Debouncer
from app.core.errors import CategoryWorkflowError, LookupFailure, ValidationFailure
from app.core.reconcile import resolve_existing_category
from app.core.recent import RecentCategories, get_recent_categories
from app.core.selection import BrowseLevel, CategorySelection, SelectionMode
from app.infra.logging import get_logger
from app.schemas.taxonomy import TaxonomyNode, TenantCategory
from app.services.taxonomy_client import TaxonomyBrowseClient, TaxonomySearchClient
from app.services.tenant_categories import ItemCategoryAssigner, TenantCategoryRepository


class CategoryAssignmentController:
    """Drives one category assignment for one item of one tenant."""

    def __init__(
        self,
        tenant_id: str,
        item_id: str,
        *,
        search_client: TaxonomySearchClient | None = None,
        browse_client: TaxonomyBrowseClient | None = None,
        repository: TenantCategoryRepository | None = None,
        assigner: ItemCategoryAssigner | None = None,
        recent: RecentCategories | None = None,
        mode: SelectionMode = SelectionMode.SEARCH,
        debounce_seconds: float | None = None,
        min_query_length: int | None = None,
        result_limit: int | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            tenant_id: Tenant that owns the item and its categories
            item_id: Catalog item receiving the category
            search_client: Taxonomy search collaborator
            browse_client: Taxonomy browse collaborator
            repository: Tenant category collaborator
            assigner: Item category collaborator
            recent: Recent categories tracker (defaults to the shared one)
            mode: Initial lookup mode
            debounce_seconds: Search debounce (defaults to settings)
            min_query_length: Shortest trimmed query that is searched
            result_limit: Maximum search results requested
        """
        self.tenant_id = tenant_id
        self.item_id = item_id

        self._search_client = search_client or TaxonomySearchClient()
        self._browse_client = browse_client or TaxonomyBrowseClient()
        self._repository = repository or TenantCategoryRepository()
        self._assigner = assigner or ItemCategoryAssigner()
        self._recent = recent or get_recent_categories()

        self._initial_mode = SelectionMode(mode)
        self._min_query_length = min_query_length or settings.search_min_query_length
        self._result_limit = result_limit or settings.search_result_limit
        self._debouncer = Debouncer(
            settings.search_debounce_seconds if debounce_seconds is None else debounce_seconds
        )

        self.selection = CategorySelection(mode=self._initial_mode)
        self.tenant_categories: list[TenantCategory] = []
        self.assigned_category_id: str | None = None

        # Sequence numbers identify the latest request of each kind
        self._search_seq = 0
        self._browse_seq = 0
        self._root_nodes: tuple[TaxonomyNode, ...] | None = None
        self._retry: Callable[[], Awaitable[None]] | None = None

        self.logger = get_logger(__name__, tenant_id=tenant_id, item_id=item_id)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def open(self) -> None:
        """Load the tenant's categories and the initial browse level."""
        await self.reload_tenant_categories()
        if self.selection.mode is SelectionMode.BROWSE:
            await self.navigate_browse(())

    async def reload_tenant_categories(self) -> None:
        try:
            self.tenant_categories = await self._repository.list_categories(self.tenant_id)
        except CategoryWorkflowError as e:
            self._fail(e)
            self._retry = self.reload_tenant_categories
            return
        self.logger.debug("Tenant categories cached", count=len(self.tenant_categories))

    def cancel(self) -> None:
        """Discard all ephemeral state without writing anything."""
        self._debouncer.cancel()
        self._search_seq += 1
        self._browse_seq += 1
        self._retry = None
        self.selection = CategorySelection(mode=self._initial_mode)
        self.logger.info("Category assignment cancelled")

    async def wait_idle(self) -> None:
        """Wait for any pending or running debounced search."""
        await self._debouncer.wait_idle()

    async def close(self) -> None:
        await self._debouncer.aclose()

    # =========================================================================
    # Lookup
    # =========================================================================

    async def set_mode(self, mode: SelectionMode | str) -> None:
        """Switch between search and browse, resetting query and path."""
        mode = SelectionMode(mode)
        self._debouncer.cancel()
        self._search_seq += 1
        self._browse_seq += 1

        selection = self.selection
        selection.mode = mode
        selection.query = ""
        selection.browse_path = ()
        selection.search_results = ()
        selection.search_loading = False
        selection.browse_loading = False
        selection.clear_resolution()
        selection.clear_error()

        self.logger.debug("Mode switched", mode=mode.value)

        if mode is SelectionMode.BROWSE:
            if self._root_nodes is None:
                await self.navigate_browse(())
            else:
                selection.browse_results = self._root_nodes

    def search(self, query: str) -> bool:
        """Schedule a debounced taxonomy search.

        Queries shorter than the minimum (after trimming) issue nothing and
        leave the current results as they are. A search still in flight is
        discarded when it lands.

        Returns:
            True if a search was scheduled
        """
        self.selection.query = query
        trimmed = query.strip()
        if len(trimmed) < self._min_query_length:
            self._debouncer.cancel()
            self._search_seq += 1
            self.selection.search_loading = False
            return False

        self._search_seq += 1
        seq = self._search_seq
        self.selection.search_loading = True
        self._debouncer.schedule(lambda: self._run_search(seq, trimmed))
        return True

    async def _run_search(self, seq: int, query: str) -> None:
        self.logger.debug("Issuing taxonomy search", query=query, seq=seq)
        try:
            nodes = tuple(await self._search_client.search(query, limit=self._result_limit))
        except LookupFailure as e:
            if seq != self._search_seq:
                return
            self.selection.search_loading = False
            self._fail(e)
            self._retry = lambda: self._retry_search(query)
            return

        if seq != self._search_seq:
            self.logger.debug("Discarding stale search response", query=query, seq=seq)
            return

        self.selection.search_results = nodes
        self.selection.search_loading = False
        self._clear_lookup_error()
        self.logger.debug("Search results applied", query=query, results=len(nodes))

    async def _retry_search(self, query: str) -> None:
        self._search_seq += 1
        self.selection.search_loading = True
        await self._run_search(self._search_seq, query)

    async def navigate_browse(self, path: Sequence[str]) -> BrowseLevel:
        """Move to `path` in the taxonomy tree and fetch its children.

        Covers both drilling into a child (one segment appended) and jumping
        back to any breadcrumb prefix, root included.

        Returns:
            The requested level; its `path` always equals `path`
        """
        path = tuple(path)
        self._browse_seq += 1
        seq = self._browse_seq

        self.selection.browse_path = path
        self.selection.browse_loading = True

        try:
            nodes = await self._browse_client.browse(path)
        except LookupFailure as e:
            if seq == self._browse_seq:
                self.selection.browse_loading = False
                self._fail(e)
                self._retry = lambda: self._retry_browse(path)
            return BrowseLevel(path=path, error=e.message)

        if path == ():
            self._root_nodes = nodes

        if seq != self._browse_seq:
            self.logger.debug("Discarding stale browse response", path=list(path), seq=seq)
            return BrowseLevel(path=path, nodes=nodes)

        self.selection.browse_results = nodes
        self.selection.browse_loading = False
        self._clear_lookup_error()
        return BrowseLevel(path=path, nodes=nodes)

    async def _retry_browse(self, path: tuple[str, ...]) -> None:
        await self.navigate_browse(path)

    async def retry(self) -> bool:
        """Re-issue the last failed lookup.

        Returns:
            True if there was something to retry
        """
        retry, self._retry = self._retry, None
        if retry is None:
            return False
        self.selection.clear_error()
        await retry()
        return True

    # =========================================================================
    # Resolution
    # =========================================================================

    def select_taxonomy_node(self, node: TaxonomyNode) -> TenantCategory | list[TenantCategory] | None:
        """Record `node` and resolve it against the tenant's categories.

        One mapped category resolves directly. Several are offered as
        candidates. None leaves a pre-filled create suggestion; nothing is
        created until `confirm_create_new_category()` is called.
        """
        selection = self.selection
        selection.clear_resolution()
        selection.clear_error()
        selection.selected_taxonomy_node = node

        match = resolve_existing_category(node.id, self.tenant_categories)

        if isinstance(match, TenantCategory):
            selection.selected_tenant_category_id = match.id
            self.logger.info(
                "Taxonomy node resolved to existing category",
                node_id=node.id,
                tenant_category_id=match.id,
            )
        elif match:
            selection.candidates = tuple(match)
            self.logger.info(
                "Taxonomy node maps to several categories",
                node_id=node.id,
                candidates=[c.id for c in match],
            )
        else:
            selection.create_suggestion = node.name
            self.logger.info("No category mapped to taxonomy node", node_id=node.id)

        return match

    async def select_taxonomy_id(self, node_id: str) -> TenantCategory | list[TenantCategory] | None:
        """Look a taxonomy node up by id, then select it."""
        try:
            node = await self._search_client.lookup(node_id)
        except LookupFailure as e:
            self._fail(e)
            self._retry = lambda: self._retry_select_id(node_id)
            return None
        return self.select_taxonomy_node(node)

    async def _retry_select_id(self, node_id: str) -> None:
        await self.select_taxonomy_id(node_id)

    def choose_candidate(self, category_id: str) -> bool:
        """Pick a tenant category, either a disambiguation candidate or any loaded one."""
        category = next((c for c in self.tenant_categories if c.id == category_id), None)
        if category is None:
            self._fail(ValidationFailure(f"Unknown category: {category_id}"))
            return False

        self.selection.selected_tenant_category_id = category.id
        self.selection.candidates = ()
        self.selection.create_suggestion = None
        self.selection.clear_error()
        return True

    async def confirm_create_new_category(self, name: str) -> TenantCategory | None:
        """Create a tenant category for the selected taxonomy node.

        The category only enters the local list once the backend has
        confirmed it. On rejection the server's message is shown and the
        selection stays as it was.
        """
        node = self.selection.selected_taxonomy_node
        if node is None:
            self._fail(ValidationFailure("Select a taxonomy category first"))
            return None
        name = name.strip()
        if not name:
            self._fail(ValidationFailure("Category name is required"))
            return None

        try:
            category = await self._repository.create_category(
                self.tenant_id, name, google_category_id=node.id
            )
        except CategoryWorkflowError as e:
            self._fail(e)
            return None

        self.tenant_categories.append(category)
        self.selection.selected_tenant_category_id = category.id
        self.selection.create_suggestion = None
        self.selection.candidates = ()
        self.selection.clear_error()
        return category

    async def align_category(self, category_id: str) -> TenantCategory | None:
        """Map an existing tenant category to the selected taxonomy node.

        Used when the tenant already has a matching category that was never
        linked to the taxonomy. The cached list is updated with the record
        the backend returns.
        """
        node = self.selection.selected_taxonomy_node
        if node is None:
            self._fail(ValidationFailure("Select a taxonomy category first"))
            return None
        index = next((i for i, c in enumerate(self.tenant_categories) if c.id == category_id), None)
        if index is None:
            self._fail(ValidationFailure(f"Unknown category: {category_id}"))
            return None

        try:
            category = await self._repository.align_category(self.tenant_id, category_id, node.id)
        except CategoryWorkflowError as e:
            self._fail(e)
            return None

        self.tenant_categories[index] = category
        self.selection.selected_tenant_category_id = category.id
        self.selection.candidates = ()
        self.selection.create_suggestion = None
        self.selection.clear_error()
        return category

    # =========================================================================
    # Assignment
    # =========================================================================

    async def assign(self) -> str | None:
        """Apply the resolved tenant category to the item.

        On success the selection is discarded. On failure nothing is
        cleared, so the user can retry straight away.

        Returns:
            The assigned category id, or None on failure
        """
        category_id = self.selection.selected_tenant_category_id
        if not category_id:
            if self.selection.needs_disambiguation:
                self._fail(ValidationFailure("Choose one of the matching categories"))
            else:
                self._fail(ValidationFailure("Please select a category"))
            return None

        try:
            await self._assigner.assign(self.tenant_id, self.item_id, category_id)
        except CategoryWorkflowError as e:
            self._fail(e)
            return None

        self._recent.record(self.tenant_id, category_id)
        self.assigned_category_id = category_id
        self._debouncer.cancel()
        self._search_seq += 1
        self._browse_seq += 1
        self._retry = None
        self.selection = CategorySelection(mode=self._initial_mode)
        return category_id

    @property
    def recent_category_ids(self) -> list[str]:
        return self._recent.get(self.tenant_id)

    # =========================================================================
    # Errors
    # =========================================================================

    def _fail(self, error: CategoryWorkflowError) -> None:
        self.selection.error = error.message
        self.selection.error_kind = error.kind
        self.logger.warning(
            "Category assignment step failed",
            error_kind=error.kind,
            error=error.message,
            status_code=error.status_code,
        )

    def _clear_lookup_error(self) -> None:
        if self.selection.error_kind == LookupFailure.kind:
            self.selection.clear_error()
            self._retry = None
