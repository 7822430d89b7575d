"""Shared fixtures: sample taxonomy data, fake collaborators, API client."""

from collections.abc import Callable, Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_store
from app.core.controller import CategoryAssignmentController
from app.core.recent import RecentCategories
from app.core.session_store import AssignmentSessionStore
from app.main import app
from app.schemas.taxonomy import TaxonomyNode, TenantCategory

TENANT_ID = "tenant-001"
ITEM_ID = "item-42"


@pytest.fixture
def electronics() -> TaxonomyNode:
    return TaxonomyNode(id="166", name="Electronics", path=["Electronics"])


@pytest.fixture
def animals() -> TaxonomyNode:
    return TaxonomyNode(
        id="1",
        name="Animals & Pet Supplies",
        path=["Animals & Pet Supplies"],
        has_children=True,
    )


@pytest.fixture
def pet_supplies() -> TaxonomyNode:
    return TaxonomyNode(
        id="2",
        name="Pet Supplies",
        path=["Animals & Pet Supplies", "Pet Supplies"],
        has_children=True,
    )


@pytest.fixture
def tenant_categories() -> list[TenantCategory]:
    return [
        TenantCategory(id="cat-1", name="Snacks", slug="snacks"),
        TenantCategory(id="cat-9", name="Cameras", slug="cameras", google_category_id="5904"),
    ]


def _iter_of(nodes: list[TaxonomyNode]) -> Callable[..., Iterator[TaxonomyNode]]:
    async def _search(query: str, limit: int | None = None) -> Iterator[TaxonomyNode]:
        return iter(nodes)

    return _search


@pytest.fixture
def search_client(electronics: TaxonomyNode) -> MagicMock:
    """Search collaborator returning [Electronics] for every query."""
    client = MagicMock()
    client.search = AsyncMock(side_effect=_iter_of([electronics]))
    client.lookup = AsyncMock(return_value=electronics)
    return client


@pytest.fixture
def browse_client(animals: TaxonomyNode, pet_supplies: TaxonomyNode) -> MagicMock:
    """Browse collaborator with a two-level tree."""

    async def _browse(parent_path=None):
        parent = tuple(parent_path or ())
        if parent == ():
            return (animals,)
        if parent == ("Animals & Pet Supplies",):
            return (pet_supplies,)
        return ()

    client = MagicMock()
    client.browse = AsyncMock(side_effect=_browse)
    return client


@pytest.fixture
def repository(tenant_categories: list[TenantCategory]) -> MagicMock:
    repo = MagicMock()
    repo.list_categories = AsyncMock(side_effect=lambda tenant_id: list(tenant_categories))
    repo.create_category = AsyncMock(
        return_value=TenantCategory(
            id="cat-new",
            name="Electronics",
            slug="electronics",
            google_category_id="166",
        )
    )
    repo.align_category = AsyncMock(
        side_effect=lambda tenant_id, category_id, google_category_id: TenantCategory(
            id=category_id,
            name="Snacks",
            slug="snacks",
            google_category_id=google_category_id,
        )
    )
    return repo


@pytest.fixture
def assigner() -> MagicMock:
    assigner = MagicMock()
    assigner.assign = AsyncMock(return_value=None)
    return assigner


@pytest.fixture
def make_controller(
    search_client: MagicMock,
    browse_client: MagicMock,
    repository: MagicMock,
    assigner: MagicMock,
) -> Callable[..., CategoryAssignmentController]:
    """Build controllers wired to the fake collaborators, no debounce delay."""

    def _make(tenant_id: str = TENANT_ID, item_id: str = ITEM_ID, **overrides):
        kwargs = {
            "search_client": search_client,
            "browse_client": browse_client,
            "repository": repository,
            "assigner": assigner,
            "recent": RecentCategories(limit=8),
            "debounce_seconds": 0,
        }
        kwargs.update(overrides)
        return CategoryAssignmentController(tenant_id, item_id, **kwargs)

    return _make


@pytest.fixture
def session_store(make_controller) -> AssignmentSessionStore:
    return AssignmentSessionStore(
        ttl_seconds=60,
        sweep_interval_seconds=60,
        controller_factory=lambda tenant_id, item_id, **kwargs: make_controller(tenant_id, item_id, **kwargs),
    )


@pytest_asyncio.fixture
async def client(session_store: AssignmentSessionStore):
    """HTTP client against the app with an isolated session store."""
    app.dependency_overrides[get_store] = lambda: session_store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    await session_store.stop()
