"""Tests for CategoryAssignmentController."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.core.errors import AssignmentFailure, CreationConflict, LookupFailure
from app.core.selection import SelectionMode
from app.schemas.taxonomy import TaxonomyNode, TenantCategory


class TestSearch:
    """Debounced search and stale-response suppression."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", " ", "e", " e ", "\tx\n"])
    async def test_short_query_issues_no_request(self, make_controller, search_client, query):
        controller = make_controller()
        await controller.open()
        controller.selection.search_results = ("previous",)  # type: ignore[assignment]

        scheduled = controller.search(query)
        await controller.wait_idle()

        assert scheduled is False
        search_client.search.assert_not_called()
        assert controller.selection.search_results == ("previous",)

    @pytest.mark.asyncio
    async def test_search_applies_results(self, make_controller, search_client, electronics):
        controller = make_controller()
        await controller.open()

        assert controller.search("electro") is True
        assert controller.selection.search_loading is True
        await controller.wait_idle()

        search_client.search.assert_awaited_once_with("electro", limit=20)
        assert controller.selection.search_results == (electronics,)
        assert controller.selection.search_loading is False

    @pytest.mark.asyncio
    async def test_rapid_typing_is_debounced(self, make_controller, search_client):
        controller = make_controller(debounce_seconds=0.05)
        await controller.open()

        controller.search("el")
        controller.search("ele")
        controller.search("elec")
        await controller.wait_idle()

        search_client.search.assert_awaited_once_with("elec", limit=20)

    @pytest.mark.asyncio
    async def test_stale_response_is_discarded(self, make_controller, search_client):
        old = TaxonomyNode(id="10", name="Electrical", path=["Hardware", "Electrical"])
        new = TaxonomyNode(id="166", name="Electronics", path=["Electronics"])
        release_first = asyncio.Event()

        async def fake_search(query, limit=None):
            if query == "elec":
                await release_first.wait()
                return iter([old])
            return iter([new])

        search_client.search = AsyncMock(side_effect=fake_search)
        controller = make_controller()
        await controller.open()

        controller.search("elec")
        await asyncio.sleep(0.01)
        assert search_client.search.await_count == 1

        controller.search("electro")
        await asyncio.sleep(0.01)
        assert controller.selection.search_results == (new,)

        release_first.set()
        await controller.wait_idle()

        assert controller.selection.search_results == (new,)

    @pytest.mark.asyncio
    async def test_short_query_discards_search_in_flight(self, make_controller, search_client, electronics):
        release = asyncio.Event()

        async def slow_search(query, limit=None):
            await release.wait()
            return iter([electronics])

        search_client.search = AsyncMock(side_effect=slow_search)
        controller = make_controller()
        await controller.open()

        controller.search("elec")
        await asyncio.sleep(0.01)
        assert search_client.search.await_count == 1

        assert controller.search("e") is False
        release.set()
        await controller.wait_idle()

        assert controller.selection.query == "e"
        assert controller.selection.search_results == ()
        assert controller.selection.search_loading is False

    @pytest.mark.asyncio
    async def test_zero_results_is_not_an_error(self, make_controller, search_client):
        search_client.search = AsyncMock(return_value=iter([]))
        controller = make_controller()
        await controller.open()

        controller.search("zzzz")
        await controller.wait_idle()

        assert controller.selection.search_results == ()
        assert controller.selection.error is None

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_results(self, make_controller, search_client, electronics):
        controller = make_controller()
        await controller.open()
        controller.search("electro")
        await controller.wait_idle()

        search_client.search = AsyncMock(side_effect=LookupFailure("Taxonomy service unreachable"))
        controller.search("electronics")
        await controller.wait_idle()

        assert controller.selection.search_results == (electronics,)
        assert controller.selection.error == "Taxonomy service unreachable"
        assert controller.selection.error_kind == "lookup"
        assert controller.selection.search_loading is False

    @pytest.mark.asyncio
    async def test_retry_reissues_failed_search(self, make_controller, search_client, electronics):
        controller = make_controller()
        await controller.open()
        search_client.search = AsyncMock(side_effect=LookupFailure("timeout"))
        controller.search("electro")
        await controller.wait_idle()

        search_client.search = AsyncMock(return_value=iter([electronics]))
        assert await controller.retry() is True

        search_client.search.assert_awaited_once_with("electro", limit=20)
        assert controller.selection.search_results == (electronics,)
        assert controller.selection.error is None

    @pytest.mark.asyncio
    async def test_retry_without_failure_does_nothing(self, make_controller):
        controller = make_controller()
        await controller.open()

        assert await controller.retry() is False


class TestBrowse:
    """Browse navigation and breadcrumbs."""

    @pytest.mark.asyncio
    async def test_first_switch_to_browse_fetches_root(self, make_controller, browse_client, animals):
        controller = make_controller()
        await controller.open()

        await controller.set_mode(SelectionMode.BROWSE)

        browse_client.browse.assert_awaited_once_with(())
        assert controller.selection.browse_results == (animals,)
        assert controller.selection.breadcrumb == ["Root"]

    @pytest.mark.asyncio
    async def test_second_switch_to_browse_reuses_root(self, make_controller, browse_client, animals):
        controller = make_controller()
        await controller.open()
        await controller.set_mode("browse")
        await controller.navigate_browse(["Animals & Pet Supplies"])

        await controller.set_mode("search")
        await controller.set_mode("browse")

        assert browse_client.browse.await_count == 2
        assert controller.selection.browse_path == ()
        assert controller.selection.browse_results == (animals,)

    @pytest.mark.asyncio
    async def test_open_in_browse_mode_fetches_root(self, make_controller, browse_client):
        controller = make_controller(mode=SelectionMode.BROWSE)

        await controller.open()

        browse_client.browse.assert_awaited_once_with(())

    @pytest.mark.asyncio
    async def test_drill_in_updates_breadcrumb(self, make_controller, browse_client, pet_supplies):
        controller = make_controller(mode=SelectionMode.BROWSE)
        await controller.open()

        level = await controller.navigate_browse(["Animals & Pet Supplies"])

        browse_client.browse.assert_awaited_with(("Animals & Pet Supplies",))
        assert level.path == ("Animals & Pet Supplies",)
        assert level.nodes == (pet_supplies,)
        assert controller.selection.breadcrumb == ["Root", "Animals & Pet Supplies"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "path",
        [(), ("Animals & Pet Supplies",), ("Animals & Pet Supplies", "Pet Supplies")],
    )
    async def test_navigation_round_trips_path(self, make_controller, path):
        controller = make_controller()
        await controller.open()

        level = await controller.navigate_browse(path)
        again = await controller.navigate_browse(level.path)

        assert again.path == path
        assert controller.selection.browse_path == path

    @pytest.mark.asyncio
    async def test_jump_to_breadcrumb_prefix(self, make_controller, animals):
        controller = make_controller()
        await controller.open()
        await controller.navigate_browse(["Animals & Pet Supplies", "Pet Supplies"])

        await controller.navigate_browse([])

        assert controller.selection.browse_path == ()
        assert controller.selection.browse_results == (animals,)

    @pytest.mark.asyncio
    async def test_latest_navigation_wins(self, make_controller, browse_client, animals, pet_supplies):
        release_root = asyncio.Event()

        async def fake_browse(parent_path=None):
            if not parent_path:
                await release_root.wait()
                return (animals,)
            return (pet_supplies,)

        browse_client.browse = AsyncMock(side_effect=fake_browse)
        controller = make_controller()
        await controller.open()

        root_task = asyncio.create_task(controller.navigate_browse([]))
        await asyncio.sleep(0)
        await controller.navigate_browse(["Animals & Pet Supplies"])
        release_root.set()
        await root_task

        assert controller.selection.browse_path == ("Animals & Pet Supplies",)
        assert controller.selection.browse_results == (pet_supplies,)

    @pytest.mark.asyncio
    async def test_browse_failure_keeps_results_and_allows_retry(
        self, make_controller, browse_client, animals
    ):
        controller = make_controller()
        await controller.open()
        await controller.navigate_browse([])

        original = browse_client.browse.side_effect
        browse_client.browse.side_effect = LookupFailure("Taxonomy lookup failed", status_code=502)
        level = await controller.navigate_browse(["Animals & Pet Supplies"])

        assert level.error == "Taxonomy lookup failed"
        assert controller.selection.browse_results == (animals,)
        assert controller.selection.error_kind == "lookup"

        browse_client.browse.side_effect = original
        await controller.retry()

        assert controller.selection.browse_path == ("Animals & Pet Supplies",)
        assert controller.selection.error is None


class TestSelection:
    """Resolving a taxonomy node to a tenant category."""

    @pytest.mark.asyncio
    async def test_single_match_resolves_without_creation(self, make_controller, repository):
        controller = make_controller()
        await controller.open()
        node = TaxonomyNode(id="5904", name="Cameras", path=["Electronics", "Cameras"])

        match = controller.select_taxonomy_node(node)

        assert isinstance(match, TenantCategory)
        assert controller.selection.selected_tenant_category_id == "cat-9"
        assert controller.selection.create_suggestion is None
        repository.create_category.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_match_suggests_name_without_creating(
        self, make_controller, repository, electronics
    ):
        controller = make_controller()
        await controller.open()

        match = controller.select_taxonomy_node(electronics)

        assert match is None
        assert controller.selection.create_suggestion == "Electronics"
        assert controller.selection.selected_taxonomy_node == electronics
        assert controller.selection.selected_tenant_category_id is None
        repository.create_category.assert_not_called()

    @pytest.mark.asyncio
    async def test_multiple_matches_require_disambiguation(
        self, make_controller, repository, tenant_categories
    ):
        tenant_categories.append(
            TenantCategory(id="cat-10", name="Photo", slug="photo", google_category_id="5904")
        )
        controller = make_controller()
        await controller.open()
        node = TaxonomyNode(id="5904", name="Cameras", path=["Electronics", "Cameras"])

        match = controller.select_taxonomy_node(node)

        assert isinstance(match, list)
        assert [c.id for c in controller.selection.candidates] == ["cat-9", "cat-10"]
        assert controller.selection.selected_tenant_category_id is None

        assert await controller.assign() is None
        assert controller.selection.error_kind == "validation"

        assert controller.choose_candidate("cat-10") is True
        assert controller.selection.selected_tenant_category_id == "cat-10"
        assert controller.selection.candidates == ()

    @pytest.mark.asyncio
    async def test_choose_unknown_category_is_validation_failure(self, make_controller):
        controller = make_controller()
        await controller.open()

        assert controller.choose_candidate("nope") is False
        assert controller.selection.error_kind == "validation"

    @pytest.mark.asyncio
    async def test_select_by_taxonomy_id(self, make_controller, search_client, electronics):
        controller = make_controller()
        await controller.open()

        await controller.select_taxonomy_id("166")

        search_client.lookup.assert_awaited_once_with("166")
        assert controller.selection.selected_taxonomy_node == electronics
        assert controller.selection.create_suggestion == "Electronics"

    @pytest.mark.asyncio
    async def test_select_by_unknown_taxonomy_id(self, make_controller, search_client):
        search_client.lookup = AsyncMock(side_effect=LookupFailure("Taxonomy category not found"))
        controller = make_controller()
        await controller.open()

        assert await controller.select_taxonomy_id("999999") is None
        assert controller.selection.error == "Taxonomy category not found"


class TestCreateAndAssign:
    """Category creation on demand and item assignment."""

    @pytest.mark.asyncio
    async def test_electronics_scenario(self, make_controller, repository, assigner):
        controller = make_controller()
        await controller.open()

        controller.search("electro")
        await controller.wait_idle()
        node = controller.selection.search_results[0]
        controller.select_taxonomy_node(node)
        assert controller.selection.create_suggestion == "Electronics"

        created = await controller.confirm_create_new_category("Electronics")

        repository.create_category.assert_awaited_once_with(
            "tenant-001", "Electronics", google_category_id="166"
        )
        assert created is not None
        assert controller.selection.selected_tenant_category_id == "cat-new"
        assert any(c.id == "cat-new" for c in controller.tenant_categories)

        assigned = await controller.assign()

        assert assigned == "cat-new"
        assigner.assign.assert_awaited_once_with("tenant-001", "item-42", "cat-new")
        assert controller.assigned_category_id == "cat-new"
        assert controller.selection.selected_taxonomy_node is None
        assert controller.recent_category_ids == ["cat-new"]

    @pytest.mark.asyncio
    async def test_confirm_without_selection(self, make_controller, repository):
        controller = make_controller()
        await controller.open()

        assert await controller.confirm_create_new_category("Electronics") is None
        assert controller.selection.error_kind == "validation"
        repository.create_category.assert_not_called()

    @pytest.mark.asyncio
    async def test_confirm_with_blank_name(self, make_controller, repository, electronics):
        controller = make_controller()
        await controller.open()
        controller.select_taxonomy_node(electronics)

        assert await controller.confirm_create_new_category("   ") is None
        assert controller.selection.error == "Category name is required"
        repository.create_category.assert_not_called()

    @pytest.mark.asyncio
    async def test_creation_conflict_keeps_selection(self, make_controller, repository, electronics):
        repository.create_category = AsyncMock(
            side_effect=CreationConflict("Category with this slug already exists", status_code=409)
        )
        controller = make_controller()
        await controller.open()
        controller.select_taxonomy_node(electronics)

        assert await controller.confirm_create_new_category("Electronics") is None

        assert controller.selection.error == "Category with this slug already exists"
        assert controller.selection.error_kind == "creation"
        assert controller.selection.selected_taxonomy_node == electronics
        assert controller.selection.create_suggestion == "Electronics"
        assert all(c.id != "cat-new" for c in controller.tenant_categories)

    @pytest.mark.asyncio
    async def test_align_existing_category_to_selected_node(
        self, make_controller, repository, electronics
    ):
        controller = make_controller()
        await controller.open()
        controller.select_taxonomy_node(electronics)

        aligned = await controller.align_category("cat-1")

        repository.align_category.assert_awaited_once_with("tenant-001", "cat-1", "166")
        repository.create_category.assert_not_called()
        assert aligned is not None
        assert controller.selection.selected_tenant_category_id == "cat-1"
        assert controller.selection.create_suggestion is None
        cached = next(c for c in controller.tenant_categories if c.id == "cat-1")
        assert cached.google_category_id == "166"

        # The next selection of the same node resolves without creation
        controller.select_taxonomy_node(electronics)
        assert controller.selection.selected_tenant_category_id == "cat-1"

    @pytest.mark.asyncio
    async def test_align_requires_selected_node(self, make_controller, repository):
        controller = make_controller()
        await controller.open()

        assert await controller.align_category("cat-1") is None
        assert controller.selection.error == "Select a taxonomy category first"
        repository.align_category.assert_not_called()

    @pytest.mark.asyncio
    async def test_align_rejected_keeps_cached_list(self, make_controller, repository, electronics):
        repository.align_category = AsyncMock(
            side_effect=CreationConflict("Category already mapped", status_code=409)
        )
        controller = make_controller()
        await controller.open()
        controller.select_taxonomy_node(electronics)

        assert await controller.align_category("cat-1") is None

        assert controller.selection.error_kind == "creation"
        assert controller.selection.create_suggestion == "Electronics"
        assert next(c for c in controller.tenant_categories if c.id == "cat-1").google_category_id is None

    @pytest.mark.asyncio
    async def test_assign_without_category(self, make_controller, assigner):
        controller = make_controller()
        await controller.open()

        assert await controller.assign() is None
        assert controller.selection.error == "Please select a category"
        assigner.assign.assert_not_called()

    @pytest.mark.asyncio
    async def test_assignment_failure_preserves_state(self, make_controller, assigner):
        assigner.assign = AsyncMock(
            side_effect=AssignmentFailure("Internal server error", status_code=500)
        )
        controller = make_controller()
        await controller.open()
        node = TaxonomyNode(id="5904", name="Cameras", path=["Electronics", "Cameras"])
        controller.select_taxonomy_node(node)

        assert await controller.assign() is None

        assert controller.selection.error == "Internal server error"
        assert controller.selection.error_kind == "assignment"
        assert controller.selection.selected_tenant_category_id == "cat-9"
        assert controller.selection.selected_taxonomy_node == node
        assert controller.assigned_category_id is None
        assert controller.recent_category_ids == []


class TestCancelAndModes:
    """Mode switching and cancellation."""

    @pytest.mark.asyncio
    async def test_set_mode_resets_query_path_and_node(self, make_controller, electronics):
        controller = make_controller()
        await controller.open()
        controller.search("electro")
        await controller.wait_idle()
        controller.select_taxonomy_node(electronics)

        await controller.set_mode(SelectionMode.BROWSE)
        await controller.navigate_browse(["Animals & Pet Supplies"])
        await controller.set_mode(SelectionMode.SEARCH)

        selection = controller.selection
        assert selection.mode is SelectionMode.SEARCH
        assert selection.query == ""
        assert selection.browse_path == ()
        assert selection.selected_taxonomy_node is None
        assert selection.create_suggestion is None

    @pytest.mark.asyncio
    async def test_cancel_discards_state_without_writes(
        self, make_controller, search_client, repository, assigner, electronics
    ):
        controller = make_controller(debounce_seconds=0.05)
        await controller.open()
        controller.select_taxonomy_node(electronics)
        controller.search("electro")

        controller.cancel()
        await asyncio.sleep(0.1)

        search_client.search.assert_not_called()
        repository.create_category.assert_not_called()
        assigner.assign.assert_not_called()
        assert controller.selection.selected_taxonomy_node is None
        assert controller.selection.query == ""

    @pytest.mark.asyncio
    async def test_category_load_failure_is_reported(self, make_controller, repository):
        repository.list_categories = AsyncMock(side_effect=LookupFailure("Failed to load categories"))
        controller = make_controller()

        await controller.open()

        assert controller.tenant_categories == []
        assert controller.selection.error == "Failed to load categories"
