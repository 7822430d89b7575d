"""Category assignment session endpoints.

A session is one open assignment dialog. Workflow failures (lookup,
validation, creation, assignment) do not change the HTTP status: they are
reported in the returned state's `error` field, and the session stays
usable for a retry.
"""

from fastapi import APIRouter, HTTPException, Query, status

from app.api.deps import Session, Store, TenantId
from app.core.reconcile import filter_tenant_categories
from app.core.session_store import AssignmentSession
from app.infra.logging import get_logger
from app.schemas.assignment import (
    BrowseRequest,
    ChooseRequest,
    CreateCategoryRequest,
    ModeRequest,
    OpenSessionRequest,
    SearchRequest,
    SelectRequest,
    SessionState,
)
from app.schemas.taxonomy import TenantCategory

router = APIRouter()
logger = get_logger(__name__)


def _state(session: AssignmentSession) -> SessionState:
    controller = session.controller
    selection = controller.selection
    return SessionState(
        session_id=session.session_id,
        tenant_id=session.tenant_id,
        item_id=controller.item_id,
        mode=selection.mode.value,
        query=selection.query,
        browse_path=list(selection.browse_path),
        breadcrumb=selection.breadcrumb,
        search_results=list(selection.search_results),
        browse_results=list(selection.browse_results),
        search_loading=selection.search_loading,
        browse_loading=selection.browse_loading,
        selected_taxonomy_node=selection.selected_taxonomy_node,
        selected_tenant_category_id=selection.selected_tenant_category_id,
        candidates=list(selection.candidates),
        create_suggestion=selection.create_suggestion,
        tenant_categories=controller.tenant_categories,
        recent_category_ids=controller.recent_category_ids,
        assigned_category_id=controller.assigned_category_id,
        error=selection.error,
        error_kind=selection.error_kind,
    )


@router.post(
    "",
    response_model=SessionState,
    status_code=status.HTTP_201_CREATED,
    summary="Open a category assignment session for an item",
)
async def open_session(request: OpenSessionRequest, tenant_id: TenantId, store: Store) -> SessionState:
    session = await store.open(tenant_id, request.item_id, mode=request.mode)
    return _state(session)


@router.get("/{session_id}", response_model=SessionState)
async def get_state(
    session: Session,
    wait: bool = Query(default=False, description="Wait for a pending search to settle"),
) -> SessionState:
    if wait:
        await session.controller.wait_idle()
    return _state(session)


@router.post("/{session_id}/mode", response_model=SessionState)
async def set_mode(request: ModeRequest, session: Session) -> SessionState:
    await session.controller.set_mode(request.mode)
    return _state(session)


@router.post("/{session_id}/search", response_model=SessionState)
async def search(
    request: SearchRequest,
    session: Session,
    wait: bool = Query(default=False, description="Wait for the debounced search to complete"),
) -> SessionState:
    """Schedule a debounced taxonomy search.

    Without `wait` the response reflects the state right after scheduling
    (`search_loading` true); poll `GET /sessions/{id}` for results.
    """
    session.controller.search(request.query)
    if wait:
        await session.controller.wait_idle()
    return _state(session)


@router.post("/{session_id}/browse", response_model=SessionState)
async def browse(request: BrowseRequest, session: Session) -> SessionState:
    await session.controller.navigate_browse(request.path)
    return _state(session)


@router.post("/{session_id}/select", response_model=SessionState)
async def select(request: SelectRequest, session: Session) -> SessionState:
    controller = session.controller

    if request.taxonomy_id:
        await controller.select_taxonomy_id(request.taxonomy_id)
        return _state(session)

    visible = (*controller.selection.search_results, *controller.selection.browse_results)
    node = next((n for n in visible if n.id == request.node_id), None)
    if node is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Taxonomy node not in current results: {request.node_id}",
        )
    controller.select_taxonomy_node(node)
    return _state(session)


@router.post("/{session_id}/choose", response_model=SessionState)
async def choose(request: ChooseRequest, session: Session) -> SessionState:
    session.controller.choose_candidate(request.category_id)
    return _state(session)


@router.post("/{session_id}/create", response_model=SessionState)
async def create_category(request: CreateCategoryRequest, session: Session) -> SessionState:
    await session.controller.confirm_create_new_category(request.name)
    return _state(session)


@router.post("/{session_id}/align", response_model=SessionState)
async def align_category(request: ChooseRequest, session: Session) -> SessionState:
    """Link an existing tenant category to the selected taxonomy node."""
    await session.controller.align_category(request.category_id)
    return _state(session)


@router.post("/{session_id}/assign", response_model=SessionState)
async def assign(session: Session) -> SessionState:
    category_id = await session.controller.assign()
    if category_id:
        logger.info(
            "Assignment session completed",
            session_id=session.session_id,
            tenant_id=session.tenant_id,
            tenant_category_id=category_id,
        )
    return _state(session)


@router.post("/{session_id}/retry", response_model=SessionState)
async def retry(session: Session) -> SessionState:
    await session.controller.retry()
    return _state(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel(session: Session, store: Store) -> None:
    session.controller.cancel()
    await store.discard(session.session_id)


@router.get("/{session_id}/categories", response_model=list[TenantCategory])
async def list_categories(
    session: Session,
    query: str = Query(default="", max_length=100, description="Name or slug substring"),
    mapped_only: bool = Query(default=False, description="Only categories linked to a taxonomy node"),
) -> list[TenantCategory]:
    """Tenant categories loaded for this session, for picking one directly."""
    return filter_tenant_categories(session.controller.tenant_categories, query, mapped_only)
