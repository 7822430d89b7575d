"""FastAPI dependencies for dependency injection.

Provides:
- Tenant id from the request header
- Assignment session store
- Session lookup scoped to the tenant
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Path, status

from app.core.session_store import AssignmentSession, AssignmentSessionStore, get_session_store
from app.infra.logging import get_logger

logger = get_logger(__name__)


async def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header()] = None,
) -> str:
    """Extract tenant ID from request header.

    Every operation is tenant-scoped, so the header is mandatory.

    Args:
        x_tenant_id: Tenant ID header

    Returns:
        Tenant ID string

    Raises:
        HTTPException: If tenant ID is missing or malformed
    """
    if not x_tenant_id:
        logger.debug("Rejected request without X-Tenant-Id header")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-Id header is required",
        )
    if ".." in x_tenant_id or "/" in x_tenant_id or "\\" in x_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid tenant id format",
        )
    return x_tenant_id


async def get_store() -> AssignmentSessionStore:
    """Get session store dependency."""
    return get_session_store()


TenantId = Annotated[str, Depends(get_tenant_id)]
Store = Annotated[AssignmentSessionStore, Depends(get_store)]


async def get_session(
    session_id: Annotated[str, Path()],
    tenant_id: TenantId,
    store: Store,
) -> AssignmentSession:
    """Resolve a session owned by the requesting tenant.

    Raises:
        HTTPException: 404 if the session is unknown, expired or foreign
    """
    session = await store.get(session_id, tenant_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Assignment session not found: {session_id}",
        )
    return session


Session = Annotated[AssignmentSession, Depends(get_session)]
