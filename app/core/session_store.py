"""In-memory store of open category assignment sessions.

Each session wraps one CategoryAssignmentController. Idle sessions are
discarded by a periodic sweep, the same way a user abandoning the dialog
discards its state.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from app.config import settings
from app.core.controller import CategoryAssignmentController
from app.core.selection import SelectionMode
from app.infra.logging import get_logger

logger = get_logger(__name__)

ControllerFactory = Callable[..., CategoryAssignmentController]


@dataclass
class AssignmentSession:
    """One open assignment dialog.

    Attributes:
        session_id: Opaque identifier handed to the client
        tenant_id: Owning tenant; other tenants never see the session
        controller: Workflow state for this session
        last_seen: Monotonic timestamp of the last access
    """

    session_id: str
    tenant_id: str
    controller: CategoryAssignmentController
    last_seen: float = field(default_factory=time.monotonic)

    def touch(self) -> None:
        self.last_seen = time.monotonic()


class AssignmentSessionStore:
    """Tenant-scoped registry of assignment sessions with idle expiry."""

    def __init__(
        self,
        ttl_seconds: float | None = None,
        sweep_interval_seconds: float | None = None,
        controller_factory: ControllerFactory | None = None,
    ) -> None:
        """Initialize the session store.

        Args:
            ttl_seconds: Idle time before a session expires
            sweep_interval_seconds: Interval between expiry sweeps
            controller_factory: Builds a controller from (tenant_id, item_id, mode=...)
        """
        self._sessions: dict[str, AssignmentSession] = {}
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.session_ttl_seconds
        self._sweep_interval = (
            sweep_interval_seconds
            if sweep_interval_seconds is not None
            else settings.session_sweep_interval_seconds
        )
        self._factory = controller_factory or CategoryAssignmentController
        self._lock = asyncio.Lock()
        self._sweep_task: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        return len(self._sessions)

    async def open(
        self,
        tenant_id: str,
        item_id: str,
        mode: SelectionMode | str = SelectionMode.SEARCH,
    ) -> AssignmentSession:
        """Create a session and load its initial data."""
        controller = self._factory(tenant_id, item_id, mode=SelectionMode(mode))
        await controller.open()

        session = AssignmentSession(
            session_id=uuid.uuid4().hex,
            tenant_id=tenant_id,
            controller=controller,
        )
        async with self._lock:
            self._sessions[session.session_id] = session

        logger.info(
            "Assignment session opened",
            session_id=session.session_id,
            tenant_id=tenant_id,
            item_id=item_id,
            mode=controller.selection.mode.value,
        )
        return session

    async def get(self, session_id: str, tenant_id: str) -> AssignmentSession | None:
        """Get a session owned by `tenant_id`.

        Returns:
            The session, or None if unknown or owned by another tenant
        """
        async with self._lock:
            session = self._sessions.get(session_id)

        if session is None or session.tenant_id != tenant_id:
            logger.debug("Session not found", session_id=session_id, tenant_id=tenant_id)
            return None

        session.touch()
        return session

    async def discard(self, session_id: str) -> None:
        async with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            await session.controller.close()
            logger.debug("Assignment session discarded", session_id=session_id)

    async def sweep(self) -> int:
        """Discard sessions idle for longer than the TTL.

        Returns:
            Number of sessions discarded
        """
        cutoff = time.monotonic() - self._ttl
        async with self._lock:
            expired = [s for s in self._sessions.values() if s.last_seen < cutoff]
            for session in expired:
                del self._sessions[session.session_id]

        for session in expired:
            session.controller.cancel()
            await session.controller.close()

        if expired:
            logger.info("Expired assignment sessions discarded", count=len(expired))
        return len(expired)

    async def start_sweep_loop(self) -> None:
        """Start periodic expiry in background."""
        if self._sweep_task is not None:
            logger.warning("Sweep loop already running")
            return

        logger.info("Starting session sweep loop", interval_seconds=self._sweep_interval)
        self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        """Stop the sweep loop and close every session."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                logger.info("Sweep loop cancelled successfully")
            self._sweep_task = None

        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            await session.controller.close()

    async def _sweep_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._sweep_interval)
                await self.sweep()
            except asyncio.CancelledError:
                logger.info("Sweep loop cancelled")
                raise
            except Exception as e:
                logger.error(
                    "Error in sweep loop, will retry after interval",
                    error=str(e),
                    interval_seconds=self._sweep_interval,
                    exc_info=True,
                )


# Global singleton instance
_session_store: AssignmentSessionStore | None = None


def get_session_store() -> AssignmentSessionStore:
    """Get or create the global session store singleton."""
    global _session_store

    if _session_store is None:
        _session_store = AssignmentSessionStore()
        logger.info("Created global AssignmentSessionStore singleton")

    return _session_store
