"""Backend Client - shared HTTP client for the catalog backend.

Owns the `httpx.AsyncClient` used by the taxonomy and tenant category
collaborators. Collaborators call `_get_client()` and handle their own
status codes so each can raise its own error type.
"""

import httpx

from app.config import settings
from app.infra.logging import get_logger

logger = get_logger(__name__)


class BackendClient:
    """HTTP client for the catalog backend API."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None) -> None:
        """Initialize backend client.

        Args:
            base_url: Backend base URL (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
        """
        self.base_url = base_url or settings.backend_url
        self.timeout = timeout if timeout is not None else settings.backend_timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        """Check that the backend answers its health endpoint.

        Returns:
            True if the backend responded with a 2xx status, False otherwise
        """
        client = await self._get_client()

        try:
            response = await client.get("/health")
            response.raise_for_status()
            return True

        except httpx.HTTPStatusError as e:
            logger.warning(
                "Backend health check returned error",
                status_code=e.response.status_code,
            )
            return False

        except httpx.HTTPError as e:
            logger.warning("Backend health check failed", error=str(e))
            return False


# Singleton instance
_backend_client: BackendClient | None = None


def get_backend_client() -> BackendClient:
    """Get backend client singleton."""
    global _backend_client
    if _backend_client is None:
        _backend_client = BackendClient()
    return _backend_client
