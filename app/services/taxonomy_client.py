"""Taxonomy clients - search and browse the external product taxonomy.

The taxonomy is read-only and owned by the catalog backend. Search returns
relevance-ranked matches in backend order; browse returns the immediate
children of one node.
"""

from collections.abc import Iterator, Sequence

import httpx

from app.core.errors import LookupFailure
from app.infra.logging import get_logger
from app.schemas.taxonomy import PATH_SEPARATOR, TaxonomyNode
from app.services.backend_client import BackendClient, get_backend_client
from app.services.payloads import (
    error_message,
    parse_taxonomy_node,
    parse_taxonomy_nodes,
    response_json,
)

logger = get_logger(__name__)

SEARCH_PATH = "/api/taxonomy/search"
BROWSE_PATH = "/api/taxonomy/browse"
LOOKUP_PATH = "/public/google-taxonomy/{node_id}"


async def _get_json(backend: BackendClient, url: str, params: dict[str, str] | None = None):
    client = await backend._get_client()
    try:
        response = await client.get(url, params=params)
    except httpx.HTTPError as e:
        raise LookupFailure(f"Taxonomy service unreachable: {e}") from e

    if response.status_code >= 400:
        raise LookupFailure(
            error_message(response, "Taxonomy lookup failed"),
            status_code=response.status_code,
        )

    return response_json(response)


class TaxonomySearchClient:
    """Free-text relevance search over the taxonomy."""

    def __init__(self, backend: BackendClient | None = None) -> None:
        self._backend = backend or get_backend_client()

    async def search(self, query: str, limit: int | None = None) -> Iterator[TaxonomyNode]:
        """Search taxonomy nodes by name or path fragment.

        Ranking is the backend's; no client-side reordering happens here.

        Args:
            query: Text fragment (callers enforce the minimum length)
            limit: Optional maximum number of results

        Returns:
            One-shot iterator over matches; empty when nothing matched

        Raises:
            LookupFailure: On transport errors, non-2xx status or bad payload
        """
        params = {"q": query}
        if limit is not None:
            params["limit"] = str(limit)

        data = await _get_json(self._backend, SEARCH_PATH, params)
        nodes = parse_taxonomy_nodes(data)

        logger.debug("Taxonomy search completed", query=query, results=len(nodes))
        return iter(nodes)

    async def lookup(self, node_id: str) -> TaxonomyNode:
        """Fetch a single taxonomy node by id.

        Raises:
            LookupFailure: If the id is unknown or the request failed
        """
        node_id = node_id.strip()
        if not node_id:
            raise LookupFailure("Taxonomy id is required")
        if ".." in node_id or "/" in node_id or "\\" in node_id:
            raise LookupFailure(f"Invalid taxonomy id: {node_id}")

        data = await _get_json(self._backend, LOOKUP_PATH.format(node_id=node_id))
        # The public endpoint may answer with only the path
        if isinstance(data, dict) and "id" not in data and "data" not in data:
            data = {**data, "id": node_id}
        node = parse_taxonomy_node(data)

        logger.debug("Taxonomy node looked up", node_id=node.id, path=node.full_path)
        return node


class TaxonomyBrowseClient:
    """Hierarchical, one-level-at-a-time navigation of the taxonomy."""

    def __init__(self, backend: BackendClient | None = None) -> None:
        self._backend = backend or get_backend_client()

    async def browse(self, parent_path: Sequence[str] | None = None) -> tuple[TaxonomyNode, ...]:
        """List the immediate children of `parent_path` (root when empty).

        Every child must sit exactly one level below the requested path with
        its ancestors unchanged, otherwise breadcrumbs would drift from the
        list they describe.

        Args:
            parent_path: Ancestor names from root; None or empty for root

        Returns:
            Children in backend order

        Raises:
            LookupFailure: On request failure or an inconsistent response
        """
        parent = tuple(parent_path or ())
        params = {"parent": PATH_SEPARATOR.join(parent)} if parent else None

        data = await _get_json(self._backend, BROWSE_PATH, params)
        nodes = parse_taxonomy_nodes(data)

        for node in nodes:
            if len(node.path) != len(parent) + 1 or node.path[: len(parent)] != parent:
                logger.warning(
                    "Browse response does not match requested path",
                    parent=list(parent),
                    node_id=node.id,
                    node_path=list(node.path),
                )
                raise LookupFailure(
                    f"Browse returned '{node.full_path}' outside "
                    f"'{PATH_SEPARATOR.join(parent) or 'Root'}'"
                )

        logger.debug("Taxonomy browse completed", parent=list(parent), children=len(nodes))
        return tuple(nodes)
