"""Normalization of catalog backend payloads.

The backend has answered the same question with slightly different shapes
over time (`results` vs `categories`, bare lists vs `data` envelopes). All
shape handling lives here so the rest of the service only ever sees
`TaxonomyNode` and `TenantCategory`.
"""

from typing import Any

import httpx
from pydantic import ValidationError

from app.core.errors import CategoryWorkflowError, LookupFailure
from app.schemas.taxonomy import TaxonomyNode, TenantCategory


def _unwrap_list(data: Any, *keys: str) -> list[Any]:
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        raise LookupFailure(f"Unexpected response type: {type(data).__name__}")
    if data.get("success") is False:
        raise LookupFailure(str(data.get("error") or "Backend reported failure"))
    for key in keys:
        value = data.get(key)
        if isinstance(value, list):
            return value
    return []


def parse_taxonomy_nodes(data: Any) -> list[TaxonomyNode]:
    """Parse a search or browse response into taxonomy nodes.

    Accepts `{results: [...]}`, `{success, categories: [...]}` and bare lists.
    A response with no recognised list is treated as zero results.

    Raises:
        LookupFailure: If the backend flagged failure or a node is malformed
    """
    items = _unwrap_list(data, "results", "categories")
    try:
        return [TaxonomyNode.model_validate(item) for item in items]
    except ValidationError as e:
        raise LookupFailure(f"Malformed taxonomy node: {e.errors()[0]['msg']}") from e


def parse_taxonomy_node(data: Any) -> TaxonomyNode:
    """Parse a single-node lookup response (`{id, path}` or `{data: {...}}`)."""
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        data = data["data"]
    try:
        return TaxonomyNode.model_validate(data)
    except ValidationError as e:
        raise LookupFailure("Taxonomy category not found") from e


def parse_tenant_categories(data: Any) -> list[TenantCategory]:
    """Parse the tenant category list (`{data: [...]}` or a bare list)."""
    items = _unwrap_list(data, "data", "categories")
    try:
        return [TenantCategory.model_validate(item) for item in items]
    except ValidationError as e:
        raise LookupFailure(f"Malformed tenant category: {e.errors()[0]['msg']}") from e


def parse_tenant_category(
    data: Any,
    error_cls: type[CategoryWorkflowError] = LookupFailure,
) -> TenantCategory:
    """Parse a created/updated tenant category (`{data: {...}}` or the record).

    Raises:
        error_cls: If the body does not describe a category
    """
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        data = data["data"]
    try:
        return TenantCategory.model_validate(data)
    except ValidationError as e:
        raise error_cls("Backend returned an invalid category") from e


def response_json(
    response: httpx.Response,
    error_cls: type[CategoryWorkflowError] = LookupFailure,
) -> Any:
    """Decode a successful response body.

    Raises:
        error_cls: If the body is not JSON (e.g. a proxy error page)
    """
    try:
        return response.json()
    except ValueError as e:
        raise error_cls(
            "Backend returned an invalid response", status_code=response.status_code
        ) from e


def error_message(response: httpx.Response, default: str) -> str:
    """Extract the server's error message verbatim, falling back to `default`."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:500] if text else default
    if isinstance(body, dict):
        message = body.get("error") or body.get("message") or body.get("detail")
        if isinstance(message, str) and message:
            return message
    return default
