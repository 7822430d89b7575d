"""Pydantic schemas for request/response validation."""

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
from app.schemas.common import ErrorResponse, HealthResponse
from app.schemas.taxonomy import TaxonomyNode, TenantCategory

__all__ = [
    "BrowseRequest",
    "ChooseRequest",
    "CreateCategoryRequest",
    "ErrorResponse",
    "HealthResponse",
    "ModeRequest",
    "OpenSessionRequest",
    "SearchRequest",
    "SelectRequest",
    "SessionState",
    "TaxonomyNode",
    "TenantCategory",
]
