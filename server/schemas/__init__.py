"""Pydantic schemas for request/response validation."""

from server.schemas.common import ErrorDetail, ErrorResponse, HealthResponse, error_body
from server.schemas.fragments import (
    DeleteFragmentResponse,
    FragmentMetadata,
    FragmentResponse,
    ListFragmentsResponse,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "error_body",
    "DeleteFragmentResponse",
    "FragmentMetadata",
    "FragmentResponse",
    "ListFragmentsResponse",
]
