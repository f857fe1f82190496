"""Service layer for fragment operations."""

from fragments.services.fragment_service import FragmentData, FragmentService

__all__ = [
    "FragmentData",
    "FragmentService",
]
