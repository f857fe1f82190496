"""Pydantic schemas for fragment endpoints."""

from typing import List, Union

from pydantic import BaseModel

from fragments.fragment import Fragment


class FragmentMetadata(BaseModel):
    """Fragment metadata as sent over the wire."""
    id: str
    ownerId: str
    created: str
    updated: str
    type: str
    size: int

    @classmethod
    def from_fragment(cls, fragment: Fragment) -> "FragmentMetadata":
        return cls(**fragment.to_dict())


class FragmentResponse(BaseModel):
    """Response model for a single fragment's metadata."""
    status: str = "ok"
    fragment: FragmentMetadata


class ListFragmentsResponse(BaseModel):
    """Response model for fragment listing (ids, or metadata when expanded)."""
    status: str = "ok"
    fragments: Union[List[str], List[FragmentMetadata]]


class DeleteFragmentResponse(BaseModel):
    """Response model for fragment deletion."""
    status: str = "ok"
