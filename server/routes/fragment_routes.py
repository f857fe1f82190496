"""Fragment API routes."""

from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Query, Request, Response, status

from common.constants import API_VERSION_PREFIX
from common.logging_config import get_logger
from fragments.exceptions import BadRequestError, PayloadTooLargeError, UnsupportedMediaTypeError
from fragments.media_types import is_supported_type
from fragments.result import unwrap
from fragments.services.fragment_service import FragmentService
from server.auth import get_current_owner
from server.schemas.fragments import (
    DeleteFragmentResponse,
    FragmentMetadata,
    FragmentResponse,
    ListFragmentsResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix=f"{API_VERSION_PREFIX}/fragments", tags=["Fragments"])


def get_fragment_service(request: Request) -> FragmentService:
    return request.app.state.fragment_service


async def read_fragment_body(request: Request) -> Tuple[str, bytes]:
    """
    Validate the Content-Type header, then read the raw body up to the size ceiling.

    The type is checked before any of the body is read, so unsupported
    payloads are rejected without being transferred.

    Returns:
        (content_type, body bytes)

    Raises:
        UnsupportedMediaTypeError: Missing or unsupported Content-Type
        PayloadTooLargeError: Body exceeds the configured ceiling
    """
    content_type = request.headers.get("content-type")
    if not content_type or not is_supported_type(content_type):
        logger.warning(f"{request.method} {request.url.path} received unsupported media type [type={content_type}]")
        raise UnsupportedMediaTypeError()

    max_body_bytes = request.app.state.settings.max_body_bytes

    declared_length = request.headers.get("content-length")
    if declared_length is not None and declared_length.isdigit() and int(declared_length) > max_body_bytes:
        raise PayloadTooLargeError(f"Fragment data must not exceed {max_body_bytes} bytes")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_body_bytes:
            raise PayloadTooLargeError(f"Fragment data must not exceed {max_body_bytes} bytes")

    return content_type, bytes(body)


@router.get("", response_model=ListFragmentsResponse)
async def list_fragments(
    expand: Optional[str] = Query(None, description="Set to 1 to return full metadata"),
    owner_id: str = Depends(get_current_owner),
    service: FragmentService = Depends(get_fragment_service),
):
    """
    List the current user's fragments.

    Parameters:
        - expand: "1" to return full metadata instead of ids

    Raises:
        - 400: Invalid expand value
        - 401: Missing or invalid credentials
    """
    if expand is not None and expand != "1":
        raise BadRequestError(
            f"Invalid value for 'expand' query parameter. Expected '1', got '{expand}' instead."
        )

    fragments = unwrap(await service.list_fragments(owner_id, expand == "1"))
    if expand == "1":
        fragments = [FragmentMetadata.from_fragment(fragment) for fragment in fragments]
    return ListFragmentsResponse(fragments=fragments)


@router.post("", response_model=FragmentResponse, status_code=status.HTTP_201_CREATED)
async def create_fragment(
    request: Request,
    response: Response,
    owner_id: str = Depends(get_current_owner),
    service: FragmentService = Depends(get_fragment_service),
):
    """
    Create a fragment from the raw request body.

    Returns:
        - fragment: metadata of the new fragment, with a Location header

    Raises:
        - 401: Missing or invalid credentials
        - 413: Body too large
        - 415: Unsupported Content-Type
    """
    content_type, body = await read_fragment_body(request)
    fragment = unwrap(await service.create_fragment(owner_id, content_type, body))

    api_url = request.app.state.settings.api_url
    response.headers["Location"] = f"{api_url}{API_VERSION_PREFIX}/fragments/{fragment.id}"
    return FragmentResponse(fragment=FragmentMetadata.from_fragment(fragment))


@router.get("/{fragment_id}/info", response_model=FragmentResponse)
async def get_fragment_info(
    fragment_id: str,
    owner_id: str = Depends(get_current_owner),
    service: FragmentService = Depends(get_fragment_service),
):
    """
    Get a fragment's metadata.

    Raises:
        - 401: Missing or invalid credentials
        - 404: Fragment not found
    """
    fragment = unwrap(await service.get_fragment(owner_id, fragment_id))
    return FragmentResponse(fragment=FragmentMetadata.from_fragment(fragment))


@router.get("/{fragment_id}")
async def get_fragment_data(
    fragment_id: str,
    owner_id: str = Depends(get_current_owner),
    service: FragmentService = Depends(get_fragment_service),
):
    """
    Get a fragment's data, optionally converted: ``/fragments/{id}.html``.

    Raises:
        - 401: Missing or invalid credentials
        - 404: Fragment not found
        - 415: Extension unknown or not convertible from the fragment's type
    """
    fragment_id, _, extension = fragment_id.partition(".")
    result = unwrap(await service.get_fragment_data(owner_id, fragment_id, extension or None))
    return Response(content=result.data, media_type=result.content_type)


@router.put("/{fragment_id}", response_model=FragmentResponse)
async def update_fragment(
    fragment_id: str,
    request: Request,
    owner_id: str = Depends(get_current_owner),
    service: FragmentService = Depends(get_fragment_service),
):
    """
    Replace a fragment's data. The Content-Type must match the fragment's type.

    Raises:
        - 400: Content-Type differs from the fragment's type
        - 401: Missing or invalid credentials
        - 404: Fragment not found
        - 415: Unsupported Content-Type
    """
    content_type, body = await read_fragment_body(request)
    fragment = unwrap(await service.update_fragment(owner_id, fragment_id, content_type, body))
    return FragmentResponse(fragment=FragmentMetadata.from_fragment(fragment))


@router.delete("/{fragment_id}", response_model=DeleteFragmentResponse)
async def delete_fragment(
    fragment_id: str,
    owner_id: str = Depends(get_current_owner),
    service: FragmentService = Depends(get_fragment_service),
):
    """
    Delete a fragment's metadata and data.

    Raises:
        - 401: Missing or invalid credentials
        - 404: Fragment not found
    """
    unwrap(await service.delete_fragment(owner_id, fragment_id))
    return DeleteFragmentResponse()
