"""Fragment service: the operations exposed to the HTTP layer."""

import functools
from dataclasses import dataclass
from typing import Optional

from common.logging_config import get_logger
from fragments.exceptions import (
    BadRequestError,
    FragmentsError,
    InternalError,
    UnsupportedMediaTypeError,
)
from fragments.fragment import Fragment
from fragments.media_types import extension_for, media_type_for, normalize_content_type
from fragments.result import Err, Ok, Result
from fragments.storage.base import StorageBackend

logger = get_logger(__name__)


@dataclass(frozen=True)
class FragmentData:
    data: bytes
    content_type: str


def returns_result(operation: str):
    """
    Turn a coroutine that returns a value or raises into one returning a Result.

    FragmentsError becomes Err as is. Any other exception is logged with the
    operation context and wrapped in an InternalError.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, owner_id: str, *args, **kwargs) -> Result:
            try:
                return Ok(await func(self, owner_id, *args, **kwargs))
            except FragmentsError as e:
                if e.status_code >= 500:
                    logger.error(f"{operation} failed [owner_id={owner_id}]: {e}")
                else:
                    logger.debug(f"{operation} rejected [owner_id={owner_id}]: {e}")
                return Err(e)
            except Exception as e:
                logger.error(
                    f"{operation} failed with unexpected error [owner_id={owner_id}] [args={args}]: {e}",
                    exc_info=True
                )
                return Err(InternalError(f"unable to {operation} fragment"))
        return wrapper
    return decorator


class FragmentService:
    def __init__(self, store: StorageBackend):
        self.store = store

    @returns_result("create")
    async def create_fragment(self, owner_id: str, content_type: str, data: bytes) -> Fragment:
        if media_type_for(content_type) is None:
            raise UnsupportedMediaTypeError(f"Unsupported content type: {content_type}")

        fragment = Fragment(owner_id=owner_id, type=content_type, store=self.store)
        await fragment.write(data)
        logger.info(
            f"Fragment created [owner_id={owner_id}] [fragment_id={fragment.id}] "
            f"[type={fragment.type}] [size={fragment.size}]"
        )
        return fragment

    @returns_result("list")
    async def list_fragments(self, owner_id: str, expand: bool = False):
        return await Fragment.by_user(self.store, owner_id, expand)

    @returns_result("read")
    async def get_fragment(self, owner_id: str, fragment_id: str) -> Fragment:
        return await Fragment.by_id(self.store, owner_id, fragment_id)

    @returns_result("read")
    async def get_fragment_data(
        self,
        owner_id: str,
        fragment_id: str,
        extension: Optional[str] = None,
    ) -> FragmentData:
        """
        Without an extension, return the stored payload and type. With one,
        return the payload converted to it and the extension's media type.
        """
        target = None
        if extension is not None:
            target = extension_for(extension)
            if target is None:
                raise UnsupportedMediaTypeError(f"Unknown extension: {extension}")

        fragment = await Fragment.by_id(self.store, owner_id, fragment_id)

        if target is None:
            return FragmentData(data=await fragment.get_data(), content_type=fragment.type)

        data = await fragment.convert_to(target)
        return FragmentData(data=data, content_type=target.media_type.value)

    @returns_result("update")
    async def update_fragment(
        self,
        owner_id: str,
        fragment_id: str,
        content_type: str,
        data: bytes,
    ) -> Fragment:
        if media_type_for(content_type) is None:
            raise UnsupportedMediaTypeError(f"Unsupported content type: {content_type}")

        fragment = await Fragment.by_id(self.store, owner_id, fragment_id)
        if normalize_content_type(content_type) != normalize_content_type(fragment.type):
            logger.debug(
                f"Rejected update with different content type [fragment_id={fragment_id}] "
                f"[stored={fragment.type}] [received={content_type}]"
            )
            raise BadRequestError("Content-Type does not match existing fragment's content type")

        await fragment.write(data)
        logger.info(
            f"Fragment updated [owner_id={owner_id}] [fragment_id={fragment_id}] [size={fragment.size}]"
        )
        return fragment

    @returns_result("delete")
    async def delete_fragment(self, owner_id: str, fragment_id: str) -> None:
        await Fragment.by_id(self.store, owner_id, fragment_id)
        await Fragment.delete(self.store, owner_id, fragment_id)
