"""Fragment entity: a typed, owned content blob with metadata and payload."""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from common.logging_config import get_logger
from fragments import conversion
from fragments.directory import list_fragments
from fragments.exceptions import InternalError, NotFoundError, ValidationError
from fragments.media_types import (
    CONVERSIONS,
    Extension,
    MediaType,
    is_supported_type,
    media_type_for,
    parse_content_type,
)
from fragments.storage.base import StorageBackend

logger = get_logger(__name__)

BINARY_TYPES = (bytes, bytearray, memoryview)


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_fragment_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Fragment:
    """
    A fragment's metadata, bound to the storage backend that holds it.

    Metadata (save) and payload (set_data) are persisted by two separate
    calls. write() performs both in the order that keeps the stored size in
    step with the stored payload.
    """

    owner_id: Optional[str] = None
    type: Optional[str] = None
    id: Optional[str] = None
    created: Optional[str] = None
    updated: Optional[str] = None
    size: int = 0
    store: Optional[StorageBackend] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if not (self.owner_id and self.type):
            logger.debug(
                f"Got fragment with invalid owner_id and/or type [owner_id={self.owner_id}] [type={self.type}]"
            )
            raise ValidationError(
                f"owner_id and type fields are required, got owner_id={self.owner_id}, type={self.type}"
            )
        if not isinstance(self.owner_id, str):
            raise ValidationError("owner_id must be a string")
        if not Fragment.is_supported_type(self.type):
            logger.debug(f"Got fragment with invalid type [type={self.type}]")
            raise ValidationError(f"Unsupported fragment type: {self.type}")
        if isinstance(self.size, bool) or not isinstance(self.size, int) or self.size < 0:
            logger.debug(f"Got fragment with invalid size [size={self.size!r}]")
            raise ValidationError("size must be a non-negative integer")

        now = utc_now_iso()
        self.id = self.id or generate_fragment_id()
        self.created = self.created or now
        self.updated = self.updated or now

    def _require_store(self) -> StorageBackend:
        if self.store is None:
            raise InternalError(f"Fragment {self.id} is not bound to a storage backend")
        return self.store

    @staticmethod
    def _log_backend_error(operation: str, owner_id: str, fragment_id: str, err: Exception) -> None:
        logger.error(
            f"Storage operation failed [operation={operation}] [owner_id={owner_id}] "
            f"[fragment_id={fragment_id}]: {err}",
            exc_info=err
        )

    @classmethod
    async def by_user(
        cls,
        store: StorageBackend,
        owner_id: str,
        expand: bool = False,
    ) -> List[Union[str, "Fragment"]]:
        """
        Get all fragments (ids or full fragments) for the given owner.

        Args:
            store: Storage backend
            owner_id: Owner's opaque id
            expand: Whether to expand ids to full fragments

        Returns:
            List of ids, or of Fragment objects when expand is True
        """
        try:
            fragments = await list_fragments(store, owner_id, expand)
        except Exception as e:
            cls._log_backend_error("list", owner_id, "*", e)
            raise

        if not expand:
            return fragments
        return [cls.from_dict(record, store=store) for record in fragments]

    @classmethod
    async def by_id(cls, store: StorageBackend, owner_id: str, fragment_id: str) -> "Fragment":
        """
        Get an owner's fragment by id.

        Raises:
            NotFoundError: If no metadata exists for (owner_id, fragment_id)
        """
        try:
            record = await store.metadata.get(owner_id, fragment_id)
        except Exception as e:
            cls._log_backend_error("read", owner_id, fragment_id, e)
            raise

        if record is None:
            raise NotFoundError(f"Fragment {fragment_id} not found")
        return cls.from_dict(record, store=store)

    @classmethod
    async def delete(cls, store: StorageBackend, owner_id: str, fragment_id: str) -> None:
        """
        Delete an owner's fragment metadata and payload.

        Both removals are always attempted. A half that is already absent is
        not an error, so deleting twice is a no-op. If either removal fails the
        first error is raised and the other half is left as it ended up.
        """
        results = await asyncio.gather(
            store.metadata.delete(owner_id, fragment_id),
            store.blobs.delete(owner_id, fragment_id),
            return_exceptions=True,
        )

        errors = [result for result in results if isinstance(result, BaseException)]
        for err in errors:
            cls._log_backend_error("delete", owner_id, fragment_id, err)
        if errors:
            raise errors[0]

        logger.info(f"Fragment deleted [owner_id={owner_id}] [fragment_id={fragment_id}]")

    async def save(self) -> None:
        """Refresh the updated timestamp and persist metadata (last write wins)."""
        store = self._require_store()
        self.updated = utc_now_iso()
        try:
            await store.metadata.put(self.owner_id, self.id, self.to_dict())
        except Exception as e:
            self._log_backend_error("save", self.owner_id, self.id, e)
            raise

    async def get_data(self) -> bytes:
        """
        Get the fragment's payload.

        Raises:
            NotFoundError: If no payload is stored for this fragment
        """
        store = self._require_store()
        try:
            data = await store.blobs.get(self.owner_id, self.id)
        except Exception as e:
            self._log_backend_error("read_data", self.owner_id, self.id, e)
            raise

        if data is None:
            raise NotFoundError(f"Data for fragment {self.id} not found")
        return data

    async def set_data(self, data: bytes) -> None:
        """
        Persist the fragment's payload and recompute its size.

        Does not save metadata; call save() afterwards, or use write().

        Raises:
            ValidationError: If data is not a bytes-like buffer
        """
        if not isinstance(data, BINARY_TYPES):
            raise ValidationError(f"data must be bytes, got {type(data).__name__}")

        store = self._require_store()
        data = bytes(data)
        self.updated = utc_now_iso()
        self.size = len(data)
        try:
            await store.blobs.put(self.owner_id, self.id, data)
        except Exception as e:
            self._log_backend_error("write_data", self.owner_id, self.id, e)
            raise

    async def write(self, data: bytes) -> None:
        """Persist payload then metadata."""
        await self.set_data(data)
        await self.save()

    @property
    def mime_type(self) -> str:
        """The type without parameters: "text/html; charset=utf-8" -> "text/html"."""
        return parse_content_type(self.type)

    @property
    def media_type(self) -> Optional[MediaType]:
        return media_type_for(self.type)

    @property
    def is_text(self) -> bool:
        return self.mime_type.startswith("text/")

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    @property
    def formats(self) -> List[str]:
        """Media types this fragment can be converted into."""
        media_type = self.media_type
        if media_type is None:
            return []
        return [extension.media_type.value for extension in CONVERSIONS[media_type]]

    def is_convertible_to(self, extension: Union[str, Extension]) -> bool:
        return conversion.is_convertible_to(self, extension)

    async def convert_to(self, extension: Union[str, Extension]) -> bytes:
        return await conversion.convert_to(self, extension)

    @staticmethod
    def is_supported_type(value: str) -> bool:
        """
        Returns True if the content type (type/subtype, parameters ignored) is supported.
        """
        return is_supported_type(value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "created": self.created,
            "updated": self.updated,
            "type": self.type,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, record: Dict[str, Any], store: Optional[StorageBackend] = None) -> "Fragment":
        """
        Rebuild a fragment from a stored metadata record.

        Raises:
            InternalError: If the record does not describe a valid fragment
        """
        try:
            return cls(
                id=record.get("id"),
                owner_id=record.get("ownerId"),
                created=record.get("created"),
                updated=record.get("updated"),
                type=record.get("type"),
                size=record.get("size", 0),
                store=store,
            )
        except ValidationError as e:
            logger.error(f"Stored fragment record is invalid [fragment_id={record.get('id')}]: {e}")
            raise InternalError(f"Stored record for fragment {record.get('id')} is invalid") from e
