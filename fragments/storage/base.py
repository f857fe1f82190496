"""Storage backend interfaces: a metadata store and a blob store keyed by (owner_id, id)."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from common.logging_config import get_logger

logger = get_logger(__name__)


class MetadataStore(ABC):
    """
    Structured fragment records keyed by (owner_id, id).

    Implementations must be safe for concurrent use, apply last-write-wins per
    key, and return None (not an empty record) for absent keys.
    """

    async def init(self) -> None:
        """Prepare the store (create schema, directories, ...)."""

    async def reset(self) -> None:
        """Remove every record. Intended for tests."""

    async def close(self) -> None:
        """Release resources held by the store."""

    @abstractmethod
    async def put(self, owner_id: str, fragment_id: str, record: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def get(self, owner_id: str, fragment_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def query(self, owner_id: str) -> List[Dict[str, Any]]:
        """Return every record of one owner. No ordering is guaranteed."""

    @abstractmethod
    async def delete(self, owner_id: str, fragment_id: str) -> bool:
        """Delete a record. Returns True if it existed."""


class BlobStore(ABC):
    """
    Raw fragment payloads keyed by (owner_id, id).

    ``get`` returns None for an absent key so callers can tell "no data"
    apart from zero-length data.
    """

    async def init(self) -> None:
        """Prepare the store."""

    async def reset(self) -> None:
        """Remove every blob. Intended for tests."""

    async def close(self) -> None:
        """Release resources held by the store."""

    @abstractmethod
    async def put(self, owner_id: str, fragment_id: str, data: bytes) -> None:
        ...

    @abstractmethod
    async def get(self, owner_id: str, fragment_id: str) -> Optional[bytes]:
        ...

    @abstractmethod
    async def delete(self, owner_id: str, fragment_id: str) -> bool:
        """Delete a blob. Returns True if it existed."""


class StorageBackend:
    """
    A metadata store and a blob store with a shared lifecycle.

    One instance is built at process start and handed by reference to every
    request handler.
    """

    def __init__(self, metadata: MetadataStore, blobs: BlobStore):
        self.metadata = metadata
        self.blobs = blobs
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def init(self) -> None:
        if self._initialized:
            return
        await self.metadata.init()
        await self.blobs.init()
        self._initialized = True
        logger.info(
            f"Storage backend initialized [metadata={type(self.metadata).__name__}] "
            f"[blobs={type(self.blobs).__name__}]"
        )

    async def reset(self) -> None:
        await self.metadata.reset()
        await self.blobs.reset()
        logger.debug("Storage backend reset")

    async def shutdown(self) -> None:
        if not self._initialized:
            return
        try:
            await self.metadata.close()
        finally:
            await self.blobs.close()
            self._initialized = False
        logger.info("Storage backend shut down")
