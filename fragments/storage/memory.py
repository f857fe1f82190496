"""In-memory storage backend for tests and local development."""

import asyncio
import copy
from typing import Any, Dict, List, Optional

from fragments.storage.base import BlobStore, MetadataStore


class _OwnerKeyedMap:
    """Two-level map owner_id -> fragment_id -> value guarded by an asyncio lock."""

    def __init__(self):
        self.lock = asyncio.Lock()
        self._data: Dict[str, Dict[str, Any]] = {}

    @staticmethod
    def _validate_key(owner_id: str, fragment_id: str) -> None:
        if not isinstance(owner_id, str) or not isinstance(fragment_id, str):
            raise TypeError(
                f"owner_id and fragment_id must be strings, got "
                f"owner_id={owner_id!r}, fragment_id={fragment_id!r}"
            )

    async def put(self, owner_id: str, fragment_id: str, value: Any) -> None:
        self._validate_key(owner_id, fragment_id)
        async with self.lock:
            self._data.setdefault(owner_id, {})[fragment_id] = value

    async def get(self, owner_id: str, fragment_id: str) -> Optional[Any]:
        self._validate_key(owner_id, fragment_id)
        async with self.lock:
            return self._data.get(owner_id, {}).get(fragment_id)

    async def values(self, owner_id: str) -> List[Any]:
        if not isinstance(owner_id, str):
            raise TypeError(f"owner_id must be a string, got {owner_id!r}")
        async with self.lock:
            return list(self._data.get(owner_id, {}).values())

    async def delete(self, owner_id: str, fragment_id: str) -> bool:
        self._validate_key(owner_id, fragment_id)
        async with self.lock:
            owned = self._data.get(owner_id)
            if owned is None or fragment_id not in owned:
                return False
            del owned[fragment_id]
            if not owned:
                del self._data[owner_id]
            return True

    async def clear(self) -> None:
        async with self.lock:
            self._data.clear()


class MemoryMetadataStore(MetadataStore):
    """Metadata records kept in a dict. Records are deep-copied in and out."""

    def __init__(self):
        self._records = _OwnerKeyedMap()

    async def reset(self) -> None:
        await self._records.clear()

    async def put(self, owner_id: str, fragment_id: str, record: Dict[str, Any]) -> None:
        await self._records.put(owner_id, fragment_id, copy.deepcopy(record))

    async def get(self, owner_id: str, fragment_id: str) -> Optional[Dict[str, Any]]:
        record = await self._records.get(owner_id, fragment_id)
        return copy.deepcopy(record) if record is not None else None

    async def query(self, owner_id: str) -> List[Dict[str, Any]]:
        return [copy.deepcopy(record) for record in await self._records.values(owner_id)]

    async def delete(self, owner_id: str, fragment_id: str) -> bool:
        return await self._records.delete(owner_id, fragment_id)


class MemoryBlobStore(BlobStore):
    """Payloads kept in a dict as immutable bytes."""

    def __init__(self):
        self._blobs = _OwnerKeyedMap()

    async def reset(self) -> None:
        await self._blobs.clear()

    async def put(self, owner_id: str, fragment_id: str, data: bytes) -> None:
        await self._blobs.put(owner_id, fragment_id, bytes(data))

    async def get(self, owner_id: str, fragment_id: str) -> Optional[bytes]:
        return await self._blobs.get(owner_id, fragment_id)

    async def delete(self, owner_id: str, fragment_id: str) -> bool:
        return await self._blobs.delete(owner_id, fragment_id)
