"""Manages fragment payload files on disk."""

import asyncio
import base64
import functools
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional

from common.logging_config import get_logger
from fragments.storage.base import BlobStore

logger = get_logger(__name__)

_SAFE_COMPONENT = re.compile(r"^[A-Za-z0-9_-]+$")


def encode_component(name: str, value: str) -> str:
    """
    Map an opaque key component to a filename (URL-safe base64, unpadded).

    Raises:
        ValueError: If the value is not a non-empty string
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string, got {value!r}")
    encoded = base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii").rstrip("=")
    if not _SAFE_COMPONENT.match(encoded):
        raise ValueError(f"{name} is not a valid storage key component: {value!r}")
    return encoded


class FileBlobStore(BlobStore):
    """
    Payloads stored as files at ``{root}/{owner}/{fragment}.bin``.

    Both components are URL-safe base64 encoded, so any owner or fragment id
    maps to a single path segment inside the root.

    Writes go through a temporary file in the same directory followed by
    os.replace, so readers see either the previous or the new payload.
    """

    def __init__(self, root: str):
        self.root = Path(root)

    def get_blob_path(self, owner_id: str, fragment_id: str) -> Path:
        """
        Get file path for a fragment payload.

        Args:
            owner_id: Owner of the fragment
            fragment_id: Fragment id

        Returns:
            Path object for the payload file

        Raises:
            ValueError: If either component is empty or not a string
        """
        owner_dir = encode_component("owner_id", owner_id)
        filename = encode_component("fragment_id", fragment_id)
        return self.root / owner_dir / f"{filename}.bin"

    async def _run(self, func: Callable, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    async def init(self) -> None:
        await self._run(functools.partial(self.root.mkdir, parents=True, exist_ok=True))
        logger.info(f"Blob storage initialized [root={self.root}]")

    def _reset(self) -> None:
        if self.root.exists():
            shutil.rmtree(self.root)
        self.root.mkdir(parents=True, exist_ok=True)

    async def reset(self) -> None:
        await self._run(self._reset)

    def _write(self, owner_id: str, fragment_id: str, data: bytes) -> None:
        filepath = self.get_blob_path(owner_id, fragment_id)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=filepath.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, filepath)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def put(self, owner_id: str, fragment_id: str, data: bytes) -> None:
        await self._run(self._write, owner_id, fragment_id, bytes(data))

    def _read(self, owner_id: str, fragment_id: str) -> Optional[bytes]:
        filepath = self.get_blob_path(owner_id, fragment_id)
        try:
            return filepath.read_bytes()
        except FileNotFoundError:
            return None

    async def get(self, owner_id: str, fragment_id: str) -> Optional[bytes]:
        return await self._run(self._read, owner_id, fragment_id)

    def _delete(self, owner_id: str, fragment_id: str) -> bool:
        filepath = self.get_blob_path(owner_id, fragment_id)
        try:
            filepath.unlink()
        except FileNotFoundError:
            return False
        return True

    async def delete(self, owner_id: str, fragment_id: str) -> bool:
        return await self._run(self._delete, owner_id, fragment_id)
