"""Blob store backed by an S3 bucket."""

import asyncio
import functools
from typing import Callable, NoReturn, Optional

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from common.logging_config import get_logger
from fragments.exceptions import InternalError, UnavailableError
from fragments.storage.base import BlobStore

logger = get_logger(__name__)

_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}
_UNAVAILABLE_ERRORS = (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)


class S3BlobStore(BlobStore):
    """
    Payloads stored as S3 objects under the key ``{owner_id}/{fragment_id}``.

    boto3 clients are thread-safe, so one client is shared by every request and
    blocking calls are pushed to the default executor.
    """

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        client=None,
    ):
        self.bucket = bucket
        if client is None:
            client = boto3.client("s3", region_name=region, endpoint_url=endpoint_url)
        self._client = client

    @staticmethod
    def object_key(owner_id: str, fragment_id: str) -> str:
        return f"{owner_id}/{fragment_id}"

    async def _run(self, func: Callable, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, **kwargs))

    def _raise_backend_error(self, err: Exception, key: Optional[str], action: str) -> NoReturn:
        logger.error(
            f"Unable to {action} fragment data in S3 [bucket={self.bucket}] [key={key}]: {err}",
            exc_info=True
        )
        if isinstance(err, _UNAVAILABLE_ERRORS):
            raise UnavailableError(f"S3 unavailable, unable to {action} fragment data") from err
        raise InternalError(f"unable to {action} fragment data") from err

    @staticmethod
    def _is_missing(err: ClientError) -> bool:
        return err.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES

    async def put(self, owner_id: str, fragment_id: str, data: bytes) -> None:
        key = self.object_key(owner_id, fragment_id)
        try:
            await self._run(self._client.put_object, Bucket=self.bucket, Key=key, Body=bytes(data))
        except (ClientError, BotoCoreError) as e:
            self._raise_backend_error(e, key, "upload")

    def _read_object(self, key: str) -> bytes:
        response = self._client.get_object(Bucket=self.bucket, Key=key)
        body = response["Body"]
        try:
            return body.read()
        finally:
            body.close()

    async def get(self, owner_id: str, fragment_id: str) -> Optional[bytes]:
        key = self.object_key(owner_id, fragment_id)
        try:
            return await self._run(self._read_object, key=key)
        except ClientError as e:
            if self._is_missing(e):
                return None
            self._raise_backend_error(e, key, "read")
        except BotoCoreError as e:
            self._raise_backend_error(e, key, "read")

    async def delete(self, owner_id: str, fragment_id: str) -> bool:
        key = self.object_key(owner_id, fragment_id)
        try:
            await self._run(self._client.head_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            if self._is_missing(e):
                return False
            self._raise_backend_error(e, key, "delete")
        except BotoCoreError as e:
            self._raise_backend_error(e, key, "delete")

        try:
            await self._run(self._client.delete_object, Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            self._raise_backend_error(e, key, "delete")
        return True

    def _delete_all(self) -> int:
        deleted = 0
        paginator = self._client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self.bucket):
            objects = [{"Key": obj["Key"]} for obj in page.get("Contents", [])]
            if objects:
                self._client.delete_objects(Bucket=self.bucket, Delete={"Objects": objects})
                deleted += len(objects)
        return deleted

    async def reset(self) -> None:
        try:
            deleted = await self._run(self._delete_all)
        except (ClientError, BotoCoreError) as e:
            self._raise_backend_error(e, None, "clear")
        logger.warning(f"Cleared {deleted} objects from S3 bucket [bucket={self.bucket}]")

    async def close(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            close()
