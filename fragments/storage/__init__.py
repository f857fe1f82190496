"""Storage backends for fragment metadata and payloads."""

from fragments.config import Settings
from fragments.storage.base import BlobStore, MetadataStore, StorageBackend
from fragments.storage.blob_storage import FileBlobStore
from fragments.storage.database import SQLiteMetadataStore
from fragments.storage.memory import MemoryBlobStore, MemoryMetadataStore


def create_storage_backend(settings: Settings) -> StorageBackend:
    """
    Build the storage backend selected by configuration.

    Args:
        settings: Service settings

    Returns:
        An uninitialized StorageBackend; call init() before use
    """
    if settings.storage_backend == "memory":
        return StorageBackend(MemoryMetadataStore(), MemoryBlobStore())

    metadata = SQLiteMetadataStore(settings.database_path)

    if settings.blob_backend == "s3":
        from fragments.storage.s3_blob_store import S3BlobStore

        blobs = S3BlobStore(
            bucket=settings.s3_bucket_name,
            region=settings.aws_region,
            endpoint_url=settings.s3_endpoint_url,
        )
    else:
        blobs = FileBlobStore(settings.blob_path)

    return StorageBackend(metadata, blobs)


__all__ = [
    "BlobStore",
    "MetadataStore",
    "StorageBackend",
    "FileBlobStore",
    "SQLiteMetadataStore",
    "MemoryBlobStore",
    "MemoryMetadataStore",
    "create_storage_backend",
]
