"""Configuration settings for the fragments service."""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from common.constants import DEFAULT_API_PORT, MAX_FRAGMENT_SIZE_BYTES

STORAGE_BACKENDS = ("memory", "durable")
BLOB_BACKENDS = ("filesystem", "s3")


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    storage_backend: str = "memory"
    blob_backend: str = "filesystem"
    database_path: str = "./data/fragments.db"
    blob_path: str = "./data/blobs"
    s3_bucket_name: Optional[str] = None
    aws_region: str = "us-east-1"
    s3_endpoint_url: Optional[str] = None
    api_url: str = f"http://localhost:{DEFAULT_API_PORT}"
    host: str = "0.0.0.0"
    port: int = DEFAULT_API_PORT
    users_file: str = "./users.htpasswd"
    max_body_bytes: int = MAX_FRAGMENT_SIZE_BYTES
    log_level: str = "INFO"

    def __post_init__(self):
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unknown storage backend {self.storage_backend!r}, expected one of {STORAGE_BACKENDS}"
            )
        if self.blob_backend not in BLOB_BACKENDS:
            raise ValueError(
                f"Unknown blob backend {self.blob_backend!r}, expected one of {BLOB_BACKENDS}"
            )
        if self.storage_backend == "durable" and self.blob_backend == "s3" and not self.s3_bucket_name:
            raise ValueError("AWS_S3_BUCKET_NAME is required when FRAGMENTS_BLOB_BACKEND=s3")
        if self.max_body_bytes <= 0:
            raise ValueError("FRAGMENTS_MAX_BODY_BYTES must be positive")

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Returns:
            Settings instance

        Raises:
            ValueError: If a variable holds an invalid value
        """
        return cls(
            storage_backend=os.environ.get("FRAGMENTS_STORAGE_BACKEND", "memory").lower(),
            blob_backend=os.environ.get("FRAGMENTS_BLOB_BACKEND", "filesystem").lower(),
            database_path=os.environ.get("FRAGMENTS_DATABASE_PATH", "./data/fragments.db"),
            blob_path=os.environ.get("FRAGMENTS_BLOB_PATH", "./data/blobs"),
            s3_bucket_name=os.environ.get("AWS_S3_BUCKET_NAME") or None,
            aws_region=os.environ.get("AWS_REGION", "us-east-1"),
            s3_endpoint_url=os.environ.get("AWS_S3_ENDPOINT_URL") or None,
            api_url=os.environ.get("API_URL", f"http://localhost:{DEFAULT_API_PORT}").rstrip("/"),
            host=os.environ.get("FRAGMENTS_HOST", "0.0.0.0"),
            port=_int_from_env("PORT", DEFAULT_API_PORT),
            users_file=os.environ.get("FRAGMENTS_USERS_FILE", "./users.htpasswd"),
            max_body_bytes=_int_from_env("FRAGMENTS_MAX_BODY_BYTES", MAX_FRAGMENT_SIZE_BYTES),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loaded once from the environment."""
    return Settings.from_env()
