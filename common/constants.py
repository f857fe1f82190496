"""Project-wide constants (API version, body limits, service identity)."""

SERVICE_NAME: str = "fragments"
SERVICE_VERSION: str = "0.1.0"

API_VERSION_PREFIX: str = "/v1"

MAX_FRAGMENT_SIZE_BYTES: int = 5 * 1024 * 1024  # 5 MiB request body ceiling

DEFAULT_API_PORT: int = 8080
