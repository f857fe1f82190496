"""Supported media types and the conversion matrix between them.

The registry is static: a closed set of media types, a closed set of target
extensions, and for each media type the ordered extensions it can be rendered
as (always including its own).
"""

import re
from enum import Enum
from typing import Dict, Optional, Tuple

_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_MIME_RE = re.compile(rf"^({_TOKEN})/({_TOKEN})$")
_PARAM_RE = re.compile(rf'^{_TOKEN}=({_TOKEN}|"(?:[^"\\]|\\.)*")$')


class MediaType(str, Enum):
    TEXT_PLAIN = "text/plain"
    TEXT_MARKDOWN = "text/markdown"
    TEXT_HTML = "text/html"
    APPLICATION_JSON = "application/json"
    IMAGE_PNG = "image/png"
    IMAGE_JPEG = "image/jpeg"
    IMAGE_WEBP = "image/webp"
    IMAGE_GIF = "image/gif"

    def __str__(self) -> str:
        return self.value

    @property
    def is_text(self) -> bool:
        return self.value.startswith("text/")

    @property
    def is_image(self) -> bool:
        return self.value.startswith("image/")


class Extension(str, Enum):
    TXT = ".txt"
    MD = ".md"
    HTML = ".html"
    JSON = ".json"
    PNG = ".png"
    JPG = ".jpg"
    WEBP = ".webp"
    GIF = ".gif"

    def __str__(self) -> str:
        return self.value

    @property
    def media_type(self) -> MediaType:
        return EXTENSION_MEDIA_TYPES[self]


EXTENSION_MEDIA_TYPES: Dict[Extension, MediaType] = {
    Extension.TXT: MediaType.TEXT_PLAIN,
    Extension.MD: MediaType.TEXT_MARKDOWN,
    Extension.HTML: MediaType.TEXT_HTML,
    Extension.JSON: MediaType.APPLICATION_JSON,
    Extension.PNG: MediaType.IMAGE_PNG,
    Extension.JPG: MediaType.IMAGE_JPEG,
    Extension.WEBP: MediaType.IMAGE_WEBP,
    Extension.GIF: MediaType.IMAGE_GIF,
}

_IMAGE_TARGETS = (Extension.PNG, Extension.JPG, Extension.WEBP, Extension.GIF)

CONVERSIONS: Dict[MediaType, Tuple[Extension, ...]] = {
    MediaType.TEXT_PLAIN: (Extension.TXT,),
    MediaType.TEXT_MARKDOWN: (Extension.MD, Extension.HTML, Extension.TXT),
    MediaType.TEXT_HTML: (Extension.HTML, Extension.TXT),
    MediaType.APPLICATION_JSON: (Extension.JSON, Extension.TXT),
    MediaType.IMAGE_PNG: _IMAGE_TARGETS,
    MediaType.IMAGE_JPEG: _IMAGE_TARGETS,
    MediaType.IMAGE_WEBP: _IMAGE_TARGETS,
    MediaType.IMAGE_GIF: _IMAGE_TARGETS,
}

_EXTENSION_ALIASES: Dict[str, Extension] = {
    ".jpeg": Extension.JPG,
}


def parse_content_type(value: str) -> str:
    """
    Extract the base MIME type from a Content-Type value.

    "text/html; charset=utf-8" -> "text/html"

    Args:
        value: Content-Type header value

    Returns:
        Lower-cased ``type/subtype``

    Raises:
        ValueError: If the value is not a well-formed content type
    """
    if not isinstance(value, str):
        raise ValueError(f"content type must be a string, got {type(value).__name__}")

    base, *params = value.split(";")
    base = base.strip()
    if not _MIME_RE.match(base):
        raise ValueError(f"invalid media type: {value!r}")

    for param in params:
        param = param.strip()
        if param and not _PARAM_RE.match(param):
            raise ValueError(f"invalid parameter in content type: {value!r}")

    return base.lower()


def normalize_content_type(value: str) -> str:
    """
    Canonical form of a Content-Type value, for equality checks.

    The base type and parameter names are lower-cased, quotes around parameter
    values are removed, charset values are lower-cased and parameters are
    sorted by name:

    'Text/Plain; Charset="UTF-8"' -> "text/plain; charset=utf-8"

    Raises:
        ValueError: If the value is not a well-formed content type
    """
    base = parse_content_type(value)
    params = []
    for param in value.split(";")[1:]:
        param = param.strip()
        if not param:
            continue
        name, _, param_value = param.partition("=")
        name = name.lower()
        if len(param_value) >= 2 and param_value[0] == param_value[-1] == '"':
            param_value = param_value[1:-1]
        if name == "charset":
            param_value = param_value.lower()
        params.append(f"{name}={param_value}")
    return "; ".join([base] + sorted(params))


def media_type_for(value: str) -> Optional[MediaType]:
    """Resolve a Content-Type value to a supported MediaType, or None."""
    try:
        mime = parse_content_type(value)
    except ValueError:
        return None
    try:
        return MediaType(mime)
    except ValueError:
        return None


def is_supported_type(value: str) -> bool:
    """
    Return True if the base MIME of a Content-Type value is in the registry.

    Malformed values return False instead of raising.
    """
    return media_type_for(value) is not None


def extension_for(value: str) -> Optional[Extension]:
    """
    Resolve an extension string (".md", "md", ".JPEG") to an Extension, or None.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip().lower()
    if not value.startswith("."):
        value = f".{value}"
    if value in _EXTENSION_ALIASES:
        return _EXTENSION_ALIASES[value]
    try:
        return Extension(value)
    except ValueError:
        return None


def is_convertible(media_type: MediaType, extension: Extension) -> bool:
    return extension in CONVERSIONS[media_type]
