"""Conversion engine: renders a fragment's payload in another supported format.

Every (media type, extension) pair of the registry is mapped to exactly one
converter when the module is imported, so an unknown pair can only mean "not
convertible".
"""

import asyncio
import functools
import io
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Tuple, Union

from markdown_it import MarkdownIt
from PIL import Image

from common.logging_config import get_logger
from fragments.exceptions import InternalError, UnsupportedMediaTypeError
from fragments.media_types import CONVERSIONS, Extension, MediaType, extension_for

if TYPE_CHECKING:
    from fragments.fragment import Fragment

logger = get_logger(__name__)

Converter = Callable[[bytes, MediaType, Extension], Awaitable[bytes]]

PIL_FORMATS: Dict[Extension, str] = {
    Extension.PNG: "PNG",
    Extension.JPG: "JPEG",
    Extension.WEBP: "WEBP",
    Extension.GIF: "GIF",
}

_markdown = MarkdownIt("commonmark")


async def _in_executor(func: Callable, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args))


async def _pass_through(data: bytes, source: MediaType, target: Extension) -> bytes:
    return data


def _render_markdown_sync(data: bytes) -> bytes:
    return _markdown.render(data.decode("utf-8")).encode("utf-8")


async def _render_markdown(data: bytes, source: MediaType, target: Extension) -> bytes:
    try:
        return await _in_executor(_render_markdown_sync, data)
    except UnicodeDecodeError as e:
        logger.error(
            f"Unable to render markdown [source={source.value}] [target={target.value}]: {e}"
        )
        raise InternalError("unable to convert fragment data") from e


def _flatten_for_jpeg(image: Image.Image) -> Image.Image:
    """JPEG has no alpha channel: composite transparent images onto white."""
    if image.mode in ("RGB", "L"):
        return image
    if image.mode in ("RGBA", "LA", "PA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")


def _transcode_image_sync(data: bytes, target_format: str) -> bytes:
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        if target_format == "JPEG":
            image = _flatten_for_jpeg(image)
        output = io.BytesIO()
        image.save(output, format=target_format)
        return output.getvalue()


async def _transcode_image(data: bytes, source: MediaType, target: Extension) -> bytes:
    try:
        return await _in_executor(_transcode_image_sync, data, PIL_FORMATS[target])
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        logger.error(
            f"Unable to convert image [source={source.value}] [target={target.value}]: {e}",
            exc_info=True
        )
        raise InternalError("unable to convert fragment data") from e


def _select_converter(source: MediaType, target: Extension) -> Converter:
    if target.media_type is source:
        return _pass_through
    if target is Extension.TXT and (source.is_text or source is MediaType.APPLICATION_JSON):
        return _pass_through
    if source is MediaType.TEXT_MARKDOWN and target is Extension.HTML:
        return _render_markdown
    if source.is_image and target in PIL_FORMATS:
        return _transcode_image
    return _pass_through


CONVERTERS: Dict[Tuple[MediaType, Extension], Converter] = {
    (source, target): _select_converter(source, target)
    for source, targets in CONVERSIONS.items()
    for target in targets
}


def is_convertible_to(fragment: "Fragment", extension: Union[str, Extension]) -> bool:
    """
    Return True if the fragment's media type can be rendered as ``extension``.

    Unknown extensions and unlisted pairs return False; this never raises.
    """
    source = fragment.media_type
    target = extension_for(extension)
    if source is None or target is None:
        return False
    return (source, target) in CONVERTERS


async def convert_to(fragment: "Fragment", extension: Union[str, Extension]) -> bytes:
    """
    Produce the fragment's payload in the format implied by ``extension``.

    The stored payload is never modified.

    Args:
        fragment: Fragment bound to a storage backend
        extension: Target extension (".html", "png", ...)

    Returns:
        Converted bytes

    Raises:
        UnsupportedMediaTypeError: If the pair is not in the conversion matrix
        InternalError: If decoding or encoding the payload fails
        NotFoundError: If the fragment has no stored payload
    """
    if not is_convertible_to(fragment, extension):
        logger.debug(
            f"Rejected conversion [fragment_id={fragment.id}] [type={fragment.type}] [extension={extension}]"
        )
        raise UnsupportedMediaTypeError(
            f"Fragment of type {fragment.mime_type} cannot be converted to {extension}"
        )

    source = fragment.media_type
    target = extension_for(extension)
    data = await fragment.get_data()

    converter = CONVERTERS[(source, target)]
    result = await converter(data, source, target)
    logger.debug(
        f"Converted fragment [fragment_id={fragment.id}] [source={source.value}] "
        f"[target={target.value}] [converter={converter.__name__}]"
    )
    return result
