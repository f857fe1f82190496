"""Tests for the conversion engine."""

import io

import pytest
from PIL import Image

from fragments import conversion
from fragments.conversion import CONVERTERS, PIL_FORMATS, convert_to, is_convertible_to
from fragments.exceptions import InternalError, NotFoundError, UnsupportedMediaTypeError
from fragments.fragment import Fragment
from fragments.media_types import CONVERSIONS, Extension, MediaType
from tests.helpers import make_image

OWNER = "owner-a"


async def stored_fragment(store, type_, data):
    fragment = Fragment(owner_id=OWNER, type=type_, store=store)
    await fragment.write(data)
    return fragment


def decoded_format(data: bytes) -> str:
    with Image.open(io.BytesIO(data)) as image:
        return image.format


class TestConverterTable:
    """Test the converter dispatch table built from the registry."""

    def test_every_registry_pair_has_a_converter(self):
        pairs = {(source, target) for source, targets in CONVERSIONS.items() for target in targets}
        assert set(CONVERTERS) == pairs

    def test_same_type_is_pass_through(self):
        for source, targets in CONVERSIONS.items():
            for target in targets:
                if target.media_type is source:
                    assert CONVERTERS[(source, target)] is conversion._pass_through

    def test_markdown_to_html_renders(self):
        assert CONVERTERS[(MediaType.TEXT_MARKDOWN, Extension.HTML)] is conversion._render_markdown

    def test_image_pairs_transcode(self):
        assert CONVERTERS[(MediaType.IMAGE_PNG, Extension.WEBP)] is conversion._transcode_image
        assert CONVERTERS[(MediaType.IMAGE_GIF, Extension.JPG)] is conversion._transcode_image


class TestTextConversions:
    """Test text and JSON conversions."""

    @pytest.mark.asyncio
    async def test_markdown_to_html(self, memory_store):
        fragment = await stored_fragment(memory_store, "text/markdown", b"# Title")
        assert await convert_to(fragment, ".html") == b"<h1>Title</h1>\n"

    @pytest.mark.asyncio
    async def test_markdown_to_html_with_emphasis(self, memory_store):
        fragment = await stored_fragment(memory_store, "text/markdown", b"some *text*")
        assert await convert_to(fragment, "html") == b"<p>some <em>text</em></p>\n"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("type_, data", [
        ("text/plain", b"plain text"),
        ("text/markdown", b"# Title"),
        ("text/html", b"<p>hi</p>"),
        ("application/json", b'{"a": 1}'),
    ])
    async def test_to_txt_is_byte_identical(self, memory_store, type_, data):
        fragment = await stored_fragment(memory_store, type_, data)
        assert await convert_to(fragment, ".txt") == data

    @pytest.mark.asyncio
    async def test_same_format_is_byte_identical(self, memory_store):
        data = b"# not rendered"
        fragment = await stored_fragment(memory_store, "text/markdown", data)
        assert await convert_to(fragment, ".md") == data

    @pytest.mark.asyncio
    async def test_markdown_invalid_utf8(self, memory_store):
        fragment = await stored_fragment(memory_store, "text/markdown", b"\xff\xfe\xfa")
        with pytest.raises(InternalError):
            await convert_to(fragment, ".html")

    @pytest.mark.asyncio
    async def test_stored_data_is_unchanged(self, memory_store):
        fragment = await stored_fragment(memory_store, "text/markdown", b"# Title")
        await convert_to(fragment, ".html")
        assert await fragment.get_data() == b"# Title"


class TestImageConversions:
    """Test image transcoding with Pillow."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("source_type, source_format, source_mode", [
        ("image/png", "PNG", "RGBA"),
        ("image/jpeg", "JPEG", "RGB"),
        ("image/webp", "WEBP", "RGBA"),
        ("image/gif", "GIF", "P"),
    ])
    @pytest.mark.parametrize("extension", [".png", ".jpg", ".webp", ".gif"])
    async def test_transcodes_to_target_format(
        self, memory_store, source_type, source_format, source_mode, extension
    ):
        data = make_image(source_format, source_mode)
        fragment = await stored_fragment(memory_store, source_type, data)

        result = await convert_to(fragment, extension)

        expected_format = PIL_FORMATS[Extension(extension)]
        assert decoded_format(result) == expected_format

    @pytest.mark.asyncio
    async def test_png_to_png_is_byte_identical(self, memory_store, png_bytes):
        fragment = await stored_fragment(memory_store, "image/png", png_bytes)
        assert await convert_to(fragment, ".png") == png_bytes

    @pytest.mark.asyncio
    async def test_jpeg_alias(self, memory_store, png_bytes):
        fragment = await stored_fragment(memory_store, "image/png", png_bytes)
        assert decoded_format(await convert_to(fragment, ".jpeg")) == "JPEG"

    @pytest.mark.asyncio
    async def test_invalid_image_data(self, memory_store):
        fragment = await stored_fragment(memory_store, "image/png", b"not an image")
        with pytest.raises(InternalError):
            await convert_to(fragment, ".webp")


class TestUnsupportedConversions:
    """Test rejected conversions."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("type_, extension", [
        ("text/plain", ".html"),
        ("text/plain", ".png"),
        ("text/html", ".md"),
        ("application/json", ".html"),
        ("image/png", ".txt"),
        ("text/plain", ".exe"),
    ])
    async def test_rejected(self, memory_store, type_, extension):
        fragment = await stored_fragment(memory_store, type_, b"data")
        assert not is_convertible_to(fragment, extension)
        with pytest.raises(UnsupportedMediaTypeError):
            await convert_to(fragment, extension)

    @pytest.mark.asyncio
    async def test_rejected_before_reading_data(self, memory_store):
        fragment = Fragment(owner_id=OWNER, type="text/plain", store=memory_store)
        with pytest.raises(UnsupportedMediaTypeError):
            await convert_to(fragment, ".html")

    @pytest.mark.asyncio
    async def test_missing_payload(self, memory_store):
        fragment = Fragment(owner_id=OWNER, type="text/plain", store=memory_store)
        await fragment.save()
        with pytest.raises(NotFoundError):
            await convert_to(fragment, ".txt")
