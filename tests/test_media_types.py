"""Tests for content type parsing and the conversion registry."""

import pytest

from fragments.media_types import (
    CONVERSIONS,
    EXTENSION_MEDIA_TYPES,
    Extension,
    MediaType,
    extension_for,
    is_convertible,
    is_supported_type,
    media_type_for,
    normalize_content_type,
    parse_content_type,
)


class TestParseContentType:
    """Test extraction of the base MIME type."""

    def test_plain_type(self):
        assert parse_content_type("text/plain") == "text/plain"

    def test_parameters_are_dropped(self):
        assert parse_content_type("text/plain; charset=utf-8") == "text/plain"

    def test_quoted_parameter(self):
        assert parse_content_type('text/html; charset="utf-8"') == "text/html"

    def test_base_is_lower_cased(self):
        assert parse_content_type("Text/HTML") == "text/html"

    @pytest.mark.parametrize("value", ["", "text", "text/", "/plain", "text/plain/extra", "text plain"])
    def test_malformed_raises(self, value):
        with pytest.raises(ValueError):
            parse_content_type(value)

    def test_malformed_parameter_raises(self):
        with pytest.raises(ValueError):
            parse_content_type("text/plain; charset")

    def test_non_string_raises(self):
        with pytest.raises(ValueError):
            parse_content_type(None)


class TestIsSupportedType:
    """Test the supported type check."""

    @pytest.mark.parametrize("value", [
        "text/plain",
        "text/plain; charset=utf-8",
        "text/markdown",
        "text/html",
        "application/json",
        "image/png",
        "image/jpeg",
        "image/webp",
        "image/gif",
    ])
    def test_supported(self, value):
        assert is_supported_type(value) is True

    @pytest.mark.parametrize("value", [
        "application/octet-stream",
        "image/svg+xml",
        "audio/mpeg",
        "text/csv",
        "not a type",
        "",
        None,
        42,
    ])
    def test_unsupported(self, value):
        assert is_supported_type(value) is False

    def test_media_type_for(self):
        assert media_type_for("application/json; charset=utf-8") is MediaType.APPLICATION_JSON
        assert media_type_for("video/mp4") is None


class TestNormalizeContentType:
    """Test the canonical form used to compare content types."""

    def test_base_only(self):
        assert normalize_content_type("Text/Plain") == "text/plain"

    def test_equivalent_spellings(self):
        assert normalize_content_type('Text/Plain; Charset="UTF-8"') == "text/plain; charset=utf-8"
        assert normalize_content_type("text/plain;charset=utf-8") == "text/plain; charset=utf-8"

    def test_parameters_are_sorted(self):
        assert normalize_content_type("text/plain; format=flowed; charset=utf-8") == (
            "text/plain; charset=utf-8; format=flowed"
        )

    def test_different_charsets_differ(self):
        assert normalize_content_type("text/plain; charset=utf-8") != normalize_content_type(
            "text/plain; charset=iso-8859-1"
        )

    def test_missing_parameter_differs(self):
        assert normalize_content_type("text/plain") != normalize_content_type("text/plain; charset=utf-8")

    def test_malformed_raises(self):
        with pytest.raises(ValueError):
            normalize_content_type("text")


class TestExtensionFor:
    """Test extension lookup."""

    def test_with_dot(self):
        assert extension_for(".html") is Extension.HTML

    def test_without_dot(self):
        assert extension_for("md") is Extension.MD

    def test_case_insensitive(self):
        assert extension_for(".PNG") is Extension.PNG

    def test_jpeg_alias(self):
        assert extension_for("jpeg") is Extension.JPG

    def test_enum_member(self):
        assert extension_for(Extension.GIF) is Extension.GIF

    @pytest.mark.parametrize("value", ["", ".", ".exe", "pdf", None])
    def test_unknown_returns_none(self, value):
        assert extension_for(value) is None

    def test_extension_media_types(self):
        assert Extension.JPG.media_type is MediaType.IMAGE_JPEG
        assert Extension.TXT.media_type is MediaType.TEXT_PLAIN
        assert set(EXTENSION_MEDIA_TYPES) == set(Extension)


class TestConversionRegistry:
    """Test the static conversion matrix."""

    def test_exact_table(self):
        image_targets = {Extension.PNG, Extension.JPG, Extension.WEBP, Extension.GIF}
        expected = {
            MediaType.TEXT_PLAIN: {Extension.TXT},
            MediaType.TEXT_MARKDOWN: {Extension.MD, Extension.HTML, Extension.TXT},
            MediaType.TEXT_HTML: {Extension.HTML, Extension.TXT},
            MediaType.APPLICATION_JSON: {Extension.JSON, Extension.TXT},
            MediaType.IMAGE_PNG: image_targets,
            MediaType.IMAGE_JPEG: image_targets,
            MediaType.IMAGE_WEBP: image_targets,
            MediaType.IMAGE_GIF: image_targets,
        }
        assert {source: set(targets) for source, targets in CONVERSIONS.items()} == expected

    def test_every_type_converts_to_itself(self):
        for source, targets in CONVERSIONS.items():
            assert any(target.media_type is source for target in targets)

    def test_is_convertible(self):
        assert is_convertible(MediaType.TEXT_MARKDOWN, Extension.HTML)
        assert not is_convertible(MediaType.TEXT_PLAIN, Extension.HTML)
        assert not is_convertible(MediaType.APPLICATION_JSON, Extension.PNG)

    def test_str_is_value(self):
        assert str(MediaType.TEXT_HTML) == "text/html"
        assert f"{Extension.WEBP}" == ".webp"
