"""Helpers shared by test modules."""

import io

from PIL import Image

USERS = {
    "user1@email.com": "password1",
    "user2@email.com": "password2",
}


def make_image(image_format: str = "PNG", mode: str = "RGBA", size=(8, 8)) -> bytes:
    """
    Encode a small solid-colour image.

    Args:
        image_format: Pillow format name (PNG, JPEG, WEBP, GIF)
        mode: Pillow image mode (RGBA, RGB or P)
        size: Width and height in pixels

    Returns:
        Encoded image bytes
    """
    if mode == "P":
        image = Image.new("RGB", size, (200, 40, 40)).convert("P")
    elif mode == "RGBA":
        image = Image.new("RGBA", size, (200, 40, 40, 128))
    else:
        image = Image.new(mode, size, (200, 40, 40))
    output = io.BytesIO()
    image.save(output, format=image_format)
    return output.getvalue()
