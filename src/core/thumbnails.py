"""Document thumbnail generation."""

from __future__ import annotations

import io

from PIL import Image

DEFAULT_SIZE = 320


def make_thumbnail(data: bytes, size: int = DEFAULT_SIZE) -> bytes:
    """Return a JPEG thumbnail for an encoded image.

    The image is resized to ``size`` pixels wide keeping its aspect ratio, then
    center-cropped to ``size`` x ``size`` if the resized height exceeds
    ``size``. Raises if ``data`` cannot be decoded.
    """

    with Image.open(io.BytesIO(data)) as img:
        img = img.convert("RGB")
        width, height = img.size
        new_height = max(1, round(height * size / width))
        img = img.resize((size, new_height), Image.LANCZOS)

        if new_height > size:
            top = (new_height - size) // 2
            img = img.crop((0, top, size, top + size))

        out = io.BytesIO()
        img.save(out, format="JPEG", quality=95)
    return out.getvalue()
