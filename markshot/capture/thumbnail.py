"""Thumbnail encoding for captured screenshots."""

from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

from .base import CaptureError

THUMBNAIL_CONTENT_TYPE = "image/jpeg"
THUMBNAIL_EXTENSION = "jpg"


def make_thumbnail(image_bytes: bytes, width: int = 350, quality: int = 80) -> bytes:
    """Scale a screenshot down to ``width`` pixels wide and encode it as JPEG.

    Aspect ratio is kept and smaller images are never enlarged.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img = img.convert("RGB")
            if img.width > width:
                height = max(1, round(img.height * width / img.width))
                img = img.resize((width, height), resample=Image.LANCZOS)

            out = io.BytesIO()
            img.save(out, format="JPEG", quality=quality, optimize=True)
    except (UnidentifiedImageError, OSError) as exc:
        raise CaptureError(f"Could not encode thumbnail: {exc}") from exc

    return out.getvalue()
