"""Screenshot post-processing: shrink and re-encode to keep responses small."""

from __future__ import annotations

from io import BytesIO

from PIL import Image

from ..config import SCREENSHOT_MAX_HEIGHT, SCREENSHOT_MAX_WIDTH, SCREENSHOT_QUALITY


def shrink_screenshot(
    png_bytes: bytes,
    max_width: int = SCREENSHOT_MAX_WIDTH,
    max_height: int = SCREENSHOT_MAX_HEIGHT,
    quality: int = SCREENSHOT_QUALITY,
) -> bytes:
    """Fit an image inside ``max_width x max_height`` and return it as JPEG.

    Aspect ratio is preserved and smaller images are never enlarged.
    """
    with Image.open(BytesIO(png_bytes)) as img:
        img = img.convert("RGB")  # JPEG has no alpha channel
        img.thumbnail((max_width, max_height), Image.Resampling.LANCZOS)
        buffer = BytesIO()
        img.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()
