"""Encode dithered rasters as JPEG or PNG."""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image

from fsdither.core.reader import ImageCodec, detect_codec

# Pillow's default JPEG quality
JPEG_QUALITY = 75


def encode_image(image: Image.Image, codec: ImageCodec) -> bytes:
    """Encode an image into the given codec and return the bytes."""
    buf = io.BytesIO()
    if codec == ImageCodec.JPEG:
        if image.mode not in ("L", "RGB", "CMYK"):
            image = image.convert("RGB")
        image.save(buf, format=codec.pil_format, quality=JPEG_QUALITY)
    else:
        image.save(buf, format=codec.pil_format)
    return buf.getvalue()


def save_image(
    image: Image.Image,
    output_path: Path,
    codec: ImageCodec | None = None,
) -> Path:
    """Save an image, picking the codec from the suffix when not given.

    Returns:
        The path written.
    """
    output_path = Path(output_path)
    if codec is None:
        codec = detect_codec(output_path)
    output_path.write_bytes(encode_image(image, codec))
    return output_path
