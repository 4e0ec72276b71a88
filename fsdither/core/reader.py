"""Image loading from files, bytes and URLs.

Codecs are chosen explicitly per call: either passed by the caller or
derived from the file suffix. Nothing is registered globally.
"""

from __future__ import annotations

import io
import urllib.error
import urllib.request
from enum import Enum
from pathlib import Path
from typing import BinaryIO
from urllib.parse import urlparse

from PIL import Image


class ImageCodec(str, Enum):
    JPEG = "jpeg"
    PNG = "png"

    @property
    def pil_format(self) -> str:
        """Format name Pillow uses for this codec."""
        return self.value.upper()

    @property
    def mimetype(self) -> str:
        return f"image/{self.value}"


SUFFIX_CODECS: dict[str, ImageCodec] = {
    ".jpg": ImageCodec.JPEG,
    ".jpeg": ImageCodec.JPEG,
    ".png": ImageCodec.PNG,
}


def detect_codec(path: str | Path) -> ImageCodec:
    """Detect the image codec from the file extension."""
    suffix = Path(path).suffix.lower()
    try:
        return SUFFIX_CODECS[suffix]
    except KeyError:
        raise ValueError(f"Unsupported format: {suffix or '(none)'}") from None


def decode_image(
    data: bytes | BinaryIO,
    codec: ImageCodec | None = None,
) -> Image.Image:
    """Decode an image, optionally restricted to a single codec.

    Args:
        data: encoded image bytes or a binary file object.
        codec: accept only this codec; None accepts any supported one.

    Returns:
        Fully loaded PIL image.

    Raises:
        ValueError: if the data is not a decodable image of an allowed codec.
    """
    if isinstance(data, (bytes, bytearray)):
        data = io.BytesIO(data)
    allowed = [codec.pil_format] if codec else [c.pil_format for c in ImageCodec]
    try:
        img = Image.open(data, formats=allowed)
        img.load()
    except (OSError, SyntaxError, Image.DecompressionBombError) as e:
        raise ValueError(f"Cannot decode image: {e}") from e
    return img


def is_url(path: str) -> bool:
    """Check if the input looks like an HTTP(S) URL."""
    try:
        parsed = urlparse(str(path))
        return parsed.scheme in ("http", "https")
    except ValueError:
        return False


def download_image(url: str, timeout: float = 30.0) -> bytes:
    """Download an image from a URL into memory.

    Raises:
        ValueError: if the URL is unreachable or returns no data.
    """
    req = urllib.request.Request(url, headers={"User-Agent": "fsdither/0.1"})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            data = resp.read()
    except urllib.error.URLError as e:
        raise ValueError(f"Failed to download {url}: {e}") from e

    if not data:
        raise ValueError(f"Downloaded file is empty: {url}")
    return data


def _codec_from_url(url: str) -> ImageCodec | None:
    suffix = Path(urlparse(url).path).suffix.lower()
    return SUFFIX_CODECS.get(suffix)


def open_image(path: str | Path, codec: ImageCodec | None = None) -> Image.Image:
    """Open an image from a local path or an HTTP(S) URL.

    Without an explicit codec, a local file must carry a known suffix;
    a URL without one is decoded with any supported codec.
    """
    path_str = str(path)
    if is_url(path_str):
        data = download_image(path_str)
        return decode_image(data, codec or _codec_from_url(path_str))

    local_path = Path(path_str)
    if not local_path.exists():
        raise FileNotFoundError(f"File not found: {local_path}")
    if codec is None:
        codec = detect_codec(local_path)
    with open(local_path, "rb") as fh:
        return decode_image(fh, codec)
