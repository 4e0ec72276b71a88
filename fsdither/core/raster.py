"""Binary (or grayscale) field back to an 8-bit raster."""

from __future__ import annotations

import numpy as np
from PIL import Image

from fsdither.core.dither import EmptyFieldError


def to_raster(field: np.ndarray) -> Image.Image:
    """Build a single-channel ("L") image from a field.

    Values are truncated to uint8, so 255.0 -> 255 and 0.0 -> 0. Rows
    that were never dithered keep their truncated gray level; they are
    clipped to [0, 255] first.

    Raises:
        EmptyFieldError: if the field has zero rows or zero columns.
        ValueError: if the field is not two-dimensional.
    """
    arr = np.asarray(field)
    if arr.ndim != 2:
        raise ValueError(f"Field must be 2D, got {arr.ndim} dimensions")
    h, w = arr.shape
    if h == 0 or w == 0:
        raise EmptyFieldError(f"Cannot build a raster from an empty field ({h}x{w})")

    pixels = np.clip(arr, 0.0, 255.0).astype(np.uint8)
    return Image.fromarray(pixels)
