"""Color raster to grayscale field (BT.709 luma on 16-bit samples)."""

from __future__ import annotations

import numpy as np
from PIL import Image

LUMA_WEIGHTS = (0.2126, 0.7152, 0.0722)

# 16-bit channel range down to 8-bit intensities. The divisor is 65534,
# so full white lands slightly above 255.
LUMA_SCALE = 255.0 / 65534.0

MAX_SAMPLE = 65535

# Pillow modes holding a single 16-bit (or wider) gray channel
GRAY16_MODES = ("I;16", "I;16L", "I;16B", "I")


def _has_alpha(img: Image.Image) -> bool:
    return "A" in img.getbands() or "transparency" in img.info


def rgb16_samples(raster: Image.Image | np.ndarray) -> np.ndarray:
    """Return alpha-premultiplied 16-bit RGB samples, shape (H, W, 3).

    8-bit samples are widened with ``v * 257``. 16-bit gray images keep
    their samples, copied into all three channels. A fourth channel is
    taken as alpha and multiplied into the color channels, truncating like
    an integer premultiply does.

    Raises:
        ValueError: for arrays that are not (H, W, 3|4) uint8/uint16.
        TypeError: for anything that is neither a PIL image nor an array.
    """
    if isinstance(raster, Image.Image) and raster.mode in GRAY16_MODES:
        gray = np.clip(np.asarray(raster), 0, MAX_SAMPLE).astype(np.uint16)
        arr = np.stack([gray, gray, gray], axis=-1)
    elif isinstance(raster, Image.Image):
        mode = "RGBA" if _has_alpha(raster) else "RGB"
        arr = np.asarray(raster.convert(mode))
    elif isinstance(raster, np.ndarray):
        arr = raster
    else:
        raise TypeError(f"Expected a PIL image or numpy array, got {type(raster).__name__}")

    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ValueError(f"Raster must have shape (H, W, 3) or (H, W, 4), got {arr.shape}")

    if arr.dtype == np.uint8:
        samples = arr.astype(np.int64) * 257
    elif arr.dtype == np.uint16:
        samples = arr.astype(np.int64)
    else:
        raise ValueError(f"Unsupported sample type: {arr.dtype}")

    rgb = samples[..., :3]
    if samples.shape[2] == 4:
        rgb = rgb * samples[..., 3:4] // MAX_SAMPLE
    return rgb


def to_grayscale(raster: Image.Image | np.ndarray) -> np.ndarray:
    """Convert a color raster to a float64 luminance field.

    Returns:
        2D array (height, width) of intensities in [0, 255 * 65535 / 65534].
    """
    rgb = rgb16_samples(raster).astype(np.float64)
    wr, wg, wb = LUMA_WEIGHTS
    return (rgb[..., 0] * wr + rgb[..., 1] * wg + rgb[..., 2] * wb) * LUMA_SCALE
