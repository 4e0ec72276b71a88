"""Image dithering pipeline.

Raster → luminance field → error diffusion → 8-bit raster.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from enum import Enum

import numpy as np
from PIL import Image

from fsdither.core.bands import BandStrategy, RemainderPolicy, dither_parallel
from fsdither.core.dither import dither
from fsdither.core.luminance import to_grayscale
from fsdither.core.raster import to_raster

logger = logging.getLogger(__name__)

# Worker count the upload service has always used
DEFAULT_WORKERS = 10


class DitherStrategy(str, Enum):
    SEQUENTIAL = "sequential"
    BANDED = "banded"
    WAVEFRONT = "wavefront"


@dataclass(frozen=True)
class Settings:
    """Processing settings that affect output."""

    strategy: DitherStrategy = DitherStrategy.BANDED
    workers: int = DEFAULT_WORKERS
    remainder: RemainderPolicy = RemainderPolicy.EXTEND

    def hash(self) -> str:
        """Deterministic hash for cache keying."""
        data = f"{self.strategy.value}:{self.workers}:{self.remainder.value}"
        return hashlib.md5(data.encode()).hexdigest()[:12]


@dataclass
class ProcessedImage:
    """Result of dithering a single image."""

    image: Image.Image  # mode "L", pixels 0 or 255
    width: int
    height: int
    elapsed_ms: float  # time spent in the diffusion stage only
    settings: Settings


def dither_field(field: np.ndarray, settings: Settings) -> np.ndarray:
    """Run the diffusion stage selected by `settings` on `field`, in place."""
    if settings.strategy == DitherStrategy.SEQUENTIAL:
        return dither(field)
    return dither_parallel(
        field,
        settings.workers,
        strategy=BandStrategy(settings.strategy.value),
        remainder=settings.remainder,
    )


def process_image(raster: Image.Image | np.ndarray, settings: Settings) -> ProcessedImage:
    """Process a single image through the full pipeline."""
    field = to_grayscale(raster)
    h, w = field.shape

    start = time.perf_counter()
    dither_field(field, settings)
    elapsed_ms = (time.perf_counter() - start) * 1000.0
    logger.info("Dithering took %.1f ms", elapsed_ms)

    image = to_raster(field)
    logger.info("Image dithered (%dx%d, %s)", w, h, settings.strategy.value)

    return ProcessedImage(
        image=image,
        width=w,
        height=h,
        elapsed_ms=elapsed_ms,
        settings=settings,
    )
