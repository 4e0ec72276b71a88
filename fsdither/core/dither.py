"""Floyd-Steinberg error diffusion to a black/white field.

The field is a 2D float array of intensities in [0, 255] and is
overwritten in place with 0.0 / 255.0. Residuals are carried in a
separate error buffer of the same shape, filled ahead of the scan.
"""

from __future__ import annotations

import numpy as np

THRESHOLD = 128.0
WHITE = 255.0
BLACK = 0.0


class EmptyFieldError(ValueError):
    """The field has no rows or no columns."""


def check_field(field: np.ndarray) -> tuple[int, int]:
    """Validate a grayscale field and return its (height, width).

    Raises:
        EmptyFieldError: if the field has no rows or no columns.
        ValueError: if the field is not a 2D floating-point array.
    """
    if not isinstance(field, np.ndarray) or field.ndim != 2:
        raise ValueError("Field must be a 2D numpy array")
    if not np.issubdtype(field.dtype, np.floating):
        raise ValueError(f"Field must hold floating-point values, got {field.dtype}")
    h, w = field.shape
    if h == 0 or w == 0:
        raise EmptyFieldError(f"Field is empty ({h}x{w})")
    return h, w


def new_error_buffer(field: np.ndarray) -> np.ndarray:
    """Return a zeroed error buffer matching the field."""
    return np.zeros(field.shape, dtype=np.float64)


def quantize_pixel(field: np.ndarray, error: np.ndarray, y: int, x: int) -> float:
    """Threshold one cell and return the residual to diffuse.

    Above the threshold the residual is measured from the threshold,
    not from white.
    """
    val = field[y, x] + error[y, x]
    if val > THRESHOLD:
        field[y, x] = WHITE
        return val - THRESHOLD
    field[y, x] = BLACK
    return val


def diffuse(
    error: np.ndarray, y: int, x: int, difference: float, h: int, w: int
) -> None:
    """Add `difference` into the unvisited neighbours of (y, x)."""
    if x + 1 < w:
        error[y, x + 1] += difference * 7.0 / 16.0
    if y + 1 < h:
        if x - 1 >= 0:
            error[y + 1, x - 1] += difference * 3.0 / 16.0
        error[y + 1, x] += difference * 5.0 / 16.0
        if x + 1 < w:
            error[y + 1, x + 1] += difference * 1.0 / 16.0


def dither_span(
    field: np.ndarray, error: np.ndarray, y: int, x0: int, x1: int
) -> None:
    """Dither columns [x0, x1) of row y, left to right."""
    h, w = field.shape
    for x in range(x0, x1):
        difference = quantize_pixel(field, error, y, x)
        diffuse(error, y, x, difference, h, w)


def dither_rows(
    field: np.ndarray,
    error: np.ndarray,
    start: int,
    end: int,
) -> np.ndarray:
    """Dither rows [start, end) of `field` in place using `error`.

    Neighbour bounds are those of the whole field, so the last row of
    the range still writes residuals into row `end` of `error`. Whether
    anyone reads them is up to the caller.

    Args:
        field: 2D float array of intensities, modified in place.
        error: residual buffer with the same shape as `field`.
        start: first row to dither.
        end: one past the last row to dither.

    Returns:
        The same `field` array.
    """
    h, w = check_field(field)
    if error.shape != field.shape:
        raise ValueError(
            f"Error buffer shape {error.shape} does not match field {field.shape}"
        )
    if not 0 <= start <= end <= h:
        raise ValueError(f"Row range [{start}, {end}) outside field of height {h}")

    for y in range(start, end):
        dither_span(field, error, y, 0, w)
    return field


def dither(field: np.ndarray) -> np.ndarray:
    """Dither the whole field sequentially, in place.

    Every cell ends up exactly 0.0 or 255.0.
    """
    check_field(field)
    return dither_rows(field, new_error_buffer(field), 0, field.shape[0])
