"""Terminal size detection utilities."""

from __future__ import annotations

import shutil

from fsdither.core.braille import CELL_HEIGHT, CELL_WIDTH


def get_terminal_size(
    fallback_width: int = 80,
    fallback_height: int = 24,
) -> tuple[int, int]:
    """Get current terminal size in columns and rows.

    Returns (width, height). Falls back to provided defaults
    if terminal size cannot be determined.
    """
    try:
        size = shutil.get_terminal_size(fallback=(fallback_width, fallback_height))
        return size.columns, size.lines
    except (ValueError, OSError):
        return fallback_width, fallback_height


def fit_to_terminal(
    img_width: int,
    img_height: int,
    max_width: int | None = None,
    max_height: int | None = None,
) -> tuple[int, int]:
    """Pixel size at which an image fills a braille preview area.

    Each character cell shows 2x4 dots and is about twice as tall as it is
    wide, so dots are roughly square and the image aspect ratio can be kept
    as is.

    Args:
        img_width: original image width in pixels.
        img_height: original image height in pixels.
        max_width: maximum character columns (defaults to terminal width).
        max_height: maximum character rows (defaults to terminal height - 4
            for UI chrome).

    Returns:
        (pixel_width, pixel_height) tuple, never larger than the original.
    """
    if max_width is None or max_height is None:
        tw, th = get_terminal_size()
        if max_width is None:
            max_width = tw
        if max_height is None:
            max_height = max(th - 4, 10)

    dot_w = max(max_width, 1) * CELL_WIDTH
    dot_h = max(max_height, 1) * CELL_HEIGHT
    scale = min(dot_w / img_width, dot_h / img_height, 1.0)

    return max(1, int(img_width * scale)), max(1, int(img_height * scale))
