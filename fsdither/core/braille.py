"""Render a binary raster as Unicode braille for terminal preview.

Each braille character covers a 2-wide x 4-tall block of pixels.
"""

from __future__ import annotations

import numpy as np

# Unicode braille block starts at U+2800.
# Dot positions (col 0, col 1):
#   row 0: bit 0, bit 3
#   row 1: bit 1, bit 4
#   row 2: bit 2, bit 5
#   row 3: bit 6, bit 7

BRAILLE_BASE = 0x2800

# Bit positions for each (row, col) in the 4x2 grid
BRAILLE_DOT_BITS: list[list[int]] = [
    [0, 3],  # row 0
    [1, 4],  # row 1
    [2, 5],  # row 2
    [6, 7],  # row 3
]

CELL_WIDTH = 2
CELL_HEIGHT = 4


def braille_char(dots: np.ndarray) -> str:
    """Convert a 4x2 boolean array to a single braille character.

    Args:
        dots: shape (4, 2) boolean array where True = raised dot.
    """
    code = 0
    for row in range(CELL_HEIGHT):
        for col in range(CELL_WIDTH):
            if dots[row, col]:
                code |= 1 << BRAILLE_DOT_BITS[row][col]
    return chr(BRAILLE_BASE + code)


def braille_from_array(binary: np.ndarray) -> list[str]:
    """Convert a 2D binary array to braille art lines.

    Values > 0 are raised dots, so white pixels (255) show as dots.
    The array is padded with blank dots up to a multiple of 4 rows and
    2 columns.

    Returns:
        List of strings, one per braille row (ceil(height / 4) lines).
    """
    h, w = binary.shape
    pad_h = (CELL_HEIGHT - h % CELL_HEIGHT) % CELL_HEIGHT
    pad_w = (CELL_WIDTH - w % CELL_WIDTH) % CELL_WIDTH
    if pad_h or pad_w:
        binary = np.pad(binary, ((0, pad_h), (0, pad_w)), constant_values=0)
        h, w = binary.shape

    dots = binary > 0
    lines = []
    for y in range(0, h, CELL_HEIGHT):
        line_chars = []
        for x in range(0, w, CELL_WIDTH):
            line_chars.append(braille_char(dots[y : y + CELL_HEIGHT, x : x + CELL_WIDTH]))
        lines.append("".join(line_chars))
    return lines
