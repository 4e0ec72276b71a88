"""Tests for braille preview rendering."""

import numpy as np

from fsdither.core.braille import (
    BRAILLE_BASE,
    braille_char,
    braille_from_array,
)


class TestBrailleChar:
    def test_empty(self):
        dots = np.zeros((4, 2), dtype=bool)
        assert braille_char(dots) == chr(BRAILLE_BASE)

    def test_full(self):
        dots = np.ones((4, 2), dtype=bool)
        assert braille_char(dots) == chr(BRAILLE_BASE + 0xFF)

    def test_top_left(self):
        dots = np.zeros((4, 2), dtype=bool)
        dots[0, 0] = True
        assert braille_char(dots) == chr(BRAILLE_BASE + 1)

    def test_bottom_right(self):
        dots = np.zeros((4, 2), dtype=bool)
        dots[3, 1] = True
        assert braille_char(dots) == chr(BRAILLE_BASE + (1 << 7))


class TestBrailleFromArray:
    def test_dimensions(self):
        lines = braille_from_array(np.zeros((8, 6), dtype=np.uint8))
        assert len(lines) == 2
        assert all(len(line) == 3 for line in lines)

    def test_padding(self):
        lines = braille_from_array(np.zeros((5, 3), dtype=np.uint8))
        assert len(lines) == 2
        assert all(len(line) == 2 for line in lines)

    def test_white_pixels_are_dots(self):
        binary = np.full((4, 2), 255, dtype=np.uint8)
        assert braille_from_array(binary) == [chr(BRAILLE_BASE + 0xFF)]

    def test_black_pixels_are_blank(self):
        binary = np.zeros((4, 4), dtype=np.uint8)
        assert braille_from_array(binary) == [chr(BRAILLE_BASE) * 2]
