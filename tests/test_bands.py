"""Tests for banded and wavefront parallel dithering."""

import numpy as np
import pytest

from fsdither.core import bands
from fsdither.core.bands import (
    Band,
    BandStrategy,
    RemainderPolicy,
    dither_parallel,
    partition_rows,
)
from fsdither.core.dither import dither


def _random_field(h=12, w=17, seed=1):
    rng = np.random.default_rng(seed)
    return rng.uniform(0.0, 255.0, size=(h, w))


class TestPartitionRows:
    def test_even_split(self):
        assert partition_rows(9, 3) == [Band(0, 3), Band(3, 6), Band(6, 9)]

    def test_drop_leaves_remainder_out(self):
        result = partition_rows(10, 3, RemainderPolicy.DROP)
        assert result == [Band(0, 3), Band(3, 6), Band(6, 9)]

    def test_extend_adds_remainder_to_last_band(self):
        result = partition_rows(10, 3, RemainderPolicy.EXTEND)
        assert result == [Band(0, 3), Band(3, 6), Band(6, 10)]

    def test_more_workers_than_rows(self):
        result = partition_rows(2, 5)
        assert len(result) == 5
        assert all(b.is_empty for b in result)

    def test_more_workers_than_rows_extend(self):
        result = partition_rows(2, 5, RemainderPolicy.EXTEND)
        assert result[-1] == Band(0, 2)
        assert all(b.is_empty for b in result[:-1])

    def test_policy_accepts_string(self):
        assert partition_rows(5, 2, "extend")[-1] == Band(2, 5)

    def test_zero_workers(self):
        with pytest.raises(ValueError, match="at least 1"):
            partition_rows(10, 0)

    def test_band_len(self):
        assert len(Band(3, 7)) == 4
        assert list(Band(3, 5).rows()) == [3, 4]


class TestBanded:
    def test_single_worker_matches_sequential(self):
        field = _random_field()
        expected = dither(field.copy())
        dither_parallel(field, 1)
        np.testing.assert_array_equal(field, expected)

    def test_one_row_per_band_isolates_rows(self):
        field = _random_field(8, 10)
        expected = np.vstack([dither(field[y : y + 1].copy()) for y in range(8)])
        dither_parallel(field, 8)
        np.testing.assert_array_equal(field, expected)

    def test_residual_does_not_cross_band_edge(self):
        # Sequentially the second pixel turns white from the carried 31.25.
        field = np.array([[100.0], [100.0]])
        dither_parallel(field, 2)
        assert field.tolist() == [[0.0], [0.0]]

    def test_drop_keeps_remainder_rows(self):
        field = _random_field(10, 6)
        original = field.copy()
        dither_parallel(field, 3, remainder=RemainderPolicy.DROP)
        np.testing.assert_array_equal(field[9], original[9])
        assert set(np.unique(field[:9])) <= {0.0, 255.0}

    def test_extend_dithers_every_row(self):
        field = _random_field(10, 6)
        dither_parallel(field, 3, remainder=RemainderPolicy.EXTEND)
        assert set(np.unique(field)) <= {0.0, 255.0}

    def test_more_workers_than_rows_is_noop_with_drop(self):
        field = _random_field(3, 4)
        original = field.copy()
        dither_parallel(field, 5)
        np.testing.assert_array_equal(field, original)

    def test_bands_match_independent_images(self):
        field = _random_field(12, 9)
        expected = np.vstack(
            [dither(field[s : s + 4].copy()) for s in (0, 4, 8)]
        )
        dither_parallel(field, 3)
        np.testing.assert_array_equal(field, expected)

    def test_returns_same_array(self):
        field = _random_field()
        assert dither_parallel(field, 3) is field

    def test_worker_error_propagates(self, monkeypatch):
        def boom(field, error, start, end):
            raise RuntimeError("boom")

        monkeypatch.setattr(bands, "dither_rows", boom)
        with pytest.raises(RuntimeError, match="boom"):
            dither_parallel(_random_field(), 3)

    def test_invalid_workers(self):
        with pytest.raises(ValueError):
            dither_parallel(_random_field(), 0)


class TestWavefront:
    @pytest.mark.parametrize("workers", [1, 2, 3, 7, 23])
    def test_matches_sequential(self, workers):
        # Wider than one tile so rows hand over mid-row.
        field = _random_field(23, 70, seed=workers)
        expected = dither(field.copy())
        dither_parallel(
            field,
            workers,
            strategy=BandStrategy.WAVEFRONT,
            remainder=RemainderPolicy.EXTEND,
        )
        np.testing.assert_array_equal(field, expected)

    def test_carries_residual_across_band_edge(self):
        field = np.array([[100.0], [100.0]])
        dither_parallel(field, 2, strategy="wavefront")
        assert field.tolist() == [[0.0], [255.0]]

    def test_drop_matches_sequential_prefix(self):
        field = _random_field(11, 40)
        original = field.copy()
        expected = dither(field[:9].copy())
        dither_parallel(field, 3, strategy=BandStrategy.WAVEFRONT)
        np.testing.assert_array_equal(field[:9], expected)
        np.testing.assert_array_equal(field[9:], original[9:])

    def test_worker_error_propagates(self, monkeypatch):
        real_span = bands.dither_span

        def failing_span(field, error, y, x0, x1):
            if y == 3:
                raise RuntimeError("boom")
            real_span(field, error, y, x0, x1)

        monkeypatch.setattr(bands, "dither_span", failing_span)
        with pytest.raises(RuntimeError, match="boom"):
            dither_parallel(
                _random_field(8, 40), 4, strategy=BandStrategy.WAVEFRONT
            )
