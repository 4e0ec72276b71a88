"""Split a field into row bands and dither them on concurrent workers.

Two schedules are available:

* ``banded``: every band is dithered as an independent image with its own
  error buffer. Residuals that would cross a band's lower edge are lost,
  which shows up as seams at band boundaries.
* ``wavefront``: one shared error buffer, rows handed out round-robin, and
  each row trails the row above it by a few columns. The result is the
  same as a single sequential pass.

Rows left over when the height is not a multiple of the worker count are
handled by a :class:`RemainderPolicy`.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum

import numpy as np

from fsdither.core.dither import (
    check_field,
    dither_rows,
    dither_span,
    new_error_buffer,
)

logger = logging.getLogger(__name__)

# Columns a wavefront row processes between two progress updates
WAVEFRONT_TILE = 32
# How far (in columns) row y-1 must be ahead of column x of row y
WAVEFRONT_LAG = 3


class BandStrategy(str, Enum):
    BANDED = "banded"
    WAVEFRONT = "wavefront"


class RemainderPolicy(str, Enum):
    DROP = "drop"  # trailing rows stay undithered
    EXTEND = "extend"  # trailing rows join the last band


@dataclass(frozen=True)
class Band:
    """Half-open row range [start, end) of a field."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def rows(self) -> range:
        return range(self.start, self.end)


def partition_rows(
    height: int,
    workers: int,
    remainder: RemainderPolicy = RemainderPolicy.DROP,
) -> list[Band]:
    """Cut `height` rows into `workers` contiguous bands of equal size.

    Each band holds ``height // workers`` rows. With ``DROP`` the last
    ``height % workers`` rows belong to no band; with ``EXTEND`` they are
    appended to the last band. When ``workers > height`` every band is
    empty (before the remainder is applied).

    Raises:
        ValueError: if `workers` is less than 1.
    """
    if workers < 1:
        raise ValueError(f"Worker count must be at least 1, got {workers}")
    remainder = RemainderPolicy(remainder)

    row_size = height // workers
    bands = [Band(i * row_size, (i + 1) * row_size) for i in range(workers)]
    if remainder == RemainderPolicy.EXTEND and bands[-1].end < height:
        bands[-1] = Band(bands[-1].start, height)
    return bands


def _dither_band(field: np.ndarray, band: Band) -> None:
    # Private, full-size buffer: residuals never leave the band.
    error = new_error_buffer(field)
    dither_rows(field, error, band.start, band.end)


def _dither_banded(field: np.ndarray, bands: list[Band]) -> None:
    with ThreadPoolExecutor(max_workers=len(bands)) as pool:
        futures = [pool.submit(_dither_band, field, band) for band in bands]
    for fut in futures:
        fut.result()


class WavefrontAborted(RuntimeError):
    """Raised in waiting workers when another wavefront worker failed."""


class _RowProgress:
    """Per-row count of finished columns, shared by wavefront workers."""

    def __init__(self, height: int) -> None:
        self._done = [0] * height
        self._cond = threading.Condition()
        self._aborted = False

    def advance(self, y: int, columns: int) -> None:
        with self._cond:
            self._done[y] = columns
            self._cond.notify_all()

    def wait_for(self, y: int, columns: int) -> None:
        """Block until row `y` has finished at least `columns` columns."""
        with self._cond:
            self._cond.wait_for(lambda: self._aborted or self._done[y] >= columns)
            if self._aborted:
                raise WavefrontAborted("another wavefront worker failed")

    def abort(self) -> None:
        with self._cond:
            self._aborted = True
            self._cond.notify_all()


def _wavefront_worker(
    field: np.ndarray,
    error: np.ndarray,
    rows: list[int],
    covered: set[int],
    progress: _RowProgress,
) -> None:
    w = field.shape[1]
    try:
        for y in rows:
            waits = (y - 1) in covered
            for x0 in range(0, w, WAVEFRONT_TILE):
                x1 = min(x0 + WAVEFRONT_TILE, w)
                if waits:
                    progress.wait_for(y - 1, min(x1 - 1 + WAVEFRONT_LAG, w))
                dither_span(field, error, y, x0, x1)
                progress.advance(y, x1)
    except BaseException:
        progress.abort()
        raise


def _dither_wavefront(field: np.ndarray, bands: list[Band]) -> None:
    h = field.shape[0]
    rows = sorted(y for band in bands for y in band.rows())
    covered = set(rows)
    workers = len(bands)

    error = new_error_buffer(field)
    progress = _RowProgress(h)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures: list[Future] = [
            pool.submit(
                _wavefront_worker, field, error, rows[k::workers], covered, progress
            )
            for k in range(workers)
        ]

    errors = [fut.exception() for fut in futures if fut.exception() is not None]
    for exc in errors:
        if not isinstance(exc, WavefrontAborted):
            raise exc
    if errors:
        raise errors[0]


def dither_parallel(
    field: np.ndarray,
    workers: int,
    *,
    strategy: BandStrategy = BandStrategy.BANDED,
    remainder: RemainderPolicy = RemainderPolicy.DROP,
) -> np.ndarray:
    """Dither `field` in place on `workers` concurrent workers.

    Returns only once every worker has finished. An exception raised in a
    worker is re-raised here after the join.

    Args:
        field: 2D float array of intensities, modified in place.
        workers: number of bands / worker threads, at least 1.
        strategy: ``banded`` (independent bands, seams at band edges) or
            ``wavefront`` (matches the sequential result).
        remainder: what happens to rows left over by the integer split.

    Returns:
        The same `field` array.
    """
    h, w = check_field(field)
    strategy = BandStrategy(strategy)
    remainder = RemainderPolicy(remainder)
    bands = partition_rows(h, workers, remainder)

    logger.debug(
        "Dithering %dx%d field: %d bands of %d rows (%s, remainder=%s)",
        w,
        h,
        len(bands),
        len(bands[0]),
        strategy.value,
        remainder.value,
    )

    if strategy == BandStrategy.WAVEFRONT:
        _dither_wavefront(field, bands)
    else:
        _dither_banded(field, bands)
    return field
