"""Change detection – transition codes, class deltas and transition histograms.

A transition code packs two class labels into one integer,
``10 * from + to``; with the classes ``{0, 1, 2}`` there are nine codes
(``0``, ``1``, ``2``, ``10`` ... ``22``).
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import xarray as xr

from landcover_change.ops.raster import assert_aligned, copy_georef
from landcover_change.types import CLASSES, ClassifiedRaster, Raster, TransitionRaster

TRANSITION_CODES: tuple[int, ...] = tuple(10 * a + b for a in CLASSES for b in CLASSES)


def transition(earlier: ClassifiedRaster, later: ClassifiedRaster) -> TransitionRaster:
    """Encode each pixel's class change as ``10 * earlier + later``.

    The result is NaN wherever either input is NaN or holds a value
    outside the class enumeration.

    Raises
    ------
    GridMismatch
        If the two grids are not aligned.
    """
    assert_aligned(earlier, later)
    valid = _is_class(earlier) & _is_class(later)
    result = (10 * earlier + later).where(valid).astype(np.float32)
    result.name = "transition"
    return copy_georef(result, later)


def difference(earlier: ClassifiedRaster, later: ClassifiedRaster) -> Raster:
    """Signed class delta ``later - earlier`` in ``[-2, 2]`` (display only)."""
    assert_aligned(earlier, later)
    valid = _is_class(earlier) & _is_class(later)
    result = (later - earlier).where(valid).astype(np.float32)
    result.name = "change"
    return copy_georef(result, later)


def decode_transition(code: int) -> tuple[int, int]:
    """Split a transition code into its ``(from, to)`` classes."""
    code = int(code)
    return code // 10, code % 10


def transition_label(code: int) -> str:
    """Render a code as ``"<from>→<to>"``, e.g. ``1`` → ``"0→1"``."""
    source, target = decode_transition(code)
    return f"{source}→{target}"


def transition_counts(grid: TransitionRaster) -> pd.Series:
    """Pixel count of every valid transition code present in *grid*.

    The series is indexed by code, ascending; NaN pixels are ignored and
    codes that do not occur are omitted.
    """
    values = np.asarray(grid.values).ravel()
    values = values[~np.isnan(values)]
    codes, counts = np.unique(values.astype(np.int64), return_counts=True)
    series = pd.Series(counts, index=codes, name="pixels", dtype=np.int64)
    series.index.name = "code"
    return series[series.index.isin(TRANSITION_CODES)].sort_index()


def transition_histogram(grid: TransitionRaster) -> dict[str, float]:
    """Share of valid pixels per transition, in percent.

    Keys are ``"<from>→<to>"`` labels ordered by ascending code.  The
    values sum to 100 unless every pixel is no-data, in which case the
    mapping is empty.
    """
    counts = transition_counts(grid)
    total = int(counts.sum())
    if total == 0:
        return {}
    return {
        transition_label(code): float(count) / total * 100.0
        for code, count in counts.items()
    }


def _is_class(grid: xr.DataArray) -> xr.DataArray:
    return grid.isin(list(CLASSES))
