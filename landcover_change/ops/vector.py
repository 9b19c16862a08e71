"""Vector operations – training points and feature-vector extraction."""

from __future__ import annotations

import logging
import math
from typing import Sequence

import geopandas as gpd
import numpy as np
import pandas as pd
import xarray as xr
from shapely.geometry import Point

from landcover_change.exceptions import BandNotAvailable, ConfigurationError
from landcover_change.ops.area import pixel_size_metres
from landcover_change.ops.raster import (
    BANDS_DIM,
    X_DIM,
    Y_DIM,
    crs_of,
    geotransform,
    select_bands,
)
from landcover_change.types import CLASSES, LABEL_COLUMN, LandCover, Raster, SampleSet

logger = logging.getLogger(__name__)

_SCALE_TOLERANCE = 1e-3

# Labelled reference points of the Kapuas regency, Central Kalimantan (lon, lat).
_KAPUAS_POINTS: list[tuple[float, float, LandCover]] = [
    (114.3202, -1.4811, LandCover.FOREST),
    (114.3627, -1.6031, LandCover.FOREST),
    (114.1025, -1.8124, LandCover.FOREST),
    (114.6143, -2.6542, LandCover.FOREST),
    (114.2921, -1.8069, LandCover.NON_FOREST),
    (114.1983, -1.1586, LandCover.NON_FOREST),
    (114.3659, -1.3505, LandCover.NON_FOREST),
    (114.3658, -1.3478, LandCover.NON_FOREST),
    (114.1730, -1.1285, LandCover.WATER),
    (114.2902, -1.2798, LandCover.WATER),
    (114.3888, -1.3844, LandCover.WATER),
    (114.4691, -2.4308, LandCover.WATER),
]


# ---------------------------------------------------------------------------
# Training points
# ---------------------------------------------------------------------------


def training_points() -> SampleSet:
    """The built-in labelled points of the Kapuas study area (EPSG:4326)."""
    return gpd.GeoDataFrame(
        {LABEL_COLUMN: [int(label) for _, _, label in _KAPUAS_POINTS]},
        geometry=[Point(lon, lat) for lon, lat, _ in _KAPUAS_POINTS],
        crs="EPSG:4326",
    )


def validate_samples(samples: SampleSet, *, label_column: str = LABEL_COLUMN) -> SampleSet:
    """Check that *samples* are labelled points with labels in ``{0, 1, 2}``."""
    if not isinstance(samples, gpd.GeoDataFrame):
        raise TypeError(f"samples must be a GeoDataFrame, got {type(samples).__name__}")
    if label_column not in samples.columns:
        raise ConfigurationError(f"Label column {label_column!r} not found in samples")

    non_points = samples.geometry.geom_type[samples.geometry.geom_type != "Point"]
    if len(non_points):
        raise ConfigurationError(
            f"Samples must be Point geometries, got {sorted(set(non_points))}"
        )

    labels = samples[label_column]
    if labels.isna().any():
        raise ConfigurationError(f"Samples have missing {label_column!r} labels")
    unknown = sorted(set(labels.astype(int)) - set(CLASSES))
    if unknown or not np.all(labels == labels.astype(int)):
        raise ConfigurationError(
            f"Sample labels must be one of {list(CLASSES)}, got {sorted(set(labels))}"
        )
    return samples


# ---------------------------------------------------------------------------
# Feature extraction
# ---------------------------------------------------------------------------


def extract_samples(
    grid: Raster,
    samples: SampleSet,
    bands: Sequence[str],
    scale: float | None = None,
    *,
    label_column: str = LABEL_COLUMN,
) -> SampleSet:
    """Sample band values of *grid* under each labelled point.

    Parameters
    ----------
    grid : Raster
        Multi-band grid holding at least *bands*.
    samples : SampleSet
        Labelled points.  Reprojected to the grid CRS when their CRS
        differs; points without a CRS are taken to be in the grid CRS.
    bands : sequence of str
        Feature bands, in the order of the output columns.
    scale : float | None
        Nominal sampling resolution in metres.  When it is a whole multiple
        of the grid's pixel size along both axes, each point takes the mean
        of the block of that size (anchored at the grid origin) that holds
        it; blocks cut by the grid edge average their in-grid pixels only.
        Any other scale samples the native pixel under the point.

    Returns
    -------
    SampleSet
        One row per retained sample, in input order, with the *bands*
        columns, the label column and the point geometry.  Samples outside
        the grid or on a no-data pixel of any band are dropped.
    """
    validate_samples(samples, label_column=label_column)
    bands = list(bands)
    selected = select_bands(grid, bands)
    fx, fy = _block_factors(selected, scale)

    points = samples
    target_crs = crs_of(grid)
    if points.crs is not None and not target_crs.equals(points.crs):
        points = points.to_crs(target_crs)

    x0, dx, _, y0, _, dy = geotransform(selected)
    cols = np.floor((points.geometry.x.to_numpy() - x0) / dx).astype(np.int64)
    rows = np.floor((points.geometry.y.to_numpy() - y0) / dy).astype(np.int64)
    inside = (
        (cols >= 0)
        & (cols < selected.sizes[X_DIM])
        & (rows >= 0)
        & (rows < selected.sizes[Y_DIM])
    )

    values = np.full((len(points), len(bands)), np.nan, dtype=np.float64)
    if inside.any():
        values[inside] = _block_means(selected, rows[inside], cols[inside], fy=fy, fx=fx)

    complete = inside & ~np.isnan(values).any(axis=1)

    features = pd.DataFrame(values[complete], columns=bands, index=points.index[complete])
    features[label_column] = samples[label_column].to_numpy()[complete].astype(int)
    result = gpd.GeoDataFrame(
        features,
        geometry=points.geometry.to_numpy()[complete],
        crs=points.crs if points.crs is not None else target_crs,
    )

    logger.info(
        "Extracted %d of %d samples (%d outside the grid, %d on no-data)",
        int(complete.sum()),
        len(points),
        int((~inside).sum()),
        int((inside & ~complete).sum()),
    )
    return result


def to_feature_matrix(
    features: SampleSet,
    bands: Sequence[str],
    *,
    label_column: str | None = LABEL_COLUMN,
) -> tuple[np.ndarray, np.ndarray | None]:
    """Convert feature vectors into a matrix ``X`` and optional labels ``y``.

    Returns
    -------
    X : np.ndarray  (n_samples, n_bands)
    y : np.ndarray | None  (n_samples,)
    """
    if not isinstance(features, pd.DataFrame):
        raise TypeError(
            f"to_feature_matrix expects a (Geo)DataFrame, got {type(features)!r}."
        )
    missing = [b for b in bands if b not in features.columns]
    if missing:
        raise BandNotAvailable(
            f"Feature column(s) {missing} not found. Available: {list(features.columns)}"
        )
    X = features[list(bands)].to_numpy(dtype=np.float64)
    y = None
    if label_column is not None:
        if label_column not in features.columns:
            raise ConfigurationError(f"Label column {label_column!r} not found in features")
        y = features[label_column].to_numpy(dtype=np.int64)
    return X, y


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _block_factors(grid: Raster, scale: float | None) -> tuple[int, int]:
    """Pixels per sampling block along x and y; ``(1, 1)`` samples native pixels."""
    if scale is None:
        return 1, 1
    factors = []
    for size in pixel_size_metres(grid):
        ratio = scale / size
        nearest = int(round(ratio))
        if nearest < 1 or not math.isclose(ratio, nearest, rel_tol=_SCALE_TOLERANCE):
            logger.debug(
                "Scale %.1f m is not a multiple of the %.2f m pixel size; "
                "sampling native pixels",
                scale,
                size,
            )
            return 1, 1
        factors.append(nearest)
    return factors[0], factors[1]


def _block_means(
    grid: Raster,
    rows: np.ndarray,
    cols: np.ndarray,
    *,
    fy: int,
    fx: int,
) -> np.ndarray:
    """Mean band values of the ``fy x fx`` block holding each pixel.

    Blocks are anchored at the grid origin.  A block cut by the grid edge
    averages only the pixels inside the grid; a no-data pixel anywhere in
    the block makes the whole block no-data.
    """
    height, width = grid.sizes[Y_DIM], grid.sizes[X_DIM]
    window_rows = (rows // fy * fy)[:, None] + np.arange(fy)[None, :]
    window_cols = (cols // fx * fx)[:, None] + np.arange(fx)[None, :]

    picked = grid.isel(
        {
            Y_DIM: xr.DataArray(np.minimum(window_rows, height - 1), dims=("sample", "wy")),
            X_DIM: xr.DataArray(np.minimum(window_cols, width - 1), dims=("sample", "wx")),
        }
    ).transpose("sample", BANDS_DIM, "wy", "wx")
    values = np.asarray(picked.values, dtype=np.float64)

    in_grid = (window_rows < height)[:, :, None] & (window_cols < width)[:, None, :]
    totals = np.where(in_grid[:, None], values, 0.0).sum(axis=(2, 3))
    return totals / in_grid.sum(axis=(1, 2))[:, None]
