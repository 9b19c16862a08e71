"""Core type aliases and the fixed land-cover enumeration."""

from __future__ import annotations

from enum import IntEnum

import geopandas as gpd
import xarray as xr

# ---------------------------------------------------------------------------
# Public type aliases
# ---------------------------------------------------------------------------

Raster = xr.DataArray
"""A raster grid – an xarray DataArray with ``(y, x)`` or ``(bands, y, x)`` dims."""

ClassifiedRaster = xr.DataArray
"""Single-band grid of class labels ``{0, 1, 2}``; NaN marks no-data."""

TransitionRaster = xr.DataArray
"""Single-band grid of ``10 * from + to`` codes; NaN marks no-data."""

MaskRaster = xr.DataArray
"""Single-band grid of ``{1.0, 0.0}`` (true/false); NaN marks no-data."""

SampleSet = gpd.GeoDataFrame
"""Labelled points or feature vectors – one row per sample, Point geometries."""


class LandCover(IntEnum):
    """Fixed three-class land-cover enumeration."""

    FOREST = 0
    NON_FOREST = 1
    WATER = 2


CLASSES: tuple[int, ...] = tuple(int(c) for c in LandCover)

LABEL_COLUMN = "landcover"
"""Default attribute holding the class label of a training sample."""
