"""Area aggregation – ground area of pixels and of boolean masks.

Pixel areas follow the grid CRS: for a projected (metre) CRS every pixel
covers ``|dx * dy|`` square metres; for a geographic CRS each row of
pixels is measured on the CRS ellipsoid, so areas shrink towards the
poles.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import numpy as np
import pyproj
import xarray as xr

from landcover_change.exceptions import UnitMismatch
from landcover_change.ops.raster import (
    X_DIM,
    Y_DIM,
    assert_aligned,
    clip_to_region,
    crs_of,
    resolution,
)
from landcover_change.types import MaskRaster, Raster

logger = logging.getLogger(__name__)

SQUARE_METRES_PER_HECTARE = 10_000.0


# ---------------------------------------------------------------------------
# Pixel geometry
# ---------------------------------------------------------------------------


def pixel_area(grid: Raster) -> Raster:
    """Ground area of every pixel in square metres, as a ``(y, x)`` grid.

    Raises
    ------
    UnitMismatch
        If the grid CRS is projected but not metre-based.
    """
    crs = crs_of(grid)
    dx, dy = resolution(grid)
    xs = grid.coords[X_DIM].values
    ys = grid.coords[Y_DIM].values

    if crs.is_geographic:
        geod = crs.get_geod() or pyproj.Geod(ellps="WGS84")
        half_x, half_y = abs(dx) / 2, abs(dy) / 2
        row_areas = np.empty(ys.size, dtype=np.float64)
        for i, lat in enumerate(ys):
            lats = [lat - half_y, lat - half_y, lat + half_y, lat + half_y]
            lons = [-half_x, half_x, half_x, -half_x]
            area, _ = geod.polygon_area_perimeter(lons, lats)
            row_areas[i] = abs(area)
        values = np.repeat(row_areas[:, None], xs.size, axis=1)
    else:
        _assert_metre_crs(crs)
        values = np.full((ys.size, xs.size), abs(dx * dy), dtype=np.float64)

    result = xr.DataArray(
        values,
        dims=[Y_DIM, X_DIM],
        coords={Y_DIM: grid.coords[Y_DIM], X_DIM: grid.coords[X_DIM]},
        name="pixel_area",
        attrs={"crs": grid.attrs.get("crs"), "units": "m2"},
    )
    if "transform" in grid.attrs:
        result.attrs["transform"] = grid.attrs["transform"]
    return result


def pixel_size_metres(grid: Raster) -> tuple[float, float]:
    """Approximate ground width and height of one pixel at the grid centre."""
    crs = crs_of(grid)
    dx, dy = resolution(grid)
    if not crs.is_geographic:
        _assert_metre_crs(crs)
        return abs(dx), abs(dy)

    geod = crs.get_geod() or pyproj.Geod(ellps="WGS84")
    lon = float(np.mean(grid.coords[X_DIM].values))
    lat = float(np.mean(grid.coords[Y_DIM].values))
    _, _, width = geod.inv(lon - abs(dx) / 2, lat, lon + abs(dx) / 2, lat)
    _, _, height = geod.inv(lon, lat - abs(dy) / 2, lon, lat + abs(dy) / 2)
    return float(width), float(height)


# ---------------------------------------------------------------------------
# Mask area
# ---------------------------------------------------------------------------


def mask_area(
    mask: MaskRaster,
    grid: Raster | None = None,
    *,
    region: Any = None,
) -> float:
    """Total ground area of the true pixels of *mask*, in hectares.

    Parameters
    ----------
    mask : MaskRaster
        Boolean mask (``1.0`` true, ``0.0`` false, NaN no-data).
    grid : Raster | None
        Grid supplying the georeferencing; must be aligned with *mask*.
        Defaults to the mask itself.
    region : shapely geometry | GeoDataFrame | None
        Optional analysis region; pixels outside it are ignored.

    No-data pixels contribute nothing.
    """
    reference = mask
    if grid is not None:
        assert_aligned(mask, grid)
        reference = grid
    if region is not None:
        mask = clip_to_region(mask, region)

    areas = pixel_area(reference)
    selected = areas.where(mask == 1, 0.0)
    return float(selected.sum()) / SQUARE_METRES_PER_HECTARE


def area_report(
    masks: Mapping[str, MaskRaster],
    *,
    region: Any = None,
) -> dict[str, float]:
    """Area in hectares of every named mask, in the order given."""
    report: dict[str, float] = {}
    for name, mask in masks.items():
        report[name] = mask_area(mask, region=region)
        logger.info("Area of %s: %.2f ha", name, report[name])
    return report


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _assert_metre_crs(crs: pyproj.CRS) -> None:
    """Raise ``UnitMismatch`` if a projected *crs* is not metre-based."""
    units = {a.unit_name for a in crs.axis_info}
    if "metre" not in units and "meter" not in units:
        raise UnitMismatch(
            f"The unit of the spatial reference system is {sorted(units)}, not metres. "
            "Pixel areas can only be derived for metre-based or geographic grids."
        )
