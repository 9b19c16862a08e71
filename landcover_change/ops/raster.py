"""Raster operations – grid construction, band algebra and alignment.

Every grid is an :class:`xarray.DataArray` with pixel-centre coordinates
on the ``y`` / ``x`` dims and, for multi-band grids, a leading ``bands``
dim labelled with band names.  The CRS travels in ``attrs["crs"]``.
No-data is NaN.  Operations never modify their inputs.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

import numpy as np
import pyproj
import xarray as xr

from landcover_change.exceptions import (
    BandExists,
    BandNotAvailable,
    ConfigurationError,
    DataGapError,
    GridMismatch,
)
from landcover_change.types import Raster

X_DIM = "x"
Y_DIM = "y"
BANDS_DIM = "bands"

Transform = tuple[float, float, float, float, float, float]
"""GDAL-order geotransform ``(x_origin, pixel_width, 0, y_origin, 0, pixel_height)``."""


# ---------------------------------------------------------------------------
# Construction / validation
# ---------------------------------------------------------------------------


def make_grid(
    bands: Mapping[str, Any],
    *,
    transform: Sequence[float],
    crs: Any,
    dtype: Any = np.float32,
) -> Raster:
    """Build a multi-band grid from named 2-D arrays.

    Parameters
    ----------
    bands : Mapping[str, array-like]
        Band name to 2-D ``(height, width)`` array.  NaN marks no-data.
        Dask arrays are kept lazy.
    transform : sequence of 6 floats
        GDAL-order geotransform of the upper-left pixel corner.
        Rotated grids are not supported.
    crs : Any
        Anything :meth:`pyproj.CRS.from_user_input` accepts.

    Raises
    ------
    ConfigurationError
        If no band is given, shapes differ, or the transform is invalid.
    """
    if not bands:
        raise ConfigurationError("A grid needs at least one band")

    x0, dx, rx, y0, ry, dy = _check_transform(transform)
    crs_str = _normalise_crs(crs)

    names = list(bands)
    arrays = [bands[name] for name in names]
    shapes = {tuple(np.shape(a)) for a in arrays}
    if len(shapes) != 1:
        raise ConfigurationError(f"All bands must share one shape, got {sorted(shapes)}")
    shape = shapes.pop()
    if len(shape) != 2:
        raise ConfigurationError(f"Bands must be 2-D arrays, got shape {shape}")

    height, width = shape
    xs = x0 + (np.arange(width) + 0.5) * dx
    ys = y0 + (np.arange(height) + 0.5) * dy

    if _is_dask(arrays[0]):
        import dask.array as da_mod

        data = da_mod.stack([da_mod.asarray(a).astype(dtype) for a in arrays])
    else:
        data = np.stack([np.asarray(a, dtype=dtype) for a in arrays])

    grid = xr.DataArray(
        data,
        dims=[BANDS_DIM, Y_DIM, X_DIM],
        coords={BANDS_DIM: names, Y_DIM: ys, X_DIM: xs},
        attrs={"crs": crs_str, "transform": (x0, dx, rx, y0, ry, dy)},
    )
    validate_grid(grid)
    return grid


def validate_grid(grid: Raster) -> Raster:
    """Check the structural invariants of a grid and return it unchanged.

    Raises
    ------
    ConfigurationError
        Missing spatial dims, irregular spacing, duplicate band names or
        a missing CRS.
    """
    if not isinstance(grid, xr.DataArray):
        raise TypeError(f"Expected an xarray.DataArray grid, got {type(grid).__name__}")

    for dim in (Y_DIM, X_DIM):
        if dim not in grid.dims:
            raise ConfigurationError(
                f"Grid has no {dim!r} dimension. Available dimensions: {list(grid.dims)}"
            )
    extra = [d for d in grid.dims if d not in (BANDS_DIM, Y_DIM, X_DIM)]
    if extra:
        raise ConfigurationError(f"Unexpected grid dimensions {extra}")

    if BANDS_DIM in grid.dims:
        labels = band_names(grid)
        if len(set(labels)) != len(labels):
            raise ConfigurationError(f"Duplicate band names in {labels}")

    if grid.attrs.get("crs") is None:
        raise ConfigurationError("Grid carries no CRS (attrs['crs'])")

    for dim in (X_DIM, Y_DIM):
        values = np.asarray(grid.coords[dim].values, dtype=float)
        if values.size > 1:
            steps = np.diff(values)
            if not np.allclose(steps, steps[0], rtol=1e-6, atol=0):
                raise ConfigurationError(f"Coordinates of {dim!r} are not regularly spaced")
    return grid


def band_names(grid: Raster) -> list[str]:
    """Band labels of a multi-band grid; a single-band grid yields its name."""
    if BANDS_DIM in grid.dims:
        return [str(b) for b in grid.coords[BANDS_DIM].values]
    return [str(grid.name)] if grid.name is not None else []


def geotransform(grid: Raster) -> Transform:
    """GDAL-order geotransform derived from the pixel-centre coordinates."""
    dx, dy = resolution(grid)
    x0 = float(grid.coords[X_DIM].values[0]) - dx / 2
    y0 = float(grid.coords[Y_DIM].values[0]) - dy / 2
    return (x0, dx, 0.0, y0, 0.0, dy)


def resolution(grid: Raster) -> tuple[float, float]:
    """Signed pixel size ``(dx, dy)``; ``dy`` is negative for north-up grids."""
    stored = grid.attrs.get("transform")
    steps = []
    for dim, idx in ((X_DIM, 1), (Y_DIM, 5)):
        values = grid.coords[dim].values
        if values.size > 1:
            steps.append(float(values[1] - values[0]))
        elif stored is not None:
            steps.append(float(stored[idx]))
        else:
            raise ConfigurationError(
                f"Cannot derive the pixel size of a single-pixel {dim!r} axis "
                "without attrs['transform']"
            )
    return steps[0], steps[1]


def bounds(grid: Raster) -> tuple[float, float, float, float]:
    """Outer pixel-edge extent ``(west, south, east, north)``."""
    x0, dx, _, y0, _, dy = geotransform(grid)
    x1 = x0 + dx * grid.sizes[X_DIM]
    y1 = y0 + dy * grid.sizes[Y_DIM]
    return min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1)


def crs_of(grid: Raster) -> pyproj.CRS:
    """The grid CRS as a :class:`pyproj.CRS`."""
    crs = grid.attrs.get("crs")
    if crs is None:
        raise ConfigurationError("Grid carries no CRS (attrs['crs'])")
    return pyproj.CRS.from_user_input(crs)


# ---------------------------------------------------------------------------
# Band selection
# ---------------------------------------------------------------------------


def select_band(grid: Raster, name: str) -> Raster:
    """Return one band as a single-band ``(y, x)`` grid named *name*."""
    _require_bands(grid, [name])
    result = grid.sel({BANDS_DIM: name}, drop=True)
    result.name = name
    return copy_georef(result, grid)


def select_bands(grid: Raster, names: Iterable[str]) -> Raster:
    """Return a multi-band grid holding *names* in the requested order.

    Raises
    ------
    BandNotAvailable
        If any requested band does not exist.
    """
    names = list(names)
    _require_bands(grid, names)
    return copy_georef(grid.sel({BANDS_DIM: names}), grid)


def rename_bands(grid: Raster, mapping: Mapping[str, str]) -> Raster:
    """Rename bands; names missing from *mapping* are kept."""
    labels = band_names(grid)
    renamed = [mapping.get(b, b) for b in labels]
    if len(set(renamed)) != len(renamed):
        raise BandExists(f"Renaming {labels} with {dict(mapping)} yields duplicate bands")
    return grid.assign_coords({BANDS_DIM: renamed})


def add_bands(grid: Raster, *layers: Raster) -> Raster:
    """Append single-band *layers* (named by their ``.name``) to *grid*.

    Raises
    ------
    BandExists
        If a layer name is already a band of *grid*.
    GridMismatch
        If a layer is not aligned with *grid*.
    """
    existing = set(band_names(grid))
    expanded = []
    for layer in layers:
        if layer.name is None:
            raise ConfigurationError("Layers appended to a grid must be named")
        if layer.name in existing:
            raise BandExists(f"A band with the name '{layer.name}' already exists.")
        assert_aligned(grid, layer)
        existing.add(layer.name)
        expanded.append(layer.astype(grid.dtype).expand_dims({BANDS_DIM: [layer.name]}))

    result = xr.concat(
        [grid, *expanded],
        dim=BANDS_DIM,
        coords="minimal",
        join="override",
        combine_attrs="override",
    )
    return copy_georef(result, grid)


def scale_reflectance(grid: Raster, *, scale: float, offset: float = 0.0) -> Raster:
    """Linear rescale ``value * scale + offset`` of every band."""
    if scale == 1.0 and offset == 0.0:
        return grid
    return copy_georef(grid * scale + offset, grid)


# ---------------------------------------------------------------------------
# Normalized-difference indices
# ---------------------------------------------------------------------------


def normalized_difference(
    grid: Raster,
    band_a: str,
    band_b: str,
    *,
    name: str | None = None,
) -> Raster:
    """Compute ``(a - b) / (a + b)`` per pixel.

    The result is NaN where either band is NaN or where ``a + b == 0``.

    Parameters
    ----------
    grid : Raster
        Multi-band grid containing *band_a* and *band_b*.
    band_a, band_b : str
        Band labels, e.g. ``"B8"`` / ``"B4"`` for Sentinel-2 NDVI.
    name : str | None
        Name of the resulting single-band grid.

    Raises
    ------
    BandNotAvailable
        If either band cannot be found.
    """
    _require_bands(grid, [band_a, band_b])

    a = grid.sel({BANDS_DIM: band_a}, drop=True).astype(np.float32)
    b = grid.sel({BANDS_DIM: band_b}, drop=True).astype(np.float32)

    denominator = a + b
    denominator = denominator.where(denominator != 0)
    result = ((a - b) / denominator).astype(np.float32)
    result.name = name or f"nd_{band_a}_{band_b}"
    return copy_georef(result, grid)


def compute_indices(grid: Raster, sensor: Any) -> Raster:
    """Append the sensor's index bands (NDVI, NBR, NDWI) to *grid*.

    *sensor* is a :class:`~landcover_change.config.SensorConfig`; its
    ``index_bands`` mapping unifies both sensors onto one index schema.
    """
    layers = [
        normalized_difference(grid, a, b, name=index_name)
        for index_name, (a, b) in sensor.index_bands.items()
    ]
    return add_bands(grid, *layers)


# ---------------------------------------------------------------------------
# Alignment
# ---------------------------------------------------------------------------


def assert_aligned(*grids: Raster) -> None:
    """Fail unless all *grids* share shape, pixel coordinates and CRS.

    Raises
    ------
    GridMismatch
        On the first mismatching grid.
    """
    if len(grids) < 2:
        return
    ref = grids[0]
    ref_crs = crs_of(ref)
    for other in grids[1:]:
        if ref.sizes[Y_DIM] != other.sizes[Y_DIM] or ref.sizes[X_DIM] != other.sizes[X_DIM]:
            raise GridMismatch(
                f"Grid shapes differ: {(ref.sizes[Y_DIM], ref.sizes[X_DIM])} vs "
                f"{(other.sizes[Y_DIM], other.sizes[X_DIM])}"
            )
        for dim in (X_DIM, Y_DIM):
            if not np.allclose(ref.coords[dim].values, other.coords[dim].values):
                raise GridMismatch(f"Grid coordinates along {dim!r} differ")
        if not ref_crs.equals(crs_of(other)):
            raise GridMismatch(f"Grid CRS differ: {ref.attrs['crs']} vs {other.attrs['crs']}")


def align_to(grid: Raster, template: Raster) -> Raster:
    """Nearest-neighbour regrid of *grid* onto the pixels of *template*.

    Template pixels farther than half a source pixel from any source
    pixel centre become NaN.  Both grids must share a CRS; reprojection
    belongs to the acquisition step.
    """
    if not crs_of(grid).equals(crs_of(template)):
        raise GridMismatch(
            f"Cannot align grids with different CRS: {grid.attrs['crs']} vs "
            f"{template.attrs['crs']}"
        )
    dx, dy = resolution(grid)
    result = grid.astype(np.float32) if not np.issubdtype(grid.dtype, np.floating) else grid
    result = result.reindex(
        {X_DIM: template.coords[X_DIM].values},
        method="nearest",
        tolerance=abs(dx) / 2 * (1 + 1e-9),
    )
    result = result.reindex(
        {Y_DIM: template.coords[Y_DIM].values},
        method="nearest",
        tolerance=abs(dy) / 2 * (1 + 1e-9),
    )
    result.attrs = dict(grid.attrs)
    result.attrs["transform"] = geotransform(template)
    return result


def clip_to_region(grid: Raster, region: Any) -> Raster:
    """Set pixels whose centre lies outside *region* to NaN.

    *region* is a shapely geometry in the grid CRS, or a GeoDataFrame /
    GeoSeries (reprojected to the grid CRS and dissolved).
    """
    import shapely

    geometry = _region_geometry(region, crs_of(grid))
    xx, yy = np.meshgrid(grid.coords[X_DIM].values, grid.coords[Y_DIM].values)
    inside = shapely.intersects_xy(geometry, xx, yy)
    mask = xr.DataArray(
        inside,
        dims=[Y_DIM, X_DIM],
        coords={Y_DIM: grid.coords[Y_DIM], X_DIM: grid.coords[X_DIM]},
    )
    return copy_georef(grid.where(mask), grid)


def require_valid(grid: Raster) -> Raster:
    """Return *grid* unchanged, or raise :class:`DataGapError` if it holds NaN."""
    n_missing = int(grid.isnull().sum())
    if n_missing:
        raise DataGapError(f"Grid {grid.name!r} has {n_missing} no-data pixel(s)")
    return grid


# ---------------------------------------------------------------------------
# Raster utilities for ML
# ---------------------------------------------------------------------------


def stack_to_samples(
    data: Raster,
    feature_dim: str = BANDS_DIM,
) -> Raster:
    """Stack all non-feature dims into a ``samples`` dim.

    Returns a 2-D DataArray with shape ``(samples, features)``.
    """
    non_feature = [d for d in data.dims if d != feature_dim]
    stacked = data.stack(samples=non_feature)
    return stacked.transpose("samples", feature_dim)


def unstack_from_samples(
    result: Raster,
    template: Raster,
    feature_dim: str = BANDS_DIM,
) -> Raster:
    """Reverse :func:`stack_to_samples` using *template*'s multi-index."""
    non_feature = [d for d in template.dims if d != feature_dim]
    stacked_template = template.stack(samples=non_feature)
    coords = xr.Coordinates.from_pandas_multiindex(
        stacked_template.indexes["samples"], "samples"
    )
    return result.assign_coords(coords).unstack("samples").transpose(*non_feature)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def copy_georef(result: Raster, template: Raster) -> Raster:
    """Copy georeferencing attrs of *template* onto *result*."""
    for key in ("crs", "transform"):
        if key in template.attrs:
            result.attrs[key] = template.attrs[key]
    return result


def _require_bands(grid: Raster, names: Sequence[str]) -> None:
    if BANDS_DIM not in grid.dims:
        raise BandNotAvailable(
            f"Grid has no {BANDS_DIM!r} dimension. Available dimensions: {list(grid.dims)}"
        )
    labels = band_names(grid)
    missing = [n for n in names if n not in labels]
    if missing:
        raise BandNotAvailable(
            f"Band(s) {missing} can't be resolved. Available bands: {labels}"
        )


def _check_transform(transform: Sequence[float]) -> Transform:
    if len(transform) != 6:
        raise ConfigurationError(f"A geotransform has 6 elements, got {len(transform)}")
    x0, dx, rx, y0, ry, dy = (float(v) for v in transform)
    if rx != 0 or ry != 0:
        raise ConfigurationError("Rotated geotransforms are not supported")
    if dx == 0 or dy == 0:
        raise ConfigurationError("Pixel size must be non-zero")
    return x0, dx, rx, y0, ry, dy


def _normalise_crs(crs: Any) -> str:
    try:
        parsed = pyproj.CRS.from_user_input(crs)
    except pyproj.exceptions.CRSError as exc:
        raise ConfigurationError(f"Invalid CRS {crs!r}: {exc}") from exc
    epsg = parsed.to_epsg()
    return f"EPSG:{epsg}" if epsg is not None else parsed.to_wkt()


def _region_geometry(region: Any, crs: pyproj.CRS) -> Any:
    import geopandas as gpd
    from shapely.geometry.base import BaseGeometry

    if isinstance(region, BaseGeometry):
        return region
    if isinstance(region, (gpd.GeoDataFrame, gpd.GeoSeries)):
        if region.crs is not None:
            region = region.to_crs(crs)
        return region.union_all()
    raise TypeError(
        f"region must be a shapely geometry, GeoDataFrame or GeoSeries; got {type(region)!r}"
    )


def _is_dask(array: Any) -> bool:
    import dask.array as da_mod

    return isinstance(array, da_mod.Array)
