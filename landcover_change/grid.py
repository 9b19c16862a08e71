"""RasterGrid – immutable fluent wrapper around a georeferenced grid.

Usage::

    from landcover_change import RasterGrid
    from landcover_change.config import SENTINEL2

    grid = RasterGrid.from_arrays(
        {"B2": b2, "B3": b3, "B4": b4, "B8": b8, "B11": b11, "B12": b12},
        transform=(500000.0, 10.0, 0.0, 9850000.0, 0.0, -10.0),
        crs="EPSG:32750",
    )
    classified = grid.with_indices(SENTINEL2).classify(model)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Sequence

import xarray as xr

from landcover_change.exceptions import GridMismatch, ResourceExhaustion
from landcover_change.ops import raster as _raster
from landcover_change.types import Raster


class RasterGrid:
    """Immutable wrapper around a grid :class:`xarray.DataArray`.

    The wrapped array is validated on construction.  Methods return
    **new** ``RasterGrid`` instances so that the original is never
    mutated.
    """

    def __init__(self, data: Raster) -> None:
        self._data = _raster.validate_grid(data)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def data(self) -> Raster:
        """Access the underlying xarray DataArray."""
        return self._data

    @property
    def width(self) -> int:
        return int(self._data.sizes[_raster.X_DIM])

    @property
    def height(self) -> int:
        return int(self._data.sizes[_raster.Y_DIM])

    @property
    def crs(self) -> str:
        return self._data.attrs["crs"]

    @property
    def transform(self) -> _raster.Transform:
        return _raster.geotransform(self._data)

    @property
    def resolution(self) -> tuple[float, float]:
        return _raster.resolution(self._data)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        return _raster.bounds(self._data)

    @property
    def band_names(self) -> list[str]:
        return _raster.band_names(self._data)

    @property
    def is_multiband(self) -> bool:
        return _raster.BANDS_DIM in self._data.dims

    # ------------------------------------------------------------------
    # Loaders (classmethods)
    # ------------------------------------------------------------------

    @classmethod
    def from_arrays(
        cls,
        bands: Mapping[str, Any],
        *,
        transform: Sequence[float],
        crs: Any,
    ) -> "RasterGrid":
        """Build a grid from named 2-D arrays and a GDAL geotransform."""
        return cls(_raster.make_grid(bands, transform=transform, crs=crs))

    @classmethod
    def load(
        cls,
        path: str | Path,
        *,
        band_names: Sequence[str] | None = None,
        crs: str | None = None,
    ) -> "RasterGrid":
        """Open a GeoTIFF or NetCDF file."""
        from landcover_change.io.raster import load_grid

        return cls(load_grid(path, band_names=band_names, crs=crs))

    # ------------------------------------------------------------------
    # Band operations
    # ------------------------------------------------------------------

    def band(self, name: str) -> "RasterGrid":
        """One band as a single-band grid."""
        self._assert_multiband("band")
        return RasterGrid(_raster.select_band(self._data, name))

    def select(self, names: Sequence[str]) -> "RasterGrid":
        """Keep *names*, in that order."""
        self._assert_multiband("select")
        return RasterGrid(_raster.select_bands(self._data, names))

    def rename(self, mapping: Mapping[str, str]) -> "RasterGrid":
        self._assert_multiband("rename")
        return RasterGrid(_raster.rename_bands(self._data, mapping))

    def normalized_difference(self, band_a: str, band_b: str, *, name: str | None = None) -> "RasterGrid":
        """``(a - b) / (a + b)`` as a single-band grid."""
        self._assert_multiband("normalized_difference")
        return RasterGrid(_raster.normalized_difference(self._data, band_a, band_b, name=name))

    def to_reflectance(self, sensor: Any) -> "RasterGrid":
        """Rename provider bands and rescale digital numbers per *sensor*."""
        self._assert_multiband("to_reflectance")
        data = self._data
        if sensor.band_aliases:
            data = _raster.rename_bands(data, sensor.band_aliases)
        data = _raster.scale_reflectance(
            data, scale=sensor.reflectance_scale, offset=sensor.reflectance_offset
        )
        return RasterGrid(data)

    def with_indices(self, sensor: Any) -> "RasterGrid":
        """Append NDVI, NBR and NDWI computed with *sensor*'s band pairs."""
        self._assert_multiband("with_indices")
        return RasterGrid(_raster.compute_indices(self._data, sensor))

    # ------------------------------------------------------------------
    # Spatial operations
    # ------------------------------------------------------------------

    def clip(self, region: Any) -> "RasterGrid":
        """Set pixels outside *region* to no-data."""
        return RasterGrid(_raster.clip_to_region(self._data, region))

    def align_to(self, template: "RasterGrid | Raster") -> "RasterGrid":
        """Nearest-neighbour regrid onto *template*'s pixels."""
        return RasterGrid(_raster.align_to(self._data, _unwrap(template)))

    def is_aligned_with(self, other: "RasterGrid | Raster") -> bool:
        try:
            _raster.assert_aligned(self._data, _unwrap(other))
        except GridMismatch:
            return False
        return True

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify(self, model: Any) -> "RasterGrid":
        """Classify every pixel with a :class:`~landcover_change.model.TrainedModel`."""
        self._assert_multiband("classify")
        from landcover_change.model.base import predict

        return RasterGrid(predict(model, self._data))

    def sample(
        self,
        samples: Any,
        bands: Sequence[str] | None = None,
        scale: float | None = None,
    ) -> Any:
        """Feature vectors under labelled points (see ``extract_samples``)."""
        self._assert_multiband("sample")
        from landcover_change.ops.vector import extract_samples

        return extract_samples(self._data, samples, bands or self.band_names, scale)

    # ------------------------------------------------------------------
    # Materialisation
    # ------------------------------------------------------------------

    def compute(self) -> "RasterGrid":
        """Materialise dask-backed data into memory.

        Raises
        ------
        ResourceExhaustion
            If the grid does not fit in memory.
        """
        if not hasattr(self._data.data, "dask"):
            return self
        try:
            return RasterGrid(self._data.compute())
        except MemoryError as exc:
            raise ResourceExhaustion(
                f"Grid of shape {dict(self._data.sizes)} does not fit in memory"
            ) from exc

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"<RasterGrid {self.height}x{self.width} bands={self.band_names} "
            f"crs={self.crs}>"
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _assert_multiband(self, method: str) -> None:
        if not self.is_multiband:
            raise TypeError(f"{method}() requires a multi-band grid, got a single-band grid")


def _unwrap(grid: "RasterGrid | Raster") -> Raster:
    if isinstance(grid, RasterGrid):
        return grid.data
    if isinstance(grid, xr.DataArray):
        return grid
    raise TypeError(f"Expected a RasterGrid or DataArray, got {type(grid).__name__}")
