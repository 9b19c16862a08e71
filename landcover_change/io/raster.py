"""Raster file loader – read composited multi-band grids from disk.

Acquisition and compositing happen upstream; this module only turns a
finished GeoTIFF or NetCDF file into the grid representation used by the
rest of the package.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import numpy as np
import xarray as xr

from landcover_change.exceptions import ConfigurationError
from landcover_change.ops.raster import BANDS_DIM, X_DIM, Y_DIM, geotransform, validate_grid
from landcover_change.types import Raster

logger = logging.getLogger(__name__)

_NETCDF_SUFFIXES = {".nc", ".nc4", ".netcdf"}


def load_grid(
    path: str | Path,
    *,
    band_names: Sequence[str] | None = None,
    crs: str | None = None,
) -> Raster:
    """Open a multi-band raster file as a grid.

    GeoTIFF files are read with ``rioxarray`` (``pip install
    landcover-change[geo]``); band names come from the band descriptions
    unless *band_names* is given.  NetCDF files are read with xarray: every
    data variable on ``(y, x)`` becomes a band.  Nodata values declared in
    the file become NaN.

    Parameters
    ----------
    path : str | Path
        Raster file.
    band_names : sequence of str | None
        Names to assign to the bands, in file order.
    crs : str | None
        CRS to use when the file does not declare one.
    """
    path = Path(path)
    if path.suffix.lower() in _NETCDF_SUFFIXES:
        grid = _load_netcdf(path, crs=crs)
    else:
        grid = _load_geotiff(path, crs=crs)

    if band_names is not None:
        if len(band_names) != grid.sizes[BANDS_DIM]:
            raise ConfigurationError(
                f"{path.name} has {grid.sizes[BANDS_DIM]} bands, "
                f"got {len(band_names)} names"
            )
        grid = grid.assign_coords({BANDS_DIM: list(band_names)})

    grid = grid.astype(np.float32)
    grid.attrs["transform"] = geotransform(grid)
    logger.info("Loaded %s: bands=%s shape=%s", path.name, list(grid.coords[BANDS_DIM].values),
                (grid.sizes[Y_DIM], grid.sizes[X_DIM]))
    return validate_grid(grid)


def _load_geotiff(path: Path, *, crs: str | None) -> Raster:
    import rioxarray

    da = rioxarray.open_rasterio(path, masked=True)
    descriptions = da.attrs.get("long_name")
    file_crs = da.rio.crs
    if isinstance(descriptions, (list, tuple)) and len(set(descriptions)) == len(descriptions):
        names = [str(d) for d in descriptions]
    else:
        names = [f"band_{int(b)}" for b in da.coords["band"].values]
    da = da.rename({"band": BANDS_DIM}).assign_coords({BANDS_DIM: names})
    da = da.drop_vars("spatial_ref", errors="ignore")

    resolved = file_crs.to_string() if file_crs is not None else crs
    if resolved is None:
        raise ConfigurationError(f"{path.name} declares no CRS; pass crs=")
    return xr.DataArray(da.data, dims=da.dims, coords=da.coords, attrs={"crs": resolved})


def _load_netcdf(path: Path, *, crs: str | None) -> Raster:
    with xr.open_dataset(path) as ds:
        variables = [
            name for name, var in ds.data_vars.items() if set(var.dims) == {Y_DIM, X_DIM}
        ]
        if not variables:
            raise ConfigurationError(f"{path.name} holds no variables on ({Y_DIM}, {X_DIM})")
        grid = ds[variables].to_dataarray(dim=BANDS_DIM).transpose(BANDS_DIM, Y_DIM, X_DIM)
        grid = grid.load()
        resolved = ds.attrs.get("crs", crs)
    if resolved is None:
        raise ConfigurationError(f"{path.name} declares no CRS; pass crs=")
    grid.attrs = {"crs": str(resolved)}
    return grid
