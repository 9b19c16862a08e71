"""Tests for the raster file loader."""

import importlib.util

import numpy as np
import pytest
import xarray as xr

from landcover_change.exceptions import ConfigurationError
from landcover_change.io import load_grid
from landcover_change.ops.raster import geotransform

_HAS_RIOXARRAY = importlib.util.find_spec("rioxarray") is not None
_HAS_NETCDF4 = importlib.util.find_spec("netCDF4") is not None

XS = 500000.0 + 30.0 * np.arange(4) + 15.0
YS = 9850000.0 - 30.0 * np.arange(3) - 15.0


def _values():
    return np.arange(12, dtype=np.float32).reshape(3, 4)


@pytest.mark.skipif(not _HAS_NETCDF4, reason="netCDF4 not installed")
class TestLoadNetCDF:
    def _write(self, tmp_path, **attrs):
        ds = xr.Dataset(
            {
                "B4": (("y", "x"), _values()),
                "B8": (("y", "x"), _values() * 2),
                "time_bnds": (("t",), np.zeros(2)),
            },
            coords={"y": YS, "x": XS},
            attrs=attrs,
        )
        path = tmp_path / "composite.nc"
        ds.to_netcdf(path)
        return path

    def test_variables_become_bands(self, tmp_path):
        grid = load_grid(self._write(tmp_path, crs="EPSG:32750"))
        assert grid.dims == ("bands", "y", "x")
        assert list(grid.coords["bands"].values) == ["B4", "B8"]
        np.testing.assert_array_equal(grid.sel(bands="B8").values, _values() * 2)
        assert grid.attrs["crs"] == "EPSG:32750"
        assert geotransform(grid) == pytest.approx((500000.0, 30.0, 0.0, 9850000.0, 0.0, -30.0))

    def test_data_loaded_and_file_released(self, tmp_path):
        path = self._write(tmp_path, crs="EPSG:32750")
        grid = load_grid(path)
        assert isinstance(grid.data, np.ndarray)

        xr.Dataset(
            {"B4": (("y", "x"), _values() + 100)},
            coords={"y": YS, "x": XS},
            attrs={"crs": "EPSG:32750"},
        ).to_netcdf(path, mode="w")
        reloaded = load_grid(path)
        assert list(reloaded.coords["bands"].values) == ["B4"]
        np.testing.assert_array_equal(reloaded.sel(bands="B4").values, _values() + 100)
        np.testing.assert_array_equal(grid.sel(bands="B8").values, _values() * 2)

    def test_crs_fallback(self, tmp_path):
        grid = load_grid(self._write(tmp_path), crs="EPSG:32750")
        assert grid.attrs["crs"] == "EPSG:32750"

    def test_missing_crs(self, tmp_path):
        with pytest.raises(ConfigurationError, match="declares no CRS"):
            load_grid(self._write(tmp_path))

    def test_band_names_override(self, tmp_path):
        grid = load_grid(self._write(tmp_path, crs="EPSG:32750"), band_names=["red", "nir"])
        assert list(grid.coords["bands"].values) == ["red", "nir"]

    def test_band_name_count_mismatch(self, tmp_path):
        with pytest.raises(ConfigurationError, match="2 bands"):
            load_grid(self._write(tmp_path, crs="EPSG:32750"), band_names=["red"])


@pytest.mark.skipif(not _HAS_RIOXARRAY, reason="rioxarray not installed")
class TestLoadGeoTiff:
    def _write(self, tmp_path):
        import rioxarray  # noqa: F401

        da = xr.DataArray(
            np.stack([_values(), _values() + 100]),
            dims=["band", "y", "x"],
            coords={"band": [1, 2], "y": YS, "x": XS},
        )
        da = da.rio.write_crs("EPSG:32750")
        path = tmp_path / "composite.tif"
        da.rio.to_raster(path)
        return path

    def test_read_with_band_names(self, tmp_path):
        grid = load_grid(self._write(tmp_path), band_names=["B4", "B8"])
        assert grid.dims == ("bands", "y", "x")
        assert grid.dtype == np.float32
        assert list(grid.coords["bands"].values) == ["B4", "B8"]
        np.testing.assert_array_equal(grid.sel(bands="B8").values, _values() + 100)
        assert grid.attrs["crs"] == "EPSG:32750"
        assert geotransform(grid) == pytest.approx((500000.0, 30.0, 0.0, 9850000.0, 0.0, -30.0))
