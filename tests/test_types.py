"""Tests for landcover_change.types module."""

import geopandas as gpd
import numpy as np
import xarray as xr

from landcover_change.types import CLASSES, LABEL_COLUMN, LandCover, Raster, SampleSet


def test_raster_is_dataarray():
    da = xr.DataArray(np.zeros((2, 3)), dims=["y", "x"])
    assert isinstance(da, Raster)


def test_sample_set_is_geodataframe():
    gdf = gpd.GeoDataFrame({LABEL_COLUMN: [1]}, geometry=gpd.points_from_xy([0], [0]))
    assert isinstance(gdf, SampleSet)


def test_land_cover_codes():
    assert LandCover.FOREST == 0
    assert LandCover.NON_FOREST == 1
    assert LandCover.WATER == 2
    assert CLASSES == (0, 1, 2)
