"""Tests for the RasterGrid fluent wrapper."""

import dask.array as da
import geopandas as gpd
import numpy as np
import pytest
from shapely.geometry import Point, box

from landcover_change import LANDSAT8, SENTINEL2, RasterGrid
from landcover_change.exceptions import ConfigurationError
from landcover_change.model import train
from landcover_change.types import LABEL_COLUMN

UTM_50S = "EPSG:32750"
TRANSFORM = (500000.0, 10.0, 0.0, 9850000.0, 0.0, -10.0)


def _make_grid(dask_backed: bool = False) -> RasterGrid:
    rng = np.random.default_rng(0)
    bands = {
        name: rng.uniform(0.01, 0.5, size=(4, 6)).astype(np.float32)
        for name in SENTINEL2.bands
    }
    if dask_backed:
        bands = {k: da.from_array(v, chunks=(2, 3)) for k, v in bands.items()}
    return RasterGrid.from_arrays(bands, transform=TRANSFORM, crs=UTM_50S)


class TestRasterGridProperties:
    def test_geometry(self):
        grid = _make_grid()
        assert grid.width == 6
        assert grid.height == 4
        assert grid.crs == UTM_50S
        assert grid.transform == pytest.approx(TRANSFORM)
        assert grid.resolution == (10.0, -10.0)
        assert grid.bounds == pytest.approx((500000.0, 9849960.0, 500060.0, 9850000.0))
        assert grid.band_names == list(SENTINEL2.bands)
        assert grid.is_multiband

    def test_invalid_data_rejected(self):
        data = _make_grid().data.copy()
        data.attrs.pop("crs")
        with pytest.raises(ConfigurationError):
            RasterGrid(data)

    def test_repr(self):
        assert repr(_make_grid()).startswith("<RasterGrid 4x6")


class TestRasterGridFluent:
    def test_band(self):
        b4 = _make_grid().band("B4")
        assert not b4.is_multiband
        assert b4.band_names == ["B4"]

    def test_single_band_methods_rejected(self):
        with pytest.raises(TypeError, match="multi-band"):
            _make_grid().band("B4").band("B4")

    def test_select_and_rename(self):
        grid = _make_grid().select(["B8", "B4"]).rename({"B8": "nir", "B4": "red"})
        assert grid.band_names == ["nir", "red"]

    def test_normalized_difference(self):
        grid = _make_grid()
        ndvi = grid.normalized_difference("B8", "B4", name="NDVI")
        b8 = grid.data.sel(bands="B8")
        b4 = grid.data.sel(bands="B4")
        np.testing.assert_allclose(ndvi.data.values, ((b8 - b4) / (b8 + b4)).values, rtol=1e-5)

    def test_with_indices(self):
        grid = _make_grid().with_indices(SENTINEL2)
        assert grid.band_names[-3:] == ["NDVI", "NBR", "NDWI"]

    def test_to_reflectance(self):
        dn = np.full((2, 2), 20000.0)
        raw = RasterGrid.from_arrays(
            {f"SR_B{i}": dn for i in range(2, 8)}, transform=TRANSFORM, crs=UTM_50S
        )
        grid = raw.to_reflectance(LANDSAT8)
        assert grid.band_names == list(LANDSAT8.bands)
        np.testing.assert_allclose(grid.data.values, 0.35, rtol=1e-5)

    def test_original_unchanged(self):
        grid = _make_grid()
        grid.with_indices(SENTINEL2)
        assert grid.band_names == list(SENTINEL2.bands)


class TestRasterGridSpatial:
    def test_clip(self):
        region = box(500000.0, 9849960.0, 500030.0, 9850000.0)
        clipped = _make_grid().clip(region)
        values = clipped.data.sel(bands="B2").values
        assert not np.isnan(values[:, :3]).any()
        assert np.isnan(values[:, 3:]).all()

    def test_alignment(self):
        grid = _make_grid()
        assert grid.is_aligned_with(grid.band("B2"))
        shifted = RasterGrid.from_arrays(
            {"a": np.zeros((4, 6))},
            transform=(500010.0, 10.0, 0.0, 9850000.0, 0.0, -10.0),
            crs=UTM_50S,
        )
        assert not grid.is_aligned_with(shifted)
        assert grid.align_to(shifted).is_aligned_with(shifted)

    def test_unwrap_rejects_arrays(self):
        with pytest.raises(TypeError):
            _make_grid().is_aligned_with(np.zeros((4, 6)))


class TestRasterGridClassification:
    def _samples(self):
        return gpd.GeoDataFrame(
            {LABEL_COLUMN: [0, 1, 2, 0, 1, 2]},
            geometry=[Point(500005.0 + 10 * i, 9849995.0 - 10 * (i % 4)) for i in range(6)],
            crs=UTM_50S,
        )

    def test_sample_and_classify(self):
        grid = _make_grid().with_indices(SENTINEL2)
        features = grid.sample(self._samples(), SENTINEL2.feature_bands, scale=SENTINEL2.scale)
        assert len(features) == 6
        model = train(features, SENTINEL2.feature_bands, seed=0)
        classified = grid.classify(model)
        assert not classified.is_multiband
        assert classified.data.shape == (4, 6)
        assert set(np.unique(classified.data.values)) <= {0.0, 1.0, 2.0}


class TestRasterGridCompute:
    def test_compute_noop_for_numpy(self):
        grid = _make_grid()
        assert grid.compute() is grid

    def test_compute_materialises_dask(self):
        grid = _make_grid(dask_backed=True)
        computed = grid.compute()
        assert isinstance(computed.data.data, np.ndarray)
        np.testing.assert_array_equal(computed.data.values, grid.data.values)
