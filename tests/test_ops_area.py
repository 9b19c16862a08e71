"""Tests for landcover_change.ops.area."""

import numpy as np
import pytest
from shapely.geometry import box

from landcover_change.exceptions import GridMismatch, UnitMismatch
from landcover_change.ops.area import (
    SQUARE_METRES_PER_HECTARE,
    area_report,
    mask_area,
    pixel_area,
    pixel_size_metres,
)
from landcover_change.ops.raster import make_grid, select_band

UTM_50S = "EPSG:32750"


def _make_mask(values, crs=UTM_50S, transform=(500000.0, 30.0, 0.0, 9850000.0, 0.0, -30.0)):
    grid = make_grid({"mask": np.asarray(values, dtype=np.float32)}, transform=transform, crs=crs)
    return select_band(grid, "mask")


class TestPixelArea:
    def test_projected_grid(self):
        mask = _make_mask(np.zeros((2, 5)))
        areas = pixel_area(mask)
        assert areas.dims == ("y", "x")
        np.testing.assert_array_equal(areas.values, 900.0)
        assert areas.attrs["units"] == "m2"

    def test_geographic_grid_shrinks_with_latitude(self):
        # rows centred on 0.5 N and 60.5 N
        mask = _make_mask(
            np.zeros((61, 1)), crs="EPSG:4326", transform=(0.0, 1.0, 0.0, 61.0, 0.0, -1.0)
        )
        areas = pixel_area(mask).values[:, 0]
        equator, north = areas[-1], areas[0]
        # one square degree at the equator is about 12 300 km2
        assert equator == pytest.approx(1.2308e10, rel=1e-3)
        assert north / equator == pytest.approx(np.cos(np.radians(60.5)), rel=0.02)
        assert np.all(np.diff(areas) > 0)

    def test_non_metre_projection_raises(self):
        # NAD83 / New York Long Island (ftUS)
        mask = _make_mask(
            np.zeros((2, 2)), crs="EPSG:2263", transform=(0.0, 100.0, 0.0, 0.0, 0.0, -100.0)
        )
        with pytest.raises(UnitMismatch, match="not metres"):
            pixel_area(mask)


class TestPixelSize:
    def test_projected(self):
        assert pixel_size_metres(_make_mask(np.zeros((2, 2)))) == (30.0, 30.0)

    def test_geographic_near_equator(self):
        mask = _make_mask(
            np.zeros((3, 3)),
            crs="EPSG:4326",
            transform=(114.0, 0.0001, 0.0, -1.0, 0.0, -0.0001),
        )
        width, height = pixel_size_metres(mask)
        assert width == pytest.approx(11.13, rel=0.01)
        assert height == pytest.approx(11.06, rel=0.01)


class TestMaskArea:
    def test_all_false_is_exactly_zero(self):
        mask = _make_mask(np.zeros((2, 5)))
        assert mask_area(mask) == 0.0

    def test_single_true_pixel(self):
        values = np.zeros((2, 5))
        values[1, 3] = 1.0
        assert mask_area(_make_mask(values)) == pytest.approx(0.09)

    def test_all_true(self):
        mask = _make_mask(np.ones((2, 5)))
        assert mask_area(mask) == pytest.approx(10 * 900.0 / SQUARE_METRES_PER_HECTARE)

    def test_nodata_contributes_nothing(self):
        values = np.array([[1.0, np.nan], [np.nan, 1.0]])
        assert mask_area(_make_mask(values)) == pytest.approx(0.18)

    def test_region_restricts_area(self):
        mask = _make_mask(np.ones((2, 5)))
        # first two columns only
        region = box(500000.0, 9849940.0, 500060.0, 9850000.0)
        assert mask_area(mask, region=region) == pytest.approx(4 * 0.09)

    def test_misaligned_reference_grid(self):
        mask = _make_mask(np.ones((2, 5)))
        other = _make_mask(np.ones((2, 4)))
        with pytest.raises(GridMismatch):
            mask_area(mask, other)


class TestAreaReport:
    def test_keys_follow_mask_order(self):
        masks = {
            "b": _make_mask(np.ones((2, 5))),
            "a": _make_mask(np.zeros((2, 5))),
        }
        report = area_report(masks)
        assert list(report) == ["b", "a"]
        assert report["b"] == pytest.approx(0.9)
        assert report["a"] == 0.0
