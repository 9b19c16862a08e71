"""Tests for landcover_change.ops.change."""

import itertools

import numpy as np
import pytest

from landcover_change.exceptions import GridMismatch
from landcover_change.ops.change import (
    TRANSITION_CODES,
    decode_transition,
    difference,
    transition,
    transition_counts,
    transition_histogram,
    transition_label,
)
from landcover_change.ops.raster import make_grid, select_band

TRANSFORM = (500000.0, 30.0, 0.0, 9850000.0, 0.0, -30.0)


def _make_classified(values):
    grid = make_grid(
        {"classification": np.asarray(values, dtype=np.float32)},
        transform=TRANSFORM,
        crs="EPSG:32750",
    )
    return select_band(grid, "classification")


class TestTransition:
    def test_example(self):
        earlier = _make_classified([[0, 0], [1, 2]])
        later = _make_classified([[1, 0], [1, 2]])
        result = transition(earlier, later)
        np.testing.assert_array_equal(result.values, [[1, 0], [11, 22]])
        assert result.name == "transition"
        assert result.attrs["crs"] == "EPSG:32750"

    @pytest.mark.parametrize("a, b", list(itertools.product([0, 1, 2], repeat=2)))
    def test_decodes_back_to_classes(self, a, b):
        result = transition(_make_classified([[a]]), _make_classified([[b]]))
        code = int(result.values[0, 0])
        assert code in TRANSITION_CODES
        assert decode_transition(code) == (a, b)

    def test_nodata_propagates(self):
        earlier = _make_classified([[0, np.nan], [1, 2]])
        later = _make_classified([[1, 0], [np.nan, 2]])
        result = transition(earlier, later).values
        assert np.isnan(result[0, 1])
        assert np.isnan(result[1, 0])
        assert result[0, 0] == 1
        assert result[1, 1] == 22

    def test_out_of_enumeration_is_nodata(self):
        result = transition(_make_classified([[0, 5]]), _make_classified([[1, 1]]))
        assert result.values[0, 0] == 1
        assert np.isnan(result.values[0, 1])

    def test_misaligned_raises(self):
        with pytest.raises(GridMismatch):
            transition(_make_classified([[0, 1]]), _make_classified([[0], [1]]))


class TestDifference:
    def test_signed_delta(self):
        earlier = _make_classified([[0, 2], [1, np.nan]])
        later = _make_classified([[2, 0], [1, 1]])
        result = difference(earlier, later)
        np.testing.assert_array_equal(result.values, [[2, -2], [0, np.nan]])
        assert result.name == "change"


class TestLabels:
    def test_codes_are_the_nine_pairs(self):
        assert TRANSITION_CODES == (0, 1, 2, 10, 11, 12, 20, 21, 22)

    def test_label(self):
        assert transition_label(1) == "0→1"
        assert transition_label(20) == "2→0"


class TestHistogram:
    def test_counts(self):
        grid = transition(
            _make_classified([[0, 0, 1], [1, 2, np.nan]]),
            _make_classified([[1, 1, 1], [0, 2, 0]]),
        )
        counts = transition_counts(grid)
        assert counts.to_dict() == {1: 2, 10: 1, 11: 1, 22: 1}
        assert counts.index.name == "code"

    def test_percentages_sum_to_100(self):
        grid = transition(
            _make_classified([[0, 0], [1, 2]]),
            _make_classified([[1, 0], [1, 2]]),
        )
        histogram = transition_histogram(grid)
        assert list(histogram) == ["0→0", "0→1", "1→1", "2→2"]
        assert sum(histogram.values()) == pytest.approx(100.0)
        assert histogram["0→1"] == pytest.approx(25.0)

    def test_all_nodata_is_empty(self):
        grid = transition(
            _make_classified([[np.nan, np.nan]]),
            _make_classified([[0, 1]]),
        )
        assert transition_histogram(grid) == {}
        assert transition_counts(grid).empty
