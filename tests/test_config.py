"""Tests for landcover_change.config."""

import logging

import pytest

from landcover_change.config import (
    INDEX_NAMES,
    LANDSAT8,
    SENTINEL2,
    AnalysisConfig,
    ClassifierConfig,
    EpochConfig,
    OverlayThresholds,
    SensorConfig,
    check_fire_window,
)
from landcover_change.exceptions import ConfigurationError, TemporalWindowError


def _make_config(**kwargs) -> AnalysisConfig:
    defaults = dict(
        earlier=EpochConfig("2015", period=("2015-01-01", "2015-12-31"), sensor=LANDSAT8),
        later=EpochConfig("2023", period=("2023-01-01", "2023-12-31"), sensor=SENTINEL2),
    )
    defaults.update(kwargs)
    return AnalysisConfig(**defaults)


class TestSensors:
    def test_unified_index_schema(self):
        assert tuple(SENTINEL2.index_bands) == INDEX_NAMES
        assert tuple(LANDSAT8.index_bands) == INDEX_NAMES

    def test_band_pairs(self):
        assert SENTINEL2.index_bands["NDVI"] == ("B8", "B4")
        assert SENTINEL2.index_bands["NBR"] == ("B8", "B12")
        assert LANDSAT8.index_bands["NDVI"] == ("B5", "B4")
        assert LANDSAT8.index_bands["NBR"] == ("B5", "B7")

    def test_feature_bands(self):
        assert SENTINEL2.feature_bands == [
            "B2", "B3", "B4", "B8", "B11", "B12", "NDVI", "NBR", "NDWI",
        ]

    def test_landsat_scaling_and_aliases(self):
        assert LANDSAT8.reflectance_scale == 0.0000275
        assert LANDSAT8.reflectance_offset == -0.2
        assert LANDSAT8.band_aliases["SR_B5"] == "B5"
        assert LANDSAT8.scale == 30.0
        assert SENTINEL2.scale == 10.0

    def test_sensors_are_hashable(self):
        assert hash(SENTINEL2) == hash(SENTINEL2)
        assert len({SENTINEL2, LANDSAT8, SENTINEL2}) == 2

    def test_shared_mappings_are_read_only(self):
        with pytest.raises(TypeError):
            SENTINEL2.index_bands["NDVI"] = ("B4", "B8")
        with pytest.raises(TypeError):
            LANDSAT8.band_aliases["SR_B1"] = "B1"
        assert SENTINEL2.index_bands["NDVI"] == ("B8", "B4")
        assert "SR_B1" not in LANDSAT8.band_aliases

    def test_caller_dict_is_copied(self):
        pairs = {"NDVI": ["a", "b"]}
        sensor = SensorConfig(name="x", bands=["a", "b"], index_bands=pairs, scale=10.0)
        pairs["NBR"] = ("a", "b")
        assert list(sensor.index_bands) == ["NDVI"]
        assert sensor.index_bands["NDVI"] == ("a", "b")
        assert sensor.bands == ("a", "b")

    def test_bad_index_pair(self):
        with pytest.raises(ConfigurationError, match="exactly two bands"):
            SensorConfig(name="x", bands=("a",), index_bands={"NDVI": ("a",)}, scale=10.0)

    def test_non_positive_scale(self):
        with pytest.raises(ConfigurationError):
            SensorConfig(name="x", bands=("a",), index_bands={}, scale=0.0)


class TestClassifierConfig:
    def test_defaults(self):
        config = ClassifierConfig()
        assert config.num_trees == 50
        assert config.max_variables == "sqrt"
        assert config.test_fraction_threshold == 0.7

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"num_trees": 0},
            {"test_fraction_threshold": 1.0},
            {"max_variables": "half"},
            {"max_variables": 0},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigurationError):
            ClassifierConfig(**kwargs)

    def test_frozen(self):
        with pytest.raises(AttributeError):
            ClassifierConfig().num_trees = 10


class TestOverlayThresholds:
    def test_defaults(self):
        thresholds = OverlayThresholds()
        assert thresholds.burn_threshold == 10.0
        assert thresholds.ndvi_threshold == 0.5
        assert thresholds.nbr_threshold == 0.1


class TestEpochs:
    def test_period_bounds(self):
        epoch = EpochConfig("2015", period=("2015-01-01", "2015-12-31"), sensor=LANDSAT8)
        assert epoch.start.year == 2015
        assert epoch.end.month == 12

    def test_reversed_period(self):
        with pytest.raises(ConfigurationError, match="starts after it ends"):
            EpochConfig("x", period=("2016-01-01", "2015-01-01"), sensor=LANDSAT8)

    def test_malformed_period(self):
        with pytest.raises(ConfigurationError, match="ISO-8601"):
            EpochConfig("x", period=("2015-01-01",), sensor=LANDSAT8)

    def test_epochs_out_of_order(self):
        with pytest.raises(ConfigurationError, match="starts after"):
            _make_config(
                earlier=EpochConfig("2023", period=("2023-01-01", "2023-12-31"), sensor=SENTINEL2),
                later=EpochConfig("2015", period=("2015-01-01", "2015-12-31"), sensor=LANDSAT8),
            )


class TestFireWindow:
    def test_no_fire_period(self):
        assert check_fire_window(_make_config()) is True

    def test_inside_interval(self):
        assert check_fire_window(_make_config(fire_period=("2023-01-01", "2023-12-31"))) is True

    def test_outside_interval_warns(self, caplog):
        config = _make_config(fire_period=("2010-01-01", "2010-12-31"))
        with caplog.at_level(logging.WARNING, logger="landcover_change.config"):
            assert check_fire_window(config) is False
        assert "outside the change interval" in caplog.text

    def test_outside_interval_strict(self):
        config = _make_config(
            fire_period=("2024-06-01", "2024-12-31"), strict_temporal_window=True
        )
        with pytest.raises(TemporalWindowError):
            check_fire_window(config)
