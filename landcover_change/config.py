"""Analysis configuration – sensors, classifier, thresholds and epochs.

All configuration objects are frozen dataclasses validated at
construction, so a bad value fails before any grid is touched::

    from landcover_change.config import AnalysisConfig, EpochConfig, LANDSAT8, SENTINEL2

    config = AnalysisConfig(
        earlier=EpochConfig("2015", period=("2015-01-01", "2015-12-31"), sensor=LANDSAT8),
        later=EpochConfig("2023", period=("2023-01-01", "2023-12-31"), sensor=SENTINEL2),
        fire_period=("2023-01-01", "2023-12-31"),
    )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import pandas as pd

from landcover_change.exceptions import ConfigurationError, TemporalWindowError

logger = logging.getLogger(__name__)

INDEX_NAMES: tuple[str, ...] = ("NDVI", "NBR", "NDWI")

_MAX_VARIABLES = ("all", "sqrt", "log2", "onethird")


# ---------------------------------------------------------------------------
# Sensors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SensorConfig:
    """Band layout of one sensor.

    Parameters
    ----------
    name : str
        Human readable sensor name.
    bands : tuple[str, ...]
        Reflectance bands used as classification features.
    index_bands : Mapping[str, tuple[str, str]]
        ``{index_name: (band_a, band_b)}`` for the normalized differences
        ``(a - b) / (a + b)``.
    scale : float
        Nominal sampling resolution in CRS units (metres).
    reflectance_scale, reflectance_offset : float
        Linear rescaling ``dn * scale + offset`` applied to raw digital
        numbers.  ``1.0`` / ``0.0`` when the provider already delivers
        reflectance.
    band_aliases : Mapping[str, str]
        Provider band names mapped onto the names in *bands*.

    Both mappings are stored read-only, so the shared sensor constants
    cannot be altered in place.
    """

    name: str
    bands: tuple[str, ...]
    index_bands: Mapping[str, tuple[str, str]] = field(hash=False)
    scale: float
    reflectance_scale: float = 1.0
    reflectance_offset: float = 0.0
    band_aliases: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if self.scale <= 0:
            raise ConfigurationError(f"scale must be positive, got {self.scale}")
        for index_name, pair in self.index_bands.items():
            if len(pair) != 2:
                raise ConfigurationError(
                    f"Index {index_name!r} needs exactly two bands, got {pair!r}"
                )
        object.__setattr__(self, "bands", tuple(self.bands))
        object.__setattr__(
            self,
            "index_bands",
            MappingProxyType({k: tuple(v) for k, v in self.index_bands.items()}),
        )
        object.__setattr__(self, "band_aliases", MappingProxyType(dict(self.band_aliases)))

    @property
    def feature_bands(self) -> list[str]:
        """Reflectance bands followed by the derived index bands."""
        return [*self.bands, *self.index_bands]


SENTINEL2 = SensorConfig(
    name="Sentinel-2 L2A",
    bands=("B2", "B3", "B4", "B8", "B11", "B12"),
    index_bands={"NDVI": ("B8", "B4"), "NBR": ("B8", "B12"), "NDWI": ("B3", "B8")},
    scale=10.0,
)

LANDSAT8 = SensorConfig(
    name="Landsat 8 C2 L2",
    bands=("B2", "B3", "B4", "B5", "B6", "B7"),
    index_bands={"NDVI": ("B5", "B4"), "NBR": ("B5", "B7"), "NDWI": ("B3", "B5")},
    scale=30.0,
    reflectance_scale=0.0000275,
    reflectance_offset=-0.2,
    band_aliases={f"SR_B{i}": f"B{i}" for i in range(2, 8)},
)


# ---------------------------------------------------------------------------
# Classifier / overlay
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClassifierConfig:
    """Random forest and accuracy-assessment settings.

    ``test_fraction_threshold`` is the cut on the per-sample uniform draw:
    samples with a draw ``>= threshold`` form the test set.
    """

    num_trees: int = 50
    max_variables: int | str = "sqrt"
    test_fraction_threshold: float = 0.7

    def __post_init__(self) -> None:
        if self.num_trees < 1:
            raise ConfigurationError(f"num_trees must be >= 1, got {self.num_trees}")
        if not 0.0 < self.test_fraction_threshold < 1.0:
            raise ConfigurationError(
                "test_fraction_threshold must lie in (0, 1), "
                f"got {self.test_fraction_threshold}"
            )
        if isinstance(self.max_variables, str) and self.max_variables not in _MAX_VARIABLES:
            raise ConfigurationError(
                f"Unknown max_variables value {self.max_variables!r}. "
                f"Expected an integer or one of {list(_MAX_VARIABLES)}"
            )
        if isinstance(self.max_variables, int) and self.max_variables < 1:
            raise ConfigurationError(
                f"max_variables must be >= 1, got {self.max_variables}"
            )


@dataclass(frozen=True)
class OverlayThresholds:
    """Thresholds of the burned and open-land predicates."""

    burn_threshold: float = 10.0
    ndvi_threshold: float = 0.5
    nbr_threshold: float = 0.1


# ---------------------------------------------------------------------------
# Epochs and temporal window
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EpochConfig:
    """One acquisition epoch: a label, the composited period and its sensor."""

    label: str
    period: tuple[str, str]
    sensor: SensorConfig

    def __post_init__(self) -> None:
        start, end = _parse_period(self.period, what=f"epoch {self.label!r}")
        if start > end:
            raise ConfigurationError(
                f"Epoch {self.label!r} period starts after it ends: {self.period}"
            )

    @property
    def start(self) -> pd.Timestamp:
        return pd.Timestamp(self.period[0])

    @property
    def end(self) -> pd.Timestamp:
        return pd.Timestamp(self.period[1])


@dataclass(frozen=True)
class AnalysisConfig:
    """Everything :func:`~landcover_change.pipeline.run_change_analysis` needs."""

    earlier: EpochConfig
    later: EpochConfig
    fire_period: tuple[str, str] | None = None
    thresholds: OverlayThresholds = field(default_factory=OverlayThresholds)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    seed: int | None = None
    align_inputs: bool = False
    strict_temporal_window: bool = False

    def __post_init__(self) -> None:
        if self.earlier.start > self.later.start:
            raise ConfigurationError(
                f"Earlier epoch {self.earlier.label!r} starts after "
                f"later epoch {self.later.label!r}"
            )
        if self.fire_period is not None:
            _parse_period(self.fire_period, what="fire_period")


def check_fire_window(config: AnalysisConfig) -> bool:
    """Check that fire evidence falls inside the change interval.

    The change interval runs from the start of the earlier epoch to the
    end of the later epoch.  Returns ``True`` when the fire period
    overlaps it.  Otherwise a warning is logged, or
    :class:`TemporalWindowError` is raised when
    ``config.strict_temporal_window`` is set.  A missing fire period is
    accepted without a check.
    """
    if config.fire_period is None:
        return True

    fire_start, fire_end = _parse_period(config.fire_period, what="fire_period")
    overlaps = fire_start <= config.later.end and fire_end >= config.earlier.start
    if overlaps:
        return True

    message = (
        f"Fire period {config.fire_period} lies outside the change interval "
        f"{config.earlier.period[0]} .. {config.later.period[1]}"
    )
    if config.strict_temporal_window:
        raise TemporalWindowError(message)
    logger.warning(message)
    return False


def _parse_period(period: Any, *, what: str) -> tuple[pd.Timestamp, pd.Timestamp]:
    try:
        start, end = period
        return pd.Timestamp(start), pd.Timestamp(end)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"{what} must be a (start, end) pair of ISO-8601 dates, got {period!r}"
        ) from exc
