"""End-to-end change analysis between two epochs.

Control flow::

    composites ─► indices ─► samples ─► forest ─► classified (x2)
                                                    │
    fire intensity ─────────────────────────────────┼─► transitions / masks
                                                    ▼
                                       area report + transition histogram
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from landcover_change.config import AnalysisConfig, ClassifierConfig, EpochConfig, check_fire_window
from landcover_change.model.base import SeedLike, assess_accuracy, predict, train
from landcover_change.model.trained import ConfusionMatrix, TrainedModel
from landcover_change.ops.area import area_report
from landcover_change.ops.change import difference, transition, transition_histogram
from landcover_change.ops.overlay import overlay_conditions
from landcover_change.ops.raster import (
    align_to,
    assert_aligned,
    clip_to_region,
    compute_indices,
    rename_bands,
    scale_reflectance,
    select_band,
    validate_grid,
)
from landcover_change.ops.vector import extract_samples
from landcover_change.types import (
    ClassifiedRaster,
    MaskRaster,
    Raster,
    SampleSet,
    TransitionRaster,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EpochResult:
    """Classification outcome of one epoch."""

    label: str
    grid: Raster
    classified: ClassifiedRaster
    model: TrainedModel
    confusion_matrix: ConfusionMatrix
    n_samples: int

    @property
    def accuracy(self) -> float:
        return self.confusion_matrix.accuracy


@dataclass(frozen=True)
class ChangeReport:
    """Every product of :func:`run_change_analysis`, as plain data."""

    earlier: EpochResult
    later: EpochResult
    transition: TransitionRaster
    difference: Raster
    masks: dict[str, MaskRaster] = field(default_factory=dict)
    areas: dict[str, float] = field(default_factory=dict)
    histogram: dict[str, float] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Single epoch
# ---------------------------------------------------------------------------


def prepare_epoch(grid: Raster, epoch: EpochConfig, *, region: Any = None) -> Raster:
    """Rescale, rename, clip and append the index bands of one composite."""
    validate_grid(grid)
    sensor = epoch.sensor
    if sensor.band_aliases:
        grid = rename_bands(grid, sensor.band_aliases)
    grid = scale_reflectance(
        grid, scale=sensor.reflectance_scale, offset=sensor.reflectance_offset
    )
    if region is not None:
        grid = clip_to_region(grid, region)
    return compute_indices(grid, sensor)


def classify_epoch(
    grid: Raster,
    samples: SampleSet,
    epoch: EpochConfig,
    *,
    classifier: ClassifierConfig | None = None,
    seed: SeedLike = None,
) -> EpochResult:
    """Train, apply and assess a land-cover classifier for one epoch.

    *grid* must already carry the sensor's feature bands (see
    :func:`prepare_epoch`).  The production model is trained on every
    extracted sample; the accuracy comes from a separate model trained on
    a random 70 % share.
    """
    classifier = classifier or ClassifierConfig()
    rng = np.random.default_rng(seed)
    bands = epoch.sensor.feature_bands

    features = extract_samples(grid, samples, bands, epoch.sensor.scale)
    logger.info("Epoch %s: %d training samples", epoch.label, len(features))

    model = train(
        features, bands, config=classifier, seed=int(rng.integers(0, 2**31 - 1))
    )
    classified = predict(model, grid)
    matrix, _ = assess_accuracy(features, bands, config=classifier, seed=rng)
    logger.info("Epoch %s: accuracy %.3f", epoch.label, matrix.accuracy)

    return EpochResult(
        label=epoch.label,
        grid=grid,
        classified=classified,
        model=model,
        confusion_matrix=matrix,
        n_samples=len(features),
    )


# ---------------------------------------------------------------------------
# Two-epoch analysis
# ---------------------------------------------------------------------------


def run_change_analysis(
    earlier: Raster,
    later: Raster,
    fire_intensity: Raster,
    samples: SampleSet,
    config: AnalysisConfig,
    *,
    region: Any = None,
) -> ChangeReport:
    """Classify both epochs and derive transitions, masks and statistics.

    Parameters
    ----------
    earlier, later : Raster
        Composited multi-band grids of the two epochs, in provider band
        names (aliases in the epoch's sensor config are applied).
    fire_intensity : Raster
        Single-band fire intensity grid (e.g. mean VIIRS MaxFRP).
    samples : SampleSet
        Labelled training points.
    config : AnalysisConfig
        Epoch, threshold and classifier settings.
    region : shapely geometry | GeoDataFrame | None
        Analysis region; pixels outside it are no-data.

    Raises
    ------
    GridMismatch
        If the inputs are not aligned and ``config.align_inputs`` is off.
    TemporalWindowError
        If the fire period misses the change interval and
        ``config.strict_temporal_window`` is on.
    """
    check_fire_window(config)
    rng = np.random.default_rng(config.seed)

    earlier_grid = prepare_epoch(earlier, config.earlier, region=region)
    later_grid = prepare_epoch(later, config.later, region=region)
    validate_grid(fire_intensity)

    if config.align_inputs:
        earlier_grid = align_to(earlier_grid, later_grid)
        fire_intensity = align_to(fire_intensity, later_grid)
        logger.info("Aligned earlier epoch and fire grid onto the later epoch")
    assert_aligned(later_grid, earlier_grid, fire_intensity)
    if region is not None:
        fire_intensity = clip_to_region(fire_intensity, region)

    logger.info("Classifying epoch %s", config.earlier.label)
    earlier_result = classify_epoch(
        earlier_grid, samples, config.earlier, classifier=config.classifier, seed=rng
    )
    logger.info("Classifying epoch %s", config.later.label)
    later_result = classify_epoch(
        later_grid, samples, config.later, classifier=config.classifier, seed=rng
    )

    transitions = transition(earlier_result.classified, later_result.classified)
    masks = overlay_conditions(
        earlier_result.classified,
        later_result.classified,
        ndvi=select_band(later_grid, "NDVI"),
        nbr=select_band(later_grid, "NBR"),
        fire_intensity=fire_intensity,
        thresholds=config.thresholds,
    )

    return ChangeReport(
        earlier=earlier_result,
        later=later_result,
        transition=transitions,
        difference=difference(earlier_result.classified, later_result.classified),
        masks=masks,
        areas=area_report(masks, region=region),
        histogram=transition_histogram(transitions),
    )
