"""landcover-change – land-cover classification, change detection and overlay statistics."""

from landcover_change.config import (
    LANDSAT8,
    SENTINEL2,
    AnalysisConfig,
    ClassifierConfig,
    EpochConfig,
    OverlayThresholds,
    SensorConfig,
)
from landcover_change.exceptions import (
    BandExists,
    BandNotAvailable,
    ConfigurationError,
    DataGapError,
    DegenerateTrainingSet,
    GridMismatch,
    ResourceExhaustion,
    TemporalWindowError,
    UnitMismatch,
)
from landcover_change.grid import RasterGrid
from landcover_change.pipeline import ChangeReport, EpochResult, run_change_analysis
from landcover_change.types import LandCover

__all__ = [
    "RasterGrid",
    "LandCover",
    # configuration
    "AnalysisConfig",
    "ClassifierConfig",
    "EpochConfig",
    "OverlayThresholds",
    "SensorConfig",
    "LANDSAT8",
    "SENTINEL2",
    # pipeline
    "ChangeReport",
    "EpochResult",
    "run_change_analysis",
    # exceptions
    "BandExists",
    "BandNotAvailable",
    "ConfigurationError",
    "DataGapError",
    "DegenerateTrainingSet",
    "GridMismatch",
    "ResourceExhaustion",
    "TemporalWindowError",
    "UnitMismatch",
]

__version__ = "0.1.0"
