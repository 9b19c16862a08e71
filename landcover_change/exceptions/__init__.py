"""Exceptions raised by the change-detection core."""

from landcover_change.exceptions.general import (
    ConfigurationError,
    DataGapError,
    DegenerateTrainingSet,
    ResourceExhaustion,
    TemporalWindowError,
    UnitMismatch,
)
from landcover_change.exceptions.grid import (
    BandExists,
    BandNotAvailable,
    GridMismatch,
)

__all__ = [
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
