"""Exceptions for band access and grid alignment."""

from landcover_change.exceptions.general import ConfigurationError


class BandNotAvailable(ConfigurationError):
    """A band with the requested name does not exist in the grid."""


class BandExists(ConfigurationError):
    """A band with the specified target name exists."""


class GridMismatch(ConfigurationError):
    """Grids passed to a binary operation differ in shape, coordinates or CRS."""
