"""General pipeline exceptions."""


class ConfigurationError(Exception):
    """Inputs or parameters are invalid; no partial result is produced."""


class DegenerateTrainingSet(ConfigurationError):
    """Training data is empty or holds samples of a single class only."""


class UnitMismatch(ConfigurationError):
    """The unit of the spatial reference system does not match the expected unit."""


class TemporalWindowError(ConfigurationError):
    """The fire-evidence period does not fall within the change interval."""


class DataGapError(Exception):
    """A grid that was required to be complete contains no-data pixels."""


class ResourceExhaustion(Exception):
    """A grid could not be materialised in the available memory."""
