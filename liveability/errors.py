"""Exception types raised by the liveability engine."""


class LiveabilityError(Exception):
    """Base class for all engine errors."""


class MappingConfigError(LiveabilityError):
    """The neighbourhood mapping configuration is missing or malformed.

    This is the only condition that aborts a pipeline run.
    """


class InvalidScoringTableError(LiveabilityError):
    """A threshold band table is unsorted or not exhaustive."""
