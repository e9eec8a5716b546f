"""Exception types for the idol bot."""


class IdolBotError(Exception):
    """Base class for all idol bot errors."""


class ConfigurationError(IdolBotError):
    """Startup configuration is unusable (bad feed URL, invalid config file)."""


class StreamConnectionError(IdolBotError):
    """The event stream could not be opened, even after retrying."""


class SnapshotError(IdolBotError):
    """A required upstream dataset could not be fetched or parsed."""


class ScoringError(IdolBotError):
    """An algorithm could not produce a result for a snapshot."""


class NoCandidateError(ScoringError):
    """No pitcher or player qualified for an algorithm."""
