"""Exception types raised by the analysis pipeline."""


class BeatlaneError(Exception):
    """Base class for beatlane errors."""


class InvalidAudioError(BeatlaneError, ValueError):
    """Raised when a sample buffer or sample rate cannot be analyzed."""


class AnalysisCancelled(BeatlaneError):
    """Raised when a running analysis observes its cancel event."""
