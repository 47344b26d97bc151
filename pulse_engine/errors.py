"""Exception taxonomy shared by every stage of the insights pipeline."""

from typing import Optional


class PulseError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(PulseError):
    """A required credential or setting is missing. Always fatal."""


class TransportError(PulseError):
    """Network/HTTP failure that survived the transport-level retries."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(TransportError):
    """HTTP 429 that persisted after the fixed-delay retries."""


class MalformedResponseError(PulseError):
    """LLM output that could not be parsed even after repair."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class MediaGenerationError(PulseError):
    """A single image or video generation failed."""
