"""Brand Pulse: brand mention sentiment, topic insights and creative generation.

The coordinator lives in :mod:`pulse_engine.pipeline`; import it from there.
"""

__all__ = [
    "BrandInsights",
    "ConfigurationError",
    "PulseError",
    "Settings",
]

__version__ = "0.1.0"

from .config import Settings
from .errors import ConfigurationError, PulseError
from .models import BrandInsights
