"""Brand Pulse Generation Engine.

Turns per-topic sentiment into ranked suggestions, per-topic playbooks and
ad creatives (copy plus image/video), with a persisted topic history that
keeps consecutive runs from repeating themselves.
"""

__all__ = [
    "AdIdea",
    "CreativeBatch",
    "GeneratedMedia",
    "Suggestion",
    "SuggestionHistory",
]

__version__ = "0.1.0"

from .models import AdIdea, CreativeBatch, GeneratedMedia, Suggestion, SuggestionHistory
