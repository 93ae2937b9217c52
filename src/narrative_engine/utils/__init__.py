"""
Utility modules for the narrative engine.

Modules:
- normalize: Entity name normalization and matching
- speech: Dialogue statistics for voice validation
- errors: API exception hierarchy and Flask error handlers
"""

from .normalize import (
    normalize_location,
    normalize_character,
    normalize_cast,
    pair_id,
    pair_key,
    same_character,
    fuzzy_match,
    infer_location_type,
)
from .speech import analyze_speech

__all__ = [
    "normalize_location",
    "normalize_character",
    "normalize_cast",
    "pair_id",
    "pair_key",
    "same_character",
    "fuzzy_match",
    "infer_location_type",
    "analyze_speech",
]
