"""
Constants and runtime settings for the narrative constraint engine.

This module centralizes the thresholds, windows, and score weights used by
the classifier, the requirements generator, and the trackers, plus the
environment-driven settings read by the HTTP app and CLI.
"""

import os
from typing import Any, Dict

# Requirements generator
# Chapter count assumed when the caller does not supply one
DEFAULT_TOTAL_CHAPTERS = 10

# Base interruption probability per chapter for genres without an override
BASE_INTERRUPTION_FREQUENCY = 0.3

# Flashback probability when the time structure allows jumps
FLASHBACK_FREQUENCY = 0.3

# Supported output formats
SUPPORTED_FORMATS = [
    "novel",
    "fiction",
    "non-fiction",
    "screenplay",
    "comic",
    "picture_book",
    "children",
]

# Dynamism tracker
# Beat index within a chapter after which a solo cast must have had contact
SOLO_CONTACT_GRACE_BEATS = 2

# Extra character target on top of the profile's new-character minimum
SOLO_CHARACTER_TARGET_BONUS = 3
CAST_CHARACTER_TARGET_BONUS = 5

# Location name length accepted by the text extraction helper
MIN_EXTRACTED_LOCATION_LENGTH = 3
MAX_EXTRACTED_LOCATION_LENGTH = 49

# Romance
MAX_CHEMISTRY = 10.0
ESCALATION_CHEMISTRY_STEP = 0.5
STALLED_ROMANCE_CHAPTERS = 3

# Mystery
MIN_CRUCIAL_CLUES = 3
MIN_CLUES_FOR_SOLUTION = 5
MIN_POINTING_CLUES = 2
LATE_INTRODUCTION_WINDOW = 3
MAX_RED_HERRING_RATIO = 0.5
MIN_RED_HERRING_RATIO = 0.1
MIN_CLUES_FOR_RED_HERRING_CHECK = 5
FAIR_PLAY_PENALTY_TOO_FEW_CLUES = 20
FAIR_PLAY_PENALTY_LATE_GUILTY = 15

# Comedy
GAG_EXHAUSTION_WINDOW = 5
GAG_MIN_VARIATIONS = 3
CALLBACK_MIN_DELAY = 3
CALLBACK_MAX_DELAY = 7

# Drama
SECRET_STALE_CHAPTERS = 5
CONFRONTATION_STALE_CHAPTERS = 3
AFFAIR_STALE_CHAPTERS = 7

# Dialogue
COMPLEX_WORD_MIN_LENGTH = 10
SIMPLE_VOCABULARY_MAX_COMPLEX_RATIO = 0.1
SOPHISTICATED_VOCABULARY_MIN_COMPLEX_RATIO = 0.05
SOPHISTICATED_MIN_WORDS = 20


def get_settings() -> Dict[str, Any]:
    """
    Read runtime settings from the environment.

    Call after ``load_dotenv()`` so values from a ``.env`` file are visible.

    Returns:
        Dict with debug flag, log level, rate limits, limiter storage and
        interruption seed salt.
    """
    debug = os.getenv("FLASK_ENV") == "development"
    default_level = "DEBUG" if debug else "INFO"
    limits = os.getenv("NARRATIVE_RATE_LIMITS", "200 per day;50 per hour")
    return {
        "debug": debug,
        "log_level": os.getenv("NARRATIVE_LOG_LEVEL", default_level).upper(),
        "rate_limits": [limit.strip() for limit in limits.split(";") if limit.strip()],
        "analysis_rate_limit": os.getenv("NARRATIVE_ANALYSIS_RATE_LIMIT", "30 per minute"),
        "storage_uri": os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
        "interruption_seed": os.getenv("NARRATIVE_INTERRUPTION_SEED", ""),
    }
