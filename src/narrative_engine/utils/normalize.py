"""
Entity name normalization and matching.

Locations and characters are identified by strings coming from an external
extraction step, so the same place or person shows up spelled in several
ways ("The Kitchen", "kitchen.", "Elena Vasquez", "Elena"). Every tracker goes
through these functions so that identity rules live in one place.

Collision behavior:
    Characters are keyed by first name only. "Elena Vasquez" and
    "Elena Park" normalize to the same key and are counted as one person.
    Locations keep their full text minus a leading article, so "the
    kitchen" and "a kitchen" are one location while "kitchen" and
    "old kitchen" are two.
"""

import re
from typing import Iterable, List, Optional

_LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+", re.IGNORECASE)
_TRAILING_PUNCTUATION = re.compile(r"[\s.,;:!?'\"]+$")
_WHITESPACE = re.compile(r"\s+")

# Ordered: a "car park" is outdoors, not a vehicle, so outdoor terms that
# embed vehicle words are checked first.
LOCATION_TYPE_PATTERNS = [
    ("memory", re.compile(r"\b(memory|memories|flashback|dream|remembered|childhood)\b", re.I)),
    ("virtual", re.compile(r"\b(video call|zoom|online|virtual|chat|screen|phone line)\b", re.I)),
    ("outdoor", re.compile(r"\b(park|street|road|forest|beach|field|garden|yard|mountain|river|lake|desert|alley|square|outside|woods|highway|bridge)\b", re.I)),
    ("vehicle", re.compile(r"\b(car|truck|van|bus|train|plane|boat|ship|cab|taxi|subway|helicopter|elevator)\b", re.I)),
    ("indoor", re.compile(r"\b(room|house|apartment|office|kitchen|bedroom|hall|building|store|shop|restaurant|bar|cafe|hospital|church|school|basement|attic|warehouse|station|coffin|cell|lab)\b", re.I)),
]


def normalize_location(name: Optional[str]) -> str:
    """
    Normalize a location name to its registry key.

    Lower-cases, collapses whitespace, strips one leading article and any
    trailing punctuation.

    Args:
        name: Raw location text

    Returns:
        Normalized key, or "" for empty input
    """
    if not name:
        return ""
    key = _WHITESPACE.sub(" ", name.strip().lower())
    key = _LEADING_ARTICLE.sub("", key)
    return _TRAILING_PUNCTUATION.sub("", key)


def normalize_character(name: Optional[str]) -> str:
    """
    Normalize a character name to its registry key (first name, lower case).

    Args:
        name: Raw character name

    Returns:
        Normalized key, or "" for empty input
    """
    if not name:
        return ""
    key = _LEADING_ARTICLE.sub("", name.strip())
    key = _TRAILING_PUNCTUATION.sub("", key)
    parts = key.split()
    return parts[0].lower() if parts else ""


def normalize_cast(names: Iterable[str]) -> List[str]:
    """Normalize a cast list, dropping blanks and duplicates, sorted."""
    return sorted({key for key in (normalize_character(n) for n in names or []) if key})


def pair_id(first: str, second: str) -> str:
    """Order-independent key for two characters ("Marcus", "Elena" -> "Elena_Marcus")."""
    a, b = sorted([first.strip(), second.strip()])
    return f"{a}_{b}"


def pair_key(first: str, second: str) -> str:
    """Identity key for a couple, built from normalized names ("Elena Park", "marcus" -> "elena_marcus")."""
    return "_".join(sorted([normalize_character(first), normalize_character(second)]))


def same_character(a: Optional[str], b: Optional[str]) -> bool:
    """Whether two names refer to the same character under first-name matching."""
    key_a = normalize_character(a)
    return bool(key_a) and key_a == normalize_character(b)


def fuzzy_match(needle: Optional[str], haystack: Optional[str]) -> bool:
    """
    Case-insensitive containment in either direction.

    Used for free-text entities (secrets, gags, obstacles) that extraction
    describes slightly differently from chapter to chapter. Short needles
    match broadly; "the" matches almost anything.
    """
    if not needle or not haystack:
        return False
    a = needle.strip().lower()
    b = haystack.strip().lower()
    return bool(a) and bool(b) and (a in b or b in a)


def infer_location_type(name: str) -> str:
    """
    Classify a location name as memory, virtual, outdoor, vehicle, indoor or unknown.
    """
    for location_type, pattern in LOCATION_TYPE_PATTERNS:
        if pattern.search(name or ""):
            return location_type
    return "unknown"
