"""
Shared plumbing for genre trackers.

Each tracker owns one pydantic state model for one book. State can be
passed in as a model or as the dict produced by ``get_state().to_dict()``
so a book can be continued across requests.

Chapter extractions come from a model reading generated prose, so they are
parsed leniently: each genre section is validated on its own and malformed
items are dropped with a warning. A bad romance record never stops the
mystery tracker, and a section that cannot be salvaged counts as missing.
"""

import logging
from typing import Any, Dict, Optional, Type, Union

from pydantic import BaseModel, ValidationError

from .models import (
    ComedyExtraction,
    CrimeExtraction,
    DialogueExtraction,
    DramaExtraction,
    GenreExtraction,
    MysteryExtraction,
    RomanceExtraction,
)

logger = logging.getLogger(__name__)

SECTION_MODELS: Dict[str, Type[BaseModel]] = {
    "romance": RomanceExtraction,
    "mystery": MysteryExtraction,
    "comedy": ComedyExtraction,
    "drama": DramaExtraction,
    "crime": CrimeExtraction,
    "dialogue": DialogueExtraction,
}


def parse_section(genre: str, data: Any) -> Optional[BaseModel]:
    """
    Validate one genre's sub-record, dropping malformed items.

    A bad list item (``dramatic_moments[2]``) removes just that item. A bad
    scalar field falls back to its default. Returns None when nothing
    usable is left.
    """
    model = SECTION_MODELS[genre]
    if data is None or isinstance(data, model):
        return data
    if not isinstance(data, dict):
        logger.warning(f"Ignoring {genre} extraction: expected an object, got {type(data).__name__}")
        return None

    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = e.errors()

    cleaned = dict(data)
    bad_items: Dict[str, set] = {}
    for error in errors:
        loc = error["loc"]
        if not loc:
            continue
        field = loc[0]
        if len(loc) > 1 and isinstance(loc[1], int) and isinstance(cleaned.get(field), list):
            bad_items.setdefault(field, set()).add(loc[1])
        else:
            cleaned.pop(field, None)
    for field, indexes in bad_items.items():
        if field in cleaned:
            cleaned[field] = [item for i, item in enumerate(cleaned[field]) if i not in indexes]

    try:
        section = model.model_validate(cleaned)
    except ValidationError as e:
        logger.warning(f"Ignoring malformed {genre} extraction: {e.error_count()} error(s)")
        return None
    logger.warning(f"Dropped malformed {genre} signals: {', '.join(_where(err) for err in errors)}")
    return section


def _where(error: Dict[str, Any]) -> str:
    return ".".join(str(part) for part in error["loc"][:2]) or "record"


def coerce_extraction(extraction: Optional[Union[GenreExtraction, Dict[str, Any]]]) -> GenreExtraction:
    """Build a GenreExtraction from a dict without letting one genre spoil another."""
    if isinstance(extraction, GenreExtraction):
        return extraction
    if extraction is None:
        return GenreExtraction()
    if not isinstance(extraction, dict):
        logger.warning(f"Ignoring chapter extraction of type {type(extraction).__name__}")
        return GenreExtraction()

    sections = {genre: parse_section(genre, extraction.get(genre)) for genre in SECTION_MODELS}
    try:
        return GenreExtraction(word_count=extraction.get("word_count") or 0, **sections)
    except ValidationError:
        logger.warning(f"Ignoring invalid word_count: {extraction.get('word_count')!r}")
        return GenreExtraction(**sections)


class GenreTracker:
    """
    Base class for the per-genre trackers.

    Subclasses set ``genre`` (the key in a GenreExtraction) and
    ``state_model`` (the pydantic class holding their registries).
    """

    genre: str = ""
    state_model: Type[BaseModel] = BaseModel

    def __init__(self, book_id: str, state: Optional[Union[BaseModel, Dict[str, Any]]] = None):
        self.book_id = book_id
        self.state = self._load_state(state)

    def _load_state(self, state):
        if state is None:
            return self.state_model()
        if isinstance(state, self.state_model):
            return state.model_copy(deep=True)
        return self.state_model.model_validate(state)

    def get_state(self):
        """Return a deep copy of the tracker state."""
        return self.state.model_copy(deep=True)

    @staticmethod
    def _word_count(extraction: Optional[Union[GenreExtraction, Dict[str, Any]]]) -> int:
        if isinstance(extraction, GenreExtraction):
            return extraction.word_count
        value = extraction.get("word_count") if isinstance(extraction, dict) else None
        return value if isinstance(value, int) and value >= 0 else 0

    def _extraction(self, extraction: Optional[Union[GenreExtraction, Dict[str, Any]]]):
        """Pull this tracker's sub-record out of a chapter extraction, or None."""
        if extraction is None:
            return None
        if isinstance(extraction, GenreExtraction):
            section = getattr(extraction, self.genre, None)
        elif isinstance(extraction, dict):
            section = parse_section(self.genre, extraction.get(self.genre))
        else:
            logger.warning(f"Ignoring chapter extraction of type {type(extraction).__name__}")
            section = None
        if section is None:
            logger.debug(f"No {self.genre} signals for book {self.book_id}")
        return section
