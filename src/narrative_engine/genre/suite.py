"""
Genre tracker suite.

Builds the trackers a book needs, routes each chapter extraction to all
of them and folds their summaries, suggestions and states together. The
romance tracker is always wired to the suite's drama tracker so affairs
end up in the one secret registry.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from .base import coerce_extraction
from .comedy import ComedyTracker
from .crime import CrimeTracker
from .dialogue import DialogueAnalyzer
from .drama import DramaTracker
from .models import GenreState
from .mystery import MysteryTracker
from .romance import RomanceTracker

logger = logging.getLogger(__name__)

GENRES = ["romance", "mystery", "comedy", "drama", "crime", "dialogue"]

# Story DNA primary genre -> trackers worth running
STORY_GENRE_TRACKERS: Dict[str, List[str]] = {
    "romance": ["romance", "drama", "dialogue"],
    "mystery": ["mystery", "crime", "dialogue"],
    "thriller": ["mystery", "drama", "dialogue"],
    "horror": ["drama", "dialogue"],
    "comedy": ["comedy", "dialogue"],
    "literary": ["drama", "dialogue"],
}
DEFAULT_TRACKERS = ["drama", "dialogue"]


def genres_for_story(primary_genre: str) -> List[str]:
    """Trackers to activate for a Story DNA primary genre."""
    return list(STORY_GENRE_TRACKERS.get((primary_genre or "").lower(), DEFAULT_TRACKERS))


class GenreTrackerSuite:
    """
    All active genre trackers for one book.

    Args:
        book_id: Book identifier
        active_genres: Tracker names to run; romance pulls in drama
        state: Previously dumped GenreState (model or dict)
        central_mystery: Main question for the mystery tracker
        procedural_accuracy: Mode for the crime tracker
    """

    def __init__(
        self,
        book_id: str,
        active_genres: Optional[Iterable[str]] = None,
        state: Optional[Union[GenreState, Dict[str, Any]]] = None,
        central_mystery: str = "",
        procedural_accuracy: Optional[str] = None,
    ):
        if state is not None and not isinstance(state, GenreState):
            state = GenreState.model_validate(state)

        if active_genres is None:
            active_genres = state.active_genres if state is not None else GENRES
        genres = [g for g in GENRES if g in set(active_genres)]
        unknown = set(active_genres) - set(GENRES)
        if unknown:
            logger.warning(f"Ignoring unknown genres: {', '.join(sorted(unknown))}")
        if "romance" in genres and "drama" not in genres:
            genres.append("drama")

        self.book_id = book_id
        self.active_genres = genres
        saved = state or GenreState(book_id=book_id)

        self.trackers: Dict[str, Any] = {}
        if "drama" in genres:
            self.trackers["drama"] = DramaTracker(book_id, state=saved.drama)
        if "romance" in genres:
            self.trackers["romance"] = RomanceTracker(book_id, state=saved.romance, drama=self.trackers["drama"])
        if "mystery" in genres:
            self.trackers["mystery"] = MysteryTracker(book_id, central_mystery, state=saved.mystery)
        if "comedy" in genres:
            self.trackers["comedy"] = ComedyTracker(book_id, state=saved.comedy)
        if "crime" in genres:
            self.trackers["crime"] = CrimeTracker(book_id, procedural_accuracy, state=saved.crime)
        if "dialogue" in genres:
            self.trackers["dialogue"] = DialogueAnalyzer(book_id, state=saved.dialogue)

    def get(self, genre: str):
        return self.trackers.get(genre)

    def process_chapter(self, chapter_number: int, extraction) -> Dict[str, Any]:
        """
        Fan one chapter's extraction out to every active tracker.

        Returns:
            Dict of genre name -> that tracker's delta
        """
        extraction = coerce_extraction(extraction)

        deltas = {}
        for genre in GENRES:
            tracker = self.trackers.get(genre)
            if tracker is not None:
                deltas[genre] = tracker.process_chapter(chapter_number, extraction)
        logger.debug(f"Processed chapter {chapter_number} for book {self.book_id}: {', '.join(deltas)}")
        return deltas

    def generate_summary(self) -> str:
        parts = [self.trackers[g].generate_summary() for g in GENRES if g in self.trackers]
        return "\n".join(p for p in parts if p)

    def generate_suggestions(self, current_chapter: int) -> Dict[str, List[str]]:
        return {
            genre: self.trackers[genre].generate_suggestions(current_chapter)
            for genre in GENRES
            if genre in self.trackers
        }

    def get_state(self) -> GenreState:
        state = GenreState(book_id=self.book_id, active_genres=list(self.active_genres))
        for genre, tracker in self.trackers.items():
            setattr(state, genre, tracker.get_state())
        return state


def create_genre_suite(book_id: str, primary_genre: str, central_mystery: str = "") -> GenreTrackerSuite:
    """Suite with the trackers suited to a Story DNA primary genre."""
    return GenreTrackerSuite(book_id, genres_for_story(primary_genre), central_mystery=central_mystery)
