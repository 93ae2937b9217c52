"""
Genre trackers: per-genre state machines fed by chapter extractions.

Modules:
- romance: Couple arcs and validated stage progression
- mystery: Clues, suspects and fair-play checks
- comedy: Jokes, running gags and callbacks
- drama: Secrets, confrontations, affairs, deaths, power
- crime: Investigations, evidence custody, witnesses, leads
- dialogue: Character voice profiles and subtext
- suite: All active trackers for one book
"""

from .models import GenreExtraction, GenreState, ValidationResult
from .romance import RomanceTracker, STAGE_ORDER, create_romance_tracker
from .mystery import MysteryTracker, create_mystery_tracker
from .comedy import ComedyTracker, create_comedy_tracker
from .drama import DramaTracker, create_drama_tracker
from .crime import CrimeTracker, create_crime_tracker
from .dialogue import DialogueAnalyzer, create_dialogue_analyzer
from .suite import GENRES, GenreTrackerSuite, create_genre_suite, genres_for_story

__all__ = [
    "GenreExtraction",
    "GenreState",
    "ValidationResult",
    "RomanceTracker",
    "STAGE_ORDER",
    "create_romance_tracker",
    "MysteryTracker",
    "create_mystery_tracker",
    "ComedyTracker",
    "create_comedy_tracker",
    "DramaTracker",
    "create_drama_tracker",
    "CrimeTracker",
    "create_crime_tracker",
    "DialogueAnalyzer",
    "create_dialogue_analyzer",
    "GENRES",
    "GenreTrackerSuite",
    "create_genre_suite",
    "genres_for_story",
]
