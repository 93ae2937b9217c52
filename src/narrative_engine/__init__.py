"""
Narrative Constraint Engine

Infers the structural constraints of a story from its premise, turns them
into quantified per-chapter requirements, and tracks generated content
against them and against genre conventions.
"""

from .dynamism import (
    StoryDNA,
    DynamismProfile,
    DynamismTracker,
    classify_premise,
    generate_dynamism_profile,
    get_chapter_requirements,
    build_book_outline_prompt,
    build_chapter_outline_prompt,
)
from .genre import GenreTrackerSuite, create_genre_suite

__version__ = "0.1.0"

__all__ = [
    "StoryDNA",
    "DynamismProfile",
    "DynamismTracker",
    "classify_premise",
    "generate_dynamism_profile",
    "get_chapter_requirements",
    "build_book_outline_prompt",
    "build_chapter_outline_prompt",
    "GenreTrackerSuite",
    "create_genre_suite",
]
