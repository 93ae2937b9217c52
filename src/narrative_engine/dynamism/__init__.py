"""
Dynamism: premise classification, requirements, and per-beat tracking.

Modules:
- story_dna: Premise -> StoryDNA rule tables
- profile: StoryDNA -> DynamismProfile, per-chapter requirements
- prompts: Prompt text built from a profile
- tracker: Beat-by-beat stagnation tracking and reports
"""

from .models import (
    StoryDNA,
    DynamismProfile,
    ChapterRequirements,
    DynamismState,
    DynamismWarning,
    DynamismViolation,
    DynamismReport,
    BeatState,
)
from .story_dna import (
    classify_premise,
    analyze_story_dna,
    summarize_story_dna,
    is_confined_story,
    is_traveling_story,
    LOCATION_RULES,
    CHARACTER_RULES,
    TIME_RULES,
    GENRE_RULES,
)
from .profile import (
    generate_dynamism_profile,
    summarize_dynamism_profile,
    get_chapter_requirements,
    is_allowed,
)
from .prompts import (
    build_book_outline_prompt,
    build_chapter_outline_prompt,
    build_comic_page_prompt,
    build_screenplay_sequence_prompt,
    build_outline_validation_prompt,
)
from .tracker import (
    DynamismTracker,
    create_dynamism_tracker,
    extract_locations,
    extract_characters,
    has_external_contact,
)

__all__ = [
    "StoryDNA",
    "DynamismProfile",
    "ChapterRequirements",
    "DynamismState",
    "DynamismWarning",
    "DynamismViolation",
    "DynamismReport",
    "BeatState",
    "classify_premise",
    "analyze_story_dna",
    "summarize_story_dna",
    "is_confined_story",
    "is_traveling_story",
    "LOCATION_RULES",
    "CHARACTER_RULES",
    "TIME_RULES",
    "GENRE_RULES",
    "generate_dynamism_profile",
    "summarize_dynamism_profile",
    "get_chapter_requirements",
    "is_allowed",
    "build_book_outline_prompt",
    "build_chapter_outline_prompt",
    "build_comic_page_prompt",
    "build_screenplay_sequence_prompt",
    "build_outline_validation_prompt",
    "DynamismTracker",
    "create_dynamism_tracker",
    "extract_locations",
    "extract_characters",
    "has_external_contact",
]
