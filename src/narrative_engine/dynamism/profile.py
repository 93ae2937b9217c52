"""
Dynamism profile generator.

Turns Story DNA into concrete, measurable requirements for location
variety, character flux and pacing. The profile is premise-specific:

- confined ("Buried") -> no physical travel, but external contact every chapter
- traveling (road trip) -> new locations every chapter
- limited (courtroom) -> few locations, rotating characters

Generation is a pure function of (dna, format, total_chapters). The one
probabilistic element, the per-chapter interruption pick, lives in
``get_chapter_requirements`` and takes an injectable random source.
"""

import hashlib
import logging
import math
import random
from typing import Dict, List, Optional

from ..config import (
    BASE_INTERRUPTION_FREQUENCY,
    DEFAULT_TOTAL_CHAPTERS,
    FLASHBACK_FREQUENCY,
    SUPPORTED_FORMATS,
    get_settings,
)
from .models import (
    CharacterRequirements,
    ChapterRequirements,
    ComicAdjustments,
    DynamismProfile,
    FormatAdjustments,
    LocationRequirements,
    PacingRequirements,
    ScreenplayAdjustments,
    StoryDNA,
    VarietySource,
)

logger = logging.getLogger(__name__)


def _source(source_type: str, description: str, frequency: str) -> Dict[str, str]:
    return {"type": source_type, "description": description, "frequency": frequency}


# Location bounds keyed by location type. ``book_target`` maps the chapter
# count to the distinct-location target for the whole book.
LOCATION_BOUNDS: Dict[str, Dict] = {
    "confined": {
        "min_per_chapter": 0,
        "max_consecutive": 6,
        "book_target": lambda chapters: 1,
        "variety_sources": [
            _source("environment_change",
                    "The confined space itself changes (light, temperature, damage, discovery)",
                    "required_per_chapter"),
            _source("phone_location", "Phone calls reveal what's happening elsewhere",
                    "required_per_chapter"),
            _source("memory_location", "Flashbacks to other places", "every_few_chapters"),
        ],
        "instructions": [
            "The primary location must FEEL different each chapter (lighting, damage, protagonist's state)",
            "External world must come IN via calls, radio, sounds, vibrations",
            "Discoveries within the space create \"new\" locations (finding a hidden object, wall collapses)",
        ],
    },
    "limited": {
        "min_per_chapter": 1,
        "max_consecutive": 3,
        "book_target": lambda chapters: min(8, math.ceil(chapters * 0.8)),
        "variety_sources": [
            _source("physical_travel", "Move between the key locations", "required_per_chapter"),
            _source("phone_location", "Calls from characters in other places", "every_few_chapters"),
        ],
        "instructions": [
            "Rotate between the key locations, don't get stuck",
            "Each location should have distinct atmosphere and purpose",
        ],
    },
    "multiple": {
        "min_per_chapter": 2,
        "max_consecutive": 2,
        "book_target": lambda chapters: min(15, math.ceil(chapters * 1.5)),
        "variety_sources": [
            _source("physical_travel", "Active movement between locations", "required_per_chapter"),
            _source("parallel_scene", "Cut to what's happening elsewhere", "every_few_chapters"),
        ],
        "instructions": [
            "Each chapter visits at least 2 distinct locations",
            "Variety: indoor/outdoor, public/private, safe/dangerous",
        ],
    },
    "traveling": {
        "min_per_chapter": 2,
        "max_consecutive": 2,
        "book_target": lambda chapters: min(20, chapters * 2),
        "variety_sources": [
            _source("physical_travel", "Journey to new places is the story engine",
                    "required_per_chapter"),
            _source("camera_cut", "What's happening back home or with pursuers",
                    "every_few_chapters"),
        ],
        "instructions": [
            "NEW locations are mandatory: this is a journey",
            "Travel itself is a scene opportunity (vehicle, route, getting lost)",
            "Each stop should have unique local flavor",
        ],
    },
    "epic": {
        "min_per_chapter": 2,
        "max_consecutive": 2,
        "book_target": lambda chapters: min(30, chapters * 3),
        "variety_sources": [
            _source("physical_travel", "World-spanning movement", "required_per_chapter"),
            _source("parallel_scene", "Multiple storylines in different locations",
                    "required_per_chapter"),
        ],
        "instructions": [
            "World-building through location variety",
            "Each location represents a different aspect of the world",
            "Parallel storylines can show simultaneous events",
        ],
    },
}

CHARACTER_BOUNDS: Dict[str, Dict] = {
    "solo": {
        "min_per_chapter": 1,
        "max_consecutive": 4,
        "new_per_book": lambda chapters: 0,
        "variety_sources": [
            _source("phone_call", "Voices from elsewhere bring other characters in",
                    "required_per_chapter"),
            _source("memory", "Flashbacks featuring other people", "every_few_chapters"),
            _source("voice", "Radio, PA system, recording, shouting from distance",
                    "every_few_chapters"),
        ],
        "instructions": [
            "External voices MUST appear: phone calls, radio, memories",
            "Each chapter should feature at least one non-protagonist voice",
            "Isolation is the constraint, not an excuse for monotony",
        ],
    },
    "duo": {
        "min_per_chapter": 2,
        "max_consecutive": 3,
        "new_per_book": lambda chapters: 2,
        "variety_sources": [
            _source("physical_appearance", "Encounters with other people", "every_few_chapters"),
            _source("phone_call", "Calls to/from others", "every_few_chapters"),
            _source("mention", "Discussion of people not present", "optional"),
        ],
        "instructions": [
            "The duo dynamic drives the story, but others should appear",
            "Split the duo occasionally; they don't have to be together always",
            "Phone calls and encounters add texture",
        ],
    },
    "small_group": {
        "min_per_chapter": 2,
        "max_consecutive": 2,
        "new_per_book": lambda chapters: 3,
        "variety_sources": [
            _source("physical_appearance", "New characters entering the story", "every_few_chapters"),
            _source("phone_call", "Contact with outside world", "optional"),
        ],
        "instructions": [
            "Rotate which characters are \"on screen\"; don't always use all of them",
            "Introduce at least one new character every 3-4 chapters",
            "Characters can exit temporarily (subplot, errand, conflict)",
        ],
    },
    "ensemble": {
        "min_per_chapter": 3,
        "max_consecutive": 2,
        "new_per_book": lambda chapters: 5,
        "variety_sources": [
            _source("physical_appearance", "Large cast rotation", "required_per_chapter"),
            _source("parallel_scene", "Different characters in different scenes",
                    "required_per_chapter"),
        ],
        "instructions": [
            "Rotate POV or focus between ensemble members",
            "Each chapter should feature different character combinations",
            "New characters should enter regularly",
        ],
    },
    "rotating": {
        "min_per_chapter": 2,
        "max_consecutive": 2,
        "new_per_book": lambda chapters: math.ceil(chapters * 0.5),
        "variety_sources": [
            _source("physical_appearance", "Constant new faces", "required_per_chapter"),
        ],
        "instructions": [
            "New characters are the engine of this story",
            "Each chapter should introduce someone new",
            "Some characters recur, but new blood is constant",
        ],
    },
}

SOLO_HALLUCINATION_GENRES = ("horror", "thriller")

INTERRUPTIONS: Dict[str, Dict] = {
    "thriller": {"frequency": 0.5,
                 "types": ["threat_escalation", "discovery", "attack", "deadline_moved_up"]},
    "romance": {"frequency": 0.4,
                "types": ["rival_appears", "miscommunication", "past_revealed", "obstacle"]},
    "mystery": {"frequency": 0.4,
                "types": ["new_clue", "witness_appears", "alibi_broken", "body_found"]},
    "horror": {"frequency": 0.5,
               "types": ["scare", "victim_taken", "power_loss", "isolation_increased"]},
}

DEFAULT_INTERRUPTIONS = {
    "frequency": BASE_INTERRUPTION_FREQUENCY,
    "types": ["phone_call", "visitor", "news", "accident", "realization"],
}

# Forbidden and required lists: (predicate over DNA, entries) in output order.

FORBIDDEN_RULES: List[tuple] = [
    (lambda dna: not dna.location_profile.can_travel_physically, [
        "Physical travel to new locations",
        "Protagonist leaving the confined space",
        "Scenes set elsewhere without a connection to protagonist",
    ]),
    (lambda dna: not dna.character_profile.can_meet_new_people, [
        "New characters physically appearing",
        "Crowds or public scenes",
        "In-person conversations with new people",
    ]),
    (lambda dna: dna.time_profile.real_time_constraint, [
        "Large time jumps (hours or days)",
        "Skipping over significant events",
    ]),
    (lambda dna: not dna.time_profile.allows_time_jumps, [
        "Flashbacks (unless brief memory flashes)",
        "Non-linear storytelling",
    ]),
    (lambda dna: dna.genre_profile.primary_genre.lower() == "thriller"
     and dna.genre_profile.requires_escalation, [
        "Stakes decreasing without a twist",
        "Extended calm periods without tension",
    ]),
]

REQUIRED_RULES: List[tuple] = [
    (lambda dna: True, [
        "At least one relationship shift per chapter",
        "At least one new piece of information per chapter",
        "Protagonist's situation changes by chapter end",
    ]),
    (lambda dna: dna.location_profile.type == "confined", [
        "The confined space itself must change (light, temperature, damage)",
        "External contact (phone, radio, sounds) every chapter",
        "Discovery of new details within the space",
    ]),
    (lambda dna: dna.location_profile.type == "traveling", [
        "New location every chapter",
        "Local color and detail at each stop",
        "Travel scenes (not just arrival at destination)",
    ]),
    (lambda dna: dna.character_profile.scope == "solo", [
        "External voices (phone, radio, memory) every chapter",
        "Character's internal state visibly changes",
    ]),
    (lambda dna: dna.character_profile.scope != "solo", [
        "Character interaction dynamics shift",
        "At least one character entrance or exit per chapter",
    ]),
    (lambda dna: dna.time_profile.has_deadline, [
        "Countdown reminder in each chapter",
        "Time pressure affecting decisions",
    ]),
    (lambda dna: dna.genre_profile.requires_escalation, [
        "Stakes escalation at least every 2 chapters",
    ]),
]


def _resolve_chapters(total_chapters: Optional[int]) -> int:
    if total_chapters is None or total_chapters < 1:
        return DEFAULT_TOTAL_CHAPTERS
    return int(total_chapters)


def _profile_seed(dna: StoryDNA, book_format: Optional[str], chapters: int) -> str:
    payload = f"{dna.model_dump_json()}|{book_format or ''}|{chapters}"
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()[:16]


def generate_location_requirements(dna: StoryDNA, total_chapters: int) -> LocationRequirements:
    bounds = LOCATION_BOUNDS[dna.location_profile.type]
    return LocationRequirements(
        type=dna.location_profile.type,
        can_physically_travel=dna.location_profile.can_travel_physically,
        min_locations_per_chapter=(
            bounds["min_per_chapter"] if dna.location_profile.can_travel_physically else 0
        ),
        max_consecutive_beats_in_same=bounds["max_consecutive"],
        min_distinct_locations_per_book=bounds["book_target"](total_chapters),
        variety_sources=[VarietySource(**s) for s in bounds["variety_sources"]],
        instructions=list(bounds["instructions"]),
    )


def generate_character_requirements(dna: StoryDNA, total_chapters: int) -> CharacterRequirements:
    scope = dna.character_profile.scope
    bounds = CHARACTER_BOUNDS[scope]
    sources = [VarietySource(**s) for s in bounds["variety_sources"]]
    if scope == "solo" and dna.genre_profile.primary_genre.lower() in SOLO_HALLUCINATION_GENRES:
        sources.append(VarietySource(
            type="hallucination",
            description="Stress-induced visions of people",
            frequency="optional",
        ))
    return CharacterRequirements(
        scope=scope,
        can_meet_new_people=dna.character_profile.can_meet_new_people,
        min_characters_per_chapter=bounds["min_per_chapter"],
        max_consecutive_beats_with_same_cast=bounds["max_consecutive"],
        min_new_characters_per_book=bounds["new_per_book"](total_chapters),
        variety_sources=sources,
        instructions=list(bounds["instructions"]),
    )


def generate_pacing_requirements(dna: StoryDNA) -> PacingRequirements:
    time = dna.time_profile
    genre = dna.genre_profile
    genre_key = genre.primary_genre.lower()

    escalation_frequency = (
        "every_chapter" if time.has_deadline or time.structure == "countdown"
        else "every_few_chapters"
    )
    interruptions = INTERRUPTIONS.get(genre_key, DEFAULT_INTERRUPTIONS)
    flashback_frequency = (
        FLASHBACK_FREQUENCY if time.allows_time_jumps or time.structure == "flashbacks" else 0.0
    )

    if genre_key == "thriller" or time.has_deadline:
        ending = "cliffhanger"
    elif genre_key == "mystery":
        ending = "revelation"
    else:
        ending = "shift"

    instructions: List[str] = []
    if time.has_deadline:
        instructions.append("Deadline pressure should be felt in every chapter")
        instructions.append("Time is running out; remind the reader")
    if genre.requires_escalation:
        instructions.append("Stakes must increase: things get worse before they get better")
    if genre.requires_twists:
        instructions.append("Reversals and revelations should punctuate the narrative")
    instructions.append(f"Chapters should end with: {ending}")

    return PacingRequirements(
        requires_escalation=genre.requires_escalation,
        escalation_frequency=escalation_frequency,
        interruption_frequency=interruptions["frequency"],
        interruption_types=list(interruptions["types"]),
        time_structure=time.structure,
        flashback_frequency=flashback_frequency,
        chapter_ending_requirement=ending,
        instructions=instructions,
    )


def generate_forbidden_list(dna: StoryDNA) -> List[str]:
    """Actions that would break the premise."""
    forbidden: List[str] = []
    for applies, entries in FORBIDDEN_RULES:
        if applies(dna):
            forbidden.extend(entries)
    return forbidden


def generate_required_list(dna: StoryDNA) -> List[str]:
    """Elements every chapter needs to stay alive."""
    required: List[str] = []
    for applies, entries in REQUIRED_RULES:
        if applies(dna):
            required.extend(entries)
    return required


def generate_format_adjustments(dna: StoryDNA, book_format: Optional[str]) -> FormatAdjustments:
    confined = dna.location_profile.type == "confined"
    if book_format in ("comic", "picture_book"):
        return FormatAdjustments(comic=ComicAdjustments(
            min_locations_per_page=0 if confined else 1,
            max_panels_in_same_location=4 if confined else 2,
            requires_visual_variety=True,
        ))
    if book_format == "screenplay":
        return FormatAdjustments(screenplay=ScreenplayAdjustments(
            min_scenes_per_sequence=1 if confined else 2,
            max_pages_in_same_location=10 if confined else 3,
            requires_visual_contrast=True,
        ))
    return FormatAdjustments()


def generate_dynamism_profile(
    dna: StoryDNA,
    book_format: Optional[str] = None,
    total_chapters: Optional[int] = None,
) -> DynamismProfile:
    """
    Generate a dynamism profile from Story DNA.

    Pure and deterministic: identical inputs give identical profiles.

    Args:
        dna: Classified Story DNA
        book_format: Output format (novel, screenplay, comic, ...)
        total_chapters: Planned chapter count; defaults to 10

    Returns:
        Immutable DynamismProfile
    """
    if book_format and book_format not in SUPPORTED_FORMATS:
        logger.warning(f"Unknown format '{book_format}', no format adjustments applied")
    chapters = _resolve_chapters(total_chapters)

    profile = DynamismProfile(
        locations=generate_location_requirements(dna, chapters),
        characters=generate_character_requirements(dna, chapters),
        pacing=generate_pacing_requirements(dna),
        forbidden=generate_forbidden_list(dna),
        required=generate_required_list(dna),
        format_adjustments=generate_format_adjustments(dna, book_format),
        format=book_format,
        total_chapters=chapters,
        seed=_profile_seed(dna, book_format, chapters),
    )
    logger.debug(
        f"Generated profile: {profile.locations.type}/{profile.characters.scope}, "
        f"{chapters} chapters, {len(profile.forbidden)} forbidden, {len(profile.required)} required"
    )
    return profile


def summarize_dynamism_profile(profile: DynamismProfile) -> str:
    """Human-readable, prompt-injectable summary of a profile."""
    loc = profile.locations
    cast = profile.characters
    pacing = profile.pacing

    lines = [
        "=== DYNAMISM PROFILE ===",
        "",
        "LOCATIONS:",
        f"  Type: {loc.type}",
        f"  Can travel: {loc.can_physically_travel}",
        f"  Min per chapter: {loc.min_locations_per_chapter}",
        f"  Max beats in same: {loc.max_consecutive_beats_in_same}",
        f"  Distinct locations target: {loc.min_distinct_locations_per_book}",
    ]
    lines.extend(f"  - {s.type}: {s.frequency}" for s in loc.variety_sources)

    lines.extend([
        "",
        "CHARACTERS:",
        f"  Scope: {cast.scope}",
        f"  Can meet new: {cast.can_meet_new_people}",
        f"  Min per chapter: {cast.min_characters_per_chapter}",
        f"  Max beats with same cast: {cast.max_consecutive_beats_with_same_cast}",
    ])
    lines.extend(f"  - {s.type}: {s.frequency}" for s in cast.variety_sources)

    escalation = pacing.escalation_frequency if pacing.requires_escalation else "not required"
    lines.extend([
        "",
        "PACING:",
        f"  Escalation: {escalation}",
        f"  Interruptions: {round(pacing.interruption_frequency * 100)}% per chapter",
        f"  Chapter endings: {pacing.chapter_ending_requirement}",
        "",
        "FORBIDDEN:",
    ])
    lines.extend(f"  ❌ {item}" for item in profile.forbidden)
    lines.extend(["", "REQUIRED:"])
    lines.extend(f"  ✓ {item}" for item in profile.required)
    return "\n".join(lines)


def is_allowed(profile: DynamismProfile, action: str) -> bool:
    """
    Check whether an action description avoids every forbidden entry.

    Matching is case-insensitive containment of a forbidden entry in the
    action text.
    """
    lowered = (action or "").lower()
    return not any(item.lower() in lowered for item in profile.forbidden)


def chapter_random(profile: DynamismProfile, chapter_number: int, salt: str = "") -> random.Random:
    """Random source that is stable for one book and chapter."""
    return random.Random(f"{profile.seed}:{salt}:{chapter_number}")


def get_chapter_requirements(
    profile: DynamismProfile,
    chapter_number: int,
    total_chapters: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> ChapterRequirements:
    """
    Requirement lines for one chapter.

    Args:
        profile: The book's dynamism profile
        chapter_number: 1-based chapter number
        total_chapters: Chapter count; defaults to the profile's
        rng: Random source for the interruption pick. Without one, a source
            seeded from the profile and chapter number is used, so the same
            chapter of the same book always gets the same interruption.

    Returns:
        ChapterRequirements with location, character and pacing lines
    """
    chapters = total_chapters or profile.total_chapters
    rng = rng or chapter_random(profile, chapter_number, get_settings()["interruption_seed"])

    location_lines: List[str] = []
    if profile.locations.min_locations_per_chapter > 0:
        location_lines.append(
            f"Visit at least {profile.locations.min_locations_per_chapter} distinct location(s)"
        )
    location_lines.extend(
        s.description for s in profile.locations.variety_sources
        if s.frequency == "required_per_chapter"
    )

    character_lines: List[str] = []
    if profile.characters.min_characters_per_chapter > 1:
        character_lines.append(
            f"Include at least {profile.characters.min_characters_per_chapter} characters"
        )
    character_lines.extend(
        s.description for s in profile.characters.variety_sources
        if s.frequency == "required_per_chapter"
    )

    pacing_lines: List[str] = []
    if profile.pacing.requires_escalation:
        if profile.pacing.escalation_frequency == "every_chapter":
            pacing_lines.append("Stakes must increase in this chapter")
        elif chapter_number % 2 == 0:
            pacing_lines.append("Stakes should increase in this chapter")

    interruption = None
    if profile.pacing.interruption_types and rng.random() < profile.pacing.interruption_frequency:
        interruption = rng.choice(profile.pacing.interruption_types)
        pacing_lines.append(f"Include an interruption: {interruption.replace('_', ' ')}")

    pacing_lines.append(
        f"End the chapter with: {profile.pacing.chapter_ending_requirement.replace('_', ' ')}"
    )

    return ChapterRequirements(
        chapter_number=chapter_number,
        total_chapters=max(chapters, chapter_number),
        location_requirements=location_lines,
        character_requirements=character_lines,
        pacing_requirements=pacing_lines,
        interruption=interruption,
    )
