"""
Prompt text built from a dynamism profile.

Each builder returns a plain text block that an outline or generation
prompt can include verbatim:

1. Book outline (chapter-level planning)
2. Chapter outline (beat-level planning)
3. Comic page planning (panel-level)
4. Screenplay sequence planning (scene-level)
5. Outline validation checklist
"""

import random
from typing import List, Optional

from .models import DynamismProfile, StoryDNA
from .profile import get_chapter_requirements

ANTI_STAGNATION_RULES = [
    "  ❌ NO: Extended solo internal monologue without external interaction",
    "  ❌ NO: Two characters talking without physical action or movement",
    "  ❌ NO: \"They discussed the problem\" scenes (show, don't summarize)",
    "  ❌ NO: Same emotional state at chapter end as chapter start",
    "",
    "  ✓ YES: Something CHANGES in every chapter",
    "  ✓ YES: External input (calls, visitors, discoveries, news)",
    "  ✓ YES: Character entrances and exits",
    "  ✓ YES: Environment shifts (time, weather, damage)",
]


def _location_section(profile: DynamismProfile, dna: StoryDNA) -> List[str]:
    loc = profile.locations
    lines = ["LOCATION VARIETY:"]
    if loc.type == "confined":
        lines.append(f"Your story is CONFINED to: {dna.location_profile.primary_setting}")
        lines.append("This constraint is INTENTIONAL. Do NOT break it.")
        lines.append("")
        lines.append("Dynamism within constraint:")
        lines.extend(f"  ✓ {s.description}" for s in loc.variety_sources)
        lines.extend([
            "",
            "The confined space must CHANGE across chapters:",
            "  - Lighting changes (day/night, power failure, fire)",
            "  - Physical degradation (damage, flooding, collapse)",
            "  - Temperature shifts (heat, cold, ventilation)",
            "  - New discoveries (objects, hidden spaces, messages)",
        ])
    elif loc.type == "limited":
        lines.extend([
            "Your story uses a LIMITED set of key locations.",
            f"Target: {loc.min_distinct_locations_per_book} distinct locations total.",
            "",
            "Requirements:",
            f"  - At least {loc.min_locations_per_chapter} location(s) per chapter",
            "  - Rotate between locations, don't get stuck",
            "  - Each location has distinct atmosphere",
        ])
    elif loc.type == "traveling":
        lines.extend([
            "Your story is a JOURNEY. Movement is mandatory.",
            f"Target: {loc.min_distinct_locations_per_book} distinct locations total.",
            "",
            "Requirements:",
            "  - NEW location(s) every chapter",
            "  - Travel itself is a scene (not just arrivals)",
            "  - Each stop has local flavor and purpose",
            "  - Don't skip the journey: show the road",
        ])
    else:
        lines.extend([
            "Your story demands LOCATION VARIETY.",
            f"Target: {loc.min_distinct_locations_per_book} distinct locations total.",
            "",
            "Requirements:",
            f"  - At least {loc.min_locations_per_chapter} locations per chapter",
            "  - Mix: indoor/outdoor, public/private, safe/dangerous",
            "  - No more than 2 consecutive chapters in same primary location",
        ])
    return lines


def _character_section(profile: DynamismProfile) -> List[str]:
    cast = profile.characters
    lines = ["CHARACTER VARIETY:"]
    if cast.scope == "solo":
        lines.append("Your protagonist is ISOLATED. They cannot physically meet new people.")
        lines.append("")
        lines.append("Dynamism within constraint:")
        lines.extend(f"  ✓ {s.description}" for s in cast.variety_sources)
        lines.extend([
            "",
            "EVERY chapter must include external voices:",
            "  - Phone calls (different callers)",
            "  - Radio/intercom/PA system",
            "  - Memories featuring other people",
            "  - Letters, recordings, found media",
        ])
    elif cast.scope == "duo":
        lines.extend([
            "Your story centers on TWO characters.",
            "",
            "Requirements:",
            "  - Split them occasionally (separate scenes, phone calls)",
            "  - Introduce other characters via encounters or calls",
            f"  - {cast.min_new_characters_per_book} supporting characters minimum",
        ])
    elif cast.scope == "small_group":
        lines.extend([
            "Your story has a SMALL GROUP of characters.",
            "",
            "Requirements:",
            "  - Rotate which characters are \"on screen\", not always all",
            "  - Characters can exit temporarily (subplot, errand, conflict)",
            f"  - Introduce {cast.min_new_characters_per_book} new characters across the book",
            "  - Each chapter should have different character combinations",
        ])
    elif cast.scope == "rotating":
        lines.extend([
            "Your story runs on a ROTATING CAST.",
            "",
            "Requirements:",
            "  - A small core recurs; everyone else passes through",
            f"  - Introduce at least {cast.min_new_characters_per_book} new characters across the book",
            "  - Most chapters should bring in someone new",
        ])
    else:
        lines.extend([
            "Your story has an ENSEMBLE CAST.",
            "",
            "Requirements:",
            "  - Rotate POV or focus between characters",
            "  - Each chapter features different combinations",
            f"  - {cast.min_new_characters_per_book} new characters across the book",
            "  - Characters can leave and return",
        ])
    return lines


def build_book_outline_prompt(
    profile: DynamismProfile,
    dna: StoryDNA,
    total_chapters: Optional[int] = None,
) -> str:
    """
    Dynamism requirements for planning all chapters of a book at once.

    Args:
        profile: The book's dynamism profile
        dna: The Story DNA the profile was generated from
        total_chapters: Planned chapter count; defaults to the profile's

    Returns:
        Prompt text block
    """
    chapters = total_chapters or profile.total_chapters
    pacing = profile.pacing
    lines = [
        "=== STORY DYNAMISM REQUIREMENTS ===",
        f"These requirements are SPECIFIC to your story premise ({chapters} chapters).",
        "",
    ]
    lines.extend(_location_section(profile, dna))
    lines.append("")
    lines.extend(_character_section(profile))

    lines.extend(["", "PACING & STAKES:"])
    if pacing.requires_escalation:
        lines.append(f"Stakes MUST escalate ({pacing.escalation_frequency.replace('_', ' ')})")
        lines.append("  - Things get worse before they get better")
        lines.append("  - Each setback is bigger than the last")
    if dna.time_profile.has_deadline:
        lines.extend([
            "",
            "COUNTDOWN PRESSURE:",
            "  - Time limit must be felt in every chapter",
            "  - Show the clock ticking (literally or metaphorically)",
            "  - Decisions are forced by time pressure",
        ])
    lines.extend([
        "",
        f"Interruptions ({round(pacing.interruption_frequency * 100)}% of chapters):",
        "  Types: " + ", ".join(pacing.interruption_types),
        "",
        f"Chapter endings: {pacing.chapter_ending_requirement.upper()}",
    ])

    if profile.forbidden:
        lines.extend(["", "FORBIDDEN (Would break premise):"])
        lines.extend(f"  ❌ {item}" for item in profile.forbidden)

    lines.extend(["", "REQUIRED (Every chapter):"])
    lines.extend(f"  ✓ {item}" for item in profile.required)

    lines.extend(["", "ANTI-STAGNATION RULES:"])
    lines.extend(ANTI_STAGNATION_RULES)
    return "\n".join(lines)


def build_chapter_outline_prompt(
    profile: DynamismProfile,
    chapter_number: int,
    total_chapters: Optional[int] = None,
    previous_chapter_summary: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Dynamism requirements for planning the beats of one chapter.

    Args:
        profile: The book's dynamism profile
        chapter_number: 1-based chapter number
        total_chapters: Planned chapter count; defaults to the profile's
        previous_chapter_summary: How the previous chapter ended, if known
        rng: Random source for the interruption pick (see get_chapter_requirements)

    Returns:
        Prompt text block
    """
    requirements = get_chapter_requirements(profile, chapter_number, total_chapters, rng=rng)
    lines = [
        f"=== CHAPTER {chapter_number} OF {requirements.total_chapters} DYNAMISM REQUIREMENTS ===",
        "",
    ]

    if previous_chapter_summary:
        lines.extend([
            "Previous chapter ended:",
            f"  \"{previous_chapter_summary}\"",
            "",
            "This chapter must BUILD on that, don't reset.",
            "",
        ])

    for title, entries in (
        ("LOCATION REQUIREMENTS:", requirements.location_requirements),
        ("CHARACTER REQUIREMENTS:", requirements.character_requirements),
        ("PACING REQUIREMENTS:", requirements.pacing_requirements),
    ):
        if entries:
            lines.append(title)
            lines.extend(f"  ✓ {entry}" for entry in entries)
            lines.append("")

    lines.extend([
        "BEAT-LEVEL RULES:",
        f"  - Max {profile.locations.max_consecutive_beats_in_same} consecutive beats in same location",
        f"  - Max {profile.characters.max_consecutive_beats_with_same_cast} consecutive beats "
        "with exact same characters",
        "  - Each beat should have ACTION, not just dialogue/thinking",
    ])
    return "\n".join(lines)


def build_comic_page_prompt(profile: DynamismProfile, page_number: int) -> str:
    """Panel-level variety requirements for one comic page."""
    comic = profile.format_adjustments.comic
    confined = profile.locations.type == "confined"
    max_panels = comic.max_panels_in_same_location if comic else (4 if confined else 2)
    min_locations = comic.min_locations_per_page if comic else (0 if confined else 1)

    lines = [f"=== PAGE {page_number} DYNAMISM REQUIREMENTS ===", "", "VISUAL VARIETY (MANDATORY):"]
    if confined:
        lines.extend([
            "Your story is CONFINED, but panels must vary visually:",
            "  - Angle changes (close-up, medium, wide)",
            "  - Lighting changes (shadows, highlights, darkness)",
            "  - Character position changes (sitting, standing, moving)",
            "  - Environmental details shift (damage, objects, atmosphere)",
            "",
            f"  Max {max_panels} panels with identical background",
        ])
    else:
        lines.extend([
            f"  - At least {min_locations} location change per page",
            f"  - Max {max_panels} consecutive panels in same spot",
            "  - Vary: close-up → medium → wide → new location",
        ])

    lines.extend([
        "",
        "PANEL COMPOSITION:",
        "  ❌ NO: 4+ panels of talking heads",
        "  ❌ NO: Identical poses across panels",
        "  ❌ NO: Static backgrounds throughout page",
        "",
        "  ✓ YES: Movement between panels",
        "  ✓ YES: Background details that change",
        "  ✓ YES: Page ends with visual hook (page-turner)",
    ])

    if profile.characters.scope == "solo":
        lines.extend([
            "",
            "CHARACTER (Isolated protagonist):",
            "  - Vary the protagonist's expression and pose",
            "  - Show phone/device screens with other characters",
            "  - Memory panels can show other people",
            "  - Environmental storytelling (photos, objects, shadows)",
        ])
    return "\n".join(lines)


def build_screenplay_sequence_prompt(profile: DynamismProfile, sequence_number: int) -> str:
    """Scene-level variety requirements for one screenplay sequence."""
    screenplay = profile.format_adjustments.screenplay
    confined = profile.locations.type == "confined"
    max_pages = screenplay.max_pages_in_same_location if screenplay else (10 if confined else 3)
    min_scenes = screenplay.min_scenes_per_sequence if screenplay else (1 if confined else 2)

    lines = [f"=== SEQUENCE {sequence_number} DYNAMISM REQUIREMENTS ===", "", "SCENE VARIETY:"]
    if confined:
        lines.extend([
            "Your story is CONFINED; visual variety comes from:",
            "  - Camera angles (not as direction, but as implied framing)",
            "  - Lighting changes in the space",
            "  - Character movement and positioning",
            "  - The space degrading or revealing new details",
            "  - INTERCUT with phone calls showing other locations",
            "",
            f"  Max {max_pages} pages before visual shift",
        ])
    else:
        lines.extend([
            f"  - At least {min_scenes} distinct scenes per sequence",
            f"  - Max {max_pages} pages in same location",
            "  - Alternate INT/EXT when possible",
            "  - Scene changes create visual rhythm",
        ])

    lines.extend([
        "",
        "SCREENPLAY DYNAMISM:",
        "  ❌ NO: Long dialogue scenes without movement",
        "  ❌ NO: Same two characters talking for 5+ pages",
        "  ❌ NO: Static blocking (characters just standing)",
        "",
        "  ✓ YES: Characters DO things while talking",
        "  ✓ YES: Interruptions (phone, doorbell, event)",
        "  ✓ YES: Scene transitions with purpose",
    ])

    if profile.characters.scope == "solo":
        lines.extend([
            "",
            "CHARACTER (Isolated protagonist):",
            "  - Phone calls bring other VOICES in (use VO)",
            "  - Show phone/screen with caller's location via INTERCUT",
            "  - Flashbacks can show other characters",
            "  - Environmental sounds suggest world outside",
        ])
    return "\n".join(lines)


def build_outline_validation_prompt(profile: DynamismProfile, dna: StoryDNA) -> str:
    """Checklist for validating an outline against the profile."""
    loc = profile.locations
    cast = profile.characters
    lines = [
        "=== OUTLINE VALIDATION CHECKLIST ===",
        "",
        "Check each chapter/section against these requirements:",
        "",
        "LOCATION VARIETY:",
    ]
    if loc.type == "confined":
        lines.extend([
            "  □ Does the confined space change/degrade?",
            "  □ Are there external connections (phone, radio)?",
            "  □ Are there discoveries within the space?",
        ])
    else:
        lines.extend([
            f"  □ At least {loc.min_locations_per_chapter} location(s) per chapter?",
            f"  □ Total distinct locations >= {loc.min_distinct_locations_per_book}?",
            "  □ Location variety (indoor/outdoor, public/private)?",
        ])

    lines.extend(["", "CHARACTER VARIETY:"])
    if cast.scope == "solo":
        lines.extend([
            "  □ External voices in every chapter?",
            "  □ Different contacts/memories across chapters?",
        ])
    else:
        lines.extend([
            f"  □ At least {cast.min_characters_per_chapter} characters per chapter?",
            f"  □ {cast.min_new_characters_per_book} new characters introduced?",
            "  □ Character rotation (not always same combo)?",
        ])

    lines.extend(["", "PACING:"])
    if profile.pacing.requires_escalation:
        lines.append("  □ Stakes escalate across chapters?")
    if dna.time_profile.has_deadline:
        lines.append("  □ Countdown pressure felt throughout?")
    lines.append(f"  □ Chapter endings are {profile.pacing.chapter_ending_requirement}?")

    lines.extend(["", "FORBIDDEN VIOLATIONS:"])
    lines.extend(f"  □ Does NOT include: {item}" for item in profile.forbidden)
    return "\n".join(lines)
