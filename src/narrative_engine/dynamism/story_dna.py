"""
Story DNA classifier.

Maps a free-text premise to the structural constraints that decide what
kind of variety a story can have:

- "A man is buried alive in a coffin with a phone" -> confined location,
  solo cast, so variety has to come in by phone, radio and memory
- "Two sisters on a road trip across America" -> traveling, duo, so a new
  location every chapter is mandatory
- "A crew of thieves plans a heist" -> limited locations, ensemble cast

Each dimension (location, character, time, genre) is classified by its own
ordered rule table. Within a table the first matching rule wins; tables are
evaluated independently and combined into one StoryDNA. Classification is
keyword based: deterministic and inspectable, not "correct".
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Tuple

from .models import (
    CharacterProfile,
    GenreProfile,
    LocationProfile,
    StoryDNA,
    TimeProfile,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassificationRule:
    """
    One row of a rule table.

    A rule matches when any of ``patterns`` matches the premise, and, if
    ``requires`` is set, the named flag in the evaluation context is also
    true.
    """
    value: str
    patterns: Tuple[Pattern, ...]
    requires: Tuple[str, ...] = ()

    def matches(self, text: str, flags: Optional[Dict[str, bool]] = None) -> bool:
        if any(not (flags or {}).get(flag) for flag in self.requires):
            return False
        return not self.patterns or any(p.search(text) for p in self.patterns)


def _compile(*patterns: str) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# Pattern families

CONFINED_PATTERNS = _compile(
    r"\b(trapped|stuck|locked|confined|buried|imprisoned|stranded)\b",
    r"\bcan'?t (leave|escape|get out)\b",
    r"\bsingle (room|location|setting|place)\b",
    r"\bentire (story|book|film) (takes place|happens|unfolds) in\b",
    r"\bnever (leaves?|exits?)\b",
    r"\bone (night|day|hour|room|building)\b",
    r"\bbottle (episode|movie|story)\b",
    r"\b(chamber piece|single setting)\b",
)

TRAVELING_PATTERNS = _compile(
    r"\b(road trip|journey|quest|voyage|expedition|travels?)\b",
    r"\bacross (the country|america|europe|the world)\b",
    r"\bfrom .+ to .+",
    r"\bon the (road|run|move)\b",
    r"\b(fleeing|escaping|chasing|pursuing)\b",
    r"\b(adventure|odyssey|pilgrimage)\b",
    r"\bmultiple (cities|countries|locations)\b",
)

EPIC_PATTERNS = _compile(r"\b(world|globe|epic|sweeping|vast)\b")

MULTIPLE_LOCATION_PATTERNS = _compile(
    r"\b(several|multiple|various|different) (places?|locations?|settings?)\b",
)

SOLO_PATTERNS = _compile(
    r"\b(alone|isolated|solitary|hermit|loner)\b",
    r"\bone (man|woman|person)\b",
    r"\bby (himself|herself|themselves)\b",
    r"\b(survival|castaway|stranded)\b",
    r"\b(buried alive|sole survivor|last (man|woman|person) (alive|on earth))\b",
)

ENSEMBLE_PATTERNS = _compile(
    r"\b(group of|team of|band of|crew of|family of)\b",
    r"\b(friends|colleagues|classmates|neighbors)\b",
    r"\b(ensemble|multiple (protagonists?|povs?|perspectives?))\b",
    r"\binterweaving (stories|lives|fates)\b",
    r"\b(community|town|village) (of|where)\b",
)

ROTATING_PATTERNS = _compile(
    r"\b(anthology|revolving door|parade of)\b",
    r"\b(string|series|stream) of (strangers|visitors|clients|patients|passengers|guests|witnesses)\b",
    r"\beach (night|day|week|chapter) (brings|introduces) (a )?(new|another)\b",
)

DUO_PATTERNS = _compile(r"\b(two (people|friends|lovers|partners)|couple|pair|duo)\b")

SMALL_GROUP_PATTERNS = _compile(r"\b(three|four|five|small group|handful)\b")

DEADLINE_PATTERNS = _compile(
    r"\b(24 hours|one (day|night|hour)|countdown|deadline)\b",
    r"\bbefore (it'?s too late|midnight|dawn|the bomb)\b",
    r"\brunning out of (time|air|options)\b",
    r"\brace against (time|the clock)\b",
    r"\b(ticking clock|time limit)\b",
    r"\bmust .+ by\b",
)

REAL_TIME_PATTERNS = _compile(r"\b(real-?time|one (hour|day|night)|24 hours|unfolds in)\b")

FLASHBACK_PATTERNS = _compile(
    r"\b(memories|past|flashback|remembers?)\b",
    r"\b(looking back|years (ago|later))\b",
    r"\b(dual timeline|parallel (stories|narratives))\b",
    r"\b(then and now|past and present)\b",
    r"\bframe (story|narrative)\b",
)

PARALLEL_PATTERNS = _compile(r"\b(parallel|interweaving|multiple timelines?)\b")

NONLINEAR_PATTERNS = _compile(r"\b(non-?linear|fragmented|jumps? (around|through time))\b")

# Rule tables, in priority order

LOCATION_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule("confined", CONFINED_PATTERNS),
    ClassificationRule("traveling", TRAVELING_PATTERNS),
    ClassificationRule("epic", EPIC_PATTERNS),
    ClassificationRule("multiple", MULTIPLE_LOCATION_PATTERNS),
    ClassificationRule("limited", ()),
)

CHARACTER_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule("solo", SOLO_PATTERNS),
    ClassificationRule("rotating", ROTATING_PATTERNS),
    ClassificationRule("ensemble", ENSEMBLE_PATTERNS),
    ClassificationRule("duo", DUO_PATTERNS),
    ClassificationRule("small_group", SMALL_GROUP_PATTERNS),
    ClassificationRule("small_group", ()),
)

TIME_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule("countdown", (), requires=("has_deadline", "real_time")),
    ClassificationRule("flashbacks", FLASHBACK_PATTERNS),
    ClassificationRule("parallel", PARALLEL_PATTERNS),
    ClassificationRule("nonlinear", NONLINEAR_PATTERNS),
    ClassificationRule("linear", ()),
)

GENRE_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule("thriller", _compile(
        r"\b(thriller|suspense|tension|danger|threat)\b",
        r"\b(chase|escape|survive|hunt|pursue)\b",
        r"\b(killer|murderer|assassin|criminal)\b",
    )),
    ClassificationRule("romance", _compile(
        r"\b(love|romance|relationship|heart)\b",
        r"\b(falls? for|attraction|chemistry)\b",
        r"\b(meet-?cute|lovers?|soulmate)\b",
    )),
    ClassificationRule("mystery", _compile(
        r"\b(mystery|detective|investigation|solve)\b",
        r"\b(clues?|evidence|suspect|whodunit)\b",
        r"\b(murder|crime|case|body)\b",
    )),
    ClassificationRule("scifi", _compile(
        r"\b(sci-?fi|science fiction|space|future)\b",
        r"\b(technology|ai|robot|alien)\b",
        r"\b(dystopian|utopian|post-apocalyptic)\b",
    )),
    ClassificationRule("fantasy", _compile(
        r"\b(fantasy|magic|wizard|dragon)\b",
        r"\b(kingdom|quest|chosen one|prophecy)\b",
        r"\b(mythical|enchanted|supernatural)\b",
    )),
    ClassificationRule("horror", _compile(
        r"\b(horror|terror|fear|nightmare)\b",
        r"\b(haunted|ghost|demon|monster)\b",
        r"\b(creepy|scary|dread|evil)\b",
    )),
    ClassificationRule("literary", _compile(
        r"\b(literary|character study|introspective)\b",
        r"\b(coming of age|identity|meaning)\b",
        r"\b(family drama|relationships|personal)\b",
    )),
    ClassificationRule("general", ()),
)

# Per-value attributes

LOCATION_ATTRIBUTES: Dict[str, Dict] = {
    "confined": {
        "can_travel": False,
        "alternate_access": ["phone_calls", "memories", "hallucinations", "radio", "video"],
        "constraints": ["Must stay in primary location", "Bring external world IN, don't go OUT"],
    },
    "traveling": {
        "can_travel": True,
        "alternate_access": ["physical_travel"],
        "constraints": ["Must visit new locations", "Each stop should have distinct character"],
    },
    "epic": {
        "can_travel": True,
        "alternate_access": ["physical_travel", "phone_calls", "memories"],
        "constraints": ["World-building is key"],
    },
    "multiple": {
        "can_travel": True,
        "alternate_access": ["physical_travel", "phone_calls", "memories"],
        "constraints": ["Variety of settings expected"],
    },
    "limited": {
        "can_travel": True,
        "alternate_access": ["physical_travel", "phone_calls", "memories"],
        "constraints": ["Focus on key locations"],
    },
}

CHARACTER_ATTRIBUTES: Dict[str, Dict] = {
    "solo": {
        "primary_characters": 1,
        "can_meet_new_people": False,
        "alternate_access": ["phone_calls", "memories", "hallucinations", "found_media", "voices"],
    },
    "ensemble": {
        "primary_characters": 6,
        "can_meet_new_people": True,
        "alternate_access": ["physical_appearance", "phone_calls", "memories"],
    },
    "rotating": {
        "primary_characters": 2,
        "can_meet_new_people": True,
        "alternate_access": ["physical_appearance", "phone_calls"],
    },
    "duo": {
        "primary_characters": 2,
        "can_meet_new_people": True,
        "alternate_access": ["physical_appearance", "phone_calls", "memories"],
    },
    "small_group": {
        "primary_characters": 4,
        "can_meet_new_people": True,
        "alternate_access": ["physical_appearance", "phone_calls", "memories"],
    },
}

GENRE_CONVENTIONS: Dict[str, Dict] = {
    "thriller": {
        "requires_escalation": True,
        "requires_twists": True,
        "beats": ["inciting_danger", "false_safety", "escalation", "climax_confrontation"],
    },
    "mystery": {
        "requires_escalation": False,
        "requires_twists": True,
        "beats": ["crime_discovery", "investigation", "red_herrings", "revelation"],
    },
    "romance": {
        "requires_escalation": False,
        "requires_twists": False,
        "beats": ["meet_cute", "attraction", "obstacle", "dark_moment", "resolution"],
    },
    "horror": {
        "requires_escalation": True,
        "requires_twists": False,
        "beats": ["normalcy", "first_scare", "investigation", "escalation", "confrontation"],
    },
    "fantasy": {
        "requires_escalation": False,
        "requires_twists": False,
        "beats": ["ordinary_world", "call_to_adventure", "tests", "ordeal", "return"],
    },
    "scifi": {
        "requires_escalation": False,
        "requires_twists": False,
        "beats": ["ordinary_world", "call_to_adventure", "tests", "ordeal", "return"],
    },
}

DEFAULT_GENRE_CONVENTIONS = {
    "requires_escalation": False,
    "requires_twists": False,
    "beats": ["setup", "conflict", "complications", "climax", "resolution"],
}

SETTING_PATTERN = re.compile(
    r"\b(?:in|at|on|inside|within)\s+(?:a |an |the )?"
    r"(.+?)(?=\s+(?:with|where|who|while|and|until|as)\b|[,.!?;]|$)",
    re.IGNORECASE,
)


def matching_rule(rules: Tuple[ClassificationRule, ...], text: str,
                  flags: Optional[Dict[str, bool]] = None) -> ClassificationRule:
    """
    Return the first rule in ``rules`` that matches ``text``.

    Every table ends in a pattern-less default row, so a rule is always found.
    """
    for rule in rules:
        if rule.matches(text, flags):
            return rule
    return rules[-1]


def _any_match(patterns: Tuple[Pattern, ...], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def extract_primary_setting(premise: str) -> str:
    """Return the first "in/at/on ..." phrase of the premise, or "unspecified"."""
    match = SETTING_PATTERN.search(premise or "")
    if match and match.group(1).strip():
        return match.group(1).strip()
    return "unspecified"


def classify_location(premise: str) -> LocationProfile:
    location_type = matching_rule(LOCATION_RULES, premise).value
    attributes = LOCATION_ATTRIBUTES[location_type]
    return LocationProfile(
        type=location_type,
        primary_setting=extract_primary_setting(premise),
        setting_constraints=list(attributes["constraints"]),
        can_travel_physically=attributes["can_travel"],
        alternate_access=list(attributes["alternate_access"]),
    )


def classify_characters(premise: str) -> CharacterProfile:
    scope = matching_rule(CHARACTER_RULES, premise).value
    attributes = CHARACTER_ATTRIBUTES[scope]
    return CharacterProfile(
        scope=scope,
        primary_characters=attributes["primary_characters"],
        can_meet_new_people=attributes["can_meet_new_people"],
        alternate_access=list(attributes["alternate_access"]),
    )


def classify_time(premise: str) -> TimeProfile:
    flags = {
        "has_deadline": _any_match(DEADLINE_PATTERNS, premise),
        "real_time": _any_match(REAL_TIME_PATTERNS, premise),
    }
    structure = matching_rule(TIME_RULES, premise, flags).value
    return TimeProfile(
        structure=structure,
        has_deadline=flags["has_deadline"],
        real_time_constraint=flags["real_time"],
        allows_time_jumps=structure not in ("linear", "countdown"),
    )


def classify_genre(premise: str, genre: Optional[str] = None) -> GenreProfile:
    """
    Classify genre conventions. An explicitly provided genre always wins.
    """
    primary = genre.strip() if genre and genre.strip() else matching_rule(GENRE_RULES, premise).value
    conventions = GENRE_CONVENTIONS.get(primary.lower(), DEFAULT_GENRE_CONVENTIONS)
    return GenreProfile(
        primary_genre=primary,
        requires_escalation=conventions["requires_escalation"],
        requires_twists=conventions["requires_twists"],
        conventional_beats=list(conventions["beats"]),
    )


def determine_dynamism_sources(
    location: LocationProfile,
    characters: CharacterProfile,
    time: TimeProfile,
    genre: GenreProfile,
) -> List[str]:
    """List where this story's life comes from, given its constraints."""
    sources: List[str] = []

    if location.can_travel_physically:
        sources.append("physical_location_changes")
    if location.type == "confined":
        sources.extend([
            "environment_degradation",
            "discovery_within_space",
            "external_communication",
            "sensory_changes",
        ])

    if characters.can_meet_new_people:
        sources.append("new_character_introductions")
    if "phone_calls" in characters.alternate_access:
        sources.append("remote_character_interaction")
    if "memories" in characters.alternate_access:
        sources.append("flashback_characters")
    sources.append("relationship_shifts")

    if time.has_deadline:
        sources.append("countdown_pressure")
    if time.allows_time_jumps:
        sources.append("temporal_jumps")
    if time.structure == "parallel":
        sources.append("parallel_storylines")

    if genre.requires_escalation:
        sources.append("stakes_escalation")
    if genre.requires_twists:
        sources.extend(["plot_reversals", "revelations"])

    return sources


def classify_premise(premise: str, genre: Optional[str] = None) -> StoryDNA:
    """
    Classify a premise into Story DNA.

    Never fails: an empty premise yields the defaults (limited locations,
    a small group of four, linear time, "general" genre).

    Args:
        premise: Free-text story premise or synopsis
        genre: Optional genre hint; overrides genre detection when given

    Returns:
        Immutable StoryDNA
    """
    text = premise or ""
    location = classify_location(text)
    characters = classify_characters(text)
    time = classify_time(text)
    genre_profile = classify_genre(text, genre)

    dna = StoryDNA(
        location_profile=location,
        character_profile=characters,
        time_profile=time,
        genre_profile=genre_profile,
        dynamism_sources=determine_dynamism_sources(location, characters, time, genre_profile),
    )
    logger.debug(
        f"Classified premise: location={location.type} cast={characters.scope} "
        f"time={time.structure} genre={genre_profile.primary_genre}"
    )
    return dna


analyze_story_dna = classify_premise


def summarize_story_dna(dna: StoryDNA) -> str:
    """Human-readable, prompt-injectable summary of Story DNA."""
    loc = dna.location_profile
    cast = dna.character_profile
    time = dna.time_profile
    genre = dna.genre_profile

    def yes_no(flag: bool) -> str:
        return "Yes" if flag else "No"

    lines = [
        f"LOCATION: {loc.type.upper()}",
        f"  - Primary: {loc.primary_setting}",
        f"  - Can travel: {yes_no(loc.can_travel_physically)}",
    ]
    if not loc.can_travel_physically:
        lines.append(f"  - Alternate access: {', '.join(loc.alternate_access)}")

    lines.extend([
        "",
        f"CHARACTERS: {cast.scope.upper()}",
        f"  - Primary cast: ~{cast.primary_characters}",
        f"  - Can meet new people: {yes_no(cast.can_meet_new_people)}",
        "",
        f"TIME: {time.structure.upper()}",
        f"  - Has deadline: {yes_no(time.has_deadline)}",
        f"  - Real-time: {yes_no(time.real_time_constraint)}",
        "",
        f"GENRE: {genre.primary_genre.upper()}",
        f"  - Requires escalation: {yes_no(genre.requires_escalation)}",
        f"  - Requires twists: {yes_no(genre.requires_twists)}",
        "",
        "DYNAMISM SOURCES:",
    ])
    lines.extend(f"  - {source.replace('_', ' ')}" for source in dna.dynamism_sources)
    return "\n".join(lines)


def is_confined_story(premise: str) -> bool:
    """Check if a premise describes a confined/bottle story."""
    return _any_match(CONFINED_PATTERNS, premise or "")


def is_traveling_story(premise: str) -> bool:
    """Check if a premise describes a journey story."""
    return _any_match(TRAVELING_PATTERNS, premise or "")
