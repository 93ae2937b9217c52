"""
Dynamism tracker.

Follows one book beat by beat and checks the content against its
dynamism profile:

1. Beat generation: where are we, who is present, how long has it been
   the same
2. Chapter completion: did the chapter meet the per-chapter minimums
3. Book completion: overall variety scores and recommendations

Rule breaches are recorded as warnings and violations in the state; the
tracker never raises on narrative content. One tracker instance holds one
book's state, which can be dumped with ``get_state()`` and passed back to
the constructor to continue later.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Union

from ..config import (
    CAST_CHARACTER_TARGET_BONUS,
    MAX_EXTRACTED_LOCATION_LENGTH,
    MIN_EXTRACTED_LOCATION_LENGTH,
    SOLO_CHARACTER_TARGET_BONUS,
    SOLO_CONTACT_GRACE_BEATS,
)
from ..utils.normalize import (
    infer_location_type,
    normalize_cast,
    normalize_character,
    normalize_location,
)
from .models import (
    AppearancePoint,
    BeatState,
    CharacterEntry,
    ChapterStats,
    DynamismProfile,
    DynamismReport,
    DynamismState,
    DynamismViolation,
    DynamismWarning,
    LocationEntry,
)

logger = logging.getLogger(__name__)


def _severity(count: int, maximum: int) -> str:
    if count >= maximum + 2:
        return "severe"
    if count >= maximum + 1:
        return "moderate"
    return "mild"


class DynamismTracker:
    """
    Tracks locations, characters and stagnation for one book.

    Args:
        profile: The book's dynamism profile
        state: Previously dumped state (model or dict) to continue from
    """

    def __init__(self, profile: DynamismProfile,
                 state: Optional[Union[DynamismState, Dict[str, Any]]] = None):
        self.profile = profile
        if state is None:
            self.state = DynamismState()
        elif isinstance(state, DynamismState):
            self.state = state.model_copy(deep=True)
        else:
            self.state = DynamismState.model_validate(state)

    # Tracking

    def start_chapter(self, chapter_number: int) -> Optional[ChapterStats]:
        """
        Begin a chapter, finalizing the one in progress.

        Starting a chapter that was already finalized (by an earlier
        ``start_chapter`` or a mid-chapter report) reopens it: its stats
        and missing-requirement violations are withdrawn and re-evaluated
        when it closes again, so each chapter is finalized once.

        Returns:
            Stats of the finalized chapter, or None if no chapter was open
        """
        finalized = None
        if self.state.chapter_open and self.state.chapter_beat_count > 0:
            finalized = self._finalize_chapter()
        self.state.current_chapter = chapter_number
        self.state.current_beat = 0
        self.state.chapter_locations = []
        self.state.chapter_characters = []
        self.state.chapter_beat_count = 0
        self.state.chapter_has_external_contact = False
        self.state.chapter_open = True
        self._reopen_finalized(chapter_number)
        logger.debug(f"Started chapter {chapter_number}")
        return finalized

    def _reopen_finalized(self, chapter_number: int) -> None:
        state = self.state
        previous = next((ch for ch in state.chapter_history if ch.chapter_number == chapter_number), None)
        if previous is None:
            return
        state.chapter_history.remove(previous)
        state.violations = [
            v for v in state.violations
            if not (v.type == "missing_requirement" and v.chapter == chapter_number)
        ]
        state.chapter_locations = list(previous.locations)
        state.chapter_characters = list(previous.characters)
        state.chapter_beat_count = previous.beat_count
        state.chapter_has_external_contact = previous.has_external_contact
        logger.debug(f"Reopened chapter {chapter_number} with {previous.beat_count} beat(s)")

    def track_beat(
        self,
        beat_number: int,
        location: str,
        characters: Iterable[str],
        has_external_contact: bool = False,
    ) -> BeatState:
        """
        Record one beat and evaluate stagnation warnings.

        Consecutive counters are streaks over the whole book: each resets to
        1 when its value changes and otherwise grows by one, so a streak that
        runs over a chapter break keeps counting.

        Args:
            beat_number: Beat number within the chapter
            location: Where the beat happens
            characters: Characters physically present
            has_external_contact: Phone call, radio, memory voice, etc.

        Returns:
            BeatState snapshot after this beat
        """
        state = self.state
        if not state.chapter_open:
            self.start_chapter(state.current_chapter)

        state.current_beat = beat_number
        state.chapter_beat_count += 1
        point = AppearancePoint(chapter=state.current_chapter, beat=beat_number)

        location_changed = self._track_location(location, point)
        cast_changed = self._track_characters(characters, point)

        state.beats_in_current_location = (
            1 if location_changed else state.beats_in_current_location + 1
        )
        state.beats_with_current_cast = (
            1 if cast_changed else state.beats_with_current_cast + 1
        )
        if has_external_contact:
            state.chapter_has_external_contact = True

        self._check_for_warnings()

        return BeatState(
            chapter=state.current_chapter,
            beat_number=beat_number,
            current_location=state.current_location,
            characters_present=list(state.current_characters),
            beats_in_current_location=state.beats_in_current_location,
            beats_with_same_cast=state.beats_with_current_cast,
            location_changed=location_changed,
            cast_changed=cast_changed,
            has_external_contact=has_external_contact,
        )

    def _track_location(self, location: str, point: AppearancePoint) -> bool:
        state = self.state
        key = normalize_location(location) or "unknown"
        changed = state.beats_in_current_location == 0 or key != state.current_location

        entry = state.locations.get(key)
        if entry:
            entry.last_appearance = point
            entry.total_beats += 1
        else:
            state.locations[key] = LocationEntry(
                name=key,
                display_name=(location or key).strip(),
                type=infer_location_type(location or ""),
                first_appearance=point,
                last_appearance=point,
            )
        if key not in state.chapter_locations:
            state.chapter_locations.append(key)

        state.current_location = key
        return changed

    def _track_characters(self, characters: Iterable[str], point: AppearancePoint) -> bool:
        state = self.state
        names = list(characters or [])
        cast = normalize_cast(names)
        changed = state.beats_with_current_cast == 0 or cast != sorted(state.current_characters)

        display = {normalize_character(n): n.strip() for n in names if normalize_character(n)}
        for key in cast:
            entry = state.characters.get(key)
            if entry:
                entry.last_appearance = point
                entry.total_appearances += 1
            else:
                state.characters[key] = CharacterEntry(
                    name=key,
                    display_name=display.get(key, key),
                    first_appearance=point,
                    last_appearance=point,
                )
            if key not in state.chapter_characters:
                state.chapter_characters.append(key)

        state.current_characters = cast
        return changed

    def _warn(self, warning_type: str, message: str, severity: str) -> None:
        warning = DynamismWarning(
            type=warning_type,
            message=message,
            chapter=self.state.current_chapter,
            beat=self.state.current_beat,
            severity=severity,
        )
        self.state.warnings.append(warning)
        logger.debug(f"Dynamism warning ({severity}): {message}")

    def _check_for_warnings(self) -> None:
        state = self.state
        max_location = self.profile.locations.max_consecutive_beats_in_same
        max_cast = self.profile.characters.max_consecutive_beats_with_same_cast

        if state.beats_in_current_location >= max_location:
            self._warn(
                "location_stuck",
                f"{state.beats_in_current_location} consecutive beats in "
                f"\"{state.current_location}\" (max: {max_location})",
                _severity(state.beats_in_current_location, max_location),
            )

        if state.beats_with_current_cast >= max_cast:
            self._warn(
                "character_stuck",
                f"{state.beats_with_current_cast} consecutive beats with same characters "
                f"(max: {max_cast})",
                _severity(state.beats_with_current_cast, max_cast),
            )

        if (self.profile.characters.scope == "solo"
                and state.chapter_beat_count > SOLO_CONTACT_GRACE_BEATS
                and not state.chapter_has_external_contact):
            self._warn(
                "no_external_contact",
                "No external contact (phone, radio, memory) in this chapter yet",
                "moderate",
            )

    def _violation(self, message: str, correction: str, chapter: int) -> None:
        self.state.violations.append(DynamismViolation(
            type="missing_requirement",
            message=message,
            chapter=chapter,
            correction=correction,
        ))
        logger.info(f"Dynamism violation in chapter {chapter}: {message}")

    def _finalize_chapter(self) -> ChapterStats:
        state = self.state
        chapter = state.current_chapter
        stats = ChapterStats(
            chapter_number=chapter,
            locations=list(state.chapter_locations),
            characters=list(state.chapter_characters),
            beat_count=state.chapter_beat_count,
            has_location_change=len(state.chapter_locations) > 1,
            has_new_character=any(
                state.characters[key].first_appearance.chapter == chapter
                for key in state.chapter_characters if key in state.characters
            ),
            has_external_contact=state.chapter_has_external_contact,
        )
        state.chapter_history.append(stats)
        state.chapter_open = False

        min_locations = self.profile.locations.min_locations_per_chapter
        if min_locations > 0 and len(stats.locations) < min_locations:
            self._violation(
                f"Chapter {chapter} has {len(stats.locations)} location(s), needs {min_locations}",
                f"Add {min_locations - len(stats.locations)} more distinct location(s)",
                chapter,
            )

        min_characters = self.profile.characters.min_characters_per_chapter
        if min_characters > 1 and len(stats.characters) < min_characters:
            self._violation(
                f"Chapter {chapter} has {len(stats.characters)} character(s), needs {min_characters}",
                f"Include {min_characters - len(stats.characters)} more character(s)",
                chapter,
            )

        if self.profile.characters.scope == "solo" and not stats.has_external_contact:
            self._violation(
                f"Chapter {chapter} has no external contact (required for isolated protagonist)",
                "Add phone call, radio message, memory with dialogue, or other external voice",
                chapter,
            )
        return stats

    # Queries

    def get_state(self) -> DynamismState:
        """Return a copy of the current state, safe to persist."""
        return self.state.model_copy(deep=True)

    def get_current_warnings(self) -> List[DynamismWarning]:
        """Warnings raised by the most recent beat."""
        return [
            w for w in self.state.warnings
            if w.chapter == self.state.current_chapter and w.beat == self.state.current_beat
        ]

    def get_violations(self) -> List[DynamismViolation]:
        return list(self.state.violations)

    def should_force_location_change(self) -> bool:
        return (self.state.beats_in_current_location
                >= self.profile.locations.max_consecutive_beats_in_same)

    def should_force_character_change(self) -> bool:
        return (self.state.beats_with_current_cast
                >= self.profile.characters.max_consecutive_beats_with_same_cast)

    def get_beat_feedback(self) -> Optional[str]:
        """
        Corrective text for the most recent beat, or None when it raised no warnings.

        The advice respects the premise: a story that cannot travel is told to
        change the space, not to leave it.
        """
        warnings = self.get_current_warnings()
        if not warnings:
            return None

        feedback = ["=== DYNAMISM FEEDBACK ===", ""]
        for warning in warnings:
            if warning.type == "location_stuck":
                feedback.append(f"LOCATION VARIETY NEEDED: {warning.message}")
                if self.profile.locations.can_physically_travel:
                    feedback.append("→ Move to a different location for this beat")
                else:
                    feedback.append("→ Change something about the current space (lighting, discovery, damage)")
                    feedback.append("→ Or use a flashback/memory to a different place")
            elif warning.type == "character_stuck":
                feedback.append(f"CHARACTER VARIETY NEEDED: {warning.message}")
                if self.profile.characters.can_meet_new_people:
                    feedback.append("→ Introduce a new character or bring back an earlier one")
                else:
                    feedback.append("→ Add a phone call, radio message, or memory featuring someone else")
            elif warning.type == "no_external_contact":
                feedback.append("EXTERNAL CONTACT NEEDED:")
                feedback.append("→ Your protagonist is isolated: bring in an external voice")
                feedback.append("→ Options: phone call, radio, intercom, memory with dialogue")
            else:
                feedback.append(f"VARIETY NEEDED: {warning.message}")
            feedback.append("")
        return "\n".join(feedback)

    # Reporting

    def generate_report(self) -> DynamismReport:
        """
        Finalize the chapter in progress and score the book so far.

        Calling it twice without new beats gives the same report.
        """
        if self.state.chapter_open and self.state.chapter_beat_count > 0:
            self._finalize_chapter()

        state = self.state
        history = state.chapter_history
        chapters = len(history) or 1
        avg_locations = sum(len(ch.locations) for ch in history) / chapters
        avg_characters = sum(len(ch.characters) for ch in history) / chapters

        location_score = self._variety_score(
            len(state.locations), self.profile.locations.min_distinct_locations_per_book
        )
        bonus = (SOLO_CHARACTER_TARGET_BONUS if self.profile.characters.scope == "solo"
                 else CAST_CHARACTER_TARGET_BONUS)
        character_score = self._variety_score(
            len(state.characters), self.profile.characters.min_new_characters_per_book + bonus
        )

        return DynamismReport(
            total_locations=len(state.locations),
            total_characters=len(state.characters),
            total_beats=sum(ch.beat_count for ch in history),
            chapters_tracked=len(history),
            average_locations_per_chapter=round(avg_locations, 1),
            average_characters_per_chapter=round(avg_characters, 1),
            location_variety_score=location_score,
            character_variety_score=character_score,
            overall_dynamism_score=round((location_score + character_score) / 2),
            warnings=list(state.warnings),
            violations=list(state.violations),
            recommendations=self._recommendations(),
            chapter_history=list(history),
        )

    @staticmethod
    def _variety_score(actual: int, target: int) -> int:
        if target <= 0:
            return 100
        return round(min(actual / target, 1) * 100)

    def _recommendations(self) -> List[str]:
        recommendations: List[str] = []
        target = self.profile.locations.min_distinct_locations_per_book
        if len(self.state.locations) < target:
            recommendations.append(
                f"Add {target - len(self.state.locations)} more distinct location(s)"
            )
        if self.state.violations:
            recommendations.append("Address the violations listed above")
        if any(w.severity == "severe" for w in self.state.warnings):
            recommendations.append("Review scenes with severe stagnation warnings")
        return recommendations


def create_dynamism_tracker(profile: DynamismProfile) -> DynamismTracker:
    """Create a new dynamism tracker for a story."""
    return DynamismTracker(profile)


# Text heuristics for callers without a structured beat planner.

LOCATION_TEXT_PATTERNS = [
    re.compile(
        r"\b(?:in|at|inside|within|entered|arrived at|walked into|stepped into)\s+"
        r"(?:the |a |an )?([^,.!?\n]+)",
        re.IGNORECASE,
    ),
    re.compile(r"(?:INT\.|EXT\.)\s*([^-\n]+)"),
    re.compile(r"(?:PANEL|LOCATION):\s*([^,\n]+)"),
]

EXTERNAL_CONTACT_PATTERNS = [
    re.compile(r"\b(phone|call|rang|calling|answered|dial|hung up)\b", re.IGNORECASE),
    re.compile(r"\b(text|message|notification|voicemail)\b", re.IGNORECASE),
    re.compile(r"\b(radio|intercom|walkie|speaker|PA system)\b", re.IGNORECASE),
    re.compile(r"\b(email|inbox|sent)\b", re.IGNORECASE),
    re.compile(r"\b(video call|facetime|zoom|skype)\b", re.IGNORECASE),
    re.compile(r"\"[^\"]+\""),
]


def extract_locations(text: str) -> List[str]:
    """
    Pull candidate location phrases out of prose, screenplay or comic script.

    A heuristic: phrases after "in/at/entered/...", scene headings and
    LOCATION:/PANEL: lines. Results are deduplicated in order of appearance.
    """
    found: List[str] = []
    for pattern in LOCATION_TEXT_PATTERNS:
        for match in pattern.finditer(text or ""):
            location = match.group(1).strip()
            if (MIN_EXTRACTED_LOCATION_LENGTH <= len(location) <= MAX_EXTRACTED_LOCATION_LENGTH
                    and location not in found):
                found.append(location)
    return found


def extract_characters(text: str, known_characters: Optional[Iterable[str]] = None) -> List[str]:
    """Return the known characters whose name appears as a whole word in the text."""
    found: List[str] = []
    for name in known_characters or []:
        if not name or name in found:
            continue
        if re.search(rf"\b{re.escape(name)}\b", text or "", re.IGNORECASE):
            found.append(name)
    return found


def has_external_contact(text: str) -> bool:
    """Whether the text contains a phone call, message, radio, or quoted speech."""
    return any(p.search(text or "") for p in EXTERNAL_CONTACT_PATTERNS)
