"""
Romance arc tracking.

Follows each couple through the genre's stage sequence:
strangers -> first encounter -> awareness -> resistance -> growing tension
-> near miss -> first intimacy -> complications -> black moment
-> grand gesture -> resolution, with ``established`` as the terminal state.

Stages only move by validated transitions: at most one step forward per
update, except the reset stages (complications, black moment) which may
be entered from anywhere.
"""

import logging
from typing import List, Optional

from ..config import ESCALATION_CHEMISTRY_STEP, MAX_CHEMISTRY, STALLED_ROMANCE_CHAPTERS
from ..utils.normalize import pair_id, pair_key, same_character
from .base import GenreTracker
from .drama import DramaTracker
from .models import (
    Affair,
    IntimacyMilestones,
    RejectedProgression,
    RomanceArc,
    RomanceBeat,
    RomanceChemistry,
    RomanceDelta,
    RomanceObstacle,
    RomanceState,
    StageChange,
    StageEntry,
    ValidationResult,
)

logger = logging.getLogger(__name__)

STAGE_ORDER = [
    "strangers",
    "first_encounter",
    "awareness",
    "resistance",
    "growing_tension",
    "near_miss",
    "first_intimacy",
    "complications",
    "black_moment",
    "grand_gesture",
    "resolution",
    "established",
]

RESET_STAGES = {"complications", "black_moment"}

NEAR_MISS_BEATS = {"glance", "touch", "argument"}
TOUCH_BEATS = {"touch", "kiss", "intimacy"}
RECENT_BEAT_WINDOW = 5

STAGE_SUGGESTIONS = {
    "strangers": "Ready for meet-cute or first encounter",
    "first_encounter": "Give them a reason to keep crossing paths",
    "awareness": "Build tension through proximity and stolen glances",
    "resistance": "Show why one of them fights the attraction",
    "growing_tension": "Time for a near-miss moment (almost-kiss, interrupted intimacy)",
    "near_miss": "Consider the first kiss or explicit acknowledgment of attraction",
    "first_intimacy": "Introduce a complication or obstacle to test the relationship",
    "complications": "Build toward black moment - maximum tension before resolution",
    "black_moment": "Ready for grand gesture or reconciliation",
    "grand_gesture": "Let the declaration land and move toward resolution",
}


def stage_index(stage: str) -> int:
    return STAGE_ORDER.index(stage)


class RomanceTracker(GenreTracker):
    """
    Tracks romance arcs for one book.

    Args:
        book_id: Book identifier
        state: Previously dumped RomanceState (model or dict)
        drama: Drama tracker that owns the book's secrets; affairs are
            registered there
    """

    genre = "romance"
    state_model = RomanceState

    def __init__(self, book_id: str, state=None, drama: Optional[DramaTracker] = None):
        super().__init__(book_id, state)
        self.drama = drama if drama is not None else DramaTracker(book_id)

    # Arcs

    def initialize_arc(
        self,
        character1: str,
        character2: str,
        chapter: int = 0,
        tension_type: str = "mixed",
        dynamic_type: str = "equals",
        heat_level: int = 3,
        is_primary: bool = True,
    ) -> RomanceArc:
        """
        Start tracking a couple.

        Returns the existing arc if the pair is already tracked.
        """
        existing = self.get_arc(character1, character2)
        if existing is not None:
            return existing

        arc = RomanceArc(
            id=f"romance_{len(self.state.arcs) + 1}",
            couple=RomanceChemistry(
                pair_name=f"{character1} & {character2}",
                character1=character1,
                character2=character2,
                chemistry_level=1.0,
                tension_type=tension_type,
                dynamic_type=dynamic_type,
            ),
            stage_history=[StageEntry(stage="strangers", chapter=chapter)],
            heat_level=heat_level,
            is_primary=is_primary,
        )
        self.state.arcs.append(arc)
        self.state.unpaired_characters = [
            c for c in self.state.unpaired_characters
            if not (same_character(c, character1) or same_character(c, character2))
        ]
        logger.info(f"Romance arc {arc.id} started for {arc.couple.pair_name}")
        return arc

    def get_arc(self, character1: str, character2: str) -> Optional[RomanceArc]:
        """Find the arc for a pair, in either order, matching names by first name."""
        key = pair_key(character1, character2)
        for arc in self.state.arcs:
            if pair_key(arc.couple.character1, arc.couple.character2) == key:
                return arc
        return None

    def add_obstacle(
        self,
        character1: str,
        character2: str,
        obstacle_type: str,
        description: str,
        chapter: int,
        blocks_character: str = "",
        severity: str = "significant",
    ) -> Optional[RomanceObstacle]:
        arc = self.get_arc(character1, character2)
        if arc is None:
            return None
        obstacle = RomanceObstacle(
            type=obstacle_type,
            description=description,
            blocks_character=blocks_character,
            introduced_chapter=chapter,
            severity=severity,
        )
        arc.obstacles.append(obstacle)
        return obstacle

    def resolve_obstacle(self, character1: str, character2: str, description: str, chapter: int) -> bool:
        """Resolve the first open obstacle whose description contains ``description``."""
        arc = self.get_arc(character1, character2)
        if arc is None:
            return False
        needle = description.lower()
        for obstacle in arc.obstacles:
            if obstacle.resolved_chapter is None and needle in obstacle.description.lower():
                obstacle.resolved_chapter = chapter
                return True
        return False

    def register_affair(
        self,
        participants: List[str],
        betrayed_party: str,
        chapter: int,
        emotional_nature: str = "both",
    ) -> Affair:
        """
        Record an affair.

        The affair and its secret live in the drama tracker. Any arc between
        the betrayed party and one of the participants gets a secret obstacle.
        """
        affair = self.drama.register_affair(participants, betrayed_party, chapter, emotional_nature)
        description = f"Affair between {' and '.join(participants)}"
        for participant in participants:
            arc = self.get_arc(participant, betrayed_party)
            if arc is not None:
                arc.obstacles.append(RomanceObstacle(
                    type="secret",
                    description=description,
                    blocks_character=participant,
                    introduced_chapter=chapter,
                    severity="major",
                ))
        return affair

    # Progression

    def validate_progression(self, character1: str, character2: str, proposed_stage: str) -> ValidationResult:
        """
        Check whether a pair may move to ``proposed_stage``.

        A pair that is not tracked yet is checked as a fresh arc at
        ``strangers``.
        """
        arc = self.get_arc(character1, character2)
        if arc is None:
            arc = RomanceArc(
                id="unsaved",
                couple=RomanceChemistry(
                    pair_name=f"{character1} & {character2}",
                    character1=character1,
                    character2=character2,
                ),
            )
        return self._validate(arc, proposed_stage)

    @staticmethod
    def _validate(arc: RomanceArc, proposed_stage: str) -> ValidationResult:
        if proposed_stage not in STAGE_ORDER:
            return ValidationResult(valid=False, reason=f"Unknown romance stage '{proposed_stage}'.")
        current = arc.current_stage
        if proposed_stage == current:
            return ValidationResult(valid=True)
        if proposed_stage in RESET_STAGES:
            return ValidationResult(valid=True)

        milestones = arc.intimacy_milestones
        if proposed_stage == "first_intimacy" and milestones.first_touch is None:
            return ValidationResult(
                valid=False,
                reason="First intimacy requires prior physical contact (a touch beat).",
            )
        if proposed_stage == "resolution" and milestones.love_declaration is None:
            return ValidationResult(
                valid=False,
                reason="Resolution requires a love declaration first.",
            )

        step = stage_index(proposed_stage) - stage_index(current)
        if step < 0:
            return ValidationResult(
                valid=False,
                reason=f"Cannot move back from {current} to {proposed_stage}; only complications and black_moment reset an arc.",
            )
        if step > 1:
            return ValidationResult(
                valid=False,
                reason=f"Cannot jump from {current} to {proposed_stage}; the next stage is {STAGE_ORDER[stage_index(current) + 1]}.",
            )
        return ValidationResult(valid=True)

    def _apply_stage(self, arc: RomanceArc, proposed_stage: str, chapter: int, delta: RomanceDelta) -> bool:
        result = self._validate(arc, proposed_stage)
        if not result.valid:
            delta.rejected_progressions.append(RejectedProgression(
                arc=arc.id,
                from_stage=arc.current_stage,
                to_stage=proposed_stage,
                reason=result.reason,
            ))
            logger.info(f"Rejected {arc.couple.pair_name} {arc.current_stage} -> {proposed_stage}: {result.reason}")
            return False

        delta.stage_changes.append(StageChange(arc=arc.id, from_stage=arc.current_stage, to_stage=proposed_stage))
        arc.current_stage = proposed_stage
        arc.stage_history.append(StageEntry(stage=proposed_stage, chapter=chapter))
        return True

    @staticmethod
    def _update_milestones(milestones: IntimacyMilestones, beat: RomanceBeat, chapter: int) -> None:
        if beat.type in TOUCH_BEATS and milestones.first_touch is None:
            milestones.first_touch = chapter
        if beat.type == "kiss" and milestones.first_kiss is None:
            milestones.first_kiss = chapter
        if beat.type == "confession" and milestones.love_declaration is None:
            milestones.love_declaration = chapter
        if beat.type == "intimacy" and milestones.physical_intimacy is None:
            milestones.physical_intimacy = chapter

    @staticmethod
    def _natural_stage(arc: RomanceArc) -> str:
        """Stage the recent beats and chemistry point to."""
        if not arc.beats:
            return arc.current_stage

        recent_types = [b.type for b in arc.beats[-RECENT_BEAT_WINDOW:]]
        current = stage_index(arc.current_stage)
        chemistry = arc.couple.chemistry_level
        milestones = arc.intimacy_milestones

        if "separation" in recent_types and milestones.first_kiss is not None \
                and current < stage_index("black_moment"):
            return "black_moment"
        if arc.current_stage == "black_moment" and "confession" in recent_types:
            return "grand_gesture"
        if arc.current_stage == "grand_gesture" and milestones.love_declaration is not None:
            return "resolution"
        if ("kiss" in recent_types or "intimacy" in recent_types) and current < stage_index("first_intimacy"):
            return "first_intimacy"
        near_misses = sum(1 for t in recent_types if t in NEAR_MISS_BEATS)
        if near_misses >= 2 and arc.current_stage == "growing_tension":
            return "near_miss"
        if chemistry >= 7 and current < stage_index("growing_tension"):
            return "growing_tension"
        if chemistry >= 4 and current < stage_index("awareness"):
            return "awareness"
        if arc.current_stage == "strangers":
            return "first_encounter"
        return arc.current_stage

    def process_chapter(self, chapter_number: int, extraction) -> RomanceDelta:
        """
        Apply one chapter's romance signals.

        Each arc moves at most one stage per call. Natural progress toward
        a later stage advances a single step; an explicit stage progression
        in the extraction is validated as given.
        """
        delta = RomanceDelta()
        romance = self._extraction(extraction)
        if romance is None:
            return delta

        touched: List[RomanceArc] = []
        for incoming in romance.romantic_moments:
            beat = incoming.model_copy(update={"chapter": chapter_number})
            self.state.romantic_moments.append(beat)
            delta.beats_recorded += 1

            if len(beat.characters) < 2:
                for name in beat.characters:
                    if name not in self.state.unpaired_characters and not self._in_any_arc(name):
                        self.state.unpaired_characters.append(name)
                continue

            arc = self.get_arc(beat.characters[0], beat.characters[1])
            if arc is None:
                arc = self.initialize_arc(beat.characters[0], beat.characters[1], chapter=chapter_number)
                delta.arcs_created.append(arc.id)

            arc.beats.append(beat)
            if beat.is_escalation:
                arc.couple.chemistry_level = min(
                    MAX_CHEMISTRY, arc.couple.chemistry_level + ESCALATION_CHEMISTRY_STEP
                )
            self._update_milestones(arc.intimacy_milestones, beat, chapter_number)
            if arc not in touched:
                touched.append(arc)

        for observation in romance.chemistry_observations:
            names = [n.strip() for n in observation.pair.split("&")]
            if len(names) != 2 or not all(names):
                continue
            arc = self.get_arc(names[0], names[1])
            if arc is not None:
                names = [arc.couple.character1, arc.couple.character2]
            key = pair_id(names[0], names[1])
            self.state.chemistry_score[key] = self.state.chemistry_score.get(key, 0) + 1

        moved = set()
        progression = romance.stage_progression
        if progression is not None:
            for arc in self.state.arcs:
                if arc.current_stage == progression.from_stage:
                    self._apply_stage(arc, progression.to, chapter_number, delta)
                    moved.add(arc.id)

        for arc in touched:
            if arc.id in moved:
                continue
            target = self._natural_stage(arc)
            if target == arc.current_stage:
                continue
            current = stage_index(arc.current_stage)
            if target not in RESET_STAGES and stage_index(target) > current + 1:
                target = STAGE_ORDER[current + 1]
            self._apply_stage(arc, target, chapter_number, delta)

        return delta

    def _in_any_arc(self, name: str) -> bool:
        return any(
            same_character(name, a.couple.character1) or same_character(name, a.couple.character2)
            for a in self.state.arcs
        )

    # Reporting

    def generate_summary(self) -> str:
        if not self.state.arcs:
            return ""

        lines = ["=== ROMANCE ARCS ==="]
        for arc in self.state.arcs:
            couple = arc.couple
            lines.append(f"\n{couple.pair_name}{' (primary)' if arc.is_primary else ''}")
            lines.append(f"  Stage: {arc.current_stage}")
            lines.append(f"  Chemistry: {couple.chemistry_level:.1f}/10 ({couple.tension_type})")
            lines.append(f"  Dynamic: {couple.dynamic_type}")

            reached = [
                f"{name.replace('_', ' ')} (ch {chapter})"
                for name, chapter in arc.intimacy_milestones.model_dump().items()
                if chapter is not None
            ]
            if reached:
                lines.append(f"  Milestones: {', '.join(reached)}")

            active = [o for o in arc.obstacles if o.resolved_chapter is None]
            if active:
                lines.append("  Active obstacles:")
                for obstacle in active:
                    lines.append(f"    - {obstacle.description} ({obstacle.type}, {obstacle.severity})")

            recent = arc.beats[-3:]
            if recent:
                lines.append("  Recent beats:")
                for beat in recent:
                    lines.append(f"    - Ch {beat.chapter}: {beat.type} - {beat.description}")
        return "\n".join(lines) + "\n"

    def generate_suggestions(self, current_chapter: int) -> List[str]:
        suggestions = []
        for arc in self.state.arcs:
            name = arc.couple.pair_name
            hint = STAGE_SUGGESTIONS.get(arc.current_stage)
            if hint:
                suggestions.append(f"{name}: {hint}")

            last_beat_chapter = arc.beats[-1].chapter if arc.beats else 0
            idle = current_chapter - last_beat_chapter
            if idle > STALLED_ROMANCE_CHAPTERS and arc.current_stage not in ("resolution", "established"):
                suggestions.append(f"WARNING: {name} romance has stalled for {idle} chapters")
        return suggestions


def create_romance_tracker(book_id: str, drama: Optional[DramaTracker] = None) -> RomanceTracker:
    return RomanceTracker(book_id, drama=drama)
