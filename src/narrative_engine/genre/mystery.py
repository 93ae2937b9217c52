"""
Mystery tracking with fair-play rules.

A fair mystery obeys three rules:
1. Every clue the solution depends on is shown to the reader
2. Red herrings are distinguishable in retrospect
3. The solution is deducible from what was shown

The tracker records clues, suspects, reveals and investigation threads,
and checks a solution against those rules before it is accepted.
"""

import logging
from typing import List, Optional

from ..config import (
    FAIR_PLAY_PENALTY_LATE_GUILTY,
    FAIR_PLAY_PENALTY_TOO_FEW_CLUES,
    LATE_INTRODUCTION_WINDOW,
    MAX_RED_HERRING_RATIO,
    MIN_CLUES_FOR_RED_HERRING_CHECK,
    MIN_CLUES_FOR_SOLUTION,
    MIN_CRUCIAL_CLUES,
    MIN_POINTING_CLUES,
    MIN_RED_HERRING_RATIO,
)
from ..utils.normalize import same_character
from .base import GenreTracker
from .models import (
    InvestigationThread,
    MysteryClue,
    MysteryDelta,
    MysteryReveal,
    MysteryState,
    Suspect,
    TickingClock,
    ValidationResult,
)

logger = logging.getLogger(__name__)

MAX_TENSION = 10
SIGNIFICANCE_TENSION = {"crucial": 2, "major": 1}
SUSPECT_FIELDS = {"motive", "opportunity", "means", "alibi", "alibi_strength", "suspicion_level", "is_guilty"}


class MysteryTracker(GenreTracker):
    """
    Tracks one book's mystery.

    Args:
        book_id: Book identifier
        central_mystery: The main question ("Who killed the curator?")
        state: Previously dumped MysteryState (model or dict)
    """

    genre = "mystery"
    state_model = MysteryState

    def __init__(self, book_id: str, central_mystery: str = "", state=None):
        super().__init__(book_id, state)
        if central_mystery:
            self.state.central_mystery = central_mystery

    def _raise_tension(self, amount: int) -> None:
        self.state.tension_level = min(MAX_TENSION, self.state.tension_level + amount)

    # Clues

    def add_clue(self, clue: MysteryClue, chapter: int) -> MysteryClue:
        """
        Record a clue and link it to every known suspect it points to.

        Returns:
            The stored clue with its assigned id
        """
        stored = clue.model_copy(update={
            "id": f"clue_{len(self.state.clues) + 1}",
            "introduced_chapter": chapter,
        })
        self.state.clues.append(stored)

        if stored.is_red_herring:
            self.state.red_herring_count += 1
        self._raise_tension(SIGNIFICANCE_TENSION.get(stored.significance, 0))

        for name in stored.points_to:
            suspect = self.get_suspect(name)
            if suspect is not None and stored.id not in suspect.clues_pointing_to:
                suspect.clues_pointing_to.append(stored.id)
        return stored

    def get_clue(self, clue_id: str) -> Optional[MysteryClue]:
        return next((c for c in self.state.clues if c.id == clue_id), None)

    def connect_clues(self, first_id: str, second_id: str) -> bool:
        first, second = self.get_clue(first_id), self.get_clue(second_id)
        if first is None or second is None:
            return False
        if second_id not in first.connection_to_other_clues:
            first.connection_to_other_clues.append(second_id)
        if first_id not in second.connection_to_other_clues:
            second.connection_to_other_clues.append(first_id)
        return True

    # Suspects

    def get_suspect(self, name: str) -> Optional[Suspect]:
        exact = next((s for s in self.state.suspects if s.name == name), None)
        if exact is not None:
            return exact
        return next((s for s in self.state.suspects if same_character(s.name, name)), None)

    def add_suspect(self, name: str, chapter: int, **details) -> Suspect:
        """
        Introduce a suspect, or update one already known.

        Clues recorded earlier that point to this name are linked.
        """
        suspect = self.get_suspect(name)
        if suspect is None:
            suspect = Suspect(name=name, introduced_chapter=chapter)
            self.state.suspects.append(suspect)
            for clue in self.state.clues:
                if any(same_character(target, name) for target in clue.points_to):
                    suspect.clues_pointing_to.append(clue.id)
        self.update_suspect(suspect.name, **details)
        return suspect

    def update_suspect(self, name: str, **updates) -> bool:
        suspect = self.get_suspect(name)
        if suspect is None:
            return False
        for field, value in updates.items():
            if field in SUSPECT_FIELDS and value is not None:
                setattr(suspect, field, value)
        return True

    def eliminate_suspect(self, name: str, chapter: int, reason: str) -> bool:
        suspect = self.get_suspect(name)
        if suspect is None:
            return False
        suspect.suspicion_level = 0
        suspect.clues_exonerating.append(reason)
        self.state.reveals.append(MysteryReveal(
            chapter=chapter,
            type="suspect_eliminated",
            description=f"{suspect.name} eliminated as suspect: {reason}",
            changes_investigation=True,
            surprise_factor=2,
        ))
        return True

    # Threads, reveals, clock

    def add_thread(self, description: str, leading_to: str, investigator: str) -> InvestigationThread:
        thread = InvestigationThread(
            id=f"thread_{len(self.state.investigation_threads) + 1}",
            description=description,
            leading_to=leading_to,
            investigator=investigator,
        )
        self.state.investigation_threads.append(thread)
        return thread

    def _thread(self, thread_id: str) -> Optional[InvestigationThread]:
        return next((t for t in self.state.investigation_threads if t.id == thread_id), None)

    def link_clue_to_thread(self, clue_id: str, thread_id: str) -> bool:
        thread = self._thread(thread_id)
        if thread is None:
            return False
        if clue_id not in thread.related_clues:
            thread.related_clues.append(clue_id)
        return True

    def update_thread_status(self, thread_id: str, status: str) -> bool:
        thread = self._thread(thread_id)
        if thread is None:
            return False
        thread.status = status
        return True

    def add_reveal(self, reveal: MysteryReveal, chapter: int) -> MysteryReveal:
        stored = reveal.model_copy(update={"chapter": chapter})
        self.state.reveals.append(stored)
        if stored.type == "twist":
            self._raise_tension(stored.surprise_factor)
        elif stored.type == "solution":
            self.state.solution_revealed = True
        return stored

    def set_ticking_clock(self, deadline: str, chapters_remaining: int) -> None:
        self.state.ticking_clock = TickingClock(deadline=deadline, chapters_remaining=chapters_remaining)
        self._raise_tension(2)

    def tick_clock(self) -> None:
        clock = self.state.ticking_clock
        if clock is None:
            return
        clock.chapters_remaining -= 1
        if clock.chapters_remaining <= 3:
            self._raise_tension(1)

    # Chapter processing

    def process_chapter(self, chapter_number: int, extraction) -> MysteryDelta:
        delta = MysteryDelta()
        mystery = self._extraction(extraction)
        if mystery is None:
            return delta

        for incoming in mystery.clues_found:
            delta.clues_added.append(self.add_clue(incoming, chapter_number))

        for change in mystery.suspect_changes:
            delta.suspect_changes.append(f"{change.suspect}: {change.change}")
            if change.change == "added":
                self.add_suspect(change.suspect, chapter_number)
            elif change.change == "eliminated":
                self.eliminate_suspect(change.suspect, chapter_number, "Cleared by evidence")
            else:
                suspect = self.get_suspect(change.suspect)
                if suspect is None:
                    suspect = self.add_suspect(change.suspect, chapter_number)
                suspect.suspicion_level = min(10, suspect.suspicion_level + 2)

        for incoming in mystery.revelations:
            delta.reveals.append(self.add_reveal(incoming, chapter_number))

        delta.fair_play_warnings = self.check_fair_play(chapter_number)
        self.tick_clock()
        return delta

    # Fair play

    def _deduct(self, kind: str, penalty: int) -> None:
        if kind in self.state.fair_play_deductions:
            return
        self.state.fair_play_deductions.append(kind)
        self.state.fair_play_score = max(0, self.state.fair_play_score - penalty)
        logger.info(f"Fair play deduction for book {self.book_id}: {kind} (-{penalty})")

    def check_fair_play(self, current_chapter: int) -> List[str]:
        """
        Check the fair-play rules and return warnings.

        Each kind of violation lowers the fair-play score once, however
        often it is reported.
        """
        warnings = []
        state = self.state

        if state.solution_revealed:
            crucial = [c for c in state.clues if c.significance == "crucial" and not c.is_red_herring]
            if len(crucial) < MIN_CRUCIAL_CLUES:
                warnings.append(
                    f"FAIR PLAY VIOLATION: Solution revealed with fewer than {MIN_CRUCIAL_CLUES} crucial clues planted."
                )
                self._deduct("too_few_crucial_clues", FAIR_PLAY_PENALTY_TOO_FEW_CLUES)

            guilty = next((s for s in state.suspects if s.is_guilty), None)
            if guilty is not None and guilty.introduced_chapter > current_chapter - LATE_INTRODUCTION_WINDOW:
                warnings.append(f"FAIR PLAY VIOLATION: Guilty party ({guilty.name}) introduced too late.")
                self._deduct("guilty_introduced_late", FAIR_PLAY_PENALTY_LATE_GUILTY)

        ratio = state.red_herring_count / max(1, len(state.clues))
        if ratio > MAX_RED_HERRING_RATIO:
            warnings.append("WARNING: Too many red herrings. Reader may feel cheated.")
        elif ratio < MIN_RED_HERRING_RATIO and len(state.clues) > MIN_CLUES_FOR_RED_HERRING_CHECK:
            warnings.append("WARNING: Few red herrings. Mystery may be too easy to solve.")

        for thread in state.investigation_threads:
            if thread.status == "active" and not thread.related_clues:
                warnings.append(f'WARNING: Investigation thread "{thread.description}" has no connected clues.')

        return warnings

    def validate_reveal(self, reveal_type: str, description: str = "") -> ValidationResult:
        if reveal_type != "solution":
            return ValidationResult(valid=True)
        if self.state.solution_revealed:
            return ValidationResult(valid=False, reason="The solution has already been revealed.")

        genuine = [c for c in self.state.clues if not c.is_red_herring]
        if len(genuine) < MIN_CLUES_FOR_SOLUTION:
            return ValidationResult(
                valid=False,
                reason=f"Cannot reveal solution with only {len(genuine)} genuine clues. "
                       f"Need at least {MIN_CLUES_FOR_SOLUTION} for fair play.",
            )
        if not any(s.suspicion_level > 0 for s in self.state.suspects):
            return ValidationResult(valid=False, reason="No viable suspects established. Cannot reveal solution.")
        return ValidationResult(valid=True)

    def reveal_guilty(self, name: str, chapter: int) -> ValidationResult:
        """
        Mark a suspect guilty if the story has earned it.

        Requires motive, means and opportunity on record and at least two
        genuine clues pointing at the suspect. Only one solution per book.
        """
        if self.state.solution_revealed:
            return ValidationResult(valid=False, reason="The solution has already been revealed.")

        suspect = self.get_suspect(name)
        if suspect is None:
            return ValidationResult(valid=False, reason=f"{name} was never introduced as a suspect.")

        missing = [field for field in ("motive", "means", "opportunity") if not getattr(suspect, field)]
        if missing:
            return ValidationResult(
                valid=False,
                reason=f"{suspect.name} is missing: {', '.join(missing)}. Establish these before revealing guilt.",
            )

        pointing = [
            clue for clue in (self.get_clue(clue_id) for clue_id in suspect.clues_pointing_to)
            if clue is not None and not clue.is_red_herring
        ]
        if len(pointing) < MIN_POINTING_CLUES:
            return ValidationResult(
                valid=False,
                reason=f"Only {len(pointing)} clues point to {suspect.name}. "
                       f"Need at least {MIN_POINTING_CLUES} for fair play.",
            )

        suspect.is_guilty = True
        self.state.solution_revealed = True
        self.state.reveals.append(MysteryReveal(
            chapter=chapter,
            type="solution",
            description=f"{suspect.name} revealed as guilty",
            changes_investigation=True,
            surprise_factor=5,
        ))
        logger.info(f"{suspect.name} revealed guilty in chapter {chapter}")
        return ValidationResult(valid=True)

    # Reporting

    def generate_summary(self) -> str:
        state = self.state
        lines = [
            "=== MYSTERY STATE ===",
            f"Central Question: {state.central_mystery}",
            f"Tension Level: {state.tension_level}/10",
            f"Fair Play Score: {state.fair_play_score}/100",
            "",
            "SUSPECTS:",
        ]
        for suspect in state.suspects:
            if suspect.suspicion_level <= 0:
                continue
            lines.append(f"  {suspect.name}: Suspicion {suspect.suspicion_level}/10")
            if suspect.motive:
                lines.append(f"    Motive: {suspect.motive}")
            if suspect.alibi:
                lines.append(f"    Alibi: {suspect.alibi} ({suspect.alibi_strength})")

        unconnected = [c for c in state.clues if not c.connection_to_other_clues]
        if unconnected:
            lines.append("")
            lines.append("UNCONNECTED CLUES (need follow-up):")
            for clue in unconnected[-5:]:
                lines.append(f"  - {clue.description} ({clue.clue_type})")

        active = [t for t in state.investigation_threads if t.status == "active"]
        if active:
            lines.append("")
            lines.append("ACTIVE INVESTIGATION THREADS:")
            for thread in active:
                lines.append(f"  - {thread.description} -> {thread.leading_to}")

        if state.ticking_clock:
            lines.append("")
            lines.append(
                f"TICKING CLOCK: {state.ticking_clock.deadline} "
                f"({state.ticking_clock.chapters_remaining} chapters remaining)"
            )
        return "\n".join(lines) + "\n"

    def generate_suggestions(self, current_chapter: int) -> List[str]:
        suggestions = []
        state = self.state

        if state.solution_revealed:
            return suggestions

        if not any(c.introduced_chapter >= current_chapter - 3 for c in state.clues):
            suggestions.append("No clues in last 3 chapters. Consider planting a new clue.")

        for suspect in state.suspects:
            if suspect.suspicion_level > 3 and not suspect.motive:
                suggestions.append(f"{suspect.name} needs motive established.")
            if suspect.suspicion_level > 5 and not suspect.alibi:
                suggestions.append(f"{suspect.name} needs alibi addressed.")

        if state.tension_level < 5 and current_chapter > 5:
            suggestions.append("Tension is low. Consider a major revelation or ticking clock.")

        if sum(1 for t in state.investigation_threads if t.status == "active") > 3:
            suggestions.append("Many open threads. Consider resolving one before adding more.")

        return suggestions


def create_mystery_tracker(book_id: str, central_mystery: str) -> MysteryTracker:
    return MysteryTracker(book_id, central_mystery)
