"""
Comedy tracking.

Records jokes, sarcasm and running gags, builds a comedy profile per
character and keeps the gag economy healthy: gags that repeat without
variation are flagged as exhausted, and strong jokes schedule a callback
a few chapters later.
"""

import logging
import random
from typing import List, Optional

from ..config import CALLBACK_MAX_DELAY, CALLBACK_MIN_DELAY, GAG_EXHAUSTION_WINDOW, GAG_MIN_VARIATIONS
from ..utils.normalize import fuzzy_match
from .base import GenreTracker
from .models import (
    CallbackOpportunity,
    CharacterComedyProfile,
    ComedyDelta,
    ComedyState,
    GagOccurrence,
    JokeBeat,
    PlacementCheck,
    RunningGag,
    SarcasmInstance,
)

logger = logging.getLogger(__name__)

CALLBACK_WORTHY = {"great", "killer"}
ESCALATION_WORDS = ("bigger", "more", "escalat")
SIMILAR_PREFIX_LENGTH = 10
MAX_RECENT_JOKES = 10
GAG_IDLE_CHAPTERS = 5
RELIEF_IDLE_CHAPTERS = 3

CALLBACK_TEMPLATES = [
    'Reference "{punchline}" in an unexpected context',
    'Have another character unknowingly repeat "{setup}"',
    "Subvert the original with opposite outcome",
    "Escalate: the same situation, but more extreme",
]


class ComedyTracker(GenreTracker):
    """Tracks humor for one book."""

    genre = "comedy"
    state_model = ComedyState

    def _callback_random(self, joke_id: str) -> random.Random:
        return random.Random(f"{self.book_id}:{joke_id}")

    # Jokes

    def add_joke(self, joke: JokeBeat, chapter: int) -> JokeBeat:
        stored = joke.model_copy(update={
            "id": f"joke_{len(self.state.jokes) + 1}",
            "chapter": chapter,
        })
        self.state.jokes.append(stored)

        if stored.is_callback and stored.calls_back_to:
            target = stored.calls_back_to
            self.state.callback_opportunities = [
                co for co in self.state.callback_opportunities
                if co.joke_id != target and co.joke != target
            ]

        if stored.delivered_by:
            profile = self.get_or_create_character_profile(stored.delivered_by)
            if stored.type not in profile.comedy_style:
                profile.comedy_style.append(stored.type)

        self._check_running_gag_potential(stored)

        if stored.effectiveness in CALLBACK_WORTHY:
            self._add_callback_opportunity(stored, chapter)
        return stored

    def _check_running_gag_potential(self, joke: JokeBeat) -> None:
        setup_prefix = joke.setup.lower()[:SIMILAR_PREFIX_LENGTH]
        punch_prefix = joke.punchline.lower()[:SIMILAR_PREFIX_LENGTH]
        similar = [
            j for j in self.state.jokes
            if j.id != joke.id
            and j.type == joke.type
            and j.delivered_by == joke.delivered_by
            and ((setup_prefix and setup_prefix in j.setup.lower())
                 or (punch_prefix and punch_prefix in j.punchline.lower()))
        ]
        if similar and self.find_gag_by_description(joke.setup) is None:
            self.add_running_gag(joke.setup, similar[0].chapter)

    def _add_callback_opportunity(self, joke: JokeBeat, chapter: int) -> None:
        rng = self._callback_random(joke.id)
        delay = rng.randint(CALLBACK_MIN_DELAY, CALLBACK_MAX_DELAY)
        template = rng.choice(CALLBACK_TEMPLATES)
        self.state.callback_opportunities.append(CallbackOpportunity(
            joke_id=joke.id,
            joke=joke.setup,
            suggested_callback=template.format(setup=joke.setup, punchline=joke.punchline),
            ideal_chapter=chapter + delay,
        ))

    # Running gags

    def add_running_gag(self, description: str, first_chapter: int) -> RunningGag:
        gag = RunningGag(
            id=f"gag_{len(self.state.running_gags) + 1}",
            description=description,
            first_appearance=first_chapter,
            occurrences=[GagOccurrence(chapter=first_chapter, variation="Initial appearance")],
        )
        self.state.running_gags.append(gag)
        return gag

    def record_gag_occurrence(self, gag_id: str, chapter: int, variation: str) -> bool:
        """
        Record another use of a gag.

        A gag is exhausted once its last five uses show fewer than three
        distinct variations.
        """
        gag = next((g for g in self.state.running_gags if g.id == gag_id), None)
        if gag is None:
            return False

        gag.occurrences.append(GagOccurrence(chapter=chapter, variation=variation))
        recent = gag.occurrences[-GAG_EXHAUSTION_WINDOW:]
        distinct = len({o.variation for o in recent})
        if len(recent) >= GAG_EXHAUSTION_WINDOW and distinct < GAG_MIN_VARIATIONS:
            if not gag.is_exhausted:
                logger.info(f"Running gag exhausted: {gag.description}")
            gag.is_exhausted = True

        lowered = variation.lower()
        if any(word in lowered for word in ESCALATION_WORDS):
            gag.escalates = True
        return True

    def find_gag_by_description(self, description: str) -> Optional[RunningGag]:
        return next((g for g in self.state.running_gags if fuzzy_match(g.description, description)), None)

    # Sarcasm and characters

    def add_sarcasm(self, sarcasm: SarcasmInstance, chapter: int) -> SarcasmInstance:
        stored = sarcasm.model_copy(update={"chapter": chapter})
        self.state.sarcasm_instances.append(stored)

        profile = self.get_or_create_character_profile(stored.speaker)
        if "sarcasm" not in profile.comedy_style:
            profile.comedy_style.append("sarcasm")
        if stored.target and stored.target not in profile.frequent_targets:
            profile.frequent_targets.append(stored.target)
        return stored

    def get_or_create_character_profile(self, name: str) -> CharacterComedyProfile:
        profile = next((p for p in self.state.character_profiles if p.name == name), None)
        if profile is None:
            profile = CharacterComedyProfile(name=name)
            self.state.character_profiles.append(profile)
        return profile

    def set_comedy_relief(self, name: str, delivery_style: str) -> None:
        profile = self.get_or_create_character_profile(name)
        profile.is_comedy_relief = True
        profile.delivery_style = delivery_style

    def add_catch_phrase(self, name: str, phrase: str) -> None:
        profile = self.get_or_create_character_profile(name)
        if phrase not in profile.catch_phrases:
            profile.catch_phrases.append(phrase)

    def set_tone(self, tone: str) -> None:
        self.state.overall_tone = tone

    # Chapter processing

    def process_chapter(self, chapter_number: int, extraction) -> ComedyDelta:
        delta = ComedyDelta()
        comedy = self._extraction(extraction)
        if comedy is None:
            return delta

        for incoming in comedy.jokes:
            joke = self.add_joke(incoming, chapter_number)
            delta.jokes_added.append(joke)
            if joke.is_callback:
                delta.callbacks_used.append(joke.calls_back_to or "unknown")

        for incoming in comedy.sarcasm_instances:
            self.add_sarcasm(incoming, chapter_number)
            delta.sarcasm_found += 1

        for description in comedy.running_gag_occurrences:
            gag = self.find_gag_by_description(description)
            if gag is None:
                gag = self.add_running_gag(description, chapter_number)
            else:
                self.record_gag_occurrence(gag.id, chapter_number, description)
            delta.running_gags_used.append(gag.description)

        self._update_comedy_density(self._word_count(extraction))
        delta.suggestions = self.generate_suggestions(chapter_number)
        return delta

    def _update_comedy_density(self, chapter_word_count: int) -> None:
        """Jokes per thousand words across the book so far."""
        self.state.words_seen += chapter_word_count
        total_words = self.state.words_seen or sum(
            len(j.setup.split()) + len(j.punchline.split()) for j in self.state.jokes
        )
        if total_words == 0:
            self.state.comedy_density = 0.0
            return
        self.state.comedy_density = len(self.state.jokes) / total_words * 1000

    # Reporting

    def validate_joke_placement(self, chapter: int) -> PlacementCheck:
        warnings = []

        recent = [j for j in self.state.jokes if chapter - 2 <= j.chapter <= chapter]
        if len(recent) > MAX_RECENT_JOKES:
            warnings.append("High joke density in recent chapters. Ensure emotional beats land.")

        exhausted = [g.description for g in self.state.running_gags if g.is_exhausted]
        if exhausted:
            warnings.append(f"Exhausted running gags: {', '.join(exhausted)}")

        overdue = [co.joke for co in self.state.callback_opportunities if co.ideal_chapter < chapter - 2]
        if overdue:
            warnings.append(f"Overdue callbacks: {', '.join(overdue)}")

        return PlacementCheck(valid=not warnings, warnings=warnings)

    def generate_summary(self) -> str:
        state = self.state
        if not state.jokes and not state.running_gags:
            return ""

        lines = [
            "=== COMEDY TRACKING ===",
            f"Tone: {state.overall_tone}",
            f"Comedy density: {state.comedy_density:.1f} jokes per 1000 words",
            "",
        ]

        if state.running_gags:
            lines.append("RUNNING GAGS:")
            for gag in state.running_gags:
                if gag.is_exhausted:
                    status = " (EXHAUSTED - vary or retire)"
                elif gag.escalates:
                    status = " (escalating)"
                else:
                    status = ""
                lines.append(f'  - "{gag.description}"{status}')
                lines.append(f"    Used {len(gag.occurrences)} times")
            lines.append("")

        if state.callback_opportunities:
            lines.append("CALLBACK OPPORTUNITIES:")
            for co in state.callback_opportunities[:5]:
                lines.append(f'  - "{co.joke}" (ideal around chapter {co.ideal_chapter})')
                lines.append(f"    Suggestion: {co.suggested_callback}")
            lines.append("")

        comedians = [p for p in state.character_profiles if p.comedy_style or p.is_comedy_relief]
        if comedians:
            lines.append("COMEDY CHARACTERS:")
            for profile in comedians:
                relief = " (comic relief)" if profile.is_comedy_relief else ""
                lines.append(f"  {profile.name}: {profile.delivery_style}{relief}")
                if profile.catch_phrases:
                    phrases = '", "'.join(profile.catch_phrases)
                    lines.append(f'    Catch phrases: "{phrases}"')

        return "\n".join(lines) + "\n"

    def generate_suggestions(self, current_chapter: int) -> List[str]:
        suggestions = []

        for co in self.state.callback_opportunities:
            if current_chapter - 1 <= co.ideal_chapter <= current_chapter + 1:
                suggestions.append(f'CALLBACK READY: "{co.joke}" - {co.suggested_callback}')

        for gag in self.state.running_gags:
            last_use = gag.occurrences[-1].chapter if gag.occurrences else 0
            if current_chapter - last_use > GAG_IDLE_CHAPTERS and not gag.is_exhausted:
                suggestions.append(f'Consider using running gag: "{gag.description}"')
            if gag.is_exhausted:
                suggestions.append(f'Running gag "{gag.description}" is exhausted. Vary it or retire it.')

        for profile in self.state.character_profiles:
            if not profile.is_comedy_relief:
                continue
            recent = [
                j for j in self.state.jokes
                if j.delivered_by == profile.name and j.chapter >= current_chapter - RELIEF_IDLE_CHAPTERS
            ]
            if not recent:
                suggestions.append(f'Comedy relief character "{profile.name}" hasn\'t had a joke recently')

        return suggestions


def create_comedy_tracker(book_id: str) -> ComedyTracker:
    return ComedyTracker(book_id)
