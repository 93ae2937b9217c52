"""
Dialogue analysis.

Keeps a voice profile per character (vocabulary, formality,
expressiveness, catch phrases) and checks new dialogue against it using
surface statistics from ``utils.speech``. Also records exchanges and
subtext moments and derives simple quality metrics from them.
"""

import itertools
import logging
import re
from typing import List, Tuple

from ..config import (
    SIMPLE_VOCABULARY_MAX_COMPLEX_RATIO,
    SOPHISTICATED_MIN_WORDS,
    SOPHISTICATED_VOCABULARY_MIN_COMPLEX_RATIO,
)
from ..utils.speech import analyze_speech
from .base import GenreTracker
from .models import (
    CharacterVoice,
    DialogueDelta,
    DialogueExchange,
    DialoguePattern,
    DialogueState,
    SubtextAnalysis,
    SubtextMoment,
    VoiceCheck,
)

logger = logging.getLogger(__name__)

# Checked in order; the first matching type wins.
SUBTEXT_INDICATORS = [
    ("threat", [r"\bwouldn't want\b", r"\bshame if\b", r"\bcareful\b", r"\bwatching\b", r"\baccident\b"]),
    ("flirtation", [r"\balone\b", r"\btogether\b", r"\bdrink\b", r"\bcompany\b", r"\bmiss you\b"]),
    ("deception", [r"\bof course\b", r"\btrust me\b", r"\bhonestly\b", r"\bbelieve me\b", r"\bnothing to worry\b"]),
    ("warning", [r"\bdon't\b.*\btrust\b", r"\bwatch out\b", r"\bstay away\b"]),
    ("emotional", [r"\bfine\b", r"\bwhatever\b", r"\bdoesn't matter\b", r"\bforget it\b"]),
]
SUBTEXT_PATTERNS = [
    (subtext_type, [re.compile(p, re.IGNORECASE) for p in patterns])
    for subtext_type, patterns in SUBTEXT_INDICATORS
]

# (keywords, field, value); the first keyword group per field wins.
OBSERVATION_KEYWORDS = [
    (("formal", "proper"), "formality", "formal"),
    (("casual", "relaxed"), "formality", "casual"),
    (("expressive", "emotional"), "emotional_expressiveness", "expressive"),
    (("reserved", "stoic"), "emotional_expressiveness", "reserved"),
    (("sophisticated", "educated"), "vocabulary_level", "sophisticated"),
    (("simple", "plain"), "vocabulary_level", "simple"),
]

CASUAL_MIN_WORDS = 15
RESERVED_MAX_EXCLAMATION_RATIO = 0.5
EXPRESSIVE_MIN_WORDS = 15
LOW_SUBTEXT_RATIO = 0.2
LOW_VOICE_CONSISTENCY = 0.7
HEAVY_EXPOSITION = 5


class DialogueAnalyzer(GenreTracker):
    """Tracks character voices and dialogue quality for one book."""

    genre = "dialogue"
    state_model = DialogueState

    # Voices

    def initialize_character_voice(self, character: str, **voice) -> CharacterVoice:
        """Create or replace a character's voice profile."""
        profile = CharacterVoice(character=character, **voice)
        self.state.character_voices = [
            v for v in self.state.character_voices if v.character != character
        ] + [profile]
        return profile

    def get_character_voice(self, character: str) -> CharacterVoice:
        """Return the character's voice, creating a moderate default."""
        voice = next((v for v in self.state.character_voices if v.character == character), None)
        if voice is None:
            voice = CharacterVoice(character=character)
            self.state.character_voices.append(voice)
        return voice

    def add_catch_phrase(self, character: str, phrase: str) -> None:
        voice = self.get_character_voice(character)
        if phrase not in voice.catch_phrases:
            voice.catch_phrases.append(phrase)

    def add_speech_quirk(self, character: str, quirk: str) -> None:
        voice = self.get_character_voice(character)
        if quirk not in voice.speech_quirks:
            voice.speech_quirks.append(quirk)

    # Exchanges and subtext

    def add_exchange(self, exchange: DialogueExchange, chapter: int) -> DialogueExchange:
        stored = exchange.model_copy(update={"chapter": chapter})
        self.state.exchanges.append(stored)
        self._update_patterns(stored)
        self._update_quality_metrics()
        return stored

    def add_subtext_moment(self, moment: SubtextMoment, chapter: int) -> SubtextMoment:
        stored = moment.model_copy(update={"chapter": chapter})
        self.state.subtext_moments.append(stored)
        self._update_quality_metrics()
        return stored

    def analyze_for_subtext(self, dialogue: str, speaker: str = "", listener: str = "", context: str = "") -> SubtextAnalysis:
        """Heuristic check for lines that probably mean more than they say."""
        for subtext_type, patterns in SUBTEXT_PATTERNS:
            if any(p.search(dialogue or "") for p in patterns):
                return SubtextAnalysis(
                    has_subtext=True,
                    possible_meaning=f"Possible {subtext_type} subtext detected",
                    type=subtext_type,
                )
        return SubtextAnalysis(has_subtext=False)

    # Chapter processing

    def process_chapter(self, chapter_number: int, extraction) -> DialogueDelta:
        delta = DialogueDelta(quality_update=self.state.dialogue_quality.model_copy())
        dialogue = self._extraction(extraction)
        if dialogue is None:
            return delta

        for incoming in dialogue.exchanges:
            self.add_exchange(incoming, chapter_number)
            delta.exchanges_added += 1

        for incoming in dialogue.subtext_moments:
            delta.subtext_moments_found.append(self.add_subtext_moment(incoming, chapter_number))

        for observation in dialogue.voice_observations:
            delta.voice_observations.append(observation)
            self._apply_observation(observation.character, observation.observation)

        self._update_quality_metrics()
        delta.quality_update = self.state.dialogue_quality.model_copy()
        return delta

    def _apply_observation(self, character: str, observation: str) -> None:
        voice = self.get_character_voice(character)
        text = observation.lower()
        settled = set()
        for keywords, field, value in OBSERVATION_KEYWORDS:
            if field in settled:
                continue
            if any(k in text for k in keywords):
                setattr(voice, field, value)
                settled.add(field)

    # Validation

    def validate_voice(self, dialogue: str, character: str) -> VoiceCheck:
        """
        Compare a line of dialogue with the character's stored voice.

        Returns:
            VoiceCheck with issues (contradictions of the profile) and
            suggestions (rewrites that would bring the line in voice)
        """
        voice = next((v for v in self.state.character_voices if v.character == character), None)
        if voice is None:
            return VoiceCheck(valid=True, suggestions=["No voice profile for character"])

        stats = analyze_speech(dialogue)
        issues = []
        suggestions = []

        if voice.vocabulary_level == "simple" and stats["complex_ratio"] > SIMPLE_VOCABULARY_MAX_COMPLEX_RATIO:
            issues.append(f"{character} uses simpler vocabulary")
            suggestions.append("Simplify complex words")
        if voice.vocabulary_level == "sophisticated" \
                and stats["complex_ratio"] < SOPHISTICATED_VOCABULARY_MIN_COMPLEX_RATIO \
                and stats["word_count"] > SOPHISTICATED_MIN_WORDS:
            issues.append(f"{character} speaks more eloquently")
            suggestions.append("Add more sophisticated vocabulary")

        informal = stats["informal_markers"]
        if voice.formality == "formal" and informal:
            issues.append(f"{character} speaks formally")
            suggestions.append(f"Remove informal contractions ({', '.join(informal)})")
        if voice.formality == "casual" and not informal and stats["word_count"] > CASUAL_MIN_WORDS:
            suggestions.append("Consider adding casual speech patterns")

        if voice.emotional_expressiveness == "reserved" \
                and stats["exclamation_ratio"] > RESERVED_MAX_EXCLAMATION_RATIO:
            issues.append(f"{character} is emotionally reserved")
            suggestions.append("Replace exclamations with understatement")
        if voice.emotional_expressiveness == "expressive" \
                and stats["exclamations"] == 0 and stats["word_count"] > EXPRESSIVE_MIN_WORDS:
            suggestions.append("Let the emotion show in the delivery")

        if voice.catch_phrases:
            lowered = (dialogue or "").lower()
            if not any(phrase.lower() in lowered for phrase in voice.catch_phrases):
                suggestions.append(f'Consider using catch phrase: "{voice.catch_phrases[0]}"')

        return VoiceCheck(valid=not issues, issues=issues, suggestions=suggestions)

    def similar_voices(self) -> List[Tuple[str, str]]:
        """Pairs of characters whose profiles are identical on every axis."""
        def signature(v: CharacterVoice):
            return (v.vocabulary_level, v.formality, v.emotional_expressiveness)

        return [
            (a.character, b.character)
            for a, b in itertools.combinations(self.state.character_voices, 2)
            if signature(a) == signature(b)
        ]

    def voice_distinctness(self) -> float:
        """Share of character pairs whose voice profiles differ (1.0 with fewer than two voices)."""
        voices = len(self.state.character_voices)
        pairs = voices * (voices - 1) // 2
        if pairs == 0:
            return 1.0
        return round(1 - len(self.similar_voices()) / pairs, 3)

    # Metrics

    def _update_patterns(self, exchange: DialogueExchange) -> None:
        surface = exchange.topic_surface.lower()
        real = (exchange.topic_real or "").lower()

        if exchange.tension_level > 7:
            pattern_type = "argument"
        elif exchange.has_subtext and "attract" in real:
            pattern_type = "seduction"
        elif "explain" in surface or "tell" in surface:
            pattern_type = "exposition"
        elif "confess" in surface or "admit" in surface:
            pattern_type = "confession"
        elif exchange.tension_level > 4:
            pattern_type = "negotiation"
        else:
            pattern_type = "small_talk"

        pattern = next((p for p in self.state.patterns if p.type == pattern_type), None)
        if pattern is None:
            pattern = DialoguePattern(type=pattern_type)
            self.state.patterns.append(pattern)
        pattern.frequency += 1
        if exchange.topic_surface and len(pattern.examples) < 3:
            pattern.examples.append(exchange.topic_surface)

    def _update_quality_metrics(self) -> None:
        exchanges = self.state.exchanges
        if not exchanges:
            return
        quality = self.state.dialogue_quality

        quality.subtext_ratio = sum(1 for e in exchanges if e.has_subtext) / len(exchanges)

        speaking = {p for e in exchanges for p in e.participants}
        defined = sum(1 for v in self.state.character_voices if v.character in speaking)
        quality.voice_consistency = defined / max(1, len(speaking))

        total = sum(p.frequency for p in self.state.patterns)
        exposition = sum(p.frequency for p in self.state.patterns if p.type == "exposition")
        quality.exposition_balance = 1 - exposition / max(1, total)

    # Reporting

    def generate_summary(self) -> str:
        state = self.state
        if not state.character_voices:
            return ""

        quality = state.dialogue_quality
        lines = [
            "=== DIALOGUE PROFILES ===",
            "",
            "QUALITY METRICS:",
            f"  Subtext ratio: {quality.subtext_ratio * 100:.0f}%",
            f"  Voice consistency: {quality.voice_consistency * 100:.0f}%",
            f"  Exposition balance: {quality.exposition_balance * 100:.0f}%",
            "",
            "CHARACTER VOICES:",
        ]
        for voice in state.character_voices:
            lines.append(f"\n{voice.character}:")
            lines.append(f"  Vocabulary: {voice.vocabulary_level}, Formality: {voice.formality}")
            lines.append(f"  Expressiveness: {voice.emotional_expressiveness}")
            if voice.catch_phrases:
                phrases = '", "'.join(voice.catch_phrases)
                lines.append(f'  Catch phrases: "{phrases}"')
            if voice.speech_quirks:
                lines.append(f"  Quirks: {', '.join(voice.speech_quirks)}")

        recent = state.subtext_moments[-5:]
        if recent:
            lines.append("\nRECENT SUBTEXT:")
            for moment in recent:
                lines.append(f'  - {moment.speaker}: "{moment.said_text[:30]}..."')
                lines.append(f'    Meant: "{moment.meant_text}"')

        significant = [p for p in state.patterns if p.frequency > 2]
        if significant:
            lines.append("\nDIALOGUE PATTERNS:")
            for pattern in significant:
                lines.append(f"  - {pattern.type}: {pattern.frequency} occurrences ({pattern.effectiveness})")

        return "\n".join(lines) + "\n"

    def generate_suggestions(self, current_chapter: int) -> List[str]:
        suggestions = []
        quality = self.state.dialogue_quality

        if self.state.exchanges and quality.subtext_ratio < LOW_SUBTEXT_RATIO:
            suggestions.append("Low subtext ratio. Add more dialogue where characters don't say what they mean.")
        if self.state.exchanges and quality.voice_consistency < LOW_VOICE_CONSISTENCY:
            suggestions.append("Voice consistency is low. Ensure characters have distinct speech patterns.")

        for voice in self.state.character_voices:
            if not voice.catch_phrases:
                continue
            recent = [
                e for e in self.state.exchanges
                if e.chapter >= current_chapter - 5 and voice.character in e.participants
            ]
            if len(recent) > 3:
                suggestions.append(
                    f'{voice.character}\'s catch phrase hasn\'t appeared recently: "{voice.catch_phrases[0]}"'
                )

        exposition = next((p for p in self.state.patterns if p.type == "exposition"), None)
        if exposition is not None and exposition.frequency > HEAVY_EXPOSITION:
            suggestions.append("Heavy exposition in dialogue. Show more, tell less.")

        for first, second in self.similar_voices():
            suggestions.append(f"{first} and {second} share the same voice profile. Differentiate them.")

        return suggestions


def create_dialogue_analyzer(book_id: str) -> DialogueAnalyzer:
    return DialogueAnalyzer(book_id)
