"""
Tests for the dialogue analyzer: voice profiles, subtext and quality
metrics.
"""

import pytest

from narrative_engine.genre import DialogueAnalyzer, create_dialogue_analyzer
from narrative_engine.genre.models import DialogueExchange, SubtextMoment


@pytest.fixture
def analyzer():
    return DialogueAnalyzer("book-1")


class TestSubtextDetection:
    """Test the heuristic subtext check."""

    @pytest.mark.parametrize("line,subtext_type", [
        ("It would be a shame if something happened to your shop.", "threat"),
        ("Maybe we could get a drink sometime.", "flirtation"),
        ("Trust me, it's all handled.", "deception"),
        ("Don't ever trust him.", "warning"),
        ("Whatever. It doesn't matter.", "emotional"),
    ])
    def test_detects_type(self, analyzer, line, subtext_type):
        """Test each subtext category."""
        result = analyzer.analyze_for_subtext(line)
        assert result.has_subtext is True
        assert result.type == subtext_type
        assert result.possible_meaning == f"Possible {subtext_type} subtext detected"

    def test_plain_line(self, analyzer):
        """Test a line with nothing beneath it."""
        result = analyzer.analyze_for_subtext("The train leaves at noon.")
        assert result.has_subtext is False
        assert result.type is None


class TestVoiceProfiles:
    """Test voice profile management and validation."""

    def test_initialize_replaces(self, analyzer):
        """Test that initializing a voice twice keeps one profile."""
        analyzer.initialize_character_voice("Ann", formality="casual")
        analyzer.initialize_character_voice("Ann", formality="formal")
        voices = analyzer.get_state().character_voices
        assert len(voices) == 1
        assert voices[0].formality == "formal"

    def test_default_voice(self, analyzer):
        """Test that unknown characters get a moderate voice."""
        voice = analyzer.get_character_voice("Bo")
        assert voice.vocabulary_level == "moderate"
        assert voice.formality == "moderate"

    def test_no_profile(self, analyzer):
        """Test validation without a stored voice."""
        result = analyzer.validate_voice("Hello there.", "Ghost")
        assert result.valid is True
        assert result.suggestions == ["No voice profile for character"]

    def test_formal_voice_rejects_slang(self, analyzer):
        """Test informal markers against a formal voice."""
        analyzer.initialize_character_voice("Ann", formality="formal")
        result = analyzer.validate_voice("Yeah, I'm gonna handle it.", "Ann")
        assert result.valid is False
        assert result.issues == ["Ann speaks formally"]
        assert "Remove informal contractions (gonna, yeah)" in result.suggestions

    def test_simple_voice_rejects_complex_words(self, analyzer):
        """Test complex vocabulary against a simple voice."""
        analyzer.initialize_character_voice("Bo", vocabulary_level="simple")
        result = analyzer.validate_voice("Unquestionably extraordinary circumstances", "Bo")
        assert "Bo uses simpler vocabulary" in result.issues

    def test_reserved_voice_rejects_exclamations(self, analyzer):
        """Test exclamations against a reserved voice."""
        analyzer.initialize_character_voice("Cy", emotional_expressiveness="reserved")
        result = analyzer.validate_voice("Stop! Now!", "Cy")
        assert result.issues == ["Cy is emotionally reserved"]

    def test_catch_phrase_suggestion(self, analyzer):
        """Test that a missing catch phrase is a suggestion, not an issue."""
        analyzer.add_catch_phrase("Dee", "Bless your heart")
        analyzer.add_catch_phrase("Dee", "Bless your heart")
        result = analyzer.validate_voice("See you tomorrow.", "Dee")
        assert result.valid is True
        assert result.suggestions == ['Consider using catch phrase: "Bless your heart"']
        assert analyzer.validate_voice("Well, bless your heart.", "Dee").suggestions == []

    def test_voice_distinctness(self, analyzer):
        """Test the share of character pairs with different voices."""
        assert analyzer.voice_distinctness() == 1.0
        analyzer.initialize_character_voice("Ann")
        analyzer.initialize_character_voice("Bo")
        assert analyzer.similar_voices() == [("Ann", "Bo")]
        assert analyzer.voice_distinctness() == 0.0

        analyzer.initialize_character_voice("Cy", formality="formal")
        assert analyzer.voice_distinctness() == pytest.approx(0.667)


class TestProcessChapter:
    """Test applying chapter extractions."""

    def test_full_chapter(self, analyzer):
        """Test exchanges, subtext and observations from one extraction."""
        delta = analyzer.process_chapter(2, {"dialogue": {
            "exchanges": [
                {"participants": ["Ann", "Bo"], "tension_level": 9, "topic_surface": "the rent"},
                {"participants": ["Ann", "Bo"], "has_subtext": True, "topic_surface": "explain the plan"},
            ],
            "subtext_moments": [{"speaker": "Ann", "said_text": "Nice car", "meant_text": "Whose money?"}],
            "voice_observations": [{"character": "Ann", "observation": "Formal and reserved"}],
        }})

        assert delta.exchanges_added == 2
        assert delta.subtext_moments_found[0].chapter == 2
        assert delta.quality_update.subtext_ratio == pytest.approx(0.5)
        assert delta.quality_update.voice_consistency == pytest.approx(0.5)
        assert delta.quality_update.exposition_balance == pytest.approx(0.5)

        voice = analyzer.get_character_voice("Ann")
        assert voice.formality == "formal"
        assert voice.emotional_expressiveness == "reserved"
        assert {p.type for p in analyzer.get_state().patterns} == {"argument", "exposition"}

    def test_first_keyword_wins(self, analyzer):
        """Test that one observation sets each voice field once."""
        analyzer.process_chapter(1, {"dialogue": {
            "voice_observations": [{"character": "Bo", "observation": "proper but oddly casual"}],
        }})
        assert analyzer.get_character_voice("Bo").formality == "formal"

    def test_seduction_pattern(self, analyzer):
        """Test that attraction beneath the surface is classified as seduction."""
        analyzer.add_exchange(DialogueExchange(
            participants=["Ann", "Bo"], has_subtext=True, topic_surface="wine", topic_real="mutual attraction",
        ), 1)
        assert analyzer.get_state().patterns[0].type == "seduction"

    def test_missing_dialogue_section(self, analyzer):
        """Test that an extraction without dialogue changes nothing."""
        delta = analyzer.process_chapter(1, {"word_count": 100})
        assert delta.exchanges_added == 0
        assert analyzer.get_state().exchanges == []


class TestReporting:
    """Test suggestions and summaries."""

    def test_quality_suggestions(self, analyzer):
        """Test low subtext and low voice consistency reminders."""
        analyzer.add_exchange(DialogueExchange(participants=["Ann", "Bo"], topic_surface="weather"), 1)
        suggestions = analyzer.generate_suggestions(1)
        assert any(s.startswith("Low subtext ratio") for s in suggestions)
        assert any(s.startswith("Voice consistency is low") for s in suggestions)

    def test_heavy_exposition(self, analyzer):
        """Test the exposition warning."""
        for _ in range(6):
            analyzer.add_exchange(DialogueExchange(topic_surface="tell the history"), 1)
        assert "Heavy exposition in dialogue. Show more, tell less." in analyzer.generate_suggestions(1)

    def test_catch_phrase_and_similar_voice_suggestions(self, analyzer):
        """Test reminders for quiet catch phrases and duplicate voices."""
        analyzer.add_catch_phrase("Ann", "Bless your heart")
        analyzer.initialize_character_voice("Bo", catch_phrases=["Right-o"])
        for _ in range(4):
            analyzer.add_exchange(DialogueExchange(participants=["Ann"]), 3)

        suggestions = analyzer.generate_suggestions(4)
        assert 'Ann\'s catch phrase hasn\'t appeared recently: "Bless your heart"' in suggestions
        assert "Ann and Bo share the same voice profile. Differentiate them." in suggestions

    def test_summary(self, analyzer):
        """Test the summary sections."""
        assert analyzer.generate_summary() == ""
        analyzer.initialize_character_voice("Ann", formality="formal", speech_quirks=["hums"])
        analyzer.add_subtext_moment(SubtextMoment(speaker="Ann", said_text="Nice car", meant_text="Whose money?"), 2)
        for _ in range(3):
            analyzer.add_exchange(DialogueExchange(participants=["Ann"]), 2)

        summary = analyzer.generate_summary()
        assert "=== DIALOGUE PROFILES ===" in summary
        assert "Vocabulary: moderate, Formality: formal" in summary
        assert "Quirks: hums" in summary
        assert 'Ann: "Nice car..."' in summary
        assert "small_talk: 3 occurrences (moderate)" in summary

    def test_round_trip(self):
        """Test restoring the analyzer from its dumped state."""
        analyzer = create_dialogue_analyzer("book-1")
        analyzer.initialize_character_voice("Ann", formality="formal")
        restored = DialogueAnalyzer("book-1", state=analyzer.get_state().to_dict())
        assert restored.get_state() == analyzer.get_state()
