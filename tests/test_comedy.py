"""
Tests for the comedy tracker: jokes, running gags, callbacks and sarcasm.
"""

import pytest

from narrative_engine.genre import ComedyTracker, create_comedy_tracker
from narrative_engine.genre.models import JokeBeat, SarcasmInstance


@pytest.fixture
def tracker():
    return ComedyTracker("book-1")


def joke(setup, **kwargs):
    return JokeBeat(setup=setup, **kwargs)


class TestJokes:
    """Test joke registration."""

    def test_ids_and_chapter(self, tracker):
        """Test that stored jokes get sequential ids and the chapter."""
        first = tracker.add_joke(joke("Why did the cat sit on the laptop?"), 2)
        second = tracker.add_joke(joke("Knock knock"), 3)
        assert first.id == "joke_1"
        assert first.chapter == 2
        assert second.id == "joke_2"

    def test_character_profile_style(self, tracker):
        """Test that a delivered joke records the humor type on the profile."""
        tracker.add_joke(joke("I'm fine", type="deadpan", delivered_by="Marge"), 1)
        profile = tracker.get_or_create_character_profile("Marge")
        assert profile.comedy_style == ["deadpan"]

    def test_similar_jokes_start_running_gag(self, tracker):
        """Test that similar setups by the same character become a running gag."""
        tracker.add_joke(joke("Uncle Bob burns the toast again", delivered_by="Bob"), 1)
        tracker.add_joke(joke("Uncle Bob burns the pancakes", delivered_by="Bob"), 4)

        gags = tracker.get_state().running_gags
        assert len(gags) == 1
        assert gags[0].description == "Uncle Bob burns the pancakes"
        assert gags[0].first_appearance == 1

    def test_different_speakers_no_gag(self, tracker):
        """Test that similar jokes from different characters are not a gag."""
        tracker.add_joke(joke("Uncle Bob burns the toast again", delivered_by="Bob"), 1)
        tracker.add_joke(joke("Uncle Bob burns the pancakes", delivered_by="Ann"), 4)
        assert tracker.get_state().running_gags == []

    def test_great_joke_schedules_callback(self, tracker):
        """Test that strong jokes get a callback three to seven chapters later."""
        tracker.add_joke(joke("The parrot testifies", punchline="Guilty!", effectiveness="great"), 2)
        opportunities = tracker.get_state().callback_opportunities
        assert len(opportunities) == 1
        assert opportunities[0].joke_id == "joke_1"
        assert 5 <= opportunities[0].ideal_chapter <= 9

    def test_callback_schedule_is_reproducible(self):
        """Test that the same book schedules the same callback."""
        first = ComedyTracker("book-9")
        second = ComedyTracker("book-9")
        for tracker in (first, second):
            tracker.add_joke(joke("The parrot testifies", effectiveness="killer"), 1)
        assert first.get_state().callback_opportunities == second.get_state().callback_opportunities

    def test_mild_joke_no_callback(self, tracker):
        """Test that ordinary jokes do not schedule callbacks."""
        tracker.add_joke(joke("Puns", effectiveness="mild"), 1)
        assert tracker.get_state().callback_opportunities == []

    def test_callback_consumes_opportunity(self, tracker):
        """Test that using a callback removes its opportunity."""
        tracker.add_joke(joke("The parrot testifies", effectiveness="great"), 1)
        tracker.add_joke(joke("The parrot again", is_callback=True, calls_back_to="joke_1"), 5)
        assert tracker.get_state().callback_opportunities == []


class TestRunningGags:
    """Test running gag variation and exhaustion."""

    def test_exhausted_without_variation(self, tracker):
        """Test that five uses with fewer than three variations exhaust a gag."""
        gag = tracker.add_running_gag("Dog steals shoes", 1)
        for chapter in (2, 3, 4):
            tracker.record_gag_occurrence(gag.id, chapter, "Dog steals a shoe")
        assert tracker.state.running_gags[0].is_exhausted is False

        tracker.record_gag_occurrence(gag.id, 5, "Dog steals a shoe")
        assert tracker.state.running_gags[0].is_exhausted is True

    def test_varied_gag_stays_fresh(self, tracker):
        """Test that varied uses keep a gag alive."""
        gag = tracker.add_running_gag("Dog steals shoes", 1)
        for chapter, variation in enumerate(["slipper", "boot", "sandal", "sneaker"], start=2):
            tracker.record_gag_occurrence(gag.id, chapter, variation)
        assert tracker.state.running_gags[0].is_exhausted is False
        assert len(tracker.state.running_gags[0].occurrences) == 5

    def test_escalation_flag(self, tracker):
        """Test that an escalating variation marks the gag."""
        gag = tracker.add_running_gag("Dog steals shoes", 1)
        tracker.record_gag_occurrence(gag.id, 2, "Dog steals a bigger boot")
        assert tracker.state.running_gags[0].escalates is True

    def test_unknown_gag(self, tracker):
        """Test recording an occurrence of an unknown gag."""
        assert tracker.record_gag_occurrence("gag_9", 2, "anything") is False


class TestSarcasmAndCharacters:
    """Test sarcasm and character comedy profiles."""

    def test_sarcasm_updates_profile(self, tracker):
        """Test that sarcasm adds the style and the target."""
        tracker.add_sarcasm(SarcasmInstance(speaker="Dana", statement="Great plan", target="Leo"), 2)
        profile = tracker.get_or_create_character_profile("Dana")
        assert "sarcasm" in profile.comedy_style
        assert profile.frequent_targets == ["Leo"]
        assert tracker.get_state().sarcasm_instances[0].chapter == 2

    def test_relief_and_catch_phrases(self, tracker):
        """Test comic relief flags and catch phrase deduplication."""
        tracker.set_comedy_relief("Pip", "deadpan")
        tracker.add_catch_phrase("Pip", "Not my circus")
        tracker.add_catch_phrase("Pip", "Not my circus")
        profile = tracker.get_or_create_character_profile("Pip")
        assert profile.is_comedy_relief is True
        assert profile.delivery_style == "deadpan"
        assert profile.catch_phrases == ["Not my circus"]


class TestProcessChapter:
    """Test applying chapter extractions."""

    def test_full_chapter(self, tracker):
        """Test jokes, sarcasm, gags and density from one extraction."""
        delta = tracker.process_chapter(1, {
            "word_count": 2000,
            "comedy": {
                "jokes": [
                    {"setup": "The elevator music is a cry for help", "delivered_by": "Ivy"},
                    {"setup": "Tuesday again", "is_callback": True},
                ],
                "sarcasm_instances": [{"speaker": "Ivy", "statement": "Love Mondays"}],
                "running_gag_occurrences": ["the broken elevator"],
            },
        })

        assert [j.id for j in delta.jokes_added] == ["joke_1", "joke_2"]
        assert delta.callbacks_used == ["unknown"]
        assert delta.sarcasm_found == 1
        assert delta.running_gags_used == ["the broken elevator"]
        assert tracker.get_state().comedy_density == pytest.approx(1.0)

    def test_gag_reuse_across_chapters(self, tracker):
        """Test that a fuzzy-matching description records a new occurrence."""
        tracker.process_chapter(1, {"comedy": {"running_gag_occurrences": ["the broken elevator"]}})
        delta = tracker.process_chapter(2, {"comedy": {"running_gag_occurrences": ["broken elevator"]}})

        gags = tracker.get_state().running_gags
        assert len(gags) == 1
        assert len(gags[0].occurrences) == 2
        assert delta.running_gags_used == ["the broken elevator"]

    def test_density_accumulates(self, tracker):
        """Test that density is measured over the words seen so far."""
        tracker.process_chapter(1, {"word_count": 1000, "comedy": {"jokes": [{"setup": "One"}]}})
        tracker.process_chapter(2, {"word_count": 1000, "comedy": {"jokes": [{"setup": "Two"}]}})
        assert tracker.get_state().comedy_density == pytest.approx(1.0)

    def test_missing_comedy_section(self, tracker):
        """Test that an extraction without comedy changes nothing."""
        delta = tracker.process_chapter(1, {"word_count": 500})
        assert delta.jokes_added == []
        assert tracker.get_state().words_seen == 0


class TestReporting:
    """Test placement checks, suggestions and summaries."""

    def test_clean_placement(self, tracker):
        """Test a book with no comedy problems."""
        result = tracker.validate_joke_placement(3)
        assert result.valid is True
        assert result.warnings == []

    def test_high_density_warning(self, tracker):
        """Test the recent joke density warning."""
        for i in range(11):
            tracker.add_joke(joke(f"Joke {i}", effectiveness="mild"), 3)
        result = tracker.validate_joke_placement(3)
        assert result.valid is False
        assert any("High joke density" in w for w in result.warnings)

    def test_exhausted_and_overdue_warnings(self, tracker):
        """Test exhausted gags and overdue callbacks."""
        gag = tracker.add_running_gag("Dog steals shoes", 1)
        for chapter in (2, 3, 4, 5):
            tracker.record_gag_occurrence(gag.id, chapter, "same shoe")
        tracker.add_joke(joke("The parrot testifies", effectiveness="great"), 1)

        warnings = tracker.validate_joke_placement(11).warnings
        assert "Exhausted running gags: Dog steals shoes" in warnings
        assert "Overdue callbacks: The parrot testifies" in warnings

    def test_callback_ready_suggestion(self, tracker):
        """Test that a callback is suggested around its ideal chapter."""
        tracker.add_joke(joke("The parrot testifies", effectiveness="great"), 1)
        ideal = tracker.get_state().callback_opportunities[0].ideal_chapter
        suggestions = tracker.generate_suggestions(ideal)
        assert any(s.startswith('CALLBACK READY: "The parrot testifies"') for s in suggestions)

    def test_idle_gag_and_relief_suggestions(self, tracker):
        """Test reminders for idle gags and quiet comic relief."""
        tracker.add_running_gag("Dog steals shoes", 1)
        tracker.set_comedy_relief("Pip", "deadpan")

        suggestions = tracker.generate_suggestions(7)
        assert 'Consider using running gag: "Dog steals shoes"' in suggestions
        assert 'Comedy relief character "Pip" hasn\'t had a joke recently' in suggestions

    def test_empty_summary(self, tracker):
        """Test that a book with no comedy has no summary."""
        assert tracker.generate_summary() == ""

    def test_summary(self, tracker):
        """Test the summary sections."""
        gag = tracker.add_running_gag("Dog steals shoes", 1)
        for chapter in (2, 3, 4, 5):
            tracker.record_gag_occurrence(gag.id, chapter, "same shoe")
        tracker.set_comedy_relief("Pip", "deadpan")
        tracker.add_catch_phrase("Pip", "Not my circus")

        summary = tracker.generate_summary()
        assert "=== COMEDY TRACKING ===" in summary
        assert '"Dog steals shoes" (EXHAUSTED - vary or retire)' in summary
        assert "Used 5 times" in summary
        assert "Pip: deadpan (comic relief)" in summary
        assert 'Catch phrases: "Not my circus"' in summary


class TestState:
    """Test state persistence."""

    def test_round_trip(self):
        """Test restoring a tracker from its dumped state."""
        tracker = create_comedy_tracker("book-1")
        tracker.add_joke(joke("The parrot testifies", effectiveness="great"), 1)
        tracker.set_tone("dark")

        restored = ComedyTracker("book-1", state=tracker.get_state().to_dict())
        assert restored.get_state() == tracker.get_state()
        assert restored.add_joke(joke("Another"), 2).id == "joke_2"
