"""
Tests for the beat-by-beat dynamism tracker.

Covers stagnation warnings, chapter finalization violations, feedback
text, reports and state persistence.
"""

import pytest

from narrative_engine.dynamism import (
    DynamismTracker,
    create_dynamism_tracker,
    extract_characters,
    extract_locations,
    has_external_contact,
)


def _location_warnings(tracker):
    return [w for w in tracker.get_current_warnings() if w.type == "location_stuck"]


class TestLocationStagnation:
    """Test consecutive-beat counting for locations."""

    def test_warning_at_maximum(self, limited_profile):
        """Test that reaching the maximum yields exactly one location_stuck warning."""
        tracker = DynamismTracker(limited_profile)
        tracker.start_chapter(1)
        maximum = limited_profile.locations.max_consecutive_beats_in_same
        for beat in range(1, maximum + 1):
            tracker.track_beat(beat, "The Courtroom", ["Ana", f"Witness{beat}"])
        warnings = _location_warnings(tracker)
        assert len(warnings) == 1
        assert warnings[0].severity == "mild"

    def test_no_warning_below_maximum(self, limited_profile):
        """Test that fewer beats than the maximum raise nothing."""
        tracker = DynamismTracker(limited_profile)
        tracker.start_chapter(1)
        for beat in range(1, limited_profile.locations.max_consecutive_beats_in_same):
            tracker.track_beat(beat, "courtroom", ["Ana"])
        assert _location_warnings(tracker) == []

    @pytest.mark.parametrize("extra,severity", [(1, "moderate"), (2, "severe"), (4, "severe")])
    def test_severity_scales_past_maximum(self, limited_profile, extra, severity):
        """Test mild/moderate/severe scaling as the streak runs past the maximum."""
        tracker = DynamismTracker(limited_profile)
        tracker.start_chapter(1)
        maximum = limited_profile.locations.max_consecutive_beats_in_same
        for beat in range(1, maximum + extra + 1):
            tracker.track_beat(beat, "courtroom", ["Ana"])
        warnings = _location_warnings(tracker)
        assert len(warnings) == 1
        assert warnings[0].severity == severity

    def test_location_names_normalized(self, limited_profile):
        """Test that article and case variants count as the same location."""
        tracker = DynamismTracker(limited_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "The Courtroom", ["Ana"])
        state = tracker.track_beat(2, "courtroom.", ["Ana"])
        assert state.location_changed is False
        assert state.beats_in_current_location == 2
        assert list(tracker.get_state().locations) == ["courtroom"]

    def test_change_resets_streak(self, limited_profile):
        """Test that a new location resets the counter to one."""
        tracker = DynamismTracker(limited_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "courtroom", ["Ana"])
        tracker.track_beat(2, "courtroom", ["Ana"])
        state = tracker.track_beat(3, "jail cell", ["Ana"])
        assert state.location_changed is True
        assert state.beats_in_current_location == 1

    def test_streak_continues_across_chapters(self, limited_profile):
        """Test that a streak is not reset by a chapter break."""
        tracker = DynamismTracker(limited_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "courtroom", ["Ana", "Ben"])
        tracker.start_chapter(2)
        state = tracker.track_beat(1, "courtroom", ["Ana", "Ben"])
        assert state.beats_in_current_location == 2


class TestCharacterStagnation:
    """Test cast streaks and first-name matching."""

    def test_cast_matched_by_first_name(self, limited_profile):
        """Test that full and first names are the same character."""
        tracker = DynamismTracker(limited_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "courtroom", ["Elena Vasquez", "Marcus"])
        state = tracker.track_beat(2, "hallway", ["marcus", "Elena"])
        assert state.cast_changed is False
        assert state.beats_with_same_cast == 2
        assert sorted(tracker.get_state().characters) == ["elena", "marcus"]

    def test_character_stuck_warning(self, limited_profile):
        """Test the character_stuck warning at the cast maximum."""
        tracker = DynamismTracker(limited_profile)
        tracker.start_chapter(1)
        maximum = limited_profile.characters.max_consecutive_beats_with_same_cast
        for beat in range(1, maximum + 1):
            tracker.track_beat(beat, f"room {beat}", ["Ana", "Ben"])
        assert [w.type for w in tracker.get_current_warnings()] == ["character_stuck"]
        assert tracker.should_force_character_change() is True
        assert tracker.should_force_location_change() is False


class TestSoloExternalContact:
    """Test the isolated-protagonist rules."""

    def test_contact_warning_after_grace_beats(self, coffin_profile):
        """Test that a solo chapter without contact warns from beat three."""
        tracker = DynamismTracker(coffin_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "coffin", ["Paul"])
        tracker.track_beat(2, "coffin", ["Paul"])
        assert not any(w.type == "no_external_contact" for w in tracker.get_current_warnings())
        tracker.track_beat(3, "coffin", ["Paul"])
        assert any(w.type == "no_external_contact" for w in tracker.get_current_warnings())

    def test_contact_suppresses_warning(self, coffin_profile):
        """Test that an external contact earlier in the chapter clears the rule."""
        tracker = DynamismTracker(coffin_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "coffin", ["Paul"], has_external_contact=True)
        tracker.track_beat(2, "coffin", ["Paul"])
        tracker.track_beat(3, "coffin", ["Paul"])
        assert not any(w.type == "no_external_contact" for w in tracker.get_current_warnings())

    def test_chapter_without_contact_is_a_violation(self, coffin_profile):
        """Test that finalizing a contact-free solo chapter records missing_requirement."""
        tracker = DynamismTracker(coffin_profile)
        tracker.start_chapter(1)
        for beat in range(1, 4):
            tracker.track_beat(beat, "coffin", ["Paul"])
        tracker.start_chapter(2)
        violations = tracker.get_violations()
        assert len(violations) == 1
        assert violations[0].type == "missing_requirement"
        assert violations[0].chapter == 1
        assert "external contact" in violations[0].message

    def test_chapter_with_contact_has_no_violation(self, coffin_profile):
        """Test that one phone call satisfies the chapter."""
        tracker = DynamismTracker(coffin_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "coffin", ["Paul"])
        tracker.track_beat(2, "coffin", ["Paul", "Linda"], has_external_contact=True)
        report = tracker.generate_report()
        assert report.violations == []


class TestChapterMinimums:
    """Test per-chapter minimum checks at finalization."""

    def test_traveling_chapter_with_one_location(self, road_trip_profile):
        """Test that a journey chapter in a single place is a violation."""
        tracker = DynamismTracker(road_trip_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "motel", ["June", "May"])
        tracker.track_beat(2, "motel", ["June", "May"])
        tracker.start_chapter(2)
        messages = [v.message for v in tracker.get_violations()]
        assert "Chapter 1 has 1 location(s), needs 2" in messages

    def test_empty_chapter_is_not_finalized(self, road_trip_profile):
        """Test that starting a chapter over an empty one records nothing."""
        tracker = DynamismTracker(road_trip_profile)
        tracker.start_chapter(1)
        assert tracker.start_chapter(2) is None
        assert tracker.get_state().chapter_history == []


class TestBeatFeedback:
    """Test corrective feedback text."""

    def test_no_feedback_without_warnings(self, limited_profile):
        """Test that a clean beat yields no feedback."""
        tracker = DynamismTracker(limited_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "courtroom", ["Ana"])
        assert tracker.get_beat_feedback() is None

    def test_confined_feedback_does_not_suggest_travel(self, coffin_profile):
        """Test that a confined story is told to change the space, not leave it."""
        tracker = DynamismTracker(coffin_profile)
        tracker.start_chapter(1)
        for beat in range(1, 7):
            tracker.track_beat(beat, "coffin", ["Paul"], has_external_contact=True)
        feedback = tracker.get_beat_feedback()
        assert "LOCATION VARIETY NEEDED" in feedback
        assert "Change something about the current space" in feedback
        assert "Move to a different location" not in feedback

    def test_traveling_feedback_suggests_moving(self, limited_profile):
        """Test that a mobile story is told to move."""
        tracker = DynamismTracker(limited_profile)
        tracker.start_chapter(1)
        for beat in range(1, 4):
            tracker.track_beat(beat, "courtroom", ["Ana", f"Juror{beat}"])
        assert "Move to a different location for this beat" in tracker.get_beat_feedback()

    def test_solo_character_feedback(self, coffin_profile):
        """Test that an isolated cast is told to use a call or memory."""
        tracker = DynamismTracker(coffin_profile)
        tracker.start_chapter(1)
        for beat in range(1, 5):
            tracker.track_beat(beat, f"coffin corner {beat}", ["Paul"], has_external_contact=True)
        assert "Add a phone call, radio message, or memory" in tracker.get_beat_feedback()


class TestReport:
    """Test book-level reporting."""

    def test_report_finalizes_open_chapter(self, coffin_profile):
        """Test that a report closes the chapter in progress."""
        tracker = DynamismTracker(coffin_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "coffin", ["Paul"], has_external_contact=True)
        report = tracker.generate_report()
        assert report.chapters_tracked == 1
        assert report.total_beats == 1

    def test_report_is_stable(self, coffin_profile):
        """Test that a second report without new beats is identical."""
        tracker = DynamismTracker(coffin_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "coffin", ["Paul"], has_external_contact=True)
        assert tracker.generate_report() == tracker.generate_report()

    def test_beats_after_report_reopen_the_chapter(self, coffin_profile):
        """Test that a chapter reported mid-way is finalized once when it continues."""
        tracker = DynamismTracker(coffin_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "coffin", ["Paul"])
        assert len(tracker.generate_report().violations) == 1

        tracker.track_beat(2, "coffin", ["Paul"])
        report = tracker.generate_report()

        assert report.chapters_tracked == 1
        assert report.total_beats == 2
        assert len(report.violations) == 1
        assert report.violations[0].chapter == 1

    def test_reopened_chapter_can_satisfy_requirement(self, coffin_profile):
        """Test that a later phone call in the same chapter clears its violation."""
        tracker = DynamismTracker(coffin_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "coffin", ["Paul"])
        tracker.generate_report()

        tracker.track_beat(2, "coffin", ["Paul", "Linda"], has_external_contact=True)
        report = tracker.generate_report()
        assert report.violations == []
        assert report.chapter_history[0].has_external_contact is True

    def test_variety_scores(self, road_trip_profile):
        """Test score = min(actual/target, 1) * 100 and the overall average."""
        tracker = DynamismTracker(road_trip_profile)
        tracker.start_chapter(1)
        for beat, place in enumerate(["motel", "diner", "gas station", "canyon", "bridge"], start=1):
            tracker.track_beat(beat, place, ["June", "May"])
        report = tracker.generate_report()
        target = road_trip_profile.locations.min_distinct_locations_per_book
        assert report.location_variety_score == round(5 / target * 100)
        assert report.overall_dynamism_score == round(
            (report.location_variety_score + report.character_variety_score) / 2
        )
        assert f"Add {target - 5} more distinct location(s)" in report.recommendations

    def test_confined_location_score_is_full(self, coffin_profile):
        """Test that one location satisfies a confined book."""
        tracker = DynamismTracker(coffin_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "coffin", ["Paul"], has_external_contact=True)
        assert tracker.generate_report().location_variety_score == 100

    def test_empty_report(self, coffin_profile):
        """Test a report before any beat."""
        report = DynamismTracker(coffin_profile).generate_report()
        assert report.total_beats == 0
        assert report.chapters_tracked == 0


class TestStatePersistence:
    """Test dumping and restoring tracker state."""

    def test_restore_from_dict(self, limited_profile):
        """Test that a restored tracker continues the same streak."""
        tracker = DynamismTracker(limited_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "courtroom", ["Ana"])
        dumped = tracker.get_state().model_dump(mode="json")

        restored = DynamismTracker(limited_profile, state=dumped)
        state = restored.track_beat(2, "courtroom", ["Ana"])
        assert state.beats_in_current_location == 2

    def test_get_state_is_a_copy(self, limited_profile):
        """Test that mutating a returned state does not touch the tracker."""
        tracker = create_dynamism_tracker(limited_profile)
        tracker.start_chapter(1)
        tracker.track_beat(1, "courtroom", ["Ana"])
        tracker.get_state().locations.clear()
        assert "courtroom" in tracker.get_state().locations

    def test_trackers_are_independent(self, limited_profile):
        """Test that two books never share state."""
        first = DynamismTracker(limited_profile)
        second = DynamismTracker(limited_profile)
        first.start_chapter(1)
        first.track_beat(1, "courtroom", ["Ana"])
        assert second.get_state().locations == {}


class TestTextHelpers:
    """Test the prose heuristics."""

    def test_extract_locations(self):
        """Test location phrases from prose and scene headings."""
        found = extract_locations("She walked into the old library, then INT. KITCHEN - NIGHT")
        assert "old library" in found
        assert "KITCHEN" in found

    def test_extract_characters(self):
        """Test whole-word matching of known names."""
        text = "Anabel spoke to Ben."
        assert extract_characters(text, ["Ana", "Ben"]) == ["Ben"]

    def test_has_external_contact(self):
        """Test contact cues."""
        assert has_external_contact("The phone rang twice.")
        assert has_external_contact("Static crackled on the radio")
        assert not has_external_contact("He scratched at the lid.")
