"""
Tests for the crime tracker: investigations, evidence custody, witnesses
and leads.
"""

import pytest

from narrative_engine.genre import CrimeTracker, create_crime_tracker
from narrative_engine.genre.models import Evidence, Witness


@pytest.fixture
def tracker():
    return CrimeTracker("book-1", "realistic")


@pytest.fixture
def investigation(tracker):
    return tracker.start_investigation("murder", "Det. Reyes")


class TestInvestigations:
    """Test opening and updating investigations."""

    def test_start_investigation(self, tracker):
        """Test that an investigation starts active with a fresh id."""
        inv = tracker.start_investigation("theft", "Det. Reyes")
        assert inv.id == "inv_1"
        assert inv.status == "active"
        assert tracker.get_active_investigation().id == "inv_1"

    def test_shared_id_counter(self, tracker, investigation):
        """Test that evidence and investigations share one counter."""
        evidence = tracker.add_evidence(investigation.id, Evidence(description="Bloody glove"), 2)
        assert evidence.id == "ev_2"
        assert evidence.chapter == 2

    def test_update_status(self, tracker, investigation):
        """Test closing an investigation."""
        assert tracker.update_status(investigation.id, "solved") is True
        assert tracker.get_active_investigation() is None
        assert tracker.update_status("inv_9", "solved") is False

    def test_unknown_investigation(self, tracker):
        """Test operations against a missing investigation."""
        assert tracker.add_evidence("inv_9", Evidence(description="Glove"), 1) is None
        assert tracker.add_witness("inv_9", Witness(name="Joe"), 1) is None
        assert tracker.add_suspect("inv_9", "Joe") is False
        assert tracker.add_timeline_event("inv_9", "Nothing", 1) is False


class TestEvidenceAndCustody:
    """Test evidence registration and chain of custody checks."""

    def test_evidence_timeline_and_lead(self, tracker, investigation):
        """Test that evidence lands on the timeline and opens a lead."""
        tracker.add_evidence(investigation.id, Evidence(description="Ledger", supports="Follow the money"), 3)
        inv = tracker.get_investigation(investigation.id)
        assert inv.timeline[-1].event == "Evidence found: Ledger"
        assert tracker.get_state().active_leads == ["Follow the money"]

    def test_valid_chain(self, tracker, investigation):
        """Test evidence with a documented chain including its finder."""
        evidence = tracker.add_evidence(investigation.id, Evidence(
            description="Knife", found_by="Officer Kim", chain_of_custody=["Officer Kim", "Lab"],
        ), 2)
        result = tracker.validate_chain_of_custody(investigation.id, evidence.id)
        assert result.valid is True
        assert result.issues == []

    @pytest.mark.parametrize("evidence,issue", [
        (Evidence(description="Knife", found_by="Kim"), "No chain of custody documented"),
        (Evidence(description="Knife", found_by="Kim", chain_of_custody=["Lab"]), "Finder not in chain of custody"),
        (Evidence(description="Knife", found_by="Kim", chain_of_custody=["Kim"], is_admissible=False),
         "Evidence marked as inadmissible"),
    ])
    def test_custody_issues(self, tracker, investigation, evidence, issue):
        """Test each kind of custody gap."""
        stored = tracker.add_evidence(investigation.id, evidence, 2)
        result = tracker.validate_chain_of_custody(investigation.id, stored.id)
        assert result.valid is False
        assert result.issues == [issue]

    def test_custody_lookup_failures(self, tracker, investigation):
        """Test custody checks for missing records."""
        assert tracker.validate_chain_of_custody("inv_9", "ev_1").issues == ["Investigation not found"]
        assert tracker.validate_chain_of_custody(investigation.id, "ev_9").issues == ["Evidence not found"]


class TestWitnessesSuspectsLeads:
    """Test witnesses, suspects and leads."""

    def test_witness_credibility(self, tracker, investigation):
        """Test that lowering credibility records the inconsistency."""
        tracker.add_witness(investigation.id, Witness(name="Joe", statement="I saw nothing"), 2)
        assert tracker.update_witness_credibility(investigation.id, "Joe", "questionable", "Changed story") is True

        witness = tracker.get_investigation(investigation.id).witnesses[0]
        assert witness.credibility == "questionable"
        assert witness.inconsistencies == ["Changed story"]
        assert witness.interview_chapter == 2
        assert tracker.update_witness_credibility(investigation.id, "Ann", "credible") is False

    def test_suspects(self, tracker, investigation):
        """Test adding and clearing suspects."""
        tracker.add_suspect(investigation.id, "Vance")
        tracker.add_suspect(investigation.id, "Vance")
        assert tracker.get_investigation(investigation.id).suspects == ["Vance"]

        assert tracker.clear_suspect(investigation.id, "Vance", 4) is True
        assert tracker.clear_suspect(investigation.id, "Vance", 4) is False
        assert tracker.get_investigation(investigation.id).timeline[-1].event == "Suspect cleared: Vance"

    def test_leads(self, tracker):
        """Test lead bookkeeping."""
        tracker.add_lead("Pawn shop")
        tracker.add_lead("Ex-wife")
        tracker.mark_dead_end("Pawn shop")
        tracker.resolve_lead("Ex-wife")
        state = tracker.get_state()
        assert state.active_leads == []
        assert state.dead_ends == ["Pawn shop"]


class TestProcessChapter:
    """Test applying chapter extractions."""

    def test_opens_investigation(self, tracker):
        """Test that the first crime extraction opens an investigation."""
        delta = tracker.process_chapter(1, {"crime": {
            "investigation_type": "fraud",
            "lead_investigator": "Agent Moss",
            "suspects_added": ["Vance", "Hale"],
            "new_leads": ["Offshore account"],
        }})
        assert delta.investigation_id == "inv_1"
        assert delta.suspects_added == ["Vance", "Hale"]

        inv = tracker.get_active_investigation()
        assert inv.type == "fraud"
        assert inv.lead_investigator == "Agent Moss"
        assert tracker.get_state().active_leads == ["Offshore account"]

    def test_continues_active_investigation(self, tracker, investigation):
        """Test that later chapters reuse the active investigation."""
        tracker.add_suspect(investigation.id, "Vance")
        delta = tracker.process_chapter(3, {"crime": {
            "evidence_found": [{"description": "Receipt", "found_by": "Kim", "chain_of_custody": ["Kim"]}],
            "witnesses_interviewed": [{"name": "Joe"}],
            "suspects_added": ["Vance"],
            "suspects_cleared": ["Vance", "Nobody"],
            "dead_ends": ["Pawn shop"],
        }})
        assert delta.investigation_id == investigation.id
        assert [e.description for e in delta.evidence_added] == ["Receipt"]
        assert delta.witnesses_added == ["Joe"]
        assert delta.suspects_added == []
        assert delta.suspects_cleared == ["Vance"]
        assert delta.custody_issues == []
        assert tracker.get_state().dead_ends == ["Pawn shop"]

    def test_custody_issues_reported(self, tracker):
        """Test that custody gaps are reported outside fantasy mode."""
        delta = tracker.process_chapter(1, {"crime": {"evidence_found": [{"description": "Knife"}]}})
        assert delta.custody_issues == ["Knife: No chain of custody documented"]

    def test_fantasy_mode_ignores_custody(self):
        """Test that fantasy mode does not report custody gaps."""
        tracker = CrimeTracker("book-1", "fantasy")
        delta = tracker.process_chapter(1, {"crime": {"evidence_found": [{"description": "Knife"}]}})
        assert delta.custody_issues == []
        assert len(delta.evidence_added) == 1

    def test_missing_crime_section(self, tracker):
        """Test that an extraction without crime changes nothing."""
        delta = tracker.process_chapter(1, {})
        assert delta.investigation_id is None
        assert tracker.get_state().investigations == []


class TestReporting:
    """Test reminders, suggestions and summaries."""

    def test_procedural_reminders(self):
        """Test reminders per accuracy mode."""
        assert create_crime_tracker("b", "realistic").generate_procedural_reminders()[0].startswith("REALISTIC MODE")
        assert create_crime_tracker("b").generate_procedural_reminders()[0].startswith("DRAMATIZED MODE")
        assert create_crime_tracker("b", "fantasy").generate_procedural_reminders() == []

    def test_no_suggestions_without_investigation(self, tracker):
        """Test that there is nothing to suggest before a case opens."""
        assert tracker.generate_suggestions(5) == []

    def test_suggestions(self, tracker, investigation):
        """Test evidence, witness, lead and stall suggestions."""
        for name in ("Joe", "Ann", "Lou"):
            tracker.add_witness(investigation.id, Witness(name=name), 1)
        for i in range(6):
            tracker.add_lead(f"Lead {i}")

        suggestions = tracker.generate_suggestions(6)
        assert "Investigation needs more evidence" in suggestions
        assert "Add witnesses with varying credibility" in suggestions
        assert "Too many open leads. Resolve or mark as dead ends." in suggestions
        assert "Investigation has stalled. Add new development." in suggestions

    def test_recent_activity_not_stalled(self, tracker, investigation):
        """Test that recent timeline events keep the case moving."""
        tracker.add_timeline_event(investigation.id, "Autopsy results", 5)
        assert "Investigation has stalled. Add new development." not in tracker.generate_suggestions(6)

    def test_summary(self, tracker, investigation):
        """Test the investigation summary."""
        assert create_crime_tracker("b").generate_summary() == ""
        tracker.add_evidence(investigation.id, Evidence(description="Knife", type="forensic"), 2)
        tracker.add_witness(investigation.id, Witness(name="Joe", credibility="highly_credible"), 2)
        tracker.add_suspect(investigation.id, "Vance")
        tracker.mark_dead_end("Pawn shop")

        summary = tracker.generate_summary()
        assert "Procedural Accuracy: realistic" in summary
        assert "INVESTIGATION: MURDER" in summary
        assert "Key items: Knife" in summary
        assert "Credible: Joe" in summary
        assert "Suspects: Vance" in summary
        assert "DEAD ENDS:" in summary

    def test_round_trip(self, tracker, investigation):
        """Test restoring the tracker keeps ids and accuracy mode."""
        tracker.add_evidence(investigation.id, Evidence(description="Knife"), 2)
        restored = CrimeTracker("book-1", state=tracker.get_state().to_dict())
        assert restored.get_state().procedural_accuracy == "realistic"
        assert restored.start_investigation("theft", "Kim").id == "inv_3"
