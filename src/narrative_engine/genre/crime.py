"""
Crime and procedural tracking.

Follows investigations: evidence and its chain of custody, witness
interviews, suspects, leads and dead ends, and a timeline per case.
How strictly procedure is enforced depends on the book's procedural
accuracy mode (realistic, dramatized or fantasy).
"""

import logging
from typing import List, Optional

from .base import GenreTracker
from .models import (
    CrimeDelta,
    CrimeState,
    CustodyCheck,
    Evidence,
    Investigation,
    TimelineEvent,
    Witness,
)

logger = logging.getLogger(__name__)

PROCEDURAL_REMINDERS = {
    "realistic": [
        "REALISTIC MODE: Maintain strict procedural accuracy",
        "- Evidence must have documented chain of custody",
        "- Interviews should follow Miranda requirements",
        "- Forensic results take time (days/weeks)",
        "- Warrants required for searches",
    ],
    "dramatized": [
        "DRAMATIZED MODE: Bend procedure for drama, but stay believable",
        "- Results can be faster than reality",
        "- Some procedural shortcuts allowed",
        "- Maintain core police/legal framework",
    ],
    "fantasy": [],
}

MIN_EVIDENCE = 3
MAX_OPEN_LEADS = 5
STALL_WINDOW = 2


class CrimeTracker(GenreTracker):
    """
    Tracks investigations for one book.

    Args:
        book_id: Book identifier
        procedural_accuracy: realistic, dramatized or fantasy
        state: Previously dumped CrimeState (model or dict)
    """

    genre = "crime"
    state_model = CrimeState

    def __init__(self, book_id: str, procedural_accuracy: Optional[str] = None, state=None):
        super().__init__(book_id, state)
        if procedural_accuracy:
            self.state.procedural_accuracy = procedural_accuracy

    def _next_id(self, prefix: str) -> str:
        self.state.id_counter += 1
        return f"{prefix}_{self.state.id_counter}"

    # Investigations

    def start_investigation(self, investigation_type: str, lead_investigator: str) -> Investigation:
        investigation = Investigation(
            id=self._next_id("inv"),
            type=investigation_type,
            lead_investigator=lead_investigator,
        )
        self.state.investigations.append(investigation)
        logger.info(f"Investigation {investigation.id} ({investigation_type}) opened by {lead_investigator}")
        return investigation

    def get_investigation(self, investigation_id: str) -> Optional[Investigation]:
        return next((i for i in self.state.investigations if i.id == investigation_id), None)

    def get_active_investigation(self) -> Optional[Investigation]:
        return next((i for i in self.state.investigations if i.status == "active"), None)

    def update_status(self, investigation_id: str, status: str) -> bool:
        investigation = self.get_investigation(investigation_id)
        if investigation is None:
            return False
        investigation.status = status
        return True

    def add_timeline_event(self, investigation_id: str, event: str, chapter: int) -> bool:
        investigation = self.get_investigation(investigation_id)
        if investigation is None:
            return False
        investigation.timeline.append(TimelineEvent(event=event, chapter=chapter))
        return True

    # Evidence and witnesses

    def add_evidence(self, investigation_id: str, evidence: Evidence, chapter: int) -> Optional[Evidence]:
        investigation = self.get_investigation(investigation_id)
        if investigation is None:
            return None

        stored = evidence.model_copy(update={"id": self._next_id("ev"), "chapter": chapter})
        investigation.evidence.append(stored)
        investigation.timeline.append(TimelineEvent(event=f"Evidence found: {stored.description}", chapter=chapter))
        if stored.supports:
            self.add_lead(stored.supports)
        return stored

    def add_witness(self, investigation_id: str, witness: Witness, chapter: int) -> Optional[Witness]:
        investigation = self.get_investigation(investigation_id)
        if investigation is None:
            return None

        stored = witness.model_copy(update={"interview_chapter": chapter})
        investigation.witnesses.append(stored)
        investigation.timeline.append(TimelineEvent(event=f"Witness interviewed: {stored.name}", chapter=chapter))
        return stored

    def update_witness_credibility(
        self,
        investigation_id: str,
        witness_name: str,
        credibility: str,
        reason: Optional[str] = None,
    ) -> bool:
        investigation = self.get_investigation(investigation_id)
        if investigation is None:
            return False
        witness = next((w for w in investigation.witnesses if w.name == witness_name), None)
        if witness is None:
            return False
        witness.credibility = credibility
        if reason:
            witness.inconsistencies.append(reason)
        return True

    def validate_chain_of_custody(self, investigation_id: str, evidence_id: str) -> CustodyCheck:
        """
        List the custody gaps for one piece of evidence.

        Evidence is valid when its chain is documented, includes whoever
        found it, and it has not been ruled inadmissible.
        """
        investigation = self.get_investigation(investigation_id)
        if investigation is None:
            return CustodyCheck(valid=False, issues=["Investigation not found"])
        evidence = next((e for e in investigation.evidence if e.id == evidence_id), None)
        if evidence is None:
            return CustodyCheck(valid=False, issues=["Evidence not found"])

        issues = []
        if not evidence.chain_of_custody:
            issues.append("No chain of custody documented")
        elif evidence.found_by not in evidence.chain_of_custody:
            issues.append("Finder not in chain of custody")
        if not evidence.is_admissible:
            issues.append("Evidence marked as inadmissible")
        return CustodyCheck(valid=not issues, issues=issues)

    # Suspects and leads

    def add_suspect(self, investigation_id: str, suspect_name: str) -> bool:
        investigation = self.get_investigation(investigation_id)
        if investigation is None:
            return False
        if suspect_name not in investigation.suspects:
            investigation.suspects.append(suspect_name)
        return True

    def clear_suspect(self, investigation_id: str, suspect_name: str, chapter: int) -> bool:
        investigation = self.get_investigation(investigation_id)
        if investigation is None or suspect_name not in investigation.suspects:
            return False
        investigation.suspects = [s for s in investigation.suspects if s != suspect_name]
        investigation.timeline.append(TimelineEvent(event=f"Suspect cleared: {suspect_name}", chapter=chapter))
        return True

    def add_lead(self, lead: str) -> None:
        if lead not in self.state.active_leads:
            self.state.active_leads.append(lead)

    def mark_dead_end(self, lead: str) -> None:
        self.state.active_leads = [existing for existing in self.state.active_leads if existing != lead]
        if lead not in self.state.dead_ends:
            self.state.dead_ends.append(lead)

    def resolve_lead(self, lead: str) -> None:
        self.state.active_leads = [existing for existing in self.state.active_leads if existing != lead]

    # Chapter processing

    def process_chapter(self, chapter_number: int, extraction) -> CrimeDelta:
        """
        Apply one chapter's procedural signals to the active investigation.

        An investigation is opened from the extraction's type and lead
        investigator when none is active.
        """
        delta = CrimeDelta()
        crime = self._extraction(extraction)
        if crime is None:
            return delta

        investigation = self.get_active_investigation()
        if investigation is None:
            investigation = self.start_investigation(crime.investigation_type, crime.lead_investigator)
        delta.investigation_id = investigation.id

        for incoming in crime.evidence_found:
            evidence = self.add_evidence(investigation.id, incoming, chapter_number)
            delta.evidence_added.append(evidence)
            check = self.validate_chain_of_custody(investigation.id, evidence.id)
            if self.state.procedural_accuracy != "fantasy":
                delta.custody_issues.extend(f"{evidence.description}: {issue}" for issue in check.issues)

        for incoming in crime.witnesses_interviewed:
            witness = self.add_witness(investigation.id, incoming, chapter_number)
            delta.witnesses_added.append(witness.name)

        for name in crime.suspects_added:
            if name not in investigation.suspects:
                self.add_suspect(investigation.id, name)
                delta.suspects_added.append(name)

        for name in crime.suspects_cleared:
            if self.clear_suspect(investigation.id, name, chapter_number):
                delta.suspects_cleared.append(name)

        for lead in crime.new_leads:
            self.add_lead(lead)
        for lead in crime.dead_ends:
            self.mark_dead_end(lead)

        return delta

    # Reporting

    def generate_summary(self) -> str:
        if not self.state.investigations:
            return ""

        lines = ["=== INVESTIGATION STATUS ===", f"Procedural Accuracy: {self.state.procedural_accuracy}", ""]
        for inv in self.state.investigations:
            lines.append(f"INVESTIGATION: {inv.type.upper()}")
            lines.append(f"  Lead Investigator: {inv.lead_investigator}")
            lines.append(f"  Status: {inv.status}")
            lines.append(f"  Evidence: {len(inv.evidence)} items")
            key_items = [e.description for e in inv.evidence if e.type in ("forensic", "physical")]
            if key_items:
                lines.append(f"    Key items: {', '.join(key_items)}")
            lines.append(f"  Witnesses: {len(inv.witnesses)}")
            credible = [w.name for w in inv.witnesses if w.credibility in ("credible", "highly_credible")]
            if credible:
                lines.append(f"    Credible: {', '.join(credible)}")
            if inv.suspects:
                lines.append(f"  Suspects: {', '.join(inv.suspects)}")
            lines.append("")

        if self.state.active_leads:
            lines.append("ACTIVE LEADS:")
            lines.extend(f"  - {lead}" for lead in self.state.active_leads)
            lines.append("")
        if self.state.dead_ends:
            lines.append("DEAD ENDS:")
            lines.extend(f"  - {end}" for end in self.state.dead_ends)

        return "\n".join(lines) + "\n"

    def generate_procedural_reminders(self) -> List[str]:
        return list(PROCEDURAL_REMINDERS.get(self.state.procedural_accuracy, []))

    def generate_suggestions(self, current_chapter: int) -> List[str]:
        suggestions = []
        investigation = self.get_active_investigation()
        if investigation is None:
            return suggestions

        if len(investigation.evidence) < MIN_EVIDENCE:
            suggestions.append("Investigation needs more evidence")

        credibility_levels = {w.credibility for w in investigation.witnesses}
        if len(investigation.witnesses) > 2 and len(credibility_levels) < 2:
            suggestions.append("Add witnesses with varying credibility")

        if len(self.state.active_leads) > MAX_OPEN_LEADS:
            suggestions.append("Too many open leads. Resolve or mark as dead ends.")

        if not any(t.chapter >= current_chapter - STALL_WINDOW for t in investigation.timeline):
            suggestions.append("Investigation has stalled. Add new development.")

        return suggestions


def create_crime_tracker(book_id: str, procedural_accuracy: str = "dramatized") -> CrimeTracker:
    return CrimeTracker(book_id, procedural_accuracy)
