"""
Drama tracking.

Keeps the high-stakes registries of a book: secrets, confrontations,
affairs, deaths and power dynamics, plus planted setups waiting for a
payoff. This tracker is the single owner of secrets; other trackers that
create secrets (affairs from the romance side) go through
``register_secret``/``register_affair``.
"""

import logging
from typing import List, Optional

from ..config import AFFAIR_STALE_CHAPTERS, CONFRONTATION_STALE_CHAPTERS, SECRET_STALE_CHAPTERS
from ..utils.normalize import fuzzy_match
from .base import GenreTracker
from .models import (
    Affair,
    CharacterDeath,
    Confrontation,
    DramaDelta,
    DramaState,
    DramaticMoment,
    Payoff,
    PowerDynamic,
    PowerShift,
    Secret,
    SecretReveal,
)

logger = logging.getLogger(__name__)

SECRET_SEVERITY_DRAMA = {
    "embarrassing": 2,
    "damaging": 5,
    "devastating": 8,
    "life_altering": 10,
}

DEATH_IMPACT = {
    "minor": 3,
    "significant": 7,
    "devastating": 10,
}

MOMENT_IMPACT = {
    "confrontation": 6,
    "revelation": 7,
    "betrayal": 8,
    "sacrifice": 8,
    "death": 10,
    "near_death": 7,
    "affair_discovery": 9,
    "power_shift": 6,
    "ultimatum": 7,
    "breakdown": 6,
    "reconciliation": 5,
    "separation": 6,
}


def _dynamic_key(characters: List[str]) -> str:
    return "_".join(sorted(characters))


class DramaTracker(GenreTracker):
    """Tracks secrets, confrontations, affairs, deaths and power for one book."""

    genre = "drama"
    state_model = DramaState

    def _next_id(self, prefix: str) -> str:
        self.state.id_counter += 1
        return f"{prefix}_{self.state.id_counter}"

    def _moment(self, chapter: int, moment_type: str, description: str, impact: int) -> None:
        self.state.dramatic_moments.append(DramaticMoment(
            chapter=chapter,
            type=moment_type,
            description=description,
            impact=max(1, min(10, impact)),
        ))

    # Secrets

    def register_secret(
        self,
        description: str,
        held_by: List[str],
        hidden_from: List[str],
        chapter: int,
        stakes: str = "",
        severity: str = "damaging",
    ) -> Secret:
        secret = Secret(
            id=self._next_id("secret"),
            description=description,
            held_by=list(held_by),
            hidden_from=list(hidden_from),
            stakes=stakes,
            introduced_chapter=chapter,
            severity=severity,
        )
        self.state.secrets.append(secret)
        self.state.tension_points.append(
            f'Secret: "{description}" (known by: {", ".join(held_by)})'
        )
        return secret

    def reveal_secret(
        self,
        secret_id: str,
        chapter: int,
        revealed_to: Optional[List[str]] = None,
        method: str = "accident",
    ) -> SecretReveal:
        """
        Reveal a secret and score its drama by severity.

        Unknown or already revealed secrets return ``revealed=False``.
        """
        secret = next((s for s in self.state.secrets if s.id == secret_id), None)
        if secret is None or secret.revealed_chapter is not None:
            return SecretReveal(revealed=False)

        secret.revealed_chapter = chapter
        secret.revealed_to = list(revealed_to or [])
        secret.discovery_method = method
        drama = SECRET_SEVERITY_DRAMA[secret.severity]

        self._moment(chapter, "revelation", f'Secret revealed: "{secret.description}"', drama)
        self.state.tension_points = [
            tp for tp in self.state.tension_points if secret.description not in tp
        ]
        logger.info(f"Secret {secret.id} revealed in chapter {chapter} (drama {drama})")
        return SecretReveal(revealed=True, drama=drama)

    def find_secret(self, description: str) -> Optional[Secret]:
        return next((s for s in self.state.secrets if fuzzy_match(s.description, description)), None)

    def get_unrevealed_secrets(self) -> List[Secret]:
        return [s for s in self.state.secrets if s.revealed_chapter is None]

    # Confrontations

    def add_confrontation(self, confrontation: Confrontation, chapter: int) -> Confrontation:
        conf = confrontation.model_copy(update={"id": self._next_id("conf"), "chapter": chapter})
        self.state.confrontations.append(conf)

        sides = " vs ".join(conf.participants)
        self._moment(chapter, "confrontation", f"{sides}: {conf.subject}", conf.escalation_level * 2)
        if conf.unresolved:
            self.state.tension_points.append(f"Unresolved conflict: {sides} over {conf.subject}")
        return conf

    def resolve_confrontation(self, confrontation_id: str, winner: Optional[str] = None) -> bool:
        conf = next((c for c in self.state.confrontations if c.id == confrontation_id), None)
        if conf is None:
            return False
        conf.unresolved = False
        if winner:
            conf.winner = winner
        sides = " vs ".join(conf.participants)
        self.state.tension_points = [tp for tp in self.state.tension_points if sides not in tp]
        return True

    # Affairs, deaths, power

    def register_affair(
        self,
        participants: List[str],
        betrayed_party: str,
        chapter: int,
        emotional_nature: str = "both",
    ) -> Affair:
        """Register an affair together with the secret that hides it."""
        secret = self.register_secret(
            description=f"Affair between {' and '.join(participants)}",
            held_by=participants,
            hidden_from=[betrayed_party],
            chapter=chapter,
            stakes="Relationship destruction",
            severity="devastating",
        )
        affair = Affair(
            id=self._next_id("affair"),
            participants=list(participants),
            betrayed_party=betrayed_party,
            start_chapter=chapter,
            emotional_nature=emotional_nature,
            secret_id=secret.id,
        )
        self.state.affairs.append(affair)
        self.state.tension_points.append(
            f"Affair: {' & '.join(participants)} (betraying {betrayed_party})"
        )
        return affair

    def update_affair_status(self, affair_id: str, status: str, chapter: int) -> bool:
        affair = next((a for a in self.state.affairs if a.id == affair_id), None)
        if affair is None:
            return False
        affair.status = status
        if status == "discovered":
            affair.discovery_chapter = chapter
            self._moment(chapter, "affair_discovery", f"{affair.betrayed_party} discovers affair", 9)
            if affair.secret_id:
                self.reveal_secret(affair.secret_id, chapter, [affair.betrayed_party], "caught")
        elif status == "confessed" and affair.secret_id:
            self.reveal_secret(affair.secret_id, chapter, [affair.betrayed_party], "confession")
        return True

    def register_death(self, death: CharacterDeath, chapter: int) -> CharacterDeath:
        record = death.model_copy(update={"chapter": chapter})
        self.state.deaths.append(record)
        self._moment(chapter, "death", f"{record.character} dies ({record.type})",
                     DEATH_IMPACT[record.emotional_impact])
        return record

    def add_power_dynamic(self, dynamic: PowerDynamic) -> None:
        key = _dynamic_key(dynamic.characters)
        for index, existing in enumerate(self.state.power_dynamics):
            if _dynamic_key(existing.characters) == key:
                self.state.power_dynamics[index] = dynamic.model_copy(update={"shifts": existing.shifts})
                return
        self.state.power_dynamics.append(dynamic.model_copy(update={"shifts": []}))

    def record_power_shift(self, characters: List[str], chapter: int, description: str) -> bool:
        key = _dynamic_key(characters)
        dynamic = next((pd for pd in self.state.power_dynamics if _dynamic_key(pd.characters) == key), None)
        if dynamic is None:
            return False
        dynamic.shifts.append(PowerShift(chapter=chapter, description=description))
        self._moment(chapter, "power_shift", f"Power shift: {description}", 6)
        return True

    # Setups and payoffs

    def add_setup(self, setup: str, ideal_payoff_chapter: int) -> None:
        self.state.upcoming_payoffs.append(Payoff(setup=setup, ideal_chapter=ideal_payoff_chapter))

    def deliver_payoff(self, setup: str) -> None:
        needle = setup.lower()
        self.state.upcoming_payoffs = [
            p for p in self.state.upcoming_payoffs if needle not in p.setup.lower()
        ]

    # Chapter processing

    def process_chapter(self, chapter_number: int, extraction) -> DramaDelta:
        delta = DramaDelta()
        drama = self._extraction(extraction)
        if drama is None:
            return delta

        for incoming in drama.confrontations:
            delta.confrontations_added.append(self.add_confrontation(incoming, chapter_number))

        for description in drama.secrets_revealed:
            secret = self.find_secret(description)
            if secret is None:
                logger.debug(f"Revealed secret not registered: {description}")
                continue
            if self.reveal_secret(secret.id, chapter_number).revealed:
                delta.secrets_revealed.append(secret.description)

        for incoming in drama.secrets_introduced:
            delta.secrets_introduced.append(self.register_secret(
                description=incoming.description,
                held_by=incoming.held_by,
                hidden_from=incoming.hidden_from,
                chapter=chapter_number,
                stakes=incoming.stakes,
                severity=incoming.severity,
            ))

        for moment_type in drama.dramatic_moments:
            delta.dramatic_moments.append(moment_type)
            self._moment(
                chapter_number,
                moment_type,
                f"{moment_type.replace('_', ' ')} occurred",
                MOMENT_IMPACT.get(moment_type, 5),
            )

        delta.payoffs_due = [
            p.setup for p in self.state.upcoming_payoffs if p.ideal_chapter <= chapter_number
        ]
        return delta

    # Reporting

    def generate_summary(self) -> str:
        lines = ["=== DRAMA STATE ===", ""]

        unrevealed = self.get_unrevealed_secrets()
        if unrevealed:
            lines.append("ACTIVE SECRETS:")
            for secret in unrevealed:
                lines.append(f'  - "{secret.description}"')
                lines.append(f"    Known by: {', '.join(secret.held_by)}")
                lines.append(f"    Hidden from: {', '.join(secret.hidden_from)}")
                lines.append(f"    Severity: {secret.severity}")
            lines.append("")

        unresolved = [c for c in self.state.confrontations if c.unresolved]
        if unresolved:
            lines.append("UNRESOLVED CONFRONTATIONS:")
            for conf in unresolved:
                lines.append(f"  - {' vs '.join(conf.participants)}: {conf.subject}")
                lines.append(f"    Escalation: {conf.escalation_level}/5")
            lines.append("")

        affairs = [a for a in self.state.affairs if a.status in ("ongoing", "discovered")]
        if affairs:
            lines.append("AFFAIRS:")
            for affair in affairs:
                lines.append(f"  - {' & '.join(affair.participants)} (betraying {affair.betrayed_party})")
                lines.append(f"    Status: {affair.status}")
            lines.append("")

        if self.state.power_dynamics:
            lines.append("POWER DYNAMICS:")
            for pd in self.state.power_dynamics:
                lines.append(f"  - {pd.dominant_party} > {pd.submissive_party} ({pd.type})")
            lines.append("")

        if self.state.upcoming_payoffs:
            lines.append("SETUPS AWAITING PAYOFF:")
            for payoff in self.state.upcoming_payoffs:
                lines.append(f"  - {payoff.setup} (ideal: chapter {payoff.ideal_chapter})")

        return "\n".join(lines) + "\n"

    def generate_suggestions(self, current_chapter: int) -> List[str]:
        suggestions = []

        for secret in self.get_unrevealed_secrets():
            held = current_chapter - secret.introduced_chapter
            if held > SECRET_STALE_CHAPTERS:
                suggestions.append(
                    f'Secret "{secret.description}" has been held for {held} chapters. Consider revealing.'
                )

        for conf in self.state.confrontations:
            if conf.unresolved and current_chapter - conf.chapter > CONFRONTATION_STALE_CHAPTERS:
                suggestions.append(f'Unresolved confrontation "{conf.subject}" needs follow-up')

        for affair in self.state.affairs:
            ongoing = current_chapter - affair.start_chapter
            if affair.status == "ongoing" and ongoing > AFFAIR_STALE_CHAPTERS:
                suggestions.append(
                    f"Affair between {' & '.join(affair.participants)} has been ongoing for "
                    f"{ongoing} chapters. Discovery imminent?"
                )

        for payoff in self.state.upcoming_payoffs:
            if payoff.ideal_chapter <= current_chapter:
                suggestions.append(f"PAYOFF DUE: {payoff.setup}")
            elif payoff.ideal_chapter <= current_chapter + 2:
                suggestions.append(f"Payoff approaching: {payoff.setup}")

        return suggestions

    def get_drama_intensity(self, start_chapter: int, end_chapter: int) -> int:
        """Sum of dramatic moment impact over an inclusive chapter range."""
        return sum(
            m.impact for m in self.state.dramatic_moments
            if start_chapter <= m.chapter <= end_chapter
        )


def create_drama_tracker(book_id: str) -> DramaTracker:
    return DramaTracker(book_id)
