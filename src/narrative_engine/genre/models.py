"""
Data models for the genre trackers.

Three families per genre:
- Extraction records: signals pulled out of one generated chapter
- State: the tracker's registries, dumped and restored between calls
- Delta: what a single ``process_chapter`` call changed
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class GenreModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")


class ValidationResult(GenreModel):
    """Outcome of a proposed narrative action. Rejections are data, not errors."""
    valid: bool
    reason: Optional[str] = None


# ============================================================================
# Romance
# ============================================================================

RomanceStage = Literal[
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
RomanceBeatType = Literal[
    "glance", "touch", "conversation", "argument", "confession",
    "kiss", "intimacy", "separation", "reunion",
]
TensionType = Literal["sexual", "emotional", "intellectual", "mixed"]
DynamicType = Literal[
    "equals", "mentor_student", "rivals", "forbidden", "slow_burn", "enemies_to_lovers",
]


class RomanceChemistry(GenreModel):
    pair_name: str
    character1: str
    character2: str
    chemistry_level: float = Field(1.0, ge=0, le=10)
    tension_type: TensionType = "mixed"
    dynamic_type: DynamicType = "equals"


class RomanceBeat(GenreModel):
    chapter: int = 0
    type: RomanceBeatType
    characters: List[str] = Field(default_factory=list)
    intensity: int = Field(3, ge=1, le=5)
    is_escalation: bool = False
    description: str = ""


class RomanceObstacle(GenreModel):
    type: Literal["external", "internal", "misunderstanding", "rival", "circumstance", "secret"]
    description: str
    blocks_character: str = ""
    introduced_chapter: int
    resolved_chapter: Optional[int] = None
    severity: Literal["minor", "significant", "major"] = "significant"


class IntimacyMilestones(GenreModel):
    first_touch: Optional[int] = None
    first_kiss: Optional[int] = None
    love_declaration: Optional[int] = None
    physical_intimacy: Optional[int] = None


class StageEntry(GenreModel):
    stage: RomanceStage
    chapter: int


class RomanceArc(GenreModel):
    id: str
    couple: RomanceChemistry
    current_stage: RomanceStage = "strangers"
    stage_history: List[StageEntry] = Field(default_factory=list)
    beats: List[RomanceBeat] = Field(default_factory=list)
    obstacles: List[RomanceObstacle] = Field(default_factory=list)
    heat_level: int = Field(3, ge=1, le=5)
    is_primary: bool = True
    intimacy_milestones: IntimacyMilestones = Field(default_factory=IntimacyMilestones)


class RomanceState(GenreModel):
    arcs: List[RomanceArc] = Field(default_factory=list)
    unpaired_characters: List[str] = Field(default_factory=list)
    romantic_moments: List[RomanceBeat] = Field(default_factory=list)
    chemistry_score: Dict[str, int] = Field(default_factory=dict)


class ChemistryObservation(GenreModel):
    pair: str
    observation: str = ""


class StageProgression(GenreModel):
    from_stage: RomanceStage = Field(..., alias="from")
    to: RomanceStage


class RomanceExtraction(GenreModel):
    romantic_moments: List[RomanceBeat] = Field(default_factory=list)
    chemistry_observations: List[ChemistryObservation] = Field(default_factory=list)
    stage_progression: Optional[StageProgression] = None


class StageChange(GenreModel):
    arc: str
    from_stage: RomanceStage
    to_stage: RomanceStage


class RejectedProgression(GenreModel):
    arc: str
    from_stage: RomanceStage
    to_stage: RomanceStage
    reason: str


class RomanceDelta(GenreModel):
    beats_recorded: int = 0
    arcs_created: List[str] = Field(default_factory=list)
    stage_changes: List[StageChange] = Field(default_factory=list)
    rejected_progressions: List[RejectedProgression] = Field(default_factory=list)


# ============================================================================
# Mystery
# ============================================================================

ClueType = Literal[
    "physical", "testimony", "behavioral", "documentary",
    "forensic", "circumstantial", "psychological",
]
Significance = Literal["minor", "moderate", "major", "crucial"]
RevealType = Literal[
    "clue_discovery", "connection_made", "suspect_eliminated",
    "suspect_added", "twist", "solution",
]


class MysteryClue(GenreModel):
    id: str = ""
    description: str
    clue_type: ClueType = "physical"
    introduced_chapter: int = 0
    found_by: str = ""
    points_to: List[str] = Field(default_factory=list)
    is_red_herring: bool = False
    was_noticed: bool = True
    significance: Significance = "moderate"
    connection_to_other_clues: List[str] = Field(default_factory=list)


class Suspect(GenreModel):
    name: str
    motive: Optional[str] = None
    opportunity: Optional[str] = None
    means: Optional[str] = None
    alibi: Optional[str] = None
    alibi_strength: Literal["none", "weak", "moderate", "strong", "airtight"] = "none"
    suspicion_level: int = Field(5, ge=0, le=10)
    clues_pointing_to: List[str] = Field(default_factory=list)
    clues_exonerating: List[str] = Field(default_factory=list)
    is_guilty: Optional[bool] = None
    introduced_chapter: int = 0


class MysteryReveal(GenreModel):
    chapter: int = 0
    type: RevealType
    description: str = ""
    changes_investigation: bool = True
    surprise_factor: int = Field(3, ge=1, le=5)


class InvestigationThread(GenreModel):
    id: str
    description: str
    status: Literal["active", "cold", "solved", "abandoned"] = "active"
    related_clues: List[str] = Field(default_factory=list)
    leading_to: str = ""
    investigator: str = ""


class TickingClock(GenreModel):
    deadline: str
    chapters_remaining: int


class MysteryState(GenreModel):
    central_mystery: str = ""
    clues: List[MysteryClue] = Field(default_factory=list)
    suspects: List[Suspect] = Field(default_factory=list)
    reveals: List[MysteryReveal] = Field(default_factory=list)
    investigation_threads: List[InvestigationThread] = Field(default_factory=list)
    red_herring_count: int = 0
    solution_revealed: bool = False
    fair_play_score: int = 100
    fair_play_deductions: List[str] = Field(default_factory=list)
    tension_level: int = Field(3, ge=1, le=10)
    ticking_clock: Optional[TickingClock] = None


class SuspectChange(GenreModel):
    suspect: str
    change: Literal["added", "eliminated", "implicated"]


class MysteryExtraction(GenreModel):
    clues_found: List[MysteryClue] = Field(default_factory=list)
    suspect_changes: List[SuspectChange] = Field(default_factory=list)
    revelations: List[MysteryReveal] = Field(default_factory=list)


class MysteryDelta(GenreModel):
    clues_added: List[MysteryClue] = Field(default_factory=list)
    suspect_changes: List[str] = Field(default_factory=list)
    reveals: List[MysteryReveal] = Field(default_factory=list)
    fair_play_warnings: List[str] = Field(default_factory=list)


# ============================================================================
# Comedy
# ============================================================================

HumorType = Literal[
    "witty_dialogue", "situational", "physical", "ironic", "absurdist", "dark",
    "self_deprecating", "sarcasm", "deadpan", "callback", "running_gag",
    "character_trait",
]
Effectiveness = Literal["flat", "mild", "good", "great", "killer"]


class JokeBeat(GenreModel):
    id: str = ""
    chapter: int = 0
    type: HumorType = "witty_dialogue"
    setup: str
    punchline: str = ""
    delivered_by: str = ""
    target_of: Optional[str] = None
    effectiveness: Effectiveness = "good"
    is_callback: bool = False
    calls_back_to: Optional[str] = None


class GagOccurrence(GenreModel):
    chapter: int
    variation: str


class RunningGag(GenreModel):
    id: str
    description: str
    first_appearance: int
    occurrences: List[GagOccurrence] = Field(default_factory=list)
    peak_chapter: Optional[int] = None
    is_exhausted: bool = False
    escalates: bool = False


class SarcasmInstance(GenreModel):
    chapter: int = 0
    speaker: str
    statement: str = ""
    actual_meaning: str = ""
    target: Optional[str] = None
    subtlety: Literal["obvious", "moderate", "subtle"] = "moderate"
    is_affectionate: bool = False


class CharacterComedyProfile(GenreModel):
    name: str
    comedy_style: List[str] = Field(default_factory=list)
    catch_phrases: List[str] = Field(default_factory=list)
    frequent_targets: List[str] = Field(default_factory=list)
    self_awareness: Literal["oblivious", "partial", "self_aware"] = "partial"
    delivery_style: Literal["deadpan", "animated", "sardonic", "earnest"] = "earnest"
    is_comedy_relief: bool = False


class CallbackOpportunity(GenreModel):
    joke_id: str
    joke: str
    suggested_callback: str
    ideal_chapter: int


class ComedyState(GenreModel):
    jokes: List[JokeBeat] = Field(default_factory=list)
    running_gags: List[RunningGag] = Field(default_factory=list)
    sarcasm_instances: List[SarcasmInstance] = Field(default_factory=list)
    character_profiles: List[CharacterComedyProfile] = Field(default_factory=list)
    overall_tone: Literal["light", "dark", "mixed"] = "light"
    comedy_density: float = 0.0
    words_seen: int = 0
    callback_opportunities: List[CallbackOpportunity] = Field(default_factory=list)


class ComedyExtraction(GenreModel):
    jokes: List[JokeBeat] = Field(default_factory=list)
    sarcasm_instances: List[SarcasmInstance] = Field(default_factory=list)
    running_gag_occurrences: List[str] = Field(default_factory=list)


class ComedyDelta(GenreModel):
    jokes_added: List[JokeBeat] = Field(default_factory=list)
    sarcasm_found: int = 0
    running_gags_used: List[str] = Field(default_factory=list)
    callbacks_used: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class PlacementCheck(GenreModel):
    valid: bool
    warnings: List[str] = Field(default_factory=list)


# ============================================================================
# Drama
# ============================================================================

DramaticMomentType = Literal[
    "confrontation", "revelation", "betrayal", "sacrifice", "death", "near_death",
    "affair_discovery", "power_shift", "ultimatum", "breakdown",
    "reconciliation", "separation",
]
SecretSeverity = Literal["embarrassing", "damaging", "devastating", "life_altering"]


class Confrontation(GenreModel):
    id: str = ""
    chapter: int = 0
    participants: List[str] = Field(default_factory=list)
    subject: str
    instigator: str = ""
    winner: Optional[str] = None
    escalation_level: int = Field(3, ge=1, le=5)
    turns_violent: bool = False
    unresolved: bool = True
    consequences: List[str] = Field(default_factory=list)


class Secret(GenreModel):
    id: str = ""
    description: str
    held_by: List[str] = Field(default_factory=list)
    hidden_from: List[str] = Field(default_factory=list)
    stakes: str = ""
    introduced_chapter: int = 0
    revealed_chapter: Optional[int] = None
    revealed_to: List[str] = Field(default_factory=list)
    discovery_method: Optional[
        Literal["confession", "caught", "investigation", "accident", "third_party"]
    ] = None
    severity: SecretSeverity = "damaging"


class Affair(GenreModel):
    id: str = ""
    participants: List[str]
    betrayed_party: str
    start_chapter: int = 0
    discovery_chapter: Optional[int] = None
    status: Literal["ongoing", "ended", "discovered", "confessed"] = "ongoing"
    emotional_nature: Literal["physical_only", "emotional_only", "both"] = "both"
    consequences: List[str] = Field(default_factory=list)
    secret_id: Optional[str] = None


class CharacterDeath(GenreModel):
    character: str
    chapter: int = 0
    type: Literal["natural", "accident", "murder", "suicide", "sacrifice", "violence"]
    is_on_page: bool = True
    witnessed_by: List[str] = Field(default_factory=list)
    emotional_impact: Literal["minor", "significant", "devastating"] = "significant"
    was_expected: bool = False
    final_words: Optional[str] = None
    unfinished_business: List[str] = Field(default_factory=list)


class PowerShift(GenreModel):
    chapter: int
    description: str


class PowerDynamic(GenreModel):
    characters: List[str]
    type: Literal["hierarchical", "financial", "emotional", "physical", "social"]
    dominant_party: str
    submissive_party: str
    is_healthy: bool = True
    shifts: List[PowerShift] = Field(default_factory=list)


class DramaticMoment(GenreModel):
    chapter: int
    type: DramaticMomentType
    description: str
    impact: int = Field(5, ge=1, le=10)


class Payoff(GenreModel):
    setup: str
    ideal_chapter: int


class DramaState(GenreModel):
    confrontations: List[Confrontation] = Field(default_factory=list)
    secrets: List[Secret] = Field(default_factory=list)
    affairs: List[Affair] = Field(default_factory=list)
    deaths: List[CharacterDeath] = Field(default_factory=list)
    power_dynamics: List[PowerDynamic] = Field(default_factory=list)
    dramatic_moments: List[DramaticMoment] = Field(default_factory=list)
    tension_points: List[str] = Field(default_factory=list)
    upcoming_payoffs: List[Payoff] = Field(default_factory=list)
    id_counter: int = 0


class DramaExtraction(GenreModel):
    confrontations: List[Confrontation] = Field(default_factory=list)
    secrets_revealed: List[str] = Field(default_factory=list)
    secrets_introduced: List[Secret] = Field(default_factory=list)
    dramatic_moments: List[DramaticMomentType] = Field(default_factory=list)


class SecretReveal(GenreModel):
    revealed: bool
    drama: int = 0


class DramaDelta(GenreModel):
    confrontations_added: List[Confrontation] = Field(default_factory=list)
    secrets_revealed: List[str] = Field(default_factory=list)
    secrets_introduced: List[Secret] = Field(default_factory=list)
    dramatic_moments: List[DramaticMomentType] = Field(default_factory=list)
    payoffs_due: List[str] = Field(default_factory=list)


# ============================================================================
# Crime
# ============================================================================

InvestigationType = Literal[
    "murder", "theft", "fraud", "assault", "kidnapping", "missing_person", "other",
]
Credibility = Literal["unreliable", "questionable", "credible", "highly_credible"]
ProceduralAccuracy = Literal["realistic", "dramatized", "fantasy"]


class Evidence(GenreModel):
    id: str = ""
    type: Literal["physical", "digital", "testimonial", "documentary", "forensic"] = "physical"
    description: str
    found_at: str = ""
    found_by: str = ""
    chapter: int = 0
    chain_of_custody: List[str] = Field(default_factory=list)
    is_admissible: bool = True
    supports: str = ""
    contradicts: Optional[str] = None


class Witness(GenreModel):
    name: str
    credibility: Credibility = "credible"
    statement: str = ""
    inconsistencies: List[str] = Field(default_factory=list)
    interview_chapter: int = 0
    relationship_to_case: str = ""
    motive_to_lie: Optional[str] = None


class TimelineEvent(GenreModel):
    event: str
    chapter: int


class Investigation(GenreModel):
    id: str
    type: InvestigationType = "other"
    lead_investigator: str = ""
    status: Literal["active", "cold", "solved", "closed_unsolved"] = "active"
    evidence: List[Evidence] = Field(default_factory=list)
    witnesses: List[Witness] = Field(default_factory=list)
    suspects: List[str] = Field(default_factory=list)
    timeline: List[TimelineEvent] = Field(default_factory=list)


class CrimeState(GenreModel):
    investigations: List[Investigation] = Field(default_factory=list)
    active_leads: List[str] = Field(default_factory=list)
    dead_ends: List[str] = Field(default_factory=list)
    procedural_accuracy: ProceduralAccuracy = "dramatized"
    id_counter: int = 0


class CrimeExtraction(GenreModel):
    investigation_type: InvestigationType = "other"
    lead_investigator: str = ""
    evidence_found: List[Evidence] = Field(default_factory=list)
    witnesses_interviewed: List[Witness] = Field(default_factory=list)
    suspects_added: List[str] = Field(default_factory=list)
    suspects_cleared: List[str] = Field(default_factory=list)
    new_leads: List[str] = Field(default_factory=list)
    dead_ends: List[str] = Field(default_factory=list)


class CustodyCheck(GenreModel):
    valid: bool
    issues: List[str] = Field(default_factory=list)


class CrimeDelta(GenreModel):
    investigation_id: Optional[str] = None
    evidence_added: List[Evidence] = Field(default_factory=list)
    witnesses_added: List[str] = Field(default_factory=list)
    suspects_added: List[str] = Field(default_factory=list)
    suspects_cleared: List[str] = Field(default_factory=list)
    custody_issues: List[str] = Field(default_factory=list)


# ============================================================================
# Dialogue
# ============================================================================

SubtextType = Literal["threat", "flirtation", "deception", "warning", "emotional", "political"]
PatternType = Literal[
    "interrogation", "argument", "seduction", "negotiation",
    "confession", "small_talk", "exposition",
]


class DialogueExchange(GenreModel):
    chapter: int = 0
    participants: List[str] = Field(default_factory=list)
    has_subtext: bool = False
    subtext_meaning: Optional[str] = None
    tension_level: int = Field(3, ge=1, le=10)
    topic_surface: str = ""
    topic_real: Optional[str] = None


class CharacterVoice(GenreModel):
    character: str
    vocabulary_level: Literal["simple", "moderate", "sophisticated", "technical"] = "moderate"
    sentence_patterns: List[str] = Field(default_factory=list)
    catch_phrases: List[str] = Field(default_factory=list)
    speech_quirks: List[str] = Field(default_factory=list)
    formality: Literal["casual", "moderate", "formal"] = "moderate"
    emotional_expressiveness: Literal["reserved", "moderate", "expressive"] = "moderate"


class SubtextMoment(GenreModel):
    chapter: int = 0
    speaker: str
    said_text: str
    meant_text: str = ""
    listener: str = ""
    understood_by_listener: bool = False
    understood_by_reader: bool = True
    type: SubtextType = "emotional"


class DialoguePattern(GenreModel):
    type: PatternType
    frequency: int = 0
    effectiveness: Literal["weak", "moderate", "strong"] = "moderate"
    examples: List[str] = Field(default_factory=list)


class DialogueQuality(GenreModel):
    subtext_ratio: float = 0.0
    voice_consistency: float = 0.0
    exposition_balance: float = 1.0


class DialogueState(GenreModel):
    exchanges: List[DialogueExchange] = Field(default_factory=list)
    character_voices: List[CharacterVoice] = Field(default_factory=list)
    subtext_moments: List[SubtextMoment] = Field(default_factory=list)
    patterns: List[DialoguePattern] = Field(default_factory=list)
    dialogue_quality: DialogueQuality = Field(default_factory=DialogueQuality)


class VoiceObservation(GenreModel):
    character: str
    observation: str


class DialogueExtraction(GenreModel):
    subtext_moments: List[SubtextMoment] = Field(default_factory=list)
    voice_observations: List[VoiceObservation] = Field(default_factory=list)
    exchanges: List[DialogueExchange] = Field(default_factory=list)


class DialogueDelta(GenreModel):
    subtext_moments_found: List[SubtextMoment] = Field(default_factory=list)
    voice_observations: List[VoiceObservation] = Field(default_factory=list)
    exchanges_added: int = 0
    quality_update: DialogueQuality = Field(default_factory=DialogueQuality)


class SubtextAnalysis(GenreModel):
    has_subtext: bool
    possible_meaning: Optional[str] = None
    type: Optional[SubtextType] = None


class VoiceCheck(GenreModel):
    valid: bool
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


# ============================================================================
# Combined
# ============================================================================

class GenreExtraction(GenreModel):
    """Everything extracted from one chapter. Any genre may be missing."""
    romance: Optional[RomanceExtraction] = None
    mystery: Optional[MysteryExtraction] = None
    comedy: Optional[ComedyExtraction] = None
    drama: Optional[DramaExtraction] = None
    crime: Optional[CrimeExtraction] = None
    dialogue: Optional[DialogueExtraction] = None
    word_count: int = Field(0, ge=0)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GenreExtraction":
        """Create model from dictionary, rejecting any malformed section."""
        return cls.model_validate(data or {})


class GenreState(GenreModel):
    """Combined tracker state for one book."""
    book_id: str
    active_genres: List[str] = Field(default_factory=list)
    romance: Optional[RomanceState] = None
    mystery: Optional[MysteryState] = None
    comedy: Optional[ComedyState] = None
    drama: Optional[DramaState] = None
    crime: Optional[CrimeState] = None
    dialogue: Optional[DialogueState] = None
