"""
Data models for Story DNA, Dynamism Profiles and tracker state.

All models are pydantic so they validate on construction and serialize to
plain JSON for persistence between generation calls.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

LocationType = Literal["confined", "limited", "multiple", "traveling", "epic"]
CharacterScope = Literal["solo", "duo", "small_group", "ensemble", "rotating"]
TimeStructure = Literal["linear", "flashbacks", "parallel", "countdown", "nonlinear"]
Frequency = Literal["required_per_chapter", "every_few_chapters", "optional"]
Severity = Literal["mild", "moderate", "severe"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")


class LocationProfile(_Frozen):
    """Where the story can go."""
    type: LocationType
    primary_setting: str = "unspecified"
    setting_constraints: List[str] = Field(default_factory=list)
    can_travel_physically: bool = True
    alternate_access: List[str] = Field(default_factory=list)


class CharacterProfile(_Frozen):
    """Who the story can put on the page."""
    scope: CharacterScope
    primary_characters: int = Field(..., ge=1)
    can_meet_new_people: bool = True
    alternate_access: List[str] = Field(default_factory=list)


class TimeProfile(_Frozen):
    """How story time moves."""
    structure: TimeStructure
    has_deadline: bool = False
    real_time_constraint: bool = False
    allows_time_jumps: bool = False


class GenreProfile(_Frozen):
    """Genre conventions that shape pacing."""
    primary_genre: str = "general"
    requires_escalation: bool = False
    requires_twists: bool = False
    conventional_beats: List[str] = Field(default_factory=list)


class StoryDNA(_Frozen):
    """
    Structural constraints inferred from a premise.

    Computed once per book and never mutated.
    """
    location_profile: LocationProfile
    character_profile: CharacterProfile
    time_profile: TimeProfile
    genre_profile: GenreProfile
    dynamism_sources: List[str] = Field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoryDNA":
        """Create model from dictionary (with validation)."""
        return cls.model_validate(data)


class VarietySource(_Frozen):
    """An alternate way of injecting variety."""
    type: str
    description: str
    frequency: Frequency


class LocationRequirements(_Frozen):
    type: LocationType
    can_physically_travel: bool
    min_locations_per_chapter: int = Field(..., ge=0)
    max_consecutive_beats_in_same: int = Field(..., ge=1)
    min_distinct_locations_per_book: int = Field(..., ge=0)
    variety_sources: List[VarietySource] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_travel_consistency(self):
        """A story that cannot travel cannot demand locations per chapter."""
        if not self.can_physically_travel and self.min_locations_per_chapter != 0:
            raise ValueError(
                "min_locations_per_chapter must be 0 when can_physically_travel is False"
            )
        return self


class CharacterRequirements(_Frozen):
    scope: CharacterScope
    can_meet_new_people: bool
    min_characters_per_chapter: int = Field(..., ge=0)
    max_consecutive_beats_with_same_cast: int = Field(..., ge=1)
    min_new_characters_per_book: int = Field(..., ge=0)
    variety_sources: List[VarietySource] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)


class PacingRequirements(_Frozen):
    requires_escalation: bool
    escalation_frequency: Literal["every_chapter", "every_few_chapters", "key_moments"]
    interruption_frequency: float = Field(..., ge=0, le=1)
    interruption_types: List[str] = Field(default_factory=list)
    time_structure: TimeStructure
    flashback_frequency: float = Field(0.0, ge=0, le=1)
    chapter_ending_requirement: Literal["cliffhanger", "revelation", "shift", "flexible"]
    instructions: List[str] = Field(default_factory=list)


class ComicAdjustments(_Frozen):
    min_locations_per_page: int = Field(..., ge=0)
    max_panels_in_same_location: int = Field(..., ge=1)
    requires_visual_variety: bool = True


class ScreenplayAdjustments(_Frozen):
    min_scenes_per_sequence: int = Field(..., ge=0)
    max_pages_in_same_location: int = Field(..., ge=1)
    requires_visual_contrast: bool = True


class FormatAdjustments(_Frozen):
    comic: Optional[ComicAdjustments] = None
    screenplay: Optional[ScreenplayAdjustments] = None


class DynamismProfile(_Frozen):
    """
    Quantified, per-chapter generation requirements for one book.

    ``seed`` is a stable digest of the Story DNA; it keys the per-chapter
    interruption pick so the same book always gets the same interruptions.
    """
    locations: LocationRequirements
    characters: CharacterRequirements
    pacing: PacingRequirements
    forbidden: List[str] = Field(default_factory=list)
    required: List[str] = Field(default_factory=list)
    format_adjustments: FormatAdjustments = Field(default_factory=FormatAdjustments)
    format: Optional[str] = None
    total_chapters: int = Field(..., ge=1)
    seed: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DynamismProfile":
        """Create model from dictionary (with validation)."""
        return cls.model_validate(data)


class ChapterRequirements(_Frozen):
    """Requirement lines for a single chapter."""
    chapter_number: int = Field(..., ge=1)
    total_chapters: int = Field(..., ge=1)
    location_requirements: List[str] = Field(default_factory=list)
    character_requirements: List[str] = Field(default_factory=list)
    pacing_requirements: List[str] = Field(default_factory=list)
    interruption: Optional[str] = None


# Tracker state. These are mutable: the tracker updates them in place.

class AppearancePoint(BaseModel):
    chapter: int
    beat: int


class LocationEntry(BaseModel):
    name: str
    display_name: str
    type: Literal["indoor", "outdoor", "vehicle", "virtual", "memory", "unknown"] = "unknown"
    first_appearance: AppearancePoint
    last_appearance: AppearancePoint
    total_beats: int = 1


class CharacterEntry(BaseModel):
    name: str
    display_name: str
    type: Literal["physical", "phone", "memory", "mention", "voice"] = "physical"
    first_appearance: AppearancePoint
    last_appearance: AppearancePoint
    total_appearances: int = 1


class BeatState(BaseModel):
    """Snapshot returned by ``DynamismTracker.track_beat``."""
    chapter: int
    beat_number: int
    current_location: str
    characters_present: List[str]
    beats_in_current_location: int = Field(..., ge=1)
    beats_with_same_cast: int = Field(..., ge=1)
    location_changed: bool
    cast_changed: bool
    has_external_contact: bool = False


class ChapterStats(BaseModel):
    chapter_number: int
    locations: List[str] = Field(default_factory=list)
    characters: List[str] = Field(default_factory=list)
    beat_count: int = 0
    has_location_change: bool = False
    has_new_character: bool = False
    has_external_contact: bool = False


class DynamismWarning(BaseModel):
    type: Literal["location_stuck", "character_stuck", "no_variety", "no_external_contact"]
    message: str
    chapter: int
    beat: int
    severity: Severity


class DynamismViolation(BaseModel):
    type: Literal["forbidden_action", "missing_requirement", "stagnation"]
    message: str
    chapter: int
    beat: Optional[int] = None
    correction: str


class DynamismState(BaseModel):
    """Cumulative tracker state for one book."""
    locations: Dict[str, LocationEntry] = Field(default_factory=dict)
    characters: Dict[str, CharacterEntry] = Field(default_factory=dict)
    current_chapter: int = 1
    current_beat: int = 0
    current_location: str = ""
    current_characters: List[str] = Field(default_factory=list)
    beats_in_current_location: int = Field(0, ge=0)
    beats_with_current_cast: int = Field(0, ge=0)
    chapter_open: bool = False
    chapter_locations: List[str] = Field(default_factory=list)
    chapter_characters: List[str] = Field(default_factory=list)
    chapter_beat_count: int = 0
    chapter_has_external_contact: bool = False
    chapter_history: List[ChapterStats] = Field(default_factory=list)
    warnings: List[DynamismWarning] = Field(default_factory=list)
    violations: List[DynamismViolation] = Field(default_factory=list)


class DynamismReport(BaseModel):
    total_locations: int
    total_characters: int
    total_beats: int
    chapters_tracked: int
    average_locations_per_chapter: float
    average_characters_per_chapter: float
    location_variety_score: int = Field(..., ge=0, le=100)
    character_variety_score: int = Field(..., ge=0, le=100)
    overall_dynamism_score: int = Field(..., ge=0, le=100)
    warnings: List[DynamismWarning] = Field(default_factory=list)
    violations: List[DynamismViolation] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    chapter_history: List[ChapterStats] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")
