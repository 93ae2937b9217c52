"""
Request payloads for the HTTP API.

Each endpoint validates its JSON body against one of these models; a
failure surfaces as a 400 VALIDATION_ERROR listing the failing fields.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..config import SUPPORTED_FORMATS


class PremiseRequest(BaseModel):
    premise: str = Field(..., min_length=1)
    genre: Optional[str] = None

    @field_validator("premise")
    @classmethod
    def premise_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("premise must not be blank")
        return v.strip()


class ProfileRequest(PremiseRequest):
    format: Optional[str] = None
    total_chapters: Optional[int] = Field(None, ge=1, le=500)

    @field_validator("format")
    @classmethod
    def known_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in SUPPORTED_FORMATS:
            raise ValueError(f"format must be one of: {', '.join(SUPPORTED_FORMATS)}")
        return v


class ChapterRequest(ProfileRequest):
    chapter_number: int = Field(..., ge=1)
    previous_summary: Optional[str] = None


class BeatInput(BaseModel):
    beat_number: Optional[int] = Field(None, ge=1)
    location: str
    characters: List[str] = Field(default_factory=list)
    has_external_contact: bool = False


class ChapterBeats(BaseModel):
    chapter_number: int = Field(..., ge=1)
    beats: List[BeatInput] = Field(default_factory=list)


class ReplayRequest(ProfileRequest):
    chapters: List[ChapterBeats] = Field(..., min_length=1)


class GenreProcessRequest(BaseModel):
    book_id: str = Field(..., min_length=1)
    chapter_number: int = Field(..., ge=1)
    state: Optional[Dict[str, Any]] = None
    extraction: Dict[str, Any] = Field(default_factory=dict)
    options: Dict[str, Any] = Field(default_factory=dict)
