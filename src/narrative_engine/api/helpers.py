"""
Helper functions for API routes.

Request parsing and the classify-then-profile step shared by several
endpoints.
"""

import logging
from typing import Tuple, Type, TypeVar

from flask import request
from pydantic import BaseModel, ValidationError as PydanticValidationError

from ..dynamism import DynamismProfile, StoryDNA, classify_premise, generate_dynamism_profile
from ..utils.errors import ValidationError
from .schemas import ProfileRequest

logger = logging.getLogger(__name__)

RequestModel = TypeVar("RequestModel", bound=BaseModel)


def parse_body(model: Type[RequestModel]) -> RequestModel:
    """
    Validate the JSON request body against a pydantic model.

    Raises:
        ValidationError: If the body is missing, not an object, or invalid
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e


def build_story(payload: ProfileRequest) -> Tuple[StoryDNA, DynamismProfile]:
    """Classify the premise and derive its dynamism profile."""
    dna = classify_premise(payload.premise, payload.genre)
    profile = generate_dynamism_profile(dna, payload.format, payload.total_chapters)
    logger.debug(
        f"Built profile for premise ({len(payload.premise)} chars): "
        f"{dna.location_profile.type}/{dna.character_profile.scope}/{dna.genre_profile.primary_genre}"
    )
    return dna, profile
