"""Normalisation rules for outfit suggestions returned by the generator."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.taxonomy import OCCASIONS, WEATHER_CONDITIONS

MAX_SUGGESTIONS = 3
DEFAULT_RATING = 4
MIN_RATING = 1
MAX_RATING = 5


class RawSuggestion(BaseModel):
    """One generator suggestion as received; every field is optional."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: Optional[str] = None
    items: List[Any] = Field(default_factory=list)
    occasion: Optional[str] = None
    weather_condition: Optional[str] = Field(default=None, alias="weatherCondition")
    style_description: Optional[str] = Field(default=None, alias="styleDescription")
    rating: Any = None
    reasoning: Optional[str] = None

    @field_validator("items", mode="before")
    @classmethod
    def listify(cls, value: Any) -> Any:
        return [] if value is None else value


class GeneratorResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    outfits: List[RawSuggestion] = Field(default_factory=list)


@dataclass
class OutfitSuggestion:
    """A suggestion ready to persist as an AI-generated outfit."""

    name: str
    item_ids: List[int]
    occasion: str
    weather_condition: str
    style_description: str
    reasoning: str
    rating: int
    dropped_item_ids: List[Any] = field(default_factory=list)


def clamp_rating(raw: Any) -> int:
    """Missing, zero or non-numeric ratings become 4; others are clamped to 1..5."""

    if isinstance(raw, bool):
        return DEFAULT_RATING
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return DEFAULT_RATING
    if math.isnan(value) or value == 0:
        return DEFAULT_RATING
    return int(max(MIN_RATING, min(MAX_RATING, math.floor(value + 0.5))))


def _coerce_id(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    return None


def _enum_or_default(raw: Optional[str], allowed: Collection[str], default: str) -> str:
    key = (raw or "").strip().lower()
    return key if key in allowed else default


def parse_generator_response(payload: Dict[str, Any]) -> GeneratorResponse:
    """Validate the response envelope; raises ``pydantic.ValidationError`` if malformed."""

    return GeneratorResponse.model_validate(payload)


def normalise_suggestions(
    response: GeneratorResponse,
    occasion: str,
    weather_condition: str,
    wardrobe_ids: Collection[int],
) -> List[OutfitSuggestion]:
    """Apply defaults and clamps, keeping only ids present in ``wardrobe_ids``."""

    owned = set(wardrobe_ids)
    suggestions = []
    for index, raw in enumerate(response.outfits[:MAX_SUGGESTIONS], start=1):
        kept: List[int] = []
        dropped: List[Any] = []
        for raw_id in raw.items:
            item_id = _coerce_id(raw_id)
            if item_id is not None and item_id in owned and item_id not in kept:
                kept.append(item_id)
            else:
                dropped.append(raw_id)
        suggestions.append(
            OutfitSuggestion(
                name=(raw.name or "").strip() or f"AI Outfit {index}",
                item_ids=kept,
                occasion=_enum_or_default(raw.occasion, OCCASIONS, occasion),
                weather_condition=_enum_or_default(raw.weather_condition, WEATHER_CONDITIONS, weather_condition),
                style_description=raw.style_description or "",
                reasoning=raw.reasoning or "",
                rating=clamp_rating(raw.rating),
                dropped_item_ids=dropped,
            )
        )
    return suggestions


__all__ = [
    "MAX_SUGGESTIONS",
    "RawSuggestion",
    "GeneratorResponse",
    "OutfitSuggestion",
    "clamp_rating",
    "parse_generator_response",
    "normalise_suggestions",
]
