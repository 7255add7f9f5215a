"""Pydantic schemas for validating every create/update payload.

Payloads arrive camelCase from clients; snake_case names are accepted as well.
Unknown keys are rejected, which also rejects server-assigned fields such as
``id``, ``createdAt``, ``timesWorn`` and ``lastWorn`` on insert.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from drobeo_app.errors import ValidationFailedError
from models.taxonomy import Goal, Occasion, Season, StylePreference, WeatherCondition

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


def _day_only(value: Any) -> Any:
    # Clients may send full ISO timestamps; only the day matters.
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    if isinstance(value, dt.datetime):
        return value.date()
    return value


def _not_null(value: Any) -> Any:
    if value is None:
        raise ValueError("may not be null")
    return value


def _clean_tags(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(tag).strip() for tag in value if str(tag).strip()]


class ClothingItemCreate(_Payload):
    name: str = Field(min_length=1)
    category_id: int = Field(gt=0)
    color: str = Field(min_length=1)
    season: Season
    brand: Optional[str] = None
    image_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_favorite: bool = False
    purchase_date: Optional[dt.date] = None
    price: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None

    normalise_tags = field_validator("tags", mode="before")(_clean_tags)
    strip_time = field_validator("purchase_date", mode="before")(_day_only)


class ClothingItemUpdate(_Payload):
    name: Optional[str] = Field(default=None, min_length=1)
    category_id: Optional[int] = Field(default=None, gt=0)
    color: Optional[str] = Field(default=None, min_length=1)
    season: Optional[Season] = None
    brand: Optional[str] = None
    image_url: Optional[str] = None
    tags: Optional[List[str]] = None
    is_favorite: Optional[bool] = None
    purchase_date: Optional[dt.date] = None
    price: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None

    required = field_validator("name", "category_id", "color", "season", "is_favorite", mode="before")(_not_null)
    normalise_tags = field_validator("tags", mode="before")(_clean_tags)
    strip_time = field_validator("purchase_date", mode="before")(_day_only)


class AISuggestionPayload(_Payload):
    style_description: str = ""
    reasoning: str = ""


class OutfitCreate(_Payload):
    name: str = Field(min_length=1)
    item_ids: List[int] = Field(min_length=1)
    occasion: Occasion
    weather_condition: Optional[WeatherCondition] = None
    rating: int = Field(default=0, ge=0, le=5)
    is_favorite: bool = False
    ai_generated: bool = False
    ai_suggestion_data: Optional[AISuggestionPayload] = None


class OutfitUpdate(_Payload):
    name: Optional[str] = Field(default=None, min_length=1)
    item_ids: Optional[List[int]] = Field(default=None, min_length=1)
    occasion: Optional[Occasion] = None
    weather_condition: Optional[WeatherCondition] = None
    rating: Optional[int] = Field(default=None, ge=0, le=5)
    is_favorite: Optional[bool] = None

    required = field_validator("name", "item_ids", "occasion", "rating", "is_favorite", mode="before")(_not_null)


class CalendarEntryCreate(_Payload):
    date: dt.date
    outfit_id: Optional[int] = Field(default=None, gt=0)
    occasion: Optional[Occasion] = None
    weather_condition: Optional[WeatherCondition] = None
    notes: Optional[str] = None

    strip_time = field_validator("date", mode="before")(_day_only)


class CalendarEntryUpdate(_Payload):
    date: Optional[dt.date] = None
    outfit_id: Optional[int] = Field(default=None, gt=0)
    occasion: Optional[Occasion] = None
    weather_condition: Optional[WeatherCondition] = None
    notes: Optional[str] = None

    required = field_validator("date", mode="before")(_not_null)
    strip_time = field_validator("date", mode="before")(_day_only)


class CalendarRangeQuery(_Payload):
    start_date: dt.date
    end_date: dt.date

    strip_time = field_validator("start_date", "end_date", mode="before")(_day_only)


class WishlistItemCreate(_Payload):
    name: str = Field(min_length=1)
    category_id: int = Field(gt=0)
    brand: Optional[str] = None
    color: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[int] = Field(default=None, ge=0)
    store_url: Optional[str] = None
    priority: int = Field(default=1, ge=1, le=5)
    notes: Optional[str] = None


class WishlistItemUpdate(_Payload):
    name: Optional[str] = Field(default=None, min_length=1)
    category_id: Optional[int] = Field(default=None, gt=0)
    brand: Optional[str] = None
    color: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[int] = Field(default=None, ge=0)
    store_url: Optional[str] = None
    priority: Optional[int] = Field(default=None, ge=1, le=5)
    notes: Optional[str] = None

    required = field_validator("name", "category_id", "priority", mode="before")(_not_null)


class CategoryCreate(_Payload):
    name: str = Field(min_length=1)
    icon: str = Field(min_length=1)
    color: str = Field(min_length=1)


class SignupRequest(_Payload):
    username: str = Field(min_length=3)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    name: str = Field(min_length=1)
    password: str = Field(min_length=8)
    avatar: Optional[str] = None


class PreferencesPayload(_Payload):
    styles: List[StylePreference] = Field(default_factory=list)
    seasons: List[Season] = Field(default_factory=list)
    occasions: List[Occasion] = Field(default_factory=list)
    goals: List[Goal] = Field(default_factory=list)
    age_range: Optional[str] = None
    gender: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def accept_age_range_key(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if "age" in data:
                data.setdefault("ageRange", data.pop("age"))
        return data


class PhoneCodeRequest(_Payload):
    phone_number: str = Field(min_length=7, max_length=20, pattern=r"^\+?[0-9 ()\-]+$")


class PhoneVerifyRequest(PhoneCodeRequest):
    code: str = Field(pattern=r"^\d{6}$")
    name: Optional[str] = Field(default=None, min_length=1)


class OutfitGenerationRequest(_Payload):
    occasion: Occasion
    weather_condition: WeatherCondition
    style: Optional[str] = None
    colors: List[str] = Field(default_factory=list)

    @field_validator("colors", mode="before")
    @classmethod
    def split_colors(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class StyleAdviceRequest(_Payload):
    question: str = Field(min_length=1, max_length=2000)


def validate_payload(schema: Type[SchemaT], payload: Optional[Mapping[str, Any]]) -> SchemaT:
    """Validate ``payload`` against ``schema`` or raise :class:`ValidationFailedError`."""

    if isinstance(payload, schema):
        return payload
    try:
        return schema.model_validate(dict(payload or {}))
    except ValidationError as exc:
        raise ValidationFailedError.from_pydantic(f"Invalid {schema.__name__} payload", exc) from exc


def updates_from(model: BaseModel) -> Dict[str, Any]:
    """Return only the fields a partial update actually set."""

    return model.model_dump(exclude_unset=True)


__all__ = [
    "ClothingItemCreate",
    "ClothingItemUpdate",
    "OutfitCreate",
    "OutfitUpdate",
    "CalendarEntryCreate",
    "CalendarEntryUpdate",
    "CalendarRangeQuery",
    "WishlistItemCreate",
    "WishlistItemUpdate",
    "CategoryCreate",
    "SignupRequest",
    "PreferencesPayload",
    "PhoneCodeRequest",
    "PhoneVerifyRequest",
    "OutfitGenerationRequest",
    "StyleAdviceRequest",
    "validate_payload",
    "updates_from",
]
