"""Deterministic filtering and ordering rules shared by every store backend."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from drobeo_app.errors import ValidationFailedError
from models.clothing_item import ClothingItem
from models.outfit import Outfit, OutfitCalendarEntry
from models.taxonomy import season_suits_weather
from models.wardrobe import WishlistItem

_BOOLEAN_WORDS = {"true": True, "false": False}


@dataclass(frozen=True)
class ItemFilters:
    """Optional clothing item filters; unset fields match everything."""

    category_id: Optional[int] = None
    season: Optional[str] = None
    color: Optional[str] = None
    search: Optional[str] = None

    @classmethod
    def from_mapping(cls, raw: Optional[Dict[str, Any]]) -> "ItemFilters":
        raw = raw or {}
        category_id = raw.get("category_id", raw.get("categoryId"))
        if category_id in (None, ""):
            category_id = None
        else:
            try:
                category_id = int(category_id)
            except (TypeError, ValueError) as exc:
                raise ValidationFailedError.for_field("categoryId", "Category id must be an integer") from exc
        return cls(
            category_id=category_id,
            season=raw.get("season") or None,
            color=raw.get("color") or None,
            search=raw.get("search") or None,
        )


@dataclass(frozen=True)
class OutfitFilters:
    occasion: Optional[str] = None
    weather_condition: Optional[str] = None
    ai_generated: Optional[bool] = None

    @classmethod
    def from_mapping(cls, raw: Optional[Dict[str, Any]]) -> "OutfitFilters":
        raw = raw or {}
        ai_generated = raw.get("ai_generated", raw.get("aiGenerated"))
        if isinstance(ai_generated, str):
            ai_generated = _BOOLEAN_WORDS.get(ai_generated.strip().lower(), ai_generated)
        if ai_generated is not None and not isinstance(ai_generated, bool):
            raise ValidationFailedError.for_field("aiGenerated", "aiGenerated must be true or false")
        return cls(
            occasion=raw.get("occasion") or None,
            weather_condition=raw.get("weather_condition", raw.get("weatherCondition")) or None,
            ai_generated=ai_generated,
        )


def item_matches(item: ClothingItem, filters: ItemFilters) -> bool:
    if filters.category_id is not None and item.category_id != filters.category_id:
        return False
    if filters.season and not (item.season == filters.season or item.season == "all"):
        return False
    if filters.color and filters.color.lower() not in item.color.lower():
        return False
    if filters.search:
        term = filters.search.lower()
        haystack = [item.name, item.brand or "", *item.tags]
        if not any(term in value.lower() for value in haystack):
            return False
    return True


def outfit_matches(outfit: Outfit, filters: OutfitFilters) -> bool:
    if filters.occasion and outfit.occasion != filters.occasion:
        return False
    if filters.weather_condition and outfit.weather_condition != filters.weather_condition:
        return False
    if filters.ai_generated is not None and outfit.ai_generated != filters.ai_generated:
        return False
    return True


def newest_first(records: Iterable[Any]) -> List[Any]:
    """Order by creation time descending; equal timestamps fall back to id."""

    return sorted(records, key=lambda record: (record.created_at, record.id), reverse=True)


def filter_clothing_items(items: Iterable[ClothingItem], filters: Optional[ItemFilters]) -> List[ClothingItem]:
    filters = filters or ItemFilters()
    return newest_first(item for item in items if item_matches(item, filters))


def filter_outfits(outfits: Iterable[Outfit], filters: Optional[OutfitFilters]) -> List[Outfit]:
    filters = filters or OutfitFilters()
    return newest_first(outfit for outfit in outfits if outfit_matches(outfit, filters))


def calendar_in_range(
    entries: Iterable[OutfitCalendarEntry], start: date, end: date
) -> List[OutfitCalendarEntry]:
    """Inclusive date range, ascending by date then id."""

    selected = [entry for entry in entries if start <= entry.date <= end]
    return sorted(selected, key=lambda entry: (entry.date, entry.id))


def order_wishlist(items: Iterable[WishlistItem]) -> List[WishlistItem]:
    """Highest priority first; ties broken newest-created-first."""

    return sorted(items, key=lambda item: (item.priority, item.created_at, item.id), reverse=True)


def worn_percentage(items: List[ClothingItem]) -> int:
    if not items:
        return 0
    worn = sum(1 for item in items if item.times_worn > 0)
    # Half-up rounding, so 12.5 reports as 13.
    return math.floor(100 * worn / len(items) + 0.5)


def rank_for_freshness(items: Iterable[ClothingItem]) -> List[ClothingItem]:
    """Least-worn items first so suggestions rotate the wardrobe."""

    return sorted(newest_first(items), key=lambda item: item.times_worn)


def weather_suitable(item: ClothingItem, weather: str) -> bool:
    return season_suits_weather(item.season, weather)


__all__ = [
    "ItemFilters",
    "OutfitFilters",
    "item_matches",
    "outfit_matches",
    "newest_first",
    "filter_clothing_items",
    "filter_outfits",
    "calendar_in_range",
    "order_wishlist",
    "worn_percentage",
    "rank_for_freshness",
    "weather_suitable",
]
