"""Canonical taxonomy definitions for wardrobe entities.

This module centralises the enumerated domains for seasons, occasions and
weather, plus the default category set. Helper functions keep validation
logic consistent across the repository, agents and input schemas.
"""

from typing import Dict, List, Literal, Optional, get_args

Season = Literal["spring", "summer", "fall", "winter", "all"]
Occasion = Literal["work", "casual", "formal", "party", "workout", "date", "travel"]
WeatherCondition = Literal["sunny", "cloudy", "rainy", "snowy", "hot", "cold", "mild"]
StylePreference = Literal["casual", "formal", "minimalist", "trendy", "classic", "bohemian"]
Goal = Literal["organize", "discover", "plan", "shopping", "sustainable", "confidence"]

SEASONS: tuple = get_args(Season)
OCCASIONS: tuple = get_args(Occasion)
WEATHER_CONDITIONS: tuple = get_args(WeatherCondition)
STYLE_PREFERENCES: tuple = get_args(StylePreference)
GOALS: tuple = get_args(Goal)

DEFAULT_CATEGORIES: List[Dict[str, str]] = [
    {"name": "Tops", "icon": "fas fa-tshirt", "color": "#ec4899"},
    {"name": "Bottoms", "icon": "fas fa-user-tie", "color": "#3b82f6"},
    {"name": "Dresses", "icon": "fas fa-female", "color": "#8b5cf6"},
    {"name": "Shoes", "icon": "fas fa-shoe-prints", "color": "#10b981"},
    {"name": "Accessories", "icon": "fas fa-gem", "color": "#f59e0b"},
    {"name": "Outerwear", "icon": "fas fa-jacket", "color": "#6366f1"},
]
CATEGORY_LABELS: List[str] = [category["name"].lower() for category in DEFAULT_CATEGORIES]

# Seasons an item should suit for each weather condition; "all" always suits.
WEATHER_SEASONS: Dict[str, List[str]] = {
    "sunny": ["spring", "summer"],
    "hot": ["summer"],
    "mild": ["spring", "fall"],
    "cloudy": ["spring", "fall"],
    "rainy": ["spring", "fall"],
    "cold": ["fall", "winter"],
    "snowy": ["winter"],
}

_CATEGORY_SYNONYMS = {
    "top": "tops",
    "shirt": "tops",
    "bottom": "bottoms",
    "pants": "bottoms",
    "dress": "dresses",
    "shoe": "shoes",
    "footwear": "shoes",
    "accessory": "accessories",
    "jacket": "outerwear",
    "coat": "outerwear",
}


def _normalize_key(value: str) -> str:
    """Normalise a free-form string into a taxonomy key."""

    return value.strip().lower()


def validate_season(value: str) -> str:
    """Validate and normalise a season value.

    Raises a :class:`ValueError` if the season is not part of the taxonomy.
    """

    key = _normalize_key(value)
    if key not in SEASONS:
        raise ValueError(f"Unsupported season '{value}'. Allowed: {list(SEASONS)}")
    return key


def normalize_category_label(raw: Optional[str]) -> Optional[str]:
    """Map a raw classifier label onto one of the default category labels.

    Returns ``None`` when the label cannot be matched.
    """

    if not raw:
        return None
    key = _normalize_key(str(raw))
    if key in CATEGORY_LABELS:
        return key
    return _CATEGORY_SYNONYMS.get(key)


def season_suits_weather(season: str, weather: str) -> bool:
    """Return True when an item of ``season`` is appropriate for ``weather``."""

    if season == "all":
        return True
    return season in WEATHER_SEASONS.get(weather, [])


__all__ = [
    "Season",
    "Occasion",
    "WeatherCondition",
    "StylePreference",
    "Goal",
    "SEASONS",
    "OCCASIONS",
    "WEATHER_CONDITIONS",
    "STYLE_PREFERENCES",
    "GOALS",
    "DEFAULT_CATEGORIES",
    "CATEGORY_LABELS",
    "WEATHER_SEASONS",
    "validate_season",
    "normalize_category_label",
    "season_suits_weather",
]
