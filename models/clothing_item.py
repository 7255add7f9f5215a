"""Clothing item data model and helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from models.taxonomy import validate_season


def _ensure_tags(values) -> List[str]:
    """Coerce tags into a list of trimmed, non-empty strings."""

    if values is None:
        return []
    if isinstance(values, str):
        values = values.split(",")
    return [str(tag).strip() for tag in values if str(tag).strip()]


@dataclass
class ClothingItem:
    """Represents one item in a user's wardrobe."""

    id: int
    user_id: int
    name: str
    category_id: int
    color: str
    season: str
    created_at: datetime
    brand: Optional[str] = None
    image_url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    is_favorite: bool = False
    times_worn: int = 0
    last_worn: Optional[datetime] = None
    purchase_date: Optional[date] = None
    price: Optional[int] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        self.season = validate_season(self.season)
        self.tags = _ensure_tags(self.tags)
        if self.times_worn < 0:
            raise ValueError("times_worn cannot be negative")


__all__ = ["ClothingItem"]
