"""Outfit and calendar schemas."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional


@dataclass
class AISuggestionData:
    """Generator output kept verbatim for later display."""

    style_description: str = ""
    reasoning: str = ""


@dataclass
class Outfit:
    id: int
    user_id: int
    name: str
    occasion: str
    created_at: datetime
    item_ids: List[int] = field(default_factory=list)
    weather_condition: Optional[str] = None
    rating: int = 0
    is_favorite: bool = False
    times_worn: int = 0
    last_worn: Optional[datetime] = None
    ai_generated: bool = False
    ai_suggestion_data: Optional[AISuggestionData] = None

    def __post_init__(self) -> None:
        self.item_ids = [int(item_id) for item_id in self.item_ids]
        if isinstance(self.ai_suggestion_data, dict):
            self.ai_suggestion_data = AISuggestionData(
                style_description=str(self.ai_suggestion_data.get("style_description", "")),
                reasoning=str(self.ai_suggestion_data.get("reasoning", "")),
            )


@dataclass
class OutfitCalendarEntry:
    """A planned day. The linked outfit is optional."""

    id: int
    user_id: int
    date: date
    created_at: datetime
    outfit_id: Optional[int] = None
    occasion: Optional[str] = None
    weather_condition: Optional[str] = None
    notes: Optional[str] = None
