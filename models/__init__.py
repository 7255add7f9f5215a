"""Model package exports."""

from models.taxonomy import *  # noqa: F401,F403
from models.clothing_item import ClothingItem
from models.outfit import AISuggestionData, Outfit, OutfitCalendarEntry
from models.user import PhoneVerification, User, UserPreferences
from models.wardrobe import Category, UserStats, WishlistItem

__all__ = [
    "AISuggestionData",
    "Category",
    "ClothingItem",
    "Outfit",
    "OutfitCalendarEntry",
    "PhoneVerification",
    "User",
    "UserPreferences",
    "UserStats",
    "WishlistItem",
]
