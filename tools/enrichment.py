"""Resolve foreign-key ids into the records clients render alongside an entity."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from models.clothing_item import ClothingItem
from models.outfit import Outfit, OutfitCalendarEntry
from models.serialization import to_payload
from models.wardrobe import Category, WishlistItem
from tools.wardrobe_store import WardrobeStore


def category_index(store: WardrobeStore) -> Dict[int, Category]:
    return {category.id: category for category in store.get_categories()}


def enrich_item(item: ClothingItem | WishlistItem, categories: Dict[int, Category]) -> Dict[str, Any]:
    """Embed the category record; clothing and wishlist items both carry ``category_id``."""

    return to_payload(item, category=categories.get(item.category_id))


def enrich_items(store: WardrobeStore, items: Sequence[ClothingItem | WishlistItem]) -> List[Dict[str, Any]]:
    categories = category_index(store)
    return [enrich_item(item, categories) for item in items]


def resolve_outfit_items(store: WardrobeStore, outfit: Outfit) -> List[ClothingItem]:
    """Items referenced by ``outfit``; ids that no longer resolve are skipped."""

    resolved = []
    for item_id in outfit.item_ids:
        item = store.get_clothing_item(outfit.user_id, item_id)
        if item is not None:
            resolved.append(item)
    return resolved


def enrich_outfit(store: WardrobeStore, outfit: Outfit) -> Dict[str, Any]:
    return to_payload(outfit, items=resolve_outfit_items(store, outfit))


def enrich_outfits(store: WardrobeStore, outfits: List[Outfit]) -> List[Dict[str, Any]]:
    return [enrich_outfit(store, outfit) for outfit in outfits]


def enrich_calendar_entry(store: WardrobeStore, entry: OutfitCalendarEntry) -> Dict[str, Any]:
    outfit: Optional[Outfit] = None
    if entry.outfit_id is not None:
        outfit = store.get_outfit(entry.user_id, entry.outfit_id)
    return to_payload(entry, outfit=outfit)


__all__ = [
    "category_index",
    "enrich_item",
    "enrich_items",
    "resolve_outfit_items",
    "enrich_outfit",
    "enrich_outfits",
    "enrich_calendar_entry",
]
