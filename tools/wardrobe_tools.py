"""Validated, instrumented wardrobe operations exposed to the HTTP layer."""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from agents.image_analysis import ImageAnalysisAgent, apply_analysis
from drobeo_app.errors import AnalysisFailedError, NotFoundError
from drobeo_app.logging_config import get_logger, log_event
from logic.validation import (
    CalendarEntryCreate,
    CalendarEntryUpdate,
    CalendarRangeQuery,
    CategoryCreate,
    ClothingItemCreate,
    ClothingItemUpdate,
    OutfitCreate,
    OutfitUpdate,
    WishlistItemCreate,
    WishlistItemUpdate,
    updates_from,
    validate_payload,
)
from logic.wardrobe_filters import ItemFilters, OutfitFilters
from models.serialization import to_payload
from tools.enrichment import (
    category_index,
    enrich_calendar_entry,
    enrich_item,
    enrich_items,
    enrich_outfit,
    enrich_outfits,
)
from tools.observability import instrument_tool
from tools.wardrobe_store import WardrobeStore

logger = get_logger(__name__)


def image_data_url(image: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"


class WardrobeTools:
    """Thin wrapper binding payload validation, ownership checks and enrichment to the store."""

    def __init__(self, store: WardrobeStore, image_analysis: Optional[ImageAnalysisAgent] = None) -> None:
        self.store = store
        self.image_analysis = image_analysis

    # Reference checks
    def _require_category(self, category_id: Optional[int]) -> None:
        if category_id is not None and self.store.get_category(category_id) is None:
            raise NotFoundError(f"Category {category_id} not found", details={"field": "categoryId"})

    def _require_items(self, user_id: int, item_ids: Optional[Iterable[int]]) -> None:
        missing = [item_id for item_id in item_ids or [] if self.store.get_clothing_item(user_id, item_id) is None]
        if missing:
            raise NotFoundError("Clothing items not found", details={"field": "itemIds", "ids": missing})

    def _require_outfit(self, user_id: int, outfit_id: Optional[int]) -> None:
        if outfit_id is not None and self.store.get_outfit(user_id, outfit_id) is None:
            raise NotFoundError(f"Outfit {outfit_id} not found", details={"field": "outfitId"})

    # Categories
    @instrument_tool("list_categories")
    def list_categories(self) -> List[Dict[str, Any]]:
        return [to_payload(category) for category in self.store.get_categories()]

    @instrument_tool("create_category")
    def create_category(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        request = validate_payload(CategoryCreate, payload)
        return to_payload(self.store.create_category(request.model_dump()))

    # Clothing items
    @instrument_tool("list_clothing_items")
    def list_clothing_items(self, user_id: int, filters: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        items = self.store.get_clothing_items(user_id, ItemFilters.from_mapping(dict(filters or {})))
        return enrich_items(self.store, items)

    @instrument_tool("recent_clothing_items")
    def recent_clothing_items(self, user_id: int, limit: int = 4) -> List[Dict[str, Any]]:
        return enrich_items(self.store, self.store.get_recent_items(user_id, limit))

    @instrument_tool("get_clothing_item")
    def get_clothing_item(self, user_id: int, item_id: int) -> Dict[str, Any]:
        item = self.store.get_clothing_item(user_id, item_id)
        if item is None:
            raise NotFoundError(f"Clothing item {item_id} not found")
        return enrich_item(item, category_index(self.store))

    @instrument_tool("add_clothing_item")
    def add_clothing_item(
        self,
        user_id: int,
        payload: Mapping[str, Any],
        image: Optional[bytes] = None,
        mime_type: str = "image/jpeg",
    ) -> Dict[str, Any]:
        """Create an item, filling missing attributes from the photo when one is attached.

        A failed analysis never blocks creation; the caller's values are used as sent.
        """

        fields = dict(payload)
        if image:
            if self.image_analysis is not None:
                try:
                    analysis = self.image_analysis.analyze(image, mime_type)
                    fields = apply_analysis(fields, analysis, self.store.get_categories())
                except AnalysisFailedError:
                    log_event(logger, logging.WARNING, "image_analysis_skipped", user_id=user_id)
            fields["imageUrl"] = image_data_url(image, mime_type)

        request = validate_payload(ClothingItemCreate, fields)
        self._require_category(request.category_id)
        item = self.store.create_clothing_item(user_id, request.model_dump())
        return enrich_item(item, category_index(self.store))

    @instrument_tool("update_clothing_item")
    def update_clothing_item(self, user_id: int, item_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        updates = updates_from(validate_payload(ClothingItemUpdate, payload))
        self._require_category(updates.get("category_id"))
        item = self.store.update_clothing_item(user_id, item_id, updates)
        return enrich_item(item, category_index(self.store))

    @instrument_tool("delete_clothing_item")
    def delete_clothing_item(self, user_id: int, item_id: int) -> None:
        self.store.delete_clothing_item(user_id, item_id)

    @instrument_tool("mark_item_worn")
    def mark_item_worn(self, user_id: int, item_id: int) -> Dict[str, Any]:
        item = self.store.mark_item_worn(user_id, item_id)
        return enrich_item(item, category_index(self.store))

    # Outfits
    @instrument_tool("list_outfits")
    def list_outfits(self, user_id: int, filters: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        outfits = self.store.get_outfits(user_id, OutfitFilters.from_mapping(dict(filters or {})))
        return enrich_outfits(self.store, outfits)

    @instrument_tool("get_outfit")
    def get_outfit(self, user_id: int, outfit_id: int) -> Dict[str, Any]:
        outfit = self.store.get_outfit(user_id, outfit_id)
        if outfit is None:
            raise NotFoundError(f"Outfit {outfit_id} not found")
        return enrich_outfit(self.store, outfit)

    @instrument_tool("create_outfit")
    def create_outfit(self, user_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        request = validate_payload(OutfitCreate, payload)
        self._require_items(user_id, request.item_ids)
        outfit = self.store.create_outfit(user_id, request.model_dump())
        return enrich_outfit(self.store, outfit)

    @instrument_tool("update_outfit")
    def update_outfit(self, user_id: int, outfit_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        updates = updates_from(validate_payload(OutfitUpdate, payload))
        self._require_items(user_id, updates.get("item_ids"))
        return enrich_outfit(self.store, self.store.update_outfit(user_id, outfit_id, updates))

    @instrument_tool("delete_outfit")
    def delete_outfit(self, user_id: int, outfit_id: int) -> None:
        self.store.delete_outfit(user_id, outfit_id)

    @instrument_tool("mark_outfit_worn")
    def mark_outfit_worn(self, user_id: int, outfit_id: int) -> Dict[str, Any]:
        return enrich_outfit(self.store, self.store.mark_outfit_worn(user_id, outfit_id))

    # Calendar
    @instrument_tool("list_calendar")
    def list_calendar(self, user_id: int, start_date: Any, end_date: Any) -> List[Dict[str, Any]]:
        query = validate_payload(CalendarRangeQuery, {"startDate": start_date, "endDate": end_date})
        entries = self.store.get_outfit_calendar(user_id, query.start_date, query.end_date)
        return [enrich_calendar_entry(self.store, entry) for entry in entries]

    @instrument_tool("create_calendar_entry")
    def create_calendar_entry(self, user_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        request = validate_payload(CalendarEntryCreate, payload)
        self._require_outfit(user_id, request.outfit_id)
        entry = self.store.create_calendar_entry(user_id, request.model_dump())
        return enrich_calendar_entry(self.store, entry)

    @instrument_tool("update_calendar_entry")
    def update_calendar_entry(self, user_id: int, entry_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        updates = updates_from(validate_payload(CalendarEntryUpdate, payload))
        self._require_outfit(user_id, updates.get("outfit_id"))
        entry = self.store.update_calendar_entry(user_id, entry_id, updates)
        return enrich_calendar_entry(self.store, entry)

    @instrument_tool("delete_calendar_entry")
    def delete_calendar_entry(self, user_id: int, entry_id: int) -> None:
        self.store.delete_calendar_entry(user_id, entry_id)

    # Wishlist
    @instrument_tool("list_wishlist")
    def list_wishlist(self, user_id: int) -> List[Dict[str, Any]]:
        return enrich_items(self.store, self.store.get_wishlist_items(user_id))

    @instrument_tool("create_wishlist_item")
    def create_wishlist_item(self, user_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        request = validate_payload(WishlistItemCreate, payload)
        self._require_category(request.category_id)
        item = self.store.create_wishlist_item(user_id, request.model_dump())
        return enrich_item(item, category_index(self.store))

    @instrument_tool("update_wishlist_item")
    def update_wishlist_item(self, user_id: int, item_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        updates = updates_from(validate_payload(WishlistItemUpdate, payload))
        self._require_category(updates.get("category_id"))
        item = self.store.update_wishlist_item(user_id, item_id, updates)
        return enrich_item(item, category_index(self.store))

    @instrument_tool("delete_wishlist_item")
    def delete_wishlist_item(self, user_id: int, item_id: int) -> None:
        self.store.delete_wishlist_item(user_id, item_id)

    # Stats
    @instrument_tool("get_user_stats")
    def get_user_stats(self, user_id: int) -> Dict[str, Any]:
        return to_payload(self.store.get_user_stats(user_id))


__all__ = ["WardrobeTools", "image_data_url"]
