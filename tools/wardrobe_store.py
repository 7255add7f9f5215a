"""Wardrobe storage abstractions and the in-memory implementation."""
from __future__ import annotations

import copy
import itertools
import threading
from dataclasses import fields as dataclass_fields, replace
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from drobeo_app.clock import Clock, utcnow
from drobeo_app.config import AppConfig
from drobeo_app.errors import ConflictError, NotFoundError
from logic.wardrobe_filters import (
    ItemFilters,
    OutfitFilters,
    calendar_in_range,
    filter_clothing_items,
    filter_outfits,
    order_wishlist,
    worn_percentage,
)
from models.clothing_item import ClothingItem
from models.outfit import Outfit, OutfitCalendarEntry
from models.taxonomy import DEFAULT_CATEGORIES
from models.user import PhoneVerification, User
from models.wardrobe import Category, UserStats, WishlistItem

T = TypeVar("T")

_PROTECTED_FIELDS = {"id", "user_id", "created_at"}


def merge_updates(current: T, updates: Dict[str, Any]) -> T:
    """Partial merge over an entity; server-owned and unknown keys are ignored."""

    known = {f.name for f in dataclass_fields(current)}  # type: ignore[arg-type]
    applied = {key: value for key, value in updates.items() if key in known and key not in _PROTECTED_FIELDS}
    return replace(current, **applied)  # type: ignore[type-var]


class WardrobeStore:
    """Persistence interface for every wardrobe entity.

    All user-owned lookups are scoped by ``user_id``; a record owned by a
    different user behaves exactly like a missing one.
    """

    clock: Clock = staticmethod(utcnow)

    # Users
    def create_user(self, fields: Dict[str, Any]) -> User:
        raise NotImplementedError

    def get_user(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_user_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def get_user_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def get_user_by_phone(self, phone_number: str) -> Optional[User]:
        raise NotImplementedError

    def update_user(self, user_id: int, updates: Dict[str, Any]) -> User:
        raise NotImplementedError

    # Categories
    def get_categories(self) -> List[Category]:
        raise NotImplementedError

    def get_category(self, category_id: int) -> Optional[Category]:
        raise NotImplementedError

    def create_category(self, fields: Dict[str, Any]) -> Category:
        raise NotImplementedError

    def seed_default_categories(self) -> List[Category]:
        existing = {category.name for category in self.get_categories()}
        for category in DEFAULT_CATEGORIES:
            if category["name"] not in existing:
                self.create_category(dict(category))
        return self.get_categories()

    # Clothing items
    def get_clothing_items(self, user_id: int, filters: Optional[ItemFilters] = None) -> List[ClothingItem]:
        raise NotImplementedError

    def get_clothing_item(self, user_id: int, item_id: int) -> Optional[ClothingItem]:
        raise NotImplementedError

    def get_recent_items(self, user_id: int, limit: int = 4) -> List[ClothingItem]:
        return self.get_clothing_items(user_id)[: max(0, limit)]

    def create_clothing_item(self, user_id: int, fields: Dict[str, Any]) -> ClothingItem:
        raise NotImplementedError

    def update_clothing_item(self, user_id: int, item_id: int, updates: Dict[str, Any]) -> ClothingItem:
        raise NotImplementedError

    def delete_clothing_item(self, user_id: int, item_id: int) -> None:
        raise NotImplementedError

    def mark_item_worn(self, user_id: int, item_id: int) -> ClothingItem:
        raise NotImplementedError

    # Outfits
    def get_outfits(self, user_id: int, filters: Optional[OutfitFilters] = None) -> List[Outfit]:
        raise NotImplementedError

    def get_outfit(self, user_id: int, outfit_id: int) -> Optional[Outfit]:
        raise NotImplementedError

    def create_outfit(self, user_id: int, fields: Dict[str, Any]) -> Outfit:
        return self.create_outfits(user_id, [fields])[0]

    def create_outfits(self, user_id: int, batch: List[Dict[str, Any]]) -> List[Outfit]:
        """Persist every outfit in ``batch`` or none of them."""

        raise NotImplementedError

    def update_outfit(self, user_id: int, outfit_id: int, updates: Dict[str, Any]) -> Outfit:
        raise NotImplementedError

    def delete_outfit(self, user_id: int, outfit_id: int) -> None:
        raise NotImplementedError

    def mark_outfit_worn(self, user_id: int, outfit_id: int) -> Outfit:
        raise NotImplementedError

    # Calendar
    def get_outfit_calendar(self, user_id: int, start: date, end: date) -> List[OutfitCalendarEntry]:
        raise NotImplementedError

    def get_calendar_entry(self, user_id: int, entry_id: int) -> Optional[OutfitCalendarEntry]:
        raise NotImplementedError

    def create_calendar_entry(self, user_id: int, fields: Dict[str, Any]) -> OutfitCalendarEntry:
        raise NotImplementedError

    def update_calendar_entry(self, user_id: int, entry_id: int, updates: Dict[str, Any]) -> OutfitCalendarEntry:
        raise NotImplementedError

    def delete_calendar_entry(self, user_id: int, entry_id: int) -> None:
        raise NotImplementedError

    # Wishlist
    def get_wishlist_items(self, user_id: int) -> List[WishlistItem]:
        raise NotImplementedError

    def get_wishlist_item(self, user_id: int, item_id: int) -> Optional[WishlistItem]:
        raise NotImplementedError

    def create_wishlist_item(self, user_id: int, fields: Dict[str, Any]) -> WishlistItem:
        raise NotImplementedError

    def update_wishlist_item(self, user_id: int, item_id: int, updates: Dict[str, Any]) -> WishlistItem:
        raise NotImplementedError

    def delete_wishlist_item(self, user_id: int, item_id: int) -> None:
        raise NotImplementedError

    # Phone verification
    def create_phone_verification(self, phone_number: str, code: str, expires_at: datetime) -> PhoneVerification:
        raise NotImplementedError

    def consume_phone_verification(self, phone_number: str, code: str, now: datetime) -> Optional[PhoneVerification]:
        """Atomically mark the matching unconsumed, unexpired record as consumed."""

        raise NotImplementedError

    # Stats
    def get_user_stats(self, user_id: int) -> UserStats:
        items = self.get_clothing_items(user_id)
        return UserStats(
            total_items=len(items),
            outfits_created=len(self.get_outfits(user_id)),
            items_worn_percentage=worn_percentage(items),
            wishlist_items=len(self.get_wishlist_items(user_id)),
        )


class InMemoryWardrobeStore(WardrobeStore):
    """Dictionary-backed store used by tests and local development.

    One lock guards every collection, so id assignment and read-modify-write
    updates never interleave.
    """

    _COLLECTIONS = (
        "users",
        "categories",
        "clothing_items",
        "outfits",
        "outfit_calendar",
        "wishlist_items",
        "phone_verifications",
    )

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or utcnow
        self._lock = threading.RLock()
        self._tables: Dict[str, Dict[int, Any]] = {name: {} for name in self._COLLECTIONS}
        self._sequences = {name: itertools.count(1) for name in self._COLLECTIONS}

    def _next_id(self, collection: str) -> int:
        return next(self._sequences[collection])

    def _rows(self, collection: str) -> Iterable[Any]:
        return self._tables[collection].values()

    def _owned(self, collection: str, user_id: int) -> List[Any]:
        return [copy.deepcopy(row) for row in self._rows(collection) if row.user_id == user_id]

    def _get_owned(self, collection: str, user_id: int, record_id: int) -> Optional[Any]:
        record = self._tables[collection].get(record_id)
        if record is None or record.user_id != user_id:
            return None
        return copy.deepcopy(record)

    def _require_owned(self, collection: str, user_id: int, record_id: int, label: str) -> Any:
        record = self._get_owned(collection, user_id, record_id)
        if record is None:
            raise NotFoundError(f"{label} {record_id} not found")
        return record

    def _store(self, collection: str, record: Any) -> Any:
        self._tables[collection][record.id] = record
        return copy.deepcopy(record)

    def _delete_owned(self, collection: str, user_id: int, record_id: int, label: str) -> None:
        with self._lock:
            self._require_owned(collection, user_id, record_id, label)
            del self._tables[collection][record_id]

    def _update_owned(
        self, collection: str, user_id: int, record_id: int, updates: Dict[str, Any], label: str
    ) -> Any:
        with self._lock:
            current = self._require_owned(collection, user_id, record_id, label)
            return self._store(collection, merge_updates(current, updates))

    # Users
    def _check_user_unique(self, candidate: User) -> None:
        for user in self._rows("users"):
            if user.id == candidate.id:
                continue
            if user.username == candidate.username:
                raise ConflictError("Username already taken")
            if candidate.email and user.email == candidate.email:
                raise ConflictError("User already exists with this email")
            if candidate.phone_number and user.phone_number == candidate.phone_number:
                raise ConflictError("Phone number already registered")

    def create_user(self, fields: Dict[str, Any]) -> User:
        with self._lock:
            user = User(id=0, created_at=self.clock(), **fields)
            self._check_user_unique(user)
            return self._store("users", replace(user, id=self._next_id("users")))

    def get_user(self, user_id: int) -> Optional[User]:
        user = self._tables["users"].get(user_id)
        return copy.deepcopy(user) if user else None

    def _find_user(self, predicate: Callable[[User], bool]) -> Optional[User]:
        for user in self._rows("users"):
            if predicate(user):
                return copy.deepcopy(user)
        return None

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._find_user(lambda user: user.email == email)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self._find_user(lambda user: user.username == username)

    def get_user_by_phone(self, phone_number: str) -> Optional[User]:
        return self._find_user(lambda user: user.phone_number == phone_number)

    def update_user(self, user_id: int, updates: Dict[str, Any]) -> User:
        with self._lock:
            current = self.get_user(user_id)
            if current is None:
                raise NotFoundError(f"User {user_id} not found")
            updated = merge_updates(current, updates)
            self._check_user_unique(updated)
            return self._store("users", updated)

    # Categories
    def get_categories(self) -> List[Category]:
        return sorted((copy.deepcopy(c) for c in self._rows("categories")), key=lambda c: c.id)

    def get_category(self, category_id: int) -> Optional[Category]:
        category = self._tables["categories"].get(category_id)
        return copy.deepcopy(category) if category else None

    def create_category(self, fields: Dict[str, Any]) -> Category:
        with self._lock:
            if any(category.name == fields.get("name") for category in self._rows("categories")):
                raise ConflictError(f"Category '{fields.get('name')}' already exists")
            return self._store("categories", Category(id=self._next_id("categories"), **fields))

    # Clothing items
    def get_clothing_items(self, user_id: int, filters: Optional[ItemFilters] = None) -> List[ClothingItem]:
        with self._lock:
            return filter_clothing_items(self._owned("clothing_items", user_id), filters)

    def get_clothing_item(self, user_id: int, item_id: int) -> Optional[ClothingItem]:
        return self._get_owned("clothing_items", user_id, item_id)

    def create_clothing_item(self, user_id: int, fields: Dict[str, Any]) -> ClothingItem:
        with self._lock:
            item = ClothingItem(
                id=self._next_id("clothing_items"),
                user_id=user_id,
                created_at=self.clock(),
                **{**fields, "times_worn": 0, "last_worn": None},
            )
            return self._store("clothing_items", item)

    def update_clothing_item(self, user_id: int, item_id: int, updates: Dict[str, Any]) -> ClothingItem:
        return self._update_owned("clothing_items", user_id, item_id, updates, "Clothing item")

    def delete_clothing_item(self, user_id: int, item_id: int) -> None:
        self._delete_owned("clothing_items", user_id, item_id, "Clothing item")

    def mark_item_worn(self, user_id: int, item_id: int) -> ClothingItem:
        with self._lock:
            item = self._require_owned("clothing_items", user_id, item_id, "Clothing item")
            return self._store(
                "clothing_items", replace(item, times_worn=item.times_worn + 1, last_worn=self.clock())
            )

    # Outfits
    def get_outfits(self, user_id: int, filters: Optional[OutfitFilters] = None) -> List[Outfit]:
        with self._lock:
            return filter_outfits(self._owned("outfits", user_id), filters)

    def get_outfit(self, user_id: int, outfit_id: int) -> Optional[Outfit]:
        return self._get_owned("outfits", user_id, outfit_id)

    def create_outfits(self, user_id: int, batch: List[Dict[str, Any]]) -> List[Outfit]:
        with self._lock:
            now = self.clock()
            # Build every record before touching the table so a bad entry stores nothing.
            drafts = [
                Outfit(id=0, user_id=user_id, created_at=now, **{**fields, "times_worn": 0, "last_worn": None})
                for fields in batch
            ]
            return [self._store("outfits", replace(draft, id=self._next_id("outfits"))) for draft in drafts]

    def update_outfit(self, user_id: int, outfit_id: int, updates: Dict[str, Any]) -> Outfit:
        return self._update_owned("outfits", user_id, outfit_id, updates, "Outfit")

    def delete_outfit(self, user_id: int, outfit_id: int) -> None:
        self._delete_owned("outfits", user_id, outfit_id, "Outfit")

    def mark_outfit_worn(self, user_id: int, outfit_id: int) -> Outfit:
        with self._lock:
            outfit = self._require_owned("outfits", user_id, outfit_id, "Outfit")
            return self._store(
                "outfits", replace(outfit, times_worn=outfit.times_worn + 1, last_worn=self.clock())
            )

    # Calendar
    def get_outfit_calendar(self, user_id: int, start: date, end: date) -> List[OutfitCalendarEntry]:
        with self._lock:
            return calendar_in_range(self._owned("outfit_calendar", user_id), start, end)

    def get_calendar_entry(self, user_id: int, entry_id: int) -> Optional[OutfitCalendarEntry]:
        return self._get_owned("outfit_calendar", user_id, entry_id)

    def create_calendar_entry(self, user_id: int, fields: Dict[str, Any]) -> OutfitCalendarEntry:
        with self._lock:
            entry = OutfitCalendarEntry(
                id=self._next_id("outfit_calendar"), user_id=user_id, created_at=self.clock(), **fields
            )
            return self._store("outfit_calendar", entry)

    def update_calendar_entry(self, user_id: int, entry_id: int, updates: Dict[str, Any]) -> OutfitCalendarEntry:
        return self._update_owned("outfit_calendar", user_id, entry_id, updates, "Calendar entry")

    def delete_calendar_entry(self, user_id: int, entry_id: int) -> None:
        self._delete_owned("outfit_calendar", user_id, entry_id, "Calendar entry")

    # Wishlist
    def get_wishlist_items(self, user_id: int) -> List[WishlistItem]:
        with self._lock:
            return order_wishlist(self._owned("wishlist_items", user_id))

    def get_wishlist_item(self, user_id: int, item_id: int) -> Optional[WishlistItem]:
        return self._get_owned("wishlist_items", user_id, item_id)

    def create_wishlist_item(self, user_id: int, fields: Dict[str, Any]) -> WishlistItem:
        with self._lock:
            item = WishlistItem(id=self._next_id("wishlist_items"), user_id=user_id, created_at=self.clock(), **fields)
            return self._store("wishlist_items", item)

    def update_wishlist_item(self, user_id: int, item_id: int, updates: Dict[str, Any]) -> WishlistItem:
        return self._update_owned("wishlist_items", user_id, item_id, updates, "Wishlist item")

    def delete_wishlist_item(self, user_id: int, item_id: int) -> None:
        self._delete_owned("wishlist_items", user_id, item_id, "Wishlist item")

    # Phone verification
    def create_phone_verification(self, phone_number: str, code: str, expires_at: datetime) -> PhoneVerification:
        with self._lock:
            record = PhoneVerification(
                id=self._next_id("phone_verifications"),
                phone_number=phone_number,
                code=code,
                expires_at=expires_at,
                created_at=self.clock(),
            )
            return self._store("phone_verifications", record)

    def consume_phone_verification(self, phone_number: str, code: str, now: datetime) -> Optional[PhoneVerification]:
        with self._lock:
            candidates = sorted(
                (r for r in self._rows("phone_verifications") if r.matches(phone_number, code, now)),
                key=lambda r: r.id,
                reverse=True,
            )
            if not candidates:
                return None
            return self._store("phone_verifications", replace(candidates[0], consumed=True))


def build_store(config: AppConfig, clock: Clock | None = None) -> WardrobeStore:
    """Return the configured store backend with default categories seeded."""

    backend = config.storage_backend
    if backend == "sqlite":
        from tools.sqlite_wardrobe_store import SQLiteWardrobeStore

        store: WardrobeStore = SQLiteWardrobeStore(config.database_path or "data/drobeo.db", clock=clock)
    elif backend == "memory":
        store = InMemoryWardrobeStore(clock=clock)
    else:
        raise ValueError(f"Unsupported storage backend '{backend}'")
    store.seed_default_categories()
    return store


__all__ = ["WardrobeStore", "InMemoryWardrobeStore", "build_store", "merge_updates"]
