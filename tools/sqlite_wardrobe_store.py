"""SQLite implementation of the wardrobe store."""
from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import closing, contextmanager
from dataclasses import asdict, dataclass, field, fields as dataclass_fields, replace
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Type

from drobeo_app.clock import Clock, utcnow
from drobeo_app.errors import ConflictError, NotFoundError, ValidationFailedError, WardrobeError
from logic.wardrobe_filters import (
    ItemFilters,
    OutfitFilters,
    calendar_in_range,
    filter_clothing_items,
    filter_outfits,
    order_wishlist,
)
from models.clothing_item import ClothingItem
from models.outfit import Outfit, OutfitCalendarEntry
from models.user import PhoneVerification, User
from models.wardrobe import Category, WishlistItem
from tools.wardrobe_store import WardrobeStore, merge_updates

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL,
    email TEXT UNIQUE,
    password_hash TEXT,
    phone_number TEXT UNIQUE,
    phone_verified INTEGER NOT NULL DEFAULT 0,
    avatar TEXT,
    onboarding_complete INTEGER NOT NULL DEFAULT 0,
    preferences TEXT
);
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    icon TEXT NOT NULL,
    color TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS clothing_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    category_id INTEGER NOT NULL,
    color TEXT NOT NULL,
    season TEXT NOT NULL,
    created_at TEXT NOT NULL,
    brand TEXT,
    image_url TEXT,
    tags TEXT,
    is_favorite INTEGER NOT NULL DEFAULT 0,
    times_worn INTEGER NOT NULL DEFAULT 0,
    last_worn TEXT,
    purchase_date TEXT,
    price INTEGER,
    notes TEXT
);
CREATE TABLE IF NOT EXISTS outfits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    occasion TEXT NOT NULL,
    created_at TEXT NOT NULL,
    item_ids TEXT NOT NULL,
    weather_condition TEXT,
    rating INTEGER NOT NULL DEFAULT 0,
    is_favorite INTEGER NOT NULL DEFAULT 0,
    times_worn INTEGER NOT NULL DEFAULT 0,
    last_worn TEXT,
    ai_generated INTEGER NOT NULL DEFAULT 0,
    ai_suggestion_data TEXT
);
CREATE TABLE IF NOT EXISTS outfit_calendar (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    date TEXT NOT NULL,
    created_at TEXT NOT NULL,
    outfit_id INTEGER,
    occasion TEXT,
    weather_condition TEXT,
    notes TEXT
);
CREATE TABLE IF NOT EXISTS wishlist_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    category_id INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    brand TEXT,
    color TEXT,
    image_url TEXT,
    price INTEGER,
    store_url TEXT,
    priority INTEGER NOT NULL DEFAULT 1,
    notes TEXT
);
CREATE TABLE IF NOT EXISTS phone_verifications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    phone_number TEXT NOT NULL,
    code TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    created_at TEXT NOT NULL,
    consumed INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_clothing_items_user ON clothing_items (user_id);
CREATE INDEX IF NOT EXISTS idx_outfits_user ON outfits (user_id);
CREATE INDEX IF NOT EXISTS idx_calendar_user_date ON outfit_calendar (user_id, date);
CREATE INDEX IF NOT EXISTS idx_wishlist_user ON wishlist_items (user_id);
CREATE INDEX IF NOT EXISTS idx_verifications_phone ON phone_verifications (phone_number);
"""

_CONFLICT_MESSAGES = {
    "users.username": "Username already taken",
    "users.email": "User already exists with this email",
    "users.phone_number": "Phone number already registered",
    "categories.name": "Category already exists",
}


@dataclass(frozen=True)
class _Table:
    """How one entity dataclass maps onto its table's columns."""

    name: str
    entity: Type[Any]
    label: str
    json_columns: frozenset = field(default_factory=frozenset)
    datetime_columns: frozenset = field(default_factory=frozenset)
    date_columns: frozenset = field(default_factory=frozenset)
    bool_columns: frozenset = field(default_factory=frozenset)

    @property
    def columns(self) -> List[str]:
        return [f.name for f in dataclass_fields(self.entity) if f.name != "id"]

    def to_row(self, record: Any) -> List[Any]:
        values = asdict(record)
        row = []
        for column in self.columns:
            value = values[column]
            if column in self.json_columns:
                value = json.dumps(value) if value is not None else None
            elif isinstance(value, (datetime, date)):
                value = value.isoformat()
            elif column in self.bool_columns:
                value = int(bool(value))
            row.append(value)
        return row

    def from_row(self, row: sqlite3.Row) -> Any:
        values: Dict[str, Any] = {"id": row["id"]}
        for column in self.columns:
            value = row[column]
            if value is not None and column in self.json_columns:
                value = json.loads(value)
            elif value is not None and column in self.datetime_columns:
                value = datetime.fromisoformat(value)
            elif value is not None and column in self.date_columns:
                value = date.fromisoformat(value)
            elif column in self.bool_columns:
                value = bool(value)
            values[column] = value
        return self.entity(**values)


USERS = _Table(
    "users",
    User,
    "User",
    json_columns=frozenset({"preferences"}),
    datetime_columns=frozenset({"created_at"}),
    bool_columns=frozenset({"phone_verified", "onboarding_complete"}),
)
CATEGORIES = _Table("categories", Category, "Category")
CLOTHING_ITEMS = _Table(
    "clothing_items",
    ClothingItem,
    "Clothing item",
    json_columns=frozenset({"tags"}),
    datetime_columns=frozenset({"created_at", "last_worn"}),
    date_columns=frozenset({"purchase_date"}),
    bool_columns=frozenset({"is_favorite"}),
)
OUTFITS = _Table(
    "outfits",
    Outfit,
    "Outfit",
    json_columns=frozenset({"item_ids", "ai_suggestion_data"}),
    datetime_columns=frozenset({"created_at", "last_worn"}),
    bool_columns=frozenset({"is_favorite", "ai_generated"}),
)
CALENDAR = _Table(
    "outfit_calendar",
    OutfitCalendarEntry,
    "Calendar entry",
    datetime_columns=frozenset({"created_at"}),
    date_columns=frozenset({"date"}),
)
WISHLIST = _Table(
    "wishlist_items",
    WishlistItem,
    "Wishlist item",
    datetime_columns=frozenset({"created_at"}),
)
VERIFICATIONS = _Table(
    "phone_verifications",
    PhoneVerification,
    "Phone verification",
    datetime_columns=frozenset({"expires_at", "created_at"}),
    bool_columns=frozenset({"consumed"}),
)


class SQLiteWardrobeStore(WardrobeStore):
    """Local SQLite-backed store for every wardrobe entity.

    Each operation opens its own connection. Writes are serialised through a
    process-wide lock on top of SQLite's own transaction handling.
    """

    def __init__(self, database_path: str | Path = "data/drobeo.db", clock: Clock | None = None) -> None:
        self.database_path = Path(database_path)
        self.clock = clock or utcnow
        self._write_lock = threading.Lock()
        if self.database_path.parent and not self.database_path.parent.exists():
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.database_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_tables(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.executescript(_SCHEMA)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Serialised write transaction; unique violations become ConflictError.

        NOT NULL and CHECK violations are reported as ValidationFailedError
        naming the offending column.
        """

        with self._write_lock, closing(self._connect()) as conn:
            try:
                with conn:
                    yield conn
            except sqlite3.IntegrityError as exc:
                raise _integrity_error(exc) from exc

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        with closing(self._connect()) as conn:
            return conn.execute(sql, params).fetchall()

    def _insert(self, conn: sqlite3.Connection, table: _Table, record: Any) -> Any:
        columns = table.columns
        cursor = conn.execute(
            f"INSERT INTO {table.name} ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
            table.to_row(record),
        )
        return replace(record, id=cursor.lastrowid)

    def _rewrite(self, conn: sqlite3.Connection, table: _Table, record: Any) -> Any:
        assignments = ", ".join(f"{column} = ?" for column in table.columns)
        conn.execute(f"UPDATE {table.name} SET {assignments} WHERE id = ?", [*table.to_row(record), record.id])
        return record

    def _list_owned(self, table: _Table, user_id: int) -> List[Any]:
        rows = self._query(f"SELECT * FROM {table.name} WHERE user_id = ?", (user_id,))
        return [table.from_row(row) for row in rows]

    def _get_owned(self, table: _Table, user_id: int, record_id: int) -> Optional[Any]:
        rows = self._query(f"SELECT * FROM {table.name} WHERE id = ? AND user_id = ?", (record_id, user_id))
        return table.from_row(rows[0]) if rows else None

    def _update_owned(self, table: _Table, user_id: int, record_id: int, updates: Dict[str, Any]) -> Any:
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT * FROM {table.name} WHERE id = ? AND user_id = ?", (record_id, user_id)
            ).fetchone()
            if row is None:
                raise NotFoundError(f"{table.label} {record_id} not found")
            return self._rewrite(conn, table, merge_updates(table.from_row(row), updates))

    def _delete_owned(self, table: _Table, user_id: int, record_id: int) -> None:
        with self._transaction() as conn:
            cursor = conn.execute(f"DELETE FROM {table.name} WHERE id = ? AND user_id = ?", (record_id, user_id))
            if cursor.rowcount == 0:
                raise NotFoundError(f"{table.label} {record_id} not found")

    def _mark_worn(self, table: _Table, user_id: int, record_id: int) -> Any:
        with self._transaction() as conn:
            cursor = conn.execute(
                f"UPDATE {table.name} SET times_worn = times_worn + 1, last_worn = ? WHERE id = ? AND user_id = ?",
                (self.clock().isoformat(), record_id, user_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"{table.label} {record_id} not found")
            row = conn.execute(f"SELECT * FROM {table.name} WHERE id = ?", (record_id,)).fetchone()
        return table.from_row(row)

    # Users
    def create_user(self, fields: Dict[str, Any]) -> User:
        user = User(id=0, created_at=self.clock(), **fields)
        with self._transaction() as conn:
            return self._insert(conn, USERS, user)

    def _find_user(self, column: str, value: Any) -> Optional[User]:
        rows = self._query(f"SELECT * FROM users WHERE {column} = ?", (value,))
        return USERS.from_row(rows[0]) if rows else None

    def get_user(self, user_id: int) -> Optional[User]:
        return self._find_user("id", user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._find_user("email", email)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self._find_user("username", username)

    def get_user_by_phone(self, phone_number: str) -> Optional[User]:
        return self._find_user("phone_number", phone_number)

    def update_user(self, user_id: int, updates: Dict[str, Any]) -> User:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            if row is None:
                raise NotFoundError(f"User {user_id} not found")
            return self._rewrite(conn, USERS, merge_updates(USERS.from_row(row), updates))

    # Categories
    def get_categories(self) -> List[Category]:
        return [CATEGORIES.from_row(row) for row in self._query("SELECT * FROM categories ORDER BY id")]

    def get_category(self, category_id: int) -> Optional[Category]:
        rows = self._query("SELECT * FROM categories WHERE id = ?", (category_id,))
        return CATEGORIES.from_row(rows[0]) if rows else None

    def create_category(self, fields: Dict[str, Any]) -> Category:
        with self._transaction() as conn:
            return self._insert(conn, CATEGORIES, Category(id=0, **fields))

    # Clothing items
    def get_clothing_items(self, user_id: int, filters: Optional[ItemFilters] = None) -> List[ClothingItem]:
        return filter_clothing_items(self._list_owned(CLOTHING_ITEMS, user_id), filters)

    def get_clothing_item(self, user_id: int, item_id: int) -> Optional[ClothingItem]:
        return self._get_owned(CLOTHING_ITEMS, user_id, item_id)

    def create_clothing_item(self, user_id: int, fields: Dict[str, Any]) -> ClothingItem:
        item = ClothingItem(
            id=0,
            user_id=user_id,
            created_at=self.clock(),
            **{**fields, "times_worn": 0, "last_worn": None},
        )
        with self._transaction() as conn:
            return self._insert(conn, CLOTHING_ITEMS, item)

    def update_clothing_item(self, user_id: int, item_id: int, updates: Dict[str, Any]) -> ClothingItem:
        return self._update_owned(CLOTHING_ITEMS, user_id, item_id, updates)

    def delete_clothing_item(self, user_id: int, item_id: int) -> None:
        self._delete_owned(CLOTHING_ITEMS, user_id, item_id)

    def mark_item_worn(self, user_id: int, item_id: int) -> ClothingItem:
        return self._mark_worn(CLOTHING_ITEMS, user_id, item_id)

    # Outfits
    def get_outfits(self, user_id: int, filters: Optional[OutfitFilters] = None) -> List[Outfit]:
        return filter_outfits(self._list_owned(OUTFITS, user_id), filters)

    def get_outfit(self, user_id: int, outfit_id: int) -> Optional[Outfit]:
        return self._get_owned(OUTFITS, user_id, outfit_id)

    def create_outfits(self, user_id: int, batch: List[Dict[str, Any]]) -> List[Outfit]:
        now = self.clock()
        drafts = [
            Outfit(id=0, user_id=user_id, created_at=now, **{**fields, "times_worn": 0, "last_worn": None})
            for fields in batch
        ]
        with self._transaction() as conn:
            return [self._insert(conn, OUTFITS, draft) for draft in drafts]

    def update_outfit(self, user_id: int, outfit_id: int, updates: Dict[str, Any]) -> Outfit:
        return self._update_owned(OUTFITS, user_id, outfit_id, updates)

    def delete_outfit(self, user_id: int, outfit_id: int) -> None:
        self._delete_owned(OUTFITS, user_id, outfit_id)

    def mark_outfit_worn(self, user_id: int, outfit_id: int) -> Outfit:
        return self._mark_worn(OUTFITS, user_id, outfit_id)

    # Calendar
    def get_outfit_calendar(self, user_id: int, start: date, end: date) -> List[OutfitCalendarEntry]:
        rows = self._query(
            "SELECT * FROM outfit_calendar WHERE user_id = ? AND date BETWEEN ? AND ?",
            (user_id, start.isoformat(), end.isoformat()),
        )
        return calendar_in_range((CALENDAR.from_row(row) for row in rows), start, end)

    def get_calendar_entry(self, user_id: int, entry_id: int) -> Optional[OutfitCalendarEntry]:
        return self._get_owned(CALENDAR, user_id, entry_id)

    def create_calendar_entry(self, user_id: int, fields: Dict[str, Any]) -> OutfitCalendarEntry:
        entry = OutfitCalendarEntry(id=0, user_id=user_id, created_at=self.clock(), **fields)
        with self._transaction() as conn:
            return self._insert(conn, CALENDAR, entry)

    def update_calendar_entry(self, user_id: int, entry_id: int, updates: Dict[str, Any]) -> OutfitCalendarEntry:
        return self._update_owned(CALENDAR, user_id, entry_id, updates)

    def delete_calendar_entry(self, user_id: int, entry_id: int) -> None:
        self._delete_owned(CALENDAR, user_id, entry_id)

    # Wishlist
    def get_wishlist_items(self, user_id: int) -> List[WishlistItem]:
        return order_wishlist(self._list_owned(WISHLIST, user_id))

    def get_wishlist_item(self, user_id: int, item_id: int) -> Optional[WishlistItem]:
        return self._get_owned(WISHLIST, user_id, item_id)

    def create_wishlist_item(self, user_id: int, fields: Dict[str, Any]) -> WishlistItem:
        item = WishlistItem(id=0, user_id=user_id, created_at=self.clock(), **fields)
        with self._transaction() as conn:
            return self._insert(conn, WISHLIST, item)

    def update_wishlist_item(self, user_id: int, item_id: int, updates: Dict[str, Any]) -> WishlistItem:
        return self._update_owned(WISHLIST, user_id, item_id, updates)

    def delete_wishlist_item(self, user_id: int, item_id: int) -> None:
        self._delete_owned(WISHLIST, user_id, item_id)

    # Phone verification
    def create_phone_verification(self, phone_number: str, code: str, expires_at: datetime) -> PhoneVerification:
        record = PhoneVerification(
            id=0, phone_number=phone_number, code=code, expires_at=expires_at, created_at=self.clock()
        )
        with self._transaction() as conn:
            return self._insert(conn, VERIFICATIONS, record)

    def consume_phone_verification(self, phone_number: str, code: str, now: datetime) -> Optional[PhoneVerification]:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM phone_verifications WHERE phone_number = ? AND code = ? AND consumed = 0 "
                "ORDER BY id DESC",
                (phone_number, code),
            ).fetchall()
            for row in rows:
                record = VERIFICATIONS.from_row(row)
                if not record.matches(phone_number, code, now):
                    continue
                cursor = conn.execute(
                    "UPDATE phone_verifications SET consumed = 1 WHERE id = ? AND consumed = 0", (record.id,)
                )
                if cursor.rowcount == 1:
                    return replace(record, consumed=True)
        return None


def _integrity_error(exc: sqlite3.IntegrityError) -> WardrobeError:
    text = str(exc)
    if not text.startswith("UNIQUE constraint failed"):
        column = text.rsplit(".", 1)[-1] if ":" in text else "__root__"
        return ValidationFailedError.for_field(column, f"Invalid value for {column}")
    for column, message in _CONFLICT_MESSAGES.items():
        if column in text:
            return ConflictError(message)
    return ConflictError("Record conflicts with an existing one")


__all__ = ["SQLiteWardrobeStore"]
