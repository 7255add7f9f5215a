"""Reference data, wishlist and aggregate models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Category:
    id: int
    name: str
    icon: str
    color: str


@dataclass
class WishlistItem:
    """Something the user wants to buy. Higher priority means more wanted."""

    id: int
    user_id: int
    name: str
    category_id: int
    created_at: datetime
    brand: Optional[str] = None
    color: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[int] = None
    store_url: Optional[str] = None
    priority: int = 1
    notes: Optional[str] = None


@dataclass
class UserStats:
    total_items: int
    outfits_created: int
    items_worn_percentage: int
    wishlist_items: int
