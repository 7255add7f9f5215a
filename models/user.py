"""User accounts, onboarding preferences and phone verification records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class UserPreferences:
    """Answers collected during onboarding."""

    styles: List[str] = field(default_factory=list)
    seasons: List[str] = field(default_factory=list)
    occasions: List[str] = field(default_factory=list)
    goals: List[str] = field(default_factory=list)
    age_range: Optional[str] = None
    gender: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "UserPreferences":
        raw = raw or {}
        return cls(
            styles=list(raw.get("styles") or []),
            seasons=list(raw.get("seasons") or []),
            occasions=list(raw.get("occasions") or []),
            goals=list(raw.get("goals") or []),
            age_range=raw.get("age_range"),
            gender=raw.get("gender"),
        )


@dataclass
class User:
    """A wardrobe owner.

    Authenticates either with email and password or with a verified phone
    number; at least one of the two must be usable.
    """

    id: int
    username: str
    name: str
    created_at: datetime
    email: Optional[str] = None
    password_hash: Optional[str] = None
    phone_number: Optional[str] = None
    phone_verified: bool = False
    avatar: Optional[str] = None
    onboarding_complete: bool = False
    preferences: UserPreferences = field(default_factory=UserPreferences)

    def __post_init__(self) -> None:
        if isinstance(self.preferences, dict):
            self.preferences = UserPreferences.from_dict(self.preferences)
        if not self.has_password_login and not self.phone_number:
            raise ValueError("A user needs an email and password or a phone number")

    @property
    def has_password_login(self) -> bool:
        return bool(self.email and self.password_hash)


@dataclass
class PhoneVerification:
    """One issued verification code. Consumed at most once."""

    id: int
    phone_number: str
    code: str
    expires_at: datetime
    created_at: datetime
    consumed: bool = False

    def matches(self, phone_number: str, code: str, now: datetime) -> bool:
        return (
            not self.consumed
            and self.phone_number == phone_number
            and self.code == code
            and now < self.expires_at
        )
