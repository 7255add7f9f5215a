"""Password and phone-number accounts plus onboarding."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Mapping, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from auth.verification import VerificationCodeService
from drobeo_app.errors import NotFoundError, UnauthorizedError, ValidationFailedError
from drobeo_app.logging_config import get_logger, log_event
from logic.validation import (
    PhoneCodeRequest,
    PhoneVerifyRequest,
    PreferencesPayload,
    SignupRequest,
    validate_payload,
)
from models.user import User, UserPreferences
from tools.wardrobe_store import WardrobeStore

LOGGER = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_CODE = "Invalid or expired verification code"


def phone_username(phone_number: str) -> str:
    """Username for accounts created through phone verification."""

    digits = re.sub(r"\D", "", phone_number)
    return f"user_{digits[-10:]}"


def public_profile(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "phoneNumber": user.phone_number,
        "phoneVerified": user.phone_verified,
        "name": user.name,
        "avatar": user.avatar,
        "onboardingComplete": user.onboarding_complete,
        "preferences": {
            "styles": user.preferences.styles,
            "seasons": user.preferences.seasons,
            "occasions": user.preferences.occasions,
            "goals": user.preferences.goals,
            "ageRange": user.preferences.age_range,
            "gender": user.preferences.gender,
        },
    }


class AccountService:
    def __init__(self, store: WardrobeStore, verification: VerificationCodeService) -> None:
        self.store = store
        self.verification = verification

    def signup(self, payload: Mapping[str, Any]) -> User:
        request = validate_payload(SignupRequest, payload)
        user = self.store.create_user(
            {
                "username": request.username,
                "email": request.email.lower(),
                "name": request.name,
                "avatar": request.avatar,
                "password_hash": generate_password_hash(request.password),
            }
        )
        log_event(LOGGER, logging.INFO, "user_signed_up", user_id=user.id, method="password")
        return user

    def login(self, email: Optional[str], password: Optional[str]) -> User:
        if not email or not password:
            raise ValidationFailedError(
                "Email and password are required",
                fields=[
                    {"field": name, "message": "required"}
                    for name, value in (("email", email), ("password", password))
                    if not value
                ],
            )
        user = self.store.get_user_by_email(email.strip().lower())
        if user is None or not user.password_hash or not check_password_hash(user.password_hash, password):
            log_event(LOGGER, logging.WARNING, "login_rejected", method="password")
            raise UnauthorizedError(INVALID_CREDENTIALS)
        return user

    def request_phone_code(self, payload: Mapping[str, Any]) -> None:
        request = validate_payload(PhoneCodeRequest, payload)
        self.verification.issue_code(request.phone_number)

    def verify_phone(self, payload: Mapping[str, Any]) -> User:
        """Consume a code and create (or mark verified) the phone account."""

        request = validate_payload(PhoneVerifyRequest, payload)
        existing = self.store.get_user_by_phone(request.phone_number)
        if existing is None and not request.name:
            raise ValidationFailedError.for_field("name", "Name is required to create an account")
        if not self.verification.consume(request.phone_number, request.code):
            raise ValidationFailedError.for_field("code", INVALID_CODE)

        if existing is None:
            user = self.store.create_user(
                {
                    "username": phone_username(request.phone_number),
                    "name": request.name,
                    "phone_number": request.phone_number,
                    "phone_verified": True,
                }
            )
            log_event(LOGGER, logging.INFO, "user_signed_up", user_id=user.id, method="phone")
            return user
        return self.store.update_user(existing.id, {"phone_verified": True})

    def phone_login(self, payload: Mapping[str, Any]) -> User:
        request = validate_payload(PhoneVerifyRequest, payload)
        if not self.verification.consume(request.phone_number, request.code):
            raise ValidationFailedError.for_field("code", INVALID_CODE)
        user = self.store.get_user_by_phone(request.phone_number)
        if user is None:
            raise NotFoundError("User not found")
        if not user.phone_verified:
            user = self.store.update_user(user.id, {"phone_verified": True})
        return user

    def get_user(self, user_id: int) -> User:
        user = self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def complete_onboarding(self, user_id: int, preferences: Optional[Mapping[str, Any]]) -> User:
        request = validate_payload(PreferencesPayload, preferences or {})
        self.get_user(user_id)
        return self.store.update_user(
            user_id,
            {
                "preferences": UserPreferences(**request.model_dump()),
                "onboarding_complete": True,
            },
        )


__all__ = ["AccountService", "public_profile", "phone_username"]
