"""Issue and consume single-use phone verification codes."""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from drobeo_app.clock import Clock, utcnow
from drobeo_app.errors import DeliveryFailedError
from drobeo_app.logging_config import get_logger, log_event
from models.user import PhoneVerification
from tools.sms_provider import SmsProvider, verification_message
from tools.wardrobe_store import WardrobeStore

LOGGER = get_logger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999


def generate_code() -> str:
    """Uniformly random six-digit code in 100000..999999."""

    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


class VerificationCodeService:
    """Issued codes move to consumed exactly once, or simply expire.

    A new request always creates an independent record; older unconsumed
    records stay valid until they expire.
    """

    def __init__(
        self,
        store: WardrobeStore,
        sms_provider: SmsProvider,
        ttl_minutes: int = 10,
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.sms_provider = sms_provider
        self.ttl_minutes = ttl_minutes
        self.clock = clock or utcnow

    def issue_code(self, phone_number: str) -> PhoneVerification:
        code = generate_code()
        record = self.store.create_phone_verification(
            phone_number, code, self.clock() + timedelta(minutes=self.ttl_minutes)
        )
        delivered = self.sms_provider.send(phone_number, verification_message(code, self.ttl_minutes))
        if not delivered:
            log_event(LOGGER, logging.WARNING, "verification_delivery_failed", verification_id=record.id)
            raise DeliveryFailedError("Failed to send verification code")
        log_event(LOGGER, logging.INFO, "verification_code_issued", verification_id=record.id)
        return record

    def consume(self, phone_number: str, code: str) -> bool:
        record = self.store.consume_phone_verification(phone_number, code, self.clock())
        log_event(LOGGER, logging.INFO, "verification_code_checked", accepted=record is not None)
        return record is not None


__all__ = ["VerificationCodeService", "generate_code"]
