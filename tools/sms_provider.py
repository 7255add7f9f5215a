"""SMS delivery for phone verification codes."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import requests

from drobeo_app.config import AppConfig
from drobeo_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


def verification_message(code: str, ttl_minutes: int = 10) -> str:
    return f"Your Drobeo verification code is: {code}. This code expires in {ttl_minutes} minutes."


class SmsProvider(ABC):
    """Sends one text message. Returns False instead of raising on failure."""

    @abstractmethod
    def send(self, phone_number: str, body: str) -> bool:
        """Deliver ``body`` to ``phone_number``."""


class LoggingSmsProvider(SmsProvider):
    """Development provider: writes the message to the log channel."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def send(self, phone_number: str, body: str) -> bool:
        self.sent.append((phone_number, body))
        # Development only: the code is logged in full.
        LOGGER.info("SMS for %s: %s", phone_number, body, extra={"event": "sms_logged"})
        return True


class TwilioSmsProvider(SmsProvider):
    """Twilio REST delivery with a bounded request timeout."""

    def __init__(
        self,
        account_sid: str | None,
        auth_token: str | None,
        from_number: str | None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout_seconds = timeout_seconds

    def send(self, phone_number: str, body: str) -> bool:
        if not (self.account_sid and self.auth_token and self.from_number):
            log_event(LOGGER, logging.ERROR, "sms_not_configured", provider="twilio")
            return False
        try:
            response = requests.post(
                TWILIO_MESSAGES_URL.format(sid=self.account_sid),
                data={"To": phone_number, "From": self.from_number, "Body": body},
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            log_event(LOGGER, logging.ERROR, "sms_delivery_failed", provider="twilio", error=str(exc))
            return False

        if not 200 <= response.status_code < 300:
            log_event(
                LOGGER,
                logging.WARNING,
                "sms_delivery_rejected",
                provider="twilio",
                status_code=response.status_code,
            )
            return False
        return True


def build_sms_provider(config: AppConfig) -> SmsProvider:
    if config.sms_backend == "twilio":
        return TwilioSmsProvider(
            account_sid=config.twilio_account_sid,
            auth_token=config.twilio_auth_token,
            from_number=config.twilio_from_number,
            timeout_seconds=config.sms_timeout_seconds,
        )
    if config.sms_backend == "log":
        return LoggingSmsProvider()
    raise ValueError(f"Unsupported SMS backend '{config.sms_backend}'")


__all__ = [
    "SmsProvider",
    "LoggingSmsProvider",
    "TwilioSmsProvider",
    "build_sms_provider",
    "verification_message",
]
