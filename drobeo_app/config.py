"""Configuration helpers for the Drobeo wardrobe service."""

from dataclasses import dataclass
from pathlib import Path
import os
from typing import Optional

DEFAULT_GEMINI_MODEL = "models/gemini-1.5-flash-002"
DEFAULT_GENERATION_TIMEOUT_SECONDS = 30.0
DEFAULT_SESSION_TTL_SECONDS = 7 * 24 * 60 * 60
DEFAULT_VERIFICATION_TTL_MINUTES = 10
DEFAULT_SESSION_SECRET = "drobeo-local-secret"


@dataclass
class AppConfig:
    """Configuration values for the wardrobe service.

    External generator calls are always bounded by
    ``generation_timeout_seconds``; the storage backend and SMS delivery are
    chosen per environment.
    """

    environment: str | None = None
    model: str = DEFAULT_GEMINI_MODEL
    api_key: Optional[str] = None
    generation_timeout_seconds: float = DEFAULT_GENERATION_TIMEOUT_SECONDS
    storage_backend: str = "memory"
    database_path: Optional[str] = None
    session_secret: str = DEFAULT_SESSION_SECRET
    session_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS
    verification_ttl_minutes: int = DEFAULT_VERIFICATION_TTL_MINUTES
    sms_backend: str = "log"
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_from_number: Optional[str] = None
    sms_timeout_seconds: float = 10.0

    @property
    def is_production(self) -> bool:
        return (self.environment or "").lower() == "production"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build a config from environment variables or an environment YAML file.

        Environment specific YAML lives in ``config/environments/<env>.yaml`` by
        default and is merged with environment variables so that secrets can be
        injected by the runtime environment.
        """

        env_name = os.getenv("APP_ENV")
        config_path = os.getenv("APP_CONFIG_PATH")
        config_dir = Path(os.getenv("DROBEO_CONFIG_DIR", "config/environments"))
        yaml_config: dict = {}

        if config_path:
            path = Path(config_path)
        elif env_name:
            path = config_dir / f"{env_name}.yaml"
        else:
            path = None

        if path and path.exists():
            yaml_config = cls._load_yaml_config(path)

        def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
            env_key = key.upper()
            return os.getenv(env_key, yaml_config.get(key, default))

        default_sms_backend = "twilio" if (env_name or "").lower() == "production" else "log"

        return cls(
            environment=env_name,
            model=str(get_value("model", DEFAULT_GEMINI_MODEL) or DEFAULT_GEMINI_MODEL),
            api_key=get_value("google_api_key"),
            generation_timeout_seconds=_as_float(
                get_value("generation_timeout_seconds"), DEFAULT_GENERATION_TIMEOUT_SECONDS
            ),
            storage_backend=str(get_value("storage_backend", "memory") or "memory").lower(),
            database_path=get_value("database_path"),
            session_secret=str(get_value("session_secret", DEFAULT_SESSION_SECRET)),
            session_ttl_seconds=int(_as_float(get_value("session_ttl_seconds"), DEFAULT_SESSION_TTL_SECONDS)),
            verification_ttl_minutes=int(
                _as_float(get_value("verification_ttl_minutes"), DEFAULT_VERIFICATION_TTL_MINUTES)
            ),
            sms_backend=str(get_value("sms_backend", default_sms_backend) or default_sms_backend).lower(),
            twilio_account_sid=get_value("twilio_account_sid"),
            twilio_auth_token=get_value("twilio_auth_token"),
            twilio_from_number=get_value("twilio_phone_number"),
            sms_timeout_seconds=_as_float(get_value("sms_timeout_seconds"), 10.0),
        )

    @staticmethod
    def _load_yaml_config(path: Path) -> dict:
        """Parse a minimal YAML/INI-style config without external dependencies."""

        config: dict[str, str] = {}
        for line in path.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            value = raw_value.strip()
            if (value.startswith("\"") and value.endswith("\"")) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            config[key.strip()] = value
        return config


def _as_float(raw: Optional[str], default: float) -> float:
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


__all__ = ["AppConfig", "DEFAULT_GEMINI_MODEL", "DEFAULT_SESSION_SECRET"]
