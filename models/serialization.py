"""Convert entity dataclasses into camelCase JSON-ready payloads."""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from typing import Any


def to_camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _convert(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return _convert(asdict(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {to_camel(str(key)): _convert(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_convert(item) for item in value]
    return value


def to_payload(entity: Any, **extra: Any) -> Any:
    """Serialise a dataclass (or dict of them) for API responses.

    ``extra`` entries are merged after conversion, e.g. enriched ``items``.
    """

    payload = _convert(entity)
    for key, value in extra.items():
        payload[to_camel(key)] = _convert(value)
    return payload


__all__ = ["to_camel", "to_payload"]
