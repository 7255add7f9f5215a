"""Error taxonomy shared by the repository, agents and HTTP layer."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ValidationError


class WardrobeError(Exception):
    """Base class for every caller-facing failure.

    ``message`` is safe to show to the caller; raw upstream detail belongs in
    the logs only.
    """

    code = "internal_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationFailedError(WardrobeError):
    """Malformed or out-of-domain input."""

    code = "validation_error"
    status_code = 400

    def __init__(self, message: str, fields: Optional[List[Dict[str, str]]] = None) -> None:
        super().__init__(message)
        self.fields = fields or []

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["fields"] = self.fields
        return payload

    @classmethod
    def from_pydantic(cls, message: str, exc: ValidationError) -> "ValidationFailedError":
        fields = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
            fields.append({"field": location, "message": str(error.get("msg", "invalid value"))})
        return cls(message, fields=fields)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailedError":
        return cls(message, fields=[{"field": field, "message": message}])


class NotFoundError(WardrobeError):
    """Referenced entity does not exist or is not owned by the caller."""

    code = "not_found"
    status_code = 404


class PreconditionFailedError(WardrobeError):
    code = "precondition_failed"
    status_code = 400


class UnauthorizedError(WardrobeError):
    code = "unauthorized"
    status_code = 401


class ConflictError(WardrobeError):
    """A unique field (email, username, phone, category name) is already taken."""

    code = "conflict"
    status_code = 409


class GenerationFailedError(WardrobeError):
    code = "generation_failed"
    status_code = 502


class AnalysisFailedError(WardrobeError):
    code = "analysis_failed"
    status_code = 502


class AdviceFailedError(WardrobeError):
    code = "advice_failed"
    status_code = 502


class DeliveryFailedError(WardrobeError):
    """The SMS gateway refused or failed to deliver a verification code."""

    code = "delivery_failed"
    status_code = 502


__all__ = [
    "WardrobeError",
    "ValidationFailedError",
    "NotFoundError",
    "PreconditionFailedError",
    "UnauthorizedError",
    "ConflictError",
    "GenerationFailedError",
    "AnalysisFailedError",
    "AdviceFailedError",
    "DeliveryFailedError",
]
