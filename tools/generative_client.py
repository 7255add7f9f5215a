"""Client wrapper around the Gemini generative models.

Agents talk to :class:`GenerativeClient`; tests inject a fake subclass so no
network access is needed. Every call is bounded by a request timeout.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Sequence, Union

import google.generativeai as genai

from drobeo_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)

Part = Union[str, Dict[str, Any]]

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class GenerativeClientError(RuntimeError):
    """Raised when the generator fails, times out or returns unusable output."""


def image_part(image_bytes: bytes, mime_type: str) -> Dict[str, Any]:
    """Inline image blob in the shape ``generate_content`` accepts."""

    return {"mime_type": mime_type, "data": image_bytes}


def parse_json_object(text: str) -> Dict[str, Any]:
    """Decode a JSON object from model text, tolerating markdown code fences."""

    cleaned = _FENCE.sub("", (text or "").strip())
    try:
        decoded = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise GenerativeClientError(f"Generator returned invalid JSON: {exc}") from exc
    if not isinstance(decoded, dict):
        raise GenerativeClientError("Generator returned JSON that is not an object")
    return decoded


class GenerativeClient:
    """Single-turn generation interface used by every agent."""

    def generate_text(
        self, system_instruction: str, parts: Sequence[Part], max_output_tokens: int | None = None
    ) -> str:
        raise NotImplementedError

    def generate_json(
        self, system_instruction: str, parts: Sequence[Part], max_output_tokens: int | None = None
    ) -> Dict[str, Any]:
        raise NotImplementedError


class GeminiClient(GenerativeClient):
    """Gemini-backed client; the SDK is configured lazily on first use."""

    def __init__(self, model: str, api_key: str | None = None, timeout_seconds: float = 30.0) -> None:
        self.model = model
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._configured = False

    def _ensure_configured(self) -> None:
        if self._configured:
            return
        if not self.api_key:
            raise GenerativeClientError("GOOGLE_API_KEY is not configured")
        genai.configure(api_key=self.api_key)
        self._configured = True

    def _generate(
        self,
        system_instruction: str,
        parts: Sequence[Part],
        json_mode: bool,
        max_output_tokens: int | None,
    ) -> str:
        self._ensure_configured()
        generation_config: Dict[str, Any] = {}
        if json_mode:
            generation_config["response_mime_type"] = "application/json"
        if max_output_tokens:
            generation_config["max_output_tokens"] = max_output_tokens
        model = genai.GenerativeModel(self.model, system_instruction=system_instruction)
        try:
            response = model.generate_content(
                list(parts),
                generation_config=genai.GenerationConfig(**generation_config),
                request_options={"timeout": self.timeout_seconds},
            )
            return response.text or ""
        except Exception as exc:
            log_event(
                LOGGER,
                logging.ERROR,
                "generator_call_failed",
                model=self.model,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise GenerativeClientError(f"Generator call failed: {type(exc).__name__}") from exc

    def generate_text(
        self, system_instruction: str, parts: Sequence[Part], max_output_tokens: int | None = None
    ) -> str:
        return self._generate(system_instruction, parts, json_mode=False, max_output_tokens=max_output_tokens)

    def generate_json(
        self, system_instruction: str, parts: Sequence[Part], max_output_tokens: int | None = None
    ) -> Dict[str, Any]:
        text = self._generate(system_instruction, parts, json_mode=True, max_output_tokens=max_output_tokens)
        return parse_json_object(text)


__all__ = [
    "GenerativeClient",
    "GeminiClient",
    "GenerativeClientError",
    "image_part",
    "parse_json_object",
]
