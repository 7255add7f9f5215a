"""Single-turn style advice grounded in the user's wardrobe."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict

from drobeo_app.errors import AdviceFailedError
from drobeo_app.logging_config import get_logger, log_event, operation_context
from logic.prompts import STYLE_ADVICE_APOLOGY, style_advisor_instruction
from logic.validation import StyleAdviceRequest, validate_payload
from models.serialization import to_payload
from tools.enrichment import category_index
from tools.generative_client import GenerativeClient, GenerativeClientError
from tools.wardrobe_store import WardrobeStore

logger = get_logger(__name__)

CONTEXT_ITEMS = 5


class StyleAdvisorAgent:
    def __init__(self, store: WardrobeStore, client: GenerativeClient, max_output_tokens: int = 300) -> None:
        self.store = store
        self.client = client
        self.max_output_tokens = max_output_tokens
        self.system_instruction = style_advisor_instruction()

    def build_context(self, user_id: int) -> Dict[str, Any]:
        categories = category_index(self.store)
        recent = []
        for item in self.store.get_recent_items(user_id, limit=CONTEXT_ITEMS):
            category = categories.get(item.category_id)
            recent.append(
                {
                    "name": item.name,
                    "category": category.name.lower() if category else "unknown",
                    "color": item.color,
                }
            )
        return {"stats": to_payload(self.store.get_user_stats(user_id)), "recentItems": recent}

    def advise(self, user_id: int, question: str) -> str:
        request = validate_payload(StyleAdviceRequest, {"question": question})
        with operation_context("agent:style_advisor.advise") as correlation_id:
            context = self.build_context(user_id)
            prompt = f"{request.question}\n\nUser context: {json.dumps(context)}"
            try:
                advice = self.client.generate_text(
                    self.system_instruction, [prompt], max_output_tokens=self.max_output_tokens
                )
            except GenerativeClientError as exc:
                log_event(
                    logger,
                    logging.ERROR,
                    "style_advice_failed",
                    correlation_id=correlation_id,
                    user_id=user_id,
                    error=str(exc),
                )
                raise AdviceFailedError("Failed to get style advice") from exc
            log_event(logger, logging.INFO, "style_advice_completed", correlation_id=correlation_id, user_id=user_id)
            return (advice or "").strip() or STYLE_ADVICE_APOLOGY


__all__ = ["StyleAdvisorAgent", "CONTEXT_ITEMS"]
