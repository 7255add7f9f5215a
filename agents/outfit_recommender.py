"""Outfit recommendation agent backed by the external suggestion generator."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping

from pydantic import ValidationError

from drobeo_app.errors import GenerationFailedError, PreconditionFailedError
from drobeo_app.logging_config import get_logger, log_event, operation_context
from logic.prompts import outfit_stylist_instruction
from logic.suggestions import GeneratorResponse, normalise_suggestions, parse_generator_response
from logic.validation import OutfitGenerationRequest, validate_payload
from logic.wardrobe_filters import rank_for_freshness, weather_suitable
from models.clothing_item import ClothingItem
from models.wardrobe import Category
from tools.enrichment import category_index, enrich_outfits
from tools.generative_client import GenerativeClient, GenerativeClientError
from tools.wardrobe_store import WardrobeStore

logger = get_logger(__name__)

MIN_WARDROBE_ITEMS = 3


def describe_items(
    items: List[ClothingItem], categories: Dict[int, Category], weather: str
) -> List[Dict[str, Any]]:
    """Wardrobe view sent to the generator: category labels instead of ids."""

    described = []
    for item in rank_for_freshness(items):
        category = categories.get(item.category_id)
        described.append(
            {
                "id": item.id,
                "name": item.name,
                "category": category.name.lower() if category else "unknown",
                "color": item.color,
                "style": ", ".join(item.tags),
                "season": item.season,
                "timesWorn": item.times_worn,
                "weatherSuitable": weather_suitable(item, weather),
            }
        )
    return described


class OutfitSuggestionGenerator:
    """Asks the generative client for up to three outfit suggestions."""

    def __init__(self, client: GenerativeClient, max_output_tokens: int = 1000) -> None:
        self.client = client
        self.max_output_tokens = max_output_tokens
        self.system_instruction = outfit_stylist_instruction()

    @staticmethod
    def build_prompt(items: List[Dict[str, Any]], request: OutfitGenerationRequest) -> str:
        colors = ", ".join(request.colors) if request.colors else "any"
        return (
            "Create outfit suggestions for:\n"
            f"- Occasion: {request.occasion}\n"
            f"- Weather: {request.weather_condition}\n"
            f"- Preferred style: {request.style or 'any'}\n"
            f"- Preferred colors: {colors}\n\n"
            f"Available clothing items:\n{json.dumps(items, indent=2)}\n\n"
            "Please create 3 diverse outfit combinations that work well together."
        )

    def suggest(self, items: List[Dict[str, Any]], request: OutfitGenerationRequest) -> GeneratorResponse:
        prompt = self.build_prompt(items, request)
        try:
            payload = self.client.generate_json(
                self.system_instruction, [prompt], max_output_tokens=self.max_output_tokens
            )
            return parse_generator_response(payload)
        except (GenerativeClientError, ValidationError) as exc:
            log_event(
                logger,
                logging.ERROR,
                "outfit_generation_failed",
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise GenerationFailedError("Failed to generate outfit suggestions") from exc


class OutfitRecommendationAgent:
    """Turns a wardrobe and stated preferences into persisted AI outfits."""

    def __init__(self, store: WardrobeStore, generator: OutfitSuggestionGenerator) -> None:
        self.store = store
        self.generator = generator

    def generate_outfits(self, user_id: int, preferences: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """Generate, persist and return up to three enriched outfits.

        Raises:
            ValidationFailedError: occasion or weather outside their enums.
            PreconditionFailedError: fewer than three wardrobe items.
            GenerationFailedError: the generator failed or replied with an unusable payload.
        """

        request = validate_payload(OutfitGenerationRequest, preferences)
        with operation_context("agent:outfit_recommender.generate_outfits") as correlation_id:
            log_event(
                logger,
                logging.INFO,
                "agent_call_started",
                agent="outfit_recommender",
                method="generate_outfits",
                correlation_id=correlation_id,
                user_id=user_id,
                occasion=request.occasion,
                weather_condition=request.weather_condition,
            )
            items = self.store.get_clothing_items(user_id)
            if len(items) < MIN_WARDROBE_ITEMS:
                raise PreconditionFailedError(
                    f"Add at least {MIN_WARDROBE_ITEMS} clothing items to generate outfit suggestions",
                    details={"itemCount": len(items), "required": MIN_WARDROBE_ITEMS},
                )

            described = describe_items(items, category_index(self.store), request.weather_condition)
            response = self.generator.suggest(described, request)
            suggestions = normalise_suggestions(
                response,
                occasion=request.occasion,
                weather_condition=request.weather_condition,
                wardrobe_ids=[item.id for item in items],
            )
            for suggestion in suggestions:
                if suggestion.dropped_item_ids:
                    log_event(
                        logger,
                        logging.WARNING,
                        "suggestion_items_dropped",
                        correlation_id=correlation_id,
                        user_id=user_id,
                        outfit_name=suggestion.name,
                        dropped_item_ids=[str(item_id) for item_id in suggestion.dropped_item_ids],
                    )

            created = self.store.create_outfits(
                user_id,
                [
                    {
                        "name": suggestion.name,
                        "item_ids": suggestion.item_ids,
                        "occasion": suggestion.occasion,
                        "weather_condition": suggestion.weather_condition,
                        "rating": suggestion.rating,
                        "ai_generated": True,
                        "ai_suggestion_data": {
                            "style_description": suggestion.style_description,
                            "reasoning": suggestion.reasoning,
                        },
                    }
                    for suggestion in suggestions
                ],
            )
            log_event(
                logger,
                logging.INFO,
                "agent_call_completed",
                agent="outfit_recommender",
                method="generate_outfits",
                correlation_id=correlation_id,
                outfits_created=len(created),
            )
            return enrich_outfits(self.store, created)


__all__ = ["OutfitRecommendationAgent", "OutfitSuggestionGenerator", "describe_items", "MIN_WARDROBE_ITEMS"]
