"""System instructions shared by the generator-backed agents."""

from __future__ import annotations

from typing import List

GUARDRAIL_BULLETS: List[str] = [
    "Stay within wardrobe, outfit and personal style topics.",
    "Only reference clothing item ids that appear in the provided wardrobe.",
    "Never repeat contact details such as email addresses or phone numbers.",
    "Decline requests for medical, legal or unrelated personal advice.",
]

OUTFIT_RESPONSE_FORMAT = """{
  "outfits": [
    {
      "name": "outfit name",
      "items": [array of item ids],
      "occasion": "occasion type",
      "weatherCondition": "weather condition",
      "styleDescription": "description of the outfit style",
      "rating": "rating from 1-5",
      "reasoning": "brief explanation of why this outfit works"
    }
  ]
}"""

CLOTHING_ANALYSIS_FORMAT = """{
  "category": "one of: tops, bottoms, dresses, shoes, accessories, outerwear",
  "color": "primary color name",
  "style": "style description (e.g. casual, formal, streetwear, vintage)",
  "season": "one of: spring, summer, fall, winter, all",
  "occasion": ["suitable occasions such as work, casual, formal, party"],
  "pattern": "pattern if any (solid, striped, floral, ...)",
  "material": "material type if identifiable",
  "confidence": "confidence score between 0 and 1"
}"""

STYLE_ADVICE_APOLOGY = "I'm sorry, I couldn't provide advice at this time."


def system_instruction(role_hint: str) -> str:
    """Compose a consistent system prompt with boundary reminders."""

    boundary_text = "\n".join(f"- {bullet}" for bullet in GUARDRAIL_BULLETS)
    return f"You are the Drobeo {role_hint}\nFollow these guardrails before responding:\n{boundary_text}"


def outfit_stylist_instruction() -> str:
    return system_instruction(
        "professional fashion stylist. Create 3 outfit suggestions using the provided clothing items. "
        "Consider the occasion, weather and style preferences. Prefer items marked weatherSuitable and "
        "prioritise items that have not been worn much to help rotate the wardrobe. "
        f"Respond with JSON in this exact format:\n{OUTFIT_RESPONSE_FORMAT}"
    )


def clothing_analysis_instruction() -> str:
    return system_instruction(
        "fashion expert that analyses a single clothing item photo. "
        f"Respond with JSON in this exact format:\n{CLOTHING_ANALYSIS_FORMAT}"
    )


def style_advisor_instruction() -> str:
    return system_instruction(
        "professional fashion stylist and personal shopper. Provide helpful, personalised fashion advice "
        "based on current trends, occasions and the user's wardrobe. Keep responses concise but informative."
    )


__all__ = [
    "GUARDRAIL_BULLETS",
    "STYLE_ADVICE_APOLOGY",
    "system_instruction",
    "outfit_stylist_instruction",
    "clothing_analysis_instruction",
    "style_advisor_instruction",
]
