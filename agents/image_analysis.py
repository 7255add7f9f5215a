"""Clothing photo classification through the vision model."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from drobeo_app.errors import AnalysisFailedError
from drobeo_app.logging_config import get_logger, log_event
from logic.prompts import clothing_analysis_instruction
from models.taxonomy import OCCASIONS, SEASONS, normalize_category_label
from models.wardrobe import Category
from tools.generative_client import GenerativeClient, GenerativeClientError, image_part

logger = get_logger(__name__)

DEFAULT_CONFIDENCE = 0.7


class ClothingAnalysis(BaseModel):
    """Normalised attributes for one photographed clothing item."""

    category: str = "tops"
    color: str = "unknown"
    style: str = "casual"
    season: str = "all"
    occasions: List[str] = Field(default_factory=lambda: ["casual"])
    pattern: Optional[str] = None
    material: Optional[str] = None
    confidence: float = DEFAULT_CONFIDENCE


class _RawAnalysis(BaseModel):
    model_config = ConfigDict(extra="ignore")

    category: Optional[str] = None
    color: Optional[str] = None
    style: Optional[str] = None
    season: Optional[str] = None
    occasion: Any = None
    pattern: Optional[str] = None
    material: Optional[str] = None
    confidence: Any = None


def _confidence(raw: Any) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if value != value or value == 0:
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, value))


def _occasions(raw: Any) -> List[str]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return ["casual"]
    cleaned = []
    for value in raw:
        key = str(value).strip().lower()
        if key in OCCASIONS and key not in cleaned:
            cleaned.append(key)
    return cleaned or ["casual"]


def normalise_analysis(payload: Dict[str, Any]) -> ClothingAnalysis:
    raw = _RawAnalysis.model_validate(payload)
    season = (raw.season or "").strip().lower()
    return ClothingAnalysis(
        category=normalize_category_label(raw.category) or "tops",
        color=(raw.color or "").strip() or "unknown",
        style=(raw.style or "").strip() or "casual",
        season=season if season in SEASONS else "all",
        occasions=_occasions(raw.occasion),
        pattern=raw.pattern or None,
        material=raw.material or None,
        confidence=_confidence(raw.confidence),
    )


class ImageAnalysisAgent:
    """Classifies an uploaded clothing photo into wardrobe attributes."""

    def __init__(self, client: GenerativeClient, max_output_tokens: int = 500) -> None:
        self.client = client
        self.max_output_tokens = max_output_tokens
        self.system_instruction = clothing_analysis_instruction()

    def analyze(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> ClothingAnalysis:
        if not image_bytes:
            raise AnalysisFailedError("No image data to analyse")
        try:
            payload = self.client.generate_json(
                self.system_instruction,
                ["Analyze this clothing item and provide the requested information.", image_part(image_bytes, mime_type)],
                max_output_tokens=self.max_output_tokens,
            )
            analysis = normalise_analysis(payload)
        except (GenerativeClientError, ValidationError) as exc:
            log_event(
                logger,
                logging.ERROR,
                "image_analysis_failed",
                error_type=type(exc).__name__,
                error=str(exc),
                image_size=len(image_bytes),
            )
            raise AnalysisFailedError("Failed to analyze clothing image") from exc
        log_event(
            logger,
            logging.INFO,
            "image_analysis_completed",
            category=analysis.category,
            confidence=analysis.confidence,
        )
        return analysis


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == []


def apply_analysis(
    fields: Dict[str, Any], analysis: ClothingAnalysis, categories: List[Category]
) -> Dict[str, Any]:
    """Fill missing item fields from ``analysis``; values the caller sent win."""

    merged = dict(fields)
    if _is_blank(merged.get("categoryId")) and _is_blank(merged.get("category_id")):
        for category in categories:
            if category.name.lower() == analysis.category:
                merged["categoryId"] = category.id
                break
    if _is_blank(merged.get("color")):
        merged["color"] = analysis.color
    if _is_blank(merged.get("season")):
        merged["season"] = analysis.season
    if _is_blank(merged.get("tags")):
        merged["tags"] = [value for value in (analysis.style, analysis.pattern) if value]
    return merged


__all__ = ["ClothingAnalysis", "ImageAnalysisAgent", "apply_analysis", "normalise_analysis"]
