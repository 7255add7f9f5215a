import pytest

from agents.image_analysis import ClothingAnalysis, ImageAnalysisAgent, apply_analysis, normalise_analysis
from conftest import FakeGenerativeClient, category_id, make_user
from drobeo_app.errors import AnalysisFailedError
from tools.generative_client import GenerativeClientError, parse_json_object
from tools.wardrobe_tools import WardrobeTools

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


def test_empty_payload_uses_defaults() -> None:
    analysis = normalise_analysis({})
    assert analysis == ClothingAnalysis()
    assert analysis.category == "tops"
    assert analysis.occasions == ["casual"]
    assert analysis.confidence == 0.7


def test_labels_are_normalised_and_clamped() -> None:
    analysis = normalise_analysis(
        {
            "category": "Jacket",
            "color": " Olive ",
            "style": "utility",
            "season": "Autumn",
            "occasion": ["Work", "picnic", "casual", "work"],
            "pattern": "solid",
            "confidence": 1.7,
        }
    )
    assert analysis.category == "outerwear"
    assert analysis.color == "Olive"
    assert analysis.season == "all"
    assert analysis.occasions == ["work", "casual"]
    assert analysis.confidence == 1.0

    assert normalise_analysis({"category": "shoe", "confidence": "high"}).category == "shoes"
    assert normalise_analysis({"confidence": "high"}).confidence == 0.7
    assert normalise_analysis({"confidence": -2}).confidence == 0.0
    assert normalise_analysis({"occasion": "party"}).occasions == ["party"]


def test_analyze_sends_image_inline() -> None:
    client = FakeGenerativeClient(json_responses=[{"category": "dress", "color": "red", "season": "summer"}])
    analysis = ImageAnalysisAgent(client).analyze(PNG_BYTES, "image/png")

    assert analysis.category == "dresses"
    [call] = client.calls
    assert call["parts"][1] == {"mime_type": "image/png", "data": PNG_BYTES}


@pytest.mark.parametrize(
    "client",
    [
        FakeGenerativeClient(error=GenerativeClientError("bad gateway")),
        FakeGenerativeClient(json_responses=[{"occasion": {"not": "a list"}, "color": ["red"]}]),
    ],
)
def test_analyze_failures_map_to_analysis_error(client) -> None:
    with pytest.raises(AnalysisFailedError) as excinfo:
        ImageAnalysisAgent(client).analyze(PNG_BYTES)
    assert excinfo.value.message == "Failed to analyze clothing image"


def test_analyze_rejects_empty_image() -> None:
    client = FakeGenerativeClient()
    with pytest.raises(AnalysisFailedError):
        ImageAnalysisAgent(client).analyze(b"")
    assert client.calls == []


def test_apply_analysis_keeps_caller_values(memory_store) -> None:
    categories = memory_store.get_categories()
    analysis = ClothingAnalysis(category="shoes", color="black", style="sporty", season="all", pattern="striped")

    filled = apply_analysis({"name": "Runner"}, analysis, categories)
    assert filled == {
        "name": "Runner",
        "categoryId": category_id(memory_store, "Shoes"),
        "color": "black",
        "season": "all",
        "tags": ["sporty", "striped"],
    }

    kept = apply_analysis(
        {"name": "Runner", "categoryId": 2, "color": "white", "season": "summer", "tags": ["gym"]}, analysis, categories
    )
    assert kept == {"name": "Runner", "categoryId": 2, "color": "white", "season": "summer", "tags": ["gym"]}


def test_add_item_with_photo_fills_missing_fields(memory_store) -> None:
    user = make_user(memory_store)
    client = FakeGenerativeClient(json_responses=[{"category": "bottoms", "color": "indigo", "season": "fall", "style": "denim"}])
    tools = WardrobeTools(memory_store, image_analysis=ImageAnalysisAgent(client))

    created = tools.add_clothing_item(user.id, {"name": "Jeans"}, image=PNG_BYTES, mime_type="image/png")

    assert created["categoryId"] == category_id(memory_store, "Bottoms")
    assert created["category"]["name"] == "Bottoms"
    assert created["color"] == "indigo"
    assert created["season"] == "fall"
    assert created["tags"] == ["denim"]
    assert created["imageUrl"].startswith("data:image/png;base64,")


def test_add_item_survives_failed_analysis(memory_store) -> None:
    """A failed analysis falls back to the caller's own fields."""

    user = make_user(memory_store)
    client = FakeGenerativeClient(error=GenerativeClientError("quota"))
    tools = WardrobeTools(memory_store, image_analysis=ImageAnalysisAgent(client))

    created = tools.add_clothing_item(
        user.id,
        {"name": "Scarf", "categoryId": category_id(memory_store, "Accessories"), "color": "grey", "season": "winter"},
        image=PNG_BYTES,
    )

    assert created["name"] == "Scarf"
    assert created["imageUrl"].startswith("data:image/jpeg;base64,")
    assert memory_store.get_clothing_item(user.id, created["id"]).color == "grey"


def test_parse_json_object_strips_fences() -> None:
    assert parse_json_object('```json\n{"category": "tops"}\n```') == {"category": "tops"}
    with pytest.raises(GenerativeClientError):
        parse_json_object("[1, 2]")
    with pytest.raises(GenerativeClientError):
        parse_json_object("no json here")
