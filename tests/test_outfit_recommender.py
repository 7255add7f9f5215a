import pytest

from agents.outfit_recommender import (
    OutfitRecommendationAgent,
    OutfitSuggestionGenerator,
    describe_items,
)
from conftest import FakeGenerativeClient, category_id, make_item, make_user
from drobeo_app.errors import GenerationFailedError, PreconditionFailedError, ValidationFailedError
from logic.suggestions import GeneratorResponse, clamp_rating, normalise_suggestions
from tools.enrichment import category_index
from tools.generative_client import GenerativeClientError

PREFERENCES = {"occasion": "casual", "weatherCondition": "sunny", "style": "relaxed", "colors": ["white"]}


@pytest.fixture()
def wardrobe(memory_store):
    user = make_user(memory_store)
    items = [
        make_item(memory_store, user.id, name="White tee"),
        make_item(memory_store, user.id, name="Denim shorts", color="blue", category_id=category_id(memory_store, "Bottoms")),
        make_item(memory_store, user.id, name="Canvas sneakers", season="all", category_id=category_id(memory_store, "Shoes")),
    ]
    return user, items


def _agent(store, client):
    return OutfitRecommendationAgent(store, OutfitSuggestionGenerator(client))


def test_requires_three_items_before_calling_generator(memory_store) -> None:
    """Two items are not enough; the generator is never contacted."""

    user = make_user(memory_store)
    make_item(memory_store, user.id, name="One")
    make_item(memory_store, user.id, name="Two")
    client = FakeGenerativeClient()

    with pytest.raises(PreconditionFailedError) as excinfo:
        _agent(memory_store, client).generate_outfits(user.id, PREFERENCES)

    assert excinfo.value.details == {"itemCount": 2, "required": 3}
    assert client.calls == []


def test_invalid_preferences_rejected(memory_store, wardrobe) -> None:
    user, _ = wardrobe
    with pytest.raises(ValidationFailedError):
        _agent(memory_store, FakeGenerativeClient()).generate_outfits(
            user.id, {"occasion": "brunch", "weatherCondition": "sunny"}
        )


def test_generates_and_persists_normalised_outfits(memory_store, wardrobe) -> None:
    user, items = wardrobe
    tee, shorts, sneakers = items
    client = FakeGenerativeClient(
        json_responses=[
            {
                "outfits": [
                    {
                        "name": "Beach day",
                        "items": [tee.id, shorts.id, sneakers.id],
                        "occasion": "casual",
                        "weatherCondition": "sunny",
                        "styleDescription": "Easy summer look",
                        "rating": 9,
                        "reasoning": "Light fabrics",
                    },
                    {"items": [str(tee.id), shorts.id], "occasion": "brunch", "rating": 0},
                    {"name": "Third", "items": [sneakers.id], "weatherCondition": "tornado"},
                    {"name": "Fourth", "items": [tee.id]},
                ]
            }
        ]
    )

    outfits = _agent(memory_store, client).generate_outfits(user.id, PREFERENCES)

    assert len(outfits) == 3
    first, second, third = outfits
    assert first["name"] == "Beach day"
    assert first["rating"] == 5
    assert first["aiGenerated"] is True
    assert first["aiSuggestionData"] == {"styleDescription": "Easy summer look", "reasoning": "Light fabrics"}
    assert [item["id"] for item in first["items"]] == [tee.id, shorts.id, sneakers.id]

    assert second["name"] == "AI Outfit 2"
    assert second["rating"] == 4
    assert second["occasion"] == "casual"
    assert second["itemIds"] == [tee.id, shorts.id]

    assert third["weatherCondition"] == "sunny"
    assert third["rating"] == 4

    stored = memory_store.get_outfits(user.id)
    assert len(stored) == 3
    assert all(outfit.ai_generated for outfit in stored)


def test_prompt_describes_wardrobe(memory_store, wardrobe) -> None:
    user, _ = wardrobe
    client = FakeGenerativeClient(json_responses=[{"outfits": []}])

    assert _agent(memory_store, client).generate_outfits(user.id, PREFERENCES) == []

    call = client.calls[0]
    assert call["kind"] == "json"
    assert "Respond with JSON" in call["system_instruction"]
    prompt = call["parts"][0]
    assert "Occasion: casual" in prompt
    assert "Weather: sunny" in prompt
    assert "Preferred colors: white" in prompt
    assert '"category": "bottoms"' in prompt


def test_foreign_and_unknown_ids_are_dropped(memory_store, wardrobe) -> None:
    user, items = wardrobe
    intruder = make_user(memory_store, "mallory")
    foreign = make_item(memory_store, intruder.id, name="Not yours")
    client = FakeGenerativeClient(
        json_responses=[{"outfits": [{"name": "Mixed", "items": [items[0].id, foreign.id, 9999, "abc", items[0].id]}]}]
    )

    [outfit] = _agent(memory_store, client).generate_outfits(user.id, PREFERENCES)

    assert outfit["itemIds"] == [items[0].id]
    assert [item["id"] for item in outfit["items"]] == [items[0].id]


@pytest.mark.parametrize(
    "client",
    [
        FakeGenerativeClient(error=GenerativeClientError("timeout")),
        FakeGenerativeClient(json_responses=[{"outfits": "not a list"}]),
        FakeGenerativeClient(json_responses=[{"outfits": [{"items": "nope"}]}]),
    ],
)
def test_generator_failures_store_nothing(memory_store, wardrobe, client) -> None:
    user, _ = wardrobe
    with pytest.raises(GenerationFailedError) as excinfo:
        _agent(memory_store, client).generate_outfits(user.id, PREFERENCES)

    assert excinfo.value.message == "Failed to generate outfit suggestions"
    assert memory_store.get_outfits(user.id) == []


def test_deleted_items_are_skipped_when_enriching(wardrobe_app) -> None:
    store = wardrobe_app.store
    user = make_user(store)
    items = [make_item(store, user.id, name=f"Piece {n}") for n in range(3)]
    wardrobe_app.generative_client.json_responses.append(
        {"outfits": [{"name": "Trio", "items": [item.id for item in items]}]}
    )

    [outfit] = wardrobe_app.outfit_recommender.generate_outfits(user.id, PREFERENCES)
    store.delete_clothing_item(user.id, items[1].id)

    refreshed = wardrobe_app.wardrobe_tools.get_outfit(user.id, outfit["id"])
    assert refreshed["itemIds"] == [item.id for item in items]
    assert [item["id"] for item in refreshed["items"]] == [items[0].id, items[2].id]


def test_describe_items_orders_least_worn_first(memory_store) -> None:
    user = make_user(memory_store)
    worn = make_item(memory_store, user.id, name="Favourite", tags=["classic", "cotton"])
    fresh = make_item(memory_store, user.id, name="New", season="winter")
    memory_store.mark_item_worn(user.id, worn.id)

    described = describe_items(
        memory_store.get_clothing_items(user.id), category_index(memory_store), "sunny"
    )

    assert [entry["id"] for entry in described] == [fresh.id, worn.id]
    assert described[0]["weatherSuitable"] is False
    assert described[1] == {
        "id": worn.id,
        "name": "Favourite",
        "category": "tops",
        "color": "white",
        "style": "classic, cotton",
        "season": "summer",
        "timesWorn": 1,
        "weatherSuitable": True,
    }


@pytest.mark.parametrize(
    "raw, expected",
    [(None, 4), (0, 4), ("great", 4), (True, 4), (9, 5), (-3, 1), (3.5, 4), (2.4, 2), ("3", 3)],
)
def test_clamp_rating(raw, expected) -> None:
    assert clamp_rating(raw) == expected


def test_normalise_caps_at_three_suggestions() -> None:
    response = GeneratorResponse.model_validate({"outfits": [{"items": [1]} for _ in range(5)]})
    suggestions = normalise_suggestions(response, "work", "cold", wardrobe_ids=[1])
    assert [s.name for s in suggestions] == ["AI Outfit 1", "AI Outfit 2", "AI Outfit 3"]
    assert all(s.occasion == "work" and s.weather_condition == "cold" for s in suggestions)
