from datetime import date, datetime, timezone

import pytest

from drobeo_app.errors import ValidationFailedError
from logic.validation import (
    CalendarEntryCreate,
    CalendarEntryUpdate,
    CalendarRangeQuery,
    ClothingItemCreate,
    ClothingItemUpdate,
    OutfitCreate,
    OutfitGenerationRequest,
    OutfitUpdate,
    PhoneVerifyRequest,
    PreferencesPayload,
    SignupRequest,
    WishlistItemCreate,
    WishlistItemUpdate,
    updates_from,
    validate_payload,
)
from logic.wardrobe_filters import ItemFilters, OutfitFilters, rank_for_freshness, worn_percentage
from models.clothing_item import ClothingItem
from models.taxonomy import normalize_category_label, season_suits_weather, validate_season

CREATED = datetime(2024, 12, 1, tzinfo=timezone.utc)


def _item(item_id: int, times_worn: int = 0) -> ClothingItem:
    return ClothingItem(
        id=item_id,
        user_id=1,
        name=f"Item {item_id}",
        category_id=1,
        color="black",
        season="all",
        created_at=CREATED,
        times_worn=times_worn,
    )


def test_clothing_item_accepts_camel_and_snake_case() -> None:
    camel = validate_payload(
        ClothingItemCreate,
        {"name": " Tee ", "categoryId": 1, "color": "white", "season": "summer", "isFavorite": True},
    )
    snake = validate_payload(ClothingItemCreate, {"name": "Tee", "category_id": 1, "color": "white", "season": "summer"})

    assert camel.name == "Tee"
    assert camel.is_favorite is True
    assert snake.category_id == 1


def test_clothing_item_normalises_tags_and_dates() -> None:
    payload = validate_payload(
        ClothingItemCreate,
        {
            "name": "Tee",
            "categoryId": 1,
            "color": "white",
            "season": "summer",
            "tags": "cotton, basics, ",
            "purchaseDate": "2024-05-01T10:00:00.000Z",
        },
    )
    assert payload.tags == ["cotton", "basics"]
    assert payload.purchase_date == date(2024, 5, 1)


@pytest.mark.parametrize(
    "overrides",
    [
        {"season": "autumn"},
        {"name": ""},
        {"price": -1},
        {"categoryId": 0},
        {"timesWorn": 3},
        {"id": 10},
    ],
)
def test_clothing_item_rejects_bad_input(overrides) -> None:
    payload = {"name": "Tee", "categoryId": 1, "color": "white", "season": "summer", **overrides}
    with pytest.raises(ValidationFailedError) as excinfo:
        validate_payload(ClothingItemCreate, payload)
    assert excinfo.value.fields


def test_partial_update_only_reports_set_fields() -> None:
    update = validate_payload(ClothingItemUpdate, {"color": "navy"})
    assert updates_from(update) == {"color": "navy"}


@pytest.mark.parametrize(
    "schema, payload",
    [
        (ClothingItemUpdate, {"name": None}),
        (ClothingItemUpdate, {"season": None}),
        (ClothingItemUpdate, {"categoryId": None}),
        (OutfitUpdate, {"itemIds": None}),
        (OutfitUpdate, {"rating": None}),
        (CalendarEntryUpdate, {"date": None}),
        (WishlistItemUpdate, {"priority": None}),
        (WishlistItemUpdate, {"name": None}),
    ],
)
def test_updates_reject_null_for_required_fields(schema, payload) -> None:
    with pytest.raises(ValidationFailedError) as excinfo:
        validate_payload(schema, payload)
    assert excinfo.value.fields


def test_updates_may_clear_optional_fields() -> None:
    update = validate_payload(ClothingItemUpdate, {"brand": None, "price": None, "tags": None})
    assert updates_from(update) == {"brand": None, "price": None, "tags": []}
    entry = validate_payload(CalendarEntryUpdate, {"outfitId": None, "notes": None})
    assert updates_from(entry) == {"outfit_id": None, "notes": None}


def test_outfit_create_rules() -> None:
    outfit = validate_payload(OutfitCreate, {"name": "Office", "itemIds": [1, 2], "occasion": "work"})
    assert outfit.rating == 0
    assert outfit.weather_condition is None

    for bad in ({"itemIds": []}, {"rating": 6}, {"occasion": "brunch"}, {"weatherCondition": "foggy"}):
        with pytest.raises(ValidationFailedError):
            validate_payload(OutfitCreate, {"name": "Office", "itemIds": [1], "occasion": "work", **bad})


def test_calendar_dates_drop_time_part() -> None:
    entry = validate_payload(CalendarEntryCreate, {"date": "2024-12-15T18:00:00Z", "occasion": "party"})
    assert entry.date == date(2024, 12, 15)

    window = validate_payload(CalendarRangeQuery, {"startDate": "2024-12-15", "endDate": "2024-12-19T00:00:00Z"})
    assert (window.start_date, window.end_date) == (date(2024, 12, 15), date(2024, 12, 19))


def test_wishlist_priority_bounds() -> None:
    assert validate_payload(WishlistItemCreate, {"name": "Boots", "categoryId": 4}).priority == 1
    with pytest.raises(ValidationFailedError):
        validate_payload(WishlistItemCreate, {"name": "Boots", "categoryId": 4, "priority": 6})


def test_signup_and_phone_payloads() -> None:
    with pytest.raises(ValidationFailedError):
        validate_payload(SignupRequest, {"username": "ada", "email": "not-an-email", "name": "Ada", "password": "longenough"})
    with pytest.raises(ValidationFailedError):
        validate_payload(SignupRequest, {"username": "ada", "email": "ada@example.com", "name": "Ada", "password": "short"})
    with pytest.raises(ValidationFailedError):
        validate_payload(PhoneVerifyRequest, {"phoneNumber": "+15550100", "code": "12345"})

    verify = validate_payload(PhoneVerifyRequest, {"phoneNumber": "+1 555 0100", "code": "123456"})
    assert verify.name is None


def test_preferences_accept_age_alias() -> None:
    prefs = validate_payload(PreferencesPayload, {"styles": ["classic"], "seasons": ["fall"], "age": "25-34"})
    assert prefs.age_range == "25-34"
    with pytest.raises(ValidationFailedError):
        validate_payload(PreferencesPayload, {"seasons": ["monsoon"]})
    with pytest.raises(ValidationFailedError):
        validate_payload(PreferencesPayload, {"styles": ["grunge"], "goals": ["organize"]})


def test_generation_request_splits_colors() -> None:
    request = validate_payload(
        OutfitGenerationRequest, {"occasion": "date", "weatherCondition": "mild", "colors": "navy, cream"}
    )
    assert request.colors == ["navy", "cream"]
    with pytest.raises(ValidationFailedError):
        validate_payload(OutfitGenerationRequest, {"occasion": "date"})


def test_item_filters_from_query_params() -> None:
    filters = ItemFilters.from_mapping({"categoryId": "3", "season": "winter", "color": "", "search": "wool"})
    assert filters == ItemFilters(category_id=3, season="winter", color=None, search="wool")

    with pytest.raises(ValidationFailedError) as excinfo:
        ItemFilters.from_mapping({"categoryId": "tops"})
    assert excinfo.value.fields[0]["field"] == "categoryId"


def test_outfit_filters_parse_booleans() -> None:
    assert OutfitFilters.from_mapping({"aiGenerated": "true"}).ai_generated is True
    assert OutfitFilters.from_mapping({"aiGenerated": "false"}).ai_generated is False
    assert OutfitFilters.from_mapping({}).ai_generated is None
    assert OutfitFilters.from_mapping({"ai_generated": True}).ai_generated is True
    for unknown in ("yes", "1", "", 1):
        with pytest.raises(ValidationFailedError) as excinfo:
            OutfitFilters.from_mapping({"aiGenerated": unknown})
        assert excinfo.value.fields[0]["field"] == "aiGenerated"


def test_worn_percentage_rounds_half_up() -> None:
    assert worn_percentage([]) == 0
    items = [_item(n, times_worn=1 if n == 0 else 0) for n in range(8)]
    assert worn_percentage(items) == 13
    assert worn_percentage([_item(1, 1), _item(2, 0), _item(3, 0)]) == 33


def test_freshness_puts_least_worn_first() -> None:
    ranked = rank_for_freshness([_item(1, 5), _item(2, 0), _item(3, 2), _item(4, 0)])
    assert [item.id for item in ranked] == [4, 2, 3, 1]


def test_taxonomy_helpers() -> None:
    assert validate_season(" Winter ") == "winter"
    with pytest.raises(ValueError):
        validate_season("monsoon")
    assert normalize_category_label("Shirt") == "tops"
    assert normalize_category_label("Bottoms") == "bottoms"
    assert normalize_category_label("spaceship") is None
    assert season_suits_weather("all", "snowy")
    assert season_suits_weather("winter", "cold")
    assert not season_suits_weather("summer", "snowy")
