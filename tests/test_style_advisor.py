import json

import pytest

from agents.style_advisor import CONTEXT_ITEMS, StyleAdvisorAgent
from conftest import FakeGenerativeClient, make_item, make_user
from drobeo_app.errors import AdviceFailedError, ValidationFailedError
from logic.prompts import STYLE_ADVICE_APOLOGY
from tools.generative_client import GenerativeClientError


def test_advice_includes_wardrobe_context(memory_store) -> None:
    user = make_user(memory_store)
    for n in range(7):
        make_item(memory_store, user.id, name=f"Shirt {n}", color="blue")
    client = FakeGenerativeClient(text_response="  Pair the blue shirts with chinos.  ")

    advice = StyleAdvisorAgent(memory_store, client).advise(user.id, "What goes with blue?")

    assert advice == "Pair the blue shirts with chinos."
    prompt = client.calls[0]["parts"][0]
    assert prompt.startswith("What goes with blue?")
    context = json.loads(prompt.split("User context: ", 1)[1])
    assert context["stats"]["totalItems"] == 7
    assert len(context["recentItems"]) == CONTEXT_ITEMS
    assert context["recentItems"][0] == {"name": "Shirt 6", "category": "tops", "color": "blue"}


def test_empty_reply_returns_apology(memory_store) -> None:
    user = make_user(memory_store)
    client = FakeGenerativeClient(text_response="   ")

    assert StyleAdvisorAgent(memory_store, client).advise(user.id, "Any tips?") == STYLE_ADVICE_APOLOGY


def test_generator_failure_raises_advice_error(memory_store) -> None:
    user = make_user(memory_store)
    client = FakeGenerativeClient(error=GenerativeClientError("timeout"))

    with pytest.raises(AdviceFailedError) as excinfo:
        StyleAdvisorAgent(memory_store, client).advise(user.id, "Any tips?")
    assert excinfo.value.status_code == 502


def test_blank_question_rejected(memory_store) -> None:
    user = make_user(memory_store)
    client = FakeGenerativeClient()

    with pytest.raises(ValidationFailedError):
        StyleAdvisorAgent(memory_store, client).advise(user.id, "   ")
    assert client.calls == []
