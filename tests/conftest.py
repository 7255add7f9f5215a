"""Shared fixtures: fixed clock, fake generator, and both store backends."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pytest

from drobeo_app.app import WardrobeApp
from drobeo_app.config import AppConfig
from tools.generative_client import GenerativeClient
from tools.sms_provider import LoggingSmsProvider
from tools.sqlite_wardrobe_store import SQLiteWardrobeStore
from tools.wardrobe_store import InMemoryWardrobeStore, WardrobeStore

FIXED_NOW = datetime(2024, 12, 10, 9, 30, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


class FakeGenerativeClient(GenerativeClient):
    """Scripted generator: returns queued payloads or raises ``error``."""

    def __init__(
        self,
        json_responses: Optional[List[Dict[str, Any]]] = None,
        text_response: str = "",
        error: Optional[Exception] = None,
    ) -> None:
        self.json_responses = list(json_responses or [])
        self.text_response = text_response
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def _record(self, kind: str, system_instruction: str, parts: Sequence[Any]) -> None:
        self.calls.append({"kind": kind, "system_instruction": system_instruction, "parts": list(parts)})
        if self.error is not None:
            raise self.error

    def generate_json(self, system_instruction, parts, max_output_tokens=None):
        self._record("json", system_instruction, parts)
        return self.json_responses.pop(0) if self.json_responses else {}

    def generate_text(self, system_instruction, parts, max_output_tokens=None):
        self._record("text", system_instruction, parts)
        return self.text_response


class FailingSmsProvider(LoggingSmsProvider):
    def send(self, phone_number: str, body: str) -> bool:
        self.sent.append((phone_number, body))
        return False


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path, clock: FakeClock) -> WardrobeStore:
    if request.param == "memory":
        backend: WardrobeStore = InMemoryWardrobeStore(clock=clock)
    else:
        backend = SQLiteWardrobeStore(tmp_path / "drobeo.db", clock=clock)
    backend.seed_default_categories()
    return backend


@pytest.fixture()
def memory_store(clock: FakeClock) -> InMemoryWardrobeStore:
    backend = InMemoryWardrobeStore(clock=clock)
    backend.seed_default_categories()
    return backend


@pytest.fixture()
def fake_client() -> FakeGenerativeClient:
    return FakeGenerativeClient()


@pytest.fixture()
def sms_provider() -> LoggingSmsProvider:
    return LoggingSmsProvider()


@pytest.fixture()
def config() -> AppConfig:
    return AppConfig(environment="test", session_secret="test-secret")


@pytest.fixture()
def wardrobe_app(
    config: AppConfig,
    memory_store: InMemoryWardrobeStore,
    fake_client: FakeGenerativeClient,
    sms_provider: LoggingSmsProvider,
    clock: FakeClock,
) -> WardrobeApp:
    return WardrobeApp(
        config=config,
        store=memory_store,
        generative_client=fake_client,
        sms_provider=sms_provider,
        clock=clock,
    )


def category_id(store: WardrobeStore, name: str) -> int:
    return next(category.id for category in store.get_categories() if category.name == name)


def make_user(store: WardrobeStore, username: str = "ada", **overrides: Any):
    fields = {
        "username": username,
        "name": username.title(),
        "email": f"{username}@example.com",
        "password_hash": "not-a-real-hash",
        **overrides,
    }
    return store.create_user(fields)


def make_item(store: WardrobeStore, user_id: int, name: str = "White tee", **overrides: Any):
    fields = {
        "name": name,
        "category_id": category_id(store, "Tops"),
        "color": "white",
        "season": "summer",
        **overrides,
    }
    return store.create_clothing_item(user_id, fields)
