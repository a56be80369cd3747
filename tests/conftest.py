from __future__ import annotations

import asyncio
from collections.abc import Iterator
from typing import Any

import pytest

from story_safe.content.fetcher import set_default_fetcher
from story_safe.content.fixtures import set_default_fixture_repository
from story_safe.content.global_settings import reset_global_settings_cache
from story_safe.runtime_config import set_current_runtime_config
from story_safe.settings import TOKEN_ENV_KEYS
from story_safe.storyblok_client import StoryblokResponse


class FakeStoryClient:
    """Counts `get` calls; answers with a payload or raises a configured error."""

    def __init__(
        self,
        *,
        story: dict[str, Any] | None = None,
        data: Any = None,
        error: BaseException | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.story = story
        self.data = data
        self.error = error
        self.gate = gate
        self.calls: list[str] = []

    async def get(self, key: str) -> StoryblokResponse:
        self.calls.append(key)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        data = self.data if self.data is not None else {"story": self.story}
        return StoryblokResponse(data=data, status_code=200, headers={}, duration_ms=1)


@pytest.fixture
def fake_client_cls() -> type[FakeStoryClient]:
    return FakeStoryClient


@pytest.fixture(autouse=True)
def _isolate_process_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in TOKEN_ENV_KEYS:
        monkeypatch.delenv(name, raising=False)
    set_default_fetcher(None)
    set_default_fixture_repository(None)
    set_current_runtime_config(None)
    reset_global_settings_cache()
    yield
    set_default_fetcher(None)
    set_default_fixture_repository(None)
    set_current_runtime_config(None)
    reset_global_settings_cache()


@pytest.fixture
def online(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORYBLOK_DELIVERY_API_TOKEN", "test-token-12345")
