from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from story_safe.content.fetcher import SafeStoryFetcher, set_default_fetcher
from story_safe.content.global_settings import (
    SETTINGS_KEY,
    GlobalSettingsCache,
    get_global_settings,
    global_settings_cache,
    reset_global_settings_cache,
)
from story_safe.runtime_config import load_runtime_config, set_current_runtime_config
from story_safe.storyblok_client import TransportError

SETTINGS_STORY = {
    "id": 999,
    "content": {"site_title": "Test Site", "component": "global-settings"},
}


@pytest.mark.asyncio
async def test_global_settings_cached_after_first_fetch(online, fake_client_cls) -> None:
    client = fake_client_cls(story=SETTINGS_STORY)
    set_default_fetcher(SafeStoryFetcher(client=client))

    result1 = await get_global_settings()
    result2 = await get_global_settings()
    result3 = await get_global_settings()

    assert client.calls == [SETTINGS_KEY]
    assert result1["site_title"] == "Test Site"
    assert result2 == result1
    assert result3 == result1
    assert global_settings_cache().state == "populated"


@pytest.mark.asyncio
async def test_concurrent_first_calls_share_one_fetch(online, fake_client_cls) -> None:
    gate = asyncio.Event()
    client = fake_client_cls(story=SETTINGS_STORY, gate=gate)
    cache = GlobalSettingsCache(SafeStoryFetcher(client=client))

    first = asyncio.ensure_future(cache.get())
    second = asyncio.ensure_future(cache.get())
    await asyncio.sleep(0)
    assert cache.state == "pending"
    gate.set()
    results = await asyncio.gather(first, second)

    assert len(client.calls) == 1
    assert results[0] == results[1]
    assert results[0]["site_title"] == "Test Site"


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_fetch(online, fake_client_cls) -> None:
    gate = asyncio.Event()
    client = fake_client_cls(story=SETTINGS_STORY, gate=gate)
    cache = GlobalSettingsCache(SafeStoryFetcher(client=client))

    first = asyncio.ensure_future(cache.get())
    second = asyncio.ensure_future(cache.get())
    await asyncio.sleep(0)
    first.cancel()
    await asyncio.sleep(0)
    gate.set()
    value = await second

    assert first.cancelled()
    assert value["site_title"] == "Test Site"
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_remote_failure_caches_fixture_settings(online, fake_client_cls) -> None:
    client = fake_client_cls(error=TransportError("connection refused"))
    cache = GlobalSettingsCache(SafeStoryFetcher(client=client))

    first = await cache.get()
    second = await cache.get()

    assert first["site_title"] == "Default Site Title"
    assert second == first
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_offline_settings_come_from_fixture(fake_client_cls) -> None:
    client = fake_client_cls(story=SETTINGS_STORY)
    set_default_fetcher(SafeStoryFetcher(client=client))

    settings = await get_global_settings()

    assert client.calls == []
    assert settings["component"] == "global-settings"
    assert [item["name"] for item in settings["header_nav"]] == ["Home", "Pricing", "Contact"]


@pytest.mark.asyncio
async def test_empty_remote_content_uses_bundled_defaults(online, fake_client_cls) -> None:
    client = fake_client_cls(story={"id": 5, "content": {}})
    cache = GlobalSettingsCache(SafeStoryFetcher(client=client))

    settings = await cache.get()

    assert settings["site_title"] == "Default Site Title"


@pytest.mark.asyncio
async def test_reset_forces_a_new_fetch(online, fake_client_cls) -> None:
    client = fake_client_cls(story=SETTINGS_STORY)
    set_default_fetcher(SafeStoryFetcher(client=client))

    await get_global_settings()
    reset_global_settings_cache()
    assert global_settings_cache().state == "uninitialized"
    assert global_settings_cache().peek() is None
    await get_global_settings()

    assert len(client.calls) == 2


@pytest.mark.asyncio
async def test_fetcher_factory_is_resolved_lazily(online, fake_client_cls) -> None:
    client = fake_client_cls(story=SETTINGS_STORY)
    built: list[SafeStoryFetcher] = []

    def factory() -> SafeStoryFetcher:
        fetcher = SafeStoryFetcher(client=client)
        built.append(fetcher)
        return fetcher

    cache = GlobalSettingsCache(factory)
    assert built == []

    await cache.get()
    await cache.get()

    assert len(built) == 1
    assert cache.peek() == {"site_title": "Test Site", "component": "global-settings"}


@pytest.mark.asyncio
async def test_callers_cannot_change_the_cached_settings(online, fake_client_cls) -> None:
    client = fake_client_cls(story={"id": 7, "content": {"site_title": "Real"}})
    set_default_fetcher(SafeStoryFetcher(client=client))

    first = await get_global_settings()
    first["site_title"] = "changed by a caller"
    second = await get_global_settings()

    assert second["site_title"] == "Real"
    assert second is not first
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_concurrent_callers_get_separate_copies(online, fake_client_cls) -> None:
    gate = asyncio.Event()
    client = fake_client_cls(story=SETTINGS_STORY, gate=gate)
    cache = GlobalSettingsCache(SafeStoryFetcher(client=client))

    first = asyncio.ensure_future(cache.get())
    second = asyncio.ensure_future(cache.get())
    await asyncio.sleep(0)
    gate.set()
    a, b = await asyncio.gather(first, second)
    a["site_title"] = "local edit"

    assert b["site_title"] == "Test Site"
    assert (await cache.get())["site_title"] == "Test Site"


@pytest.mark.asyncio
async def test_settings_key_comes_from_runtime_config(
    online, tmp_path: Path, fake_client_cls
) -> None:
    config_path = tmp_path / "runtime.toml"
    config_path.write_text('[storyblok]\nsettings_slug = "site/settings"\n', encoding="utf-8")
    set_current_runtime_config(load_runtime_config(config_path))
    client = fake_client_cls(story=SETTINGS_STORY)
    set_default_fetcher(SafeStoryFetcher(client=client))

    settings = await get_global_settings()

    assert client.calls == ["site/settings"]
    assert global_settings_cache().key == "site/settings"
    assert settings["site_title"] == "Test Site"


@pytest.mark.asyncio
async def test_reset_cancels_pending_waiters(online, fake_client_cls) -> None:
    gate = asyncio.Event()
    client = fake_client_cls(story=SETTINGS_STORY, gate=gate)
    cache = GlobalSettingsCache(SafeStoryFetcher(client=client))

    waiter = asyncio.ensure_future(cache.get())
    await asyncio.sleep(0)
    cache.reset()

    with pytest.raises(asyncio.CancelledError):
        await waiter
    assert cache.state == "uninitialized"
