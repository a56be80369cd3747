"""Resolve-once cache for site-wide settings.

The first caller starts a single fetch of the settings story and parks the
in-flight task in the cache; concurrent callers await that same task. Once
resolved the value is kept for the life of the process. There is no TTL and no
refresh; `reset()` exists for test isolation.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Callable
from typing import Literal

from story_safe.blocks import GlobalSettings
from story_safe.content.fetcher import SafeStoryFetcher, default_fetcher
from story_safe.content.fixtures import default_fixture_repository
from story_safe.runtime_config import current_runtime_config

logger = logging.getLogger(__name__)

SETTINGS_KEY = "config/global-settings"

CacheState = Literal["uninitialized", "pending", "populated"]


def default_global_settings(key: str | None = None) -> GlobalSettings:
    """Bundled defaults, used when the resolved settings story has no content."""
    repository = default_fixture_repository()
    for candidate in (key or SETTINGS_KEY, SETTINGS_KEY):
        story = repository.lookup(candidate)
        if story is not None and story.content:
            return story.content  # type: ignore[return-value]
    return {"_uid": "default-global-settings-uid", "component": "global-settings"}


class GlobalSettingsCache:
    """Single-flight, process-lifetime cache around the settings story."""

    def __init__(
        self,
        fetcher: SafeStoryFetcher | Callable[[], SafeStoryFetcher] | None = None,
        *,
        key: str | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._key = key
        self._value: GlobalSettings | None = None
        self._populated = False
        self._inflight: asyncio.Task[GlobalSettings] | None = None

    @property
    def state(self) -> CacheState:
        if self._populated:
            return "populated"
        if self._inflight is not None:
            return "pending"
        return "uninitialized"

    @property
    def key(self) -> str:
        """Settings story key; defaults to `settings_slug` from the runtime config."""
        return self._key or current_runtime_config().settings_slug

    def _resolve_fetcher(self) -> SafeStoryFetcher:
        if isinstance(self._fetcher, SafeStoryFetcher):
            return self._fetcher
        if self._fetcher is not None:
            return self._fetcher()
        return default_fetcher()

    async def _load(self) -> GlobalSettings:
        key = self.key
        envelope = await self._resolve_fetcher().get_story(key, GlobalSettings)
        content = envelope.story.content if envelope.story is not None else None
        if not content:
            logger.warning("global settings unavailable; using bundled defaults")
            content = default_global_settings(key)
        self._value = content
        self._populated = True
        logger.debug("global settings cached")
        return content

    async def get(self) -> GlobalSettings:
        """Return a private copy of the settings, fetching at most once per process."""
        if self._populated:
            return copy.deepcopy(self._value)  # type: ignore[return-value]
        task = self._inflight
        if task is None:
            task = asyncio.ensure_future(self._load())
            self._inflight = task
            task.add_done_callback(self._on_done)
        # shield: a cancelled waiter must not cancel the fetch other waiters share
        value = await asyncio.shield(task)
        return copy.deepcopy(value)

    def _on_done(self, task: asyncio.Task[GlobalSettings]) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled() and task.exception() is not None:
            logger.error("global settings fetch failed", exc_info=task.exception())

    def peek(self) -> GlobalSettings | None:
        """Cached value without fetching; a deep copy."""
        if not self._populated:
            return None
        return copy.deepcopy(self._value)

    def reset(self) -> None:
        """Return to `uninitialized`. Meant for test isolation.

        An in-flight fetch is cancelled, so callers still awaiting `get()` at that
        moment receive `asyncio.CancelledError`.
        """
        task = self._inflight
        self._inflight = None
        self._value = None
        self._populated = False
        if task is not None and not task.done():
            task.cancel()


_GLOBAL_SETTINGS_CACHE = GlobalSettingsCache()


def global_settings_cache() -> GlobalSettingsCache:
    return _GLOBAL_SETTINGS_CACHE


async def get_global_settings() -> GlobalSettings:
    """Site-wide settings, resolved once per process."""
    return await _GLOBAL_SETTINGS_CACHE.get()


def reset_global_settings_cache() -> None:
    _GLOBAL_SETTINGS_CACHE.reset()
