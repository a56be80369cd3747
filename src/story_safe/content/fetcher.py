"""Safe story retrieval: live CMS when online, bundled fixtures otherwise.

`get_safe_story` is total over its domain. It never raises and never returns a
non-200 envelope; remote failures and missing configuration degrade to fixture
content of the same shape. Callers that need to know whether content is live
must look at the logs, not at the envelope.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, overload

from story_safe.blocks import Blok
from story_safe.content.fixtures import FixtureRepository, default_fixture_repository
from story_safe.content.mode import Mode, detect_mode
from story_safe.content.models import (
    ContentEnvelope,
    ContentKey,
    FetchFailure,
    FetchOutcome,
    StoriesResult,
    Story,
    StoryFetched,
    T,
)
from story_safe.settings import Settings
from story_safe.storyblok_client import (
    MalformedResponseError,
    MissingDeliveryTokenError,
    RemoteStatusError,
    StoryblokAPIError,
    StoryblokClient,
    StoryClient,
)

logger = logging.getLogger(__name__)

SettingsFactory = Callable[[], Settings]


def _failure_from_exception(exc: Exception) -> FetchFailure:
    if isinstance(exc, MissingDeliveryTokenError):
        return FetchFailure(kind="configuration_absent", message=str(exc))
    if isinstance(exc, RemoteStatusError):
        return FetchFailure(kind="remote", message=str(exc), status_code=exc.status_code)
    if isinstance(exc, MalformedResponseError):
        return FetchFailure(kind="malformed", message=str(exc))
    status_code = _status_from_foreign_error(exc)
    if status_code is not None and not 200 <= status_code < 300:
        return FetchFailure(kind="remote", message=str(exc), status_code=status_code)
    return FetchFailure(kind="transport", message=str(exc) or type(exc).__name__)


def _status_from_foreign_error(exc: Exception) -> int | None:
    # Third-party clients report HTTP status as `.status` or `.response.status(_code)`.
    response = getattr(exc, "response", None)
    for candidate in (
        getattr(response, "status_code", None),
        getattr(response, "status", None),
        getattr(exc, "status", None),
    ):
        if isinstance(candidate, int) and not isinstance(candidate, bool):
            return candidate
    return None


async def fetch_remote_story(client: StoryClient, key: ContentKey) -> FetchOutcome:
    """Run one remote `get(key)` and project the result onto an outcome value."""
    try:
        response = await client.get(key)
        payload = response.data.get("story") if isinstance(response.data, dict) else None
        if not isinstance(payload, dict):
            raise MalformedResponseError(
                f"API returned success but 'story' is missing for slug: {key}"
            )
        return StoryFetched(story=Story.from_payload(payload, key=key))
    except asyncio.CancelledError:
        raise
    except Exception as exc:  # client implementations may fail in their own way
        return _failure_from_exception(exc)


class SafeStoryFetcher:
    """Mode-aware story fetcher with fixture fallback."""

    def __init__(
        self,
        *,
        client: StoryClient | None = None,
        settings: Settings | SettingsFactory | None = None,
        mode: Mode | None = None,
        fixtures: FixtureRepository | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._mode = mode
        self._fixtures = fixtures

    @property
    def fixtures(self) -> FixtureRepository:
        return self._fixtures or default_fixture_repository()

    def current_settings(self) -> Settings:
        if isinstance(self._settings, Settings):
            return self._settings
        if self._settings is not None:
            return self._settings()
        return Settings.from_runtime()

    def current_mode(self) -> Mode:
        if self._mode is not None:
            return self._mode
        return detect_mode()

    async def _remote_story(self, key: ContentKey) -> FetchOutcome:
        if self._client is not None:
            return await fetch_remote_story(self._client, key)
        try:
            settings = self.current_settings()
            client = StoryblokClient(settings)
        except Exception as exc:
            return FetchFailure(kind="configuration_absent", message=str(exc))
        async with client:
            return await fetch_remote_story(client, key)

    def _fallback(self, key: ContentKey) -> ContentEnvelope[Any]:
        story = self.fixtures.resolve(key)
        if story.full_slug != key:
            logger.warning(
                "fixture recovery for %r: serving default fixture %r", key, story.full_slug
            )
        return ContentEnvelope(status=200, story=story)

    @overload
    async def get_story(self, key: ContentKey) -> ContentEnvelope[Blok]: ...

    @overload
    async def get_story(self, key: ContentKey, content_type: type[T]) -> ContentEnvelope[T]: ...

    async def get_story(
        self, key: ContentKey, content_type: type[Any] | None = None
    ) -> ContentEnvelope[Any]:
        """Fetch one story, always resolving to a 200 envelope.

        `content_type` only informs static typing; payloads are not checked
        against it here (see `story_safe.validation`).
        """
        mode = self.current_mode()
        logger.debug("fetching %r mode=%s", key, mode)
        if mode is Mode.OFFLINE:
            return self._fallback(key)

        outcome = await self._remote_story(key)
        if isinstance(outcome, StoryFetched):
            logger.debug("api success for %r", key)
            return ContentEnvelope(status=200, story=outcome.story)
        logger.warning(
            "api failed for %r kind=%s status=%s: %s; serving fixture",
            key,
            outcome.kind,
            outcome.status_code,
            outcome.message,
        )
        return self._fallback(key)

    async def get_stories(self, params: dict[str, Any] | None = None) -> StoriesResult:
        """List stories. Offline or failed listings are empty, never raised."""
        if self.current_mode() is Mode.OFFLINE:
            logger.warning("offline mode: returning empty story list")
            return StoriesResult(stories=[], total=0)
        try:
            if self._client is not None:
                list_stories = getattr(self._client, "list_stories", None)
                if list_stories is None:
                    raise StoryblokAPIError("injected client does not support listing")
                response = await list_stories(params)
            else:
                async with StoryblokClient(self.current_settings()) as client:
                    response = await client.list_stories(params)
            rows = response.data.get("stories", [])
            stories = [Story.from_payload(row) for row in rows if isinstance(row, dict)]
            raw_total = response.data.get("total") or response.headers.get("total") or 0
            try:
                total = int(raw_total)
            except (TypeError, ValueError):
                total = len(stories)
            return StoriesResult(stories=stories, total=total or len(stories))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            failure = _failure_from_exception(exc)
            logger.warning("story listing failed kind=%s: %s", failure.kind, failure.message)
            return StoriesResult(stories=[], total=0, error=failure)


_DEFAULT_FETCHER: SafeStoryFetcher | None = None


def set_default_fetcher(fetcher: SafeStoryFetcher | None) -> None:
    global _DEFAULT_FETCHER
    _DEFAULT_FETCHER = fetcher


def default_fetcher() -> SafeStoryFetcher:
    fetcher = _DEFAULT_FETCHER
    if fetcher is not None:
        return fetcher
    created = SafeStoryFetcher()
    set_default_fetcher(created)
    return created


@overload
async def get_safe_story(key: ContentKey) -> ContentEnvelope[Blok]: ...


@overload
async def get_safe_story(key: ContentKey, content_type: type[T]) -> ContentEnvelope[T]: ...


async def get_safe_story(
    key: ContentKey, content_type: type[Any] | None = None
) -> ContentEnvelope[Any]:
    """Fetch one story through the process default fetcher."""
    return await default_fetcher().get_story(key, content_type)


async def get_safe_stories(params: dict[str, Any] | None = None) -> StoriesResult:
    """List stories through the process default fetcher."""
    return await default_fetcher().get_stories(params)
