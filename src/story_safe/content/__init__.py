"""Content resilience layer: mode detection, fixtures, safe fetch, settings cache."""

from story_safe.content.errors import ContentError, FixtureError
from story_safe.content.fetcher import (
    SafeStoryFetcher,
    default_fetcher,
    fetch_remote_story,
    get_safe_stories,
    get_safe_story,
    set_default_fetcher,
)
from story_safe.content.fixtures import (
    DEFAULT_FALLBACK_KEY,
    FixtureRepository,
    default_fixture_repository,
    lookup_fixture,
    repository_for_runtime,
    resolve_fixture,
    set_default_fixture_repository,
)
from story_safe.content.global_settings import (
    SETTINGS_KEY,
    GlobalSettingsCache,
    default_global_settings,
    get_global_settings,
    global_settings_cache,
    reset_global_settings_cache,
)
from story_safe.content.mode import Mode, detect_mode, is_offline
from story_safe.content.models import (
    ContentEnvelope,
    ContentKey,
    FetchFailure,
    FetchOutcome,
    StoriesResult,
    Story,
    StoryFetched,
)

__all__ = [
    "ContentEnvelope",
    "ContentError",
    "ContentKey",
    "DEFAULT_FALLBACK_KEY",
    "FetchFailure",
    "FetchOutcome",
    "FixtureError",
    "FixtureRepository",
    "GlobalSettingsCache",
    "Mode",
    "SETTINGS_KEY",
    "SafeStoryFetcher",
    "StoriesResult",
    "Story",
    "StoryFetched",
    "default_fetcher",
    "default_fixture_repository",
    "default_global_settings",
    "detect_mode",
    "fetch_remote_story",
    "get_global_settings",
    "get_safe_stories",
    "get_safe_story",
    "global_settings_cache",
    "is_offline",
    "lookup_fixture",
    "reset_global_settings_cache",
    "repository_for_runtime",
    "resolve_fixture",
    "set_default_fetcher",
    "set_default_fixture_repository",
]
