"""Bundled offline fixtures keyed by content key."""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from story_safe.content.errors import FixtureError
from story_safe.content.models import ContentKey, Story
from story_safe.runtime_config import RuntimeConfig, current_runtime_config

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_KEY: ContentKey = "home"


class _FixtureContent(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    uid: str = Field(alias="_uid")
    component: str = Field(min_length=1)


class _FixtureStory(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    name: str
    slug: str
    full_slug: str = Field(min_length=1)
    content: _FixtureContent


class _FixtureFile(BaseModel):
    story: _FixtureStory


def _private_copy(story: Story[Any]) -> Story[Any]:
    return replace(story, content=copy.deepcopy(story.content))


def _parse_fixture(payload: Any, *, source: str) -> Story[Any]:
    try:
        _FixtureFile.model_validate(payload)
    except ValidationError as exc:
        raise FixtureError(f"invalid fixture {source}: {exc}") from exc
    return Story.from_payload(payload["story"])


class FixtureRepository:
    """Read-only key -> story table with a designated default entry."""

    def __init__(
        self,
        stories: Iterable[Story[Any]],
        *,
        fallback_key: ContentKey = DEFAULT_FALLBACK_KEY,
    ) -> None:
        table: dict[ContentKey, Story[Any]] = {}
        for story in stories:
            if story.full_slug in table:
                raise FixtureError(f"duplicate fixture key: {story.full_slug}")
            table[story.full_slug] = story
        if fallback_key not in table:
            raise FixtureError(f"default fixture {fallback_key!r} is not registered")
        self._table: Mapping[ContentKey, Story[Any]] = MappingProxyType(table)
        self.fallback_key = fallback_key

    @classmethod
    def from_payloads(
        cls,
        payloads: Mapping[str, Any],
        *,
        fallback_key: ContentKey = DEFAULT_FALLBACK_KEY,
    ) -> FixtureRepository:
        """Build from `{source_name: {"story": {...}}}` records."""
        stories = [_parse_fixture(payload, source=name) for name, payload in payloads.items()]
        return cls(stories, fallback_key=fallback_key)

    @classmethod
    def from_directory(
        cls,
        directory: Path,
        *,
        fallback_key: ContentKey = DEFAULT_FALLBACK_KEY,
    ) -> FixtureRepository:
        if not directory.is_dir():
            raise FixtureError(f"fixtures directory not found: {directory}")
        payloads: dict[str, Any] = {}
        for path in sorted(directory.glob("*.json")):
            try:
                payloads[path.name] = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                raise FixtureError(f"failed reading fixture {path}") from exc
        return cls.from_payloads(payloads, fallback_key=fallback_key)

    @classmethod
    def bundled(cls, *, fallback_key: ContentKey = DEFAULT_FALLBACK_KEY) -> FixtureRepository:
        """Load the fixtures shipped inside the package."""
        root = resources.files("story_safe.content").joinpath("fixtures")
        payloads: dict[str, Any] = {}
        for entry in sorted(root.iterdir(), key=lambda item: item.name):
            if not entry.name.endswith(".json"):
                continue
            try:
                payloads[entry.name] = json.loads(entry.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                raise FixtureError(f"failed reading bundled fixture {entry.name}") from exc
        return cls.from_payloads(payloads, fallback_key=fallback_key)

    def keys(self) -> list[ContentKey]:
        return sorted(self._table)

    def __contains__(self, key: object) -> bool:
        return key in self._table

    def lookup(self, key: ContentKey) -> Story[Any] | None:
        """Exact-match lookup. Returned content is a private copy."""
        story = self._table.get(key)
        if story is None:
            return None
        return _private_copy(story)

    def resolve(self, key: ContentKey) -> Story[Any]:
        """The key's own fixture, else the default one."""
        story = self.lookup(key)
        if story is not None:
            return story
        logger.debug("no fixture for %r; using default %r", key, self.fallback_key)
        return _private_copy(self._table[self.fallback_key])


def repository_for_runtime(runtime: RuntimeConfig) -> FixtureRepository:
    """Fixtures from `runtime.fixtures_dir` when set, else the bundled ones."""
    if runtime.fixtures_dir is not None:
        return FixtureRepository.from_directory(
            runtime.fixtures_dir, fallback_key=runtime.fallback_slug
        )
    return FixtureRepository.bundled(fallback_key=runtime.fallback_slug)


_DEFAULT_REPOSITORY: FixtureRepository | None = None


def set_default_fixture_repository(repository: FixtureRepository | None) -> None:
    global _DEFAULT_REPOSITORY
    _DEFAULT_REPOSITORY = repository


def default_fixture_repository() -> FixtureRepository:
    repository = _DEFAULT_REPOSITORY
    if repository is not None:
        return repository
    loaded = repository_for_runtime(current_runtime_config())
    set_default_fixture_repository(loaded)
    return loaded


def lookup_fixture(key: ContentKey) -> Story[Any] | None:
    """Exact lookup in the process fixture table."""
    return default_fixture_repository().lookup(key)


def resolve_fixture(key: ContentKey) -> Story[Any]:
    """Fixture for `key`, degrading to the default entry for unknown keys."""
    return default_fixture_repository().resolve(key)
