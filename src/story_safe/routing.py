"""Route-level decisions on top of the safe fetcher.

The fetcher never reports a miss, so whether a page exists is decided here by
comparing the requested slug against known routes.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from typing import Any

from story_safe.content.fetcher import SafeStoryFetcher, default_fetcher
from story_safe.content.models import ContentEnvelope, ContentKey

NOT_FOUND_ROUTE = "/404"
HOME_KEY: ContentKey = "home"


def slug_from_path(path: str) -> ContentKey:
    """`/` and `` map to `home`; otherwise the path without surrounding slashes."""
    cleaned = path.split("?", 1)[0].split("#", 1)[0].strip().strip("/")
    return cleaned or HOME_KEY


@dataclass(frozen=True)
class PageResolution:
    slug: ContentKey
    envelope: ContentEnvelope[Any] | None
    redirect_to: str | None = None

    @property
    def should_redirect(self) -> bool:
        return self.redirect_to is not None


async def resolve_page(
    path: str,
    *,
    known_routes: Collection[ContentKey] | None = None,
    fetcher: SafeStoryFetcher | None = None,
) -> PageResolution:
    """Resolve content for a request path.

    With `known_routes` given, unknown slugs redirect to the 404 route without a
    fetch. Without it every path renders, unknown ones from the default fixture.
    """
    slug = slug_from_path(path)
    if known_routes is not None and slug not in known_routes:
        return PageResolution(slug=slug, envelope=None, redirect_to=NOT_FOUND_ROUTE)
    envelope = await (fetcher or default_fetcher()).get_story(slug)
    return PageResolution(slug=slug, envelope=envelope)
