"""Async HTTP client for the Storyblok Content Delivery API v2."""

from __future__ import annotations

from dataclasses import dataclass
from time import perf_counter
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from story_safe.settings import Settings


class StoryblokAPIError(RuntimeError):
    """Raised on Storyblok delivery API failures."""


class MissingDeliveryTokenError(StoryblokAPIError):
    """Raised when no delivery token is configured."""


class TransportError(StoryblokAPIError):
    """Raised when the API cannot be reached or times out."""


class RemoteStatusError(StoryblokAPIError):
    """Raised for non-2xx responses."""

    def __init__(self, path: str, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"{path} failed with status {status_code}")


class MalformedResponseError(StoryblokAPIError):
    """Raised when a 2xx response does not carry the expected payload."""


@dataclass(frozen=True)
class StoryblokResponse:
    """Response data and metadata from an API call."""

    data: Any
    status_code: int
    headers: dict[str, str]
    duration_ms: int


class StoryClient(Protocol):
    """Anything that can fetch one story by key."""

    async def get(self, key: str) -> StoryblokResponse: ...


def story_path(key: str) -> str:
    """Delivery path for one story; slashes inside full slugs are kept."""
    return f"/cdn/stories/{quote(key.strip('/'), safe='/')}"


class StoryblokClient:
    """Thin async HTTP client around the Storyblok delivery API."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._base_url = settings.api_base_url.rstrip("/")
        limits = httpx.Limits(max_connections=8, max_keepalive_connections=4)
        self._http = httpx.AsyncClient(
            timeout=settings.timeout_s,
            limits=limits,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> StoryblokClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def _request(self, *, path: str, params: dict[str, Any]) -> StoryblokResponse:
        token = str(self.settings.delivery_api_token).strip()
        if not token:
            raise MissingDeliveryTokenError(
                "missing Storyblok delivery token; set STORYBLOK_DELIVERY_API_TOKEN or "
                "configure storyblok.token_files in runtime.toml"
            )
        params_with_token = dict(params)
        params_with_token["token"] = token
        params_with_token.setdefault("version", self.settings.version)
        url = f"{self._base_url}/{path.lstrip('/')}"
        started = perf_counter()
        try:
            response = await self._http.get(url, params=params_with_token)
        except httpx.HTTPError as exc:
            raise TransportError(f"{path} failed with transport error: {exc}") from exc
        if not response.is_success:
            raise RemoteStatusError(path, response.status_code)
        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponseError(f"{path} returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise MalformedResponseError(f"{path} returned a non-object payload")

        duration_ms = int((perf_counter() - started) * 1000)
        headers = {
            "cache-control": response.headers.get("cache-control", ""),
            "x-request-id": response.headers.get("x-request-id", ""),
            "total": response.headers.get("total", ""),
            "per-page": response.headers.get("per-page", ""),
        }
        return StoryblokResponse(
            data=data,
            status_code=response.status_code,
            headers=headers,
            duration_ms=duration_ms,
        )

    async def get(self, key: str, params: dict[str, Any] | None = None) -> StoryblokResponse:
        """Fetch one story by slug or full slug."""
        path = story_path(key)
        response = await self._request(path=path, params=dict(params or {}))
        if not isinstance(response.data.get("story"), dict):
            raise MalformedResponseError(
                f"API returned success but 'story' is missing for slug: {key}"
            )
        return response

    async def list_stories(self, params: dict[str, Any] | None = None) -> StoryblokResponse:
        """List stories, e.g. with `starts_with`, `per_page`, `page`."""
        response = await self._request(path="/cdn/stories", params=dict(params or {}))
        if not isinstance(response.data.get("stories"), list):
            raise MalformedResponseError("API returned success but 'stories' is missing")
        return response
