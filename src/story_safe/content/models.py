"""Story, envelope, and fetch-outcome types."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Generic, Literal, TypeVar

from story_safe.blocks import Blok

T = TypeVar("T", bound=Blok)

ContentKey = str

FailureKind = Literal["configuration_absent", "transport", "remote", "malformed"]


@dataclass(frozen=True)
class Story(Generic[T]):
    """One content record as delivered by the CMS or a fixture."""

    id: int
    name: str
    slug: str
    full_slug: str
    content: T
    uuid: str = ""
    extra: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_payload(cls, payload: dict[str, Any], *, key: ContentKey = "") -> Story[Any]:
        """Build from a delivery API `story` object; missing labels fall back to the key."""
        known = {"id", "name", "slug", "full_slug", "content", "uuid"}
        slug = str(payload.get("slug") or key.rsplit("/", 1)[-1])
        raw_id = payload.get("id", 0)
        return cls(
            id=raw_id if isinstance(raw_id, int) and not isinstance(raw_id, bool) else 0,
            name=str(payload.get("name") or slug),
            slug=slug,
            full_slug=str(payload.get("full_slug") or key or slug),
            content=payload.get("content") or {},
            uuid=str(payload.get("uuid") or ""),
            extra={k: v for k, v in payload.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        row = asdict(self)
        row.pop("extra")
        return row


@dataclass(frozen=True)
class ContentEnvelope(Generic[T]):
    """Uniform fetch result. `status == 200` always carries a story."""

    status: int
    story: Story[T] | None

    def __post_init__(self) -> None:
        if self.status == 200 and self.story is None:
            raise ValueError("a 200 envelope must carry a story")

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "story": self.story.to_dict() if self.story is not None else None,
        }


@dataclass(frozen=True)
class StoryFetched:
    """Successful remote fetch."""

    story: Story[Any]


@dataclass(frozen=True)
class FetchFailure:
    """Remote fetch failure, absorbed by the fetcher."""

    kind: FailureKind
    message: str
    status_code: int | None = None


FetchOutcome = StoryFetched | FetchFailure


@dataclass(frozen=True)
class StoriesResult:
    """Listing result. Empty on failure or when offline."""

    stories: list[Story[Any]]
    total: int
    error: FetchFailure | None = None
