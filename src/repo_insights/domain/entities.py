"""Domain entities — pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from repo_insights.domain.value_objects import RepositoryKey

T = TypeVar("T")


class SlotName(str, Enum):
    """The four independently loaded data categories of the dashboard."""

    REPOSITORY = "repository"
    LANGUAGES = "languages"
    CONTRIBUTORS = "contributors"
    ACTIVITY = "activity"


class SlotStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FetchSlot(Generic[T]):
    """Load state of one slot: exactly one of idle, loading, ready or failed."""

    status: SlotStatus = SlotStatus.IDLE
    data: T | None = None
    error: str | None = None

    @classmethod
    def idle(cls) -> FetchSlot[T]:
        return cls()

    @classmethod
    def loading(cls) -> FetchSlot[T]:
        return cls(status=SlotStatus.LOADING)

    @classmethod
    def ready(cls, data: T) -> FetchSlot[T]:
        return cls(status=SlotStatus.READY, data=data)

    @classmethod
    def failed(cls, message: str) -> FetchSlot[T]:
        return cls(status=SlotStatus.FAILED, error=message)


@dataclass(frozen=True, slots=True)
class Repository:
    """Repository record as returned by ``GET /repos/{owner}/{repo}``."""

    id: int
    name: str
    full_name: str
    owner_login: str
    html_url: str
    description: str | None = None
    owner_avatar_url: str | None = None
    owner_html_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    pushed_at: str | None = None
    stargazers_count: int = 0
    watchers_count: int = 0
    forks_count: int = 0
    open_issues_count: int = 0
    language: str | None = None
    topics: tuple[str, ...] = ()
    default_branch: str = "main"
    license_name: str | None = None
    size: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Repository:
        owner = data.get("owner") or {}
        license_info = data.get("license") or {}
        return cls(
            id=data["id"],
            name=data["name"],
            full_name=data["full_name"],
            owner_login=owner.get("login", ""),
            owner_avatar_url=owner.get("avatar_url"),
            owner_html_url=owner.get("html_url"),
            html_url=data.get("html_url", ""),
            description=data.get("description"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            pushed_at=data.get("pushed_at"),
            stargazers_count=data.get("stargazers_count", 0),
            watchers_count=data.get("watchers_count", 0),
            forks_count=data.get("forks_count", 0),
            open_issues_count=data.get("open_issues_count", 0),
            language=data.get("language"),
            topics=tuple(data.get("topics") or ()),
            default_branch=data.get("default_branch", "main"),
            license_name=license_info.get("name"),
            size=data.get("size", 0),
        )


@dataclass(frozen=True, slots=True)
class LanguageShare:
    """One bar of the language histogram."""

    name: str
    bytes: int
    percentage: float


def language_shares(histogram: dict[str, int]) -> list[LanguageShare]:
    """Turn a ``{language: bytes}`` mapping into shares sorted by size."""
    total = sum(histogram.values())
    shares = [
        LanguageShare(
            name=name,
            bytes=count,
            percentage=(count / total) * 100 if total > 0 else 0.0,
        )
        for name, count in histogram.items()
    ]
    return sorted(shares, key=lambda s: s.bytes, reverse=True)


@dataclass(frozen=True, slots=True)
class Contributor:
    login: str
    id: int
    contributions: int
    avatar_url: str | None = None
    html_url: str | None = None
    type: str = "User"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Contributor:
        return cls(
            login=data.get("login", ""),
            id=data.get("id", 0),
            contributions=data.get("contributions", 0),
            avatar_url=data.get("avatar_url"),
            html_url=data.get("html_url"),
            type=data.get("type", "User"),
        )


@dataclass(frozen=True, slots=True)
class ActivityEvent:
    """A public event (push, pull request, issue …) on the repository."""

    id: str
    type: str
    actor_login: str
    created_at: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> ActivityEvent:
        actor = data.get("actor") or {}
        return cls(
            id=str(data.get("id", "")),
            type=data.get("type", ""),
            actor_login=actor.get("login", ""),
            created_at=data.get("created_at"),
            payload=data.get("payload") or {},
        )


@dataclass(frozen=True, slots=True)
class ComparableRepository:
    """Condensed repository record kept in the comparison set."""

    id: int
    name: str
    full_name: str
    stars: int
    forks: int
    issues: int
    language: str | None
    contributors: int
    last_update: str | None
    created_at: str | None


@dataclass(frozen=True, slots=True)
class DashboardView:
    """Immutable snapshot of the aggregated dashboard state."""

    key: RepositoryKey | None = None
    repository: FetchSlot[Repository] = field(default_factory=FetchSlot.idle)
    languages: FetchSlot[list[LanguageShare]] = field(default_factory=FetchSlot.idle)
    contributors: FetchSlot[list[Contributor]] = field(default_factory=FetchSlot.idle)
    activity: FetchSlot[list[ActivityEvent]] = field(default_factory=FetchSlot.idle)

    def slot(self, name: SlotName) -> FetchSlot[Any]:
        return getattr(self, name.value)


class StreamStatus(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class StreamState:
    """Progress of the README summary stream."""

    status: StreamStatus = StreamStatus.IDLE
    text: str = ""
    error: str | None = None
