"""Pydantic request / response DTOs for the API boundary."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, field_validator

from repo_insights.domain.entities import (
    ActivityEvent,
    ComparableRepository,
    Contributor,
    DashboardView,
    FetchSlot,
    LanguageShare,
    Repository,
    StreamState,
)
from repo_insights.services.exporters import describe_event


class SearchRequest(BaseModel):
    """Request body for ``POST /search``."""

    query: str

    @field_validator("query")
    @classmethod
    def _must_not_be_empty(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            msg = "query must not be empty."
            raise ValueError(msg)
        return stripped


class CredentialRequest(BaseModel):
    """Request body for ``PUT /credential``."""

    token: str

    @field_validator("token")
    @classmethod
    def _must_not_be_empty(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            msg = "token must not be empty."
            raise ValueError(msg)
        return stripped


class RepositoryOut(BaseModel):
    id: int
    name: str
    full_name: str
    owner: str
    html_url: str
    description: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    pushed_at: str | None = None
    stars: int
    watchers: int
    forks: int
    open_issues: int
    language: str | None = None
    topics: list[str] = []
    default_branch: str
    license: str | None = None
    size: int = 0

    @classmethod
    def from_entity(cls, repo: Repository) -> RepositoryOut:
        return cls(
            id=repo.id,
            name=repo.name,
            full_name=repo.full_name,
            owner=repo.owner_login,
            html_url=repo.html_url,
            description=repo.description,
            created_at=repo.created_at,
            updated_at=repo.updated_at,
            pushed_at=repo.pushed_at,
            stars=repo.stargazers_count,
            watchers=repo.watchers_count,
            forks=repo.forks_count,
            open_issues=repo.open_issues_count,
            language=repo.language,
            topics=list(repo.topics),
            default_branch=repo.default_branch,
            license=repo.license_name,
            size=repo.size,
        )


class LanguageOut(BaseModel):
    name: str
    bytes: int
    percentage: float

    @classmethod
    def from_entity(cls, share: LanguageShare) -> LanguageOut:
        return cls(name=share.name, bytes=share.bytes, percentage=round(share.percentage, 2))


class ContributorOut(BaseModel):
    login: str
    contributions: int
    avatar_url: str | None = None
    html_url: str | None = None

    @classmethod
    def from_entity(cls, contributor: Contributor) -> ContributorOut:
        return cls(
            login=contributor.login,
            contributions=contributor.contributions,
            avatar_url=contributor.avatar_url,
            html_url=contributor.html_url,
        )


class EventOut(BaseModel):
    id: str
    type: str
    user: str
    date: str | None = None
    details: str

    @classmethod
    def from_entity(cls, event: ActivityEvent) -> EventOut:
        return cls(
            id=event.id,
            type=event.type,
            user=event.actor_login,
            date=event.created_at,
            details=describe_event(event),
        )


class SlotOut(BaseModel):
    """Load state of one dashboard panel."""

    status: str
    data: Any = None
    error: str | None = None


def _slot(slot: FetchSlot[Any], convert: Any) -> SlotOut:
    data = None
    if slot.data is not None:
        data = convert(slot.data)
    return SlotOut(status=slot.status.value, data=data, error=slot.error)


class ViewResponse(BaseModel):
    """Aggregated dashboard view."""

    owner: str | None = None
    name: str | None = None
    repository: SlotOut
    languages: SlotOut
    contributors: SlotOut
    activity: SlotOut

    @classmethod
    def from_view(cls, view: DashboardView) -> ViewResponse:
        return cls(
            owner=view.key.owner if view.key else None,
            name=view.key.name if view.key else None,
            repository=_slot(view.repository, RepositoryOut.from_entity),
            languages=_slot(
                view.languages, lambda items: [LanguageOut.from_entity(i) for i in items]
            ),
            contributors=_slot(
                view.contributors, lambda items: [ContributorOut.from_entity(i) for i in items]
            ),
            activity=_slot(view.activity, lambda items: [EventOut.from_entity(i) for i in items]),
        )


class ComparisonItemOut(BaseModel):
    id: int
    name: str
    full_name: str
    stars: int
    forks: int
    issues: int
    language: str | None = None
    contributors: int
    last_update: str | None = None
    created_at: str | None = None

    @classmethod
    def from_entity(cls, item: ComparableRepository) -> ComparisonItemOut:
        return cls(
            id=item.id,
            name=item.name,
            full_name=item.full_name,
            stars=item.stars,
            forks=item.forks,
            issues=item.issues,
            language=item.language,
            contributors=item.contributors,
            last_update=item.last_update,
            created_at=item.created_at,
        )


class HomeResponse(BaseModel):
    """Empty search state: no subject, only what is kept across searches."""

    history: list[RepositoryOut]
    comparison: list[ComparisonItemOut]


class SummaryStateResponse(BaseModel):
    status: str
    text: str
    error: str | None = None

    @classmethod
    def from_state(cls, state: StreamState) -> SummaryStateResponse:
        return cls(status=state.status.value, text=state.text, error=state.error)


class ErrorResponse(BaseModel):
    """Standard error envelope returned on all failure paths."""

    status: str = "error"
    message: str
