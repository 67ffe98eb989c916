"""GitHub REST API adapter — implements the MetadataService port."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any

import httpx

from repo_insights.domain.entities import ActivityEvent, Contributor, Repository
from repo_insights.domain.exceptions import (
    RateLimitedError,
    ReadmeNotFoundError,
    RepositoryNotFoundError,
    RequestTimeoutError,
    UpstreamError,
)
from repo_insights.domain.value_objects import ApiConfig, RepositoryKey

logger = logging.getLogger(__name__)

_JSON_ACCEPT = "application/vnd.github.v3+json"
_RAW_ACCEPT = "application/vnd.github.v3.raw"
_USER_AGENT = "repo-insights/1.0"


class GitHubRestAdapter:
    """Concrete MetadataService backed by the GitHub v3 REST API.

    Only the first page of any list endpoint is ever requested.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        events_per_page: int = 30,
        readme_timeout: float = 5.0,
    ) -> None:
        self._client = client
        self._events_per_page = events_per_page
        self._readme_timeout = readme_timeout

    async def fetch_repository(self, key: RepositoryKey, config: ApiConfig) -> Repository:
        """GET /repos/{owner}/{repo} → Repository."""
        resp = await self._api_get(config, f"/repos/{key.owner}/{key.name}")
        return Repository.from_api(resp.json())

    async def fetch_languages(self, key: RepositoryKey, config: ApiConfig) -> dict[str, int]:
        """GET /repos/{owner}/{repo}/languages → {lang: bytes}."""
        resp = await self._api_get(config, f"/repos/{key.owner}/{key.name}/languages")
        data: dict[str, int] = resp.json()
        return data

    async def fetch_contributors(
        self, key: RepositoryKey, config: ApiConfig
    ) -> list[Contributor]:
        """GET /repos/{owner}/{repo}/contributors → [Contributor]."""
        resp = await self._api_get(config, f"/repos/{key.owner}/{key.name}/contributors")
        # GitHub answers 204 with no body while contributor stats are computed.
        if resp.status_code == 204 or not resp.content:
            return []
        return [Contributor.from_api(item) for item in resp.json()]

    async def fetch_activity(
        self, key: RepositoryKey, config: ApiConfig
    ) -> list[ActivityEvent]:
        """GET /repos/{owner}/{repo}/events?per_page=N → [ActivityEvent]."""
        resp = await self._api_get(
            config,
            f"/repos/{key.owner}/{key.name}/events",
            params={"per_page": str(self._events_per_page)},
        )
        return [ActivityEvent.from_api(item) for item in resp.json()]

    async def fetch_readme(self, key: RepositoryKey, config: ApiConfig) -> str:
        """GET /repos/{owner}/{repo}/readme as raw text, bounded by a short timeout."""
        try:
            resp = await self._api_get(
                config,
                f"/repos/{key.owner}/{key.name}/readme",
                accept=_RAW_ACCEPT,
                timeout=self._readme_timeout,
            )
        except RepositoryNotFoundError as exc:
            raise ReadmeNotFoundError(
                f"README not found in repository {key.full_name}."
            ) from exc

        if not resp.text:
            raise ReadmeNotFoundError(f"README of {key.full_name} is empty.")
        return resp.text

    async def search_repositories(self, query: str, config: ApiConfig) -> list[Repository]:
        """GET /search/repositories?q=… sorted by stars."""
        resp = await self._api_get(
            config,
            "/search/repositories",
            params={"q": query, "sort": "stars", "order": "desc"},
        )
        return [Repository.from_api(item) for item in resp.json().get("items", [])]

    async def fetch_trending(
        self, config: ApiConfig, since: date, per_page: int = 3
    ) -> list[Repository]:
        """Most-starred repositories created after *since*."""
        resp = await self._api_get(
            config,
            "/search/repositories",
            params={
                "q": f"created:>{since.isoformat()} stars:>100",
                "sort": "stars",
                "order": "desc",
                "per_page": str(per_page),
            },
        )
        return [Repository.from_api(item) for item in resp.json().get("items", [])]

    async def _api_get(
        self,
        config: ApiConfig,
        endpoint: str,
        params: dict[str, str] | None = None,
        accept: str = _JSON_ACCEPT,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Perform a GitHub API GET request with error translation."""
        url = f"{config.base_url.rstrip('/')}{endpoint}"
        headers = {"Accept": accept, "User-Agent": _USER_AGENT, **config.headers}
        logger.debug("GET %s", url)
        kwargs: dict[str, Any] = {"headers": headers, "params": params}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            resp = await self._client.get(url, **kwargs)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(
                f"Request to {url} timed out. Please try again."
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Network error fetching {url}: {exc}") from exc

        if resp.status_code in (200, 204):
            return resp

        if resp.status_code == 404:
            raise RepositoryNotFoundError(f"Not found: {endpoint}")

        if resp.status_code in (403, 429) and _is_rate_limited(resp):
            raise RateLimitedError(
                "GitHub API rate limit exceeded"
                f"{_reset_suffix(resp)}. "
                "Please add a GitHub token to increase the limit."
            )

        raise UpstreamError(_error_message(resp))


def _error_message(resp: httpx.Response) -> str:
    try:
        message = resp.json().get("message")
    except (ValueError, AttributeError):
        message = None
    return message or f"GitHub API returned HTTP {resp.status_code}"


def _is_rate_limited(resp: httpx.Response) -> bool:
    if resp.status_code == 429:
        return True
    if resp.headers.get("x-ratelimit-remaining", "") == "0":
        return True
    return "rate limit" in _error_message(resp).lower()


def _reset_suffix(resp: httpx.Response) -> str:
    reset_raw = resp.headers.get("x-ratelimit-reset", "")
    if not reset_raw:
        return ""
    try:
        reset_str = datetime.fromtimestamp(int(reset_raw), tz=timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S UTC"
        )
    except (ValueError, OSError):
        return ""
    return f" (resets at {reset_str})"
