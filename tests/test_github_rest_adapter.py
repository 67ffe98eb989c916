"""Tests for the GitHub REST adapter against a mocked transport."""

from datetime import date

import httpx
import pytest

from repo_insights.domain.exceptions import (
    RateLimitedError,
    ReadmeNotFoundError,
    RepositoryNotFoundError,
    RequestTimeoutError,
    UpstreamError,
)
from repo_insights.domain.value_objects import ApiConfig, RepositoryKey
from repo_insights.infrastructure.github_rest_adapter import GitHubRestAdapter

KEY = RepositoryKey(owner="facebook", name="react")


def _adapter(handler, readme_timeout: float = 5.0) -> GitHubRestAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GitHubRestAdapter(client, events_per_page=5, readme_timeout=readme_timeout)


async def test_fetch_repository_sends_bearer_token(make_repo):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=make_repo(10270250, "facebook", "react"))

    adapter = _adapter(handler)
    repo = await adapter.fetch_repository(
        KEY, ApiConfig(base_url="https://api.github.test/", credential="tok")
    )

    assert repo.id == 10270250
    assert repo.license_name == "MIT License"
    assert str(seen[0].url) == "https://api.github.test/repos/facebook/react"
    assert seen[0].headers["Authorization"] == "Bearer tok"
    assert seen[0].headers["Accept"] == "application/vnd.github.v3+json"


async def test_unauthenticated_requests_have_no_authorization(config):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"Python": 10})

    assert await _adapter(handler).fetch_languages(KEY, config) == {"Python": 10}
    assert "Authorization" not in seen[0].headers


async def test_fetch_activity_requests_first_page_only(config):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json=[{"id": "9", "type": "PushEvent", "actor": {"login": "gaearon"}, "payload": {}}],
        )

    events = await _adapter(handler).fetch_activity(KEY, config)

    assert events[0].actor_login == "gaearon"
    assert seen[0].url.params["per_page"] == "5"
    assert "page" not in seen[0].url.params


async def test_contributors_empty_body(config):
    adapter = _adapter(lambda request: httpx.Response(204))

    assert await adapter.fetch_contributors(KEY, config) == []


async def test_rate_limit_by_message(config):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            403, json={"message": "API rate limit exceeded for 1.2.3.4."}
        )

    with pytest.raises(RateLimitedError, match="token"):
        await _adapter(handler).fetch_repository(KEY, config)


async def test_rate_limit_by_header(config):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            403,
            json={"message": "Forbidden"},
            headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1700000000"},
        )

    with pytest.raises(RateLimitedError, match="2023-11-14"):
        await _adapter(handler).fetch_contributors(KEY, config)


async def test_plain_forbidden_is_generic_failure(config):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"message": "Repository access blocked"})

    with pytest.raises(UpstreamError, match="Repository access blocked"):
        await _adapter(handler).fetch_repository(KEY, config)


async def test_not_found(config):
    adapter = _adapter(lambda request: httpx.Response(404, json={"message": "Not Found"}))

    with pytest.raises(RepositoryNotFoundError):
        await adapter.fetch_repository(KEY, config)


async def test_readme_is_fetched_raw(config):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="# React\n")

    assert await _adapter(handler).fetch_readme(KEY, config) == "# React\n"
    assert seen[0].headers["Accept"] == "application/vnd.github.v3.raw"
    assert seen[0].url.path == "/repos/facebook/react/readme"


async def test_readme_not_found(config):
    adapter = _adapter(lambda request: httpx.Response(404, json={"message": "Not Found"}))

    with pytest.raises(ReadmeNotFoundError):
        await adapter.fetch_readme(KEY, config)


async def test_readme_timeout(config):
    def handler(request: httpx.Request) -> httpx.Response:
        timeout = request.extensions["timeout"]
        assert timeout["connect"] == timeout["read"] == 2.5
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(RequestTimeoutError):
        await _adapter(handler, readme_timeout=2.5).fetch_readme(KEY, config)


async def test_readme_timeout_applies_only_to_readme(config):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.extensions["timeout"]["read"])
        return httpx.Response(200, json={"Python": 10})

    await _adapter(handler, readme_timeout=2.5).fetch_languages(KEY, config)

    assert seen == [5.0]


async def test_network_error_is_upstream_error(config):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamError):
        await _adapter(handler).fetch_languages(KEY, config)


async def test_trending_query(config, make_repo):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"items": [make_repo(1, "a", "b")]})

    repos = await _adapter(handler).fetch_trending(config, date(2024, 5, 1))

    assert [r.full_name for r in repos] == ["a/b"]
    assert seen[0].url.params["q"] == "created:>2024-05-01 stars:>100"
    assert seen[0].url.params["per_page"] == "3"


async def test_search_repositories(config, make_repo):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["q"] == "react"
        return httpx.Response(200, json={"items": [make_repo(1, "facebook", "react")]})

    repos = await _adapter(handler).search_repositories("react", config)

    assert repos[0].name == "react"
