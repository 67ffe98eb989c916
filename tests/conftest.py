"""Shared fakes for the dashboard tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Callable

import pytest

from repo_insights.domain.entities import ActivityEvent, Contributor, Repository
from repo_insights.domain.exceptions import ReadmeNotFoundError, RepositoryNotFoundError
from repo_insights.domain.value_objects import ApiConfig, RepositoryKey


def repo_payload(repo_id: int, owner: str, name: str, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": repo_id,
        "name": name,
        "full_name": f"{owner}/{name}",
        "owner": {"login": owner, "avatar_url": None, "html_url": f"https://github.com/{owner}"},
        "html_url": f"https://github.com/{owner}/{name}",
        "description": f"The {name} project",
        "created_at": "2013-05-24T16:15:54Z",
        "updated_at": "2024-01-01T00:00:00Z",
        "pushed_at": "2024-01-01T00:00:00Z",
        "stargazers_count": 1000 + repo_id,
        "watchers_count": 1000 + repo_id,
        "forks_count": 100 + repo_id,
        "open_issues_count": 10 + repo_id,
        "language": "JavaScript",
        "topics": ["ui"],
        "default_branch": "main",
        "license": {"key": "mit", "name": "MIT License"},
        "size": 4096,
    }
    payload.update(overrides)
    return payload


class FakeMetadataService:
    """In-memory MetadataService.

    Every call for a repository whose full name is in ``gates`` waits for
    that event first, which lets tests control completion order.
    """

    def __init__(self) -> None:
        self.repositories: dict[str, Repository] = {}
        self.languages: dict[str, dict[str, int]] = {}
        self.contributors: dict[str, list[Contributor]] = {}
        self.activity: dict[str, list[ActivityEvent]] = {}
        self.readmes: dict[str, str] = {}
        self.failures: dict[tuple[str, str], Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[tuple[str, str]] = []

    def add(self, repo_id: int, owner: str, name: str, contributors: int = 2) -> RepositoryKey:
        key = RepositoryKey(owner=owner, name=name)
        self.repositories[key.full_name] = Repository.from_api(repo_payload(repo_id, owner, name))
        self.languages[key.full_name] = {"JavaScript": 750, "CSS": 250}
        self.contributors[key.full_name] = [
            Contributor(login=f"dev{i}", id=i, contributions=100 - i) for i in range(contributors)
        ]
        self.activity[key.full_name] = [
            ActivityEvent(id="1", type="WatchEvent", actor_login="dev0")
        ]
        return key

    async def _enter(self, kind: str, key: RepositoryKey) -> None:
        self.calls.append((kind, key.full_name))
        gate = self.gates.get(key.full_name)
        if gate is not None:
            await gate.wait()
        failure = self.failures.get((kind, key.full_name))
        if failure is not None:
            raise failure

    async def fetch_repository(self, key: RepositoryKey, config: ApiConfig) -> Repository:
        await self._enter("repository", key)
        try:
            return self.repositories[key.full_name]
        except KeyError:
            raise RepositoryNotFoundError(f"Not found: {key.full_name}") from None

    async def fetch_languages(self, key: RepositoryKey, config: ApiConfig) -> dict[str, int]:
        await self._enter("languages", key)
        return self.languages.get(key.full_name, {})

    async def fetch_contributors(
        self, key: RepositoryKey, config: ApiConfig
    ) -> list[Contributor]:
        await self._enter("contributors", key)
        return self.contributors.get(key.full_name, [])

    async def fetch_activity(
        self, key: RepositoryKey, config: ApiConfig
    ) -> list[ActivityEvent]:
        await self._enter("activity", key)
        return self.activity.get(key.full_name, [])

    async def fetch_readme(self, key: RepositoryKey, config: ApiConfig) -> str:
        await self._enter("readme", key)
        try:
            return self.readmes[key.full_name]
        except KeyError:
            raise ReadmeNotFoundError(f"README not found in {key.full_name}") from None


class FakeChatStream:
    """ChatStream that replays canned body chunks.

    If ``gate`` is set, the stream pauses before each chunk after the first
    until the event is set.  If ``failure`` is set, it is raised right after
    the first chunk, as a dropped connection would.
    """

    def __init__(self, chunks: list[bytes] | None = None) -> None:
        self.chunks = chunks or []
        self.prompts: list[tuple[str, str]] = []
        self.gate: asyncio.Event | None = None
        self.failure: Exception | None = None
        self.closed = False

    async def open(self, system_prompt: str, user_prompt: str) -> AsyncIterator[bytes]:
        self.prompts.append((system_prompt, user_prompt))
        try:
            for index, chunk in enumerate(self.chunks):
                if index and self.gate is not None:
                    await self.gate.wait()
                yield chunk
                if self.failure is not None:
                    raise self.failure
        finally:
            self.closed = True


def sse(*contents: str, done: bool = True) -> list[bytes]:
    """Build an event-stream body with one delta record per content."""
    chunks = [
        ('data: {"choices":[{"delta":{"content":%s}}]}\n\n' % json.dumps(text)).encode()
        for text in contents
    ]
    if done:
        chunks.append(b"data: [DONE]\n\n")
    return chunks


@pytest.fixture
def config() -> ApiConfig:
    return ApiConfig(base_url="https://api.github.test")


@pytest.fixture
def metadata() -> FakeMetadataService:
    return FakeMetadataService()


@pytest.fixture
def chat() -> FakeChatStream:
    return FakeChatStream()


@pytest.fixture
def make_sse() -> Callable[..., list[bytes]]:
    return sse


@pytest.fixture
def make_repo() -> Callable[..., dict[str, Any]]:
    return repo_payload


@pytest.fixture
def chat_factory() -> Callable[..., FakeChatStream]:
    return FakeChatStream
