"""Port: repository metadata service — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol

from repo_insights.domain.entities import ActivityEvent, Contributor, Repository
from repo_insights.domain.value_objects import ApiConfig, RepositoryKey


class MetadataService(Protocol):
    """Abstract contract for fetching repository data from GitHub."""

    async def fetch_repository(self, key: RepositoryKey, config: ApiConfig) -> Repository:
        """Return the repository record."""
        ...

    async def fetch_languages(self, key: RepositoryKey, config: ApiConfig) -> dict[str, int]:
        """Return the language → byte-count mapping."""
        ...

    async def fetch_contributors(
        self, key: RepositoryKey, config: ApiConfig
    ) -> list[Contributor]:
        """Return the first page of contributors."""
        ...

    async def fetch_activity(
        self, key: RepositoryKey, config: ApiConfig
    ) -> list[ActivityEvent]:
        """Return the most recent public events."""
        ...

    async def fetch_readme(self, key: RepositoryKey, config: ApiConfig) -> str:
        """Return the raw README text."""
        ...
