"""Bounded collections of repositories kept across searches."""

from __future__ import annotations

from repo_insights.domain.entities import ComparableRepository, Repository
from repo_insights.domain.exceptions import AlreadyInComparisonError, ComparisonFullError

HISTORY_LIMIT = 10
COMPARISON_LIMIT = 3


class History:
    """Recently resolved repositories, most recent first, unique by id."""

    def __init__(self, limit: int = HISTORY_LIMIT) -> None:
        self._limit = limit
        self._items: list[Repository] = []

    def push(self, repository: Repository) -> None:
        """Move *repository* to the front, evicting the oldest entry past the cap."""
        items = [r for r in self._items if r.id != repository.id]
        self._items = [repository, *items][: self._limit]

    def items(self) -> list[Repository]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


class ComparisonSet:
    """Up to ``COMPARISON_LIMIT`` condensed repositories, in insertion order."""

    def __init__(self, limit: int = COMPARISON_LIMIT) -> None:
        self._limit = limit
        self._items: list[ComparableRepository] = []

    def add(self, item: ComparableRepository) -> None:
        if any(existing.id == item.id for existing in self._items):
            raise AlreadyInComparisonError(
                f"{item.full_name} is already in the comparison list."
            )
        if len(self._items) >= self._limit:
            raise ComparisonFullError(
                f"You can compare up to {self._limit} repositories. "
                "Remove one to add another."
            )
        self._items.append(item)

    def remove(self, repo_id: int) -> None:
        self._items = [item for item in self._items if item.id != repo_id]

    def clear(self) -> None:
        self._items = []

    def items(self) -> list[ComparableRepository]:
        return list(self._items)

    def __contains__(self, repo_id: object) -> bool:
        return any(item.id == repo_id for item in self._items)

    def __len__(self) -> int:
        return len(self._items)
