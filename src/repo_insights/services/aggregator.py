"""Dashboard session — merges the four repository fetches into one view.

The session is the single writer of the dashboard state.  A search resets
all four slots to *loading* in one step, then runs the fetches concurrently;
each one settles its own slot independently, so a failed contributor list
never hides a successfully loaded repository.  Every search bumps a
generation counter, and results that arrive for an older generation are
dropped instead of being merged into the newer view.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable

from repo_insights.domain.entities import (
    ComparableRepository,
    DashboardView,
    FetchSlot,
    SlotName,
    SlotStatus,
    language_shares,
)
from repo_insights.domain.exceptions import NoCurrentRepositoryError, RepoInsightsError
from repo_insights.domain.ports.metadata_service import MetadataService
from repo_insights.domain.value_objects import ApiConfig, RepositoryKey
from repo_insights.services.history import ComparisonSet, History

logger = logging.getLogger(__name__)

Listener = Callable[[DashboardView], None]


class DashboardSession:
    """State store for one dashboard user.

    Parameters
    ----------
    fetcher:
        Adapter that talks to the repository metadata service.
    """

    def __init__(self, fetcher: MetadataService) -> None:
        self._fetcher = fetcher
        self._view = DashboardView()
        self._generation = 0
        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self.history = History()
        self.comparison = ComparisonSet()

    @property
    def view(self) -> DashboardView:
        return self._view

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for every published view; returns an unsubscribe hook."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Searching ───────────────────────────────────────────────────────

    async def submit(self, query: str, config: ApiConfig) -> DashboardView:
        """Parse a free-form search string and load the repository it names.

        Raises :class:`InvalidFormatError` before anything is fetched when
        *query* cannot be parsed.
        """
        key = RepositoryKey.parse(query)
        return await self.load(key, config)

    async def load(self, key: RepositoryKey, config: ApiConfig) -> DashboardView:
        """Fetch all four slots for *key* and return the view once they settle.

        If another search starts meanwhile, the returned view belongs to
        that newer search.
        """
        generation = self.activate(key)
        logger.info("Loading %s (generation %d)", key.full_name, generation)

        fetches: list[tuple[SlotName, Awaitable[Any], Callable[[Any], Any] | None]] = [
            (SlotName.REPOSITORY, self._fetcher.fetch_repository(key, config), None),
            (SlotName.LANGUAGES, self._fetcher.fetch_languages(key, config), language_shares),
            (SlotName.CONTRIBUTORS, self._fetcher.fetch_contributors(key, config), None),
            (SlotName.ACTIVITY, self._fetcher.fetch_activity(key, config), None),
        ]
        tasks = [
            asyncio.create_task(self._settle(generation, key, slot, fetch, transform))
            for slot, fetch, transform in fetches
        ]
        self._tasks.update(tasks)
        try:
            await asyncio.gather(*tasks)
        finally:
            self._tasks.difference_update(tasks)
        return self._view

    def activate(self, key: RepositoryKey) -> int:
        """Make *key* the subject and put all four slots into *loading* at once."""
        self._generation += 1
        loading: FetchSlot[Any] = FetchSlot.loading()
        self._view = DashboardView(
            key=key,
            repository=loading,
            languages=loading,
            contributors=loading,
            activity=loading,
        )
        self._publish()
        return self._generation

    def reset(self) -> None:
        """Return to the empty search state, keeping history and comparison."""
        self._generation += 1
        self._view = DashboardView()
        self._publish()

    async def _settle(
        self,
        generation: int,
        key: RepositoryKey,
        slot: SlotName,
        fetch: Awaitable[Any],
        transform: Callable[[Any], Any] | None,
    ) -> None:
        try:
            data = await fetch
        except RepoInsightsError as exc:
            logger.warning("%s for %s failed: %s", slot.value, key.full_name, exc)
            result: FetchSlot[Any] = FetchSlot.failed(str(exc))
        except Exception:
            logger.exception("Unexpected error loading %s for %s", slot.value, key.full_name)
            result = FetchSlot.failed("An unexpected error occurred. Please try again later.")
        else:
            result = FetchSlot.ready(transform(data) if transform else data)

        if generation != self._generation:
            logger.debug(
                "Dropping stale %s result for %s (generation %d, active %d)",
                slot.value, key.full_name, generation, self._generation,
            )
            return

        self._view = replace(self._view, **{slot.value: result})
        if slot is SlotName.REPOSITORY and result.status is SlotStatus.READY:
            self.history.push(result.data)
        self._publish()

    # ── Comparison ──────────────────────────────────────────────────────

    def add_to_comparison(self) -> ComparableRepository:
        """Add the current repository to the comparison set."""
        repository = self._view.repository.data
        if self._view.repository.status is not SlotStatus.READY or repository is None:
            raise NoCurrentRepositoryError("Load a repository before comparing it.")

        contributors = self._view.contributors.data or []
        item = ComparableRepository(
            id=repository.id,
            name=repository.name,
            full_name=repository.full_name,
            stars=repository.stargazers_count,
            forks=repository.forks_count,
            issues=repository.open_issues_count,
            language=repository.language,
            contributors=len(contributors),
            last_update=repository.updated_at,
            created_at=repository.created_at,
        )
        self.comparison.add(item)
        logger.info("Added %s to comparison", repository.full_name)
        return item

    def remove_from_comparison(self, repo_id: int) -> None:
        self.comparison.remove(repo_id)

    def clear_comparison(self) -> None:
        self.comparison.clear()

    # ── Lifecycle ───────────────────────────────────────────────────────

    async def close(self) -> None:
        """Cancel fetches still in flight and drop all listeners."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._listeners.clear()

    def _publish(self) -> None:
        for listener in list(self._listeners):
            listener(self._view)
