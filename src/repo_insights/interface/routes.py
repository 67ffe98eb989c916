"""API routes — thin controllers that delegate to the dashboard session."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, timedelta
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Header, Query, Response
from fastapi.responses import StreamingResponse

from repo_insights.domain.exceptions import NoCurrentRepositoryError, RepoInsightsError
from repo_insights.domain.value_objects import ApiConfig, RepositoryKey
from repo_insights.infrastructure.config import get_settings
from repo_insights.infrastructure.credential_store import CredentialStore
from repo_insights.infrastructure.github_rest_adapter import GitHubRestAdapter
from repo_insights.interface.dependencies import (
    get_api_config,
    get_credential_store,
    get_github_adapter,
    get_session,
    get_summary_stream,
)
from repo_insights.interface.schemas import (
    ComparisonItemOut,
    CredentialRequest,
    HomeResponse,
    RepositoryOut,
    SearchRequest,
    SummaryStateResponse,
    ViewResponse,
)
from repo_insights.services.aggregator import DashboardSession
from repo_insights.services.exporters import build_export, format_comparison, to_csv, to_json
from repo_insights.services.prompts import locale_from_accept_language
from repo_insights.services.readme_stream import SummaryStream

logger = logging.getLogger(__name__)

router = APIRouter()

_ERRORS = {
    404: {"description": "Repository or README not found"},
    422: {"description": "Invalid repository format"},
    429: {"description": "GitHub API rate limit exceeded"},
}


def _home(session: DashboardSession) -> HomeResponse:
    return HomeResponse(
        history=[RepositoryOut.from_entity(r) for r in session.history.items()],
        comparison=[ComparisonItemOut.from_entity(c) for c in session.comparison.items()],
    )


def _download(content: str, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── Search & view ───────────────────────────────────────────────────────────


@router.get("/", response_model=HomeResponse)
async def home(session: DashboardSession = Depends(get_session)) -> HomeResponse:
    """Empty search state."""
    session.reset()
    return _home(session)


@router.post("/search", response_model=ViewResponse, responses=_ERRORS)
async def search(
    body: SearchRequest,
    session: DashboardSession = Depends(get_session),
    config: ApiConfig = Depends(get_api_config),
) -> ViewResponse:
    """Resolve a free-form ``owner/repo`` or URL and load its dashboard."""
    view = await session.submit(body.query, config)
    return ViewResponse.from_view(view)


@router.get("/view", response_model=ViewResponse)
async def current_view(session: DashboardSession = Depends(get_session)) -> ViewResponse:
    return ViewResponse.from_view(session.view)


@router.get("/history", response_model=list[RepositoryOut])
async def history(session: DashboardSession = Depends(get_session)) -> list[RepositoryOut]:
    return [RepositoryOut.from_entity(r) for r in session.history.items()]


# ── Comparison ──────────────────────────────────────────────────────────────


@router.get("/comparison", response_model=list[ComparisonItemOut])
async def comparison(
    session: DashboardSession = Depends(get_session),
) -> list[ComparisonItemOut]:
    return [ComparisonItemOut.from_entity(c) for c in session.comparison.items()]


@router.post(
    "/comparison",
    response_model=ComparisonItemOut,
    status_code=201,
    responses={409: {"description": "Already compared, list full, or nothing loaded"}},
)
async def add_to_comparison(
    session: DashboardSession = Depends(get_session),
) -> ComparisonItemOut:
    """Add the currently loaded repository to the comparison list."""
    return ComparisonItemOut.from_entity(session.add_to_comparison())


@router.delete("/comparison/{repo_id}", status_code=204)
async def remove_from_comparison(
    repo_id: int, session: DashboardSession = Depends(get_session)
) -> Response:
    session.remove_from_comparison(repo_id)
    return Response(status_code=204)


@router.delete("/comparison", status_code=204)
async def clear_comparison(session: DashboardSession = Depends(get_session)) -> Response:
    session.clear_comparison()
    return Response(status_code=204)


@router.get("/comparison.json")
async def export_comparison(session: DashboardSession = Depends(get_session)) -> Response:
    data = format_comparison(session.comparison.items())
    return _download(to_json(data), "github-comparison.json", "application/json")


# ── Export ──────────────────────────────────────────────────────────────────


def _export_data(session: DashboardSession) -> tuple[dict, str]:
    data = build_export(session.view)
    if data is None or session.view.key is None:
        raise NoCurrentRepositoryError("Load a repository before exporting it.")
    key = session.view.key
    return data, f"{key.owner}-{key.name}-analysis"


@router.get("/export.json", responses={409: {"description": "Nothing loaded"}})
async def export_json(session: DashboardSession = Depends(get_session)) -> Response:
    data, filename = _export_data(session)
    return _download(to_json(data), f"{filename}.json", "application/json")


@router.get("/export.csv", responses={409: {"description": "Nothing loaded"}})
async def export_csv(session: DashboardSession = Depends(get_session)) -> Response:
    data, filename = _export_data(session)
    return _download(to_csv(data), f"{filename}.csv", "text/csv; charset=utf-8")


# ── Discovery ───────────────────────────────────────────────────────────────


@router.get("/discover", response_model=list[RepositoryOut])
async def search_repositories(
    q: str = Query(..., min_length=1),
    adapter: GitHubRestAdapter = Depends(get_github_adapter),
    config: ApiConfig = Depends(get_api_config),
) -> list[RepositoryOut]:
    repos = await adapter.search_repositories(q, config)
    return [RepositoryOut.from_entity(r) for r in repos]


@router.get("/trending", response_model=list[RepositoryOut])
async def trending(
    adapter: GitHubRestAdapter = Depends(get_github_adapter),
    config: ApiConfig = Depends(get_api_config),
) -> list[RepositoryOut]:
    """Top repositories created during the last month."""
    since = date.today() - timedelta(days=30)
    repos = await adapter.fetch_trending(config, since)
    return [RepositoryOut.from_entity(r) for r in repos]


# ── Credential ──────────────────────────────────────────────────────────────


@router.put("/credential", status_code=204)
async def set_credential(
    body: CredentialRequest, store: CredentialStore = Depends(get_credential_store)
) -> Response:
    store.set(body.token)
    return Response(status_code=204)


@router.delete("/credential", status_code=204)
async def clear_credential(store: CredentialStore = Depends(get_credential_store)) -> Response:
    store.clear()
    return Response(status_code=204)


# ── README summary ──────────────────────────────────────────────────────────


@router.get("/summary", response_model=SummaryStateResponse)
async def summary_state(
    summary: SummaryStream = Depends(get_summary_stream),
) -> SummaryStateResponse:
    return SummaryStateResponse.from_state(summary.state)


@router.get("/{owner}/{name}/summary", responses=_ERRORS)
async def stream_summary(
    owner: str,
    name: str,
    locale: str | None = None,
    accept_language: str | None = Header(default=None),
    session: DashboardSession = Depends(get_session),
    summary: SummaryStream = Depends(get_summary_stream),
    config: ApiConfig = Depends(get_api_config),
) -> StreamingResponse:
    """Stream the README summary of a repository as plain text.

    The repository becomes the dashboard subject first, so switching to
    another repository abandons this stream.
    """
    key = RepositoryKey(owner=owner, name=name)
    if session.view.key != key:
        await session.load(key, config)

    locale = (
        locale
        or locale_from_accept_language(accept_language)
        or get_settings().default_locale
    )
    queue: asyncio.Queue[str | None] = asyncio.Queue()
    task = asyncio.create_task(summary.start(key, config, locale, queue.put_nowait))
    task.add_done_callback(lambda _: queue.put_nowait(None))

    # Wait for the first delta so that errors raised before any text
    # (missing README, timeout, empty response) still get a proper status.
    first = await queue.get()
    if first is None:
        await task

    async def body() -> AsyncIterator[str]:
        try:
            delta = first
            while delta is not None:
                yield delta
                delta = await queue.get()
            await task
        except RepoInsightsError as exc:
            yield f"\n\n[error] {exc}"
        except Exception:
            logger.exception("Summary stream for %s failed", key.full_name)
            yield "\n\n[error] An unexpected error occurred while summarising the README."
        finally:
            # Client went away mid-stream.
            if not task.done():
                if summary.key == key:
                    summary.cancel()
                task.cancel()

    return StreamingResponse(body(), media_type="text/plain; charset=utf-8")


# ── Deep link ───────────────────────────────────────────────────────────────


@router.get("/{owner}/{name}", response_model=ViewResponse, responses=_ERRORS)
async def repository(
    owner: str,
    name: str,
    session: DashboardSession = Depends(get_session),
    config: ApiConfig = Depends(get_api_config),
) -> ViewResponse:
    """Deep link straight to a repository dashboard."""
    view = await session.load(RepositoryKey(owner=owner, name=name), config)
    return ViewResponse.from_view(view)
