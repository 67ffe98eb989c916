"""FastAPI dependency injection wiring."""

from __future__ import annotations

import httpx

from repo_insights.domain.value_objects import ApiConfig
from repo_insights.infrastructure.chat_stream_adapter import ChatStreamAdapter
from repo_insights.infrastructure.config import Settings, get_settings
from repo_insights.infrastructure.credential_store import CredentialStore, resolve_api_config
from repo_insights.infrastructure.github_rest_adapter import GitHubRestAdapter
from repo_insights.services.aggregator import DashboardSession
from repo_insights.services.readme_stream import ReadmeSummarizer, SummaryStream

_http_client: httpx.AsyncClient | None = None
_chat_adapter: ChatStreamAdapter | None = None
_github_adapter: GitHubRestAdapter | None = None
_session: DashboardSession | None = None
_summary_stream: SummaryStream | None = None
_credential_store: CredentialStore | None = None


async def startup(settings: Settings | None = None) -> None:
    """Initialise shared resources — called from the lifespan context manager."""
    global _http_client, _chat_adapter, _github_adapter  # noqa: PLW0603
    global _session, _summary_stream, _credential_store  # noqa: PLW0603

    settings = settings or get_settings()
    _http_client = httpx.AsyncClient(timeout=httpx.Timeout(30.0))
    _chat_adapter = ChatStreamAdapter(
        api_key=settings.ai_api_token.get_secret_value() if settings.ai_api_token else None,
        model=settings.ai_model,
        base_url=settings.ai_api_url,
        max_tokens=settings.ai_max_tokens,
        temperature=settings.ai_temperature,
    )
    _github_adapter = GitHubRestAdapter(
        client=_http_client,
        events_per_page=settings.events_per_page,
        readme_timeout=settings.readme_timeout_seconds,
    )
    _credential_store = CredentialStore(settings.credential_file)
    _session = DashboardSession(_github_adapter)
    _summary_stream = SummaryStream(ReadmeSummarizer(_github_adapter, _chat_adapter))
    _session.subscribe(_summary_stream.follow)


async def shutdown() -> None:
    """Release shared resources."""
    global _http_client, _chat_adapter, _github_adapter  # noqa: PLW0603
    global _session, _summary_stream, _credential_store  # noqa: PLW0603

    if _summary_stream:
        _summary_stream.cancel()
        _summary_stream = None
    if _session:
        await _session.close()
        _session = None
    if _chat_adapter:
        await _chat_adapter.close()
        _chat_adapter = None
    if _http_client:
        await _http_client.aclose()
        _http_client = None
    _github_adapter = None
    _credential_store = None


def get_session() -> DashboardSession:
    assert _session is not None, "startup() was not called"
    return _session


def get_summary_stream() -> SummaryStream:
    assert _summary_stream is not None, "startup() was not called"
    return _summary_stream


def get_github_adapter() -> GitHubRestAdapter:
    assert _github_adapter is not None, "startup() was not called"
    return _github_adapter


def get_credential_store() -> CredentialStore:
    assert _credential_store is not None, "startup() was not called"
    return _credential_store


def get_api_config() -> ApiConfig:
    """Resolve the GitHub connection settings for the current request."""
    return resolve_api_config(get_credential_store(), get_settings())
