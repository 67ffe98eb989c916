"""Tests for the HTTP interface with fake adapters wired in."""

import httpx
import pytest
from fastapi.testclient import TestClient

from repo_insights.infrastructure.config import Settings
from repo_insights.infrastructure.credential_store import CredentialStore, resolve_api_config
from repo_insights.infrastructure.github_rest_adapter import GitHubRestAdapter
from repo_insights.interface import dependencies
from repo_insights.interface.app import create_app
from repo_insights.services.aggregator import DashboardSession
from repo_insights.services.readme_stream import ReadmeSummarizer, SummaryStream


@pytest.fixture
def wiring(metadata, chat, tmp_path, make_repo):
    session = DashboardSession(metadata)
    summary = SummaryStream(ReadmeSummarizer(metadata, chat))
    session.subscribe(summary.follow)
    store = CredentialStore(tmp_path / "store.json")
    settings = Settings(github_api_url="https://api.github.test", github_token=None)

    def discovery(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"items": [make_repo(5, "vercel", "next.js")]})

    adapter = GitHubRestAdapter(httpx.AsyncClient(transport=httpx.MockTransport(discovery)))

    app = create_app()
    app.dependency_overrides[dependencies.get_session] = lambda: session
    app.dependency_overrides[dependencies.get_summary_stream] = lambda: summary
    app.dependency_overrides[dependencies.get_credential_store] = lambda: store
    app.dependency_overrides[dependencies.get_github_adapter] = lambda: adapter
    app.dependency_overrides[dependencies.get_api_config] = lambda: resolve_api_config(
        store, settings
    )
    return app, session, summary, store


@pytest.fixture
def client(wiring):
    app = wiring[0]
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_search_returns_aggregated_view(client, metadata):
    metadata.add(1, "facebook", "react")

    resp = client.post("/search", json={"query": "https://github.com/facebook/react.git"})

    assert resp.status_code == 200
    body = resp.json()
    assert (body["owner"], body["name"]) == ("facebook", "react")
    assert body["repository"]["status"] == "ready"
    assert body["repository"]["data"]["stars"] == 1001
    assert body["languages"]["data"][0] == {"name": "JavaScript", "bytes": 750, "percentage": 75.0}
    assert body["activity"]["data"][0]["details"] == "Starred the repository"


def test_search_with_invalid_format(client, metadata):
    resp = client.post("/search", json={"query": "notarepo"})

    assert resp.status_code == 422
    assert resp.json()["status"] == "error"
    assert "owner/repo" in resp.json()["message"]
    assert metadata.calls == []


def test_deep_link_reports_partial_failure(client, metadata):
    resp = client.get("/ghost/missing")

    assert resp.status_code == 200
    body = resp.json()
    assert body["repository"]["status"] == "failed"
    assert body["languages"]["status"] == "ready"


def test_home_resets_view_but_keeps_history(client, metadata):
    metadata.add(1, "facebook", "react")
    client.get("/facebook/react")

    home = client.get("/").json()

    assert [r["full_name"] for r in home["history"]] == ["facebook/react"]
    assert client.get("/view").json()["repository"]["status"] == "idle"


def test_comparison_flow(client, metadata):
    assert client.post("/comparison").status_code == 409

    metadata.add(1, "facebook", "react")
    client.get("/facebook/react")
    added = client.post("/comparison")
    assert added.status_code == 201
    assert added.json()["full_name"] == "facebook/react"

    duplicate = client.post("/comparison")
    assert duplicate.status_code == 409
    assert "already" in duplicate.json()["message"]

    export = client.get("/comparison.json")
    assert export.json()[0]["full_name"] == "facebook/react"

    assert client.delete("/comparison/1").status_code == 204
    assert client.get("/comparison").json() == []


def test_exports(client, metadata):
    assert client.get("/export.json").status_code == 409

    metadata.add(1, "facebook", "react")
    client.get("/facebook/react")

    as_json = client.get("/export.json")
    assert as_json.json()["repository"]["full_name"] == "facebook/react"
    assert "facebook-react-analysis.json" in as_json.headers["content-disposition"]

    as_csv = client.get("/export.csv")
    header, row = as_csv.text.splitlines()
    assert header.startswith("repository.name,repository.full_name")
    assert row.startswith("react,facebook/react")
    assert "languages[0].name" in header


def test_summary_streams_text(client, metadata, chat, make_sse, wiring):
    metadata.add(1, "facebook", "react")
    metadata.readmes["facebook/react"] = "# React"
    chat.chunks = make_sse("Hel", "lo")

    resp = client.get("/facebook/react/summary", headers={"Accept-Language": "ja-JP"})

    assert resp.status_code == 200
    assert resp.text == "Hello"
    assert chat.prompts[0][0].startswith("あなたは")
    state = client.get("/summary").json()
    assert state == {"status": "done", "text": "Hello", "error": None}


def test_summary_missing_readme(client, metadata, chat):
    metadata.add(1, "facebook", "react")

    resp = client.get("/facebook/react/summary")

    assert resp.status_code == 404
    assert "README" in resp.json()["message"]


def test_summary_empty_response(client, metadata, chat):
    metadata.add(1, "facebook", "react")
    metadata.readmes["facebook/react"] = "# React"
    chat.chunks = [b"data: [DONE]\n\n"]

    resp = client.get("/facebook/react/summary")

    assert resp.status_code == 502


def test_switching_subject_resets_summary(client, metadata, chat, make_sse):
    metadata.add(1, "facebook", "react")
    metadata.add(2, "vuejs", "core")
    metadata.readmes["facebook/react"] = "# React"
    chat.chunks = make_sse("text")
    client.get("/facebook/react/summary")

    client.get("/vuejs/core")

    assert client.get("/summary").json()["status"] == "idle"


def test_credential_slot(client, wiring):
    store = wiring[3]

    assert client.put("/credential", json={"token": " ghp_123 "}).status_code == 204
    assert store.get() == "ghp_123"
    assert client.put("/credential", json={"token": "  "}).status_code == 422
    assert client.delete("/credential").status_code == 204
    assert store.get() is None


def test_discovery_routes(client):
    assert client.get("/trending").json()[0]["full_name"] == "vercel/next.js"
    assert client.get("/discover", params={"q": "next"}).json()[0]["name"] == "next.js"


@pytest.mark.parametrize(
    ("owner", "name"), [("search", "repositories"), ("comparison", "export.json")]
)
def test_deep_link_reaches_repositories_named_like_other_routes(client, metadata, owner, name):
    metadata.add(7, owner, name)

    resp = client.get(f"/{owner}/{name}")

    assert resp.status_code == 200
    assert resp.json()["repository"]["data"]["full_name"] == f"{owner}/{name}"


def test_summary_reports_interrupted_stream(client, metadata, chat, make_sse):
    metadata.add(1, "facebook", "react")
    metadata.readmes["facebook/react"] = "# React"
    chat.chunks = make_sse("Hel", "lo")
    chat.failure = RuntimeError("connection reset")

    resp = client.get("/facebook/react/summary")

    assert resp.status_code == 200
    assert resp.text.startswith("Hel")
    assert "[error]" in resp.text
    state = client.get("/summary").json()
    assert state["status"] == "failed"
    assert state["text"] == "Hel"
