"""Report export — JSON and flattened single-row CSV documents."""

from __future__ import annotations

import csv
import io
import json
from typing import Any

from repo_insights.domain.entities import ActivityEvent, ComparableRepository, DashboardView

TOP_CONTRIBUTORS = 20
RECENT_EVENTS = 30


def describe_event(event: ActivityEvent) -> str:
    """One-line human description of a repository event."""
    payload = event.payload
    issue = payload.get("issue") or {}
    pull_request = payload.get("pull_request") or {}

    if event.type == "PushEvent":
        return f"Pushed {len(payload.get('commits') or [])} commits"
    if event.type == "PullRequestEvent":
        return f"{payload.get('action')} pull request #{pull_request.get('number')}"
    if event.type == "IssuesEvent":
        return f"{payload.get('action')} issue #{issue.get('number')}"
    if event.type == "IssueCommentEvent":
        return f"Commented on issue #{issue.get('number')}"
    if event.type == "CreateEvent":
        return f"Created {payload.get('ref_type')} {payload.get('ref') or ''}".rstrip()
    if event.type == "DeleteEvent":
        return f"Deleted {payload.get('ref_type')} {payload.get('ref') or ''}".rstrip()
    if event.type == "WatchEvent":
        return "Starred the repository"
    if event.type == "ForkEvent":
        return "Forked the repository"
    return event.type


def build_export(view: DashboardView) -> dict[str, Any] | None:
    """Assemble the exportable report for the loaded repository.

    Returns ``None`` when no repository is loaded.  Slots that failed or are
    still loading contribute empty lists.
    """
    repository = view.repository.data
    if repository is None:
        return None

    languages = view.languages.data or []
    contributors = view.contributors.data or []
    activity = view.activity.data or []

    return {
        "repository": {
            "name": repository.name,
            "full_name": repository.full_name,
            "description": repository.description,
            "url": repository.html_url,
            "created_at": repository.created_at,
            "updated_at": repository.updated_at,
            "stars": repository.stargazers_count,
            "forks": repository.forks_count,
            "issues": repository.open_issues_count,
            "watchers": repository.watchers_count,
            "language": repository.language,
            "topics": list(repository.topics),
            "license": repository.license_name or "No license",
            "size": repository.size,
        },
        "languages": [
            {"name": lang.name, "bytes": lang.bytes, "percentage": f"{lang.percentage:.2f}"}
            for lang in languages
        ],
        "topContributors": [
            {
                "username": contributor.login,
                "contributions": contributor.contributions,
                "profile": contributor.html_url,
            }
            for contributor in contributors[:TOP_CONTRIBUTORS]
        ],
        "recentActivity": [
            {
                "type": event.type,
                "user": event.actor_login,
                "date": event.created_at,
                "details": describe_event(event),
            }
            for event in activity[:RECENT_EVENTS]
        ],
    }


def format_comparison(items: list[ComparableRepository]) -> list[dict[str, Any]]:
    return [
        {
            "name": item.name,
            "full_name": item.full_name,
            "stars": item.stars,
            "forks": item.forks,
            "issues": item.issues,
            "language": item.language,
            "contributors": item.contributors,
            "last_update": item.last_update,
            "created_at": item.created_at,
        }
        for item in items
    ]


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten(data: Any, prefix: str = "") -> dict[str, str]:
    """Flatten nested dicts and lists into ``{"a.b": ..., "a.c[0]": ...}``.

    Dict keys are joined with ``.``; list items get an ``[index]`` suffix.
    Key order follows the input.
    """
    result: dict[str, str] = {}
    if isinstance(data, dict):
        for key, value in data.items():
            result.update(flatten(value, f"{prefix}.{key}" if prefix else str(key)))
    elif isinstance(data, (list, tuple)):
        for index, item in enumerate(data):
            result.update(flatten(item, f"{prefix}[{index}]"))
    else:
        result[prefix] = _scalar(data)
    return result


def to_csv(data: Any) -> str:
    """Render *data* as one header row and one value row."""
    flat = flatten(data)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(flat.keys())
    writer.writerow(flat.values())
    return buffer.getvalue()
