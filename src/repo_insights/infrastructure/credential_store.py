"""Single-slot credential storage backed by a small JSON file."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from repo_insights.domain.value_objects import ApiConfig
from repo_insights.infrastructure.config import Settings

logger = logging.getLogger(__name__)

CREDENTIAL_KEY = "github_token"


class CredentialStore:
    """Persist one GitHub token under a fixed key in a local key/value file.

    Other keys already present in the file are preserved on write.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def get(self) -> str | None:
        value = self._load().get(CREDENTIAL_KEY)
        return value or None

    def set(self, value: str) -> None:
        data = self._load()
        data[CREDENTIAL_KEY] = value
        self._save(data)
        logger.info("Stored GitHub token in %s", self._path)

    def clear(self) -> None:
        data = self._load()
        if data.pop(CREDENTIAL_KEY, None) is not None:
            self._save(data)
            logger.info("Removed GitHub token from %s", self._path)

    def _load(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable credential file %s", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def resolve_api_config(store: CredentialStore, settings: Settings) -> ApiConfig:
    """Resolve the GitHub connection settings for one operation.

    The stored token wins over the configured default; without either the
    requests go out unauthenticated.
    """
    credential = store.get()
    if credential is None and settings.github_token is not None:
        credential = settings.github_token.get_secret_value() or None
    return ApiConfig(base_url=settings.github_api_url, credential=credential)
