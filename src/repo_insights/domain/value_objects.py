"""Value objects — self-validating domain primitives."""

from __future__ import annotations

import re
from dataclasses import dataclass

from repo_insights.domain.exceptions import InvalidFormatError

_SEGMENT = r"[^/\s]+"

_URL_SEGMENT = r"[^/\s?#]+"

# Optional scheme, then a host containing a dot, then owner/name.  Anything
# after the name (tree/main, ?tab=readme, #readme) is ignored.
_HOSTED_RE = re.compile(
    rf"^(?:[a-z][a-z0-9+.\-]*://)?(?:www\.)?[A-Za-z0-9\-]+(?:\.[A-Za-z0-9\-]+)+"
    rf"/(?P<owner>{_URL_SEGMENT})/(?P<name>{_URL_SEGMENT})(?:[/?#]\S*)?$",
    re.IGNORECASE,
)
_SHORT_RE = re.compile(rf"^(?P<owner>{_SEGMENT})/(?P<name>{_SEGMENT})$")


@dataclass(frozen=True, slots=True)
class RepositoryKey:
    """Identifies the repository under analysis by *owner* and *name*.

    Accepts the short ``owner/name`` form as well as a hosted URL such as
    ``https://github.com/facebook/react.git`` or ``github.com/facebook/react``.
    A trailing ``.git`` on the name is dropped.
    """

    owner: str
    name: str

    def __post_init__(self) -> None:
        for part in (self.owner, self.name):
            if not part or "/" in part:
                raise InvalidFormatError(
                    f"Invalid repository identifier: '{self.owner}/{self.name}'."
                )

    @classmethod
    def parse(cls, text: str) -> RepositoryKey:
        """Parse a free-form search string into a key."""
        text = text.strip()
        match = _HOSTED_RE.match(text) or _SHORT_RE.match(text)
        if not match:
            raise InvalidFormatError(
                f"Invalid repository format: '{text}'. "
                "Use owner/repo or a full GitHub URL."
            )
        name = match["name"]
        if name.endswith(".git"):
            name = name[: -len(".git")]
        return cls(owner=match["owner"], name=name)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True, slots=True)
class ApiConfig:
    """Per-operation connection settings for a remote service.

    Resolved once at the start of an operation and passed down explicitly,
    so request helpers never look up credentials themselves.
    """

    base_url: str
    credential: str | None = None

    @property
    def headers(self) -> dict[str, str]:
        if not self.credential:
            return {}
        return {"Authorization": f"Bearer {self.credential}"}
