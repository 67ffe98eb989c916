"""Domain exception hierarchy.

Each exception maps to a specific HTTP status code at the interface layer.
Inner layers raise these; the outermost error-handler translates them.
Failures of individual dashboard slots are *not* raised to callers: the
aggregator stores their message in the slot instead.
"""

from __future__ import annotations


class RepoInsightsError(Exception):
    """Base exception for the entire application."""


# ── Input validation ────────────────────────────────────────────────────────


class InvalidFormatError(RepoInsightsError):
    """The supplied text is neither ``owner/name`` nor a repository URL."""


# ── Metadata service errors ─────────────────────────────────────────────────


class RepositoryNotFoundError(RepoInsightsError):
    """The repository (or one of its resources) does not exist (404)."""


class ReadmeNotFoundError(RepositoryNotFoundError):
    """The repository has no README."""


class RateLimitedError(RepoInsightsError):
    """GitHub API rate limit exceeded (429 / 403 with rate-limit marker)."""


class RequestTimeoutError(RepoInsightsError):
    """A bounded wait on a remote call was exceeded."""


class UpstreamError(RepoInsightsError):
    """Any other failure reported by a remote service."""


# ── Generation errors ───────────────────────────────────────────────────────


class GenerationError(RepoInsightsError):
    """Any error originating from the text-generation provider."""


class EmptyResponseError(GenerationError):
    """The generation stream finished without producing any text."""


# ── User-action preconditions ───────────────────────────────────────────────


class NoCurrentRepositoryError(RepoInsightsError):
    """An operation needs a resolved repository but none is loaded."""


class AlreadyInComparisonError(RepoInsightsError):
    """The repository is already part of the comparison set."""


class ComparisonFullError(RepoInsightsError):
    """The comparison set already holds the maximum number of entries."""
