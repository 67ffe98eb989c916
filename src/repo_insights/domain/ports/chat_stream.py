"""Port: streaming chat completion — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import AsyncIterator, Protocol


class ChatStream(Protocol):
    """Abstract contract for a streaming text-generation service.

    Implementations return the raw response body as it arrives: a sequence
    of newline-delimited ``data: <json|[DONE]>`` records, split into byte
    chunks at arbitrary boundaries.  Decoding is left to the caller.
    """

    def open(self, system_prompt: str, user_prompt: str) -> AsyncIterator[bytes]:
        """Start a completion and yield raw body chunks."""
        ...
