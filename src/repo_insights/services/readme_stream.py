"""README summary streaming.

The summary is produced by a chat-completion stream.  The raw response body
is a sequence of ``data: ...`` lines; :func:`decode_event_stream` turns it
into text deltas, :class:`ReadmeSummarizer` wires README fetching and prompt
selection around it, and :class:`SummaryStream` keeps the user-visible
progress state and forwards each delta to a sink.
"""

from __future__ import annotations

import codecs
import json
import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Callable

from repo_insights.domain.entities import DashboardView, StreamState, StreamStatus
from repo_insights.domain.exceptions import EmptyResponseError, RepoInsightsError
from repo_insights.domain.ports.chat_stream import ChatStream
from repo_insights.domain.ports.metadata_service import MetadataService
from repo_insights.domain.value_objects import ApiConfig, RepositoryKey
from repo_insights.services.prompts import system_instruction

logger = logging.getLogger(__name__)

_DATA_PREFIX = "data:"
_DONE = "[DONE]"

Sink = Callable[[str], None]


class CancellationToken:
    """Cooperative cancellation flag checked by a running stream."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class _Done(Exception):
    pass


def _parse_record(line: str) -> str | None:
    """Return the text delta carried by one line, if any.

    Raises :class:`_Done` on the end-of-stream sentinel.  Lines that are not
    data records, are not JSON, or have no delta at the expected place are
    ignored.
    """
    line = line.rstrip("\r")
    if not line.startswith(_DATA_PREFIX):
        return None
    payload = line[len(_DATA_PREFIX):].strip()
    if payload == _DONE:
        raise _Done
    try:
        record: Any = json.loads(payload)
        content = record["choices"][0]["delta"]["content"]
    except (ValueError, KeyError, IndexError, TypeError):
        logger.debug("Skipping unparseable stream record: %.200s", payload)
        return None
    return content if isinstance(content, str) and content else None


async def decode_event_stream(chunks: AsyncIterator[bytes]) -> AsyncIterator[str]:
    """Decode a raw server-sent-event body into text deltas, in order.

    Chunks may split a record (or a multi-byte character) anywhere.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    pending = ""
    try:
        async for chunk in chunks:
            pending += decoder.decode(chunk)
            *lines, pending = pending.split("\n")
            for line in lines:
                delta = _parse_record(line)
                if delta:
                    yield delta
        pending += decoder.decode(b"", final=True)
        for line in pending.split("\n"):
            delta = _parse_record(line)
            if delta:
                yield delta
    except _Done:
        return
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()


class ReadmeSummarizer:
    """Produces a streamed natural-language summary of a repository README."""

    def __init__(self, fetcher: MetadataService, chat: ChatStream) -> None:
        self._fetcher = fetcher
        self._chat = chat

    async def stream(
        self,
        key: RepositoryKey,
        config: ApiConfig,
        locale: str | None,
        token: CancellationToken,
    ) -> AsyncIterator[str]:
        """Yield summary deltas until the service finishes or *token* is cancelled.

        Raises :class:`ReadmeNotFoundError` / :class:`RequestTimeoutError`
        from the README fetch and :class:`EmptyResponseError` if the
        completion carried no text at all.
        """
        readme = await self._fetcher.fetch_readme(key, config)
        if token.cancelled:
            return

        received = False
        deltas = decode_event_stream(self._chat.open(system_instruction(locale), readme))
        async with aclosing(deltas):
            async for delta in deltas:
                if token.cancelled:
                    logger.debug("Summary stream for %s abandoned", key.full_name)
                    return
                received = True
                yield delta

        if not received and not token.cancelled:
            raise EmptyResponseError("No content received from analysis service.")


class SummaryStream:
    """Owns the summary :class:`StreamState` for the current subject.

    Starting a new stream, or the dashboard switching to another
    repository, cancels the stream in flight; its remaining deltas are
    discarded and never reach a sink.
    """

    def __init__(self, summarizer: ReadmeSummarizer) -> None:
        self._summarizer = summarizer
        self._state = StreamState()
        self._key: RepositoryKey | None = None
        self._token: CancellationToken | None = None

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def key(self) -> RepositoryKey | None:
        return self._key

    def follow(self, view: DashboardView) -> None:
        """Dashboard listener: reset when the subject changes."""
        if view.key != self._key:
            self.cancel()

    def cancel(self) -> None:
        """Abandon the running stream (if any) and reset to idle."""
        if self._token is not None:
            self._token.cancel()
        self._token = None
        self._key = None
        self._state = StreamState()

    async def start(
        self,
        key: RepositoryKey,
        config: ApiConfig,
        locale: str | None,
        sink: Sink,
    ) -> StreamState:
        """Stream the summary of *key*, pushing every delta to *sink*.

        Returns the terminal state of this stream, or an idle state if it
        was abandoned.  Errors are recorded as *failed* and re-raised, except
        for domain errors of an abandoned stream, which end it quietly.
        """
        self.cancel()
        token = CancellationToken()
        self._token = token
        self._key = key
        self._state = StreamState(status=StreamStatus.STREAMING)
        logger.info("Summarising README of %s", key.full_name)

        text = ""
        try:
            async for delta in self._summarizer.stream(key, config, locale, token):
                text += delta
                self._state = StreamState(status=StreamStatus.STREAMING, text=text)
                sink(delta)
        except RepoInsightsError as exc:
            if self._token is not token:
                logger.debug("Abandoned summary of %s failed: %s", key.full_name, exc)
                return StreamState()
            self._state = StreamState(status=StreamStatus.FAILED, text=text, error=str(exc))
            raise
        except Exception:
            if self._token is token:
                self._state = StreamState(
                    status=StreamStatus.FAILED,
                    text=text,
                    error="An unexpected error occurred while summarising the README.",
                )
            raise

        if self._token is not token:
            return StreamState()
        self._state = StreamState(status=StreamStatus.DONE, text=text)
        return self._state
