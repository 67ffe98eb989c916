"""OpenAI-compatible chat-completions adapter — implements the ChatStream port."""

from __future__ import annotations

import logging
from typing import AsyncIterator

import httpx
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    RateLimitError,
)

from repo_insights.domain.exceptions import GenerationError

logger = logging.getLogger(__name__)


class ChatStreamAdapter:
    """Concrete ``ChatStream`` backed by any OpenAI-compatible endpoint.

    The completion is requested with ``stream=True`` through the SDK's
    raw streaming response, so callers receive the server-sent-event body
    byte for byte instead of parsed chunk objects.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        max_tokens: int = 500,
        temperature: float = 0.7,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = AsyncOpenAI(
            api_key=api_key or "unset",
            base_url=base_url,
            max_retries=0,
            http_client=http_client,
        )
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def open(self, system_prompt: str, user_prompt: str) -> AsyncIterator[bytes]:
        """Send a system + user prompt and yield the raw response body."""
        try:
            async with self._client.chat.completions.with_streaming_response.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                stream=True,
            ) as response:
                async for chunk in response.iter_bytes():
                    yield chunk

        except AuthenticationError as exc:
            raise GenerationError(
                "Invalid API key for the analysis service. "
                "Set a valid key in the AI_API_TOKEN environment variable."
            ) from exc

        except RateLimitError as exc:
            detail = str(exc)
            logger.error("Generation RateLimitError: %s", detail)
            raise GenerationError(f"Analysis service rate limit / quota error: {detail}") from exc

        except APITimeoutError as exc:
            raise GenerationError("Analysis service timed out. Please try again.") from exc

        except APIStatusError as exc:
            raise GenerationError(
                f"Analysis service returned HTTP {exc.status_code}."
            ) from exc

        except APIConnectionError as exc:
            raise GenerationError(f"Could not reach the analysis service: {exc}") from exc

        # Errors while reading the body are raised by httpx directly.
        except httpx.HTTPError as exc:
            raise GenerationError(f"Analysis stream interrupted: {exc}") from exc

    async def close(self) -> None:
        """Release underlying HTTP resources."""
        await self._client.close()
