"""Async HTTP client for the Ollama REST API.

Wraps httpx with:
- Base URL and timeouts from ClientConfig
- Status checks that surface the server's body verbatim
- Mapping of every httpx failure to TransportError, including failures
  raised while a streamed body is being read

Endpoints:
    - GET /api/tags: Local model listing
    - POST /api/chat: Streamed chat turn (consumed by ChatSession)
    - POST /api/pull: Streamed model download progress
    - DELETE /api/delete: Model removal
"""

import json
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing, asynccontextmanager
from typing import Any

import httpx
from pydantic import ValidationError

from knot.client.config import ClientConfig, get_client_config
from knot.client.errors import (
    DecodeWarning,
    InvalidRequest,
    PullRequestFailed,
    ServerError,
    TransportError,
)
from knot.client.frames import DecodeWarningHook, iter_records, log_decode_warning, parse_pull_frame
from knot.models.schemas import ErrorFrame, Message, ModelInfo, ProgressRecord

logger = logging.getLogger(__name__)


def _require_name(name: str) -> str:
    if not name or not name.strip():
        raise InvalidRequest("Model name is required")
    return name.strip()


class OllamaClient:
    """Thin async client for one Ollama server.

    Owns its httpx.AsyncClient unless one is injected, in which case the
    caller stays responsible for closing it.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Optional client configuration.
                    Loads from environment if not provided.
            http_client: Optional pre-built httpx client (used by tests).
        """
        self._config = config or get_client_config()
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self._config.host,
            timeout=self._config.timeout(),
        )

    @property
    def host(self) -> str:
        return self._config.host

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "OllamaClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _transport_error(self, exc: httpx.HTTPError) -> TransportError:
        if isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout)):
            return TransportError(f"Unable to connect to Ollama at {self.host}: {exc}")
        if isinstance(exc, httpx.TimeoutException):
            return TransportError(f"Timed out talking to Ollama at {self.host}: {exc}")
        return TransportError(f"Transport failure talking to Ollama at {self.host}: {exc}")

    async def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> httpx.Response:
        try:
            response = await self._http.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise self._transport_error(e) from e

        if not response.is_success:
            logger.error(f"{method} {path} returned {response.status_code}: {response.text}")
            raise ServerError(response.status_code, response.text)
        return response

    @asynccontextmanager
    async def _stream(
        self,
        path: str,
        payload: dict[str, Any],
        error_cls: type[ServerError] = ServerError,
    ) -> AsyncIterator[httpx.Response]:
        """Open a streamed POST and yield the live response after a status check.

        Leaving the block closes the response, which aborts any unread body.
        """
        try:
            async with self._http.stream("POST", path, json=payload) as response:
                if not response.is_success:
                    await response.aread()
                    logger.error(f"POST {path} returned {response.status_code}: {response.text}")
                    raise error_cls(response.status_code, response.text)
                yield response
        except httpx.HTTPError as e:
            logger.error(f"POST {path} failed: {e}")
            raise self._transport_error(e) from e

    async def list_models(self) -> list[ModelInfo]:
        """List locally available models, sorted by name.

        Raises:
            ServerError: Non-success status.
            TransportError: Connection failure or unreadable body.
        """
        response = await self._request("GET", "/api/tags")
        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(f"Model listing is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise TransportError("Model listing is not a JSON object")

        models = [ModelInfo.model_validate(item) for item in data.get("models") or []]
        models.sort(key=lambda m: m.name.casefold())
        return models

    async def delete_model(self, name: str) -> None:
        """Delete a local model.

        Raises:
            InvalidRequest: Blank model name.
            ServerError: Non-success status (e.g. 404 for an unknown model).
            TransportError: Connection failure.
        """
        name = _require_name(name)
        await self._request("DELETE", "/api/delete", {"name": name})
        logger.info(f"Deleted model: {name}")

    @asynccontextmanager
    async def open_chat_stream(
        self,
        model: str,
        messages: Sequence[Message],
    ) -> AsyncIterator[httpx.Response]:
        """Start a streamed chat request.

        Args:
            model: Model identifier.
            messages: Full conversation to send, oldest first.

        Yields:
            The live response; its body is newline-delimited JSON frames.

        Raises:
            ServerError: Non-success status, with the body verbatim.
            TransportError: Connection or read failure.
        """
        payload = {
            "model": model,
            "messages": [message.to_payload() for message in messages],
            "stream": True,
        }
        async with self._stream("/api/chat", payload) as response:
            yield response

    async def pull_model(
        self,
        name: str,
        on_warning: DecodeWarningHook | None = None,
    ) -> AsyncIterator[ProgressRecord]:
        """Pull a model from the registry, yielding progress as it arrives.

        Independent of any chat session. The sequence ends when the server
        closes the stream.

        Args:
            name: Model to pull (e.g. ``llama3.2:latest``).
            on_warning: Called for malformed progress lines.

        Yields:
            ProgressRecord per decoded progress line.

        Raises:
            InvalidRequest: Blank model name.
            PullRequestFailed: Non-success status or an error record mid-stream.
            TransportError: Connection or read failure.
        """
        name = _require_name(name)
        hook = on_warning or log_decode_warning

        logger.info(f"Pulling model: {name}")
        payload = {"name": name, "stream": True}
        async with (
            self._stream("/api/pull", payload, PullRequestFailed) as response,
            aclosing(iter_records(response.aiter_bytes(), hook)) as records,
        ):
            async for record in records:
                try:
                    frame = parse_pull_frame(record)
                except ValidationError as e:
                    hook(DecodeWarning(json.dumps(record), f"invalid progress record ({e.error_count()} errors)"))
                    continue

                if isinstance(frame, ErrorFrame):
                    logger.error(f"Pull of {name} failed: {frame.error}")
                    raise PullRequestFailed(response.status_code, frame.error)
                if frame is not None:
                    yield frame

        logger.info(f"Pull stream closed for model: {name}")
