"""Newline-delimited JSON frame decoding.

Turns the raw byte chunks of a streamed response body into parsed JSON
records, then classifies records into typed stream frames.

Reads may end anywhere: in the middle of a line or in the middle of a
multi-byte UTF-8 sequence. Both the text decoder and the line buffer carry
state across reads, so a record is only parsed once its newline (or the end
of the stream) arrives.
"""

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable
from typing import Any

from knot.client.errors import DecodeWarning, TransportError
from knot.models.schemas import Completion, ContentDelta, ErrorFrame, ProgressRecord, StreamFrame

logger = logging.getLogger(__name__)

DecodeWarningHook = Callable[[DecodeWarning], None]


def log_decode_warning(warning: DecodeWarning) -> None:
    """Default observability hook: log and move on."""
    logger.warning(str(warning))


def _parse_line(line: str, on_warning: DecodeWarningHook) -> dict[str, Any] | None:
    try:
        record = json.loads(line)
    except json.JSONDecodeError as e:
        on_warning(DecodeWarning(line, f"invalid JSON: {e.msg}"))
        return None

    if not isinstance(record, dict):
        on_warning(DecodeWarning(line, f"expected a JSON object, got {type(record).__name__}"))
        return None

    return record


async def iter_records(
    chunks: AsyncIterable[bytes],
    on_warning: DecodeWarningHook | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """Decode a byte stream into JSON records, one per non-empty line.

    Args:
        chunks: Raw body chunks in arrival order.
        on_warning: Called for each malformed line. Defaults to logging.

    Yields:
        Each line's JSON object as soon as its line is complete.

    Raises:
        TransportError: If the body is not valid UTF-8.
    """
    hook = on_warning or log_decode_warning
    decoder = codecs.getincrementaldecoder("utf-8")()
    buffer = ""

    try:
        async for chunk in chunks:
            buffer += decoder.decode(chunk)
            *lines, buffer = buffer.split("\n")
            for line in lines:
                if line.strip():
                    record = _parse_line(line, hook)
                    if record is not None:
                        yield record

        buffer += decoder.decode(b"", final=True)
    except UnicodeDecodeError as e:
        raise TransportError(f"Response body is not valid UTF-8: {e}") from e

    # Last record may arrive without a trailing newline
    if buffer.strip():
        record = _parse_line(buffer, hook)
        if record is not None:
            yield record


def _error_frame(record: dict[str, Any]) -> ErrorFrame | None:
    error = record.get("error")
    if error is None:
        return None
    return ErrorFrame(error=str(error))


def parse_chat_frame(record: dict[str, Any]) -> StreamFrame | None:
    """Classify a chat record.

    ``{"message": {"content": ...}, "done": false}`` is a content delta,
    ``{"done": true, ...}`` is the completion. Records carrying neither
    (empty deltas, keep-alives) return None.
    """
    error = _error_frame(record)
    if error is not None:
        return error

    message = record.get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if content is not None and not isinstance(content, str):
        content = str(content)

    if record.get("done") is True:
        return Completion(content=content, done_reason=record.get("done_reason"))

    if content:
        return ContentDelta(text=content)

    return None


def parse_pull_frame(record: dict[str, Any]) -> StreamFrame | None:
    """Classify a pull progress record. Records without a status return None."""
    error = _error_frame(record)
    if error is not None:
        return error

    status = record.get("status")
    if status is None:
        return None

    return ProgressRecord.model_validate({**record, "status": str(status)})
