"""Ollama client: transport, stream decoding and chat sessions.

Handles multi-turn chat against a local Ollama server with incremental output.

Responsibilities:
    - HTTP transport and error mapping (OllamaClient)
    - Newline-delimited JSON frame decoding
    - Assembly of streamed deltas into one assistant turn
    - Conversation history and at-most-one-turn session state
    - Model listing, pull progress and deletion

Presentation stays outside this package; callers consume async iterators.
"""

from knot.client.accumulator import TurnAccumulator
from knot.client.config import ClientConfig, get_client_config
from knot.client.errors import (
    DecodeWarning,
    InvalidRequest,
    KnotError,
    PullRequestFailed,
    ServerError,
    SessionBusy,
    TransportError,
)
from knot.client.frames import iter_records, parse_chat_frame, parse_pull_frame
from knot.client.ollama import OllamaClient
from knot.client.session import ChatSession, TurnStream

__all__ = [
    "ChatSession",
    "ClientConfig",
    "DecodeWarning",
    "InvalidRequest",
    "KnotError",
    "OllamaClient",
    "PullRequestFailed",
    "ServerError",
    "SessionBusy",
    "TransportError",
    "TurnAccumulator",
    "TurnStream",
    "get_client_config",
    "iter_records",
    "parse_chat_frame",
    "parse_pull_frame",
]
