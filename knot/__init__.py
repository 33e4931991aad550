"""Knot - conversational client for a locally hosted Ollama server.

Streams chat completions over HTTP, keeps multi-turn conversation state,
and hands partial output to the caller as it arrives.

Components:
    - client: HTTP transport, frame decoding, turn assembly and chat sessions
    - models: Message, event and progress schemas
    - main: Terminal front-end
"""

__version__ = "0.1.0"
