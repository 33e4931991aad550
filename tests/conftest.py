"""Pytest fixtures and shared test configuration.

Provides a scripted fake Ollama server and clients wired to it.

Fixtures:
    - fake_ollama: In-process FastAPI app speaking the Ollama endpoints
    - http_client: HTTPX client routed to the fake server via ASGITransport
    - client_config: ClientConfig pointing at the fake host
    - ollama_client: OllamaClient using the routed HTTPX client
    - session: ChatSession bound to ollama_client
"""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from knot.client import ChatSession, ClientConfig, OllamaClient
from tests.fake_ollama import FAKE_HOST, FakeOllama


@pytest.fixture
def fake_ollama() -> FakeOllama:
    """Return a fresh fake server per test."""
    return FakeOllama()


@pytest.fixture
async def http_client(fake_ollama: FakeOllama) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client routed to the fake server.

    Yields:
        Configured AsyncClient for making test requests.
    """
    transport = ASGITransport(app=fake_ollama.app)
    async with AsyncClient(transport=transport, base_url=FAKE_HOST) as client:
        yield client


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(host=FAKE_HOST, connect_timeout=5.0, read_timeout=None, default_model=None)


@pytest.fixture
def ollama_client(client_config: ClientConfig, http_client: AsyncClient) -> OllamaClient:
    return OllamaClient(client_config, http_client=http_client)


@pytest.fixture
def session(ollama_client: OllamaClient) -> ChatSession:
    return ChatSession(ollama_client)
