"""Client configuration with environment variable loading.

Pydantic-based configuration for the Ollama HTTP client.
"""

import os

import httpx
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()

DEFAULT_HOST = "http://localhost:11434"


def _optional_float(name: str) -> float | None:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


class ClientConfig(BaseModel):
    """Configuration for the Ollama client.

    Attributes:
        host: Base URL of the Ollama server.
        connect_timeout: Seconds allowed to establish a connection.
        read_timeout: Seconds allowed between reads (None = wait indefinitely).
        default_model: Model used by the terminal front-end when none is chosen.
    """

    host: str = Field(
        default_factory=lambda: os.getenv("OLLAMA_HOST", DEFAULT_HOST),
        description="Base URL of the Ollama server",
    )
    connect_timeout: float = Field(
        default_factory=lambda: float(os.getenv("OLLAMA_CONNECT_TIMEOUT", "10")),
        gt=0.0,
        description="Connection timeout in seconds",
    )
    read_timeout: float | None = Field(
        default_factory=lambda: _optional_float("OLLAMA_READ_TIMEOUT"),
        gt=0.0,
        description="Read timeout in seconds, unset for no deadline",
    )
    default_model: str | None = Field(
        default_factory=lambda: os.getenv("OLLAMA_MODEL") or None,
        description="Model to use when none is selected",
    )

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("OLLAMA_HOST must be an http:// or https:// URL")
        return v.rstrip("/")

    def timeout(self) -> httpx.Timeout:
        """Build the httpx timeout. Only connecting has a default deadline."""
        return httpx.Timeout(
            connect=self.connect_timeout,
            read=self.read_timeout,
            write=None,
            pool=None,
        )


def get_client_config() -> ClientConfig:
    """Create client configuration from environment.

    Returns:
        Configured ClientConfig instance.

    Raises:
        ValueError: If an environment value is invalid.
    """
    return ClientConfig()
