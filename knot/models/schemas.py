import base64
import mimetypes
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SessionState(str, Enum):
    """Lifecycle states of a chat session."""

    IDLE = "idle"
    STREAMING = "streaming"


class Message(BaseModel):
    """A single chat message in the conversation.

    Attributes:
        role: The speaker identifier (user or assistant).
        content: The message text.
        images: Base64-encoded images sent along with a user message.
    """

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str
    images: tuple[str, ...] | None = None

    def to_payload(self) -> dict:
        """Render the message as the JSON object the chat endpoint expects."""
        return self.model_dump(mode="json", exclude_none=True)


class Attachment(BaseModel):
    """A file staged for the next outgoing message.

    Attributes:
        name: Original file name.
        mime_type: Declared MIME type; only image types are sent to the model.
        data: Raw file content.
    """

    name: str
    mime_type: str = "application/octet-stream"
    data: bytes = Field(repr=False)

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @classmethod
    def from_path(cls, path: str | Path) -> "Attachment":
        """Load an attachment from disk, guessing its MIME type from the name.

        Raises:
            OSError: If the file cannot be read.
        """
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            mime_type=mime_type or "application/octet-stream",
            data=path.read_bytes(),
        )


class ContentDelta(BaseModel):
    """Partial assistant text from one chat frame."""

    text: str


class Completion(BaseModel):
    """Terminal chat frame (``done: true``).

    Attributes:
        content: Final message content asserted by the server, if any.
        done_reason: Why the server stopped generating (e.g. ``stop``).
    """

    content: str | None = None
    done_reason: str | None = None


class ErrorFrame(BaseModel):
    """Error reported by the server inside an otherwise successful stream."""

    error: str


class UpdateEvent(BaseModel):
    """Incremental assistant text. Carries only the new piece, never the total."""

    type: Literal["update"] = "update"
    content: str


class DoneEvent(BaseModel):
    """Final event of a turn.

    Attributes:
        message: The assembled assistant message as committed to history.
        implicit: True when the stream ended without a completion frame.
        done_reason: Server-reported stop reason, if any.
    """

    type: Literal["done"] = "done"
    message: Message
    implicit: bool = False
    done_reason: str | None = None


ChatEvent = UpdateEvent | DoneEvent


class ProgressRecord(BaseModel):
    """One progress record streamed by a model pull.

    Attributes:
        status: Human-readable phase (``pulling manifest``, ``success``...).
        digest: Layer digest being downloaded, if any.
        completed_bytes: Bytes downloaded so far for this layer.
        total_bytes: Total size of this layer.
    """

    model_config = ConfigDict(populate_by_name=True)

    status: str
    digest: str | None = None
    completed_bytes: int | None = Field(None, alias="completed", ge=0)
    total_bytes: int | None = Field(None, alias="total", ge=0)

    @property
    def percent(self) -> float | None:
        """Completion percentage for this layer, when sizes are known."""
        if not self.total_bytes or self.completed_bytes is None:
            return None
        return min(100.0, self.completed_bytes * 100.0 / self.total_bytes)


StreamFrame = ContentDelta | Completion | ProgressRecord | ErrorFrame


class ModelInfo(BaseModel):
    """A locally available model as reported by ``/api/tags``."""

    name: str
    size: int | None = None
    digest: str | None = None
    modified_at: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject blank model names."""
        if not v.strip():
            raise ValueError("model name must not be empty")
        return v
