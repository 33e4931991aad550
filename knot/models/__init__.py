"""Pydantic models for messages, stream frames and caller-facing events.

Models:
    - Message: One immutable conversation entry
    - Attachment: File staged for the next outgoing message
    - ContentDelta / Completion / ErrorFrame: Decoded chat stream frames
    - UpdateEvent / DoneEvent: Events yielded to the caller during a turn
    - ProgressRecord: One model pull progress record (also a stream frame)
    - ModelInfo: A locally available model
"""

from knot.models.schemas import (
    Attachment,
    ChatEvent,
    Completion,
    ContentDelta,
    DoneEvent,
    ErrorFrame,
    Message,
    ModelInfo,
    ProgressRecord,
    SessionState,
    StreamFrame,
    UpdateEvent,
)

__all__ = [
    "Attachment",
    "ChatEvent",
    "Completion",
    "ContentDelta",
    "DoneEvent",
    "ErrorFrame",
    "Message",
    "ModelInfo",
    "ProgressRecord",
    "SessionState",
    "StreamFrame",
    "UpdateEvent",
]
