"""Streaming chat session with conversation history.

Core module for turn handling.

A ChatSession owns one conversation. Each call to ``send_message`` starts
one turn: it validates, flips the session to STREAMING right away, takes the
staged attachment, and hands back a TurnStream. Iterating the stream pumps
the HTTP body through the frame decoder and the turn accumulator, yielding
UpdateEvents and exactly one DoneEvent.

State machine::

    IDLE --send_message--> STREAMING --(done | end-of-stream | error | close)--> IDLE

History is only touched when a turn completes: the user message and the
assistant reply are appended together, before the DoneEvent is delivered.
Failed or abandoned turns leave history as it was.
"""

import logging
import weakref
from collections.abc import AsyncGenerator
from contextlib import aclosing

from knot.client.accumulator import TurnAccumulator
from knot.client.config import ClientConfig
from knot.client.errors import InvalidRequest, ServerError, SessionBusy
from knot.client.frames import DecodeWarningHook, iter_records, parse_chat_frame
from knot.client.ollama import OllamaClient
from knot.models.schemas import (
    Attachment,
    ChatEvent,
    DoneEvent,
    ErrorFrame,
    Message,
    SessionState,
)

logger = logging.getLogger(__name__)


class TurnStream:
    """Async iterator over the events of one chat turn.

    Closing it early (``aclose()``, leaving ``async with``) aborts the HTTP
    read and returns the session to IDLE without committing anything. This
    also holds for a stream that was never iterated. A stream dropped without
    being closed, such as one left by ``break`` in a bare ``async for``,
    releases the session as soon as it is garbage collected; the HTTP read is
    then closed on a later loop tick.
    """

    def __init__(self, session: "ChatSession", turn: object, events: AsyncGenerator[ChatEvent, None]) -> None:
        self._events = events
        self._release = weakref.finalize(self, session._release, turn)

    def __aiter__(self) -> "TurnStream":
        return self

    async def __anext__(self) -> ChatEvent:
        return await self._events.__anext__()

    async def aclose(self) -> None:
        try:
            await self._events.aclose()
        finally:
            self._release()

    async def __aenter__(self) -> "TurnStream":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def collect(self) -> DoneEvent:
        """Drain the stream and return its DoneEvent."""
        done: DoneEvent | None = None
        async for event in self:
            if isinstance(event, DoneEvent):
                done = event
        if done is None:
            raise RuntimeError("Turn ended without a done event")
        return done


class ChatSession:
    """One conversation with an Ollama server.

    Holds the history, the staged attachment, and the IDLE/STREAMING state.
    At most one turn streams at a time. The session is not thread-safe;
    it is driven from a single event loop.
    """

    def __init__(
        self,
        client: OllamaClient | None = None,
        *,
        config: ClientConfig | None = None,
        on_decode_warning: DecodeWarningHook | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            client: Client to send turns through. Built from config if omitted.
            config: Configuration for the client built here.
            on_decode_warning: Called for each malformed stream line.
        """
        self._client = client or OllamaClient(config)
        self._on_decode_warning = on_decode_warning
        self._history: list[Message] = []
        self._attachment: Attachment | None = None
        self._state = SessionState.IDLE
        self._active_turn: object | None = None

    @property
    def client(self) -> OllamaClient:
        return self._client

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_streaming(self) -> bool:
        return self._state is SessionState.STREAMING

    @property
    def history(self) -> list[Message]:
        """Snapshot of the conversation, oldest first."""
        return list(self._history)

    @property
    def attachment(self) -> Attachment | None:
        return self._attachment

    def set_attachment(self, attachment: Attachment | None) -> None:
        """Stage a file for the next message, replacing any staged one."""
        self._attachment = attachment

    def reset_attachment(self) -> None:
        self._attachment = None

    def clear_chat(self) -> None:
        """Forget the conversation and the staged attachment.

        A turn already streaming is left alone and commits into the
        cleared history when it finishes.
        """
        self._history = []
        self._attachment = None
        logger.info("Chat history cleared")

    def send_message(self, text: str, model: str) -> TurnStream:
        """Start a chat turn.

        Args:
            text: User message. May be empty when an attachment is staged.
            model: Model identifier.

        Returns:
            TurnStream yielding UpdateEvents then one DoneEvent.

        Raises:
            SessionBusy: A turn is already streaming.
            InvalidRequest: Blank model, or neither text nor attachment.
        """
        if self.is_streaming:
            raise SessionBusy()
        if not model or not model.strip():
            raise InvalidRequest("A model must be selected")
        if not (text and text.strip()) and self._attachment is None:
            raise InvalidRequest("Message text or an attachment is required")

        turn = object()
        self._state = SessionState.STREAMING
        self._active_turn = turn

        attachment, self._attachment = self._attachment, None
        try:
            user_message = self._build_user_message(text, attachment)
        except Exception:
            self._release(turn)
            raise

        messages = [*self._history, user_message]
        return TurnStream(self, turn, self._run_turn(turn, model, user_message, messages))

    def _build_user_message(self, text: str, attachment: Attachment | None) -> Message:
        images = None
        if attachment is not None:
            if attachment.is_image:
                images = (attachment.to_base64(),)
            else:
                logger.info(
                    f"Attachment {attachment.name!r} ({attachment.mime_type}) is not an image; not sent to the model"
                )
        return Message(role="user", content=text or "", images=images)

    async def _run_turn(
        self,
        turn: object,
        model: str,
        user_message: Message,
        messages: list[Message],
    ) -> AsyncGenerator[ChatEvent, None]:
        accumulator = TurnAccumulator()
        finished = False
        try:
            async with (
                self._client.open_chat_stream(model, messages) as response,
                aclosing(iter_records(response.aiter_bytes(), self._on_decode_warning)) as records,
            ):
                async for record in records:
                    frame = parse_chat_frame(record)
                    if isinstance(frame, ErrorFrame):
                        raise ServerError(response.status_code, frame.error)
                    if frame is None:
                        continue

                    event = accumulator.feed(frame)
                    if isinstance(event, DoneEvent):
                        self._commit(turn, user_message, event.message)
                        finished = True
                        yield event
                        return
                    if event is not None:
                        yield event

                done = accumulator.finish()
                self._commit(turn, user_message, done.message)
                finished = True
                yield done
        except Exception as e:
            logger.error(f"Chat turn with {model} failed: {e}")
            raise
        finally:
            if not finished:
                logger.info("Chat turn ended without completing; partial content discarded")
            self._release(turn)

    def _commit(self, turn: object, user_message: Message, reply: Message) -> None:
        self._history.extend((user_message, reply))
        self._release(turn)
        logger.debug(f"Committed turn; history has {len(self._history)} messages")

    def _release(self, turn: object) -> None:
        if self._active_turn is turn:
            self._active_turn = None
            self._state = SessionState.IDLE
