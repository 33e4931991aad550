"""Assembles one assistant turn from streamed chat frames."""

import logging

from knot.models.schemas import Completion, ContentDelta, DoneEvent, Message, StreamFrame, UpdateEvent

logger = logging.getLogger(__name__)


class TurnAccumulator:
    """Folds content deltas into a single assistant message.

    Owned by exactly one turn and never shared. Content only grows by
    appending until the turn completes, either through an explicit
    completion frame or through :meth:`finish` at end-of-stream.
    """

    def __init__(self) -> None:
        self._parts: list[str] = []
        self._completed = False

    @property
    def content(self) -> str:
        return "".join(self._parts)

    @property
    def completed(self) -> bool:
        return self._completed

    def feed(self, frame: StreamFrame) -> UpdateEvent | DoneEvent | None:
        """Apply one frame.

        Args:
            frame: A decoded chat frame.

        Returns:
            An UpdateEvent carrying only the new text, a DoneEvent for the
            completion frame, or None for frames that change nothing.

        Raises:
            RuntimeError: If the turn has already completed.
        """
        if self._completed:
            raise RuntimeError("Turn already completed")

        if isinstance(frame, ContentDelta):
            self._parts.append(frame.text)
            return UpdateEvent(content=frame.text)

        if isinstance(frame, Completion):
            # Server's final content wins when it sends one
            if frame.content:
                if frame.content != self.content:
                    logger.debug("Final content differs from assembled deltas; using server content")
                self._parts = [frame.content]
            return self._complete(implicit=False, done_reason=frame.done_reason)

        return None

    def finish(self) -> DoneEvent:
        """Complete the turn at end-of-stream using whatever was accumulated.

        Raises:
            RuntimeError: If the turn has already completed.
        """
        if self._completed:
            raise RuntimeError("Turn already completed")
        logger.info("Stream ended without a completion frame; closing turn with assembled content")
        return self._complete(implicit=True, done_reason=None)

    def _complete(self, implicit: bool, done_reason: str | None) -> DoneEvent:
        self._completed = True
        return DoneEvent(
            message=Message(role="assistant", content=self.content),
            implicit=implicit,
            done_reason=done_reason,
        )
