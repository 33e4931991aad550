"""Error taxonomy for the Ollama client.

Every failure is scoped to one operation: nothing here is fatal to the process.
DecodeWarning is the exception to the raise-and-terminate rule; it is only
ever handed to an observability hook and never raised by the client.
"""


class KnotError(Exception):
    """Base class for client errors."""

    pass


class InvalidRequest(KnotError, ValueError):
    """Raised when a call's preconditions are not met. No side effects occur."""

    pass


class SessionBusy(KnotError):
    """Raised when a turn is started while another is still streaming."""

    def __init__(self) -> None:
        super().__init__("A chat turn is already streaming for this session")


class TransportError(KnotError):
    """Raised on connection, read or body-decoding failures."""

    pass


class ServerError(KnotError):
    """Raised when the server answers with a non-success status or an error record.

    Attributes:
        status_code: HTTP status of the response.
        body: Server-provided body or error text, verbatim.
    """

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Server responded with status {status_code}: {body}")


class PullRequestFailed(ServerError):
    """Raised when a model pull is rejected or fails mid-stream."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(status_code, body)
        self.args = (f"Failed to pull model (status {status_code}): {body}",)


class DecodeWarning(UserWarning):
    """A single stream line that could not be decoded as a JSON object.

    Attributes:
        line: The offending line.
        reason: Why it was rejected.
    """

    def __init__(self, line: str, reason: str) -> None:
        self.line = line
        self.reason = reason
        super().__init__(f"Skipping malformed stream line ({reason}): {line[:200]!r}")
