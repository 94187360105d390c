"""Error taxonomy shared by the request/response core."""

from typing import Optional


class ShellmindError(Exception):
    """Base class for all errors raised by the Shellmind core."""

    pass


class InvalidInputError(ShellmindError):
    """User input was rejected before any network activity."""

    pass


class TransportError(ShellmindError):
    """A transport failed to deliver a request or its response."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class TransientTransportError(TransportError):
    """Network failure, timeout, 5xx, 429 or a mid-stream disconnect.

    Eligible for retry by the caller. ``retry_after`` carries the server's
    hint in seconds when one was given; ``partial_text`` carries whatever
    streamed text arrived before the channel dropped.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        retry_after: Optional[float] = None,
        partial_text: str = "",
    ):
        super().__init__(message, status=status)
        self.retry_after = retry_after
        self.partial_text = partial_text


class FatalTransportError(TransportError):
    """Bad request or authentication failure. Never retried."""

    pass


class MalformedResponseError(ShellmindError):
    """The transport succeeded but the payload shape was not understood."""

    pass


class RequestCancelledError(ShellmindError):
    """The in-flight request was cancelled by the user."""

    pass
