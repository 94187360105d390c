"""Transport implementations for reaching the model."""

from .base import (
    PayloadReply,
    ResponseFragment,
    StreamReply,
    Transport,
    TransportReply,
)
from .http_transport import HttpTransport
from .streaming_transport import StreamingTransport

__all__ = [
    "Transport",
    "TransportReply",
    "PayloadReply",
    "StreamReply",
    "ResponseFragment",
    "HttpTransport",
    "StreamingTransport",
]
