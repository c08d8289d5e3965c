"""Exceptions raised by perp."""


class PerpError(Exception):
    """Base class for all perp errors."""


class ConfigurationError(PerpError):
    """Missing credential, unreadable config file or unserializable payload."""


class TransportError(PerpError):
    """The request could not be sent or the response could not be read."""


class APIStatusError(TransportError):
    """The API answered with a non-200 status."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"received status {status_code}\n{body}")


class StreamReadError(TransportError):
    """Reading the response body failed mid-stream."""


class ChunkDecodeError(PerpError):
    """A stream chunk is not a valid chat-completion response."""
