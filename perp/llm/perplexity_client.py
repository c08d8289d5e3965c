"""Perplexity chat-completions client using httpx streaming."""

from contextlib import contextmanager
from typing import Iterator, Optional

import httpx

from .request import RequestPayload
from ..config import Config
from ..exceptions import APIStatusError, StreamReadError, TransportError


class PerplexityClient:
    """Sends a chat-completion request and exposes the streamed body as lines.

    Works with any endpoint that speaks the OpenAI-style streaming format
    (Perplexity by default).
    """

    CHAT_PATH = "/chat/completions"

    def __init__(self, config: Config, transport: Optional[httpx.BaseTransport] = None):
        self.config = config
        self.client = httpx.Client(
            base_url=config.base_url,
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(config.request_timeout, connect=10.0),
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "PerplexityClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @contextmanager
    def stream_lines(self, payload: RequestPayload) -> Iterator[Iterator[str]]:
        """POST the payload and yield an iterator over response lines.

        The response is released when the block exits, whatever the reason.

        Raises:
            APIStatusError: If the server answers with a non-200 status
            TransportError: If the request cannot be sent
        """
        body = payload.to_json()
        try:
            with self.client.stream("POST", self.CHAT_PATH, content=body) as response:
                if response.status_code != 200:
                    text = response.read().decode("utf-8", errors="replace")
                    raise APIStatusError(response.status_code, text)
                # Read failures surface as StreamReadError from the iterator
                yield _iter_lines(response)
        except httpx.HTTPError as e:
            raise TransportError(f"Error sending request: {e}") from e


def _iter_lines(response: httpx.Response) -> Iterator[str]:
    """Split the body on "\\n" only.

    `iter_lines` also breaks on U+2028, U+2029 and U+0085, which JSON
    strings may carry unescaped.
    """
    buffer = b""
    try:
        for data in response.iter_bytes():
            buffer += data
            *lines, buffer = buffer.split(b"\n")
            for line in lines:
                yield line.rstrip(b"\r").decode("utf-8", errors="replace")
    except httpx.HTTPError as e:
        raise StreamReadError(str(e)) from e
    if buffer:
        yield buffer.rstrip(b"\r").decode("utf-8", errors="replace")
