"""Decoder for the chat-completion server-sent-events stream.

The stream is a sequence of lines, each blank, `data: <json>` or
`data: [DONE]`. Decoding is a small state machine: `transition` is a pure
function over (state, line, latched) and `StreamDecoder` applies it to a
live line iterator, writing text out as soon as it is decoded.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from .base import StreamingChoice, StreamingResponse
from ..exceptions import ChunkDecodeError, StreamReadError

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class DecoderState(Enum):
    STREAMING = "streaming"
    DONE = "done"
    # A data: line failed to decode; reading continues as STREAMING
    ERROR_CONTINUE = "error_continue"


@dataclass(frozen=True)
class Step:
    """Result of feeding one line to the decoder."""
    state: DecoderState
    text: str = ""
    citations: Optional[list[str]] = None  # set only when the latch fires
    error: Optional[str] = None


def select_content(choice: StreamingChoice) -> str:
    """Prefer the incremental delta, fall back to the whole message."""
    if choice.delta.content:
        return choice.delta.content
    return choice.message.content


def _emit(response: StreamingResponse) -> str:
    return "".join(select_content(choice) for choice in response.choices)


def transition(state: DecoderState, line: Union[str, bytes], latched: bool) -> Step:
    """Apply one stream line to the decoder state.

    Args:
        state: Current decoder state
        line: Raw line as read from the response body
        latched: Whether citations were already captured this session

    Returns:
        The next state, the text to emit and, when the citation latch
        fires on this line, the captured citations.
    """
    if state is DecoderState.DONE:
        return Step(DecoderState.DONE)

    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    line = line.strip()
    if not line:
        return Step(state)

    if line.startswith(DATA_PREFIX):
        data = line[len(DATA_PREFIX):].strip()
        if data == DONE_SENTINEL:
            return Step(DecoderState.DONE)

        try:
            response = StreamingResponse.from_json(data)
        except ChunkDecodeError as e:
            return Step(DecoderState.ERROR_CONTINUE, error=f"Error parsing JSON: {e}")

        citations = None
        if response.choices and not latched:
            citations = list(response.citations)
        return Step(DecoderState.STREAMING, text=_emit(response), citations=citations)

    # Servers that skip SSE framing send bare JSON; anything else is noise
    try:
        response = StreamingResponse.from_json(line)
    except ChunkDecodeError:
        return Step(DecoderState.STREAMING)
    return Step(DecoderState.STREAMING, text=_emit(response))


def render_citations(citations: list[str]) -> str:
    """Render the trailing citation block."""
    lines = ["", "", "Citations:"]
    lines.extend(f"[{i}]: {citation}" for i, citation in enumerate(citations, start=1))
    return "\n".join(lines) + "\n"


class StreamDecoder:
    """One decoding session over a response body.

    Usage:
        decoder = StreamDecoder(on_error=report)
        decoder.consume(lines, write=sys.stdout.write)
        decoder.citations  # latched citation list
    """

    def __init__(
        self,
        on_error: Optional[Callable[[str], None]] = None,
        on_line: Optional[Callable[[str], None]] = None,
    ):
        """Initialize the decoder.

        Args:
            on_error: Receives diagnostics for undecodable data: lines and read errors
            on_line: Receives every raw line before it is decoded (debug logging)
        """
        self.state = DecoderState.STREAMING
        self.errors: list[str] = []
        self.read_error: Optional[Exception] = None
        self._on_error = on_error
        self._on_line = on_line
        self._citations: Optional[list[str]] = None
        self._parts: list[str] = []

    @property
    def done(self) -> bool:
        return self.state is DecoderState.DONE

    @property
    def citations(self) -> list[str]:
        """Citations captured by the latch, empty if it never fired."""
        return list(self._citations) if self._citations is not None else []

    @property
    def text(self) -> str:
        """Everything emitted so far."""
        return "".join(self._parts)

    def _report(self, message: str) -> None:
        self.errors.append(message)
        if self._on_error:
            self._on_error(message)

    def feed(self, line: Union[str, bytes]) -> str:
        """Decode one line and return the text it produced."""
        if self._on_line:
            self._on_line(line if isinstance(line, str) else line.decode("utf-8", errors="replace"))

        step = transition(self.state, line, self._citations is not None)
        self.state = step.state
        if step.citations is not None:
            self._citations = step.citations
        if step.error:
            self._report(step.error)
        if step.text:
            self._parts.append(step.text)
        return step.text

    def finish(self) -> None:
        """Mark end-of-input."""
        self.state = DecoderState.DONE

    def consume(
        self,
        lines: Iterable[Union[str, bytes]],
        write: Optional[Callable[[str], object]] = None,
    ) -> list[str]:
        """Decode lines until the sentinel, end-of-input or a read error.

        Text is passed to `write` as soon as each line is decoded. A read
        error is reported, stored in `read_error` and ends the session.

        Returns:
            The latched citations
        """
        iterator = iter(lines)
        try:
            while not self.done:
                try:
                    line = next(iterator)
                except StopIteration:
                    self.finish()
                    break
                except (StreamReadError, OSError) as e:
                    self.read_error = e
                    self._report(f"Error reading stream: {e}")
                    self.finish()
                    break

                text = self.feed(line)
                if text and write:
                    write(text)
        finally:
            close = getattr(iterator, "close", None)
            if close:
                close()
        return self.citations
