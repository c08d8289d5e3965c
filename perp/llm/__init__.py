"""Chat-completion request, transport and stream decoding."""

from .base import Message, StreamingChoice, StreamingResponse
from .decoder import DecoderState, StreamDecoder, render_citations, select_content, transition
from .perplexity_client import PerplexityClient
from .request import RequestPayload, build_payload

__all__ = [
    "Message",
    "StreamingChoice",
    "StreamingResponse",
    "DecoderState",
    "StreamDecoder",
    "render_citations",
    "select_content",
    "transition",
    "PerplexityClient",
    "RequestPayload",
    "build_payload",
]
