"""Chat-completion data types shared by the request builder and the decoder."""

import json
from dataclasses import dataclass, field

from ..exceptions import ChunkDecodeError


@dataclass(frozen=True)
class Message:
    """Chat message."""
    role: str  # "system", "user", "assistant"
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data) -> "Message":
        """Build a message from a decoded JSON value; null means empty."""
        if data is None:
            return cls(role="", content="")
        if not isinstance(data, dict):
            raise ChunkDecodeError(f"expected message object, got {type(data).__name__}")
        role = data.get("role") or ""
        content = data.get("content") or ""
        if not isinstance(role, str) or not isinstance(content, str):
            raise ChunkDecodeError("message role and content must be strings")
        return cls(role=role, content=content)


@dataclass(frozen=True)
class StreamingChoice:
    """One candidate in a response chunk.

    `delta` carries incremental text, `message` a whole non-incremental reply.
    """
    delta: Message
    message: Message

    @classmethod
    def from_dict(cls, data) -> "StreamingChoice":
        if not isinstance(data, dict):
            raise ChunkDecodeError(f"expected choice object, got {type(data).__name__}")
        return cls(
            delta=Message.from_dict(data.get("delta")),
            message=Message.from_dict(data.get("message")),
        )


@dataclass(frozen=True)
class StreamingResponse:
    """A single decoded chunk from the API stream."""
    choices: list[StreamingChoice] = field(default_factory=list)
    citations: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, text: str) -> "StreamingResponse":
        """Decode one JSON chunk.

        Unknown keys are ignored. Missing or null `choices`/`citations`
        decode as empty lists.

        Raises:
            ChunkDecodeError: If the text is not JSON or has the wrong shape
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ChunkDecodeError(str(e)) from e
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ChunkDecodeError(f"expected object, got {type(data).__name__}")

        raw_choices = data.get("choices") or []
        if not isinstance(raw_choices, list):
            raise ChunkDecodeError("'choices' must be a list")

        raw_citations = data.get("citations") or []
        if not isinstance(raw_citations, list) or not all(isinstance(c, str) for c in raw_citations):
            raise ChunkDecodeError("'citations' must be a list of strings")

        return cls(
            choices=[StreamingChoice.from_dict(c) for c in raw_choices],
            citations=list(raw_citations),
        )
