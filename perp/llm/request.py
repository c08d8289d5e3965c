"""Request payload construction."""

import json
from dataclasses import dataclass
from typing import Optional

from .base import Message
from ..exceptions import ConfigurationError

SYSTEM_PROMPT = "Be precise and concise."


@dataclass(frozen=True)
class RequestPayload:
    """Body of a chat-completion request."""
    model: str
    messages: tuple[Message, ...]
    stream: bool = True
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None

    def to_dict(self) -> dict:
        """Convert to the wire shape; unset sampling fields are omitted."""
        data = {
            "model": self.model,
            "messages": [m.to_dict() for m in self.messages],
            "stream": self.stream,
        }
        for key in ("max_tokens", "temperature", "top_p"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    def to_json(self) -> str:
        """Serialize to JSON.

        Raises:
            ConfigurationError: If the payload cannot be serialized
        """
        try:
            return json.dumps(self.to_dict(), ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Error marshaling payload: {e}") from e


def build_payload(
    model: str,
    query: str,
    max_tokens: Optional[int] = None,
    temperature: Optional[float] = None,
    top_p: Optional[float] = None,
) -> RequestPayload:
    """Build a streaming request for a single user query.

    Range checks on the sampling values are left to the caller.
    """
    return RequestPayload(
        model=model,
        messages=(
            Message("system", SYSTEM_PROMPT),
            Message("user", query),
        ),
        stream=True,
        max_tokens=max_tokens,
        temperature=temperature,
        top_p=top_p,
    )
