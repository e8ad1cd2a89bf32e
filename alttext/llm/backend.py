# FILE: alttext/llm/backend.py
"""
Backend capability interface.

The Dispatcher only ever sees MediaBackend: one call to generate text from a
list of content parts, one call to push bytes into the backend's file store.
Which transport sits behind it (SDK, raw HTTP, a test fake) is not its
concern.

Implementations raise UpstreamError for backend-reported failures and
TransportError for everything that never got a backend answer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Union

from alttext.media.schemas import InlineMedia, RemoteHandle

ContentPart = Union[str, InlineMedia, RemoteHandle]


@dataclass(frozen=True)
class GenerationSettings:
    temperature: float = 0.2
    max_output_tokens: int = 2048
    top_p: Optional[float] = None
    top_k: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "temperature": self.temperature,
            "max_output_tokens": self.max_output_tokens,
        }
        if self.top_p is not None:
            out["top_p"] = self.top_p
        if self.top_k is not None:
            out["top_k"] = self.top_k
        return out


ALT_TEXT_GENERATION = GenerationSettings(temperature=0.2, max_output_tokens=2048, top_p=0.95, top_k=64)
CAPTION_GENERATION = GenerationSettings(temperature=0.2, max_output_tokens=4096, top_p=0.95, top_k=40)
CONDENSATION_GENERATION = GenerationSettings(temperature=0.2, max_output_tokens=1024)


class MediaBackend(Protocol):
    async def generate(self, content: List[ContentPart], config: GenerationSettings) -> str:
        """Return the generated text ("" when the backend produced none)."""
        ...

    async def upload(self, payload: bytes, mime_type: str) -> RemoteHandle:
        """Store bytes remotely and return a handle once processing finished."""
        ...
