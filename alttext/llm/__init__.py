"""
Backend adapters.

MediaBackend is the narrow interface the Dispatcher depends on;
GeminiBackend is the production implementation.
"""

from alttext.llm.backend import (
    ContentPart,
    GenerationSettings,
    MediaBackend,
    ALT_TEXT_GENERATION,
    CAPTION_GENERATION,
    CONDENSATION_GENERATION,
)
from alttext.llm.gemini_backend import GeminiBackend, build_default_backend

__all__ = [
    "ContentPart",
    "GenerationSettings",
    "MediaBackend",
    "ALT_TEXT_GENERATION",
    "CAPTION_GENERATION",
    "CONDENSATION_GENERATION",
    "GeminiBackend",
    "build_default_backend",
]
