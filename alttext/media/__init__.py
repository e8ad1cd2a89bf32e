"""
Media pipeline: classification, instruction selection, transport planning
and the File API upload cache.
"""

from alttext.media.schemas import (
    ANIMATED_IMAGE_MIME_TYPES,
    ContentCategory,
    InlineMedia,
    MediaDescriptor,
    RemoteHandle,
    RemoteState,
    TransportMode,
    TransportPlan,
    normalize_mime_type,
)
from alttext.media.classifier import classify, backend_mime_type
from alttext.media.instructions import (
    InstructionContext,
    InstructionTask,
    VIDEO_FRAME_PREFIX,
    select_instructions,
    build_condensation_prompt,
)
from alttext.media.transport import plan_transport
from alttext.media.upload_cache import UploadCache, cache_key

__all__ = [
    "ANIMATED_IMAGE_MIME_TYPES",
    "ContentCategory",
    "InlineMedia",
    "MediaDescriptor",
    "RemoteHandle",
    "RemoteState",
    "TransportMode",
    "TransportPlan",
    "normalize_mime_type",
    "classify",
    "backend_mime_type",
    "InstructionContext",
    "InstructionTask",
    "VIDEO_FRAME_PREFIX",
    "select_instructions",
    "build_condensation_prompt",
    "plan_transport",
    "UploadCache",
    "cache_key",
]
