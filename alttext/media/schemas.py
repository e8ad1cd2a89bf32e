# FILE: alttext/media/schemas.py
"""
Media pipeline schemas: descriptors, categories, transport plans and remote handles.

All of these are built fresh per request; the only long-lived objects are
RemoteHandle instances held by the upload cache.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

ANIMATED_IMAGE_MIME_TYPES = frozenset({"image/gif", "image/webp", "image/apng"})


def normalize_mime_type(raw: Optional[str]) -> str:
    """Drop parameters (``video/webm;codecs=vp9`` -> ``video/webm``) and lowercase."""
    if not raw:
        return ""
    return raw.split(";", 1)[0].strip().lower()


class ContentCategory(str, Enum):
    """Content buckets driving template selection and post-processing."""
    STILL_IMAGE = "still_image"
    ANIMATED_IMAGE = "animated_image"
    FULL_VIDEO = "full_video"
    VIDEO_FRAME = "video_frame"
    GENERIC_MEDIA = "generic_media"


class TransportMode(str, Enum):
    INLINE = "inline"
    REMOTE_UPLOAD = "remote_upload"


class RemoteState(str, Enum):
    """File API processing states we care about."""
    PROCESSING = "PROCESSING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"
    UNKNOWN = "STATE_UNSPECIFIED"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "RemoteState":
        for state in cls:
            if state.value == name:
                return state
        return cls.UNKNOWN


@dataclass(frozen=True)
class MediaDescriptor:
    raw_mime_type: str
    is_video_hint: bool = False
    approx_duration_seconds: Optional[float] = None
    payload_size_bytes: int = 0

    @property
    def mime_type(self) -> str:
        return normalize_mime_type(self.raw_mime_type)


@dataclass(frozen=True)
class TransportPlan:
    mode: TransportMode
    payload_size_bytes: int

    @property
    def is_inline(self) -> bool:
        return self.mode == TransportMode.INLINE


@dataclass(frozen=True)
class InlineMedia:
    """Payload bytes embedded directly in the generate request."""
    mime_type: str
    data: bytes


@dataclass(frozen=True)
class RemoteHandle:
    """Reference to an object already stored by the backend's file channel."""
    name: str
    uri: str
    mime_type: str
    state: RemoteState = RemoteState.ACTIVE
