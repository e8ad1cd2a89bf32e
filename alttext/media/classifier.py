# FILE: alttext/media/classifier.py
"""Content classification for inbound media.

classify() is total: unrecognised MIME types fall through to STILL_IMAGE so
classification never blocks a request.
"""

from __future__ import annotations

import logging

from alttext.media.schemas import (
    ANIMATED_IMAGE_MIME_TYPES,
    ContentCategory,
    MediaDescriptor,
)

logger = logging.getLogger(__name__)

# Sent to the backend in place of types it handles poorly
BACKEND_VIDEO_MIME_TYPE = "video/mp4"


def classify(descriptor: MediaDescriptor) -> ContentCategory:
    """Map a descriptor to exactly one content category (first match wins)."""
    mime_type = descriptor.mime_type
    is_video = descriptor.is_video_hint
    is_animated = mime_type in ANIMATED_IMAGE_MIME_TYPES

    # Frame extracted upstream from a video whose container was not kept.
    # Must be checked before the animation rule.
    if is_video and mime_type.startswith("image/") and not is_animated:
        return ContentCategory.VIDEO_FRAME

    if is_animated or (mime_type.startswith("video/") and not is_video):
        return ContentCategory.ANIMATED_IMAGE

    if mime_type.startswith("video/") or is_video:
        return ContentCategory.FULL_VIDEO

    if not mime_type.startswith("image/"):
        logger.warning("[classifier] Unrecognised mimeType %r, treating as still image", mime_type)
    return ContentCategory.STILL_IMAGE


def backend_mime_type(descriptor: MediaDescriptor) -> str:
    """
    MIME type to declare to the backend.

    Animated images flagged as video (e.g. for Bluesky posting) and WebM
    clips are declared as MP4; the selected instructions still describe them
    correctly.
    """
    mime_type = descriptor.mime_type
    if descriptor.is_video_hint and mime_type in ANIMATED_IMAGE_MIME_TYPES:
        logger.info("[classifier] Overriding mimeType %s -> %s (isVideo + animated)", mime_type, BACKEND_VIDEO_MIME_TYPE)
        return BACKEND_VIDEO_MIME_TYPE
    if mime_type == "video/webm":
        logger.info("[classifier] Overriding mimeType %s -> %s for WebM compatibility", mime_type, BACKEND_VIDEO_MIME_TYPE)
        return BACKEND_VIDEO_MIME_TYPE
    return mime_type
