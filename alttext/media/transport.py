# FILE: alttext/media/transport.py
"""Transport planning: inline vs File API upload.

The backend accepts small payloads embedded in the request; larger ones must
be uploaded first and referenced by handle. Callers that prefer compression
accept inline transmission for mid-size payloads instead of the extra round
trip.
"""

from __future__ import annotations

import logging
from typing import Optional

from config import proxy_settings
from alttext.errors import PayloadTooLargeError, ValidationError
from alttext.media.schemas import TransportMode, TransportPlan

logger = logging.getLogger(__name__)


def plan_transport(
    payload_size_bytes: int,
    compression_preferred: bool = False,
    inline_max_bytes: Optional[int] = None,
    upload_max_bytes: Optional[int] = None,
) -> TransportPlan:
    """
    Decide how a payload reaches the backend.

    Raises:
        PayloadTooLargeError: size exceeds the upload ceiling
        ValidationError: negative size
    """
    inline_max = proxy_settings.INLINE_MAX_BYTES if inline_max_bytes is None else inline_max_bytes
    upload_max = proxy_settings.UPLOAD_MAX_BYTES if upload_max_bytes is None else upload_max_bytes

    if payload_size_bytes < 0:
        raise ValidationError(f"invalid payload size: {payload_size_bytes}")

    if payload_size_bytes > upload_max:
        raise PayloadTooLargeError(
            f"payload exceeds maximum supported size "
            f"({payload_size_bytes / 1024 / 1024:.1f}MB > {upload_max / 1024 / 1024:.0f}MB)"
        )

    if payload_size_bytes <= inline_max:
        mode = TransportMode.INLINE
    elif compression_preferred:
        mode = TransportMode.INLINE
    else:
        mode = TransportMode.REMOTE_UPLOAD

    logger.info(
        "[transport] %.2fMB compression=%s -> %s",
        payload_size_bytes / 1024 / 1024, compression_preferred, mode.value,
    )
    return TransportPlan(mode=mode, payload_size_bytes=payload_size_bytes)
