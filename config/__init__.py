# FILE: config/__init__.py
"""Configuration package for the alt text proxy.

Contains:
- proxy_settings.py: environment-driven thresholds, cache policy and origins
"""

from config.proxy_settings import (
    MIB,
    GEMINI_MODEL,
    INLINE_MAX_BYTES,
    UPLOAD_MAX_BYTES,
    UPLOAD_CACHE_TTL_SECONDS,
    UPLOAD_POLL_INTERVAL_SECONDS,
    UPLOAD_MAX_POLLS,
    UPLOAD_COALESCE_INFLIGHT,
    get_gemini_api_key,
)

__all__ = [
    "MIB",
    "GEMINI_MODEL",
    "INLINE_MAX_BYTES",
    "UPLOAD_MAX_BYTES",
    "UPLOAD_CACHE_TTL_SECONDS",
    "UPLOAD_POLL_INTERVAL_SECONDS",
    "UPLOAD_MAX_POLLS",
    "UPLOAD_COALESCE_INFLIGHT",
    "get_gemini_api_key",
]
