# FILE: alttext/security/origins.py
"""
Origin admission for browser-extension and web-app callers.

An origin is admitted on an exact match against the allowlist or a prefix
match (extension schemes, the hosted web app deployments). Admitted origins
are reflected back in Access-Control-Allow-Origin.
"""

import logging
from typing import Dict, List, Optional

from config import proxy_settings

logger = logging.getLogger(__name__)

PREFLIGHT_ALLOW_METHODS = "POST"
PREFLIGHT_ALLOW_HEADERS = "Content-Type, Connection, Accept, Cache-Control"
PREFLIGHT_MAX_AGE = "3600"


def allowed_full_origins() -> List[str]:
    return [
        f"chrome-extension://{proxy_settings.ALLOWED_EXTENSION_ID}",
        *proxy_settings.ALLOWED_WEB_APP_ORIGINS,
        *proxy_settings.ALLOWED_LOCAL_ORIGINS,
        *proxy_settings.EXTRA_ALLOWED_ORIGINS,
    ]


def is_origin_allowed(origin: Optional[str]) -> bool:
    if not origin:
        return False
    if origin in allowed_full_origins():
        return True
    for prefix in proxy_settings.ALLOWED_ORIGIN_PREFIXES:
        if origin.startswith(prefix):
            return True
    return False


def cors_headers(origin: Optional[str]) -> Dict[str, str]:
    """Vary is always set; Allow-Origin only for admitted origins."""
    headers = {"Vary": "Origin"}
    if is_origin_allowed(origin):
        headers["Access-Control-Allow-Origin"] = origin
    return headers


def preflight_headers(origin: str) -> Dict[str, str]:
    headers = cors_headers(origin)
    headers.update({
        "Access-Control-Allow-Methods": PREFLIGHT_ALLOW_METHODS,
        "Access-Control-Allow-Headers": PREFLIGHT_ALLOW_HEADERS,
        "Access-Control-Max-Age": PREFLIGHT_MAX_AGE,
    })
    return headers
