# FILE: config/proxy_settings.py
"""Runtime settings for the alt text proxy.

Everything is read from the environment once at import time (after .env is
loaded). Sizes are in bytes, intervals in seconds.
"""

from __future__ import annotations

import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

MIB = 1024 * 1024


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def get_gemini_api_key() -> Optional[str]:
    """Get Gemini API key from environment (read per call so tests can patch env)."""
    key = os.getenv("GEMINI_API_KEY")
    if key:
        key = key.strip().strip('"').strip("'")
    return key if key else None


# =============================================================================
# BACKEND
# =============================================================================

GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

# =============================================================================
# TRANSPORT THRESHOLDS
# =============================================================================

# Largest payload embedded directly in a generate request
INLINE_MAX_BYTES = _get_int("ALTTEXT_INLINE_MAX_BYTES", 20 * MIB)

# Largest payload accepted at all (File API ceiling)
UPLOAD_MAX_BYTES = _get_int("ALTTEXT_UPLOAD_MAX_BYTES", 100 * MIB)

# =============================================================================
# UPLOAD CACHE / FILE API POLLING
# =============================================================================

UPLOAD_CACHE_TTL_SECONDS = _get_float("ALTTEXT_UPLOAD_CACHE_TTL", 3600.0)
UPLOAD_POLL_INTERVAL_SECONDS = _get_float("ALTTEXT_UPLOAD_POLL_INTERVAL", 1.0)
UPLOAD_MAX_POLLS = _get_int("ALTTEXT_UPLOAD_MAX_POLLS", 300)
UPLOAD_COALESCE_INFLIGHT = os.getenv("ALTTEXT_UPLOAD_COALESCE", "0") == "1"

# =============================================================================
# ORIGIN ADMISSION
# =============================================================================

ALLOWED_EXTENSION_ID = os.getenv(
    "ALTTEXT_ALLOWED_EXTENSION_ID", "bdgpkmjnfildfjhpjagjibfnfpdieddp"
)

ALLOWED_WEB_APP_ORIGINS: List[str] = [
    "https://alttext.symm.app",
    "https://alttextdev.symm.app",
]

ALLOWED_LOCAL_ORIGINS: List[str] = [
    "http://localhost:8080",
    "http://localhost:3000",
    "http://127.0.0.1:8080",
    "http://127.0.0.1:3000",
]

ALLOWED_ORIGIN_PREFIXES: List[str] = [
    "chrome-extension://",
    "safari-web-extension://",
    "moz-extension://",
    "https://alt-text-web-",
]

EXTRA_ALLOWED_ORIGINS: List[str] = [
    o.strip() for o in os.getenv("ALTTEXT_EXTRA_ORIGINS", "").split(",") if o.strip()
]

# =============================================================================
# SERVER
# =============================================================================

LOG_LEVEL = os.getenv("ALTTEXT_LOG_LEVEL", "INFO").upper()
PORT = _get_int("PORT", 3000)
