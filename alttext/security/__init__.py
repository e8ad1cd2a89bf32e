"""Origin admission."""
from alttext.security.origins import is_origin_allowed, cors_headers, preflight_headers

__all__ = ["is_origin_allowed", "cors_headers", "preflight_headers"]
