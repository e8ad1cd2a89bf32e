# FILE: main.py
"""
Alt Text Proxy - FastAPI Application
Version: 1.2.0

Relays media or text from the browser extensions to Gemini and returns
alt-text, WebVTT captions or condensed text.

Features:
- Content classification (still image / animation / full video / video frame)
- Task-specific instruction templates
- Inline vs File API transport selection
- Content-addressed File API upload cache with expiry
- Origin admission for extension and web-app callers
"""
import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI

# Load .env FIRST before any other imports that might need env vars
load_dotenv()

from config import proxy_settings
from alttext.dispatcher import Dispatcher
from alttext.endpoints.generate import router as generate_router
from alttext.llm.backend import MediaBackend
from alttext.llm.gemini_backend import build_default_backend
from alttext.media.upload_cache import UploadCache

logging.basicConfig(
    level=getattr(logging, proxy_settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
)
# Suppress noisy third-party HTTP logs
for _noisy in ("httpx", "httpcore", "urllib3", "google", "grpc"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)


def create_app(
    backend: Optional[MediaBackend] = None,
    upload_cache: Optional[UploadCache] = None,
) -> FastAPI:
    """Build the application with an explicitly owned backend and upload cache."""
    app = FastAPI(
        title="Alt Text Proxy",
        version="1.2.0",
        description="Accessibility alt-text and caption generation proxy for browser extensions",
    )

    cache = upload_cache if upload_cache is not None else UploadCache(
        coalesce_inflight=proxy_settings.UPLOAD_COALESCE_INFLIGHT
    )
    app.state.upload_cache = cache
    if backend is None:
        backend = build_default_backend()
    app.state.dispatcher = Dispatcher(backend=backend, upload_cache=cache)

    @app.on_event("startup")
    def on_startup():
        print("[startup] Checking environment variables...")
        if proxy_settings.get_gemini_api_key():
            print(f"[startup] GEMINI_API_KEY: [OK] set (model={proxy_settings.GEMINI_MODEL})")
        else:
            print("[startup] GEMINI_API_KEY: [X] NOT SET - every generate request will fail")
        print(
            f"[startup] Transport: inline <= {proxy_settings.INLINE_MAX_BYTES // proxy_settings.MIB}MB, "
            f"upload <= {proxy_settings.UPLOAD_MAX_BYTES // proxy_settings.MIB}MB"
        )
        print(
            f"[startup] Upload cache: ttl={cache.ttl_seconds:.0f}s, "
            f"coalesce={'on' if proxy_settings.UPLOAD_COALESCE_INFLIGHT else 'off'}"
        )

    app.include_router(generate_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=proxy_settings.PORT)
