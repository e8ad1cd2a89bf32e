# FILE: alttext/endpoints/generate.py
"""
HTTP front door for the dispatcher.

Endpoints:
- GET  /                    service banner
- GET  /health              liveness
- OPTIONS /generate-alt-text  CORS preflight
- POST /generate-alt-text   JSON body -> Dispatcher
- POST /upload              multipart file -> Dispatcher (same pipeline)

Only origin admission, body parsing and status mapping live here; every
decision about the media itself belongs to the Dispatcher.
"""

import base64
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from alttext.dispatcher import Dispatcher
from alttext.security.origins import cors_headers, is_origin_allowed, preflight_headers

logger = logging.getLogger(__name__)

router = APIRouter(tags=["alt-text"])

TRUE_STRINGS = {"true", "1", "yes"}


def get_dispatcher(request: Request) -> Dispatcher:
    """Dispatcher built at startup and stored on app.state."""
    return request.app.state.dispatcher


def _reject_origin(origin: Optional[str], method: str) -> Response:
    logger.warning("[origins] Rejected %s request from origin: %s", method, origin or "Not Specified")
    return PlainTextResponse("Forbidden: Invalid Origin", status_code=403, headers={"Vary": "Origin"})


def _backend_configured(dispatcher: Dispatcher) -> bool:
    return bool(getattr(dispatcher.backend, "is_configured", True))


async def _dispatch(dispatcher: Dispatcher, body: Dict[str, Any], origin: Optional[str]) -> JSONResponse:
    if not _backend_configured(dispatcher):
        logger.error("[generate] GEMINI_API_KEY environment variable not set")
        return JSONResponse(
            {"error": "Server configuration error: API Key missing."},
            status_code=500,
            headers=cors_headers(origin),
        )

    outcome = await dispatcher.handle(body)
    return JSONResponse(outcome.to_body(), status_code=outcome.http_status, headers=cors_headers(origin))


@router.get("/")
async def root() -> Dict[str, str]:
    return {
        "message": "Alt Text Generation Server",
        "endpoint": "/generate-alt-text",
        "method": "POST",
    }


@router.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "healthy", "service": "alt-text-server"}


@router.options("/generate-alt-text")
async def generate_alt_text_preflight(request: Request) -> Response:
    origin = request.headers.get("origin")
    if not is_origin_allowed(origin):
        logger.warning("[origins] Rejected OPTIONS request from origin: %s", origin or "Not Specified")
        return PlainTextResponse("Forbidden: Origin not allowed", status_code=403, headers={"Vary": "Origin"})
    return Response(status_code=204, headers=preflight_headers(origin))


@router.post("/generate-alt-text")
async def generate_alt_text(
    request: Request,
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> Response:
    origin = request.headers.get("origin")
    logger.debug("[origins] Request origin: %s", origin)
    if not is_origin_allowed(origin):
        return _reject_origin(origin, "POST")

    try:
        body = await request.json()
    except ValueError:
        return JSONResponse({"error": "Request body must be valid JSON"}, status_code=400, headers=cors_headers(origin))
    if not isinstance(body, dict):
        return JSONResponse({"error": "Request body must be a JSON object"}, status_code=400, headers=cors_headers(origin))

    return await _dispatch(dispatcher, body, origin)


@router.post("/upload")
async def upload_media(
    request: Request,
    file: Optional[UploadFile] = File(None),
    action: Optional[str] = Form(None),
    mime_type: Optional[str] = Form(None, alias="mimeType"),
    is_video: Optional[str] = Form(None, alias="isVideo"),
    duration: Optional[float] = Form(None),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> Response:
    """Multipart variant for large files; re-enters the JSON pipeline."""
    origin = request.headers.get("origin")
    if not is_origin_allowed(origin):
        return _reject_origin(origin, "upload")

    if file is None:
        return JSONResponse({"error": "No file uploaded"}, status_code=400, headers=cors_headers(origin))
    if not action or not mime_type:
        return JSONResponse(
            {"error": "Missing required fields: action, mimeType"},
            status_code=400,
            headers=cors_headers(origin),
        )

    data = await file.read()
    logger.info(
        "[generate] File upload: %s, %.2fMB, action: %s",
        file.filename, len(data) / 1024 / 1024, action,
    )

    body: Dict[str, Any] = {
        "action": action,
        "base64Data": base64.b64encode(data).decode("ascii"),
        "mimeType": mime_type,
        "isVideo": (is_video or "").strip().lower() in TRUE_STRINGS,
    }
    if duration is not None:
        body["duration"] = duration

    return await _dispatch(dispatcher, body, origin)
