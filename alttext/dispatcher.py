# FILE: alttext/dispatcher.py
"""
Dispatcher: one request in, one terminal DispatchOutcome out.

Media path:
    validate -> classify -> select instructions -> plan transport
    -> (inline | upload via cache) -> backend.generate -> post-process

Text condensation skips classification and transport entirely.

Failure mapping (never retried here, callers resubmit):
- ValidationError  -> 400 (413 when the payload is too large); backend untouched
- UpstreamError    -> 502 when the backend status is >= 500 or unusable output, else 400
- TransportError   -> 500
A successful upload followed by a failed generate leaves the cache entry in
place, so a resubmission skips the upload.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, List, Mapping, Optional, Union

import pydantic

from alttext.errors import DispatchError, TransportError, UpstreamError, ValidationError
from alttext.llm.backend import (
    ALT_TEXT_GENERATION,
    CAPTION_GENERATION,
    CONDENSATION_GENERATION,
    MediaBackend,
)
from alttext.media.classifier import backend_mime_type, classify
from alttext.media.instructions import (
    VIDEO_FRAME_PREFIX,
    InstructionContext,
    InstructionTask,
    build_condensation_prompt,
    select_instructions,
)
from alttext.media.schemas import (
    ContentCategory,
    InlineMedia,
    MediaDescriptor,
    RemoteHandle,
    TransportPlan,
)
from alttext.media.transport import plan_transport
from alttext.media.upload_cache import UploadCache
from alttext.schemas import (
    DispatchOutcome,
    DispatchRequest,
    DispatchState,
    Operation,
    OutcomeKind,
)

logger = logging.getLogger(__name__)

WEBVTT_HEADER = "WEBVTT"

STAGE_NAMES = {
    Operation.CONDENSE_TEXT: "text condensation",
    Operation.GENERATE_CAPTIONS: "caption generation",
    Operation.GENERATE_ALT_TEXT: "alt text generation",
}


# =============================================================================
# POST-PROCESSING
# =============================================================================

FRAME_PREFIX_MARKER = "a frame from a video"


def ensure_video_frame_prefix(text: str) -> str:
    """Prefix frame descriptions the backend did not prefix itself."""
    if text.lower().startswith(FRAME_PREFIX_MARKER):
        return text
    return f"{VIDEO_FRAME_PREFIX} {text[:1].lower()}{text[1:]}"


def strip_code_fences(text: str) -> str:
    if not text.startswith("```"):
        return text
    lines = text.split("\n")
    if lines[0].startswith("```"):
        lines = lines[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    return "\n".join(lines).strip()


def ensure_webvtt_header(text: str) -> str:
    text = strip_code_fences(text.strip())
    if text.startswith(WEBVTT_HEADER):
        return text
    return f"{WEBVTT_HEADER}\n\n{text}"


def decode_payload(base64_data: str) -> bytes:
    try:
        return base64.b64decode(base64_data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"base64Data is not valid base64: {exc}") from exc


class _Trace:
    """Per-request state trace. States only move forward."""

    def __init__(self) -> None:
        self.states: List[DispatchState] = [DispatchState.RECEIVED]

    def advance(self, state: DispatchState) -> None:
        if state in self.states:
            raise RuntimeError(f"dispatch state {state.value} re-entered")
        self.states.append(state)


# =============================================================================
# DISPATCHER
# =============================================================================

class Dispatcher:
    """Orchestrates one request against an injected backend and upload cache."""

    def __init__(self, backend: MediaBackend, upload_cache: UploadCache):
        self.backend = backend
        self.upload_cache = upload_cache

    async def handle(self, request: Union[DispatchRequest, Mapping[str, Any]]) -> DispatchOutcome:
        trace = _Trace()
        operation = Operation.GENERATE_ALT_TEXT
        category: Optional[ContentCategory] = None
        plan: Optional[TransportPlan] = None

        try:
            req = self._parse(request)
            operation = req.resolve_operation()

            if operation == Operation.CONDENSE_TEXT:
                text = await self._condense(req, trace)
                field_name = "altText"
            else:
                category, plan, text = await self._describe_media(req, operation, trace)
                field_name = "vttContent" if operation == Operation.GENERATE_CAPTIONS else "altText"

        except DispatchError as exc:
            return self._failure(exc, operation, trace, category, plan)
        except Exception as exc:
            logger.exception("[dispatcher] Unexpected error during %s", STAGE_NAMES[operation])
            return self._failure(TransportError(str(exc)), operation, trace, category, plan)

        trace.advance(DispatchState.SUCCEEDED)
        logger.info("[dispatcher] %s succeeded (%d chars)", STAGE_NAMES[operation], len(text))
        return DispatchOutcome(
            kind=OutcomeKind.SUCCESS,
            http_status=200,
            text=text,
            response_field=field_name,
            category=category,
            plan=plan,
            states=trace.states,
        )

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def _condense(self, req: DispatchRequest, trace: _Trace) -> str:
        if not req.text or not req.directive or not req.target_length:
            raise ValidationError("Missing required fields for text condensation")

        logger.info(
            "[dispatcher] Condensing text: targetLength=%s, length=%d",
            req.target_length, len(req.text),
        )
        prompt = build_condensation_prompt(req.text, req.directive, req.target_length)
        trace.advance(DispatchState.INSTRUCTIONS_SELECTED)

        generated = await self.backend.generate([prompt], CONDENSATION_GENERATION)
        trace.advance(DispatchState.BACKEND_CALLED)

        condensed = (generated or "").strip()
        if not condensed:
            raise UpstreamError("empty response")
        logger.info("[dispatcher] Condensed %d -> %d chars", len(req.text), len(condensed))
        return condensed

    async def _describe_media(self, req: DispatchRequest, operation: Operation, trace: _Trace):
        if not req.base64_data or not req.mime_type:
            raise ValidationError("Missing required fields: base64Data and mimeType")

        payload = decode_payload(req.base64_data)
        duration = req.duration if req.duration and req.duration > 0 else None
        descriptor = MediaDescriptor(
            raw_mime_type=req.mime_type,
            is_video_hint=req.is_video,
            approx_duration_seconds=duration,
            payload_size_bytes=len(payload),
        )

        is_captions = operation == Operation.GENERATE_CAPTIONS
        if is_captions and not descriptor.mime_type.startswith("video/"):
            raise ValidationError(
                f'Invalid mime type for caption generation. Expected video/*, got "{descriptor.mime_type}" '
                f'(original: "{req.mime_type}")'
            )

        category = classify(descriptor)
        trace.advance(DispatchState.CLASSIFIED)

        task = InstructionTask.CAPTIONS if is_captions else InstructionTask.ALT_TEXT
        instructions = select_instructions(
            category, InstructionContext(task=task, duration_seconds=duration)
        )
        trace.advance(DispatchState.INSTRUCTIONS_SELECTED)
        logger.info(
            "[dispatcher] %s: mimeType=%s (original: %s) isVideo=%s category=%s size=%.2fMB",
            STAGE_NAMES[operation], descriptor.mime_type, req.mime_type,
            req.is_video, category.value, len(payload) / 1024 / 1024,
        )

        plan = plan_transport(descriptor.payload_size_bytes, req.use_compression)
        trace.advance(DispatchState.TRANSPORT_PLANNED)

        media: Union[InlineMedia, RemoteHandle]
        if plan.is_inline:
            mime_for_backend = descriptor.mime_type if is_captions else backend_mime_type(descriptor)
            media = InlineMedia(mime_type=mime_for_backend, data=payload)
            trace.advance(DispatchState.INLINE_READY)
        else:
            trace.advance(DispatchState.UPLOADING)
            media = await self.upload_cache.get_or_upload(
                payload, descriptor.mime_type, self.backend.upload
            )
            trace.advance(DispatchState.UPLOADED)

        settings = CAPTION_GENERATION if is_captions else ALT_TEXT_GENERATION
        generated = await self.backend.generate([instructions, media], settings)
        trace.advance(DispatchState.BACKEND_CALLED)

        text = (generated or "").strip()
        if not text:
            raise UpstreamError("empty response")

        if is_captions:
            text = ensure_webvtt_header(text)
        elif category == ContentCategory.VIDEO_FRAME:
            text = ensure_video_frame_prefix(text)

        return category, plan, text

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _parse(request: Union[DispatchRequest, Mapping[str, Any]]) -> DispatchRequest:
        if isinstance(request, DispatchRequest):
            return request
        try:
            return DispatchRequest.model_validate(dict(request))
        except pydantic.ValidationError as exc:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
            raise ValidationError(f"Invalid data types for: {fields}") from exc

    @staticmethod
    def _failure(
        exc: DispatchError,
        operation: Operation,
        trace: _Trace,
        category: Optional[ContentCategory],
        plan: Optional[TransportPlan],
    ) -> DispatchOutcome:
        if isinstance(exc, ValidationError):
            kind = OutcomeKind.VALIDATION_ERROR
        elif isinstance(exc, UpstreamError):
            kind = OutcomeKind.UPSTREAM_ERROR
        else:
            kind = OutcomeKind.TRANSPORT_ERROR

        stage = STAGE_NAMES[operation]
        message = f"{stage} failed: {exc.message}"
        if kind == OutcomeKind.VALIDATION_ERROR:
            logger.warning("[dispatcher] %s", message)
        else:
            logger.error("[dispatcher] %s", message)

        trace.advance(DispatchState.FAILED)
        return DispatchOutcome(
            kind=kind,
            http_status=exc.http_status,
            message=message,
            upstream_status=getattr(exc, "status", None),
            category=category,
            plan=plan,
            states=trace.states,
        )
