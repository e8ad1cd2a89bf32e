# FILE: tests/test_dispatcher.py
"""
Tests for alttext/dispatcher.py
Routing, post-processing, failure mapping and the per-request state trace.
"""

import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import base64

import pytest
from unittest.mock import patch

from config import proxy_settings
from alttext.dispatcher import (
    Dispatcher,
    decode_payload,
    ensure_video_frame_prefix,
    ensure_webvtt_header,
    strip_code_fences,
)
from alttext.errors import TransportError, UpstreamError, ValidationError
from alttext.llm.backend import ALT_TEXT_GENERATION, CAPTION_GENERATION, CONDENSATION_GENERATION
from alttext.media.schemas import ContentCategory, InlineMedia, RemoteHandle, TransportMode
from alttext.schemas import DispatchRequest, DispatchState, OutcomeKind

from conftest import FakeBackend

MIB = 1024 * 1024
JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"
VTT_REPLY = "00:00:00.000 --> 00:00:03.000\nA dog barks.\n"


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _alt_text_body(**overrides):
    body = {
        "action": "generateAltText",
        "base64Data": _b64(JPEG_BYTES),
        "mimeType": "image/jpeg",
    }
    body.update(overrides)
    return body


@pytest.fixture
def dispatcher(fake_backend, upload_cache):
    return Dispatcher(backend=fake_backend, upload_cache=upload_cache)


@pytest.fixture
def small_thresholds():
    """Inline up to 1KB, upload up to 4KB."""
    with patch.object(proxy_settings, "INLINE_MAX_BYTES", 1024), \
            patch.object(proxy_settings, "UPLOAD_MAX_BYTES", 4096):
        yield


# =============================================================================
# POST-PROCESSING HELPERS
# =============================================================================

class TestVideoFramePrefix:

    def test_prefix_added_and_first_letter_lowered(self):
        assert ensure_video_frame_prefix("A cat sits on a ledge.") == \
            "A frame from a video showing a cat sits on a ledge."

    def test_lowercase_reply(self):
        assert ensure_video_frame_prefix("a cat sits on a ledge.") == \
            "A frame from a video showing a cat sits on a ledge."

    def test_existing_prefix_not_duplicated(self):
        text = "A frame from a video showing a cat sits on a ledge."
        assert ensure_video_frame_prefix(text) == text

    def test_existing_prefix_case_insensitive(self):
        text = "a FRAME from a video showing two people."
        assert ensure_video_frame_prefix(text) == text

    def test_reply_with_different_wording_not_prefixed_twice(self):
        text = "A frame from a video of a cat on a ledge."
        assert ensure_video_frame_prefix(text) == text


class TestWebVttHeader:

    def test_header_added(self):
        assert ensure_webvtt_header(VTT_REPLY).startswith("WEBVTT\n\n00:00:00.000")

    def test_header_kept(self):
        text = "WEBVTT\n\n" + VTT_REPLY
        assert ensure_webvtt_header(text) == text.strip()

    def test_code_fence_removed(self):
        fenced = "```vtt\nWEBVTT\n\n" + VTT_REPLY + "```"
        assert ensure_webvtt_header(fenced).startswith("WEBVTT\n\n00:00:00.000")

    def test_strip_code_fences_passthrough(self):
        assert strip_code_fences("plain") == "plain"


class TestDecodePayload:

    def test_valid(self):
        assert decode_payload(_b64(b"abc")) == b"abc"

    def test_invalid(self):
        with pytest.raises(ValidationError, match="not valid base64"):
            decode_payload("***not base64***")


# =============================================================================
# ALT TEXT
# =============================================================================

class TestAltText:

    @pytest.mark.asyncio
    async def test_still_image_inline(self, dispatcher, fake_backend):
        outcome = await dispatcher.handle(_alt_text_body())

        assert outcome.is_success()
        assert outcome.to_body() == {"altText": "A cat sits on a windowsill."}
        assert outcome.category == ContentCategory.STILL_IMAGE
        assert outcome.plan.mode == TransportMode.INLINE

        content, settings = fake_backend.generate_calls[0]
        assert settings == ALT_TEXT_GENERATION
        assert isinstance(content[1], InlineMedia)
        assert content[1].data == JPEG_BYTES
        assert fake_backend.upload_calls == []

    @pytest.mark.asyncio
    async def test_video_frame_reply_prefixed(self, upload_cache):
        backend = FakeBackend(reply="a cat sits on a ledge.")
        dispatcher = Dispatcher(backend=backend, upload_cache=upload_cache)

        outcome = await dispatcher.handle(_alt_text_body(isVideo=True))

        assert outcome.category == ContentCategory.VIDEO_FRAME
        assert outcome.text == "A frame from a video showing a cat sits on a ledge."

    @pytest.mark.asyncio
    async def test_video_frame_prefix_not_duplicated(self, upload_cache):
        backend = FakeBackend(reply="A frame from a video showing a cat sits on a ledge.")
        dispatcher = Dispatcher(backend=backend, upload_cache=upload_cache)

        outcome = await dispatcher.handle(_alt_text_body(isVideo=True))

        assert outcome.text == "A frame from a video showing a cat sits on a ledge."

    @pytest.mark.asyncio
    async def test_reply_whitespace_stripped(self, upload_cache):
        backend = FakeBackend(reply="  A red bicycle.\n")
        dispatcher = Dispatcher(backend=backend, upload_cache=upload_cache)

        outcome = await dispatcher.handle(_alt_text_body())

        assert outcome.text == "A red bicycle."

    @pytest.mark.asyncio
    async def test_hinted_gif_sent_inline_as_mp4(self, dispatcher, fake_backend):
        await dispatcher.handle(_alt_text_body(mimeType="image/gif", isVideo=True, duration=4))

        content, _ = fake_backend.generate_calls[0]
        assert content[1].mime_type == "video/mp4"
        assert "approximately 4 seconds long" in content[0]

    @pytest.mark.asyncio
    async def test_accepts_model_instance(self, dispatcher):
        req = DispatchRequest(base64_data=_b64(JPEG_BYTES), mime_type="image/png")
        outcome = await dispatcher.handle(req)
        assert outcome.is_success()

    @pytest.mark.asyncio
    async def test_unknown_action_treated_as_alt_text(self, dispatcher):
        outcome = await dispatcher.handle(_alt_text_body(action="somethingElse"))
        assert outcome.response_field == "altText"
        assert outcome.is_success()


# =============================================================================
# CAPTIONS
# =============================================================================

class TestCaptions:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("hint", [None, True], ids=["no-hint", "hinted"])
    async def test_large_webm_uploaded_with_duration(self, upload_cache, hint):
        """30MB video/webm with a 45s duration goes through the File API."""
        backend = FakeBackend(reply=VTT_REPLY)
        dispatcher = Dispatcher(backend=backend, upload_cache=upload_cache)
        payload = b"\x1a\x45\xdf\xa3" + b"\x00" * (30 * MIB)
        body = {
            "action": "generateCaptions",
            "base64Data": _b64(payload),
            "mimeType": "video/webm",
            "duration": 45,
        }
        if hint is not None:
            body["isVideo"] = hint

        outcome = await dispatcher.handle(body)

        assert outcome.is_success()
        assert outcome.plan.mode == TransportMode.REMOTE_UPLOAD
        assert outcome.response_field == "vttContent"
        assert outcome.to_body()["vttContent"].startswith("WEBVTT")

        assert backend.upload_calls == [(len(payload), "video/webm")]
        content, settings = backend.generate_calls[0]
        assert settings == CAPTION_GENERATION
        assert "approximately 45 seconds long" in content[0]
        assert isinstance(content[1], RemoteHandle)

    @pytest.mark.asyncio
    async def test_small_video_inline_keeps_declared_type(self, upload_cache):
        backend = FakeBackend(reply=VTT_REPLY)
        dispatcher = Dispatcher(backend=backend, upload_cache=upload_cache)

        await dispatcher.handle({
            "action": "generateCaptions",
            "base64Data": _b64(b"small-webm"),
            "mimeType": "video/webm;codecs=vp9",
        })

        content, _ = backend.generate_calls[0]
        assert content[1].mime_type == "video/webm"
        assert "approximately 60 seconds long" in content[0]

    @pytest.mark.asyncio
    async def test_non_video_rejected(self, dispatcher, fake_backend):
        outcome = await dispatcher.handle(_alt_text_body(action="generateCaptions"))

        assert outcome.http_status == 400
        assert "Invalid mime type for caption generation" in outcome.message
        assert outcome.message.startswith("caption generation failed:")
        assert fake_backend.generate_calls == []


# =============================================================================
# TEXT CONDENSATION
# =============================================================================

class TestCondensation:

    @pytest.mark.asyncio
    async def test_condense(self, upload_cache):
        backend = FakeBackend(reply="  Short version.  ")
        dispatcher = Dispatcher(backend=backend, upload_cache=upload_cache)

        outcome = await dispatcher.handle({
            "operation": "condense_text",
            "text": "A very long description of a painting.",
            "directive": "Keep colours",
            "targetLength": 50,
        })

        assert outcome.to_body() == {"altText": "Short version."}
        content, settings = backend.generate_calls[0]
        assert settings == CONDENSATION_GENERATION
        assert "TARGET LENGTH: 50" in content[0]
        assert outcome.category is None
        assert outcome.plan is None

    @pytest.mark.asyncio
    async def test_operation_wins_over_action(self, dispatcher, fake_backend):
        outcome = await dispatcher.handle({
            "operation": "condense_text",
            "action": "generateCaptions",
            "text": "t",
            "directive": "d",
            "targetLength": "short",
        })
        assert outcome.is_success()
        assert outcome.response_field == "altText"

    @pytest.mark.asyncio
    async def test_missing_fields(self, dispatcher, fake_backend):
        outcome = await dispatcher.handle({"operation": "condense_text", "text": "only text"})

        assert outcome.kind == OutcomeKind.VALIDATION_ERROR
        assert outcome.http_status == 400
        assert outcome.message == "text condensation failed: Missing required fields for text condensation"
        assert fake_backend.generate_calls == []


# =============================================================================
# VALIDATION
# =============================================================================

class TestValidation:

    @pytest.mark.asyncio
    async def test_missing_mime_type_never_reaches_backend(self, dispatcher, fake_backend):
        outcome = await dispatcher.handle({"base64Data": _b64(JPEG_BYTES)})

        assert outcome.http_status == 400
        assert outcome.to_body() == {
            "error": "alt text generation failed: Missing required fields: base64Data and mimeType"
        }
        assert fake_backend.generate_calls == []
        assert fake_backend.upload_calls == []

    @pytest.mark.asyncio
    async def test_wrong_types(self, dispatcher, fake_backend):
        outcome = await dispatcher.handle(_alt_text_body(duration="forever"))

        assert outcome.http_status == 400
        assert "Invalid data types for: duration" in outcome.message
        assert fake_backend.generate_calls == []

    @pytest.mark.asyncio
    async def test_bad_base64(self, dispatcher, fake_backend):
        outcome = await dispatcher.handle(_alt_text_body(base64Data="%%%"))
        assert outcome.http_status == 400
        assert fake_backend.generate_calls == []

    @pytest.mark.asyncio
    async def test_oversize_payload(self, dispatcher, fake_backend, small_thresholds):
        outcome = await dispatcher.handle(_alt_text_body(base64Data=_b64(b"x" * 5000)))

        assert outcome.http_status == 413
        assert "exceeds maximum supported size" in outcome.message
        assert fake_backend.upload_calls == []
        assert fake_backend.generate_calls == []


# =============================================================================
# FAILURE MAPPING
# =============================================================================

class TestFailureMapping:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,expected", [(500, 502), (503, 502), (400, 400), (429, 400), (None, 502)])
    async def test_upstream_status(self, upload_cache, status, expected):
        backend = FakeBackend(generate_error=UpstreamError("Gemini API Error: nope", status=status))
        dispatcher = Dispatcher(backend=backend, upload_cache=upload_cache)

        outcome = await dispatcher.handle(_alt_text_body())

        assert outcome.kind == OutcomeKind.UPSTREAM_ERROR
        assert outcome.http_status == expected
        assert outcome.upstream_status == status
        assert outcome.message == "alt text generation failed: Gemini API Error: nope"

    @pytest.mark.asyncio
    async def test_empty_reply_is_upstream_error(self, upload_cache):
        backend = FakeBackend(reply="   ")
        dispatcher = Dispatcher(backend=backend, upload_cache=upload_cache)

        outcome = await dispatcher.handle(_alt_text_body())

        assert outcome.http_status == 502
        assert outcome.message == "alt text generation failed: empty response"

    @pytest.mark.asyncio
    async def test_transport_error_is_500(self, upload_cache):
        backend = FakeBackend(generate_error=TransportError("connection reset"))
        dispatcher = Dispatcher(backend=backend, upload_cache=upload_cache)

        outcome = await dispatcher.handle(_alt_text_body())

        assert outcome.kind == OutcomeKind.TRANSPORT_ERROR
        assert outcome.http_status == 500

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_500(self, upload_cache):
        backend = FakeBackend(generate_error=KeyError("weird"))
        dispatcher = Dispatcher(backend=backend, upload_cache=upload_cache)

        outcome = await dispatcher.handle(_alt_text_body())

        assert outcome.kind == OutcomeKind.TRANSPORT_ERROR
        assert outcome.http_status == 500

    @pytest.mark.asyncio
    async def test_upload_failure_is_500(self, upload_cache, small_thresholds):
        backend = FakeBackend(upload_error=OSError("temp dir unwritable"))
        dispatcher = Dispatcher(backend=backend, upload_cache=upload_cache)

        outcome = await dispatcher.handle(_alt_text_body(base64Data=_b64(b"x" * 2048)))

        assert outcome.http_status == 500
        assert "upload failed" in outcome.message
        assert backend.generate_calls == []
        assert len(upload_cache) == 0

    @pytest.mark.asyncio
    async def test_generate_failure_after_upload_keeps_cache_entry(self, upload_cache, small_thresholds):
        backend = FakeBackend(generate_error=UpstreamError("overloaded", status=503))
        dispatcher = Dispatcher(backend=backend, upload_cache=upload_cache)
        body = _alt_text_body(mimeType="video/mp4", isVideo=True, base64Data=_b64(b"v" * 2048))

        first = await dispatcher.handle(body)
        assert first.http_status == 502
        assert len(upload_cache) == 1

        backend.generate_error = None
        second = await dispatcher.handle(body)

        assert second.is_success()
        assert len(backend.upload_calls) == 1


# =============================================================================
# STATE TRACE
# =============================================================================

class TestStateTrace:

    @pytest.mark.asyncio
    async def test_inline_success_trace(self, dispatcher):
        outcome = await dispatcher.handle(_alt_text_body())
        assert outcome.states == [
            DispatchState.RECEIVED,
            DispatchState.CLASSIFIED,
            DispatchState.INSTRUCTIONS_SELECTED,
            DispatchState.TRANSPORT_PLANNED,
            DispatchState.INLINE_READY,
            DispatchState.BACKEND_CALLED,
            DispatchState.SUCCEEDED,
        ]

    @pytest.mark.asyncio
    async def test_upload_success_trace(self, dispatcher, small_thresholds):
        outcome = await dispatcher.handle(_alt_text_body(base64Data=_b64(b"x" * 2048)))
        assert DispatchState.UPLOADING in outcome.states
        assert DispatchState.UPLOADED in outcome.states
        assert DispatchState.INLINE_READY not in outcome.states

    @pytest.mark.asyncio
    async def test_compression_keeps_mid_size_inline(self, dispatcher, fake_backend, small_thresholds):
        outcome = await dispatcher.handle(
            _alt_text_body(base64Data=_b64(b"x" * 2048), useCompression=True)
        )
        assert outcome.plan.mode == TransportMode.INLINE
        assert fake_backend.upload_calls == []

    @pytest.mark.asyncio
    async def test_validation_failure_trace(self, dispatcher):
        outcome = await dispatcher.handle({})
        assert outcome.states == [DispatchState.RECEIVED, DispatchState.FAILED]

    @pytest.mark.asyncio
    async def test_terminal_state_is_last(self, upload_cache):
        backend = FakeBackend(generate_error=UpstreamError("bad", status=400))
        dispatcher = Dispatcher(backend=backend, upload_cache=upload_cache)

        outcome = await dispatcher.handle(_alt_text_body())

        assert outcome.states[-1] == DispatchState.FAILED
        assert DispatchState.SUCCEEDED not in outcome.states
