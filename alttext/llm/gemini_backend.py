# FILE: alttext/llm/gemini_backend.py
"""
Gemini implementation of MediaBackend (google.generativeai).

- generate(): inline payloads go in as ``inline_data`` parts, uploaded files
  as ``file_data`` parts referencing the File API URI.
- upload(): bytes are written to a temporary file, pushed through
  ``genai.upload_file`` and polled with ``genai.get_file`` until processing
  finishes. Anything but ACTIVE is a TransportError. The temporary file is
  removed on every exit path.

The poll loop is bounded by UPLOAD_MAX_POLLS; a file stuck in PROCESSING
fails the request with a TransportError instead of polling forever.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import os
import tempfile
import time
from typing import Any, List, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from config import proxy_settings
from alttext.errors import TransportError, UpstreamError
from alttext.llm.backend import ContentPart, GenerationSettings
from alttext.media.schemas import InlineMedia, RemoteHandle, RemoteState

logger = logging.getLogger(__name__)


def to_gemini_part(part: ContentPart) -> Any:
    """Convert one content part to the dict shape the SDK accepts."""
    if isinstance(part, str):
        return part
    if isinstance(part, InlineMedia):
        return {"inline_data": {"mime_type": part.mime_type, "data": part.data}}
    if isinstance(part, RemoteHandle):
        return {"file_data": {"mime_type": part.mime_type, "file_uri": part.uri}}
    raise TypeError(f"Unsupported content part: {type(part).__name__}")


def extract_text(response: Any) -> str:
    """Text of the first candidate's parts, or "" when there is none."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return ""
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    texts = [getattr(p, "text", "") for p in parts]
    return "".join(t for t in texts if t)


def _state_name(file_obj: Any) -> Optional[str]:
    state = getattr(file_obj, "state", None)
    return getattr(state, "name", None) if state is not None else None


class GeminiBackend:
    """MediaBackend on top of the google.generativeai SDK."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        poll_interval: Optional[float] = None,
        max_polls: Optional[int] = None,
    ):
        self._api_key = api_key
        self.model_name = model_name or proxy_settings.GEMINI_MODEL
        self.poll_interval = proxy_settings.UPLOAD_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.max_polls = proxy_settings.UPLOAD_MAX_POLLS if max_polls is None else max_polls
        self._model = None

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key or proxy_settings.get_gemini_api_key())

    def _get_model(self):
        """Configure the SDK and build the model on first use."""
        if self._model is not None:
            return self._model

        api_key = self._api_key or proxy_settings.get_gemini_api_key()
        if not api_key:
            raise TransportError("GEMINI_API_KEY not set")

        genai.configure(api_key=api_key)
        self._model = genai.GenerativeModel(self.model_name)
        logger.info("[gemini] Initialized model: %s", self.model_name)
        return self._model

    # -------------------------------------------------------------------------
    # generate
    # -------------------------------------------------------------------------

    async def generate(self, content: List[ContentPart], config: GenerationSettings) -> str:
        model = self._get_model()
        parts = [to_gemini_part(p) for p in content]

        t0 = time.perf_counter()
        try:
            response = await model.generate_content_async(
                parts,
                generation_config=config.to_dict(),
            )
        except google_exceptions.GoogleAPICallError as exc:
            logger.error("[gemini] API error %s: %s", exc.code, exc.message)
            raise UpstreamError(f"Gemini API Error: {exc.message}", status=_http_code(exc)) from exc
        except genai.types.BlockedPromptException as exc:
            raise UpstreamError(f"Gemini API Error: prompt blocked ({exc})", status=400) from exc
        except Exception as exc:
            logger.exception("[gemini] generate_content failed")
            raise TransportError(f"Gemini request failed: {exc}") from exc

        text = extract_text(response)
        logger.info(
            "[gemini] latency=%.0fms chars=%d",
            (time.perf_counter() - t0) * 1000, len(text),
        )
        return text

    # -------------------------------------------------------------------------
    # upload
    # -------------------------------------------------------------------------

    async def upload(self, payload: bytes, mime_type: str) -> RemoteHandle:
        self._get_model()
        suffix = mimetypes.guess_extension(mime_type) or ".bin"

        tmp = tempfile.NamedTemporaryFile(prefix="alttext-", suffix=suffix, delete=False)
        try:
            try:
                tmp.write(payload)
                tmp.close()
            except OSError as exc:
                raise TransportError(f"could not stage upload: {exc}") from exc

            logger.info("[gemini] Uploading %.2fMB to File API (%s)", len(payload) / 1024 / 1024, mime_type)
            try:
                file_obj = await asyncio.to_thread(genai.upload_file, path=tmp.name, mime_type=mime_type)
            except google_exceptions.GoogleAPICallError as exc:
                raise TransportError(f"File API upload failed: {exc.message}") from exc

            file_obj = await self._wait_for_processing(file_obj)
        finally:
            tmp.close()
            try:
                os.unlink(tmp.name)
            except FileNotFoundError:
                pass

        state = RemoteState.from_name(_state_name(file_obj))
        if state != RemoteState.ACTIVE:
            raise TransportError(
                f"File API processing failed for {file_obj.name} (state={_state_name(file_obj) or 'missing'})"
            )

        return RemoteHandle(
            name=file_obj.name,
            uri=file_obj.uri,
            mime_type=getattr(file_obj, "mime_type", None) or mime_type,
            state=state,
        )

    async def _wait_for_processing(self, file_obj: Any) -> Any:
        polls = 0
        while _state_name(file_obj) == RemoteState.PROCESSING.value:
            if polls >= self.max_polls:
                raise TransportError(
                    f"File API processing timed out for {file_obj.name} after {polls} polls"
                )
            await asyncio.sleep(self.poll_interval)
            polls += 1
            try:
                file_obj = await asyncio.to_thread(genai.get_file, file_obj.name)
            except google_exceptions.GoogleAPICallError as exc:
                raise TransportError(f"File API status check failed: {exc.message}") from exc
        logger.info("[gemini] File %s is %s after %d polls", file_obj.name, _state_name(file_obj), polls)
        return file_obj


def _http_code(exc: google_exceptions.GoogleAPICallError) -> Optional[int]:
    code = getattr(exc, "code", None)
    return code if isinstance(code, int) else None


def build_default_backend() -> GeminiBackend:
    return GeminiBackend()


__all__ = [
    "GeminiBackend",
    "build_default_backend",
    "extract_text",
    "to_gemini_part",
]
