# FILE: alttext/media/upload_cache.py
"""
Content-addressed cache of File API uploads.

Keyed by sha256(payload || mime_type), so identical bytes declared with
different types are separate entries. Entries are visible while
``now - inserted_at < ttl`` and are dropped by the lookup that sees them
expired. A miss also purges every other expired entry; nothing sweeps in
the background.

Concurrent misses on one key each upload by default and the last write wins.
With ``coalesce_inflight=True`` they share a single pending upload instead.

The cache is created once by the application and handed to the Dispatcher;
it is never a module-level singleton.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from config import proxy_settings
from alttext.errors import TransportError
from alttext.media.schemas import RemoteHandle, RemoteState

logger = logging.getLogger(__name__)

Uploader = Callable[[bytes, str], Awaitable[RemoteHandle]]


def cache_key(payload: bytes, mime_type: str) -> str:
    digest = hashlib.sha256()
    digest.update(payload)
    digest.update(mime_type.encode("utf-8"))
    return digest.hexdigest()


@dataclass
class CacheEntry:
    key: str
    handle: RemoteHandle
    inserted_at: float


class UploadCache:
    """Single-instance, best-effort upload cache."""

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        coalesce_inflight: bool = False,
    ):
        self.ttl_seconds = proxy_settings.UPLOAD_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._coalesce = coalesce_inflight
        self._entries: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, "asyncio.Future[RemoteHandle]"] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # -------------------------------------------------------------------------
    # Lookup / store
    # -------------------------------------------------------------------------

    def lookup(self, key: str) -> Optional[RemoteHandle]:
        """Return a live handle, evicting the entry if it has expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if now - entry.inserted_at >= self.ttl_seconds:
                del self._entries[key]
                logger.info("[upload-cache] Evicted expired entry %s", key[:12])
                return None
            return entry.handle

    def store(self, key: str, handle: RemoteHandle) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(key=key, handle=handle, inserted_at=self._clock())

    def purge_expired(self) -> int:
        """Drop every expired entry. Runs on each miss; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now - e.inserted_at >= self.ttl_seconds]
            for key in expired:
                del self._entries[key]
        return len(expired)

    # -------------------------------------------------------------------------
    # get_or_upload
    # -------------------------------------------------------------------------

    async def get_or_upload(self, payload: bytes, mime_type: str, uploader: Uploader) -> RemoteHandle:
        """
        Return a cached handle for (payload, mime_type) or upload it once.

        Raises:
            TransportError: the upload raised or the remote file is not ACTIVE.
                Nothing is cached in that case.
        """
        key = cache_key(payload, mime_type)

        handle = self.lookup(key)
        if handle is not None:
            logger.info("[upload-cache] Hit %s (%s)", key[:12], handle.name)
            return handle

        purged = self.purge_expired()
        if purged:
            logger.info("[upload-cache] Purged %d expired entries", purged)

        if not self._coalesce:
            return await self._upload_and_store(key, payload, mime_type, uploader)

        pending = self._inflight.get(key)
        if pending is not None:
            logger.info("[upload-cache] Joining in-flight upload %s", key[:12])
            return await asyncio.shield(pending)

        future: "asyncio.Future[RemoteHandle]" = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            handle = await self._upload_and_store(key, payload, mime_type, uploader)
        except Exception as exc:
            future.set_exception(exc)
            # Joined waiters re-raise it; mark retrieved so an unjoined future does not warn
            future.exception()
            raise
        else:
            future.set_result(handle)
            return handle
        finally:
            if not future.done():
                future.cancel()
            self._inflight.pop(key, None)

    async def _upload_and_store(self, key: str, payload: bytes, mime_type: str, uploader: Uploader) -> RemoteHandle:
        logger.info("[upload-cache] Miss %s, uploading %.2fMB (%s)", key[:12], len(payload) / 1024 / 1024, mime_type)
        try:
            handle = await uploader(payload, mime_type)
        except TransportError:
            raise
        except Exception as exc:
            logger.exception("[upload-cache] Upload failed for %s", key[:12])
            raise TransportError(f"upload failed: {exc}") from exc

        if handle.state != RemoteState.ACTIVE:
            raise TransportError(f"remote processing failed for {handle.name} (state={handle.state.value})")

        self.store(key, handle)
        return handle
