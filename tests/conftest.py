# FILE: tests/conftest.py
"""
Pytest configuration for the alt text proxy test suite.

Configures:
- sys.path so tests import the project without installing it
- a recording fake MediaBackend
- a manually advanced clock for cache expiry tests
"""
import sys
from pathlib import Path
from typing import List, Optional, Tuple

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest

from alttext.media.schemas import RemoteHandle, RemoteState
from alttext.media.upload_cache import UploadCache


class FakeBackend:
    """MediaBackend double that records every call."""

    def __init__(
        self,
        reply: str = "A cat sits on a windowsill.",
        generate_error: Optional[Exception] = None,
        upload_error: Optional[Exception] = None,
        upload_state: RemoteState = RemoteState.ACTIVE,
    ):
        self.reply = reply
        self.generate_error = generate_error
        self.upload_error = upload_error
        self.upload_state = upload_state
        self.is_configured = True
        self.generate_calls: List[Tuple[list, object]] = []
        self.upload_calls: List[Tuple[int, str]] = []

    async def generate(self, content, config):
        self.generate_calls.append((list(content), config))
        if self.generate_error is not None:
            raise self.generate_error
        return self.reply

    async def upload(self, payload, mime_type):
        self.upload_calls.append((len(payload), mime_type))
        if self.upload_error is not None:
            raise self.upload_error
        n = len(self.upload_calls)
        return RemoteHandle(
            name=f"files/fake-{n}",
            uri=f"https://generativelanguage.googleapis.com/v1beta/files/fake-{n}",
            mime_type=mime_type,
            state=self.upload_state,
        )


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def upload_cache(clock):
    return UploadCache(ttl_seconds=3600, clock=clock)


