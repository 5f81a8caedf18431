"""
Pytest Configuration

Adds ``src`` to ``sys.path`` so the suite runs from a checkout, and isolates
every test from process-wide exchange state (installed transport, cached
settings, ``HTTPKIT_*`` environment variables).
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from HttpKit.Exchange.network import reset_transport  # noqa: E402
from HttpKit.Exchange.settings import invalidate_settings_cache  # noqa: E402
from HttpKit.Exchange.testing import RecordingTransport, ResponseSpec  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_exchange_state(monkeypatch):
    for key in list(os.environ):
        if key.upper().startswith("HTTPKIT_"):
            monkeypatch.delenv(key, raising=False)
    invalidate_settings_cache()
    reset_transport()
    yield
    reset_transport()
    invalidate_settings_cache()


@pytest.fixture
def recorder() -> RecordingTransport:
    """Transport answering ``200 OK`` with an empty body and recording requests."""

    return RecordingTransport(ResponseSpec(status=200, body=b"ok"))
