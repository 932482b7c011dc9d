"""Shared pytest fixtures for the full Chaptervoice test suite."""

from __future__ import annotations

import io

import pytest

from chaptervoice.telemetry.logger import RunLogger
from chaptervoice.tts.voices import VoiceProfile


@pytest.fixture
def log_sink() -> io.StringIO:
    """Provide an in-memory sink for structured run logs."""

    return io.StringIO()


@pytest.fixture
def run_logger(log_sink: io.StringIO) -> RunLogger:
    """Provide a run logger writing into `log_sink`."""

    return RunLogger(sink=log_sink)


@pytest.fixture
def voice() -> VoiceProfile:
    """Provide the default speech voice profile."""

    return VoiceProfile(voice="ermil", role="friendly", speed=1.0)
