"""Integration-test fixtures for deterministic provider behavior."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from chaptervoice.llm.yandex_client import YandexGPTClient, YandexSpeechClient
from chaptervoice.tts.voices import VoiceProfile
from tests.integration.provider_fakes import MOCK_CHAPTERS, InMemoryCredentialStore
from tests.wav_fixtures import pcm_wav_bytes


@pytest.fixture(autouse=True)
def spoken_chunks(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Mock Yandex completion and speech calls to avoid network/key requirements."""

    spoken: list[str] = []

    def _mock_complete_json(self: YandexGPTClient, **kwargs: object) -> str:
        """Return a deterministic two-chapter response."""

        del self, kwargs
        return json.dumps({"chapters": MOCK_CHAPTERS}, ensure_ascii=False)

    def _mock_synthesize_to_file(
        self: YandexSpeechClient, text: str, output_path: Path, voice: VoiceProfile
    ) -> Path:
        """Write a short silent WAV for each requested chunk."""

        del self, voice
        spoken.append(text)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(pcm_wav_bytes(b"\x00\x00" * 2400))
        return output_path

    monkeypatch.setattr(YandexGPTClient, "complete_json", _mock_complete_json)
    monkeypatch.setattr(YandexSpeechClient, "synthesize_to_file", _mock_synthesize_to_file)
    return spoken


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Point storage at `tmp_path` and provide placeholder Yandex credentials."""

    for name in ("YANDEX_IAM_TOKEN", "TTS_VOICE", "TTS_ROLE", "TTS_SPEED", "WPM", "PORT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("YANDEX_API_KEY", "integration-api-key")
    monkeypatch.setenv("YANDEX_FOLDER_ID", "integration-folder")
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "output"))
    monkeypatch.setenv("CHAPTERVOICE_UPLOAD_DIR", str(tmp_path / "uploads"))


@pytest.fixture
def credential_store(monkeypatch: pytest.MonkeyPatch) -> InMemoryCredentialStore:
    """Replace the CLI credential store factory with an in-memory store."""

    store = InMemoryCredentialStore()
    monkeypatch.setattr("chaptervoice.cli.create_credential_store", lambda: store)
    return store
