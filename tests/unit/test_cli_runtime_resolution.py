"""Unit tests for CLI provider runtime resolution helpers."""

from __future__ import annotations

import pytest

from chaptervoice.cli_runtime import resolve_provider_runtime_sources
from chaptervoice.errors import PipelineStageError


class InMemoryCredentialStore:
    """In-memory credential store implementation for runtime-resolution tests."""

    def __init__(self, initial_api_key: str | None = None) -> None:
        """Initialize the store with an optional initial API key."""

        self._api_key = initial_api_key
        self.stored_values: list[str] = []

    def get_api_key(self) -> str | None:
        """Return currently stored API key value."""

        return self._api_key

    def set_api_key(self, api_key: str) -> None:
        """Persist API key value and keep a history for assertions."""

        self._api_key = api_key
        self.stored_values.append(api_key)


class FailingCredentialStore:
    """Credential store that raises when persisting API key values."""

    def get_api_key(self) -> str | None:
        """Return no pre-existing secure API key."""

        return None

    def set_api_key(self, api_key: str) -> None:
        """Raise deterministic storage failure used for error-path assertions."""

        raise RuntimeError("no keyring backend")


def test_resolve_provider_runtime_sources_collects_cli_and_secure_values() -> None:
    """Resolver should normalize the CLI key and include the secure API key fallback."""

    store = InMemoryCredentialStore(initial_api_key="secure-api-key")
    runtime_cli_values, runtime_secure_values = resolve_provider_runtime_sources(
        api_key="  cli-api-key ",
        prompt_api_key=False,
        store_api_key=False,
        credential_store_factory=lambda: store,
    )

    assert runtime_cli_values == {"api_key": "cli-api-key"}
    assert runtime_secure_values == {"api_key": "secure-api-key"}
    assert store.stored_values == []


def test_resolve_provider_runtime_sources_prompts_and_stores_api_key(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Prompted API key should be used for this run and persisted when requested."""

    def _fake_prompt(*args: object, **kwargs: object) -> str:
        """Return a deterministic hidden-prompt value."""

        assert kwargs["hide_input"] is True
        return " prompted-api-key "

    monkeypatch.setattr("chaptervoice.cli_runtime.typer.prompt", _fake_prompt)

    store = InMemoryCredentialStore()
    runtime_cli_values, runtime_secure_values = resolve_provider_runtime_sources(
        api_key=None,
        prompt_api_key=True,
        store_api_key=True,
        credential_store_factory=lambda: store,
    )

    assert runtime_cli_values == {"api_key": "prompted-api-key"}
    assert runtime_secure_values == {}
    assert store.stored_values == ["prompted-api-key"]
    assert "Stored API key in secure credential storage." in capsys.readouterr().out


def test_resolve_provider_runtime_sources_prompt_api_key_blank_skips_storage(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Blank prompted API key should not be added to CLI runtime values nor stored."""

    monkeypatch.setattr("chaptervoice.cli_runtime.typer.prompt", lambda *a, **k: "   ")

    store = InMemoryCredentialStore()
    runtime_cli_values, runtime_secure_values = resolve_provider_runtime_sources(
        api_key=None,
        prompt_api_key=True,
        store_api_key=True,
        credential_store_factory=lambda: store,
    )

    assert runtime_cli_values == {}
    assert runtime_secure_values == {}
    assert store.stored_values == []


def test_explicit_api_key_skips_prompt(monkeypatch: pytest.MonkeyPatch) -> None:
    def _unexpected_prompt(*args: object, **kwargs: object) -> str:
        raise AssertionError("prompt should not be shown")

    monkeypatch.setattr("chaptervoice.cli_runtime.typer.prompt", _unexpected_prompt)

    runtime_cli_values, _ = resolve_provider_runtime_sources(
        api_key="explicit",
        prompt_api_key=True,
        store_api_key=False,
        credential_store_factory=InMemoryCredentialStore,
    )

    assert runtime_cli_values == {"api_key": "explicit"}


def test_resolve_provider_runtime_sources_storage_failure_raises_stage_error() -> None:
    """Credential-store persistence errors should map to credentials stage diagnostics."""

    with pytest.raises(PipelineStageError) as exc_info:
        resolve_provider_runtime_sources(
            api_key="explicit-api-key",
            prompt_api_key=False,
            store_api_key=True,
            credential_store_factory=FailingCredentialStore,
        )

    assert exc_info.value.stage == "credentials"
    assert "Failed to store API key securely:" in exc_info.value.detail
    assert "--no-store-api-key" in (exc_info.value.hint or "")
