"""Unit tests for secure credential store helpers."""

from __future__ import annotations

import pytest
from keyring.backends import fail
from keyring.errors import KeyringError, PasswordDeleteError

from chaptervoice import credentials
from chaptervoice.credentials import KeyringCredentialStore


class FakeKeyringBackend:
    """In-memory keyring stand-in for deterministic credential store tests."""

    def __init__(self) -> None:
        """Initialize fake storage dictionary."""

        self._storage: dict[tuple[str, str], str] = {}

    def get_password(self, service_name: str, account_name: str) -> str | None:
        """Return previously stored password if present."""

        return self._storage.get((service_name, account_name))

    def set_password(self, service_name: str, account_name: str, value: str) -> None:
        """Store password value for the service/account key."""

        self._storage[(service_name, account_name)] = value

    def delete_password(self, service_name: str, account_name: str) -> None:
        """Delete password value, raising like keyring when it is missing."""

        if (service_name, account_name) not in self._storage:
            raise PasswordDeleteError("not found")
        del self._storage[(service_name, account_name)]


def _install_backend(monkeypatch: pytest.MonkeyPatch, backend: object) -> None:
    monkeypatch.setattr(credentials.keyring, "get_keyring", lambda: backend)
    for name in ("get_password", "set_password", "delete_password"):
        if hasattr(backend, name):
            monkeypatch.setattr(credentials.keyring, name, getattr(backend, name))


def test_keyring_store_roundtrip_set_get_clear(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keyring store should set/get/clear API key values via the keyring backend."""

    backend = FakeKeyringBackend()
    _install_backend(monkeypatch, backend)
    store = KeyringCredentialStore()

    assert store.is_available() is True
    assert store.get_api_key() is None

    store.set_api_key("  AQVN-secret  ")
    assert store.get_api_key() == "AQVN-secret"
    assert backend.get_password("chaptervoice", "yandex_api_key") == "AQVN-secret"

    assert store.clear_api_key() is True
    assert store.get_api_key() is None
    assert store.clear_api_key() is False


def test_keyring_store_rejects_blank_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_backend(monkeypatch, FakeKeyringBackend())

    with pytest.raises(ValueError, match="non-empty"):
        KeyringCredentialStore().set_api_key("   ")


def test_keyring_store_degrades_without_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keyring store should report unavailability when only the failing backend exists."""

    _install_backend(monkeypatch, fail.Keyring())
    store = KeyringCredentialStore()

    assert store.is_available() is False
    assert store.get_api_key() is None
    assert store.clear_api_key() is False
    with pytest.raises(RuntimeError, match="no keyring backend"):
        store.set_api_key("AQVN-secret")


def test_keyring_read_errors_are_treated_as_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    backend = FakeKeyringBackend()
    _install_backend(monkeypatch, backend)

    def _locked(service_name: str, account_name: str) -> str | None:
        raise KeyringError("keychain locked")

    monkeypatch.setattr(credentials.keyring, "get_password", _locked)

    assert KeyringCredentialStore().get_api_key() is None
