"""CLI command tests for document runs, the record catalog, and credentials."""

from __future__ import annotations

import re
from pathlib import Path

import pytest
from typer.testing import CliRunner

from chaptervoice.cli import app
from tests.integration.provider_fakes import DOCUMENT_TEXT, InMemoryCredentialStore

_FAST_RUN = ["--min-chapter-minutes", "1", "--wpm", "5"]


def _record_id(output: str) -> str:
    match = re.search(r"^Run id: (\S+)$", output, flags=re.MULTILINE)
    assert match is not None, output
    return match.group(1)


def test_build_from_text_prints_chapters_and_records_run(
    tmp_path: Path, credential_store: InMemoryCredentialStore, spoken_chunks: list[str]
) -> None:
    """Build should synthesize every chapter and report its public audio path."""

    runner = CliRunner()

    result = runner.invoke(app, ["build", "--text", DOCUMENT_TEXT, *_FAST_RUN])

    assert result.exit_code == 0, result.output
    record_id = _record_id(result.output)
    assert "Record: #1" in result.output
    assert f"Output: {tmp_path / 'output' / record_id}" in result.output
    assert f"01. Начало (2 min, 10 words) -> /output/{record_id}/01-начало.wav" in result.output
    assert f"02. Дорога (2 min, 9 words) -> /output/{record_id}/02-дорога.wav" in result.output
    assert "[phase] level=INFO stage=synthesize event=complete" in result.output
    assert len(spoken_chunks) == 2
    assert (tmp_path / "output" / record_id / "01-начало.wav").exists()


def test_build_from_file_keeps_the_source_document(
    tmp_path: Path, credential_store: InMemoryCredentialStore
) -> None:
    source = tmp_path / "story.txt"
    source.write_text(DOCUMENT_TEXT, encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(
        app,
        ["build", str(source), "--out", str(tmp_path / "custom-out"), *_FAST_RUN],
    )

    assert result.exit_code == 0, result.output
    assert source.exists()
    record_id = _record_id(result.output)
    assert (tmp_path / "custom-out" / record_id).is_dir()
    assert list((tmp_path / "uploads").iterdir()) == []

    shown = runner.invoke(app, ["show", record_id])
    assert shown.exit_code == 0, shown.output
    assert "Source: story.txt" in shown.output


def test_build_uses_explicit_api_key_and_stores_it(
    monkeypatch: pytest.MonkeyPatch, credential_store: InMemoryCredentialStore
) -> None:
    monkeypatch.delenv("YANDEX_API_KEY")
    runner = CliRunner()

    result = runner.invoke(
        app,
        ["build", "--text", DOCUMENT_TEXT, "--api-key", "cli-api-key", *_FAST_RUN],
    )

    assert result.exit_code == 0, result.output
    assert "Stored API key in secure credential storage." in result.output
    assert credential_store.api_key == "cli-api-key"


def test_records_show_and_delete_roundtrip(
    tmp_path: Path, credential_store: InMemoryCredentialStore
) -> None:
    runner = CliRunner()
    first = _record_id(runner.invoke(app, ["build", "--text", DOCUMENT_TEXT, *_FAST_RUN]).output)
    second = _record_id(
        runner.invoke(app, ["build", "--text", DOCUMENT_TEXT, *_FAST_RUN]).output
    )

    listing = runner.invoke(app, ["records"])
    assert listing.exit_code == 0, listing.output
    rows = [line for line in listing.output.splitlines() if line.startswith("#")]
    assert rows[0].startswith(f"#2 {second} text-input.txt chapters=2 created=")
    assert rows[1].startswith(f"#1 {first} ")

    shown = runner.invoke(app, ["show", first])
    assert shown.exit_code == 0, shown.output
    assert f"Record: {first} (#1)" in shown.output
    assert "Status: done" in shown.output

    deleted = runner.invoke(app, ["delete", first])
    assert deleted.exit_code == 0, deleted.output
    assert f"Deleted record: {first}" in deleted.output
    assert not (tmp_path / "output" / first).exists()

    remaining = runner.invoke(app, ["records"])
    assert first not in remaining.output
    assert second in remaining.output


def test_records_on_empty_catalog() -> None:
    result = CliRunner().invoke(app, ["records"])

    assert result.exit_code == 0
    assert "No records." in result.output


def test_records_can_use_yaml_config(tmp_path: Path) -> None:
    config_path = tmp_path / "chaptervoice.yml"
    config_path.write_text(f"data_dir: {tmp_path / 'yaml-data'}\n", encoding="utf-8")

    result = CliRunner().invoke(app, ["records", "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "yaml-data" / "records.db").exists()


def test_serve_runs_uvicorn_with_configured_bind(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    captured: dict[str, object] = {}

    def _fake_run(web_app: object, **kwargs: object) -> None:
        captured["app"] = web_app
        captured.update(kwargs)

    monkeypatch.setattr("chaptervoice.cli.uvicorn.run", _fake_run)

    result = CliRunner().invoke(app, ["serve", "--host", "0.0.0.0", "--port", "8123"])

    assert result.exit_code == 0, result.output
    assert captured["host"] == "0.0.0.0"
    assert captured["port"] == 8123
    assert captured["app"] is not None
    assert (tmp_path / "output").is_dir()


def test_credentials_set_status_and_clear(credential_store: InMemoryCredentialStore) -> None:
    runner = CliRunner()

    status = runner.invoke(app, ["credentials"])
    assert "Secure credential storage: available" in status.output
    assert "Stored Yandex API key: not set" in status.output

    stored = runner.invoke(app, ["credentials", "--set-api-key"], input="AQVN-secret\n")
    assert stored.exit_code == 0, stored.output
    assert "API key stored in secure credential storage." in stored.output
    assert "AQVN-secret" not in stored.output
    assert credential_store.api_key == "AQVN-secret"

    status = runner.invoke(app, ["credentials"])
    assert "Stored Yandex API key: present" in status.output

    cleared = runner.invoke(app, ["credentials", "--clear-api-key"])
    assert "Stored API key cleared from secure credential storage." in cleared.output
    again = runner.invoke(app, ["credentials", "--clear-api-key"])
    assert "No stored API key found in secure credential storage." in again.output
