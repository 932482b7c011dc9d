"""Command-line interface for Chaptervoice.

Responsibilities:
- Expose user-facing commands for document runs and the record catalog.
- Convert CLI arguments into `ChaptervoiceConfig` and run the pipeline.
- Serve the HTTP API under uvicorn.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Annotated

import typer
import uvicorn

from .cli_rendering import (
    echo_chapter_rows,
    echo_record_detail,
    echo_record_list,
    exit_with_command_error,
)
from .cli_runtime import resolve_provider_runtime_sources
from .config import ChaptervoiceConfig, ConfigLoader, RuntimeConfigSources
from .credentials import create_credential_store
from .errors import PipelineStageError
from .io.records import RecordStore
from .models.datatypes import DocumentRequest
from .parsing import normalize_optional_string
from .pipeline.runtime import build_document_pipeline, validate_config
from .telemetry.logger import RunLogger
from .web.app import create_app

app = typer.Typer(
    name="chaptervoice",
    no_args_is_help=True,
    help="Chaptervoice CLI.",
)


def _load_base_config(config_path: Path | None) -> ChaptervoiceConfig:
    """Load YAML config when requested, else environment config, mapping failures to stage errors."""

    if config_path is None:
        try:
            return ConfigLoader.from_env()
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=f"Invalid environment configuration: {exc}",
                hint="Fix the offending environment variable and rerun.",
            ) from exc

    try:
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc
    except Exception as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Failed to load config file `{config_path}`: {exc}",
            hint="Verify YAML syntax and file permissions.",
        ) from exc


def _with_overrides(config: ChaptervoiceConfig, **overrides: object) -> ChaptervoiceConfig:
    """Return a copy of `config` with non-`None` overrides applied and validated."""

    applied = {key: value for key, value in overrides.items() if value is not None}
    updated = dataclasses.replace(config, **applied)
    validate_config(updated)
    return updated


@app.command("build")
def build_command(
    input_path: Annotated[
        Path | None,
        typer.Argument(help="Path to source document (PDF, DOCX, or text)."),
    ] = None,
    text: Annotated[
        str | None,
        typer.Option("--text", help="Raw text to convert instead of an input file."),
    ] = None,
    out: Annotated[
        Path | None,
        typer.Option("--out", help="Output root directory (overrides config value)."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with command defaults."),
    ] = None,
    voice: Annotated[str | None, typer.Option("--voice", help="Speech voice id.")] = None,
    role: Annotated[str | None, typer.Option("--role", help="Speech role (emotion).")] = None,
    speed: Annotated[
        float | None,
        typer.Option("--speed", min=0.1, help="Speech speed multiplier."),
    ] = None,
    min_chapter_minutes: Annotated[
        int | None,
        typer.Option("--min-chapter-minutes", min=1, help="Minimum chapter length in minutes."),
    ] = None,
    wpm: Annotated[
        int | None,
        typer.Option("--wpm", min=1, help="Listening rate in words per minute."),
    ] = None,
    max_tts_chars: Annotated[
        int | None,
        typer.Option("--max-tts-chars", min=1, help="Initial speech chunk size limit."),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option(
            "--api-key",
            help="Yandex API key override. Prefer `--prompt-api-key` to avoid shell history.",
        ),
    ] = None,
    prompt_api_key: Annotated[
        bool,
        typer.Option(
            "--prompt-api-key",
            help="Prompt for API key with hidden input (never echoed).",
        ),
    ] = False,
    store_api_key: Annotated[
        bool,
        typer.Option(
            "--store-api-key/--no-store-api-key",
            help="Persist CLI-entered API key to secure credential storage.",
        ),
    ] = True,
) -> None:
    """Convert one document into chapter audio files and record the run."""

    try:
        if input_path is None and normalize_optional_string(text) is None:
            raise PipelineStageError(
                stage="input",
                detail="No input file or `--text` provided.",
                hint="Pass `<input>` or `--text \"...\"`.",
            )
        runtime_cli_values, runtime_secure_values = resolve_provider_runtime_sources(
            api_key=api_key,
            prompt_api_key=prompt_api_key,
            store_api_key=store_api_key,
            credential_store_factory=create_credential_store,
        )
        base_config = _load_base_config(config_file)
        config = _with_overrides(
            base_config,
            output_dir=out,
            tts_voice=normalize_optional_string(voice),
            tts_role=normalize_optional_string(role),
            tts_speed=speed,
            min_chapter_minutes=min_chapter_minutes,
            words_per_minute=wpm,
            max_tts_chars=max_tts_chars,
            runtime_sources=RuntimeConfigSources(
                cli=runtime_cli_values,
                secure=runtime_secure_values,
                env=base_config.runtime_sources.env or os.environ,
            ),
        )
        run_logger = RunLogger()
        pipeline = build_document_pipeline(config, run_logger=run_logger)
        request = DocumentRequest(
            voice=config.voice_profile(),
            min_chapter_minutes=config.min_chapter_minutes,
            words_per_minute=config.words_per_minute,
            max_tts_chars=config.max_tts_chars,
            text=text if input_path is None else None,
            source_path=_copy_for_run(input_path, config.upload_dir) if input_path else None,
            original_name=input_path.name if input_path is not None else None,
        )
        result = pipeline.run(request)
        record = RecordStore(config.data_dir, run_logger=run_logger).add_record(result)
    except Exception as exc:
        exit_with_command_error("build", exc)

    typer.echo(f"Run id: {record.id}")
    typer.echo(f"Record: #{record.index}")
    typer.echo(f"Output: {record.out_dir}")
    echo_chapter_rows(record.chapters)


def _copy_for_run(input_path: Path, upload_dir: Path) -> Path:
    """Copy a CLI input into the upload directory; runs consume and delete their upload."""

    if not input_path.is_file():
        raise PipelineStageError(
            stage="input",
            detail=f"Input file not found: `{input_path}`.",
            hint="Check the path and rerun.",
        )
    upload_dir.mkdir(parents=True, exist_ok=True)
    target = upload_dir / f"cli-{os.getpid()}-{input_path.name}"
    target.write_bytes(input_path.read_bytes())
    return target


def _open_store(config_file: Path | None) -> RecordStore:
    """Open the record catalog configured by YAML or environment."""

    return RecordStore(_load_base_config(config_file).data_dir, run_logger=RunLogger())


@app.command("records")
def records_command(
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with command defaults."),
    ] = None,
) -> None:
    """List recorded runs, newest first."""

    try:
        records = _open_store(config_file).list_records()
    except Exception as exc:
        exit_with_command_error("records", exc)
    echo_record_list(records)


@app.command("show")
def show_command(
    record_id: Annotated[str, typer.Argument(help="Record id.")],
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with command defaults."),
    ] = None,
) -> None:
    """Show one recorded run with its chapters."""

    try:
        record = _open_store(config_file).get_record(record_id)
    except Exception as exc:
        exit_with_command_error("show", exc)
    echo_record_detail(record)


@app.command("delete")
def delete_command(
    record_id: Annotated[str, typer.Argument(help="Record id.")],
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with command defaults."),
    ] = None,
) -> None:
    """Delete one recorded run and its audio files."""

    try:
        _open_store(config_file).delete_record(record_id)
    except Exception as exc:
        exit_with_command_error("delete", exc)
    typer.echo(f"Deleted record: {record_id}")


@app.command("serve")
def serve_command(
    host: Annotated[str | None, typer.Option("--host", help="Bind host.")] = None,
    port: Annotated[int | None, typer.Option("--port", min=1, help="Bind port.")] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with command defaults."),
    ] = None,
) -> None:
    """Serve the HTTP API and generated audio."""

    try:
        config = _with_overrides(_load_base_config(config_file), host=host, port=port)
        web_app = create_app(config)
    except Exception as exc:
        exit_with_command_error("serve", exc)
    uvicorn.run(web_app, host=config.host, port=config.port)


@app.command("credentials")
def credentials_command(
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for API key with hidden input and store it securely.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear-api-key",
            help="Clear stored API key from secure credential storage.",
        ),
    ] = False,
) -> None:
    """Manage securely stored CLI credentials."""

    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            PipelineStageError(
                stage="credentials",
                detail="`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )

    credential_store = create_credential_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                "Yandex API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set-api-key`.",
                ),
            )
        try:
            credential_store.set_api_key(prompted_api_key)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {exc}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo("API key stored in secure credential storage.")
        return

    if clear_api_key:
        if credential_store.clear_api_key():
            typer.echo("Stored API key cleared from secure credential storage.")
        else:
            typer.echo("No stored API key found in secure credential storage.")
        return

    availability = "available" if credential_store.is_available() else "unavailable"
    status = "present" if credential_store.get_api_key() is not None else "not set"
    typer.echo(f"Secure credential storage: {availability}")
    typer.echo(f"Stored Yandex API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
