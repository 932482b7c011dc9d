"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
chapter rows, and record listings.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import PipelineStageError
from .models.datatypes import ChapterResult, RecordItem, RecordSummary


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_chapter_rows(chapters: list[ChapterResult]) -> None:
    """Print one `NN. title (minutes min, words words) -> path` row per chapter."""

    for chapter in sorted(chapters, key=lambda item: item.index):
        typer.echo(
            f"{chapter.index:02d}. {chapter.title} "
            f"({chapter.minutes} min, {chapter.words} words) -> {chapter.audio_path}"
        )


def echo_record_list(records: list[RecordSummary]) -> None:
    """Print compact catalog rows, newest first."""

    if not records:
        typer.echo("No records.")
        return
    for record in records:
        typer.echo(
            f"#{record.index} {record.id} {record.original_name} "
            f"chapters={record.chapter_count} created={record.created_at}"
        )


def echo_record_detail(record: RecordItem) -> None:
    """Print one record header followed by its chapter rows."""

    typer.echo(f"Record: {record.id} (#{record.index})")
    typer.echo(f"Source: {record.original_name}")
    typer.echo(f"Created: {record.created_at}")
    typer.echo(f"Status: {record.status}")
    typer.echo(f"Output: {record.out_dir}")
    echo_chapter_rows(record.chapters)
