"""Unit tests for the SQLite-backed record catalog."""

from __future__ import annotations

import io
import shutil
import sqlite3
import threading
from pathlib import Path

import pytest

from chaptervoice.errors import NotFoundError
from chaptervoice.io.records import RecordStore
from chaptervoice.models.datatypes import ChapterResult, DocumentResult
from chaptervoice.telemetry.logger import RunLogger


def _result(tmp_path: Path, run_id: str, name: str = "book.pdf", chapters: int = 2) -> DocumentResult:
    out_dir = tmp_path / "output" / run_id
    out_dir.mkdir(parents=True, exist_ok=True)
    items = []
    for index in range(1, chapters + 1):
        file_name = f"{index:02d}-part.wav"
        (out_dir / file_name).write_bytes(b"RIFF")
        items.append(
            ChapterResult(
                index=index,
                title=f"Часть {index}",
                words=100 * index,
                minutes=30,
                audio_file=file_name,
                audio_path=f"/output/{run_id}/{file_name}",
            )
        )
    return DocumentResult(id=run_id, original_name=name, out_dir=out_dir, chapters=items)


def test_add_and_get_record_roundtrip_chapters(tmp_path: Path) -> None:
    """Stored records should keep chapter payloads, including non-ASCII titles."""

    store = RecordStore(tmp_path / "data")

    added = store.add_record(_result(tmp_path, "run-a", name="книга.pdf"))
    loaded = store.get_record("run-a")

    assert (tmp_path / "data" / "records.db").exists()
    assert added == loaded
    assert loaded.index == 1
    assert loaded.chapter_count == 2
    assert loaded.original_name == "книга.pdf"
    assert loaded.chapters[1].title == "Часть 2"
    assert loaded.status == "done"
    assert loaded.error is None
    assert loaded.created_at.endswith("+00:00")


def test_listing_is_newest_first_with_increasing_indexes(tmp_path: Path) -> None:
    store = RecordStore(tmp_path / "data")
    for run_id in ("run-a", "run-b", "run-c"):
        store.add_record(_result(tmp_path, run_id, chapters=1))

    summaries = store.list_records()

    assert [summary.id for summary in summaries] == ["run-c", "run-b", "run-a"]
    assert [summary.index for summary in summaries] == [3, 2, 1]
    assert summaries[0].to_payload() == {
        "id": "run-c",
        "index": 3,
        "originalName": "book.pdf",
        "chapterCount": 1,
        "createdAt": summaries[0].created_at,
    }


def test_indexes_are_never_reused_after_delete(tmp_path: Path) -> None:
    """Deleting the newest record must not hand its index to the next one."""

    store = RecordStore(tmp_path / "data")
    store.add_record(_result(tmp_path, "run-a"))
    store.add_record(_result(tmp_path, "run-b"))
    store.delete_record("run-b")

    added = store.add_record(_result(tmp_path, "run-c"))

    assert added.index == 3


def test_counter_survives_reopening_the_store(tmp_path: Path) -> None:
    RecordStore(tmp_path / "data").add_record(_result(tmp_path, "run-a"))

    added = RecordStore(tmp_path / "data").add_record(_result(tmp_path, "run-b"))

    assert added.index == 2


def test_concurrent_adds_get_distinct_indexes(tmp_path: Path) -> None:
    store = RecordStore(tmp_path / "data")
    results = [_result(tmp_path, f"run-{number}", chapters=1) for number in range(8)]
    errors: list[Exception] = []

    def _add(result: DocumentResult) -> None:
        try:
            store.add_record(result)
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=_add, args=(result,)) for result in results]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert sorted(summary.index for summary in store.list_records()) == list(range(1, 9))


def test_delete_removes_row_and_output_directory(tmp_path: Path) -> None:
    store = RecordStore(tmp_path / "data")
    result = _result(tmp_path, "run-a")
    store.add_record(result)

    store.delete_record("run-a")

    assert not result.out_dir.exists()
    assert store.list_records() == []
    with pytest.raises(NotFoundError, match="run-a"):
        store.get_record("run-a")


def test_delete_succeeds_when_output_is_already_gone(tmp_path: Path) -> None:
    store = RecordStore(tmp_path / "data")
    result = _result(tmp_path, "run-a")
    store.add_record(result)
    shutil.rmtree(result.out_dir)

    store.delete_record("run-a")

    assert store.list_records() == []


def test_delete_logs_output_cleanup_failure_and_still_drops_row(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, log_sink: io.StringIO
) -> None:
    store = RecordStore(tmp_path / "data", run_logger=RunLogger(sink=log_sink))
    store.add_record(_result(tmp_path, "run-a"))

    def _failing_rmtree(path: Path) -> None:
        raise PermissionError("busy")

    monkeypatch.setattr("chaptervoice.io.records.shutil.rmtree", _failing_rmtree)

    store.delete_record("run-a")

    assert store.list_records() == []
    output = log_sink.getvalue()
    assert "stage=store event=cleanup_failed" in output
    assert "error_type=PermissionError" in output


def test_unknown_ids_raise_not_found(tmp_path: Path) -> None:
    store = RecordStore(tmp_path / "data")

    with pytest.raises(NotFoundError):
        store.get_record("missing")
    with pytest.raises(NotFoundError):
        store.delete_record("missing")


def test_duplicate_run_id_is_rejected(tmp_path: Path) -> None:
    store = RecordStore(tmp_path / "data")
    store.add_record(_result(tmp_path, "run-a"))

    with pytest.raises(sqlite3.IntegrityError):
        store.add_record(_result(tmp_path, "run-a"))

    assert [summary.index for summary in store.list_records()] == [1]
