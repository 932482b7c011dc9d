"""SQLite-backed catalog of finished runs.

Responsibilities:
- Persist one record per run with a monotonically increasing index.
- List, fetch, and delete records; deletion also removes the run output tree.

Each operation opens its own connection, so the store is safe to share between
worker threads of the HTTP surface.
"""

from __future__ import annotations

import json
import shutil
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from ..errors import NotFoundError
from ..models.datatypes import ChapterResult, DocumentResult, RecordItem, RecordSummary
from ..telemetry.logger import RunLogger

_SCHEMA = """
CREATE TABLE IF NOT EXISTS records (
    id TEXT PRIMARY KEY,
    idx INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    original_name TEXT NOT NULL,
    chapter_count INTEGER NOT NULL,
    out_dir TEXT NOT NULL,
    chapters TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'done',
    error TEXT
);

CREATE TABLE IF NOT EXISTS counters (
    name TEXT PRIMARY KEY,
    value INTEGER NOT NULL
);
"""

_RECORD_COUNTER = "record_index"


class RecordStore:
    """Catalog of runs stored in `<data_dir>/records.db`."""

    def __init__(self, data_dir: Path, run_logger: RunLogger | None = None) -> None:
        """Create the data directory and database schema if needed."""

        self.data_dir = data_dir
        self.db_path = data_dir / "records.db"
        self._run_logger = run_logger
        self.data_dir.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            conn.executescript(_SCHEMA)
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        """Open a connection in autocommit mode with dict-like rows."""

        conn = sqlite3.connect(self.db_path, timeout=30, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    def add_record(
        self,
        result: DocumentResult,
        status: str = "done",
        error: str | None = None,
    ) -> RecordItem:
        """Insert a record for a finished run and return it.

        The record index is taken from the `record_index` counter inside the
        same write transaction as the insert.
        """

        created_at = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        chapters_json = json.dumps(
            [chapter.to_payload() for chapter in result.chapters],
            ensure_ascii=False,
        )
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                conn.execute(
                    "INSERT OR IGNORE INTO counters(name, value) VALUES (?, 0)",
                    (_RECORD_COUNTER,),
                )
                conn.execute(
                    "UPDATE counters SET value = value + 1 WHERE name = ?",
                    (_RECORD_COUNTER,),
                )
                index = conn.execute(
                    "SELECT value FROM counters WHERE name = ?",
                    (_RECORD_COUNTER,),
                ).fetchone()["value"]
                conn.execute(
                    """
                    INSERT INTO records(id, idx, created_at, original_name,
                                        chapter_count, out_dir, chapters, status, error)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        result.id,
                        index,
                        created_at,
                        result.original_name,
                        len(result.chapters),
                        str(result.out_dir),
                        chapters_json,
                        status,
                        error,
                    ),
                )
            except sqlite3.Error:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

        return RecordItem(
            id=result.id,
            index=int(index),
            created_at=created_at,
            original_name=result.original_name,
            chapter_count=len(result.chapters),
            out_dir=result.out_dir,
            chapters=list(result.chapters),
            status=status,
            error=error,
        )

    def get_record(self, record_id: str) -> RecordItem:
        """Return one record or raise `NotFoundError`."""

        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM records WHERE id = ?", (record_id,)).fetchone()
        finally:
            conn.close()
        if row is None:
            raise NotFoundError(f"Record not found: {record_id}")
        return _row_to_item(row)

    def list_records(self) -> list[RecordSummary]:
        """Return record summaries, newest first."""

        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT id, idx, original_name, chapter_count, created_at "
                "FROM records ORDER BY idx DESC"
            ).fetchall()
        finally:
            conn.close()
        return [
            RecordSummary(
                id=row["id"],
                index=int(row["idx"]),
                original_name=row["original_name"],
                chapter_count=int(row["chapter_count"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def delete_record(self, record_id: str) -> None:
        """Remove a record and its output directory.

        A directory that cannot be removed is logged; the catalog row is still
        deleted.
        """

        item = self.get_record(record_id)
        if item.out_dir.exists():
            try:
                shutil.rmtree(item.out_dir)
            except OSError as exc:
                if self._run_logger is not None:
                    self._run_logger.log_cleanup_failure("store", item.out_dir, type(exc).__name__)

        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            deleted = conn.execute("DELETE FROM records WHERE id = ?", (record_id,)).rowcount
            conn.execute("COMMIT")
        finally:
            conn.close()
        if deleted == 0:
            raise NotFoundError(f"Record not found: {record_id}")


def _row_to_item(row: sqlite3.Row) -> RecordItem:
    """Convert a `records` row into a `RecordItem`."""

    chapters = [ChapterResult.from_payload(payload) for payload in json.loads(row["chapters"])]
    return RecordItem(
        id=row["id"],
        index=int(row["idx"]),
        created_at=row["created_at"],
        original_name=row["original_name"],
        chapter_count=int(row["chapter_count"]),
        out_dir=Path(row["out_dir"]),
        chapters=chapters,
        status=row["status"],
        error=row["error"],
    )
