"""Core datatypes shared across Chaptervoice modules.

Responsibilities:
- Represent records exchanged between pipeline stages.
- Provide explicit typing and camelCase payloads for the HTTP surface.

Key types:
- `Chapter`, `ChapterResult`, `DocumentRequest`, `DocumentResult`,
  `RecordItem`, and `RecordSummary`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..tts.voices import VoiceProfile


@dataclass(frozen=True, slots=True)
class Chapter:
    """A titled chapter proposed by the chaptering service.

    Attributes:
        title: Chapter title.
        text: Full chapter text.
    """

    title: str
    text: str


@dataclass(frozen=True, slots=True)
class ChapterResult:
    """One synthesized chapter of a finished run.

    Attributes:
        index: 1-based chapter index.
        title: Chapter title.
        words: Letter-sequence word count of the chapter text.
        minutes: Estimated listening time in whole minutes.
        audio_file: File name inside the run output directory.
        audio_path: Public URL path of the audio file.
    """

    index: int
    title: str
    words: int
    minutes: int
    audio_file: str
    audio_path: str

    def to_payload(self) -> dict[str, object]:
        """Return the camelCase JSON payload used by the catalog and HTTP API."""

        return {
            "index": self.index,
            "title": self.title,
            "words": self.words,
            "minutes": self.minutes,
            "audioFile": self.audio_file,
            "audioPath": self.audio_path,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, object]) -> ChapterResult:
        """Rebuild a chapter result from its camelCase JSON payload."""

        return cls(
            index=int(payload["index"]),
            title=str(payload["title"]),
            words=int(payload["words"]),
            minutes=int(payload["minutes"]),
            audio_file=str(payload["audioFile"]),
            audio_path=str(payload["audioPath"]),
        )


@dataclass(frozen=True, slots=True)
class DocumentRequest:
    """Inputs for one document-to-audiobook run.

    Exactly one of `text` and `source_path` is expected; `text` wins when both
    are present.
    """

    voice: VoiceProfile
    min_chapter_minutes: int
    words_per_minute: int
    max_tts_chars: int
    text: str | None = None
    source_path: Path | None = None
    original_name: str | None = None


@dataclass(frozen=True, slots=True)
class DocumentResult:
    """Outcome of a finished run handed to the record catalog."""

    id: str
    original_name: str
    out_dir: Path
    chapters: list[ChapterResult] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class RecordSummary:
    """Catalog listing row."""

    id: str
    index: int
    original_name: str
    chapter_count: int
    created_at: str

    def to_payload(self) -> dict[str, object]:
        """Return the camelCase JSON listing payload."""

        return {
            "id": self.id,
            "index": self.index,
            "originalName": self.original_name,
            "chapterCount": self.chapter_count,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True, slots=True)
class RecordItem:
    """Persisted catalog record of one run."""

    id: str
    index: int
    created_at: str
    original_name: str
    chapter_count: int
    out_dir: Path
    chapters: list[ChapterResult]
    status: str = "done"
    error: str | None = None

    def summary(self) -> RecordSummary:
        """Return the listing view of this record."""

        return RecordSummary(
            id=self.id,
            index=self.index,
            original_name=self.original_name,
            chapter_count=self.chapter_count,
            created_at=self.created_at,
        )

    def to_payload(self) -> dict[str, object]:
        """Return the detail payload exposed by `GET /records/{id}`."""

        payload = self.summary().to_payload()
        payload["chapters"] = [chapter.to_payload() for chapter in self.chapters]
        return payload
