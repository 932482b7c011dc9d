"""Chaptering orchestration for one document run.

Responsibilities:
- Request chapters from the chaptering service and merge short ones forward.
- Synthesize every chapter in order into a numbered WAV file.
- Assemble per-chapter results with word counts, minutes, and public paths.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, TypeVar

from ..errors import InputError, InvalidArgumentError
from ..llm.chaptering import ChapteringService, merge_short_chapters
from ..models.datatypes import Chapter, ChapterResult
from ..telemetry.logger import RunLogger
from ..text.slug import slugify_audio_title
from ..text.words import count_words, estimate_minutes
from ..tts.synthesizer import ChapterSynthesizer
from ..tts.voices import VoiceProfile

_StageResult = TypeVar("_StageResult")


class ChapteringOrchestrator:
    """Turn whole-document text into an ordered list of synthesized chapters."""

    MIN_INPUT_CHARS = 50

    def __init__(
        self,
        chaptering_service: ChapteringService,
        synthesizer: ChapterSynthesizer,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize chaptering and synthesis collaborators."""

        self.chaptering_service = chaptering_service
        self.synthesizer = synthesizer
        self._run_logger = run_logger

    def process(
        self,
        raw_text: str,
        *,
        out_dir: Path,
        public_prefix: str,
        min_chapter_minutes: int,
        words_per_minute: int,
        voice: VoiceProfile,
        max_chars: int,
    ) -> list[ChapterResult]:
        """Chapter and synthesize `raw_text` into `out_dir`.

        The run id used in public paths is the name of `out_dir`. Any chapter
        failure aborts the whole run.

        Raises:
            InputError: If trimmed text is shorter than 50 characters.
            InvalidArgumentError: If minutes or words-per-minute are not positive.
            ChapteringError: If the chaptering service yields no usable chapters.
            SynthesisError: If any chapter fails to synthesize.
        """

        if len(raw_text.strip()) < self.MIN_INPUT_CHARS:
            raise InputError(
                f"Input text is shorter than {self.MIN_INPUT_CHARS} characters."
            )
        if min_chapter_minutes <= 0 or words_per_minute <= 0:
            raise InvalidArgumentError(
                "`min_chapter_minutes` and `words_per_minute` must be positive."
            )

        chapters = self._run_stage(
            "chapter",
            lambda: merge_short_chapters(
                self.chaptering_service.segment(
                    raw_text,
                    max_minutes=min_chapter_minutes,
                    words_per_minute=words_per_minute,
                ),
                min_chapter_minutes * words_per_minute,
            ),
        )

        out_dir.mkdir(parents=True, exist_ok=True)
        public_base = f"{public_prefix.rstrip('/')}/{out_dir.name}"
        return self._run_stage(
            "synthesize",
            lambda: [
                self._synthesize_one(
                    index=index,
                    chapter=chapter,
                    out_dir=out_dir,
                    public_base=public_base,
                    min_chapter_minutes=min_chapter_minutes,
                    words_per_minute=words_per_minute,
                    voice=voice,
                    max_chars=max_chars,
                )
                for index, chapter in enumerate(chapters, start=1)
            ],
        )

    @staticmethod
    def chapter_filename(index: int, title: str) -> str:
        """Return the `NN-slug.wav` file name for a 1-based chapter index."""

        return f"{index:02d}-{slugify_audio_title(title) or 'chapter'}.wav"

    def _synthesize_one(
        self,
        *,
        index: int,
        chapter: Chapter,
        out_dir: Path,
        public_base: str,
        min_chapter_minutes: int,
        words_per_minute: int,
        voice: VoiceProfile,
        max_chars: int,
    ) -> ChapterResult:
        """Synthesize one chapter and build its result record."""

        words = count_words(chapter.text)
        minutes = estimate_minutes(words, words_per_minute, min_chapter_minutes)
        file_name = self.chapter_filename(index, chapter.title)
        self.synthesizer.synthesize_chapter(
            chapter.text,
            out_dir / file_name,
            voice,
            max_chars,
        )
        return ChapterResult(
            index=index,
            title=chapter.title,
            words=words,
            minutes=minutes,
            audio_file=file_name,
            audio_path=f"{public_base}/{file_name}",
        )

    def _run_stage(
        self,
        stage_name: str,
        action: Callable[[], _StageResult],
    ) -> _StageResult:
        """Run one named stage and emit start/complete/failure telemetry events."""

        if self._run_logger is not None:
            self._run_logger.log_stage_start(stage_name)
        try:
            result = action()
        except Exception as exc:
            if self._run_logger is not None:
                self._run_logger.log_stage_failure(stage_name, type(exc).__name__)
            raise
        if self._run_logger is not None:
            self._run_logger.log_stage_complete(stage_name)
        return result
