"""Chapter-level speech synthesis.

Responsibilities:
- Define the protocol for chunk-level speech clients.
- Drive one chapter through segmentation, sequential chunk synthesis, and
  WAV splicing into a single chapter file.
- Recover from "text too long" rejections by re-splitting the rejected chunk
  with a smaller limit and splicing the pieces back into one fragment.
"""

from __future__ import annotations

from pathlib import Path
import shutil
from typing import Protocol

from ..audio.splicer import concat_wav_files
from ..errors import InputError, ProviderError, SynthesisError
from ..telemetry.logger import RunLogger
from ..text.segmenter import SpeechSegmenter
from .voices import VoiceProfile


class SpeechClient(Protocol):
    """Protocol for chunk-level speech providers."""

    def synthesize_to_file(self, text: str, output_path: Path, voice: VoiceProfile) -> Path:
        """Synthesize one text chunk into a WAV file at `output_path`.

        Failures raise `ProviderError`; `is_text_too_long` marks a rejection
        that a smaller chunk may avoid.
        """


class ChapterSynthesizer:
    """Synthesize one chapter into one WAV file, chunk by chunk, in order."""

    RESPLIT_FACTOR = 0.7
    MIN_CHUNK_CHARS = 800

    def __init__(
        self,
        speech_client: SpeechClient,
        segmenter: SpeechSegmenter | None = None,
        run_logger: RunLogger | None = None,
        verify_format: bool = True,
    ) -> None:
        """Initialize synthesis collaborators."""

        self.speech_client = speech_client
        self.segmenter = segmenter if segmenter is not None else SpeechSegmenter()
        self._run_logger = run_logger
        self._verify_format = verify_format

    @classmethod
    def reduced_limit(cls, limit: int) -> int:
        """Return the re-split limit used after a "too long" rejection at `limit`."""

        return max(cls.MIN_CHUNK_CHARS, int(limit * cls.RESPLIT_FACTOR))

    def synthesize_chapter(
        self,
        text: str,
        out_file: Path,
        voice: VoiceProfile,
        max_chars: int,
    ) -> Path:
        """Synthesize `text` into `out_file` and return its path.

        Chunk fragments live in `<out_file>.parts`, which is removed whether or
        not synthesis succeeds.

        Raises:
            InvalidArgumentError: If `max_chars` is not positive.
            InputError: If the chapter has no speakable text.
            SynthesisError: If the speech service fails for any reason other
                than a recoverable "text too long" rejection.
            FormatError: If returned fragments cannot be spliced.
        """

        chunks = [chunk for chunk in self.segmenter.segment(text, max_chars) if chunk.strip()]
        if not chunks:
            raise InputError("Chapter text is empty.")

        parts_dir = Path(f"{out_file}.parts")
        parts_dir.mkdir(parents=True, exist_ok=True)
        try:
            part_files = [
                self._synthesize_piece(chunk, parts_dir, f"{position:03d}", max_chars, voice)
                for position, chunk in enumerate(chunks)
            ]
            concat_wav_files(part_files, out_file, verify_format=self._verify_format)
        finally:
            self._remove_parts_dir(parts_dir)
        return out_file

    def _synthesize_piece(
        self,
        text: str,
        parts_dir: Path,
        key: str,
        limit: int,
        voice: VoiceProfile,
    ) -> Path:
        """Synthesize one piece, re-splitting it when the service says it is too long."""

        part_path = parts_dir / f"part-{key}.wav"
        try:
            return self.speech_client.synthesize_to_file(text, part_path, voice)
        except ProviderError as exc:
            if not exc.is_text_too_long:
                raise SynthesisError(f"Speech synthesis failed for chunk {key}: {exc}") from exc
            reduced = self._next_splitting_limit(text, limit)
            if reduced is None:
                raise SynthesisError(
                    f"Speech service rejected chunk {key} as too long at the "
                    f"minimum limit of {self.MIN_CHUNK_CHARS} characters."
                ) from exc

        if self._run_logger is not None:
            self._run_logger.log_chunk_resplit(key, limit, reduced)

        pieces = [piece for piece in self.segmenter.segment(text, reduced) if piece.strip()]
        sub_parts = [
            self._synthesize_piece(piece, parts_dir, f"{key}-{index:02d}", reduced, voice)
            for index, piece in enumerate(pieces)
        ]
        merged_path = parts_dir / f"part-{key}.merged.wav"
        try:
            concat_wav_files(sub_parts, merged_path, verify_format=self._verify_format)
        finally:
            self._remove_files(sub_parts)
        return merged_path

    def _next_splitting_limit(self, text: str, limit: int) -> int | None:
        """Walk the reduced-limit ladder down from `limit` to the first step that splits `text`.

        Steps the text already fits under would resend it unchanged, so they
        are skipped. Returns `None` once the floor is reached without a split.
        """

        length = len(self.segmenter.normalize(text))
        reduced = limit
        while True:
            step = self.reduced_limit(reduced)
            if step >= reduced:
                return None
            reduced = step
            if length > reduced:
                return reduced

    def _remove_files(self, paths: list[Path]) -> None:
        """Delete fragment files, logging and swallowing failures."""

        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                if self._run_logger is not None:
                    self._run_logger.log_cleanup_failure("synthesize", path, type(exc).__name__)

    def _remove_parts_dir(self, parts_dir: Path) -> None:
        """Delete the chapter parts directory, logging and swallowing failures."""

        try:
            shutil.rmtree(parts_dir)
        except FileNotFoundError:
            return
        except OSError as exc:
            if self._run_logger is not None:
                self._run_logger.log_cleanup_failure("synthesize", parts_dir, type(exc).__name__)
