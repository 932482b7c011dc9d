"""Document-level run driver.

Responsibilities:
- Allocate a run id and output directory for one uploaded document.
- Extract and clean the document text before chaptering.
- Remove partial output when the run fails.
"""

from __future__ import annotations

import shutil
import uuid
from pathlib import Path
from typing import Callable, TypeVar

from ..errors import InputError
from ..io.document_extractor import DocumentTextExtractor
from ..io.filename import normalize_upload_filename
from ..models.datatypes import DocumentRequest, DocumentResult
from ..telemetry.logger import RunLogger
from ..text.cleaners import TextCleaner
from .orchestrator import ChapteringOrchestrator

_StageResult = TypeVar("_StageResult")

RAW_TEXT_NAME = "text-input.txt"


class DocumentPipeline:
    """Run one document through extraction, cleanup, chaptering, and synthesis."""

    def __init__(
        self,
        orchestrator: ChapteringOrchestrator,
        extractor: DocumentTextExtractor | None = None,
        cleaner: TextCleaner | None = None,
        run_logger: RunLogger | None = None,
        *,
        output_root: Path,
        public_prefix: str = "/output",
    ) -> None:
        """Initialize run collaborators and output locations."""

        self.orchestrator = orchestrator
        self.extractor = extractor if extractor is not None else DocumentTextExtractor()
        self.cleaner = cleaner if cleaner is not None else TextCleaner()
        self._run_logger = run_logger
        self.output_root = output_root
        self.public_prefix = public_prefix

    def run(self, request: DocumentRequest) -> DocumentResult:
        """Produce chapter audio for `request` under `<output_root>/<run_id>`.

        Raises:
            InputError: If no usable text is available.
            InvalidArgumentError: If request rates or limits are not positive.
            ChapteringError: If chaptering yields nothing usable.
            SynthesisError: If any chapter fails to synthesize.
        """

        run_id = str(uuid.uuid4())
        out_dir = self.output_root / run_id
        original_name = (
            RAW_TEXT_NAME
            if request.text is not None
            else normalize_upload_filename(request.original_name)
        )

        try:
            raw_text = self._run_stage("extract", lambda: self._extract(request))
            clean_text = self._run_stage("clean", lambda: self.cleaner.clean(raw_text))
            if len(clean_text) < ChapteringOrchestrator.MIN_INPUT_CHARS:
                raise InputError(
                    "Document text is empty or shorter than "
                    f"{ChapteringOrchestrator.MIN_INPUT_CHARS} characters."
                )
            chapters = self.orchestrator.process(
                clean_text,
                out_dir=out_dir,
                public_prefix=self.public_prefix,
                min_chapter_minutes=request.min_chapter_minutes,
                words_per_minute=request.words_per_minute,
                voice=request.voice,
                max_chars=request.max_tts_chars,
            )
        except Exception:
            self._remove_tree(out_dir)
            raise

        return DocumentResult(
            id=run_id,
            original_name=original_name,
            out_dir=out_dir,
            chapters=chapters,
        )

    def _extract(self, request: DocumentRequest) -> str:
        """Return request text, or extract it from the uploaded file and delete the file."""

        if request.text is not None:
            return request.text
        if request.source_path is None:
            raise InputError("No file or text provided.")
        try:
            return self.extractor.extract(request.source_path, request.original_name)
        finally:
            self._remove_upload(request.source_path)

    def _remove_upload(self, path: Path) -> None:
        """Delete an uploaded source file, logging failures."""

        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            if self._run_logger is not None:
                self._run_logger.log_cleanup_failure("extract", path, type(exc).__name__)

    def _remove_tree(self, path: Path) -> None:
        """Delete a partial run output directory, logging failures."""

        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            if self._run_logger is not None:
                self._run_logger.log_cleanup_failure("synthesize", path, type(exc).__name__)

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
