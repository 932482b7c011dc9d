"""Speech-request text segmentation.

Responsibilities:
- Split chapter text into chunks no longer than the speech-service limit.
- Prefer paragraph, then sentence boundaries, falling back to hard cuts.
"""

from __future__ import annotations

import re

from ..errors import InvalidArgumentError


class SpeechSegmenter:
    """Split text into bounded chunks for sequential speech synthesis."""

    _TRAILING_LINE_SPACE_RE = re.compile(r"[ \t]+\n")
    _BLANK_RUN_RE = re.compile(r"\n{3,}")
    _PARAGRAPH_BREAK_RE = re.compile(r"\n{2,}")
    _SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?…])\s+")

    def segment(self, text: str, max_chars: int) -> list[str]:
        """Split text into ordered chunks of at most `max_chars` characters.

        Args:
            text: Raw chapter text.
            max_chars: Maximum characters per chunk.

        Returns:
            Ordered chunk list. Text that already fits is returned as a single
            normalized chunk, including the empty string.

        Raises:
            InvalidArgumentError: If `max_chars` is not positive.
        """

        if max_chars <= 0:
            raise InvalidArgumentError("`max_chars` must be a positive integer.")

        clean = self.normalize(text)
        if len(clean) <= max_chars:
            return [clean]

        chunks: list[str] = []
        buffer = ""
        for paragraph in self._PARAGRAPH_BREAK_RE.split(clean):
            candidate = f"{buffer}\n\n{paragraph}" if buffer else paragraph
            if len(candidate) <= max_chars:
                buffer = candidate
                continue
            self._flush(buffer, max_chars, chunks)
            buffer = paragraph
        self._flush(buffer, max_chars, chunks)

        return [chunk for chunk in chunks if chunk.strip()]

    def normalize(self, text: str) -> str:
        """Normalize line endings and blank-line runs, then trim."""

        normalized = text.replace("\r\n", "\n")
        normalized = self._TRAILING_LINE_SPACE_RE.sub("\n", normalized)
        normalized = self._BLANK_RUN_RE.sub("\n\n", normalized)
        return normalized.strip()

    def _flush(self, buffer: str, max_chars: int, chunks: list[str]) -> None:
        """Append a paragraph buffer, re-splitting by sentences when oversized."""

        if not buffer:
            return
        if len(buffer) <= max_chars:
            chunks.append(buffer.strip())
            return

        current = ""
        for sentence in self._SENTENCE_BREAK_RE.split(buffer):
            candidate = f"{current} {sentence}" if current else sentence
            if len(candidate) <= max_chars:
                current = candidate
                continue
            if current:
                chunks.append(current.strip())
            if len(sentence) > max_chars:
                chunks.extend(self._hard_cut(sentence, max_chars))
                current = ""
            else:
                current = sentence
        if current:
            chunks.append(current.strip())

    @staticmethod
    def _hard_cut(sentence: str, max_chars: int) -> list[str]:
        """Cut an oversized sentence every `max_chars` characters, ignoring word boundaries."""

        return [sentence[start : start + max_chars] for start in range(0, len(sentence), max_chars)]
