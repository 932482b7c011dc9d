"""Text preprocessing and segmentation components.

This package provides deterministic cleanup, word counting, slugs, and
speech-request segmentation used around the LLM and TTS stages.
"""

from .cleaners import (
    CollapseBlankLines,
    CollapseWhitespace,
    RemoveControlChars,
    RemoveUrls,
    TextCleaner,
)
from .segmenter import SpeechSegmenter
from .slug import slugify_audio_title
from .words import count_words, estimate_minutes

__all__ = [
    "TextCleaner",
    "SpeechSegmenter",
    "RemoveControlChars",
    "RemoveUrls",
    "CollapseBlankLines",
    "CollapseWhitespace",
    "slugify_audio_title",
    "count_words",
    "estimate_minutes",
]
