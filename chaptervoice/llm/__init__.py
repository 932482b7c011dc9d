"""LLM-facing abstractions for document chaptering.

This package defines prompt libraries, provider clients, and the chaptering
service used before speech synthesis.
"""

from .chaptering import (
    ChapteringService,
    YandexChapteringService,
    merge_short_chapters,
    parse_chapter_payload,
)
from .prompts import PromptLibrary
from .yandex_client import (
    YandexGPTClient,
    YandexProviderError,
    YandexSpeechClient,
    is_text_too_long_message,
)

__all__ = [
    "PromptLibrary",
    "ChapteringService",
    "YandexChapteringService",
    "merge_short_chapters",
    "parse_chapter_payload",
    "YandexGPTClient",
    "YandexSpeechClient",
    "YandexProviderError",
    "is_text_too_long_message",
]
