"""Chaptering interfaces and provider integration.

Responsibilities:
- Define a protocol for services that split a document into titled chapters.
- Provide the Yandex-backed chaptering implementation.
- Parse structured chapter responses, with an embedded-object fallback.
- Merge chapters that are too short to be useful audio segments.
"""

from __future__ import annotations

import json
from typing import Protocol

from ..errors import ChapteringError
from ..models.datatypes import Chapter
from ..text.words import count_words
from .prompts import PromptLibrary
from .yandex_client import YandexGPTClient, YandexProviderError


class ChapteringService(Protocol):
    """Protocol for chapter segmentation providers."""

    def segment(self, raw_text: str, max_minutes: int, words_per_minute: int) -> list[Chapter]:
        """Split raw document text into ordered chapters."""


class YandexChapteringService:
    """Foundation-Models-backed chaptering with schema-constrained output."""

    def __init__(
        self,
        client: YandexGPTClient,
        model: str = "yandexgpt",
        max_input_chars: int = 250_000,
        temperature: float = 0.3,
        max_tokens: int = 12000,
    ) -> None:
        """Initialize chaptering settings and client dependency."""

        self.client = client
        self.model = model
        self.max_input_chars = max_input_chars
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.prompts = PromptLibrary()

    def segment(self, raw_text: str, max_minutes: int, words_per_minute: int) -> list[Chapter]:
        """Request chapters for `raw_text` and parse the structured response."""

        try:
            response_text = self.client.complete_json(
                model=self.model,
                system_prompt=self.prompts.chaptering_system_prompt(
                    max_minutes=max_minutes,
                    words_per_minute=words_per_minute,
                ),
                user_prompt=self.prompts.chaptering_user_prompt(
                    raw_text=raw_text,
                    max_input_chars=self.max_input_chars,
                ),
                json_schema=self.prompts.chapter_schema(),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except YandexProviderError as exc:
            raise ChapteringError(f"Chaptering request failed: {exc}") from exc
        return parse_chapter_payload(response_text)


def parse_chapter_payload(text: str) -> list[Chapter]:
    """Parse a chaptering response into chapters.

    The response is parsed as JSON directly; failing that, the largest
    object-looking substring (first `{` through last `}`) is parsed instead.

    Raises:
        ChapteringError: If neither attempt yields a `{"chapters": [...]}` object
            with at least one `{title, text}` item.
    """

    if not text or not text.strip():
        raise ChapteringError("Chaptering service returned an empty response.")

    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        payload = _parse_embedded_object(text)

    if not isinstance(payload, dict):
        raise ChapteringError("Chaptering response is not a JSON object.")
    items = payload.get("chapters")
    if not isinstance(items, list) or not items:
        raise ChapteringError("Chaptering response has no `chapters` list.")

    chapters: list[Chapter] = []
    for position, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ChapteringError(f"Chapter #{position} is not an object.")
        title = item.get("title")
        chapter_text = item.get("text")
        if not isinstance(title, str) or not isinstance(chapter_text, str):
            raise ChapteringError(f"Chapter #{position} is missing `title` or `text`.")
        chapters.append(Chapter(title=title.strip(), text=chapter_text.strip()))
    return chapters


def _parse_embedded_object(text: str) -> object:
    """Parse the widest `{...}` span of a response that is not plain JSON."""

    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        raise ChapteringError("Failed to parse chapters JSON from chaptering response.")
    try:
        return json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise ChapteringError("Failed to parse chapters JSON from chaptering response.") from exc


def merge_short_chapters(chapters: list[Chapter], min_words: int) -> list[Chapter]:
    """Fold chapters below `min_words` into the chapter before them.

    The first chapter always opens the result. A later chapter shorter than
    `min_words` is appended (title, then text) to the previous result entry,
    which keeps its own title; otherwise it opens a new entry. A short final
    chapter is handled by the same rule only.
    """

    merged: list[Chapter] = []
    for chapter in chapters:
        if not merged:
            merged.append(chapter)
            continue
        if count_words(chapter.text) < min_words:
            previous = merged[-1]
            merged[-1] = Chapter(
                title=previous.title,
                text=f"{previous.text}\n\n{chapter.title}\n\n{chapter.text}",
            )
        else:
            merged.append(chapter)
    return merged
