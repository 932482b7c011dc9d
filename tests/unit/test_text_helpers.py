"""Unit tests for word counting, slugs, cleaners, and upload names."""

from __future__ import annotations

import pytest

from chaptervoice.io.filename import normalize_upload_filename
from chaptervoice.text.cleaners import TextCleaner
from chaptervoice.text.slug import slugify_audio_title
from chaptervoice.text.words import count_words, estimate_minutes


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("", 0),
        ("Hello, world!", 2),
        ("Привет, мир — 2024 год", 3),
        ("don't stop", 3),
        ("123 456", 0),
        ("snake_case", 2),
    ],
)
def test_count_words_counts_letter_runs(text: str, expected: int) -> None:
    assert count_words(text) == expected


def test_estimate_minutes_rounds_up_and_respects_minimum() -> None:
    assert estimate_minutes(4501, 150, 30) == 31
    assert estimate_minutes(4500, 150, 30) == 30
    assert estimate_minutes(10, 150, 30) == 30
    assert estimate_minutes(0, 150, 1) == 1


@pytest.mark.parametrize(
    ("title", "expected"),
    [
        ("Chapter One: The Start", "chapter-one-the-start"),
        ("  Глава 2. Дорога домой  ", "глава-2-дорога-домой"),
        ("snake_case__title", "snake-case-title"),
        ("?!", ""),
    ],
)
def test_slugify_audio_title(title: str, expected: str) -> None:
    assert slugify_audio_title(title) == expected


def test_slugify_caps_length() -> None:
    assert len(slugify_audio_title("a" * 200)) == 80


def test_text_cleaner_removes_noise_and_collapses_whitespace() -> None:
    raw = "  Title\x0c\n\n\n\n\nSee https://example.com/page now.\t\tEnd   \n"

    assert TextCleaner().clean(raw) == "Title\n\nSee now. End"


def test_text_cleaner_accepts_custom_rules() -> None:
    class _Upper:
        def apply(self, text: str) -> str:
            return text.upper()

    assert TextCleaner(rules=[_Upper()]).clean(" abc ") == "ABC"


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        (None, "uploaded"),
        ("   ", "uploaded"),
        ("book.pdf", "book.pdf"),
        ("%D0%BA%D0%BD%D0%B8%D0%B3%D0%B0.pdf", "книга.pdf"),
        ("ÐºÐ½Ð¸Ð³Ð°.docx", "книга.docx"),
        ("Ã©tude.txt", "étude.txt"),
        ("Ðx.txt", "Ðx.txt"),
    ],
)
def test_normalize_upload_filename(name: str | None, expected: str) -> None:
    assert normalize_upload_filename(name) == expected
