"""Unit tests for speech-request text segmentation."""

from __future__ import annotations

import re

import pytest

from chaptervoice.errors import InvalidArgumentError
from chaptervoice.text.segmenter import SpeechSegmenter


def _without_whitespace(text: str) -> str:
    return re.sub(r"\s+", "", text)


def test_text_within_limit_is_returned_as_one_normalized_chunk() -> None:
    segmenter = SpeechSegmenter()

    assert segmenter.segment("  Hello world.  \r\n\r\n\r\n\r\nBye.\r\n", 100) == [
        "Hello world.\n\nBye."
    ]


def test_paragraphs_are_packed_up_to_the_limit() -> None:
    segmenter = SpeechSegmenter()

    chunks = segmenter.segment("aaaa\n\nbbbb\n\ncccc", 10)

    assert chunks == ["aaaa\n\nbbbb", "cccc"]


def test_oversized_paragraph_is_split_on_sentence_boundaries() -> None:
    segmenter = SpeechSegmenter()

    chunks = segmenter.segment("One two. Three four. Five six.", 20)

    assert chunks == ["One two. Three four.", "Five six."]


def test_ellipsis_and_question_marks_end_sentences() -> None:
    segmenter = SpeechSegmenter()

    chunks = segmenter.segment("Привет… Как дела? Хорошо!", 12)

    assert chunks == ["Привет…", "Как дела?", "Хорошо!"]


def test_sentence_longer_than_limit_is_hard_cut() -> None:
    segmenter = SpeechSegmenter()

    chunks = segmenter.segment("x" * 25, 10)

    assert chunks == ["x" * 10, "x" * 10, "x" * 5]


def test_hard_cut_drops_whitespace_only_pieces() -> None:
    assert SpeechSegmenter().segment("aaaaa     bbbbb", 5) == ["aaaaa", "bbbbb"]


def test_chunks_respect_limit_and_preserve_content_in_order() -> None:
    """Every chunk fits the limit and no non-whitespace character is lost or reordered."""

    paragraphs = [
        " ".join(f"Sentence {p}-{s} has a handful of words." for s in range(1, 9))
        for p in range(1, 6)
    ]
    text = "\n\n".join(paragraphs) + "\n\n" + "z" * 130
    segmenter = SpeechSegmenter()

    chunks = segmenter.segment(text, 60)

    assert len(chunks) > 5
    assert all(0 < len(chunk) <= 60 for chunk in chunks)
    assert _without_whitespace("".join(chunks)) == _without_whitespace(text)


def test_empty_text_yields_single_empty_chunk() -> None:
    assert SpeechSegmenter().segment(" \n\t ", 10) == [""]


@pytest.mark.parametrize("max_chars", [0, -5])
def test_non_positive_limit_is_rejected(max_chars: int) -> None:
    with pytest.raises(InvalidArgumentError):
        SpeechSegmenter().segment("text", max_chars)
