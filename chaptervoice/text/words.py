"""Word counting used for chapter duration estimates."""

from __future__ import annotations

import math
import re

_LETTER_RUN_RE = re.compile(r"[^\W\d_]+")


def count_words(text: str) -> int:
    """Count runs of letters; digits and punctuation do not count as words."""

    return len(_LETTER_RUN_RE.findall(text))


def estimate_minutes(words: int, words_per_minute: int, min_minutes: int) -> int:
    """Return listening minutes rounded up, never below `min_minutes`."""

    return max(min_minutes, math.ceil(words / max(words_per_minute, 1)))
