"""Deterministic text cleaning rules.

Responsibilities:
- Provide composable cleanup rules for extracted document text.
- Keep preprocessing predictable before the chaptering request.
"""

from __future__ import annotations

import re
from typing import Protocol


class CleanerRule(Protocol):
    """Protocol for text cleaning rules."""

    def apply(self, text: str) -> str:
        """Apply a single cleaning transformation."""


class RemoveControlChars:
    """Replace control characters other than newline and tab with spaces."""

    def apply(self, text: str) -> str:
        """Apply control-character cleanup rule."""

        return re.sub(r"[\x00-\x08\x0b-\x1f\x7f]", " ", text)


class RemoveUrls:
    """Drop bare HTTP(S) links, which read badly aloud."""

    def apply(self, text: str) -> str:
        """Apply URL cleanup rule."""

        return re.sub(r"https?://\S+", " ", text)


class CollapseBlankLines:
    """Strip line tails and collapse three or more newlines into one blank line."""

    def apply(self, text: str) -> str:
        """Apply blank-line cleanup rule."""

        text = re.sub(r"[ \t]+\n", "\n", text)
        return re.sub(r"\n{3,}", "\n\n", text)


class CollapseWhitespace:
    """Normalize repeated spaces and tabs to a single space."""

    def apply(self, text: str) -> str:
        """Collapse consecutive spaces and tabs."""

        return re.sub(r"[ \t]{2,}", " ", text)


class TextCleaner:
    """Apply a sequence of deterministic cleaner rules."""

    def __init__(self, rules: list[CleanerRule] | None = None) -> None:
        """Initialize with custom rules or default rule sequence."""

        self.rules = rules or [
            RemoveControlChars(),
            RemoveUrls(),
            CollapseBlankLines(),
            CollapseWhitespace(),
        ]

    def clean(self, text: str) -> str:
        """Apply all configured rules in order and trim the result."""

        current = text
        for rule in self.rules:
            current = rule.apply(current)
        return current.strip()
