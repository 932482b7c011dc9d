"""Deterministic slug helpers for filesystem-safe audio identifiers.

Responsibilities:
- Normalize free-form chapter titles into stable lowercase slugs.
- Keep non-Latin letters so Cyrillic titles still produce readable filenames.
"""

from __future__ import annotations

import re
import unicodedata

_MAX_SLUG_CHARS = 80


def slugify_audio_title(value: str) -> str:
    """Return a filesystem-safe slug of letters and digits joined by hyphens.

    Returns an empty string when the title has no letters or digits; callers
    pick their own fallback name.
    """

    normalized = unicodedata.normalize("NFKC", value)
    lowered = normalized.lower()
    collapsed = re.sub(r"[\W_]+", "-", lowered)
    return collapsed.strip("-")[:_MAX_SLUG_CHARS]
