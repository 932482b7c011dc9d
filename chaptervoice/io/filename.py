"""Upload filename normalization."""

from __future__ import annotations

import re
from urllib.parse import unquote

_PERCENT_ESCAPE_RE = re.compile(r"%[0-9A-Fa-f]{2}")
_MOJIBAKE_RE = re.compile(r"[ÃÐÑÂ][^a-z]")


def normalize_upload_filename(name: str | None) -> str:
    """Return a display name for an uploaded file.

    Percent-encoded names (`filename*`) are decoded, and UTF-8 names that
    were mis-decoded as Latin-1 by the client or multipart parser are repaired.
    """

    if not name or not name.strip():
        return "uploaded"
    normalized = name.strip()

    if _PERCENT_ESCAPE_RE.search(normalized):
        normalized = unquote(normalized)

    if _MOJIBAKE_RE.search(normalized):
        try:
            return normalized.encode("latin-1").decode("utf-8")
        except UnicodeError:
            return normalized
    return normalized
