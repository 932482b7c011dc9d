"""Shared typed data models for Chaptervoice.

This package contains dataclasses used across pipeline modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    Chapter,
    ChapterResult,
    DocumentRequest,
    DocumentResult,
    RecordItem,
    RecordSummary,
)

__all__ = [
    "Chapter",
    "ChapterResult",
    "DocumentRequest",
    "DocumentResult",
    "RecordItem",
    "RecordSummary",
]
