"""Input and persistence adapters."""

from .document_extractor import DocumentTextExtractor
from .filename import normalize_upload_filename
from .records import RecordStore

__all__ = ["DocumentTextExtractor", "RecordStore", "normalize_upload_filename"]
