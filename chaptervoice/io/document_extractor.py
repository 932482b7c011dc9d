"""Document text extraction.

Responsibilities:
- Extract plain text from uploaded PDF, DOCX, and plain-text documents.
- Report unreadable or unsupported inputs as input errors.
"""

from __future__ import annotations

from pathlib import Path

import docx
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from ..errors import InputError


class DocumentTextExtractor:
    """Extract text by file extension of the original upload name."""

    def extract(self, path: Path, original_name: str | None = None) -> str:
        """Return the full text of the document stored at `path`.

        Args:
            path: Location of the stored upload.
            original_name: Client-side file name; its extension picks the
                format. Defaults to `path.name`.
        """

        if not path.exists():
            raise InputError(f"Input document not found: {path}")

        suffix = Path(original_name or path.name).suffix.lower()
        if suffix == ".pdf":
            return self._extract_pdf(path)
        if suffix == ".docx":
            return self._extract_docx(path)
        if suffix == ".doc":
            raise InputError("Legacy `.doc` files are not supported; save as DOCX or PDF.")
        return path.read_text(encoding="utf-8", errors="replace")

    def _extract_pdf(self, path: Path) -> str:
        """Join page texts of a text-based PDF."""

        try:
            reader = PdfReader(str(path))
            pages = [(page.extract_text() or "").strip() for page in reader.pages]
        except (PdfReadError, ValueError, OSError) as exc:
            raise InputError(f"Failed to read PDF `{path.name}`: {exc}") from exc
        return "\n".join(page for page in pages if page)

    def _extract_docx(self, path: Path) -> str:
        """Join paragraph texts of a DOCX document."""

        try:
            document = docx.Document(str(path))
        except Exception as exc:
            raise InputError(f"Failed to read DOCX `{path.name}`: {exc}") from exc
        return "\n".join(paragraph.text for paragraph in document.paragraphs)
