"""Top-level package for Chaptervoice.

This package converts PDF, DOCX, and plain-text documents into chaptered
audiobooks: an LLM proposes chapters, each chapter is synthesized chunk by
chunk and spliced into one WAV file. The main entry point is
`DocumentPipeline`, usually built with `build_document_pipeline`.
"""

from .pipeline import ChapteringOrchestrator, DocumentPipeline, build_document_pipeline

__all__ = [
    "ChapteringOrchestrator",
    "DocumentPipeline",
    "build_document_pipeline",
    "__version__",
]

__version__ = "0.1.0"
