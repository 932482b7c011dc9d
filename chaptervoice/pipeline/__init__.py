"""Pipeline orchestration for document runs.

This package contains the chaptering orchestrator, the document-level run
driver, and runtime wiring of provider clients.
"""

from .document import DocumentPipeline
from .orchestrator import ChapteringOrchestrator
from .runtime import build_document_pipeline, resolve_runtime_config

__all__ = [
    "ChapteringOrchestrator",
    "DocumentPipeline",
    "build_document_pipeline",
    "resolve_runtime_config",
]
