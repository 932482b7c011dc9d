"""HTTP surface for Chaptervoice."""

from .app import create_app

__all__ = ["create_app"]
