"""Text-to-speech abstractions.

This package contains voice profile types and the chapter synthesizer used by
the pipeline synthesis stage.
"""

from .synthesizer import ChapterSynthesizer, SpeechClient
from .voices import VoiceProfile

__all__ = ["VoiceProfile", "SpeechClient", "ChapterSynthesizer"]
