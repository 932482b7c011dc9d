"""Audio container handling.

This package parses and splices WAV fragments produced by speech synthesis.
"""

from .splicer import (
    WavContainer,
    WavFormat,
    concat_wav_files,
    parse_wav_container,
    splice_wav_containers,
)

__all__ = [
    "WavContainer",
    "WavFormat",
    "concat_wav_files",
    "parse_wav_container",
    "splice_wav_containers",
]
