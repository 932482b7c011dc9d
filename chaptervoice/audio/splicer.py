"""WAV container splicing.

Responsibilities:
- Parse RIFF/WAVE chunk layout far enough to locate format and sample data.
- Concatenate sample data of many fragments under the first fragment's header.
- Patch the RIFF and data size fields of the spliced container.

Key types:
- `WavFormat`: parsed `fmt ` chunk parameters.
- `WavContainer`: verbatim header bytes plus owned sample payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import struct
from typing import Sequence

from ..errors import FormatError, NotFoundError

_RIFF_HEADER_SIZE = 12
_CHUNK_HEADER_SIZE = 8
_RIFF_SIZE_OFFSET = 4


@dataclass(frozen=True, slots=True)
class WavFormat:
    """PCM parameters from a `fmt ` chunk."""

    audio_format: int
    channels: int
    sample_rate: int
    bits_per_sample: int


@dataclass(slots=True)
class WavContainer:
    """A single-track WAV split into header region and sample data.

    Attributes:
        header: Bytes from the start of the file through the data chunk size
            field; copied verbatim except for the two size fields.
        data: Raw sample payload of the data chunk.
        fmt: Parsed format parameters, when a `fmt ` chunk precedes the data.
    """

    header: bytes
    data: bytes
    fmt: WavFormat | None = None

    @property
    def data_size_offset(self) -> int:
        """Byte offset of the data chunk size field."""

        return len(self.header) - 4

    def to_bytes(self) -> bytes:
        """Serialize header and data with both size fields patched."""

        output = bytearray(self.header)
        output.extend(self.data)
        struct.pack_into("<I", output, _RIFF_SIZE_OFFSET, len(output) - 8)
        struct.pack_into("<I", output, self.data_size_offset, len(self.data))
        return bytes(output)


def parse_wav_container(buffer: bytes) -> WavContainer:
    """Parse a RIFF/WAVE buffer into a `WavContainer`.

    Chunks are walked from offset 12; odd-sized chunks are followed by one pad
    byte. A data size running past the end of the buffer (streamed headers)
    is clamped to the bytes actually present.

    Raises:
        FormatError: If the buffer is not RIFF/WAVE or has no data chunk.
    """

    if len(buffer) < _RIFF_HEADER_SIZE or buffer[0:4] != b"RIFF" or buffer[8:12] != b"WAVE":
        raise FormatError("Not a WAV file.")

    fmt: WavFormat | None = None
    offset = _RIFF_HEADER_SIZE
    while offset + _CHUNK_HEADER_SIZE <= len(buffer):
        chunk_id = buffer[offset : offset + 4]
        (chunk_size,) = struct.unpack_from("<I", buffer, offset + 4)
        payload_start = offset + _CHUNK_HEADER_SIZE
        if chunk_id == b"data":
            payload_end = min(payload_start + chunk_size, len(buffer))
            return WavContainer(
                header=bytes(buffer[:payload_start]),
                data=bytes(buffer[payload_start:payload_end]),
                fmt=fmt,
            )
        if chunk_id == b"fmt ":
            fmt = _parse_format_chunk(buffer, payload_start, chunk_size)
        offset = payload_start + chunk_size + (chunk_size % 2)

    raise FormatError("WAV data chunk not found.")


def _parse_format_chunk(buffer: bytes, payload_start: int, chunk_size: int) -> WavFormat:
    """Decode the leading PCM fields of a `fmt ` chunk."""

    if chunk_size < 16 or payload_start + 16 > len(buffer):
        raise FormatError("WAV fmt chunk is truncated.")
    audio_format, channels, sample_rate, _byte_rate, _block_align, bits_per_sample = (
        struct.unpack_from("<HHIIHH", buffer, payload_start)
    )
    return WavFormat(
        audio_format=audio_format,
        channels=channels,
        sample_rate=sample_rate,
        bits_per_sample=bits_per_sample,
    )


def splice_wav_containers(
    containers: Sequence[WavContainer],
    *,
    verify_format: bool = True,
) -> WavContainer:
    """Join containers in order under the first container's header.

    Raises:
        NotFoundError: If no containers are given.
        FormatError: If `verify_format` is set and format parameters differ.
    """

    if not containers:
        raise NotFoundError("No WAV inputs to splice.")

    first = containers[0]
    if verify_format:
        for position, container in enumerate(containers[1:], start=1):
            if container.fmt != first.fmt:
                raise FormatError(
                    f"WAV input #{position} format {container.fmt} does not match {first.fmt}."
                )
    return WavContainer(
        header=first.header,
        data=b"".join(container.data for container in containers),
        fmt=first.fmt,
    )


def concat_wav_files(
    input_paths: Sequence[Path],
    output_path: Path,
    *,
    verify_format: bool = True,
) -> Path:
    """Splice WAV files in the given order into `output_path`.

    Raises:
        NotFoundError: If `input_paths` is empty.
        FormatError: If an input is not a WAV container or formats differ.
        OSError: On read or write failures.
    """

    if not input_paths:
        raise NotFoundError("No WAV inputs to splice.")

    containers: list[WavContainer] = []
    for path in input_paths:
        try:
            containers.append(parse_wav_container(Path(path).read_bytes()))
        except FormatError as exc:
            raise FormatError(f"{path}: {exc}") from exc

    spliced = splice_wav_containers(containers, verify_format=verify_format)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(spliced.to_bytes())
    return output_path
