from __future__ import annotations

import sys
from array import array
from dataclasses import dataclass
from typing import Literal

from midi2wav.util.limits import CHUNK_FRAMES


SampleFormatName = Literal["s16", "u16", "s8", "u8"]


@dataclass(frozen=True)
class SampleFormat:
    name: str
    engine_code: int  # libtimidity MID_AUDIO_* value
    width: int  # bytes per sample
    typecode: str  # array.array typecode


SAMPLE_FORMATS: dict[str, SampleFormat] = {
    "s16": SampleFormat("s16", 0x8010, 2, "h"),
    "u16": SampleFormat("u16", 0x0010, 2, "H"),
    "s8": SampleFormat("s8", 0x8008, 1, "b"),
    "u8": SampleFormat("u8", 0x0008, 1, "B"),
}


def get_sample_format(name: str) -> SampleFormat:
    fmt = SAMPLE_FORMATS.get(str(name).strip().lower())
    if fmt is None:
        raise ValueError(f"unknown sample format: {name} (expected one of: {', '.join(SAMPLE_FORMATS)})")
    return fmt


@dataclass(frozen=True)
class RenderOptions:
    """Engine options fixed for the lifetime of one conversion.

    chunk_frames is the engine's render chunk in frames; one frame holds one
    sample per channel.
    """

    sample_rate: int = 44100
    channels: int = 2
    sample_format: str = "s16"
    chunk_frames: int = CHUNK_FRAMES

    def __post_init__(self) -> None:
        if not (8000 <= int(self.sample_rate) <= 192000):
            raise ValueError(f"sample_rate out of range: {self.sample_rate}")
        if self.channels not in (1, 2):
            raise ValueError(f"channels must be 1 or 2, got: {self.channels}")
        # libtimidity keeps buffer_size in a uint16
        if not (1 <= int(self.chunk_frames) <= 0xFFFF):
            raise ValueError(f"chunk_frames out of range: {self.chunk_frames}")
        get_sample_format(self.sample_format)

    @property
    def format(self) -> SampleFormat:
        return get_sample_format(self.sample_format)

    @property
    def bytes_per_frame(self) -> int:
        return self.format.width * self.channels

    @property
    def chunk_samples(self) -> int:
        return self.chunk_frames * self.channels

    @property
    def chunk_bytes(self) -> int:
        return self.chunk_frames * self.bytes_per_frame


@dataclass(frozen=True)
class AudioChunk:
    """One render step. Only the first sample_count interleaved samples of data are valid."""

    sample_count: int
    data: bytes

    @property
    def is_end(self) -> bool:
        return self.sample_count == 0


@dataclass
class ConversionResult:
    sample_rate: int
    channels: int
    samples: array
    sample_format: str = "s16"

    @property
    def frames(self) -> int:
        return len(self.samples) // self.channels

    @property
    def duration_seconds(self) -> float:
        return self.frames / float(self.sample_rate)

    def to_bytes(self) -> bytes:
        """Little-endian PCM, the layout WAV expects."""
        if sys.byteorder == "little" or self.samples.itemsize == 1:
            return self.samples.tobytes()
        swapped = array(self.samples.typecode, self.samples)
        swapped.byteswap()
        return swapped.tobytes()
