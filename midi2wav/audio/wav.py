from __future__ import annotations

import wave
from pathlib import Path

from midi2wav.model.types import ConversionResult

WAV_FORMATS = ("s16", "u8")


def write_wav(path: Path, result: ConversionResult) -> Path:
    """Write a conversion result as PCM WAV. Only s16 and u8 map onto WAV sample widths."""
    if result.sample_format not in WAV_FORMATS:
        raise ValueError(f"WAV output needs s16 or u8 samples, got: {result.sample_format}")
    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(int(result.channels))
        wf.setsampwidth(result.samples.itemsize)
        wf.setframerate(int(result.sample_rate))
        wf.writeframes(result.to_bytes())
    return path
