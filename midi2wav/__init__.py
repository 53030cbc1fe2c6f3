"""MIDI → PCM conversion on top of libtimidity.

The engine reports which instrument patches a score needs but cannot fetch
them itself; this package fetches them (deduplicated across concurrent
conversions), stages them where the engine looks, re-parses and streams the
rendered audio into one exactly-sized buffer.
"""
from __future__ import annotations

from midi2wav.audio.converter import MidiConverter
from midi2wav.errors import (
    ConversionError,
    EngineNotReady,
    InvalidInput,
    ParseFailed,
    ResourceResolutionFailed,
    StagingFailed,
    UnresolvedAfterRetry,
)
from midi2wav.model.types import ConversionResult, RenderOptions

__all__ = [
    "ConversionError",
    "ConversionResult",
    "EngineNotReady",
    "InvalidInput",
    "MidiConverter",
    "ParseFailed",
    "RenderOptions",
    "ResourceResolutionFailed",
    "StagingFailed",
    "UnresolvedAfterRetry",
]
