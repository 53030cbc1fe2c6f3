from __future__ import annotations

import sys
from array import array

from midi2wav.engine.handle import ScoreHandle
from midi2wav.errors import RenderFailed
from midi2wav.model.types import AudioChunk, RenderOptions


class RenderStreamer:
    """Drains a resolved score into one contiguous sample buffer.

    Chunks are fixed-capacity but only their valid prefix is kept, so the
    result holds exactly the sum of reported sample counts. The handle is
    released when rendering ends, on success or failure.
    """

    def __init__(self, options: RenderOptions) -> None:
        self.options = options

    def _valid_prefix(self, chunk: AudioChunk) -> bytes:
        n = int(chunk.sample_count)
        if n < 0 or n > self.options.chunk_samples:
            raise RenderFailed(f"engine reported {n} samples for a chunk of {self.options.chunk_samples}")
        size = n * self.options.format.width
        if len(chunk.data) < size:
            raise RenderFailed(f"engine reported {n} samples but returned {len(chunk.data)} bytes")
        return bytes(chunk.data[:size])

    def render(self, handle: ScoreHandle) -> array:
        fmt = self.options.format
        with handle:
            handle.start()
            pieces: list[bytes] = []
            total = 0
            while True:
                chunk = handle.read_chunk(self.options.chunk_frames)
                if chunk.is_end:
                    break
                pieces.append(self._valid_prefix(chunk))
                total += chunk.sample_count

            samples = array(fmt.typecode)
            samples.frombytes(b"".join(pieces))
            if sys.byteorder == "big" and fmt.width > 1:
                # engine output is little-endian
                samples.byteswap()
        if len(samples) != total:
            raise RenderFailed(f"assembled {len(samples)} samples, expected {total}")
        return samples
