from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from midi2wav.audio.load_cycle import LoadCycle
from midi2wav.audio.streamer import RenderStreamer
from midi2wav.engine.base import SynthesisSession
from midi2wav.errors import EngineNotReady, InvalidInput
from midi2wav.model.types import ConversionResult, RenderOptions
from midi2wav.resources.coordinator import ResourceFetchCoordinator
from midi2wav.resources.stager import ResourceStager
from midi2wav.resources.transport import ResourceTransport, transport_for
from midi2wav.util.config import AppConfig
from midi2wav.util.limits import MAX_SCORE_BYTES
from midi2wav.util.paths import default_staging_dir

logger = logging.getLogger(__name__)


def _score_bytes(data: Any) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise InvalidInput(f"expected a byte sequence, got {type(data).__name__}")
    out = bytes(data)
    if not out:
        raise InvalidInput("score is empty")
    if len(out) > MAX_SCORE_BYTES:
        raise InvalidInput(f"score is {len(out)} bytes, limit is {MAX_SCORE_BYTES}")
    return out


class MidiConverter:
    """Converts MIDI bytes to interleaved PCM samples.

    Options are fixed at construction. Concurrent ``convert`` calls on one
    converter share its fetch coordinator, so a resource two scores both miss
    is fetched once.
    """

    def __init__(
        self,
        session: SynthesisSession,
        *,
        resource_base: str | None = None,
        transport: ResourceTransport | None = None,
        sample_rate: int = 44100,
        channels: int = 2,
        sample_format: str = "s16",
        fetch_timeout: float | None = None,
    ) -> None:
        if transport is None:
            if not resource_base:
                raise ValueError("either resource_base or transport is required")
            transport = transport_for(resource_base)

        self.session = session
        self.options = RenderOptions(sample_rate=int(sample_rate), channels=int(channels), sample_format=sample_format)
        self.coordinator = ResourceFetchCoordinator(transport, ResourceStager(session.staging), timeout=fetch_timeout)
        self._load_cycle = LoadCycle(session, self.coordinator, self.options)
        self._streamer = RenderStreamer(self.options)

    @staticmethod
    def from_config(cfg: AppConfig) -> "MidiConverter":
        """Build a converter over libtimidity. Initializes the library."""
        from midi2wav.engine.libtimidity import TimiditySession
        from midi2wav.util.paths import find_default_timidity_cfg

        cfg_path = cfg.timidity_cfg or find_default_timidity_cfg()
        if not cfg_path:
            raise ValueError("no timidity.cfg configured or found (set timidity_cfg)")
        if not cfg.resource_base:
            raise ValueError("no resource base configured (set resource_base)")

        session = TimiditySession(
            Path(cfg_path).expanduser().read_text(encoding="utf-8"),
            cfg.staging_dir or default_staging_dir(),
            library=cfg.library_path,
        )
        session.init()
        return MidiConverter(
            session,
            resource_base=cfg.resource_base,
            sample_rate=cfg.sample_rate,
            channels=cfg.channels,
            sample_format=cfg.sample_format,
            fetch_timeout=cfg.fetch_timeout,
        )

    def is_ready(self) -> bool:
        return bool(self.session.is_ready())

    def close(self) -> None:
        self.session.close()

    async def convert(self, data: bytes) -> ConversionResult:
        score = _score_bytes(data)
        if not self.is_ready():
            raise EngineNotReady("synthesis engine is not initialized")

        handle = await self._load_cycle.load(score)
        samples = self._streamer.render(handle)

        result = ConversionResult(
            sample_rate=self.options.sample_rate,
            channels=self.options.channels,
            samples=samples,
            sample_format=self.options.sample_format,
        )
        logger.info("rendered %d frames (%.2fs)", result.frames, result.duration_seconds)
        return result

    def convert_sync(self, data: bytes) -> ConversionResult:
        return asyncio.run(self.convert(data))
