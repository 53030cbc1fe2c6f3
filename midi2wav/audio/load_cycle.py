from __future__ import annotations

import asyncio
import logging

from midi2wav.engine.base import SynthesisSession
from midi2wav.engine.handle import ScoreHandle
from midi2wav.errors import ParseFailed, UnresolvedAfterRetry
from midi2wav.model.types import RenderOptions
from midi2wav.resources.coordinator import ResourceFetchCoordinator

logger = logging.getLogger(__name__)


class LoadCycle:
    """parse -> discover missing -> resolve all -> reparse.

    The engine cannot take new resources into a song it already parsed, so a
    score that was missing anything is parsed a second time. There is exactly
    one resolve pass; a second parse that is still missing resources fails.
    """

    def __init__(self, session: SynthesisSession, coordinator: ResourceFetchCoordinator, options: RenderOptions) -> None:
        self.session = session
        self.coordinator = coordinator
        self.options = options

    def _parse(self, data: bytes) -> ScoreHandle:
        raw = self.session.parse(data, self.options)
        if raw is None:
            raise ParseFailed("engine returned no score")
        return ScoreHandle(self.session, raw)

    def _missing(self, handle: ScoreHandle) -> list[str]:
        try:
            # keep engine order, drop repeats
            return list(dict.fromkeys(handle.missing_resources()))
        except BaseException:
            handle.release()
            raise

    async def _resolve_all(self, names: list[str]) -> None:
        results = await asyncio.gather(
            *(self.coordinator.resolve(n) for n in names),
            return_exceptions=True,
        )
        for r in results:
            if isinstance(r, BaseException):
                raise r

    async def load(self, data: bytes) -> ScoreHandle:
        handle = self._parse(data)
        missing = self._missing(handle)
        if not missing:
            return handle

        logger.info("score is missing %d resource(s): %s", len(missing), ", ".join(missing))
        with handle:
            await self._resolve_all(missing)

        handle = self._parse(data)
        still_missing = self._missing(handle)
        if still_missing:
            handle.release()
            raise UnresolvedAfterRetry(still_missing)
        return handle
