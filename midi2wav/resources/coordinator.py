from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from dataclasses import dataclass

from midi2wav.errors import ConversionError, ResourceResolutionFailed
from midi2wav.resources.stager import ResourceStager
from midi2wav.resources.transport import ResourceTransport

logger = logging.getLogger(__name__)


@dataclass
class _InFlight:
    """One fetch, owned by the event loop that started it.

    ``future`` is thread-safe, so callers on other loops (other threads
    running ``convert_sync``) can wait on it too.
    """

    future: concurrent.futures.Future
    loop: asyncio.AbstractEventLoop
    task: asyncio.Task | None = None

    def cancel(self) -> None:
        if self.task is not None and not self.task.done():
            self.loop.call_soon_threadsafe(self.task.cancel)


class ResourceFetchCoordinator:
    """Fetches each resource at most once at a time.

    Concurrent ``resolve`` calls for the same name share one in-flight fetch
    and see the same bytes or the same failure, whichever thread or event
    loop they run on. A fetch stages its bytes before it settles, so by the
    time any waiter returns the resource is already where the engine looks.
    Entries exist only while a fetch is in flight; nothing is remembered
    after it settles.
    """

    def __init__(self, transport: ResourceTransport, stager: ResourceStager, *, timeout: float | None = None) -> None:
        self._transport = transport
        self._stager = stager
        self.timeout = timeout
        self._pending: dict[str, _InFlight] = {}
        self._lock = threading.Lock()

    def pending(self) -> list[str]:
        with self._lock:
            return sorted(self._pending)

    def cancel(self, name: str) -> bool:
        """Abort an in-flight fetch. Every waiter on it fails with ResourceResolutionFailed."""
        with self._lock:
            fetch = self._pending.get(name)
        if fetch is None or fetch.future.done():
            return False
        fetch.cancel()
        return True

    def _register(self, name: str) -> _InFlight:
        with self._lock:
            fetch = self._pending.get(name)
            if fetch is not None:
                logger.debug("joining in-flight fetch for %s", name)
                return fetch
            loop = asyncio.get_running_loop()
            fetch = _InFlight(future=concurrent.futures.Future(), loop=loop)
            fetch.task = loop.create_task(self._fetch_and_stage(name), name=f"fetch:{name}")
            fetch.task.add_done_callback(lambda t: self._settle(name, fetch, t))
            self._pending[name] = fetch
            logger.debug("fetching %s", name)
            return fetch

    def _settle(self, name: str, fetch: _InFlight, task: asyncio.Task) -> None:
        # the entry is gone before any waiter sees the outcome
        with self._lock:
            if self._pending.get(name) is fetch:
                del self._pending[name]
        if task.cancelled():
            fetch.future.cancel()
        elif task.exception() is not None:
            fetch.future.set_exception(task.exception())
        else:
            fetch.future.set_result(task.result())

    async def _fetch_and_stage(self, name: str) -> bytes:
        try:
            data = await self._transport.fetch(name)
            await asyncio.to_thread(self._stager.stage, name, data)
            logger.info("staged %s (%d bytes)", name, len(data))
            return data
        except ConversionError as e:
            logger.warning("%s", e)
            raise
        except Exception as e:
            logger.warning("fetch of %s failed: %s", name, e)
            raise ResourceResolutionFailed(name, e) from e

    async def resolve(self, name: str, *, timeout: float | None = None) -> bytes:
        fetch = self._register(name)
        limit = self.timeout if timeout is None else timeout
        # shielded so one waiter giving up never cancels the shared future
        waiter = asyncio.shield(asyncio.wrap_future(fetch.future))
        try:
            if limit is None:
                return await waiter
            return await asyncio.wait_for(waiter, limit)
        except asyncio.TimeoutError:
            fetch.cancel()
            raise ResourceResolutionFailed(name, f"timed out after {limit:g}s") from None
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if fetch.future.cancelled() and (current is None or not current.cancelling()):
                raise ResourceResolutionFailed(name, "fetch cancelled") from None
            raise
