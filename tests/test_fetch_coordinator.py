from __future__ import annotations

import asyncio
import threading

import pytest

from _fakes import FakeTransport, MemoryStagingArea
from midi2wav.errors import ResourceResolutionFailed, StagingFailed
from midi2wav.resources.coordinator import ResourceFetchCoordinator
from midi2wav.resources.stager import ResourceStager


def _coordinator(transport: FakeTransport, area: MemoryStagingArea | None = None, **kw) -> ResourceFetchCoordinator:
    return ResourceFetchCoordinator(transport, ResourceStager(area or MemoryStagingArea()), **kw)


def test_concurrent_resolves_share_one_fetch() -> None:
    transport = FakeTransport({"piano/0.pat": b"PIANO"})
    coord = _coordinator(transport)

    async def run() -> list[bytes]:
        transport.gate = asyncio.Event()
        waiters = [asyncio.create_task(coord.resolve("piano/0.pat")) for _ in range(5)]
        await asyncio.sleep(0)
        assert coord.pending() == ["piano/0.pat"]
        transport.gate.set()
        return await asyncio.gather(*waiters)

    results = asyncio.run(run())
    assert results == [b"PIANO"] * 5
    assert transport.calls["piano/0.pat"] == 1
    assert coord.pending() == []


def test_failure_reaches_every_waiter_and_clears_entry() -> None:
    transport = FakeTransport(fail={"drum/35.pat": "HTTP 404"})
    coord = _coordinator(transport)

    async def run() -> list[object]:
        return await asyncio.gather(
            coord.resolve("drum/35.pat"),
            coord.resolve("drum/35.pat"),
            coord.resolve("drum/35.pat"),
            return_exceptions=True,
        )

    results = asyncio.run(run())
    assert transport.calls["drum/35.pat"] == 1
    assert all(isinstance(r, ResourceResolutionFailed) for r in results)
    assert all(r.name == "drum/35.pat" for r in results)
    assert results[0] is results[1] is results[2]
    assert coord.pending() == []


def test_bytes_are_staged_before_waiters_return() -> None:
    area = MemoryStagingArea()
    transport = FakeTransport({"piano/0.pat": b"PIANO"})
    coord = _coordinator(transport, area)

    async def run() -> None:
        first = asyncio.create_task(coord.resolve("piano/0.pat"))
        second = asyncio.create_task(coord.resolve("piano/0.pat"))
        await first
        assert area.files["piano/0.pat"] == b"PIANO"
        await second
        assert area.files["piano/0.pat"] == b"PIANO"

    asyncio.run(run())


def test_settled_fetch_is_not_remembered() -> None:
    transport = FakeTransport({"piano/0.pat": b"PIANO"})
    coord = _coordinator(transport)

    async def run() -> None:
        await coord.resolve("piano/0.pat")
        await coord.resolve("piano/0.pat")

    asyncio.run(run())
    assert transport.calls["piano/0.pat"] == 2


def test_staging_failure_propagates() -> None:
    area = MemoryStagingArea(fail_writes={"piano/0.pat"})
    coord = _coordinator(FakeTransport({"piano/0.pat": b"PIANO"}), area)

    with pytest.raises(StagingFailed) as ei:
        asyncio.run(coord.resolve("piano/0.pat"))
    assert ei.value.name == "piano/0.pat"
    assert coord.pending() == []


def test_unexpected_transport_error_is_wrapped() -> None:
    class Broken:
        async def fetch(self, name: str) -> bytes:
            raise ConnectionResetError("peer went away")

    coord = ResourceFetchCoordinator(Broken(), ResourceStager(MemoryStagingArea()))
    with pytest.raises(ResourceResolutionFailed) as ei:
        asyncio.run(coord.resolve("piano/0.pat"))
    assert isinstance(ei.value.__cause__, ConnectionResetError)


def test_timeout_cancels_fetch_for_all_waiters() -> None:
    transport = FakeTransport({"piano/0.pat": b"PIANO"})
    coord = _coordinator(transport)

    async def run() -> list[object]:
        transport.gate = asyncio.Event()  # never set
        patient = asyncio.create_task(coord.resolve("piano/0.pat", timeout=60))
        await asyncio.sleep(0)
        hasty = asyncio.create_task(coord.resolve("piano/0.pat", timeout=0.01))
        return await asyncio.gather(hasty, patient, return_exceptions=True)

    hasty, patient = asyncio.run(run())
    assert isinstance(hasty, ResourceResolutionFailed)
    assert "timed out" in str(hasty)
    assert isinstance(patient, ResourceResolutionFailed)
    assert "cancelled" in str(patient)
    assert coord.pending() == []
    assert transport.calls["piano/0.pat"] == 1


def test_cancel_aborts_in_flight_fetch() -> None:
    transport = FakeTransport({"piano/0.pat": b"PIANO"})
    coord = _coordinator(transport)

    async def run() -> object:
        transport.gate = asyncio.Event()
        waiter = asyncio.create_task(coord.resolve("piano/0.pat"))
        await asyncio.sleep(0)
        assert coord.cancel("piano/0.pat") is True
        assert coord.cancel("drum/35.pat") is False
        return (await asyncio.gather(waiter, return_exceptions=True))[0]

    result = asyncio.run(run())
    assert isinstance(result, ResourceResolutionFailed)
    assert coord.pending() == []


def test_staging_runs_off_the_event_loop_thread() -> None:
    area = MemoryStagingArea()
    transport = FakeTransport({"piano/0.pat": b"PIANO"})
    coord = _coordinator(transport, area)

    async def run() -> int:
        await coord.resolve("piano/0.pat")
        return threading.get_ident()

    loop_thread = asyncio.run(run())
    assert area.files == {"piano/0.pat": b"PIANO"}
    assert area.write_threads and loop_thread not in area.write_threads
