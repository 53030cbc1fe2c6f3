from __future__ import annotations

import asyncio
import threading

import pytest

from _fakes import FakeSession, FakeTransport, midi_bytes
from midi2wav.audio.converter import MidiConverter
from midi2wav.errors import EngineNotReady, InvalidInput, ParseFailed, ResourceResolutionFailed


def test_scenario_two_missing_instruments() -> None:
    session = FakeSession(
        required=["piano/0.pat", "drum/35.pat"],
        chunk_counts=[16384, 16384, 4096, 0],
    )
    transport = FakeTransport({"piano/0.pat": b"piano-bytes", "drum/35.pat": b"drum-bytes!"})
    conv = MidiConverter(session, transport=transport, sample_rate=22050, channels=2)

    result = conv.convert_sync(midi_bytes())

    assert result.sample_rate == 22050
    assert result.channels == 2
    assert len(result.samples) == 36864
    assert result.frames == 18432
    assert session.staging.files == {"piano/0.pat": b"piano-bytes", "drum/35.pat": b"drum-bytes!"}
    assert session.parse_count == 2
    # discarded first parse + rendered second parse
    assert session.released == {1: 1, 2: 1}
    assert not session.live


def test_failed_fetch_keeps_sibling_for_next_call() -> None:
    session = FakeSession(required=["piano/0.pat", "drum/35.pat"])
    transport = FakeTransport({"piano/0.pat": b"P"}, fail={"drum/35.pat": "HTTP 500"})
    conv = MidiConverter(session, transport=transport)

    with pytest.raises(ResourceResolutionFailed) as ei:
        conv.convert_sync(midi_bytes())
    assert ei.value.name == "drum/35.pat"
    assert not session.live

    # caller retries after the server recovers; piano is already staged
    del transport.fail["drum/35.pat"]
    transport.payloads["drum/35.pat"] = b"D"
    result = conv.convert_sync(midi_bytes())

    assert transport.calls == {"piano/0.pat": 1, "drum/35.pat": 2}
    assert len(result.samples) == 8


def test_concurrent_conversions_fetch_shared_resource_once() -> None:
    session = FakeSession(required=["piano/0.pat"])
    transport = FakeTransport({"piano/0.pat": b"P"})
    conv = MidiConverter(session, transport=transport)

    async def run() -> list:
        transport.gate = asyncio.Event()
        jobs = [asyncio.create_task(conv.convert(midi_bytes(n))) for n in (2, 3, 4)]
        await asyncio.sleep(0)
        transport.gate.set()
        return await asyncio.gather(*jobs)

    results = asyncio.run(run())
    assert len(results) == 3
    assert transport.calls["piano/0.pat"] == 1
    assert not session.live


def test_convert_sync_from_two_threads_shares_one_fetch() -> None:
    session = FakeSession(required=["piano/0.pat"])
    transport = FakeTransport({"piano/0.pat": b"P"}, delay=0.3)
    conv = MidiConverter(session, transport=transport)
    results: list = []
    errors: list[BaseException] = []
    start = threading.Barrier(2)

    def work() -> None:
        start.wait()
        try:
            results.append(conv.convert_sync(midi_bytes()))
        except BaseException as e:
            errors.append(e)

    threads = [threading.Thread(target=work) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert errors == []
    assert len(results) == 2
    assert transport.calls["piano/0.pat"] == 1
    assert conv.coordinator.pending() == []
    assert not session.live


@pytest.mark.parametrize("bad", ["MThd", None, 42, b""])
def test_invalid_input_is_rejected_before_engine(bad: object) -> None:
    session = FakeSession()
    conv = MidiConverter(session, transport=FakeTransport())
    with pytest.raises(InvalidInput):
        conv.convert_sync(bad)  # type: ignore[arg-type]
    assert session.parse_count == 0


def test_accepts_bytearray_and_memoryview() -> None:
    conv = MidiConverter(FakeSession(), transport=FakeTransport())
    data = midi_bytes()
    assert len(conv.convert_sync(bytearray(data)).samples) == 8
    assert len(conv.convert_sync(memoryview(data)).samples) == 8


def test_engine_not_ready() -> None:
    session = FakeSession(ready=False)
    conv = MidiConverter(session, transport=FakeTransport())
    assert not conv.is_ready()
    with pytest.raises(EngineNotReady):
        conv.convert_sync(midi_bytes())
    assert session.parse_count == 0


def test_parse_failure_propagates() -> None:
    conv = MidiConverter(FakeSession(), transport=FakeTransport())
    with pytest.raises(ParseFailed):
        conv.convert_sync(b"RIFF....WAVE")


def test_requires_transport_or_resource_base() -> None:
    with pytest.raises(ValueError):
        MidiConverter(FakeSession())


def test_invalid_options_rejected() -> None:
    with pytest.raises(ValueError):
        MidiConverter(FakeSession(), transport=FakeTransport(), channels=6)
    with pytest.raises(ValueError):
        MidiConverter(FakeSession(), transport=FakeTransport(), sample_format="f32")
