from __future__ import annotations

from pathlib import Path

import pytest

from _fakes import MemoryStagingArea
from midi2wav.engine.staging import DirectoryStagingArea
from midi2wav.errors import StagingFailed
from midi2wav.resources.stager import ResourceStager, resource_parts


def test_stage_creates_intermediate_directories() -> None:
    area = MemoryStagingArea()
    path = ResourceStager(area).stage("instruments/piano/0.pat", b"abc")
    assert path == "instruments/piano/0.pat"
    assert area.mkdir_calls == ["instruments", "instruments/piano"]
    assert area.files[path] == b"abc"


def test_staging_twice_tolerates_existing_directories() -> None:
    area = MemoryStagingArea()
    stager = ResourceStager(area)
    stager.stage("drum/35.pat", b"one")
    stager.stage("drum/36.pat", b"two")
    stager.stage("drum/35.pat", b"three")
    assert area.files == {"drum/35.pat": b"three", "drum/36.pat": b"two"}


def test_directory_failure_does_not_write_file() -> None:
    area = MemoryStagingArea(fail_dirs={"locked"})
    with pytest.raises(StagingFailed) as ei:
        ResourceStager(area).stage("locked/x.pat", b"abc")
    assert ei.value.name == "locked/x.pat"
    assert area.files == {}


def test_write_failure_is_staging_failed() -> None:
    area = MemoryStagingArea(fail_writes={"x.pat"})
    with pytest.raises(StagingFailed):
        ResourceStager(area).stage("x.pat", b"abc")


@pytest.mark.parametrize("name", ["", "../etc/passwd", "a/../b.pat", "a//b.pat", "dir/"])
def test_rejects_names_outside_staging_root(name: str) -> None:
    with pytest.raises(StagingFailed):
        ResourceStager(MemoryStagingArea()).stage(name, b"x")


def test_resource_parts_strips_leading_slash() -> None:
    assert resource_parts("/piano/0.pat") == ["piano", "0.pat"]


def test_directory_staging_area_round_trip(tmp_path: Path) -> None:
    area = DirectoryStagingArea(tmp_path / "stage")
    stager = ResourceStager(area)
    stager.stage("piano/acoustic/0.pat", b"PATCH")
    stager.stage("piano/acoustic/0.pat", b"PATCH2")

    out = tmp_path / "stage" / "piano" / "acoustic" / "0.pat"
    assert out.read_bytes() == b"PATCH2"
    assert area.exists("piano/acoustic/0.pat")
    assert [p.name for p in out.parent.iterdir()] == ["0.pat"]
