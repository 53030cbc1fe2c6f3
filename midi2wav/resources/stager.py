from __future__ import annotations

from midi2wav.engine.base import StagingArea
from midi2wav.errors import StagingFailed


def resource_parts(name: str) -> list[str]:
    """Split a resource name into path segments, rejecting names that escape the staging root."""
    parts = str(name).strip().lstrip("/").split("/")
    if not parts or not parts[-1]:
        raise ValueError(f"invalid resource name: {name!r}")
    for p in parts:
        if p in ("", ".", ".."):
            raise ValueError(f"invalid resource name: {name!r}")
    return parts


class ResourceStager:
    def __init__(self, area: StagingArea) -> None:
        self.area = area

    def _mkdirp(self, name: str, folders: list[str]) -> None:
        path = ""
        for part in folders:
            path = f"{path}/{part}" if path else part
            try:
                self.area.ensure_directory(path)
            except FileExistsError:
                continue
            except OSError as e:
                raise StagingFailed(name, f"cannot create directory {path!r}: {e}") from e

    def stage(self, name: str, data: bytes) -> str:
        """Write data at name inside the staging area. Returns the staged path."""
        try:
            parts = resource_parts(name)
        except ValueError as e:
            raise StagingFailed(name, str(e)) from e

        # every directory exists before the file is touched
        self._mkdirp(name, parts[:-1])

        path = "/".join(parts)
        try:
            self.area.write(path, bytes(data))
        except OSError as e:
            raise StagingFailed(name, e) from e
        return path
