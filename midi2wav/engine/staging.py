from __future__ import annotations

import os
import tempfile
from pathlib import Path


class DirectoryStagingArea:
    """Staging area backed by a real directory (the one timidity.cfg points at)."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, path: str) -> Path:
        return self.root.joinpath(*[p for p in path.split("/") if p])

    def ensure_directory(self, path: str) -> None:
        self.path_for(path).mkdir(exist_ok=True)

    def exists(self, path: str) -> bool:
        return self.path_for(path).exists()

    def write(self, path: str, data: bytes) -> None:
        out = self.path_for(path)
        # write next to the target then rename, so the engine never sees half a patch
        fd, tmp = tempfile.mkstemp(prefix=f".{out.name}.", suffix=".part", dir=str(out.parent))
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            Path(tmp).replace(out)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
