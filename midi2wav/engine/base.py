from __future__ import annotations

from typing import Any, Protocol

from midi2wav.model.types import AudioChunk, RenderOptions


class StagingArea(Protocol):
    """Where the engine looks for resources while parsing."""

    def ensure_directory(self, path: str) -> None:
        """Create one directory. May raise FileExistsError if it already exists."""
        ...

    def write(self, path: str, data: bytes) -> None:
        ...


class SynthesisSession(Protocol):
    """A synthesis engine. All calls are synchronous.

    Raw handles returned by ``parse`` are opaque; callers wrap them in
    ``ScoreHandle`` and must pass each one to ``release`` exactly once.
    """

    staging: StagingArea

    def is_ready(self) -> bool:
        ...

    def parse(self, data: bytes, options: RenderOptions) -> Any:
        """Return a raw handle, or raise ParseFailed."""
        ...

    def missing_resources(self, raw: Any) -> list[str]:
        ...

    def start_render(self, raw: Any) -> None:
        ...

    def render_chunk(self, raw: Any, capacity: int) -> AudioChunk:
        """Render up to ``capacity`` frames. A zero sample_count ends the stream."""
        ...

    def release(self, raw: Any) -> None:
        ...

    def close(self) -> None:
        """Shut the engine down. Handles must all be released first."""
        ...
