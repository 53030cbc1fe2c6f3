from __future__ import annotations

from typing import Any, Literal

from midi2wav.engine.base import SynthesisSession
from midi2wav.errors import HandleReleased, RenderFailed
from midi2wav.model.types import AudioChunk


HandleState = Literal["created", "started", "rendering", "drained", "released"]


class ScoreHandle:
    """Owns one parsed score inside the engine.

    created -> started -> rendering -> drained -> released. release() may be
    reached from any state and forwards to the engine exactly once.
    """

    def __init__(self, session: SynthesisSession, raw: Any) -> None:
        self._session = session
        self._raw = raw
        self.state: HandleState = "created"

    def __enter__(self) -> "ScoreHandle":
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()

    @property
    def released(self) -> bool:
        return self.state == "released"

    def _require_live(self) -> Any:
        if self.state == "released":
            raise HandleReleased("score handle was already released")
        return self._raw

    def missing_resources(self) -> list[str]:
        raw = self._require_live()
        return [str(n) for n in self._session.missing_resources(raw)]

    def start(self) -> None:
        raw = self._require_live()
        if self.state != "created":
            raise RenderFailed(f"cannot start rendering from state {self.state!r}")
        self._session.start_render(raw)
        self.state = "started"

    def read_chunk(self, capacity: int) -> AudioChunk:
        raw = self._require_live()
        if self.state not in ("started", "rendering"):
            raise RenderFailed(f"cannot read audio in state {self.state!r}")
        chunk = self._session.render_chunk(raw, capacity)
        self.state = "drained" if chunk.sample_count == 0 else "rendering"
        return chunk

    def release(self) -> None:
        if self.state == "released":
            return
        raw, self._raw = self._raw, None
        self.state = "released"
        self._session.release(raw)
