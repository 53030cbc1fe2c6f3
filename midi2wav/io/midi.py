from __future__ import annotations

import io


def score_length_seconds(data: bytes) -> float | None:
    """Playback length according to mido, or None when mido cannot read the bytes.

    Informational only; the engine decides whether a score is valid.
    """
    import mido  # type: ignore

    try:
        mf = mido.MidiFile(file=io.BytesIO(bytes(data)))
        return float(mf.length)
    except (OSError, EOFError, ValueError, KeyError, TypeError):
        return None
