from __future__ import annotations

"""Hard limits for conversions.

CHUNK_FRAMES is the engine's fixed render chunk (frames per read). The byte
caps keep a bad input or a misbehaving resource server from exhausting memory.
"""

CHUNK_FRAMES = 16384

MAX_SCORE_BYTES = 16 * 1024 * 1024
MAX_RESOURCE_BYTES = 64 * 1024 * 1024
