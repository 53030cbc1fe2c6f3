from __future__ import annotations

"""ctypes binding to libtimidity.

Needs a libtimidity build that exports the load-request API
(mid_get_load_request_count / mid_get_load_request), which lists the patch
files a song referenced but could not open.
"""

import ctypes
import ctypes.util
import logging
from pathlib import Path

from midi2wav.engine.staging import DirectoryStagingArea
from midi2wav.errors import ParseFailed
from midi2wav.model.types import AudioChunk, RenderOptions

logger = logging.getLogger(__name__)


class _MidSongOptions(ctypes.Structure):
    _fields_ = [
        ("rate", ctypes.c_int32),
        ("format", ctypes.c_uint16),
        ("channels", ctypes.c_uint8),
        ("buffer_size", ctypes.c_uint16),
    ]


def find_libtimidity(explicit: str | None = None) -> str | None:
    if explicit:
        return str(Path(explicit).expanduser())
    return ctypes.util.find_library("timidity")


def _bind(lib: ctypes.CDLL) -> ctypes.CDLL:
    vp = ctypes.c_void_p

    lib.mid_init.argtypes = [ctypes.c_char_p]
    lib.mid_init.restype = ctypes.c_int
    lib.mid_exit.argtypes = []
    lib.mid_exit.restype = None

    lib.mid_istream_open_mem.argtypes = [vp, ctypes.c_size_t]
    lib.mid_istream_open_mem.restype = vp
    lib.mid_istream_close.argtypes = [vp]
    lib.mid_istream_close.restype = ctypes.c_int

    lib.mid_song_load.argtypes = [vp, ctypes.POINTER(_MidSongOptions)]
    lib.mid_song_load.restype = vp
    lib.mid_song_start.argtypes = [vp]
    lib.mid_song_start.restype = None
    lib.mid_song_read_wave.argtypes = [vp, vp, ctypes.c_size_t]
    lib.mid_song_read_wave.restype = ctypes.c_size_t
    lib.mid_song_free.argtypes = [vp]
    lib.mid_song_free.restype = None

    lib.mid_get_load_request_count.argtypes = [vp]
    lib.mid_get_load_request_count.restype = ctypes.c_int
    lib.mid_get_load_request.argtypes = [vp, ctypes.c_int]
    lib.mid_get_load_request.restype = ctypes.c_char_p
    return lib


class TimiditySession:
    """libtimidity as a SynthesisSession.

    The given timidity.cfg text is written into the staging directory with a
    leading ``dir`` line, so patch names the song reports resolve to files
    under that directory.
    """

    def __init__(self, timidity_cfg: str, staging_dir: str | Path, *, library: str | None = None) -> None:
        self.staging = DirectoryStagingArea(staging_dir)
        self._cfg_text = timidity_cfg
        self._library = library
        self._lib: ctypes.CDLL | None = None
        self._ready = False
        # raw song pointer -> options it was loaded with
        self._songs: dict[int, RenderOptions] = {}

    @property
    def config_path(self) -> Path:
        return self.staging.root / "timidity.cfg"

    def init(self) -> None:
        if self._ready:
            return
        path = find_libtimidity(self._library)
        if not path:
            raise RuntimeError("libtimidity not found (set library_path or MIDI2WAV_LIBTIMIDITY)")
        lib = _bind(ctypes.CDLL(path))

        self.config_path.write_text(f"dir {self.staging.root}\n{self._cfg_text}", encoding="utf-8")
        result = lib.mid_init(str(self.config_path).encode("utf-8"))
        if result != 0:
            raise RuntimeError(f"failed to initialize libtimidity (mid_init returned {result})")

        self._lib = lib
        self._ready = True
        logger.info("libtimidity ready (%s, staging in %s)", path, self.staging.root)

    def is_ready(self) -> bool:
        return self._ready

    def _require_lib(self) -> ctypes.CDLL:
        if self._lib is None:
            raise RuntimeError("libtimidity is not initialized")
        return self._lib

    def parse(self, data: bytes, options: RenderOptions) -> int:
        lib = self._require_lib()
        opts = _MidSongOptions(
            rate=int(options.sample_rate),
            format=options.format.engine_code,
            channels=int(options.channels),
            buffer_size=int(options.chunk_frames),
        )
        buf = ctypes.create_string_buffer(bytes(data), len(data))
        stream = lib.mid_istream_open_mem(ctypes.cast(buf, ctypes.c_void_p), len(data))
        if not stream:
            raise ParseFailed("could not open an input stream over the score bytes")
        try:
            song = lib.mid_song_load(stream, ctypes.byref(opts))
        finally:
            lib.mid_istream_close(stream)
        if not song:
            raise ParseFailed("failed to load MIDI file")
        self._songs[song] = options
        return song

    def missing_resources(self, raw: int) -> list[str]:
        lib = self._require_lib()
        count = lib.mid_get_load_request_count(raw)
        names: list[str] = []
        for i in range(count):
            name = lib.mid_get_load_request(raw, i)
            if name:
                names.append(name.decode("utf-8"))
        return names

    def start_render(self, raw: int) -> None:
        self._require_lib().mid_song_start(raw)

    def render_chunk(self, raw: int, capacity: int) -> AudioChunk:
        lib = self._require_lib()
        options = self._songs[raw]
        size = int(capacity) * options.bytes_per_frame
        buf = ctypes.create_string_buffer(size)
        byte_count = lib.mid_song_read_wave(raw, ctypes.cast(buf, ctypes.c_void_p), size)
        return AudioChunk(sample_count=byte_count // options.format.width, data=buf.raw[:byte_count])

    def release(self, raw: int) -> None:
        self._songs.pop(raw, None)
        self._require_lib().mid_song_free(raw)

    def close(self) -> None:
        if self._lib is not None and self._ready:
            self._lib.mid_exit()
        self._ready = False
