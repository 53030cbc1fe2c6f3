from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import unquote, urljoin, urlparse

import requests

from midi2wav.errors import ResourceResolutionFailed
from midi2wav.resources.stager import resource_parts
from midi2wav.util.limits import MAX_RESOURCE_BYTES

_READ_CHUNK = 64 * 1024


class ResourceTransport(Protocol):
    async def fetch(self, name: str) -> bytes:
        ...


def _checked_parts(name: str) -> list[str]:
    try:
        return resource_parts(name)
    except ValueError as e:
        raise ResourceResolutionFailed(name, e) from e


class HttpTransport:
    """GETs resources relative to a base URL.

    requests is blocking, so each GET runs on a worker thread.
    """

    def __init__(self, base_url: str, *, session: Any = None, timeout: float = 30.0) -> None:
        if not base_url.endswith("/"):
            base_url += "/"
        self.base_url = base_url
        self.timeout = timeout
        self._session = session or requests.Session()

    def url_for(self, name: str) -> str:
        return urljoin(self.base_url, "/".join(_checked_parts(name)))

    async def fetch(self, name: str) -> bytes:
        url = self.url_for(name)
        return await asyncio.to_thread(self._get, name, url)

    def _get(self, name: str, url: str) -> bytes:
        try:
            response = self._session.get(url, timeout=self.timeout, stream=True)
        except requests.RequestException as e:
            raise ResourceResolutionFailed(name, e) from e
        try:
            if response.status_code != 200:
                raise ResourceResolutionFailed(name, f"HTTP {response.status_code} from {url}")
            declared = str(response.headers.get("Content-Length") or "").strip()
            if declared.isdigit() and int(declared) > MAX_RESOURCE_BYTES:
                raise ResourceResolutionFailed(name, f"{declared} bytes exceeds limit of {MAX_RESOURCE_BYTES}")
            body = bytearray()
            for piece in response.iter_content(chunk_size=_READ_CHUNK):
                body += piece
                if len(body) > MAX_RESOURCE_BYTES:
                    raise ResourceResolutionFailed(name, f"body exceeds limit of {MAX_RESOURCE_BYTES} bytes")
            return bytes(body)
        except requests.RequestException as e:
            raise ResourceResolutionFailed(name, e) from e
        finally:
            response.close()


class DirectoryTransport:
    """Reads resources from a local directory (e.g. an unpacked patch set)."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()

    def path_for(self, name: str) -> Path:
        return self.root.joinpath(*_checked_parts(name))

    async def fetch(self, name: str) -> bytes:
        path = self.path_for(name)
        return await asyncio.to_thread(self._read, name, path)

    def _read(self, name: str, path: Path) -> bytes:
        try:
            size = path.stat().st_size
            if size > MAX_RESOURCE_BYTES:
                raise ResourceResolutionFailed(name, f"{size} bytes exceeds limit of {MAX_RESOURCE_BYTES}")
            return path.read_bytes()
        except OSError as e:
            raise ResourceResolutionFailed(name, e) from e


def transport_for(base: str) -> HttpTransport | DirectoryTransport:
    """Pick a transport for a resource base location (URL or directory)."""
    base = str(base).strip()
    if not base:
        raise ValueError("resource base must not be empty")
    scheme = urlparse(base).scheme.lower()
    if scheme in ("http", "https"):
        return HttpTransport(base)
    if scheme == "file":
        return DirectoryTransport(unquote(urlparse(base).path))
    return DirectoryTransport(base)
