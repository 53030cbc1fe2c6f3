from __future__ import annotations

import os
import sys
from pathlib import Path


def app_data_dir() -> Path:
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA") or (Path.home() / "AppData" / "Local")
        return Path(base) / "midi2wav"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "midi2wav"
    base = os.environ.get("XDG_DATA_HOME") or (Path.home() / ".local" / "share")
    return Path(base) / "midi2wav"


def default_staging_dir() -> Path:
    env = os.environ.get("MIDI2WAV_STAGING_DIR")
    if env:
        return Path(env).expanduser()
    return app_data_dir() / "instruments"


def default_timidity_cfg_paths() -> list[str]:
    paths: list[str] = []

    env_cfg = os.environ.get("MIDI2WAV_TIMIDITY_CFG")
    if env_cfg:
        paths.append(env_cfg)

    paths.append(str(app_data_dir() / "timidity.cfg"))

    if sys.platform == "win32":
        paths.append(r"C:\timidity\timidity.cfg")
        return paths

    if sys.platform == "darwin":
        paths.extend(
            [
                "/opt/homebrew/etc/timidity.cfg",
                "/usr/local/etc/timidity.cfg",
            ]
        )
        return paths

    # Linux / other Unix
    paths.extend(
        [
            "/etc/timidity/timidity.cfg",
            "/etc/timidity.cfg",
            "/usr/share/timidity/timidity.cfg",
            "/usr/local/share/timidity/timidity.cfg",
        ]
    )
    return paths


def find_default_timidity_cfg() -> str | None:
    for p in default_timidity_cfg_paths():
        if Path(p).expanduser().exists():
            return str(Path(p).expanduser())
    return None
