from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


def default_config_dir() -> Path:
    return Path.home() / ".config" / "midi2wav"


def default_config_path() -> Path:
    return default_config_dir() / "config.json"


_ENV_OVERRIDES = {
    "MIDI2WAV_RESOURCE_BASE": "resource_base",
    "MIDI2WAV_STAGING_DIR": "staging_dir",
    "MIDI2WAV_TIMIDITY_CFG": "timidity_cfg",
    "MIDI2WAV_LIBTIMIDITY": "library_path",
}


@dataclass
class AppConfig:
    resource_base: str | None = None  # URL or directory patches are fetched from
    staging_dir: str | None = None
    timidity_cfg: str | None = None
    library_path: str | None = None
    sample_rate: int = 44100
    channels: int = 2
    sample_format: str = "s16"
    fetch_timeout: float | None = None  # seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "resource_base": self.resource_base,
            "staging_dir": self.staging_dir,
            "timidity_cfg": self.timidity_cfg,
            "library_path": self.library_path,
            "sample_rate": self.sample_rate,
            "channels": self.channels,
            "sample_format": self.sample_format,
            "fetch_timeout": self.fetch_timeout,
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "AppConfig":
        timeout = d.get("fetch_timeout")
        return AppConfig(
            resource_base=d.get("resource_base") or None,
            staging_dir=d.get("staging_dir") or None,
            timidity_cfg=d.get("timidity_cfg") or None,
            library_path=d.get("library_path") or None,
            sample_rate=int(d.get("sample_rate") or 44100),
            channels=int(d.get("channels") or 2),
            sample_format=str(d.get("sample_format") or "s16"),
            fetch_timeout=float(timeout) if timeout is not None else None,
        )


def apply_env_overrides(cfg: AppConfig, environ: dict[str, str] | None = None) -> AppConfig:
    env = os.environ if environ is None else environ
    for key, attr in _ENV_OVERRIDES.items():
        val = env.get(key)
        if val:
            setattr(cfg, attr, val)
    return cfg


def load_config(path: Path | None = None) -> AppConfig:
    p = path or default_config_path()
    if not p.exists():
        return AppConfig()
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"config must be a mapping/object: {p}")
    return AppConfig.from_dict(data)


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    p = path or default_config_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(cfg.to_dict(), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return p
