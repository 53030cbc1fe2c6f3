from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path


@dataclass
class DoctorResult:
    ok: bool
    notes: list[str]


def _doctor(cfg) -> DoctorResult:
    from midi2wav.engine.libtimidity import find_libtimidity
    from midi2wav.util.paths import find_default_timidity_cfg

    notes: list[str] = []
    ok = True

    lib = find_libtimidity(cfg.library_path)
    if lib:
        notes.append(f"libtimidity: OK ({lib})")
    else:
        ok = False
        notes.append("libtimidity: MISSING (needed for MIDI→PCM renders)")

    cfg_path = cfg.timidity_cfg or find_default_timidity_cfg()
    if cfg_path and Path(cfg_path).expanduser().exists():
        notes.append(f"timidity.cfg: OK ({cfg_path})")
    else:
        ok = False
        notes.append("timidity.cfg: MISSING (set timidity_cfg or MIDI2WAV_TIMIDITY_CFG)")

    if cfg.resource_base:
        notes.append(f"resource base: {cfg.resource_base}")
    else:
        ok = False
        notes.append("resource base: NOT SET (set resource_base or MIDI2WAV_RESOURCE_BASE)")

    notes.append(f"python: {sys.version.split()[0]}")
    notes.append(f"platform: {sys.platform}")

    return DoctorResult(ok=ok, notes=notes)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="midi2wav",
        add_help=True,
        formatter_class=argparse.RawTextHelpFormatter,
        description="midi2wav: render MIDI to PCM with libtimidity, fetching missing patches on demand\n",
    )

    p.add_argument("--version", action="store_true", help="Print version and exit.")
    p.add_argument("--config", default=None, help="Config file (.json, .yaml). Default: ~/.config/midi2wav/config.json")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")

    sub = p.add_subparsers(dest="cmd")
    sub.add_parser("doctor", help="Check for libtimidity, timidity.cfg and a resource base.")
    sub.add_parser("paths", help="Print config, staging and timidity.cfg locations.")

    r = sub.add_parser("render", help="Render a MIDI file to WAV.")
    r.add_argument("input", help="Path to a MIDI file")
    r.add_argument("-o", "--out", default=None, help="Output WAV (default: <input>.wav)")
    r.add_argument("--resource-base", dest="resource_base", default=None, help="URL or directory patches are fetched from")
    r.add_argument("--staging-dir", dest="staging_dir", default=None, help="Directory fetched patches are staged in")
    r.add_argument("--timidity-cfg", dest="timidity_cfg", default=None, help="timidity.cfg to load")
    r.add_argument("--library", dest="library_path", default=None, help="Path to libtimidity")
    r.add_argument("--sample-rate", dest="sample_rate", type=int, default=None)
    r.add_argument("--channels", type=int, choices=(1, 2), default=None)
    r.add_argument("--timeout", dest="fetch_timeout", type=float, default=None, help="Per-resource fetch timeout (seconds)")

    return p


def _load_cfg(args: argparse.Namespace):
    from midi2wav.util.config import apply_env_overrides, load_config

    cfg = apply_env_overrides(load_config(Path(args.config).expanduser() if args.config else None))
    for attr in ("resource_base", "staging_dir", "timidity_cfg", "library_path", "sample_rate", "channels", "fetch_timeout"):
        val = getattr(args, attr, None)
        if val is not None:
            setattr(cfg, attr, val)
    return cfg


def _render(args: argparse.Namespace) -> None:
    from midi2wav.audio.converter import MidiConverter
    from midi2wav.audio.wav import WAV_FORMATS, write_wav
    from midi2wav.errors import ConversionError
    from midi2wav.io.midi import score_length_seconds

    inp = Path(args.input).expanduser()
    if not inp.exists():
        raise SystemExit(f"ERROR: input not found: {inp}")
    out = Path(args.out).expanduser() if args.out else inp.with_suffix(".wav")

    cfg = _load_cfg(args)
    if cfg.sample_format not in WAV_FORMATS:
        raise SystemExit(f"ERROR: WAV output needs sample_format {' or '.join(WAV_FORMATS)}, got: {cfg.sample_format}")
    try:
        converter = MidiConverter.from_config(cfg)
    except (ValueError, RuntimeError, OSError) as e:
        raise SystemExit(f"ERROR: {e}")

    try:
        data = inp.read_bytes()
        expected = score_length_seconds(data)
        if expected is not None:
            logging.getLogger("midi2wav").info("score length %.2fs", expected)

        try:
            result = converter.convert_sync(data)
        except ConversionError as e:
            raise SystemExit(f"ERROR: {e}")
    finally:
        converter.close()

    write_wav(out, result)
    print(f"wrote {out} ({result.duration_seconds:.2f}s, {result.sample_rate} Hz, {result.channels} ch)")


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)

    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if getattr(args, "version", False):
        try:
            from importlib.metadata import version

            v = version("midi2wav")
        except Exception:
            v = "0.0.0"
        print(f"midi2wav {v}")
        return

    if args.cmd == "doctor":
        res = _doctor(_load_cfg(args))
        status = "OK" if res.ok else "MISSING_DEPS"
        print(f"midi2wav doctor: {status}")
        for n in res.notes:
            print(f"- {n}")
        if not res.ok:
            print("\nlibtimidity must be built with the load-request API (mid_get_load_request_count).")
        return

    if args.cmd == "paths":
        from midi2wav.util.config import default_config_path
        from midi2wav.util.paths import default_staging_dir, default_timidity_cfg_paths

        print(f"cwd: {os.getcwd()}")
        print(f"config: {default_config_path()}")
        print(f"staging: {default_staging_dir()}")
        for pth in default_timidity_cfg_paths():
            print(f"timidity.cfg candidate: {pth}")
        return

    if args.cmd == "render":
        _render(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
