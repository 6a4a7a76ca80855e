from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from core.config import get_settings
from core.generators import generate_style, list_styles
from core.melody_models import Melody
from core.midi_encoder import encode_melody, midi_filename, to_data_uri, write_midi
from core.notation import InvalidNote
from core.smf import InvalidInput
import core.synthesizer as synth  # IMPORTANT: allow monkeypatch in tests


# exit codes (keep stable)
EXIT_OK = 0
EXIT_ENCODE_FAILED = 2
EXIT_BAD_ARGS = 5


def _print_err(msg: str) -> None:
    print(msg, file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="melodygen", description="melody-midi CLI (generate / encode / render)")
    sub = p.add_subparsers(dest="cmd", required=True)

    # ------------------------------------------------------------
    # generate: style -> one .mid per part
    # ------------------------------------------------------------
    g = sub.add_parser("generate", help="Generate every part of a style and write .mid files")
    g.add_argument("--style", default="synthwave-disco", choices=list_styles(), help="Musical style")
    g.add_argument("--bars", type=int, default=None, help="Bar count (default: DEFAULT_BARS)")
    g.add_argument("--seed", type=int, default=None, help="Random seed for reproducible output")
    g.add_argument("--out-dir", dest="out_dir", default=".", help="Output directory")
    g.add_argument("--save-json", dest="save_json", action="store_true", help="Also write <name>.json next to each .mid")

    # ------------------------------------------------------------
    # encode: melody.json -> .mid (or data URI)
    # ------------------------------------------------------------
    e = sub.add_parser("encode", help="Encode a melody JSON file to MIDI")
    e.add_argument("melody", type=str, help="Path to melody JSON")
    e.add_argument("--out", type=str, default="", help="Output .mid path (default: <melody name>.mid next to input)")
    e.add_argument("--data-uri", dest="data_uri", action="store_true", help="Print a data:audio/midi URI instead of writing a file")

    # ------------------------------------------------------------
    # render: melody.json... -> preview WAV
    # ------------------------------------------------------------
    r = sub.add_parser("render", help="Render one or more melody JSON files to a WAV preview")
    r.add_argument("melodies", nargs="+", type=str, help="Paths to melody JSON")
    r.add_argument("--out", type=str, default="preview.wav", help="Output .wav path")
    r.add_argument("--sample-rate", dest="sample_rate", type=int, default=None, help="Sample rate (default: SAMPLE_RATE)")

    return p


def _read_json(path: Path) -> dict[str, Any]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except Exception as e:
        raise ValueError(f"Invalid JSON: {path} ({e})") from e


def _load_melody(path: Path) -> Melody:
    if not path.exists() or not path.is_file():
        raise FileNotFoundError(f"melody not found: {path}")
    try:
        return Melody.model_validate(_read_json(path))
    except ValidationError as e:
        raise ValueError(f"Invalid melody: {path}\n{e}") from e


# -------------------------------
# Commands
# -------------------------------
def cmd_generate(args: argparse.Namespace) -> int:
    s = get_settings()
    bars = s.default_bars if args.bars is None else int(args.bars)
    if not 1 <= bars <= s.max_bars:
        _print_err(f"--bars must be within 1-{s.max_bars}")
        return EXIT_BAD_ARGS

    out_dir = Path(args.out_dir).resolve()
    try:
        melodies = generate_style(args.style, bars, seed=args.seed)
        for m in melodies:
            path = write_midi(m, out_dir / midi_filename(m.name))
            print(f"{path} ({len(m.notes)} notes)")
            if args.save_json:
                json_path = path.with_suffix(".json")
                json_path.write_text(m.model_dump_json(indent=2), encoding="utf-8")
        return EXIT_OK
    except (InvalidNote, InvalidInput) as e:
        _print_err(f"Encode failed: {e}")
        return EXIT_ENCODE_FAILED


def cmd_encode(args: argparse.Namespace) -> int:
    in_path = Path(args.melody).resolve()
    try:
        melody = _load_melody(in_path)
    except (FileNotFoundError, ValueError) as e:
        _print_err(str(e))
        return EXIT_BAD_ARGS

    try:
        if args.data_uri:
            print(to_data_uri(encode_melody(melody)))
            return EXIT_OK

        out_path = Path(args.out).resolve() if args.out else in_path.with_name(midi_filename(melody.name))
        print(str(write_midi(melody, out_path)))
        return EXIT_OK
    except (InvalidNote, InvalidInput) as e:
        _print_err(f"Encode failed: {e}")
        return EXIT_ENCODE_FAILED


def cmd_render(args: argparse.Namespace) -> int:
    s = get_settings()
    sample_rate = s.sample_rate if args.sample_rate is None else int(args.sample_rate)

    try:
        melodies = [_load_melody(Path(p).resolve()) for p in args.melodies]
    except (FileNotFoundError, ValueError) as e:
        _print_err(str(e))
        return EXIT_BAD_ARGS

    try:
        out_path = synth.melodies_to_wav(
            melodies, Path(args.out), sample_rate=sample_rate, max_seconds=s.max_render_seconds
        )
    except ValueError as e:
        _print_err(f"Render failed: {e}")
        return EXIT_ENCODE_FAILED

    print(str(out_path))
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "generate":
        return cmd_generate(args)
    if args.cmd == "encode":
        return cmd_encode(args)
    if args.cmd == "render":
        return cmd_render(args)

    _print_err("Unknown command.")
    return EXIT_BAD_ARGS


if __name__ == "__main__":
    raise SystemExit(main())
