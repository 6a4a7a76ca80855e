"""
Shared musical vocabulary: note names and duration tokens.

Both the MIDI encoder and the preview renderer speak this vocabulary.
Everything assumes the fixed 120 BPM clock (quarter note = 0.5s).
"""
from __future__ import annotations

import re
from typing import Tuple

NOTE_NAMES: Tuple[str, ...] = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

_NOTE_RE = re.compile(r"^([A-G]#?)(-?\d+)$")

# token -> quarter notes
_DURATION_QUARTERS = {
    "2n": 2.0,
    "4n": 1.0,
    "4n.": 1.5,
    "8n": 0.5,
    "16n": 0.25,
}

SECONDS_PER_QUARTER = 0.5


class InvalidNote(ValueError):
    """Note name is not <letter>[#]<octave> with a chromatic letter."""


def parse_note(name: str) -> Tuple[int, int]:
    """'C#4' -> (1, 4). Raises InvalidNote."""
    if not isinstance(name, str):
        raise InvalidNote(f"Note name must be a string, got {type(name).__name__}")
    m = _NOTE_RE.match(name.strip())
    if not m or m.group(1) not in NOTE_NAMES:
        raise InvalidNote(f"Invalid note name: {name!r}")
    return NOTE_NAMES.index(m.group(1)), int(m.group(2))


def note_to_midi(name: str) -> int:
    index, octave = parse_note(name)
    number = index + (octave + 1) * 12
    if not 0 <= number <= 127:
        raise InvalidNote(f"Note {name!r} is outside the MIDI range (got {number})")
    return number


def note_to_frequency(name: str) -> float:
    """A4 = 440 Hz, equal temperament."""
    index, octave = parse_note(name)
    return 440.0 * 2 ** ((index - 9) / 12 + (octave - 4))


def is_known_duration(token: str) -> bool:
    return token in _DURATION_QUARTERS


def duration_to_ticks(token: str, ticks_per_quarter: int = 128) -> int:
    # unknown tokens count as a quarter note
    quarters = _DURATION_QUARTERS.get(token, 1.0)
    return int(ticks_per_quarter * quarters)


def duration_to_seconds(token: str) -> float:
    return _DURATION_QUARTERS.get(token, 1.0) * SECONDS_PER_QUARTER
