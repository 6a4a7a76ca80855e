# core/midi_encoder.py
"""
Melody -> Standard MIDI File (format 0, one track, 128 ticks/quarter).

Track layout, all at tick 0 first:
    track name, tempo (500000 us/qn), program change
then Note On / Note Off pairs ordered by tick, then End of Track.

The clock is fixed at 120 BPM: note times are seconds, 1 quarter = 0.5s,
so 1 second = 256 ticks. Changing the tempo means re-deriving
TICKS_PER_SECOND as well.
"""
from __future__ import annotations

import base64
import logging
import math
import re
from pathlib import Path
from typing import List, Optional, Tuple, Union

from core.melody_models import Melody, MelodyType, Note
from core.notation import duration_to_ticks, is_known_duration, note_to_midi
from core.smf import (
    DeltaEvent,
    MidiEvent,
    build_header_chunk,
    build_track_chunk,
    end_of_track_event,
    note_off,
    note_on,
    program_change,
    tempo_event,
    to_delta_events,
    track_name_event,
)
from core.utils import safe_filename

logger = logging.getLogger(__name__)

TICKS_PER_QUARTER = 128
TICKS_PER_SECOND = TICKS_PER_QUARTER * 2
TEMPO_US_PER_QUARTER = 500_000
DEFAULT_VELOCITY = 0.8
DRUM_CHANNEL = 9

DATA_URI_PREFIX = "data:audio/midi;base64,"

# type -> (GM program, channel)
_INSTRUMENTS = {
    MelodyType.bass.value: (35, 0),
    MelodyType.arpeggio.value: (81, 0),
    MelodyType.lead.value: (82, 0),
    MelodyType.riff.value: (30, 0),
    MelodyType.drums.value: (0, DRUM_CHANNEL),
}

_WS_RE = re.compile(r"\s+")


def instrument_for(melody_type: Optional[str]) -> Tuple[int, int]:
    """(program, channel); unknown types play as piano on channel 0."""
    if isinstance(melody_type, MelodyType):
        melody_type = melody_type.value
    return _INSTRUMENTS.get(melody_type or "", (0, 0))


def seconds_to_ticks(seconds: float) -> int:
    # half-up rounding, times are never negative
    return int(math.floor(seconds * TICKS_PER_SECOND + 0.5))


def velocity_to_byte(velocity: Optional[float]) -> int:
    # 0 counts as unset, a zero Note On would read as a Note Off
    v = velocity or DEFAULT_VELOCITY
    return max(0, min(127, int(math.floor(v * 127))))


def _note_events(note: Note, channel: int) -> Tuple[MidiEvent, MidiEvent]:
    number = note_to_midi(note.note)
    if not is_known_duration(note.duration):
        logger.debug("Unknown duration %r for %s, using a quarter note", note.duration, note.note)
    start = seconds_to_ticks(note.time)
    end = start + duration_to_ticks(note.duration, TICKS_PER_QUARTER)
    return (
        MidiEvent(start, note_on(channel, number, velocity_to_byte(note.velocity))),
        MidiEvent(end, note_off(channel, number)),
    )


def build_events(melody: Melody) -> List[MidiEvent]:
    """Absolute-tick event list, header events first, notes stable-sorted by tick."""
    program, channel = instrument_for(melody.type)

    header = [
        MidiEvent(0, track_name_event(melody.name)),
        MidiEvent(0, tempo_event(TEMPO_US_PER_QUARTER)),
        MidiEvent(0, program_change(channel, program)),
    ]

    notes: List[MidiEvent] = []
    for n in melody.notes:
        notes.extend(_note_events(n, channel))

    # sorted() is stable: ties keep insertion order (on before off of the same note)
    notes = sorted(notes, key=lambda ev: ev.tick)
    return header + notes


def build_delta_events(melody: Melody) -> List[DeltaEvent]:
    events = to_delta_events(build_events(melody))
    events.append(DeltaEvent(0, end_of_track_event()))
    return events


def encode_melody(melody: Melody) -> bytes:
    """Complete SMF bytes for one melody."""
    header = build_header_chunk(0, 1, TICKS_PER_QUARTER)
    track = build_track_chunk(build_delta_events(melody))
    logger.debug("Encoded %r: %d notes, %d bytes", melody.name, len(melody.notes), len(header) + len(track))
    return header + track


def to_data_uri(midi_bytes: bytes) -> str:
    return DATA_URI_PREFIX + base64.b64encode(midi_bytes).decode("ascii")


def melody_to_data_uri(melody: Melody) -> str:
    return to_data_uri(encode_melody(melody))


def midi_filename(name: str) -> str:
    """'Disco Bassline' -> 'Disco_Bassline.mid'"""
    stem = safe_filename(_WS_RE.sub("_", name or ""))
    return f"{stem or 'melody'}.mid"


def write_midi(melody: Melody, out_path: Union[str, Path]) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(encode_melody(melody))
    return out_path.resolve()
