# core/smf.py
"""
Standard MIDI File byte codec (write side only).

- VLQ encoding for delta times and meta-event lengths
- MThd / MTrk chunk construction
- raw payload builders for the meta and channel-voice events we emit

Reference layout:
https://www.music.mcgill.ca/~ich/classes/mumt306/StandardMIDIfileformat.html
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

# Status bytes
NOTE_OFF = 0x80
NOTE_ON = 0x90
PROGRAM_CHANGE = 0xC0

# Meta events
META_EVENT = 0xFF
META_TRACK_NAME = 0x03
META_TEMPO = 0x51
META_END_OF_TRACK = 0x2F

HEADER_MAGIC = b"MThd"
TRACK_MAGIC = b"MTrk"

_MAX_U16 = 0xFFFF
_MAX_U32 = 0xFFFFFFFF


class InvalidInput(ValueError):
    """A value cannot be represented in the SMF byte layout."""


@dataclass(frozen=True)
class MidiEvent:
    """Event at an absolute tick."""
    tick: int
    data: bytes


@dataclass(frozen=True)
class DeltaEvent:
    """Event as stored on the wire: ticks since the previous event."""
    delta_time: int
    data: bytes


# ---------------------------
# VLQ
# ---------------------------
def encode_vlq(n: int) -> bytes:
    """
    Variable-length quantity: 7-bit groups, most significant first,
    0x80 set on every byte but the last.

    >>> encode_vlq(128).hex()
    '8100'
    """
    if isinstance(n, bool) or not isinstance(n, int):
        raise InvalidInput(f"VLQ value must be an int, got {type(n).__name__}")
    if n < 0:
        raise InvalidInput(f"Cannot encode negative number as VLQ: {n}")

    out = [n & 0x7F]
    n >>= 7
    while n:
        out.append((n & 0x7F) | 0x80)
        n >>= 7
    out.reverse()
    return bytes(out)


def decode_vlq(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Inverse of encode_vlq. Returns (value, offset after the last byte)."""
    value = 0
    pos = offset
    while True:
        if pos >= len(data):
            raise InvalidInput("Truncated VLQ")
        b = data[pos]
        pos += 1
        value = (value << 7) | (b & 0x7F)
        if not b & 0x80:
            return value, pos


# ---------------------------
# Chunks
# ---------------------------
def build_header_chunk(fmt: int, track_count: int, division: int) -> bytes:
    """MThd, length 6, format / ntrks / division as big-endian uint16."""
    for label, v in (("format", fmt), ("track_count", track_count), ("division", division)):
        if not 0 <= int(v) <= _MAX_U16:
            raise InvalidInput(f"{label} out of uint16 range: {v}")
    return HEADER_MAGIC + struct.pack(">IHHH", 6, fmt, track_count, division)


def build_track_chunk(events: Sequence[DeltaEvent]) -> bytes:
    """
    MTrk + uint32 payload length + (VLQ delta, data) per event.
    Events are written in the given order.
    """
    payload = bytearray()
    for ev in events:
        payload += encode_vlq(ev.delta_time)
        payload += ev.data

    if len(payload) > _MAX_U32:
        raise InvalidInput("Track payload exceeds uint32 length")
    return TRACK_MAGIC + struct.pack(">I", len(payload)) + bytes(payload)


def to_delta_events(events: Iterable[MidiEvent]) -> List[DeltaEvent]:
    """Absolute ticks -> deltas. Input must already be ordered by tick."""
    out: List[DeltaEvent] = []
    last_tick = 0
    for ev in events:
        delta = ev.tick - last_tick
        if delta < 0:
            raise InvalidInput(f"Events out of order: tick {ev.tick} after {last_tick}")
        out.append(DeltaEvent(delta_time=delta, data=ev.data))
        last_tick = ev.tick
    return out


# ---------------------------
# Event payloads
# ---------------------------
def _check_data_byte(label: str, v: int) -> int:
    if not 0 <= v <= 127:
        raise InvalidInput(f"{label} must be within 0-127, got {v}")
    return v


def _check_channel(channel: int) -> int:
    if not 0 <= channel <= 15:
        raise InvalidInput(f"MIDI channel must be within 0-15, got {channel}")
    return channel


def meta_event(meta_type: int, payload: bytes = b"") -> bytes:
    return bytes((META_EVENT, meta_type)) + encode_vlq(len(payload)) + bytes(payload)


def track_name_event(name: str) -> bytes:
    return meta_event(META_TRACK_NAME, (name or "").encode("utf-8"))


def tempo_event(us_per_quarter: int) -> bytes:
    if not 0 < us_per_quarter <= 0xFFFFFF:
        raise InvalidInput(f"Tempo must fit in 3 bytes: {us_per_quarter}")
    return meta_event(META_TEMPO, us_per_quarter.to_bytes(3, "big"))


def end_of_track_event() -> bytes:
    return meta_event(META_END_OF_TRACK)


def program_change(channel: int, program: int) -> bytes:
    return bytes((PROGRAM_CHANGE | _check_channel(channel), _check_data_byte("program", program)))


def note_on(channel: int, note: int, velocity: int) -> bytes:
    return bytes(
        (
            NOTE_ON | _check_channel(channel),
            _check_data_byte("note", note),
            _check_data_byte("velocity", velocity),
        )
    )


def note_off(channel: int, note: int) -> bytes:
    return bytes((NOTE_OFF | _check_channel(channel), _check_data_byte("note", note), 0))
