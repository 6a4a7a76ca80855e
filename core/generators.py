# core/generators.py
"""
Procedural melody generators, one per style part.

Every generator has the signature (bars, rng) -> Melody and takes its
randomness from the injected random.Random, so a fixed seed always gives
the same melodies. Times are seconds at 120 BPM (quarter = 0.5s).
"""
from __future__ import annotations

import logging
import random
from typing import Callable, Dict, List, Optional, Tuple

from core.melody_models import Melody, MelodyType, Note

logger = logging.getLogger(__name__)

Generator = Callable[[int, random.Random], Melody]

QUARTER = 0.5
EIGHTH = 0.25
SIXTEENTH = 0.125

# part display names (also the MIDI track names)
DISCO_BASSLINE = "Disco Bassline"
SYNTHWAVE_ARPEGGIO = "Synthwave Arpeggio"
DISCO_LEAD = "Italian Disco Lead"
METAL_RIFF = "Metal Rhythm Guitar"
METAL_LEAD = "Metal Lead Guitar"
METAL_DRUMS = "Metal Drums"


def _check_bars(bars: int) -> int:
    if isinstance(bars, bool) or not isinstance(bars, int) or bars < 1:
        raise ValueError(f"bars must be a positive integer, got {bars!r}")
    return bars


# ---------------------------
# Synthwave / Italian disco
# ---------------------------
def generate_disco_bassline(bars: int, rng: random.Random) -> Melody:
    notes = ["C2", "D2", "E2", "F2", "G2", "A2", "B2", "C3"]
    rhythm = ["4n", "4n", "8n", "8n", "4n", "4n", "8n", "8n", "8n", "8n", "4n", "4n"]

    out: List[Note] = []
    for i in range(_check_bars(bars) * 4):
        # root-ish notes on beats 1 and 3
        if i % 4 in (0, 2):
            out.append(Note(note=rng.choice(notes[:3]), duration="4n", time=i * QUARTER))
        elif rng.random() > 0.3:
            out.append(Note(note=rng.choice(notes), duration=rng.choice(rhythm), time=i * QUARTER))

    return Melody(name=DISCO_BASSLINE, type=MelodyType.bass.value, notes=out)


def generate_synthwave_arpeggio(bars: int, rng: random.Random) -> Melody:
    notes = ["E4", "G4", "A4", "C5", "D5", "E5"]

    out: List[Note] = []
    for i in range(_check_bars(bars) * 4):
        for j in range(4):
            if rng.random() > 0.3:
                out.append(Note(note=rng.choice(notes), duration="16n", time=i * QUARTER + j * SIXTEENTH))

    return Melody(name=SYNTHWAVE_ARPEGGIO, type=MelodyType.arpeggio.value, notes=out)


def generate_disco_lead(bars: int, rng: random.Random) -> Melody:
    scale = ["C4", "D4", "E4", "G4", "A4", "C5", "D5", "E5"]

    out: List[Note] = []
    beats = _check_bars(bars) * 4
    i = 0
    while i < beats:
        if rng.random() > 0.4:
            duration = rng.choice(["2n", "4n", "4n."])
            out.append(Note(note=rng.choice(scale), duration=duration, time=i * QUARTER))
            if duration == "2n":
                i += 1
        i += 1

    return Melody(name=DISCO_LEAD, type=MelodyType.lead.value, notes=out)


# ---------------------------
# Metal
# ---------------------------
def generate_metal_riff(bars: int, rng: random.Random) -> Melody:
    notes = ["E2", "A2", "D3", "G2", "B2", "E3"]
    power_chords = [
        ["E2", "B2", "E3"],
        ["A2", "E3", "A3"],
        ["D2", "A2", "D3"],
        ["G2", "D3", "G3"],
        ["B2", "F#3", "B3"],
    ]
    rhythm = ["8n", "8n", "8n", "8n", "4n", "4n.", "8n"]

    out: List[Note] = []
    for i in range(_check_bars(bars) * 4):
        if i % 8 in (0, 4):
            for n in rng.choice(power_chords):
                out.append(Note(note=n, duration="4n", time=i * QUARTER, velocity=0.9))
        elif rng.random() > 0.4:
            # palm-muted single notes
            out.append(Note(note=rng.choice(notes), duration=rng.choice(rhythm), time=i * QUARTER, velocity=0.7))

    return Melody(name=METAL_RIFF, type=MelodyType.riff.value, notes=out)


def generate_metal_lead(bars: int, rng: random.Random) -> Melody:
    scale = ["E4", "G4", "A4", "B4", "D5", "E5", "G5", "A5"]

    out: List[Note] = []
    beats = _check_bars(bars) * 4
    i = 0
    while i < beats:
        if i % 4 == 0 and rng.random() > 0.6:
            # fast run of 4-7 sixteenths
            for j in range(rng.randint(4, 7)):
                out.append(Note(note=rng.choice(scale), duration="16n", time=i * QUARTER + j * SIXTEENTH, velocity=0.8))
            i += 1
        elif rng.random() > 0.7:
            out.append(Note(note=rng.choice(scale), duration="2n", time=i * QUARTER, velocity=0.85))
            i += 1
        elif rng.random() > 0.5:
            out.append(Note(note=rng.choice(scale), duration="8n", time=i * QUARTER, velocity=0.8))
        i += 1

    return Melody(name=METAL_LEAD, type=MelodyType.lead.value, notes=out)


DRUM_KIT = {
    "kick": "C1",
    "snare": "E1",
    "hihat": "G#1",
    "crash": "A#1",
    "ride": "D#2",
    "tom1": "F1",
    "tom2": "G1",
}


def generate_metal_drums(bars: int, rng: random.Random) -> Melody:
    kit = DRUM_KIT
    out: List[Note] = []
    for i in range(_check_bars(bars) * 4):
        t = i * QUARTER

        if i % 2 == 0:
            out.append(Note(note=kit["kick"], duration="8n", time=t, velocity=0.9))
            # double bass in the first half of each phrase
            if i % 8 < 4 and rng.random() > 0.3:
                out.append(Note(note=kit["kick"], duration="8n", time=t + EIGHTH, velocity=0.85))

        if i % 4 in (1, 3):
            out.append(Note(note=kit["snare"], duration="4n", time=t, velocity=0.8))

        cymbal = kit["hihat"] if i % 8 < 4 else kit["ride"]
        out.append(Note(note=cymbal, duration="8n", time=t, velocity=0.7))
        out.append(Note(note=cymbal, duration="8n", time=t + EIGHTH, velocity=0.6))

        if i % 8 == 0:
            out.append(Note(note=kit["crash"], duration="2n", time=t, velocity=0.9))

        # tom fill at the end of every 16 beats
        if (i + 1) % 16 == 0:
            for j in range(4):
                tom = kit["tom1"] if rng.random() > 0.5 else kit["tom2"]
                out.append(Note(note=tom, duration="16n", time=t + j * SIXTEENTH, velocity=0.8))

    return Melody(name=METAL_DRUMS, type=MelodyType.drums.value, notes=out)


# ---------------------------
# Styles
# ---------------------------
STYLES: Dict[str, Tuple[Generator, ...]] = {
    "synthwave-disco": (generate_disco_bassline, generate_synthwave_arpeggio, generate_disco_lead),
    "metal": (generate_metal_riff, generate_metal_lead, generate_metal_drums),
}


STYLE_PARTS: Dict[str, Tuple[str, ...]] = {
    "synthwave-disco": (DISCO_BASSLINE, SYNTHWAVE_ARPEGGIO, DISCO_LEAD),
    "metal": (METAL_RIFF, METAL_LEAD, METAL_DRUMS),
}


def list_styles() -> List[str]:
    return list(STYLES.keys())


def generate_style(
    style: str,
    bars: int,
    *,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
) -> List[Melody]:
    """
    All parts of a style, in display order.
    Pass either an rng or a seed; with neither, the output is unseeded.
    """
    try:
        parts = STYLES[style]
    except KeyError:
        raise KeyError(f"Unknown style: {style!r} (known: {', '.join(STYLES)})") from None

    _check_bars(bars)
    if rng is None:
        rng = random.Random(seed)

    melodies = [gen(bars, rng) for gen in parts]
    logger.info(
        "Generated style=%s bars=%d: %s",
        style,
        bars,
        ", ".join(f"{m.name}({len(m.notes)})" for m in melodies),
    )
    return melodies
