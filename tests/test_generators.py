import random

import pytest

from core.generators import (
    DRUM_KIT,
    STYLE_PARTS,
    STYLES,
    generate_disco_bassline,
    generate_disco_lead,
    generate_metal_drums,
    generate_metal_lead,
    generate_metal_riff,
    generate_style,
    generate_synthwave_arpeggio,
    list_styles,
)
from core.notation import is_known_duration, note_to_midi

ALL_GENERATORS = [
    generate_disco_bassline,
    generate_synthwave_arpeggio,
    generate_disco_lead,
    generate_metal_riff,
    generate_metal_lead,
    generate_metal_drums,
]


def test_styles_registry():
    assert list_styles() == ["synthwave-disco", "metal"]
    assert set(STYLES) == set(STYLE_PARTS)


@pytest.mark.parametrize("style", ["synthwave-disco", "metal"])
def test_part_names_match_registry(style):
    melodies = generate_style(style, 1, seed=0)
    assert tuple(m.name for m in melodies) == STYLE_PARTS[style]


def test_style_types():
    assert [m.type for m in generate_style("synthwave-disco", 2, seed=1)] == ["bass", "arpeggio", "lead"]
    assert [m.type for m in generate_style("metal", 2, seed=1)] == ["riff", "lead", "drums"]


@pytest.mark.parametrize("gen", ALL_GENERATORS)
def test_same_seed_same_melody(gen):
    a = gen(4, random.Random(99))
    b = gen(4, random.Random(99))
    assert a == b


def test_generate_style_seed_is_reproducible():
    a = generate_style("metal", 8, seed=5)
    b = generate_style("metal", 8, seed=5)
    assert [m.model_dump() for m in a] == [m.model_dump() for m in b]


@pytest.mark.parametrize("gen", ALL_GENERATORS)
@pytest.mark.parametrize("bars", [1, 3, 8])
def test_generated_notes_are_valid(gen, bars):
    melody = gen(bars, random.Random(bars))
    for n in melody.notes:
        note_to_midi(n.note)
        assert is_known_duration(n.duration)
        assert 0.0 <= n.time < bars * 2.0
        assert n.velocity is None or 0.0 <= n.velocity <= 1.0


@pytest.mark.parametrize("gen", ALL_GENERATORS)
@pytest.mark.parametrize("bars", [0, -1])
def test_bars_must_be_positive(gen, bars):
    with pytest.raises(ValueError):
        gen(bars, random.Random(0))


def test_unknown_style():
    with pytest.raises(KeyError):
        generate_style("polka", 4, seed=0)


def test_bassline_hits_beats_one_and_three():
    melody = generate_disco_bassline(4, random.Random(0))
    downbeats = [n for n in melody.notes if (n.time / 0.5) % 4 in (0, 2)]
    assert len(downbeats) == 4 * 2
    assert {n.note for n in downbeats} <= {"C2", "D2", "E2"}
    assert {n.duration for n in downbeats} == {"4n"}


def test_arpeggio_is_sixteenths():
    melody = generate_synthwave_arpeggio(2, random.Random(0))
    assert melody.notes
    assert {n.duration for n in melody.notes} == {"16n"}
    assert all((n.time / 0.125) == int(n.time / 0.125) for n in melody.notes)


def test_metal_riff_power_chords_on_phrase_beats():
    melody = generate_metal_riff(4, random.Random(3))
    # beats 0 and 4 of every 8-beat phrase -> 16 beats / 4 = 4 chords
    chord_notes = [n for n in melody.notes if n.velocity == 0.9]
    assert len(chord_notes) == 4 * 3
    assert {round(n.time / 0.5) % 8 for n in chord_notes} == {0, 4}


def test_metal_drums_pattern():
    bars = 4
    melody = generate_metal_drums(bars, random.Random(0))
    beats = bars * 4

    kicks_on_beat = [n for n in melody.notes if n.note == DRUM_KIT["kick"] and n.velocity == 0.9]
    assert len(kicks_on_beat) == beats // 2

    snares = [n for n in melody.notes if n.note == DRUM_KIT["snare"]]
    assert len(snares) == beats // 2

    crashes = [n for n in melody.notes if n.note == DRUM_KIT["crash"]]
    assert len(crashes) == beats // 8

    toms = [n for n in melody.notes if n.note in (DRUM_KIT["tom1"], DRUM_KIT["tom2"])]
    assert len(toms) == 4 * (beats // 16)


def test_disco_lead_half_notes_do_not_overlap_next_start():
    melody = generate_disco_lead(8, random.Random(2))
    starts = [n.time for n in melody.notes]
    assert starts == sorted(starts)
    for cur, nxt in zip(melody.notes, melody.notes[1:]):
        if cur.duration == "2n":
            assert nxt.time >= cur.time + 1.0


def test_metal_lead_runs():
    melody = generate_metal_lead(16, random.Random(4))
    sixteenths = [n for n in melody.notes if n.duration == "16n"]
    assert all(n.velocity == 0.8 for n in sixteenths)
