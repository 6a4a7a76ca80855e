"""
Tests for the /export endpoints.
"""
from __future__ import annotations

import base64
import io
import math
from urllib.parse import quote

import mido
import pytest
import soundfile as sf
from fastapi.testclient import TestClient

from app import create_app
from core.config import get_settings

MELODY = {
    "name": "Disco Bassline",
    "type": "bass",
    "notes": [
        {"note": "C2", "duration": "4n", "time": 0.0, "velocity": 0.8},
        {"note": "E2", "duration": "8n", "time": 0.5},
    ],
}


def test_export_midi_minimal():
    """POST /export/midi returns SMF bytes as an attachment."""
    app = create_app()
    with TestClient(app) as client:
        r = client.post("/export/midi", json=MELODY)
    assert r.status_code == 200, r.text
    assert r.headers.get("content-type", "").startswith("audio/midi")
    assert "attachment" in r.headers.get("content-disposition", "").lower()
    assert "Disco_Bassline.mid" in r.headers.get("content-disposition", "")
    assert r.content[:4] == b"MThd", "Expected SMF header"

    mid = mido.MidiFile(file=io.BytesIO(r.content))
    notes = [m.note for m in mid.tracks[0] if m.type == "note_on"]
    assert notes == [36, 40]


def test_export_midi_empty_notes():
    """A melody without notes still gives a valid file."""
    app = create_app()
    with TestClient(app) as client:
        r = client.post("/export/midi", json={"name": "", "type": "lead", "notes": []})
    assert r.status_code == 200, r.text
    assert r.content[:4] == b"MThd"
    assert "melody.mid" in r.headers.get("content-disposition", "")


def test_export_midi_400_invalid_note():
    app = create_app()
    payload = {"name": "x", "type": "lead", "notes": [{"note": "H4", "time": 0}]}
    with TestClient(app) as client:
        r = client.post("/export/midi", json=payload)
    assert r.status_code == 400, r.text
    assert "H4" in r.json()["detail"]


def test_export_midi_422_missing_note_fields():
    app = create_app()
    payload = {"name": "x", "notes": [{"note": "C4"}]}
    with TestClient(app) as client:
        r = client.post("/export/midi", json=payload)
    assert r.status_code == 422, r.text


def test_export_midi_422_velocity_out_of_range():
    app = create_app()
    payload = {"name": "x", "notes": [{"note": "C4", "time": 0, "velocity": 1.5}]}
    with TestClient(app) as client:
        r = client.post("/export/midi", json=payload)
    assert r.status_code == 422, r.text


def test_export_data_uri_matches_binary():
    app = create_app()
    with TestClient(app) as client:
        raw = client.post("/export/midi", json=MELODY).content
        r = client.post("/export/midi/data-uri", json=MELODY)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["filename"] == "Disco_Bassline.mid"
    prefix = "data:audio/midi;base64,"
    assert body["data_uri"].startswith(prefix)
    assert base64.b64decode(body["data_uri"][len(prefix):]) == raw


def test_export_audio_wav():
    app = create_app()
    with TestClient(app) as client:
        r = client.post("/export/audio", json={"melodies": [MELODY]})
    assert r.status_code == 200, r.text
    assert r.headers.get("content-type", "").startswith("audio/wav")
    samples, sr = sf.read(io.BytesIO(r.content))
    assert sr == app.state.settings.sample_rate
    # E2 8n ends at 0.75s
    assert len(samples) == math.ceil(0.75 * sr)


def test_export_audio_400_invalid_note():
    app = create_app()
    bad = {"name": "x", "notes": [{"note": "Q9", "time": 0}]}
    with TestClient(app) as client:
        r = client.post("/export/audio", json={"melodies": [bad]})
    assert r.status_code == 400, r.text


def test_export_midi_non_latin_name():
    """Names outside latin-1 still download, via filename*."""
    app = create_app()
    payload = {"name": "Синтвейв 夜", "type": "lead", "notes": [{"note": "C4", "time": 0}]}
    with TestClient(app) as client:
        r = client.post("/export/midi", json=payload)
    assert r.status_code == 200, r.text
    cd = r.headers["content-disposition"]
    assert cd.startswith('attachment; filename="')
    assert "filename*=UTF-8''" + quote("Синтвейв_夜.mid") in cd
    assert r.content[:4] == b"MThd"

    mid = mido.MidiFile(file=io.BytesIO(r.content))
    assert mid.tracks[0][0].name.encode("latin-1").decode("utf-8") == "Синтвейв 夜"


@pytest.mark.parametrize("time", ["Infinity", "NaN", "1e300"])
def test_export_midi_422_time_out_of_range(time):
    app = create_app()
    body = '{"name": "x", "notes": [{"note": "C4", "time": %s}]}' % time
    with TestClient(app) as client:
        r = client.post("/export/midi", content=body, headers={"Content-Type": "application/json"})
    assert r.status_code == 422, r.text


@pytest.fixture
def short_render_limit(monkeypatch, tmp_path):
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "outputs"))
    monkeypatch.setenv("MAX_RENDER_SECONDS", "2")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_export_audio_400_too_long(short_render_limit):
    app = create_app()
    far = {"name": "x", "notes": [{"note": "C4", "time": 5.0}]}
    with TestClient(app) as client:
        r = client.post("/export/audio", json={"melodies": [far]})
    assert r.status_code == 400, r.text
    assert "exceeds" in r.json()["detail"]
