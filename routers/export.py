"""
Export routes: MIDI and preview audio (no persistence).
"""
from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from core.config import get_settings
from core.melody_models import Melody, RenderRequest
from core.midi_encoder import encode_melody, midi_filename, to_data_uri
from core.notation import InvalidNote
from core.smf import InvalidInput
from core.synthesizer import melodies_to_wav_bytes

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Export"])


def _content_disposition(filename: str) -> str:
    # latin-1 only in headers; non-ASCII names go through RFC 5987 filename*
    fallback = filename.encode("ascii", "replace").decode("ascii").replace("?", "_").replace('"', "_")
    return "attachment; filename=\"{}\"; filename*=UTF-8''{}".format(fallback, quote(filename))


def _encode_or_400(melody: Melody) -> bytes:
    try:
        return encode_melody(melody)
    except (InvalidNote, InvalidInput) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/export/midi")
def export_midi(melody: Melody) -> Response:
    """
    Body: Melody JSON
      { name, type, notes: [{ note, duration, time, velocity? }] }
    Response: SMF bytes, Content-Type: audio/midi
    """
    midi_bytes = _encode_or_400(melody)
    filename = midi_filename(melody.name)
    logger.info("Exported %s (%d notes, %d bytes)", filename, len(melody.notes), len(midi_bytes))

    return Response(
        content=midi_bytes,
        media_type="audio/midi",
        headers={
            "Content-Disposition": _content_disposition(filename),
        },
    )


@router.post("/export/midi/data-uri")
def export_midi_data_uri(melody: Melody) -> dict:
    midi_bytes = _encode_or_400(melody)
    return {
        "filename": midi_filename(melody.name),
        "data_uri": to_data_uri(midi_bytes),
    }


@router.post("/export/audio")
def export_audio(req: RenderRequest) -> Response:
    """Mix the given melodies into a WAV preview."""
    s = get_settings()
    try:
        wav = melodies_to_wav_bytes(
            req.melodies, sample_rate=s.sample_rate, max_seconds=s.max_render_seconds
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return Response(
        content=wav,
        media_type="audio/wav",
        headers={
            "Content-Disposition": 'attachment; filename="preview.wav"',
        },
    )
