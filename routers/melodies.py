from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, HTTPException

from core.config import get_settings
from core.generators import STYLE_PARTS, generate_style
from core.melody_models import GenerateRequest, GenerateResponse, MelodyExport
from core.midi_encoder import melody_to_data_uri, midi_filename

router = APIRouter(prefix="/api/v1", tags=["Melodies"])


@router.get("/styles")
def list_styles() -> Dict[str, Any]:
    return {
        "styles": [
            {"style": style, "parts": list(parts)}
            for style, parts in STYLE_PARTS.items()
        ]
    }


@router.post(
    "/melodies/generate",
    response_model=GenerateResponse,
    summary="Generate every part of a style and encode each one to MIDI",
)
def generate_melodies(req: GenerateRequest) -> GenerateResponse:
    """
    200 -> GenerateResponse (one data URI per part)
    404 -> unknown style
    422 -> bars out of range
    """
    s = get_settings()
    bars = req.bars if req.bars is not None else s.default_bars
    if bars > s.max_bars:
        raise HTTPException(status_code=422, detail=f"bars must be <= {s.max_bars}")

    if req.style not in STYLE_PARTS:
        raise HTTPException(status_code=404, detail=f"Unknown style: {req.style}")

    melodies = generate_style(req.style, bars, seed=req.seed)

    exports = [
        MelodyExport(
            name=m.name,
            type=m.type,
            notes=m.notes,
            filename=midi_filename(m.name),
            data_uri=melody_to_data_uri(m),
        )
        for m in melodies
    ]
    return GenerateResponse(style=req.style, bars=bars, seed=req.seed, melodies=exports)
