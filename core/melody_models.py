from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# last start time whose tick, plus the longest duration, still fits in 32 bits
MAX_NOTE_SECONDS = (2**32 - 1 - 256) / 256


class MelodyType(str, Enum):
    bass = "bass"
    arpeggio = "arpeggio"
    lead = "lead"
    riff = "riff"
    drums = "drums"


class NoteDuration(str, Enum):
    half = "2n"
    quarter = "4n"
    dotted_quarter = "4n."
    eighth = "8n"
    sixteenth = "16n"


class Note(BaseModel):
    """
    One generated note.
    `time` is seconds from melody start on the fixed 120 BPM clock.
    """
    model_config = ConfigDict(frozen=True)

    note: str = Field(..., min_length=2, description="Note name, e.g. C#4")
    duration: str = Field("4n", description="Duration token: 2n, 4n, 4n., 8n, 16n")
    time: float = Field(
        ..., ge=0.0, le=MAX_NOTE_SECONDS, allow_inf_nan=False, description="Start time in seconds"
    )
    velocity: Optional[float] = Field(
        None, ge=0.0, le=1.0, allow_inf_nan=False, description="0.0-1.0; missing or 0 means 0.8"
    )


class Melody(BaseModel):
    """
    Input of the MIDI encoder.
    `type` picks program + channel; unknown or missing types fall back to piano.
    """
    name: str = Field("", description="Track name (also used for the download filename)")
    type: Optional[str] = Field(None, description="bass | arpeggio | lead | riff | drums")
    notes: List[Note] = Field(default_factory=list)


class MelodyExport(Melody):
    filename: str
    data_uri: str


class GenerateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    style: str = Field(..., min_length=1, description="synthwave-disco | metal")
    bars: Optional[int] = Field(None, ge=1, description="Bar count (defaults to DEFAULT_BARS)")
    seed: Optional[int] = Field(None, description="Random seed for reproducible output")


class GenerateResponse(BaseModel):
    style: str
    bars: int
    seed: Optional[int] = None
    melodies: List[MelodyExport] = Field(default_factory=list)


class RenderRequest(BaseModel):
    melodies: List[Melody] = Field(default_factory=list)
