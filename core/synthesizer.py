# core/synthesizer.py
"""
预听合成模块 (preview playback)

- AudioSession 是显式持有的资源：记录所有已调度的音（tone），
  stop_all() 一次性释放
- 每个音一个简单振荡器（sine / triangle / sawtooth），线性包络
- render() 混音成 float32 单声道；melodies_to_wav() 用 soundfile 写 WAV

Same vocabulary as the MIDI encoder: note names + duration tokens at 120 BPM.
"""
from __future__ import annotations

import io
import itertools
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import numpy as np
import soundfile as sf

from core.melody_models import Melody
from core.midi_encoder import DEFAULT_VELOCITY
from core.notation import duration_to_seconds, note_to_frequency, parse_note

logger = logging.getLogger(__name__)

ATTACK_SECONDS = 0.01
MASTER_GAIN = 0.3


@dataclass(frozen=True)
class ToneHandle:
    tone_id: int
    pitch: str
    start: float
    duration: float
    velocity: float

    @property
    def end(self) -> float:
        return self.start + self.duration


def waveform_for(pitch: str) -> str:
    """Low octaves sine, octave 3 triangle, everything else sawtooth."""
    _, octave = parse_note(pitch)
    if octave in (1, 2):
        return "sine"
    if octave == 3:
        return "triangle"
    return "sawtooth"


def _oscillator(kind: str, freq: float, t: np.ndarray) -> np.ndarray:
    phase = (freq * t) % 1.0
    if kind == "sine":
        return np.sin(2 * np.pi * phase)
    if kind == "triangle":
        return 4.0 * np.abs(phase - 0.5) - 1.0
    return 2.0 * phase - 1.0


def _envelope(n: int, sample_rate: int, peak: float) -> np.ndarray:
    """Linear ramp 0 -> peak over the attack, then linear ramp to 0 at the end."""
    env = np.zeros(n, dtype=np.float64)
    if n == 0:
        return env
    attack = min(n, max(1, int(round(ATTACK_SECONDS * sample_rate))))
    env[:attack] = np.linspace(0.0, peak, attack, endpoint=False)
    if n > attack:
        env[attack:] = np.linspace(peak, 0.0, n - attack)
    return env


class AudioSession:
    """
    Owns every scheduled tone until it is stopped or the session is closed.

        with AudioSession(44100) as session:
            schedule_melody(session, melody)
            samples = session.render()
    """

    def __init__(self, sample_rate: int = 44100, max_seconds: Optional[float] = None) -> None:
        if sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        self.sample_rate = int(sample_rate)
        self.max_seconds = max_seconds
        self._tones: Dict[int, ToneHandle] = {}
        self._ids = itertools.count(1)
        self._closed = False

    def __enter__(self) -> "AudioSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active_tones(self) -> List[ToneHandle]:
        return sorted(self._tones.values(), key=lambda h: (h.start, h.tone_id))

    def play_note(
        self,
        pitch: str,
        start: float,
        duration: float,
        velocity: float = DEFAULT_VELOCITY,
    ) -> ToneHandle:
        if self._closed:
            raise RuntimeError("AudioSession is closed")
        if not (math.isfinite(start) and math.isfinite(duration)) or start < 0 or duration <= 0:
            raise ValueError(f"Invalid tone timing: start={start} duration={duration}")

        # validates the pitch name up front
        note_to_frequency(pitch)
        handle = ToneHandle(
            tone_id=next(self._ids),
            pitch=pitch,
            start=float(start),
            duration=float(duration),
            velocity=float(min(max(velocity, 0.0), 1.0)),
        )
        self._tones[handle.tone_id] = handle
        return handle

    def stop(self, handle: ToneHandle) -> bool:
        return self._tones.pop(handle.tone_id, None) is not None

    def stop_all(self) -> int:
        n = len(self._tones)
        self._tones.clear()
        return n

    def close(self) -> None:
        released = self.stop_all()
        if released:
            logger.info("AudioSession closed, released %d tones", released)
        self._closed = True

    def render(self, total_seconds: Optional[float] = None) -> np.ndarray:
        """Mix all scheduled tones into float32 mono samples in [-1, 1]."""
        tones = self.active_tones
        if total_seconds is None:
            total_seconds = max((h.end for h in tones), default=0.0)
        if self.max_seconds is not None and total_seconds > self.max_seconds:
            raise ValueError(
                f"Render length {total_seconds:.2f}s exceeds the {self.max_seconds:g}s limit"
            )

        total = int(np.ceil(total_seconds * self.sample_rate))
        mix = np.zeros(total, dtype=np.float64)

        for h in tones:
            begin = int(round(h.start * self.sample_rate))
            if begin >= total:
                continue
            n = min(int(round(h.duration * self.sample_rate)), total - begin)
            if n <= 0:
                continue
            t = np.arange(n, dtype=np.float64) / self.sample_rate
            wave = _oscillator(waveform_for(h.pitch), note_to_frequency(h.pitch), t)
            mix[begin:begin + n] += wave * _envelope(n, self.sample_rate, h.velocity * MASTER_GAIN)

        return np.clip(mix, -1.0, 1.0).astype(np.float32)


def schedule_melody(session: AudioSession, melody: Melody) -> List[ToneHandle]:
    return [
        session.play_note(
            n.note,
            n.time,
            duration_to_seconds(n.duration),
            n.velocity or DEFAULT_VELOCITY,
        )
        for n in melody.notes
    ]


def render_melodies(
    melodies: Iterable[Melody],
    sample_rate: int = 44100,
    max_seconds: Optional[float] = None,
) -> np.ndarray:
    with AudioSession(sample_rate, max_seconds=max_seconds) as session:
        for m in melodies:
            schedule_melody(session, m)
        return session.render()


def melodies_to_wav_bytes(
    melodies: Iterable[Melody],
    sample_rate: int = 44100,
    max_seconds: Optional[float] = None,
) -> bytes:
    samples = render_melodies(melodies, sample_rate, max_seconds)
    buf = io.BytesIO()
    sf.write(buf, samples, sample_rate, format="WAV", subtype="PCM_16")
    return buf.getvalue()


def melodies_to_wav(
    melodies: Iterable[Melody],
    out_path: Union[str, Path],
    sample_rate: int = 44100,
    max_seconds: Optional[float] = None,
) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    samples = render_melodies(melodies, sample_rate, max_seconds)
    sf.write(str(out_path), samples, sample_rate, subtype="PCM_16")

    logger.info("✅ [Synth] 输出完成: %s (%.2fs)", out_path.name, len(samples) / sample_rate)
    return out_path.resolve()
