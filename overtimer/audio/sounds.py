"""Alert sounds: numpy synthesis, cached WAV files, QSoundEffect playback.

Sound names
-----------
- ``chime``  — A5 then C6, played when the target is reached
- ``short``  — 1 kHz triangle blip, played at the pre-alert and for any
  name this module doesn't know

Each preset stores its own sound name and volume, so ``play`` takes an
optional per-call volume on top of the manager's master volume.
"""

from __future__ import annotations

import io
import logging
import wave
from pathlib import Path

import numpy as np

from PyQt6.QtCore import QObject, QUrl
from PyQt6.QtMultimedia import QSoundEffect

logger = logging.getLogger(__name__)


# ── paths ────────────────────────────────────────────────────────────────

APP_SUPPORT_DIR = Path.home() / "Library" / "Application Support" / "OverTimer"
SOUNDS_DIR = APP_SUPPORT_DIR / "sounds"

SOUND_NAMES = ("chime", "short")
FALLBACK_SOUND = "short"

SAMPLE_RATE = 44100


# ═══════════════════════════════════════════════════════════════════════════
#  WAV SYNTHESIS HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def _timeline(duration_s: float) -> np.ndarray:
    return np.linspace(0, duration_s, int(SAMPLE_RATE * duration_s), endpoint=False)


def _sine(freq: float, duration_s: float) -> np.ndarray:
    return np.sin(2 * np.pi * freq * _timeline(duration_s))


def _triangle(freq: float, duration_s: float) -> np.ndarray:
    return (2 / np.pi) * np.arcsin(np.sin(2 * np.pi * freq * _timeline(duration_s)))


def _exp_decay(length: int, start: float, end: float) -> np.ndarray:
    """Exponential ramp from *start* to *end* gain over *length* samples."""
    return start * (end / start) ** np.linspace(0.0, 1.0, length)


def _to_wav_bytes(samples: np.ndarray) -> bytes:
    """16-bit mono PCM WAV from float samples in -1..1."""
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype(np.int16)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(SAMPLE_RATE)
        wf.writeframes(pcm.tobytes())
    return buf.getvalue()


# ═══════════════════════════════════════════════════════════════════════════
#  SOUND GENERATORS
# ═══════════════════════════════════════════════════════════════════════════


def _generate_chime() -> bytes:
    """Target reached — A5 for 0.4 s, then C6 ringing out to 1.2 s."""
    first = _sine(880.0, 0.4)
    attack = int(SAMPLE_RATE * 0.05)
    env1 = np.concatenate([
        np.linspace(0.0, 0.5, attack),
        _exp_decay(len(first) - attack, 0.5, 0.01),
    ])
    second = _sine(1046.5, 0.8)
    env2 = _exp_decay(len(second), 0.5, 0.001)
    return _to_wav_bytes(np.concatenate([first * env1, second * env2]))


def _generate_short() -> bytes:
    tone = _triangle(1000.0, 0.5)
    return _to_wav_bytes(tone * _exp_decay(len(tone), 0.1, 0.001))


_GENERATORS = {
    "chime": _generate_chime,
    "short": _generate_short,
}


# ═══════════════════════════════════════════════════════════════════════════
#  SOUND MANAGER
# ═══════════════════════════════════════════════════════════════════════════


def _percent_to_gain(level: int) -> float:
    return max(0, min(int(level), 100)) / 100.0


class SoundManager(QObject):
    """Plays the alert sounds for a timer.

    WAV files are written to *sounds_dir* on construction (an empty or
    missing file is regenerated).  QSoundEffect objects are created the
    first time a sound is played.

    Usage::

        sounds = SoundManager(parent=app)
        sounds.set_volume(settings.sound_volume)
        sounds.play(preset.sound_name, volume=preset.sound_volume)
    """

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        sounds_dir: Path | None = None,
    ) -> None:
        super().__init__(parent)
        self._sounds_dir = sounds_dir or SOUNDS_DIR
        self._master = 0.8
        self._enabled = True
        self._effects: dict[str, QSoundEffect] = {}
        self._write_missing()

    @property
    def sounds_dir(self) -> Path:
        return self._sounds_dir

    @property
    def volume(self) -> int:
        return round(self._master * 100)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_volume(self, level: int) -> None:
        """Master volume, 0-100; out-of-range values are clamped."""
        self._master = _percent_to_gain(level)

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = bool(enabled)

    def resolve(self, name: str | None) -> str:
        """The sound actually played for *name*."""
        return name if name in _GENERATORS else FALLBACK_SOUND

    def play(self, name: str | None, volume: int | None = None) -> str | None:
        """Play *name* at master volume, scaled by *volume* (0-100) if given.

        Returns the name of the sound played, or None when muted.
        """
        if not self._enabled:
            return None
        resolved = self.resolve(name)
        if resolved != name:
            logger.debug("Unknown sound %r, playing %s", name, resolved)

        gain = self._master
        if volume is not None:
            gain *= _percent_to_gain(volume)

        effect = self._effect(resolved)
        effect.setVolume(gain)
        effect.play()
        return resolved

    def _path(self, name: str) -> Path:
        return self._sounds_dir / f"{name}.wav"

    def _write_missing(self) -> None:
        self._sounds_dir.mkdir(parents=True, exist_ok=True)
        for name, generate in _GENERATORS.items():
            path = self._path(name)
            if path.exists() and path.stat().st_size > 0:
                continue
            path.write_bytes(generate())
            logger.debug("Generated %s", path)

    def _effect(self, name: str) -> QSoundEffect:
        effect = self._effects.get(name)
        if effect is None:
            effect = QSoundEffect(self)
            effect.setSource(QUrl.fromLocalFile(str(self._path(name))))
            self._effects[name] = effect
        return effect
