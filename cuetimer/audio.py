import threading
from abc import ABC, abstractmethod
from typing import Callable

import numpy as np

SAMPLE_RATE = 44100


class AudioEngineError(RuntimeError):
    """Audio output could not be created or resumed (device missing, blocked, ...)."""


# -----------------------------
# Voice: one sine oscillator + its gain
# -----------------------------
class ToneVoice:
    """Sine oscillator with a linear gain ramp, rendered block by block.

    Retuning keeps the phase continuous and a new ramp always starts from the
    gain reached so far, so neither produces a click.
    """

    def __init__(self, frequency: float, sample_rate: int = SAMPLE_RATE, gain: float = 0.0):
        self.sample_rate = int(sample_rate)
        self.frequency = float(frequency)
        self._phase = 0.0
        self._gain = float(gain)
        self._target = float(gain)
        self._ramp_left = 0
        self._lock = threading.Lock()

    @property
    def gain(self) -> float:
        with self._lock:
            return self._gain

    @property
    def target_gain(self) -> float:
        with self._lock:
            return self._target

    def set_frequency(self, frequency: float):
        with self._lock:
            self.frequency = float(frequency)

    def set_gain(self, gain: float):
        with self._lock:
            self._gain = self._target = float(gain)
            self._ramp_left = 0

    def ramp_gain(self, target: float, duration_ms: float):
        frames = int(round(self.sample_rate * max(0.0, float(duration_ms)) / 1000.0))
        with self._lock:
            self._target = float(target)
            self._ramp_left = frames
            if frames == 0:
                self._gain = self._target

    def render(self, frames: int) -> np.ndarray:
        with self._lock:
            step = 2.0 * np.pi * self.frequency / self.sample_rate
            phases = self._phase + step * np.arange(1, frames + 1)
            self._phase = float(phases[-1] % (2.0 * np.pi)) if frames else self._phase

            env = np.full(frames, self._target)
            n = min(self._ramp_left, frames)
            if n > 0:
                slope = (self._target - self._gain) / self._ramp_left
                env[:n] = self._gain + slope * np.arange(1, n + 1)
                self._ramp_left -= n
                self._gain = float(env[n - 1])
            if self._ramp_left == 0:
                self._gain = self._target

        return np.sin(phases) * env


# -----------------------------
# Engine: owns the live voices and the output device
# -----------------------------
class AudioEngine(ABC):
    """Bookkeeping shared by output backends.

    ``resume`` is the two-phase part: it returns True when output is already
    running, otherwise it arranges for ``on_ready`` to be called once output
    has started and returns False. Both ``resume`` and ``create_voice`` raise
    :class:`AudioEngineError` when output is unavailable.
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE):
        self.sample_rate = int(sample_rate)
        self._voices: list[ToneVoice] = []
        self._lock = threading.Lock()

    @abstractmethod
    def resume(self, on_ready: Callable[[], None]) -> bool:
        ...

    @property
    @abstractmethod
    def ready(self) -> bool:
        ...

    def create_voice(self, frequency: float, gain: float = 0.0) -> ToneVoice:
        if not self.ready:
            raise AudioEngineError("audio output is not running")
        voice = ToneVoice(frequency, self.sample_rate, gain)
        with self._lock:
            self._voices.append(voice)
        return voice

    def release_voice(self, voice: ToneVoice):
        with self._lock:
            if voice in self._voices:
                self._voices.remove(voice)

    @property
    def voices(self) -> list[ToneVoice]:
        with self._lock:
            return list(self._voices)

    def mix(self, frames: int) -> np.ndarray | None:
        """Sum every live voice; None when nothing is sounding."""
        voices = self.voices
        if not voices or frames <= 0:
            return None
        out = np.zeros(frames)
        for voice in voices:
            out += voice.render(frames)
        return np.clip(out, -1.0, 1.0)

    def close(self):
        with self._lock:
            self._voices.clear()
