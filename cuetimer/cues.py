import logging
from functools import partial
from typing import Callable

from .audio import AudioEngine, AudioEngineError, ToneVoice
from .tasks import ScheduledTask, TaskScheduler

logger = logging.getLogger(__name__)

FADE_MS = 6
CLEANUP_MARGIN_MS = 10
RESUME_TIMEOUT_MS = 1000

# keep-alive tuning; empirical, not load-bearing
PULSE_GAIN = 0.0001
PULSE_FREQUENCY_HZ = 1.0
PULSE_MS = 100
CONTINUATION_INTERVAL_MS = 10_000


def _cancel(task: ScheduledTask | None) -> None:
    if task is not None:
        task.cancel()
    return None


def _noop():
    pass


class CueScheduler:
    """Owns the single cue voice, its fades, and every timer that touches it.

    Each new request bumps a generation counter; a resume that completes for
    an older generation is dropped, and every pending task belonging to the
    previous request is cancelled before a new one is scheduled.
    """

    def __init__(
        self,
        engine: AudioEngine,
        tasks: TaskScheduler,
        fade_ms: int = FADE_MS,
        resume_timeout_ms: int = RESUME_TIMEOUT_MS,
        pulse_gain: float = PULSE_GAIN,
        pulse_ms: int = PULSE_MS,
        continuation_interval_ms: int = CONTINUATION_INTERVAL_MS,
    ):
        self.engine = engine
        self.tasks = tasks
        self.fade_ms = fade_ms
        self.resume_timeout_ms = resume_timeout_ms
        self.pulse_gain = pulse_gain
        self.pulse_ms = pulse_ms
        self.continuation_interval_ms = continuation_interval_ms

        self._voice: ToneVoice | None = None
        self._sounding = False
        self._generation = 0

        self._stop_task: ScheduledTask | None = None
        self._cleanup_task: ScheduledTask | None = None
        self._resume_task: ScheduledTask | None = None
        self._continuation_task: ScheduledTask | None = None
        self._keep_going: Callable[[], bool] | None = None

        self._pulse_voice: ToneVoice | None = None
        self._pulse_task: ScheduledTask | None = None

        self.last_error: AudioEngineError | None = None
        self._failure_listeners: list[Callable[[AudioEngineError], None]] = []

    # ---------------- State ----------------
    @property
    def voice(self) -> ToneVoice | None:
        return self._voice

    @property
    def sounding(self) -> bool:
        return self._voice is not None and self._sounding

    def pending_tasks(self) -> list[ScheduledTask]:
        tasks = (
            self._stop_task,
            self._cleanup_task,
            self._resume_task,
            self._continuation_task,
            self._pulse_task,
        )
        return [t for t in tasks if t is not None and t.active]

    def add_failure_listener(self, callback: Callable[[AudioEngineError], None]):
        self._failure_listeners.append(callback)

    def _fail(self, exc: AudioEngineError):
        self.last_error = exc
        logger.warning(f"Cue not played: {exc}")
        for cb in list(self._failure_listeners):
            cb(exc)

    # ---------------- Cues ----------------
    def play_cue(self, frequency: float, duration_ms: int) -> bool:
        """Sound a cue, taking over any cue already playing.

        Returns False when audio output is unavailable; the next call retries.
        """
        self._generation += 1
        generation = self._generation
        self._stop_task = _cancel(self._stop_task)
        self._cleanup_task = _cancel(self._cleanup_task)
        self._resume_task = _cancel(self._resume_task)

        try:
            ready = self.engine.resume(partial(self._on_resumed, generation, frequency, duration_ms))
        except AudioEngineError as exc:
            self._drop_faded_voice()
            if self._sounding:
                self.stop()
            self._fail(exc)
            return False

        if ready:
            return self._sound(frequency, duration_ms)

        logger.debug(f"Audio output resuming, {frequency:g} Hz cue deferred")
        self._resume_task = self.tasks.call_later(
            self.resume_timeout_ms, partial(self._on_resume_timeout, generation), name="resume-timeout"
        )
        return True

    def _on_resumed(self, generation: int, frequency: float, duration_ms: int):
        if generation != self._generation:
            logger.debug(f"Ignoring resume for superseded cue ({frequency:g} Hz)")
            return
        self._resume_task = _cancel(self._resume_task)
        self._sound(frequency, duration_ms)

    def _on_resume_timeout(self, generation: int):
        self._resume_task = None
        if generation != self._generation:
            return
        self._generation += 1
        self._drop_faded_voice()
        if self._sounding:
            self.stop()
        self._fail(AudioEngineError(f"audio output did not resume within {self.resume_timeout_ms} ms"))

    def _sound(self, frequency: float, duration_ms: int) -> bool:
        voice = self._voice
        if voice is not None:
            # takeover: retune in place, ramp back up from wherever the gain is
            voice.set_frequency(frequency)
            voice.ramp_gain(1.0, self.fade_ms)
        else:
            try:
                voice = self.engine.create_voice(frequency, gain=0.0)
            except AudioEngineError as exc:
                self._fail(exc)
                return False
            voice.ramp_gain(1.0, self.fade_ms)
            self._voice = voice

        self._sounding = True
        self.last_error = None
        self._stop_task = _cancel(self._stop_task)
        self._stop_task = self.tasks.call_later(int(duration_ms), self.stop, name="cue-stop")
        logger.debug(f"Cue {frequency:g} Hz for {int(duration_ms)} ms")
        return True

    def stop(self):
        """Fade the cue out, then release its voice once the fade has finished."""
        self._stop_task = _cancel(self._stop_task)
        voice = self._voice
        if voice is None or not self._sounding:
            return
        voice.ramp_gain(0.0, self.fade_ms)
        self._sounding = False
        self._cleanup_task = _cancel(self._cleanup_task)
        self._cleanup_task = self.tasks.call_later(
            self.fade_ms + CLEANUP_MARGIN_MS, partial(self._release, voice), name="cue-cleanup"
        )

    def _release(self, voice: ToneVoice):
        self._cleanup_task = None
        if voice is self._voice:
            if self._sounding:
                return
            self._voice = None
        self.engine.release_voice(voice)

    def _drop_faded_voice(self):
        # a voice whose fade-out cleanup was cancelled for a request that never sounded
        if self._voice is not None and not self._sounding:
            self.engine.release_voice(self._voice)
            self._voice = None

    # ---------------- Keep-alive ----------------
    def pulse(self) -> bool:
        """Near-silent short tone on its own voice; at most one at a time."""
        if self._pulse_task is not None:
            return False
        try:
            if not self.engine.resume(_noop):
                logger.debug("Keep-alive: output resuming")
                return True
            voice = self.engine.create_voice(PULSE_FREQUENCY_HZ, gain=self.pulse_gain)
        except AudioEngineError as exc:
            logger.debug(f"Keep-alive pulse skipped: {exc}")
            return False

        self._pulse_voice = voice
        self._pulse_task = self.tasks.call_later(self.pulse_ms, self._end_pulse, name="keep-alive-pulse")
        return True

    def _end_pulse(self):
        voice = self._pulse_voice
        self._pulse_voice = None
        self._pulse_task = None
        if voice is not None:
            self.engine.release_voice(voice)

    def start_continuation(self, keep_going: Callable[[], bool]):
        """Pulse every interval while ``keep_going()`` holds and no cue is active."""
        self.stop_continuation()
        self._keep_going = keep_going
        self._continuation_task = self.tasks.call_later(
            self.continuation_interval_ms, self._continue, name="continuation"
        )

    def stop_continuation(self):
        self._continuation_task = _cancel(self._continuation_task)
        self._keep_going = None

    def _continue(self):
        self._continuation_task = None
        keep_going = self._keep_going
        if keep_going is None or not keep_going():
            self._keep_going = None
            return
        if self._voice is None:
            self.pulse()
        self._continuation_task = self.tasks.call_later(
            self.continuation_interval_ms, self._continue, name="continuation"
        )

    # ---------------- Teardown ----------------
    def cancel_pending(self):
        """Drop every pending task and in-flight resume; a sounding cue fades out."""
        self._generation += 1
        self._stop_task = _cancel(self._stop_task)
        self._resume_task = _cancel(self._resume_task)
        self.stop_continuation()
        self._pulse_task = _cancel(self._pulse_task)
        self._end_pulse()
        if self._sounding:
            self.stop()

    def close(self):
        """Hard stop: everything is released immediately."""
        self._generation += 1
        for task in self.pending_tasks():
            task.cancel()
        self._stop_task = self._cleanup_task = self._resume_task = None
        self._continuation_task = self._pulse_task = None
        self._keep_going = None
        self._end_pulse()
        if self._voice is not None:
            self.engine.release_voice(self._voice)
            self._voice = None
        self._sounding = False
