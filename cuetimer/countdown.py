import logging
from typing import Protocol

from . import config
from .clock import ClockSource, TimerClock
from .config import ConfigProvider
from .cues import CueScheduler
from .gate import CueEvent, EventGate, GatePhase

logger = logging.getLogger(__name__)

TIMER_REFRESH_INTERVAL_MS = 1000 / 60


class DisplaySink(Protocol):
    def update(self, remaining_ms: int) -> None: ...


class Countdown:
    """One countdown: its clock, latches and cue scheduler, composed per refresh."""

    def __init__(
        self,
        clock: ClockSource,
        provider: ConfigProvider,
        scheduler: CueScheduler,
        display: DisplaySink | None = None,
    ):
        self.clock = clock
        self.provider = provider
        self.scheduler = scheduler
        self.display = display
        self.timer = TimerClock()
        self.gate = EventGate(self.timer, dispatch=self._on_event)

    @property
    def running(self) -> bool:
        return self.timer.running

    @property
    def phase(self) -> GatePhase:
        return self.gate.phase

    def start(self):
        duration_ms = config.read_duration_ms(self.provider)
        self.timer.start(duration_ms, self.clock.now_ms())
        self.scheduler.cancel_pending()
        logger.info(f"Countdown started: {duration_ms / 1000:g} s")
        self.gate.start()
        self.scheduler.start_continuation(self._far_from_end)

    def refresh(self) -> int:
        now = self.clock.now_ms()
        remaining = self.timer.remaining(now)
        self.gate.evaluate(remaining, config.read_alarm_config(self.provider))
        if self.display is not None:
            self.display.update(remaining)
        return remaining

    def close(self):
        self.timer.stop()
        self.scheduler.close()

    def _far_from_end(self) -> bool:
        if not self.timer.running:
            return False
        return self.timer.remaining(self.clock.now_ms()) > self.gate.pre_sound_window_ms

    def _on_event(self, event: CueEvent):
        if event in (CueEvent.PRE_ALARM_NUDGE, CueEvent.PRE_END_NUDGE):
            self.scheduler.pulse()
            return

        if event is CueEvent.END:
            self.scheduler.stop_continuation()
            logger.info("Countdown finished")
        elif event is CueEvent.ALARM:
            logger.info("Alarm")

        cue = config.read_cue(self.provider, event.value)
        self.scheduler.play_cue(cue.frequency_hz, cue.duration_ms)
