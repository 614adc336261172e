import logging
from dataclasses import dataclass, fields
from enum import Enum, auto
from typing import Callable

from .clock import TimerClock
from .config import AlarmConfig

logger = logging.getLogger(__name__)

PRE_SOUND_WINDOW_MS = 2000


class GatePhase(Enum):
    IDLE = auto()
    RUNNING = auto()
    FINISHED = auto()


class CueEvent(Enum):
    START = "start"
    PRE_ALARM_NUDGE = "pre_alarm_nudge"
    PRE_END_NUDGE = "pre_end_nudge"
    ALARM = "alarm"
    END = "end"


@dataclass
class EventLatches:
    start_fired: bool = False
    pre_alarm_nudge_fired: bool = False
    pre_end_nudge_fired: bool = False
    alarm_fired: bool = False
    end_fired: bool = False

    def clear(self):
        for f in fields(self):
            setattr(self, f.name, False)


class EventGate:
    """Decides, once per refresh, which countdown events newly cross their threshold.

    Thresholds are level-triggered and latched: the first evaluation that
    satisfies a condition fires it, later ones are suppressed until the next
    ``start()``. A tick that jumps over an exact boundary still fires.
    """

    def __init__(
        self,
        timer: TimerClock,
        dispatch: Callable[[CueEvent], None] | None = None,
        pre_sound_window_ms: int = PRE_SOUND_WINDOW_MS,
    ):
        self.timer = timer
        self.dispatch = dispatch
        self.pre_sound_window_ms = int(pre_sound_window_ms)
        self.phase = GatePhase.IDLE
        self.latches = EventLatches()

    def start(self) -> list[CueEvent]:
        self.latches.clear()
        self.phase = GatePhase.RUNNING
        self.latches.start_fired = True
        return self._fire([CueEvent.START])

    def evaluate(self, remaining_ms: int, alarm: AlarmConfig) -> list[CueEvent]:
        if self.phase is not GatePhase.RUNNING:
            return []

        latches = self.latches
        window = self.pre_sound_window_ms

        if remaining_ms <= 0:
            if latches.end_fired:
                return []
            latches.end_fired = True
            self.phase = GatePhase.FINISHED
            self.timer.stop()
            return self._fire([CueEvent.END])

        fired = []

        if not latches.pre_end_nudge_fired and remaining_ms <= window:
            latches.pre_end_nudge_fired = True
            fired.append(CueEvent.PRE_END_NUDGE)

        if alarm.alarm_enabled and alarm.is_valid_for(self.timer.target_duration_ms) and not latches.alarm_fired:
            offset = alarm.alarm_offset_ms
            if not latches.pre_alarm_nudge_fired and offset < remaining_ms <= offset + window:
                latches.pre_alarm_nudge_fired = True
                fired.append(CueEvent.PRE_ALARM_NUDGE)
            if remaining_ms <= offset:
                latches.alarm_fired = True
                fired.append(CueEvent.ALARM)

        return self._fire(fired)

    def _fire(self, events: list[CueEvent]) -> list[CueEvent]:
        for event in events:
            logger.debug(f"Countdown event {event.value}")
            if self.dispatch is not None:
                self.dispatch(event)
        return events
