from .clock import ClockSource, MonotonicClock, TimerClock
from .countdown import Countdown
from .cues import CueScheduler
from .gate import CueEvent, EventGate, GatePhase

__all__ = [
    "ClockSource",
    "MonotonicClock",
    "TimerClock",
    "Countdown",
    "CueScheduler",
    "CueEvent",
    "EventGate",
    "GatePhase",
]
