import time
from typing import Protocol


class ClockSource(Protocol):
    def now_ms(self) -> int: ...


class MonotonicClock:
    def now_ms(self) -> int:
        return time.monotonic_ns() // 1_000_000


# -----------------------------
# Timer model
# -----------------------------
class TimerClock:
    """Countdown deadline kept as absolute timestamps.

    Remaining time is recomputed from ``now - start`` on every call, so an
    irregular refresh cadence never accumulates drift.
    """

    def __init__(self):
        self.target_duration_ms = 0
        self.start_epoch_ms = 0
        self.running = False

    def start(self, duration_ms: int, now: int):
        duration_ms = int(duration_ms)
        if duration_ms < 0:
            raise ValueError(f"duration must be non-negative, got {duration_ms} ms")
        self.target_duration_ms = duration_ms
        self.start_epoch_ms = int(now)
        self.running = True

    def stop(self):
        self.running = False

    def remaining(self, now: int) -> int:
        elapsed = max(0, int(now) - self.start_epoch_ms)
        return max(0, self.target_duration_ms - elapsed)
