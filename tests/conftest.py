import heapq
import itertools

import pytest

from cuetimer.audio import AudioEngine, AudioEngineError
from cuetimer.config import StaticConfigProvider
from cuetimer.countdown import Countdown
from cuetimer.cues import CueScheduler
from cuetimer.tasks import ScheduledTask, TaskScheduler


class FakeClock:
    def __init__(self, now_ms: int = 0):
        self.now = now_ms

    def now_ms(self) -> int:
        return self.now


class FakeTasks(TaskScheduler):
    """Virtual-time scheduler; tasks due at the same instant run in order of scheduling."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self._queue = []
        self._seq = itertools.count()

    def call_later(self, delay_ms, callback, name="task"):
        task = ScheduledTask(name, callback)
        heapq.heappush(self._queue, (self.clock.now + int(delay_ms), next(self._seq), task))
        return task

    def run_until(self, when_ms: int):
        while self._queue and self._queue[0][0] <= when_ms:
            due, _, task = heapq.heappop(self._queue)
            self.clock.now = max(self.clock.now, due)
            task.fire()
        self.clock.now = max(self.clock.now, when_ms)

    def advance(self, delta_ms: int):
        self.run_until(self.clock.now + delta_ms)

    def active(self, name: str | None = None) -> list[ScheduledTask]:
        return [t for _, _, t in self._queue if t.active and (name is None or t.name == name)]


class FakeEngine(AudioEngine):
    """Real voice bookkeeping; output readiness is controlled by the test."""

    def __init__(self):
        super().__init__()
        self.running = True
        self.fail_with: str | None = None
        self.waiters = []
        self.resume_calls = 0

    @property
    def ready(self) -> bool:
        return self.running

    def resume(self, on_ready) -> bool:
        self.resume_calls += 1
        if self.fail_with:
            raise AudioEngineError(self.fail_with)
        if self.running:
            return True
        self.waiters.append(on_ready)
        return False

    def finish_resume(self):
        self.running = True
        waiters, self.waiters = self.waiters, []
        for cb in waiters:
            cb()


@pytest.fixture
def clock():
    return FakeClock(1_000_000)


@pytest.fixture
def tasks(clock):
    return FakeTasks(clock)


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def cues(engine, tasks):
    return CueScheduler(engine, tasks)


@pytest.fixture
def provider():
    return StaticConfigProvider()


class RecordingDisplay:
    def __init__(self):
        self.values = []

    def update(self, remaining_ms):
        self.values.append(remaining_ms)


@pytest.fixture
def display():
    return RecordingDisplay()


@pytest.fixture
def countdown(clock, provider, cues, display):
    return Countdown(clock, provider, cues, display=display)
